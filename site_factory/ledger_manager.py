import json
import os
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint, create_engine, func
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Config
from .site_model import BuildArtifact
from .utils import ErrorKind, ProductionError, get_logger, handle_errors, utc_now

logger = get_logger(__name__)
Base = declarative_base()

# Deployment record states
DEPLOY_IDLE = "idle"
DEPLOY_BUILDING = "building"
DEPLOY_DEPLOYING = "deploying"
DEPLOY_DEPLOYED = "deployed"
DEPLOY_FAILED = "failed"
DEPLOY_TERMINAL = (DEPLOY_DEPLOYED, DEPLOY_FAILED)

# Publication record states
PUBLISH_IDLE = "idle"
PUBLISH_SUBMITTING = "submitting"
PUBLISH_SUBMITTED = "submitted"
PUBLISH_REJECTED = "rejected"
PUBLISH_TERMINAL = (PUBLISH_SUBMITTED, PUBLISH_REJECTED)


def _iso(value):
    return value.isoformat() if value else None


class Artifact(Base):
    """Emitted build artifact (append-only, keyed by its deterministic id)"""

    __tablename__ = "artifacts"
    id = Column(String, primary_key=True)
    target_kind = Column(String, nullable=False)
    source_site_model_id = Column(String, nullable=False)
    checksum = Column(String)
    files_json = Column(Text)  # flattened {path: content}
    created_at = Column(DateTime, default=utc_now)

    def to_dict(self):
        return {
            "id": self.id,
            "target_kind": self.target_kind,
            "source_site_model_id": self.source_site_model_id,
            "checksum": self.checksum,
            "created_at": _iso(self.created_at),
        }

    def to_artifact(self) -> BuildArtifact:
        flat = json.loads(self.files_json) if self.files_json else {}
        return BuildArtifact.from_flat(self.id, self.target_kind, self.source_site_model_id, flat)


class Deployment(Base):
    """One attempt to push an artifact to a hosting provider"""

    __tablename__ = "deployments"
    id = Column(String, primary_key=True)
    artifact_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False)
    provider = Column(String, nullable=False)
    project_name = Column(String)
    environment = Column(String, default="production")
    state = Column(String, default=DEPLOY_IDLE)  # idle, building, deploying, deployed, failed
    public_url = Column(String)
    provider_deployment_id = Column(String)
    last_error = Column(Text)
    retryable = Column(Boolean, default=False)
    state_history = Column(Text, default="[]")
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now)

    def to_dict(self):
        return {
            "id": self.id,
            "artifact_id": self.artifact_id,
            "user_id": self.user_id,
            "provider": self.provider,
            "project_name": self.project_name,
            "environment": self.environment,
            "state": self.state,
            "public_url": self.public_url,
            "provider_deployment_id": self.provider_deployment_id,
            "last_error": self.last_error,
            "retryable": bool(self.retryable),
            "state_history": json.loads(self.state_history) if self.state_history else [],
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Publication(Base):
    """One marketplace submission of a mobile artifact"""

    __tablename__ = "publications"
    id = Column(String, primary_key=True)
    artifact_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False)
    store = Column(String, nullable=False)
    app_name = Column(String)
    bundle_id = Column(String)
    version = Column(String)
    state = Column(String, default=PUBLISH_IDLE)  # idle, submitting, submitted, rejected
    store_app_id = Column(String)
    store_url = Column(String)
    submission_id = Column(String)
    last_error = Column(Text)
    config_json = Column(Text)
    state_history = Column(Text, default="[]")
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now)

    def to_dict(self):
        return {
            "id": self.id,
            "artifact_id": self.artifact_id,
            "user_id": self.user_id,
            "store": self.store,
            "app_name": self.app_name,
            "bundle_id": self.bundle_id,
            "version": self.version,
            "state": self.state,
            "store_app_id": self.store_app_id,
            "store_url": self.store_url,
            "submission_id": self.submission_id,
            "last_error": self.last_error,
            "config": json.loads(self.config_json) if self.config_json else {},
            "state_history": json.loads(self.state_history) if self.state_history else [],
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class ProviderSite(Base):
    """Remote project/site/repo provisioned for an artifact on a provider"""

    __tablename__ = "provider_sites"
    __table_args__ = (UniqueConstraint("artifact_id", "provider", name="uq_provider_site"),)
    id = Column(Integer, primary_key=True, autoincrement=True)
    artifact_id = Column(String, nullable=False)
    provider = Column(String, nullable=False)
    remote_id = Column(String, nullable=False)
    url = Column(String)
    created_at = Column(DateTime, default=utc_now)

    def to_dict(self):
        return {
            "artifact_id": self.artifact_id,
            "provider": self.provider,
            "remote_id": self.remote_id,
            "url": self.url,
            "created_at": _iso(self.created_at),
        }


class Project(Base):
    """A classified site owned by a user; counted once against the project limit"""

    __tablename__ = "projects"
    __table_args__ = (UniqueConstraint("user_id", "site_id", name="uq_user_project"),)
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    site_id = Column(String, nullable=False)
    archetype = Column(String)
    description = Column(Text)
    created_at = Column(DateTime, default=utc_now)

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "site_id": self.site_id,
            "archetype": self.archetype,
            "description": self.description,
            "created_at": _iso(self.created_at),
        }


class Subscription(Base):
    """Billing read model: the user's current plan"""

    __tablename__ = "subscriptions"
    user_id = Column(String, primary_key=True)
    plan_id = Column(String, nullable=False)
    status = Column(String, default="active")  # active, canceled, past_due
    updated_at = Column(DateTime, default=utc_now)

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "plan_id": self.plan_id,
            "status": self.status,
            "updated_at": _iso(self.updated_at),
        }


class UsageRecord(Base):
    """Append-only usage events, summed over a rolling window"""

    __tablename__ = "usage_records"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    usage_type = Column(String, nullable=False)  # createProject, deploy, aiRequest
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=utc_now)


def _make_engine(database_url):
    if database_url.startswith("sqlite"):
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection so every thread sees the same in-memory DB
            return create_engine(
                database_url, connect_args={"check_same_thread": False}, poolclass=StaticPool
            )
        path = database_url.split("sqlite:///", 1)[-1]
        if path:
            os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url)


class LedgerManager:
    """Stores artifacts, deployment/publication records, provider sites and entitlement data"""

    def __init__(self, database_url=Config.DATABASE_URL):
        self.engine = _make_engine(database_url)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine)
        logger.info(f"LedgerManager initialized. Database: {database_url}")

    @handle_errors(stage="Ledger Initialization")
    def get_session(self):
        return self.Session()

    # -----------------------------
    # Artifacts
    # -----------------------------

    @handle_errors(stage="Artifact Management")
    def save_artifact(self, artifact: BuildArtifact):
        """Store an artifact. Ids are content-derived, so saving the same one twice is a no-op."""
        session = self.get_session()
        try:
            existing = session.query(Artifact).filter_by(id=artifact.id).first()
            if existing:
                return existing.to_dict()
            row = Artifact(
                id=artifact.id,
                target_kind=artifact.target_kind,
                source_site_model_id=artifact.source_site_model_id,
                checksum=artifact.checksum,
                files_json=json.dumps(artifact.flat_files(), sort_keys=True),
            )
            session.add(row)
            session.commit()
            logger.info(f"Artifact stored - ID: {artifact.id}, target: {artifact.target_kind}")
            return row.to_dict()
        except Exception as e:
            session.rollback()
            raise ProductionError(
                f"Failed to store artifact: {e}",
                stage="Save Artifact",
                record_id=artifact.id,
                original_exception=e,
            )
        finally:
            session.close()

    @handle_errors(stage="Artifact Management")
    def get_artifact(self, artifact_id: str):
        """Return the stored BuildArtifact or None."""
        session = self.get_session()
        try:
            row = session.query(Artifact).filter_by(id=artifact_id).first()
            return row.to_artifact() if row else None
        finally:
            session.close()

    @handle_errors(stage="Artifact Management")
    def list_artifacts(self, source_site_model_id: str = None):
        session = self.get_session()
        try:
            query = session.query(Artifact)
            if source_site_model_id:
                query = query.filter_by(source_site_model_id=source_site_model_id)
            return [a.to_dict() for a in query.order_by(Artifact.created_at).all()]
        finally:
            session.close()

    # -----------------------------
    # Deployment / publication records
    # -----------------------------

    @handle_errors(stage="Record Management")
    def create_deployment(self, artifact_id: str, user_id: str, provider: str, project_name: str = None,
                          environment: str = "production"):
        """Create a deployment record in the idle state."""
        return self._create_record(
            Deployment(
                id=f"dep-{uuid.uuid4().hex[:12]}",
                artifact_id=artifact_id,
                user_id=user_id,
                provider=provider,
                project_name=project_name,
                environment=environment,
                state=DEPLOY_IDLE,
                state_history=json.dumps([DEPLOY_IDLE]),
            )
        )

    @handle_errors(stage="Record Management")
    def create_publication(self, artifact_id: str, user_id: str, store: str, config: dict = None):
        """Create a publication record in the idle state."""
        config = config or {}
        return self._create_record(
            Publication(
                id=f"pub-{uuid.uuid4().hex[:12]}",
                artifact_id=artifact_id,
                user_id=user_id,
                store=store,
                app_name=config.get("app_name"),
                bundle_id=config.get("bundle_id"),
                version=config.get("version"),
                config_json=json.dumps(config, sort_keys=True),
                state=PUBLISH_IDLE,
                state_history=json.dumps([PUBLISH_IDLE]),
            )
        )

    def _create_record(self, record):
        session = self.get_session()
        try:
            session.add(record)
            session.commit()
            logger.info(f"{type(record).__name__} record created - ID: {record.id}, state: {record.state}")
            return record.to_dict()
        except Exception as e:
            session.rollback()
            raise ProductionError(
                f"Failed to create record: {e}",
                stage="Create Record",
                record_id=record.id,
                original_exception=e,
            )
        finally:
            session.close()

    def _transition(self, model, record_id: str, expected: str, new_state: str, **fields):
        """
        Move a record from `expected` to `new_state` in one conditional UPDATE.
        Returns the updated record, or None when the record was not in `expected`
        (already terminal, or moved by another writer).
        """
        session = self.get_session()
        try:
            values = {k: v for k, v in fields.items() if hasattr(model, k)}
            values["state"] = new_state
            values["updated_at"] = utc_now()
            updated = (
                session.query(model)
                .filter(model.id == record_id, model.state == expected)
                .update(values, synchronize_session=False)
            )
            if updated != 1:
                session.rollback()
                logger.warning(
                    f"{model.__name__} {record_id}: transition {expected} -> {new_state} refused "
                    "(record missing or not in the expected state)"
                )
                return None
            record = session.query(model).filter_by(id=record_id).first()
            history = json.loads(record.state_history) if record.state_history else []
            history.append(new_state)
            record.state_history = json.dumps(history)
            session.commit()
            logger.info(f"{model.__name__} {record_id}: {expected} -> {new_state}")
            return record.to_dict()
        except Exception as e:
            session.rollback()
            raise ProductionError(
                f"State transition failed: {e}",
                stage="Record Transition",
                record_id=record_id,
                original_exception=e,
            )
        finally:
            session.close()

    @handle_errors(stage="Record Management")
    def transition_deployment(self, record_id: str, expected: str, new_state: str, **fields):
        return self._transition(Deployment, record_id, expected, new_state, **fields)

    @handle_errors(stage="Record Management")
    def transition_publication(self, record_id: str, expected: str, new_state: str, **fields):
        return self._transition(Publication, record_id, expected, new_state, **fields)

    @handle_errors(stage="Record Management")
    def get_deployment(self, record_id: str):
        session = self.get_session()
        try:
            record = session.query(Deployment).filter_by(id=record_id).first()
            return record.to_dict() if record else None
        finally:
            session.close()

    @handle_errors(stage="Record Management")
    def list_deployments(self, artifact_id: str = None):
        session = self.get_session()
        try:
            query = session.query(Deployment)
            if artifact_id:
                query = query.filter_by(artifact_id=artifact_id)
            return [d.to_dict() for d in query.order_by(Deployment.created_at).all()]
        finally:
            session.close()

    @handle_errors(stage="Record Management")
    def get_publication(self, record_id: str):
        session = self.get_session()
        try:
            record = session.query(Publication).filter_by(id=record_id).first()
            return record.to_dict() if record else None
        finally:
            session.close()

    @handle_errors(stage="Record Management")
    def list_publications(self, artifact_id: str = None):
        session = self.get_session()
        try:
            query = session.query(Publication)
            if artifact_id:
                query = query.filter_by(artifact_id=artifact_id)
            return [p.to_dict() for p in query.order_by(Publication.created_at).all()]
        finally:
            session.close()

    def _fail_stale(self, model, states, terminal_state: str, cutoff: datetime, reason: str):
        session = self.get_session()
        try:
            stale = (
                session.query(model)
                .filter(model.state.in_(states), model.updated_at <= cutoff)
                .all()
            )
            ids = [(r.id, r.state) for r in stale]
        finally:
            session.close()

        swept = []
        for record_id, state in ids:
            record = self._transition(
                model, record_id, state, terminal_state, last_error=reason, retryable=True
            )
            if record:
                swept.append(record)
        return swept

    @handle_errors(stage="Record Sweep")
    def fail_stale_deployments(self, cutoff: datetime, reason: str):
        """Force building/deploying records last touched before `cutoff` to failed."""
        return self._fail_stale(Deployment, (DEPLOY_BUILDING, DEPLOY_DEPLOYING), DEPLOY_FAILED, cutoff, reason)

    @handle_errors(stage="Record Sweep")
    def fail_stale_publications(self, cutoff: datetime, reason: str):
        """Force submitting records last touched before `cutoff` to rejected."""
        return self._fail_stale(Publication, (PUBLISH_SUBMITTING,), PUBLISH_REJECTED, cutoff, reason)

    # -----------------------------
    # Provider sites
    # -----------------------------

    @handle_errors(stage="Provider Site Management")
    def get_provider_site(self, artifact_id: str, provider: str):
        session = self.get_session()
        try:
            row = session.query(ProviderSite).filter_by(artifact_id=artifact_id, provider=provider).first()
            return row.to_dict() if row else None
        finally:
            session.close()

    @handle_errors(stage="Provider Site Management")
    def save_provider_site(self, artifact_id: str, provider: str, remote_id: str, url: str = None):
        session = self.get_session()
        try:
            row = session.query(ProviderSite).filter_by(artifact_id=artifact_id, provider=provider).first()
            if row:
                row.remote_id = remote_id
                row.url = url
            else:
                row = ProviderSite(artifact_id=artifact_id, provider=provider, remote_id=remote_id, url=url)
                session.add(row)
            session.commit()
            logger.info(f"Provider site saved - {provider}: {artifact_id} -> {remote_id}")
            return row.to_dict()
        except Exception as e:
            session.rollback()
            raise ProductionError(
                f"Failed to save provider site: {e}",
                stage="Save Provider Site",
                record_id=artifact_id,
                original_exception=e,
            )
        finally:
            session.close()

    # -----------------------------
    # Projects
    # -----------------------------

    @handle_errors(stage="Project Management")
    def get_project(self, user_id: str, site_id: str):
        session = self.get_session()
        try:
            row = session.query(Project).filter_by(user_id=user_id, site_id=site_id).first()
            return row.to_dict() if row else None
        finally:
            session.close()

    @handle_errors(stage="Project Management")
    def save_project(self, user_id: str, site_id: str, archetype: str = None, description: str = None):
        """Insert a project row. Returns None if the user already owns this site id."""
        session = self.get_session()
        try:
            if session.query(Project).filter_by(user_id=user_id, site_id=site_id).first():
                return None
            row = Project(user_id=user_id, site_id=site_id, archetype=archetype, description=description)
            session.add(row)
            session.commit()
            logger.info(f"Project saved - user: {user_id}, site: {site_id}")
            return row.to_dict()
        except Exception as e:
            session.rollback()
            raise ProductionError(
                f"Failed to save project: {e}",
                stage="Save Project",
                record_id=site_id,
                original_exception=e,
            )
        finally:
            session.close()

    # -----------------------------
    # Subscriptions and usage
    # -----------------------------

    @handle_errors(stage="Entitlement Data")
    def set_subscription(self, user_id: str, plan_id: str, status: str = "active"):
        session = self.get_session()
        try:
            row = session.query(Subscription).filter_by(user_id=user_id).first()
            if row:
                row.plan_id = plan_id
                row.status = status
                row.updated_at = utc_now()
            else:
                row = Subscription(user_id=user_id, plan_id=plan_id, status=status)
                session.add(row)
            session.commit()
            logger.info(f"Subscription saved - user: {user_id}, plan: {plan_id}, status: {status}")
            return row.to_dict()
        except Exception as e:
            session.rollback()
            raise ProductionError(
                f"Failed to save subscription: {e}",
                stage="Save Subscription",
                original_exception=e,
                kind=ErrorKind.STORE_FAILURE,
            )
        finally:
            session.close()

    @handle_errors(stage="Entitlement Data")
    def get_subscription(self, user_id: str):
        session = self.get_session()
        try:
            row = session.query(Subscription).filter_by(user_id=user_id).first()
            return row.to_dict() if row else None
        finally:
            session.close()

    @handle_errors(stage="Entitlement Data")
    def add_usage(self, user_id: str, usage_type: str, quantity: int = 1):
        """Append one usage record in its own transaction."""
        session = self.get_session()
        try:
            session.add(UsageRecord(user_id=user_id, usage_type=usage_type, quantity=quantity))
            session.commit()
        except Exception as e:
            session.rollback()
            raise ProductionError(
                f"Failed to record usage: {e}",
                stage="Record Usage",
                original_exception=e,
            )
        finally:
            session.close()

    @handle_errors(stage="Entitlement Data")
    def sum_usage(self, user_id: str, since: datetime = None):
        """Return {usage_type: total quantity} for the user, optionally since a timestamp."""
        session = self.get_session()
        try:
            query = session.query(UsageRecord.usage_type, func.sum(UsageRecord.quantity)).filter(
                UsageRecord.user_id == user_id
            )
            if since is not None:
                query = query.filter(UsageRecord.created_at >= since)
            return {usage_type: int(total or 0) for usage_type, total in query.group_by(UsageRecord.usage_type).all()}
        finally:
            session.close()
