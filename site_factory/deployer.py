"""
deployer.py

Pushes build artifacts to hosting providers and tracks each attempt as a
DeploymentRecord: idle -> building -> deploying -> deployed | failed.
Provider failures never escape deploy(); they end the record in `failed`
with last_error and a retryable flag, and the record is returned.
"""

import time
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import timedelta
from typing import Dict, Optional, Union

from .config import Config, ProviderCredentials
from .entitlements import DEPLOY, EntitlementGate
from .ledger_manager import (
    DEPLOY_BUILDING,
    DEPLOY_DEPLOYED,
    DEPLOY_DEPLOYING,
    DEPLOY_FAILED,
    DEPLOY_IDLE,
    LedgerManager,
)
from .providers import DEFAULT_PROVIDERS, DeploymentConfig, ProviderFactory
from .site_model import BuildArtifact
from .utils import (
    InvalidInputError,
    ProductionError,
    ProviderNotConfiguredError,
    ProviderRequestFailedError,
    get_logger,
    run_with_timeout,
    utc_now,
)

logger = get_logger(__name__)


def coerce_config(config, default_name: str) -> DeploymentConfig:
    """Accept a DeploymentConfig, a dict (snake_case or camelCase keys) or None."""
    if isinstance(config, DeploymentConfig):
        return config
    data = dict(config or {})
    return DeploymentConfig(
        project_name=data.get("project_name") or data.get("projectName") or default_name,
        domain=data.get("domain"),
        environment=data.get("environment", "production"),
    )


def load_artifact(ledger: LedgerManager, artifact: Union[BuildArtifact, str], stage: str) -> BuildArtifact:
    if isinstance(artifact, BuildArtifact):
        ledger.save_artifact(artifact)
        return artifact
    stored = ledger.get_artifact(artifact)
    if stored is None:
        raise InvalidInputError(f"Unknown artifact '{artifact}'", stage=stage, record_id=artifact)
    return stored


class DeploymentOrchestrator:
    def __init__(
        self,
        ledger: LedgerManager,
        credentials: ProviderCredentials,
        gate: EntitlementGate,
        providers: Optional[Dict[str, ProviderFactory]] = None,
        deadline: float = Config.REQUEST_DEADLINE_SECONDS,
    ):
        self.ledger = ledger
        self.credentials = credentials
        self.gate = gate
        self.providers = dict(providers if providers is not None else DEFAULT_PROVIDERS)
        self.deadline = deadline

    def deploy(self, user_id: str, artifact: Union[BuildArtifact, str], provider: str, config=None) -> dict:
        """
        Deploy an artifact (object or stored id) to a provider and return the final record.

        Raises only for request-level problems: unknown provider or artifact
        (InvalidInputError) and a plan that does not allow deploying
        (EntitlementDeniedError). Both happen before any record exists.
        """
        if provider not in self.providers:
            raise InvalidInputError(
                f"Unknown provider '{provider}'. Available: {', '.join(self.providers)}", stage="Deploy"
            )
        artifact = load_artifact(self.ledger, artifact, stage="Deploy")
        config = coerce_config(config, default_name=artifact.source_site_model_id)

        self.gate.require(user_id, DEPLOY)

        record = self.ledger.create_deployment(
            artifact.id, user_id, provider, project_name=config.project_name, environment=config.environment
        )
        record_id = record["id"]

        token = self.credentials.for_provider(provider)
        if not token:
            error = ProviderNotConfiguredError(
                f"No credentials configured for {provider}", stage="Deploy", record_id=record_id
            )
            return self._fail(record_id, DEPLOY_IDLE, error)

        self.ledger.transition_deployment(record_id, DEPLOY_IDLE, DEPLOY_BUILDING)
        state = DEPLOY_BUILDING
        deadline_at = time.monotonic() + self.deadline

        def remaining() -> float:
            return max(0.0, deadline_at - time.monotonic())

        try:
            client = self.providers[provider](self.credentials)
            files = artifact.flat_files()

            site = self.ledger.get_provider_site(artifact.id, provider)
            if site is None:
                provisioned = run_with_timeout(client.provision, remaining(), config.project_name, config)
                self.ledger.save_provider_site(artifact.id, provider, provisioned.id, provisioned.url)
                remote_id = provisioned.id
            else:
                remote_id = site["remote_id"]

            self.ledger.transition_deployment(record_id, DEPLOY_BUILDING, DEPLOY_DEPLOYING)
            state = DEPLOY_DEPLOYING
            result = run_with_timeout(client.upload, remaining(), remote_id, files, config)
            if not result.url:
                raise ProviderRequestFailedError(
                    f"{provider} acknowledged the upload without a public URL", stage="Deploy", record_id=record_id
                )
        except FuturesTimeoutError as e:
            error = ProviderRequestFailedError(
                f"{provider} did not respond within the {self.deadline}s request deadline",
                stage="Deploy",
                record_id=record_id,
                original_exception=e,
            )
            return self._fail(record_id, state, error)
        except ProductionError as e:
            return self._fail(record_id, state, e)
        except Exception as e:
            error = ProviderRequestFailedError(
                f"{provider} returned an unexpected response: {e}",
                stage="Deploy",
                record_id=record_id,
                original_exception=e,
            )
            return self._fail(record_id, state, error)

        final = self.ledger.transition_deployment(
            record_id,
            DEPLOY_DEPLOYING,
            DEPLOY_DEPLOYED,
            public_url=result.url,
            provider_deployment_id=result.deployment_id,
        )
        if final is None:
            # Swept to failed while the upload was still running
            return self.ledger.get_deployment(record_id)

        self.gate.record_usage(user_id, DEPLOY)
        logger.info(f"Deployment {record_id} live at {result.url}")
        return final

    def _fail(self, record_id: str, expected: str, error: ProductionError) -> dict:
        record = self.ledger.transition_deployment(
            record_id,
            expected,
            DEPLOY_FAILED,
            last_error=error.describe(),
            retryable=error.retryable,
        )
        logger.error(f"Deployment {record_id} failed in '{expected}': {error.describe()}")
        return record or self.ledger.get_deployment(record_id)

    def get_deployment(self, record_id: str) -> Optional[dict]:
        return self.ledger.get_deployment(record_id)

    def list_deployments(self, artifact_id: str = None) -> list:
        return self.ledger.list_deployments(artifact_id)

    def sweep_stale(self, max_age_seconds: float = Config.STALE_RECORD_SECONDS) -> list:
        """Fail every building/deploying record not touched for max_age_seconds. Returns the swept records."""
        cutoff = utc_now() - timedelta(seconds=max_age_seconds)
        swept = self.ledger.fail_stale_deployments(
            cutoff, f"ProviderRequestFailed: no progress for {max_age_seconds}s; forced to failed by sweep"
        )
        if swept:
            logger.warning(f"Swept {len(swept)} stale deployment(s) to failed")
        return swept
