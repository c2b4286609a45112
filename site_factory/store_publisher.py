"""
store_publisher.py

Submits mobile build artifacts to app marketplaces. Each submission is a
PublicationRecord: idle -> submitting -> submitted | rejected. `rejected` is
terminal and carries the store's reason; resubmitting means a new record.
"""

import time
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import replace
from datetime import timedelta
from typing import Dict, Optional, Union

from .config import Config, ProviderCredentials
from .deployer import load_artifact
from .emitters import MOBILE_TARGETS
from .emitters.mobile import bundle_id_for
from .entitlements import DEPLOY, EntitlementGate
from .ledger_manager import (
    PUBLISH_IDLE,
    PUBLISH_REJECTED,
    PUBLISH_SUBMITTED,
    PUBLISH_SUBMITTING,
    LedgerManager,
)
from .marketplaces import DEFAULT_MARKETPLACES, STATUS_SUBMITTED, MarketplaceFactory, StoreConfig
from .site_model import BuildArtifact
from .utils import (
    InvalidInputError,
    ProductionError,
    ProviderNotConfiguredError,
    ProviderRequestFailedError,
    UnsupportedTargetError,
    get_logger,
    run_with_timeout,
    utc_now,
)

logger = get_logger(__name__)


class PublishingPipeline:
    def __init__(
        self,
        ledger: LedgerManager,
        credentials: ProviderCredentials,
        gate: EntitlementGate,
        marketplaces: Optional[Dict[str, MarketplaceFactory]] = None,
        deadline: float = Config.REQUEST_DEADLINE_SECONDS,
    ):
        self.ledger = ledger
        self.credentials = credentials
        self.gate = gate
        self.marketplaces = dict(marketplaces if marketplaces is not None else DEFAULT_MARKETPLACES)
        self.deadline = deadline

    def publish(self, user_id: str, artifact: Union[BuildArtifact, str], store: str, config) -> dict:
        """Submit a native mobile artifact to `store` and return the final publication record."""
        if store not in self.marketplaces:
            raise InvalidInputError(
                f"Unknown store '{store}'. Available: {', '.join(self.marketplaces)}", stage="Publish"
            )
        artifact = load_artifact(self.ledger, artifact, stage="Publish")
        if artifact.target_kind not in MOBILE_TARGETS:
            raise UnsupportedTargetError(
                f"Only {', '.join(MOBILE_TARGETS)} artifacts can be published to stores, got '{artifact.target_kind}'",
                stage="Publish",
                record_id=artifact.id,
            )
        if isinstance(config, dict):
            config = StoreConfig.from_dict(config)
        if not config.bundle_id:
            config = replace(config, bundle_id=bundle_id_for(config.app_name))

        self.gate.require(user_id, DEPLOY)

        record = self.ledger.create_publication(artifact.id, user_id, store, config.to_dict())
        record_id = record["id"]

        token = self.credentials.for_store(store)
        if not token:
            error = ProviderNotConfiguredError(
                f"No credentials configured for {store}", stage="Publish", record_id=record_id
            )
            return self._reject(record_id, PUBLISH_IDLE, error.describe())

        self.ledger.transition_publication(record_id, PUBLISH_IDLE, PUBLISH_SUBMITTING)
        started = time.monotonic()
        try:
            market = self.marketplaces[store](self.credentials)
            result = run_with_timeout(market.submit, self.deadline, config.bundle_id, config, artifact)
        except FuturesTimeoutError as e:
            error = ProviderRequestFailedError(
                f"{store} did not respond within {time.monotonic() - started:.0f}s",
                stage="Publish",
                record_id=record_id,
                original_exception=e,
            )
            return self._reject(record_id, PUBLISH_SUBMITTING, error.describe())
        except ProductionError as e:
            return self._reject(record_id, PUBLISH_SUBMITTING, e.describe())
        except Exception as e:
            error = ProviderRequestFailedError(
                f"{store} submission failed: {e}", stage="Publish", record_id=record_id, original_exception=e
            )
            return self._reject(record_id, PUBLISH_SUBMITTING, error.describe())

        if result.status != STATUS_SUBMITTED:
            return self._reject(record_id, PUBLISH_SUBMITTING, result.reason or f"rejected by {store}")

        final = self.ledger.transition_publication(
            record_id,
            PUBLISH_SUBMITTING,
            PUBLISH_SUBMITTED,
            store_app_id=config.bundle_id,
            store_url=result.store_url,
            submission_id=result.submission_id,
        )
        if final is None:
            return self.ledger.get_publication(record_id)

        self.gate.record_usage(user_id, DEPLOY)
        logger.info(f"Publication {record_id} submitted to {store}: {result.store_url}")
        return final

    def _reject(self, record_id: str, expected: str, reason: str) -> dict:
        record = self.ledger.transition_publication(record_id, expected, PUBLISH_REJECTED, last_error=reason)
        logger.error(f"Publication {record_id} rejected in '{expected}': {reason}")
        return record or self.ledger.get_publication(record_id)

    def get_publication(self, record_id: str) -> Optional[dict]:
        return self.ledger.get_publication(record_id)

    def list_publications(self, artifact_id: str = None) -> list:
        return self.ledger.list_publications(artifact_id)

    def sweep_stale(self, max_age_seconds: float = Config.STALE_RECORD_SECONDS) -> list:
        """Reject every submitting record not touched for max_age_seconds."""
        cutoff = utc_now() - timedelta(seconds=max_age_seconds)
        swept = self.ledger.fail_stale_publications(
            cutoff, f"ProviderRequestFailed: no store response for {max_age_seconds}s; rejected by sweep"
        )
        if swept:
            logger.warning(f"Swept {len(swept)} stale publication(s) to rejected")
        return swept
