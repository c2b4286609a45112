"""
factory.py

SiteFactory wires the pipeline together: classify -> generate -> emit ->
deploy/publish, with the entitlement gate consulted at each paid step.
"""

from typing import Optional

from .classifier import classify
from .config import Config, ProviderCredentials
from .content_generator import ContentGenerator, GenerationReport
from .deployer import DeploymentOrchestrator
from .emitters import EmissionService
from .entitlements import CREATE_PROJECT, EntitlementGate
from .ledger_manager import LedgerManager
from .site_model import BuildArtifact, SiteModel
from .store_publisher import PublishingPipeline
from .suggestion_client import LLMSuggestionClient, SuggestionClient
from .utils import get_logger

logger = get_logger(__name__)


class SiteFactory:
    def __init__(
        self,
        ledger: Optional[LedgerManager] = None,
        credentials: Optional[ProviderCredentials] = None,
        suggestion_client: Optional[SuggestionClient] = None,
        providers=None,
        marketplaces=None,
    ):
        self.ledger = ledger or LedgerManager(Config.DATABASE_URL)
        self.credentials = credentials or ProviderCredentials.from_env()
        self.gate = EntitlementGate(self.ledger)

        if suggestion_client is None:
            llm = LLMSuggestionClient()
            suggestion_client = llm if llm.configured else None
        self.generator = ContentGenerator(suggestion_client=suggestion_client, gate=self.gate)
        self.emission = EmissionService(self.ledger)
        self.orchestrator = DeploymentOrchestrator(self.ledger, self.credentials, self.gate, providers=providers)
        self.pipeline = PublishingPipeline(self.ledger, self.credentials, self.gate, marketplaces=marketplaces)
        logger.info("SiteFactory ready")

    def create_project(self, user_id: str, description: str) -> SiteModel:
        """
        Classify a description into a SiteModel. The first time a user creates a
        given site id it counts against the project limit; classifying the same
        description again (e.g. to emit another target) is free.
        """
        site = classify(description)
        if self.ledger.get_project(user_id, site.id):
            logger.info(f"Project {site.id} already owned by {user_id}, not charged")
            return site

        self.gate.require(user_id, CREATE_PROJECT)
        if self.ledger.save_project(user_id, site.id, archetype=site.archetype, description=site.description):
            self.gate.record_usage(user_id, CREATE_PROJECT)
        return site

    def generate_content(self, site: SiteModel, user_id: Optional[str] = None, use_remote: bool = True) -> GenerationReport:
        return self.generator.generate(site, user_id=user_id, use_remote=use_remote)

    def emit(self, site: SiteModel, target_kind: str) -> BuildArtifact:
        return self.emission.emit(site, target_kind)

    def deploy(self, user_id: str, artifact, provider: str, config=None) -> dict:
        return self.orchestrator.deploy(user_id, artifact, provider, config)

    def publish(self, user_id: str, artifact, store: str, config) -> dict:
        return self.pipeline.publish(user_id, artifact, store, config)

    def sweep(self, max_age_seconds: float = Config.STALE_RECORD_SECONDS) -> dict:
        return {
            "deployments": self.orchestrator.sweep_stale(max_age_seconds),
            "publications": self.pipeline.sweep_stale(max_age_seconds),
        }
