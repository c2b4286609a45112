"""
marketplaces.py

App marketplaces the publishing pipeline submits mobile artifacts to. Each
store checks the listing against its own rules and answers with a
SubmissionResult; a rule violation comes back as status "rejected" with the
store's reason rather than as an exception.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .config import ProviderCredentials
from .site_model import BuildArtifact
from .utils import get_logger, stable_hash

logger = get_logger(__name__)

GOOGLE_PLAY = "google-play"
APP_STORE = "app-store"
SAMSUNG_GALAXY = "samsung-galaxy"
AMAZON_APPSTORE = "amazon-appstore"

STATUS_SUBMITTED = "submitted"
STATUS_REJECTED = "rejected"

_BUNDLE_ID_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*(\.[a-zA-Z][a-zA-Z0-9_]*)+$")
_VERSION_RE = re.compile(r"^\d+(\.\d+){0,3}$")


@dataclass
class StoreConfig:
    app_name: str
    bundle_id: str
    version: str = "1.0.0"
    description: str = ""
    category: str = "Business"
    keywords: List[str] = field(default_factory=list)
    age_rating: str = "Everyone"
    privacy_policy_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "StoreConfig":
        return cls(
            app_name=data.get("app_name") or data.get("appName") or "",
            bundle_id=data.get("bundle_id") or data.get("bundleId") or "",
            version=data.get("version", "1.0.0"),
            description=data.get("description", ""),
            category=data.get("category", "Business"),
            keywords=list(data.get("keywords") or []),
            age_rating=data.get("age_rating") or data.get("ageRating") or "Everyone",
            privacy_policy_url=data.get("privacy_policy_url") or data.get("privacyPolicy"),
        )

    def to_dict(self) -> dict:
        return {
            "app_name": self.app_name,
            "bundle_id": self.bundle_id,
            "version": self.version,
            "description": self.description,
            "category": self.category,
            "keywords": list(self.keywords),
            "age_rating": self.age_rating,
            "privacy_policy_url": self.privacy_policy_url,
        }


@dataclass
class SubmissionResult:
    submission_id: Optional[str]
    status: str
    reason: Optional[str] = None
    store_url: Optional[str] = None


class Marketplace:
    """Base store: common listing checks plus per-store limits."""

    name = ""
    max_name_length = 50
    max_description_length = 4000
    requires_privacy_policy = False

    def __init__(self, token: str):
        self.token = token

    def listing_problems(self, app_id: str, metadata: StoreConfig) -> List[str]:
        problems = []
        if not metadata.app_name.strip():
            problems.append("app name is empty")
        elif len(metadata.app_name) > self.max_name_length:
            problems.append(f"app name exceeds {self.max_name_length} characters")
        if not _BUNDLE_ID_RE.match(app_id or ""):
            problems.append(f"'{app_id}' is not a valid reverse-domain application id")
        if not _VERSION_RE.match(metadata.version or ""):
            problems.append(f"version '{metadata.version}' is not numeric (e.g. 1.0.0)")
        if len(metadata.description) > self.max_description_length:
            problems.append(f"description exceeds {self.max_description_length} characters")
        if self.requires_privacy_policy and not metadata.privacy_policy_url:
            problems.append("a privacy policy URL is required")
        return problems

    def store_url(self, app_id: str, metadata: StoreConfig) -> str:
        raise NotImplementedError

    def submit(self, app_id: str, metadata: StoreConfig, artifact: BuildArtifact) -> SubmissionResult:
        problems = self.listing_problems(app_id, metadata)
        if problems:
            reason = "; ".join(problems)
            logger.info(f"{self.name} rejected {app_id}: {reason}")
            return SubmissionResult(submission_id=None, status=STATUS_REJECTED, reason=reason)

        submission_id = stable_hash(
            {"store": self.name, "app_id": app_id, "version": metadata.version, "artifact": artifact.id}
        )[:16]
        logger.info(f"{self.name} accepted {app_id} {metadata.version} for review ({submission_id})")
        return SubmissionResult(
            submission_id=submission_id,
            status=STATUS_SUBMITTED,
            store_url=self.store_url(app_id, metadata),
        )


class GooglePlay(Marketplace):
    name = GOOGLE_PLAY
    max_name_length = 30
    requires_privacy_policy = True

    def store_url(self, app_id, metadata):
        return f"https://play.google.com/store/apps/details?id={app_id}"


class AppStore(Marketplace):
    name = APP_STORE
    max_name_length = 30
    requires_privacy_policy = True

    def listing_problems(self, app_id, metadata):
        problems = super().listing_problems(app_id, metadata)
        if len(",".join(metadata.keywords)) > 100:
            problems.append("keywords exceed 100 characters")
        return problems

    def store_url(self, app_id, metadata):
        return f"https://apps.apple.com/app/{app_id}"


class SamsungGalaxy(Marketplace):
    name = SAMSUNG_GALAXY

    def store_url(self, app_id, metadata):
        return f"https://galaxystore.samsung.com/detail/{app_id}"


class AmazonAppstore(Marketplace):
    name = AMAZON_APPSTORE
    max_description_length = 1200

    def store_url(self, app_id, metadata):
        return f"https://www.amazon.com/gp/mas/dl/android?p={app_id}"


MarketplaceFactory = Callable[[ProviderCredentials], Marketplace]

DEFAULT_MARKETPLACES: Dict[str, MarketplaceFactory] = {
    GOOGLE_PLAY: lambda creds: GooglePlay(creds.google_play_service_account),
    APP_STORE: lambda creds: AppStore(creds.app_store_connect_key),
    SAMSUNG_GALAXY: lambda creds: SamsungGalaxy(creds.samsung_galaxy_token),
    AMAZON_APPSTORE: lambda creds: AmazonAppstore(creds.amazon_appstore_token),
}
