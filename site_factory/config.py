import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

# Load .env from the project root
PROJECT_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(PROJECT_ROOT / ".env")


class Config:
    # Ledger database (SQLite file by default)
    DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{PROJECT_ROOT}/data/site_factory.db"
    # Where the CLI writes emitted artifacts
    OUTPUT_DIR = os.getenv("OUTPUT_DIR") or str(PROJECT_ROOT / "outputs")
    # Log file path
    LOG_FILE = os.getenv("LOG_FILE") or str(PROJECT_ROOT / "logs" / "site_factory.log")

    # Bounded waits on external calls (seconds)
    SUGGESTION_TIMEOUT_SECONDS = float(os.getenv("SUGGESTION_TIMEOUT_SECONDS", "8"))
    PROVIDER_TIMEOUT_SECONDS = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "30"))
    REQUEST_DEADLINE_SECONDS = float(os.getenv("REQUEST_DEADLINE_SECONDS", "120"))
    # Records stuck in building/deploying/submitting longer than this are failed by the sweep
    STALE_RECORD_SECONDS = int(os.getenv("STALE_RECORD_SECONDS", "900"))

    # Content suggestions: OpenAI-compatible API first, Gemini second
    AI_API_KEY = os.getenv("DEEPSEEK_API_KEY") or os.getenv("OPENAI_API_KEY")
    AI_API_BASE = os.getenv("AI_API_BASE", "https://api.deepseek.com/v1")
    AI_MODEL = os.getenv("AI_MODEL", "deepseek-chat")
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

    # Variables each provider/marketplace needs before it can be used
    PROVIDER_ENV_VARS = {
        "git-host": "GITHUB_TOKEN",
        "static-host-A": "NETLIFY_ACCESS_TOKEN",
        "static-host-B": "VERCEL_API_TOKEN",
        "google-play": "GOOGLE_PLAY_SERVICE_ACCOUNT",
        "app-store": "APP_STORE_CONNECT_API_KEY",
        "samsung-galaxy": "SAMSUNG_GALAXY_ACCESS_TOKEN",
        "amazon-appstore": "AMAZON_APPSTORE_TOKEN",
    }

    @classmethod
    def validate(cls) -> List[str]:
        """Return the provider variables that are not set. Only warns, so partial setups still run."""
        from .utils import get_logger

        missing = [var for var in cls.PROVIDER_ENV_VARS.values() if not os.getenv(var)]
        if missing:
            get_logger(__name__).warning(
                f"Provider credentials missing: {', '.join(missing)}. "
                "Those providers will fail with ProviderNotConfigured."
            )
        return missing


@dataclass(frozen=True)
class ProviderCredentials:
    """Tokens for every hosting provider and marketplace, resolved once and injected."""

    github_token: Optional[str] = None
    github_owner: Optional[str] = None
    netlify_token: Optional[str] = None
    vercel_token: Optional[str] = None
    vercel_team_id: Optional[str] = None
    google_play_service_account: Optional[str] = None
    app_store_connect_key: Optional[str] = None
    samsung_galaxy_token: Optional[str] = None
    amazon_appstore_token: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ProviderCredentials":
        return cls(
            github_token=os.getenv("GITHUB_TOKEN") or None,
            github_owner=os.getenv("GITHUB_OWNER") or None,
            netlify_token=os.getenv("NETLIFY_ACCESS_TOKEN") or None,
            vercel_token=os.getenv("VERCEL_API_TOKEN") or None,
            vercel_team_id=os.getenv("VERCEL_TEAM_ID") or os.getenv("VERCEL_ORG_ID") or None,
            google_play_service_account=os.getenv("GOOGLE_PLAY_SERVICE_ACCOUNT") or None,
            app_store_connect_key=os.getenv("APP_STORE_CONNECT_API_KEY") or None,
            samsung_galaxy_token=os.getenv("SAMSUNG_GALAXY_ACCESS_TOKEN") or None,
            amazon_appstore_token=os.getenv("AMAZON_APPSTORE_TOKEN") or None,
        )

    def _by_name(self) -> Dict[str, Optional[str]]:
        return {
            "git-host": self.github_token,
            "static-host-A": self.netlify_token,
            "static-host-B": self.vercel_token,
            "google-play": self.google_play_service_account,
            "app-store": self.app_store_connect_key,
            "samsung-galaxy": self.samsung_galaxy_token,
            "amazon-appstore": self.amazon_appstore_token,
        }

    def for_provider(self, provider: str) -> Optional[str]:
        return self._by_name().get(provider)

    def for_store(self, store: str) -> Optional[str]:
        return self._by_name().get(store)
