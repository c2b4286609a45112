import os
import sys
import tempfile
import threading
from pathlib import Path

# Keep test runs away from the real log file and database
_TMP = tempfile.mkdtemp(prefix="site-factory-tests-")
os.environ["LOG_FILE"] = os.path.join(_TMP, "test.log")
os.environ["DATABASE_URL"] = "sqlite://"

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from site_factory.classifier import classify
from site_factory.config import ProviderCredentials
from site_factory.entitlements import EntitlementGate
from site_factory.ledger_manager import LedgerManager
from site_factory.marketplaces import STATUS_SUBMITTED, SubmissionResult
from site_factory.providers import HostingProvider, ProvisionResult, UploadResult
from site_factory.suggestion_client import SuggestionClient
from site_factory.utils import ProviderRequestFailedError, RemoteSuggestionUnavailable

JEWELRY = "Create a modern e-commerce store for handmade jewelry"


class FakeProvider(HostingProvider):
    """In-memory hosting provider recording every call."""

    name = "fake"

    def __init__(self, fail_on=None, url="https://jewelry-store.example.app", block=None):
        super().__init__(token="fake-token")
        self.fail_on = fail_on
        self.url = url
        self.block = block
        self.calls = []

    def provision(self, name, config):
        self.calls.append(("provision", name))
        if self.fail_on == "provision":
            raise ProviderRequestFailedError("provision refused (503)", stage="Deploy")
        return ProvisionResult(id=f"remote-{name}", url=self.url)

    def upload(self, remote_id, files, config):
        self.calls.append(("upload", remote_id, sorted(files)))
        if self.block is not None:
            self.block.wait(5)
        if self.fail_on == "upload":
            raise ProviderRequestFailedError("upload rejected (500)", stage="Deploy")
        return UploadResult(deployment_id=f"dpl-{len(self.calls)}", url=self.url)


class FakeMarketplace:
    def __init__(self, status=STATUS_SUBMITTED, reason=None, error=None):
        self.status = status
        self.reason = reason
        self.error = error
        self.submissions = []

    def submit(self, app_id, metadata, artifact):
        self.submissions.append((app_id, metadata.app_name, artifact.id))
        if self.error is not None:
            raise self.error
        if self.status == STATUS_SUBMITTED:
            return SubmissionResult(
                submission_id="sub-1", status=STATUS_SUBMITTED, store_url=f"https://store.example/{app_id}"
            )
        return SubmissionResult(submission_id=None, status=self.status, reason=self.reason)


class StaticSuggestionClient(SuggestionClient):
    def __init__(self, text="Remote copy"):
        self.text = text
        self.requests = []
        self._lock = threading.Lock()

    def suggest(self, request):
        with self._lock:
            self.requests.append(request)
        return f"{self.text} ({request['slotKind']})"


class FailingSuggestionClient(SuggestionClient):
    def suggest(self, request):
        raise RemoteSuggestionUnavailable("service down", stage="Suggestion")


@pytest.fixture
def ledger():
    return LedgerManager("sqlite://")


@pytest.fixture
def gate(ledger):
    return EntitlementGate(ledger)


@pytest.fixture
def pro_user(gate):
    gate.subscribe("pro-user", "professional")
    return "pro-user"


@pytest.fixture
def free_user(gate):
    gate.subscribe("free-user", "free")
    return "free-user"


@pytest.fixture
def credentials():
    return ProviderCredentials(
        github_token="gh-token",
        github_owner="octo",
        netlify_token="netlify-token",
        vercel_token="vercel-token",
        google_play_service_account="gp-account",
        app_store_connect_key="asc-key",
        samsung_galaxy_token="sg-token",
        amazon_appstore_token="amz-token",
    )


@pytest.fixture
def site():
    return classify(JEWELRY)
