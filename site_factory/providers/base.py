from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from ..config import Config
from ..utils import ProviderRequestFailedError, get_logger, slugify

logger = get_logger(__name__)


def sanitize_project_name(name: str) -> str:
    """
    Hosting project names: lower case, only [a-z0-9._-], no repeated dashes,
    at most 100 characters.
    """
    return slugify(name, fallback="site-factory-project", max_length=100)


@dataclass
class DeploymentConfig:
    project_name: str
    domain: Optional[str] = None
    environment: str = "production"

    def __post_init__(self):
        self.project_name = sanitize_project_name(self.project_name)

    def to_dict(self) -> Dict[str, Any]:
        return {"project_name": self.project_name, "domain": self.domain, "environment": self.environment}


@dataclass
class ProvisionResult:
    id: str
    url: Optional[str] = None


@dataclass
class UploadResult:
    deployment_id: str
    url: str


class HostingProvider:
    """
    One external hosting/version-control service.

    provision() creates the remote project once per artifact; upload() pushes a
    flattened file map ({posix_path: text}) and returns the public URL.
    All HTTP failures surface as ProviderRequestFailedError.
    """

    name = ""

    def __init__(self, token: str, session: Optional[requests.Session] = None,
                 timeout: float = Config.PROVIDER_TIMEOUT_SECONDS):
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}", "Content-Type": "application/json"}

    def _request(self, method: str, url: str, ok_statuses=(), headers=None, **kwargs) -> requests.Response:
        """
        Send one request. Connection errors, timeouts and any HTTP status >= 400
        not listed in ok_statuses raise ProviderRequestFailedError.
        """
        try:
            resp = self.session.request(
                method, url, headers=headers or self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise ProviderRequestFailedError(
                f"{self.name} {method} {url} failed: {e}", stage="Deploy", original_exception=e
            )

        if resp.status_code >= 400 and resp.status_code not in ok_statuses:
            if resp.status_code == 429:
                detail = "rate limited (429)"
            elif resp.status_code in (401, 403):
                detail = f"credentials rejected ({resp.status_code})"
            else:
                detail = f"HTTP {resp.status_code}"
            raise ProviderRequestFailedError(
                f"{self.name} {method} {url}: {detail}: {resp.text[:300]}", stage="Deploy"
            )
        return resp

    def provision(self, name: str, config: DeploymentConfig) -> ProvisionResult:
        raise NotImplementedError

    def upload(self, remote_id: str, files: Dict[str, str], config: DeploymentConfig) -> UploadResult:
        raise NotImplementedError
