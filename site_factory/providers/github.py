import base64
from typing import Dict, Optional

import requests

from ..config import Config
from ..utils import get_logger
from .base import DeploymentConfig, HostingProvider, ProvisionResult, UploadResult

logger = get_logger(__name__)

GITHUB_API = "https://api.github.com"
DEFAULT_BRANCH = "main"


class GitHubProvider(HostingProvider):
    """git-host: one repository per artifact, files committed through the contents API, served by GitHub Pages."""

    name = "git-host"

    def __init__(self, token: str, owner: Optional[str] = None, session: Optional[requests.Session] = None,
                 timeout: float = Config.PROVIDER_TIMEOUT_SECONDS):
        super().__init__(token, session=session, timeout=timeout)
        self.owner = owner

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github+json",
            "Content-Type": "application/json",
        }

    def _resolve_owner(self) -> str:
        if not self.owner:
            self.owner = self._request("GET", f"{GITHUB_API}/user").json()["login"]
        return self.owner

    def provision(self, name: str, config: DeploymentConfig) -> ProvisionResult:
        r = self._request(
            "POST", f"{GITHUB_API}/user/repos", ok_statuses=(422,),
            json={"name": name, "description": f"Generated site: {name}", "private": False, "auto_init": True},
        )
        if r.status_code == 422:
            # Repository already exists under the account
            owner = self._resolve_owner()
            logger.info(f"GitHub repo {owner}/{name} already exists, reusing it")
            r = self._request("GET", f"{GITHUB_API}/repos/{owner}/{name}")
        data = r.json()
        full_name = data.get("full_name") or f"{data['owner']['login']}/{data['name']}"
        self.owner = full_name.split("/")[0]
        logger.info(f"GitHub repo ready: {full_name}")
        return ProvisionResult(id=full_name, url=data.get("html_url"))

    def _existing_sha(self, repo: str, path: str) -> Optional[str]:
        r = self._request("GET", f"{GITHUB_API}/repos/{repo}/contents/{path}", ok_statuses=(404,))
        if r.status_code == 404:
            return None
        return r.json().get("sha")

    def _enable_pages(self, repo: str) -> None:
        # 409: Pages already enabled
        self._request(
            "POST", f"{GITHUB_API}/repos/{repo}/pages", ok_statuses=(409,),
            json={"source": {"branch": DEFAULT_BRANCH, "path": "/"}},
        )

    def upload(self, remote_id: str, files: Dict[str, str], config: DeploymentConfig) -> UploadResult:
        commit_sha = ""
        for path in sorted(files):
            body = {
                "message": f"Deploy {path}",
                "content": base64.b64encode(files[path].encode("utf-8")).decode("ascii"),
                "branch": DEFAULT_BRANCH,
            }
            sha = self._existing_sha(remote_id, path)
            if sha:
                body["sha"] = sha
            r = self._request("PUT", f"{GITHUB_API}/repos/{remote_id}/contents/{path}", json=body)
            commit_sha = (r.json().get("commit") or {}).get("sha", commit_sha)
        logger.info(f"Committed {len(files)} files to {remote_id}")

        self._enable_pages(remote_id)
        owner, repo = remote_id.split("/", 1)
        url = f"https://{config.domain}" if config.domain else f"https://{owner.lower()}.github.io/{repo}/"
        return UploadResult(deployment_id=commit_sha or remote_id, url=url)
