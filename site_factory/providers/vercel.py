from typing import Dict, Optional

import requests

from ..config import Config
from ..utils import get_logger
from .base import DeploymentConfig, HostingProvider, ProvisionResult, UploadResult

logger = get_logger(__name__)

VERCEL_API = "https://api.vercel.com"


class VercelProvider(HostingProvider):
    """static-host-B: Vercel projects with inline-file deployments (v13 API)."""

    name = "static-host-B"

    def __init__(self, token: str, team_id: Optional[str] = None, session: Optional[requests.Session] = None,
                 timeout: float = Config.PROVIDER_TIMEOUT_SECONDS):
        super().__init__(token, session=session, timeout=timeout)
        self.team_id = team_id

    def _team_qs(self) -> str:
        if self.team_id:
            return f"?teamId={self.team_id}"
        return ""

    def provision(self, name: str, config: DeploymentConfig) -> ProvisionResult:
        qs = self._team_qs()
        r = self._request(
            "POST", f"{VERCEL_API}/v9/projects{qs}", ok_statuses=(409,),
            json={"name": name, "framework": None},
        )
        if r.status_code == 409:
            # Project name already taken by this account; reuse it
            logger.info(f"Vercel project '{name}' already exists, reusing it")
            r = self._request("GET", f"{VERCEL_API}/v9/projects/{name}{qs}")
        data = r.json()
        logger.info(f"Vercel project ready: {data.get('name', name)} ({data.get('id')})")
        return ProvisionResult(id=data["id"], url=f"https://{data.get('name', name)}.vercel.app")

    def upload(self, remote_id: str, files: Dict[str, str], config: DeploymentConfig) -> UploadResult:
        payload = {
            "name": config.project_name,
            "project": remote_id,
            "files": [
                {"file": path, "data": content, "encoding": "utf-8"}
                for path, content in sorted(files.items())
            ],
            "projectSettings": {"framework": None},
            "target": config.environment,
        }
        r = self._request("POST", f"{VERCEL_API}/v13/deployments{self._team_qs()}", json=payload)
        data = r.json()
        url = data.get("url") or ""
        if config.domain:
            url = config.domain
        if url and not url.startswith("http"):
            url = f"https://{url}"
        logger.info(f"Vercel deployment created: {data.get('id')} -> {url}")
        return UploadResult(deployment_id=data["id"], url=url)
