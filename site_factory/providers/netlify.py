import io
import zipfile
from typing import Dict

from ..utils import get_logger
from .base import DeploymentConfig, HostingProvider, ProvisionResult, UploadResult

logger = get_logger(__name__)

NETLIFY_API = "https://api.netlify.com/api/v1"


def build_zip(files: Dict[str, str]) -> bytes:
    """Zip a flat file map in memory. Entries are sorted with fixed timestamps so output is reproducible."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(files):
            info = zipfile.ZipInfo(path, date_time=(1980, 1, 1, 0, 0, 0))
            info.compress_type = zipfile.ZIP_DEFLATED
            zf.writestr(info, files[path].encode("utf-8"))
    return buf.getvalue()


class NetlifyProvider(HostingProvider):
    """static-host-A: Netlify sites with zip-file deploys."""

    name = "static-host-A"

    def provision(self, name: str, config: DeploymentConfig) -> ProvisionResult:
        body = {"name": name}
        if config.domain:
            body["custom_domain"] = config.domain
        r = self._request("POST", f"{NETLIFY_API}/sites", ok_statuses=(422,), json=body)
        if r.status_code == 422:
            # Subdomain already taken by this account; reuse the site
            logger.info(f"Netlify site '{name}' already exists, reusing it")
            r = self._request("GET", f"{NETLIFY_API}/sites/{name}.netlify.app")
        data = r.json()
        logger.info(f"Netlify site ready: {data.get('name')} ({data.get('id')})")
        return ProvisionResult(id=data["id"], url=data.get("ssl_url") or data.get("url"))

    def upload(self, remote_id: str, files: Dict[str, str], config: DeploymentConfig) -> UploadResult:
        headers = {"Authorization": f"Bearer {self.token}", "Content-Type": "application/zip"}
        r = self._request(
            "POST", f"{NETLIFY_API}/sites/{remote_id}/deploys", headers=headers, data=build_zip(files)
        )
        data = r.json()
        url = data.get("ssl_url") or data.get("url") or data.get("deploy_ssl_url") or ""
        logger.info(f"Netlify deploy created: {data.get('id')} -> {url}")
        return UploadResult(deployment_id=data["id"], url=url)
