"""Hosting providers the deployment orchestrator can push artifacts to."""

from typing import Callable, Dict

from ..config import ProviderCredentials
from .base import DeploymentConfig, HostingProvider, ProvisionResult, UploadResult, sanitize_project_name
from .github import GitHubProvider
from .netlify import NetlifyProvider
from .vercel import VercelProvider

GIT_HOST = "git-host"
STATIC_HOST_A = "static-host-A"
STATIC_HOST_B = "static-host-B"

# name -> factory(credentials) building a provider with its injected token
ProviderFactory = Callable[[ProviderCredentials], HostingProvider]

DEFAULT_PROVIDERS: Dict[str, ProviderFactory] = {
    GIT_HOST: lambda creds: GitHubProvider(creds.github_token, owner=creds.github_owner),
    STATIC_HOST_A: lambda creds: NetlifyProvider(creds.netlify_token),
    STATIC_HOST_B: lambda creds: VercelProvider(creds.vercel_token, team_id=creds.vercel_team_id),
}

__all__ = [
    "DEFAULT_PROVIDERS",
    "DeploymentConfig",
    "GIT_HOST",
    "GitHubProvider",
    "HostingProvider",
    "NetlifyProvider",
    "ProviderFactory",
    "ProvisionResult",
    "STATIC_HOST_A",
    "STATIC_HOST_B",
    "UploadResult",
    "VercelProvider",
    "sanitize_project_name",
]
