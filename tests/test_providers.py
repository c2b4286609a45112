import io
import json
import zipfile
from unittest import mock

import pytest
import requests

from site_factory.providers import DeploymentConfig, GitHubProvider, NetlifyProvider, VercelProvider
from site_factory.providers.netlify import build_zip
from site_factory.utils import ProviderRequestFailedError

FILES = {"index.html": "<h1>Hi</h1>", "styles.css": "body {}"}


def _response(status=200, payload=None, text=""):
    resp = mock.Mock()
    resp.status_code = status
    resp.json.return_value = payload or {}
    resp.text = text or json.dumps(payload or {})
    return resp


def _session(*responses):
    session = mock.Mock(spec=requests.Session)
    session.request.side_effect = list(responses)
    return session


def test_project_names_are_sanitized():
    assert DeploymentConfig("My Jewelry Store!!").project_name == "my-jewelry-store"


def test_netlify_provision_and_zip_upload():
    session = _session(
        _response(201, {"id": "site-1", "name": "jewelry", "ssl_url": "https://jewelry.netlify.app"}),
        _response(200, {"id": "deploy-1", "ssl_url": "https://jewelry.netlify.app"}),
    )
    provider = NetlifyProvider("tok", session=session, timeout=5)
    config = DeploymentConfig("jewelry")

    site = provider.provision("jewelry", config)
    result = provider.upload(site.id, FILES, config)

    assert site.id == "site-1"
    assert result.deployment_id == "deploy-1"
    assert result.url == "https://jewelry.netlify.app"
    method, url = session.request.call_args_list[1][0]
    kwargs = session.request.call_args_list[1][1]
    assert (method, url) == ("POST", "https://api.netlify.com/api/v1/sites/site-1/deploys")
    assert kwargs["headers"]["Content-Type"] == "application/zip"
    assert kwargs["timeout"] == 5
    with zipfile.ZipFile(io.BytesIO(kwargs["data"])) as zf:
        assert sorted(zf.namelist()) == sorted(FILES)


def test_zip_is_reproducible():
    assert build_zip(FILES) == build_zip(dict(reversed(list(FILES.items()))))


def test_netlify_reuses_a_site_whose_name_is_taken():
    session = _session(
        _response(422, {"errors": {"subdomain": ["must be unique"]}}),
        _response(200, {"id": "site-1", "name": "jewelry-store", "ssl_url": "https://jewelry-store.netlify.app"}),
    )
    provider = NetlifyProvider("tok", session=session)

    site = provider.provision("jewelry-store", DeploymentConfig("jewelry-store"))

    assert site.id == "site-1"
    assert site.url == "https://jewelry-store.netlify.app"
    method, url = session.request.call_args_list[1][0]
    assert (method, url) == ("GET", "https://api.netlify.com/api/v1/sites/jewelry-store.netlify.app")


def test_vercel_reuses_existing_project_and_sends_inline_files():
    session = _session(
        _response(409, {"error": {"code": "conflict"}}),
        _response(200, {"id": "prj_1", "name": "jewelry"}),
        _response(200, {"id": "dpl_1", "url": "jewelry-abc.vercel.app"}),
    )
    provider = VercelProvider("tok", team_id="team_9", session=session)
    config = DeploymentConfig("jewelry")

    project = provider.provision("jewelry", config)
    result = provider.upload(project.id, FILES, config)

    assert project.id == "prj_1"
    assert result.url == "https://jewelry-abc.vercel.app"
    _, url = session.request.call_args_list[2][0]
    payload = session.request.call_args_list[2][1]["json"]
    assert url == "https://api.vercel.com/v13/deployments?teamId=team_9"
    assert {f["file"] for f in payload["files"]} == set(FILES)
    assert payload["project"] == "prj_1"


def test_github_commits_each_file_and_enables_pages():
    session = _session(
        _response(201, {"full_name": "octo/jewelry", "html_url": "https://github.com/octo/jewelry"}),
        _response(404), _response(201, {"commit": {"sha": "c1"}}),
        _response(200, {"sha": "old"}), _response(200, {"commit": {"sha": "c2"}}),
        _response(201, {}),
    )
    provider = GitHubProvider("tok", session=session)
    config = DeploymentConfig("jewelry")

    repo = provider.provision("jewelry", config)
    result = provider.upload(repo.id, FILES, config)

    assert repo.id == "octo/jewelry"
    assert result.deployment_id == "c2"
    assert result.url == "https://octo.github.io/jewelry/"
    update = session.request.call_args_list[4][1]["json"]
    assert update["sha"] == "old"
    assert session.request.call_args_list[0][1]["headers"]["Authorization"] == "token tok"


@pytest.mark.parametrize("status", [401, 403, 429, 500, 503])
def test_http_errors_map_to_provider_request_failed(status):
    provider = NetlifyProvider("tok", session=_session(_response(status, text="nope")))
    with pytest.raises(ProviderRequestFailedError) as exc:
        provider.provision("jewelry", DeploymentConfig("jewelry"))
    assert exc.value.retryable is True
    assert str(status) in exc.value.message


def test_connection_errors_map_to_provider_request_failed():
    session = mock.Mock(spec=requests.Session)
    session.request.side_effect = requests.ConnectionError("dns failure")
    provider = VercelProvider("tok", session=session)
    with pytest.raises(ProviderRequestFailedError) as exc:
        provider.provision("jewelry", DeploymentConfig("jewelry"))
    assert isinstance(exc.value.original_exception, requests.ConnectionError)
