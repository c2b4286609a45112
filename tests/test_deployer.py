import threading

import pytest

from site_factory.config import ProviderCredentials
from site_factory.content_generator import ContentGenerator
from site_factory.deployer import DeploymentOrchestrator
from site_factory.emitters import WEB, emit
from site_factory.providers import DeploymentConfig
from site_factory.utils import EntitlementDeniedError, InvalidInputError

from conftest import FakeProvider

PROVIDER = "static-host-A"


@pytest.fixture
def artifact(site):
    ContentGenerator().generate(site)
    return emit(site, WEB)


@pytest.fixture
def provider():
    return FakeProvider()


def _orchestrator(ledger, gate, credentials, provider, **kwargs):
    return DeploymentOrchestrator(ledger, credentials, gate, providers={PROVIDER: lambda creds: provider}, **kwargs)


def test_successful_deploy_walks_every_state(ledger, gate, credentials, pro_user, artifact, provider):
    orchestrator = _orchestrator(ledger, gate, credentials, provider)
    record = orchestrator.deploy(pro_user, artifact, PROVIDER, {"projectName": "jewelry-store"})

    assert record["state"] == "deployed"
    assert record["state_history"] == ["idle", "building", "deploying", "deployed"]
    assert record["public_url"]
    assert record["provider_deployment_id"]
    assert record["project_name"] == "jewelry-store"
    assert provider.calls[0] == ("provision", "jewelry-store")
    assert gate.get_state(pro_user).usage.deployments_this_period == 1


def test_missing_credentials_fail_without_deploying(ledger, gate, pro_user, artifact, provider):
    orchestrator = _orchestrator(ledger, gate, ProviderCredentials(), provider)
    record = orchestrator.deploy(pro_user, artifact, PROVIDER, DeploymentConfig("jewelry-store"))

    assert record["state"] == "failed"
    assert "deploying" not in record["state_history"]
    assert record["last_error"].startswith("ProviderNotConfigured:")
    assert record["retryable"] is False
    assert provider.calls == []
    assert gate.get_state(pro_user).usage.deployments_this_period == 0


@pytest.mark.parametrize("step, history", [
    ("provision", ["idle", "building", "failed"]),
    ("upload", ["idle", "building", "deploying", "failed"]),
])
def test_provider_failure_is_captured_on_the_record(ledger, gate, credentials, pro_user, artifact, step, history):
    orchestrator = _orchestrator(ledger, gate, credentials, FakeProvider(fail_on=step))
    record = orchestrator.deploy(pro_user, artifact, PROVIDER, {"project_name": "jewelry-store"})

    assert record["state"] == "failed"
    assert record["state_history"] == history
    assert record["last_error"].startswith("ProviderRequestFailed:")
    assert record["retryable"] is True


def test_failed_record_is_terminal_and_redeploy_creates_a_new_one(ledger, gate, credentials, pro_user, artifact):
    failing = _orchestrator(ledger, gate, credentials, FakeProvider(fail_on="upload"))
    failed = failing.deploy(pro_user, artifact, PROVIDER, {"project_name": "jewelry-store"})

    working = _orchestrator(ledger, gate, credentials, FakeProvider())
    retried = working.deploy(pro_user, artifact, PROVIDER, {"project_name": "jewelry-store"})

    assert retried["id"] != failed["id"]
    assert ledger.get_deployment(failed["id"])["state"] == "failed"
    assert [r["state"] for r in working.list_deployments(artifact.id)] == ["failed", "deployed"]


def test_existing_provider_site_is_reused(ledger, gate, credentials, pro_user, artifact, provider):
    orchestrator = _orchestrator(ledger, gate, credentials, provider)
    orchestrator.deploy(pro_user, artifact, PROVIDER, {"project_name": "jewelry-store"})
    orchestrator.deploy(pro_user, artifact, PROVIDER, {"project_name": "jewelry-store"})

    assert [c[0] for c in provider.calls] == ["provision", "upload", "upload"]


def test_entitlement_denied_creates_no_record(ledger, gate, credentials, free_user, artifact, provider):
    gate.record_usage(free_user, "deploy", quantity=5)
    orchestrator = _orchestrator(ledger, gate, credentials, provider)

    with pytest.raises(EntitlementDeniedError):
        orchestrator.deploy(free_user, artifact, PROVIDER, {"project_name": "jewelry-store"})
    assert orchestrator.list_deployments(artifact.id) == []


def test_unknown_provider_and_artifact_are_invalid(ledger, gate, credentials, pro_user, artifact, provider):
    orchestrator = _orchestrator(ledger, gate, credentials, provider)
    with pytest.raises(InvalidInputError):
        orchestrator.deploy(pro_user, artifact, "ftp-host", {"project_name": "x"})
    with pytest.raises(InvalidInputError):
        orchestrator.deploy(pro_user, "web-missing", PROVIDER, {"project_name": "x"})


def test_deploy_by_stored_artifact_id(ledger, gate, credentials, pro_user, artifact, provider):
    ledger.save_artifact(artifact)
    record = _orchestrator(ledger, gate, credentials, provider).deploy(pro_user, artifact.id, PROVIDER)
    assert record["state"] == "deployed"
    assert set(provider.calls[-1][2]) == set(artifact.flat_files())


def test_request_deadline_fails_a_hanging_upload(ledger, gate, credentials, pro_user, artifact):
    release = threading.Event()
    orchestrator = _orchestrator(ledger, gate, credentials, FakeProvider(block=release), deadline=0.2)
    try:
        record = orchestrator.deploy(pro_user, artifact, PROVIDER, {"project_name": "jewelry-store"})
    finally:
        release.set()

    assert record["state"] == "failed"
    assert "deadline" in record["last_error"]
    assert record["retryable"] is True


def test_sweep_fails_records_stuck_in_flight(ledger, gate, credentials, artifact, provider):
    stuck = ledger.create_deployment(artifact.id, "someone", PROVIDER)
    ledger.transition_deployment(stuck["id"], "idle", "building")
    ledger.transition_deployment(stuck["id"], "building", "deploying")

    orchestrator = _orchestrator(ledger, gate, credentials, provider)
    swept = orchestrator.sweep_stale(max_age_seconds=-1)

    assert [r["id"] for r in swept] == [stuck["id"]]
    assert orchestrator.get_deployment(stuck["id"])["state"] == "failed"
    assert orchestrator.sweep_stale(max_age_seconds=-1) == []
