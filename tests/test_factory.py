import json

import pytest

from main import main
from site_factory.emitters import TARGET_KINDS
from site_factory.factory import SiteFactory
from site_factory.utils import EntitlementDeniedError, InvalidInputError

from conftest import JEWELRY, FakeProvider, StaticSuggestionClient


@pytest.fixture
def factory(ledger, credentials):
    return SiteFactory(
        ledger=ledger,
        credentials=credentials,
        suggestion_client=StaticSuggestionClient(),
        providers={"static-host-A": lambda creds: FakeProvider()},
    )


def test_description_to_live_deployment(factory):
    factory.gate.subscribe("shop-owner", "professional")

    site = factory.create_project("shop-owner", JEWELRY)
    assert site.archetype == "commerce"

    factory.generate_content(site, user_id="shop-owner")
    assert site.block_text("headline") and site.block_text("cta")

    artifact = factory.emit(site, "web")
    files = artifact.flat_files()
    assert {"index.html", "styles.css", "script.js", "package.json"} <= set(files)

    record = factory.deploy("shop-owner", artifact, "static-host-A", {"projectName": "jewelry-store"})
    assert record["state"] == "deployed"
    assert record["public_url"]

    usage = factory.gate.get_state("shop-owner").usage
    assert (usage.projects_created, usage.deployments_this_period, usage.ai_requests_this_period) == (1, 1, 1)


def test_emitting_every_target_of_one_site_charges_one_project(factory):
    factory.gate.subscribe("shop-owner", "free")

    for target in TARGET_KINDS:
        site = factory.create_project("shop-owner", JEWELRY)
        factory.generate_content(site, user_id="shop-owner", use_remote=False)
        factory.emit(site, target)

    assert factory.gate.get_state("shop-owner").usage.projects_created == 1
    assert factory.ledger.get_project("shop-owner", site.id)["archetype"] == "commerce"


def test_a_second_description_is_a_new_project(factory):
    factory.gate.subscribe("shop-owner", "free")
    factory.create_project("shop-owner", JEWELRY)
    factory.create_project("shop-owner", "A blog about travel in Japan")
    assert factory.gate.get_state("shop-owner").usage.projects_created == 2


def test_empty_description_creates_nothing(factory):
    factory.gate.subscribe("shop-owner", "free")
    with pytest.raises(InvalidInputError):
        factory.create_project("shop-owner", "")
    assert factory.gate.get_state("shop-owner").usage.projects_created == 0


def test_create_project_requires_an_active_plan(factory):
    with pytest.raises(EntitlementDeniedError):
        factory.create_project("stranger", JEWELRY)


def test_cli_subscribe_prints_the_subscription(capsys):
    assert main(["--user", "cli-user", "subscribe", "starter"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["plan_id"] == "starter"
    assert out["status"] == "active"


def test_cli_returns_non_zero_on_pipeline_errors(capsys):
    assert main(["--user", "cli-user", "classify", "A blog about travel"]) == 1
