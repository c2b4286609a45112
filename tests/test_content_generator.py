import time

import pytest

from site_factory.archetype_data import CONTENT_SLOTS, DESIGN_TABLE
from site_factory.content_generator import ContentGenerator, derive_subject
from site_factory.suggestion_client import SuggestionClient
from site_factory.utils import EntitlementDeniedError

from conftest import FailingSuggestionClient, StaticSuggestionClient


class SlowSuggestionClient(SuggestionClient):
    def suggest(self, request):
        time.sleep(0.5)
        return "too late"


def _button(site):
    return next(el for el in site.elements if el.type == "button")


def test_fallback_fills_every_slot_without_a_client(site):
    report = ContentGenerator().generate(site)

    assert set(site.content_blocks) == set(CONTENT_SLOTS)
    assert all(block.text.strip() for block in site.content_blocks.values())
    assert set(report.sources.values()) == {"fallback"}
    assert site.block_text("headline") == "Shop handmade jewelry online"
    assert site.block_text("cta") == "Shop Now"
    assert "commerce" in site.block_text("description")


def test_design_tokens_come_from_the_archetype_row(site):
    ContentGenerator().generate(site)
    assert site.design_tokens.primary_color == DESIGN_TABLE["commerce"]["primary_color"]


def test_archetype_without_design_row_uses_default(site):
    site.archetype = "custom"
    ContentGenerator().generate(site)
    assert site.design_tokens.primary_color == DESIGN_TABLE["default"]["primary_color"]


def test_button_text_follows_cta(site):
    ContentGenerator().generate(site)
    assert _button(site).content == "Shop Now"


def test_remote_text_is_used_and_counted(site, gate, pro_user):
    client = StaticSuggestionClient()
    report = ContentGenerator(suggestion_client=client, gate=gate).generate(site, user_id=pro_user)

    assert report.remote_slots == len(CONTENT_SLOTS)
    assert site.block_text("cta") == "Remote copy (cta)"
    assert {r["slotKind"] for r in client.requests} == set(CONTENT_SLOTS)
    assert gate.get_state(pro_user).usage.ai_requests_this_period == 1


def test_remote_failure_falls_back_silently(site, gate, pro_user):
    report = ContentGenerator(suggestion_client=FailingSuggestionClient(), gate=gate).generate(
        site, user_id=pro_user
    )
    assert report.remote_slots == 0
    assert site.block_text("cta") == "Shop Now"
    assert gate.get_state(pro_user).usage.ai_requests_this_period == 0


def test_remote_timeout_falls_back(site):
    generator = ContentGenerator(suggestion_client=SlowSuggestionClient(), timeout=0.05)
    started = time.monotonic()
    report = generator.generate(site)

    assert set(report.sources.values()) == {"fallback"}
    # Each slot waits at most the timeout, not the client's full delay
    assert time.monotonic() - started < 0.5 * len(CONTENT_SLOTS)


def test_ai_denied_raises_before_touching_the_site(site, gate, free_user):
    before = site.to_dict()
    generator = ContentGenerator(suggestion_client=StaticSuggestionClient(), gate=gate)

    with pytest.raises(EntitlementDeniedError) as exc:
        generator.generate(site, user_id=free_user)

    assert exc.value.action == "aiRequest"
    assert site.to_dict() == before


def test_offline_generation_skips_the_gate(site, gate, free_user):
    generator = ContentGenerator(suggestion_client=StaticSuggestionClient(), gate=gate)
    report = generator.generate(site, user_id=free_user, use_remote=False)
    assert report.remote_slots == 0


def test_regenerating_overwrites_instead_of_appending(site):
    generator = ContentGenerator()
    generator.generate(site)
    first = site.to_dict()
    generator.generate(site)
    assert site.to_dict() == first


@pytest.mark.parametrize(
    "description, subject",
    [
        ("Create a modern e-commerce store for handmade jewelry", "handmade jewelry"),
        ("A blog about travel", "travel"),
    ],
)
def test_derive_subject(description, subject):
    assert derive_subject(description, "commerce") == subject
