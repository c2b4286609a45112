from concurrent.futures import ThreadPoolExecutor

import pytest

from site_factory.entitlements import AI_REQUEST, CREATE_PROJECT, DEPLOY, PLANS, UNLIMITED, EntitlementGate
from site_factory.utils import EntitlementDeniedError, InvalidInputError


def test_no_subscription_denies_everything(gate):
    for action in (CREATE_PROJECT, DEPLOY, AI_REQUEST):
        assert gate.authorize("nobody", action) is False


def test_inactive_subscription_denies(gate):
    gate.subscribe("lapsed", "professional", status="canceled")
    assert gate.authorize("lapsed", DEPLOY) is False


def test_create_project_denied_at_finite_limit(gate, free_user):
    limit = PLANS["free"]["max_projects"]
    for _ in range(limit):
        assert gate.authorize(free_user, CREATE_PROJECT)
        gate.record_usage(free_user, CREATE_PROJECT)

    assert gate.get_state(free_user).usage.projects_created == limit
    assert gate.authorize(free_user, CREATE_PROJECT) is False


def test_unlimited_plan_always_allows_projects(gate, pro_user):
    assert PLANS["professional"]["max_projects"] == UNLIMITED
    gate.record_usage(pro_user, CREATE_PROJECT, quantity=500)
    assert gate.authorize(pro_user, CREATE_PROJECT) is True


def test_deploy_limit_on_starter(gate):
    gate.subscribe("starter-user", "starter")
    gate.record_usage("starter-user", DEPLOY, quantity=PLANS["starter"]["max_deployments"] - 1)
    assert gate.authorize("starter-user", DEPLOY) is True
    gate.record_usage("starter-user", DEPLOY)
    assert gate.authorize("starter-user", DEPLOY) is False


def test_ai_requests_need_ai_features(gate, free_user, pro_user):
    assert gate.authorize(free_user, AI_REQUEST) is False
    assert gate.authorize(pro_user, AI_REQUEST) is True


def test_require_raises_entitlement_denied(gate, free_user):
    with pytest.raises(EntitlementDeniedError) as exc:
        gate.require(free_user, AI_REQUEST)
    assert exc.value.user_id == free_user
    assert exc.value.action == AI_REQUEST


def test_unknown_action_and_plan_are_invalid(gate, pro_user):
    with pytest.raises(InvalidInputError):
        gate.authorize(pro_user, "export")
    with pytest.raises(InvalidInputError):
        gate.subscribe(pro_user, "platinum")


def test_usage_outside_the_window_is_not_counted(ledger, pro_user):
    gate = EntitlementGate(ledger, window_days=0)
    gate.record_usage(pro_user, DEPLOY)
    assert gate.get_state(pro_user).usage.deployments_this_period == 0


def test_concurrent_record_usage_loses_no_increments(gate, pro_user):
    calls = 50
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: gate.record_usage(pro_user, DEPLOY), range(calls)))
    assert gate.get_state(pro_user).usage.deployments_this_period == calls
