"""
entitlements.py

Plan limits and usage counters that gate project creation, deployments and
AI-backed content generation. Usage is an append-only ledger table summed over
a rolling 30-day window; increments for one user are serialized by a per-user
lock and written in a single transaction.
"""

import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Optional

from .ledger_manager import LedgerManager
from .utils import EntitlementDeniedError, InvalidInputError, get_logger, utc_now

logger = get_logger(__name__)

UNLIMITED = -1
USAGE_WINDOW_DAYS = 30

CREATE_PROJECT = "createProject"
DEPLOY = "deploy"
AI_REQUEST = "aiRequest"
ACTIONS = (CREATE_PROJECT, DEPLOY, AI_REQUEST)

ACTIVE = "active"

PLANS = {
    "free": {
        "name": "Free Trial",
        "price": 0,
        "max_projects": 3,
        "max_deployments": 5,
        "ai_features_enabled": False,
        "max_ai_requests": 0,
    },
    "starter": {
        "name": "Starter",
        "price": 29,
        "max_projects": UNLIMITED,
        "max_deployments": 50,
        "ai_features_enabled": True,
        "max_ai_requests": UNLIMITED,
    },
    "professional": {
        "name": "Professional",
        "price": 79,
        "max_projects": UNLIMITED,
        "max_deployments": UNLIMITED,
        "ai_features_enabled": True,
        "max_ai_requests": UNLIMITED,
    },
    "enterprise": {
        "name": "Enterprise",
        "price": 199,
        "max_projects": UNLIMITED,
        "max_deployments": UNLIMITED,
        "ai_features_enabled": True,
        "max_ai_requests": UNLIMITED,
    },
}


@dataclass
class PlanLimits:
    max_projects: int
    max_deployments: int
    ai_features_enabled: bool
    max_ai_requests: int = UNLIMITED

    @classmethod
    def for_plan(cls, plan_id: str) -> "PlanLimits":
        plan = PLANS[plan_id]
        return cls(
            max_projects=plan["max_projects"],
            max_deployments=plan["max_deployments"],
            ai_features_enabled=plan["ai_features_enabled"],
            max_ai_requests=plan["max_ai_requests"],
        )


@dataclass
class Usage:
    projects_created: int = 0
    deployments_this_period: int = 0
    ai_requests_this_period: int = 0


@dataclass
class EntitlementState:
    user_id: str
    plan_id: Optional[str]
    status: Optional[str]
    limits: Optional[PlanLimits]
    usage: Usage = field(default_factory=Usage)

    @property
    def active(self) -> bool:
        return self.status == ACTIVE and self.limits is not None

    def to_dict(self) -> Dict:
        return {
            "user_id": self.user_id,
            "plan_id": self.plan_id,
            "status": self.status,
            "limits": vars(self.limits) if self.limits else None,
            "usage": vars(self.usage),
        }


def _within(used: int, limit: int) -> bool:
    return limit == UNLIMITED or used < limit


class EntitlementGate:
    def __init__(self, ledger: LedgerManager, window_days: int = USAGE_WINDOW_DAYS):
        self.ledger = ledger
        self.window = timedelta(days=window_days)
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(user_id, threading.Lock())

    def subscribe(self, user_id: str, plan_id: str, status: str = ACTIVE) -> dict:
        """Write the billing read model for a user."""
        if plan_id not in PLANS:
            raise InvalidInputError(f"Unknown plan '{plan_id}'", stage="Entitlement")
        return self.ledger.set_subscription(user_id, plan_id, status)

    def get_state(self, user_id: str) -> EntitlementState:
        subscription = self.ledger.get_subscription(user_id) if user_id else None
        if not subscription or subscription["plan_id"] not in PLANS:
            return EntitlementState(user_id=user_id, plan_id=None, status=None, limits=None)

        totals = self.ledger.sum_usage(user_id, since=utc_now() - self.window)
        return EntitlementState(
            user_id=user_id,
            plan_id=subscription["plan_id"],
            status=subscription["status"],
            limits=PlanLimits.for_plan(subscription["plan_id"]),
            usage=Usage(
                projects_created=totals.get(CREATE_PROJECT, 0),
                deployments_this_period=totals.get(DEPLOY, 0),
                ai_requests_this_period=totals.get(AI_REQUEST, 0),
            ),
        )

    def authorize(self, user_id: str, action: str) -> bool:
        if action not in ACTIONS:
            raise InvalidInputError(f"Unknown action '{action}'", stage="Entitlement")

        state = self.get_state(user_id)
        if not state.active:
            logger.info(f"Denied {action} for {user_id}: no active subscription")
            return False

        limits, usage = state.limits, state.usage
        if action == CREATE_PROJECT:
            allowed = _within(usage.projects_created, limits.max_projects)
        elif action == DEPLOY:
            allowed = _within(usage.deployments_this_period, limits.max_deployments)
        else:
            allowed = limits.ai_features_enabled and _within(usage.ai_requests_this_period, limits.max_ai_requests)

        if not allowed:
            logger.info(f"Denied {action} for {user_id} on plan '{state.plan_id}'")
        return allowed

    def require(self, user_id: str, action: str) -> None:
        """authorize() that raises EntitlementDeniedError instead of returning False."""
        if not self.authorize(user_id, action):
            raise EntitlementDeniedError(
                f"Plan does not allow '{action}' for user {user_id}",
                user_id=user_id,
                action=action,
            )

    def record_usage(self, user_id: str, action: str, quantity: int = 1) -> None:
        if action not in ACTIONS:
            raise InvalidInputError(f"Unknown action '{action}'", stage="Entitlement")
        with self._user_lock(user_id):
            self.ledger.add_usage(user_id, action, quantity)
        logger.info(f"Usage recorded - user: {user_id}, action: {action}, quantity: {quantity}")
