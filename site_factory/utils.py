import hashlib
import json
import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable

from .config import Config

# Create the log directory if it does not exist yet
os.makedirs(os.path.dirname(Config.LOG_FILE), exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.FileHandler(Config.LOG_FILE, encoding="utf-8"), logging.StreamHandler()],
)


def get_logger(name):
    """Return the logger for a module name."""
    return logging.getLogger(name)


logger = get_logger(__name__)


class ErrorKind:
    INVALID_INPUT = "InvalidInput"
    UNSUPPORTED_TARGET = "UnsupportedTarget"
    PROVIDER_NOT_CONFIGURED = "ProviderNotConfigured"
    PROVIDER_REQUEST_FAILED = "ProviderRequestFailed"
    ENTITLEMENT_DENIED = "EntitlementDenied"
    REMOTE_SUGGESTION_UNAVAILABLE = "RemoteSuggestionUnavailable"
    STORE_FAILURE = "StoreFailure"


class ProductionError(Exception):
    """Base error for every stage of the generation/deployment pipeline."""

    kind = ErrorKind.STORE_FAILURE
    retryable = False

    def __init__(
        self, message, stage="Unknown", record_id=None, original_exception=None, kind=None
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.record_id = record_id
        self.original_exception = original_exception
        if kind:
            self.kind = kind
        logger.error(
            f"[{self.kind}] Stage: {self.stage}, Record ID: {self.record_id}, Message: {self.message}, Original: {self.original_exception}"
        )

    def describe(self) -> str:
        return f"{self.kind}: {self.message}"


class InvalidInputError(ProductionError):
    kind = ErrorKind.INVALID_INPUT


class UnsupportedTargetError(ProductionError):
    kind = ErrorKind.UNSUPPORTED_TARGET


class ProviderNotConfiguredError(ProductionError):
    kind = ErrorKind.PROVIDER_NOT_CONFIGURED
    retryable = False


class ProviderRequestFailedError(ProductionError):
    kind = ErrorKind.PROVIDER_REQUEST_FAILED
    retryable = True


class EntitlementDeniedError(ProductionError):
    kind = ErrorKind.ENTITLEMENT_DENIED

    def __init__(self, message, user_id=None, action=None, **kwargs):
        super().__init__(message, stage=kwargs.pop("stage", "Entitlement"), **kwargs)
        self.user_id = user_id
        self.action = action


class RemoteSuggestionUnavailable(ProductionError):
    kind = ErrorKind.REMOTE_SUGGESTION_UNAVAILABLE


def handle_errors(stage):
    """
    Decorator that logs unexpected exceptions and wraps them in ProductionError.
    Typed pipeline errors pass through untouched.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ProductionError:
                raise
            except Exception as e:
                raise ProductionError(
                    f"'{func.__name__}' failed: {e}",
                    stage=stage,
                    record_id=kwargs.get("record_id"),
                    original_exception=e,
                )

        return wrapper

    return decorator


# Shared pool for bounded external calls. Sized for a handful of concurrent requests.
_TIMEOUT_POOL = ThreadPoolExecutor(max_workers=16, thread_name_prefix="site-factory-io")


def run_with_timeout(func: Callable[..., Any], timeout: float, *args, **kwargs) -> Any:
    """
    Run func on the shared pool and wait at most `timeout` seconds.
    Raises concurrent.futures.TimeoutError if the bound elapses; the worker keeps
    running in the background but the caller is released.
    """
    future = _TIMEOUT_POOL.submit(func, *args, **kwargs)
    return future.result(timeout=timeout)


def slugify(text: str, fallback: str = "site", max_length: int = 100) -> str:
    """Lower-case name made of [a-z0-9-], safe for hosting project names."""
    name = (text or "").strip().lower()
    name = re.sub(r"[^a-z0-9._-]", "-", name)
    name = re.sub(r"-+", "-", name)
    name = name.strip("-.")
    return name[:max_length].rstrip("-") or fallback


def stable_hash(obj: Any) -> str:
    """SHA256 of the canonical JSON form of obj."""
    payload = json.dumps(obj, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def utc_now() -> datetime:
    """Naive UTC timestamp, as stored in the ledger."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
