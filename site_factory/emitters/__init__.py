"""
Multi-target code emitter.

emit(site, target_kind) turns a validated SiteModel into an immutable
BuildArtifact. Emitters work on a deep copy of the site and never read clocks
or randomness, so the same input always yields byte-identical output.
"""

from __future__ import annotations

from typing import Any, Callable, Dict

from ..site_model import BuildArtifact, SiteModel
from ..utils import UnsupportedTargetError, get_logger, stable_hash
from .mobile import emit_flutter, emit_react_native
from .pwa import emit_pwa
from .web import emit_web

logger = get_logger(__name__)

WEB = "web"
NATIVE_MOBILE_A = "native-mobile-A"
NATIVE_MOBILE_B = "native-mobile-B"
INSTALLABLE_WEB_APP = "installable-web-app"

TARGET_KINDS = (WEB, NATIVE_MOBILE_A, NATIVE_MOBILE_B, INSTALLABLE_WEB_APP)
# Targets the publishing pipeline accepts
MOBILE_TARGETS = (NATIVE_MOBILE_A, NATIVE_MOBILE_B)


class ArtifactEmitter:
    """Registry of target kind -> emitter callable(site, fingerprint) -> file tree."""

    def __init__(self):
        self._emitters: Dict[str, Callable[[SiteModel, str], Dict[str, Any]]] = {}

    def register(self, target_kind: str, func: Callable[[SiteModel, str], Dict[str, Any]]) -> None:
        self._emitters[target_kind] = func

    def emit(self, site: SiteModel, target_kind: str) -> BuildArtifact:
        site.validate()
        func = self._emitters.get(target_kind)
        if func is None:
            raise UnsupportedTargetError(
                f"Unknown target kind '{target_kind}'. Supported: {', '.join(self._emitters)}",
                stage="Emit",
                record_id=site.id,
            )

        snapshot = site.copy()
        fingerprint = snapshot.fingerprint()
        files = func(snapshot, fingerprint)
        artifact = BuildArtifact(
            id=f"{target_kind}-{stable_hash({'site': fingerprint, 'target': target_kind})[:16]}",
            target_kind=target_kind,
            files=files,
            source_site_model_id=snapshot.id,
        )
        logger.info(
            f"Emitted {target_kind} artifact {artifact.id} for {snapshot.id} "
            f"({len(artifact.flat_files())} files)"
        )
        return artifact


def default_emitter() -> ArtifactEmitter:
    registry = ArtifactEmitter()
    registry.register(WEB, lambda site, fp: emit_web(site))
    registry.register(NATIVE_MOBILE_A, lambda site, fp: emit_react_native(site))
    registry.register(NATIVE_MOBILE_B, lambda site, fp: emit_flutter(site))
    registry.register(INSTALLABLE_WEB_APP, lambda site, fp: emit_pwa(site, cache_version=fp[:8]))
    return registry


_DEFAULT = default_emitter()


def emit(site: SiteModel, target_kind: str) -> BuildArtifact:
    """Emit `site` for `target_kind` with the built-in emitters."""
    return _DEFAULT.emit(site, target_kind)


class EmissionService:
    """Emits artifacts and stores them in the ledger."""

    def __init__(self, ledger, emitter: ArtifactEmitter = None):
        self.ledger = ledger
        self.emitter = emitter or _DEFAULT

    def emit(self, site: SiteModel, target_kind: str) -> BuildArtifact:
        artifact = self.emitter.emit(site, target_kind)
        self.ledger.save_artifact(artifact)
        return artifact
