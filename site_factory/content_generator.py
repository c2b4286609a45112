# -*- coding: utf-8 -*-
"""
content_generator.py

Fills a SiteModel's content blocks and design tokens. Each content slot first
asks the remote suggestion client (bounded by a timeout) and falls back to a
deterministic per-archetype template, so generation never stalls on an outage.
"""

from __future__ import annotations

import re
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Dict, Optional

from .archetype_data import CONTENT_SLOTS, get_content_templates, get_design_row
from .config import Config
from .site_model import ContentBlock, DesignTokens, SiteModel
from .suggestion_client import SuggestionClient
from .utils import get_logger, run_with_timeout

logger = get_logger(__name__)

# Words dropped when deriving a short subject from the description
_STOPWORDS = {
    "a", "an", "the", "for", "of", "and", "with", "to", "my", "our", "i", "we",
    "need", "want", "create", "build", "make", "website", "site", "app", "modern",
    "simple", "new", "please", "that", "is",
}


def derive_subject(description: str, archetype: str) -> str:
    """A short subject for template copy, e.g. 'handmade jewelry' from the full description."""
    words = re.findall(r"[A-Za-z0-9][A-Za-z0-9'&-]*", description or "")
    tail = []
    # Prefer whatever follows the last "for"/"about" ("... store for handmade jewelry")
    lowered = [w.lower() for w in words]
    for marker in ("for", "about"):
        if marker in lowered:
            idx = len(lowered) - 1 - lowered[::-1].index(marker)
            tail = words[idx + 1:]
            break
    candidates = [w for w in (tail or words) if w.lower() not in _STOPWORDS]
    subject = " ".join(candidates[:4]).strip()
    return subject or f"your {archetype} project"


def fallback_text(archetype: str, slot: str, description: str) -> str:
    template = get_content_templates(archetype)[slot]
    return template.format(archetype=archetype, subject=derive_subject(description, archetype))


@dataclass
class GenerationReport:
    site_id: str
    sources: Dict[str, str] = field(default_factory=dict)  # slot -> "remote" | "fallback"

    @property
    def remote_slots(self) -> int:
        return sum(1 for s in self.sources.values() if s == "remote")

    def to_dict(self) -> dict:
        return {"site_id": self.site_id, "sources": dict(self.sources)}


class ContentGenerator:
    def __init__(
        self,
        suggestion_client: Optional[SuggestionClient] = None,
        gate=None,
        timeout: float = Config.SUGGESTION_TIMEOUT_SECONDS,
    ):
        self.suggestion_client = suggestion_client
        self.gate = gate
        self.timeout = timeout

    def _suggest(self, site: SiteModel, slot: str) -> Optional[str]:
        request = {"description": site.description, "archetype": site.archetype, "slotKind": slot}
        try:
            text = run_with_timeout(self.suggestion_client.suggest, self.timeout, request)
        except FuturesTimeoutError:
            logger.warning(f"Suggestion for '{slot}' timed out after {self.timeout}s; using fallback.")
            return None
        except Exception as e:
            logger.warning(f"Suggestion for '{slot}' unavailable ({e}); using fallback.")
            return None
        if not isinstance(text, str) or not text.strip():
            logger.warning(f"Suggestion for '{slot}' was empty; using fallback.")
            return None
        return text.strip()

    def generate(self, site: SiteModel, user_id: Optional[str] = None, use_remote: bool = True) -> GenerationReport:
        """
        Regenerate site.content_blocks and site.design_tokens in place.
        Re-running overwrites previous output. Raises EntitlementDeniedError
        (before touching the site) when remote suggestions are requested but
        the user's plan does not allow AI requests.
        """
        site.validate()

        remote = use_remote and self.suggestion_client is not None
        if remote and self.gate is not None:
            self.gate.require(user_id, "aiRequest")

        report = GenerationReport(site_id=site.id)
        blocks: Dict[str, ContentBlock] = {}
        for slot in CONTENT_SLOTS:
            text = self._suggest(site, slot) if remote else None
            if text is None:
                text = fallback_text(site.archetype, slot, site.description)
                report.sources[slot] = "fallback"
            else:
                report.sources[slot] = "remote"
            blocks[slot] = ContentBlock(kind=slot, text=text)

        site.content_blocks = blocks
        site.design_tokens = DesignTokens(**get_design_row(site.archetype))
        self._apply_to_elements(site)
        site.seo.description = blocks["description"].text[:160]

        if report.remote_slots and self.gate is not None:
            self.gate.record_usage(user_id, "aiRequest")

        logger.info(
            f"Content generated for {site.id}: {report.remote_slots} remote / "
            f"{len(CONTENT_SLOTS) - report.remote_slots} fallback slots"
        )
        return report

    def _apply_to_elements(self, site: SiteModel) -> None:
        by_type = {
            "heading": site.block_text("headline"),
            "text": site.block_text("description"),
            "button": site.block_text("cta"),
        }
        for el in site.elements:
            if el.type in by_type:
                el.content = by_type[el.type]
