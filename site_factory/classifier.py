"""
classifier.py

Maps a free-text project description to an archetype and builds the initial
SiteModel (pages, features, starter elements, SEO) from the static tables.
Pure and deterministic: no I/O, no clock, no randomness.
"""

from __future__ import annotations

from typing import List, Tuple

from .archetype_data import (
    ARCHETYPE_KEYWORDS,
    BASE_FEATURES,
    BASE_PAGES,
    DEFAULT_ARCHETYPE,
    get_archetype_row,
)
from .site_model import Element, SeoMeta, SiteModel
from .utils import InvalidInputError, get_logger, stable_hash

logger = get_logger(__name__)

MAX_DESCRIPTION_LENGTH = 2000
SEO_DESCRIPTION_LENGTH = 160


def _normalize(description) -> str:
    if not isinstance(description, str):
        raise InvalidInputError("Description must be a string", stage="Classify")
    text = description.strip()
    if not text:
        raise InvalidInputError("Description is empty", stage="Classify")
    if len(text) > MAX_DESCRIPTION_LENGTH:
        raise InvalidInputError(
            f"Description is {len(text)} characters; the limit is {MAX_DESCRIPTION_LENGTH}",
            stage="Classify",
        )
    return text


def _match(text: str) -> Tuple[str, List[str]]:
    lower = text.lower()
    for archetype, keywords in ARCHETYPE_KEYWORDS:
        hits = [k for k in keywords if k in lower]
        if hits:
            return archetype, hits
    return DEFAULT_ARCHETYPE, []


def detect_archetype(description: str) -> str:
    """Return the archetype for a description (first matching keyword set wins, else business)."""
    archetype, _ = _match(_normalize(description))
    return archetype


def _starter_elements(archetype: str) -> List[Element]:
    row = get_archetype_row(archetype)
    # Stacked vertically; the content generator fills in the copy later.
    return [
        Element(id="el-heading", type="heading", content="", position=(40, 40)),
        Element(id="el-intro", type="text", content="", position=(40, 120)),
        Element(id="el-cta", type="button", content="", position=(40, 200)),
        Element(id="el-highlights", type="card", content=row["card"], position=(40, 280)),
    ]


def classify(description: str) -> SiteModel:
    """Build a SiteModel for a description. Raises InvalidInputError for empty or oversized text."""
    text = _normalize(description)
    archetype, hits = _match(text)
    row = get_archetype_row(archetype)

    pages = BASE_PAGES + [p for p in row["pages"] if p not in BASE_PAGES]
    features = set(BASE_FEATURES) | set(row["features"])

    site = SiteModel(
        id=f"site-{stable_hash({'description': text})[:12]}",
        archetype=archetype,
        description=text,
        pages=pages,
        features=features,
        elements=_starter_elements(archetype),
        seo=SeoMeta(
            title=text.split(".")[0][:60].strip(),
            description=text[:SEO_DESCRIPTION_LENGTH],
            keywords=hits or [archetype],
        ),
    )
    site.validate()
    logger.info(f"Classified description as '{archetype}' (keywords: {hits or 'none'}) -> {site.id}")
    return site
