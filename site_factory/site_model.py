"""
site_model.py

Canonical in-memory model of a generated site/app and the immutable build
artifact the emitters produce from it.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

from .utils import InvalidInputError, stable_hash

# Archetypes
COMMERCE = "commerce"
PORTFOLIO = "portfolio"
DINING = "dining"
EDITORIAL = "editorial"
BUSINESS = "business"
LANDING = "landing"
CUSTOM = "custom"

ARCHETYPES = (COMMERCE, PORTFOLIO, DINING, EDITORIAL, BUSINESS, LANDING, CUSTOM)


@dataclass
class DesignTokens:
    primary_color: str = "#2563eb"
    secondary_color: str = "#1e293b"
    accent_color: str = "#f59e0b"
    heading_font: str = "Inter, sans-serif"
    body_font: str = "system-ui, sans-serif"
    spacing_scale: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_color": self.primary_color,
            "secondary_color": self.secondary_color,
            "accent_color": self.accent_color,
            "heading_font": self.heading_font,
            "body_font": self.body_font,
            "spacing_scale": self.spacing_scale,
        }


@dataclass
class ContentBlock:
    kind: str
    text: str


@dataclass
class Element:
    id: str
    type: str
    content: str = ""
    position: Tuple[int, int] = (0, 0)  # (x, y) in px


@dataclass
class SeoMeta:
    title: str = ""
    description: str = ""
    keywords: List[str] = field(default_factory=list)


@dataclass
class SiteModel:
    id: str
    archetype: Optional[str]
    description: str
    pages: List[str]
    features: Set[str] = field(default_factory=set)
    design_tokens: DesignTokens = field(default_factory=DesignTokens)
    content_blocks: Dict[str, ContentBlock] = field(default_factory=dict)
    elements: List[Element] = field(default_factory=list)
    seo: SeoMeta = field(default_factory=SeoMeta)

    def validate(self) -> None:
        """Raise InvalidInputError unless the model is complete enough to emit."""
        if not self.pages:
            raise InvalidInputError("SiteModel.pages must not be empty", stage="Site Model", record_id=self.id)
        if self.archetype not in ARCHETYPES:
            raise InvalidInputError(
                f"SiteModel.archetype must be one of {ARCHETYPES}, got {self.archetype!r}",
                stage="Site Model",
                record_id=self.id,
            )
        for el in self.elements:
            x, y = el.position
            if x < 0 or y < 0:
                raise InvalidInputError(
                    f"Element {el.id} has a negative position {el.position}",
                    stage="Site Model",
                    record_id=self.id,
                )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "archetype": self.archetype,
            "description": self.description,
            "pages": list(self.pages),
            "features": sorted(self.features),
            "design_tokens": self.design_tokens.to_dict(),
            "content_blocks": {
                block_id: {"kind": block.kind, "text": block.text}
                for block_id, block in sorted(self.content_blocks.items())
            },
            "elements": [
                {"id": el.id, "type": el.type, "content": el.content, "position": list(el.position)}
                for el in self.elements
            ],
            "seo": {
                "title": self.seo.title,
                "description": self.seo.description,
                "keywords": list(self.seo.keywords),
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SiteModel":
        seo = data.get("seo") or {}
        return cls(
            id=data["id"],
            archetype=data.get("archetype"),
            description=data.get("description", ""),
            pages=list(data.get("pages", [])),
            features=set(data.get("features", [])),
            design_tokens=DesignTokens(**(data.get("design_tokens") or {})),
            content_blocks={
                block_id: ContentBlock(kind=b.get("kind", block_id), text=b.get("text", ""))
                for block_id, b in (data.get("content_blocks") or {}).items()
            },
            elements=[
                Element(
                    id=e["id"],
                    type=e.get("type", "text"),
                    content=e.get("content", ""),
                    position=tuple(e.get("position", (0, 0))),
                )
                for e in data.get("elements", [])
            ],
            seo=SeoMeta(
                title=seo.get("title", ""),
                description=seo.get("description", ""),
                keywords=list(seo.get("keywords", [])),
            ),
        )

    def copy(self) -> "SiteModel":
        return copy.deepcopy(self)

    def fingerprint(self) -> str:
        return stable_hash(self.to_dict())

    def block_text(self, block_id: str, default: str = "") -> str:
        block = self.content_blocks.get(block_id)
        return block.text if block else default


# -----------------------------
# Build artifacts
# -----------------------------

# A file tree: relative path -> text content, or directory name -> nested tree
FileTree = Mapping[str, Union[str, "FileTree"]]


def _freeze(tree: Mapping[str, Any]) -> Mapping[str, Any]:
    frozen = {}
    for name in sorted(tree):
        value = tree[name]
        frozen[name] = _freeze(value) if isinstance(value, Mapping) else str(value)
    return MappingProxyType(frozen)


def flatten_tree(tree: Mapping[str, Any], prefix: str = "") -> Dict[str, str]:
    """Flatten a nested file tree to {posix_path: content}. Empty directories become '<dir>/.keep'."""
    flat: Dict[str, str] = {}
    for name, value in tree.items():
        path = f"{prefix}{name.strip('/')}"
        if isinstance(value, Mapping):
            if value:
                flat.update(flatten_tree(value, prefix=f"{path}/"))
            else:
                flat[f"{path}/.keep"] = ""
        else:
            flat[path] = value
    return flat


@dataclass(frozen=True)
class BuildArtifact:
    """Platform-specific file tree for one (SiteModel, target kind) pair. Immutable."""

    id: str
    target_kind: str
    files: FileTree
    source_site_model_id: str

    def __post_init__(self):
        object.__setattr__(self, "files", _freeze(self.files))

    def flat_files(self) -> Dict[str, str]:
        return flatten_tree(self.files)

    @property
    def checksum(self) -> str:
        return stable_hash(self.flat_files())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "target_kind": self.target_kind,
            "source_site_model_id": self.source_site_model_id,
            "checksum": self.checksum,
            "files": self.flat_files(),
        }

    @classmethod
    def from_flat(cls, artifact_id: str, target_kind: str, source_id: str, flat: Dict[str, str]) -> "BuildArtifact":
        """Rebuild a nested tree from the flattened form stored in the ledger."""
        tree: Dict[str, Any] = {}
        for path, content in flat.items():
            parts = path.split("/")
            node = tree
            for part in parts[:-1]:
                node = node.setdefault(part, {})
            if parts[-1] != ".keep":
                node[parts[-1]] = content
        return cls(id=artifact_id, target_kind=target_kind, files=tree, source_site_model_id=source_id)
