"""Read-only build metadata for Tessera.

The aggregate is compiled once per build, before any page is rendered, and
every template sees the same frozen view of it. Page metadata is frozen all
the way down, so nothing a template does can leak into another page.

Key classes:
- PageSummary: Metadata and canonical path of one listed page.
- BuildMetadata: Pages, term indexes and derived indexes of one build.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Set
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any


def _frozen(mapping: Mapping | None = None) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


def _deep_frozen(value: Any) -> Any:
    """Recursively replace mappings, lists and sets with read-only versions."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: _deep_frozen(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_deep_frozen(item) for item in value)
    if isinstance(value, Set):
        return frozenset(_deep_frozen(item) for item in value)
    return value


@dataclass(frozen=True)
class PageSummary:
    """Metadata and canonical path of one page, as seen by other pages."""

    meta: Mapping[str, Any]
    path: str

    def __post_init__(self):
        object.__setattr__(self, "meta", _deep_frozen(self.meta))

    @property
    def title(self) -> str:
        return str(self.meta.get("title", ""))

    @property
    def date(self) -> float:
        return self.meta.get("date", 0)


@dataclass(frozen=True)
class BuildMetadata:
    """Read-only, run-scoped index of every eligible page and its terms.

    Attributes:
        pages: Output path -> PageSummary, newest first.
        index: Indexed key -> term -> tuple of output paths.
        derived: Post-processor name -> index it derived from this aggregate.
    """

    pages: Mapping[str, PageSummary] = field(default_factory=_frozen)
    index: Mapping[str, Mapping[Any, tuple[str, ...]]] = field(default_factory=_frozen)
    derived: Mapping[str, Any] = field(default_factory=_frozen)

    @classmethod
    def create(
        cls,
        pages: Mapping[str, PageSummary],
        index: Mapping[str, Mapping[Any, Iterable[str]]],
        derived: Mapping[str, Any] | None = None,
    ) -> BuildMetadata:
        frozen_index = {
            key: _frozen({term: tuple(paths) for term, paths in terms.items()})
            for key, terms in index.items()
        }
        return cls(
            pages=_frozen(pages), index=_frozen(frozen_index), derived=_frozen(derived)
        )

    def with_derived(self, name: str, data: Mapping[str, Any] | None) -> BuildMetadata:
        """Return a copy with one more derived index attached."""
        derived = dict(self.derived)
        derived[name] = _frozen(data)
        return replace(self, derived=_frozen(derived))

    def pages_for(self, paths: Iterable[str]) -> list[PageSummary]:
        return [self.pages[path] for path in paths if path in self.pages]

    def as_context(self) -> dict[str, Any]:
        return {"pages": self.pages, "index": self.index, "derived": self.derived}

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"BuildMetadata({len(self.pages)} pages, {len(self.index)} indexes)"
