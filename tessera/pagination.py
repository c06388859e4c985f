"""Pagination and term grouping for Tessera.

A source page whose front matter carries a ``pagination`` directive turns
into several output pages:

- ``data: pages`` splits the list of all other eligible pages into chunks of
  ``per_page`` and writes one page per chunk (``index.html``,
  ``index2.html``, ...), linked through ``prev``/``next``.
- ``data: <indexed key>`` writes one page per term of that index
  (``tag-python.html``, ``tag-rust.html``, ...), each listing the pages
  tagged with its term.

Pages without a directive map to a single output page.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .collections import BuildMetadata, PageSummary
from .errors import ConfigError
from .templates import DEFAULT_TEMPLATE
from .utils import insert_before_extension, slugify, term_sort_key

if TYPE_CHECKING:
    from .content import ContentFile

DEFAULT_PER_PAGE = 20
PAGES_DATA = "pages"


@dataclass
class OutputPage:
    """One page to render from a content file.

    Attributes:
        target: Path of the written file relative to the build root,
            always starting with ``/``.
        path: Canonical link to the page, exposed as ``current_page.path``.
        meta: Metadata used for rendering this output page.
        pagination: Pagination context, or None for ordinary pages.
    """

    target: str
    path: str
    meta: dict[str, Any]
    pagination: dict[str, Any] | None = None


def expand(
    file: ContentFile, metadata: BuildMetadata, index_keys: Sequence[str]
) -> list[OutputPage]:
    """Expand a content file into the output pages it produces.

    Args:
        file: Parsed, parsable content file.
        metadata: Complete build metadata aggregate.
        index_keys: Metadata keys configured for indexing.

    Returns:
        List of OutputPage objects, never empty for a listing page.

    Raises:
        ConfigError: If the pagination directive is malformed or names a
            key that is not indexed.
    """
    own = OutputPage(
        target=file.build_target(), path=file.output_path(), meta=file.meta
    )
    directive = file.meta.get("pagination")
    if not directive:
        return [own]
    if not isinstance(directive, Mapping):
        raise ConfigError("pagination must be a mapping", file.path)

    data = directive.get("data")
    if not isinstance(data, str) or not data:
        raise ConfigError("pagination.data must name 'pages' or an indexed key", file.path)
    if data == PAGES_DATA:
        return _paginate_pages(own, directive, metadata, file.path)
    if data not in index_keys:
        raise ConfigError(
            f"pagination.data '{data}' is not in the index option", file.path
        )
    return _group_by_term(own, data, metadata)


def _paginate_pages(
    own: OutputPage,
    directive: Mapping[str, Any],
    metadata: BuildMetadata,
    source: Path,
) -> list[OutputPage]:
    per_page = directive.get("per_page")
    if per_page is None:
        per_page = DEFAULT_PER_PAGE
    if isinstance(per_page, bool) or not isinstance(per_page, int) or per_page < 1:
        raise ConfigError(
            f"pagination.per_page must be a positive integer, got {per_page!r}", source
        )
    listed = _listable_pages(own, directive, metadata)
    chunks = [listed[i : i + per_page] for i in range(0, len(listed), per_page)] or [[]]
    total = len(chunks)

    pager = [own.path] + [
        insert_before_extension(own.target, str(n)) for n in range(2, total + 1)
    ]
    output: list[OutputPage] = []
    for n, chunk in enumerate(chunks, start=1):
        meta = dict(own.meta)
        target, path = own.target, own.path
        if n > 1:
            target = path = pager[n - 1]
            # Only the first page shows up in listings
            meta["title"] = f"{meta.get('title', '')} - page {n} of {total}"
            meta["hidden"] = True
        pagination = {
            "pages": chunk,
            "n": n,
            "total": total,
            "pager": pager,
            "prev": pager[n - 2] if n > 1 else None,
            "next": pager[n] if n < total else None,
        }
        output.append(OutputPage(target, path, meta, pagination))
    return output


def _listable_pages(
    own: OutputPage, directive: Mapping[str, Any], metadata: BuildMetadata
) -> list[PageSummary]:
    prefix = directive.get("subpage_prefix") or ""
    templates = directive.get("templates") or None
    if isinstance(templates, str):
        templates = [templates]

    listed = []
    for path, page in metadata.pages.items():
        if path == own.path:
            continue
        if not page.meta.get("title") or page.meta.get("hidden"):
            continue
        if prefix and not path.startswith(prefix):
            continue
        if templates is not None and page.meta.get("template", DEFAULT_TEMPLATE) not in templates:
            continue
        listed.append(page)
    listed.sort(key=lambda page: page.date, reverse=True)
    return listed


def _group_by_term(own: OutputPage, key: str, metadata: BuildMetadata) -> list[OutputPage]:
    terms = metadata.index.get(key, {})
    pager: dict[Any, str] = {}
    used: set[str] = set()
    for term in sorted(terms, key=term_sort_key):
        slug = base = slugify(term)
        # Terms like "Python" and "python" share a slug; number the later ones
        n = 2
        while slug in used:
            slug = f"{base}-{n}"
            n += 1
        used.add(slug)
        pager[term] = insert_before_extension(own.target, f"-{slug}")
    return [
        OutputPage(
            target=target,
            path=target,
            meta=dict(own.meta),
            pagination={
                "pages": metadata.pages_for(terms[term]),
                "term": term,
                "pager": pager,
            },
        )
        for term, target in pager.items()
    ]
