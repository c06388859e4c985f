"""Discovery and two-phase processing of content files for Tessera.

The content directory is scanned once per build. Every file is classified
as either a Markdown source to parse or an asset to copy. The list then
drives both build phases:

1. ``compile_metadata`` reads every Markdown file and produces the
   read-only BuildMetadata aggregate (page list and term indexes).
2. ``process`` drains both lists, copying assets and rendering pages into
   the temporary build directory.

Key classes:
- ContentFileList: Classified file lists plus both build phases.
- ProcessStats: Counts of what the processing phase did.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .collections import BuildMetadata, PageSummary
from .content import ContentFile, load
from .errors import ConfigError, EmptyContentError, NotFoundError, ParseError
from .utils import find_files, is_parsable, term_sort_key

if TYPE_CHECKING:
    from .build import BuildContext

COPY = "copy"
PARSE = "parse"
DESCENDING = "desc"


@dataclass
class ProcessStats:
    """Counts of files handled during the processing phase.

    Attributes:
        copied: Assets copied verbatim.
        rendered: HTML pages written (paginated sources count every page).
        skipped: Markdown sources that produced no output (drafts).
    """

    copied: int = 0
    rendered: int = 0
    skipped: int = 0


class ContentFileList:
    """All files of one build, split into ``copy`` and ``parse`` lists.

    Attributes:
        content_root: Absolute path of the content directory.
        files: Kind ("copy" or "parse") -> list of file paths.
        logger: Logger for progress and warnings.
    """

    def __init__(self, content_root: Path, logger: logging.Logger | None = None):
        self.content_root = content_root.resolve()
        self.files: dict[str, list[Path]] = {PARSE: [], COPY: []}
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def scan(
        cls,
        content_dir: Path,
        exclude: Iterable[str] = (),
        logger: logging.Logger | None = None,
    ) -> ContentFileList:
        """Recursively discover every file under the content directory.

        Args:
            content_dir: Content root to scan.
            exclude: Regular expressions; matching basenames are skipped.
            logger: Optional logger.

        Returns:
            A populated ContentFileList.

        Raises:
            NotFoundError: If the content directory does not exist.
            EmptyContentError: If no files are found.
            ConfigError: If an exclude pattern is not a valid regex.
        """
        if not content_dir.is_dir():
            raise NotFoundError(f"Content directory {content_dir} is not a directory")
        file_list = cls(content_dir, logger)
        file_list.logger.info("Indexing content files in %s", file_list.content_root)
        for path in find_files(content_dir, _compile_patterns(exclude)):
            file_list.push(path)
        if len(file_list) == 0:
            raise EmptyContentError(
                f"No files found in {content_dir} - is the content directory correct?"
            )
        file_list.logger.info(
            "Files found: %d (%d to parse, %d to copy)",
            len(file_list),
            len(file_list.files[PARSE]),
            len(file_list.files[COPY]),
        )
        return file_list

    def push(self, path: Path) -> ContentFileList:
        """Add a file to the list matching its kind."""
        self.files[PARSE if is_parsable(path) else COPY].append(path)
        return self

    def pop(self, kind: str) -> ContentFile | None:
        """Remove the last file of a kind and load it.

        Args:
            kind: "copy" or "parse".

        Returns:
            The loaded ContentFile, or None when that list is empty.
        """
        if kind not in self.files:
            raise ValueError(f"Invalid content file kind {kind!r}")
        if not self.files[kind]:
            return None
        return load(self.files[kind].pop(), self.content_root)

    def __len__(self) -> int:
        return sum(len(paths) for paths in self.files.values())

    def compile_metadata(
        self,
        index_keys: Sequence[str] = (),
        index_order: Mapping[str, str] | None = None,
    ) -> BuildMetadata:
        """Read every Markdown source and build the metadata aggregate.

        Draft and hidden pages are left out of both the page list and the
        term indexes.

        Args:
            index_keys: Metadata keys to build term indexes for.
            index_order: Key -> "asc" or "desc" sort order of its terms.

        Returns:
            BuildMetadata with pages newest first and sorted term indexes.

        Raises:
            ParseError: If front matter is invalid or a term is not a
                scalar value.
        """
        self.logger.info("Indexing page metadata")
        if index_keys:
            self.logger.debug("Indexing metadata keys: %s", ", ".join(index_keys))
        order = index_order or {}
        pages: dict[str, PageSummary] = {}
        index: dict[str, dict[Any, list[str]]] = {key: {} for key in index_keys}

        for path in self.files[PARSE]:
            content_file = load(path, self.content_root)
            # Nothing from drafts or hidden pages is indexed
            if content_file.is_draft or content_file.is_hidden:
                continue
            summary = content_file.summary()
            if summary.path in pages:
                self.logger.warning(
                    "%s overrides another page published at %s", path, summary.path
                )
            pages[summary.path] = summary
            for key in index_keys:
                for term in _terms(content_file.meta.get(key)):
                    try:
                        index[key].setdefault(term, []).append(summary.path)
                    except TypeError as exc:
                        raise ParseError(
                            f"Cannot index {key!r} value {term!r}", path, exc
                        ) from exc

        sorted_index = {
            key: dict(
                sorted(
                    terms.items(),
                    key=lambda item: term_sort_key(item[0]),
                    reverse=order.get(key) == DESCENDING,
                )
            )
            for key, terms in index.items()
        }
        sorted_pages = dict(
            sorted(pages.items(), key=lambda item: item[1].date, reverse=True)
        )
        self.logger.debug("Indexed %d pages", len(sorted_pages))
        return BuildMetadata.create(sorted_pages, sorted_index)

    def process(self, context: BuildContext) -> ProcessStats:
        """Copy every asset, then render every Markdown source.

        Both lists are emptied.

        Args:
            context: Build context holding the compiled metadata.

        Returns:
            ProcessStats for the run.
        """
        self.logger.info("Building content")
        stats = ProcessStats()
        while self.files[COPY]:
            self.pop(COPY).process(context)
            stats.copied += 1
        while self.files[PARSE]:
            written = self.pop(PARSE).process(context)
            if written:
                stats.rendered += len(written)
            else:
                stats.skipped += 1
        return stats


def _terms(value: Any) -> list[Any]:
    """Normalise an indexed metadata value to a list of terms."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _compile_patterns(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise ConfigError(f"Invalid exclude pattern {pattern!r}: {exc}") from exc
    return compiled
