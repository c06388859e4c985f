"""Content files for Tessera.

This module models a single file found in the content directory. Markdown
files are split into front matter and body and their metadata is
normalised; every other file is an asset that gets copied verbatim.

Files are built in two explicit steps so that a ContentFile is always fully
materialised:

    raw = open_file(path, content_root)
    content_file = parse_file(raw)

Key classes:
- RawFile: Stat data and (for Markdown) the text of a file on disk.
- ContentFile: Parsed file with normalised metadata and output paths.
"""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dateutil import parser as date_parser

from .collections import PageSummary
from .errors import (
    BuildError,
    ConfigError,
    DateParseError,
    NotFoundError,
    OutputError,
    ParseError,
)
from .frontmatter import split
from .pagination import expand
from .rendering import render_page
from .utils import is_parsable, is_within, markdown_to_html_path, title_from_filename

if TYPE_CHECKING:
    from .build import BuildContext

KEY_TITLE = "title"
KEY_DATE = "date"
KEY_CREATED = "created"
KEY_MODIFIED = "modified"
KEY_DRAFT = "draft"
KEY_HIDDEN = "hidden"
KEY_PATH = "path"

INDEX_SUFFIX_RE = re.compile(r"(^|/)index\.html$")


@dataclass(frozen=True)
class RawFile:
    """A file read from the content directory, not yet interpreted.

    Attributes:
        path: Absolute path to the file.
        content_root: Absolute path of the content directory.
        created: Filesystem change/creation time as a Unix timestamp.
        modified: Filesystem modification time as a Unix timestamp.
        text: UTF-8 text for Markdown files, None for assets.
    """

    path: Path
    content_root: Path
    created: int
    modified: int
    text: str | None = None


def open_file(path: Path, content_root: Path) -> RawFile:
    """Read a content file from disk.

    Only Markdown files are decoded; assets may be binary and are copied
    later without ever being read as text.

    Args:
        path: Path to the file.
        content_root: Content directory the file belongs to.

    Returns:
        RawFile with stat data and, for Markdown files, the text.

    Raises:
        NotFoundError: If the path is not a regular file.
        ParseError: If a Markdown file is not valid UTF-8.
        OutputError: If the file cannot be read.
    """
    if not path.is_file():
        raise NotFoundError("Not a regular file", path)
    text = None
    try:
        stat = path.stat()
        if is_parsable(path):
            text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"Not valid UTF-8: {exc}", path, exc) from exc
    except OSError as exc:
        raise OutputError(f"Could not read file: {exc}", path, exc) from exc
    return RawFile(
        path=path.resolve(),
        content_root=content_root.resolve(),
        created=int(stat.st_ctime),
        modified=int(stat.st_mtime),
        text=text,
    )


def parse_file(raw: RawFile) -> ContentFile:
    """Split and normalise a raw file into a ContentFile.

    Args:
        raw: File read by ``open_file``.

    Returns:
        ContentFile whose metadata always holds title, date, created and
        modified (empty metadata for assets).

    Raises:
        ParseError: If the front matter is not a valid YAML mapping.
        DateParseError: If the ``date`` value cannot be parsed.
    """
    if raw.text is None:
        return ContentFile(path=raw.path, content_root=raw.content_root)
    try:
        meta, body = split(raw.text)
    except BuildError as exc:
        raise exc.attach_path(raw.path)
    return ContentFile(
        path=raw.path,
        content_root=raw.content_root,
        meta=_normalize_meta(meta, raw),
        body=body,
    )


def load(path: Path, content_root: Path) -> ContentFile:
    """Open and parse a content file in one go."""
    return parse_file(open_file(path, content_root))


def _normalize_meta(meta: dict[str, Any], raw: RawFile) -> dict[str, Any]:
    """Apply date parsing and the title/date/created/modified defaults."""
    meta = dict(meta)
    if meta.get(KEY_DATE) is None:
        meta[KEY_DATE] = raw.modified
    else:
        meta[KEY_DATE] = _to_timestamp(meta[KEY_DATE], meta, raw.path)
    title = meta.get(KEY_TITLE)
    if title is None or (isinstance(title, str) and not title.strip()):
        meta[KEY_TITLE] = title_from_filename(raw.path.name)
    meta.setdefault(KEY_CREATED, raw.created)
    meta.setdefault(KEY_MODIFIED, raw.modified)
    return meta


def _to_timestamp(value: Any, meta: dict[str, Any], path: Path) -> float:
    """Convert a front matter date value to a Unix timestamp.

    YAML already turns ``2024-01-15`` into a ``date``; anything quoted or
    written in another format arrives as a string and is parsed here.
    """
    if isinstance(value, bool):
        raise DateParseError(f"Cannot use {value!r} as a date", meta, path)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, date):
        return datetime.combine(value, time()).timestamp()
    if isinstance(value, str):
        try:
            return date_parser.parse(value).timestamp()
        except (ValueError, OverflowError) as exc:
            raise DateParseError(
                f"Tried to parse date field {value!r} as a date but it didn't work",
                meta,
                path,
                exc,
            ) from exc
    raise DateParseError(f"Cannot use {type(value).__name__} as a date", meta, path)


@dataclass
class ContentFile:
    """One file from the content directory.

    Attributes:
        path: Absolute path to the source file.
        content_root: Absolute path of the content directory.
        meta: Normalised metadata (empty for assets).
        body: Markdown body without front matter (empty for assets).
    """

    path: Path
    content_root: Path
    meta: dict[str, Any] = field(default_factory=dict)
    body: str = ""

    @property
    def is_parsable(self) -> bool:
        return is_parsable(self.path)

    @property
    def is_draft(self) -> bool:
        return bool(self.meta.get(KEY_DRAFT))

    @property
    def is_hidden(self) -> bool:
        return bool(self.meta.get(KEY_HIDDEN))

    def output_path(self, strip_index: bool = True) -> str:
        """Return the site path this file is published at.

        An explicit ``path`` metadata value wins. Otherwise the path is the
        file's location below the content root with ``.md``/``.markdown``
        replaced by ``.html``.

        Args:
            strip_index: Remove a trailing ``index.html`` so the path links
                to the directory.

        Returns:
            Path starting with ``/``.
        """
        explicit = self.meta.get(KEY_PATH)
        if explicit:
            path = str(explicit)
        else:
            path = markdown_to_html_path(self.path.relative_to(self.content_root).as_posix())
            if strip_index:
                path = INDEX_SUFFIX_RE.sub(r"\1", path)
        return "/" + path.lstrip("/")

    def build_target(self) -> str:
        """Return the file path written inside the build directory."""
        target = self.output_path(strip_index=False)
        if target.endswith("/"):
            target += "index.html"
        return target

    def summary(self) -> PageSummary:
        """Return the page data other pages see in listings and indexes."""
        return PageSummary(meta=self.meta, path=self.output_path())

    def process(self, context: BuildContext) -> list[Path]:
        """Write this file's output into the temporary build directory.

        Assets are copied byte for byte. Drafts produce nothing. Markdown
        pages are rendered once per output page (pagination may produce
        several).

        Args:
            context: Build context for the current run.

        Returns:
            Paths of the files written.

        Raises:
            OutputError: If a directory or file cannot be written.
            TemplateError: If rendering fails.
        """
        target = _target_path(context.temp_dir, self.build_target(), self.path)
        _make_parent(target, self.path)

        if not self.is_parsable:
            try:
                shutil.copyfile(self.path, target)
            except OSError as exc:
                raise OutputError(f"Could not copy to {target}: {exc}", self.path, exc) from exc
            context.logger.debug("Copied file %s -> %s", self.path, target)
            return [target]

        if self.is_draft:
            context.logger.debug("Skipping draft file %s", self.path)
            return []

        written: list[Path] = []
        try:
            for page in expand(self, context.metadata, context.index_keys):
                html = render_page(
                    context.renderer,
                    page,
                    self.body,
                    context.metadata,
                    context.config,
                    context.post_processors,
                )
                page_target = _target_path(context.temp_dir, page.target, self.path)
                _make_parent(page_target, self.path)
                try:
                    page_target.write_text(html, encoding="utf-8")
                except OSError as exc:
                    raise OutputError(
                        f"Could not write {page_target}: {exc}", self.path, exc
                    ) from exc
                context.logger.debug("Wrote parsed file %s -> %s", self.path, page_target)
                written.append(page_target)
        except BuildError as exc:
            raise exc.attach_path(self.path)
        return written


def _target_path(root: Path, site_path: str, source: Path) -> Path:
    target = (root / site_path.lstrip("/")).resolve()
    if not is_within(target, root):
        raise ConfigError(f"Output path {site_path} points outside the build directory", source)
    return target


def _make_parent(target: Path, source: Path) -> None:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputError(
            f"Could not create target dir {target.parent}: {exc}", source, exc
        ) from exc
