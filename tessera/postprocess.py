"""Post-processing of rendered pages for Tessera.

Post-processors run after a page's template has been rendered and may
rewrite its HTML. They are configured by name with the ``post_processors``
option and applied in the listed order.

Key classes:
- CrossReferenceLinker: Rewrites numeric links (``href="202401151200"``)
  to the path of the page carrying that ID.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from .collections import BuildMetadata
from .errors import ConfigError
from .protocols import PostProcessor

__all__ = [
    "POST_PROCESSORS",
    "CrossReferenceLinker",
    "apply_post_processors",
    "create_post_processors",
]

ID_KEYS = ("zid", "id", "zettel")
NUMERIC_HREF_RE = re.compile(r'href\s*=\s*"(\d+)"')


def is_valid_reference_id(value: Any) -> bool:
    """Check if a metadata value can serve as a cross-reference ID.

    Args:
        value: Metadata value.

    Returns:
        True for positive integers and all-digit strings other than zero.
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value > 0
    return isinstance(value, str) and value.isdigit() and int(value) > 0


class CrossReferenceLinker:
    """Rewrites links to numeric page IDs into real page paths.

    A page declares its ID with one of the ``zid``, ``id`` or ``zettel``
    metadata keys. Other pages can then link to it as ``[see](202401151200)``.
    """

    name = "cross_references"

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)

    def derive(self, metadata: BuildMetadata) -> dict[int, str]:
        """Build the ID -> path index from every indexed page.

        Raises:
            ConfigError: If two pages declare the same ID.
        """
        references: dict[int, str] = {}
        for page in metadata.pages.values():
            ref_id = self._id_from_meta(page.meta)
            if ref_id is None:
                continue
            if ref_id in references:
                raise ConfigError(
                    f"Duplicate cross-reference ID {ref_id} found for paths "
                    f"{page.path} and {references[ref_id]}"
                )
            references[ref_id] = page.path
        return references

    def process(self, html: str, metadata: BuildMetadata) -> str:
        references = metadata.derived.get(self.name, {})

        def repl(match: re.Match) -> str:
            ref_id = int(match.group(1))
            if ref_id not in references:
                return match.group(0)
            self.logger.debug("Replaced cross-reference ID %s with %s", ref_id, references[ref_id])
            return match.group(0).replace(match.group(1), references[ref_id])

        return NUMERIC_HREF_RE.sub(repl, html)

    @staticmethod
    def _id_from_meta(meta: Mapping[str, Any]) -> int | None:
        for key in ID_KEYS:
            value = meta.get(key)
            if is_valid_reference_id(value):
                return int(value)
        return None


# Registry of post-processors that can be enabled from configuration
POST_PROCESSORS: dict[str, type] = {
    CrossReferenceLinker.name: CrossReferenceLinker,
}


def create_post_processors(
    names: Iterable[str], logger: logging.Logger | None = None
) -> list[PostProcessor]:
    """Instantiate configured post-processors by name.

    Args:
        names: Registry names, in application order.
        logger: Logger handed to each post-processor.

    Returns:
        List of post-processor instances.

    Raises:
        ConfigError: If a name is not registered.
    """
    processors = []
    for name in names:
        if name not in POST_PROCESSORS:
            known = ", ".join(sorted(POST_PROCESSORS))
            raise ConfigError(f"Unknown post-processor '{name}' (known: {known})")
        processors.append(POST_PROCESSORS[name](logger=logger))
    return processors


def apply_post_processors(
    html: str, processors: Iterable[PostProcessor], metadata: BuildMetadata
) -> str:
    """Run each post-processor over the HTML, in order."""
    for processor in processors:
        html = processor.process(html, metadata)
    return html
