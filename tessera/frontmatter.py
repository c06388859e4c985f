"""Front matter splitting for Tessera.

A content file may begin with a YAML block delimited by ``---`` lines. The
block is parsed into a metadata mapping and the remainder becomes the body.
Files without such a block have no metadata and keep their full text.
"""

from __future__ import annotations

import re
from typing import Any

import yaml

from .errors import ParseError

FRONTMATTER_RE = re.compile(r"^---\n(.+?)\n---\n\s*(.*)\s*$", re.DOTALL)


def split(raw: str) -> tuple[dict[str, Any], str]:
    """Split raw file text into front matter metadata and body.

    Args:
        raw: Full text of a content file.

    Returns:
        Tuple of (metadata dict, body text). The body is stripped of
        surrounding whitespace when front matter was found, and is ``raw``
        unchanged otherwise.

    Raises:
        ParseError: If the front matter block is not valid YAML or does not
            describe a mapping.
    """
    match = FRONTMATTER_RE.match(raw)
    if not match:
        return {}, raw
    try:
        meta = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        raise ParseError(f"Invalid YAML front matter: {exc}", original_error=exc) from exc
    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise ParseError(
            f"Front matter must be a mapping, got {type(meta).__name__}"
        )
    return meta, match.group(2).strip()
