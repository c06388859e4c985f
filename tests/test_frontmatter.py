import pytest

from tessera.errors import ParseError
from tessera.frontmatter import split


def test_split_returns_meta_and_stripped_body():
    meta, body = split("---\ntitle: Hello\ntags: [a, b]\n---\n\n  Body text\n\n")
    assert meta == {"title": "Hello", "tags": ["a", "b"]}
    assert body == "Body text"


def test_split_without_front_matter_keeps_text():
    raw = "# Heading\n\nNo metadata here.\n"
    assert split(raw) == ({}, raw)


def test_split_comment_only_front_matter_is_empty_mapping():
    meta, body = split("---\n# just a comment\n---\nbody")
    assert meta == {}
    assert body == "body"


def test_split_rejects_invalid_yaml():
    with pytest.raises(ParseError) as exc:
        split("---\ntitle: [unclosed\n---\nbody")
    assert exc.value.original_error is not None


def test_split_rejects_non_mapping():
    with pytest.raises(ParseError, match="mapping"):
        split("---\n- one\n- two\n---\nbody")
