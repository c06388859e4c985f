import logging

import pytest

from tessera.collections import BuildMetadata, PageSummary
from tessera.errors import ConfigError
from tessera.postprocess import (
    POST_PROCESSORS,
    CrossReferenceLinker,
    apply_post_processors,
    create_post_processors,
    is_valid_reference_id,
)
from tessera.protocols import PostProcessor


def metadata_with(*pages: PageSummary) -> BuildMetadata:
    return BuildMetadata.create({page.path: page for page in pages}, {})


def test_is_valid_reference_id():
    assert is_valid_reference_id(202401151200)
    assert is_valid_reference_id("202401151200")
    assert not is_valid_reference_id("2024-01")
    assert not is_valid_reference_id(True)
    assert not is_valid_reference_id(None)


def test_zero_is_not_a_reference_id():
    assert not is_valid_reference_id(0)
    assert not is_valid_reference_id("0")
    assert not is_valid_reference_id("000")
    assert not is_valid_reference_id(-5)

    metadata = metadata_with(
        PageSummary(meta={"zid": 0}, path="/zero.html"),
        PageSummary(meta={"id": "0", "zettel": 3}, path="/three.html"),
    )
    linker = CrossReferenceLinker()
    derived = linker.derive(metadata)
    assert derived == {3: "/three.html"}
    html = linker.process('<a href="0">zero</a>', metadata.with_derived(linker.name, derived))
    assert html == '<a href="0">zero</a>'


def test_linker_derives_and_rewrites(caplog):
    metadata = metadata_with(
        PageSummary(meta={"title": "A", "zid": 1001}, path="/notes/a.html"),
        PageSummary(meta={"title": "B", "id": "1002"}, path="/notes/b.html"),
        PageSummary(meta={"title": "C", "zettel": "draft-id"}, path="/notes/c.html"),
    )
    linker = CrossReferenceLinker()
    assert isinstance(linker, PostProcessor)

    derived = linker.derive(metadata)
    assert derived == {1001: "/notes/a.html", 1002: "/notes/b.html"}

    metadata = metadata.with_derived(linker.name, derived)
    html = '<a href="1001">A</a> <a href = "1002">B</a> <a href="9999">?</a>'
    with caplog.at_level(logging.DEBUG, logger="tessera.postprocess"):
        result = linker.process(html, metadata)
    assert result == (
        '<a href="/notes/a.html">A</a> <a href = "/notes/b.html">B</a> '
        '<a href="9999">?</a>'
    )
    assert "Replaced cross-reference ID 1001" in caplog.text


def test_linker_rejects_duplicate_ids():
    metadata = metadata_with(
        PageSummary(meta={"zid": 7}, path="/a.html"),
        PageSummary(meta={"id": "7"}, path="/b.html"),
    )
    with pytest.raises(ConfigError, match="Duplicate cross-reference ID 7"):
        CrossReferenceLinker().derive(metadata)


def test_registry_and_factory():
    assert POST_PROCESSORS["cross_references"] is CrossReferenceLinker
    processors = create_post_processors(["cross_references"])
    assert isinstance(processors[0], CrossReferenceLinker)
    with pytest.raises(ConfigError, match="Unknown post-processor"):
        create_post_processors(["minify"])


def test_apply_post_processors_in_order():
    class Suffix:
        def __init__(self, name):
            self.name = name

        def derive(self, metadata):
            return None

        def process(self, html, metadata):
            return html + self.name

    html = apply_post_processors("x", [Suffix("1"), Suffix("2")], BuildMetadata())
    assert html == "x12"
