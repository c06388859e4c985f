import pytest

from tessera.collections import BuildMetadata, PageSummary
from tessera.pagination import OutputPage
from tessera.rendering import build_context, render_page


class FakeRenderer:
    """Records every render call and echoes the parts it was given."""

    def __init__(self):
        self.calls = []

    def render_string(self, template, context):
        self.calls.append(("string", template))
        return template.upper()

    def render(self, name, context):
        self.calls.append(("template", name))
        return f"<{name}>{context['current_page']['content']}</{name}>"


def test_build_metadata_create_freezes_everything():
    page = PageSummary(meta={"title": "A", "date": 5}, path="/a.html")
    metadata = BuildMetadata.create({"/a.html": page}, {"tags": {"x": ["/a.html"]}})

    assert metadata.index["tags"]["x"] == ("/a.html",)
    assert metadata.pages_for(["/a.html", "/missing.html"]) == [page]
    assert page.title == "A"
    assert page.date == 5
    with pytest.raises(TypeError):
        metadata.derived["x"] = 1


def test_with_derived_returns_new_aggregate():
    metadata = BuildMetadata()
    updated = metadata.with_derived("refs", {1: "/a.html"})

    assert dict(metadata.derived) == {}
    assert updated.derived["refs"][1] == "/a.html"
    assert set(updated.as_context()) == {"pages", "index", "derived"}


def test_build_context():
    page = OutputPage(target="/a.html", path="/a.html", meta={"title": "A"})
    context = build_context(page, "body", BuildMetadata(), {"site": "x"})

    assert context["current_page"] == {
        "meta": {"title": "A"},
        "path": "/a.html",
        "content": "body",
        "pagination": None,
    }
    assert context["config"] == {"site": "x"}
    assert context["pages"] == {}


def test_render_page_runs_content_then_layout():
    renderer = FakeRenderer()
    page = OutputPage(target="/a.html", path="/a.html", meta={"template": "note.html"})

    class Exclaim:
        name = "exclaim"

        def derive(self, metadata):
            return None

        def process(self, html, metadata):
            return html + "!"

    html = render_page(renderer, page, "hi", BuildMetadata(), {}, [Exclaim()])
    assert renderer.calls == [
        ("string", "hi"),
        ("template", "_content.html"),
        ("template", "note.html"),
    ]
    assert html == "<note.html><_content.html>HI</_content.html></note.html>!"


def test_page_meta_is_frozen_all_the_way_down():
    page = PageSummary(
        meta={"title": "A", "tags": ["x", "y"], "author": {"name": "Ann"}, "cats": {"c"}},
        path="/a.html",
    )
    metadata = BuildMetadata.create({"/a.html": page}, {})
    meta = metadata.pages["/a.html"].meta

    with pytest.raises(TypeError):
        meta["title"] = "HACKED"
    with pytest.raises(TypeError):
        meta["author"]["name"] = "Bob"
    assert not hasattr(meta, "update")
    assert meta["tags"] == ("x", "y")
    assert meta["cats"] == frozenset({"c"})
    assert page.title == "A"


def test_module_is_documented():
    import tessera.collections

    assert tessera.collections.__doc__.strip()
