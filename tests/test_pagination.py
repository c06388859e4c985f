from pathlib import Path

import pytest

from tessera.collections import BuildMetadata, PageSummary
from tessera.content import ContentFile
from tessera.errors import ConfigError
from tessera.pagination import DEFAULT_PER_PAGE, expand

ROOT = Path("/site/content")


def summary(path: str, title: str = "Post", date: float = 0, **meta) -> PageSummary:
    return PageSummary(meta={"title": title, "date": date, **meta}, path=path)


def listing_file(rel: str = "blog/index.md", **pagination) -> ContentFile:
    meta = {"title": "Blog", "date": 0}
    if pagination:
        meta["pagination"] = pagination
    return ContentFile(path=ROOT / rel, content_root=ROOT, meta=meta)


def posts(count: int) -> dict[str, PageSummary]:
    return {
        f"/blog/post-{i}.html": summary(f"/blog/post-{i}.html", f"Post {i}", date=i)
        for i in range(count)
    }


def test_plain_page_has_one_output():
    pages = expand(listing_file(), BuildMetadata(), ())
    assert len(pages) == 1
    assert pages[0].target == "/blog/index.html"
    assert pages[0].path == "/blog/"
    assert pages[0].pagination is None


def test_self_listing_splits_into_pages():
    metadata = BuildMetadata.create(posts(45), {})
    pages = expand(listing_file(data="pages", per_page=20), metadata, ())

    assert [page.target for page in pages] == [
        "/blog/index.html",
        "/blog/index2.html",
        "/blog/index3.html",
    ]
    assert [len(page.pagination["pages"]) for page in pages] == [20, 20, 5]
    assert not pages[0].meta.get("hidden")
    assert pages[1].meta["hidden"] is True
    assert pages[2].meta["hidden"] is True
    assert pages[1].meta["title"] == "Blog - page 2 of 3"

    pager = ["/blog/", "/blog/index2.html", "/blog/index3.html"]
    assert pages[0].pagination["pager"] == pager
    assert pages[0].pagination["prev"] is None
    assert pages[0].pagination["next"] == "/blog/index2.html"
    assert pages[1].pagination["prev"] == "/blog/"
    assert pages[1].pagination["next"] == "/blog/index3.html"
    assert pages[2].pagination["next"] is None
    assert pages[2].pagination["n"] == 3
    assert pages[2].pagination["total"] == 3

    # Newest first across the whole listing
    assert pages[0].pagination["pages"][0].title == "Post 44"
    assert pages[2].pagination["pages"][-1].title == "Post 0"


def test_listing_excludes_self_hidden_and_untitled():
    pages = posts(2)
    pages["/blog/"] = summary("/blog/", "Blog")
    pages["/blog/secret.html"] = summary("/blog/secret.html", "Secret", hidden=True)
    pages["/blog/blank.html"] = summary("/blog/blank.html", "")
    metadata = BuildMetadata.create(pages, {})

    listed = expand(listing_file(data="pages"), metadata, ())[0].pagination["pages"]
    assert [page.path for page in listed] == ["/blog/post-1.html", "/blog/post-0.html"]


def test_listing_filters_by_prefix_and_template():
    pages = posts(2)
    pages["/about.html"] = summary("/about.html", "About")
    pages["/blog/gallery.html"] = summary("/blog/gallery.html", "Pics", template="gallery.html")
    metadata = BuildMetadata.create(pages, {})

    listed = expand(
        listing_file(data="pages", subpage_prefix="/blog/"), metadata, ()
    )[0].pagination["pages"]
    assert {page.path for page in listed} == {
        "/blog/post-0.html",
        "/blog/post-1.html",
        "/blog/gallery.html",
    }

    listed = expand(
        listing_file(data="pages", templates=["gallery.html"]), metadata, ()
    )[0].pagination["pages"]
    assert [page.path for page in listed] == ["/blog/gallery.html"]


def test_empty_listing_still_renders_first_page():
    pages = expand(listing_file(data="pages"), BuildMetadata(), ())
    assert len(pages) == 1
    assert pages[0].pagination["pages"] == []
    assert pages[0].pagination["total"] == 1
    assert pages[0].pagination["next"] is None


def test_default_per_page():
    metadata = BuildMetadata.create(posts(DEFAULT_PER_PAGE + 1), {})
    pages = expand(listing_file(data="pages"), metadata, ())
    assert len(pages) == 2


@pytest.mark.parametrize("per_page", [0, -1, "10", True])
def test_invalid_per_page(per_page):
    with pytest.raises(ConfigError):
        expand(listing_file(data="pages", per_page=per_page), BuildMetadata(), ())


def test_term_pages():
    pages = {
        "/a.html": summary("/a.html", "A", date=1),
        "/b.html": summary("/b.html", "B", date=2),
    }
    index = {"tags": {"Python Tips": ["/a.html", "/b.html"], "rust": ["/b.html"]}}
    metadata = BuildMetadata.create(pages, index)

    output = expand(listing_file("tag.md", data="tags"), metadata, ["tags"])
    assert [page.target for page in output] == ["/tag-python-tips.html", "/tag-rust.html"]
    assert output[0].path == "/tag-python-tips.html"
    assert output[0].pagination["term"] == "Python Tips"
    assert [page.path for page in output[0].pagination["pages"]] == ["/a.html", "/b.html"]
    assert output[1].pagination["pager"] == {
        "Python Tips": "/tag-python-tips.html",
        "rust": "/tag-rust.html",
    }


def test_term_slugs_never_collide():
    pages = {
        "/a.html": summary("/a.html", "A", date=1),
        "/b.html": summary("/b.html", "B", date=2),
        "/c.html": summary("/c.html", "C", date=3),
    }
    index = {"tags": {"Python": ["/a.html"], "python": ["/b.html"], "PYTHON": ["/c.html"]}}
    metadata = BuildMetadata.create(pages, index)

    output = expand(listing_file("tag.md", data="tags"), metadata, ["tags"])
    assert [page.target for page in output] == [
        "/tag-python.html",
        "/tag-python-2.html",
        "/tag-python-3.html",
    ]
    assert [page.pagination["term"] for page in output] == ["PYTHON", "Python", "python"]
    assert [page.pagination["pages"][0].path for page in output] == [
        "/c.html",
        "/a.html",
        "/b.html",
    ]


def test_term_pagination_requires_indexed_key():
    with pytest.raises(ConfigError, match="not in the index"):
        expand(listing_file("tag.md", data="tags"), BuildMetadata(), [])


@pytest.mark.parametrize("directive", [["pages"], {"per_page": 3}, {"data": 5}])
def test_malformed_directive(directive):
    file = listing_file()
    file.meta["pagination"] = directive
    with pytest.raises(ConfigError):
        expand(file, BuildMetadata(), ())
