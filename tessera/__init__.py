"""Tessera static site builder.

Tessera turns a directory of Markdown files with YAML front matter, plus
static assets, into a static website rendered through Jinja2 templates.
Every page can see the metadata of every other page, so listings, tag
pages and cross-references are plain template code.

Builds are staged in a temporary directory and published with a single
rename, so the output directory only ever holds a complete site.

The main entry point is the CLI module, which provides commands for
building the site once and for rebuilding it whenever a source changes.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
