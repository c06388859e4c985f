"""Error kinds raised by the Tessera build pipeline.

Every error is fatal to the current build run. The orchestrator logs it,
removes the temporary build directory and re-raises it to the caller, leaving
any previously published output untouched.

Key classes:
- BuildError: Base class carrying the offending file path.
- NotFoundError: Missing source file or content directory.
- EmptyContentError: Content directory holds no files.
- ParseError / DateParseError: Malformed front matter or unparseable dates.
- ConfigError: Invalid configuration or pagination directive.
- TemplateError / MissingVariableError: Failures from the template engine.
- OutputError: Filesystem write, copy or rename failures.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class BuildError(Exception):
    """Error during a site build with file context.

    Attributes:
        source_path: Path to the file that caused the error, if any.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        message: str,
        source_path: Path | None = None,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        if source_path is not None:
            super().__init__(f"{source_path}: {message}")
        else:
            super().__init__(message)

    def attach_path(self, source_path: Path) -> BuildError:
        """Record the file being processed if no path was known yet.

        Args:
            source_path: Path to the content file being processed.

        Returns:
            The same error, so it can be re-raised directly.
        """
        if self.source_path is None:
            self.source_path = source_path
            self.args = (f"{source_path}: {self.message}",)
        return self


class NotFoundError(BuildError):
    """A source file or the content directory does not exist."""


class EmptyContentError(BuildError):
    """The content directory contains no files to build."""


class ParseError(BuildError):
    """Front matter could not be parsed into a metadata mapping."""


class DateParseError(ParseError):
    """A ``date`` metadata value could not be understood as a date.

    Attributes:
        meta: The full metadata mapping of the page, for diagnosis.
    """

    def __init__(
        self,
        message: str,
        meta: dict[str, Any],
        source_path: Path | None = None,
        original_error: Exception | None = None,
    ):
        self.meta = meta
        super().__init__(
            f"{message} - full meta is: {meta!r}", source_path, original_error
        )


class ConfigError(BuildError):
    """Configuration or a page directive refers to something invalid."""


class TemplateError(BuildError):
    """The template engine failed to load or render a template.

    Attributes:
        kind: One of "syntax", "runtime" or "loader".
        template_name: Name of the template involved, when known.
    """

    def __init__(
        self,
        message: str,
        kind: str = "runtime",
        template_name: str | None = None,
        source_path: Path | None = None,
        original_error: Exception | None = None,
    ):
        self.kind = kind
        self.template_name = template_name
        super().__init__(message, source_path, original_error)


class MissingVariableError(TemplateError):
    """A template referenced a variable that is not in the context."""

    def __init__(
        self,
        message: str,
        template_name: str | None = None,
        source_path: Path | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(
            message,
            kind="undefined",
            template_name=template_name,
            source_path=source_path,
            original_error=original_error,
        )


class OutputError(BuildError):
    """Creating, writing or moving build output failed."""
