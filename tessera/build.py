"""Site building functionality for Tessera.

This module contains the build orchestrator. A build renders the whole site
into a temporary directory and only then swaps it into the output location,
so a failed or interrupted build never leaves a half-written site behind.

A run moves through these states:

    NOT_STARTED -> SCANNING -> INDEXING -> PROCESSING -> PUBLISHING
                -> CLEANUP -> FINISHED | FAILED

Key functions and classes:
- load_config: Loads site configuration from tessera.yaml.
- Build: Runs one build from a configuration.
- BuildContext: Everything a content file needs to process itself.
- BuildResult: Summary of a successful build.
"""

from __future__ import annotations

import copy
import logging
import os
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .collections import BuildMetadata
from .content_list import ContentFileList
from .errors import BuildError, ConfigError, NotFoundError, OutputError
from .postprocess import create_post_processors
from .protocols import PostProcessor, TemplateRenderer
from .templates import TemplateEngine
from .utils import ensure_clean_dir, is_within, remove_dir

CONFIG_FILENAME = "tessera.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "content_dir": "content",
    "output_dir": "www",
    "temp_dir": ".tessera-tmp",
    "template_dir": "templates",
    "index": [],
    "index_order": {},
    "exclude": [],
    "post_processors": [],
}

DIRECTORY_OPTIONS = ("content_dir", "output_dir", "temp_dir", "template_dir")
LIST_OPTIONS = ("index", "exclude", "post_processors")
SORT_ORDERS = ("asc", "desc")


def load_config(project_root: Path, config_file: Path | None = None) -> dict[str, Any]:
    """Load site configuration from tessera.yaml.

    Relative directory options are resolved against the directory holding
    the configuration file.

    Args:
        project_root: Root directory of the project.
        config_file: Optional explicit configuration file. It must exist;
            the default ``tessera.yaml`` is optional.

    Returns:
        Dictionary containing configuration values, with defaults applied.

    Raises:
        NotFoundError: If an explicit config file does not exist.
        ConfigError: If the file is not a YAML mapping or holds invalid values.
    """
    if config_file is not None:
        config_path = project_root / config_file
        if not config_path.is_file():
            raise NotFoundError(f"Config file {config_path} does not exist")
    else:
        config_path = project_root / CONFIG_FILENAME

    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path.is_file():
        with open(config_path, encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigError(f"Could not parse config: {exc}", config_path, exc) from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError("Config file must contain a mapping", config_path)
        config.update(loaded)

    base_dir = config_path.parent.resolve()
    for option in DIRECTORY_OPTIONS:
        config[option] = (base_dir / str(config[option])).resolve()
    validate_config(config)
    return config


def validate_config(config: Mapping[str, Any]) -> None:
    """Check the types of the options the build relies on.

    Raises:
        ConfigError: On the first invalid option.
    """
    for option in LIST_OPTIONS:
        value = config.get(option, [])
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"Option '{option}' must be a list of strings, got {value!r}")
    index_order = config.get("index_order", {})
    if not isinstance(index_order, dict):
        raise ConfigError(f"Option 'index_order' must be a mapping, got {index_order!r}")
    for key, order in index_order.items():
        if order not in SORT_ORDERS:
            raise ConfigError(
                f"index_order for '{key}' must be one of {', '.join(SORT_ORDERS)}, got {order!r}"
            )


class BuildState(Enum):
    """Lifecycle states of a build run."""

    NOT_STARTED = "not_started"
    SCANNING = "scanning"
    INDEXING = "indexing"
    PROCESSING = "processing"
    PUBLISHING = "publishing"
    CLEANUP = "cleanup"
    FINISHED = "finished"
    FAILED = "failed"


@dataclass(frozen=True)
class BuildContext:
    """Read-only state shared with every file during processing.

    Attributes:
        content_dir: Absolute content root.
        temp_dir: Temporary build root files are written into.
        metadata: Complete build metadata aggregate.
        config: Site configuration.
        renderer: Template engine.
        post_processors: Post-processors applied to each rendered page.
        index_keys: Metadata keys that were indexed.
        logger: Logger for the run.
    """

    content_dir: Path
    temp_dir: Path
    metadata: BuildMetadata
    config: Mapping[str, Any]
    renderer: TemplateRenderer
    post_processors: Sequence[PostProcessor]
    index_keys: Sequence[str]
    logger: logging.Logger


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        output_dir: Directory the site was published to.
        metadata: Build metadata the pages were rendered with.
        copied: Number of assets copied.
        rendered: Number of HTML pages written.
        skipped: Number of Markdown sources skipped as drafts.
    """

    output_dir: Path
    metadata: BuildMetadata
    copied: int
    rendered: int
    skipped: int


class Build:
    """Builds a site from a configuration. Each instance runs once.

    Attributes:
        config: Site configuration with defaults applied.
        content_dir: Content root.
        output_dir: Published output directory.
        temp_dir: Temporary build directory.
        renderer: Template engine.
        post_processors: Post-processors applied to each page, in order.
        logger: Logger for the run.
        state: Current BuildState.
        history: Every state the run has been in, in order.
        metadata: Build metadata, available once indexing has finished.
    """

    def __init__(
        self,
        config: Mapping[str, Any],
        renderer: TemplateRenderer | None = None,
        post_processors: Sequence[PostProcessor] | None = None,
        logger: logging.Logger | None = None,
    ):
        """Initialize the build.

        Args:
            config: Configuration, typically from ``load_config``. Missing
                options fall back to the defaults.
            renderer: Optional template engine; defaults to a Jinja2
                TemplateEngine over the configured template directory.
            post_processors: Optional post-processors; defaults to the ones
                named in the ``post_processors`` option.
            logger: Optional logger; defaults to ``tessera.build``.
        """
        merged = copy.deepcopy(DEFAULT_CONFIG)
        merged.update(config)
        validate_config(merged)
        self.config = merged
        self.content_dir = Path(merged["content_dir"])
        self.output_dir = Path(merged["output_dir"])
        self.temp_dir = Path(merged["temp_dir"])
        self.logger = logger or logging.getLogger("tessera.build")
        self.renderer = renderer or TemplateEngine(Path(merged["template_dir"]))
        if post_processors is None:
            post_processors = create_post_processors(merged["post_processors"], self.logger)
        self.post_processors = list(post_processors)
        self.state = BuildState.NOT_STARTED
        self.history: list[BuildState] = [self.state]
        self.metadata = BuildMetadata()
        self._temp_prepared = False

    def run(self) -> BuildResult:
        """Build the entire site and publish it to the output directory.

        Returns:
            BuildResult describing the published site.

        Raises:
            BuildError: Any failure. The temporary directory is removed and
                the previous output is left as it was.
        """
        if self.state is not BuildState.NOT_STARTED:
            raise RuntimeError("A Build instance can only run once")
        started = time.perf_counter()
        self.logger.info("Starting build")
        failed = False
        try:
            self._transition(BuildState.SCANNING)
            self._check_directories()
            self._prepare_temp_dir()
            files = ContentFileList.scan(self.content_dir, self.config["exclude"], self.logger)

            self._transition(BuildState.INDEXING)
            self.metadata = self._compile_metadata(files)

            self._transition(BuildState.PROCESSING)
            stats = files.process(self._context())

            self._transition(BuildState.PUBLISHING)
            self._publish()
        except BaseException as exc:
            failed = True
            self.logger.error("Error in build during %s: %s", self.state.value, exc)
            raise
        finally:
            self._transition(BuildState.CLEANUP)
            cleanup_error = self._cleanup()
            failed = failed or cleanup_error is not None
            self._transition(BuildState.FAILED if failed else BuildState.FINISHED)
        if cleanup_error is not None:
            raise cleanup_error

        self.logger.info(
            "Finished build in %.2f seconds: %d pages rendered, %d files copied, %d drafts skipped",
            time.perf_counter() - started,
            stats.rendered,
            stats.copied,
            stats.skipped,
        )
        return BuildResult(
            output_dir=self.output_dir,
            metadata=self.metadata,
            copied=stats.copied,
            rendered=stats.rendered,
            skipped=stats.skipped,
        )

    def _transition(self, state: BuildState) -> None:
        self.logger.debug("Build state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _check_directories(self) -> None:
        """Reject layouts where publishing would clobber sources or staging."""
        if not self.content_dir.is_dir():
            raise NotFoundError(f"Cannot find content directory at {self.content_dir}")
        for option, path in (("temp_dir", self.temp_dir), ("output_dir", self.output_dir)):
            if is_within(path, self.content_dir):
                raise ConfigError(f"{option} {path} must not be inside the content directory")
        if is_within(self.content_dir, self.output_dir):
            raise ConfigError("content_dir must not be inside output_dir")
        if is_within(self.temp_dir, self.output_dir) or is_within(self.output_dir, self.temp_dir):
            raise ConfigError("temp_dir and output_dir must be separate directories")

    def _prepare_temp_dir(self) -> None:
        # A stale directory from an interrupted run is cleared here
        try:
            ensure_clean_dir(self.temp_dir)
            self._temp_prepared = True
        except OSError as exc:
            raise OutputError(
                f"Could not create temp dir {self.temp_dir}: {exc}", original_error=exc
            ) from exc

    def _compile_metadata(self, files: ContentFileList) -> BuildMetadata:
        metadata = files.compile_metadata(self.config["index"], self.config["index_order"])
        for processor in self.post_processors:
            metadata = metadata.with_derived(processor.name, processor.derive(metadata))
            self.logger.debug("Derived %s index", processor.name)
        return metadata

    def _context(self) -> BuildContext:
        return BuildContext(
            content_dir=self.content_dir.resolve(),
            temp_dir=self.temp_dir.resolve(),
            metadata=self.metadata,
            config=self.config,
            renderer=self.renderer,
            post_processors=tuple(self.post_processors),
            index_keys=tuple(self.config["index"]),
            logger=self.logger,
        )

    def _publish(self) -> None:
        """Swap the temporary build directory into the output location.

        The previous output is moved aside first and only deleted once the
        new site is in place, so a failed rename restores it.
        """
        output = self.output_dir
        if output.exists() and not output.is_dir():
            raise OutputError(f"{output} exists and is not a directory")
        backup = output.with_name(f"{output.name}.old")
        self.logger.info("Moving temporary build directory to %s", output)
        try:
            remove_dir(backup)
            output.parent.mkdir(parents=True, exist_ok=True)
            if output.exists():
                os.replace(output, backup)
            try:
                os.replace(self.temp_dir, output)
            except OSError:
                if backup.exists():
                    os.replace(backup, output)
                raise
            remove_dir(backup)
        except OSError as exc:
            raise OutputError(f"Could not publish to {output}: {exc}", original_error=exc) from exc

    def _cleanup(self) -> OutputError | None:
        """Remove the temporary directory; a no-op once it has been moved.

        Failures are logged and returned, not raised.
        """
        # Never touch a temp_dir this run did not create
        if not (self._temp_prepared and self.temp_dir.exists()):
            return None
        try:
            remove_dir(self.temp_dir)
        except OSError as exc:
            self.logger.error("Could not delete temp dir %s: %s", self.temp_dir, exc)
            return OutputError(
                f"Could not delete temp dir {self.temp_dir}: {exc}", original_error=exc
            )
        self.logger.debug("Deleted temp dir %s", self.temp_dir)
        return None


def build_site(
    project_root: Path,
    config_file: Path | None = None,
    logger: logging.Logger | None = None,
) -> BuildResult:
    """Load the configuration for a project and build it.

    Args:
        project_root: Root directory of the project.
        config_file: Optional explicit configuration file.
        logger: Optional logger for the run.

    Returns:
        BuildResult of the run.
    """
    config = load_config(project_root, config_file)
    return Build(config, logger=logger).run()


__all__ = [
    "Build",
    "BuildContext",
    "BuildError",
    "BuildResult",
    "BuildState",
    "build_site",
    "load_config",
]
