"""Rebuild-on-change watching for Tessera.

Watches the content and template directories and the configuration file,
and runs a full build whenever something changes. Builds are never
incremental; every change runs a fresh Build from a freshly loaded
configuration.

Key classes:
- SiteWatcher: Owns the observer and serialises rebuilds.
- _ChangeHandler: File system event handler that triggers rebuilds.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import CONFIG_FILENAME, Build, BuildResult, load_config
from .errors import BuildError
from .utils import is_within


class SiteWatcher:
    """Runs a full build whenever a source file changes.

    Attributes:
        project_root: Root directory of the project.
        config_file: Optional explicit configuration file.
        config: Configuration used to pick the watched directories.
        logger: Logger for the watcher and every build it starts.
        last_result: Result of the most recent successful build.
    """

    def __init__(
        self,
        project_root: Path,
        config_file: Path | None = None,
        logger: logging.Logger | None = None,
    ):
        self.project_root = project_root.resolve()
        self.config_file = config_file
        self.logger = logger or logging.getLogger("tessera.watch")
        self.config: dict[str, Any] = load_config(self.project_root, config_file)
        self.last_result: BuildResult | None = None
        self._observer: Observer | None = None
        self._rebuilding = False
        self._last_rebuild_at = 0.0
        self._debounce_seconds = 0.2

    @property
    def config_path(self) -> Path:
        return (self.project_root / (self.config_file or CONFIG_FILENAME)).resolve()

    def ignored_dirs(self) -> list[Path]:
        """Directories whose events never trigger a rebuild."""
        output = Path(self.config["output_dir"])
        return [
            output,
            output.with_name(f"{output.name}.old"),
            Path(self.config["temp_dir"]),
        ]

    def watched_dirs(self) -> list[Path]:
        dirs = [Path(self.config["content_dir"]), Path(self.config["template_dir"])]
        return [d for d in dirs if d.is_dir()]

    def should_rebuild(self, path: Path) -> bool:
        """Check whether a change to ``path`` warrants a rebuild."""
        path = path.resolve()
        if any(is_within(path, ignored) for ignored in self.ignored_dirs()):
            return False
        if path == self.config_path:
            return True
        return any(is_within(path, watched) for watched in self.watched_dirs())

    def start(self) -> None:  # pragma: no cover - integration path
        """Build once, then watch until interrupted."""
        self.rebuild(force=True)
        self._start_observer()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def _start_observer(self) -> None:
        handler = _ChangeHandler(self)
        observer = Observer()
        for folder in self.watched_dirs():
            observer.schedule(handler, str(folder), recursive=True)
        # The config file lives in a directory that may also hold the output
        observer.schedule(handler, str(self.config_path.parent), recursive=False)
        observer.start()
        self._observer = observer
        self.logger.info(
            "Watching %s for changes",
            ", ".join(str(folder) for folder in self.watched_dirs()),
        )

    def rebuild(self, force: bool = False) -> BuildResult | None:
        """Reload the configuration and run a full build.

        Build errors are logged and swallowed so the watcher keeps running.

        Args:
            force: Skip the debounce window.

        Returns:
            The BuildResult, or None when the build was skipped or failed.
        """
        now = time.time()
        if self._rebuilding:
            return None
        if not force and (now - self._last_rebuild_at) < self._debounce_seconds:
            return None
        self._rebuilding = True
        try:
            self.logger.info("Change detected; rebuilding...")
            self.config = load_config(self.project_root, self.config_file)
            self.last_result = Build(self.config, logger=self.logger).run()
            return self.last_result
        except BuildError as exc:
            self.logger.error("Build failed: %s", exc)
            return None
        finally:
            self._rebuilding = False
            self._last_rebuild_at = time.time()


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: SiteWatcher):
        super().__init__()
        self.watcher = watcher

    def on_any_event(self, event):
        if event.is_directory:
            return
        if not self.watcher.should_rebuild(Path(event.src_path)):
            return
        self.watcher.rebuild()
