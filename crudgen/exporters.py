# File: crudgen/exporters.py
"""
CrudGen - Scaffold Backends (File Placement)
=============================================

The generator never decides where a file lives.  It asks a *scaffold
backend* for a bare target (``create_bare_artifact``), then writes the
rendered text there (``write_artifact``).  Three backends ship:

    1. ``FilesystemScaffoldBackend`` — creates the files itself, following
       Laravel's directory conventions, with atomic writes.
    2. ``ArtisanScaffoldBackend`` — runs ``php artisan make:*`` in the
       target project and overwrites whatever the command created.
    3. ``DryRunScaffoldBackend`` — computes the same paths as the
       filesystem backend and keeps the writes in memory.

Every ``OSError`` or subprocess failure surfaces as ``ScaffoldBackendError``.
Artifacts written before a failure stay on disk; each write is atomic.
"""

from __future__ import annotations

import json
import logging
import subprocess
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence

from crudgen.exceptions import ScaffoldBackendError
from crudgen.models import ArtifactKind, BackendType, GenerationConfig
from crudgen.utils import count_lines, ensure_directory, sha256_hex, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.exporters")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIGRATION_TIMESTAMP_FORMAT: str = "%Y_%m_%d_%H%M%S"
PHP_SUFFIX: str = ".php"

_ARTISAN_COMMANDS: Dict[ArtifactKind, str] = {
    ArtifactKind.MODEL: "make:model",
    ArtifactKind.MIGRATION: "make:migration",
    ArtifactKind.CONTROLLER: "make:controller",
    ArtifactKind.REQUEST: "make:request",
}


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single written artifact."""

    artifact: str
    kind: str
    relative_path: str
    absolute_path: str
    size_bytes: int
    line_count: int
    sha256: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artifact": self.artifact,
            "kind": self.kind,
            "relative_path": self.relative_path,
            "absolute_path": self.absolute_path,
            "size_bytes": self.size_bytes,
            "line_count": self.line_count,
            "sha256": self.sha256,
        }


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """
    Everything one ``generate()`` call wrote, in write order.

    Serialisable to JSON so a run can be audited afterwards.
    """

    entity_name: str = ""
    generator_version: str = ""
    export_timestamp: str = ""
    project_root: str = ""
    backend: str = ""
    files: List[FileRecord] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def total_bytes(self) -> int:
        return sum(f.size_bytes for f in self.files)

    @property
    def total_lines(self) -> int:
        return sum(f.line_count for f in self.files)

    def add(self, record: FileRecord) -> None:
        self.files.append(record)

    def to_dict(self) -> Dict[str, Any]:
        """Convert manifest to a JSON-serialisable dictionary."""
        return {
            "entity_name": self.entity_name,
            "generator_version": self.generator_version,
            "export_timestamp": self.export_timestamp,
            "project_root": self.project_root,
            "backend": self.backend,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [f.to_dict() for f in self.files],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


def new_manifest(entity_name: str, backend: "ScaffoldBackend") -> ExportManifest:
    """Start an empty manifest stamped with the current time and version."""
    import crudgen

    return ExportManifest(
        entity_name=entity_name,
        generator_version=crudgen.__version__,
        export_timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
        project_root=str(backend.project_root),
        backend=backend.name,
    )


def make_file_record(
    backend: "ScaffoldBackend",
    artifact: str,
    kind: ArtifactKind,
    path: Path,
    content: str,
    size_bytes: int,
) -> FileRecord:
    return FileRecord(
        artifact=artifact,
        kind=kind.value,
        relative_path=backend.relative_path(path),
        absolute_path=str(path),
        size_bytes=size_bytes,
        line_count=count_lines(content),
        sha256=sha256_hex(content),
    )


# ---------------------------------------------------------------------------
# Migration discovery
# ---------------------------------------------------------------------------


def locate_latest_migration_file(
    path_prefix: Path,
    name_fragment: str,
    extra_names: Iterable[str] = (),
) -> Optional[str]:
    """
    Return the newest file name in *path_prefix* that contains *name_fragment*.

    Migration files start with a sortable timestamp, so the names are
    scanned in descending order and the first match wins.  A missing
    directory yields ``None``.
    """
    directory: Path = Path(path_prefix)
    names: List[str] = list(extra_names)
    try:
        names.extend(entry.name for entry in directory.iterdir())
    except FileNotFoundError:
        pass
    except OSError as exc:
        raise ScaffoldBackendError(
            f"Cannot list migrations in {directory}: {exc}", path=directory
        ) from exc

    for name in sorted(set(names), reverse=True):
        if name_fragment in name:
            return name
    return None


# ---------------------------------------------------------------------------
# Backend protocol
# ---------------------------------------------------------------------------


class ScaffoldBackend(Protocol):
    """Creates bare artifacts and receives their rendered text."""

    name: str

    @property
    def project_root(self) -> Path: ...

    def create_bare_artifact(self, kind: ArtifactKind, name: str) -> Path: ...

    def locate_latest_migration_file(
        self, path_prefix: Path, name_fragment: str
    ) -> Optional[str]: ...

    def write_artifact(self, path: Path, content: str) -> int: ...

    def relative_path(self, path: Path) -> str: ...


# ---------------------------------------------------------------------------
# Laravel layout shared by every backend
# ---------------------------------------------------------------------------


class _LaravelLayout:
    """Maps artifact kinds and names to paths inside a Laravel project."""

    name: str = "layout"

    def __init__(self, config: GenerationConfig) -> None:
        self._config: GenerationConfig = config
        self._root: Path = Path(config.project_root).resolve()

    @property
    def project_root(self) -> Path:
        return self._root

    @property
    def config(self) -> GenerationConfig:
        return self._config

    def directory_for(self, kind: ArtifactKind) -> Path:
        relative: Dict[ArtifactKind, str] = {
            ArtifactKind.MODEL: self._config.models_path,
            ArtifactKind.MIGRATION: self._config.migrations_path,
            ArtifactKind.CONTROLLER: self._config.controllers_path,
            ArtifactKind.REQUEST: self._config.requests_path,
        }
        return self._root / relative[kind]

    def artifact_path(self, kind: ArtifactKind, name: str) -> Path:
        """
        Class file path for a non-migration artifact.

        ``Admin/Post`` (or ``Admin\\Post``) lands in an ``Admin``
        subdirectory, as ``artisan make:model`` would place it.
        """
        segments: List[str] = [s for s in name.replace("\\", "/").split("/") if s]
        if not segments:
            raise ScaffoldBackendError(f"Empty artifact name for {kind.value}.", artifact=name)
        path: Path = self.directory_for(kind).joinpath(*segments[:-1])
        return path / f"{segments[-1]}{PHP_SUFFIX}"

    def relative_path(self, path: Path) -> str:
        try:
            return path.relative_to(self._root).as_posix()
        except ValueError:
            return str(path)

    def locate_latest_migration_file(
        self, path_prefix: Path, name_fragment: str
    ) -> Optional[str]:
        return locate_latest_migration_file(path_prefix, name_fragment)

    def _check_overwrite(self, path: Path, name: str) -> None:
        if path.exists() and not self._config.overwrite_existing:
            raise ScaffoldBackendError(
                f"{self.relative_path(path)} already exists; use --force to overwrite it.",
                path=path,
                artifact=name,
            )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} root={self._root}>"


class _TimestampedMigrations(_LaravelLayout):
    """Hands out strictly increasing migration timestamps."""

    def __init__(
        self,
        config: GenerationConfig,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        super().__init__(config)
        self._clock: Callable[[], datetime] = clock
        self._last_stamp: Optional[datetime] = None

    def _taken_names(self) -> Sequence[str]:
        directory: Path = self.directory_for(ArtifactKind.MIGRATION)
        try:
            return [entry.name for entry in directory.iterdir()]
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise ScaffoldBackendError(
                f"Cannot list migrations in {directory}: {exc}", path=directory
            ) from exc

    def new_migration_path(self, name: str) -> Path:
        """
        ``<migrations>/<YYYY_MM_DD_HHMMSS>_<name>.php``.

        Migrations created in the same run get distinct, increasing stamps
        so the table migration always sorts before its pivot migrations.
        """
        stamp: datetime = self._clock().replace(microsecond=0)
        if self._last_stamp is not None and stamp <= self._last_stamp:
            stamp = self._last_stamp + timedelta(seconds=1)

        taken: Sequence[str] = self._taken_names()
        while any(n.startswith(stamp.strftime(MIGRATION_TIMESTAMP_FORMAT)) for n in taken):
            stamp += timedelta(seconds=1)

        self._last_stamp = stamp
        filename: str = f"{stamp.strftime(MIGRATION_TIMESTAMP_FORMAT)}_{name}{PHP_SUFFIX}"
        return self.directory_for(ArtifactKind.MIGRATION) / filename


# ---------------------------------------------------------------------------
# Filesystem backend
# ---------------------------------------------------------------------------


class FilesystemScaffoldBackend(_TimestampedMigrations):
    """
    Creates the files directly.

    Usage::

        backend = FilesystemScaffoldBackend(config)
        path = backend.create_bare_artifact(ArtifactKind.MODEL, "Post")
        backend.write_artifact(path, text)

    Not thread-safe: migration stamps are handed out sequentially.
    """

    name: str = BackendType.FILESYSTEM.value

    def create_bare_artifact(self, kind: ArtifactKind, name: str) -> Path:
        if kind is ArtifactKind.MIGRATION:
            path: Path = self.new_migration_path(name)
        else:
            path = self.artifact_path(kind, name)
            self._check_overwrite(path, name)

        try:
            ensure_directory(path.parent)
            path.touch(exist_ok=True)
        except OSError as exc:
            raise ScaffoldBackendError(
                f"Could not create {self.relative_path(path)}: {exc}",
                path=path,
                artifact=name,
            ) from exc

        logger.debug("Created bare %s '%s' at %s.", kind.value, name, path)
        return path

    def write_artifact(self, path: Path, content: str) -> int:
        try:
            written: int = write_file(path, content, atomic=True)
        except OSError as exc:
            raise ScaffoldBackendError(
                f"Failed to write {self.relative_path(path)}: {exc}", path=path
            ) from exc
        logger.info("Wrote %s (%d bytes).", self.relative_path(path), written)
        return written


# ---------------------------------------------------------------------------
# Artisan backend
# ---------------------------------------------------------------------------


class ArtisanScaffoldBackend(_LaravelLayout):
    """
    Delegates file creation to ``php artisan make:*``.

    After the command succeeds the created file is located (migrations by
    name fragment, since artisan picks the timestamp) and then overwritten
    with the rendered artifact.
    """

    name: str = BackendType.ARTISAN.value

    def __init__(
        self,
        config: GenerationConfig,
        *,
        runner: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run,
    ) -> None:
        super().__init__(config)
        self._runner: Callable[..., subprocess.CompletedProcess[str]] = runner

    def _run_artisan(self, command: str, name: str) -> subprocess.CompletedProcess[str]:
        artisan: Path = self._root / "artisan"
        if not artisan.is_file():
            raise ScaffoldBackendError(
                f"No artisan script in {self._root}; is this a Laravel project?",
                path=artisan,
                artifact=name,
            )

        args: List[str] = [self._config.php_binary, "artisan", command, name]
        printable: str = " ".join(args)
        logger.info("Running: %s", printable)

        try:
            completed: subprocess.CompletedProcess[str] = self._runner(
                args,
                cwd=str(self._root),
                capture_output=True,
                text=True,
                timeout=self._config.artisan_timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise ScaffoldBackendError(
                f"'{printable}' timed out after {self._config.artisan_timeout:g}s.",
                artifact=name,
            ) from exc
        except OSError as exc:
            raise ScaffoldBackendError(
                f"Could not run '{printable}': {exc}", artifact=name
            ) from exc

        if completed.returncode != 0:
            detail: str = (completed.stderr or completed.stdout or "").strip()
            raise ScaffoldBackendError(
                f"'{printable}' exited with status {completed.returncode}: {detail}",
                artifact=name,
            )

        logger.debug("artisan output: %s", (completed.stdout or "").strip())
        return completed

    def create_bare_artifact(self, kind: ArtifactKind, name: str) -> Path:
        if kind is ArtifactKind.MIGRATION:
            self._run_artisan(_ARTISAN_COMMANDS[kind], name)
            directory: Path = self.directory_for(kind)
            found: Optional[str] = self.locate_latest_migration_file(directory, name)
            if found is None:
                raise ScaffoldBackendError(
                    f"artisan reported success but no migration matching '{name}' "
                    f"exists in {self.relative_path(directory)}.",
                    path=directory,
                    artifact=name,
                )
            return directory / found

        path: Path = self.artifact_path(kind, name)
        self._check_overwrite(path, name)
        self._run_artisan(_ARTISAN_COMMANDS[kind], name)
        if not path.is_file():
            raise ScaffoldBackendError(
                f"artisan reported success but {self.relative_path(path)} does not exist.",
                path=path,
                artifact=name,
            )
        return path

    def write_artifact(self, path: Path, content: str) -> int:
        try:
            written: int = write_file(path, content, atomic=True)
        except OSError as exc:
            raise ScaffoldBackendError(
                f"Failed to write {self.relative_path(path)}: {exc}", path=path
            ) from exc
        logger.info("Wrote %s (%d bytes).", self.relative_path(path), written)
        return written


# ---------------------------------------------------------------------------
# Dry-run backend
# ---------------------------------------------------------------------------


class DryRunScaffoldBackend(_TimestampedMigrations):
    """Plans the same paths as the filesystem backend; touches nothing."""

    name: str = BackendType.DRY_RUN.value

    def __init__(
        self,
        config: GenerationConfig,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        super().__init__(config, clock=clock)
        self.writes: Dict[Path, str] = {}

    def _taken_names(self) -> Sequence[str]:
        planned: List[str] = [p.name for p in self.writes]
        return [*super()._taken_names(), *planned]

    def create_bare_artifact(self, kind: ArtifactKind, name: str) -> Path:
        if kind is ArtifactKind.MIGRATION:
            path: Path = self.new_migration_path(name)
        else:
            path = self.artifact_path(kind, name)
            self._check_overwrite(path, name)
        self.writes.setdefault(path, "")
        logger.info("[dry-run] would create %s", self.relative_path(path))
        return path

    def locate_latest_migration_file(
        self, path_prefix: Path, name_fragment: str
    ) -> Optional[str]:
        planned: List[str] = [p.name for p in self.writes if p.parent == Path(path_prefix)]
        return locate_latest_migration_file(path_prefix, name_fragment, planned)

    def write_artifact(self, path: Path, content: str) -> int:
        self.writes[path] = content
        size: int = len(content.encode("utf-8"))
        logger.info("[dry-run] would write %s (%d bytes)", self.relative_path(path), size)
        return size


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def build_backend(config: GenerationConfig) -> ScaffoldBackend:
    """Instantiate the backend named by ``config.backend``."""
    if config.backend is BackendType.ARTISAN:
        return ArtisanScaffoldBackend(config)
    if config.backend is BackendType.DRY_RUN:
        return DryRunScaffoldBackend(config)
    return FilesystemScaffoldBackend(config)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MIGRATION_TIMESTAMP_FORMAT",
    "FileRecord",
    "ExportManifest",
    "ScaffoldBackend",
    "FilesystemScaffoldBackend",
    "ArtisanScaffoldBackend",
    "DryRunScaffoldBackend",
    "build_backend",
    "locate_latest_migration_file",
    "make_file_record",
    "new_manifest",
]

logger.debug("crudgen.exporters loaded.")
