"""
tests/test_exporters.py
Unit tests for crudgen.exporters (scaffold backends).

Tests cover:
- Laravel path layout for every artifact kind
- Migration timestamps (format, uniqueness within a run)
- Overwrite protection
- Latest-migration lookup
- Artisan backend command handling (with an injected runner)
- Dry-run backend isolation
- Manifest serialisation
"""

from __future__ import annotations

import json
import pathlib
import subprocess
from datetime import datetime
from typing import Any, Callable, List

import pytest

from crudgen.exceptions import ScaffoldBackendError
from crudgen.exporters import (
    ArtisanScaffoldBackend,
    DryRunScaffoldBackend,
    ExportManifest,
    FilesystemScaffoldBackend,
    build_backend,
    locate_latest_migration_file,
    make_file_record,
)
from crudgen.models import ArtifactKind, BackendType, GenerationConfig


# ===========================================================================
# Filesystem backend
# ===========================================================================


class TestFilesystemBackend:
    def test_class_artifact_paths(
        self, fs_backend: FilesystemScaffoldBackend, project_root: pathlib.Path
    ) -> None:
        model = fs_backend.create_bare_artifact(ArtifactKind.MODEL, "Post")
        controller = fs_backend.create_bare_artifact(ArtifactKind.CONTROLLER, "PostController")
        request = fs_backend.create_bare_artifact(ArtifactKind.REQUEST, "PostStoreRequest")
        root = project_root.resolve()
        assert model == root / "app/Models/Post.php"
        assert controller == root / "app/Http/Controllers/PostController.php"
        assert request == root / "app/Http/Requests/PostStoreRequest.php"
        assert model.is_file() and model.read_text() == ""

    def test_qualified_model_goes_to_subdirectory(
        self, fs_backend: FilesystemScaffoldBackend, project_root: pathlib.Path
    ) -> None:
        path = fs_backend.create_bare_artifact(ArtifactKind.MODEL, "Admin/Post")
        assert path == project_root.resolve() / "app/Models/Admin/Post.php"

    def test_migration_name_is_timestamped(self, fs_backend: FilesystemScaffoldBackend) -> None:
        path = fs_backend.create_bare_artifact(ArtifactKind.MIGRATION, "create_posts_table")
        assert path.name == "2024_03_05_102030_create_posts_table.php"
        assert path.parent.name == "migrations"

    def test_migrations_in_one_run_sort_in_creation_order(
        self, fs_backend: FilesystemScaffoldBackend
    ) -> None:
        first = fs_backend.create_bare_artifact(ArtifactKind.MIGRATION, "create_posts_table")
        second = fs_backend.create_bare_artifact(ArtifactKind.MIGRATION, "create_post_tag_table")
        assert first.name < second.name
        assert second.name.startswith("2024_03_05_102031_")

    def test_existing_migration_stamp_is_skipped(
        self,
        config: GenerationConfig,
        project_root: pathlib.Path,
        fixed_clock: Callable[[], datetime],
    ) -> None:
        (project_root / "database/migrations/2024_03_05_102030_create_users_table.php").touch()
        backend = FilesystemScaffoldBackend(config, clock=fixed_clock)
        path = backend.create_bare_artifact(ArtifactKind.MIGRATION, "create_posts_table")
        assert path.name == "2024_03_05_102031_create_posts_table.php"

    def test_refuses_to_overwrite(
        self, fs_backend: FilesystemScaffoldBackend, project_root: pathlib.Path
    ) -> None:
        (project_root / "app/Models/Post.php").write_text("<?php // mine", encoding="utf-8")
        with pytest.raises(ScaffoldBackendError) as exc_info:
            fs_backend.create_bare_artifact(ArtifactKind.MODEL, "Post")
        assert "already exists" in str(exc_info.value)
        assert exc_info.value.artifact == "Post"

    def test_overwrites_when_forced(
        self, project_root: pathlib.Path, fixed_clock: Callable[[], datetime]
    ) -> None:
        (project_root / "app/Models/Post.php").write_text("<?php // mine", encoding="utf-8")
        config = GenerationConfig(project_root=str(project_root), overwrite_existing=True)
        backend = FilesystemScaffoldBackend(config, clock=fixed_clock)
        path = backend.create_bare_artifact(ArtifactKind.MODEL, "Post")
        assert backend.write_artifact(path, "<?php // new\n") == len("<?php // new\n")
        assert path.read_text(encoding="utf-8") == "<?php // new\n"

    def test_creates_missing_directories(self, tmp_path: pathlib.Path) -> None:
        backend = FilesystemScaffoldBackend(GenerationConfig(project_root=str(tmp_path)))
        path = backend.create_bare_artifact(ArtifactKind.REQUEST, "PostUpdateRequest")
        assert path.parent.is_dir()

    def test_write_failure_is_wrapped(
        self, fs_backend: FilesystemScaffoldBackend, project_root: pathlib.Path
    ) -> None:
        blocker = project_root / "app/Models/Blocked"
        blocker.write_text("not a directory", encoding="utf-8")
        with pytest.raises(ScaffoldBackendError):
            fs_backend.write_artifact(blocker / "Post.php", "<?php")

    def test_relative_path(
        self, fs_backend: FilesystemScaffoldBackend, project_root: pathlib.Path
    ) -> None:
        path = project_root.resolve() / "app/Models/Post.php"
        assert fs_backend.relative_path(path) == "app/Models/Post.php"


# ===========================================================================
# Migration lookup
# ===========================================================================


class TestLocateLatestMigration:
    def test_newest_match_wins(self, tmp_path: pathlib.Path) -> None:
        for name in (
            "2023_01_01_000000_create_posts_table.php",
            "2024_01_01_000000_create_posts_table.php",
            "2024_06_01_000000_create_users_table.php",
        ):
            (tmp_path / name).touch()
        assert (
            locate_latest_migration_file(tmp_path, "create_posts_table")
            == "2024_01_01_000000_create_posts_table.php"
        )

    def test_no_match(self, tmp_path: pathlib.Path) -> None:
        assert locate_latest_migration_file(tmp_path, "create_posts_table") is None

    def test_missing_directory(self, tmp_path: pathlib.Path) -> None:
        assert locate_latest_migration_file(tmp_path / "nope", "create_posts_table") is None


# ===========================================================================
# Artisan backend
# ===========================================================================


class FakeArtisan:
    """Stands in for subprocess.run; creates files the way artisan would."""

    def __init__(self, root: pathlib.Path, returncode: int = 0) -> None:
        self.root = root
        self.returncode = returncode
        self.calls: List[List[str]] = []

    def __call__(self, args: List[str], **kwargs: Any) -> subprocess.CompletedProcess:
        self.calls.append(list(args))
        assert kwargs["cwd"] == str(self.root.resolve())
        command, name = args[2], args[3]
        if self.returncode == 0:
            if command == "make:model":
                target = self.root / "app/Models" / f"{name}.php"
            elif command == "make:migration":
                target = self.root / "database/migrations" / f"2024_03_05_102030_{name}.php"
            elif command == "make:controller":
                target = self.root / "app/Http/Controllers" / f"{name}.php"
            else:
                target = self.root / "app/Http/Requests" / f"{name}.php"
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text("<?php // artisan\n", encoding="utf-8")
        return subprocess.CompletedProcess(args, self.returncode, stdout="", stderr="boom")


class TestArtisanBackend:
    @pytest.fixture()
    def artisan_root(self, project_root: pathlib.Path) -> pathlib.Path:
        (project_root / "artisan").write_text("#!/usr/bin/env php\n", encoding="utf-8")
        return project_root

    def test_runs_make_command_and_returns_created_file(
        self, config: GenerationConfig, artisan_root: pathlib.Path
    ) -> None:
        runner = FakeArtisan(artisan_root)
        backend = ArtisanScaffoldBackend(config, runner=runner)
        path = backend.create_bare_artifact(ArtifactKind.MODEL, "Post")
        assert runner.calls == [["php", "artisan", "make:model", "Post"]]
        assert path == artisan_root.resolve() / "app/Models/Post.php"

    def test_migration_is_located_after_creation(
        self, config: GenerationConfig, artisan_root: pathlib.Path
    ) -> None:
        backend = ArtisanScaffoldBackend(config, runner=FakeArtisan(artisan_root))
        path = backend.create_bare_artifact(ArtifactKind.MIGRATION, "create_posts_table")
        assert path.name == "2024_03_05_102030_create_posts_table.php"
        backend.write_artifact(path, "<?php // rendered\n")
        assert path.read_text(encoding="utf-8") == "<?php // rendered\n"

    def test_nonzero_exit_is_backend_error(
        self, config: GenerationConfig, artisan_root: pathlib.Path
    ) -> None:
        backend = ArtisanScaffoldBackend(config, runner=FakeArtisan(artisan_root, returncode=1))
        with pytest.raises(ScaffoldBackendError) as exc_info:
            backend.create_bare_artifact(ArtifactKind.CONTROLLER, "PostController")
        assert "exited with status 1" in str(exc_info.value)
        assert "boom" in str(exc_info.value)

    def test_missing_php_binary_is_backend_error(
        self, config: GenerationConfig, artisan_root: pathlib.Path
    ) -> None:
        def _missing(*args: Any, **kwargs: Any) -> subprocess.CompletedProcess:
            raise FileNotFoundError("php")

        backend = ArtisanScaffoldBackend(config, runner=_missing)
        with pytest.raises(ScaffoldBackendError):
            backend.create_bare_artifact(ArtifactKind.MODEL, "Post")

    def test_timeout_is_backend_error(
        self, config: GenerationConfig, artisan_root: pathlib.Path
    ) -> None:
        def _slow(args: List[str], **kwargs: Any) -> subprocess.CompletedProcess:
            raise subprocess.TimeoutExpired(args, kwargs["timeout"])

        backend = ArtisanScaffoldBackend(config, runner=_slow)
        with pytest.raises(ScaffoldBackendError) as exc_info:
            backend.create_bare_artifact(ArtifactKind.MODEL, "Post")
        assert "timed out" in str(exc_info.value)

    def test_requires_artisan_script(self, config: GenerationConfig) -> None:
        backend = ArtisanScaffoldBackend(config, runner=FakeArtisan(pathlib.Path(config.project_root)))
        with pytest.raises(ScaffoldBackendError) as exc_info:
            backend.create_bare_artifact(ArtifactKind.MODEL, "Post")
        assert "artisan" in str(exc_info.value)

    def test_migration_not_found_after_success(
        self, config: GenerationConfig, artisan_root: pathlib.Path
    ) -> None:
        def _silent(args: List[str], **kwargs: Any) -> subprocess.CompletedProcess:
            return subprocess.CompletedProcess(args, 0, stdout="", stderr="")

        backend = ArtisanScaffoldBackend(config, runner=_silent)
        with pytest.raises(ScaffoldBackendError):
            backend.create_bare_artifact(ArtifactKind.MIGRATION, "create_posts_table")


# ===========================================================================
# Dry-run backend
# ===========================================================================


class TestDryRunBackend:
    def test_touches_nothing(
        self, dry_backend: DryRunScaffoldBackend, project_root: pathlib.Path
    ) -> None:
        path = dry_backend.create_bare_artifact(ArtifactKind.MODEL, "Post")
        size = dry_backend.write_artifact(path, "<?php\n")
        assert size == 6
        assert not path.exists()
        assert dry_backend.writes[path] == "<?php\n"

    def test_planned_migrations_get_distinct_stamps(
        self, dry_backend: DryRunScaffoldBackend
    ) -> None:
        first = dry_backend.create_bare_artifact(ArtifactKind.MIGRATION, "create_posts_table")
        second = dry_backend.create_bare_artifact(ArtifactKind.MIGRATION, "create_post_tag_table")
        assert first.name != second.name
        assert (
            dry_backend.locate_latest_migration_file(first.parent, "create_post_tag_table")
            == second.name
        )

    def test_still_reports_existing_files(
        self, dry_backend: DryRunScaffoldBackend, project_root: pathlib.Path
    ) -> None:
        (project_root / "app/Models/Post.php").touch()
        with pytest.raises(ScaffoldBackendError):
            dry_backend.create_bare_artifact(ArtifactKind.MODEL, "Post")


# ===========================================================================
# Factory and manifest
# ===========================================================================


class TestFactoryAndManifest:
    @pytest.mark.parametrize(
        "backend_type, cls",
        [
            (BackendType.FILESYSTEM, FilesystemScaffoldBackend),
            (BackendType.ARTISAN, ArtisanScaffoldBackend),
            (BackendType.DRY_RUN, DryRunScaffoldBackend),
        ],
    )
    def test_build_backend(self, tmp_path: pathlib.Path, backend_type: BackendType, cls: type) -> None:
        backend = build_backend(GenerationConfig(project_root=str(tmp_path), backend=backend_type))
        assert isinstance(backend, cls)
        assert backend.name == backend_type.value

    def test_manifest_totals_and_json(
        self, fs_backend: FilesystemScaffoldBackend, project_root: pathlib.Path
    ) -> None:
        path = fs_backend.create_bare_artifact(ArtifactKind.MODEL, "Post")
        content = "<?php\nclass Post {}\n"
        size = fs_backend.write_artifact(path, content)
        manifest = ExportManifest(entity_name="Post", backend=fs_backend.name)
        manifest.add(make_file_record(fs_backend, "Post", ArtifactKind.MODEL, path, content, size))
        assert manifest.total_files == 1
        assert manifest.total_bytes == size
        assert manifest.total_lines == 2

        data = json.loads(manifest.to_json())
        assert data["files"][0]["relative_path"] == "app/Models/Post.php"
        assert data["files"][0]["kind"] == "model"
        assert len(data["files"][0]["sha256"]) == 64
