"""
tests/test_cli.py
End-to-end tests for the crudgen command line.

Every run goes through ``cli_main`` and ends in ``SystemExit``; the exit
code is the assertion target.
"""

from __future__ import annotations

import json
import pathlib
from typing import List

import pytest

from crudgen.cli import (
    EXIT_BACKEND_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_SPEC_ERROR,
    EXIT_SUCCESS,
    EXIT_TEMPLATE_ERROR,
    cli_main,
    exit_code_for,
)
from crudgen.exceptions import (
    ConfigError,
    InvalidName,
    MalformedRelationSpec,
    ScaffoldBackendError,
    TemplateContextError,
)


def _run(argv: List[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        cli_main(argv)
    return exc_info.value.code


def _migrations(root: pathlib.Path) -> List[str]:
    return sorted(p.name for p in (root / "database/migrations").iterdir())


class TestExitCodes:
    @pytest.mark.parametrize(
        "exc, code",
        [
            (InvalidName("empty"), EXIT_SPEC_ERROR),
            (MalformedRelationSpec("bad", token="x", position=1), EXIT_SPEC_ERROR),
            (TemplateContextError("model", ["tableName"]), EXIT_TEMPLATE_ERROR),
            (ScaffoldBackendError("boom"), EXIT_BACKEND_ERROR),
            (ConfigError("bad config"), EXIT_INPUT_ERROR),
        ],
    )
    def test_mapping(self, exc, code: int) -> None:
        assert exit_code_for(exc) == code


class TestGenerateCommand:
    def test_success(self, project_root: pathlib.Path, capsys: pytest.CaptureFixture) -> None:
        code = _run([
            "Post",
            "--fields", "title:string,body:text",
            "--relations", "belongsTo:User:user_id:id",
            "--project-root", str(project_root),
        ])
        assert code == EXIT_SUCCESS
        assert "CRUD for Post created successfully." in capsys.readouterr().out
        model = (project_root / "app/Models/Post.php").read_text(encoding="utf-8")
        assert "return $this->belongsTo(User::class, 'user_id', 'id');" in model
        assert len(_migrations(project_root)) == 1

    def test_many_to_many_adds_pivot_migration(self, project_root: pathlib.Path) -> None:
        code = _run([
            "Post",
            "--fields", "title:string",
            "--relations", "belongsToMany:Tag:tag_id:post_id",
            "--project-root", str(project_root),
            "-q",
        ])
        assert code == EXIT_SUCCESS
        names = _migrations(project_root)
        assert names[0].endswith("_create_posts_table.php")
        assert names[1].endswith("_create_post_tag_table.php")

    def test_quiet_prints_nothing(
        self, project_root: pathlib.Path, capsys: pytest.CaptureFixture
    ) -> None:
        assert _run(["Post", "--fields", "title:string", "--project-root", str(project_root), "-q"]) == 0
        assert capsys.readouterr().out == ""

    def test_verbose_prints_report(
        self, project_root: pathlib.Path, capsys: pytest.CaptureFixture
    ) -> None:
        assert _run(["Post", "--fields", "title:string", "--project-root", str(project_root), "-v"]) == 0
        assert "Generation Report" in capsys.readouterr().err

    def test_print_writes_nothing(
        self, project_root: pathlib.Path, capsys: pytest.CaptureFixture
    ) -> None:
        code = _run(["Post", "--fields", "title:string", "--project-root", str(project_root), "--print"])
        assert code == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "// ---- model: Post ----" in out
        assert "// ---- updateRequest: PostUpdateRequest ----" in out
        assert not (project_root / "app/Models/Post.php").exists()

    def test_dry_run_writes_nothing(self, project_root: pathlib.Path) -> None:
        code = _run(["Post", "--fields", "title:string", "--project-root", str(project_root), "--dry-run"])
        assert code == EXIT_SUCCESS
        assert _migrations(project_root) == []
        assert not (project_root / "app/Models/Post.php").exists()

    def test_manifest_file(self, project_root: pathlib.Path, tmp_path: pathlib.Path) -> None:
        manifest = tmp_path / "out" / "manifest.json"
        code = _run([
            "Post", "--fields", "title:string",
            "--project-root", str(project_root),
            "--manifest", str(manifest),
            "-q",
        ])
        assert code == EXIT_SUCCESS
        data = json.loads(manifest.read_text(encoding="utf-8"))
        assert data["entity_name"] == "Post"
        assert data["total_files"] == 5

    def test_config_file(self, config_yaml_path: pathlib.Path, project_root: pathlib.Path) -> None:
        assert _run(["Post", "--fields", "title:string", "-c", str(config_yaml_path), "-q"]) == 0
        model = (project_root / "app/Models/Post.php").read_text(encoding="utf-8")
        assert "namespace Domain\\Models;" in model


class TestFailures:
    def test_malformed_field(self, project_root: pathlib.Path) -> None:
        code = _run(["Post", "--fields", "title:string,body", "--project-root", str(project_root)])
        assert code == EXIT_SPEC_ERROR
        assert not (project_root / "app/Models/Post.php").exists()

    def test_missing_fields_flag(self, project_root: pathlib.Path) -> None:
        assert _run(["Post", "--project-root", str(project_root)]) == EXIT_SPEC_ERROR

    def test_unknown_column_type_is_reported_by_default(
        self, project_root: pathlib.Path, capsys: pytest.CaptureFixture
    ) -> None:
        code = _run(["Post", "--fields", "title:strng", "--project-root", str(project_root)])
        assert code == EXIT_SUCCESS
        assert "W_FIELD_TYPE" in capsys.readouterr().err

    def test_unknown_relation_kind_when_strict(self, project_root: pathlib.Path) -> None:
        code = _run([
            "Post", "--fields", "title:string",
            "--relations", "morphTo:Image:x:y",
            "--project-root", str(project_root),
            "--strict-relations",
        ])
        assert code == EXIT_SPEC_ERROR

    def test_incomplete_stub_directory(
        self, project_root: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        stubs = tmp_path / "empty-stubs"
        stubs.mkdir()
        code = _run([
            "Post", "--fields", "title:string",
            "--project-root", str(project_root),
            "--stubs", str(stubs),
            "--no-builtin-stubs",
        ])
        assert code == EXIT_TEMPLATE_ERROR

    def test_existing_file(self, project_root: pathlib.Path) -> None:
        (project_root / "app/Http/Requests/PostStoreRequest.php").write_text("<?php\n", encoding="utf-8")
        code = _run(["Post", "--fields", "title:string", "--project-root", str(project_root)])
        assert code == EXIT_BACKEND_ERROR
        assert (project_root / "app/Models/Post.php").is_file()

    def test_force_overwrites(self, project_root: pathlib.Path) -> None:
        (project_root / "app/Models/Post.php").write_text("<?php\n", encoding="utf-8")
        code = _run(["Post", "--fields", "title:string", "--project-root", str(project_root), "--force"])
        assert code == EXIT_SUCCESS
        assert "class Post extends Model" in (project_root / "app/Models/Post.php").read_text(
            encoding="utf-8"
        )

    def test_missing_config_file(self, tmp_path: pathlib.Path) -> None:
        code = _run(["Post", "--fields", "title:string", "-c", str(tmp_path / "nope.yaml")])
        assert code == EXIT_INPUT_ERROR

    def test_missing_stub_directory(self, project_root: pathlib.Path, tmp_path: pathlib.Path) -> None:
        code = _run([
            "Post", "--fields", "title:string",
            "--project-root", str(project_root),
            "--stubs", str(tmp_path / "nope"),
        ])
        assert code == EXIT_INPUT_ERROR

    def test_bad_backend_choice_is_usage_error(self) -> None:
        assert _run(["Post", "--fields", "title:string", "--backend", "ftp"]) == 2
