"""
tests/conftest.py
Shared fixtures for the crudgen test suite.

No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import logging
import pathlib
from datetime import datetime
from typing import Any, Callable, Dict, Iterator

import pytest
import yaml

from crudgen.exporters import DryRunScaffoldBackend, FilesystemScaffoldBackend
from crudgen.generator import CrudGenerator
from crudgen.models import GenerationConfig, GenerationRequest
from crudgen.templates import BUILTIN_STUBS, STUB_FILENAMES


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_crudgen_logger() -> Iterator[None]:
    """The CLI installs its own handler; undo that so caplog keeps working."""
    yield
    root_logger = logging.getLogger("crudgen")
    root_logger.handlers.clear()
    root_logger.setLevel(logging.NOTSET)
    root_logger.propagate = True


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@pytest.fixture()
def post_request() -> GenerationRequest:
    """Post with two fields and a belongsTo relation to User."""
    return GenerationRequest(
        entity_name="Post",
        field_spec="title:string,body:text",
        relation_spec="belongsTo:User:user_id:id",
    )


@pytest.fixture()
def tagged_post_request() -> GenerationRequest:
    """Post with a many-to-many relation to Tag (pivot table post_tag)."""
    return GenerationRequest(
        entity_name="Post",
        field_spec="title:string",
        relation_spec="belongsToMany:Tag:tag_id:post_id",
    )


# ---------------------------------------------------------------------------
# Project layout
# ---------------------------------------------------------------------------


@pytest.fixture()
def project_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """An empty Laravel-shaped application directory."""
    root = tmp_path / "app-root"
    for rel in ("app/Models", "app/Http/Controllers", "app/Http/Requests", "database/migrations"):
        (root / rel).mkdir(parents=True)
    return root


@pytest.fixture()
def config(project_root: pathlib.Path) -> GenerationConfig:
    return GenerationConfig(project_root=str(project_root))


@pytest.fixture()
def generator(config: GenerationConfig) -> CrudGenerator:
    return CrudGenerator(config)


@pytest.fixture()
def fixed_clock() -> Callable[[], datetime]:
    """A clock frozen at 2024-03-05 10:20:30."""
    return lambda: datetime(2024, 3, 5, 10, 20, 30)


@pytest.fixture()
def fs_backend(
    config: GenerationConfig, fixed_clock: Callable[[], datetime]
) -> FilesystemScaffoldBackend:
    return FilesystemScaffoldBackend(config, clock=fixed_clock)


@pytest.fixture()
def dry_backend(
    config: GenerationConfig, fixed_clock: Callable[[], datetime]
) -> DryRunScaffoldBackend:
    return DryRunScaffoldBackend(config, clock=fixed_clock)


# ---------------------------------------------------------------------------
# Stubs and config files
# ---------------------------------------------------------------------------


@pytest.fixture()
def stubs_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """A stub directory holding a copy of every built-in stub."""
    path = tmp_path / "stubs"
    path.mkdir()
    for name, filename in STUB_FILENAMES.items():
        (path / filename).write_text(BUILTIN_STUBS[name], encoding="utf-8")
    return path


@pytest.fixture()
def config_dict(project_root: pathlib.Path) -> Dict[str, Any]:
    return {
        "crudgen": {
            "project_root": str(project_root),
            "model_namespace": "Domain\\Models",
            "strict_relations": True,
        }
    }


@pytest.fixture()
def config_yaml_path(config_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the config dict to a temporary YAML file and return its path."""
    path = tmp_path / "crudgen.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(config_dict, fh, default_flow_style=False)
    return path
