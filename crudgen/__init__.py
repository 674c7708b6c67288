# File: crudgen/__init__.py
"""
CrudGen — CRUD Scaffold Generator for Laravel
==============================================

Turns an entity name plus a compact field and relation spec into the PHP
artifacts of a CRUD slice: an Eloquent model, its migration, pivot
migrations for many-to-many relations, a resource controller and store /
update form requests.

Architecture overview::

    ┌──────────────┐     ┌───────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ CrudGenerator │────▶│ TemplateRenderer │
    │   (cli.py)   │     │ (generator.py)│     │  (templates.py)  │
    └──────────────┘     └───────┬───────┘     └──────────────────┘
                                 │
              ┌──────────────┬───┴──────────┬──────────────┐
              ▼              ▼              ▼              ▼
        ┌──────────┐  ┌────────────┐  ┌──────────┐  ┌───────────┐
        │ parsers  │  │ validators │  │  models  │  │ exporters │
        │  (.py)   │  │   (.py)    │  │  (.py)   │  │   (.py)   │
        └──────────┘  └────────────┘  └──────────┘  └───────────┘

Usage::

    # As a library
    from crudgen import CrudGenerator, GenerationRequest
    result = CrudGenerator().build(GenerationRequest(
        entity_name="Post", field_spec="title:string,body:text",
    ))

    # From the command line
    crudgen Post --fields "title:string,body:text" --relations "belongsTo:User:user_id:id"
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from crudgen.exceptions import (
    ConfigError,
    CrudGenError,
    InvalidName,
    MalformedFieldSpec,
    MalformedRelationSpec,
    ScaffoldBackendError,
    TemplateContextError,
    TemplateNotFound,
)
from crudgen.models import (
    ArtifactKind,
    BackendType,
    FieldSpec,
    GeneratedArtifact,
    GenerationConfig,
    GenerationRequest,
    GenerationResult,
    GenerationState,
    PivotTable,
    RelationKind,
    RelationSpec,
    TemplateName,
    ValidationRuleSet,
)
from crudgen.parsers import parse_fields, parse_relations, pivot_table_name
from crudgen.validators import ValidationResult, derive_rule_sets, derive_rules
from crudgen.templates import (
    BuiltinTemplateStore,
    DirectoryTemplateStore,
    LayeredTemplateStore,
    TemplateRenderer,
)
from crudgen.exporters import (
    ArtisanScaffoldBackend,
    DryRunScaffoldBackend,
    ExportManifest,
    FilesystemScaffoldBackend,
)
from crudgen.generator import CrudGenerator, GenerationReport, build_config

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    "__version__",
    "__license__",
    # Orchestrator
    "CrudGenerator",
    "GenerationReport",
    "build_config",
    # Models
    "ArtifactKind",
    "BackendType",
    "FieldSpec",
    "GeneratedArtifact",
    "GenerationConfig",
    "GenerationRequest",
    "GenerationResult",
    "GenerationState",
    "PivotTable",
    "RelationKind",
    "RelationSpec",
    "TemplateName",
    "ValidationRuleSet",
    # Parsing & rules
    "parse_fields",
    "parse_relations",
    "pivot_table_name",
    "derive_rules",
    "derive_rule_sets",
    "ValidationResult",
    # Templates
    "BuiltinTemplateStore",
    "DirectoryTemplateStore",
    "LayeredTemplateStore",
    "TemplateRenderer",
    # Backends
    "ArtisanScaffoldBackend",
    "DryRunScaffoldBackend",
    "FilesystemScaffoldBackend",
    "ExportManifest",
    # Errors
    "CrudGenError",
    "InvalidName",
    "MalformedFieldSpec",
    "MalformedRelationSpec",
    "TemplateNotFound",
    "TemplateContextError",
    "ScaffoldBackendError",
    "ConfigError",
]
