# File: crudgen/models.py
"""
CrudGen - Core Data Models
===========================
Pydantic V2 models representing the parsed scaffold specification, the
generated artifacts, and the generation configuration.  These models are
the single source of truth for the pipeline:

    Spec Parsing → Rule Derivation → Template Rendering → Backend Writes

Parsed entities (``FieldSpec``, ``RelationSpec``, ``PivotTable``) are frozen:
they are built once per invocation and never mutated afterwards.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

from crudgen.utils import (
    base_name,
    count_lines,
    sha256_hex,
    to_camel_case,
    to_plural_camel_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.models")

# ---------------------------------------------------------------------------
# Enums — fixed sets used across the entire project
# ---------------------------------------------------------------------------


class RelationKind(str, Enum):
    """Eloquent relation kinds understood by the relation parser."""

    HAS_MANY = "hasMany"
    BELONGS_TO = "belongsTo"
    BELONGS_TO_MANY = "belongsToMany"
    HAS_ONE = "hasOne"

    @property
    def is_plural(self) -> bool:
        """To-many relations get a plural accessor name."""
        return self in (RelationKind.HAS_MANY, RelationKind.BELONGS_TO_MANY)

    @property
    def needs_pivot(self) -> bool:
        return self is RelationKind.BELONGS_TO_MANY

    @classmethod
    def from_token(cls, token: str) -> Optional["RelationKind"]:
        """Case-insensitive lookup; ``None`` for an unknown kind."""
        return _RELATION_KIND_LOOKUP.get(token.strip().lower())


_RELATION_KIND_LOOKUP: Dict[str, RelationKind] = {
    kind.value.lower(): kind for kind in RelationKind
}


class ArtifactKind(str, Enum):
    """Artifact kinds a scaffold backend knows how to create."""

    MODEL = "model"
    MIGRATION = "migration"
    CONTROLLER = "controller"
    REQUEST = "request"


class TemplateName(str, Enum):
    """Names under which the template store must supply templates."""

    MODEL = "model"
    MIGRATION = "migration"
    PIVOT_MIGRATION = "pivotMigration"
    CONTROLLER = "controller"
    STORE_REQUEST = "storeRequest"
    UPDATE_REQUEST = "updateRequest"


class GenerationState(str, Enum):
    """Orchestrator states, in the only order they can be visited."""

    IDLE = "idle"
    PARSING_FIELDS = "parsing_fields"
    PARSING_RELATIONS = "parsing_relations"
    DERIVING_RULES = "deriving_rules"
    RENDERING_ARTIFACTS = "rendering_artifacts"
    DONE = "done"
    FAILED = "failed"


class BackendType(str, Enum):
    """Available scaffold backends."""

    FILESYSTEM = "filesystem"
    ARTISAN = "artisan"
    DRY_RUN = "dry_run"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    frozen=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Parsed specification
# ---------------------------------------------------------------------------


class FieldSpec(BaseModel):
    """One ``name:type`` attribute of the scaffolded entity."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Attribute / column name.")
    type: str = Field(
        ...,
        min_length=1,
        description="Schema-builder method, reused verbatim as the validation rule token.",
    )

    def __repr__(self) -> str:
        return f"<Field {self.name}:{self.type}>"


class RelationSpec(BaseModel):
    """One declared association of the scaffolded entity."""

    model_config = _FROZEN_CONFIG

    kind: RelationKind = Field(..., description="Relation kind.")
    related_entity: str = Field(..., min_length=1, description="Related model name.")
    foreign_key: str = Field(..., min_length=1, description="Foreign key column.")
    local_key: str = Field(
        ...,
        min_length=1,
        description="Local key (owner key for belongsTo, related pivot key for belongsToMany).",
    )

    @computed_field  # type: ignore[misc]
    @property
    def accessor_name(self) -> str:
        """Method name on the generated model: ``user`` or ``tags``."""
        related: str = base_name(self.related_entity)
        if self.kind.is_plural:
            return to_plural_camel_case(related)
        return to_camel_case(related)

    @computed_field  # type: ignore[misc]
    @property
    def related_class(self) -> str:
        """PHP class reference for the related model (path separators normalised)."""
        return self.related_entity.replace("/", "\\")

    def __repr__(self) -> str:
        return (
            f"<Relation {self.kind.value} {self.related_entity} "
            f"({self.foreign_key}, {self.local_key})>"
        )


class PivotTable(BaseModel):
    """A join table required by a ``belongsToMany`` relation."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Deterministic pivot table name.")
    foreign_key: str = Field(..., min_length=1)
    related_key: str = Field(..., min_length=1)
    related_entity: str = Field(..., min_length=1)

    @computed_field  # type: ignore[misc]
    @property
    def migration_name(self) -> str:
        return f"create_{self.name}_table"


class ValidationRuleSet(BaseModel):
    """Ordered field → rule mapping for one request flavour."""

    model_config = _FROZEN_CONFIG

    nullability: Literal["required", "nullable"] = Field(
        ..., description="Leading rule segment shared by every field."
    )
    rules: Dict[str, str] = Field(
        default_factory=dict, description="Field name → pipe-joined rule string."
    )

    @computed_field  # type: ignore[misc]
    @property
    def field_names(self) -> List[str]:
        return list(self.rules)


# ---------------------------------------------------------------------------
# Input contract
# ---------------------------------------------------------------------------


class GenerationRequest(BaseModel):
    """
    The input the orchestrator accepts.

    ``entity_name`` is checked by the orchestrator (not here) so that an
    empty name surfaces as ``InvalidName`` rather than a pydantic error.
    """

    model_config = _SHARED_CONFIG

    entity_name: str = Field(..., description="Model name, e.g. 'Post' or 'Admin/Post'.")
    field_spec: str = Field(..., description="'name:type,name:type,…'")
    relation_spec: Optional[str] = Field(
        default=None, description="'kind:related:fk:lk,…' (optional)."
    )


# ---------------------------------------------------------------------------
# Generation output
# ---------------------------------------------------------------------------


class GeneratedArtifact(BaseModel):
    """A single rendered artifact, not yet placed on disk."""

    model_config = _FROZEN_CONFIG

    kind: ArtifactKind = Field(..., description="Backend artifact kind.")
    template: TemplateName = Field(..., description="Template it was rendered from.")
    target_name: str = Field(
        ..., min_length=1, description="Name handed to the backend, e.g. 'PostController'."
    )
    content: str = Field(..., description="Rendered text.")

    @computed_field  # type: ignore[misc]
    @property
    def line_count(self) -> int:
        return count_lines(self.content)

    @computed_field  # type: ignore[misc]
    @property
    def checksum(self) -> str:
        return sha256_hex(self.content)

    def __repr__(self) -> str:
        return f"<Artifact {self.kind.value}:{self.target_name} ({self.line_count} lines)>"


class GenerationResult(BaseModel):
    """
    Everything one ``CrudGenerator.build()`` call produced.

    ``artifacts`` is ordered: model, migration, pivot migrations,
    controller, store request, update request.
    """

    model_config = _SHARED_CONFIG

    request: GenerationRequest
    fields: List[FieldSpec] = Field(default_factory=list)
    relations: List[RelationSpec] = Field(default_factory=list)
    skipped_relations: List[str] = Field(
        default_factory=list, description="Relation tokens dropped for an unknown kind."
    )
    pivot_tables: List[PivotTable] = Field(default_factory=list)
    creation_rules: Optional[ValidationRuleSet] = None
    update_rules: Optional[ValidationRuleSet] = None
    artifacts: List[GeneratedArtifact] = Field(default_factory=list)
    states: List[GenerationState] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def fillable(self) -> List[str]:
        return [f.name for f in self.fields]

    @computed_field  # type: ignore[misc]
    @property
    def total_files(self) -> int:
        return len(self.artifacts)

    @computed_field  # type: ignore[misc]
    @property
    def total_lines(self) -> int:
        return sum(a.line_count for a in self.artifacts)

    def artifacts_for(self, template: TemplateName) -> List[GeneratedArtifact]:
        return [a for a in self.artifacts if a.template == template]

    def __repr__(self) -> str:
        return (
            f"<GenerationResult {self.request.entity_name}: "
            f"{self.total_files} artifacts, {self.total_lines} lines>"
        )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """
    Settings that control where artifacts go and how strictly input is read.

    Loaded from ``crudgen.yaml`` / ``crudgen.json`` and overridden by CLI
    flags.
    """

    model_config = _SHARED_CONFIG

    # -- Target project -----------------------------------------------------
    project_root: str = Field(default=".", min_length=1, description="Application root.")
    models_path: str = Field(default="app/Models", min_length=1)
    controllers_path: str = Field(default="app/Http/Controllers", min_length=1)
    requests_path: str = Field(default="app/Http/Requests", min_length=1)
    migrations_path: str = Field(default="database/migrations", min_length=1)
    model_namespace: str = Field(default="App\\Models", min_length=1)

    # -- Templates ----------------------------------------------------------
    stubs_dir: Optional[str] = Field(
        default=None, description="Directory with custom *.stub files."
    )
    use_builtin_stubs: bool = Field(
        default=True, description="Fall back to packaged stubs for missing custom ones."
    )

    # -- Backend ------------------------------------------------------------
    backend: BackendType = Field(default=BackendType.FILESYSTEM)
    php_binary: str = Field(default="php", min_length=1)
    artisan_timeout: float = Field(default=120.0, gt=0)
    overwrite_existing: bool = Field(
        default=False, description="Replace model/controller/request files that exist."
    )

    # -- Strictness ---------------------------------------------------------
    strict_relations: bool = Field(
        default=False, description="Reject unknown relation kinds instead of skipping them."
    )
    strict_placeholders: bool = Field(
        default=False, description="Fail on placeholders the render context does not cover."
    )

    @field_validator("model_namespace")
    @classmethod
    def _strip_namespace_separators(cls, v: str) -> str:
        stripped: str = v.strip("\\")
        if not stripped:
            raise ValueError("model_namespace must name at least one segment.")
        return stripped


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "RelationKind",
    "ArtifactKind",
    "TemplateName",
    "GenerationState",
    "BackendType",
    "FieldSpec",
    "RelationSpec",
    "PivotTable",
    "ValidationRuleSet",
    "GenerationRequest",
    "GeneratedArtifact",
    "GenerationResult",
    "GenerationConfig",
]

logger.debug("crudgen.models loaded — %d public symbols.", len(__all__))
