# File: crudgen/generator.py
"""
CrudGen - Generation Pipeline (Orchestrator)
=============================================

Connects every phase together:

    Field Spec → Relation Spec → Rule Derivation → Rendering → Backend Writes

``CrudGenerator.build()`` is pure: it parses, derives and renders, and
returns a ``GenerationResult`` holding the artifacts in their fixed order
(model, migration, pivot migrations, controller, store request, update
request).  It walks a small state machine::

    idle → parsing_fields → parsing_relations → deriving_rules
         → rendering_artifacts → done

and any error moves it to ``failed`` and propagates.  Nothing has touched
the filesystem at that point.

``CrudGenerator.generate()`` builds first, then hands each artifact to a
scaffold backend.  A backend failure stops the remaining writes; what was
already written is listed in the report's manifest.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError

from crudgen.exceptions import ConfigError, CrudGenError, ScaffoldBackendError
from crudgen.exporters import (
    ExportManifest,
    ScaffoldBackend,
    build_backend,
    make_file_record,
    new_manifest,
)
from crudgen.models import (
    ArtifactKind,
    FieldSpec,
    GeneratedArtifact,
    GenerationConfig,
    GenerationRequest,
    GenerationResult,
    GenerationState,
    PivotTable,
    TemplateName,
    ValidationRuleSet,
)
from crudgen.parsers import (
    RelationParseResult,
    build_fillable_list,
    build_migration_columns,
    build_relation_methods,
    collect_pivot_tables,
    parse_fields,
    parse_relations,
)
from crudgen.templates import TemplateRenderer, TemplateStore, build_template_store
from crudgen.utils import (
    Timer,
    base_name,
    namespace_of,
    require_name,
    to_camel_case,
    to_plural_snake_case,
)
from crudgen.validators import ValidationResult, derive_rule_sets, format_rules, validate_request

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.generator")

CONFIG_SECTION_KEYS: Tuple[str, ...] = ("crudgen", "config")


# ---------------------------------------------------------------------------
# Entity naming
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EntityNames:
    """Every identifier derived from the entity name, computed once."""

    entity: str
    model_name: str
    model_target: str
    model_namespace: str
    model_variable: str
    table_name: str
    controller_name: str
    store_request_name: str
    update_request_name: str

    @property
    def migration_name(self) -> str:
        return f"create_{self.table_name}_table"

    @classmethod
    def from_entity(cls, entity_name: str, root_namespace: str) -> "EntityNames":
        """
        ``Post`` → ``Post`` / ``posts`` / ``PostController`` ...

        A qualified name such as ``Admin/Post`` keeps ``Post`` as the class
        and appends the qualifier to the model namespace and directory.

        Raises:
            InvalidName: empty name, or one that yields no identifier.
        """
        entity: str = require_name(entity_name)
        model_name: str = base_name(entity)
        qualifier: Tuple[str, ...] = namespace_of(entity)
        table_name: str = to_plural_snake_case(model_name)
        return cls(
            entity=entity,
            model_name=model_name,
            model_target="/".join((*qualifier, model_name)),
            model_namespace="\\".join((root_namespace, *qualifier)),
            model_variable=to_camel_case(model_name),
            table_name=table_name,
            controller_name=f"{model_name}Controller",
            store_request_name=f"{model_name}StoreRequest",
            update_request_name=f"{model_name}UpdateRequest",
        )


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``CrudGenerator.generate()``.

    ``failure`` holds the backend error that stopped the writes, if any;
    ``manifest`` lists the files written before it.
    """

    success: bool = False
    entity_name: str = ""
    backend: str = ""
    project_root: str = ""
    total_elapsed_seconds: float = 0.0

    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    skipped_relations: List[str] = field(default_factory=list)

    result: Optional[GenerationResult] = None
    manifest: Optional[ExportManifest] = None
    failure: Optional[CrudGenError] = None

    @property
    def total_files(self) -> int:
        return self.manifest.total_files if self.manifest else 0

    @property
    def total_bytes(self) -> int:
        return self.manifest.total_bytes if self.manifest else 0

    @property
    def total_lines(self) -> int:
        return self.manifest.total_lines if self.manifest else 0

    @property
    def success_message(self) -> str:
        return f"CRUD for {self.entity_name} created successfully."

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append("=" * 60)
        lines.append("  CrudGen — Generation Report")
        lines.append("=" * 60)
        lines.append(f"  Status:           {status}")
        lines.append(f"  Entity:           {self.entity_name}")
        lines.append(f"  Backend:          {self.backend}")
        lines.append(f"  Project root:     {self.project_root}")
        lines.append(f"  Files written:    {self.total_files}")
        lines.append(f"  Total lines:      {self.total_lines:,}")
        lines.append(f"  Total bytes:      {self.total_bytes:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append("─" * 60)

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<24s} "
                    f"{step.elapsed_seconds:>7.3f}s  {step.detail}"
                )

        if self.manifest and self.manifest.files:
            lines.append("─" * 60)
            lines.append("  Files:")
            for record in self.manifest.files:
                lines.append(f"    + {record.relative_path}")

        if self.warnings:
            lines.append("─" * 60)
            lines.append(f"  Warnings ({len(self.warnings)}):")
            for warn in self.warnings:
                lines.append(f"    ⚠ {warn}")

        if self.errors:
            lines.append("─" * 60)
            lines.append(f"  Errors ({len(self.errors)}):")
            for err in self.errors:
                lines.append(f"    ✗ {err}")

        lines.append("=" * 60)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Config loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}", path=path) from exc


def _load_yaml_file(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}", path=path) from exc


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Load a configuration file (YAML or JSON), dispatching on extension.

    The settings may sit at the top level or under a ``crudgen:`` (or
    ``config:``) key.  An empty file yields an empty mapping.

    Raises:
        ConfigError: missing file, unreadable file, parse error, or a
            top level that is not a mapping.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}", path=path)
    if not path.is_file():
        raise ConfigError(f"Config path is not a file: {path}", path=path)

    try:
        if path.suffix.lower() == ".json":
            data: Any = _load_json_file(path)
        else:
            data = _load_yaml_file(path)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}", path=path) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Expected a mapping at top level of {path}, got {type(data).__name__}.",
            path=path,
        )

    for key in CONFIG_SECTION_KEYS:
        if key in data:
            section: Any = data[key]
            if not isinstance(section, dict):
                raise ConfigError(
                    f"Section '{key}' in {path} must be a mapping.", path=path
                )
            return dict(section)
    return dict(data)


def build_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> GenerationConfig:
    """
    File values first, then *overrides* (``None`` values are ignored).

    Raises:
        ConfigError: the file cannot be loaded or the merged values are invalid.
    """
    raw: Dict[str, Any] = load_config_file(config_path) if config_path else {}
    if overrides:
        raw.update({k: v for k, v in overrides.items() if v is not None})

    try:
        config: GenerationConfig = GenerationConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}", path=config_path) from exc

    logger.debug("Configuration: %s", config.model_dump(mode="json"))
    return config


# ---------------------------------------------------------------------------
# CrudGenerator — orchestrator
# ---------------------------------------------------------------------------


class CrudGenerator:
    """
    Builds and writes the CRUD slice of one entity.

    Usage::

        generator = CrudGenerator(config)
        result = generator.build(GenerationRequest(
            entity_name="Post",
            field_spec="title:string,body:text",
            relation_spec="belongsTo:User:user_id:id",
        ))

        report = generator.generate(request)     # builds, then writes
        print(report.summary())

    Reusable: every ``build()`` starts again from ``idle``.
    """

    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        *,
        store: Optional[TemplateStore] = None,
    ) -> None:
        self._config: GenerationConfig = config or GenerationConfig()
        self._renderer: TemplateRenderer = TemplateRenderer(
            store if store is not None else build_template_store(self._config),
            strict_placeholders=self._config.strict_placeholders,
        )
        self._history: List[GenerationState] = [GenerationState.IDLE]

    @property
    def config(self) -> GenerationConfig:
        return self._config

    @property
    def renderer(self) -> TemplateRenderer:
        return self._renderer

    @property
    def state(self) -> GenerationState:
        return self._history[-1]

    @property
    def history(self) -> List[GenerationState]:
        return list(self._history)

    def _advance(self, state: GenerationState) -> None:
        logger.debug("State: %s → %s", self.state.value, state.value)
        self._history.append(state)

    # -----------------------------------------------------------------
    # Public: build (pure)
    # -----------------------------------------------------------------

    def build(self, request: GenerationRequest) -> GenerationResult:
        """
        Parse, derive and render everything for *request*.

        Raises:
            InvalidName, MalformedFieldSpec, MalformedRelationSpec,
            TemplateNotFound, TemplateContextError: propagated unchanged
            after the state moves to ``failed``.
        """
        self._history = [GenerationState.IDLE]
        try:
            self._advance(GenerationState.PARSING_FIELDS)
            names: EntityNames = EntityNames.from_entity(
                request.entity_name, self._config.model_namespace
            )
            fields: List[FieldSpec] = parse_fields(request.field_spec)

            self._advance(GenerationState.PARSING_RELATIONS)
            parsed: RelationParseResult = parse_relations(
                request.relation_spec, strict=self._config.strict_relations
            )
            pivots: List[PivotTable] = collect_pivot_tables(names.entity, parsed.relations)

            self._advance(GenerationState.DERIVING_RULES)
            creation, update = derive_rule_sets(fields)
            checks: ValidationResult = validate_request(fields, parsed.relations, parsed.skipped)

            self._advance(GenerationState.RENDERING_ARTIFACTS)
            result: GenerationResult = GenerationResult(
                request=request,
                fields=fields,
                relations=list(parsed.relations),
                skipped_relations=list(parsed.skipped),
                pivot_tables=pivots,
                creation_rules=creation,
                update_rules=update,
                warnings=[issue.message for issue in checks.warnings],
            )
            result.artifacts = self._render_artifacts(names, result, creation, update)

            self._advance(GenerationState.DONE)
        except CrudGenError as exc:
            self._advance(GenerationState.FAILED)
            logger.error("Generation for %r failed: %s", request.entity_name, exc)
            raise

        result.states = self.history
        logger.info(
            "Built %d artifact(s) for %s (%d line(s)).",
            result.total_files,
            names.entity,
            result.total_lines,
        )
        return result

    # -----------------------------------------------------------------
    # Public: generate (build + backend writes)
    # -----------------------------------------------------------------

    def generate(
        self,
        request: GenerationRequest,
        backend: Optional[ScaffoldBackend] = None,
    ) -> GenerationReport:
        """
        Build, then write every artifact through *backend*.

        Build errors propagate before any file is touched.  A backend error
        is recorded on the report (``failure``) and stops the remaining
        writes.
        """
        backend = backend if backend is not None else build_backend(self._config)
        report: GenerationReport = GenerationReport(
            entity_name=request.entity_name.strip(),
            backend=backend.name,
            project_root=str(backend.project_root),
        )
        pipeline_start: float = time.perf_counter()

        with Timer("build") as t_build:
            result: GenerationResult = self.build(request)

        report.result = result
        report.warnings.extend(result.warnings)
        report.skipped_relations.extend(result.skipped_relations)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Build Artifacts",
            success=True,
            elapsed_seconds=t_build.elapsed,
            detail=f"{result.total_files} artifacts, {result.total_lines:,} lines",
        ))

        report.manifest = new_manifest(report.entity_name, backend)
        with Timer("write") as t_write:
            try:
                self._write_artifacts(result.artifacts, backend, report.manifest)
            except ScaffoldBackendError as exc:
                report.failure = exc
                report.errors.append(str(exc))
                logger.error(
                    "Backend '%s' failed after %d file(s): %s",
                    backend.name,
                    report.manifest.total_files,
                    exc,
                )

        report.step_metrics.append(GenerationStepMetric(
            step_name="Write Artifacts",
            success=report.failure is None,
            elapsed_seconds=t_write.elapsed,
            detail=f"{report.manifest.total_files}/{result.total_files} files via {backend.name}",
        ))

        report.total_elapsed_seconds = time.perf_counter() - pipeline_start
        report.success = not report.errors
        if report.success:
            logger.info(report.success_message)
        return report

    def _write_artifacts(
        self,
        artifacts: List[GeneratedArtifact],
        backend: ScaffoldBackend,
        manifest: ExportManifest,
    ) -> None:
        for artifact in artifacts:
            path: Path = backend.create_bare_artifact(artifact.kind, artifact.target_name)
            size: int = backend.write_artifact(path, artifact.content)
            manifest.add(make_file_record(
                backend, artifact.target_name, artifact.kind, path, artifact.content, size
            ))

    # -----------------------------------------------------------------
    # Internal: rendering
    # -----------------------------------------------------------------

    def _render(
        self,
        kind: ArtifactKind,
        template: TemplateName,
        target_name: str,
        context: Dict[str, str],
    ) -> GeneratedArtifact:
        return GeneratedArtifact(
            kind=kind,
            template=template,
            target_name=target_name,
            content=self._renderer.render(template, context),
        )

    def _render_artifacts(
        self,
        names: EntityNames,
        result: GenerationResult,
        creation: ValidationRuleSet,
        update: ValidationRuleSet,
    ) -> List[GeneratedArtifact]:
        artifacts: List[GeneratedArtifact] = []

        artifacts.append(self._render(
            ArtifactKind.MODEL,
            TemplateName.MODEL,
            names.model_target,
            {
                "modelNamespace": names.model_namespace,
                "modelName": names.model_name,
                "tableName": names.table_name,
                "fillable": build_fillable_list(result.fields),
                "relations": build_relation_methods(result.relations, names.entity),
            },
        ))

        artifacts.append(self._render(
            ArtifactKind.MIGRATION,
            TemplateName.MIGRATION,
            names.migration_name,
            {
                "tableName": names.table_name,
                "fields": build_migration_columns(result.fields),
            },
        ))

        for pivot in result.pivot_tables:
            artifacts.append(self._render(
                ArtifactKind.MIGRATION,
                TemplateName.PIVOT_MIGRATION,
                pivot.migration_name,
                {
                    "pivotTableName": pivot.name,
                    "foreignKey": pivot.foreign_key,
                    "relatedKey": pivot.related_key,
                },
            ))

        artifacts.append(self._render(
            ArtifactKind.CONTROLLER,
            TemplateName.CONTROLLER,
            names.controller_name,
            {
                "controllerName": names.controller_name,
                "modelName": names.model_name,
                "modelNamespace": names.model_namespace,
                "modelVariable": names.model_variable,
                "storeRequestName": names.store_request_name,
                "updateRequestName": names.update_request_name,
            },
        ))

        for template, request_name, rule_set in (
            (TemplateName.STORE_REQUEST, names.store_request_name, creation),
            (TemplateName.UPDATE_REQUEST, names.update_request_name, update),
        ):
            artifacts.append(self._render(
                ArtifactKind.REQUEST,
                template,
                request_name,
                {"formRequestName": request_name, "rules": format_rules(rule_set)},
            ))

        return artifacts


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "CrudGenerator",
    "EntityNames",
    "GenerationReport",
    "GenerationStepMetric",
    "build_config",
    "load_config_file",
]

logger.debug("crudgen.generator loaded.")
