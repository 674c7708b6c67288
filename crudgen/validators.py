# File: crudgen/validators.py
"""
CrudGen - Validation Rules & Request Checks
============================================
Two concerns live here:

1. **Rule derivation** — every parsed field yields one creation rule
   (``required|<type>``) and one update rule (``nullable|<type>``).  The
   field's schema type token is reused verbatim as the validation rule
   token; there is no mapping to a separate validation vocabulary.

2. **Semantic checks** — a pure-function pipeline over the parsed request
   that accumulates *warnings* in a ``ValidationResult``.  Hard failures
   (malformed tokens) are raised by ``crudgen.parsers``; nothing in this
   pipeline aborts generation.

Usage by downstream modules:
    from crudgen.validators import derive_rule_sets, validate_request
    creation, update = derive_rule_sets(fields)
    result = validate_request(fields, relations, skipped)
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

from crudgen.models import FieldSpec, RelationSpec, ValidationRuleSet

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.validators")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

RULE_SEPARATOR: str = "|"
CREATION_MARKER: str = "required"
UPDATE_MARKER: str = "nullable"

_RULE_LINE_JOIN: str = ",\n" + " " * 12

_PHP_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Column methods of Laravel's schema Blueprint that take a column name
_SCHEMA_COLUMN_TYPES: FrozenSet[str] = frozenset({
    "bigIncrements", "bigInteger", "binary", "boolean", "char", "date",
    "dateTime", "dateTimeTz", "decimal", "double", "enum", "float",
    "foreignId", "foreignUlid", "foreignUuid", "geometry", "increments",
    "integer", "ipAddress", "json", "jsonb", "longText", "macAddress",
    "mediumIncrements", "mediumInteger", "mediumText", "morphs", "set",
    "smallIncrements", "smallInteger", "softDeletes", "string", "text",
    "time", "timeTz", "timestamp", "timestampTz", "tinyIncrements",
    "tinyInteger", "tinyText", "ulid", "unsignedBigInteger",
    "unsignedInteger", "unsignedMediumInteger", "unsignedSmallInteger",
    "unsignedTinyInteger", "uuid", "year",
})


# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """Lightweight issue descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationIssue`` instances produced by the pipeline."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[ValidationIssue]:
        return list(self._items)

    @property
    def is_valid(self) -> bool:
        return not any(e.is_error for e in self._items)

    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    def summary(self) -> str:
        return (
            f"Validation: {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)


# ---------------------------------------------------------------------------
# Rule derivation
# ---------------------------------------------------------------------------


def field_rule(field: FieldSpec, creation: bool) -> str:
    """``required|string`` for creation, ``nullable|string`` for update."""
    marker: str = CREATION_MARKER if creation else UPDATE_MARKER
    return RULE_SEPARATOR.join((marker, field.type))


def derive_rules(fields: Sequence[FieldSpec], creation: bool) -> ValidationRuleSet:
    """Build the rule set for one request flavour, preserving field order."""
    rules: Dict[str, str] = {f.name: field_rule(f, creation) for f in fields}
    return ValidationRuleSet(
        nullability=CREATION_MARKER if creation else UPDATE_MARKER,
        rules=rules,
    )


def derive_rule_sets(
    fields: Sequence[FieldSpec],
) -> Tuple[ValidationRuleSet, ValidationRuleSet]:
    """Return ``(creation_rules, update_rules)`` over the same field keys."""
    creation: ValidationRuleSet = derive_rules(fields, creation=True)
    update: ValidationRuleSet = derive_rules(fields, creation=False)
    logger.debug("Derived %d creation and %d update rule(s).", len(creation.rules), len(update.rules))
    return creation, update


def format_rules(rule_set: ValidationRuleSet) -> str:
    """
    Render a rule set as the body of a form request's ``rules()`` array::

        'title' => 'required|string',
                    'body' => 'required|text'
    """
    return _RULE_LINE_JOIN.join(
        f"'{name}' => '{rule}'" for name, rule in rule_set.rules.items()
    )


# ---------------------------------------------------------------------------
# Semantic checks (warnings only)
# ---------------------------------------------------------------------------


def check_field_types(fields: Sequence[FieldSpec]) -> ValidationResult:
    """Warn about types that are not Blueprint column methods."""
    result: ValidationResult = ValidationResult()
    for f in fields:
        if f.type not in _SCHEMA_COLUMN_TYPES:
            result.add_warning(
                "W_FIELD_TYPE",
                f"Field '{f.name}' uses type '{f.type}', which is not a known "
                f"schema builder column method; the migration may not run.",
                {"field": f.name, "type": f.type},
            )
    return result


def check_identifiers(
    fields: Sequence[FieldSpec],
    relations: Sequence[RelationSpec],
) -> ValidationResult:
    """Warn about names that cannot appear verbatim in generated PHP."""
    result: ValidationResult = ValidationResult()
    for f in fields:
        if not _PHP_IDENTIFIER_RE.match(f.name):
            result.add_warning(
                "W_IDENTIFIER",
                f"Field name '{f.name}' is not a valid PHP identifier.",
                {"field": f.name},
            )
    for rel in relations:
        for label, value in (("foreign key", rel.foreign_key), ("local key", rel.local_key)):
            if not _PHP_IDENTIFIER_RE.match(value):
                result.add_warning(
                    "W_IDENTIFIER",
                    f"Relation to '{rel.related_entity}' has {label} '{value}', "
                    f"which is not a valid column identifier.",
                    {"relation": rel.related_entity, label: value},
                )
    return result


def check_skipped_relations(skipped: Sequence[str]) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    for token in skipped:
        result.add_warning(
            "W_RELATION_KIND",
            f"Relation '{token}' was skipped: unknown relation kind.",
            {"token": token},
        )
    return result


def check_accessor_clashes(
    fields: Sequence[FieldSpec],
    relations: Sequence[RelationSpec],
) -> ValidationResult:
    """Warn when a relation accessor shadows a field or another accessor."""
    result: ValidationResult = ValidationResult()
    field_names: FrozenSet[str] = frozenset(f.name for f in fields)
    seen: Dict[str, RelationSpec] = {}
    for rel in relations:
        accessor: str = rel.accessor_name
        if accessor in field_names:
            result.add_warning(
                "W_ACCESSOR_CLASH",
                f"Relation accessor '{accessor}()' has the same name as field '{accessor}'.",
                {"accessor": accessor},
            )
        if accessor in seen:
            result.add_warning(
                "W_ACCESSOR_CLASH",
                f"Relation accessor '{accessor}()' is generated twice; PHP will "
                f"reject the duplicate method.",
                {"accessor": accessor},
            )
        seen[accessor] = rel
    return result


def validate_request(
    fields: Sequence[FieldSpec],
    relations: Sequence[RelationSpec],
    skipped: Sequence[str] = (),
) -> ValidationResult:
    """Run every semantic check and merge the results."""
    result: ValidationResult = ValidationResult()
    result.merge(check_field_types(fields))
    result.merge(check_identifiers(fields, relations))
    result.merge(check_skipped_relations(skipped))
    result.merge(check_accessor_clashes(fields, relations))

    for issue in result.warnings:
        logger.warning("%s", issue)
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "RULE_SEPARATOR",
    "CREATION_MARKER",
    "UPDATE_MARKER",
    "ValidationIssue",
    "ValidationResult",
    "field_rule",
    "derive_rules",
    "derive_rule_sets",
    "format_rules",
    "check_field_types",
    "check_identifiers",
    "check_skipped_relations",
    "check_accessor_clashes",
    "validate_request",
]

logger.debug("crudgen.validators loaded.")
