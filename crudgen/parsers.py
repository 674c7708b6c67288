# File: crudgen/parsers.py
"""
CrudGen - Field & Relation Spec Parsers
========================================
Turns the compact command-line specs into frozen model instances and
derives the text fragments that depend on them:

    "title:string,body:text"          → [FieldSpec, FieldSpec]
    "belongsTo:User:user_id:id,..."   → [RelationSpec, ...]

Grammar (fixed arity, no quoting, no escaping):
    fields    := field ("," field)*
    field     := name ":" type              (split on the FIRST ':')
    relations := relation ("," relation)*
    relation  := kind ":" related ":" foreignKey ":" localKey

Surrounding whitespace around tokens and parts is ignored.  Every error
names the offending token and its 1-based position in the spec.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from crudgen.exceptions import InvalidName, MalformedFieldSpec, MalformedRelationSpec
from crudgen.models import FieldSpec, PivotTable, RelationKind, RelationSpec
from crudgen.utils import base_name, quote, to_camel_case, to_singular, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.parsers")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TOKEN_SEPARATOR: str = ","
PART_SEPARATOR: str = ":"

# Generated PHP bodies sit three levels deep inside the stub.
_BODY_INDENT: str = " " * 12
_METHOD_INDENT: str = " " * 4

_RELATION_PARTS: Tuple[str, ...] = ("kind", "related entity", "foreign key", "local key")
_KNOWN_KINDS: str = ", ".join(kind.value for kind in RelationKind)


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RelationParseResult:
    """Recognised relations plus the raw tokens dropped for an unknown kind."""

    relations: Tuple[RelationSpec, ...] = ()
    skipped: Tuple[str, ...] = ()

    def __iter__(self) -> Iterator[RelationSpec]:
        return iter(self.relations)

    def __len__(self) -> int:
        return len(self.relations)


def _split_tokens(spec: str) -> List[str]:
    return [token.strip() for token in spec.split(TOKEN_SEPARATOR)]


# ---------------------------------------------------------------------------
# Field spec
# ---------------------------------------------------------------------------


def parse_fields(spec: Optional[str]) -> List[FieldSpec]:
    """
    Parse ``"name:type,name:type"`` into an ordered list of ``FieldSpec``.

    Raises:
        MalformedFieldSpec: empty spec, a token without ``:``, an empty name
            or type, or a name declared twice.
    """
    if spec is None or not spec.strip():
        raise MalformedFieldSpec(
            "Field spec is empty; expected 'name:type[,name:type...]'.",
            token=spec or "",
        )

    fields: List[FieldSpec] = []
    seen: Dict[str, int] = {}

    for position, token in enumerate(_split_tokens(spec), start=1):
        name, sep, field_type = token.partition(PART_SEPARATOR)
        name = name.strip()
        field_type = field_type.strip()

        if not sep:
            raise MalformedFieldSpec(
                f"Field #{position} {token!r} is missing the ':' separator "
                f"(expected 'name:type').",
                token=token,
                position=position,
            )
        if not name:
            raise MalformedFieldSpec(
                f"Field #{position} {token!r} has an empty name.",
                token=token,
                position=position,
            )
        if not field_type:
            raise MalformedFieldSpec(
                f"Field #{position} {token!r} has an empty type.",
                token=token,
                position=position,
            )
        if name in seen:
            raise MalformedFieldSpec(
                f"Field #{position} {name!r} is already declared as field #{seen[name]}.",
                token=token,
                position=position,
            )

        seen[name] = position
        fields.append(FieldSpec(name=name, type=field_type))

    logger.debug("Parsed %d field(s): %s", len(fields), [f.name for f in fields])
    return fields


def fillable_names(fields: Sequence[FieldSpec]) -> List[str]:
    """Field names in declaration order."""
    return [f.name for f in fields]


def build_fillable_list(fields: Sequence[FieldSpec]) -> str:
    """``'title', 'body'`` — the body of the model's ``$fillable`` array."""
    return ", ".join(quote(f.name) for f in fields)


def build_migration_columns(fields: Sequence[FieldSpec]) -> str:
    """
    One schema-builder call per field, e.g. ``$table->string('title');``.

    Lines after the first are indented to sit inside the migration's
    ``Schema::create`` closure.
    """
    lines: List[str] = [f"$table->{f.type}({quote(f.name)});" for f in fields]
    return ("\n" + _BODY_INDENT).join(lines)


# ---------------------------------------------------------------------------
# Relation spec
# ---------------------------------------------------------------------------


def parse_relations(spec: Optional[str], *, strict: bool = False) -> RelationParseResult:
    """
    Parse ``"kind:related:foreignKey:localKey,..."``.

    An absent or blank spec yields an empty result.  A relation whose kind
    is not one of ``hasMany``, ``belongsTo``, ``belongsToMany``, ``hasOne``
    is skipped with a warning, or rejected when *strict* is set.

    Raises:
        MalformedRelationSpec: a token without exactly four parts, an empty
            part, an unusable related entity name, or (strict) an unknown kind.
    """
    if spec is None or not spec.strip():
        return RelationParseResult()

    relations: List[RelationSpec] = []
    skipped: List[str] = []

    for position, token in enumerate(_split_tokens(spec), start=1):
        parts: List[str] = [part.strip() for part in token.split(PART_SEPARATOR)]
        if len(parts) != len(_RELATION_PARTS):
            raise MalformedRelationSpec(
                f"Relation #{position} {token!r} has {len(parts)} part(s); expected 4 "
                f"('kind:related:foreignKey:localKey').",
                token=token,
                position=position,
            )

        empty: List[str] = [label for label, part in zip(_RELATION_PARTS, parts) if not part]
        if empty:
            raise MalformedRelationSpec(
                f"Relation #{position} {token!r} has an empty {', '.join(empty)}.",
                token=token,
                position=position,
            )

        kind_token, related, foreign_key, local_key = parts
        kind: Optional[RelationKind] = RelationKind.from_token(kind_token)
        if kind is None:
            if strict:
                raise MalformedRelationSpec(
                    f"Relation #{position} {token!r} has unknown kind {kind_token!r}; "
                    f"expected one of: {_KNOWN_KINDS}.",
                    token=token,
                    position=position,
                )
            logger.warning(
                "Skipping relation #%d %r: unknown kind %r (expected one of: %s).",
                position,
                token,
                kind_token,
                _KNOWN_KINDS,
            )
            skipped.append(token)
            continue

        try:
            to_camel_case(base_name(related))
        except InvalidName as exc:
            raise MalformedRelationSpec(
                f"Relation #{position} {token!r} names an unusable related entity "
                f"{related!r}.",
                token=token,
                position=position,
            ) from exc

        relations.append(
            RelationSpec(
                kind=kind,
                related_entity=related,
                foreign_key=foreign_key,
                local_key=local_key,
            )
        )

    logger.debug(
        "Parsed %d relation(s), skipped %d.", len(relations), len(skipped)
    )
    return RelationParseResult(tuple(relations), tuple(skipped))


def pivot_table_name(entity: str, related: str) -> str:
    """
    Deterministic, order-independent join table name.

    Both base names are singularised and snake_cased, then sorted, so
    ``pivot_table_name("Post", "Tags") == pivot_table_name("Tag", "Posts")
    == "post_tag"``.
    """
    names: List[str] = sorted(
        to_snake_case(to_singular(base_name(name))) for name in (entity, related)
    )
    return "_".join(names)


def build_relation_method(relation: RelationSpec, entity: str) -> str:
    """
    Render one Eloquent relation method.

    ``belongsToMany`` additionally names the pivot table so the generated
    call matches the pivot migration.
    """
    args: List[str] = [f"{relation.related_class}::class"]
    if relation.kind.needs_pivot:
        args.append(quote(pivot_table_name(entity, relation.related_entity)))
    args.extend([quote(relation.foreign_key), quote(relation.local_key)])

    lines: List[str] = [
        "",
        f"{_METHOD_INDENT}public function {relation.accessor_name}()",
        f"{_METHOD_INDENT}{{",
        f"{_METHOD_INDENT * 2}return $this->{relation.kind.value}({', '.join(args)});",
        f"{_METHOD_INDENT}}}",
        "",
    ]
    return "\n".join(lines)


def build_relation_methods(relations: Sequence[RelationSpec], entity: str) -> str:
    """All relation methods concatenated; empty string when there are none."""
    return "".join(build_relation_method(rel, entity) for rel in relations)


def collect_pivot_tables(entity: str, relations: Sequence[RelationSpec]) -> List[PivotTable]:
    """
    One ``PivotTable`` per distinct pivot name among ``belongsToMany`` relations.

    A later relation that maps onto an already collected pivot name is
    logged and not emitted twice.
    """
    pivots: Dict[str, PivotTable] = {}
    for rel in relations:
        if not rel.kind.needs_pivot:
            continue
        name: str = pivot_table_name(entity, rel.related_entity)
        if name in pivots:
            logger.warning(
                "Pivot table '%s' already scheduled; ignoring duplicate from %r.",
                name,
                rel,
            )
            continue
        pivots[name] = PivotTable(
            name=name,
            foreign_key=rel.foreign_key,
            related_key=rel.local_key,
            related_entity=rel.related_entity,
        )
    return list(pivots.values())


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "RelationParseResult",
    "parse_fields",
    "fillable_names",
    "build_fillable_list",
    "build_migration_columns",
    "parse_relations",
    "pivot_table_name",
    "build_relation_method",
    "build_relation_methods",
    "collect_pivot_tables",
]

logger.debug("crudgen.parsers loaded.")
