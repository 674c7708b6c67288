"""
tests/test_validators.py
Unit tests for crudgen.validators.

Tests cover:
- Creation / update rule derivation
- Rule formatting for form requests
- Semantic checks (field types, identifiers, skipped relations, accessor clashes)
- ValidationResult accumulator behaviour
"""

from __future__ import annotations

import logging
from typing import List

import pytest

from crudgen.models import FieldSpec, RelationSpec
from crudgen.parsers import parse_fields, parse_relations
from crudgen.validators import (
    ValidationResult,
    check_accessor_clashes,
    check_field_types,
    check_identifiers,
    check_skipped_relations,
    derive_rule_sets,
    derive_rules,
    field_rule,
    format_rules,
    validate_request,
)


def _relations(spec: str) -> List[RelationSpec]:
    return list(parse_relations(spec).relations)


# ===========================================================================
# Rule derivation
# ===========================================================================


class TestRuleDerivation:
    def test_creation_rules(self) -> None:
        rules = derive_rules(parse_fields("title:string,body:text"), creation=True)
        assert rules.nullability == "required"
        assert rules.rules == {"title": "required|string", "body": "required|text"}

    def test_update_rules(self) -> None:
        rules = derive_rules(parse_fields("title:string,body:text"), creation=False)
        assert rules.nullability == "nullable"
        assert rules.rules == {"title": "nullable|string", "body": "nullable|text"}

    def test_type_token_reused_verbatim(self) -> None:
        field = FieldSpec(name="age", type="integer")
        assert field_rule(field, creation=True) == "required|integer"
        assert field_rule(field, creation=False) == "nullable|integer"

    def test_rule_sets_share_keys_and_order(self) -> None:
        fields = parse_fields("title:string,body:text,views:integer")
        creation, update = derive_rule_sets(fields)
        assert creation.field_names == update.field_names == ["title", "body", "views"]

    def test_empty_field_list_gives_empty_rules(self) -> None:
        creation, update = derive_rule_sets([])
        assert creation.rules == {}
        assert update.rules == {}


class TestFormatRules:
    def test_lines_joined_with_indent(self) -> None:
        creation, _ = derive_rule_sets(parse_fields("title:string,body:text"))
        assert format_rules(creation) == (
            "'title' => 'required|string',\n"
            "            'body' => 'required|text'"
        )

    def test_single_rule(self) -> None:
        _, update = derive_rule_sets(parse_fields("title:string"))
        assert format_rules(update) == "'title' => 'nullable|string'"


# ===========================================================================
# Semantic checks
# ===========================================================================


class TestSemanticChecks:
    def test_known_column_types_pass(self) -> None:
        result = check_field_types(parse_fields("title:string,body:text,views:integer"))
        assert len(result) == 0

    def test_unknown_column_type_warns(self) -> None:
        result = check_field_types(parse_fields("title:strng"))
        assert result.codes() == ["W_FIELD_TYPE"]
        assert result.is_valid

    def test_invalid_identifiers_warn(self) -> None:
        fields = parse_fields("first-name:string")
        relations = _relations("belongsTo:User:user id:id")
        result = check_identifiers(fields, relations)
        assert result.codes() == ["W_IDENTIFIER", "W_IDENTIFIER"]

    def test_skipped_relations_warn(self) -> None:
        result = check_skipped_relations(["morphTo:Image:x:y"])
        (issue,) = result.warnings
        assert issue.code == "W_RELATION_KIND"
        assert issue.context == {"token": "morphTo:Image:x:y"}

    def test_accessor_clashing_with_field(self) -> None:
        result = check_accessor_clashes(
            parse_fields("user:string"), _relations("belongsTo:User:user_id:id")
        )
        assert result.codes() == ["W_ACCESSOR_CLASH"]

    def test_duplicate_accessor(self) -> None:
        result = check_accessor_clashes(
            parse_fields("title:string"),
            _relations("hasMany:Tag:post_id:id,belongsToMany:Tag:tag_id:post_id"),
        )
        assert result.codes() == ["W_ACCESSOR_CLASH"]

    def test_validate_request_merges_warnings_only(self) -> None:
        result = validate_request(
            parse_fields("title:strng,user:string"),
            _relations("belongsTo:User:user_id:id"),
            ["morphTo:Image:x:y"],
        )
        assert result.is_valid
        assert sorted(result.codes()) == ["W_ACCESSOR_CLASH", "W_FIELD_TYPE", "W_RELATION_KIND"]

    def test_warnings_are_logged_at_warning_level(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="crudgen.validators"):
            validate_request(parse_fields("title:strng"), [])
        (record,) = caplog.records
        assert record.levelno == logging.WARNING
        assert "W_FIELD_TYPE" in record.getMessage()

    def test_clean_request_has_no_issues(self) -> None:
        result = validate_request(
            parse_fields("title:string,body:text"), _relations("belongsTo:User:user_id:id")
        )
        assert len(result) == 0
        assert bool(result) is True


# ===========================================================================
# ValidationResult
# ===========================================================================


class TestValidationResult:
    def test_errors_make_result_invalid(self) -> None:
        result = ValidationResult()
        result.add_warning("W_X", "just a warning")
        assert result.is_valid
        result.add_error("E_X", "broken", {"field": "title"})
        assert not result.is_valid
        assert not result
        assert result.summary() == "Validation: 1 error(s), 1 warning(s)."

    def test_merge(self) -> None:
        first, second = ValidationResult(), ValidationResult()
        first.add_warning("W_A", "a")
        second.add_warning("W_B", "b")
        first.merge(second)
        assert first.codes() == ["W_A", "W_B"]

    def test_issue_to_dict(self) -> None:
        result = ValidationResult()
        result.add_warning("W_A", "a", {"k": 1})
        assert result.all_items[0].to_dict() == {
            "level": "warning",
            "code": "W_A",
            "message": "a",
            "context": {"k": 1},
        }
        assert str(result.all_items[0]) == "[WARNING] W_A: a"


@pytest.mark.parametrize("field_type", ["string", "text", "boolean", "json", "uuid", "foreignId"])
def test_common_blueprint_types_recognised(field_type: str) -> None:
    assert len(check_field_types([FieldSpec(name="x", type=field_type)])) == 0
