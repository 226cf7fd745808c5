"""
Tests for trellis.framework.schema.

Tests cover:
- Object validation (required, optional, unknown keys dropped)
- String, number, integer, boolean and array keywords
- Enum membership with and without a string type
- Formats (email, uuid, uri)
- Every violation reported, with paths
- Malformed fragments degrade to accept-anything
- declare_validator snapshots the fragment
"""

from types import MappingProxyType
from unittest.mock import patch

import pytest

from trellis.framework.schema import (
    FieldGroup,
    ValidationIssue,
    ValidationResult,
    compile_schema,
    declare_validator,
    is_email,
    is_uri,
    is_uuid,
    snapshot_schema,
)

USER_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "age": {"type": "integer", "minimum": 18},
    },
    "required": ["name"],
}


class TestObjectValidation:
    """Object schemas: properties and required."""

    def test_valid_object_parses(self):
        result = compile_schema(USER_SCHEMA).validate({"name": "Ada", "age": 36})
        assert result.success
        assert result.data == {"name": "Ada", "age": 36}
        assert result.issues == ()

    def test_missing_required_field(self):
        result = compile_schema(USER_SCHEMA).validate({"age": 20})
        assert not result.success
        assert [i.code for i in result.issues] == ["required"]
        assert result.issues[0].path == "name"

    def test_minimum_violation(self):
        result = compile_schema(USER_SCHEMA).validate({"name": "Ada", "age": 10})
        assert not result.success
        assert result.issues[0].code == "minimum"
        assert result.issues[0].path == "age"
        assert result.error_detail == "age: must be >= 18"

    def test_optional_field_may_be_absent(self):
        result = compile_schema(USER_SCHEMA).validate({"name": "Ada"})
        assert result.success
        assert result.data == {"name": "Ada"}

    def test_no_required_list_means_all_optional(self):
        schema = {"type": "object", "properties": {"a": {"type": "string"}}}
        assert compile_schema(schema).validate({}).success

    def test_unknown_keys_are_dropped(self):
        result = compile_schema(USER_SCHEMA).validate({"name": "Ada", "admin": True})
        assert result.success
        assert result.data == {"name": "Ada"}

    def test_non_object_rejected(self):
        result = compile_schema(USER_SCHEMA).validate(["Ada"])
        assert not result.success
        assert result.issues[0].code == "type"
        assert "received array" in result.issues[0].message

    def test_every_violation_reported(self):
        schema = {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "email": {"type": "string", "format": "email"},
                "age": {"type": "integer", "minimum": 18},
            },
            "required": ["name", "email"],
        }
        result = compile_schema(schema).validate({"email": "nope", "age": 3})
        assert sorted(i.code for i in result.issues) == ["format", "minimum", "required"]

    def test_nested_paths(self):
        schema = {
            "type": "object",
            "properties": {
                "address": {
                    "type": "object",
                    "properties": {"zip": {"type": "string", "pattern": "^[0-9]{5}$"}},
                    "required": ["zip"],
                }
            },
        }
        result = compile_schema(schema).validate({"address": {"zip": "abc"}})
        assert result.issues[0].path == "address.zip"
        assert result.issues[0].code == "pattern"


class TestScalarKeywords:
    """String, number, boolean keywords."""

    def test_string_length_bounds(self):
        validator = compile_schema({"type": "string", "minLength": 2, "maxLength": 4})
        assert validator.validate("abc").success
        assert validator.validate("a").issues[0].code == "minLength"
        assert validator.validate("abcde").issues[0].code == "maxLength"

    def test_string_type_mismatch(self):
        result = compile_schema({"type": "string"}).validate(5)
        assert result.issues[0].code == "type"
        assert result.issues[0].message == "expected string, received number"

    def test_pattern_searches(self):
        validator = compile_schema({"type": "string", "pattern": "b"})
        assert validator.validate("abc").success
        assert not validator.validate("xyz").success

    def test_format_checked_alongside_length(self):
        validator = compile_schema({"type": "string", "format": "email", "maxLength": 5})
        codes = [i.code for i in validator.validate("ada@example.com").issues]
        assert codes == ["maxLength"]

    def test_number_bounds(self):
        validator = compile_schema(
            {"type": "number", "minimum": 0, "maximum": 10, "exclusiveMaximum": 10}
        )
        assert validator.validate(9.5).success
        assert [i.code for i in validator.validate(10).issues] == ["exclusiveMaximum"]
        assert [i.code for i in validator.validate(11).issues] == ["maximum", "exclusiveMaximum"]
        assert [i.code for i in validator.validate(-1).issues] == ["minimum"]

    def test_exclusive_minimum(self):
        validator = compile_schema({"type": "number", "exclusiveMinimum": 0})
        assert validator.validate(0.1).success
        assert validator.validate(0).issues[0].message == "must be > 0"

    def test_integer_rejects_fraction(self):
        validator = compile_schema({"type": "integer"})
        assert validator.validate(3).success
        assert validator.validate(3.0).success
        assert validator.validate(3.5).issues[0].code == "type"

    @pytest.mark.parametrize("value", [True, "3", None, float("nan")])
    def test_number_rejects_non_numbers(self, value):
        assert not compile_schema({"type": "number"}).validate(value).success

    def test_boolean(self):
        validator = compile_schema({"type": "boolean"})
        assert validator.validate(False).success
        assert validator.validate("false").issues[0].code == "type"


class TestArrays:
    """Array keywords and item paths."""

    def test_items_validated_with_index_paths(self):
        validator = compile_schema({"type": "array", "items": {"type": "integer"}})
        result = validator.validate([1, "two", 3])
        assert not result.success
        assert result.issues[0].path == "[1]"

    def test_item_bounds(self):
        validator = compile_schema({"type": "array", "minItems": 1, "maxItems": 2})
        assert validator.validate(["a"]).success
        assert validator.validate([]).issues[0].code == "minItems"
        assert validator.validate([1, 2, 3]).issues[0].code == "maxItems"

    def test_nested_array_in_object(self):
        schema = {"type": "object", "properties": {"tags": {"type": "array", "items": {"type": "string"}}}}
        result = compile_schema(schema).validate({"tags": ["a", 1]})
        assert result.issues[0].path == "tags[1]"


class TestEnum:
    """Enum membership."""

    def test_string_enum_is_exact(self):
        validator = compile_schema({"type": "string", "enum": ["a", "b"]})
        assert validator.validate("a").success
        result = validator.validate("c")
        assert result.issues[0].code == "enum"
        assert result.issues[0].message == "must be one of: a, b"

    def test_string_enum_rejects_non_strings(self):
        assert not compile_schema({"type": "string", "enum": ["1"]}).validate(1).success

    def test_untyped_enum_compares_as_text(self):
        validator = compile_schema({"enum": [1, 2, True]})
        assert validator.validate(1).success
        assert validator.validate("2").success
        assert validator.validate("true").success
        assert not validator.validate(3).success

    def test_enum_checked_before_type(self):
        validator = compile_schema({"type": "integer", "enum": [1, 2]})
        assert validator.validate("1").success


class TestFormats:
    """Format predicates."""

    @pytest.mark.parametrize("value", ["ada@example.com", "a.b+c@mail.example.org"])
    def test_valid_emails(self, value):
        assert is_email(value)

    @pytest.mark.parametrize("value", ["not-an-email", "a@b", ".a@example.com", "a..b@example.com"])
    def test_invalid_emails(self, value):
        assert not is_email(value)

    def test_uuid(self):
        assert is_uuid("123e4567-e89b-12d3-a456-426614174000")
        assert not is_uuid("123e4567e89b12d3a456426614174000")

    def test_uri(self):
        assert is_uri("https://example.com/a")
        assert is_uri("urn:isbn:0451450523")
        assert not is_uri("example.com")
        assert not is_uri("")

    def test_unknown_format_is_ignored(self):
        assert compile_schema({"type": "string", "format": "hostname"}).validate("!!").success


class TestOpenWorld:
    """Unknown types and malformed fragments never raise."""

    def test_unknown_type_accepts_anything(self):
        validator = compile_schema({"type": "date"})
        assert validator.validate(object()).success

    def test_missing_type_accepts_anything(self):
        assert compile_schema({}).validate([1, 2]).success

    def test_malformed_fragment_degrades(self):
        validator = compile_schema({"type": "string", "minLength": "three"})
        assert validator.validate(42).success

    def test_malformed_property_degrades_only_that_property(self):
        schema = {
            "type": "object",
            "properties": {"bad": {"type": "string", "pattern": "("}, "good": {"type": "integer"}},
        }
        validator = compile_schema(schema)
        assert validator.validate({"bad": 1, "good": 2}).success
        assert not validator.validate({"bad": 1, "good": "x"}).success

    def test_non_mapping_schema_degrades(self):
        assert compile_schema(["not", "a", "schema"]).validate("anything").success

    def test_degraded_fragment_logged_as_warning(self):
        with patch("trellis.framework.schema.log") as mock_log:
            compile_schema({"type": "object", "properties": {"code": {"type": "string", "pattern": "("}}})
        mock_log.warning.assert_called_once()
        assert mock_log.warning.call_args.args == ("schema.compile.degraded",)
        assert mock_log.warning.call_args.kwargs["path"] == "code"

    def test_valid_schema_logs_nothing(self):
        with patch("trellis.framework.schema.log") as mock_log:
            compile_schema({"type": "string", "minLength": 1})
        mock_log.warning.assert_not_called()


class TestDeclaredValidators:
    """declare_validator and result helpers."""

    def test_snapshot_is_independent_of_caller(self):
        schema = {"type": "object", "properties": {"a": {"type": "string"}}, "required": ["a"]}
        declared = declare_validator("body", schema)
        schema["required"].append("b")
        assert declared.schema["required"] == ["a"]
        assert declared.validate({"a": "x"}).success

    def test_read_only_mappings_snapshot_to_plain_dicts(self):
        schema = MappingProxyType(
            {
                "type": "object",
                "properties": MappingProxyType({"tags": {"type": "array", "items": {"type": "string"}}}),
                "required": ("tags",),
            }
        )
        declared = declare_validator("body", schema)
        assert declared.schema == {
            "type": "object",
            "properties": {"tags": {"type": "array", "items": {"type": "string"}}},
            "required": ["tags"],
        }
        assert type(declared.schema["properties"]) is dict
        assert declared.validate({"tags": ["a"]}).success
        assert [issue.code for issue in declared.validate({}).issues] == ["required"]

    def test_snapshot_schema_leaves_scalars(self):
        assert snapshot_schema("string") == "string"
        assert snapshot_schema(("a", {"b": 1})) == ["a", {"b": 1}]

    def test_group_coerced(self):
        assert declare_validator("params", {}).group is FieldGroup.PARAMS

    def test_validator_is_callable(self):
        validator = compile_schema({"type": "boolean"})
        assert validator(True).success

    def test_issue_str(self):
        assert str(ValidationIssue("", "type", "expected object")) == "expected object"
        assert str(ValidationIssue("a", "type", "bad")) == "a: bad"

    def test_success_has_no_detail(self):
        assert ValidationResult.ok(1).error_detail is None
