"""JSON-Schema fragment compiler for request validation.

Manifesto:
    Handlers declare the shape of their body, params and headers as plain
    JSON-Schema fragments, the same fragments that end up in the OpenAPI
    document.  This module compiles a fragment once, at declaration time,
    into a validator closure so that per-request validation is a tree walk
    with no schema interpretation left to do.

    - **Compile once:** Fragments are turned into nested check functions eagerly
    - **Never raise:** ``validate()`` returns a ``ValidationResult``, success or not
    - **Collect everything:** All violations in a value are reported, not just the first
    - **Open world:** Unknown ``type`` values accept anything; malformed fragments
      degrade to accept-anything and are logged, never raised to the declarer

Supported vocabulary:
    object   properties, required (absent => every property optional); unknown
             keys are dropped from the parsed value
    string   minLength, maxLength, pattern, format (email, uuid, uri), enum
    number   minimum, maximum, exclusiveMinimum, exclusiveMaximum
    integer  as number, and the value must have no fractional part
    boolean  True / False only
    array    items (absent => accept anything), minItems, maxItems
    enum     without a string type: membership with both sides compared as
             their JSON text (``1`` matches ``"1"``, ``True`` matches ``"true"``)

Examples:
    >>> validator = compile_schema({"type": "integer", "minimum": 1})
    >>> validator.validate(3).success
    True
    >>> validator.validate(0).issues[0].code
    'minimum'

Tags:
    trellis-core, framework, validation, json-schema, compiler

Doc-Types:
    api-reference
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlsplit

from trellis.framework.logging import get_logger

log = get_logger(__name__)

JSONSchema = Mapping[str, Any]

# A compiled check parses ``value`` found at ``path`` and appends any violations to ``issues``.
Check = Callable[[Any, str, list["ValidationIssue"]], Any]


class FieldGroup(str, Enum):
    """Request field groups that can carry a validator."""

    BODY = "body"
    PARAMS = "params"
    HEADERS = "headers"


@dataclass(frozen=True)
class ValidationIssue:
    """One violated constraint: where it happened and which keyword failed."""

    path: str
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "code": self.code, "message": self.message}


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one value."""

    success: bool
    data: Any = None
    issues: tuple[ValidationIssue, ...] = field(default_factory=tuple)

    @classmethod
    def ok(cls, data: Any) -> ValidationResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, issues: list[ValidationIssue]) -> ValidationResult:
        return cls(success=False, issues=tuple(issues))

    @property
    def error_detail(self) -> str | None:
        """Human-readable summary of every issue, or None on success."""
        if self.success:
            return None
        return "; ".join(str(issue) for issue in self.issues)


class Validator:
    """A compiled schema fragment.  Calling it is the same as ``validate()``."""

    __slots__ = ("schema", "_check")

    def __init__(self, schema: Any, check: Check) -> None:
        self.schema = schema
        self._check = check

    def validate(self, value: Any) -> ValidationResult:
        issues: list[ValidationIssue] = []
        data = self._check(value, "", issues)
        if issues:
            return ValidationResult.fail(issues)
        return ValidationResult.ok(data)

    __call__ = validate

    def __repr__(self) -> str:
        return f"Validator({self.schema!r})"


@dataclass(frozen=True)
class ValidatorSchema:
    """A declared validator: the verbatim fragment plus its compiled form."""

    group: FieldGroup
    schema: JSONSchema
    validator: Validator

    def validate(self, value: Any) -> ValidationResult:
        return self.validator.validate(value)


# =============================================================================
# Format checks
# =============================================================================

_EMAIL_RE = re.compile(
    r"^(?!\.)(?!.*\.\.)([A-Z0-9_'+\-\.]*)[A-Z0-9_+-]@([A-Z0-9][A-Z0-9\-]*\.)+[A-Z]{2,}$",
    re.IGNORECASE,
)
_UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")
_SCHEME_RE = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*")


def is_email(value: str) -> bool:
    return _EMAIL_RE.match(value) is not None


def is_uuid(value: str) -> bool:
    return _UUID_RE.match(value) is not None


def is_uri(value: str) -> bool:
    """Absolute URI: a scheme followed by an authority or a path."""
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or _SCHEME_RE.fullmatch(parts.scheme) is None:
        return False
    return bool(parts.netloc or parts.path)


FORMAT_CHECKS: dict[str, Callable[[str], bool]] = {
    "email": is_email,
    "uuid": is_uuid,
    "uri": is_uri,
}


# =============================================================================
# Helpers
# =============================================================================


def _join(path: str, key: str | int) -> str:
    if isinstance(key, int):
        return f"{path}[{key}]"
    return f"{path}.{key}" if path else key


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _literal_text(value: Any) -> str:
    """JSON text of a scalar, so enum members compare the same way JSON does."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _count(schema: JSONSchema, key: str) -> int | None:
    value = schema.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise TypeError(f"{key} must be a non-negative integer, got {value!r}")
    return value


def _bound(schema: JSONSchema, key: str) -> float | int | None:
    value = schema.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{key} must be a number, got {value!r}")
    return value


def _accept_any(value: Any, path: str, issues: list[ValidationIssue]) -> Any:
    return value


# =============================================================================
# Compiler
# =============================================================================


class ValidationCompiler:
    """
    Translates JSON-Schema fragments into ``Validator`` instances.

    Stateless and reentrant; one shared instance backs ``compile_schema``.
    """

    def __init__(self) -> None:
        self._builders: dict[str, Callable[[JSONSchema, str], Check]] = {
            "object": self._object,
            "string": self._string,
            "number": self._number,
            "integer": self._number,
            "boolean": self._boolean,
            "array": self._array,
        }

    def compile(self, schema: JSONSchema) -> Validator:
        """Compile ``schema`` into a validator.  Never raises."""
        return Validator(schema, self._fragment(schema, ""))

    def _fragment(self, schema: Any, path: str) -> Check:
        try:
            return self._build(schema, path)
        except Exception as e:
            log.warning(
                "schema.compile.degraded",
                path=path or "<root>",
                error_type=type(e).__name__,
                error=str(e),
            )
            return _accept_any

    def _build(self, schema: Any, path: str) -> Check:
        if not isinstance(schema, Mapping):
            raise TypeError(f"schema must be a mapping, got {type(schema).__name__}")

        schema_type = schema.get("type")
        if schema.get("enum") is not None:
            return self._enum(schema, strict_string=schema_type == "string")

        builder = self._builders.get(schema_type) if isinstance(schema_type, str) else None
        if builder is None:
            return _accept_any
        return builder(schema, path)

    def _enum(self, schema: JSONSchema, strict_string: bool) -> Check:
        members = schema["enum"]
        if not isinstance(members, (list, tuple)) or not members:
            raise TypeError("enum must be a non-empty list")
        allowed = frozenset(_literal_text(member) for member in members)
        listing = ", ".join(sorted(allowed))

        def check(value: Any, path: str, issues: list[ValidationIssue]) -> Any:
            if strict_string:
                matched = isinstance(value, str) and value in allowed
            else:
                matched = (
                    value is None or isinstance(value, (str, int, float))
                ) and _literal_text(value) in allowed
            if not matched:
                issues.append(ValidationIssue(path, "enum", f"must be one of: {listing}"))
            return value

        return check

    def _object(self, schema: JSONSchema, path: str) -> Check:
        properties = schema.get("properties") or {}
        if not isinstance(properties, Mapping):
            raise TypeError("properties must be a mapping")
        required = schema.get("required")
        if required is None:
            required = ()
        elif not isinstance(required, (list, tuple)) or not all(isinstance(r, str) for r in required):
            raise TypeError("required must be a list of property names")
        required_names = frozenset(required)

        fields = {name: self._fragment(sub, _join(path, name)) for name, sub in properties.items()}

        def check(value: Any, path: str, issues: list[ValidationIssue]) -> Any:
            if not isinstance(value, Mapping):
                issues.append(ValidationIssue(path, "type", f"expected object, received {_type_name(value)}"))
                return value
            parsed = {}
            for name, field_check in fields.items():
                field_path = _join(path, name)
                if name not in value:
                    if name in required_names:
                        issues.append(ValidationIssue(field_path, "required", "is required"))
                    continue
                parsed[name] = field_check(value[name], field_path, issues)
            return parsed

        return check

    def _string(self, schema: JSONSchema, path: str) -> Check:
        min_length = _count(schema, "minLength")
        max_length = _count(schema, "maxLength")
        pattern = schema.get("pattern")
        regex = re.compile(pattern) if pattern is not None else None
        fmt = schema.get("format")
        format_check = FORMAT_CHECKS.get(fmt) if isinstance(fmt, str) else None

        def check(value: Any, path: str, issues: list[ValidationIssue]) -> Any:
            if not isinstance(value, str):
                issues.append(ValidationIssue(path, "type", f"expected string, received {_type_name(value)}"))
                return value
            if min_length is not None and len(value) < min_length:
                issues.append(ValidationIssue(path, "minLength", f"must be at least {min_length} characters"))
            if max_length is not None and len(value) > max_length:
                issues.append(ValidationIssue(path, "maxLength", f"must be at most {max_length} characters"))
            if regex is not None and regex.search(value) is None:
                issues.append(ValidationIssue(path, "pattern", f"must match pattern {regex.pattern!r}"))
            if format_check is not None and not format_check(value):
                issues.append(ValidationIssue(path, "format", f"must be a valid {fmt}"))
            return value

        return check

    def _number(self, schema: JSONSchema, path: str) -> Check:
        integer = schema.get("type") == "integer"
        expected = "integer" if integer else "number"
        minimum = _bound(schema, "minimum")
        maximum = _bound(schema, "maximum")
        exclusive_minimum = _bound(schema, "exclusiveMinimum")
        exclusive_maximum = _bound(schema, "exclusiveMaximum")

        def check(value: Any, path: str, issues: list[ValidationIssue]) -> Any:
            if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
                issues.append(ValidationIssue(path, "type", f"expected {expected}, received {_type_name(value)}"))
                return value
            if integer and isinstance(value, float) and not value.is_integer():
                issues.append(ValidationIssue(path, "type", "expected integer, received float"))
            if minimum is not None and value < minimum:
                issues.append(ValidationIssue(path, "minimum", f"must be >= {minimum}"))
            if maximum is not None and value > maximum:
                issues.append(ValidationIssue(path, "maximum", f"must be <= {maximum}"))
            if exclusive_minimum is not None and value <= exclusive_minimum:
                issues.append(ValidationIssue(path, "exclusiveMinimum", f"must be > {exclusive_minimum}"))
            if exclusive_maximum is not None and value >= exclusive_maximum:
                issues.append(ValidationIssue(path, "exclusiveMaximum", f"must be < {exclusive_maximum}"))
            return value

        return check

    def _boolean(self, schema: JSONSchema, path: str) -> Check:
        def check(value: Any, path: str, issues: list[ValidationIssue]) -> Any:
            if not isinstance(value, bool):
                issues.append(ValidationIssue(path, "type", f"expected boolean, received {_type_name(value)}"))
            return value

        return check

    def _array(self, schema: JSONSchema, path: str) -> Check:
        items = schema.get("items")
        if items is not None and not isinstance(items, Mapping):
            raise TypeError("items must be a single schema")
        item_check = self._fragment(items, _join(path, "items")) if items is not None else _accept_any
        min_items = _count(schema, "minItems")
        max_items = _count(schema, "maxItems")

        def check(value: Any, path: str, issues: list[ValidationIssue]) -> Any:
            if not isinstance(value, (list, tuple)):
                issues.append(ValidationIssue(path, "type", f"expected array, received {_type_name(value)}"))
                return value
            if min_items is not None and len(value) < min_items:
                issues.append(ValidationIssue(path, "minItems", f"must contain at least {min_items} items"))
            if max_items is not None and len(value) > max_items:
                issues.append(ValidationIssue(path, "maxItems", f"must contain at most {max_items} items"))
            return [item_check(item, _join(path, index), issues) for index, item in enumerate(value)]

        return check


_default_compiler = ValidationCompiler()


def compile_schema(schema: JSONSchema) -> Validator:
    """Compile a fragment with the shared compiler."""
    return _default_compiler.compile(schema)


def snapshot_schema(schema: Any) -> Any:
    """Detached plain copy: every Mapping becomes a dict, every list or tuple a list."""
    if isinstance(schema, Mapping):
        return {key: snapshot_schema(value) for key, value in schema.items()}
    if isinstance(schema, list | tuple):
        return [snapshot_schema(item) for item in schema]
    return schema


def declare_validator(group: FieldGroup | str, schema: JSONSchema) -> ValidatorSchema:
    """Snapshot ``schema`` and compile it for ``group``."""
    frozen = snapshot_schema(schema)
    return ValidatorSchema(group=FieldGroup(group), schema=frozen, validator=compile_schema(frozen))


__all__ = [
    "FORMAT_CHECKS",
    "FieldGroup",
    "JSONSchema",
    "ValidationCompiler",
    "ValidationIssue",
    "ValidationResult",
    "Validator",
    "ValidatorSchema",
    "compile_schema",
    "declare_validator",
    "is_email",
    "is_uri",
    "is_uuid",
    "snapshot_schema",
]
