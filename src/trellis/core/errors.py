"""
Structured error types for the trellis handler engine.

Every failure the engine raises on purpose is a ``TrellisError``.  Each one
carries a category, a retryable flag, structured context (which endpoint,
which stage) and an optional chained cause, so the transport binding can map
it to a response and the logs can explain it without string parsing.

Manifesto:
    - **Typed hierarchy:** Configuration, validation and auth failures are
      distinct types, not messages
    - **Endpoint identity:** Errors carry the handler kind and identifier
    - **Error chaining:** The original exception is preserved as ``cause``
    - **Stage errors stay untouched:** Exceptions raised by user stages are
      never wrapped; only the engine's own failures use this hierarchy

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                         TrellisError                             │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ConfigError           ValidationError        AuthError          │
        │  (CONFIG)              (VALIDATION)           (AUTH)             │
        │     │                      │                     │               │
        │  HandlerConfigError    RequestValidationError AuthenticationError│
        │  DuplicateHandlerError                        AuthorizationError │
        │  InvalidRouteError                            FeatureDisabledError│
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = HandlerConfigError("route", "GET /users")
    >>> str(error)
    'Handler for route "GET /users" has no implementation'
    >>> error.category
    <ErrorCategory.CONFIG: 'CONFIG'>

Tags:
    error-handling, exception-hierarchy, error-context, trellis-core

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from trellis.framework.schema import ValidationIssue


class ErrorCategory(str, Enum):
    """Standard error categories for classification and response mapping."""

    VALIDATION = "VALIDATION"  # Request body/params/headers rejected
    CONFIG = "CONFIG"  # Declaration or registration mistakes
    AUTH = "AUTH"  # Authentication, authorization, feature gates
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        kind: Handler kind (route, event, cron, task)
        identifier: Route pattern, event name, cron expression or task name
        stage: Pipeline stage where the error surfaced
        request_id: Transport request id, when known
        metadata: Additional key-value pairs
    """

    kind: str | None = None
    identifier: str | None = None
    stage: str | None = None
    request_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["kind", "identifier", "stage", "request_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class TrellisError(Exception):
    """
    Base exception for all trellis errors.

    Subclasses set ``default_category`` and ``default_retryable`` to give
    sensible defaults for their domain.

    Examples:
        >>> error = TrellisError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS (raised while declaring or registering handlers)
# =============================================================================


class ConfigError(TrellisError):
    """Handler declaration or registration is invalid."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class HandlerConfigError(ConfigError):
    """A handler was finalized without a base handler or any version."""

    def __init__(self, kind: str, identifier: str, message: str | None = None):
        self.kind = kind
        self.identifier = identifier
        super().__init__(
            message or f'Handler for {kind} "{identifier}" has no implementation',
            context=ErrorContext(kind=kind, identifier=identifier),
        )


class DuplicateHandlerError(ConfigError):
    """The same kind/identifier pair was registered twice."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(
            f'Handler for {kind} "{identifier}" is already registered',
            context=ErrorContext(kind=kind, identifier=identifier),
        )


class InvalidRouteError(ConfigError):
    """A route identifier cannot be split into an HTTP method and a path."""

    def __init__(self, identifier: str, reason: str):
        self.identifier = identifier
        super().__init__(
            f'Invalid route "{identifier}": {reason}',
            context=ErrorContext(kind="route", identifier=identifier),
        )


# =============================================================================
# VALIDATION ERRORS (raised per request)
# =============================================================================


class ValidationError(TrellisError):
    """Input failed validation."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False


class RequestValidationError(ValidationError):
    """
    A request field group (body, params or headers) was rejected.

    Carries every issue the compiled validator found, so a value with two
    violations reports both.

    Examples:
        >>> from trellis.framework.schema import ValidationIssue
        >>> err = RequestValidationError("body", [ValidationIssue("age", "minimum", "must be >= 18")])
        >>> str(err)
        'Body validation failed: age: must be >= 18'
    """

    def __init__(self, group: str, issues: Sequence[ValidationIssue]):
        self.group = group
        self.issues = tuple(issues)
        detail = "; ".join(str(issue) for issue in self.issues) or "invalid value"
        super().__init__(
            f"{group.capitalize()} validation failed: {detail}",
            context=ErrorContext(stage="validation", metadata={"group": group}),
        )

    @property
    def codes(self) -> list[str]:
        """Violated schema keywords, in report order."""
        return [issue.code for issue in self.issues]

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["group"] = self.group
        result["issues"] = [issue.to_dict() for issue in self.issues]
        return result


# =============================================================================
# AUTH ERRORS (raised by evaluators)
# =============================================================================


class AuthError(TrellisError):
    """Authentication or authorization error."""

    default_category = ErrorCategory.AUTH
    default_retryable = False


class AuthenticationError(AuthError):
    """The caller is not authenticated."""


class AuthorizationError(AuthError):
    """The caller is authenticated but lacks a required claim."""


class FeatureDisabledError(AuthError):
    """A feature flag gates the endpoint off for this request."""

    def __init__(self, flag: str, message: str | None = None):
        self.flag = flag
        super().__init__(message or f"Feature '{flag}' is not enabled")


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "TrellisError",
    "ConfigError",
    "HandlerConfigError",
    "DuplicateHandlerError",
    "InvalidRouteError",
    "ValidationError",
    "RequestValidationError",
    "AuthError",
    "AuthenticationError",
    "AuthorizationError",
    "FeatureDisabledError",
]
