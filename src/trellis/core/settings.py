"""Shared settings for trellis services and tooling.

Every process that declares handlers needs the same few knobs: the log
level and format, the names of the reserved version-negotiation inputs and
the labels of the generated OpenAPI document.  ``TrellisSettings`` collects
them in one validated, environment-driven object.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not per request
    - **Environment-driven:** Reads ``TRELLIS_*`` env vars and ``.env`` files
    - **Sensible defaults:** ``x-api-version`` / ``version`` out of the box

Examples:
    >>> from trellis.core.settings import TrellisSettings
    >>> TrellisSettings(version_header="x-version").version_header
    'x-version'

Tags:
    settings, configuration, pydantic, environment, trellis-core

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TrellisSettings(BaseSettings):
    """Common settings shared by the engine, the API binding and the CLI.

    Fields
    ──────
    service_name     : Value of ``service.name`` in every log event
    debug            : Expose error details in problem responses
    log_level        : Structlog log level
    log_format       : ``console`` for development, ``json`` for aggregation
    version_header   : Reserved request header carrying the version hint
    version_param    : Reserved path/query parameter carrying the version hint
    openapi_title    : ``info.title`` of the generated OpenAPI document
    openapi_version  : ``info.version`` of the generated OpenAPI document
    api_prefix       : Prefix prepended to every mounted route path
    """

    model_config = SettingsConfigDict(
        env_prefix="TRELLIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    service_name: str = "trellis"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    # ── Version negotiation ──────────────────────────────────────
    version_header: str = Field(default="x-api-version", description="Version hint header")
    version_param: str = Field(default="version", description="Version hint parameter")

    # ── Documentation ────────────────────────────────────────────
    openapi_title: str = "trellis API"
    openapi_version: str = "0.1.0"
    api_prefix: str = ""

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @field_validator("log_format", mode="before")
    @classmethod
    def _lower_format(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value

    @field_validator("version_header")
    @classmethod
    def _lower_header(cls, value: str) -> str:
        return value.lower()


@lru_cache
def get_settings() -> TrellisSettings:
    """Return the process-wide settings singleton."""
    return TrellisSettings()
