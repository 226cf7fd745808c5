"""
Shared pytest fixtures and configuration for trellis tests.

This module provides:
- A minimal transport request double (headers mapping + async json())
- Settings and logging-context cleanup for test isolation
- A fresh HandlerRegistry per test

Usage:
    Fixtures are auto-discovered by pytest. Simply use them as function
    arguments (pytest injects them automatically).

    async def test_something(make_request):
        request = make_request(body={"name": "Ada"}, headers={"x-api-version": "v1"})
"""

import sys
from pathlib import Path
from typing import Any, Generator

import pytest

# Ensure trellis package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trellis.core.settings import get_settings
from trellis.framework.logging import clear_context, configure_logging
from trellis.framework.registry import HandlerRegistry


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if test_path.parts and test_path.parts[0] == "api":
            item.add_marker(pytest.mark.integration)
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def configure_test_logging() -> None:
    """Route structlog through stdlib logging at DEBUG for the whole session."""
    configure_logging(level="DEBUG", format="console", force=True)


@pytest.fixture(autouse=True)
def reset_settings_and_context() -> Generator[None, None, None]:
    """
    Drop cached settings and the logging context before and after each test.

    Tests that set TRELLIS_* variables with monkeypatch see them on the
    next get_settings() call.
    """
    get_settings.cache_clear()
    clear_context()
    yield
    get_settings.cache_clear()
    clear_context()


@pytest.fixture
def registry() -> HandlerRegistry:
    """An empty registry."""
    return HandlerRegistry()


# =============================================================================
# Transport Doubles
# =============================================================================


class FakeRequest:
    """
    Stand-in for a transport request.

    Exposes what the pipeline reads: ``headers``, ``async json()`` and,
    optionally, ``query_params`` / ``path_params``.  Counts body reads so
    tests can check the body is read at most once.
    """

    def __init__(
        self,
        body: Any = None,
        headers: dict[str, str] | None = None,
        query_params: dict[str, Any] | None = None,
        path_params: dict[str, Any] | None = None,
        body_error: Exception | None = None,
    ):
        self._body = body
        self._body_error = body_error
        self.headers = dict(headers or {})
        self.query_params = dict(query_params or {})
        self.path_params = dict(path_params or {})
        self.json_calls = 0

    async def json(self) -> Any:
        self.json_calls += 1
        if self._body_error is not None:
            raise self._body_error
        return self._body


@pytest.fixture
def make_request():
    """Factory fixture building FakeRequest instances."""

    def _make(**kwargs: Any) -> FakeRequest:
        return FakeRequest(**kwargs)

    return _make
