"""
Root pytest configuration.
"""

from __future__ import annotations

import os
from collections.abc import Generator

import pytest


def get_test_timeout(base: float, max_multiplier: float = 5.0) -> float:
    """Apply CI timeout multiplier to a base timeout value.

    Environment:
        CI_TIMEOUT_MULTIPLIER: Multiplier for CI environments (default: 1.0)
    """
    raw = os.getenv("CI_TIMEOUT_MULTIPLIER", "1.0")
    try:
        multiplier = float(raw) if raw else 1.0
        multiplier = min(multiplier, max_multiplier)
    except ValueError:
        multiplier = 1.0
    return base * multiplier


# Register sthfeeder testing fixtures for all tests
pytest_plugins = ("sthfeeder.testing.fixtures",)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests exercising several components together",
    )
    config.addinivalue_line(
        "markers",
        "slow: Tests that take >1 second",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics() -> Generator[None, None, None]:
    """Keep fapilog out of tests and reset the configured level.

    Each test starts with a silent logger; tests that assert on diagnostics
    use the ``captured_diagnostics`` fixture instead.
    """
    import sthfeeder.core.diagnostics as diag

    class _Silent:
        def debug(self, *a: object, **k: object) -> None: ...

        def info(self, *a: object, **k: object) -> None: ...

        def warning(self, *a: object, **k: object) -> None: ...

        def error(self, *a: object, **k: object) -> None: ...

    diag.set_logger_for_tests(_Silent())
    diag.configure("INFO")
    yield
    diag.set_logger_for_tests(None)
    diag.configure("INFO")
