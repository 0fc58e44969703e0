"""Pytest fixtures for sthfeeder tests. Registered via ``pytest_plugins``."""

from __future__ import annotations

from typing import Any, Callable, Generator, Sequence

import pytest

from ..core import diagnostics
from ..core.session import LogIdentity, LogSession
from .fakes import FakeLogReader, FakeWitness


class CapturingLogger:
    """Records diagnostics instead of emitting them."""

    def __init__(self) -> None:
        self.records: list[dict[str, Any]] = []

    def _record(self, level: str, message: str, **fields: Any) -> None:
        self.records.append({"level": level, "message": message, **fields})

    def debug(self, message: str, **fields: Any) -> None:
        self._record("DEBUG", message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self._record("INFO", message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._record("WARNING", message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self._record("ERROR", message, **fields)

    def messages(self, level: str | None = None) -> list[str]:
        return [
            r["message"] for r in self.records if level is None or r["level"] == level
        ]


@pytest.fixture
def captured_diagnostics() -> Generator[CapturingLogger, None, None]:
    logger = CapturingLogger()
    diagnostics.set_logger_for_tests(logger)
    diagnostics.configure("DEBUG")
    yield logger
    diagnostics.set_logger_for_tests(None)
    diagnostics.configure("INFO")


@pytest.fixture
def fake_witness() -> FakeWitness:
    return FakeWitness()


@pytest.fixture
def make_session() -> Callable[..., LogSession]:
    """Factory: ``make_session(sizes, name=..., **reader_kwargs)``."""
    counter = {"n": 0}

    def _make(
        sizes: Sequence[int] = (0,), *, name: str | None = None, **kwargs: Any
    ) -> LogSession:
        counter["n"] += 1
        n = counter["n"]
        identity = LogIdentity(id=f"bG9nLWlk{n:04d}", name=name or f"log-{n}")
        return LogSession(identity, FakeLogReader(sizes, **kwargs))

    return _make
