"""
Operational logging for the feeder.

Thin wrapper over a ``fapilog`` logger so call sites stay one-liners:

    diagnostics.warn("feed", "round failed", log=name, error=str(exc))

The level set with :func:`configure` is handed to fapilog when the logger is
built, so fapilog does all level filtering. Emission never raises into the
caller; a failing logger must not stop a feed loop.
"""

from __future__ import annotations

from typing import Any, Protocol

LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR")

_level: str = "INFO"
_logger: Any | None = None
_injected: bool = False


class _LoggerLike(Protocol):
    def debug(self, message: str, **kwargs: Any) -> None: ...

    def info(self, message: str, **kwargs: Any) -> None: ...

    def warning(self, message: str, **kwargs: Any) -> None: ...

    def error(self, message: str, **kwargs: Any) -> None: ...


def configure(level: str = "INFO") -> None:
    """Set the level the fapilog logger is built with.

    A logger already built at another level is discarded and rebuilt on the
    next emission. An injected test logger is kept.
    """
    global _level, _logger
    level = level.upper()
    if level not in LEVELS:
        raise ValueError(f"unknown log level: {level!r}")
    if level != _level and not _injected:
        _logger = None
    _level = level


def current_level() -> str:
    return _level


def set_logger_for_tests(logger: _LoggerLike | None) -> None:
    """Replace the backing logger; ``None`` restores lazy fapilog creation."""
    global _logger, _injected
    _logger = logger
    _injected = logger is not None


def _build_logger(level: str) -> Any:
    from fapilog.builder import LoggerBuilder

    return LoggerBuilder().with_name("sthfeeder").with_level(level).build()


def _get_logger() -> Any:
    global _logger
    if _logger is None:
        _logger = _build_logger(_level)
    return _logger


def _emit(level: str, component: str, message: str, fields: dict[str, Any]) -> None:
    try:
        logger = _get_logger()
        method = getattr(logger, level)
        method(message, component=component, **fields)
    except Exception:
        # Diagnostics should never break feeding
        pass


def debug(component: str, message: str, **fields: Any) -> None:
    _emit("debug", component, message, fields)


def info(component: str, message: str, **fields: Any) -> None:
    _emit("info", component, message, fields)


def warn(component: str, message: str, **fields: Any) -> None:
    _emit("warning", component, message, fields)


def error(component: str, message: str, **fields: Any) -> None:
    _emit("error", component, message, fields)


async def drain() -> None:
    """Flush and stop the backing logger if it supports draining."""
    global _logger, _injected
    logger = _logger
    if logger is None:
        return
    stop = getattr(logger, "stop_and_drain", None)
    if stop is None:
        return
    try:
        await stop()
    except Exception:
        pass
    _logger = None
    _injected = False
