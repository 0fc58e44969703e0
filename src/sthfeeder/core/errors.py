"""
Error taxonomy for the STH feeder.

Startup errors (configuration, registry, client construction) are fatal and
abort the process. Round errors (fetch, proof, submit, parse, timeout) are
contained by the feed loop, logged, and retried on the next tick.

A witness reporting that it already holds an equal-or-newer STH is not an
error; it is the ``TooOld`` outcome in :mod:`sthfeeder.core.sth`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    CONFIGURATION = "configuration"
    REGISTRY = "registry"
    CLIENT = "client"
    FETCH = "fetch"
    PROOF = "proof"
    SUBMIT = "submit"
    PARSE = "parse"
    TIMEOUT = "timeout"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FeederError(Exception):
    """Base class for all feeder errors.

    Args:
        message: Human readable description.
        category: Broad classification used for metrics and diagnostics.
        severity: How bad this is for the process.
        cause: Underlying exception, if any.
        context: Extra structured fields attached to diagnostics.
    """

    default_category: ErrorCategory = ErrorCategory.FETCH
    default_severity: ErrorSeverity = ErrorSeverity.MEDIUM

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        severity: ErrorSeverity | None = None,
        cause: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.severity = severity or self.default_severity
        self.cause = cause
        self.context: dict[str, Any] = dict(context or {})

    @property
    def fatal(self) -> bool:
        return self.severity is ErrorSeverity.CRITICAL

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "error.type": type(self).__name__,
            "error.message": self.message,
            "error.category": self.category.value,
            "error.severity": self.severity.value,
        }
        if self.cause is not None:
            data["error.cause"] = f"{type(self.cause).__name__}: {self.cause}"
        data.update(self.context)
        return data


# Startup errors


class ConfigurationError(FeederError):
    default_category = ErrorCategory.CONFIGURATION
    default_severity = ErrorSeverity.CRITICAL


class RegistryError(FeederError):
    """The log list could not be fetched, read, or parsed."""

    default_category = ErrorCategory.REGISTRY
    default_severity = ErrorSeverity.CRITICAL


class ClientConstructionError(FeederError):
    """A log client could not be built from its registry entry."""

    default_category = ErrorCategory.CLIENT
    default_severity = ErrorSeverity.CRITICAL


# Round errors


class FetchError(FeederError):
    """The latest STH could not be fetched, parsed, or verified."""

    default_category = ErrorCategory.FETCH


class ProofError(FeederError):
    """The consistency proof could not be retrieved from the log."""

    default_category = ErrorCategory.PROOF


class SubmitError(FeederError):
    """The witness rejected the update for a reason other than "too old"."""

    default_category = ErrorCategory.SUBMIT


class ParseError(FeederError):
    """STH bytes could not be parsed."""

    default_category = ErrorCategory.PARSE


class RoundTimeoutError(FeederError):
    """A feed round did not finish before its deadline."""

    default_category = ErrorCategory.TIMEOUT
    default_severity = ErrorSeverity.LOW


__all__ = [
    "ClientConstructionError",
    "ConfigurationError",
    "ErrorCategory",
    "ErrorSeverity",
    "FeederError",
    "FetchError",
    "ParseError",
    "ProofError",
    "RegistryError",
    "RoundTimeoutError",
    "SubmitError",
]
