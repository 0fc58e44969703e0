"""
CT log list (v3) loading and session population.

Only logs whose state is ``usable`` are fed. Any failure while fetching,
parsing or building clients aborts population; a partial session list is
never returned.
"""

from __future__ import annotations

import base64
import binascii
import json
from enum import Enum
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core import diagnostics
from ..core.errors import ClientConstructionError, RegistryError
from ..core.session import LogIdentity, LogSession
from .ct_log import CTLogClient


class LogStatus(str, Enum):
    PENDING = "pending"
    QUALIFIED = "qualified"
    USABLE = "usable"
    READONLY = "readonly"
    RETIRED = "retired"
    REJECTED = "rejected"
    UNDEFINED = "undefined"


class LogState(BaseModel):
    """Exactly one of the fields is set in a well-formed log list."""

    model_config = ConfigDict(extra="ignore")

    pending: Optional[dict[str, Any]] = None
    qualified: Optional[dict[str, Any]] = None
    usable: Optional[dict[str, Any]] = None
    readonly: Optional[dict[str, Any]] = None
    retired: Optional[dict[str, Any]] = None
    rejected: Optional[dict[str, Any]] = None

    @property
    def status(self) -> LogStatus:
        for status in (
            LogStatus.PENDING,
            LogStatus.QUALIFIED,
            LogStatus.USABLE,
            LogStatus.READONLY,
            LogStatus.RETIRED,
            LogStatus.REJECTED,
        ):
            if getattr(self, status.value) is not None:
                return status
        return LogStatus.UNDEFINED


class LogEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    description: str = ""
    log_id: bytes
    key: bytes
    url: str
    mmd: Optional[int] = None
    state: Optional[LogState] = None

    @field_validator("log_id", "key", mode="before")
    @classmethod
    def _decode_base64(cls, value: Any) -> bytes:
        if not isinstance(value, str):
            raise ValueError("must be a base64 string")
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"invalid base64: {e}") from e

    @property
    def status(self) -> LogStatus:
        if self.state is None:
            return LogStatus.UNDEFINED
        return self.state.status

    @property
    def log_id_b64(self) -> str:
        return base64.b64encode(self.log_id).decode("ascii")


class Operator(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    email: list[str] = Field(default_factory=list)
    logs: list[LogEntry] = Field(default_factory=list)


class LogList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    version: str = ""
    log_list_timestamp: str = ""
    operators: list[Operator] = Field(default_factory=list)

    def select_by_status(self, *statuses: LogStatus) -> list[LogEntry]:
        wanted = set(statuses)
        return [
            log
            for operator in self.operators
            for log in operator.logs
            if log.status in wanted
        ]


async def fetch_log_list(url: str, *, client: httpx.AsyncClient) -> bytes:
    try:
        resp = await client.get(url)
    except httpx.HTTPError as e:
        raise RegistryError(
            f"failed to retrieve log list: {e}", cause=e, context={"url": url}
        ) from e
    if resp.status_code != 200:
        raise RegistryError(
            "failed to retrieve log list",
            context={"url": url, "status_code": resp.status_code},
        )
    return resp.content


def parse_log_list(body: bytes) -> LogList:
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise RegistryError(f"failed to parse JSON: {e}", cause=e) from e
    try:
        return LogList.model_validate(data)
    except ValidationError as e:
        raise RegistryError(f"malformed log list: {e}", cause=e) from e


def build_sessions(
    log_list: LogList, *, client: httpx.AsyncClient | None = None
) -> list[LogSession]:
    """Create one session per usable log, in document order."""
    sessions: list[LogSession] = []
    for entry in log_list.select_by_status(LogStatus.USABLE):
        try:
            log_client = CTLogClient.from_key(entry.key, entry.url, client=client)
        except ClientConstructionError as e:
            e.context.setdefault("log", entry.description)
            raise
        identity = LogIdentity(id=entry.log_id_b64, name=entry.description)
        sessions.append(LogSession(identity, log_client))
    return sessions


async def populate_sessions(
    log_list_url: str, *, client: httpx.AsyncClient
) -> list[LogSession]:
    """Fetch the log list and build sessions for every usable log.

    Raises:
        RegistryError: The list could not be fetched or parsed.
        ClientConstructionError: A usable log's client could not be built.
    """
    body = await fetch_log_list(log_list_url, client=client)
    log_list = parse_log_list(body)
    sessions = build_sessions(log_list, client=client)
    diagnostics.info(
        "registry",
        "loaded log list",
        url=log_list_url,
        version=log_list.version,
        usable_logs=len(sessions),
    )
    return sessions


# Mark Pydantic validators as used for vulture
_VULTURE_USED: tuple[object, ...] = (LogEntry._decode_base64,)

__all__ = [
    "LogEntry",
    "LogList",
    "LogState",
    "LogStatus",
    "Operator",
    "build_sessions",
    "fetch_log_list",
    "parse_log_list",
    "populate_sessions",
]
