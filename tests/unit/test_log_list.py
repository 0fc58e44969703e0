from __future__ import annotations

import base64
import json
from typing import Any

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from sthfeeder.clients.ct_log import CTLogClient
from sthfeeder.clients.log_list import (
    LogStatus,
    build_sessions,
    parse_log_list,
    populate_sessions,
)
from sthfeeder.core.errors import ClientConstructionError, RegistryError

LOG_LIST_URL = "https://registry.example.com/log_list.json"


def _key_b64() -> str:
    der = (
        ec.generate_private_key(ec.SECP256R1())
        .public_key()
        .public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )
    return base64.b64encode(der).decode()


def _log(name: str, state: str | None, *, key: str | None = None) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "description": name,
        "log_id": base64.b64encode(name.encode().ljust(32, b"\0")).decode(),
        "key": key if key is not None else _key_b64(),
        "url": f"https://ct.example.com/{name}/",
        "mmd": 86400,
    }
    if state is not None:
        entry["state"] = {state: {"timestamp": "2024-01-01T00:00:00Z"}}
    return entry


def _document(*logs: dict[str, Any]) -> bytes:
    return json.dumps(
        {
            "version": "42.0",
            "log_list_timestamp": "2024-06-01T00:00:00Z",
            "operators": [
                {"name": "Example", "email": ["ct@example.com"], "logs": list(logs)}
            ],
        }
    ).encode()


def test_parse_reports_statuses() -> None:
    doc = parse_log_list(
        _document(
            _log("a", "usable"),
            _log("b", "retired"),
            _log("c", "readonly"),
            _log("d", None),
        )
    )
    statuses = [log.status for log in doc.operators[0].logs]
    assert statuses == [
        LogStatus.USABLE,
        LogStatus.RETIRED,
        LogStatus.READONLY,
        LogStatus.UNDEFINED,
    ]
    assert doc.version == "42.0"


def test_build_sessions_only_usable_in_order() -> None:
    doc = parse_log_list(
        _document(_log("a", "usable"), _log("b", "qualified"), _log("c", "usable"))
    )
    sessions = build_sessions(doc)
    assert [s.name for s in sessions] == ["a", "c"]
    assert all(isinstance(s.client, CTLogClient) for s in sessions)
    assert all(not s.snapshot.present for s in sessions)


def test_session_id_is_base64_of_log_id() -> None:
    doc = parse_log_list(_document(_log("a", "usable")))
    (session,) = build_sessions(doc)
    assert session.identity.id == base64.b64encode(b"a".ljust(32, b"\0")).decode()


def test_bad_key_aborts_population() -> None:
    doc = parse_log_list(
        _document(
            _log("good", "usable"),
            _log("bad", "usable", key=base64.b64encode(b"junk").decode()),
        )
    )
    with pytest.raises(ClientConstructionError) as exc_info:
        build_sessions(doc)
    assert exc_info.value.context["log"] == "bad"
    assert exc_info.value.fatal


def test_bad_key_on_unused_log_is_ignored() -> None:
    doc = parse_log_list(
        _document(
            _log("good", "usable"),
            _log("old", "retired", key=base64.b64encode(b"junk").decode()),
        )
    )
    assert [s.name for s in build_sessions(doc)] == ["good"]


@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b'{"operators": "nope"}',
        b'{"operators": [{"logs": [{"log_id": "%%%", "key": "", "url": "x"}]}]}',
        b'{"operators": [{"logs": [{"key": "AA==", "url": "x"}]}]}',
    ],
    ids=["invalid-json", "operators-not-list", "bad-base64", "missing-log-id"],
)
def test_parse_errors_are_registry_errors(body: bytes) -> None:
    with pytest.raises(RegistryError):
        parse_log_list(body)


@pytest.mark.asyncio
async def test_populate_sessions_fetches_and_logs(captured_diagnostics) -> None:
    body = _document(_log("a", "usable"), _log("b", "usable"))

    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == LOG_LIST_URL
        return httpx.Response(200, content=body)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        sessions = await populate_sessions(LOG_LIST_URL, client=http)

    assert [s.name for s in sessions] == ["a", "b"]
    (record,) = [r for r in captured_diagnostics.records if r["level"] == "INFO"]
    assert record["message"] == "loaded log list"
    assert record["usable_logs"] == 2
    assert record["version"] == "42.0"


@pytest.mark.asyncio
async def test_populate_sessions_status_error() -> None:
    transport = httpx.MockTransport(lambda r: httpx.Response(404))
    async with httpx.AsyncClient(transport=transport) as http:
        with pytest.raises(RegistryError) as exc_info:
            await populate_sessions(LOG_LIST_URL, client=http)
    assert exc_info.value.context["status_code"] == 404


@pytest.mark.asyncio
async def test_populate_sessions_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        with pytest.raises(RegistryError):
            await populate_sessions(LOG_LIST_URL, client=http)
