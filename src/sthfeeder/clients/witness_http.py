"""
HTTP client for a CT witness.

Speaks the witness ``update`` endpoint:

    PUT /witness/v0/logs/<log id>/update
    {"STH": <base64 STH bytes>, "Proof": [<base64 hash>, ...] | null}

200 means the witness accepted the STH; 409 Conflict means it already holds
an equal-or-newer STH. Both responses carry the STH the witness now holds.

The update path is appended to the configured witness URL, so a URL with a
path prefix (``https://host/prefix``) sends updates to
``/prefix/witness/v0/...``. Clients that resolve the path against the host
root ignore such a prefix; point the feeder at the bare origin to match them.
"""

from __future__ import annotations

import base64
from typing import Any, Mapping, Sequence
from urllib.parse import quote

import httpx

from ..core.errors import ConfigurationError, SubmitError
from ..core.sth import Accepted, TooOld, WitnessUpdateOutcome

UPDATE_PATH = "/witness/v0/logs/{log_id}/update"

_BODY_SNIPPET = 256


def update_path(log_id: str) -> str:
    # Log ids are standard base64: escape "/" but keep "+" and "="
    return UPDATE_PATH.format(log_id=quote(log_id, safe="+="))


def encode_update_request(sth: bytes, proof: Sequence[bytes] | None) -> dict[str, Any]:
    return {
        "STH": base64.b64encode(sth).decode("ascii"),
        "Proof": (
            None
            if proof is None
            else [base64.b64encode(h).decode("ascii") for h in proof]
        ),
    }


class WitnessClient:
    """Submits STHs and consistency proofs to a witness.

    Args:
        url: Base URL of the witness HTTP API.
        client: Shared HTTP client; one is created and owned if omitted.
        headers: Extra headers sent with every request.
    """

    def __init__(
        self,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
        headers: Mapping[str, str] | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise ConfigurationError(
                f"failed to parse witness URL: {e}", cause=e, context={"url": url}
            ) from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ConfigurationError(
                "witness URL must be an absolute http(s) URL", context={"url": url}
            )
        self._base = url.rstrip("/")
        self._headers = dict(headers or {})
        self._owns_client = client is None
        self._http = client or httpx.AsyncClient(timeout=timeout_seconds)

    @property
    def base_url(self) -> str:
        return self._base

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def update(
        self, log_id: str, sth: bytes, proof: Sequence[bytes] | None
    ) -> WitnessUpdateOutcome:
        url = self._base + update_path(log_id)
        payload = encode_update_request(sth, proof)
        try:
            resp = await self._http.put(url, json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            raise SubmitError(
                f"failed to update STH: {e}", cause=e, context={"url": url}
            ) from e

        body = resp.content
        if resp.status_code == 200:
            return Accepted(body)
        if resp.status_code == 409:
            return TooOld(body)

        snippet: str | None
        try:
            snippet = resp.text[:_BODY_SNIPPET]
        except Exception:
            snippet = None
        raise SubmitError(
            f"bad status response ({resp.status_code})",
            context={"url": url, "status_code": resp.status_code, "body": snippet},
        )


__all__ = ["WitnessClient", "encode_update_request", "update_path"]
