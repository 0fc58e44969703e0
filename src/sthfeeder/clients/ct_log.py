"""
RFC 6962 log client over a shared ``httpx.AsyncClient``.

Provides the two read operations a feed round needs: ``get-sth`` (verified
against the log's public key) and ``get-sth-consistency``.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any

import httpx
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from ..core.errors import ClientConstructionError, FetchError, ParseError, ProofError
from ..core.sth import (
    ConsistencyProof,
    HashAlgorithm,
    SignatureAlgorithm,
    SignedTreeHead,
    parse_sth,
)

GET_STH_PATH = "/ct/v1/get-sth"
GET_STH_CONSISTENCY_PATH = "/ct/v1/get-sth-consistency"

_BODY_SNIPPET = 256


def _snippet(resp: httpx.Response) -> str | None:
    try:
        return resp.text[:_BODY_SNIPPET]
    except Exception:
        return None


class SignatureVerifier:
    """Verifies STH signatures with a log's DER-encoded public key.

    Supports ECDSA (P-256 and friends) and RSA PKCS#1 v1.5, both with
    SHA-256, which covers every RFC 6962 log.
    """

    def __init__(self, public_key_der: bytes) -> None:
        try:
            key = serialization.load_der_public_key(public_key_der)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise ClientConstructionError(
                f"failed to load log public key: {e}", cause=e
            ) from e
        if isinstance(key, ec.EllipticCurvePublicKey):
            self._algorithm = SignatureAlgorithm.ECDSA
        elif isinstance(key, rsa.RSAPublicKey):
            self._algorithm = SignatureAlgorithm.RSA
        else:
            raise ClientConstructionError(
                f"unsupported log key type: {type(key).__name__}"
            )
        self._key: Any = key

    @property
    def algorithm(self) -> SignatureAlgorithm:
        return self._algorithm

    def verify(self, sth: SignedTreeHead) -> None:
        """Raise ``FetchError`` unless ``sth`` carries a valid signature."""
        ds = sth.tree_head_signature
        if ds.hash_algorithm != HashAlgorithm.SHA256:
            raise FetchError(
                "unsupported STH hash algorithm",
                context={"hash_algorithm": ds.hash_algorithm},
            )
        if ds.signature_algorithm != self._algorithm:
            raise FetchError(
                "STH signature algorithm does not match log key",
                context={"signature_algorithm": ds.signature_algorithm},
            )
        data = sth.signed_data()
        try:
            if self._algorithm is SignatureAlgorithm.ECDSA:
                self._key.verify(ds.signature, data, ec.ECDSA(hashes.SHA256()))
            else:
                self._key.verify(
                    ds.signature, data, padding.PKCS1v15(), hashes.SHA256()
                )
        except InvalidSignature as e:
            raise FetchError(
                "STH signature verification failed",
                cause=e,
                context={"tree_size": sth.tree_size},
            ) from e


class CTLogClient:
    """Reads STHs and consistency proofs from one CT log.

    Args:
        url: Base URL of the log (the part before ``/ct/v1/``).
        client: Shared HTTP client; one is created and owned if omitted.
        verifier: Signature verifier; ``None`` disables verification.
    """

    def __init__(
        self,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
        verifier: SignatureVerifier | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        try:
            parts = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise ClientConstructionError(
                f"invalid log URL: {e}", cause=e, context={"url": url}
            ) from e
        if parts.scheme not in ("http", "https") or not parts.host:
            raise ClientConstructionError(
                "log URL must be an absolute http(s) URL", context={"url": url}
            )
        self._base = url.rstrip("/")
        self._owns_client = client is None
        self._http = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._verifier = verifier

    @classmethod
    def from_key(
        cls,
        public_key_der: bytes,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> CTLogClient:
        """Build a verifying client from a registry entry's key and URL."""
        return cls(url, client=client, verifier=SignatureVerifier(public_key_der))

    @property
    def base_url(self) -> str:
        return self._base

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def get_sth(self) -> tuple[SignedTreeHead, bytes]:
        url = self._base + GET_STH_PATH
        try:
            resp = await self._http.get(url)
        except httpx.HTTPError as e:
            raise FetchError(
                f"failed to get latest STH: {e}", cause=e, context={"url": url}
            ) from e
        if resp.status_code != 200:
            raise FetchError(
                "failed to get latest STH",
                context={
                    "url": url,
                    "status_code": resp.status_code,
                    "body": _snippet(resp),
                },
            )
        raw = resp.content
        try:
            sth = parse_sth(raw)
        except ParseError as e:
            raise FetchError(
                f"failed to parse response as STH: {e}", cause=e, context={"url": url}
            ) from e
        if self._verifier is not None:
            self._verifier.verify(sth)
        return sth, raw

    async def get_sth_consistency(self, first: int, second: int) -> ConsistencyProof:
        if first < 0 or second < first:
            raise ProofError(
                "invalid consistency proof range",
                context={"first": first, "second": second},
            )
        url = self._base + GET_STH_CONSISTENCY_PATH
        try:
            resp = await self._http.get(
                url, params={"first": str(first), "second": str(second)}
            )
        except httpx.HTTPError as e:
            raise ProofError(
                f"failed to get consistency proof: {e}",
                cause=e,
                context={"url": url, "first": first, "second": second},
            ) from e
        if resp.status_code != 200:
            raise ProofError(
                "failed to get consistency proof",
                context={
                    "url": url,
                    "status_code": resp.status_code,
                    "body": _snippet(resp),
                },
            )
        try:
            body = resp.json()
            hashes_b64 = body["consistency"]
            if not isinstance(hashes_b64, list):
                raise TypeError("consistency must be a list")
            return [base64.b64decode(h, validate=True) for h in hashes_b64]
        except (ValueError, KeyError, TypeError, binascii.Error) as e:
            raise ProofError(
                f"malformed consistency proof response: {e}",
                cause=e,
                context={"url": url},
            ) from e


__all__ = ["CTLogClient", "SignatureVerifier"]
