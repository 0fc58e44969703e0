"""
Signed Tree Head model and RFC 6962 wire parsing.

The same parser handles ``get-sth`` responses from logs and the STH bytes a
witness returns, so both sides of a feed round agree on what a tree size is.
"""

from __future__ import annotations

import base64
import binascii
import json
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Union

from .errors import ParseError

MAX_UINT64 = 2**64 - 1
SHA256_SIZE = 32


class HashAlgorithm(IntEnum):
    NONE = 0
    MD5 = 1
    SHA1 = 2
    SHA224 = 3
    SHA256 = 4
    SHA384 = 5
    SHA512 = 6


class SignatureAlgorithm(IntEnum):
    ANONYMOUS = 0
    RSA = 1
    DSA = 2
    ECDSA = 3


@dataclass(frozen=True)
class DigitallySigned:
    """TLS ``DigitallySigned`` struct carried in ``tree_head_signature``."""

    hash_algorithm: int
    signature_algorithm: int
    signature: bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> DigitallySigned:
        if len(data) < 4:
            raise ParseError("tree_head_signature too short")
        hash_alg, sig_alg, length = struct.unpack(">BBH", data[:4])
        signature = data[4:]
        if len(signature) != length:
            raise ParseError(
                "tree_head_signature length mismatch",
                context={"declared": length, "actual": len(signature)},
            )
        return cls(hash_alg, sig_alg, signature)

    def to_bytes(self) -> bytes:
        return (
            struct.pack(
                ">BBH",
                self.hash_algorithm,
                self.signature_algorithm,
                len(self.signature),
            )
            + self.signature
        )


@dataclass(frozen=True)
class SignedTreeHead:
    tree_size: int
    timestamp: int
    sha256_root_hash: bytes
    tree_head_signature: DigitallySigned

    def signed_data(self) -> bytes:
        """Serialize the ``TreeHeadSignature`` input the log signed.

        Layout: version v1 (0), signature_type tree_hash (1), uint64
        timestamp, uint64 tree_size, 32-byte root hash.
        """
        return (
            struct.pack(">BBQQ", 0, 1, self.timestamp, self.tree_size)
            + self.sha256_root_hash
        )

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "tree_size": self.tree_size,
            "timestamp": self.timestamp,
            "sha256_root_hash": base64.b64encode(self.sha256_root_hash).decode(),
            "tree_head_signature": base64.b64encode(
                self.tree_head_signature.to_bytes()
            ).decode(),
        }


def _uint64(obj: dict[str, Any], key: str) -> int:
    value = obj.get(key)
    # bool is an int subclass; reject it explicitly
    if not isinstance(value, int) or isinstance(value, bool):
        raise ParseError(f"{key} must be an integer", context={"field": key})
    if value < 0 or value > MAX_UINT64:
        raise ParseError(f"{key} out of range", context={"field": key})
    return value


def _b64(obj: dict[str, Any], key: str) -> bytes:
    value = obj.get(key)
    if not isinstance(value, str):
        raise ParseError(f"{key} must be a base64 string", context={"field": key})
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ParseError(
            f"{key} is not valid base64", cause=e, context={"field": key}
        ) from e


def parse_sth(raw: Union[bytes, str]) -> SignedTreeHead:
    """Parse a JSON ``get-sth`` response into a :class:`SignedTreeHead`.

    Raises:
        ParseError: On malformed JSON, missing fields, out-of-range sizes,
            a root hash that is not 32 bytes or a malformed signature.
    """
    try:
        obj = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise ParseError("STH is not valid JSON", cause=e) from e
    if not isinstance(obj, dict):
        raise ParseError("STH must be a JSON object")

    tree_size = _uint64(obj, "tree_size")
    timestamp = _uint64(obj, "timestamp")
    root_hash = _b64(obj, "sha256_root_hash")
    if len(root_hash) != SHA256_SIZE:
        raise ParseError(
            "sha256_root_hash has wrong length",
            context={"length": len(root_hash)},
        )
    signature = DigitallySigned.from_bytes(_b64(obj, "tree_head_signature"))
    return SignedTreeHead(
        tree_size=tree_size,
        timestamp=timestamp,
        sha256_root_hash=root_hash,
        tree_head_signature=signature,
    )


# Witness update outcomes


@dataclass(frozen=True)
class WitnessUpdateOutcome:
    """What the witness holds after an update; ``raw`` is its STH bytes."""

    raw: bytes

    @property
    def too_old(self) -> bool:
        return False


@dataclass(frozen=True)
class Accepted(WitnessUpdateOutcome):
    """The witness accepted the submitted STH."""


@dataclass(frozen=True)
class TooOld(WitnessUpdateOutcome):
    """The witness already holds an equal-or-newer STH."""

    @property
    def too_old(self) -> bool:
        return True


ConsistencyProof = list[bytes]

__all__ = [
    "Accepted",
    "ConsistencyProof",
    "DigitallySigned",
    "HashAlgorithm",
    "SignatureAlgorithm",
    "SignedTreeHead",
    "TooOld",
    "WitnessUpdateOutcome",
    "parse_sth",
]
