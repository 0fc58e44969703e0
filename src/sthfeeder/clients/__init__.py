from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from ..core.sth import ConsistencyProof, SignedTreeHead, WitnessUpdateOutcome


@runtime_checkable
class LogReader(Protocol):
    """Read side of a transparency log.

    Implementations return already-verified objects. ``get_sth`` raises
    ``FetchError`` and ``get_sth_consistency`` raises ``ProofError``.
    """

    async def get_sth(self) -> tuple[SignedTreeHead, bytes]:
        """Return the latest STH and the raw response bytes it came from."""
        ...

    async def get_sth_consistency(self, first: int, second: int) -> ConsistencyProof:
        ...


@runtime_checkable
class Witness(Protocol):
    """Submission side of a witness.

    ``update`` returns ``Accepted`` or ``TooOld``; every other failure
    raises ``SubmitError``.
    """

    async def update(
        self, log_id: str, sth: bytes, proof: Sequence[bytes] | None
    ) -> WitnessUpdateOutcome:
        ...


__all__ = ["LogReader", "Witness"]
