"""
Per-log feeding state and the feed round.

A :class:`LogSession` owns the last STH the witness is known to hold for one
log. :meth:`LogSession.feed_once` runs a single round:

1. fetch the latest STH from the log;
2. stop if the witness is already at (or beyond) that size;
3. fetch a consistency proof from the witnessed size, unless nothing has been
   witnessed yet;
4. submit the STH and proof to the witness, treating "too old" as success;
5. parse the STH the witness returns;
6. replace the snapshot.

Every failure before step 6 leaves the snapshot untouched, so the next round
re-derives the same decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from . import diagnostics
from .errors import FeederError, FetchError, ParseError, ProofError, SubmitError
from .sth import ConsistencyProof, SignedTreeHead, parse_sth

if TYPE_CHECKING:
    from ..clients import LogReader, Witness


@dataclass(frozen=True)
class LogIdentity:
    """Stable identity of a log: base64 log id and a display name."""

    id: str
    name: str


@dataclass(frozen=True)
class LogStateSnapshot:
    """Last STH known to be held by the witness for one log."""

    tree_size: int = 0
    raw: bytes = b""
    sth: Optional[SignedTreeHead] = None

    @property
    def present(self) -> bool:
        return self.sth is not None

    @classmethod
    def from_raw(cls, raw: bytes) -> LogStateSnapshot:
        sth = parse_sth(raw)
        return cls(tree_size=sth.tree_size, raw=bytes(raw), sth=sth)


EMPTY_SNAPSHOT = LogStateSnapshot()


class FeedResult(str, Enum):
    NOOP = "noop"
    ACCEPTED = "accepted"
    TOO_OLD = "too_old"


class LogSession:
    """Feeding state for one log.

    Sessions are owned by exactly one feed loop; nothing else reads or
    writes the snapshot while the process runs.
    """

    def __init__(
        self,
        identity: LogIdentity,
        client: LogReader,
        *,
        snapshot: LogStateSnapshot = EMPTY_SNAPSHOT,
    ) -> None:
        self.identity = identity
        self.client = client
        self._snapshot = snapshot

    def __repr__(self) -> str:
        return (
            f"LogSession(name={self.identity.name!r}, "
            f"witnessed_size={self.latest_size()})"
        )

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def snapshot(self) -> LogStateSnapshot:
        return self._snapshot

    def latest_size(self) -> int:
        """Size of the latest witnessed STH, 0 if none yet."""
        if self._snapshot.present:
            return self._snapshot.tree_size
        return 0

    async def feed_once(self, witness: Witness) -> FeedResult:
        """Try to move the witness to the log's latest STH.

        Raises:
            FetchError, ProofError, SubmitError, ParseError: The round was
                abandoned and the snapshot is unchanged.
        """
        sth, sth_raw = await self._fetch_latest()

        w_size = self.latest_size()
        if w_size >= sth.tree_size:
            diagnostics.debug(
                "feed",
                "witness size >= log size - nothing to do",
                log=self.name,
                witness_size=w_size,
                log_size=sth.tree_size,
            )
            return FeedResult.NOOP

        diagnostics.info(
            "feed",
            "updating witness",
            log=self.name,
            from_size=w_size,
            to_size=sth.tree_size,
        )
        proof: ConsistencyProof | None = None
        if w_size > 0:
            proof = await self._fetch_proof(w_size, sth.tree_size)

        try:
            outcome = await witness.update(self.identity.id, sth_raw, proof)
        except FeederError:
            raise
        except Exception as e:
            raise SubmitError(
                f"failed to update STH: {e}", cause=e, context={"log": self.name}
            ) from e

        try:
            snapshot = LogStateSnapshot.from_raw(outcome.raw)
        except ParseError as e:
            e.context.setdefault("log", self.name)
            raise

        # Adopt whatever the witness holds, even on TooOld. This is only
        # correct while we are the sole feeder for this witness.
        self._snapshot = snapshot
        if outcome.too_old:
            diagnostics.info(
                "feed",
                "witness already had a newer STH",
                log=self.name,
                witness_size=snapshot.tree_size,
                log_size=sth.tree_size,
            )
            return FeedResult.TOO_OLD
        return FeedResult.ACCEPTED

    async def _fetch_latest(self) -> tuple[SignedTreeHead, bytes]:
        try:
            return await self.client.get_sth()
        except FeederError:
            raise
        except Exception as e:
            raise FetchError(
                f"failed to get latest STH: {e}", cause=e, context={"log": self.name}
            ) from e

    async def _fetch_proof(self, first: int, second: int) -> ConsistencyProof:
        try:
            return await self.client.get_sth_consistency(first, second)
        except FeederError:
            raise
        except Exception as e:
            raise ProofError(
                f"failed to get consistency proof: {e}",
                cause=e,
                context={"log": self.name, "first": first, "second": second},
            ) from e


__all__ = [
    "EMPTY_SNAPSHOT",
    "FeedResult",
    "LogIdentity",
    "LogSession",
    "LogStateSnapshot",
]
