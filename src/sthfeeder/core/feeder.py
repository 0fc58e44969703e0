"""
Feed loops and the session supervisor.

Each log gets one :class:`FeedLoop` running in its own task. A loop runs a
feed round, then waits for the next tick of a fixed-interval ticker, until
the shared stop event is set. Rounds of one session never overlap; rounds of
different sessions are fully independent.

The supervisor fans out one loop per session and joins them all; the join
only completes once the stop event has been observed by every loop.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Sequence

from . import diagnostics
from .errors import ErrorCategory, FeederError, RoundTimeoutError
from .session import FeedResult, LogSession

if TYPE_CHECKING:
    from ..clients import Witness
    from ..metrics.metrics import MetricsCollector

_OUTCOME_BY_CATEGORY: dict[ErrorCategory, str] = {
    ErrorCategory.FETCH: "fetch_error",
    ErrorCategory.PROOF: "proof_error",
    ErrorCategory.SUBMIT: "submit_error",
    ErrorCategory.PARSE: "parse_error",
    ErrorCategory.TIMEOUT: "timeout",
}


class LoopState(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class FeedLoop:
    """Timed, cancellable driver for one session.

    Args:
        session: The session this loop exclusively owns.
        witness: Shared witness client.
        interval: Seconds between ticks; also the deadline of each round.
        stop_event: Shared cancellation signal.
        metrics: Optional collector receiving one outcome per round.
    """

    def __init__(
        self,
        session: LogSession,
        witness: Witness,
        *,
        interval: float,
        stop_event: asyncio.Event,
        metrics: MetricsCollector | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.session = session
        self._witness = witness
        self._interval = interval
        self._stop_event = stop_event
        self._metrics = metrics
        self.state = LoopState.RUNNING
        self.rounds = 0
        self.failures = 0

    @property
    def interval(self) -> float:
        return self._interval

    async def run(self) -> None:
        """Feed until the stop event is set.

        The first round starts immediately. Ticks missed while a round was
        running are dropped rather than replayed.
        """
        loop = asyncio.get_running_loop()
        start = loop.time()
        ticks = 0
        try:
            while True:
                await self.run_round()
                if self._stop_event.is_set():
                    return

                ticks += 1
                now = loop.time()
                next_at = start + ticks * self._interval
                if next_at <= now:
                    # Overran a tick: start the next round now and realign
                    ticks = int((now - start) // self._interval)
                    continue
                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(), timeout=next_at - now
                    )
                    return
                except asyncio.TimeoutError:
                    pass
        finally:
            self.state = LoopState.STOPPED

    async def run_round(self) -> FeedResult | None:
        """Run one feed round bounded by the interval.

        Round failures are logged and recorded, never raised. Returns the
        round result, or ``None`` if the round failed.
        """
        w_size = self.session.latest_size()
        self.rounds += 1
        diagnostics.debug(
            "feed", "start feedOnce", log=self.session.name, witness_size=w_size
        )
        outcome: str
        result: FeedResult | None = None
        try:
            result = await asyncio.wait_for(
                self.session.feed_once(self._witness), timeout=self._interval
            )
        except asyncio.TimeoutError as e:
            err = RoundTimeoutError(
                "feed round exceeded its deadline",
                cause=e,
                context={"log": self.session.name, "deadline": self._interval},
            )
            outcome = self._report_failure(err)
        except Exception as e:
            outcome = self._report_failure(e)
        else:
            outcome = result.value
        diagnostics.debug(
            "feed", "feedOnce complete", log=self.session.name, witness_size=w_size
        )
        await self._record(outcome)
        return result

    def _report_failure(self, exc: BaseException) -> str:
        self.failures += 1
        if isinstance(exc, FeederError):
            outcome = _OUTCOME_BY_CATEGORY.get(exc.category, "error")
            fields = exc.to_dict()
        else:
            outcome = "error"
            fields = {"error.type": type(exc).__name__}
        fields.pop("log", None)
        diagnostics.warn(
            "feed",
            "failed to feed",
            log=self.session.name,
            error=str(exc),
            **fields,
        )
        return outcome

    async def _record(self, outcome: str) -> None:
        if self._metrics is None:
            return
        try:
            await self._metrics.record_round(self.session.name, outcome)
            await self._metrics.record_witnessed_size(
                self.session.name, self.session.latest_size()
            )
        except Exception as exc:
            diagnostics.warn(
                "metrics", "failed to record round", log=self.session.name, error=str(exc)
            )


class SessionSupervisor:
    """Runs one feed loop per session and waits for all of them to stop."""

    def __init__(
        self,
        sessions: Iterable[LogSession],
        witness: Witness,
        *,
        interval: float,
        stop_event: asyncio.Event | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._sessions: list[LogSession] = list(sessions)
        seen: set[int] = set()
        for session in self._sessions:
            if id(session) in seen:
                raise ValueError(f"session {session.name!r} supplied twice")
            seen.add(id(session))
        self._witness = witness
        self._interval = interval
        self._stop_event = stop_event or asyncio.Event()
        self._metrics = metrics
        self.loops: list[FeedLoop] = []

    @property
    def sessions(self) -> Sequence[LogSession]:
        return tuple(self._sessions)

    @property
    def stop_event(self) -> asyncio.Event:
        return self._stop_event

    def stop(self) -> None:
        """Signal every loop to stop after its current round."""
        self._stop_event.set()

    async def run(self) -> None:
        if not self._sessions:
            diagnostics.warn("supervisor", "no usable logs to feed")
            await self._stop_event.wait()
            return

        self.loops = [
            FeedLoop(
                session,
                self._witness,
                interval=self._interval,
                stop_event=self._stop_event,
                metrics=self._metrics,
            )
            for session in self._sessions
        ]
        diagnostics.info("supervisor", "starting feed loops", logs=len(self.loops))
        tasks = [
            asyncio.create_task(loop.run(), name=f"feed:{loop.session.name}")
            for loop in self.loops
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for loop, result in zip(self.loops, results):
            if isinstance(result, asyncio.CancelledError):
                continue
            if isinstance(result, BaseException):
                diagnostics.error(
                    "supervisor",
                    "feed loop exited with error",
                    log=loop.session.name,
                    error=str(result),
                    error_type=type(result).__name__,
                )
        diagnostics.info("supervisor", "all feed loops stopped", logs=len(self.loops))


async def feed_all(
    sessions: Iterable[LogSession],
    witness: Witness,
    *,
    interval: float,
    stop_event: asyncio.Event,
    metrics: MetricsCollector | None = None,
) -> None:
    """Feed every session until ``stop_event`` is set."""
    supervisor = SessionSupervisor(
        sessions,
        witness,
        interval=interval,
        stop_event=stop_event,
        metrics=metrics,
    )
    await supervisor.run()


__all__ = ["FeedLoop", "LoopState", "SessionSupervisor", "feed_all"]
