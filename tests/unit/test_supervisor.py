from __future__ import annotations

import asyncio

import pytest

from sthfeeder.core.feeder import LoopState, SessionSupervisor, feed_all
from sthfeeder.core.session import LogIdentity, LogSession
from sthfeeder.testing import FakeLogReader, FakeWitness


@pytest.mark.asyncio
async def test_duplicate_session_rejected(make_session) -> None:
    session = make_session([1])
    with pytest.raises(ValueError):
        SessionSupervisor([session, session], FakeWitness(), interval=1)


@pytest.mark.asyncio
async def test_runs_one_loop_per_session(make_session) -> None:
    stop = asyncio.Event()
    stop.set()
    sessions = [make_session([n * 10]) for n in range(1, 4)]
    witness = FakeWitness()
    supervisor = SessionSupervisor(sessions, witness, interval=1, stop_event=stop)

    await asyncio.wait_for(supervisor.run(), timeout=1.0)

    assert len(supervisor.loops) == 3
    assert all(loop.state is LoopState.STOPPED for loop in supervisor.loops)
    assert [s.latest_size() for s in sessions] == [10, 20, 30]
    assert {c.log_id for c in witness.calls} == {s.identity.id for s in sessions}


@pytest.mark.asyncio
async def test_join_waits_for_stop(make_session) -> None:
    supervisor = SessionSupervisor([make_session([1])], FakeWitness(), interval=0.01)

    task = asyncio.create_task(supervisor.run())
    await asyncio.sleep(0.1)
    assert not task.done()

    supervisor.stop()
    await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_no_sessions_waits_for_stop(captured_diagnostics) -> None:
    stop = asyncio.Event()
    supervisor = SessionSupervisor([], FakeWitness(), interval=1, stop_event=stop)

    task = asyncio.create_task(supervisor.run())
    await asyncio.sleep(0.05)
    assert not task.done()
    stop.set()
    await asyncio.wait_for(task, timeout=1.0)

    assert "no usable logs to feed" in captured_diagnostics.messages("WARNING")


@pytest.mark.asyncio
async def test_crashing_loop_is_logged_and_isolated(
    make_session, captured_diagnostics
) -> None:
    stop = asyncio.Event()
    stop.set()
    good = make_session([3], name="good")

    class _Exploding(LogSession):
        def latest_size(self) -> int:
            raise RuntimeError("bug")

    bad = _Exploding(LogIdentity(id="YmFk", name="bad"), FakeLogReader([1]))
    supervisor = SessionSupervisor([bad, good], FakeWitness(), interval=1, stop_event=stop)

    await asyncio.wait_for(supervisor.run(), timeout=1.0)

    assert good.latest_size() == 3
    errors = [r for r in captured_diagnostics.records if r["level"] == "ERROR"]
    assert errors and errors[0]["log"] == "bad"
    assert errors[0]["error_type"] == "RuntimeError"


@pytest.mark.asyncio
async def test_sessions_do_not_share_snapshots(make_session) -> None:
    stop = asyncio.Event()
    stop.set()
    a = make_session([5])
    b = make_session([9])

    await feed_all([a, b], FakeWitness(), interval=1, stop_event=stop)

    assert a.snapshot is not b.snapshot
    assert (a.latest_size(), b.latest_size()) == (5, 9)
