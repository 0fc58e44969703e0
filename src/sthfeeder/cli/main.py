"""
Command-line entry point for sthfeeder.

There is a single run mode: load the log list, then feed every usable log
to the witness until SIGINT/SIGTERM. Startup failures exit with status 1;
per-round failures are only logged.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from contextlib import AsyncExitStack
from typing import Sequence

import httpx

from .._version import __version__
from ..clients.log_list import populate_sessions
from ..clients.witness_http import WitnessClient
from ..core import diagnostics
from ..core.errors import FeederError
from ..core.feeder import SessionSupervisor
from ..core.settings import Settings, load_settings
from ..metrics.metrics import MetricsCollector


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sthfeeder",
        description="Poll CT logs and feed their STHs to a witness.",
    )
    parser.add_argument("--log_list_url", help="The location of the log list")
    parser.add_argument("--witness_url", help="The endpoint of the witness HTTP API")
    parser.add_argument(
        "--poll",
        type=float,
        dest="poll_interval_seconds",
        help="How quickly to poll the log to get updates (seconds)",
    )
    parser.add_argument(
        "--log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Minimum level for operational logging",
    )
    parser.add_argument(
        "--enable_metrics",
        action="store_true",
        default=None,
        help="Collect Prometheus-compatible metrics",
    )
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop, stop_event: asyncio.Event
) -> list[int]:
    installed: list[int] = []
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is None:
            continue
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError, ValueError):
            # Unsupported on this platform/thread; Ctrl-C still cancels
            continue
        installed.append(sig)
    return installed


async def run(
    settings: Settings,
    *,
    stop_event: asyncio.Event | None = None,
    http_client: httpx.AsyncClient | None = None,
    metrics: MetricsCollector | None = None,
) -> None:
    """Load the log list and feed until ``stop_event`` is set.

    Raises:
        ConfigurationError, RegistryError, ClientConstructionError: Startup
            failed; nothing was fed.
    """
    diagnostics.configure(settings.log_level)
    stop_event = stop_event or asyncio.Event()
    metrics = metrics or MetricsCollector(enabled=settings.enable_metrics)

    async with AsyncExitStack() as stack:
        if http_client is None:
            http_client = await stack.enter_async_context(
                httpx.AsyncClient(
                    timeout=settings.http_timeout_seconds,
                    headers={"User-Agent": settings.user_agent},
                )
            )
        witness = WitnessClient(settings.witness_url, client=http_client)
        sessions = await populate_sessions(settings.log_list_url, client=http_client)

        loop = asyncio.get_running_loop()
        installed = _install_signal_handlers(loop, stop_event)
        try:
            supervisor = SessionSupervisor(
                sessions,
                witness,
                interval=settings.poll_interval_seconds,
                stop_event=stop_event,
                metrics=metrics,
            )
            await supervisor.run()
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)

    summary = await metrics.snapshot()
    diagnostics.info("cli", "feeder stopped", rounds=summary.total_rounds)


async def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(
            log_list_url=args.log_list_url,
            witness_url=args.witness_url,
            poll_interval_seconds=args.poll_interval_seconds,
            log_level=args.log_level,
            enable_metrics=args.enable_metrics,
        )
        await run(settings)
        return 0
    except FeederError as e:
        diagnostics.error("cli", "startup failed", error=str(e), **e.to_dict())
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await diagnostics.drain()


def cli_main() -> int:
    """CLI main function for non-async entry."""
    return asyncio.run(main())


if __name__ == "__main__":
    sys.exit(cli_main())
