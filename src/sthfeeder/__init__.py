"""
sthfeeder - keeps a CT witness up to date with the logs it watches.

For every usable log in the CT log list, a feed loop polls the log's latest
Signed Tree Head and hands it to the witness together with a consistency
proof from the last size the witness accepted.
"""

from __future__ import annotations

from ._version import __version__
from .core.feeder import FeedLoop, SessionSupervisor, feed_all
from .core.session import LogIdentity, LogSession, LogStateSnapshot
from .core.settings import Settings

__all__ = [
    "FeedLoop",
    "LogIdentity",
    "LogSession",
    "LogStateSnapshot",
    "SessionSupervisor",
    "Settings",
    "VERSION",
    "__version__",
    "feed_all",
]

VERSION = __version__
