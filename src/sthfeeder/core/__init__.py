from .errors import (
    ClientConstructionError,
    ConfigurationError,
    FeederError,
    FetchError,
    ParseError,
    ProofError,
    RegistryError,
    RoundTimeoutError,
    SubmitError,
)
from .feeder import FeedLoop, LoopState, SessionSupervisor, feed_all
from .session import EMPTY_SNAPSHOT, FeedResult, LogIdentity, LogSession, LogStateSnapshot
from .settings import Settings, load_settings
from .sth import Accepted, SignedTreeHead, TooOld, WitnessUpdateOutcome, parse_sth

__all__ = [
    "Accepted",
    "ClientConstructionError",
    "ConfigurationError",
    "EMPTY_SNAPSHOT",
    "FeedLoop",
    "FeedResult",
    "FeederError",
    "FetchError",
    "LogIdentity",
    "LogSession",
    "LogStateSnapshot",
    "LoopState",
    "ParseError",
    "ProofError",
    "RegistryError",
    "RoundTimeoutError",
    "SessionSupervisor",
    "Settings",
    "SignedTreeHead",
    "SubmitError",
    "TooOld",
    "WitnessUpdateOutcome",
    "feed_all",
    "load_settings",
    "parse_sth",
]
