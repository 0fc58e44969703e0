"""
Testing utilities for sthfeeder.

Fakes are always available. Pytest fixtures live in
``sthfeeder.testing.fixtures`` and are registered with
``pytest_plugins = ("sthfeeder.testing.fixtures",)``.
"""

from .fakes import (
    FakeLogReader,
    FakeWitness,
    UnreachableLog,
    WitnessCall,
    make_sth,
    make_sth_json,
)

__all__ = [
    "FakeLogReader",
    "FakeWitness",
    "UnreachableLog",
    "WitnessCall",
    "make_sth",
    "make_sth_json",
]
