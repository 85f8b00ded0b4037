# src/hierbus/core/errors.py
from __future__ import annotations
from typing import Any, Sequence


class BusError(Exception):
    """Base class for errors raised by the bus itself (not by handlers)."""


class TaxonomyError(BusError, ValueError):
    """The category taxonomy is malformed."""


class TaxonomyCycleError(TaxonomyError):
    """A category refines itself through its own parent/trait chain."""

    def __init__(self, path: Sequence[Any]):
        self.path = tuple(path)
        chain = " -> ".join(_label(c) for c in self.path)
        super().__init__(f"category cycle: {chain}")


class CrossThreadError(BusError, RuntimeError):
    """publish/subscribe called from a thread that does not own the bus."""

    def __init__(self, bus_name: str, owner: int, caller: int):
        self.bus_name = bus_name
        self.owner = owner
        self.caller = caller
        super().__init__(
            f"bus {bus_name!r} is owned by thread {owner}, called from thread {caller}"
        )


def _label(cat: Any) -> str:
    return getattr(cat, "__qualname__", None) or repr(cat)
