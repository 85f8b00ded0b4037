# src/hierbus/core/contracts.py
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Tuple


__all__ = [
    "Handler",
    "Event",
    "Trait",
    "Envelope",
    "Subscription",
    "Dispatch",
    "BusState",
]


Handler = Callable[[Any], None]


# --------- Category roots (class taxonomy) ---------
class Event:
    """Root of every class-categorised event.

    Subclass it (usually as a frozen dataclass) to define a category; the
    subclass' first non-trait base is its parent category. A handler
    subscribed to ``Event`` receives everything published on the bus.
    """
    __slots__ = ()


class Trait:
    """Marker base for traits: categories that are mixed into events
    instead of being inherited as their parent.

        class Audited(Trait): ...

        @dataclass(frozen=True)
        class OrderPlaced(OrderEvent, Audited):
            order_id: str

    ``Trait`` itself is not a category.
    """
    __slots__ = ()


# --------- Token-categorised envelope ---------
@dataclass(frozen=True, slots=True)
class Envelope:
    """An event whose category is a declared token (e.g. "order.placed")."""
    category: Hashable
    data: Any = None

    @property
    def payload(self) -> Any:
        return self.data


# --------- Bus records ---------
@dataclass(frozen=True, slots=True)
class Subscription:
    category: Hashable
    index: int                  # per-category registration order
    handler: Handler


@dataclass(frozen=True, slots=True)
class Dispatch:
    """One queued publish: the event plus the handlers captured at publish time."""
    event: Any
    handlers: Tuple[Handler, ...]


class BusState(enum.Enum):
    IDLE = "idle"
    DRAINING = "draining"
