# src/hierbus/core/registry.py
from __future__ import annotations
from typing import Dict, Hashable, List, Optional, Tuple

from hierbus.core.contracts import Handler, Subscription


class SubscriptionRegistry:
    """Category -> handlers registered for exactly that category.

    Grows only. Duplicate (category, handler) pairs are kept; each copy is
    invoked for every matching event.
    """

    def __init__(self) -> None:
        self._subs: Dict[Hashable, List[Subscription]] = {}

    def subscribe(self, category: Hashable, handler: Handler) -> None:
        subs = self._subs.setdefault(category, [])
        subs.append(Subscription(category=category, index=len(subs), handler=handler))

    def handlers_for(self, category: Hashable) -> Tuple[Handler, ...]:
        return tuple(s.handler for s in self._subs.get(category, ()))

    def subscriptions_for(self, category: Hashable) -> Tuple[Subscription, ...]:
        return tuple(self._subs.get(category, ()))

    def categories(self) -> List[Hashable]:
        return list(self._subs)

    def count(self, category: Optional[Hashable] = None) -> int:
        if category is not None:
            return len(self._subs.get(category, ()))
        return sum(len(v) for v in self._subs.values())

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, category: object) -> bool:
        try:
            return category in self._subs
        except TypeError:
            return False
