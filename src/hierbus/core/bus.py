# src/hierbus/core/bus.py
from __future__ import annotations

import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Hashable, Optional, Tuple

from hierbus.core import log
from hierbus.core.config import BusConfig
from hierbus.core.contracts import BusState, Dispatch, Handler
from hierbus.core.errors import CrossThreadError
from hierbus.core.metrics import gauge_set, inc, observe_hist
from hierbus.core.registry import SubscriptionRegistry
from hierbus.core.taxonomy import CategoryResolver, ClassTaxonomy, Taxonomy


def _label(obj: Any) -> str:
    return getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None) or str(obj)


class EventBus:
    """Synchronous, single-thread publish/subscribe with category hierarchies.

    publish() delivers the event to every handler subscribed to its category
    or to any broader category, then returns. A publish issued by a handler
    is queued and delivered after the current handler chain, in FIFO order,
    by the outermost publish call.

    The bus belongs to the thread that built it; with ``strict_thread`` on,
    calls from any other thread raise CrossThreadError.
    """

    def __init__(self, taxonomy: Optional[Taxonomy] = None, *, name: Optional[str] = None,
                 config: Optional[BusConfig] = None):
        self.cfg = config or BusConfig()
        self.name = name or self.cfg.name
        self.l = log.get(self.name)
        self.taxonomy: Taxonomy = taxonomy if taxonomy is not None else ClassTaxonomy()
        self.registry = SubscriptionRegistry()
        self._resolver = CategoryResolver(self.taxonomy)
        self._q: Deque[Dispatch] = deque()
        self._polling = False
        self._owner = threading.get_ident()

    # ---------------- introspection ----------------

    @property
    def state(self) -> BusState:
        return BusState.DRAINING if self._polling else BusState.IDLE

    @property
    def pending(self) -> int:
        """Dispatch records queued behind the one being delivered."""
        return len(self._q)

    def resolve(self, category: Hashable) -> Tuple[Hashable, ...]:
        return self._resolver.resolve(category)

    # ---------------- API ----------------

    def subscribe(self, category: Hashable, fn: Handler) -> None:
        self._check_thread()
        if not self.taxonomy.is_category(category):
            raise TypeError(f"not a category: {category!r}")
        if not callable(fn):
            raise TypeError(f"handler must be callable, got {type(fn).__name__}")
        self.registry.subscribe(category, fn)
        self.l.debug("subscribed category=%s fn=%s", _label(category), _label(fn))
        if self.cfg.metrics:
            gauge_set("bus_subscribers", float(self.registry.count(category)),
                      bus=self.name, category=_label(category))

    def on(self, category: Hashable) -> Callable[[Handler], Handler]:
        """Decorator form of subscribe(); returns the function unchanged."""
        def deco(fn: Handler) -> Handler:
            self.subscribe(category, fn)
            return fn
        return deco

    def publish(self, event: Any) -> None:
        self._check_thread()
        cats = self._resolver.resolve(self.taxonomy.category_of(event))
        # snapshot: handlers subscribed from here on miss this event
        handlers = tuple(h for c in cats for h in self.registry.handlers_for(c))
        if self.cfg.metrics:
            inc("bus_publish_total", 1, bus=self.name)
        if not handlers:
            if self.cfg.metrics:
                inc("bus_unhandled_total", 1, bus=self.name)
            return
        self._q.append(Dispatch(event, handlers))
        if self._polling:
            # reentrant: the outer publish drains it
            return
        self._drain()

    # ---------------- internals ----------------

    def _check_thread(self) -> None:
        if not self.cfg.strict_thread:
            return
        caller = threading.get_ident()
        if caller != self._owner:
            raise CrossThreadError(self.name, self._owner, caller)

    def _drain(self) -> None:
        self._polling = True
        t0 = time.perf_counter()
        try:
            while self._q:
                self._deliver(self._q.popleft())
        except BaseException:
            dropped = len(self._q)
            self._q.clear()
            self.l.warning("drain aborted by handler error, dropped %d queued dispatch(es)", dropped)
            if self.cfg.metrics:
                inc("bus_dropped_total", dropped, bus=self.name)
            raise
        finally:
            self._polling = False
            if self.cfg.metrics:
                observe_hist("bus_drain_ms", (time.perf_counter() - t0) * 1000.0, bus=self.name)

    def _deliver(self, d: Dispatch) -> None:
        isolate = self.cfg.error_policy == "log"
        for fn in d.handlers:
            if isolate:
                try:
                    fn(d.event)
                except Exception as e:
                    self.l.error("handler error event=%s fn=%s err=%s",
                                 type(d.event).__name__, _label(fn), e, exc_info=True)
                    if self.cfg.metrics:
                        inc("bus_handler_errors_total", 1, bus=self.name)
                    continue
            else:
                fn(d.event)
            if self.cfg.metrics:
                inc("bus_deliver_total", 1, bus=self.name)
