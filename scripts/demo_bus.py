from __future__ import annotations

import os
from dataclasses import dataclass

from hierbus.core import log
from hierbus.core.bus import EventBus
from hierbus.core.config import BusConfig
from hierbus.core.contracts import Event, Trait
from hierbus.core.metrics import force_emit


class Audited(Trait):
    pass


@dataclass(frozen=True)
class OrderEvent(Event):
    order_id: str


@dataclass(frozen=True)
class OrderPlaced(OrderEvent, Audited):
    amount: float = 0.0


@dataclass(frozen=True)
class OrderShipped(OrderEvent):
    carrier: str = "post"


def main():
    log.setup()
    l = log.get("demo")
    bus = EventBus(config=BusConfig.from_env())

    @bus.on(Audited)
    def audit(ev):
        l.info("audit %s", ev)

    @bus.on(OrderEvent)
    def track(ev):
        l.info("track %s %s", type(ev).__name__, ev.order_id)

    @bus.on(OrderPlaced)
    def ship(ev):
        # reentrant: delivered after audit/track finish for this order
        bus.publish(OrderShipped(order_id=ev.order_id))

    for i in range(int(os.getenv("DEMO_ORDERS", "3"))):
        bus.publish(OrderPlaced(order_id=f"o-{i}", amount=10.0 * (i + 1)))

    force_emit(json_mode=(os.getenv("LOG_JSON", "0") == "1"))


if __name__ == "__main__":
    main()
