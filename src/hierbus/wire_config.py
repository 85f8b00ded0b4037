# src/hierbus/wire_config.py
"""Assemble a token-categorised bus from a YAML file.

    bus:
      name: orders.bus
      error_policy: raise
    categories:
      - {name: order}
      - {name: order.placed, parent: order, traits: [audited]}
    subscriptions:
      - {category: order, handler: "my_pkg.handlers:on_order"}
"""
from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Callable, Dict, Tuple

import yaml

from hierbus.core import log
from hierbus.core.bus import EventBus
from hierbus.core.config import BusConfig
from hierbus.core.taxonomy import DeclaredTaxonomy

l = log.get("hierbus.wire")


def _imp(ref: str) -> Callable[..., Any]:
    """'pkg.mod:attr' or 'pkg.mod.attr' -> object."""
    if ":" in ref:
        module, attr = ref.split(":", 1)
    else:
        module, _, attr = ref.rpartition(".")
    if not module or not attr:
        raise ImportError(f"bad handler reference {ref!r}, expected 'module:attr'")
    obj: Any = importlib.import_module(module)
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


def build_from_mapping(data: Dict[str, Any]) -> Tuple[EventBus, DeclaredTaxonomy]:
    cfg = BusConfig.from_mapping(data.get("bus"))

    taxonomy = DeclaredTaxonomy()
    for c in data.get("categories") or []:
        taxonomy.declare(c["name"], parent=c.get("parent"), traits=c.get("traits") or ())

    bus = EventBus(taxonomy, config=cfg)
    for s in data.get("subscriptions") or []:
        bus.subscribe(s["category"], _imp(s["handler"]))

    l.info("wired bus=%s categories=%d subscriptions=%d",
           bus.name, len(taxonomy.declared()), len(bus.registry))
    return bus, taxonomy


def build_from_yaml(yaml_path: str | Path) -> Tuple[EventBus, DeclaredTaxonomy]:
    data = yaml.safe_load(Path(yaml_path).read_text(encoding="utf-8")) or {}
    return build_from_mapping(data)
