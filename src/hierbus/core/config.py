# src/hierbus/core/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml
from dotenv import load_dotenv

ERROR_POLICIES = ("raise", "log")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _flag(raw: Any, key: str) -> bool:
    if isinstance(raw, bool):
        return raw
    s = str(raw).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise ValueError(f"{key}: expected a boolean, got {raw!r}")


@dataclass
class BusConfig:
    name: str = "hierbus.bus"
    strict_thread: bool = True    # raise CrossThreadError on foreign-thread calls
    error_policy: str = "raise"   # "raise": abort the drain | "log": log and keep going
    metrics: bool = True

    def __post_init__(self):
        self.strict_thread = _flag(self.strict_thread, "strict_thread")
        self.metrics = _flag(self.metrics, "metrics")
        self.error_policy = str(self.error_policy).strip().lower()
        if self.error_policy not in ERROR_POLICIES:
            raise ValueError(
                f"error_policy must be one of {ERROR_POLICIES}, got {self.error_policy!r}"
            )
        if not self.name:
            raise ValueError("name must not be empty")

    @classmethod
    def from_mapping(cls, d: Mapping[str, Any] | None) -> "BusConfig":
        d = dict(d or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ValueError(f"unknown bus config keys: {', '.join(unknown)}")
        return cls(**d)

    @classmethod
    def from_env(cls, prefix: str = "HIERBUS_") -> "BusConfig":
        """Read <prefix>NAME / STRICT_THREAD / ERROR_POLICY / METRICS (after .env)."""
        load_dotenv()
        d: Dict[str, Any] = {}
        for f in fields(cls):
            raw = os.getenv(prefix + f.name.upper())
            if raw is not None:
                d[f.name] = raw
        return cls(**d)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "BusConfig":
        """Load the ``bus:`` section of a YAML file."""
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        return cls.from_mapping(data.get("bus"))
