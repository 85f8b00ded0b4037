# src/hierbus/core/metrics.py
"""Process-wide bus metrics.

Several buses (one per thread) may report into the same registry, so every
series carries its own lock. Names used by the bus:

    bus_publish_total, bus_unhandled_total, bus_deliver_total,
    bus_dropped_total, bus_handler_errors_total   (counters)
    bus_subscribers                                (gauge)
    bus_drain_ms                                   (histogram)
"""
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from statistics import mean
from typing import Any, Deque, Dict, List, Optional, Tuple, Type

LabelKey = Tuple[Tuple[str, str], ...]


def _labels_key(labels: Dict[str, Any] | None) -> LabelKey:
    if not labels:
        return ()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


def _pct(sorted_vals: List[float], q: float) -> float:
    if not sorted_vals:
        return 0.0
    idx = max(0, min(len(sorted_vals) - 1, int(round((len(sorted_vals) - 1) * q))))
    return sorted_vals[idx]


# ---------------- Series ----------------

class _Series:
    kind = ""

    def __init__(self, name: str, labels: LabelKey):
        self.name = name
        self.labels = labels
        self._lock = threading.Lock()

    def read(self) -> Dict[str, float]:
        raise NotImplementedError


class Counter(_Series):
    kind = "counter"

    def __init__(self, name: str, labels: LabelKey):
        super().__init__(name, labels)
        self._value = 0.0

    def inc(self, n: float = 1.0) -> None:
        with self._lock:
            self._value += n

    def read(self) -> Dict[str, float]:
        with self._lock:
            return {"value": self._value}


class Gauge(_Series):
    kind = "gauge"

    def __init__(self, name: str, labels: LabelKey):
        super().__init__(name, labels)
        self._value = 0.0

    def set(self, v: float) -> None:
        with self._lock:
            self._value = float(v)

    def read(self) -> Dict[str, float]:
        with self._lock:
            return {"value": self._value}


class Histogram(_Series):
    kind = "hist"

    def __init__(self, name: str, labels: LabelKey, maxlen: int = 2048):
        super().__init__(name, labels)
        self._values: Deque[float] = deque(maxlen=maxlen)

    def observe(self, v: float) -> None:
        with self._lock:
            self._values.append(float(v))

    def read(self) -> Dict[str, float]:
        with self._lock:
            vals = sorted(self._values)
        if not vals:
            return {"count": 0.0, "min": 0.0, "max": 0.0, "mean": 0.0, "p50": 0.0, "p99": 0.0}
        return {
            "count": float(len(vals)),
            "min": vals[0],
            "max": vals[-1],
            "mean": mean(vals),
            "p50": _pct(vals, 0.50),
            "p99": _pct(vals, 0.99),
        }


class _Registry:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._series: Dict[Tuple[str, str, LabelKey], _Series] = {}

    def get(self, cls: Type[_Series], name: str, labels: Dict[str, Any] | None) -> Any:
        key = (cls.kind, name, _labels_key(labels))
        with self._lock:
            s = self._series.get(key)
            if s is None:
                s = cls(name, key[2])
                self._series[key] = s
            return s

    def all(self) -> List[_Series]:
        with self._lock:
            return list(self._series.values())

    def clear(self) -> None:
        with self._lock:
            self._series.clear()


_REG = _Registry()


# ---------------- Public API ----------------

def inc(name: str, n: float = 1.0, **labels: Any) -> None:
    _REG.get(Counter, name, labels).inc(n)


def gauge_set(name: str, v: float, **labels: Any) -> None:
    _REG.get(Gauge, name, labels).set(v)


def observe_hist(name: str, v: float, **labels: Any) -> None:
    _REG.get(Histogram, name, labels).observe(v)


def value(name: str, **labels: Any) -> float:
    """Current value of a counter (0.0 if never touched)."""
    key = _labels_key(labels)
    for s in _REG.all():
        if s.kind == "counter" and s.name == name and s.labels == key:
            return s.read()["value"]
    return 0.0


def snapshot_all() -> dict:
    out: Dict[str, list] = {"counters": [], "gauges": [], "hists": []}
    bucket = {"counter": "counters", "gauge": "gauges", "hist": "hists"}
    for s in _REG.all():
        out[bucket[s.kind]].append({"name": s.name, "labels": dict(s.labels), **s.read()})
    return out


def reset() -> None:
    """Forget every series (tests)."""
    _REG.clear()


def _emit(log: logging.Logger, json_mode: bool) -> None:
    for s in _REG.all():
        data = s.read()
        if json_mode:
            log.info({"type": s.kind, "name": s.name, "labels": dict(s.labels), **data})
        else:
            fields = " ".join(f"{k}={v:.3f}" for k, v in data.items())
            log.info(f"[{s.kind}] {s.name} {dict(s.labels)} {fields}")


def force_emit(logger: Optional[logging.Logger] = None, json_mode: bool = False) -> None:
    _emit(logger or logging.getLogger("metrics"), json_mode)


# ---------------- Exporter ----------------

class _Exporter(threading.Thread):
    def __init__(self, interval_sec: float, json_mode: bool, logger: Optional[logging.Logger]):
        super().__init__(name="metrics-exporter", daemon=True)
        self.interval = float(interval_sec)
        self.json_mode = bool(json_mode)
        self.log = logger or logging.getLogger("metrics")
        self._stop_evt = threading.Event()

    def run(self) -> None:
        while not self._stop_evt.is_set():
            t0 = time.monotonic()
            _emit(self.log, self.json_mode)
            self._stop_evt.wait(max(0.5, self.interval - (time.monotonic() - t0)))

    def stop(self, timeout: float = 1.0) -> None:
        self._stop_evt.set()
        self.join(timeout=timeout)


_EXPORTER: Optional[_Exporter] = None


def start_exporter(interval_sec: float = 5.0, json_mode: bool = False, logger: Optional[logging.Logger] = None) -> None:
    global _EXPORTER
    if _EXPORTER is not None:
        return
    _EXPORTER = _Exporter(interval_sec, json_mode, logger)
    _EXPORTER.start()


def stop_exporter(timeout: float = 1.0) -> None:
    global _EXPORTER
    if _EXPORTER is not None:
        _EXPORTER.stop(timeout=timeout)
        _EXPORTER = None
