"""In-process counters for portal traffic, scans, jobs and notifications.

Counters are keyed by name plus sorted labels, e.g.
``portal.page_fetch|list_type=reportedRecords``. They live for the process
lifetime and are read back through ``snapshot`` (or ``get`` for one key).
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from threading import Lock


class CounterRegistry:
    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: Counter[str] = Counter()

    def increment(self, name: str, value: int = 1, **labels: str) -> int:
        key = counter_key(name, labels)
        with self._lock:
            self._counters[key] += value
            return self._counters[key]

    def get(self, name: str, **labels: str) -> int:
        key = counter_key(name, labels)
        with self._lock:
            return self._counters.get(key, 0)

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counters)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()


def counter_key(name: str, labels: Mapping[str, str]) -> str:
    if not labels:
        return name
    rendered = ",".join(f"{key}={labels[key]}" for key in sorted(labels))
    return f"{name}|{rendered}"


_registry = CounterRegistry()

increment = _registry.increment
get = _registry.get
snapshot = _registry.snapshot
reset = _registry.reset


__all__ = ["CounterRegistry", "counter_key", "get", "increment", "reset", "snapshot"]
