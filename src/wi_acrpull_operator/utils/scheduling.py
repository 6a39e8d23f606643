"""Per-binding scheduling: single-flight locks, wake-ups and delays."""

from __future__ import annotations

import random
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

BindingKey = tuple[str, str]

WAIT_TIMEOUT = "timeout"
WAIT_WOKEN = "woken"
WAIT_STOPPED = "stopped"


@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    wakeup: threading.Event = field(default_factory=threading.Event)
    generation: int | None = None


class BindingScheduler:
    """Registry of scheduling state keyed by (namespace, name).

    The lock guarantees at most one reconciliation per binding at a time;
    the wake-up event lets watch handlers cut a pending requeue short.
    """

    def __init__(self, poll_interval: float = 1.0):
        self.poll_interval = poll_interval
        self._entries: dict[BindingKey, _Entry] = {}
        self._registry_lock = threading.Lock()

    def _entry(self, key: BindingKey) -> _Entry:
        with self._registry_lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
            return entry

    def lock(self, key: BindingKey) -> threading.Lock:
        return self._entry(key).lock

    def wake(self, key: BindingKey) -> None:
        self._entry(key).wakeup.set()

    def clear_wakeup(self, key: BindingKey) -> None:
        self._entry(key).wakeup.clear()

    def observe_generation(self, key: BindingKey, generation: int | None) -> bool:
        """Record the latest generation seen for a binding.

        Returns:
            True if the generation differs from the previously recorded one
        """
        entry = self._entry(key)
        with self._registry_lock:
            changed = entry.generation is not None and entry.generation != generation
            entry.generation = generation
        return changed

    def wait(self, key: BindingKey, timeout: float, stopped: Any = None) -> str:
        """Block until the timeout expires, a wake-up arrives or ``stopped`` is set.

        ``stopped`` is anything truthy once stopping was requested, such as
        kopf's daemon stopper.
        """
        wakeup = self._entry(key).wakeup
        remaining = max(0.0, timeout)
        while True:
            if stopped:
                return WAIT_STOPPED
            if remaining <= 0:
                return WAIT_TIMEOUT
            slice_ = min(remaining, self.poll_interval)
            if wakeup.wait(slice_):
                wakeup.clear()
                return WAIT_WOKEN
            remaining -= slice_

    def forget(self, key: BindingKey) -> None:
        with self._registry_lock:
            self._entries.pop(key, None)

    def __contains__(self, key: BindingKey) -> bool:
        with self._registry_lock:
            return key in self._entries


def compute_backoff_delay(
    attempt: int,
    min_delay: float,
    max_delay: float,
    factor: float,
    jitter: float = 0.0,
) -> float:
    """Exponential backoff for the n-th consecutive failure (1-based), capped at max_delay."""
    delay = min(max_delay, min_delay * (factor ** max(0, attempt - 1)))
    if jitter:
        delay += delay * random.uniform(-jitter, jitter)
    return max(0.0, min(delay, max_delay))


def compute_requeue_delay(
    expiry: datetime,
    buffer_seconds: float,
    now: datetime | None = None,
) -> float:
    """Seconds until the token should be refreshed, never negative."""
    now = now or datetime.now(timezone.utc)
    return max(0.0, (expiry - now).total_seconds() - buffer_seconds)
