"""
Per-Client Request Quota.

This module tracks how many synthesis requests each client identity has
made inside its current admission window and decides whether the next
one may go through.

Window Semantics:
    A client's window opens at its first request and lasts window_seconds
    (24h by default). Inside the window at most `limit` requests are
    admitted. Once the window has elapsed, the next access replaces the
    record with a fresh one (count=0, window_start=now). There is no
    background thread; expired records are reset lazily and an inline
    sweep drops abandoned ones to bound memory.

Concurrency:
    Each identity owns a lock, and the read-modify-write of its record
    happens entirely under that lock, so two simultaneous requests from
    the same client can never both be admitted on the last unit of quota.
    A short map-level lock only guards get-or-create of the per-identity
    slot. Different identities never contend with each other.

    The sweep retires a slot before removing it from the map. A request
    that looked up the slot just before it was retired notices the flag
    after taking the slot lock and retries with a fresh slot, so no
    admission is ever recorded on a dropped record.

Clock:
    Time comes from an injected zero-argument callable returning seconds
    (time.monotonic by default). Tests pass a manual clock to move past
    window boundaries without sleeping.

Example:
    >>> store = QuotaStore(limit=2, window_seconds=60)
    >>> store.check_and_increment("10.0.0.1").remaining
    1
    >>> store.check_and_increment("10.0.0.1").remaining
    0
    >>> store.check_and_increment("10.0.0.1").allowed
    False
    >>> store.remaining("10.0.0.2")
    2
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from tts_proxy.core.config import Defaults
from tts_proxy.core.logging import debug, get_logger, verbose

_LOG = get_logger("tts-proxy.quota")

Clock = Callable[[], float]


@dataclass
class QuotaRecord:
    """
    Request count for one client inside one window.

    Attributes:
        count: Admitted requests in this window.
        window_start: Clock reading when the window opened.
    """
    count: int
    window_start: float


@dataclass(frozen=True)
class QuotaDecision:
    """
    Outcome of an admission check or a read-only quota lookup.

    Attributes:
        allowed: Whether the request was admitted.
        remaining: Requests left in the current window after this one.
        limit: Configured requests per window.
        reset_after: Seconds until the current window ends.
    """
    allowed: bool
    remaining: int
    limit: int
    reset_after: float


class _Slot:
    """Lock and record for one identity."""
    __slots__ = ("lock", "record", "retired")

    def __init__(self):
        self.lock = threading.Lock()
        self.record: Optional[QuotaRecord] = None
        self.retired = False


class QuotaStore:
    """
    Thread-safe in-memory quota counter keyed by client identity.

    Attributes:
        limit: Admitted requests per window.
        window_seconds: Window length in seconds.
    """

    def __init__(
        self,
        limit: int = Defaults.QUOTA_DAILY_LIMIT,
        window_seconds: float = Defaults.QUOTA_WINDOW_SECONDS,
        clock: Clock = time.monotonic,
        sweep_interval_seconds: float = Defaults.QUOTA_SWEEP_INTERVAL_SECONDS,
    ):
        """
        Initialize the store.

        Args:
            limit: Admitted requests per window (must be positive).
            window_seconds: Window length in seconds.
            clock: Zero-argument callable returning the current time in seconds.
            sweep_interval_seconds: Minimum seconds between inline sweeps
                of expired records (0 disables the inline sweep).
        """
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")

        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._sweep_interval = sweep_interval_seconds

        self._lock = threading.Lock()
        self._slots: Dict[str, _Slot] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        """Number of identities currently tracked."""
        with self._lock:
            return len(self._slots)

    def _expired(self, record: QuotaRecord, now: float) -> bool:
        return now - record.window_start >= self.window_seconds

    def _reset_after(self, record: Optional[QuotaRecord], now: float) -> float:
        if record is None or self._expired(record, now):
            return float(self.window_seconds)
        return max(0.0, record.window_start + self.window_seconds - now)

    def _slot_for(self, identity: str) -> _Slot:
        with self._lock:
            slot = self._slots.get(identity)
            if slot is None:
                slot = _Slot()
                self._slots[identity] = slot
            return slot

    def check_and_increment(self, identity: str) -> QuotaDecision:
        """
        Admit or reject one request for `identity`, atomically.

        Opens a new window if none exists or the current one has elapsed.
        A rejected attempt does not count against the quota.

        Args:
            identity: Client identity (usually the caller's IP address).

        Returns:
            QuotaDecision with allowed and remaining set.
        """
        while True:
            slot = self._slot_for(identity)
            with slot.lock:
                if slot.retired:
                    continue  # Swept between lookup and lock, take a fresh slot
                now = self._clock()
                record = slot.record
                if record is None or self._expired(record, now):
                    record = QuotaRecord(count=0, window_start=now)
                    slot.record = record

                if record.count < self.limit:
                    record.count += 1
                    decision = QuotaDecision(
                        allowed=True,
                        remaining=self.limit - record.count,
                        limit=self.limit,
                        reset_after=self._reset_after(record, now),
                    )
                else:
                    decision = QuotaDecision(
                        allowed=False,
                        remaining=0,
                        limit=self.limit,
                        reset_after=self._reset_after(record, now),
                    )
                break

        debug(_LOG, "quota_check", client=identity, allowed=decision.allowed, remaining=decision.remaining)
        self._maybe_sweep(now)
        return decision

    def peek(self, identity: str) -> QuotaDecision:
        """
        Read the quota state for `identity` without changing it.

        An absent or expired window reports the full limit. `allowed` tells
        whether a request made now would be admitted.
        """
        with self._lock:
            slot = self._slots.get(identity)

        now = self._clock()
        if slot is None:
            return QuotaDecision(True, self.limit, self.limit, float(self.window_seconds))

        with slot.lock:
            record = slot.record
            if slot.retired or record is None or self._expired(record, now):
                return QuotaDecision(True, self.limit, self.limit, float(self.window_seconds))
            remaining = self.limit - record.count
            return QuotaDecision(remaining > 0, remaining, self.limit, self._reset_after(record, now))

    def remaining(self, identity: str) -> int:
        """Requests left for `identity` in its current window. Read-only."""
        return self.peek(identity).remaining

    def sweep(self) -> int:
        """
        Drop records whose window has elapsed.

        Slots that are locked by an in-flight request are skipped; they
        will be picked up by a later sweep.

        Returns:
            Number of identities removed.
        """
        now = self._clock()
        removed = 0
        with self._lock:
            for identity, slot in list(self._slots.items()):
                if not slot.lock.acquire(blocking=False):
                    continue
                try:
                    if slot.record is None or self._expired(slot.record, now):
                        slot.retired = True
                        del self._slots[identity]
                        removed += 1
                finally:
                    slot.lock.release()
            self._last_sweep = now
            tracked = len(self._slots)

        if removed:
            verbose(_LOG, "quota_sweep", removed=removed, tracked=tracked)
        return removed

    def _maybe_sweep(self, now: float) -> None:
        if self._sweep_interval <= 0:
            return
        if now - self._last_sweep >= self._sweep_interval:
            self.sweep()
