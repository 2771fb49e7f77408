"""
Soil History Store
==================
Bounded, chronologically ordered cache of soil readings backed by a key-value
store.

The in-memory view is authoritative for readers: ``append`` is visible
immediately, while ``save_async`` hands the durable write to a single worker
thread so the MQTT network thread never blocks on disk I/O.

Persisted form (key ``soil_history``)::

    [{"raw": 2345, "percent": 61, "state": "ok", "timestamp": "2024-05-01T10:00:00+00:00"}, ...]
"""

from __future__ import annotations

import logging
import random
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, Deque, List, Optional

from soilmonitor.constants import HISTORY_MAX_ENTRIES, HISTORY_STORE_KEY, MOCK_HISTORY_DAYS
from soilmonitor.domain.exceptions import PayloadDecodeError, RepositoryError
from soilmonitor.domain.soil_reading import SoilReading
from soilmonitor.utils.concurrency import synchronized
from soilmonitor.utils.time import utc_now

if TYPE_CHECKING:
    from soilmonitor.services.protocols import KeyValueStore

logger = logging.getLogger(__name__)


class HistoryStore:
    """Ordered reading history capped at ``max_entries`` (oldest evicted first)."""

    def __init__(
        self,
        store: "KeyValueStore",
        *,
        max_entries: int = HISTORY_MAX_ENTRIES,
        key: str = HISTORY_STORE_KEY,
        clock: Callable[[], datetime] = utc_now,
        rng: Optional[random.Random] = None,
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self._store = store
        self._key = key
        self.max_entries = max_entries
        self._clock = clock
        self._rng = rng or random.Random()

        self._lock = threading.Lock()
        self._readings: Deque[SoilReading] = deque(maxlen=max_entries)

        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()
        self._pending: List[Future] = []

    # ==================== Readers ====================

    @synchronized
    def __len__(self) -> int:
        return len(self._readings)

    @synchronized
    def readings(self) -> List[SoilReading]:
        """Snapshot of the history in its current order."""
        return list(self._readings)

    @synchronized
    def latest(self) -> SoilReading | None:
        """The reading with the greatest timestamp, or None when empty."""
        if not self._readings:
            return None
        # Reversed so the most recently appended wins a timestamp tie.
        return max(reversed(self._readings), key=lambda reading: reading.timestamp)

    # ==================== Mutation ====================

    @synchronized
    def append(self, reading: SoilReading) -> None:
        """Add a reading at the end; the deque drops the oldest past the cap."""
        self._readings.append(reading)

    def load(self) -> int:
        """
        Replace the in-memory history with the persisted one.

        Malformed entries are skipped one by one; the survivors are sorted by
        timestamp and only the newest ``max_entries`` are kept.

        Returns:
            Number of readings restored.
        """
        stored = self._store.get(self._key)
        if stored is None:
            stored = []
        elif not isinstance(stored, list):
            logger.warning("Persisted history under %r is %s, not a list; ignoring it", self._key, type(stored).__name__)
            stored = []

        restored: List[SoilReading] = []
        skipped = 0
        for entry in stored:
            try:
                restored.append(SoilReading.from_dict(entry))
            except PayloadDecodeError as e:
                skipped += 1
                logger.warning("Skipping malformed history entry: %s", e)

        restored.sort(key=lambda reading: reading.timestamp)
        with self._lock:
            self._readings = deque(restored[-self.max_entries:], maxlen=self.max_entries)
            count = len(self._readings)

        if skipped:
            logger.info("Loaded %s history entries (%s malformed skipped)", count, skipped)
        else:
            logger.debug("Loaded %s history entries", count)
        return count

    def seed_mock_history(self) -> bool:
        """
        Fill an empty history with one synthetic reading per day for the past
        week so trend views have something to draw on first launch.

        Only fires when nothing has ever been persisted; a history whose
        entries were all malformed is left empty. Seeded entries are not
        persisted until the next save.

        Returns:
            True if mock entries were generated.
        """
        stored = self._store.get(self._key)
        if isinstance(stored, list) and stored:
            return False

        with self._lock:
            if self._readings:
                return False
            now = self._clock()
            for days_ago in range(MOCK_HISTORY_DAYS - 1, -1, -1):
                self._readings.append(
                    SoilReading(
                        raw=2000 + self._rng.randrange(500),
                        percent=40 + self._rng.randrange(40),
                        state="ok",
                        timestamp=now - timedelta(days=days_ago),
                    )
                )
        logger.info("No persisted history found; seeded %s mock readings", MOCK_HISTORY_DAYS)
        return True

    # ==================== Persistence ====================

    def save(self) -> None:
        """
        Persist the current history.

        Raises:
            RepositoryError: If the backing store cannot be written.
        """
        with self._lock:
            snapshot = [reading.to_dict() for reading in self._readings]
        self._store.set(self._key, snapshot)

    def save_async(self) -> Future:
        """Queue a save on the persistence worker; failures are logged, not raised."""
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="SoilHistoryWriter")
            future = self._executor.submit(self._save_logged)
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(future)
        return future

    def _save_logged(self) -> None:
        try:
            self.save()
        except RepositoryError as e:
            logger.error("Failed to persist soil history: %s", e)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for queued saves. Returns False if some are still running after ``timeout``."""
        with self._executor_lock:
            pending = list(self._pending)
        if not pending:
            return True
        _done, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        """Drain queued saves and stop the worker. A later ``save_async`` starts a new one."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
            self._pending = []
        if executor is not None:
            executor.shutdown(wait=True)
