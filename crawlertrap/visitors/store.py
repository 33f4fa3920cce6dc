"""File-backed visitor log.

The whole history lives in one JSON array on disk. Every ``add`` is a
read-modify-write of that file under a single lock, and every save trims the
array to the count and byte caps before it is atomically swapped into place.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .models import VisitCategory, VisitorEvent

logger = logging.getLogger(__name__)

MAX_VISITORS = 10_000
MAX_LOG_BYTES = 100 * 1024 * 1024  # 100 MiB
MIN_VISITORS_KEPT = 100
TRIM_RATIO = 0.9


def serialize_events(events: Sequence[VisitorEvent]) -> bytes:
    records = [e.to_record() for e in events]
    return json.dumps(records, indent=2, ensure_ascii=False).encode("utf-8")


def trim_events(
    events: Sequence[VisitorEvent],
    max_count: int = MAX_VISITORS,
    max_bytes: int = MAX_LOG_BYTES,
    min_keep: int = MIN_VISITORS_KEPT,
) -> Tuple[List[VisitorEvent], bytes]:
    """
    Apply the retention policy and return the kept events with their encoding.

    1. Keep only the ``max_count`` most recent events.
    2. While the encoding is larger than ``max_bytes`` and more than
       ``min_keep`` events remain, drop the oldest 10% (never going below
       ``min_keep``).
    3. If it is still too large, the ``min_keep`` most recent events are
       kept whatever their size.
    """
    kept = list(events)

    if len(kept) > max_count:
        logger.info(f"Trimming visitor log from {len(kept)} to {max_count} entries")
        kept = kept[len(kept) - max_count:]

    data = serialize_events(kept)
    if len(data) <= max_bytes:
        return kept, data

    logger.info(f"Visitor log size {len(data)} bytes exceeds maximum {max_bytes} bytes, trimming data")
    while len(data) > max_bytes and len(kept) > min_keep:
        keep_count = max(int(len(kept) * TRIM_RATIO), min_keep)
        logger.info(f"Reducing visitor count from {len(kept)} to {keep_count} to fit size limit")
        kept = kept[len(kept) - keep_count:]
        data = serialize_events(kept)

    # at the floor: keep what is left regardless of size
    if len(data) > max_bytes:
        logger.info(f"Final reduction: keeping only the {len(kept)} most recent visitors")

    return kept, data


class VisitorLog:
    """
    Durable, bounded record of trap hits shared by all request handlers.

    Construct one per process and pass it to whoever needs it. Storage
    failures never propagate: they are logged and ``add`` reports ``False``
    while ``get_all`` returns an empty list.
    """

    def __init__(
        self,
        path: Union[str, Path],
        max_count: int = MAX_VISITORS,
        max_bytes: int = MAX_LOG_BYTES,
        min_keep: int = MIN_VISITORS_KEPT,
    ) -> None:
        if max_count < 1:
            raise ValueError("max_count must be at least 1")
        if max_bytes < 1:
            raise ValueError("max_bytes must be at least 1")

        self.path = Path(path)
        self.max_count = max_count
        self.max_bytes = max_bytes
        self.min_keep = max(1, min(min_keep, max_count))

        self._lock = threading.Lock()
        self._last_observed: Optional[datetime] = None

    def add(
        self,
        source_address: str,
        user_agent: str,
        request_path: str,
        category: Union[VisitCategory, str],
    ) -> bool:
        """Record one hit. Returns whether it reached disk."""
        category = VisitCategory(category)

        with self._lock:
            try:
                events = self._load()
            except (OSError, ValueError) as e:
                logger.error(f"Error loading visitors from {self.path}: {e}")
                return False

            # ring semantics: make room before appending
            if len(events) >= self.max_count:
                events = events[len(events) - self.max_count + 1:]

            events.append(
                VisitorEvent(
                    source_address=source_address,
                    user_agent=user_agent,
                    observed_at=self._next_timestamp(events),
                    request_path=request_path,
                    category=category,
                )
            )

            try:
                self._save(events)
            except (OSError, ValueError) as e:
                logger.error(f"Error saving visitors to {self.path}: {e}")
                return False
            return True

    def get_all(self) -> List[VisitorEvent]:
        """All retained events, oldest first."""
        with self._lock:
            try:
                return self._load()
            except (OSError, ValueError) as e:
                logger.error(f"Error loading visitors from {self.path}: {e}")
                return []

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    def _load(self) -> List[VisitorEvent]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return []

        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError("visitor log is not a JSON array")

        events = [VisitorEvent.model_validate(item) for item in data]
        if len(events) > self.max_count:
            events = events[len(events) - self.max_count:]
        return events

    def _save(self, events: List[VisitorEvent]) -> None:
        _, data = trim_events(events, self.max_count, self.max_bytes, self.min_keep)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        try:
            tmp.write_bytes(data)
            tmp.replace(self.path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

    def _next_timestamp(self, events: Sequence[VisitorEvent]) -> datetime:
        """Wall clock, clamped so timestamps never go backwards."""
        now = datetime.now(timezone.utc)
        last = self._last_observed
        if last is None and events:
            last = events[-1].observed_at
            if last.tzinfo is None:
                last = last.replace(tzinfo=timezone.utc)
        if last is not None and now < last:
            now = last
        self._last_observed = now
        return now
