import json
import logging
import os
import threading
import time
from typing import Any, Callable

from cachetools import TTLCache

logger = logging.getLogger(__name__)

def memory_cache(ttl_seconds: float, maxsize: int = 4096, timer: Callable[[], float] = time.monotonic) -> TTLCache:
    """In-process cache for process-wide series and request-scoped opinions."""
    return TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer)

def _well_formed(entry) -> bool:
    if not isinstance(entry, dict) or "value" not in entry:
        return False
    ts = entry.get("ts")
    return isinstance(ts, (int, float)) and not isinstance(ts, bool)

class FileTTLCache:
    """
    Key-value cache persisted to one JSON file.

    Entries expire lazily on read; `load()` additionally sweeps expired and
    invalid entries at startup. Writes are debounced: a burst of `set()` calls
    results in one file write `flush_delay` seconds after the first of them.
    Concurrent writers to the same key are last-write-wins.
    """
    def __init__(
        self,
        path: str,
        ttl_seconds: float,
        label: str,
        validator: Callable[[Any], bool] | None = None,
        clock: Callable[[], float] = time.time,
        flush_delay: float = 5.0,
    ):
        self.path = path
        self.ttl = ttl_seconds
        self.label = label
        self.validator = validator
        self.clock = clock
        self.flush_delay = flush_delay
        self._entries: dict[str, dict] = {}
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._dirty = False

    def load(self) -> int:
        if os.path.exists(self.path):
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
                if isinstance(raw, dict):
                    self._entries = {k: v for k, v in raw.items() if _well_formed(v)}
            except (OSError, ValueError):
                logger.warning("cache file unreadable, starting empty", extra={"cache": self.label, "path": self.path})
                self._entries = {}
        removed = self.sweep()
        logger.info(
            "cache loaded",
            extra={"cache": self.label, "entries": len(self._entries), "purged": removed},
        )
        if removed:
            self._schedule_save()
        return len(self._entries)

    def _expired(self, entry: dict) -> bool:
        return self.clock() - float(entry.get("ts", 0)) > self.ttl

    def _valid(self, entry: dict) -> bool:
        if "value" not in entry:
            return False
        if self.validator is None:
            return True
        try:
            return bool(self.validator(entry["value"]))
        except (AttributeError, KeyError, TypeError, ValueError):
            return False

    def sweep(self) -> int:
        with self._lock:
            stale = [k for k, e in self._entries.items() if self._expired(e) or not self._valid(e)]
            for k in stale:
                del self._entries[k]
        return len(stale)

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not self._expired(entry):
                return entry["value"]
            del self._entries[key]
        self._schedule_save()
        return None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = {"value": value, "ts": self.clock()}
        self._schedule_save()

    def clear(self) -> int:
        with self._lock:
            n = len(self._entries)
            self._entries = {}
        self._schedule_save()
        return n

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict:
        return {
            "label": self.label,
            "entries": len(self._entries),
            "ttl_days": round(self.ttl / 86400, 1),
            "path": self.path,
        }

    def _schedule_save(self) -> None:
        with self._lock:
            self._dirty = True
            if self.flush_delay <= 0:
                immediate = True
            else:
                immediate = False
                if self._timer is None:
                    self._timer = threading.Timer(self.flush_delay, self.flush)
                    self._timer.daemon = True
                    self._timer.start()
        if immediate:
            self.flush()

    def flush(self) -> None:
        """Write pending changes now. Called by the debounce timer and at shutdown."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if not self._dirty:
                return
            snapshot = dict(self._entries)
            self._dirty = False
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp = f"{self.path}.tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, ensure_ascii=False)
            os.replace(tmp, self.path)
        except OSError:
            logger.exception("cache flush failed", extra={"cache": self.label, "path": self.path})
            return
        logger.debug("cache flushed", extra={"cache": self.label, "entries": len(snapshot)})
