"""
buildgen/core/cache.py
═══════════════════════════════════════════════════════════════════════════
Atomic, TTL-expiring, key-addressed JSON file cache.
  • One file per key:  <root>/<sanitized-key>.json
  • Writes go to <name>.json.tmp first, then os.replace() onto the final
    file → readers see the old file or the new file, never a partial one
  • Writers of the SAME key are serialized by a per-key lock;
    different keys never block each other
  • An entry older than the TTL is a miss and is deleted on read
  • Storage and decode faults never escape this module — callers get a
    Miss, never an exception
═══════════════════════════════════════════════════════════════════════════

Keys are sanitized (anything outside [A-Za-z0-9._-] → "_", then lowercased).
Two keys with the same sanitized token ("Foo Bar" / "foo_bar") share one
file and one lock; last writer wins.
"""

import json
import logging
import os
import re
import shutil
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

from buildgen.core.errors import CacheInitError

log = logging.getLogger("cache")

T = TypeVar("T")

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


# ── Lookup result ─────────────────────────────────────────────────────────────

class MissReason(str, Enum):
    ABSENT   = "absent"
    EXPIRED  = "expired"
    CORRUPT  = "corrupt"
    IO_ERROR = "io_error"


@dataclass(frozen=True)
class Hit:
    value: Any


@dataclass(frozen=True)
class Miss:
    reason: MissReason


Lookup = Union[Hit, Miss]


def sanitize_key(key: str) -> str:
    return _UNSAFE.sub("_", key).lower()


# ── Per-key lock table ────────────────────────────────────────────────────────

class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock  = threading.Lock()
        self.users = 0


class KeyLockTable:
    """
    Lazily created mutex per key. An entry is dropped as soon as nobody
    holds or waits on it, so the table only ever holds keys that are being
    written right now.
    """

    def __init__(self):
        self._table: dict[str, _KeyLock] = {}
        self._guard = threading.Lock()

    def acquire(self, key: str) -> None:
        with self._guard:
            entry = self._table.get(key)
            if entry is None:
                entry = self._table[key] = _KeyLock()
            entry.users += 1
        entry.lock.acquire()

    def release(self, key: str) -> None:
        with self._guard:
            entry = self._table[key]
            entry.lock.release()
            entry.users -= 1
            if entry.users == 0:
                del self._table[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._table)


# ── File cache ────────────────────────────────────────────────────────────────

class FileCache:
    """
    Generic string-key → JSON payload store on the local filesystem.

    ``root`` and ``ttl_hours`` are fixed for the lifetime of the instance.
    Construction fails with CacheInitError if the root can't be created or
    isn't writable.
    """

    def __init__(
        self,
        root: Union[str, Path],
        ttl_hours: float,
        *,
        dumps: Callable[[Any], str] = json.dumps,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ):
        self.root      = Path(root)
        self.ttl_s     = float(ttl_hours) * 3600.0
        self._dumps    = dumps
        self._clock    = clock
        self._log      = logger or log
        self._locks    = KeyLockTable()

        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as ex:
            raise CacheInitError(f"Couldn't create cache directory {self.root}: {ex}") from ex
        if not os.access(self.root, os.W_OK):
            raise CacheInitError(f"Cache directory {self.root} is not writable")

    # ── paths ────────────────────────────────────────────────────────────────

    def path_for(self, key: str) -> Path:
        return self.root / f"{sanitize_key(key)}.json"

    def _tmp_path_for(self, key: str) -> Path:
        return self.root / f"{sanitize_key(key)}.json.tmp"

    # ── reads ────────────────────────────────────────────────────────────────

    def read_raw(self, key: str) -> Lookup:
        """Raw payload text if the entry exists and is younger than the TTL."""
        path = self.path_for(key)
        try:
            age = self._clock() - path.stat().st_mtime
            if age >= self.ttl_s:
                path.unlink(missing_ok=True)
                self._log.info(f"Cache expired for key '{key}' (age {age:.0f}s)")
                return Miss(MissReason.EXPIRED)
            return Hit(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return Miss(MissReason.ABSENT)
        except UnicodeDecodeError as ex:
            self._log.error(f"Cache for key '{key}' is not valid UTF-8: {ex}")
            self.invalidate(key)
            return Miss(MissReason.CORRUPT)
        except OSError as ex:
            self._log.error(f"Error reading cache for key '{key}': {ex}")
            return Miss(MissReason.IO_ERROR)

    def read(self, key: str, shape: TypeAdapter[T]) -> Lookup:
        """
        Typed read. A payload that doesn't validate against ``shape`` is
        treated as stale: the entry is invalidated and a CORRUPT miss returned.
        """
        raw = self.read_raw(key)
        if isinstance(raw, Miss):
            return raw
        try:
            return Hit(shape.validate_json(raw.value))
        except (ValidationError, ValueError) as ex:
            self._log.error(f"Failed to deserialize cache for key '{key}': {ex}")
            self.invalidate(key)
            return Miss(MissReason.CORRUPT)

    def age(self, key: str) -> Optional[float]:
        """Seconds since last successful write, or None."""
        try:
            return round(self._clock() - self.path_for(key).stat().st_mtime, 1)
        except OSError:
            return None

    def summary(self) -> dict:
        """Metadata only — safe to expose in /health."""
        out = {}
        try:
            entries = sorted(self.root.glob("*.json"))
        except OSError as ex:
            self._log.error(f"Error listing cache directory: {ex}")
            return out
        now = self._clock()
        for path in entries:
            try:
                age = now - path.stat().st_mtime
            except OSError:
                continue
            out[path.stem] = {"age_s": round(age, 1), "expired": age >= self.ttl_s}
        return out

    # ── writes ───────────────────────────────────────────────────────────────

    def write(self, key: str, value: Any) -> bool:
        """
        Serialize ``value`` and replace the entry atomically.
        Returns False (after logging) if the write failed.
        """
        token = sanitize_key(key)
        tmp   = self._tmp_path_for(key)
        final = self.path_for(key)

        self._locks.acquire(token)
        try:
            payload = self._dumps(value)
            tmp.write_text(payload, encoding="utf-8")
            try:
                os.replace(tmp, final)
            except OSError as ex:
                self._log.warning(
                    f"Atomic replace failed for key '{key}' ({ex}) — "
                    f"falling back to non-atomic move"
                )
                final.unlink(missing_ok=True)
                shutil.move(str(tmp), str(final))
            return True
        except (OSError, TypeError, ValueError) as ex:
            self._log.error(f"Failed to write cache for key '{key}': {ex}")
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                pass
            return False
        finally:
            self._locks.release(token)

    def invalidate(self, key: str) -> None:
        """Remove the entry. Absence is not an error."""
        try:
            self.path_for(key).unlink(missing_ok=True)
            self._log.info(f"Cache invalidated for key '{key}'")
        except OSError as ex:
            self._log.error(f"Failed to invalidate cache for key '{key}': {ex}")
