"""Filesystem-backed resolution cache and lock.

Both live in one private directory, one pair of files per source:

* ``stream_<key>`` — the raw resolved URL; its mtime is the write time.
* ``stream_<key>_lock`` — empty; existence plus mtime is the whole lock.

``<key>`` is :func:`~ambient_player.core.sources.cache_key` of the
source descriptor, so any process pointed at the same directory sees
the same entries.

Rules
-----
* I/O errors never escape: a failed read is a cache miss, a failed
  write is logged and dropped.
* Writes replace the whole entry atomically (temp file + rename).
* A lock older than the extraction timeout is abandoned and reclaimed;
  reclaiming renames it aside first so two reclaimers never both win.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
import uuid
from collections.abc import Callable
from pathlib import Path

from ambient_player.core.expiry import is_entry_valid
from ambient_player.core.sources import cache_key

logger = logging.getLogger(__name__)

DEFAULT_EXTRACTION_TIMEOUT_SECONDS: float = 15.0

_ENTRY_PREFIX = "stream_"
_TEMP_PREFIX = ".stream_"
_LOCK_SUFFIX = "_lock"
_TOMBSTONE_SUFFIX = ".stale"


def _entry_path(directory: Path, source: str) -> Path:
    return directory / f"{_ENTRY_PREFIX}{cache_key(source)}"


def _lock_path(directory: Path, source: str) -> Path:
    return directory / f"{_ENTRY_PREFIX}{cache_key(source)}{_LOCK_SUFFIX}"


def _unlink(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not delete %s: %s", path, exc)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

class FileResolutionCache:
    """Concrete :class:`~ambient_player.core.protocols.ResolutionCache`.

    Parameters
    ----------
    directory:
        Private working directory; created on first write.
    clock:
        Wall-clock source in epoch seconds.  Embedded URL expiries are
        epoch values, so this must not be a monotonic clock.
    """

    def __init__(
        self,
        directory: Path,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._directory = directory
        self._clock = clock

    @property
    def directory(self) -> Path:
        return self._directory

    def get(self, source: str, max_age_seconds: float) -> str | None:
        """Return the cached URL for *source* if it is still valid.

        Expired or stale entries are deleted.  Unreadable or empty
        entries are treated as misses.
        """
        path = _entry_path(self._directory, source)
        try:
            written_at = path.stat().st_mtime
            resolved_url = path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Error reading cache entry %s: %s", path.name, exc)
            return None

        if not resolved_url:
            return None

        if is_entry_valid(resolved_url, written_at, self._clock(), max_age_seconds):
            return resolved_url

        logger.debug("Cache entry for %s expired", source)
        _unlink(path)
        return None

    def put(self, source: str, resolved_url: str) -> None:
        """Replace the entry for *source* with *resolved_url*."""
        path = _entry_path(self._directory, source)
        tmp_name: str | None = None
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._directory,
                prefix=_TEMP_PREFIX,
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(resolved_url)
            now = self._clock()
            os.utime(tmp_name, (now, now))
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            logger.warning("Error caching URL for %s: %s", source, exc)
        finally:
            if tmp_name is not None:
                _unlink(Path(tmp_name))

    def invalidate(self, source: str) -> None:
        _unlink(_entry_path(self._directory, source))

    def clear_all(self) -> None:
        """Delete every cache entry, lock, and leftover temp file."""
        try:
            children = list(self._directory.iterdir())
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("Could not list cache directory: %s", exc)
            return
        for child in children:
            if child.name.startswith((_ENTRY_PREFIX, _TEMP_PREFIX)):
                _unlink(child)
        logger.info("Cleared stream cache in %s", self._directory)


# ---------------------------------------------------------------------------
# Lock
# ---------------------------------------------------------------------------

class FileResolutionLock:
    """Concrete :class:`~ambient_player.core.protocols.ResolutionLock`.

    Parameters
    ----------
    directory:
        Same directory as the cache.
    timeout:
        Age in seconds after which a held lock counts as abandoned.
    clock:
        Wall-clock source in epoch seconds; lock mtimes are stamped
        with it.
    """

    def __init__(
        self,
        directory: Path,
        *,
        timeout: float = DEFAULT_EXTRACTION_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._directory = directory
        self._timeout = timeout
        self._clock = clock

    def try_acquire(self, source: str) -> bool:
        """Take the lock for *source*.

        Returns ``False`` only when another live resolution holds it.
        """
        path = _lock_path(self._directory, source)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            return self._acquire(path)
        except OSError as exc:
            logger.warning("Lock unavailable for %s, continuing without it: %s", source, exc)
            return True

    def release(self, source: str) -> None:
        _unlink(_lock_path(self._directory, source))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _acquire(self, path: Path) -> bool:
        if self._create(path):
            return True

        try:
            age = self._clock() - path.stat().st_mtime
        except FileNotFoundError:
            # Released between our create attempt and the stat.
            return self._create(path)

        if age < self._timeout:
            return False

        # Rename aside, then re-check: a lock another reclaimer just
        # re-created is still fresh here.
        tombstone = path.with_name(f"{path.name}.{uuid.uuid4().hex}{_TOMBSTONE_SUFFIX}")
        try:
            os.rename(path, tombstone)
        except FileNotFoundError:
            return False
        try:
            age = self._clock() - tombstone.stat().st_mtime
        except FileNotFoundError:
            return False

        if age < self._timeout:
            self._restore(tombstone, path)
            return False

        logger.info("Reclaiming abandoned lock %s (%.1fs old)", path.name, age)
        _unlink(tombstone)
        return self._create(path)

    @staticmethod
    def _restore(tombstone: Path, path: Path) -> None:
        """Put a live lock taken by mistake back in place."""
        try:
            os.link(tombstone, path)
        except FileExistsError:
            logger.warning("Lock %s was re-taken while being restored", path.name)
        finally:
            _unlink(tombstone)

    def _create(self, path: Path) -> bool:
        """Exclusively create *path*; ``False`` when it already exists."""
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        os.close(fd)
        now = self._clock()
        os.utime(path, (now, now))
        return True
