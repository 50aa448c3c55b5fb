"""Core stream resolver — turns a source descriptor into a playable URL.

The resolver owns the resolution cache and lock.  It depends on a
:class:`~ambient_player.core.protocols.CandidateExtractor` injected at
construction time (dependency inversion), keeping the core free of any
yt-dlp or filesystem imports.

Guarantees
----------
* Direct sources are returned unchanged; cache and lock are never touched.
* At most one extraction per source runs at a time; the loser of a race
  gets ``None`` ("try again shortly"), never an exception.
* The lock is released on every exit path.
* No exception escapes :meth:`StreamResolver.resolve`.
"""

from __future__ import annotations

import logging

from ambient_player.core.candidate_selector import select_best_url
from ambient_player.core.protocols import (
    CandidateExtractor,
    ResolutionCache,
    ResolutionLock,
)
from ambient_player.core.sources import is_direct
from ambient_player.exceptions import ExtractionError, RateLimitedError

logger = logging.getLogger(__name__)

DEFAULT_CACHE_EXPIRATION_SECONDS: float = 300.0


class StreamResolver:
    """Cache-first, lock-guarded resolution of source descriptors.

    Parameters
    ----------
    extractor:
        Any object satisfying the :class:`CandidateExtractor` protocol.
    cache:
        Resolved-URL store.
    lock:
        Per-source mutual exclusion shared by every caller, including
        background revalidation.
    """

    def __init__(
        self,
        extractor: CandidateExtractor,
        cache: ResolutionCache,
        lock: ResolutionLock,
    ) -> None:
        self._extractor: CandidateExtractor = extractor
        self._cache: ResolutionCache = cache
        self._lock: ResolutionLock = lock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(
        self,
        source: str,
        force_refresh: bool = False,
        cache_expiration_seconds: float = DEFAULT_CACHE_EXPIRATION_SECONDS,
    ) -> str | None:
        """Return a playable URL for *source*, or ``None``.

        ``None`` means either that extraction failed or that another
        resolution for the same source is already running.
        """
        if is_direct(source):
            return source

        if not force_refresh:
            cached = self._cache.get(source, cache_expiration_seconds)
            if cached is not None:
                logger.debug("Using cached URL for %s", source)
                return cached

        if not self._lock.try_acquire(source):
            logger.debug("Extraction already in progress for %s", source)
            return None

        try:
            resolved = self._extract(source)
            if resolved is not None:
                self._cache.put(source, resolved)
                logger.info("Resolved %s", source)
            return resolved
        finally:
            self._lock.release(source)

    def cached_url(
        self,
        source: str,
        cache_expiration_seconds: float = DEFAULT_CACHE_EXPIRATION_SECONDS,
    ) -> str | None:
        """Return the valid cached URL for *source* without extracting."""
        if is_direct(source):
            return source
        return self._cache.get(source, cache_expiration_seconds)

    def invalidate(self, source: str) -> None:
        """Drop the cached entry for *source*."""
        self._cache.invalidate(source)

    def clear_all(self) -> None:
        """Drop every cached entry and lock."""
        self._cache.clear_all()

    # ------------------------------------------------------------------
    # Extractor delegation (safe boundary)
    # ------------------------------------------------------------------

    def _extract(self, source: str) -> str | None:
        """Call the extractor and absorb every failure into ``None``."""
        try:
            result = self._extractor.extract(source)
        except RateLimitedError as exc:
            logger.warning("Rate limited while extracting %s: %s", source, exc)
            return None
        except ExtractionError as exc:
            logger.error(
                "Extraction failed for %s (%s): %s", source, exc.kind.value, exc,
            )
            return None
        except Exception:
            logger.exception("Unexpected extractor error for %s", source)
            return None

        url = select_best_url(result)
        if url is None:
            logger.warning("No suitable stream found for %s", source)
        return url
