"""yt-dlp backed implementation of :class:`~ambient_player.core.protocols.CandidateExtractor`.

This module is the **only** place in the codebase that imports ``yt_dlp``.
yt-dlp doubles as the transport client: each :meth:`extract` call issues
one metadata request and nothing else.  All yt-dlp exceptions are caught
here and re-raised as typed
:class:`~ambient_player.exceptions.ExtractionError` subclasses — nothing
raw escapes the infrastructure boundary.
"""

from __future__ import annotations

from typing import Any

from ambient_player.core.models import ExtractionResult, StreamCandidate
from ambient_player.exceptions import (
    EnvironmentError,
    ExtractionError,
    NetworkError,
    RateLimitedError,
    StreamNotFoundError,
    append_ytdlp_upgrade_suggestion,
)

# Protocols whose URL can be handed to the engine as a single media file.
_PROGRESSIVE_PROTOCOLS: frozenset[str] = frozenset({"http", "https"})

# Protocols whose ``manifest_url`` is an adaptive master playlist.
_MANIFEST_PROTOCOLS: frozenset[str] = frozenset(
    {"m3u8", "m3u8_native", "http_dash_segments"},
)


class YtDlpCandidateExtractor:
    """Concrete :class:`CandidateExtractor` backed by the yt-dlp Python API.

    Usage::

        extractor = YtDlpCandidateExtractor(timeout=15)
        result = extractor.extract("https://www.youtube.com/watch?v=...")

    This class satisfies the
    :class:`~ambient_player.core.protocols.CandidateExtractor` protocol
    structurally — no explicit inheritance required.
    """

    # Substrings in yt-dlp error messages, checked in this order.
    _RATE_LIMIT_SIGNALS: tuple[str, ...] = (
        "http error 429",
        "too many requests",
        "rate-limited",
        "rate limited",
    )
    _UNAVAILABLE_SIGNALS: tuple[str, ...] = (
        "unavailable",
        "private video",
        "removed",
        "not available",
        "account terminated",
        "this live event will begin",
        "offline",
        "http error 404",
    )
    _NETWORK_SIGNALS: tuple[str, ...] = (
        "urlopen error",
        "timed out",
        "connection refused",
        "connection reset",
        "name or service not known",
        "temporary failure in name resolution",
        "network is unreachable",
    )

    def __init__(self, *, timeout: float = 15.0) -> None:
        self._timeout = timeout

    def _build_opts(self) -> dict[str, Any]:
        """Return yt-dlp options suitable for metadata-only extraction."""
        return {
            "quiet": True,
            "no_warnings": True,
            "no_color": True,
            # Do not write any files to disk.
            "skip_download": True,
            "noplaylist": True,
            "socket_timeout": self._timeout,
            "cachedir": False,
        }

    # ------------------------------------------------------------------
    # Protocol method
    # ------------------------------------------------------------------

    def extract(self, source_url: str) -> ExtractionResult:
        """Extract playable candidates for *source_url* without downloading.

        Raises
        ------
        RateLimitedError
            When the host answered with HTTP 429.
        StreamNotFoundError
            When yt-dlp reports the stream as unavailable / offline.
        NetworkError
            When the host could not be reached.
        ExtractionError
            For all other extraction failures.
        """
        opts = self._build_opts()

        try:
            import yt_dlp
            import yt_dlp.utils
        except ModuleNotFoundError as exc:
            raise EnvironmentError(
                "yt-dlp is not installed. Install with: pip install yt-dlp",
            ) from exc

        try:
            with yt_dlp.YoutubeDL(opts) as ydl:
                info: Any = ydl.extract_info(source_url, download=False)
        except yt_dlp.utils.DownloadError as exc:
            self._raise_mapped(exc)
        except Exception as exc:
            raise ExtractionError(
                f"Unexpected yt-dlp error: {exc}",
            ) from exc

        if not isinstance(info, dict):
            raise ExtractionError(
                "yt-dlp returned no usable metadata for the given URL.",
                hint="The URL may not point to a video or live stream.",
            )

        return self.parse_info(info)

    # ------------------------------------------------------------------
    # Raw-dict → domain-model parsing (pure)
    # ------------------------------------------------------------------

    @classmethod
    def parse_info(cls, info: dict[str, Any]) -> ExtractionResult:
        """Convert a yt-dlp info dict into an :class:`ExtractionResult`."""
        formats = cls._extract_raw_formats(info)

        manifest_url: str | None = None
        top_manifest = info.get("manifest_url")
        if isinstance(top_manifest, str) and top_manifest:
            manifest_url = top_manifest

        muxed: list[StreamCandidate] = []
        video_only: list[StreamCandidate] = []
        for fmt in formats:
            protocol = str(fmt.get("protocol") or "")
            if manifest_url is None and protocol in _MANIFEST_PROTOCOLS:
                candidate_manifest = fmt.get("manifest_url")
                if isinstance(candidate_manifest, str) and candidate_manifest:
                    manifest_url = candidate_manifest
                continue
            if protocol not in _PROGRESSIVE_PROTOCOLS:
                continue

            url = fmt.get("url")
            if not isinstance(url, str) or not url:
                continue
            has_video = (fmt.get("vcodec") or "none") != "none"
            has_audio = (fmt.get("acodec") or "none") != "none"
            if not has_video:
                continue

            candidate = StreamCandidate(url=url, bitrate=cls._parse_bitrate(fmt))
            if has_audio:
                muxed.append(candidate)
            else:
                video_only.append(candidate)

        return ExtractionResult(
            manifest_url=manifest_url,
            muxed_candidates=tuple(muxed),
            video_only_candidates=tuple(video_only),
        )

    @staticmethod
    def _extract_raw_formats(info: dict[str, Any]) -> list[dict[str, Any]]:
        """Safely pull the ``formats`` list from a raw info dict."""
        raw: object = info.get("formats")
        if not isinstance(raw, list):
            return []
        return [entry for entry in raw if isinstance(entry, dict)]

    @staticmethod
    def _parse_bitrate(fmt: dict[str, Any]) -> int | None:
        """Return the total bitrate in kbit/s, falling back to video bitrate."""
        for key in ("tbr", "vbr"):
            value = fmt.get(key)
            if isinstance(value, (int, float)):
                return int(value)
        return None

    # ------------------------------------------------------------------
    # Exception mapping
    # ------------------------------------------------------------------

    @classmethod
    def _raise_mapped(cls, exc: Exception) -> None:
        """Translate a yt-dlp ``DownloadError`` into a domain exception.

        Always raises — the ``Never`` return type is implicit via
        ``raise`` at every exit path.
        """
        message = str(exc)
        msg_lower = message.lower()
        if any(signal in msg_lower for signal in cls._RATE_LIMIT_SIGNALS):
            raise RateLimitedError(
                message,
                hint="The host is throttling requests; playback will retry.",
            ) from exc
        if any(signal in msg_lower for signal in cls._UNAVAILABLE_SIGNALS):
            raise StreamNotFoundError(
                message,
                hint="The stream may be offline, private, or removed.",
            ) from exc
        if any(signal in msg_lower for signal in cls._NETWORK_SIGNALS):
            raise NetworkError(
                message,
                hint="Check the network connection.",
            ) from exc
        raise ExtractionError(
            message,
            hint=append_ytdlp_upgrade_suggestion("Extraction failed."),
        ) from exc
