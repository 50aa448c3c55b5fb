"""Pure candidate ranking logic.

Every function in this module is a **pure** transformation — no I/O,
no side effects, fully deterministic, and trivially unit-testable.

Preference order (enforced by :func:`select_best_url`):

1. **Manifest** — an adaptive manifest URL beats every progressive stream.
2. **Muxed** — audio+video streams beat video-only streams.
3. **Video-only** — last resort.

Within a tier the highest declared bitrate wins; ties keep the
extraction backend's order.
"""

from __future__ import annotations

from collections.abc import Sequence

from ambient_player.core.models import ExtractionResult, StreamCandidate


# ---------------------------------------------------------------------------
# Within-tier ranking
# ---------------------------------------------------------------------------

def _bitrate(candidate: StreamCandidate) -> int:
    return candidate.bitrate if candidate.bitrate is not None else 0


def best_candidate(
    candidates: Sequence[StreamCandidate],
) -> StreamCandidate | None:
    """Return the highest-bitrate candidate with a usable URL.

    :func:`max` returns the first maximal element, so equal bitrates
    resolve to the earliest candidate.
    """
    usable = [c for c in candidates if c.url]
    if not usable:
        return None
    return max(usable, key=_bitrate)


# ---------------------------------------------------------------------------
# Composite selection
# ---------------------------------------------------------------------------

def select_best_url(result: ExtractionResult) -> str | None:
    """Pick the single best playable URL from *result*.

    Returns ``None`` when the result holds nothing playable.
    """
    if result.manifest_url:
        return result.manifest_url

    for tier in (result.muxed_candidates, result.video_only_candidates):
        chosen = best_candidate(tier)
        if chosen is not None:
            return chosen.url
    return None
