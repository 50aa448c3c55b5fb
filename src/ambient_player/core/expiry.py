"""Embedded-expiry parsing and the cache validity rule.

Signed media URLs carry their own expiry epoch, either as a path segment
(``.../expire/1700000000/...``, HLS manifests) or as a query parameter
(``...&expire=1700000000&...``, progressive streams).  When present it
is authoritative; otherwise a cache entry ages out by wall-clock time.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

_PATH_EXPIRY = re.compile(r"expire/(\d+)")


def parse_embedded_expiry(url: str) -> int | None:
    """Return the expiry epoch embedded in *url*, or ``None``.

    The ``expire/<epoch>`` path form wins over the ``expire=<epoch>``
    query form when both are present.
    """
    match = _PATH_EXPIRY.search(url)
    if match:
        return int(match.group(1))

    values = parse_qs(urlparse(url).query).get("expire")
    if values and values[0].isdigit():
        return int(values[0])
    return None


def is_entry_valid(
    resolved_url: str,
    written_at: float,
    now: float,
    max_age_seconds: float,
) -> bool:
    """Apply the validity rule to one cache entry.

    * Embedded expiry present → valid iff ``now < expiry``
      (*max_age_seconds* is ignored).
    * Otherwise → valid iff ``now - written_at < max_age_seconds``.
    """
    expiry = parse_embedded_expiry(resolved_url)
    if expiry is not None:
        return now < expiry
    return now - written_at < max_age_seconds
