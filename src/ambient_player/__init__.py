"""ambient-player — always-on ambient video player for passive displays.

Resolves a configured stream source to a playable URL and keeps playback
alive through rate limiting, network failures, and silent stalls.
"""

from ambient_player.version import __version__

__all__: list[str] = ["__version__"]
