"""yt-relay — YouTube stream resolver and media relay.

Built on the yt-dlp Python API with a strict layered architecture.
"""

from yt_relay.version import __version__

__all__: list[str] = ["__version__"]
