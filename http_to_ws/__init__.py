"""HTTP to WebSocket bridge.

Every ``POST /`` body received on the HTTP listener is forwarded as a
text frame over one persistent outbound WebSocket connection, which is
re-established whenever it drops.
"""

from __future__ import annotations

from importlib import metadata

try:
    __version__ = metadata.version("http-to-ws")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


__all__ = ["__version__"]
