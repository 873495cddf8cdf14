"""
HTTP ingress for the bridge.

One route, ``POST /``: the request body is forwarded over the outbound
WebSocket as a text frame and the request is answered 200 whether or not
the frame could be written.
"""

from .server import IngressServer
from .routes import setup_ingress_routes

__all__ = ["IngressServer", "setup_ingress_routes"]
