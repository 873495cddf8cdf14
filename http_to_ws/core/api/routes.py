"""
Ingress route - ``POST /`` forwards the request body to the Link.
"""

from __future__ import annotations

from aiohttp import web

from ..connection.link import Link, Message
from ..connection.observers import MessageObserver
from ..exceptions import SendFailed
from ..logging_utils import StructuredLogger

LINK_KEY = web.AppKey("link", Link)
OBSERVER_KEY = web.AppKey("observer", MessageObserver)
LOGGER_KEY = web.AppKey("logger", StructuredLogger)


def setup_ingress_routes(app: web.Application) -> None:
    """Register the single forwarding route."""
    app.router.add_post("/", forward_handler)


async def forward_handler(request: web.Request) -> web.Response:
    """POST / - forward the body as a text frame; always 200.

    Bodies larger than the app's ``client_max_size`` are dropped and logged.
    """
    link = request.app[LINK_KEY]
    observer = request.app[OBSERVER_KEY]
    logger = request.app[LOGGER_KEY]

    delivered = False
    try:
        message = Message.text(await request.read())
    except web.HTTPRequestEntityTooLarge as exc:
        # nothing of the body is forwarded; observers see an empty undelivered message
        logger.error("Request body dropped: %s", exc.text)
        message = Message.text(b"")
    else:
        try:
            await link.send(message)
            delivered = True
        except SendFailed as exc:
            logger.error("Websocket write failed: %s", exc)

    try:
        observer.on_outbound(message, delivered)
    except Exception:
        logger.exception("Outbound observer failed")

    return web.Response(status=200)


__all__ = ["LINK_KEY", "LOGGER_KEY", "OBSERVER_KEY", "forward_handler", "setup_ingress_routes"]
