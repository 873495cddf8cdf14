"""Component-scoped logger helpers for the bridge."""

from __future__ import annotations

import logging
from typing import Optional, Union

LOGGER_NAMESPACE = "http_to_ws"
DEFAULT_COMPONENT = "Bridge"


def _qualify(name: Optional[str]) -> str:
    if not name:
        return LOGGER_NAMESPACE
    if name == LOGGER_NAMESPACE or name.startswith(f"{LOGGER_NAMESPACE}."):
        return name
    return f"{LOGGER_NAMESPACE}.{name}"


def _component_for(name: str) -> str:
    if name.startswith(LOGGER_NAMESPACE):
        return name[len(LOGGER_NAMESPACE):].lstrip(".") or DEFAULT_COMPONENT
    return name or DEFAULT_COMPONENT


class StructuredLogger(logging.LoggerAdapter):
    """Tags every message with ``[Component]`` and a ``component`` record attribute.

    Components receive one of these at construction time instead of
    reaching for a module-level global, so tests can hand in a logger of
    their own and assert on what was emitted.
    """

    def __init__(self, logger: logging.Logger, component: Optional[str] = None) -> None:
        super().__init__(logger, {"component": component or _component_for(logger.name)})

    @property
    def component(self) -> str:
        return self.extra["component"]

    def process(self, msg, kwargs):
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return f"[{self.component}] {msg}", kwargs

    def getChild(self, suffix: str) -> "StructuredLogger":
        return StructuredLogger(self.logger.getChild(suffix), component=f"{self.component}.{suffix}")

    def __repr__(self) -> str:
        return f"StructuredLogger({self.logger.name!r}, component={self.component!r})"


LoggerLike = Union[StructuredLogger, logging.Logger, logging.LoggerAdapter, None]


def ensure_structured_logger(
    logger: LoggerLike,
    *,
    component: Optional[str] = None,
    fallback_name: Optional[str] = None,
) -> StructuredLogger:
    """Return ``logger`` as a StructuredLogger, or a fresh one named ``fallback_name``."""
    if isinstance(logger, StructuredLogger):
        return logger
    if isinstance(logger, logging.LoggerAdapter):
        logger = logger.logger
    if isinstance(logger, logging.Logger):
        return StructuredLogger(logger, component=component)
    return get_module_logger(fallback_name or component)


def get_module_logger(name: Optional[str] = None) -> StructuredLogger:
    """Return a StructuredLogger under the ``http_to_ws`` namespace."""
    return StructuredLogger(logging.getLogger(_qualify(name)))


__all__ = [
    "LOGGER_NAMESPACE",
    "LoggerLike",
    "StructuredLogger",
    "ensure_structured_logger",
    "get_module_logger",
]
