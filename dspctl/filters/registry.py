"""
Filter handler registry.

Per-type parameter handling (validation, serialisation, defaults, display)
lives in handlers supplied by the editor layer. The translation core treats
filter definitions as opaque; this module only defines the handler contract
and the lookup table keyed by filter type tag.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from dspctl.engine_config.models import FilterConfig

logger = logging.getLogger(__name__)

KNOWN_FILTER_TYPES = (
    "Biquad",
    "Conv",
    "Delay",
    "Gain",
    "Volume",
    "Dither",
    "DiffEq",
    "Compressor",
    "Loudness",
    "NoiseGate",
)


class FilterHandler(Protocol):
    type: str

    def validate(self, config: FilterConfig) -> List[str]:
        """Return a list of human readable problems; empty when valid."""
        ...

    def serialize(self, config: FilterConfig) -> Dict[str, Any]:
        ...

    def get_default(self) -> FilterConfig:
        ...

    def get_display_name(self) -> str:
        ...

    def get_summary(self, config: FilterConfig) -> str:
        ...


class FilterRegistry:
    def __init__(self) -> None:
        self._handlers: Dict[str, FilterHandler] = {}

    def register(self, handler: FilterHandler) -> None:
        if handler.type not in KNOWN_FILTER_TYPES:
            logger.warning("Registering handler for unknown filter type %r", handler.type)
        if handler.type in self._handlers:
            logger.debug("Replacing filter handler for %r", handler.type)
        self._handlers[handler.type] = handler

    def get(self, filter_type: str) -> Optional[FilterHandler]:
        return self._handlers.get(filter_type)

    def has(self, filter_type: str) -> bool:
        return filter_type in self._handlers

    def all(self) -> List[FilterHandler]:
        return list(self._handlers.values())

    def types(self) -> List[str]:
        return list(self._handlers.keys())


filter_registry = FilterRegistry()
