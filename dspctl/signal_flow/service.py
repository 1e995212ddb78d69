"""
Signal Flow Service.

Ties translation to the engine: load the live config as a signal flow view,
commit an edited view back, and add registry-default filters to a channel.
"""

from __future__ import annotations

import logging
from typing import Optional

from dspctl.filters.registry import FilterRegistry, filter_registry
from dspctl.routing_mixer.service import ensure_routing_step
from dspctl.signal_flow.filter_chain import ensure_unique_name
from dspctl.signal_flow.from_config import from_config
from dspctl.signal_flow.graph import find_node, replace_node_filters
from dspctl.signal_flow.models import (
    ChannelProcessingFilter,
    ChannelSide,
    FromConfigResult,
    RouteEndpoint,
    SignalFlowModel,
    ToConfigResult,
)
from dspctl.signal_flow.to_config import to_config
from dspctl.transport.client import EngineClient
from dspctl.transport.protocol import TransportError

logger = logging.getLogger(__name__)


class SignalFlowService:
    def __init__(self, client: Optional[EngineClient] = None, registry: Optional[FilterRegistry] = None) -> None:
        self.client = client
        self.registry = registry or filter_registry

    def _require_client(self) -> EngineClient:
        if self.client is None:
            raise TransportError("No engine client configured")
        return self.client

    def load(self) -> FromConfigResult:
        """Signal flow view of the engine's current config."""
        return from_config(self._require_client().get_config())

    def commit(self, model: SignalFlowModel, activate_routing: bool = False) -> ToConfigResult:
        """
        Translate ``model`` onto the engine's current config and push it.

        With ``activate_routing`` a missing routing mixer step is appended
        before pushing; the returned warnings still report that it was missing.
        """
        client = self._require_client()
        result = to_config(client.get_config(), model)
        config = result.config
        if activate_routing and not config.has_routing_step():
            config = ensure_routing_step(config)
            result = result.model_copy(update={"config": config})
        client.set_config(config)
        logger.info(
            "Committed signal flow (representable=%s, %s warnings)", result.representable, len(result.warnings),
        )
        return result

    def add_filter(
        self,
        model: SignalFlowModel,
        side: ChannelSide,
        endpoint: RouteEndpoint,
        filter_type: str,
    ) -> SignalFlowModel:
        """Append the registry default for ``filter_type`` to one channel's chain."""
        handler = self.registry.get(filter_type)
        if handler is None:
            raise ValueError(f"No filter handler registered for {filter_type!r}")
        node = find_node(model, side, endpoint)
        if node is None:
            raise ValueError(f"No {side} channel {endpoint.deviceId}:{endpoint.channelIndex}")

        # filter definitions are global by name, so names must be unique across the whole model
        taken = {f.name for n in [*model.inputs, *model.outputs] for f in n.processing.filters}
        prefix = "in" if side == "input" else "out"
        name = ensure_unique_name(f"{prefix}{endpoint.channelIndex}-{filter_type.lower()}", taken)
        chain = [*node.processing.filters, ChannelProcessingFilter(name=name, config=handler.get_default())]
        return replace_node_filters(model, side, endpoint, chain)


_default_service: Optional[SignalFlowService] = None


def get_signal_flow_service() -> SignalFlowService:
    global _default_service
    if _default_service is None:
        _default_service = SignalFlowService()
    return _default_service


def set_signal_flow_service(service: Optional[SignalFlowService]) -> None:
    global _default_service
    _default_service = service
