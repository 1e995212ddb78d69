"""Signal flow translation: UI routing/processing graph <-> engine pipeline config."""

from dspctl.signal_flow.endpoints import port_key, port_key_from_parts, same_endpoint
from dspctl.signal_flow.from_config import from_config
from dspctl.signal_flow.models import (
    ChannelNode,
    RouteEdge,
    RouteEndpoint,
    SignalFlowModel,
    SignalFlowWarning,
    SignalFlowWarningCode,
)
from dspctl.signal_flow.to_config import to_config

__all__ = [
    "ChannelNode",
    "RouteEdge",
    "RouteEndpoint",
    "SignalFlowModel",
    "SignalFlowWarning",
    "SignalFlowWarningCode",
    "from_config",
    "port_key",
    "port_key_from_parts",
    "same_endpoint",
    "to_config",
]
