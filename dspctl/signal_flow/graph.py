"""
Signal Flow Graph.

Pure edits over a SignalFlowModel. Every function returns a new model; the
argument is never modified.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from dspctl.signal_flow.endpoints import node_port_key, port_key, same_endpoint
from dspctl.signal_flow.filter_chain import processing_summary_from_filters
from dspctl.signal_flow.models import (
    ChannelNode,
    ChannelProcessing,
    ChannelProcessingFilter,
    ChannelSide,
    RouteEdge,
    RouteEndpoint,
    SignalFlowModel,
)


def build_port_index(model: SignalFlowModel) -> Dict[str, ChannelNode]:
    """Port key -> channel node for every input and output node."""
    index: Dict[str, ChannelNode] = {}
    for node in [*model.inputs, *model.outputs]:
        index[node_port_key(node)] = node
    return index


def find_node(model: SignalFlowModel, side: ChannelSide, endpoint: RouteEndpoint) -> Optional[ChannelNode]:
    return build_port_index(model).get(port_key(side, endpoint))


def find_route(model: SignalFlowModel, source: RouteEndpoint, dest: RouteEndpoint) -> int:
    """Index of the route source -> dest, or -1."""
    for idx, route in enumerate(model.routes):
        if same_endpoint(route.from_, source) and same_endpoint(route.to, dest):
            return idx
    return -1


def routes_for_port(model: SignalFlowModel, side: ChannelSide, endpoint: RouteEndpoint) -> List[RouteEdge]:
    """Routes leaving an input port or arriving at an output port."""
    key = port_key(side, endpoint)
    if side == "input":
        return [r for r in model.routes if port_key("input", r.from_) == key]
    return [r for r in model.routes if port_key("output", r.to) == key]


def add_route(model: SignalFlowModel, source: RouteEndpoint, dest: RouteEndpoint, gain: float = 0.0) -> SignalFlowModel:
    """Connect source -> dest. Connecting an already connected pair leaves the model as is."""
    if find_route(model, source, dest) >= 0:
        return model
    route = RouteEdge(from_=source, to=dest, gain=gain)
    return model.model_copy(update={"routes": [*model.routes, route]})


def update_route(model: SignalFlowModel, index: int, **changes: Any) -> SignalFlowModel:
    if not 0 <= index < len(model.routes):
        return model
    routes = list(model.routes)
    routes[index] = RouteEdge.model_validate({**routes[index].model_dump(by_alias=True), **_aliased(changes)})
    return model.model_copy(update={"routes": routes})


def delete_route(model: SignalFlowModel, index: int) -> SignalFlowModel:
    if not 0 <= index < len(model.routes):
        return model
    routes = [r for idx, r in enumerate(model.routes) if idx != index]
    return model.model_copy(update={"routes": routes})


def replace_node_filters(
    model: SignalFlowModel,
    side: ChannelSide,
    endpoint: RouteEndpoint,
    filters: List[ChannelProcessingFilter],
) -> SignalFlowModel:
    """New model with the filter chain (and summary) of one node replaced. Unknown ports are a no-op."""
    key = port_key(side, endpoint)
    nodes = model.nodes(side)
    updated: List[ChannelNode] = []
    for node in nodes:
        if node_port_key(node) == key:
            node = node.model_copy(update={
                "processing": ChannelProcessing(filters=list(filters)),
                "processingSummary": processing_summary_from_filters(filters),
            })
        updated.append(node)
    field = "inputs" if side == "input" else "outputs"
    return model.model_copy(update={field: updated})


def _aliased(changes: Dict[str, Any]) -> Dict[str, Any]:
    if "from_" in changes:
        changes = dict(changes)
        changes["from"] = changes.pop("from_")
    return changes
