"""Endpoint identity and port addressing shared by graph construction, lookup and translation."""
from __future__ import annotations

import re
from typing import Tuple

from dspctl.engine_config.models import EngineConfig
from dspctl.signal_flow.models import ChannelNode, ChannelSide, RouteEndpoint

_WHITESPACE = re.compile(r"\s+")
_DEVICE_ID_UNSAFE = re.compile(r"[^a-z0-9\-_.]")


def port_key_from_parts(side: ChannelSide, device_id: str, channel_index: int) -> str:
    return f"{side}:{device_id}:{channel_index}"


def port_key(side: ChannelSide, endpoint: RouteEndpoint) -> str:
    """Deterministic key for one port, e.g. ``input:in:hw0:1``."""
    return port_key_from_parts(side, endpoint.deviceId, endpoint.channelIndex)


def node_port_key(node: ChannelNode) -> str:
    return port_key_from_parts(node.side, node.deviceId, node.channelIndex)


def same_endpoint(a: RouteEndpoint, b: RouteEndpoint) -> bool:
    return a.deviceId == b.deviceId and a.channelIndex == b.channelIndex


def endpoint_of(node: ChannelNode) -> RouteEndpoint:
    return RouteEndpoint(deviceId=node.deviceId, channelIndex=node.channelIndex)


def stable_device_id(prefix: str, label: str) -> str:
    """
    Stable id derived from a device label, e.g. ``("in", "hw:0") -> "in:hw0"``.
    Empty labels map to ``<prefix>:default``.
    """
    normalized = _WHITESPACE.sub("-", label.strip().lower())
    normalized = _DEVICE_ID_UNSAFE.sub("", normalized)
    return f"{prefix}:{normalized or 'default'}"


def default_channel_label(side: ChannelSide, channel_index: int) -> str:
    return f"In {channel_index + 1}" if side == "input" else f"Out {channel_index + 1}"


def device_label(side: ChannelSide, config: EngineConfig) -> str:
    if side == "input":
        descriptor, fallback = config.devices.capture, "Capture"
    else:
        descriptor, fallback = config.devices.playback, "Playback"
    if descriptor.device is not None:
        return descriptor.device
    return descriptor.type if descriptor.type is not None else fallback


def device_ids_for_config(config: EngineConfig) -> Tuple[str, str]:
    """(input device id, output device id) for the capture/playback pair of ``config``."""
    return (
        stable_device_id("in", device_label("input", config)),
        stable_device_id("out", device_label("output", config)),
    )
