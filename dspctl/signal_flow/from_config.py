"""
Engine config -> signal flow view.

Builds one channel node per device channel, reads routes back out of the
routing mixer, and places single-channel Filter steps into per-channel chains
(before the routing step = input processing, after it = output processing).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Tuple, Union

from dspctl.engine_config.models import ROUTING_MIXER_NAME, EngineConfig, FilterStep, MixerStep
from dspctl.signal_flow.endpoints import (
    default_channel_label,
    device_ids_for_config,
    device_label,
    port_key_from_parts,
)
from dspctl.signal_flow.filter_chain import summarize_filter_types
from dspctl.signal_flow.models import (
    ChannelNode,
    ChannelProcessing,
    ChannelProcessingFilter,
    ChannelSide,
    DeviceGroup,
    FromConfigResult,
    RouteEdge,
    RouteEndpoint,
    SignalFlowModel,
    SignalFlowWarning,
    SignalFlowWarningCode,
)

logger = logging.getLogger(__name__)

ChannelKey = Tuple[ChannelSide, int]


def _channel_names(config: EngineConfig) -> Dict[str, str]:
    """Custom channel labels stored by the UI under ``ui.signalFlow.channelNames``."""
    ui = (config.model_extra or {}).get("ui")
    if not isinstance(ui, Mapping):
        return {}
    signal_flow = ui.get("signalFlow")
    if not isinstance(signal_flow, Mapping):
        return {}
    names = signal_flow.get("channelNames")
    if not isinstance(names, Mapping):
        return {}
    return {str(k): v for k, v in names.items() if isinstance(v, str)}


def _read_routes(
    config: EngineConfig,
    input_device_id: str,
    output_device_id: str,
    warnings: List[SignalFlowWarning],
) -> List[RouteEdge]:
    mixer = config.mixers.get(ROUTING_MIXER_NAME)
    if mixer is None:
        warnings.append(SignalFlowWarning(
            code=SignalFlowWarningCode.MISSING_ROUTING_MIXER_CONFIG,
            message="No routing mixer definition found; routes stay empty until one is created.",
            path=f"mixers.{ROUTING_MIXER_NAME}",
        ))
        return []

    in_channels = config.capture_channels
    out_channels = config.playback_channels
    routes: List[RouteEdge] = []
    for mapping_idx, mapping in enumerate(mixer.mapping):
        for source_idx, source in enumerate(mapping.sources):
            if not (0 <= source.channel < in_channels and 0 <= mapping.dest < out_channels):
                warnings.append(SignalFlowWarning(
                    code=SignalFlowWarningCode.ROUTE_OUT_OF_RANGE,
                    message=f"Route {source.channel} -> {mapping.dest} is outside current channel counts.",
                    path=f"mixers.{ROUTING_MIXER_NAME}.mapping[{mapping_idx}].sources[{source_idx}]",
                ))
                continue
            routes.append(RouteEdge(
                from_=RouteEndpoint(deviceId=input_device_id, channelIndex=source.channel),
                to=RouteEndpoint(deviceId=output_device_id, channelIndex=mapping.dest),
                gain=source.gain,
                inverted=source.inverted,
                mute=source.mute,
            ))
    return routes


def from_config(config: Union[EngineConfig, Mapping[str, Any]]) -> FromConfigResult:
    """Derive the signal flow view of ``config``."""
    if not isinstance(config, EngineConfig):
        config = EngineConfig.model_validate(config)

    warnings: List[SignalFlowWarning] = []
    input_device_id, output_device_id = device_ids_for_config(config)
    channel_counts: Dict[ChannelSide, int] = {
        "input": config.capture_channels,
        "output": config.playback_channels,
    }

    routing_idx = config.routing_step_index()
    if routing_idx < 0:
        warnings.append(SignalFlowWarning(
            code=SignalFlowWarningCode.MISSING_ROUTING_MIXER_STEP,
            message="No routing mixer step found in pipeline; routes may be incomplete.",
            path="pipeline",
        ))

    has_other_mixers = any(
        isinstance(step, MixerStep) and step.name != ROUTING_MIXER_NAME for step in config.pipeline
    )
    if has_other_mixers:
        warnings.append(SignalFlowWarning(
            code=SignalFlowWarningCode.NON_CANONICAL_MIXERS,
            message="Pipeline runs mixers other than the routing mixer; only the routing mixer is shown.",
            path="pipeline",
        ))

    routes = _read_routes(config, input_device_id, output_device_id, warnings)

    chains: Dict[ChannelKey, List[ChannelProcessingFilter]] = {}
    seen_types: Dict[ChannelKey, List[str]] = {}
    if routing_idx >= 0:
        for step_idx, step in enumerate(config.pipeline):
            if not isinstance(step, FilterStep) or step_idx == routing_idx:
                continue
            side: ChannelSide = "input" if step_idx < routing_idx else "output"
            definition = config.filters.get(step.name)
            if definition is None:
                warnings.append(SignalFlowWarning(
                    code=SignalFlowWarningCode.UNRESOLVED_FILTER,
                    message=f"Filter {step.name!r} is referenced in the pipeline but not defined.",
                    path=f"pipeline[{step_idx}]",
                ))
                continue

            count = channel_counts[side]
            if step.channel is None:
                warnings.append(SignalFlowWarning(
                    code=SignalFlowWarningCode.GLOBAL_FILTER_STEP,
                    message=f"Filter step {step.name!r} applies to all {side} channels.",
                    path=f"pipeline[{step_idx}]",
                ))
                for ch in range(count):
                    seen_types.setdefault((side, ch), []).append(definition.type)
                continue

            if not 0 <= step.channel < count:
                warnings.append(SignalFlowWarning(
                    code=SignalFlowWarningCode.FILTER_OUT_OF_RANGE,
                    message=f"Filter step {step.name!r} targets {side} channel {step.channel} outside range.",
                    path=f"pipeline[{step_idx}]",
                ))
                continue

            key = (side, step.channel)
            chains.setdefault(key, []).append(ChannelProcessingFilter(name=step.name, config=definition))
            seen_types.setdefault(key, []).append(definition.type)

    names = _channel_names(config)

    def build_nodes(side: ChannelSide, device_id: str) -> List[ChannelNode]:
        nodes = []
        for ch in range(channel_counts[side]):
            key = port_key_from_parts(side, device_id, ch)
            nodes.append(ChannelNode(
                side=side,
                deviceId=device_id,
                channelIndex=ch,
                label=names.get(key, default_channel_label(side, ch)),
                processing=ChannelProcessing(filters=chains.get((side, ch), [])),
                processingSummary=summarize_filter_types(seen_types.get((side, ch), [])),
            ))
        return nodes

    model = SignalFlowModel(
        inputGroups=[DeviceGroup(id=input_device_id, label=device_label("input", config))],
        outputGroups=[DeviceGroup(id=output_device_id, label=device_label("output", config))],
        inputs=build_nodes("input", input_device_id),
        outputs=build_nodes("output", output_device_id),
        routes=routes,
    )
    representable = routing_idx >= 0 and not has_other_mixers
    logger.debug(
        "from_config: %s inputs, %s outputs, %s routes, %s warnings",
        len(model.inputs), len(model.outputs), len(routes), len(warnings),
    )
    return FromConfigResult(model=model, representable=representable, warnings=warnings)
