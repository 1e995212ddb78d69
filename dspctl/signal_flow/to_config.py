"""
Signal flow -> engine config synthesis.

Folds a SignalFlowModel into a new EngineConfig. The pipeline is rebuilt in
signal path order:

    input filter steps -> routing mixer -> output filter steps

Everything the model does not own (other mixers, unreferenced filter
definitions, device descriptors, unknown sections) is copied through. Custom
channel labels are kept under ``ui.signalFlow.channelNames``. Problems with
the model never raise; they come back as warnings and clear ``representable``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

from dspctl.engine_config.models import (
    ROUTING_MIXER_NAME,
    EngineConfig,
    FilterConfig,
    FilterStep,
    MixerStep,
)
from dspctl.routing_mixer.service import patch_config
from dspctl.signal_flow.endpoints import default_channel_label, device_ids_for_config, node_port_key
from dspctl.signal_flow.models import (
    ChannelNode,
    RouteEdge,
    RouteEndpoint,
    SignalFlowModel,
    SignalFlowWarning,
    SignalFlowWarningCode,
    ToConfigResult,
)

logger = logging.getLogger(__name__)

# warnings that mean the model could not be expressed without loss
_LOSSY_CODES = frozenset({
    SignalFlowWarningCode.MISSING_ROUTING_MIXER_STEP,
    SignalFlowWarningCode.UNREPRESENTABLE_ROUTE,
    SignalFlowWarningCode.UNREPRESENTABLE_FILTER,
})


def _resolves(endpoint: RouteEndpoint, device_id: str, channel_count: int) -> bool:
    return endpoint.deviceId == device_id and 0 <= endpoint.channelIndex < channel_count


def _build_routing_mapping(
    routes: List[RouteEdge],
    input_device_id: str,
    output_device_id: str,
    in_channels: int,
    out_channels: int,
    warnings: List[SignalFlowWarning],
) -> Dict[str, Any]:
    """Raw (not yet normalised) routing mixer mapping from the model's routes."""
    sources_by_dest: Dict[int, List[Dict[str, Any]]] = {}
    for idx, route in enumerate(routes):
        if not (
            _resolves(route.from_, input_device_id, in_channels)
            and _resolves(route.to, output_device_id, out_channels)
        ):
            warnings.append(SignalFlowWarning(
                code=SignalFlowWarningCode.UNREPRESENTABLE_ROUTE,
                message=(
                    f"Route {route.from_.deviceId}:{route.from_.channelIndex} -> "
                    f"{route.to.deviceId}:{route.to.channelIndex} does not resolve to a configured "
                    f"device channel; it was skipped."
                ),
                path=f"routes[{idx}]",
            ))
            continue
        sources_by_dest.setdefault(route.to.channelIndex, []).append({
            "channel": route.from_.channelIndex,
            "gain": route.gain,
            "inverted": route.inverted,
            "mute": route.mute,
        })
    return {"mapping": [{"dest": dest, "sources": sources} for dest, sources in sources_by_dest.items()]}


def _filter_steps(
    nodes: List[ChannelNode],
    side: str,
    device_id: str,
    channel_count: int,
    filters: Dict[str, FilterConfig],
    descriptions: Dict[str, str],
    warnings: List[SignalFlowWarning],
) -> List[FilterStep]:
    """Pipeline steps for one side, in node order then chain order. Writes definitions into ``filters``."""
    field = "inputs" if side == "input" else "outputs"
    steps: List[FilterStep] = []
    for node_idx, node in enumerate(nodes):
        chain = node.processing.filters
        if not chain:
            continue
        if node.deviceId != device_id or not 0 <= node.channelIndex < channel_count:
            warnings.append(SignalFlowWarning(
                code=SignalFlowWarningCode.UNREPRESENTABLE_FILTER,
                message=(
                    f"{side.capitalize()} channel {node.deviceId}:{node.channelIndex} does not resolve to a "
                    f"configured device channel; its {len(chain)} filter(s) were skipped."
                ),
                path=f"{field}[{node_idx}]",
            ))
            continue
        for entry in chain:
            filters[entry.name] = entry.config
            steps.append(FilterStep(
                name=entry.name,
                channel=node.channelIndex,
                description=descriptions.get(entry.name),
            ))
    return steps


def _merged_ui(config: EngineConfig, model: SignalFlowModel) -> Optional[Dict[str, Any]]:
    """
    ``ui`` section with node labels merged into ``signalFlow.channelNames``, or
    None when no name changes. A label equal to the default clears the entry.
    """
    ui = (config.model_extra or {}).get("ui")
    ui = dict(ui) if isinstance(ui, Mapping) else {}
    signal_flow = ui.get("signalFlow")
    signal_flow = dict(signal_flow) if isinstance(signal_flow, Mapping) else {}
    current = signal_flow.get("channelNames")
    current = dict(current) if isinstance(current, Mapping) else {}

    names = dict(current)
    for node in [*model.inputs, *model.outputs]:
        if not node.label:
            continue
        key = node_port_key(node)
        if node.label == default_channel_label(node.side, node.channelIndex):
            names.pop(key, None)
        else:
            names[key] = node.label
    if names == current:
        return None
    signal_flow["channelNames"] = names
    ui["signalFlow"] = signal_flow
    return ui


def _dropped_step_warnings(
    config: EngineConfig,
    routing_step: Optional[MixerStep],
    kept_filters: Set[Tuple[str, int]],
) -> List[SignalFlowWarning]:
    warnings: List[SignalFlowWarning] = []
    for idx, step in enumerate(config.pipeline):
        if step is routing_step:
            continue
        if isinstance(step, FilterStep) and (step.name, step.channel) in kept_filters:
            continue
        warnings.append(SignalFlowWarning(
            code=SignalFlowWarningCode.DROPPED_PIPELINE_STEP,
            message=f"{step.type} step {step.name!r} has no counterpart in the signal flow and was removed.",
            path=f"pipeline[{idx}]",
        ))
    return warnings


def to_config(
    existing_config: Union[EngineConfig, Mapping[str, Any]],
    model: Union[SignalFlowModel, Mapping[str, Any]],
) -> ToConfigResult:
    """Synthesize a new engine config from ``model`` on top of ``existing_config``."""
    if not isinstance(existing_config, EngineConfig):
        existing_config = EngineConfig.model_validate(existing_config)
    if not isinstance(model, SignalFlowModel):
        model = SignalFlowModel.model_validate(model)

    warnings: List[SignalFlowWarning] = []
    in_channels = existing_config.capture_channels
    out_channels = existing_config.playback_channels
    input_device_id, output_device_id = device_ids_for_config(existing_config)

    raw_mixer = _build_routing_mapping(
        model.routes, input_device_id, output_device_id, in_channels, out_channels, warnings,
    )
    patched = patch_config(existing_config, raw_mixer)

    routing_idx = existing_config.routing_step_index()
    routing_step = existing_config.pipeline[routing_idx] if routing_idx >= 0 else None
    if routing_step is None:
        warnings.append(SignalFlowWarning(
            code=SignalFlowWarningCode.MISSING_ROUTING_MIXER_STEP,
            message=(
                f"Pipeline has no {ROUTING_MIXER_NAME!r} mixer step; routing was written to the mixer "
                f"definition but is inactive until the step is added."
            ),
            path="pipeline",
        ))

    descriptions = {
        step.name: step.description
        for step in existing_config.pipeline
        if isinstance(step, FilterStep) and step.description
    }
    filters = dict(existing_config.filters)
    input_steps = _filter_steps(
        model.inputs, "input", input_device_id, in_channels, filters, descriptions, warnings,
    )
    output_steps = _filter_steps(
        model.outputs, "output", output_device_id, out_channels, filters, descriptions, warnings,
    )

    pipeline = [*input_steps, *([routing_step] if routing_step is not None else []), *output_steps]
    kept_filters = {(step.name, step.channel) for step in [*input_steps, *output_steps]}
    warnings.extend(_dropped_step_warnings(existing_config, routing_step, kept_filters))

    update: Dict[str, Any] = {"filters": filters, "pipeline": pipeline}
    ui = _merged_ui(existing_config, model)
    if ui is not None:
        update["ui"] = ui
    config = patched.model_copy(update=update)
    representable = not any(w.code in _LOSSY_CODES for w in warnings)

    logger.debug(
        "to_config: %s routes, %s pipeline steps, %s warnings",
        len(model.routes), len(pipeline), len(warnings),
    )
    if not representable:
        logger.warning(
            "Signal flow not fully representable: %s",
            ", ".join(sorted({w.code.value for w in warnings if w.code in _LOSSY_CODES})),
        )
    return ToConfigResult(config=config, representable=representable, warnings=warnings)
