"""
Routing Mixer Service.

Canonicalises the mixer named ``routing`` against the authoritative device
channel counts and patches it into an engine config.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Union

from dspctl.engine_config.models import (
    ROUTING_MIXER_NAME,
    EngineConfig,
    MixerChannels,
    MixerConfig,
    MixerMapping,
    MixerSource,
    MixerStep,
    as_gain,
    as_index,
)

logger = logging.getLogger(__name__)

MixerInput = Union[MixerConfig, Mapping[str, Any]]


def _check_count(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    return value


def _raw_mapping(mixer: MixerInput) -> list:
    if isinstance(mixer, MixerConfig):
        raw: Mapping[str, Any] = mixer.model_dump(by_alias=True)
    elif isinstance(mixer, Mapping):
        raw = mixer
    else:
        raise TypeError(f"mixer must be a MixerConfig or a mapping, got {type(mixer).__name__}")
    entries = raw.get("mapping")
    return list(entries) if isinstance(entries, (list, tuple)) else []


def create_default_routing_mixer(in_channels: int, out_channels: int) -> MixerConfig:
    """One-to-one routing (in n -> out n at 0 dB) for the overlapping channels."""
    in_channels = _check_count("in_channels", in_channels)
    out_channels = _check_count("out_channels", out_channels)
    mapping = [
        MixerMapping(dest=idx, sources=[MixerSource(channel=idx, gain=0.0)])
        for idx in range(min(in_channels, out_channels))
    ]
    return MixerConfig(channels=MixerChannels(in_=in_channels, out=out_channels), mapping=mapping)


def normalize(mixer: MixerInput, in_channels: int, out_channels: int) -> MixerConfig:
    """
    Return the canonical form of ``mixer`` for the given channel counts.

    - entries with a dest outside [0, out_channels) are dropped
    - sources with a channel outside [0, in_channels) are dropped
    - non-finite / non-integral indices are dropped, missing gains become 0
    - a repeated (dest, channel) pair keeps the last occurrence
    - entries left without sources are dropped
    - entries sorted by dest, sources sorted by channel

    ``channels`` of the result is always (in_channels, out_channels); whatever
    the input mixer claims is ignored.
    """
    in_channels = _check_count("in_channels", in_channels)
    out_channels = _check_count("out_channels", out_channels)

    by_dest: Dict[int, Dict[int, MixerSource]] = {}
    dropped = 0

    for entry in _raw_mapping(mixer):
        if not isinstance(entry, Mapping):
            dropped += 1
            continue
        dest = as_index(entry.get("dest"))
        if dest is None or not 0 <= dest < out_channels:
            dropped += 1
            continue

        by_channel = by_dest.setdefault(dest, {})
        raw_sources = entry.get("sources")
        for raw_source in raw_sources if isinstance(raw_sources, (list, tuple)) else []:
            if not isinstance(raw_source, Mapping):
                dropped += 1
                continue
            channel = as_index(raw_source.get("channel"))
            if channel is None or not 0 <= channel < in_channels:
                dropped += 1
                continue
            by_channel[channel] = MixerSource(
                channel=channel,
                gain=as_gain(raw_source.get("gain")),
                inverted=raw_source.get("inverted") is True,
                mute=raw_source.get("mute") is True,
            )

    mapping = [
        MixerMapping(dest=dest, sources=[by_channel[ch] for ch in sorted(by_channel)])
        for dest, by_channel in sorted(by_dest.items())
        if by_channel
    ]
    if dropped:
        logger.debug("Routing mixer normalisation dropped %s malformed entries/sources", dropped)

    return MixerConfig(channels=MixerChannels(in_=in_channels, out=out_channels), mapping=mapping)


def patch_config(config: EngineConfig, mixer: MixerInput) -> EngineConfig:
    """New config with ``mixers.routing`` replaced by the normalised ``mixer``; nothing else changes."""
    normalized = normalize(mixer, config.capture_channels, config.playback_channels)
    mixers = dict(config.mixers)
    mixers[ROUTING_MIXER_NAME] = normalized
    return config.model_copy(update={"mixers": mixers})


def ensure_routing_step(config: EngineConfig) -> EngineConfig:
    """Append a routing mixer step when the pipeline has none. Existing steps are never touched."""
    if config.has_routing_step():
        return config
    logger.debug("Appending %r mixer step to pipeline", ROUTING_MIXER_NAME)
    pipeline = list(config.pipeline)
    pipeline.append(MixerStep(name=ROUTING_MIXER_NAME))
    return config.model_copy(update={"pipeline": pipeline})
