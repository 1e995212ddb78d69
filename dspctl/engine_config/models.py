"""
Engine Config Models.

Wire shape of the DSP engine configuration: devices, named mixers, named
filters and the ordered processing pipeline. Sections and fields this package
does not own are kept as pydantic extras so they round-trip untouched.
"""

from __future__ import annotations

import json
import math
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer

ROUTING_MIXER_NAME = "routing"


def as_index(value: Any) -> Optional[int]:
    """Channel index or None for anything that is not a finite whole number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and (not math.isfinite(value) or not value.is_integer()):
        return None
    return int(value)


def as_gain(value: Any) -> float:
    """Finite gain in dB; null, non-numeric and non-finite values read as 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    gain = float(value)
    return gain if math.isfinite(gain) else 0.0


class DeviceConfig(BaseModel):
    """Capture or playback device descriptor."""
    model_config = ConfigDict(extra="allow")

    type: str
    channels: int = Field(..., ge=0)
    device: Optional[str] = None
    format: Optional[str] = None


class DevicesConfig(BaseModel):
    # samplerate, chunksize, resampler settings etc. travel as extras
    model_config = ConfigDict(extra="allow")

    capture: DeviceConfig
    playback: DeviceConfig


class MixerChannels(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    in_: int = Field(..., alias="in", ge=0)
    out: int = Field(..., ge=0)


class MixerSource(BaseModel):
    """
    One input channel feeding a mixer destination.

    ``inverted`` and ``mute`` are plain flags in memory; on the wire they are
    only present when set.
    """
    channel: int
    gain: float = 0.0
    inverted: bool = False
    mute: bool = False

    @model_serializer(mode="wrap")
    def _omit_unset_flags(self, handler):
        data = handler(self)
        if not self.inverted:
            data.pop("inverted", None)
        if not self.mute:
            data.pop("mute", None)
        return data


class MixerMapping(BaseModel):
    dest: int
    sources: List[MixerSource] = Field(default_factory=list)


class MixerConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    channels: MixerChannels
    mapping: List[MixerMapping] = Field(default_factory=list)
    description: Optional[str] = None

    @field_validator("mapping", mode="before")
    @classmethod
    def _drop_malformed_entries(cls, value: Any) -> Any:
        # JSON writes NaN as null; range checks belong to normalize()
        if not isinstance(value, (list, tuple)):
            return []
        entries = []
        for entry in value:
            if isinstance(entry, MixerMapping):
                entries.append(entry)
                continue
            if not isinstance(entry, Mapping):
                continue
            dest = as_index(entry.get("dest"))
            if dest is None:
                continue
            raw_sources = entry.get("sources")
            sources = []
            for source in raw_sources if isinstance(raw_sources, (list, tuple)) else []:
                if isinstance(source, MixerSource):
                    sources.append(source)
                    continue
                if not isinstance(source, Mapping):
                    continue
                channel = as_index(source.get("channel"))
                if channel is None:
                    continue
                sources.append({
                    "channel": channel,
                    "gain": as_gain(source.get("gain")),
                    "inverted": source.get("inverted") is True,
                    "mute": source.get("mute") is True,
                })
            entries.append({"dest": dest, "sources": sources})
        return entries


class FilterConfig(BaseModel):
    """Opaque filter definition, discriminated by ``type``. Parameters are never interpreted here."""
    model_config = ConfigDict(extra="allow")

    type: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    description: Optional[str] = None


class MixerStep(BaseModel):
    type: Literal["Mixer"] = "Mixer"
    name: str
    description: Optional[str] = None
    bypassed: Optional[bool] = None


class FilterStep(BaseModel):
    type: Literal["Filter"] = "Filter"
    name: str
    channel: Optional[int] = None  # None applies the filter to every channel
    description: Optional[str] = None
    bypassed: Optional[bool] = None


class ProcessorStep(BaseModel):
    type: Literal["Processor"] = "Processor"
    name: str
    description: Optional[str] = None
    bypassed: Optional[bool] = None


PipelineStep = Annotated[Union[MixerStep, FilterStep, ProcessorStep], Field(discriminator="type")]


class EngineConfig(BaseModel):
    """Complete engine configuration as exchanged with the engine."""
    model_config = ConfigDict(extra="allow")

    devices: DevicesConfig
    mixers: Dict[str, MixerConfig] = Field(default_factory=dict)
    filters: Dict[str, FilterConfig] = Field(default_factory=dict)
    pipeline: List[PipelineStep] = Field(default_factory=list)

    @property
    def capture_channels(self) -> int:
        return self.devices.capture.channels

    @property
    def playback_channels(self) -> int:
        return self.devices.playback.channels

    def routing_step_index(self) -> int:
        """Index of the first routing mixer step, or -1."""
        for idx, step in enumerate(self.pipeline):
            if isinstance(step, MixerStep) and step.name == ROUTING_MIXER_NAME:
                return idx
        return -1

    def has_routing_step(self) -> bool:
        return self.routing_step_index() >= 0

    def to_wire(self) -> Dict[str, Any]:
        """Dict in engine JSON shape (aliases applied, unset optionals dropped)."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return json.dumps(self.to_wire())

    @classmethod
    def from_wire(cls, data: Union[str, Dict[str, Any]]) -> "EngineConfig":
        if isinstance(data, str):
            return cls.model_validate_json(data)
        return cls.model_validate(data)
