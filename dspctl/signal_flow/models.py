"""
Signal Flow Models.

UI-facing view of an engine config: per-channel nodes with their filter
chains, and the drag-created routes between input and output channels.
Field names follow the JSON the front end exchanges.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from dspctl.engine_config.models import EngineConfig, FilterConfig

ChannelSide = Literal["input", "output"]


class DeviceGroup(BaseModel):
    id: str
    label: str


class ProcessingSummary(BaseModel):
    """Badge flags shown on a channel card."""
    biquadCount: int = 0
    hasDelay: bool = False
    hasGain: bool = False
    hasConv: bool = False
    hasCompressor: bool = False
    hasDither: bool = False
    hasNoiseGate: bool = False
    hasLoudness: bool = False


class ChannelProcessingFilter(BaseModel):
    name: str
    config: FilterConfig


class ChannelProcessing(BaseModel):
    filters: List[ChannelProcessingFilter] = Field(default_factory=list)


class ChannelNode(BaseModel):
    side: ChannelSide
    deviceId: str
    channelIndex: int
    label: str = ""
    processing: ChannelProcessing = Field(default_factory=ChannelProcessing)
    processingSummary: ProcessingSummary = Field(default_factory=ProcessingSummary)


class RouteEndpoint(BaseModel):
    """One physical channel on one device."""
    deviceId: str
    channelIndex: int


class RouteEdge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: RouteEndpoint = Field(..., alias="from")
    to: RouteEndpoint
    gain: float = 0.0
    inverted: bool = False
    mute: bool = False


class SignalFlowModel(BaseModel):
    inputGroups: List[DeviceGroup] = Field(default_factory=list)
    outputGroups: List[DeviceGroup] = Field(default_factory=list)
    inputs: List[ChannelNode] = Field(default_factory=list)
    outputs: List[ChannelNode] = Field(default_factory=list)
    routes: List[RouteEdge] = Field(default_factory=list)

    def nodes(self, side: ChannelSide) -> List[ChannelNode]:
        return self.inputs if side == "input" else self.outputs


class SignalFlowWarningCode(str, Enum):
    """Why a model/config pair could not be translated without loss."""
    MISSING_ROUTING_MIXER_STEP = "missing_routing_mixer_step"
    MISSING_ROUTING_MIXER_CONFIG = "missing_routing_mixer_config"
    UNREPRESENTABLE_ROUTE = "unrepresentable_route"
    UNREPRESENTABLE_FILTER = "unrepresentable_filter"
    DROPPED_PIPELINE_STEP = "dropped_pipeline_step"
    NON_CANONICAL_MIXERS = "non_canonical_mixers"
    ROUTE_OUT_OF_RANGE = "route_out_of_range"
    FILTER_OUT_OF_RANGE = "filter_out_of_range"
    UNRESOLVED_FILTER = "unresolved_filter"
    GLOBAL_FILTER_STEP = "global_filter_step"


class SignalFlowWarning(BaseModel):
    code: SignalFlowWarningCode
    message: str
    path: Optional[str] = None


class ToConfigResult(BaseModel):
    config: EngineConfig
    representable: bool
    warnings: List[SignalFlowWarning] = Field(default_factory=list)

    def has_warning(self, code: SignalFlowWarningCode) -> bool:
        return any(w.code == code for w in self.warnings)


class FromConfigResult(BaseModel):
    model: SignalFlowModel
    representable: bool
    warnings: List[SignalFlowWarning] = Field(default_factory=list)

    def has_warning(self, code: SignalFlowWarningCode) -> bool:
        return any(w.code == code for w in self.warnings)
