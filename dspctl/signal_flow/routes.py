from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from dspctl.common.error_envelope import engine_unavailable_error
from dspctl.config import runtime_config
from dspctl.engine_config.models import EngineConfig, MixerConfig
from dspctl.routing_mixer.service import ensure_routing_step, normalize
from dspctl.signal_flow.from_config import from_config
from dspctl.signal_flow.models import FromConfigResult, SignalFlowModel, ToConfigResult
from dspctl.signal_flow.service import get_signal_flow_service
from dspctl.signal_flow.to_config import to_config
from dspctl.transport.protocol import TransportError

router = APIRouter(prefix="/signal-flow", tags=["signal_flow"])


class ToConfigRequest(BaseModel):
    config: EngineConfig
    model: SignalFlowModel


class NormalizeRequest(BaseModel):
    # unvalidated; normalize() drops malformed entries
    mixer: Dict[str, Any] = Field(default_factory=dict)
    inChannels: int = Field(..., ge=0)
    outChannels: int = Field(..., ge=0)


class CommitRequest(BaseModel):
    model: SignalFlowModel
    activate_routing: Optional[bool] = None


@router.post("/to-config", response_model=ToConfigResult, response_model_exclude_none=True)
def translate_to_config(req: ToConfigRequest):
    return to_config(req.config, req.model)


@router.post("/from-config", response_model=FromConfigResult, response_model_exclude_none=True)
def translate_from_config(config: EngineConfig):
    return from_config(config)


@router.post("/routing/normalize", response_model=MixerConfig, response_model_exclude_none=True)
def normalize_routing_mixer(req: NormalizeRequest):
    return normalize(req.mixer, req.inChannels, req.outChannels)


@router.post("/routing/ensure-step", response_model=EngineConfig, response_model_exclude_none=True)
def ensure_routing_mixer_step(config: EngineConfig):
    return ensure_routing_step(config)


@router.get("", response_model=FromConfigResult, response_model_exclude_none=True)
def load_signal_flow():
    # needs an engine transport, see create_app(transport=...)
    try:
        return get_signal_flow_service().load()
    except TransportError as exc:
        engine_unavailable_error("signal_flow", exc)


@router.put("", response_model=ToConfigResult, response_model_exclude_none=True)
def commit_signal_flow(req: CommitRequest):
    activate = req.activate_routing
    if activate is None:
        activate = runtime_config.auto_activate_routing()
    try:
        return get_signal_flow_service().commit(req.model, activate_routing=activate)
    except TransportError as exc:
        engine_unavailable_error("signal_flow", exc)


@router.get("/runtime-config")
def get_runtime_config() -> Dict[str, Any]:
    return runtime_config.config_snapshot()
