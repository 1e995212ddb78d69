from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from dspctl.engine_config.models import (
    ROUTING_MIXER_NAME,
    DeviceConfig,
    DevicesConfig,
    EngineConfig,
    MixerStep,
)
from dspctl.routing_mixer.service import create_default_routing_mixer


class MinimalConfigOptions(BaseModel):
    capture_device: str
    capture_backend: str
    capture_channels: int = Field(..., ge=1)
    capture_format: Optional[str] = None
    playback_device: str
    playback_backend: str
    playback_channels: int = Field(..., ge=1)
    playback_format: Optional[str] = None
    samplerate: int = 48000
    chunksize: int = 1024


def create_minimal_config(options: MinimalConfigOptions) -> EngineConfig:
    """Fresh config with one-to-one routing so audio passes straight through from the start."""
    devices = DevicesConfig(
        samplerate=options.samplerate,
        chunksize=options.chunksize,
        capture=DeviceConfig(
            type=options.capture_backend,
            channels=options.capture_channels,
            device=options.capture_device,
            format=options.capture_format,
        ),
        playback=DeviceConfig(
            type=options.playback_backend,
            channels=options.playback_channels,
            device=options.playback_device,
            format=options.playback_format,
        ),
    )
    return EngineConfig(
        devices=devices,
        mixers={
            ROUTING_MIXER_NAME: create_default_routing_mixer(options.capture_channels, options.playback_channels),
        },
        pipeline=[MixerStep(name=ROUTING_MIXER_NAME)],
    )
