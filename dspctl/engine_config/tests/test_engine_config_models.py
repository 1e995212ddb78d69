import json

import pytest
from pydantic import ValidationError

from dspctl.engine_config.factory import MinimalConfigOptions, create_minimal_config
from dspctl.engine_config.models import (
    EngineConfig,
    FilterStep,
    MixerConfig,
    MixerMapping,
    MixerSource,
    MixerStep,
    ProcessorStep,
)

WIRE = {
    "title": "Desk",
    "devices": {
        "samplerate": 96000,
        "chunksize": 2048,
        "enable_rate_adjust": True,
        "capture": {"type": "Alsa", "channels": 2, "device": "hw:Loopback", "format": "S32LE"},
        "playback": {"type": "Alsa", "channels": 4, "device": "hw:DAC"},
    },
    "mixers": {
        "routing": {
            "channels": {"in": 2, "out": 4},
            "mapping": [{"dest": 2, "sources": [{"channel": 1, "gain": -3.0, "mute": True}]}],
        },
    },
    "filters": {
        "hp": {"type": "Biquad", "parameters": {"type": "Highpass", "freq": 80, "q": 0.7}},
    },
    "processors": {"comp": {"type": "Compressor", "parameters": {"channels": 2}}},
    "pipeline": [
        {"type": "Filter", "name": "hp", "channel": 1, "bypassed": False},
        {"type": "Mixer", "name": "routing"},
        {"type": "Processor", "name": "comp"},
    ],
}


def test_wire_round_trip_keeps_unowned_sections():
    config = EngineConfig.from_wire(WIRE)

    assert config.to_wire() == WIRE
    assert EngineConfig.from_wire(config.to_json()).to_wire() == WIRE
    assert config.model_extra["processors"]["comp"]["type"] == "Compressor"


def test_pipeline_steps_are_typed_by_tag():
    config = EngineConfig.from_wire(WIRE)

    assert [type(step) for step in config.pipeline] == [FilterStep, MixerStep, ProcessorStep]
    assert config.routing_step_index() == 1
    assert config.has_routing_step()
    assert (config.capture_channels, config.playback_channels) == (2, 4)


def test_unknown_step_type_is_rejected():
    with pytest.raises(ValidationError):
        EngineConfig.model_validate({**WIRE, "pipeline": [{"type": "Splitter", "name": "x"}]})


def test_negative_channel_count_is_rejected():
    devices = {**WIRE["devices"], "playback": {"type": "Alsa", "channels": -1}}
    with pytest.raises(ValidationError):
        EngineConfig.model_validate({**WIRE, "devices": devices})


def test_routing_step_ignores_other_mixers_and_filters_named_routing():
    config = EngineConfig.model_validate({
        **WIRE,
        "pipeline": [{"type": "Filter", "name": "routing"}, {"type": "Mixer", "name": "downmix"}],
    })
    assert config.routing_step_index() == -1


def test_mixer_source_flags_serialize_only_when_set():
    assert MixerSource(channel=0, gain=1.5).model_dump() == {"channel": 0, "gain": 1.5}
    assert MixerSource(channel=0, inverted=True, mute=True).model_dump() == {
        "channel": 0, "gain": 0.0, "inverted": True, "mute": True,
    }
    assert MixerSource(channel=3, mute=False) == MixerSource(channel=3)


def test_minimal_config_routes_one_to_one():
    config = create_minimal_config(MinimalConfigOptions(
        capture_device="hw:0",
        capture_backend="Alsa",
        capture_channels=2,
        capture_format="S16LE",
        playback_device="hw:1",
        playback_backend="Alsa",
        playback_channels=6,
    ))

    wire = json.loads(config.to_json())
    assert wire["devices"]["samplerate"] == 48000
    assert wire["devices"]["capture"] == {"type": "Alsa", "channels": 2, "device": "hw:0", "format": "S16LE"}
    assert wire["pipeline"] == [{"type": "Mixer", "name": "routing"}]
    assert wire["mixers"]["routing"]["channels"] == {"in": 2, "out": 6}
    assert [m["dest"] for m in wire["mixers"]["routing"]["mapping"]] == [0, 1]


def test_minimal_config_requires_channels():
    with pytest.raises(ValidationError):
        MinimalConfigOptions(
            capture_device="hw:0",
            capture_backend="Alsa",
            capture_channels=0,
            playback_device="hw:1",
            playback_backend="Alsa",
            playback_channels=2,
        )


def test_mixer_mapping_drops_null_and_non_finite_indices():
    mixer = MixerConfig.model_validate({
        "channels": {"in": 2, "out": 2},
        "mapping": [
            {"dest": None, "sources": [{"channel": 0, "gain": 0}]},
            {"dest": 1.0, "sources": [
                {"channel": float("nan"), "gain": 0},
                {"channel": 1, "gain": float("inf"), "mute": None},
                "garbage",
            ]},
            {"dest": 7, "sources": None},
        ],
    })

    assert mixer.mapping == [
        MixerMapping(dest=1, sources=[MixerSource(channel=1, gain=0)]),
        MixerMapping(dest=7, sources=[]),
    ]
