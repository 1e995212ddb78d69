from dspctl.engine_config.models import EngineConfig
from dspctl.signal_flow.from_config import from_config
from dspctl.signal_flow.models import RouteEndpoint, SignalFlowWarningCode
from dspctl.signal_flow.to_config import to_config


def _config(**overrides) -> EngineConfig:
    data = {
        "devices": {
            "samplerate": 48000,
            "chunksize": 1024,
            "capture": {"type": "Alsa", "channels": 2, "device": "hw:0"},
            "playback": {"type": "Alsa", "channels": 4, "device": "hw:1"},
        },
        "mixers": {
            "routing": {
                "channels": {"in": 2, "out": 4},
                "mapping": [
                    {"dest": 0, "sources": [{"channel": 0, "gain": 0}]},
                    {"dest": 3, "sources": [{"channel": 1, "gain": -6, "inverted": True}]},
                ],
            },
        },
        "filters": {
            "hp": {"type": "Biquad", "parameters": {"type": "Highpass", "freq": 80, "q": 0.7}},
            "trim": {"type": "Gain", "parameters": {"gain": -3}},
            "lim": {"type": "Compressor", "parameters": {}},
        },
        "pipeline": [
            {"type": "Filter", "name": "hp", "channel": 0},
            {"type": "Filter", "name": "trim", "channel": 0},
            {"type": "Mixer", "name": "routing"},
            {"type": "Filter", "name": "lim", "channel": 3},
        ],
    }
    data.update(overrides)
    return EngineConfig.model_validate(data)


def test_builds_nodes_for_every_device_channel():
    result = from_config(_config())

    assert result.representable is True
    assert result.warnings == []
    model = result.model
    assert [g.id for g in model.inputGroups] == ["in:hw0"]
    assert [g.id for g in model.outputGroups] == ["out:hw1"]
    assert [n.channelIndex for n in model.inputs] == [0, 1]
    assert [n.label for n in model.outputs] == ["Out 1", "Out 2", "Out 3", "Out 4"]
    assert {n.deviceId for n in model.outputs} == {"out:hw1"}


def test_reads_routes_from_routing_mixer():
    routes = from_config(_config()).model.routes

    assert [(r.from_.channelIndex, r.to.channelIndex) for r in routes] == [(0, 0), (1, 3)]
    assert routes[1].gain == -6
    assert routes[1].inverted is True
    assert routes[1].mute is False
    assert routes[1].from_ == RouteEndpoint(deviceId="in:hw0", channelIndex=1)


def test_places_filter_steps_by_position_around_routing_step():
    model = from_config(_config()).model

    in0 = model.inputs[0]
    assert [f.name for f in in0.processing.filters] == ["hp", "trim"]
    assert in0.processingSummary.biquadCount == 1
    assert in0.processingSummary.hasGain is True
    assert model.inputs[1].processing.filters == []

    out3 = model.outputs[3]
    assert [f.name for f in out3.processing.filters] == ["lim"]
    assert out3.processing.filters[0].config.type == "Compressor"
    assert out3.processingSummary.hasCompressor is True


def test_custom_channel_names_override_default_labels():
    config = _config(ui={"signalFlow": {"channelNames": {"input:in:hw0:1": "Turntable R", "output:out:hw1:0": 7}}})
    model = from_config(config).model

    assert model.inputs[1].label == "Turntable R"
    assert model.inputs[0].label == "In 1"
    assert model.outputs[0].label == "Out 1"


def test_missing_routing_step_and_mixer_definition():
    config = _config(mixers={}, pipeline=[{"type": "Filter", "name": "hp", "channel": 0}])
    result = from_config(config)

    assert result.representable is False
    assert result.has_warning(SignalFlowWarningCode.MISSING_ROUTING_MIXER_STEP)
    assert result.has_warning(SignalFlowWarningCode.MISSING_ROUTING_MIXER_CONFIG)
    assert result.model.routes == []
    assert all(not n.processing.filters for n in result.model.inputs)


def test_other_mixers_in_pipeline_are_not_canonical():
    config = _config(
        mixers={
            "routing": {"channels": {"in": 2, "out": 4}, "mapping": []},
            "downmix": {"channels": {"in": 4, "out": 2}, "mapping": []},
        },
        pipeline=[{"type": "Mixer", "name": "routing"}, {"type": "Mixer", "name": "downmix"}],
    )
    result = from_config(config)

    assert result.representable is False
    assert result.has_warning(SignalFlowWarningCode.NON_CANONICAL_MIXERS)


def test_problem_steps_are_reported_not_placed():
    config = _config(pipeline=[
        {"type": "Filter", "name": "ghost", "channel": 0},
        {"type": "Filter", "name": "hp", "channel": 9},
        {"type": "Filter", "name": "trim"},
        {"type": "Mixer", "name": "routing"},
    ])
    result = from_config(config)

    by_code = {w.code: w.path for w in result.warnings}
    assert by_code == {
        SignalFlowWarningCode.UNRESOLVED_FILTER: "pipeline[0]",
        SignalFlowWarningCode.FILTER_OUT_OF_RANGE: "pipeline[1]",
        SignalFlowWarningCode.GLOBAL_FILTER_STEP: "pipeline[2]",
    }
    assert result.representable is True
    assert all(not n.processing.filters for n in result.model.inputs)
    # global steps still show on the badges
    assert all(n.processingSummary.hasGain for n in result.model.inputs)


def test_out_of_range_routes_are_reported():
    config = _config(mixers={"routing": {"channels": {"in": 8, "out": 8}, "mapping": [
        {"dest": 0, "sources": [{"channel": 5, "gain": 0}, {"channel": 1, "gain": 0}]},
        {"dest": 6, "sources": [{"channel": 0, "gain": 0}]},
    ]}})
    result = from_config(config)

    assert [(r.from_.channelIndex, r.to.channelIndex) for r in result.model.routes] == [(1, 0)]
    paths = [w.path for w in result.warnings if w.code == SignalFlowWarningCode.ROUTE_OUT_OF_RANGE]
    assert paths == ["mixers.routing.mapping[0].sources[0]", "mixers.routing.mapping[1].sources[0]"]


def test_device_labels_fall_back_to_type_only_when_device_missing():
    config = _config(devices={
        "samplerate": 44100,
        "chunksize": 512,
        "capture": {"type": "CoreAudio", "channels": 1},
        "playback": {"type": "Alsa", "channels": 1, "device": ""},
    })
    model = from_config(config).model

    assert model.inputGroups[0].id == "in:coreaudio"
    assert model.inputGroups[0].label == "CoreAudio"
    # an empty device name is kept, not replaced by the type
    assert model.outputGroups[0].label == ""
    assert model.outputGroups[0].id == "out:default"


def test_round_trip_through_to_config_is_stable():
    config = _config()
    view = from_config(config)

    result = to_config(config, view.model)

    assert result.representable is True
    assert result.warnings == []
    assert result.config.to_wire() == config.to_wire()
    assert from_config(result.config).model == view.model
