import json
from typing import Any, Dict, List

import pytest

from dspctl.engine_config.models import EngineConfig, FilterConfig, MixerStep
from dspctl.filters.registry import FilterRegistry
from dspctl.signal_flow.from_config import from_config
from dspctl.signal_flow.graph import add_route, find_node
from dspctl.signal_flow.models import RouteEndpoint, SignalFlowWarningCode
from dspctl.signal_flow.service import SignalFlowService
from dspctl.transport.client import EngineClient
from dspctl.transport.protocol import TransportError


def _config(pipeline=None) -> EngineConfig:
    return EngineConfig.model_validate({
        "devices": {
            "samplerate": 48000,
            "chunksize": 1024,
            "capture": {"type": "Alsa", "channels": 2, "device": "hw:0"},
            "playback": {"type": "Alsa", "channels": 2, "device": "hw:1"},
        },
        "pipeline": [{"type": "Mixer", "name": "routing"}] if pipeline is None else pipeline,
    })


class FakeTransport:
    def __init__(self, config: EngineConfig):
        self.config_json = config.to_json()
        self.sent: List[Any] = []

    def send(self, command, timeout=None) -> Dict[str, Any]:
        self.sent.append(command)
        if command == "GetConfigJson":
            return {"GetConfigJson": {"result": "Ok", "value": self.config_json}}
        if isinstance(command, dict) and "SetConfigJson" in command:
            self.config_json = command["SetConfigJson"]
            return {"SetConfigJson": {"result": "Ok"}}
        return {command: {"result": "Error", "value": "unsupported"}}


class GainHandler:
    type = "Gain"

    def validate(self, config):
        return []

    def serialize(self, config):
        return config.model_dump()

    def get_default(self):
        return FilterConfig(type="Gain", parameters={"gain": 0.0, "inverted": False, "mute": False})

    def get_display_name(self):
        return "Gain"

    def get_summary(self, config):
        return f"{config.parameters.get('gain', 0)} dB"


def _service(config: EngineConfig):
    transport = FakeTransport(config)
    registry = FilterRegistry()
    registry.register(GainHandler())
    return SignalFlowService(client=EngineClient(transport, timeout=1.0), registry=registry), transport


def test_load_returns_view_of_engine_config():
    service, transport = _service(_config())

    result = service.load()

    assert transport.sent == ["GetConfigJson"]
    assert len(result.model.inputs) == 2
    assert result.has_warning(SignalFlowWarningCode.MISSING_ROUTING_MIXER_CONFIG)


def test_commit_pushes_translated_config():
    service, transport = _service(_config())
    model = service.load().model
    model = add_route(model, RouteEndpoint(deviceId="in:hw0", channelIndex=1), RouteEndpoint(deviceId="out:hw1", channelIndex=0))

    result = service.commit(model)

    assert result.representable is True
    pushed = json.loads(transport.config_json)
    assert pushed["mixers"]["routing"]["mapping"] == [{"dest": 0, "sources": [{"channel": 1, "gain": 0.0}]}]
    assert transport.sent[-1] == {"SetConfigJson": result.config.to_json()}


def test_commit_can_activate_missing_routing_step():
    service, transport = _service(_config(pipeline=[]))
    model = service.load().model

    plain = service.commit(model)
    assert plain.config.pipeline == []

    activated = service.commit(model, activate_routing=True)
    assert activated.config.pipeline == [MixerStep(name="routing")]
    assert activated.has_warning(SignalFlowWarningCode.MISSING_ROUTING_MIXER_STEP)
    assert EngineConfig.from_wire(transport.config_json).has_routing_step()


def test_add_filter_uses_registry_default_and_unique_names():
    service, _ = _service(_config())
    model = from_config(_config()).model
    endpoint = RouteEndpoint(deviceId="in:hw0", channelIndex=0)

    once = service.add_filter(model, "input", endpoint, "Gain")
    twice = service.add_filter(once, "input", endpoint, "Gain")

    node = find_node(twice, "input", endpoint)
    assert [f.name for f in node.processing.filters] == ["in0-gain", "in0-gain-1"]
    assert node.processing.filters[0].config.parameters["gain"] == 0.0
    assert node.processingSummary.hasGain is True
    assert find_node(model, "input", endpoint).processing.filters == []


def test_add_filter_rejects_unknown_type_or_channel():
    service, _ = _service(_config())
    model = from_config(_config()).model

    with pytest.raises(ValueError):
        service.add_filter(model, "input", RouteEndpoint(deviceId="in:hw0", channelIndex=0), "Conv")
    with pytest.raises(ValueError):
        service.add_filter(model, "output", RouteEndpoint(deviceId="out:hw1", channelIndex=9), "Gain")


def test_service_without_client_raises_transport_error():
    with pytest.raises(TransportError):
        SignalFlowService().load()
