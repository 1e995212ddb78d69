from __future__ import annotations

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from dspctl.config import runtime_config
from dspctl.engine_config.models import EngineConfig
from dspctl.transport.protocol import (
    Command,
    EngineTransport,
    TransportError,
    extract_wrapped_response,
    format_command,
)

logger = logging.getLogger(__name__)


class EngineClient:
    """Whole-config operations against the engine over an injected transport."""

    def __init__(self, transport: EngineTransport, timeout: Optional[float] = None) -> None:
        self.transport = transport
        self.timeout = timeout if timeout is not None else runtime_config.get_engine_timeout_s()

    def _call(self, command: Command) -> Any:
        name = format_command(command)
        try:
            raw = self.transport.send(command, timeout=self.timeout)
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(f"{name} failed: {exc}") from exc

        response = extract_wrapped_response(raw)
        if response is None:
            raise TransportError(f"{name}: unrecognised response {raw!r}")
        if response.command_name != name:
            logger.warning("Sent %s but received a %s response", name, response.command_name)
        if not response.ok:
            raise TransportError(f"{name} rejected by engine: {response.error}")
        return response.value

    def get_config(self) -> EngineConfig:
        value = self._call("GetConfigJson")
        try:
            data = json.loads(value) if isinstance(value, str) else value
            return EngineConfig.model_validate(data)
        except (ValueError, ValidationError) as exc:
            raise TransportError(f"GetConfigJson returned an invalid config: {exc}") from exc

    def set_config(self, config: EngineConfig) -> None:
        logger.info("Pushing config: %s pipeline steps, %s mixers", len(config.pipeline), len(config.mixers))
        self._call({"SetConfigJson": config.to_json()})

    def reload(self) -> None:
        self._call("Reload")
