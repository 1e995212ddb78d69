"""
Engine command protocol.

Commands are either a bare name (``"GetConfigJson"``) or a single-key object
(``{"SetConfigJson": "<json>"}``). Responses come back as a single-key object
named after the command; the payload shape varies between engine versions
and proxies, so ``extract_wrapped_response`` accepts all of them.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Union

Command = Union[str, Dict[str, Any]]

_OK_KEYS = ("Ok", "ok")
_ERROR_KEYS = ("Err", "Error", "err", "error")


class TransportError(RuntimeError):
    """Raised when the engine cannot be reached or rejects a command."""


class EngineTransport(Protocol):
    def send(self, command: Command, timeout: Optional[float] = None) -> Any:
        """Send one command and return the decoded JSON response."""
        ...


@dataclass(frozen=True)
class WrappedResponse:
    command_name: str
    ok: bool
    value: Any = None
    error: Any = None


def format_command(command: Any) -> str:
    """Command name for logs and response matching."""
    if isinstance(command, str):
        return command
    if not isinstance(command, dict) or not command:
        return "Unknown"
    return next(iter(command))


def extract_wrapped_response(parsed: Any) -> Optional[WrappedResponse]:
    """Decode ``{"<Command>": <payload>}``; None when the shape is not recognised."""
    if not isinstance(parsed, dict) or len(parsed) != 1:
        return None

    command_name, inner = next(iter(parsed.items()))
    if not isinstance(inner, dict):
        # bare value, e.g. {"GetConfigJson": "{...}"} or {"SetConfigJson": "Ok"}
        return WrappedResponse(command_name=command_name, ok=True, value=inner)

    for key in _OK_KEYS:
        if key in inner:
            return WrappedResponse(command_name=command_name, ok=True, value=inner[key])
    for key in _ERROR_KEYS:
        if key in inner:
            return WrappedResponse(command_name=command_name, ok=False, error=inner[key])

    result = inner.get("result")
    if result == "Ok":
        return WrappedResponse(command_name=command_name, ok=True, value=inner.get("value"))
    if result == "Error":
        return WrappedResponse(command_name=command_name, ok=False, error=inner.get("value"))

    # legacy {"value": ...} wrapper without a result field
    if "value" in inner:
        return WrappedResponse(command_name=command_name, ok=True, value=inner["value"])
    return None
