"""Runtime configuration helpers for the dspctl engines."""
from __future__ import annotations

import logging
import math
import os
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_ENGINE_TIMEOUT_S = 5.0
_TRUTHY = {"1", "true", "yes", "on"}


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(name, default)


def get_env() -> Optional[str]:
    return _get_env("DSPCTL_ENV") or _get_env("ENV")


def get_engine_timeout_s() -> float:
    """Per-command timeout handed to the engine transport."""
    raw = _get_env("DSPCTL_ENGINE_TIMEOUT_S")
    if not raw:
        return DEFAULT_ENGINE_TIMEOUT_S
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric DSPCTL_ENGINE_TIMEOUT_S=%r", raw)
        return DEFAULT_ENGINE_TIMEOUT_S
    if not math.isfinite(value) or value <= 0:
        logger.warning("Ignoring out-of-range DSPCTL_ENGINE_TIMEOUT_S=%r", raw)
        return DEFAULT_ENGINE_TIMEOUT_S
    return value


def auto_activate_routing() -> bool:
    """Whether commits add the routing mixer step when the pipeline lacks it."""
    return (_get_env("DSPCTL_AUTO_ACTIVATE_ROUTING") or "").strip().lower() in _TRUTHY


def config_snapshot() -> dict:
    return {
        "env": get_env(),
        "engine_timeout_s": get_engine_timeout_s(),
        "auto_activate_routing": auto_activate_routing(),
    }
