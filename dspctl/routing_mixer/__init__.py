"""Routing mixer normalisation."""

from dspctl.routing_mixer.service import (  # noqa: F401
    create_default_routing_mixer,
    ensure_routing_step,
    normalize,
    patch_config,
)
