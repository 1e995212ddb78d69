from __future__ import annotations

from typing import Iterable, List, Optional, Set, Tuple

from dspctl.engine_config.models import FilterConfig
from dspctl.signal_flow.models import ChannelProcessingFilter, ProcessingSummary

# filter type tag -> ProcessingSummary flag
_SUMMARY_FLAGS = {
    "Delay": "hasDelay",
    "Gain": "hasGain",
    "Conv": "hasConv",
    "Compressor": "hasCompressor",
    "Dither": "hasDither",
    "NoiseGate": "hasNoiseGate",
    "Loudness": "hasLoudness",
}


def summarize_filter_types(filter_types: Iterable[str]) -> ProcessingSummary:
    summary = ProcessingSummary()
    for filter_type in filter_types:
        if filter_type == "Biquad":
            summary.biquadCount += 1
        elif filter_type in _SUMMARY_FLAGS:
            setattr(summary, _SUMMARY_FLAGS[filter_type], True)
    return summary


def processing_summary_from_filters(filters: Iterable[ChannelProcessingFilter]) -> ProcessingSummary:
    return summarize_filter_types(f.config.type for f in filters)


def ensure_unique_name(base: str, taken: Set[str]) -> str:
    """``base`` if free, else the first free ``base-1``, ``base-2``, ..."""
    if base not in taken:
        return base
    attempt = 1
    while f"{base}-{attempt}" in taken:
        attempt += 1
    return f"{base}-{attempt}"


def get_type_block(filters: List[ChannelProcessingFilter], filter_type: str) -> Optional[Tuple[int, int]]:
    """(first, last) index spanned by filters of ``filter_type``, inclusive."""
    indices = [idx for idx, f in enumerate(filters) if f.config.type == filter_type]
    if not indices:
        return None
    return indices[0], indices[-1]


def replace_type_block(
    filters: List[ChannelProcessingFilter],
    filter_type: str,
    replacement: List[ChannelProcessingFilter],
) -> List[ChannelProcessingFilter]:
    """
    Swap the span occupied by ``filter_type`` for ``replacement``, keeping its
    position in the chain. Appends when the chain has no such filters.
    Used to rewrite a whole EQ (Biquad) or DiffEq band set at once.
    """
    block = get_type_block(filters, filter_type)
    if block is None:
        return [*filters, *replacement]
    start, end = block
    return [*filters[:start], *replacement, *filters[end + 1:]]


def upsert_single_filter_of_type(
    filters: List[ChannelProcessingFilter],
    config: FilterConfig,
    name_base: str,
    taken: Optional[Set[str]] = None,
) -> List[ChannelProcessingFilter]:
    """Replace the config of the first filter with the same type, or append a new uniquely named one."""
    for idx, existing in enumerate(filters):
        if existing.config.type == config.type:
            updated = existing.model_copy(update={"config": config})
            return [*filters[:idx], updated, *filters[idx + 1:]]
    names = set(taken or ()) | {f.name for f in filters}
    return [*filters, ChannelProcessingFilter(name=ensure_unique_name(name_base, names), config=config)]


def remove_first_filter_of_type(filters: List[ChannelProcessingFilter], filter_type: str) -> List[ChannelProcessingFilter]:
    for idx, existing in enumerate(filters):
        if existing.config.type == filter_type:
            return [*filters[:idx], *filters[idx + 1:]]
    return list(filters)
