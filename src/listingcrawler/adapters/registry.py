from __future__ import annotations

import logging
from importlib import metadata
from typing import Dict, List, Mapping, Optional, Type

from .base import SourceAdapter
from .internshala import InternshalaAdapter
from .naukri import NaukriAdapter
from .unstop import UnstopAdapter


logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "listingcrawler.adapters"

BUILTIN_ADAPTERS: Dict[str, Type[SourceAdapter]] = {
    InternshalaAdapter.name: InternshalaAdapter,
    NaukriAdapter.name: NaukriAdapter,
    UnstopAdapter.name: UnstopAdapter,
}

_registry: Dict[str, Type[SourceAdapter]] = dict(BUILTIN_ADAPTERS)
_discovered = False


def register_adapter(adapter_cls: Type[SourceAdapter], name: Optional[str] = None) -> None:
    _registry[(name or adapter_cls.name).lower()] = adapter_cls


def discover_entry_points(group: str = ENTRY_POINT_GROUP) -> int:
    """Register adapters installed by other packages. Returns how many were added."""
    added = 0
    for ep in metadata.entry_points(group=group):
        try:
            adapter_cls = ep.load()
        except (ImportError, AttributeError) as e:
            logger.warning("could not load adapter plugin %s: %s", ep.name, e)
            continue
        register_adapter(adapter_cls, ep.name)
        added += 1
    return added


def _ensure_discovered() -> None:
    global _discovered
    if not _discovered:
        _discovered = True
        discover_entry_points()


def available_sources() -> List[str]:
    _ensure_discovered()
    return sorted(_registry)


def get_adapter(
    name: str,
    *,
    freshness_days: Optional[int] = None,
    options: Optional[Mapping[str, str]] = None,
) -> SourceAdapter:
    _ensure_discovered()
    key = (name or "").strip().lower()
    if key not in _registry:
        raise ValueError(f"unknown source {name!r}; choose one of {', '.join(sorted(_registry))}")
    return _registry[key](freshness_days=freshness_days, **dict(options or {}))
