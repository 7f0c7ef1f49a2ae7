from .base import CrawlMode, SourceAdapter
from .registry import available_sources, get_adapter, register_adapter

__all__ = ["CrawlMode", "SourceAdapter", "available_sources", "get_adapter", "register_adapter"]
