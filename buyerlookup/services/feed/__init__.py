"""Retrieval of the upstream sales export."""

from .client import ExportFeedClient
from .config import FeedConfig, resolve_config
from .models import FeedPayload, FeedSource

__all__ = [
    "ExportFeedClient",
    "FeedConfig",
    "FeedPayload",
    "FeedSource",
    "resolve_config",
]
