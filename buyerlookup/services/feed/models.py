"""Payload types exchanged with the export feed."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(slots=True, frozen=True)
class FeedPayload:
    """Raw export body as returned by the retrieval endpoint."""

    content: bytes
    status_code: int
    url: str
    fetched_at: datetime

    def __len__(self) -> int:
        return len(self.content)


class FeedSource(Protocol):
    """Anything able to hand back the raw export payload."""

    def fetch(self) -> FeedPayload:
        """Retrieve the payload or raise ``FetchError``."""


__all__ = ["FeedPayload", "FeedSource"]
