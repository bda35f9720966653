"""In-memory holder for the current export snapshot."""

from __future__ import annotations

import threading
from datetime import datetime

from .models import Dataset


class DatasetStore:
    """Owns exactly one current :class:`Dataset`, swapped wholesale on refresh."""

    def __init__(self, initial: Dataset | None = None) -> None:
        self._lock = threading.Lock()
        self._dataset = initial
        self._generation = 0 if initial is None else 1

    def current(self) -> Dataset | None:
        """Return the current snapshot, or ``None`` when nothing was loaded yet."""

        with self._lock:
            return self._dataset

    def replace(self, dataset: Dataset) -> Dataset | None:
        """Install ``dataset`` as current and return the previous snapshot."""

        if not isinstance(dataset, Dataset):
            raise TypeError(f"expected Dataset, got {type(dataset).__name__}")
        with self._lock:
            previous = self._dataset
            self._dataset = dataset
            self._generation += 1
        return previous

    @property
    def captured_at(self) -> datetime | None:
        dataset = self.current()
        return None if dataset is None else dataset.captured_at

    @property
    def generation(self) -> int:
        """Number of snapshots installed so far."""

        with self._lock:
            return self._generation

    @property
    def is_loaded(self) -> bool:
        return self.current() is not None


__all__ = ["DatasetStore"]
