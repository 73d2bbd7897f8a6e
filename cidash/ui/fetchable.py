"""Loading-state tracker for asynchronously sourced values."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class LoadState(Enum):
    IDLE = "idle"        # never fetched
    LOCAL = "local"      # from a fast local source
    PARTIAL = "partial"  # partial remote data (e.g. first page)
    READY = "ready"      # fully loaded
    ERROR = "error"      # failed, no prior data


_DATA_STATES = (LoadState.LOCAL, LoadState.PARTIAL, LoadState.READY)


@dataclass
class Fetchable(Generic[T]):
    """A value plus its loading lifecycle.

    A failed refresh never discards data already held: ``set_error`` only
    moves to ``LoadState.ERROR`` when nothing usable was ever loaded.
    """

    data: Optional[T] = None
    state: LoadState = LoadState.IDLE
    fetching: bool = False
    error: Optional[Exception] = None
    fetched_at: Optional[datetime] = None

    def mark_fetching(self) -> None:
        self.fetching = True

    def _set(self, data: T, state: LoadState) -> None:
        self.data = data
        self.state = state
        self.fetching = False
        self.error = None
        self.fetched_at = datetime.now()

    def set_local(self, data: T) -> None:
        self._set(data, LoadState.LOCAL)

    def set_partial(self, data: T) -> None:
        self._set(data, LoadState.PARTIAL)

    def set_data(self, data: T) -> None:
        self._set(data, LoadState.READY)

    def set_error(self, error: Exception) -> None:
        self.error = error
        self.fetching = False
        if not self.has_data():
            self.state = LoadState.ERROR

    def reset(self) -> None:
        """Return to IDLE in place, dropping data and any error."""
        self.data = None
        self.state = LoadState.IDLE
        self.fetching = False
        self.error = None
        self.fetched_at = None

    def has_data(self) -> bool:
        return self.state in _DATA_STATES

    def is_ready(self) -> bool:
        return self.state == LoadState.READY

    def is_fetching(self) -> bool:
        return self.fetching
