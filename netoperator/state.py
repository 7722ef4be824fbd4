"""The State abstraction: one unit of reconciliation work."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any


class SyncState(str, Enum):
    """Sync state of a single State or of a collection of States."""

    READY = "ready"
    NOT_READY = "notReady"
    IGNORE = "ignore"
    RESET = "reset"
    ERROR = "error"


class SyncError(Exception):
    """Raised by a State whose sync failed, carrying the state it ended in."""

    def __init__(self, message: str, status: SyncState | str = SyncState.ERROR) -> None:
        super().__init__(message)
        self.status = SyncState(status)


class State(ABC):
    """A set of resources the system is reconciled towards.

    Concrete states provide ``name`` and ``description`` attributes.
    """

    name: str
    description: str

    @abstractmethod
    def sync(self, custom_resource: Any, info_catalog: Any) -> SyncState:
        """Bring the system closer to the state described by the custom resource.

        Raises SyncError when the sync fails.
        """

    @abstractmethod
    def get_watch_sources(self) -> dict[str, Any]:
        """Return the source kinds to watch, keyed by kind name."""