"""Runs a collection of states in order and aggregates their results."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .state import State, SyncError, SyncState

log = logging.getLogger(__name__)


@dataclass
class StateResult:
    """The outcome of syncing one state."""

    state_name: str
    status: SyncState
    error: Exception | None = None


@dataclass
class Results:
    """The outcome of syncing all states; status is READY only if none lags."""

    status: SyncState
    states_status: list[StateResult] = field(default_factory=list)


class StateManager:
    """Invokes states in order to bring the system to its desired state."""

    def __init__(self, states: Iterable[State]) -> None:
        self.states = list(states)

    def get_watch_sources(self) -> dict[str, Any]:
        """Merge the watch sources of all states; the first state to name a kind wins."""
        sources: dict[str, Any] = {}
        for state in self.states:
            for name, kind in state.get_watch_sources().items():
                sources.setdefault(name, kind)
        return sources

    def sync_state(self, custom_resource: Any, info_catalog: Any) -> Results:
        """Sync every state and report each outcome along with the overall one."""
        log.info("Syncing system state")
        results = Results(status=SyncState.NOT_READY)
        ready = True

        for state in self.states:
            log.info("Sync State Name=%s Description=%s", state.name, state.description)
            error: Exception | None = None
            try:
                status = SyncState(state.sync(custom_resource, info_catalog))
            except SyncError as exc:
                status, error = exc.status, exc
            except Exception as exc:  # one failing state must not stop the others
                status, error = SyncState.ERROR, exc

            results.states_status.append(StateResult(state.name, status, error))
            if status in (SyncState.NOT_READY, SyncState.ERROR):
                ready = False
            if error is not None:
                log.warning("Error while syncing state %s: %s", state.name, error)

        if ready:
            results.status = SyncState.READY
            log.info("Sync Done for custom resource")
        else:
            log.info("Sync not Done for custom resource")
        return results


@dataclass
class FakeState(State):
    """A state that always reports the same sync state."""

    name: str
    description: str
    sync_state: SyncState
    watch_resources: dict[str, Any] = field(default_factory=dict)

    def sync(self, custom_resource: Any, info_catalog: Any) -> SyncState:
        return self.sync_state

    def get_watch_sources(self) -> dict[str, Any]:
        return self.watch_resources