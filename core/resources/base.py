# =============================================================================
# core/resources/base.py - Resource Base Class
# =============================================================================
# A resource wraps one entity (credits, tasks, profile, competitors) for one
# user. It owns a `ResourceState(data, loading, error)` and exposes mutators
# returning `MutationResult(data, error)`.
#
# Contract shared by every resource:
# - No user id: no query is issued, state settles to empty data with
#   loading=False, and mutators answer "User not authenticated".
# - Expected failures (database, auth provider, network, row shape) are
#   absorbed into `state.error` / `MutationResult.error`. Anything else
#   propagates.
# - Every load takes a sequence ticket. Only the newest ticket may commit
#   state, so a slow load that finishes late never overwrites a newer one.
#   `rebind()` bumps the sequence too, dropping loads for the old user.
#
# Loads may run on a worker thread (see CreditsPoller), so ticket handling
# and state swaps happen under a lock.
# =============================================================================

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, Generic, TypeVar
from uuid import UUID

from supabase import Client

from lib.supabase_client import EXPECTED_ERRORS, error_message
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

NOT_AUTHENTICATED = "User not authenticated"


@dataclass(frozen=True)
class ResourceState(Generic[T]):
    """Snapshot of a resource: its data plus loading and error flags."""
    data: T
    loading: bool = False
    error: str | None = None


@dataclass(frozen=True)
class MutationResult(Generic[R]):
    """Outcome of a mutator. Exactly one of data / error is meaningful."""
    data: R | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Resource(Generic[T]):
    """
    Base class for per-user data-access adapters.

    Subclasses implement `empty()` and `fetch()`; they may override
    `fallback()` to choose the data kept when a load fails.
    """

    name = "resource"

    def __init__(self, client: Client, user_id: str | UUID | None):
        self._client = client
        self._user_id = normalize_uuid(user_id) if user_id else None
        self._lock = threading.Lock()
        self._sequence = 0
        self.state: ResourceState[T] = ResourceState(data=self.empty())

    # -------------------------------------------------------------------------
    # Hooks for subclasses
    # -------------------------------------------------------------------------

    def empty(self) -> T:
        raise NotImplementedError

    def fetch(self) -> T:
        raise NotImplementedError

    def fallback(self, exc: BaseException) -> T:
        """Data to keep after a failed load. Defaults to the current data."""
        return self.state.data

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    @property
    def user_id(self) -> str | None:
        return self._user_id

    def _begin(self) -> int:
        with self._lock:
            self._sequence += 1
            self.state = replace(self.state, loading=True)
            return self._sequence

    def _commit(self, ticket: int, data: T, error: str | None) -> bool:
        with self._lock:
            if ticket != self._sequence:
                logger.debug(f"Discarding stale {self.name} load (ticket {ticket}, current {self._sequence})")
                return False
            self.state = ResourceState(data=data, loading=False, error=error)
            return True

    def load(self) -> ResourceState[T]:
        """
        Fetch fresh data and commit it if no newer load started meanwhile.

        Returns:
            The resource state after this load (which may be a newer load's
            state if this one was discarded)
        """
        if self._user_id is None:
            with self._lock:
                self._sequence += 1
                self.state = ResourceState(data=self.empty())
            return self.state

        ticket = self._begin()
        try:
            data = self.fetch()
            error = None
        except EXPECTED_ERRORS as e:
            error = error_message(e)
            logger.warning(f"Failed to load {self.name} for user {self._user_id}: {error}")
            data = self.fallback(e)

        self._commit(ticket, data, error)
        return self.state

    def rebind(self, user_id: str | UUID | None) -> None:
        """
        Point the resource at another user.

        In-flight loads for the previous user are invalidated; call `load()`
        afterwards to fetch the new user's data.
        """
        with self._lock:
            self._sequence += 1
            self._user_id = normalize_uuid(user_id) if user_id else None
            self.state = ResourceState(data=self.empty())

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def _update(self, change: Callable[[T], T]) -> None:
        """Apply a local change to the committed data."""
        with self._lock:
            self.state = replace(self.state, data=change(self.state.data))

    def _mutate(self, operation: str, action: Callable[[], R]) -> MutationResult[R]:
        """
        Run a mutator, absorbing expected failures.

        The failure message is also recorded on `state.error`.
        """
        if self._user_id is None:
            return MutationResult(error=NOT_AUTHENTICATED)

        try:
            return MutationResult(data=action())
        except EXPECTED_ERRORS as e:
            message = error_message(e)
            logger.warning(f"{self.name}: {operation} failed for user {self._user_id}: {message}")
            with self._lock:
                self.state = replace(self.state, error=message)
            return MutationResult(error=message)
