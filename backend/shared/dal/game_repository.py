"""Abstract interface for game and event log persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence
    from contextlib import AbstractContextManager
    from datetime import datetime

    from shared.dal.models import EventRecord, GameRecord, SeatRecord


class DuplicateGameError(Exception):
    """Raised when creating a game whose id already exists."""


class GameRepository(ABC):
    """Abstract interface for game persistence.

    The event log is append-only: seq values start at 1 per game and are
    assigned as max(seq) + 1 inside the same transaction that inserts the
    event and rewrites the state snapshot. transaction() is the per-game
    single-writer boundary; appends made inside it commit or roll back
    together.
    """

    @abstractmethod
    def transaction(self, game_id: str) -> AbstractContextManager[None]: ...

    @abstractmethod
    def create_game(
        self,
        game: GameRecord,
        seats: Sequence[SeatRecord],
        event_type: str,
        payload: dict[str, Any],
    ) -> EventRecord: ...

    @abstractmethod
    def get_game(self, game_id: str) -> GameRecord | None: ...

    @abstractmethod
    def get_seats(self, game_id: str) -> list[SeatRecord]: ...

    @abstractmethod
    def append_event(
        self,
        game_id: str,
        event_type: str,
        payload: dict[str, Any],
        *,
        created_at: datetime,
        state: dict[str, Any] | None = None,
        status: str | None = None,
        pointer: dict[str, Any] | None = None,
    ) -> EventRecord: ...

    @abstractmethod
    def read_events(self, game_id: str) -> list[EventRecord]: ...
