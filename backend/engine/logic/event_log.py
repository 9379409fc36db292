"""
Event log facade over a GameRepository.

The repository owns atomicity; this layer stamps events with the injected
clock's time, checks that reads come back contiguous from seq 1, and logs
every append.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from engine.logic.exceptions import EventSequenceError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from shared.dal.game_repository import GameRepository
    from shared.dal.models import EventRecord

logger = structlog.get_logger()


def check_sequence(events: Sequence[EventRecord]) -> None:
    """Raise EventSequenceError unless seq runs 1, 2, 3, ... with no gaps or duplicates."""
    for expected, event in enumerate(events, start=1):
        if event.seq != expected:
            raise EventSequenceError(
                f"event log for {event.game_id} is not contiguous: expected seq {expected}, found {event.seq}",
            )


class EventLog:
    """Ordered, append-only per-game action log."""

    def __init__(self, repository: GameRepository) -> None:
        self._repository = repository

    def append(
        self,
        game_id: str,
        event_type: str,
        payload: dict[str, Any],
        *,
        created_at: datetime,
        state: dict[str, Any] | None = None,
        status: str | None = None,
        pointer: dict[str, Any] | None = None,
    ) -> EventRecord:
        """Append one event; the snapshot fields given are written in the same transaction."""
        event = self._repository.append_event(
            game_id,
            event_type,
            payload,
            created_at=created_at,
            state=state,
            status=status,
            pointer=pointer,
        )
        logger.debug("event appended", game_id=game_id, seq=event.seq, event_type=event_type)
        return event

    def read(self, game_id: str) -> list[EventRecord]:
        """Return the game's events ordered by seq."""
        events = self._repository.read_events(game_id)
        check_sequence(events)
        return events
