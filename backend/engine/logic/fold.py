"""
Fold an event log into a game.

The cached state snapshot is only a cache: this module rebuilds the whole
game (mode, seats, pointer, status and state) from seq 1 using the same
reducer functions the live path uses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from engine.logic.enums import GameStatus, SystemEventType
from engine.logic.event_log import check_sequence
from engine.logic.exceptions import EventSequenceError
from engine.logic.reducer import apply_reward_paid, initial_state, reduce, start_state
from engine.logic.state import GameState, SessionPointer
from engine.logic.types import CreatePayload, PointerSetPayload

if TYPE_CHECKING:
    from collections.abc import Sequence

    from engine.logic.catalog import CardCatalog
    from shared.dal.models import EventRecord


class FoldedGame(BaseModel):
    """A game as reconstructed from its event log."""

    model_config = ConfigDict(frozen=True)

    game_id: str
    mode_code: str
    status: GameStatus
    seats: tuple[int, ...]
    pointer: SessionPointer
    state: GameState
    last_seq: int


def fold_events(events: Sequence[EventRecord], catalog: CardCatalog) -> FoldedGame:
    """
    Rebuild a game by applying every event in order, starting from CREATE.

    Raises:
        EventSequenceError: If the log is empty, not contiguous, does not
            start with CREATE, or changes the pointer after START
        EngineError: If a stored action no longer reduces cleanly

    """
    if not events:
        raise EventSequenceError("cannot fold an empty event log")
    check_sequence(events)

    first = events[0]
    if first.type != SystemEventType.CREATE.value:
        raise EventSequenceError(f"event log for {first.game_id} must start with CREATE, found {first.type}")
    created = CreatePayload.model_validate(first.payload)
    seats = tuple(sorted(player.seat for player in created.players))
    mode_code = created.mode_code
    pointer = created.pointer
    status = GameStatus.LOBBY
    state = initial_state(mode_code)

    for event in events[1:]:
        if event.type == SystemEventType.POINTER_SET.value:
            if status != GameStatus.LOBBY:
                raise EventSequenceError(f"seq {event.seq}: pointer changed after setup began")
            pointer = PointerSetPayload.model_validate(event.payload).pointer
        elif event.type == SystemEventType.START.value:
            if status != GameStatus.LOBBY:
                raise EventSequenceError(f"seq {event.seq}: game started twice")
            status = GameStatus.ACTIVE
            state = start_state(state, seats)
        elif event.type == SystemEventType.REWARD_PAID.value:
            state = apply_reward_paid(state, event.payload)
        elif event.type == SystemEventType.CREATE.value:
            raise EventSequenceError(f"seq {event.seq}: duplicate CREATE")
        else:
            state = reduce(mode_code, state, seats, event.type, event.payload, at=event.created_at, catalog=catalog)

    return FoldedGame(
        game_id=first.game_id,
        mode_code=mode_code,
        status=status,
        seats=seats,
        pointer=pointer,
        state=state,
        last_seq=events[-1].seq,
    )
