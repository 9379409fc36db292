"""
Top-level reducer.

Maps (mode, state, seats, action) to the next GameState. END_TURN is
mode-agnostic; namespaced actions are routed to a mode sub-reducer only
when the game's mode matches the namespace, everything else is an explicit
no-op. The reducer never reads the clock or any store: the event
timestamp and the catalog are passed in, so folding the same log always
yields the same state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from engine.logic.enums import ActionType, ModeCode, SystemEventType
from engine.logic.rookie import ROOKIE_PREFIX, record_reward_paid, record_scoring, reduce_rookie
from engine.logic.state import GameState, RookieState

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from engine.logic.catalog import CardCatalog


def normalize_mode_code(mode_code: str | None) -> str:
    return (mode_code or "").strip().upper()


def is_rookie_action(mode_code: str | None, action_type: str) -> bool:
    """Return True when the action belongs to the rookie namespace of a rookie game."""
    return normalize_mode_code(mode_code) == ModeCode.ROOKIE.value and action_type.startswith(ROOKIE_PREFIX)


def initial_state(mode_code: str) -> GameState:
    """State seeded by the CREATE event."""
    return GameState(mode_code=normalize_mode_code(mode_code))


def start_state(state: GameState, seats: Sequence[int]) -> GameState:
    """
    State seeded by the START event.

    Sets turn=1 and the active seat to the lowest seat. Rookie games also
    get a fresh rookie sub-state in SETUP.
    """
    ordered = sorted(seats)
    update: dict[str, Any] = {"turn": 1, "active_seat": ordered[0] if ordered else None}
    if normalize_mode_code(state.mode_code) == ModeCode.ROOKIE.value:
        update["rookie"] = RookieState()
    return state.model_copy(update=update)


def end_turn(state: GameState, seats: Sequence[int]) -> GameState:
    """
    Advance the turn counter and rotate the active seat.

    Args:
        state: Current game state
        seats: Seat list of the game, in any order

    Returns:
        New GameState with turn + 1 and the next seat in sorted order active,
        wrapping from the last seat back to the first

    """
    ordered = sorted(seats)
    if not ordered:
        return state.model_copy(update={"turn": state.turn + 1})
    current = ordered.index(state.active_seat) if state.active_seat in ordered else 0
    next_seat = ordered[(current + 1) % len(ordered)]
    return state.model_copy(update={"turn": state.turn + 1, "active_seat": next_seat})


def reduce(
    mode_code: str | None,
    state: GameState,
    seats: Sequence[int],
    action_type: str,
    payload: dict[str, Any],
    *,
    at: datetime,
    catalog: CardCatalog,
) -> GameState:
    """
    Compute the next state for one client action.

    Args:
        mode_code: The game's mode code
        state: Current game state
        seats: Seat list fixed at creation
        action_type: Action type as submitted
        payload: Action payload
        at: Timestamp of the event that carries this action
        catalog: Card catalog consulted by rookie scoring

    Returns:
        The next GameState, or ``state`` itself for a no-op

    Raises:
        EngineError: If the action is recognized but its preconditions fail

    """
    if action_type == ActionType.END_TURN.value:
        return end_turn(state, seats)

    if is_rookie_action(mode_code, action_type):
        rookie = state.rookie or RookieState()
        next_rookie = reduce_rookie(rookie, seats, action_type, payload, at=at, catalog=catalog)
        if next_rookie is rookie and state.rookie is not None:
            return state
        return state.model_copy(update={"rookie": next_rookie})

    return state


def logged_payload(
    mode_code: str | None,
    next_state: GameState,
    action_type: str,
    payload: dict[str, Any],
) -> dict[str, Any]:
    """Return the payload to append for an applied action, given the state it produced."""
    if not is_rookie_action(mode_code, action_type):
        return payload
    return record_scoring(action_type, payload, next_state.rookie)


def apply_reward_paid(state: GameState, payload: dict[str, Any]) -> GameState:
    """Fold a REWARD_PAID event into state."""
    if state.rookie is None:
        return state
    next_rookie = record_reward_paid(state.rookie, payload)
    if next_rookie is state.rookie:
        return state
    return state.model_copy(update={"rookie": next_rookie})


SYSTEM_EVENT_TYPES = frozenset(event_type.value for event_type in SystemEventType)
