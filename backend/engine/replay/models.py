"""
Replay data models: input bundle, output trace, and error types.

ReplayInput is the versioned, self-contained description of a session:
who sits where, which ruleset pointer it is bound to, the ordered client
actions, and the clock the run is stamped with. ReplayTrace captures every
artifact a run produces so independent runs can be compared exactly.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from engine.logic.exceptions import EngineError
from engine.logic.state import GameState, MatchResults, SessionPointer
from engine.logic.types import SeatAssignment
from shared.dal.models import EventRecord

REPLAY_VERSION = "1"
DEFAULT_CLOCK_START = datetime(2025, 1, 1, tzinfo=UTC)


class ReplayAction(BaseModel):
    """A single client action in a replay sequence."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)


class ReplayInput(BaseModel):
    """
    Versioned input for deterministic replay execution.

    Seats must be unique and the clock start timezone-aware, so every run
    stamps identical timestamps.
    """

    model_config = ConfigDict(frozen=True)

    schema_version: int = 1
    session_id: str = Field(min_length=1)
    match_id: str = Field(min_length=1)
    mode_code: str
    players: tuple[SeatAssignment, ...]
    pointer: SessionPointer
    actions: tuple[ReplayAction, ...] = ()
    clock_start: datetime = DEFAULT_CLOCK_START
    clock_step_ms: int = Field(default=1, ge=0)

    @model_validator(mode="after")
    def _validate_replay_input(self) -> ReplayInput:
        seats = [player.seat for player in self.players]
        if not seats:
            raise ValueError("ReplayInput.players must not be empty")
        if len(set(seats)) != len(seats):
            raise ValueError(f"ReplayInput.players contain duplicate seats: {sorted(seats)}")
        if self.clock_start.tzinfo is None:
            raise ValueError("ReplayInput.clock_start must be timezone-aware")
        return self


class ReplayStep(BaseModel):
    """One replay transition: state_before + action -> state_after."""

    model_config = ConfigDict(frozen=True)

    index: int
    action: ReplayAction
    state_before: GameState
    state_after: GameState
    seq: int | None = None  # None when the action was rejected
    error: dict[str, Any] | None = None


class ReplayTrace(BaseModel):
    """Complete output of a replay execution."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    match_id: str
    initial_state: GameState
    steps: tuple[ReplayStep, ...]
    final_state: GameState
    events: tuple[EventRecord, ...]
    results: MatchResults | None = None

    def artifacts(self) -> dict[str, Any]:
        """JSON-shaped artifacts compared across runs: final state, ordered events, results."""
        return {
            "session_id": self.session_id,
            "match_id": self.match_id,
            "final_state": self.final_state.model_dump(mode="json"),
            "events": [event.model_dump(mode="json") for event in self.events],
            "results": self.results.model_dump(mode="json") if self.results is not None else None,
        }


class ReplayError(Exception):
    """Raised when a replay action is rejected in strict mode."""

    def __init__(self, step_index: int, action: ReplayAction, error: EngineError) -> None:
        self.step_index = step_index
        self.action = action
        self.error = error
        super().__init__(f"Replay error at step {step_index} ({action.type}): {error.kind.value}: {error.message}")


class ReplayStepLimitError(Exception):
    """Raised when replay exceeds max allowed steps."""


class ReplayInvariantError(Exception):
    """Raised when the engine violates replay-required invariants."""
