"""
Replay runner: feeds a ReplayInput through the engine and captures a trace.

Each run gets a fresh in-memory repository and a SteppingClock seeded
from the bundle, so nothing is shared between runs and every timestamp is
a pure function of the input.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from engine.logic.clock import Clock, SteppingClock
from engine.logic.exceptions import EngineError
from engine.logic.service import EngineService
from engine.replay.models import (
    ReplayError,
    ReplayInvariantError,
    ReplayStep,
    ReplayStepLimitError,
    ReplayTrace,
)
from shared.dal.memory import InMemoryGameRepository

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from engine.logic.catalog import CardCatalog
    from engine.logic.registry import RegistrySet
    from engine.logic.service import GameSnapshot
    from engine.logic.state import GameState, SessionPointer
    from engine.logic.types import SeatAssignment
    from engine.replay.models import ReplayInput
    from shared.dal.models import EventRecord

logger = structlog.get_logger()


class ReplayServiceProtocol(Protocol):
    """Replay-facing protocol for engine interaction."""

    def create_game(
        self,
        mode_code: str,
        players: Sequence[SeatAssignment],
        pointer: SessionPointer,
        *,
        game_id: str | None = None,
    ) -> GameSnapshot: ...
    def start_game(self, game_id: str) -> GameState: ...
    def apply_action(self, game_id: str, action_type: str, payload: Mapping[str, Any] | None = None) -> GameState: ...
    def get_game(self, game_id: str) -> GameSnapshot: ...
    def read_events(self, game_id: str) -> list[EventRecord]: ...


ServiceFactory = Callable[[Clock], ReplayServiceProtocol]


@dataclass(frozen=True)
class ReplayOptions:
    """Configuration for a replay run."""

    strict: bool = True
    max_steps: int = 10_000


def make_service_factory(catalog: CardCatalog, registries: RegistrySet) -> ServiceFactory:
    """Build a factory producing an EngineService over a fresh in-memory repository."""

    def factory(clock: Clock) -> ReplayServiceProtocol:
        return EngineService(InMemoryGameRepository(), catalog=catalog, registries=registries, clock=clock)

    return factory


def _require_state(service: ReplayServiceProtocol, game_id: str, message: str) -> GameState:
    try:
        return service.get_game(game_id).state
    except EngineError as exc:
        raise ReplayInvariantError(message) from exc


def run_replay(
    replay: ReplayInput,
    opts: ReplayOptions | None = None,
    *,
    service_factory: ServiceFactory,
) -> ReplayTrace:
    """
    Run a deterministic replay through the engine service.

    Creates and starts the session described by the bundle, then applies
    every action, capturing state_before/state_after for each one. In
    strict mode a rejected action raises ReplayError; otherwise the error
    is recorded on its step and the run continues.
    """
    resolved_opts = opts or ReplayOptions()
    if len(replay.actions) > resolved_opts.max_steps:
        raise ReplayStepLimitError(f"Replay exceeded {resolved_opts.max_steps} steps")

    clock = SteppingClock(replay.clock_start, timedelta(milliseconds=replay.clock_step_ms))
    service = service_factory(clock)
    game_id = replay.session_id

    service.create_game(replay.mode_code, replay.players, replay.pointer, game_id=game_id)
    initial_state = service.start_game(game_id)

    steps: list[ReplayStep] = []
    for index, action in enumerate(replay.actions):
        state_before = _require_state(service, game_id, "game state disappeared during replay execution")
        try:
            state_after = service.apply_action(game_id, action.type, action.payload)
        except EngineError as exc:
            if resolved_opts.strict:
                raise ReplayError(index, action, exc) from exc
            steps.append(
                ReplayStep(
                    index=index,
                    action=action,
                    state_before=state_before,
                    state_after=state_before,
                    error=exc.to_payload(),
                ),
            )
            continue
        events = service.read_events(game_id)
        steps.append(
            ReplayStep(
                index=index,
                action=action,
                state_before=state_before,
                state_after=state_after,
                seq=events[-1].seq,
            ),
        )

    final_state = _require_state(service, game_id, "replay completed but game state is missing")
    if steps and final_state != steps[-1].state_after:
        raise ReplayInvariantError("stored snapshot differs from the last applied state")

    events = service.read_events(game_id)
    results = final_state.rookie.results if final_state.rookie is not None else None
    logger.debug("replay finished", session_id=replay.session_id, steps=len(steps), events=len(events))
    return ReplayTrace(
        session_id=replay.session_id,
        match_id=replay.match_id,
        initial_state=initial_state,
        steps=tuple(steps),
        final_state=final_state,
        events=tuple(events),
        results=results,
    )
