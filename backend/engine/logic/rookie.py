"""
Rookie mode sub-reducer.

Phase machine: SETUP -> MATCH -> SCORED -> ENDED, never in reverse.
Handlers are pure: they take the current RookieState and the event
timestamp and return a new RookieState, or raise an EngineError and
leave the caller's state untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from engine.logic.enums import ActionType, ErrorKind, RookiePhase
from engine.logic.exceptions import ActionValidationError, RookieEndMatchError, ScoreValidationError
from engine.logic.scoring import require_scorable, score_match
from engine.logic.state import MatchResults, RewardEligible, RookieState
from engine.logic.types import RewardPaidPayload, RookiePlacePayload, ZonePayload

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from engine.logic.catalog import CardCatalog

logger = structlog.get_logger()

ROOKIE_PREFIX = "ROOKIE_"
REWARD_AMOUNT = 1
REWARD_REASON_WIN = "ROOKIE_MATCH_WIN"
REWARD_REASON_NO_WINNER = "ROOKIE_MATCH_NO_WINNER"

# Payload key under which a logged score event carries the results computed at apply time.
SCORED_RESULTS_KEY = "scored_results"

_SCORE_ACTIONS = frozenset({ActionType.ROOKIE_SCORE_MATCH.value, ActionType.ROOKIE_RESOLVE_MATCH.value})

# Zones are frozen once the match has been scored.
_LOCKED_PHASES = frozenset({RookiePhase.SCORED, RookiePhase.ENDED})

_M = TypeVar("_M", bound=BaseModel)


def parse_payload(model: type[_M], action_type: str, payload: dict[str, Any]) -> _M:
    """Validate a payload dict against its model, converting failures to ActionValidationError."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ActionValidationError(
            ErrorKind.INVALID_PAYLOAD,
            f"invalid {action_type} payload: {exc.error_count()} error(s)",
            action_type=action_type,
            errors=[f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()],
        ) from exc


def _require_unlocked(rookie: RookieState, action_type: str) -> None:
    if rookie.phase in _LOCKED_PHASES:
        raise ActionValidationError(
            ErrorKind.ZONES_LOCKED,
            f"{action_type} rejected: zones are locked in phase {rookie.phase.value}",
            action_type=action_type,
            phase=rookie.phase.value,
        )


def _begin_match(rookie: RookieState, _payload: dict[str, Any], ctx: _RookieContext) -> RookieState:
    if rookie.phase != RookiePhase.SETUP:
        return rookie
    return rookie.model_copy(update={"phase": RookiePhase.MATCH, "match_began_at": ctx.at})


def _place(rookie: RookieState, payload: dict[str, Any], ctx: _RookieContext) -> RookieState:
    data = parse_payload(RookiePlacePayload, ActionType.ROOKIE_PLACE.value, payload)
    if data.seat not in ctx.seats:
        raise ActionValidationError(
            ErrorKind.INVALID_SEAT,
            f"seat {data.seat} is not part of this game",
            seat=data.seat,
            zone_index=data.zone_index,
            version_key=data.version_key,
        )
    _require_unlocked(rookie, ActionType.ROOKIE_PLACE.value)
    placements = {seat: dict(zones) for seat, zones in rookie.placements.items()}
    placements.setdefault(data.seat, {})[data.zone_index] = data.version_key
    last_place_at = {**rookie.last_place_at, data.seat: ctx.at}
    return rookie.model_copy(update={"placements": placements, "last_place_at": last_place_at})


def _set_reveal(revealed: bool) -> Callable[[RookieState, dict[str, Any], _RookieContext], RookieState]:
    action_type = ActionType.ROOKIE_REVEAL.value if revealed else ActionType.ROOKIE_HIDE.value

    def handler(rookie: RookieState, payload: dict[str, Any], _ctx: _RookieContext) -> RookieState:
        data = parse_payload(ZonePayload, action_type, payload)
        _require_unlocked(rookie, action_type)
        return rookie.model_copy(update={"revealed_zones": {**rookie.revealed_zones, data.zone_index: revealed}})

    return handler


def _scored_results(rookie: RookieState, payload: dict[str, Any], ctx: _RookieContext) -> MatchResults:
    recorded = payload.get(SCORED_RESULTS_KEY)
    if recorded is None:
        return score_match(rookie, ctx.seats, ctx.catalog)
    # Recorded results are authoritative; the catalog is not consulted.
    require_scorable(rookie, ctx.seats)
    if not isinstance(recorded, dict):
        raise ActionValidationError(
            ErrorKind.INVALID_PAYLOAD,
            f"{SCORED_RESULTS_KEY} must be an object",
            field=SCORED_RESULTS_KEY,
        )
    return parse_payload(MatchResults, SCORED_RESULTS_KEY, recorded)


def _score(rookie: RookieState, payload: dict[str, Any], ctx: _RookieContext) -> RookieState:
    results = _scored_results(rookie, payload, ctx)
    if rookie.phase == RookiePhase.ENDED:
        # Re-running from ENDED only verifies: results stay frozen and the phase never moves back.
        if results != rookie.results:
            raise ScoreValidationError(
                ErrorKind.RESULTS_FROZEN,
                "rescoring produced results that differ from the frozen match results",
                phase=rookie.phase.value,
            )
        return rookie
    return rookie.model_copy(
        update={
            "phase": RookiePhase.SCORED,
            "results": results,
            "tally": tuple(zone.outcome for zone in results.zones),
            "scored_at": ctx.at,
        },
    )


def _end_match(rookie: RookieState, _payload: dict[str, Any], ctx: _RookieContext) -> RookieState:
    if rookie.phase != RookiePhase.SCORED or rookie.results is None:
        raise RookieEndMatchError(
            ErrorKind.END_PHASE_INVALID,
            f"cannot end match in phase {rookie.phase.value}",
            phase=rookie.phase.value,
        )
    winner = rookie.results.match_winner
    reward = RewardEligible(
        winner_seat=winner,
        amount=REWARD_AMOUNT if winner is not None else 0,
        reason=REWARD_REASON_WIN if winner is not None else REWARD_REASON_NO_WINNER,
        created_at=ctx.at,
    )
    return rookie.model_copy(update={"phase": RookiePhase.ENDED, "reward_eligible": reward, "ended_at": ctx.at})


class _RookieContext:
    __slots__ = ("at", "catalog", "seats")

    def __init__(self, seats: Sequence[int], at: datetime, catalog: CardCatalog) -> None:
        self.seats = seats
        self.at = at
        self.catalog = catalog


_HANDLERS: dict[str, Callable[[RookieState, dict[str, Any], _RookieContext], RookieState]] = {
    ActionType.ROOKIE_BEGIN_MATCH.value: _begin_match,
    ActionType.ROOKIE_PLACE.value: _place,
    ActionType.ROOKIE_REVEAL.value: _set_reveal(revealed=True),
    ActionType.ROOKIE_HIDE.value: _set_reveal(revealed=False),
    ActionType.ROOKIE_SCORE_MATCH.value: _score,
    ActionType.ROOKIE_RESOLVE_MATCH.value: _score,
    ActionType.ROOKIE_END_MATCH.value: _end_match,
}


def reduce_rookie(
    rookie: RookieState,
    seats: Sequence[int],
    action_type: str,
    payload: dict[str, Any],
    *,
    at: datetime,
    catalog: CardCatalog,
) -> RookieState:
    """Apply one ROOKIE_* action. Unknown rookie action types leave the state unchanged."""
    handler = _HANDLERS.get(action_type)
    if handler is None:
        logger.debug("unhandled rookie action, no-op", action_type=action_type)
        return rookie
    return handler(rookie, payload, _RookieContext(seats, at, catalog))


def record_scoring(action_type: str, payload: dict[str, Any], rookie: RookieState | None) -> dict[str, Any]:
    """
    Return the payload to log for an applied rookie action.

    Score actions get the match results stamped under SCORED_RESULTS_KEY so
    a later fold reproduces them without the card catalog. Other actions
    are logged as submitted.
    """
    if action_type not in _SCORE_ACTIONS or rookie is None or rookie.results is None:
        return payload
    return {**payload, SCORED_RESULTS_KEY: rookie.results.model_dump(mode="json")}


def record_reward_paid(rookie: RookieState, payload: dict[str, Any]) -> RookieState:
    """Copy the wallet's idempotency marker into state. The first marker wins."""
    data = parse_payload(RewardPaidPayload, "REWARD_PAID", payload)
    if rookie.phase != RookiePhase.ENDED:
        raise ActionValidationError(
            ErrorKind.INVALID_PAYLOAD,
            f"reward marker requires phase ENDED, got {rookie.phase.value}",
            phase=rookie.phase.value,
        )
    if rookie.reward_paid_at is not None:
        return rookie
    return rookie.model_copy(update={"reward_paid_at": data.paid_at})
