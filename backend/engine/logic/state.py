"""
Engine state models.

GameState is the derived document folded from a game's event log. Mode
sub-state is a closed, versioned variant: today only RookieState exists,
tagged by its ``mode`` literal and ``version``. All models are frozen;
updates go through model_copy in the reducers.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from engine.logic.enums import RookiePhase, ZoneOutcome

STATE_SCHEMA_VERSION = 1
ZONE_COUNT = 7
ROOKIE_SEATS = (1, 2)


class SessionPointer(BaseModel):
    """Ruleset reference a session is bound to: (format, game mode)."""

    model_config = ConfigDict(frozen=True)

    format_id: str = Field(min_length=1)
    format_version: int = Field(ge=1)
    game_mode_id: str = Field(min_length=1)
    game_mode_version: int = Field(ge=1)

    @property
    def format_ref(self) -> str:
        return f"{self.format_id}@{self.format_version}"

    @property
    def game_mode_ref(self) -> str:
        return f"{self.game_mode_id}@{self.game_mode_version}"


class ZoneResult(BaseModel):
    """Outcome of a single zone comparison."""

    model_config = ConfigDict(frozen=True)

    zone_index: int
    outcome: ZoneOutcome
    winning_seat: int | None
    p1_power: int
    p2_power: int


class MatchResults(BaseModel):
    """Frozen scoring output of a rookie match."""

    model_config = ConfigDict(frozen=True)

    zone_count: int = ZONE_COUNT
    zones: tuple[ZoneResult, ...]
    wins_by_seat: dict[int, int]
    draws: int
    match_winner: int | None


class RewardEligible(BaseModel):
    """Sealed reward record written once when the match ends."""

    model_config = ConfigDict(frozen=True)

    type: Literal["COIN"] = "COIN"
    winner_seat: int | None
    amount: int
    reason: str
    created_at: datetime


class RookieState(BaseModel):
    """Rookie mode sub-state (version 1)."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["ROOKIE"] = "ROOKIE"
    version: Literal[1] = 1
    phase: RookiePhase = RookiePhase.SETUP
    placements: dict[int, dict[int, str]] = Field(default_factory=dict)  # seat -> zone -> version key
    revealed_zones: dict[int, bool] = Field(default_factory=dict)
    last_place_at: dict[int, datetime] = Field(default_factory=dict)
    match_began_at: datetime | None = None
    results: MatchResults | None = None
    tally: tuple[ZoneOutcome, ...] | None = None
    scored_at: datetime | None = None
    reward_eligible: RewardEligible | None = None
    ended_at: datetime | None = None
    reward_paid_at: datetime | None = None  # written only through REWARD_PAID events


class GameState(BaseModel):
    """Mode-agnostic game document plus the optional mode sub-state."""

    model_config = ConfigDict(frozen=True)

    schema_version: Literal[1] = STATE_SCHEMA_VERSION
    mode_code: str | None = None
    turn: int = 0
    active_seat: int | None = None
    rookie: RookieState | None = None
