"""Persistence models for the data access layer."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class GameRecord(BaseModel, frozen=True):
    """A game row: identity, status, bound pointer and the cached state snapshot."""

    game_id: str
    mode_code: str
    status: str = "LOBBY"  # "LOBBY" | "ACTIVE"
    pointer: dict[str, Any] = Field(default_factory=dict)
    # derived cache of the event log; always re-derivable by folding from seq 1
    state: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class SeatRecord(BaseModel, frozen=True):
    """A seat assignment, fixed at game creation."""

    game_id: str
    seat: int
    deck_id: str = ""


class EventRecord(BaseModel, frozen=True):
    """One immutable entry of a game's event log."""

    game_id: str
    seq: int  # 1-based, contiguous per game
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class WalletTransaction(BaseModel, frozen=True):
    """A balance credit recorded by the wallet ledger."""

    transaction_id: str
    user_id: str
    asset_type: str = "EARNED"
    amount: int
    reason: str
    created_at: datetime
