"""
Pydantic models for action and event payloads.

Payloads arrive as plain dicts. Each model validates one payload shape at
the reducer boundary; field names accept both snake_case and the camelCase
keys used by existing clients.
"""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from engine.logic.state import ZONE_COUNT, SessionPointer


class SeatAssignment(BaseModel):
    """A player's seat and deck reference at game creation."""

    model_config = ConfigDict(frozen=True)

    seat: int = Field(ge=1)
    deck_id: str = Field(default="", validation_alias=AliasChoices("deck_id", "deckId"))


class RookiePlacePayload(BaseModel):
    """Data for ROOKIE_PLACE."""

    model_config = ConfigDict(frozen=True)

    seat: int
    zone_index: int = Field(ge=0, lt=ZONE_COUNT, validation_alias=AliasChoices("zone_index", "zoneIndex"))
    version_key: str = Field(min_length=1, validation_alias=AliasChoices("version_key", "versionKey"))


class ZonePayload(BaseModel):
    """Data for ROOKIE_REVEAL and ROOKIE_HIDE."""

    model_config = ConfigDict(frozen=True)

    zone_index: int = Field(ge=0, lt=ZONE_COUNT, validation_alias=AliasChoices("zone_index", "zoneIndex"))


class CreatePayload(BaseModel):
    """Data recorded by the CREATE event."""

    model_config = ConfigDict(frozen=True)

    mode_code: str
    players: tuple[SeatAssignment, ...]
    pointer: SessionPointer


class PointerSetPayload(BaseModel):
    """Data recorded by the POINTER_SET event."""

    model_config = ConfigDict(frozen=True)

    pointer: SessionPointer


class RewardPaidPayload(BaseModel):
    """Data recorded by the REWARD_PAID event."""

    model_config = ConfigDict(frozen=True)

    paid_at: datetime
    seat: int
    user_id: str
    amount: int
    transaction_id: str
