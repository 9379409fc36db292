"""
String enum definitions for card-match engine concepts.
"""

from enum import Enum


class GameStatus(str, Enum):
    """Lifecycle status of a game session."""

    LOBBY = "LOBBY"
    ACTIVE = "ACTIVE"


class ModeCode(str, Enum):
    """Known game modes. Only ROOKIE has a mode sub-reducer."""

    ROOKIE = "ROOKIE"
    SUBSTITUTION = "SUBSTITUTION"
    PLAYMAKER = "PLAYMAKER"


class SystemEventType(str, Enum):
    """Event types written by engine operations, never submitted by clients."""

    CREATE = "CREATE"
    POINTER_SET = "POINTER_SET"
    START = "START"
    REWARD_PAID = "REWARD_PAID"


class ActionType(str, Enum):
    """Client action types understood by the reducer."""

    END_TURN = "END_TURN"
    ROOKIE_BEGIN_MATCH = "ROOKIE_BEGIN_MATCH"
    ROOKIE_PLACE = "ROOKIE_PLACE"
    ROOKIE_REVEAL = "ROOKIE_REVEAL"
    ROOKIE_HIDE = "ROOKIE_HIDE"
    ROOKIE_SCORE_MATCH = "ROOKIE_SCORE_MATCH"
    ROOKIE_RESOLVE_MATCH = "ROOKIE_RESOLVE_MATCH"
    ROOKIE_END_MATCH = "ROOKIE_END_MATCH"


class RookiePhase(str, Enum):
    """Rookie match phases. Transitions only move forward."""

    SETUP = "SETUP"
    MATCH = "MATCH"
    SCORED = "SCORED"
    ENDED = "ENDED"


class ZoneOutcome(str, Enum):
    """Result of comparing the two HERO cards placed in one zone."""

    P1 = "P1"
    P2 = "P2"
    DRAW = "DRAW"


class ConceptType(str, Enum):
    """Card concept types reported by the catalog."""

    HERO = "HERO"
    PLAY = "PLAY"
    GEAR = "GEAR"


class FormatGateMode(str, Enum):
    """How a game mode restricts the formats it may be paired with."""

    ALLOW_LIST = "ALLOW_LIST"
    DENY_LIST = "DENY_LIST"
    OPEN = "OPEN"


class ErrorKind(str, Enum):
    """Closed set of engine error kinds reported at the service boundary."""

    # input validation
    MISSING_ACTION_TYPE = "missing_action_type"
    MISSING_PLAYERS = "missing_players"
    DUPLICATE_SEATS = "duplicate_seats"
    INVALID_SEAT = "invalid_seat"
    UNKNOWN_MODE = "unknown_mode"
    RESERVED_ACTION_TYPE = "reserved_action_type"
    INVALID_PAYLOAD = "invalid_payload"
    ZONES_LOCKED = "zones_locked"
    GAME_EXISTS = "game_exists"
    GAME_NOT_FOUND = "game_not_found"
    INVALID_GAME_STATUS = "invalid_game_status"

    # pointer gate
    FORMAT_NOT_FOUND = "FORMAT_NOT_FOUND"
    GAMEMODE_NOT_FOUND = "GAMEMODE_NOT_FOUND"
    ENGINE_COMPAT_UNSUPPORTED = "ENGINE_COMPAT_UNSUPPORTED"
    FORMAT_GATE_REJECTED = "FORMAT_GATE_REJECTED"
    POINTER_MUTATION_FORBIDDEN = "POINTER_MUTATION_FORBIDDEN"

    # rookie scoring
    PHASE_INVALID = "phase_invalid"
    SEATS_INVALID = "seats_invalid"
    MISSING_PLACEMENT = "missing_placement"
    NON_HERO_PLACEMENT = "non_hero_placement"
    CATALOG_UNAVAILABLE = "catalog_unavailable"
    MISSING_REVEAL = "missing_reveal"
    POWER_LOOKUP_FAILED = "power_lookup_failed"
    RESULTS_FROZEN = "results_frozen"

    END_PHASE_INVALID = "end_phase_invalid"

    # reward claim
    REWARD_NOT_READY = "REWARD_NOT_READY"
    NOT_WINNER = "NOT_WINNER"
    NO_REWARD = "NO_REWARD"
    WALLET_REQUIRED = "WALLET_REQUIRED"

    DETERMINISM_DIFF = "determinism_diff"


class ClaimStatus(str, Enum):
    """Outcome of a reward claim that did not fail."""

    REWARD_CLAIMED = "REWARD_CLAIMED"
    REWARD_ALREADY_CLAIMED = "REWARD_ALREADY_CLAIMED"
