"""Typed domain exceptions for engine rule violations.

Every failure the engine reports is an EngineError subclass carrying a
closed ErrorKind plus structured context. Errors are raised from the
reducer, scoring and gate layers and caught at the service boundary,
where to_payload() gives the wire representation. No failed operation
writes an event or touches the cached state.
"""

from __future__ import annotations

from typing import Any

from engine.logic.enums import ErrorKind


class EngineError(Exception):
    """Base exception for engine failures.

    Attributes:
        kind: The closed error kind.
        context: Offending values (seat, zone_index, version_key, ...) for diagnosis.

    """

    def __init__(self, kind: ErrorKind, message: str | None = None, **context: Any) -> None:
        self.kind = kind
        self.context = context
        self.message = message or kind.value
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        """Boundary representation: error code, message and context fields."""
        return {"code": self.kind.value, "message": self.message, **self.context}


class ActionValidationError(EngineError):
    """Malformed input: missing seats, duplicate seats, missing action type, bad payload."""


class GameNotFoundError(EngineError):
    """No game exists with the requested id."""

    def __init__(self, game_id: str) -> None:
        super().__init__(ErrorKind.GAME_NOT_FOUND, f"game {game_id} not found", game_id=game_id)


class InvalidGameStatusError(EngineError):
    """The game is not in the status the operation requires."""

    def __init__(self, *, game_id: str, status: str, required: str) -> None:
        super().__init__(
            ErrorKind.INVALID_GAME_STATUS,
            f"game {game_id} is {status}, operation requires {required}",
            game_id=game_id,
            status=status,
            required=required,
        )


class GateViolation(EngineError):
    """Pointer could not be resolved, or a mutation was attempted after setup began."""


class ScoreValidationError(EngineError):
    """Rookie match scoring preconditions not met. State is left unchanged."""


class RookieEndMatchError(EngineError):
    """ROOKIE_END_MATCH attempted outside the SCORED phase."""


class RewardClaimError(EngineError):
    """Reward claim rejected before any wallet interaction."""


class DeterminismFailure(EngineError):
    """A replay diverged from its reference run.

    Attributes:
        diffs: Every path-level difference found, never truncated.

    """

    def __init__(self, diffs: list[str], **context: Any) -> None:
        self.diffs = diffs
        super().__init__(
            ErrorKind.DETERMINISM_DIFF,
            f"replay diverged with {len(diffs)} diff(s): {diffs}",
            diffs=diffs,
            **context,
        )


class CatalogUnavailableError(Exception):
    """Raised by a CardCatalog when the backing service cannot be reached."""


class EventSequenceError(Exception):
    """A stored event log is structurally invalid (gap, duplicate seq, missing CREATE)."""
