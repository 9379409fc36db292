"""
Engine service: the public operations of the card-match engine.

Every state-changing operation runs inside the repository's per-game
transaction: load the cached snapshot, validate it into typed models,
compute the next state with the pure reducer, then append the event and
the new snapshot together. Failures raise EngineError subclasses before
anything is written.
"""

from __future__ import annotations

import json
import uuid
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from engine.logic.clock import SystemClock
from engine.logic.diff import structural_diff
from engine.logic.enums import ErrorKind, GameStatus, ModeCode, SystemEventType
from engine.logic.event_log import EventLog
from engine.logic.exceptions import (
    ActionValidationError,
    DeterminismFailure,
    EngineError,
    GameNotFoundError,
    InvalidGameStatusError,
)
from engine.logic.fold import fold_events
from engine.logic.pointer_gate import SessionPointerGate
from engine.logic.reducer import (
    SYSTEM_EVENT_TYPES,
    initial_state,
    logged_payload,
    normalize_mode_code,
    reduce,
    start_state,
)
from engine.logic.rookie import SCORED_RESULTS_KEY
from engine.logic.state import GameState, SessionPointer
from engine.logic.types import CreatePayload, PointerSetPayload, SeatAssignment
from shared.dal.game_repository import DuplicateGameError
from shared.dal.models import GameRecord, SeatRecord

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from engine.logic.catalog import CardCatalog
    from engine.logic.clock import Clock
    from engine.logic.registry import RegistrySet
    from shared.dal.game_repository import GameRepository
    from shared.dal.models import EventRecord

logger = structlog.get_logger()

_KNOWN_MODES = frozenset(mode.value for mode in ModeCode)


class GameSnapshot(BaseModel):
    """Typed view of a stored game."""

    model_config = ConfigDict(frozen=True)

    game_id: str
    mode_code: str
    status: GameStatus
    seats: tuple[int, ...]
    pointer: SessionPointer
    state: GameState


def _json_payload(action_type: str, payload: Mapping[str, Any] | None) -> dict[str, Any]:
    """Normalize a payload to the exact JSON shape the log will store."""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ActionValidationError(
            ErrorKind.INVALID_PAYLOAD,
            f"{action_type} payload must be an object",
            action_type=action_type,
        )
    try:
        return json.loads(json.dumps(payload))
    except (TypeError, ValueError) as exc:
        raise ActionValidationError(
            ErrorKind.INVALID_PAYLOAD,
            f"{action_type} payload is not JSON serializable",
            action_type=action_type,
        ) from exc


def _parse_players(players: Sequence[SeatAssignment | Mapping[str, Any]]) -> tuple[SeatAssignment, ...]:
    if not players:
        raise ActionValidationError(ErrorKind.MISSING_PLAYERS, "a game needs at least one player")
    parsed: list[SeatAssignment] = []
    for player in players:
        if isinstance(player, SeatAssignment):
            parsed.append(player)
            continue
        try:
            parsed.append(SeatAssignment.model_validate(player))
        except ValidationError as exc:
            raise ActionValidationError(
                ErrorKind.INVALID_SEAT,
                f"invalid player entry: {player!r}",
                player=dict(player),
            ) from exc
    seats = [player.seat for player in parsed]
    duplicates = sorted({seat for seat in seats if seats.count(seat) > 1})
    if duplicates:
        raise ActionValidationError(
            ErrorKind.DUPLICATE_SEATS,
            f"duplicate seats: {duplicates}",
            seats=duplicates,
        )
    return tuple(sorted(parsed, key=lambda p: p.seat))


def _parse_pointer(pointer: SessionPointer | Mapping[str, Any]) -> SessionPointer:
    if isinstance(pointer, SessionPointer):
        return pointer
    try:
        return SessionPointer.model_validate(pointer)
    except ValidationError as exc:
        raise ActionValidationError(
            ErrorKind.INVALID_PAYLOAD,
            f"invalid pointer: {exc.error_count()} error(s)",
        ) from exc


def load_game(repository: GameRepository, game_id: str) -> tuple[GameRecord, GameSnapshot]:
    """Read a game and validate its snapshot into typed models."""
    record = repository.get_game(game_id)
    if record is None:
        raise GameNotFoundError(game_id)
    snapshot = GameSnapshot(
        game_id=record.game_id,
        mode_code=record.mode_code,
        status=GameStatus(record.status),
        seats=tuple(seat.seat for seat in repository.get_seats(game_id)),
        pointer=SessionPointer.model_validate(record.pointer),
        state=GameState.model_validate(record.state),
    )
    return record, snapshot


class EngineService:
    """Card-match engine operations over an injected repository, catalog, registry set and clock."""

    def __init__(
        self,
        repository: GameRepository,
        *,
        catalog: CardCatalog,
        registries: RegistrySet,
        clock: Clock | None = None,
    ) -> None:
        self._repository = repository
        self._log = EventLog(repository)
        self._catalog = catalog
        self._gate = SessionPointerGate(registries)
        self._clock = clock or SystemClock()

    @property
    def repository(self) -> GameRepository:
        return self._repository

    @property
    def clock(self) -> Clock:
        return self._clock

    def create_game(
        self,
        mode_code: str,
        players: Sequence[SeatAssignment | Mapping[str, Any]],
        pointer: SessionPointer | Mapping[str, Any],
        *,
        game_id: str | None = None,
    ) -> GameSnapshot:
        """
        Create a game in LOBBY and record its CREATE event at seq 1.

        Raises:
            ActionValidationError: Unknown mode, missing or duplicate seats,
                malformed pointer, or an existing game id

        """
        normalized_mode = normalize_mode_code(mode_code)
        if normalized_mode not in _KNOWN_MODES:
            raise ActionValidationError(ErrorKind.UNKNOWN_MODE, f"unknown mode {mode_code!r}", mode_code=mode_code)
        parsed_players = _parse_players(players)
        parsed_pointer = _parse_pointer(pointer)
        resolved_id = game_id or uuid.uuid4().hex

        now = self._clock.now()
        state = initial_state(normalized_mode)
        payload = CreatePayload(mode_code=normalized_mode, players=parsed_players, pointer=parsed_pointer)
        record = GameRecord(
            game_id=resolved_id,
            mode_code=normalized_mode,
            status=GameStatus.LOBBY.value,
            pointer=parsed_pointer.model_dump(mode="json"),
            state=state.model_dump(mode="json"),
            created_at=now,
            updated_at=now,
        )
        seats = [SeatRecord(game_id=resolved_id, seat=p.seat, deck_id=p.deck_id) for p in parsed_players]
        try:
            self._repository.create_game(record, seats, SystemEventType.CREATE.value, payload.model_dump(mode="json"))
        except DuplicateGameError as exc:
            raise ActionValidationError(
                ErrorKind.GAME_EXISTS,
                f"game {resolved_id} already exists",
                game_id=resolved_id,
            ) from exc

        logger.info("game created", game_id=resolved_id, mode_code=normalized_mode, seats=[p.seat for p in parsed_players])
        return GameSnapshot(
            game_id=resolved_id,
            mode_code=normalized_mode,
            status=GameStatus.LOBBY,
            seats=tuple(p.seat for p in parsed_players),
            pointer=parsed_pointer,
            state=state,
        )

    def set_format_pointer(self, game_id: str, format_id: str, format_version: int) -> SessionPointer:
        """Replace the format half of the pointer. Allowed only before setup."""
        return self._set_pointer(
            game_id,
            "setFormatPointer",
            {"format_id": format_id, "format_version": format_version},
        )

    def set_game_mode_pointer(self, game_id: str, game_mode_id: str, game_mode_version: int) -> SessionPointer:
        """Replace the game-mode half of the pointer. Allowed only before setup."""
        return self._set_pointer(
            game_id,
            "setGameModePointer",
            {"game_mode_id": game_mode_id, "game_mode_version": game_mode_version},
        )

    def _set_pointer(self, game_id: str, operation: str, update: dict[str, Any]) -> SessionPointer:
        with structlog.contextvars.bound_contextvars(game_id=game_id), self._repository.transaction(game_id):
            _record, game = load_game(self._repository, game_id)
            self._gate.check_mutable(game_id=game_id, locked=game.status == GameStatus.ACTIVE, operation=operation)
            pointer = _parse_pointer({**game.pointer.model_dump(), **update})
            payload = PointerSetPayload(pointer=pointer).model_dump(mode="json")
            self._log.append(
                game_id,
                SystemEventType.POINTER_SET.value,
                payload,
                created_at=self._clock.now(),
                pointer=pointer.model_dump(mode="json"),
            )
            logger.info("pointer updated", operation=operation, pointer=pointer.model_dump())
            return pointer

    def start_game(self, game_id: str) -> GameState:
        """
        Resolve and freeze the pointer, then move the game from LOBBY to ACTIVE.

        Seeds turn=1 and the active seat; rookie games enter SETUP.

        Raises:
            GameNotFoundError: No such game
            InvalidGameStatusError: The game has already started
            GateViolation: The pointer does not resolve

        """
        with structlog.contextvars.bound_contextvars(game_id=game_id), self._repository.transaction(game_id):
            _record, game = load_game(self._repository, game_id)
            if game.status != GameStatus.LOBBY:
                raise InvalidGameStatusError(game_id=game_id, status=game.status.value, required=GameStatus.LOBBY.value)
            resolved = self._gate.resolve(game.pointer)
            state = start_state(game.state, game.seats)
            event = self._log.append(
                game_id,
                SystemEventType.START.value,
                resolved.model_dump(mode="json"),
                created_at=self._clock.now(),
                state=state.model_dump(mode="json"),
                status=GameStatus.ACTIVE.value,
            )
            logger.info(
                "game started, pointer locked",
                seq=event.seq,
                format=game.pointer.format_ref,
                game_mode=game.pointer.game_mode_ref,
            )
            return state

    def apply_action(self, game_id: str, action_type: str, payload: Mapping[str, Any] | None = None) -> GameState:
        """
        Apply one client action to an ACTIVE game and return the new state.

        The action is appended to the log even when it is a no-op for the
        game's mode. Failed actions append nothing.

        Raises:
            ActionValidationError: Missing or reserved action type, bad payload
            GameNotFoundError: No such game
            InvalidGameStatusError: The game is not ACTIVE
            EngineError: Any reducer or scoring failure

        """
        if not action_type:
            raise ActionValidationError(ErrorKind.MISSING_ACTION_TYPE, "action type is required")
        if action_type in SYSTEM_EVENT_TYPES:
            raise ActionValidationError(
                ErrorKind.RESERVED_ACTION_TYPE,
                f"{action_type} is written by the engine and cannot be submitted",
                action_type=action_type,
            )
        data = _json_payload(action_type, payload)
        if SCORED_RESULTS_KEY in data:
            raise ActionValidationError(
                ErrorKind.INVALID_PAYLOAD,
                f"{SCORED_RESULTS_KEY} is recorded by the engine and cannot be submitted",
                action_type=action_type,
            )

        with structlog.contextvars.bound_contextvars(game_id=game_id, action_type=action_type):
            try:
                with self._repository.transaction(game_id):
                    _record, game = load_game(self._repository, game_id)
                    if game.status != GameStatus.ACTIVE:
                        raise InvalidGameStatusError(
                            game_id=game_id,
                            status=game.status.value,
                            required=GameStatus.ACTIVE.value,
                        )
                    at = self._clock.now()
                    next_state = reduce(
                        game.mode_code,
                        game.state,
                        game.seats,
                        action_type,
                        data,
                        at=at,
                        catalog=self._catalog,
                    )
                    event = self._log.append(
                        game_id,
                        action_type,
                        logged_payload(game.mode_code, next_state, action_type, data),
                        created_at=at,
                        state=next_state.model_dump(mode="json"),
                    )
            except EngineError as exc:
                logger.warning("action rejected", error_kind=exc.kind, error=exc.message)
                raise
            logger.info("action applied", seq=event.seq, no_op=next_state == game.state)
            return next_state

    def replay(self, events: Sequence[EventRecord]) -> GameState:
        """Fold an event sequence from seq 1 and return the resulting state."""
        return fold_events(events, self._catalog).state

    def get_pointer(self, game_id: str) -> SessionPointer:
        """Return the (format, game mode) pointer the game is bound to."""
        _record, game = load_game(self._repository, game_id)
        return game.pointer

    def get_game(self, game_id: str) -> GameSnapshot:
        _record, game = load_game(self._repository, game_id)
        return game

    def read_events(self, game_id: str) -> list[EventRecord]:
        if self._repository.get_game(game_id) is None:
            raise GameNotFoundError(game_id)
        return self._log.read(game_id)

    def verify_game(self, game_id: str) -> GameState:
        """
        Fold the stored log and compare it with the cached snapshot.

        Raises:
            DeterminismFailure: The fold differs from the snapshot, or a
                stored action no longer reduces cleanly

        """
        with structlog.contextvars.bound_contextvars(game_id=game_id), self._repository.transaction(game_id):
            _record, game = load_game(self._repository, game_id)
            events = self._log.read(game_id)
            try:
                folded = fold_events(events, self._catalog)
            except EngineError as exc:
                raise DeterminismFailure([f"fold failed: {exc.kind.value}: {exc.message}"], game_id=game_id) from exc
            stored = game.model_dump(mode="json")
            rebuilt = GameSnapshot(
                game_id=folded.game_id,
                mode_code=folded.mode_code,
                status=folded.status,
                seats=folded.seats,
                pointer=folded.pointer,
                state=folded.state,
            ).model_dump(mode="json")
            diffs = structural_diff(stored, rebuilt)
            if diffs:
                logger.error("stored snapshot diverges from event log", diff_count=len(diffs))
                raise DeterminismFailure(diffs, game_id=game_id)
            return folded.state
