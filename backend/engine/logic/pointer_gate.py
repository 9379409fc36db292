"""
Session pointer gate.

Resolves a session's (format, game mode) pointer against the registries
when setup begins and refuses every pointer mutation afterwards, identical
values included. A frozen pointer is what keeps a session's rules from
drifting between live play and replay.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from engine.logic.enums import ErrorKind
from engine.logic.exceptions import GateViolation
from engine.logic.registry import FormatEntry, FormatRef, GameModeEntry

if TYPE_CHECKING:
    from engine.logic.registry import RegistrySet
    from engine.logic.state import SessionPointer

logger = structlog.get_logger()


class ResolvedPointer(BaseModel):
    """Registry snapshots a pointer resolved to, frozen at setup."""

    model_config = ConfigDict(frozen=True)

    format: FormatEntry
    game_mode: GameModeEntry


class SessionPointerGate:
    """Validates pointers against the registries and guards them after setup."""

    def __init__(self, registries: RegistrySet) -> None:
        self._registries = registries

    def resolve(self, pointer: SessionPointer) -> ResolvedPointer:
        """
        Resolve both halves of a pointer.

        The format and game-mode halves are looked up independently; a miss
        on either raises its own GateViolation kind.

        Raises:
            GateViolation: FORMAT_NOT_FOUND, GAMEMODE_NOT_FOUND,
                ENGINE_COMPAT_UNSUPPORTED or FORMAT_GATE_REJECTED

        """
        fmt = self._registries.find_format(pointer.format_id, pointer.format_version)
        if fmt is None:
            raise GateViolation(
                ErrorKind.FORMAT_NOT_FOUND,
                f"FORMAT_NOT_FOUND: {pointer.format_ref}",
                format=pointer.format_ref,
            )

        game_mode = self._registries.find_game_mode(pointer.game_mode_id, pointer.game_mode_version)
        if game_mode is None:
            raise GateViolation(
                ErrorKind.GAMEMODE_NOT_FOUND,
                f"GAMEMODE_NOT_FOUND: {pointer.game_mode_ref}",
                game_mode=pointer.game_mode_ref,
            )

        supported = self._registries.app_config.engine_supported_compat_versions
        if fmt.engine_compat_version not in supported:
            raise GateViolation(
                ErrorKind.ENGINE_COMPAT_UNSUPPORTED,
                f"ENGINE_COMPAT_UNSUPPORTED: {pointer.format_ref} requires compat {fmt.engine_compat_version}",
                format=pointer.format_ref,
                engine_compat_version=fmt.engine_compat_version,
            )

        if not game_mode.format_gate.accepts(FormatRef(format_id=fmt.format_id, format_version=fmt.format_version)):
            raise GateViolation(
                ErrorKind.FORMAT_GATE_REJECTED,
                f"FORMAT_GATE_REJECTED: {pointer.game_mode_ref} does not accept {pointer.format_ref}",
                format=pointer.format_ref,
                game_mode=pointer.game_mode_ref,
            )

        return ResolvedPointer(format=fmt, game_mode=game_mode)

    @staticmethod
    def check_mutable(*, game_id: str, locked: bool, operation: str) -> None:
        """Reject any pointer mutation once setup has begun."""
        if locked:
            logger.warning("pointer mutation after setup rejected", game_id=game_id, operation=operation)
            raise GateViolation(
                ErrorKind.POINTER_MUTATION_FORBIDDEN,
                f"SESSION_MUTATION_FORBIDDEN_POST_SETUP: {operation}",
                game_id=game_id,
                operation=operation,
            )
