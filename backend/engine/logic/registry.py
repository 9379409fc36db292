"""
Ruleset registries: formats, game modes and engine compatibility.

Registries are JSON documents validated with pydantic. load_registries()
reads the three files from a directory and reports failures with stable
error codes so a misconfigured deployment fails at startup rather than
mid-session.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from engine.logic.enums import FormatGateMode

logger = structlog.get_logger()

APP_CONFIG_FILE = "app_config.json"
FORMAT_REGISTRY_FILE = "format_registry.json"
GAME_MODE_REGISTRY_FILE = "game_mode_registry.json"

_Model = TypeVar("_Model", bound=BaseModel)


class RegistryLoadError(Exception):
    """Raised when a registry file is missing, unparsable or violates its schema."""

    def __init__(self, code: str, path: Path, detail: str) -> None:
        self.code = code
        self.path = path
        super().__init__(f"{code}: {path}: {detail}")


class FormatRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    format_id: str
    format_version: int


class FormatEntry(BaseModel):
    """A playable format (deck construction and card pool rules)."""

    model_config = ConfigDict(frozen=True)

    format_id: str = Field(min_length=1)
    format_version: int = Field(ge=1)
    engine_compat_version: int = Field(ge=1)
    name: str = ""
    description: str = ""


class FormatGate(BaseModel):
    """Which formats a game mode accepts."""

    model_config = ConfigDict(frozen=True)

    mode: FormatGateMode = FormatGateMode.OPEN
    allowed_formats: tuple[FormatRef, ...] = ()
    denied_formats: tuple[FormatRef, ...] = ()

    def accepts(self, ref: FormatRef) -> bool:
        if self.mode == FormatGateMode.ALLOW_LIST:
            return ref in self.allowed_formats
        if self.mode == FormatGateMode.DENY_LIST:
            return ref not in self.denied_formats
        return True


class GameModeEntry(BaseModel):
    """A game mode definition (scoring ruleset) bound to a mode code."""

    model_config = ConfigDict(frozen=True)

    game_mode_id: str = Field(min_length=1)
    game_mode_version: int = Field(ge=1)
    mode_code: str | None = None
    name: str = ""
    format_gate: FormatGate = Field(default_factory=FormatGate)


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    schema_version: int = 1
    engine_supported_compat_versions: tuple[int, ...] = (1,)


class FormatRegistry(BaseModel):
    model_config = ConfigDict(frozen=True)

    schema_version: int = 1
    formats: tuple[FormatEntry, ...] = ()


class GameModeRegistry(BaseModel):
    model_config = ConfigDict(frozen=True)

    schema_version: int = 1
    game_modes: tuple[GameModeEntry, ...] = ()


@dataclass(frozen=True)
class RegistrySet:
    """The three registries the pointer gate resolves against."""

    app_config: AppConfig
    formats: FormatRegistry
    game_modes: GameModeRegistry

    def find_format(self, format_id: str, format_version: int) -> FormatEntry | None:
        for entry in self.formats.formats:
            if entry.format_id == format_id and entry.format_version == format_version:
                return entry
        return None

    def find_game_mode(self, game_mode_id: str, game_mode_version: int) -> GameModeEntry | None:
        for entry in self.game_modes.game_modes:
            if entry.game_mode_id == game_mode_id and entry.game_mode_version == game_mode_version:
                return entry
        return None


def _load_model(path: Path, model: type[_Model]) -> _Model:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise RegistryLoadError("CONFIG_NOT_FOUND", path, "file does not exist") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RegistryLoadError("CONFIG_INVALID_JSON", path, str(exc)) from exc
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise RegistryLoadError("CONFIG_SCHEMA_VIOLATION", path, f"{exc.error_count()} error(s)") from exc


def _reject_duplicates(path: Path, refs: list[str]) -> None:
    seen: set[str] = set()
    for ref in refs:
        if ref in seen:
            raise RegistryLoadError("CONFIG_DUPLICATE_POINTER", path, f"duplicate entry {ref}")
        seen.add(ref)


def load_registries(directory: Path | str) -> RegistrySet:
    """Load and validate app config, format registry and game mode registry from ``directory``."""
    base = Path(directory)
    format_path = base / FORMAT_REGISTRY_FILE
    game_mode_path = base / GAME_MODE_REGISTRY_FILE

    app_config = _load_model(base / APP_CONFIG_FILE, AppConfig)
    formats = _load_model(format_path, FormatRegistry)
    game_modes = _load_model(game_mode_path, GameModeRegistry)

    _reject_duplicates(format_path, [f"{e.format_id}@{e.format_version}" for e in formats.formats])
    _reject_duplicates(game_mode_path, [f"{e.game_mode_id}@{e.game_mode_version}" for e in game_modes.game_modes])

    logger.info(
        "registries loaded",
        directory=str(base),
        formats=len(formats.formats),
        game_modes=len(game_modes.game_modes),
    )
    return RegistrySet(app_config=app_config, formats=formats, game_modes=game_modes)
