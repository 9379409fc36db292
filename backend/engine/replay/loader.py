"""Replay loader: parse a JSON replay bundle into ReplayInput.

A bundle file is a single JSON object with a ``version`` tag and the
ReplayInput fields. Unknown versions are rejected rather than guessed at.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from engine.replay.models import REPLAY_VERSION, ReplayInput

# Safety limit to prevent memory exhaustion from maliciously large replay files.
_MAX_REPLAY_BYTES = 10 * 1024 * 1024


class ReplayLoadError(Exception):
    """Raised when a replay bundle cannot be loaded or parsed."""


def load_replay_from_string(content: str) -> ReplayInput:
    """Parse a JSON replay bundle."""
    if len(content.encode("utf-8")) > _MAX_REPLAY_BYTES:
        raise ReplayLoadError(f"Replay bundle exceeds {_MAX_REPLAY_BYTES} bytes")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ReplayLoadError(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ReplayLoadError("Replay bundle must be a JSON object")

    version = data.pop("version", None)
    if version is None:
        raise ReplayLoadError("Replay bundle missing 'version' field")
    if version != REPLAY_VERSION:
        raise ReplayLoadError(f"Replay version mismatch: expected {REPLAY_VERSION}, got {version}")

    try:
        return ReplayInput.model_validate(data)
    except ValidationError as exc:
        raise ReplayLoadError(f"Invalid replay bundle: {exc.error_count()} error(s)") from exc


def load_replay_from_file(path: Path | str) -> ReplayInput:
    """Read and parse a JSON replay bundle from disk."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ReplayLoadError(f"Cannot read replay file {path}: {exc}") from exc
    return load_replay_from_string(content)


def dump_replay(replay: ReplayInput) -> str:
    """Serialize a ReplayInput to the bundle format read by load_replay_from_string."""
    return json.dumps({"version": REPLAY_VERSION, **replay.model_dump(mode="json")}, indent=2)
