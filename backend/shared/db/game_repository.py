"""SQLite-backed game repository and event log."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

from shared.dal.game_repository import DuplicateGameError, GameRepository
from shared.dal.models import EventRecord, GameRecord, SeatRecord

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from datetime import datetime

    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteGameRepository(GameRepository):
    """SQLite implementation of GameRepository.

    Events live in game_events with UNIQUE(game_id, seq); the next seq is
    computed inside the same BEGIN IMMEDIATE transaction that inserts the
    row and rewrites the games snapshot, so concurrent writers can neither
    duplicate nor skip a sequence number.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    @contextmanager
    def transaction(self, game_id: str) -> Iterator[None]:
        with self._db.transaction():
            yield

    def create_game(
        self,
        game: GameRecord,
        seats: Sequence[SeatRecord],
        event_type: str,
        payload: dict[str, Any],
    ) -> EventRecord:
        """Insert the game, its seats and the seq 1 event in one transaction."""
        try:
            with self._db.transaction() as conn:
                conn.execute(
                    "INSERT INTO games (id, mode_code, status, pointer, state, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        game.game_id,
                        game.mode_code,
                        game.status,
                        json.dumps(game.pointer),
                        json.dumps(game.state),
                        game.created_at.isoformat(),
                        game.updated_at.isoformat(),
                    ),
                )
                conn.executemany(
                    "INSERT INTO game_players (game_id, seat, deck_id) VALUES (?, ?, ?)",
                    [(seat.game_id, seat.seat, seat.deck_id) for seat in seats],
                )
                return self._insert_event(conn, game.game_id, event_type, payload, game.created_at)
        except sqlite3.IntegrityError as exc:
            logger.warning("game already exists, rejecting duplicate create", game_id=game.game_id)
            raise DuplicateGameError(game.game_id) from exc

    def get_game(self, game_id: str) -> GameRecord | None:
        with self._db.read() as conn:
            row = conn.execute(
                "SELECT id, mode_code, status, pointer, state, created_at, updated_at FROM games WHERE id = ?",
                (game_id,),
            ).fetchone()
        if row is None:
            return None
        return GameRecord(
            game_id=row[0],
            mode_code=row[1],
            status=row[2],
            pointer=json.loads(row[3]),
            state=json.loads(row[4]),
            created_at=row[5],
            updated_at=row[6],
        )

    def get_seats(self, game_id: str) -> list[SeatRecord]:
        with self._db.read() as conn:
            rows = conn.execute(
                "SELECT seat, deck_id FROM game_players WHERE game_id = ? ORDER BY seat",
                (game_id,),
            ).fetchall()
        return [SeatRecord(game_id=game_id, seat=row[0], deck_id=row[1]) for row in rows]

    def append_event(
        self,
        game_id: str,
        event_type: str,
        payload: dict[str, Any],
        *,
        created_at: datetime,
        state: dict[str, Any] | None = None,
        status: str | None = None,
        pointer: dict[str, Any] | None = None,
    ) -> EventRecord:
        """Append one event and update the snapshot columns that were given."""
        with self._db.transaction() as conn:
            if conn.execute("SELECT 1 FROM games WHERE id = ?", (game_id,)).fetchone() is None:
                raise KeyError(game_id)
            event = self._insert_event(conn, game_id, event_type, payload, created_at)
            assignments = ["updated_at = ?"]
            params: list[Any] = [created_at.isoformat()]
            if state is not None:
                assignments.append("state = ?")
                params.append(json.dumps(state))
            if status is not None:
                assignments.append("status = ?")
                params.append(status)
            if pointer is not None:
                assignments.append("pointer = ?")
                params.append(json.dumps(pointer))
            params.append(game_id)
            conn.execute(f"UPDATE games SET {', '.join(assignments)} WHERE id = ?", params)  # noqa: S608
            return event

    def read_events(self, game_id: str) -> list[EventRecord]:
        with self._db.read() as conn:
            rows = conn.execute(
                "SELECT seq, type, payload, created_at FROM game_events WHERE game_id = ? ORDER BY seq",
                (game_id,),
            ).fetchall()
        return [
            EventRecord(game_id=game_id, seq=row[0], type=row[1], payload=json.loads(row[2]), created_at=row[3])
            for row in rows
        ]

    @staticmethod
    def _insert_event(
        conn: sqlite3.Connection,
        game_id: str,
        event_type: str,
        payload: dict[str, Any],
        created_at: datetime,
    ) -> EventRecord:
        row = conn.execute("SELECT COALESCE(MAX(seq), 0) FROM game_events WHERE game_id = ?", (game_id,)).fetchone()
        seq = row[0] + 1
        payload_json = json.dumps(payload)
        conn.execute(
            "INSERT INTO game_events (game_id, seq, type, payload, created_at) VALUES (?, ?, ?, ?, ?)",
            (game_id, seq, event_type, payload_json, created_at.isoformat()),
        )
        return EventRecord(
            game_id=game_id,
            seq=seq,
            type=event_type,
            payload=json.loads(payload_json),
            created_at=created_at,
        )
