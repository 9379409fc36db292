"""In-process implementations of the data access interfaces.

Used by replay runs and tests. Each game has its own re-entrant lock, so
appends to one game are serialized while other games proceed in parallel.
A transaction that raises restores the game's record and event list to
what they were when it began.
"""

from __future__ import annotations

import copy
import itertools
import json
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

from shared.dal.game_repository import DuplicateGameError, GameRepository
from shared.dal.models import EventRecord, GameRecord, SeatRecord, WalletTransaction
from shared.dal.wallet_ledger import WalletLedger, WalletNotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from datetime import datetime

logger = structlog.get_logger()


def _plain(payload: dict[str, Any]) -> dict[str, Any]:
    # Same value shapes the SQLite store hands back (tuples become lists, etc.).
    return json.loads(json.dumps(payload))


class InMemoryGameRepository(GameRepository):
    """Dict-backed GameRepository with per-game locking.

    Reads take the game's lock too, so an open transaction on another
    thread is never observed half-applied.
    """

    def __init__(self) -> None:
        self._games: dict[str, GameRecord] = {}
        self._seats: dict[str, list[SeatRecord]] = {}
        self._events: dict[str, list[EventRecord]] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._depth: dict[str, int] = {}
        self._guard = threading.Lock()

    def _lock_for(self, game_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(game_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[game_id] = lock
            return lock

    @contextmanager
    def transaction(self, game_id: str) -> Iterator[None]:
        with self._lock_for(game_id):
            depth = self._depth.get(game_id, 0)
            self._depth[game_id] = depth + 1
            saved_game = self._games.get(game_id)
            saved_count = len(self._events.get(game_id, []))
            try:
                yield
            except Exception:
                if depth == 0:
                    self._rollback(game_id, saved_game, saved_count)
                raise
            finally:
                self._depth[game_id] = depth

    def _rollback(self, game_id: str, saved_game: GameRecord | None, saved_count: int) -> None:
        if saved_game is None:
            self._games.pop(game_id, None)
            self._seats.pop(game_id, None)
            self._events.pop(game_id, None)
            return
        self._games[game_id] = saved_game
        del self._events[game_id][saved_count:]

    def create_game(
        self,
        game: GameRecord,
        seats: Sequence[SeatRecord],
        event_type: str,
        payload: dict[str, Any],
    ) -> EventRecord:
        with self.transaction(game.game_id):
            if game.game_id in self._games:
                logger.warning("game already exists, rejecting duplicate create", game_id=game.game_id)
                raise DuplicateGameError(game.game_id)
            self._games[game.game_id] = game.model_copy(update={"state": _plain(game.state)})
            self._seats[game.game_id] = sorted(seats, key=lambda s: s.seat)
            event = EventRecord(
                game_id=game.game_id,
                seq=1,
                type=event_type,
                payload=_plain(payload),
                created_at=game.created_at,
            )
            self._events[game.game_id] = [event]
            return event

    def get_game(self, game_id: str) -> GameRecord | None:
        with self._lock_for(game_id):
            return self._games.get(game_id)

    def get_seats(self, game_id: str) -> list[SeatRecord]:
        with self._lock_for(game_id):
            return list(self._seats.get(game_id, []))

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
        with self.transaction(game_id):
            game = self._games.get(game_id)
            if game is None:
                raise KeyError(game_id)
            events = self._events[game_id]
            seq = events[-1].seq + 1 if events else 1
            event = EventRecord(
                game_id=game_id,
                seq=seq,
                type=event_type,
                payload=_plain(payload),
                created_at=created_at,
            )
            update: dict[str, Any] = {"updated_at": created_at}
            if state is not None:
                update["state"] = _plain(state)
            if status is not None:
                update["status"] = status
            if pointer is not None:
                update["pointer"] = _plain(pointer)
            events.append(event)
            self._games[game_id] = game.model_copy(update=update)
            return event

    def read_events(self, game_id: str) -> list[EventRecord]:
        with self._lock_for(game_id):
            return list(self._events.get(game_id, []))


class InMemoryWalletLedger(WalletLedger):
    """Dict-backed wallet ledger with sequential transaction ids."""

    def __init__(self) -> None:
        self._balances: dict[str, int] = {}
        self._transactions: dict[str, list[WalletTransaction]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def open_wallet(self, user_id: str) -> None:
        with self._lock:
            self._balances.setdefault(user_id, 0)

    def get_earned_balance(self, user_id: str) -> int | None:
        with self._lock:
            return self._balances.get(user_id)

    def credit_earned_balance(
        self,
        user_id: str,
        amount: int,
        *,
        reason: str,
        created_at: datetime,
    ) -> WalletTransaction:
        with self._lock:
            if user_id not in self._balances:
                raise WalletNotFoundError(user_id)
            tx = WalletTransaction(
                transaction_id=f"tx-{next(self._ids)}",
                user_id=user_id,
                amount=amount,
                reason=reason,
                created_at=created_at,
            )
            self._balances[user_id] += amount
            self._transactions.setdefault(user_id, []).append(tx)
            return tx

    def list_transactions(self, user_id: str) -> list[WalletTransaction]:
        with self._lock:
            return copy.copy(self._transactions.get(user_id, []))
