"""Behavior shared by the in-memory and SQLite repositories."""

from __future__ import annotations

import contextlib
import threading
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from shared.dal.game_repository import DuplicateGameError
from shared.dal.memory import InMemoryGameRepository, InMemoryWalletLedger
from shared.dal.models import GameRecord, SeatRecord
from shared.dal.wallet_ledger import WalletNotFoundError
from shared.db.game_repository import SqliteGameRepository
from shared.db.wallet_ledger import SqliteWalletLedger

if TYPE_CHECKING:
    from shared.dal.game_repository import GameRepository
    from shared.dal.wallet_ledger import WalletLedger

T0 = datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC)


def _game(game_id: str = "g1") -> GameRecord:
    return GameRecord(
        game_id=game_id,
        mode_code="ROOKIE",
        status="LOBBY",
        pointer={"format_id": "F", "format_version": 1, "game_mode_id": "G", "game_mode_version": 1},
        state={"turn": 0, "seats": (1, 2)},
        created_at=T0,
        updated_at=T0,
    )


def _seats(game_id: str = "g1") -> list[SeatRecord]:
    return [SeatRecord(game_id=game_id, seat=2, deck_id="b"), SeatRecord(game_id=game_id, seat=1, deck_id="a")]


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, database) -> GameRepository:
    return InMemoryGameRepository() if request.param == "memory" else SqliteGameRepository(database)


@pytest.fixture(params=["memory", "sqlite"])
def wallet(request, database) -> WalletLedger:
    return InMemoryWalletLedger() if request.param == "memory" else SqliteWalletLedger(database)


class TestGameRepository:
    def test_create_writes_game_seats_and_first_event(self, repo):
        event = repo.create_game(_game(), _seats(), "CREATE", {"mode_code": "ROOKIE"})

        assert (event.seq, event.type) == (1, "CREATE")
        game = repo.get_game("g1")
        assert game.status == "LOBBY"
        assert game.state == {"turn": 0, "seats": [1, 2]}
        assert [s.seat for s in repo.get_seats("g1")] == [1, 2]
        assert repo.read_events("g1") == [event]

    def test_get_returns_none_for_unknown(self, repo):
        assert repo.get_game("missing") is None
        assert repo.get_seats("missing") == []
        assert repo.read_events("missing") == []

    def test_duplicate_create_raises(self, repo):
        repo.create_game(_game(), _seats(), "CREATE", {})

        with pytest.raises(DuplicateGameError):
            repo.create_game(_game(), _seats(), "CREATE", {"again": True})

        assert len(repo.read_events("g1")) == 1

    def test_append_assigns_next_seq_and_updates_snapshot(self, repo):
        repo.create_game(_game(), _seats(), "CREATE", {})
        later = T0 + timedelta(seconds=5)

        repo.append_event("g1", "START", {}, created_at=T0, status="ACTIVE", state={"turn": 1})
        event = repo.append_event("g1", "END_TURN", {"n": 1}, created_at=later, state={"turn": 2})

        assert event.seq == 3
        game = repo.get_game("g1")
        assert (game.status, game.state, game.updated_at) == ("ACTIVE", {"turn": 2}, later)
        assert game.pointer["format_id"] == "F"
        assert [e.seq for e in repo.read_events("g1")] == [1, 2, 3]

    def test_append_pointer_only(self, repo):
        repo.create_game(_game(), _seats(), "CREATE", {})
        pointer = {"format_id": "F2", "format_version": 1, "game_mode_id": "G", "game_mode_version": 1}

        repo.append_event("g1", "POINTER_SET", {"pointer": pointer}, created_at=T0, pointer=pointer)

        game = repo.get_game("g1")
        assert game.pointer == pointer
        assert game.state == {"turn": 0, "seats": [1, 2]}

    def test_append_to_unknown_game(self, repo):
        with pytest.raises(KeyError):
            repo.append_event("missing", "END_TURN", {}, created_at=T0)

    def test_sequences_are_per_game(self, repo):
        repo.create_game(_game("a"), _seats("a"), "CREATE", {})
        repo.create_game(_game("b"), _seats("b"), "CREATE", {})

        repo.append_event("a", "END_TURN", {}, created_at=T0)

        assert repo.append_event("b", "END_TURN", {}, created_at=T0).seq == 2

    def test_failed_transaction_discards_appends(self, repo):
        repo.create_game(_game(), _seats(), "CREATE", {})

        with pytest.raises(RuntimeError, match="abort"), repo.transaction("g1"):
            repo.append_event("g1", "END_TURN", {}, created_at=T0, state={"turn": 5})
            raise RuntimeError("abort")

        assert [e.seq for e in repo.read_events("g1")] == [1]
        assert repo.get_game("g1").state == {"turn": 0, "seats": [1, 2]}

    def test_reads_wait_for_open_transaction_on_another_thread(self, repo):
        repo.create_game(_game(), _seats(), "CREATE", {})
        appended = threading.Event()
        release = threading.Event()
        done = threading.Event()
        seen: dict[str, object] = {}

        def write_then_abort():
            with contextlib.suppress(RuntimeError), repo.transaction("g1"):
                repo.append_event("g1", "END_TURN", {}, created_at=T0, state={"turn": 5})
                appended.set()
                release.wait(5)
                raise RuntimeError("abort")

        def read():
            seen["state"] = repo.get_game("g1").state
            seen["seqs"] = [e.seq for e in repo.read_events("g1")]
            done.set()

        writer = threading.Thread(target=write_then_abort)
        writer.start()
        assert appended.wait(5)
        reader = threading.Thread(target=read)
        reader.start()

        assert not done.wait(0.2)
        release.set()
        writer.join(5)
        reader.join(5)

        assert done.is_set()
        assert seen == {"state": {"turn": 0, "seats": [1, 2]}, "seqs": [1]}

    def test_failed_create_inside_transaction_leaves_nothing(self, repo):
        with pytest.raises(RuntimeError, match="abort"), repo.transaction("g1"):
            repo.create_game(_game(), _seats(), "CREATE", {})
            raise RuntimeError("abort")

        assert repo.get_game("g1") is None
        assert repo.read_events("g1") == []

    def test_payload_is_stored_as_json(self, repo):
        event = repo.create_game(_game(), _seats(), "CREATE", {"zones": (0, 1)})

        assert event.payload == {"zones": [0, 1]}
        assert repo.read_events("g1")[0].payload == {"zones": [0, 1]}


class TestWalletLedger:
    def test_credit_updates_balance_and_history(self, wallet):
        wallet.open_wallet("alice")

        tx = wallet.credit_earned_balance("alice", 3, reason="WIN", created_at=T0)

        assert wallet.get_earned_balance("alice") == 3
        assert tx.asset_type == "EARNED"
        assert wallet.list_transactions("alice") == [tx]

    def test_open_wallet_is_idempotent(self, wallet):
        wallet.open_wallet("alice")
        wallet.credit_earned_balance("alice", 1, reason="WIN", created_at=T0)
        wallet.open_wallet("alice")

        assert wallet.get_earned_balance("alice") == 1

    def test_unknown_wallet(self, wallet):
        assert wallet.get_earned_balance("nobody") is None
        with pytest.raises(WalletNotFoundError):
            wallet.credit_earned_balance("nobody", 1, reason="WIN", created_at=T0)
        assert wallet.list_transactions("nobody") == []

    def test_transaction_ids_are_unique(self, wallet):
        wallet.open_wallet("alice")

        first = wallet.credit_earned_balance("alice", 1, reason="WIN", created_at=T0)
        second = wallet.credit_earned_balance("alice", 1, reason="WIN", created_at=T0 + timedelta(seconds=1))

        assert first.transaction_id != second.transaction_id
        assert wallet.get_earned_balance("alice") == 2
