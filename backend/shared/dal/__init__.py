"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.game_repository import DuplicateGameError, GameRepository
from shared.dal.memory import InMemoryGameRepository, InMemoryWalletLedger
from shared.dal.models import EventRecord, GameRecord, SeatRecord, WalletTransaction
from shared.dal.wallet_ledger import WalletLedger, WalletNotFoundError

__all__ = [
    "DuplicateGameError",
    "EventRecord",
    "GameRecord",
    "GameRepository",
    "InMemoryGameRepository",
    "InMemoryWalletLedger",
    "SeatRecord",
    "WalletLedger",
    "WalletNotFoundError",
    "WalletTransaction",
]
