"""Abstract interface for the wallet ledger collaborator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from shared.dal.models import WalletTransaction


class WalletNotFoundError(Exception):
    """Raised when crediting a user who has no wallet."""


class WalletLedger(ABC):
    """Abstract interface for crediting earned balances."""

    @abstractmethod
    def open_wallet(self, user_id: str) -> None: ...

    @abstractmethod
    def get_earned_balance(self, user_id: str) -> int | None: ...

    @abstractmethod
    def credit_earned_balance(
        self,
        user_id: str,
        amount: int,
        *,
        reason: str,
        created_at: datetime,
    ) -> WalletTransaction: ...

    @abstractmethod
    def list_transactions(self, user_id: str) -> list[WalletTransaction]: ...
