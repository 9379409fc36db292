"""SQLite-backed wallet ledger.

Shares the Database with SqliteGameRepository, so a credit made inside a
repository transaction commits or rolls back together with the event that
records it.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog

from shared.dal.models import WalletTransaction
from shared.dal.wallet_ledger import WalletLedger, WalletNotFoundError

if TYPE_CHECKING:
    from datetime import datetime

    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteWalletLedger(WalletLedger):
    """SQLite implementation of WalletLedger."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def open_wallet(self, user_id: str) -> None:
        with self._db.transaction() as conn:
            conn.execute("INSERT OR IGNORE INTO wallets (user_id, earned_balance) VALUES (?, 0)", (user_id,))

    def get_earned_balance(self, user_id: str) -> int | None:
        with self._db.read() as conn:
            row = conn.execute(
                "SELECT earned_balance FROM wallets WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        return None if row is None else row[0]

    def credit_earned_balance(
        self,
        user_id: str,
        amount: int,
        *,
        reason: str,
        created_at: datetime,
    ) -> WalletTransaction:
        tx = WalletTransaction(
            transaction_id=uuid.uuid4().hex,
            user_id=user_id,
            amount=amount,
            reason=reason,
            created_at=created_at,
        )
        with self._db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE wallets SET earned_balance = earned_balance + ? WHERE user_id = ?",
                (amount, user_id),
            )
            if cursor.rowcount == 0:
                raise WalletNotFoundError(user_id)
            conn.execute(
                "INSERT INTO wallet_transactions (id, user_id, asset_type, amount, reason, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (tx.transaction_id, user_id, tx.asset_type, amount, reason, created_at.isoformat()),
            )
        logger.info("wallet credited", user_id=user_id, amount=amount, transaction_id=tx.transaction_id)
        return tx

    def list_transactions(self, user_id: str) -> list[WalletTransaction]:
        with self._db.read() as conn:
            rows = conn.execute(
                "SELECT id, asset_type, amount, reason, created_at FROM wallet_transactions "
                "WHERE user_id = ? ORDER BY created_at, id",
                (user_id,),
            ).fetchall()
        return [
            WalletTransaction(
                transaction_id=row[0],
                user_id=user_id,
                asset_type=row[1],
                amount=row[2],
                reason=row[3],
                created_at=row[4],
            )
            for row in rows
        ]
