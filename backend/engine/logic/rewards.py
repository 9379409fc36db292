"""
Reward claim boundary between the engine and the wallet ledger.

A match's reward is credited at most once. The claim reads the sealed
reward_eligible record, checks the reward_paid_at marker and, inside the
game's transaction, credits the wallet and appends a REWARD_PAID event
that carries the marker back into state. When the ledger and the event log
share a database the credit and the event commit together.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from engine.logic.clock import SystemClock
from engine.logic.enums import ClaimStatus, ErrorKind, RookiePhase, SystemEventType
from engine.logic.exceptions import RewardClaimError
from engine.logic.reducer import apply_reward_paid
from engine.logic.rookie import REWARD_REASON_WIN
from engine.logic.service import load_game
from engine.logic.types import RewardPaidPayload
from shared.dal.wallet_ledger import WalletNotFoundError

if TYPE_CHECKING:
    from engine.logic.clock import Clock
    from shared.dal.game_repository import GameRepository
    from shared.dal.wallet_ledger import WalletLedger

logger = structlog.get_logger()

EARNED_ASSET_TYPE = "EARNED"


class ClaimResult(BaseModel):
    """Successful or idempotent claim response."""

    model_config = ConfigDict(frozen=True)

    status: ClaimStatus
    amount: int
    asset_type: str = EARNED_ASSET_TYPE
    paid_at: datetime
    transaction_id: str | None = None

    @property
    def already_claimed(self) -> bool:
        return self.status == ClaimStatus.REWARD_ALREADY_CLAIMED


class RewardClaimService:
    """Credits a finished rookie match's winner exactly once."""

    def __init__(self, repository: GameRepository, wallet: WalletLedger, *, clock: Clock | None = None) -> None:
        self._repository = repository
        self._wallet = wallet
        self._clock = clock or SystemClock()

    def claim(self, game_id: str, seat: int, user_id: str | None) -> ClaimResult:
        """
        Claim the reward of an ENDED match for ``seat``.

        Returns:
            REWARD_CLAIMED with the new marker, or REWARD_ALREADY_CLAIMED
            carrying the original marker when a previous claim succeeded

        Raises:
            RewardClaimError: REWARD_NOT_READY, NOT_WINNER, NO_REWARD or WALLET_REQUIRED
            GameNotFoundError: No such game

        """
        with structlog.contextvars.bound_contextvars(game_id=game_id, seat=seat), self._repository.transaction(game_id):
            _record, game = load_game(self._repository, game_id)
            rookie = game.state.rookie
            if rookie is None or rookie.phase != RookiePhase.ENDED or rookie.reward_eligible is None:
                raise RewardClaimError(ErrorKind.REWARD_NOT_READY, "match has not ended", game_id=game_id)
            reward = rookie.reward_eligible
            if reward.winner_seat != seat:
                raise RewardClaimError(
                    ErrorKind.NOT_WINNER,
                    f"seat {seat} did not win this match",
                    game_id=game_id,
                    seat=seat,
                )
            if reward.amount <= 0:
                raise RewardClaimError(ErrorKind.NO_REWARD, "match carries no reward", game_id=game_id)
            if rookie.reward_paid_at is not None:
                logger.info("reward already claimed", paid_at=rookie.reward_paid_at.isoformat())
                return ClaimResult(
                    status=ClaimStatus.REWARD_ALREADY_CLAIMED,
                    amount=reward.amount,
                    paid_at=rookie.reward_paid_at,
                )
            if not user_id:
                raise RewardClaimError(ErrorKind.WALLET_REQUIRED, "a wallet owner is required", game_id=game_id)

            paid_at = self._clock.now()
            try:
                tx = self._wallet.credit_earned_balance(
                    user_id,
                    reward.amount,
                    reason=REWARD_REASON_WIN,
                    created_at=paid_at,
                )
            except WalletNotFoundError as exc:
                raise RewardClaimError(
                    ErrorKind.WALLET_REQUIRED,
                    f"user {user_id} has no wallet",
                    game_id=game_id,
                    user_id=user_id,
                ) from exc

            payload = RewardPaidPayload(
                paid_at=paid_at,
                seat=seat,
                user_id=user_id,
                amount=reward.amount,
                transaction_id=tx.transaction_id,
            ).model_dump(mode="json")
            next_state = apply_reward_paid(game.state, payload)
            event = self._repository.append_event(
                game_id,
                SystemEventType.REWARD_PAID.value,
                payload,
                created_at=paid_at,
                state=next_state.model_dump(mode="json"),
            )
            logger.info("reward paid", seq=event.seq, amount=reward.amount, transaction_id=tx.transaction_id)
            return ClaimResult(
                status=ClaimStatus.REWARD_CLAIMED,
                amount=reward.amount,
                paid_at=paid_at,
                transaction_id=tx.transaction_id,
            )
