"""Composition root: wire settings, storage, registries and collaborators into the engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from engine.logic.registry import load_registries
from engine.logic.rewards import RewardClaimService
from engine.logic.service import EngineService
from engine.replay.verifier import ReplayVerifier
from engine.settings import EngineSettings
from shared.db import Database, SqliteGameRepository, SqliteWalletLedger
from shared.logging import setup_logging

if TYPE_CHECKING:
    from engine.logic.catalog import CardCatalog
    from engine.logic.clock import Clock

logger = structlog.get_logger()


@dataclass(frozen=True)
class EngineContainer:
    """Everything build_engine() created. The caller owns the database lifecycle."""

    settings: EngineSettings
    database: Database
    service: EngineService
    rewards: RewardClaimService
    wallet: SqliteWalletLedger
    verifier: ReplayVerifier

    def close(self) -> None:
        self.database.close()


def build_engine(
    settings: EngineSettings | None = None,
    *,
    catalog: CardCatalog,
    clock: Clock | None = None,
    configure_logging: bool = False,
) -> EngineContainer:
    """Open the database, load registries and build the engine services.

    Registry problems surface here as RegistryLoadError rather than on the
    first game start.
    """
    if settings is None:  # pragma: no cover
        settings = EngineSettings()
    if configure_logging:
        setup_logging(settings.log_dir, level=settings.log_level, json_mode=settings.log_format == "json")

    registries = load_registries(settings.registry_dir)

    db = Database(settings.database_path)
    db.connect()
    repository = SqliteGameRepository(db)
    wallet = SqliteWalletLedger(db)

    service = EngineService(repository, catalog=catalog, registries=registries, clock=clock)
    rewards = RewardClaimService(repository, wallet, clock=clock)
    verifier = ReplayVerifier(catalog, registries, default_runs=settings.certification_runs)
    logger.info("engine ready", database_path=settings.database_path, registry_dir=settings.registry_dir)
    return EngineContainer(
        settings=settings,
        database=db,
        service=service,
        rewards=rewards,
        wallet=wallet,
        verifier=verifier,
    )
