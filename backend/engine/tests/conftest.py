"""Engine test fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from engine.tests.helpers import make_catalog, make_registries, make_service
from shared.db.game_repository import SqliteGameRepository

if TYPE_CHECKING:
    from engine.logic.catalog import InMemoryCardCatalog
    from engine.logic.registry import RegistrySet
    from engine.logic.service import EngineService
    from shared.db.connection import Database


@pytest.fixture
def catalog() -> InMemoryCardCatalog:
    return make_catalog()


@pytest.fixture
def registries() -> RegistrySet:
    return make_registries()


@pytest.fixture
def service() -> EngineService:
    return make_service()


@pytest.fixture
def sqlite_service(database: Database) -> EngineService:
    return make_service(SqliteGameRepository(database))
