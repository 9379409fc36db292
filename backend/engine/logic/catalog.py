"""
Card catalog capability.

The catalog is an external, read-only collaborator consulted during rookie
scoring for HERO validation and power comparison. Implementations return
None for an unknown version key and raise CatalogUnavailableError when the
backing service cannot be reached.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, ConfigDict

from engine.logic.exceptions import CatalogUnavailableError

if TYPE_CHECKING:
    from collections.abc import Mapping


class CardAttributes(BaseModel):
    """Catalog attributes of one card version."""

    model_config = ConfigDict(frozen=True)

    concept_type: str
    power: int | None = None


class CardCatalog(Protocol):
    """Read-only card lookup used by the scoring engine."""

    def get_card_attributes(self, version_key: str) -> CardAttributes | None: ...


class InMemoryCardCatalog:
    """Catalog backed by a fixed mapping of version key to attributes."""

    def __init__(self, cards: Mapping[str, CardAttributes] | None = None) -> None:
        self._cards = dict(cards or {})

    def add(self, version_key: str, attributes: CardAttributes) -> None:
        self._cards[version_key] = attributes

    def get_card_attributes(self, version_key: str) -> CardAttributes | None:
        return self._cards.get(version_key)


class UnavailableCardCatalog:
    """Null catalog: every lookup fails as if the service were down."""

    def get_card_attributes(self, version_key: str) -> CardAttributes | None:
        raise CatalogUnavailableError(f"card catalog unavailable (lookup of {version_key})")
