"""Shared builders for engine tests."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from engine.logic.catalog import CardAttributes, InMemoryCardCatalog
from engine.logic.clock import SteppingClock
from engine.logic.enums import ActionType
from engine.logic.registry import (
    AppConfig,
    FormatEntry,
    FormatGate,
    FormatRef,
    FormatRegistry,
    GameModeEntry,
    GameModeRegistry,
    RegistrySet,
)
from engine.logic.service import EngineService
from engine.logic.state import ZONE_COUNT, SessionPointer
from shared.dal.memory import InMemoryGameRepository

if TYPE_CHECKING:
    from collections.abc import Sequence

    from engine.logic.catalog import CardCatalog
    from shared.dal.game_repository import GameRepository

CLOCK_START = datetime(2025, 1, 1, tzinfo=UTC)

POINTER = SessionPointer(
    format_id="FMT_ROOKIE",
    format_version=1,
    game_mode_id="GM_SCORED",
    game_mode_version=1,
)

# Zone powers: P1 wins zones 0, 4, 6; P2 wins 2, 5; zones 1 and 3 are draws.
P1_POWERS = (80, 50, 70, 60, 90, 40, 55)
P2_POWERS = (60, 50, 75, 60, 85, 45, 30)


def hero_key(seat: int, zone_index: int) -> str:
    return f"hero-s{seat}-z{zone_index}"


def make_catalog(
    p1_powers: Sequence[int | None] = P1_POWERS,
    p2_powers: Sequence[int | None] = P2_POWERS,
) -> InMemoryCardCatalog:
    """Catalog holding one HERO per seat and zone, plus a GEAR card."""
    catalog = InMemoryCardCatalog()
    for zone_index in range(ZONE_COUNT):
        catalog.add(hero_key(1, zone_index), CardAttributes(concept_type="HERO", power=p1_powers[zone_index]))
        catalog.add(hero_key(2, zone_index), CardAttributes(concept_type="HERO", power=p2_powers[zone_index]))
    catalog.add("gear-1", CardAttributes(concept_type="GEAR", power=10))
    return catalog


def make_registries(*, compat_versions: tuple[int, ...] = (1,)) -> RegistrySet:
    return RegistrySet(
        app_config=AppConfig(engine_supported_compat_versions=compat_versions),
        formats=FormatRegistry(
            formats=(
                FormatEntry(format_id="FMT_ROOKIE", format_version=1, engine_compat_version=1),
                FormatEntry(format_id="FMT_OPEN", format_version=1, engine_compat_version=1),
                FormatEntry(format_id="FMT_FUTURE", format_version=1, engine_compat_version=2),
            ),
        ),
        game_modes=GameModeRegistry(
            game_modes=(
                GameModeEntry(
                    game_mode_id="GM_SCORED",
                    game_mode_version=1,
                    mode_code="ROOKIE",
                    format_gate=FormatGate(
                        mode="ALLOW_LIST",
                        allowed_formats=(
                            FormatRef(format_id="FMT_ROOKIE", format_version=1),
                            FormatRef(format_id="FMT_FUTURE", format_version=1),
                        ),
                    ),
                ),
                GameModeEntry(
                    game_mode_id="GM_NO_OPEN",
                    game_mode_version=1,
                    format_gate=FormatGate(
                        mode="DENY_LIST",
                        denied_formats=(FormatRef(format_id="FMT_OPEN", format_version=1),),
                    ),
                ),
                GameModeEntry(game_mode_id="GM_ANY", game_mode_version=1),
            ),
        ),
    )


def make_service(
    repository: GameRepository | None = None,
    *,
    catalog: CardCatalog | None = None,
) -> EngineService:
    return EngineService(
        repository or InMemoryGameRepository(),
        catalog=catalog or make_catalog(),
        registries=make_registries(),
        clock=SteppingClock(CLOCK_START),
    )


def placement_actions(seats: Sequence[int] = (1, 2)) -> list[tuple[str, dict[str, Any]]]:
    return [
        (ActionType.ROOKIE_PLACE.value, {"seat": seat, "zoneIndex": zone_index, "versionKey": hero_key(seat, zone_index)})
        for seat in seats
        for zone_index in range(ZONE_COUNT)
    ]


def reveal_actions() -> list[tuple[str, dict[str, Any]]]:
    return [(ActionType.ROOKIE_REVEAL.value, {"zoneIndex": zone_index}) for zone_index in range(ZONE_COUNT)]


def full_match_actions(*, end: bool = True) -> list[tuple[str, dict[str, Any]]]:
    """Begin, place every zone for both seats, reveal, score and optionally end."""
    actions: list[tuple[str, dict[str, Any]]] = [(ActionType.ROOKIE_BEGIN_MATCH.value, {})]
    actions += placement_actions()
    actions += reveal_actions()
    actions.append((ActionType.ROOKIE_SCORE_MATCH.value, {}))
    if end:
        actions.append((ActionType.ROOKIE_END_MATCH.value, {}))
    return actions


def start_rookie_game(service: EngineService, game_id: str = "g1", seats: Sequence[int] = (1, 2)) -> None:
    service.create_game("ROOKIE", [{"seat": seat, "deck_id": f"deck-{seat}"} for seat in seats], POINTER, game_id=game_id)
    service.start_game(game_id)


def apply_all(service: EngineService, game_id: str, actions: Sequence[tuple[str, dict[str, Any]]]) -> None:
    for action_type, payload in actions:
        service.apply_action(game_id, action_type, payload)
