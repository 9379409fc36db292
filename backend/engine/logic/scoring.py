"""
Rookie match scoring.

Compares the HERO cards both seats placed in each of the seven zones. The
higher power wins the zone, equal power is a draw. Every precondition is
checked and every zone computed before any result is returned, so a failed
catalog lookup never leaves partial scoring behind.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from engine.logic.enums import ConceptType, ErrorKind, RookiePhase, ZoneOutcome
from engine.logic.exceptions import CatalogUnavailableError, ScoreValidationError
from engine.logic.state import ROOKIE_SEATS, ZONE_COUNT, MatchResults, ZoneResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from engine.logic.catalog import CardAttributes, CardCatalog
    from engine.logic.state import RookieState

logger = structlog.get_logger()

SCORABLE_PHASES = frozenset({RookiePhase.MATCH, RookiePhase.ENDED})


def _lookup(catalog: CardCatalog, *, seat: int, zone_index: int, version_key: str) -> CardAttributes:
    try:
        attributes = catalog.get_card_attributes(version_key)
    except CatalogUnavailableError as exc:
        raise ScoreValidationError(
            ErrorKind.CATALOG_UNAVAILABLE,
            f"catalog unavailable for seat {seat} zone {zone_index}: {exc}",
            seat=seat,
            zone_index=zone_index,
            version_key=version_key,
        ) from exc
    if attributes is None:
        raise ScoreValidationError(
            ErrorKind.CATALOG_UNAVAILABLE,
            f"card {version_key} not found in catalog (seat {seat} zone {zone_index})",
            seat=seat,
            zone_index=zone_index,
            version_key=version_key,
        )
    return attributes


def _collect_heroes(
    rookie: RookieState,
    catalog: CardCatalog,
) -> dict[tuple[int, int], tuple[str, CardAttributes]]:
    """Check that every seat placed a catalog-verified HERO in every zone."""
    heroes: dict[tuple[int, int], tuple[str, CardAttributes]] = {}
    for seat in ROOKIE_SEATS:
        seat_placements = rookie.placements.get(seat, {})
        for zone_index in range(ZONE_COUNT):
            version_key = seat_placements.get(zone_index)
            if not version_key:
                raise ScoreValidationError(
                    ErrorKind.MISSING_PLACEMENT,
                    f"seat {seat} has no placement in zone {zone_index}",
                    seat=seat,
                    zone_index=zone_index,
                )
            attributes = _lookup(catalog, seat=seat, zone_index=zone_index, version_key=version_key)
            if attributes.concept_type != ConceptType.HERO.value:
                raise ScoreValidationError(
                    ErrorKind.NON_HERO_PLACEMENT,
                    f"seat {seat} zone {zone_index} holds {attributes.concept_type} card {version_key}",
                    seat=seat,
                    zone_index=zone_index,
                    version_key=version_key,
                )
            heroes[(seat, zone_index)] = (version_key, attributes)
    return heroes


def _compare_zone(zone_index: int, p1_power: int, p2_power: int) -> ZoneResult:
    if p1_power > p2_power:
        outcome, winning_seat = ZoneOutcome.P1, 1
    elif p2_power > p1_power:
        outcome, winning_seat = ZoneOutcome.P2, 2
    else:
        outcome, winning_seat = ZoneOutcome.DRAW, None
    return ZoneResult(
        zone_index=zone_index,
        outcome=outcome,
        winning_seat=winning_seat,
        p1_power=p1_power,
        p2_power=p2_power,
    )


def require_scorable(rookie: RookieState, seats: Sequence[int]) -> None:
    """Raise PHASE_INVALID or SEATS_INVALID unless the match may be scored."""
    if rookie.phase not in SCORABLE_PHASES:
        raise ScoreValidationError(
            ErrorKind.PHASE_INVALID,
            f"cannot score in phase {rookie.phase.value}",
            phase=rookie.phase.value,
        )
    if tuple(sorted(seats)) != ROOKIE_SEATS:
        raise ScoreValidationError(
            ErrorKind.SEATS_INVALID,
            f"rookie scoring requires seats [1, 2], got {list(seats)}",
            seats=list(seats),
        )


def score_match(rookie: RookieState, seats: Sequence[int], catalog: CardCatalog) -> MatchResults:
    """
    Validate scoring preconditions and compute the match results.

    Checks run in order: phase, seat set, placements (present and HERO),
    reveals, then per-zone power lookups.

    Args:
        rookie: Current rookie sub-state
        seats: Sorted seat list of the game
        catalog: Card catalog used for type and power lookups

    Returns:
        Frozen MatchResults covering all seven zones

    Raises:
        ScoreValidationError: If any precondition fails or any lookup fails

    """
    require_scorable(rookie, seats)
    heroes = _collect_heroes(rookie, catalog)

    for zone_index in range(ZONE_COUNT):
        if not rookie.revealed_zones.get(zone_index, False):
            raise ScoreValidationError(
                ErrorKind.MISSING_REVEAL,
                f"zone {zone_index} is not revealed",
                zone_index=zone_index,
            )

    zones: list[ZoneResult] = []
    for zone_index in range(ZONE_COUNT):
        p1_key, p1_attributes = heroes[(1, zone_index)]
        p2_key, p2_attributes = heroes[(2, zone_index)]
        if not isinstance(p1_attributes.power, int) or not isinstance(p2_attributes.power, int):
            raise ScoreValidationError(
                ErrorKind.POWER_LOOKUP_FAILED,
                f"power lookup failed for zone {zone_index}",
                zone_index=zone_index,
                p1_key=p1_key,
                p2_key=p2_key,
            )
        zones.append(_compare_zone(zone_index, p1_attributes.power, p2_attributes.power))

    wins_by_seat = {seat: 0 for seat in ROOKIE_SEATS}
    draws = 0
    for zone in zones:
        if zone.winning_seat is None:
            draws += 1
        else:
            wins_by_seat[zone.winning_seat] += 1

    if wins_by_seat[1] > wins_by_seat[2]:
        match_winner: int | None = 1
    elif wins_by_seat[2] > wins_by_seat[1]:
        match_winner = 2
    else:
        match_winner = None

    logger.debug("rookie match scored", wins_by_seat=wins_by_seat, draws=draws, match_winner=match_winner)
    return MatchResults(zones=tuple(zones), wins_by_seat=wins_by_seat, draws=draws, match_winner=match_winner)
