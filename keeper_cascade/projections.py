"""Multi-year keeper cost and eligibility projections."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from keeper_cascade.calculator import analyze_keeper_cost, cost_from_years
from keeper_cascade.models import KeeperType
from keeper_cascade.store import LeagueStore

logger = logging.getLogger(__name__)

DEFAULT_YEARS_TO_PROJECT = 3


class ProjectionType(str, Enum):
    REGULAR = "REGULAR"
    FRANCHISE_ONLY = "FRANCHISE_ONLY"
    INELIGIBLE = "INELIGIBLE"


class ValueTrajectory(str, Enum):
    IMPROVING = "IMPROVING"
    STABLE = "STABLE"
    EXPIRING = "EXPIRING"


@dataclass
class YearProjection:
    season: int
    cost: int
    is_eligible: bool
    type: ProjectionType
    years_kept: int
    reason: str


@dataclass
class KeeperProjection:
    """Forward view of one player's keeper value.

    Attributes:
        player_id: Player projected
        player_name: Display name
        position: Position, if known
        team: NFL team, if known
        current_cost: Base cost for the current season
        current_years_kept: Keeper year the current season would be
        max_years_remaining: Regular keeper seasons left, including the current one
        projections: One entry per projected season, current season first
        value_trajectory: Overall direction of the player's keeper value
    """

    player_id: str
    player_name: str
    position: str | None
    team: str | None
    current_cost: int
    current_years_kept: int
    max_years_remaining: int
    projections: list[YearProjection] = field(default_factory=list)
    value_trajectory: ValueTrajectory = ValueTrajectory.STABLE


@dataclass
class LeagueProjectionSummary:
    total_keepers: int
    expiring_this_season: int
    expiring_next_season: int
    franchise_tags_used: int
    average_keeper_cost: float
    keepers_by_position: dict[str, int] = field(default_factory=dict)


def calculate_keeper_projections(
    store: LeagueStore,
    player_id: str,
    roster_id: str,
    league_id: str,
    current_season: int,
    years_to_project: int = DEFAULT_YEARS_TO_PROJECT,
) -> KeeperProjection:
    """Project a player's keeper cost and designation over the coming seasons.

    The current season comes from the ownership history, the same way the
    calculator derives it. Each later season assumes the player is kept
    again: the cost improves by the yearly reduction down to the minimum
    round, the player turns franchise-only once at max years, and an early
    year whose cost is worse than the undrafted round is ineligible.

    Args:
        store: League data store
        player_id: Player to project
        roster_id: Roster keeping the player
        league_id: League whose settings apply
        current_season: First season to project
        years_to_project: Number of seasons to project

    Returns:
        KeeperProjection with one YearProjection per season
    """
    settings = store.settings_for(league_id)
    max_years = settings.regular_keeper_max_years
    analysis = analyze_keeper_cost(
        store, player_id, roster_id, current_season, settings
    )
    player = store.players.get(player_id)

    projections = []
    for offset in range(years_to_project):
        years_on_roster = analysis.years_on_roster + offset
        years_kept = years_on_roster + 1
        cost = cost_from_years(analysis.original_draft_round, years_on_roster, settings)

        if years_on_roster >= max_years:
            projection_type = ProjectionType.FRANCHISE_ONLY
            reason = f"Round {cost} - Franchise Tag only (Year {years_kept})"
        elif cost > settings.undrafted_round:
            projection_type = ProjectionType.INELIGIBLE
            reason = (
                f"Keeper cost (Round {cost}) exceeds maximum "
                f"draft round ({settings.undrafted_round})"
            )
        elif years_kept == max_years:
            projection_type = ProjectionType.REGULAR
            reason = "Final year - Franchise Tag only after this season"
        else:
            projection_type = ProjectionType.REGULAR
            reason = f"Round {cost} (Year {years_kept} of {max_years})"

        projections.append(
            YearProjection(
                season=current_season + offset,
                cost=cost,
                is_eligible=projection_type != ProjectionType.INELIGIBLE,
                type=projection_type,
                years_kept=years_kept,
                reason=reason,
            )
        )

    if analysis.years_on_roster >= max_years - 1:
        trajectory = ValueTrajectory.EXPIRING
    elif analysis.base_cost > settings.minimum_round:
        trajectory = ValueTrajectory.IMPROVING
    else:
        trajectory = ValueTrajectory.STABLE

    return KeeperProjection(
        player_id=player_id,
        player_name=player.full_name if player else "Unknown Player",
        position=player.position if player else None,
        team=player.team if player else None,
        current_cost=analysis.base_cost,
        current_years_kept=analysis.years_kept,
        max_years_remaining=max(0, max_years - analysis.years_kept + 1),
        projections=projections,
        value_trajectory=trajectory,
    )


def calculate_roster_projections(
    store: LeagueStore,
    roster_id: str,
    league_id: str,
    current_season: int,
    years_to_project: int = DEFAULT_YEARS_TO_PROJECT,
) -> list[KeeperProjection]:
    """Project every keeper a roster holds for the current season."""
    return [
        calculate_keeper_projections(
            store, keeper.player_id, roster_id, league_id, current_season, years_to_project
        )
        for keeper in store.keepers_for_roster(roster_id, current_season)
    ]


def calculate_league_projections_summary(
    store: LeagueStore, league_id: str, current_season: int
) -> LeagueProjectionSummary:
    """Summarize a league season's persisted keepers.

    Args:
        store: League data store
        league_id: League season to summarize
        current_season: Keeper season

    Returns:
        LeagueProjectionSummary of counts, expirations and average cost
    """
    max_years = store.settings_for(league_id).regular_keeper_max_years
    keepers = store.keepers_for_league(league_id, current_season)

    positions: Counter[str] = Counter()
    expiring_this = 0
    expiring_next = 0
    for keeper in keepers:
        if keeper.years_kept >= max_years:
            expiring_this += 1
        elif keeper.years_kept == max_years - 1:
            expiring_next += 1
        player = store.players.get(keeper.player_id)
        positions[(player.position if player else None) or "UNKNOWN"] += 1

    total_cost = sum(k.final_cost for k in keepers)
    summary = LeagueProjectionSummary(
        total_keepers=len(keepers),
        expiring_this_season=expiring_this,
        expiring_next_season=expiring_next,
        franchise_tags_used=sum(1 for k in keepers if k.type == KeeperType.FRANCHISE),
        average_keeper_cost=total_cost / len(keepers) if keepers else 0.0,
        keepers_by_position=dict(positions),
    )
    logger.debug(f"Projection summary for {league_id} {current_season}: {summary}")
    return summary
