"""Keeper eligibility and base-cost calculation."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from keeper_cascade.acquisition import AcquisitionOrigin, trace_origin
from keeper_cascade.config import KeeperSettings
from keeper_cascade.models import (
    AcquisitionType,
    Drafted,
    FreeAgent,
    Keeper,
    KeeperType,
    Traded,
    Waiver,
)
from keeper_cascade.ownership import (
    OwnershipPeriod,
    build_ownership_history,
    owned_at_season_end,
    resolve_keeper_picks,
)
from keeper_cascade.store import LeagueStore

logger = logging.getLogger(__name__)


@dataclass
class CostAnalysis:
    """Everything the cost formula needs for one player on one roster.

    Attributes:
        origin: Traced acquisition and origin of the keeper value
        years_on_roster: Consecutive prior seasons held by the same owner line
        base_cost: Intrinsic round cost for the target season
    """

    origin: AcquisitionOrigin
    years_on_roster: int
    base_cost: int

    @property
    def years_kept(self) -> int:
        return self.years_on_roster + 1

    @property
    def acquisition_type(self) -> AcquisitionType:
        return self.origin.acquisition.kind

    @property
    def original_draft_round(self) -> int | None:
        return self.origin.intrinsic_round


@dataclass
class KeeperCostResult:
    base_cost: int
    reason: str


@dataclass
class FullKeeperCostResult:
    base_cost: int
    final_cost: int
    cost_breakdown: str


@dataclass
class EligibilityResult:
    """Outcome of a keeper eligibility check.

    Attributes:
        is_eligible: Whether the player can be kept at all
        years_kept: Keeper year the target season would be (1 = first)
        at_max_years: Only a franchise tag can keep the player
        base_cost: Intrinsic round cost for the target season
        acquisition_type: How the roster holds the player
        acquisition_date: When the roster got the player, if known
        original_draft_round: Round the cost derives from, if drafted
        reason: Why the player is ineligible or restricted
    """

    is_eligible: bool
    years_kept: int
    at_max_years: bool
    base_cost: int
    acquisition_type: AcquisitionType
    acquisition_date: datetime | None = None
    original_draft_round: int | None = None
    reason: str | None = None


@dataclass
class SelectionValidation:
    """Roster-level keeper selection check."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        logger.warning(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)
        logger.info(message)


@dataclass
class PopulateResult:
    created: int = 0
    skipped: int = 0


def count_years_on_roster(
    history: list[OwnershipPeriod],
    origin: AcquisitionOrigin,
    target_season: int,
) -> int:
    """Count consecutive seasons before the target that the owner line held the player.

    Walks backward from the season before the target down to the origin
    season, stopping at the first season whose end boundary finds the player
    with nobody in the lineage.
    """
    years = 0
    season = target_season - 1
    while season >= origin.origin_season:
        if not any(
            owned_at_season_end(history, owner, season) for owner in origin.lineage
        ):
            break
        years += 1
        season -= 1
    return years


def cost_from_years(
    intrinsic_round: int | None, years_on_roster: int, settings: KeeperSettings
) -> int:
    """Apply the per-year improvement to an intrinsic round.

    The result is floored at the minimum round but not capped at the
    undrafted round, so late draft picks can come out too cheap to keep.
    """
    intrinsic = settings.undrafted_round if intrinsic_round is None else intrinsic_round
    reduced = intrinsic - settings.cost_reduction_per_year * years_on_roster
    return max(settings.minimum_round, reduced)


def analyze_keeper_cost(
    store: LeagueStore,
    player_id: str,
    roster_id: str,
    target_season: int,
    settings: KeeperSettings,
) -> CostAnalysis:
    """Trace a player's history and compute the keeper cost inputs.

    Args:
        store: League data store
        player_id: Player to analyze
        roster_id: Roster that would keep the player
        target_season: Season the player would be kept for
        settings: League keeper settings

    Returns:
        CostAnalysis for the player on the roster's owner
    """
    roster = store.get_roster(roster_id)
    history = build_ownership_history(store, player_id, roster.league_id)
    origin = trace_origin(
        history, player_id, roster.owner_id, target_season, settings.trade_deadline_week
    )
    years = count_years_on_roster(history, origin, target_season)
    base_cost = cost_from_years(origin.intrinsic_round, years, settings)

    logger.debug(
        f"Player {player_id} on roster {roster_id} for {target_season}: "
        f"{origin.acquisition.kind.value}, origin {origin.origin_season}, "
        f"{years} years on roster, base cost {base_cost}"
    )
    return CostAnalysis(origin=origin, years_on_roster=years, base_cost=base_cost)


def calculate_base_cost(
    store: LeagueStore,
    player_id: str,
    roster_id: str,
    target_season: int,
    settings: KeeperSettings,
) -> int:
    """Compute a player's intrinsic keeper round for a target season."""
    analysis = analyze_keeper_cost(store, player_id, roster_id, target_season, settings)
    return analysis.base_cost


def describe_cost(analysis: CostAnalysis, settings: KeeperSettings) -> str:
    """Build a human-readable explanation of a base cost."""
    acquisition = analysis.origin.acquisition
    reduction = settings.cost_reduction_per_year * analysis.years_on_roster
    base = analysis.base_cost

    if isinstance(acquisition, Drafted):
        text = f"Drafted in Round {acquisition.round} - {reduction} = Round {base}"
        if acquisition.via_pickup:
            text += " (re-acquired in draft season)"
        return text
    if isinstance(acquisition, Traded):
        text = f"Traded - inherits original cost = Round {base}"
        if acquisition.after_deadline:
            text += " (offseason trade, years reset)"
        return text
    if isinstance(acquisition, FreeAgent):
        label = "Free agent pickup"
    elif isinstance(acquisition, Waiver):
        label = "Waiver pickup"
    else:
        raise TypeError(f"Unknown acquisition {acquisition!r}")

    if reduction:
        undrafted = settings.undrafted_round
        return f"{label} = Round {undrafted} - {reduction} = Round {base}"
    return f"{label} = Round {settings.undrafted_round}"


def get_keeper_cost_details(
    store: LeagueStore,
    player_id: str,
    roster_id: str,
    target_season: int,
    settings: KeeperSettings,
) -> KeeperCostResult:
    analysis = analyze_keeper_cost(store, player_id, roster_id, target_season, settings)
    return KeeperCostResult(
        base_cost=analysis.base_cost, reason=describe_cost(analysis, settings)
    )


def eligibility_from_analysis(
    analysis: CostAnalysis, settings: KeeperSettings
) -> EligibilityResult:
    """Derive eligibility from a cost analysis.

    A player at max years can always be franchise tagged. Before that, a
    player whose cost is worse than the undrafted round is not worth a keeper
    slot and is ineligible.
    """
    at_max_years = analysis.years_on_roster >= settings.regular_keeper_max_years
    too_cheap = analysis.base_cost > settings.undrafted_round

    reason = None
    if too_cheap and not at_max_years:
        reason = (
            f"Keeper cost (Round {analysis.base_cost}) exceeds maximum "
            f"draft round ({settings.undrafted_round})"
        )
    elif at_max_years:
        reason = "At max years - Franchise Tag only"

    return EligibilityResult(
        is_eligible=not (too_cheap and not at_max_years),
        years_kept=analysis.years_kept,
        at_max_years=at_max_years,
        base_cost=analysis.base_cost,
        acquisition_type=analysis.acquisition_type,
        acquisition_date=analysis.origin.acquisition.date,
        original_draft_round=analysis.original_draft_round,
        reason=reason,
    )


def calculate_keeper_eligibility(
    store: LeagueStore,
    player_id: str,
    roster_id: str,
    league_id: str,
    target_season: int,
    settings: KeeperSettings | None = None,
) -> EligibilityResult:
    """Check whether a roster can keep a player for a season.

    Args:
        store: League data store
        player_id: Player to check
        roster_id: Roster that would keep the player
        league_id: League whose settings apply
        target_season: Season the player would be kept for
        settings: Keeper settings (defaults to the league's)

    Returns:
        EligibilityResult; ineligibility is a result, never an exception
    """
    if settings is None:
        settings = store.settings_for(league_id)
    analysis = analyze_keeper_cost(store, player_id, roster_id, target_season, settings)
    return eligibility_from_analysis(analysis, settings)


def calculate_keeper_cost(
    store: LeagueStore,
    player_id: str,
    roster_id: str,
    league_id: str,
    target_season: int,
    keeper_type: KeeperType,
) -> FullKeeperCostResult:
    """Compute base and pre-cascade final cost for a keeper designation.

    Franchise tags cost the same as regular keepers; only the year limit
    differs. The final cost here is the clamped base cost, before any
    cascade moves it.
    """
    settings = store.settings_for(league_id)
    details = get_keeper_cost_details(
        store, player_id, roster_id, target_season, settings
    )
    breakdown = details.reason
    if keeper_type == KeeperType.FRANCHISE:
        breakdown = f"Franchise Tag: {breakdown}"
    return FullKeeperCostResult(
        base_cost=details.base_cost,
        final_cost=settings.clamp_round(details.base_cost),
        cost_breakdown=breakdown,
    )


def validate_keeper_selections(
    store: LeagueStore, roster_id: str, league_id: str, season: int
) -> SelectionValidation:
    """Check a roster's persisted keepers against the league caps.

    Args:
        store: League data store
        roster_id: Roster whose selections are checked
        league_id: League whose settings apply
        season: Keeper season

    Returns:
        SelectionValidation with blocking errors and non-fatal warnings
    """
    settings = store.settings_for(league_id)
    keepers = store.keepers_for_roster(roster_id, season)
    result = SelectionValidation()

    franchise_count = sum(1 for k in keepers if k.type == KeeperType.FRANCHISE)
    regular_count = sum(1 for k in keepers if k.type == KeeperType.REGULAR)

    if len(keepers) > settings.max_keepers:
        result.add_error(
            f"Too many keepers selected ({len(keepers)}/{settings.max_keepers})"
        )
    if franchise_count > settings.max_franchise_tags:
        result.add_error(
            f"Too many franchise tags ({franchise_count}/{settings.max_franchise_tags})"
        )
    if regular_count > settings.max_regular_keepers:
        result.add_error(
            f"Too many regular keepers ({regular_count}/{settings.max_regular_keepers})"
        )

    for keeper in keepers:
        name = store.player_name(keeper.player_id)
        eligibility = calculate_keeper_eligibility(
            store, keeper.player_id, roster_id, league_id, season, settings
        )
        if not eligibility.is_eligible:
            result.add_error(f"{name}: {eligibility.reason}")
        elif keeper.type == KeeperType.REGULAR and eligibility.at_max_years:
            result.add_error(f"{name}: {eligibility.reason}")
        elif (
            keeper.type == KeeperType.REGULAR
            and eligibility.years_kept == settings.regular_keeper_max_years
        ):
            result.add_warning(f"{name} is in their final year of keeper eligibility")

    return result


def recalculate_keeper_years(store: LeagueStore, league_id: str) -> int:
    """Repair persisted years_kept for a league season from ownership history.

    Only years_kept is written; costs are left to the cascade.

    Args:
        store: League data store
        league_id: League season whose keeper rows are repaired

    Returns:
        Number of keeper rows whose years_kept changed
    """
    league = store.get_league(league_id)
    settings = store.settings_for(league_id)

    with store.writer_lock(league_id, league.season):
        changes = {}
        for keeper in store.keepers_for_league(league_id):
            analysis = analyze_keeper_cost(
                store, keeper.player_id, keeper.roster_id, keeper.season, settings
            )
            if analysis.years_kept != keeper.years_kept:
                logger.debug(
                    f"{store.player_name(keeper.player_id)}: years_kept "
                    f"{keeper.years_kept} -> {analysis.years_kept}"
                )
                changes[keeper.keeper_id] = {"years_kept": analysis.years_kept}
        updated = store.update_keepers(changes)

    logger.info(f"Recalculated keeper years for {league_id}: {updated} updated")
    return updated


def populate_keepers_from_draft_picks(
    store: LeagueStore, league_id: str
) -> PopulateResult:
    """Create keeper rows for the keeper-flagged picks of a league's draft.

    Picks are repaired first so a keeper flag always sits on the player's
    last pick. Existing rows are left untouched, so re-running only fills in
    missing keepers.

    Args:
        store: League data store
        league_id: League season whose draft is scanned

    Returns:
        PopulateResult with created and skipped counts
    """
    league = store.get_league(league_id)
    settings = store.settings_for(league_id)
    result = PopulateResult()

    picks = resolve_keeper_picks(store.draft_picks_for_league(league_id))
    with store.writer_lock(league_id, league.season):
        for pick in picks:
            if not pick.is_keeper:
                continue
            existing = store.find_keeper(pick.player_id, pick.roster_id, league.season)
            if existing is not None:
                result.skipped += 1
                continue

            analysis = analyze_keeper_cost(
                store, pick.player_id, pick.roster_id, league.season, settings
            )
            keeper_type = KeeperType.REGULAR
            if analysis.years_on_roster >= settings.regular_keeper_max_years:
                keeper_type = KeeperType.FRANCHISE

            store.add_keeper(
                Keeper(
                    keeper_id=f"{league_id}:{pick.roster_id}:{pick.player_id}",
                    player_id=pick.player_id,
                    roster_id=pick.roster_id,
                    season=league.season,
                    type=keeper_type,
                    base_cost=analysis.base_cost,
                    final_cost=settings.clamp_round(pick.round),
                    years_kept=analysis.years_kept,
                    acquisition_type=analysis.acquisition_type,
                    original_draft_round=analysis.original_draft_round,
                )
            )
            result.created += 1

    logger.info(
        f"Populated keepers for {league_id}: {result.created} created, "
        f"{result.skipped} already present"
    )
    return result
