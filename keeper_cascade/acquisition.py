"""Acquisition resolution and keeper-value origin tracing.

How an owner holds a player decides where the player's keeper value comes
from: a draft round, the undrafted round for pickups, or, for trades, whatever
the previous owner held him on.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from keeper_cascade.config import (
    DEFAULT_TRADE_DEADLINE_WEEK,
    is_trade_after_deadline,
    next_keeper_season,
)
from keeper_cascade.models import (
    Acquisition,
    AcquisitionType,
    Drafted,
    FreeAgent,
    Traded,
    Waiver,
)
from keeper_cascade.ownership import OwnershipPeriod, build_ownership_history
from keeper_cascade.store import LeagueStore

logger = logging.getLogger(__name__)


@dataclass
class AcquisitionOrigin:
    """Where a player's keeper value comes from.

    Attributes:
        acquisition: How the current owner holds the player
        origin_season: First season that counts toward keeper years
        intrinsic_round: Round the value derives from (None means undrafted)
        lineage: Owners whose season-end ownership counts toward keeper years
    """

    acquisition: Acquisition
    origin_season: int
    intrinsic_round: int | None
    lineage: list[str] = field(default_factory=list)


def current_period(
    history: list[OwnershipPeriod], owner_id: str, target_season: int
) -> OwnershipPeriod | None:
    """Get the owner's most recent period that started no later than the target season."""
    candidates = [
        p for p in history if p.owner_id == owner_id and p.season <= target_season
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.start)


def classify_period(
    history: list[OwnershipPeriod],
    period: OwnershipPeriod,
    deadline_week: int = DEFAULT_TRADE_DEADLINE_WEEK,
) -> Acquisition:
    """Turn an ownership period into an acquisition variant.

    A waiver or free-agent pickup in the same season the player was drafted
    keeps the draft value, so a player drafted, dropped and picked up again
    during one offseason is still treated as drafted.
    """
    if period.acquisition_type == AcquisitionType.DRAFTED:
        return Drafted(
            round=period.draft_round,
            season=period.season,
            date=period.start,
        )

    if period.acquisition_type == AcquisitionType.TRADE:
        return Traded(
            from_owner_id=period.from_owner_id,
            date=period.start,
            after_deadline=is_trade_after_deadline(period.start, deadline_week),
        )

    same_season_drafts = [
        p
        for p in history
        if p.acquisition_type == AcquisitionType.DRAFTED
        and p.season == period.season
        and p.start <= period.start
    ]
    if same_season_drafts:
        draft = same_season_drafts[-1]
        return Drafted(
            round=draft.draft_round,
            season=draft.season,
            date=period.start,
            via_pickup=True,
        )

    if period.acquisition_type == AcquisitionType.FREE_AGENT:
        return FreeAgent(date=period.start)
    return Waiver(date=period.start)


def resolve_acquisition(
    store: LeagueStore,
    player_id: str,
    roster_id: str,
    target_season: int,
    deadline_week: int = DEFAULT_TRADE_DEADLINE_WEEK,
) -> Acquisition:
    """Classify how a roster's owner holds a player for a target season.

    Args:
        store: League data store
        player_id: Player to classify
        roster_id: Roster whose owner holds the player
        target_season: Season the player would be kept for
        deadline_week: Trade deadline week of the league

    Returns:
        Drafted, Traded, Waiver or FreeAgent; Waiver when no record exists
    """
    roster = store.get_roster(roster_id)
    history = build_ownership_history(store, player_id, roster.league_id)
    period = current_period(history, roster.owner_id, target_season)
    if period is None:
        return Waiver()
    return classify_period(history, period, deadline_week)


def _previous_period(
    history: list[OwnershipPeriod], owner_id: str, before: OwnershipPeriod
) -> OwnershipPeriod | None:
    earlier = [
        p
        for p in history
        if p.owner_id == owner_id and p.start <= before.start and p is not before
    ]
    if not earlier:
        return None
    return max(earlier, key=lambda p: p.start)


def _trace(
    history: list[OwnershipPeriod],
    period: OwnershipPeriod,
    player_id: str,
    deadline_week: int,
    visited: set[tuple[str, str, datetime]],
) -> AcquisitionOrigin:
    acquisition = classify_period(history, period, deadline_week)

    if isinstance(acquisition, Drafted):
        return AcquisitionOrigin(
            acquisition=acquisition,
            origin_season=acquisition.season,
            intrinsic_round=acquisition.round,
            lineage=[period.owner_id],
        )

    if isinstance(acquisition, (Waiver, FreeAgent)):
        return AcquisitionOrigin(
            acquisition=acquisition,
            origin_season=period.season,
            intrinsic_round=None,
            lineage=[period.owner_id],
        )

    # Trade: follow the previous owner's period backward
    visited.add((player_id, period.owner_id, period.start))
    previous = None
    if acquisition.from_owner_id is not None:
        previous = _previous_period(history, acquisition.from_owner_id, period)
    if (
        previous is not None
        and (player_id, previous.owner_id, previous.start) in visited
    ):
        logger.warning(
            f"Trade chain for player {player_id} loops back to owner "
            f"{previous.owner_id}, treating as undrafted"
        )
        previous = None

    if previous is None:
        return AcquisitionOrigin(
            acquisition=acquisition,
            origin_season=period.season,
            intrinsic_round=None,
            lineage=[period.owner_id],
        )

    inherited = _trace(history, previous, player_id, deadline_week, visited)

    if acquisition.after_deadline:
        logger.debug(
            f"Offseason trade of player {player_id} to owner {period.owner_id}, "
            f"keeper years reset"
        )
        return AcquisitionOrigin(
            acquisition=acquisition,
            origin_season=next_keeper_season(acquisition.date),
            intrinsic_round=inherited.intrinsic_round,
            lineage=[period.owner_id],
        )

    return AcquisitionOrigin(
        acquisition=acquisition,
        origin_season=inherited.origin_season,
        intrinsic_round=inherited.intrinsic_round,
        lineage=inherited.lineage + [period.owner_id],
    )


def trace_origin(
    history: list[OwnershipPeriod],
    player_id: str,
    owner_id: str,
    target_season: int,
    deadline_week: int = DEFAULT_TRADE_DEADLINE_WEEK,
) -> AcquisitionOrigin:
    """Trace a player's keeper value back through any chain of trades.

    In-season trades pass both the cost and the accumulated years on to the
    acquiring owner. Offseason trades pass the cost only; years restart at
    the first draft after the trade. A pickup anywhere along the chain means
    the value is the undrafted round. The walk keeps a visited set of
    (player, owner, period start) entries, so a trade back to an earlier owner
    is followed while malformed cyclic data cannot recurse forever.

    Args:
        history: Ownership history of the player
        player_id: Player being traced
        owner_id: Owner holding the player now
        target_season: Season the player would be kept for
        deadline_week: Trade deadline week of the league

    Returns:
        AcquisitionOrigin for the owner's current period
    """
    period = current_period(history, owner_id, target_season)
    if period is None:
        return AcquisitionOrigin(
            acquisition=Waiver(),
            origin_season=target_season,
            intrinsic_round=None,
            lineage=[owner_id],
        )
    return _trace(history, period, player_id, deadline_week, visited=set())
