"""Ownership history reconstruction from draft picks and transactions.

Ownership is tracked by stable owner identity rather than by per-season
roster, so a player held by the same owner across several league seasons
forms one contiguous period.
"""

import dataclasses
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime

from keeper_cascade.config import season_end_boundary, season_for_date, season_kickoff
from keeper_cascade.models import AcquisitionType, DraftPick, League, TransactionType
from keeper_cascade.store import LeagueStore

logger = logging.getLogger(__name__)

_TRANSACTION_ACQUISITIONS = {
    TransactionType.TRADE: AcquisitionType.TRADE,
    TransactionType.WAIVER: AcquisitionType.WAIVER,
    TransactionType.FREE_AGENT: AcquisitionType.FREE_AGENT,
}


@dataclass
class OwnershipPeriod:
    """A contiguous span during which one owner held a player.

    Attributes:
        owner_id: Stable owner identity
        start: When the owner got the player
        end: When the owner lost the player (None while still held)
        acquisition_type: How the period started
        season: Season the period started in
        draft_round: Round of the draft pick that opened the period
        from_owner_id: Previous owner, for trades
    """

    owner_id: str
    start: datetime
    end: datetime | None
    acquisition_type: AcquisitionType
    season: int
    draft_round: int | None = None
    from_owner_id: str | None = None

    def is_active_at(self, moment: datetime) -> bool:
        """Check whether the owner held the player at a moment."""
        if self.start > moment:
            return False
        return self.end is None or self.end > moment


def resolve_keeper_picks(picks: list[DraftPick]) -> list[DraftPick]:
    """Reduce draft picks to one authoritative pick per player per draft.

    When a player was drafted, dropped and re-drafted in the same draft, the
    last pick decides who held him after the draft. The host may have flagged
    an earlier pick as the keeper, so a keeper flag anywhere in the group is
    moved onto the last pick and the correction is logged.

    Args:
        picks: Draft picks, possibly several for the same player and draft

    Returns:
        One pick per (league, player), ordered by season then pick number
    """
    groups: dict[tuple[str, str], list[DraftPick]] = defaultdict(list)
    for pick in picks:
        if pick.player_id is None:
            continue
        groups[(pick.league_id, pick.player_id)].append(pick)

    resolved = []
    for (_, player_id), group in groups.items():
        group.sort(key=lambda p: p.pick_no)
        last = group[-1]
        flagged = [p for p in group if p.is_keeper]

        if flagged and not last.is_keeper:
            logger.warning(
                f"Keeper pick for player {player_id} in {last.season} reassigned "
                f"from roster {flagged[0].roster_id} to {last.roster_id} (last pick)"
            )
            last = dataclasses.replace(last, is_keeper=True)
        elif len(group) > 1:
            logger.debug(
                f"Player {player_id} picked {len(group)} times in {last.season}, "
                f"using last pick by roster {last.roster_id}"
            )

        resolved.append(last)

    resolved.sort(key=lambda p: (p.season, p.pick_no))
    return resolved


def draft_moment(store: LeagueStore, league: League) -> datetime:
    """Get when a league season's draft happened.

    Uses the recorded draft date, then the earliest pick timestamp, then the
    season kickoff.
    """
    if league.draft_date is not None:
        return league.draft_date
    stamps = [
        p.picked_at
        for p in store.draft_picks_for_league(league.league_id)
        if p.picked_at is not None
    ]
    if stamps:
        return min(stamps)
    return season_kickoff(league.season)


def _owner_or_none(store: LeagueStore, roster_id: str | None) -> str | None:
    if roster_id is None:
        return None
    roster = store.rosters.get(roster_id)
    if roster is None:
        logger.warning(f"Unknown roster {roster_id} in player history, ignoring")
        return None
    return roster.owner_id


def build_ownership_history(
    store: LeagueStore, player_id: str, league_id: str
) -> list[OwnershipPeriod]:
    """Reconstruct the ordered ownership periods of a player across a league chain.

    Draft events come first at their draft moment, then transactions in
    chronological order:
        - A non-keeper pick opens a DRAFTED period for the picking owner
        - A keeper pick confirms the current owner's period and never opens
          one; a keeper pick naming another owner releases the player
        - A player missing from a season's draft is released at the draft
        - An add closes the open period and opens one for the receiving owner
        - A drop closes the open period without opening a new one

    Args:
        store: League data store
        player_id: Player to trace
        league_id: Any league season of the chain (normally the most recent)

    Returns:
        Ownership periods, oldest first
    """
    chain = store.league_chain(league_id)
    league_ids = [league.league_id for league in chain]

    player_picks = store.draft_picks_for_player(player_id, league_ids)
    picks_by_league = {
        pick.league_id: pick for pick in resolve_keeper_picks(player_picks)
    }

    # (moment, order, payload): drafts sort before transactions at the same moment
    events: list[tuple[datetime, int, object]] = []
    for league in chain:
        if not store.draft_picks_for_league(league.league_id):
            continue
        events.append((draft_moment(store, league), 0, league))
    for tx, move in store.transactions_for_player(player_id, league_ids):
        events.append((tx.created_at, 1, (tx, move)))
    events.sort(key=lambda e: (e[0], e[1]))

    periods: list[OwnershipPeriod] = []
    current: OwnershipPeriod | None = None

    def close(moment: datetime) -> None:
        nonlocal current
        if current is not None:
            current.end = moment
            current = None

    def open_period(period: OwnershipPeriod) -> None:
        nonlocal current
        periods.append(period)
        current = period

    for moment, _, payload in events:
        if isinstance(payload, League):
            pick = picks_by_league.get(payload.league_id)
            if pick is None:
                if current is not None:
                    logger.debug(
                        f"Player {player_id} not kept in {payload.season}, "
                        f"released from owner {current.owner_id}"
                    )
                close(moment)
                continue

            owner_id = _owner_or_none(store, pick.roster_id)
            if owner_id is None:
                continue

            if pick.is_keeper:
                if current is None or current.owner_id != owner_id:
                    logger.warning(
                        f"Keeper pick for player {player_id} in {pick.season} names "
                        f"owner {owner_id}, who did not hold him; ignoring it"
                    )
                    close(moment)
                continue

            close(moment)
            open_period(
                OwnershipPeriod(
                    owner_id=owner_id,
                    start=pick.picked_at or moment,
                    end=None,
                    acquisition_type=AcquisitionType.DRAFTED,
                    season=pick.season,
                    draft_round=pick.round,
                )
            )
            continue

        tx, move = payload
        to_owner = _owner_or_none(store, move.to_roster_id)
        from_owner = _owner_or_none(store, move.from_roster_id)

        if to_owner is not None:
            close(moment)
            open_period(
                OwnershipPeriod(
                    owner_id=to_owner,
                    start=moment,
                    end=None,
                    acquisition_type=_TRANSACTION_ACQUISITIONS[tx.type],
                    season=season_for_date(moment),
                    from_owner_id=from_owner,
                )
            )
        elif current is not None and current.owner_id == from_owner:
            close(moment)
        else:
            logger.debug(
                f"Drop of player {player_id} by owner {from_owner} at {moment} "
                f"does not match the open period, ignoring"
            )

    return periods


def periods_for_owner(
    history: list[OwnershipPeriod], owner_id: str
) -> list[OwnershipPeriod]:
    return [p for p in history if p.owner_id == owner_id]


def owner_at(history: list[OwnershipPeriod], moment: datetime) -> str | None:
    """Get the owner holding the player at a moment, if any."""
    for period in reversed(history):
        if period.is_active_at(moment):
            return period.owner_id
    return None


def owned_at_season_end(
    history: list[OwnershipPeriod], owner_id: str, season: int
) -> bool:
    """Check an already-built history for ownership at a season's end boundary."""
    return owner_at(history, season_end_boundary(season)) == owner_id


def was_owned_at_season_end(
    store: LeagueStore, player_id: str, league_id: str, owner_id: str, season: int
) -> bool:
    """Check whether an owner held a player at the end of a season.

    Args:
        store: League data store
        player_id: Player to check
        league_id: Any league season of the chain
        owner_id: Stable owner identity
        season: Season whose late-February end boundary is checked

    Returns:
        True if the period active at the boundary belongs to owner_id
    """
    history = build_ownership_history(store, player_id, league_id)
    return owned_at_season_end(history, owner_id, season)
