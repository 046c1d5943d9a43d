"""Cascade allocation of keepers to draft rounds.

Keepers are placed best base cost first. A keeper whose round is taken or
traded away moves to the nearest free owned round toward Round 1, and only
falls back to worse rounds when nothing better is left.
"""

import logging
from dataclasses import dataclass, field

from keeper_cascade.calculator import analyze_keeper_cost
from keeper_cascade.config import KeeperSettings
from keeper_cascade.errors import NotFoundError
from keeper_cascade.models import Keeper, KeeperType, TradedPick
from keeper_cascade.store import LeagueStore

logger = logging.getLogger(__name__)


@dataclass
class KeeperInput:
    player_id: str
    roster_id: str
    player_name: str
    type: KeeperType = KeeperType.REGULAR


@dataclass
class CascadeKeeperResult:
    """Placement of one keeper.

    Attributes:
        player_id: Player kept
        roster_id: Roster keeping the player
        player_name: Display name
        type: Keeper designation
        base_cost: Intrinsic round cost (unchanged by cascade)
        final_cost: Round the keeper occupies
        cascade_steps: Rounds moved away from the base cost
        conflicts_with: Keeper names or "Round N traded away" for each blocked round
        is_cascaded: Whether the keeper moved at all
    """

    player_id: str
    roster_id: str
    player_name: str
    type: KeeperType
    base_cost: int
    final_cost: int
    cascade_steps: int
    conflicts_with: list[str] = field(default_factory=list)

    @property
    def is_cascaded(self) -> bool:
        return self.cascade_steps > 0


@dataclass
class CascadeConflict:
    """Keepers on one roster sharing a base cost where at least one moved."""

    roster_id: str
    round: int
    players: list[str] = field(default_factory=list)


@dataclass
class CascadeResult:
    keepers: list[CascadeKeeperResult] = field(default_factory=list)
    conflicts: list[CascadeConflict] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def for_roster(self, roster_id: str) -> list[CascadeKeeperResult]:
        return [k for k in self.keepers if k.roster_id == roster_id]


@dataclass
class ApplyResult:
    success: bool
    updated_count: int
    errors: list[str] = field(default_factory=list)


@dataclass
class DraftBoardSlot:
    round: int
    keeper: CascadeKeeperResult | None
    is_owned: bool
    traded_to: str | None = None


@dataclass
class DraftBoardRoster:
    roster_id: str
    team_name: str
    slots: list[DraftBoardSlot] = field(default_factory=list)


@dataclass
class DraftBoard:
    rounds: int
    rosters: list[DraftBoardRoster] = field(default_factory=list)


def season_traded_picks(
    store: LeagueStore, league_id: str, season: int
) -> list[TradedPick]:
    """Get the traded picks for a draft season, one record per (round, original slot).

    Several seasons of the chain may report the same pick; the most recent
    league's record wins.
    """
    chain_ids = [league.league_id for league in store.league_chain(league_id)]
    rank = {lid: i for i, lid in enumerate(chain_ids)}
    records = sorted(
        store.traded_picks_for(chain_ids, season), key=lambda tp: rank[tp.league_id]
    )

    latest: dict[tuple[int, int], TradedPick] = {}
    for record in records:
        latest.setdefault((record.round, record.original_slot), record)
    return list(latest.values())


def build_pick_ownership_map(
    store: LeagueStore, league_id: str, season: int, rounds: int
) -> dict[str, set[int]]:
    """Build the set of rounds each roster of a league owns for a draft season.

    Every roster starts with rounds 1..rounds. Each traded pick removes the
    round from the original slot's roster and adds it to the current one.

    Args:
        store: League data store
        league_id: League season whose rosters own the picks
        season: Draft season
        rounds: Number of rounds to consider

    Returns:
        roster_id -> owned rounds
    """
    slots = store.slot_lookup(league_id)
    owned = {r.roster_id: set(range(1, rounds + 1)) for r in slots.values()}

    for record in season_traded_picks(store, league_id, season):
        original = slots.get(record.original_slot)
        current = slots.get(record.current_slot)
        if original is None or current is None:
            logger.debug(
                f"Traded pick round {record.round} names unknown slot "
                f"({record.original_slot} -> {record.current_slot}), ignoring"
            )
            continue
        if original.roster_id == current.roster_id:
            continue
        owned[original.roster_id].discard(record.round)
        if record.round <= rounds:
            owned[current.roster_id].add(record.round)

    return owned


def _place(
    start: int,
    used: dict[int, str],
    owned: set[int],
    settings: KeeperSettings,
    conflicts_with: list[str],
) -> tuple[int | None, bool]:
    """Find a free owned round for a keeper starting at its clamped base cost.

    Returns:
        (round or None, whether it was found in the fallback direction)
    """

    def blocked(round_num: int) -> bool:
        if round_num in used:
            conflicts_with.append(used[round_num])
            return True
        if round_num not in owned:
            conflicts_with.append(f"Round {round_num} traded away")
            return True
        return False

    if not blocked(start):
        return start, False

    for round_num in range(start - 1, settings.minimum_round - 1, -1):
        if not blocked(round_num):
            return round_num, False

    for round_num in range(start + 1, settings.undrafted_round + 1):
        if not blocked(round_num):
            return round_num, True

    return None, False


def calculate_cascade(
    store: LeagueStore, league_id: str, keepers: list[KeeperInput], season: int
) -> CascadeResult:
    """Assign every keeper a final draft round.

    Keepers are sorted by base cost (best first, stable for ties) and placed
    one by one per roster. A keeper that cannot be placed in an owned round
    is reported in errors and left out of the placements, so no two keepers
    on a roster ever share a round.

    Args:
        store: League data store
        league_id: League season the keepers belong to
        keepers: Candidate keepers across any rosters of the league
        season: Keeper season

    Returns:
        CascadeResult with placements, conflict groups, errors and warnings
    """
    result = CascadeResult()
    if league_id not in store.leagues:
        result.errors.append("League not found")
        return result

    settings = store.settings_for(league_id)
    owned_map = build_pick_ownership_map(
        store, league_id, season, settings.undrafted_round
    )
    full_range = set(range(settings.minimum_round, settings.undrafted_round + 1))

    costed: list[tuple[KeeperInput, int]] = []
    for keeper in keepers:
        try:
            analysis = analyze_keeper_cost(
                store, keeper.player_id, keeper.roster_id, season, settings
            )
        except NotFoundError as exc:
            result.errors.append(f"{keeper.player_name}: {exc}")
            continue
        costed.append((keeper, analysis.base_cost))

    costed.sort(key=lambda item: item[1])

    used_by_roster: dict[str, dict[int, str]] = {}
    for keeper, base_cost in costed:
        used = used_by_roster.setdefault(keeper.roster_id, {})
        owned = owned_map.get(keeper.roster_id, full_range)
        start = settings.clamp_round(base_cost)
        conflicts_with: list[str] = []

        final_cost, fell_back = _place(start, used, owned, settings, conflicts_with)

        if final_cost is None:
            result.errors.append(
                f"{keeper.player_name}: Cannot assign slot - no owned round "
                f"available between Round {settings.minimum_round} "
                f"and Round {settings.undrafted_round}"
            )
            continue
        if fell_back:
            result.warnings.append(
                f"{keeper.player_name}: no better round available, "
                f"moved to worse Round {final_cost}"
            )

        used[final_cost] = keeper.player_name
        result.keepers.append(
            CascadeKeeperResult(
                player_id=keeper.player_id,
                roster_id=keeper.roster_id,
                player_name=keeper.player_name,
                type=keeper.type,
                base_cost=base_cost,
                final_cost=final_cost,
                cascade_steps=abs(start - final_cost),
                conflicts_with=conflicts_with,
            )
        )

    result.conflicts = group_conflicts(result.keepers)

    for message in result.errors:
        logger.warning(message)
    logger.debug(
        f"Cascade for {league_id} {season}: {len(result.keepers)} keepers, "
        f"{len(result.conflicts)} conflicts, {len(result.errors)} errors"
    )
    return result


def group_conflicts(placements: list[CascadeKeeperResult]) -> list[CascadeConflict]:
    """Group keepers sharing a base cost on a roster whenever any of them moved."""
    groups: dict[tuple[str, int], CascadeConflict] = {}
    cascaded_keys = {(k.roster_id, k.base_cost) for k in placements if k.is_cascaded}

    for placement in placements:
        key = (placement.roster_id, placement.base_cost)
        if key not in cascaded_keys:
            continue
        conflict = groups.setdefault(
            key,
            CascadeConflict(roster_id=placement.roster_id, round=placement.base_cost),
        )
        conflict.players.append(placement.player_name)

    return list(groups.values())


def _inputs_for(store: LeagueStore, keepers: list[Keeper]) -> list[KeeperInput]:
    return [
        KeeperInput(
            player_id=k.player_id,
            roster_id=k.roster_id,
            player_name=store.player_name(k.player_id),
            type=k.type,
        )
        for k in keepers
    ]


def recalculate_and_apply_cascade(
    store: LeagueStore, league_id: str, season: int
) -> ApplyResult:
    """Recompute the cascade for a league season and persist changed final costs.

    Runs under the league season's writer lock. Only final_cost is written,
    and only where it changed, so a second run with no data change updates
    nothing. A cascade with errors writes nothing.

    Args:
        store: League data store
        league_id: League season to recalculate
        season: Keeper season

    Returns:
        ApplyResult with the number of rows updated
    """
    with store.writer_lock(league_id, season):
        keepers = store.keepers_for_league(league_id, season)
        if not keepers:
            return ApplyResult(success=True, updated_count=0)

        inputs = _inputs_for(store, keepers)
        cascade = calculate_cascade(store, league_id, inputs, season)
        if cascade.has_errors:
            logger.warning(
                f"Cascade for {league_id} {season} has errors, nothing written"
            )
            return ApplyResult(success=False, updated_count=0, errors=cascade.errors)

        by_key = {(k.player_id, k.roster_id): k for k in keepers}
        changes = {}
        for placement in cascade.keepers:
            keeper = by_key[(placement.player_id, placement.roster_id)]
            if keeper.final_cost != placement.final_cost:
                changes[keeper.keeper_id] = {"final_cost": placement.final_cost}

        updated = store.update_keepers(changes)

    logger.info(f"Applied cascade for {league_id} {season}: {updated} keepers updated")
    return ApplyResult(success=True, updated_count=updated)


def preview_team_cascade(
    store: LeagueStore, roster_id: str, season: int
) -> CascadeResult:
    """Run the cascade over one roster's persisted keepers without writing."""
    roster = store.rosters.get(roster_id)
    if roster is None:
        return CascadeResult(errors=["Roster not found"])

    keepers = store.keepers_for_roster(roster_id, season)
    inputs = _inputs_for(store, keepers)
    return calculate_cascade(store, roster.league_id, inputs, season)


def get_draft_board_with_keepers(
    store: LeagueStore, league_id: str, season: int
) -> DraftBoard:
    """Lay out every roster's draft rounds with the keeper placed in each.

    Args:
        store: League data store
        league_id: League season to lay out
        season: Draft season

    Returns:
        DraftBoard with one slot per round per roster

    Raises:
        LeagueNotFoundError: If the league does not exist
    """
    store.get_league(league_id)
    settings = store.settings_for(league_id)
    rounds = settings.draft_rounds

    keepers = store.keepers_for_league(league_id, season)
    cascade = calculate_cascade(store, league_id, _inputs_for(store, keepers), season)
    owned_map = build_pick_ownership_map(store, league_id, season, rounds)
    slots = store.slot_lookup(league_id)
    traded = season_traded_picks(store, league_id, season)

    board = DraftBoard(rounds=rounds)
    for roster in sorted(store.rosters_for_league(league_id), key=lambda r: r.slot):
        placed = {k.final_cost: k for k in cascade.for_roster(roster.roster_id)}
        owned = owned_map.get(roster.roster_id, set())
        row = DraftBoardRoster(
            roster_id=roster.roster_id,
            team_name=roster.team_name or f"Team {roster.slot}",
        )
        for round_num in range(1, rounds + 1):
            traded_to = None
            for record in traded:
                if record.original_slot == roster.slot and record.round == round_num:
                    new_owner = slots.get(record.current_slot)
                    if new_owner is not None and new_owner.roster_id != roster.roster_id:
                        traded_to = new_owner.team_name or f"Team {new_owner.slot}"
                    break
            row.slots.append(
                DraftBoardSlot(
                    round=round_num,
                    keeper=placed.get(round_num),
                    is_owned=round_num in owned,
                    traded_to=traded_to,
                )
            )
        board.rosters.append(row)

    return board
