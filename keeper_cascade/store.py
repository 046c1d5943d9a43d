"""In-memory league data store supplying and persisting keeper engine data."""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator

from keeper_cascade.config import MAX_CHAIN_DEPTH, KeeperSettings
from keeper_cascade.errors import (
    KeeperNotFoundError,
    LeagueNotFoundError,
    PlayerNotFoundError,
    RosterNotFoundError,
    StoreWriteError,
)
from keeper_cascade.models import (
    DraftPick,
    Keeper,
    League,
    Player,
    Roster,
    TradedPick,
    Transaction,
    TransactionPlayer,
)

logger = logging.getLogger(__name__)

# Keeper fields a batch write may change
WRITABLE_KEEPER_FIELDS = {"final_cost", "years_kept"}


class LeagueStore:
    """Holds league records and keeper rows for one or more league chains.

    Attributes:
        leagues: league_id -> League
        rosters: roster_id -> Roster
        players: player_id -> Player
        draft_picks: All draft picks, in insertion order
        transactions: All transactions, in insertion order
        traded_picks: All traded pick records
        keepers: keeper_id -> Keeper
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self.leagues: dict[str, League] = {}
        self.rosters: dict[str, Roster] = {}
        self.players: dict[str, Player] = {}
        self.draft_picks: list[DraftPick] = []
        self.transactions: list[Transaction] = []
        self.traded_picks: list[TradedPick] = []
        self.keepers: dict[str, Keeper] = {}

        self._locks: dict[tuple[str, int], threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Record registration
    # ------------------------------------------------------------------

    def add_league(self, league: League) -> League:
        self.leagues[league.league_id] = league
        return league

    def add_roster(self, roster: Roster) -> Roster:
        self.rosters[roster.roster_id] = roster
        return roster

    def add_player(self, player: Player) -> Player:
        self.players[player.player_id] = player
        return player

    def add_draft_pick(self, pick: DraftPick) -> DraftPick:
        self.draft_picks.append(pick)
        return pick

    def add_transaction(self, transaction: Transaction) -> Transaction:
        self.transactions.append(transaction)
        return transaction

    def add_traded_pick(self, traded_pick: TradedPick) -> TradedPick:
        self.traded_picks.append(traded_pick)
        return traded_pick

    def add_keeper(self, keeper: Keeper) -> Keeper:
        """Insert or replace a keeper row."""
        self.keepers[keeper.keeper_id] = keeper
        return keeper

    # ------------------------------------------------------------------
    # Single-entity lookups (fail fast)
    # ------------------------------------------------------------------

    def get_league(self, league_id: str) -> League:
        try:
            return self.leagues[league_id]
        except KeyError:
            raise LeagueNotFoundError(league_id) from None

    def get_roster(self, roster_id: str) -> Roster:
        try:
            return self.rosters[roster_id]
        except KeyError:
            raise RosterNotFoundError(roster_id) from None

    def get_player(self, player_id: str) -> Player:
        try:
            return self.players[player_id]
        except KeyError:
            raise PlayerNotFoundError(player_id) from None

    def get_keeper(self, keeper_id: str) -> Keeper:
        try:
            return self.keepers[keeper_id]
        except KeyError:
            raise KeeperNotFoundError(keeper_id) from None

    def player_name(self, player_id: str) -> str:
        """Get a player's display name, falling back to the id."""
        player = self.players.get(player_id)
        return player.full_name if player else player_id

    def settings_for(self, league_id: str) -> KeeperSettings:
        """Get a league's keeper settings, or the defaults if it has none."""
        league = self.get_league(league_id)
        return league.keeper_settings or KeeperSettings()

    # ------------------------------------------------------------------
    # League chain and roster identity
    # ------------------------------------------------------------------

    def league_chain(
        self, league_id: str, max_depth: int = MAX_CHAIN_DEPTH
    ) -> list[League]:
        """Get a league and its predecessors, most recent season first.

        Args:
            league_id: League season to start from
            max_depth: Maximum number of seasons to follow

        Returns:
            List of League objects from league_id backward
        """
        chain: list[League] = []
        seen: set[str] = set()
        current: str | None = league_id

        while current and len(chain) < max_depth:
            if current in seen:
                logger.warning(f"League chain loops back to {current}, stopping")
                break
            seen.add(current)

            league = self.leagues.get(current)
            if league is None:
                if not chain:
                    raise LeagueNotFoundError(current)
                break
            chain.append(league)
            current = league.previous_league_id

        return chain

    def league_for_season(self, league_id: str, season: int) -> League | None:
        """Find the league instance for a season within a league's chain."""
        for league in self.league_chain(league_id):
            if league.season == season:
                return league
        return None

    def rosters_for_league(self, league_id: str) -> list[Roster]:
        return [r for r in self.rosters.values() if r.league_id == league_id]

    def owner_of(self, roster_id: str) -> str:
        """Get the stable owner identity behind a roster."""
        return self.get_roster(roster_id).owner_id

    def roster_for_owner(self, league_id: str, owner_id: str) -> Roster | None:
        for roster in self.rosters_for_league(league_id):
            if roster.owner_id == owner_id:
                return roster
        return None

    def slot_lookup(self, league_id: str) -> dict[int, Roster]:
        """Build the per-season slot number -> roster table for a league."""
        return {r.slot: r for r in self.rosters_for_league(league_id)}

    # ------------------------------------------------------------------
    # Draft, transaction and pick queries
    # ------------------------------------------------------------------

    def draft_picks_for_player(
        self, player_id: str, league_ids: list[str] | set[str]
    ) -> list[DraftPick]:
        wanted = set(league_ids)
        return [
            p
            for p in self.draft_picks
            if p.player_id == player_id and p.league_id in wanted
        ]

    def draft_picks_for_league(self, league_id: str) -> list[DraftPick]:
        return [p for p in self.draft_picks if p.league_id == league_id]

    def transactions_for_player(
        self, player_id: str, league_ids: list[str] | set[str]
    ) -> list[tuple[Transaction, TransactionPlayer]]:
        """Get every movement of a player, oldest first."""
        wanted = set(league_ids)
        moves = [
            (tx, move)
            for tx in self.transactions
            if tx.league_id in wanted
            for move in tx.players
            if move.player_id == player_id
        ]
        moves.sort(key=lambda item: item[0].created_at)
        return moves

    def traded_picks_for(self, league_ids: list[str], season: int) -> list[TradedPick]:
        """Get traded pick records for a draft season reported by any league."""
        wanted = set(league_ids)
        return [
            tp
            for tp in self.traded_picks
            if tp.league_id in wanted and tp.season == season
        ]

    # ------------------------------------------------------------------
    # Keeper rows
    # ------------------------------------------------------------------

    def keepers_for_league(
        self, league_id: str, season: int | None = None
    ) -> list[Keeper]:
        roster_ids = {r.roster_id for r in self.rosters_for_league(league_id)}
        return [
            k
            for k in self.keepers.values()
            if k.roster_id in roster_ids and (season is None or k.season == season)
        ]

    def keepers_for_roster(
        self, roster_id: str, season: int | None = None
    ) -> list[Keeper]:
        return [
            k
            for k in self.keepers.values()
            if k.roster_id == roster_id and (season is None or k.season == season)
        ]

    def find_keeper(self, player_id: str, roster_id: str, season: int) -> Keeper | None:
        for keeper in self.keepers.values():
            if (
                keeper.player_id == player_id
                and keeper.roster_id == roster_id
                and keeper.season == season
            ):
                return keeper
        return None

    @contextmanager
    def writer_lock(self, league_id: str, season: int) -> Iterator[None]:
        """Serialize writers for one league season.

        Usage:
            with store.writer_lock(league_id, season):
                ...  # read, compute, update_keepers
        """
        key = (league_id, season)
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.RLock())
        with lock:
            yield

    def update_keepers(self, changes: dict[str, dict[str, Any]]) -> int:
        """Apply field updates to several keeper rows as one unit.

        Every change is validated before any row is touched, so a rejected
        batch leaves the store unchanged.

        Args:
            changes: keeper_id -> {field: new value}

        Returns:
            Number of keeper rows updated

        Raises:
            StoreWriteError: If a keeper id is unknown or a field is not writable
        """
        problems = []
        for keeper_id, values in changes.items():
            if keeper_id not in self.keepers:
                problems.append(f"unknown keeper {keeper_id}")
            bad_fields = set(values) - WRITABLE_KEEPER_FIELDS
            if bad_fields:
                problems.append(f"{keeper_id}: fields not writable {sorted(bad_fields)}")
        if problems:
            raise StoreWriteError("; ".join(problems))

        for keeper_id, values in changes.items():
            keeper = self.keepers[keeper_id]
            for name, value in values.items():
                setattr(keeper, name, value)

        logger.debug(f"Updated {len(changes)} keeper rows")
        return len(changes)
