"""Shared fixtures for building keeper league datasets."""

from datetime import datetime

import pytest

from keeper_cascade.config import KeeperSettings, season_for_date
from keeper_cascade.models import (
    DraftPick,
    Keeper,
    KeeperType,
    League,
    Player,
    Roster,
    TradedPick,
    Transaction,
    TransactionPlayer,
    TransactionType,
)
from keeper_cascade.store import LeagueStore


class LeagueBuilder:
    """Builds a league chain with one roster per owner per season.

    League ids are "L<season>" and roster ids "<owner>-<season>", so tests
    can refer to them without bookkeeping. Drafts default to September 1,
    just before kickoff.
    """

    def __init__(self, owners: tuple[str, ...] = ("alice", "bob", "carol")) -> None:
        self.store = LeagueStore()
        self.owners = owners
        self._pick_numbers: dict[str, int] = {}
        self._tx_count = 0
        self._keeper_count = 0

    def season(
        self,
        year: int,
        settings: KeeperSettings | None = None,
        draft_date: datetime | None = None,
    ) -> str:
        league_id = f"L{year}"
        previous = f"L{year - 1}" if f"L{year - 1}" in self.store.leagues else None
        self.store.add_league(
            League(
                league_id=league_id,
                season=year,
                name=f"Keeper League {year}",
                previous_league_id=previous,
                keeper_settings=settings,
                draft_date=draft_date or datetime(year, 9, 1),
            )
        )
        for slot, owner in enumerate(self.owners, start=1):
            self.store.add_roster(
                Roster(
                    roster_id=self.roster(owner, year),
                    league_id=league_id,
                    owner_id=owner,
                    slot=slot,
                    team_name=f"{owner.title()}'s Team",
                )
            )
        return league_id

    def roster(self, owner: str, year: int) -> str:
        return f"{owner}-{year}"

    def slot(self, owner: str) -> int:
        return self.owners.index(owner) + 1

    def player(self, player_id: str, name: str | None = None, position: str = "RB") -> str:
        self.store.add_player(
            Player(player_id=player_id, full_name=name or player_id.title(), position=position)
        )
        return player_id

    def draft(
        self,
        year: int,
        owner: str,
        player_id: str,
        round_num: int,
        keeper: bool = False,
        picked_at: datetime | None = None,
    ) -> DraftPick:
        league_id = f"L{year}"
        pick_no = self._pick_numbers.get(league_id, 0) + 1
        self._pick_numbers[league_id] = pick_no
        return self.store.add_draft_pick(
            DraftPick(
                league_id=league_id,
                season=year,
                round=round_num,
                roster_id=self.roster(owner, year),
                player_id=player_id,
                pick_no=pick_no,
                is_keeper=keeper,
                picked_at=picked_at,
            )
        )

    def _transaction(
        self,
        when: datetime,
        tx_type: TransactionType,
        player_id: str,
        from_owner: str | None,
        to_owner: str | None,
    ) -> Transaction:
        year = season_for_date(when)
        self._tx_count += 1
        return self.store.add_transaction(
            Transaction(
                transaction_id=f"tx{self._tx_count}",
                league_id=f"L{year}",
                type=tx_type,
                created_at=when,
                players=[
                    TransactionPlayer(
                        player_id=player_id,
                        from_roster_id=self.roster(from_owner, year) if from_owner else None,
                        to_roster_id=self.roster(to_owner, year) if to_owner else None,
                    )
                ],
            )
        )

    def trade(self, when: datetime, player_id: str, from_owner: str, to_owner: str) -> Transaction:
        return self._transaction(when, TransactionType.TRADE, player_id, from_owner, to_owner)

    def waiver(self, when: datetime, player_id: str, owner: str) -> Transaction:
        return self._transaction(when, TransactionType.WAIVER, player_id, None, owner)

    def free_agent(self, when: datetime, player_id: str, owner: str) -> Transaction:
        return self._transaction(when, TransactionType.FREE_AGENT, player_id, None, owner)

    def drop(self, when: datetime, player_id: str, owner: str) -> Transaction:
        return self._transaction(when, TransactionType.WAIVER, player_id, owner, None)

    def traded_pick(
        self,
        year: int,
        round_num: int,
        from_owner: str,
        to_owner: str,
        reported_in: int | None = None,
    ) -> TradedPick:
        return self.store.add_traded_pick(
            TradedPick(
                league_id=f"L{reported_in or year}",
                season=year,
                round=round_num,
                original_slot=self.slot(from_owner),
                current_slot=self.slot(to_owner),
            )
        )

    def keeper(
        self,
        year: int,
        owner: str,
        player_id: str,
        keeper_type: KeeperType = KeeperType.REGULAR,
        base_cost: int = 10,
        final_cost: int | None = None,
        years_kept: int = 1,
    ) -> Keeper:
        self._keeper_count += 1
        return self.store.add_keeper(
            Keeper(
                keeper_id=f"k{self._keeper_count}",
                player_id=player_id,
                roster_id=self.roster(owner, year),
                season=year,
                type=keeper_type,
                base_cost=base_cost,
                final_cost=base_cost if final_cost is None else final_cost,
                years_kept=years_kept,
            )
        )


@pytest.fixture
def builder() -> LeagueBuilder:
    """Empty league builder with three owners."""
    return LeagueBuilder()


@pytest.fixture
def kept_every_year(builder: LeagueBuilder) -> LeagueBuilder:
    """Alice drafts Saquon in Round 5 of 2024 and keeps him through 2027."""
    for year in range(2024, 2028):
        builder.season(year)
    builder.player("saquon", "Saquon Barkley")
    builder.draft(2024, "alice", "saquon", 5)
    builder.draft(2025, "alice", "saquon", 4, keeper=True)
    builder.draft(2026, "alice", "saquon", 3, keeper=True)
    builder.draft(2027, "alice", "saquon", 2, keeper=True)
    return builder
