"""Tests for cascade allocation, apply and the draft board."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from unittest.mock import patch

import pytest

from keeper_cascade.cascade import (
    KeeperInput,
    build_pick_ownership_map,
    calculate_cascade,
    get_draft_board_with_keepers,
    preview_team_cascade,
    recalculate_and_apply_cascade,
    season_traded_picks,
)
from keeper_cascade.config import KeeperSettings
from keeper_cascade.errors import LeagueNotFoundError, PlayerNotFoundError
from keeper_cascade.models import KeeperType


def _inputs(*entries: tuple[str, str]) -> list[KeeperInput]:
    return [
        KeeperInput(player_id, roster_id, player_id.title())
        for player_id, roster_id in entries
    ]


@pytest.fixture
def two_round_eight_keepers(builder):
    """Two undrafted keepers on one roster with undrafted round 8."""
    builder.season(2025, settings=KeeperSettings(undrafted_round=8))
    builder.player("ekeler", "Austin Ekeler")
    builder.player("pacheco", "Isiah Pacheco")
    return builder


class TestPickOwnership:
    """Tests for owned rounds after pick trades."""

    def test_default_owns_every_round(self, builder) -> None:
        builder.season(2025)
        owned = build_pick_ownership_map(builder.store, "L2025", 2025, 10)
        assert owned["alice-2025"] == set(range(1, 11))

    def test_traded_round_moves_between_rosters(self, builder) -> None:
        builder.season(2025)
        builder.traded_pick(2025, 5, "alice", "bob")

        owned = build_pick_ownership_map(builder.store, "L2025", 2025, 10)

        assert 5 not in owned["alice-2025"]
        assert 5 in owned["bob-2025"]
        assert owned["carol-2025"] == set(range(1, 11))

    def test_most_recent_report_wins(self, builder) -> None:
        """Test a pick reported by several seasons uses the latest report."""
        builder.season(2024)
        builder.season(2025)
        builder.traded_pick(2025, 2, "alice", "bob", reported_in=2024)
        builder.traded_pick(2025, 2, "alice", "carol", reported_in=2025)

        records = season_traded_picks(builder.store, "L2025", 2025)
        owned = build_pick_ownership_map(builder.store, "L2025", 2025, 10)

        assert len(records) == 1
        assert 2 in owned["carol-2025"]
        assert 2 not in owned["alice-2025"]

    def test_unknown_slot_ignored(self, builder) -> None:
        builder.season(2025)
        builder.traded_pick(2025, 4, "alice", "bob")
        builder.store.traded_picks[0].current_slot = 12

        owned = build_pick_ownership_map(builder.store, "L2025", 2025, 10)

        assert 4 in owned["alice-2025"]


class TestCalculateCascade:
    """Tests for placing keepers into rounds."""

    def test_no_conflict_keeps_base_cost(self, kept_every_year) -> None:
        result = calculate_cascade(
            kept_every_year.store, "L2026", _inputs(("saquon", "alice-2026")), 2026
        )

        placement = result.keepers[0]
        assert placement.base_cost == placement.final_cost == 3
        assert placement.is_cascaded is False
        assert result.conflicts == []
        assert not result.has_errors

    def test_shared_base_cost_cascades_to_better_round(self, two_round_eight_keepers) -> None:
        """Test two keepers at Round 8 end up in Rounds 8 and 7."""
        store = two_round_eight_keepers.store
        keepers = [
            KeeperInput("ekeler", "alice-2025", "Austin Ekeler"),
            KeeperInput("pacheco", "alice-2025", "Isiah Pacheco"),
        ]

        result = calculate_cascade(store, "L2025", keepers, 2025)

        by_name = {k.player_name: k for k in result.keepers}
        assert by_name["Austin Ekeler"].final_cost == 8
        assert by_name["Isiah Pacheco"].final_cost == 7
        assert by_name["Isiah Pacheco"].conflicts_with == ["Austin Ekeler"]
        assert by_name["Isiah Pacheco"].cascade_steps == 1
        assert by_name["Isiah Pacheco"].is_cascaded
        assert all(k.base_cost == 8 for k in result.keepers)
        assert len(result.conflicts) == 1
        assert result.conflicts[0].round == 8
        assert result.conflicts[0].players == ["Austin Ekeler", "Isiah Pacheco"]

    def test_traded_away_round_skipped(self, builder) -> None:
        """Test a keeper never lands in a round the roster traded away."""
        builder.season(2025)
        builder.season(2026)
        builder.draft(2025, "alice", "p1", 6)
        builder.traded_pick(2026, 5, "alice", "bob")

        result = calculate_cascade(builder.store, "L2026", _inputs(("p1", "alice-2026")), 2026)

        placement = result.keepers[0]
        assert placement.base_cost == 5
        assert placement.final_cost == 4
        assert "Round 5 traded away" in placement.conflicts_with

    def test_best_base_cost_placed_first(self, builder) -> None:
        """Test placement order follows base cost, not input order."""
        builder.season(2025)
        builder.season(2026)
        builder.draft(2025, "alice", "late", 9)
        builder.draft(2025, "alice", "early", 8)
        builder.draft(2026, "alice", "late", 8, keeper=True)
        builder.draft(2026, "alice", "early", 7, keeper=True)

        keepers = _inputs(("late", "alice-2026"), ("early", "alice-2026"))
        result = calculate_cascade(builder.store, "L2026", keepers, 2026)

        by_id = {k.player_id: k for k in result.keepers}
        assert result.keepers[0].player_id == "early"
        assert by_id["early"].final_cost == 7
        assert by_id["late"].final_cost == 8

    def test_rosters_cascade_independently(self, two_round_eight_keepers) -> None:
        store = two_round_eight_keepers.store
        keepers = [
            KeeperInput("ekeler", "alice-2025", "Austin Ekeler"),
            KeeperInput("pacheco", "bob-2025", "Isiah Pacheco"),
        ]

        result = calculate_cascade(store, "L2025", keepers, 2025)

        assert [k.final_cost for k in result.keepers] == [8, 8]
        assert result.conflicts == []

    def test_falls_back_to_worse_round_with_warning(self, builder) -> None:
        builder.season(2024)
        builder.season(2025, settings=KeeperSettings(undrafted_round=4))
        builder.draft(2024, "alice", "p1", 1)
        builder.traded_pick(2025, 1, "alice", "bob")

        result = calculate_cascade(builder.store, "L2025", _inputs(("p1", "alice-2025")), 2025)

        placement = result.keepers[0]
        assert placement.base_cost == 1
        assert placement.final_cost == 2
        assert placement.cascade_steps == 1
        assert placement.conflicts_with == ["Round 1 traded away"]
        assert not result.has_errors
        assert len(result.warnings) == 1

    def test_unplaceable_keeper_reported_not_placed(self, builder) -> None:
        """Test a keeper with no owned round left is reported and never placed."""
        builder.season(2025, settings=KeeperSettings(undrafted_round=3))
        builder.traded_pick(2025, 1, "alice", "bob")
        keepers = _inputs(("p1", "alice-2025"), ("p2", "alice-2025"), ("p3", "alice-2025"))

        result = calculate_cascade(builder.store, "L2025", keepers, 2025)

        assert result.has_errors
        assert result.errors == [
            "P3: Cannot assign slot - no owned round available between Round 1 and Round 3"
        ]
        assert sorted(k.final_cost for k in result.keepers) == [2, 3]
        assert "p3" not in [k.player_id for k in result.keepers]

    def test_more_keepers_than_rounds_never_share_a_round(self, builder) -> None:
        builder.season(2025, settings=KeeperSettings(undrafted_round=3))
        keepers = _inputs(*[(f"p{i}", "alice-2025") for i in range(1, 5)])

        result = calculate_cascade(builder.store, "L2025", keepers, 2025)

        finals = [k.final_cost for k in result.keepers]
        assert sorted(finals) == [1, 2, 3]
        assert len(result.errors) == 1
        assert result.errors[0].startswith("P4: Cannot assign slot")

    def test_final_costs_unique_and_in_range(self, builder) -> None:
        builder.season(2025, settings=KeeperSettings(minimum_round=2, undrafted_round=9))
        builder.traded_pick(2025, 7, "alice", "carol")
        builder.traded_pick(2025, 4, "alice", "bob")
        keepers = _inputs(*[(f"p{i}", "alice-2025") for i in range(5)])

        result = calculate_cascade(builder.store, "L2025", keepers, 2025)

        finals = [k.final_cost for k in result.keepers]
        assert len(set(finals)) == len(finals)
        assert all(2 <= cost <= 9 for cost in finals)
        assert all(k.final_cost <= k.base_cost for k in result.keepers)
        assert 4 not in finals and 7 not in finals

    def test_missing_league_reported(self, builder) -> None:
        result = calculate_cascade(builder.store, "nope", [], 2025)
        assert result.has_errors
        assert result.errors == ["League not found"]

    def test_missing_roster_reported_per_keeper(self, two_round_eight_keepers) -> None:
        """Test one bad keeper does not abort the rest of the batch."""
        store = two_round_eight_keepers.store
        keepers = [
            KeeperInput("ekeler", "ghost", "Austin Ekeler"),
            KeeperInput("pacheco", "alice-2025", "Isiah Pacheco"),
        ]

        result = calculate_cascade(store, "L2025", keepers, 2025)

        assert len(result.keepers) == 1
        assert result.errors == ["Austin Ekeler: Roster with ID 'ghost' not found"]

    def test_not_found_from_cost_lookup_is_collected(self, two_round_eight_keepers) -> None:
        store = two_round_eight_keepers.store
        keepers = [KeeperInput("ekeler", "alice-2025", "Austin Ekeler")]

        with patch(
            "keeper_cascade.cascade.analyze_keeper_cost",
            side_effect=PlayerNotFoundError("ekeler"),
        ):
            result = calculate_cascade(store, "L2025", keepers, 2025)

        assert result.keepers == []
        assert result.errors == ["Austin Ekeler: Player with ID 'ekeler' not found"]


class TestApplyCascade:
    """Tests for persisting cascade results."""

    def test_apply_updates_final_cost_only(self, two_round_eight_keepers) -> None:
        builder = two_round_eight_keepers
        first = builder.keeper(2025, "alice", "ekeler", base_cost=8, final_cost=8)
        second = builder.keeper(2025, "alice", "pacheco", base_cost=8, final_cost=8)

        result = recalculate_and_apply_cascade(builder.store, "L2025", 2025)

        assert result.success
        assert result.updated_count == 1
        assert {first.final_cost, second.final_cost} == {7, 8}
        assert first.base_cost == second.base_cost == 8

    def test_apply_is_idempotent(self, two_round_eight_keepers) -> None:
        builder = two_round_eight_keepers
        builder.keeper(2025, "alice", "ekeler", base_cost=8, final_cost=3)
        builder.keeper(2025, "alice", "pacheco", base_cost=8, final_cost=3)

        first = recalculate_and_apply_cascade(builder.store, "L2025", 2025)
        second = recalculate_and_apply_cascade(builder.store, "L2025", 2025)

        assert first.updated_count == 2
        assert second.success
        assert second.updated_count == 0

    def test_apply_keeps_stale_base_cost(self, kept_every_year) -> None:
        """Test apply never rewrites base_cost even when it is stale."""
        keeper = kept_every_year.keeper(2026, "alice", "saquon", base_cost=9, final_cost=9)

        recalculate_and_apply_cascade(kept_every_year.store, "L2026", 2026)

        assert keeper.base_cost == 9
        assert keeper.final_cost == 3

    def test_apply_with_errors_writes_nothing(self, builder) -> None:
        builder.season(2025, settings=KeeperSettings(undrafted_round=3))
        builder.traded_pick(2025, 1, "alice", "bob")
        keepers = [
            builder.keeper(2025, "alice", player_id, base_cost=3, final_cost=3)
            for player_id in ("p1", "p2", "p3")
        ]

        result = recalculate_and_apply_cascade(builder.store, "L2025", 2025)

        assert not result.success
        assert result.updated_count == 0
        assert result.errors
        assert [k.final_cost for k in keepers] == [3, 3, 3]

    def test_apply_with_no_keepers(self, builder) -> None:
        builder.season(2025)
        result = recalculate_and_apply_cascade(builder.store, "L2025", 2025)
        assert result.success
        assert result.updated_count == 0

    def test_concurrent_applies_write_once(self, two_round_eight_keepers) -> None:
        """Test concurrent applies on one league season never double-write."""
        builder = two_round_eight_keepers
        builder.keeper(2025, "alice", "ekeler", base_cost=8, final_cost=1)
        builder.keeper(2025, "alice", "pacheco", base_cost=8, final_cost=1)

        with ThreadPoolExecutor(max_workers=4) as pool:
            futures = [
                pool.submit(recalculate_and_apply_cascade, builder.store, "L2025", 2025)
                for _ in range(4)
            ]
            results = [f.result() for f in futures]

        assert sum(r.updated_count for r in results) == 2
        assert all(r.success for r in results)


class TestPreviewAndBoard:
    """Tests for the team preview and the draft board."""

    def test_preview_team_cascade(self, two_round_eight_keepers) -> None:
        builder = two_round_eight_keepers
        builder.keeper(2025, "alice", "ekeler", base_cost=8)
        builder.keeper(2025, "alice", "pacheco", base_cost=8)
        builder.keeper(2025, "bob", "someone", base_cost=8)

        result = preview_team_cascade(builder.store, "alice-2025", 2025)

        assert len(result.keepers) == 2
        assert sorted(k.final_cost for k in result.keepers) == [7, 8]
        assert builder.store.find_keeper("pacheco", "alice-2025", 2025).final_cost == 8

    def test_preview_missing_roster(self, builder) -> None:
        result = preview_team_cascade(builder.store, "ghost", 2025)
        assert result.has_errors
        assert result.errors == ["Roster not found"]

    def test_draft_board(self, builder) -> None:
        builder.season(2025)
        builder.season(2026)
        builder.player("p1", "Puka Nacua", position="WR")
        builder.draft(2025, "alice", "p1", 6)
        builder.keeper(2026, "alice", "p1", base_cost=5)
        builder.traded_pick(2026, 5, "alice", "bob")

        board = get_draft_board_with_keepers(builder.store, "L2026", 2026)

        assert board.rounds == 16
        assert [row.roster_id for row in board.rosters] == ["alice-2026", "bob-2026", "carol-2026"]
        alice = board.rosters[0]
        assert len(alice.slots) == 16
        assert alice.slots[4].is_owned is False
        assert alice.slots[4].traded_to == "Bob's Team"
        assert alice.slots[3].keeper.player_name == "Puka Nacua"
        assert board.rosters[1].slots[4].is_owned is True
        assert board.rosters[1].slots[4].traded_to is None

    def test_draft_board_missing_league(self, builder) -> None:
        with pytest.raises(LeagueNotFoundError):
            get_draft_board_with_keepers(builder.store, "nope", 2025)

    def test_keeper_type_carried_through(self, kept_every_year) -> None:
        keepers = [KeeperInput("saquon", "alice-2026", "Saquon Barkley", KeeperType.FRANCHISE)]
        result = calculate_cascade(kept_every_year.store, "L2026", keepers, 2026)
        assert result.keepers[0].type == KeeperType.FRANCHISE


def test_trade_before_cascade_changes_base(builder) -> None:
    """Test a mid-season trade carries the cost into the new owner's cascade."""
    builder.season(2025)
    builder.season(2026)
    builder.draft(2025, "alice", "p1", 6)
    builder.trade(datetime(2025, 10, 1), "p1", "alice", "bob")

    result = calculate_cascade(builder.store, "L2026", _inputs(("p1", "bob-2026")), 2026)

    assert result.keepers[0].base_cost == 5
