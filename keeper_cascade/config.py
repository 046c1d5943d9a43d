"""Keeper league settings and the NFL season calendar used by the engine."""

from dataclasses import dataclass, fields
from datetime import date, datetime, timedelta
from typing import Any

# Default keeper rules - overridden per league by KeeperSettings
DEFAULT_MAX_KEEPERS = 7
DEFAULT_MAX_FRANCHISE_TAGS = 2
DEFAULT_MAX_REGULAR_KEEPERS = 5
DEFAULT_REGULAR_KEEPER_MAX_YEARS = 2
DEFAULT_UNDRAFTED_ROUND = 10
DEFAULT_MINIMUM_ROUND = 1
DEFAULT_COST_REDUCTION_PER_YEAR = 1
DEFAULT_DRAFT_ROUNDS = 16
DEFAULT_TRADE_DEADLINE_WEEK = 11  # Trades after this week reset keeper years

# A league chain is never followed further back than this many seasons
MAX_CHAIN_DEPTH = 10

# Season end boundary: a season's rosters are final on Feb 28 of the next year
SEASON_END_MONTH = 2
SEASON_END_DAY = 28


@dataclass
class KeeperSettings:
    """Per-league keeper configuration.

    Attributes:
        max_keepers: Total keepers a roster may hold in one season
        max_franchise_tags: Franchise tags a roster may use in one season
        max_regular_keepers: Regular keepers a roster may hold in one season
        regular_keeper_max_years: Seasons a player may spend on a roster before
            only a franchise tag can keep him
        undrafted_round: Round charged for undrafted (waiver/FA) players, also
            the worst round a keeper can occupy
        minimum_round: Best round a keeper can occupy
        cost_reduction_per_year: Rounds a keeper improves by per year held
        draft_rounds: Rounds in the league's draft (draft board width)
        trade_deadline_week: NFL week after which trades count as offseason
    """

    max_keepers: int = DEFAULT_MAX_KEEPERS
    max_franchise_tags: int = DEFAULT_MAX_FRANCHISE_TAGS
    max_regular_keepers: int = DEFAULT_MAX_REGULAR_KEEPERS
    regular_keeper_max_years: int = DEFAULT_REGULAR_KEEPER_MAX_YEARS
    undrafted_round: int = DEFAULT_UNDRAFTED_ROUND
    minimum_round: int = DEFAULT_MINIMUM_ROUND
    cost_reduction_per_year: int = DEFAULT_COST_REDUCTION_PER_YEAR
    draft_rounds: int = DEFAULT_DRAFT_ROUNDS
    trade_deadline_week: int = DEFAULT_TRADE_DEADLINE_WEEK

    def __post_init__(self) -> None:
        """Reject settings the allocator cannot work with."""
        if self.minimum_round < 1:
            raise ValueError(f"minimum_round must be >= 1, got {self.minimum_round}")
        if self.undrafted_round < self.minimum_round:
            raise ValueError(
                f"undrafted_round ({self.undrafted_round}) must not be better "
                f"than minimum_round ({self.minimum_round})"
            )

    def clamp_round(self, round_num: int) -> int:
        """Clamp a round into [minimum_round, undrafted_round]."""
        return max(self.minimum_round, min(self.undrafted_round, round_num))

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> "KeeperSettings":
        """Build settings from a loose mapping such as a CSV row.

        Unknown keys and blank values are ignored so that missing columns fall
        back to the defaults.

        Args:
            values: Mapping of setting name -> value (strings are converted)

        Returns:
            KeeperSettings with the provided overrides applied
        """
        known = {f.name for f in fields(cls)}
        overrides: dict[str, int] = {}
        for key, value in values.items():
            if key not in known or value is None or value == "":
                continue
            overrides[key] = int(value)
        return cls(**overrides)


def season_for_date(moment: datetime | date) -> int:
    """Get the NFL season a date belongs to.

    A season runs from March of its year through the end of February of the
    next year, so January/February belong to the previous season.

    Args:
        moment: Date or datetime to classify

    Returns:
        Season year
    """
    if moment.month <= SEASON_END_MONTH:
        return moment.year - 1
    return moment.year


def season_end_boundary(season: int) -> datetime:
    """Get the fixed late-February cutoff that ends a season."""
    return datetime(season + 1, SEASON_END_MONTH, SEASON_END_DAY, 23, 59, 59)


def season_kickoff(season: int) -> datetime:
    """Get the kickoff of a season: the Thursday after Labor Day.

    Labor Day is the first Monday of September.
    """
    first_of_september = datetime(season, 9, 1)
    days_to_monday = (7 - first_of_september.weekday()) % 7
    labor_day = first_of_september + timedelta(days=days_to_monday)
    return labor_day + timedelta(days=3)


def trade_deadline(
    season: int, deadline_week: int = DEFAULT_TRADE_DEADLINE_WEEK
) -> datetime:
    """Get the end of the trade-deadline week for a season."""
    return season_kickoff(season) + timedelta(weeks=deadline_week)


def is_trade_after_deadline(
    trade_date: datetime, deadline_week: int = DEFAULT_TRADE_DEADLINE_WEEK
) -> bool:
    """Check whether a trade happened outside the in-season trading window.

    Only trades between a season's kickoff and its deadline are in-season.
    Everything else (late November through August) is an offseason trade,
    which resets the acquiring owner's keeper years.

    Args:
        trade_date: When the trade happened
        deadline_week: NFL week of the trade deadline

    Returns:
        True if the trade was after the deadline (keeper years reset)
    """
    season = season_for_date(trade_date)
    in_season = season_kickoff(season) <= trade_date < trade_deadline(
        season, deadline_week
    )
    return not in_season


def next_keeper_season(moment: datetime) -> int:
    """Get the first season whose draft happens after the given moment."""
    season = season_for_date(moment)
    if moment < season_kickoff(season):
        return season
    return season + 1
