"""Data model for keeper leagues: leagues, rosters, picks, transactions, keepers."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from keeper_cascade.config import KeeperSettings


class AcquisitionType(str, Enum):
    """How a roster came to hold a player."""

    DRAFTED = "DRAFTED"
    TRADE = "TRADE"
    WAIVER = "WAIVER"
    FREE_AGENT = "FREE_AGENT"


class KeeperType(str, Enum):
    """Keeper designation."""

    REGULAR = "REGULAR"
    FRANCHISE = "FRANCHISE"


class TransactionType(str, Enum):
    """Transaction kinds reported by the league host."""

    TRADE = "TRADE"
    WAIVER = "WAIVER"
    FREE_AGENT = "FREE_AGENT"


@dataclass
class League:
    """One season's instance of a league.

    Attributes:
        league_id: Unique league identifier for this season
        season: Season year
        name: Display name
        previous_league_id: league_id of the previous season's instance
        keeper_settings: Keeper rules (None means league defaults)
        draft_date: When this season's draft happened (None if unknown)
    """

    league_id: str
    season: int
    name: str = ""
    previous_league_id: str | None = None
    keeper_settings: KeeperSettings | None = None
    draft_date: datetime | None = None


@dataclass
class Roster:
    """One team's seat in a league season.

    Attributes:
        roster_id: Unique roster identifier (per league season)
        league_id: League season the roster belongs to
        owner_id: Stable owner identity, shared across the league chain
        slot: Per-season roster slot number used by traded-pick records
        team_name: Display name
    """

    roster_id: str
    league_id: str
    owner_id: str
    slot: int
    team_name: str = ""


@dataclass
class Player:
    """League-independent draftable player."""

    player_id: str
    full_name: str
    position: str | None = None
    team: str | None = None


@dataclass
class DraftPick:
    """One pick in a league season's draft.

    Attributes:
        league_id: League season whose draft this pick belongs to
        season: Draft season
        round: Draft round
        roster_id: Roster that made the pick
        player_id: Player taken (None for an unused slot)
        pick_no: Overall pick number within the draft
        is_keeper: Whether the host flagged the pick as a keeper
        picked_at: When the pick was made (None if unknown)
    """

    league_id: str
    season: int
    round: int
    roster_id: str
    player_id: str | None = None
    pick_no: int = 0
    is_keeper: bool = False
    picked_at: datetime | None = None


@dataclass
class TransactionPlayer:
    """A single player movement inside a transaction.

    A None from_roster_id is a free-agency add, a None to_roster_id is a drop.
    """

    player_id: str
    from_roster_id: str | None = None
    to_roster_id: str | None = None


@dataclass
class Transaction:
    """A timestamped roster transaction."""

    transaction_id: str
    league_id: str
    type: TransactionType
    created_at: datetime
    players: list[TransactionPlayer] = field(default_factory=list)


@dataclass
class TradedPick:
    """A draft pick that changed hands.

    Rosters are named by per-season slot number, as the league host reports
    them; they are mapped to rosters fresh for every computation.

    Attributes:
        league_id: League season the record was reported in
        season: Season of the draft the pick belongs to
        round: Draft round
        original_slot: Slot that originally owned the round
        current_slot: Slot that owns the round now
    """

    league_id: str
    season: int
    round: int
    original_slot: int
    current_slot: int


@dataclass
class Keeper:
    """A persisted keeper decision for one season.

    Attributes:
        keeper_id: Unique keeper row identifier
        player_id: Player kept
        roster_id: Roster keeping the player
        season: Season the player is kept for
        type: REGULAR or FRANCHISE
        base_cost: Intrinsic round cost (never changed by cascade)
        final_cost: Round occupied after cascade
        years_kept: Year count including this season
        acquisition_type: How the roster acquired the player
        original_draft_round: Draft round the cost derives from, if drafted
    """

    keeper_id: str
    player_id: str
    roster_id: str
    season: int
    type: KeeperType
    base_cost: int
    final_cost: int
    years_kept: int = 1
    acquisition_type: AcquisitionType = AcquisitionType.DRAFTED
    original_draft_round: int | None = None


# Acquisition variants: each shape carries only the fields that make sense for it


@dataclass(frozen=True)
class Drafted:
    """Player held on draft value.

    Attributes:
        round: Draft round the value derives from
        season: Season of that draft
        date: When the roster got the player (draft or same-season pickup)
        via_pickup: True when a different owner drafted him and this roster
            picked him up in the same season
    """

    round: int
    season: int
    date: datetime | None = None
    via_pickup: bool = False

    @property
    def kind(self) -> AcquisitionType:
        return AcquisitionType.DRAFTED


@dataclass(frozen=True)
class Traded:
    """Player acquired in a trade.

    Attributes:
        from_owner_id: Owner identity that traded the player away
        date: When the trade happened
        after_deadline: True for offseason trades (keeper years reset)
    """

    from_owner_id: str | None
    date: datetime
    after_deadline: bool

    @property
    def kind(self) -> AcquisitionType:
        return AcquisitionType.TRADE


@dataclass(frozen=True)
class Waiver:
    """Player claimed off waivers (also the default when nothing is known)."""

    date: datetime | None = None

    @property
    def kind(self) -> AcquisitionType:
        return AcquisitionType.WAIVER


@dataclass(frozen=True)
class FreeAgent:
    """Player signed as a free agent."""

    date: datetime | None = None

    @property
    def kind(self) -> AcquisitionType:
        return AcquisitionType.FREE_AGENT


Acquisition = Drafted | Traded | Waiver | FreeAgent


def acquisition_draft_round(acquisition: Acquisition) -> int | None:
    """Get the draft round of an acquisition, if it carries one."""
    if isinstance(acquisition, Drafted):
        return acquisition.round
    return None
