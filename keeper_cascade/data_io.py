"""Data input/output module for league datasets and keeper rows."""

import csv
import logging
from dataclasses import fields
from datetime import datetime
from pathlib import Path

from keeper_cascade.config import KeeperSettings
from keeper_cascade.models import (
    AcquisitionType,
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

logger = logging.getLogger(__name__)

LEAGUES_FILE = "leagues.csv"
ROSTERS_FILE = "rosters.csv"
PLAYERS_FILE = "players.csv"
DRAFT_PICKS_FILE = "draft_picks.csv"
TRANSACTIONS_FILE = "transactions.csv"
TRADED_PICKS_FILE = "traded_picks.csv"
KEEPERS_FILE = "keepers.csv"

KEEPER_FIELDS = [
    "keeper_id",
    "player_id",
    "roster_id",
    "season",
    "type",
    "base_cost",
    "final_cost",
    "years_kept",
    "acquisition_type",
    "original_draft_round",
]

_TRUE_VALUES = {"1", "true", "yes", "y", "t"}
_TRANSACTION_TYPES = {t.value for t in TransactionType}


def _text(row: dict[str, str], key: str) -> str | None:
    """Get a stripped CSV value, None when missing or blank."""
    value = row.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _int(row: dict[str, str], key: str) -> int | None:
    value = _text(row, key)
    return int(value) if value is not None else None


def _datetime(row: dict[str, str], key: str) -> datetime | None:
    value = _text(row, key)
    return datetime.fromisoformat(value) if value is not None else None


def _bool(row: dict[str, str], key: str) -> bool:
    value = _text(row, key)
    return value is not None and value.lower() in _TRUE_VALUES


def _read_rows(path: Path) -> list[dict[str, str]]:
    with open(path, "r", newline="") as f:
        return list(csv.DictReader(f))


def _load_leagues(path: Path, store: LeagueStore) -> None:
    settings_columns = {f.name for f in fields(KeeperSettings)}
    for row in _read_rows(path):
        league_id = _text(row, "league_id")
        season = _int(row, "season")
        if league_id is None or season is None:
            logger.debug(f"Skipping league row without id or season: {row}")
            continue

        settings = None
        if any(_text(row, column) is not None for column in settings_columns):
            settings = KeeperSettings.from_dict(row)

        store.add_league(
            League(
                league_id=league_id,
                season=season,
                name=_text(row, "name") or "",
                previous_league_id=_text(row, "previous_league_id"),
                keeper_settings=settings,
                draft_date=_datetime(row, "draft_date"),
            )
        )


def _load_rosters(path: Path, store: LeagueStore) -> None:
    for row in _read_rows(path):
        roster_id = _text(row, "roster_id")
        league_id = _text(row, "league_id")
        owner_id = _text(row, "owner_id")
        slot = _int(row, "slot")
        if roster_id is None or league_id is None or owner_id is None or slot is None:
            logger.debug(f"Skipping incomplete roster row: {row}")
            continue
        store.add_roster(
            Roster(
                roster_id=roster_id,
                league_id=league_id,
                owner_id=owner_id,
                slot=slot,
                team_name=_text(row, "team_name") or "",
            )
        )


def _load_players(path: Path, store: LeagueStore) -> None:
    for row in _read_rows(path):
        player_id = _text(row, "player_id")
        if player_id is None:
            continue
        store.add_player(
            Player(
                player_id=player_id,
                full_name=_text(row, "full_name") or player_id,
                position=_text(row, "position"),
                team=_text(row, "team"),
            )
        )


def _load_draft_picks(path: Path, store: LeagueStore) -> None:
    for row in _read_rows(path):
        league_id = _text(row, "league_id")
        season = _int(row, "season")
        round_num = _int(row, "round")
        roster_id = _text(row, "roster_id")
        if None in (league_id, season, round_num, roster_id):
            logger.debug(f"Skipping incomplete draft pick row: {row}")
            continue
        store.add_draft_pick(
            DraftPick(
                league_id=league_id,
                season=season,
                round=round_num,
                roster_id=roster_id,
                player_id=_text(row, "player_id"),
                pick_no=_int(row, "pick_no") or 0,
                is_keeper=_bool(row, "is_keeper"),
                picked_at=_datetime(row, "picked_at"),
            )
        )


def _load_transactions(path: Path, store: LeagueStore) -> None:
    """Load transactions stored one player movement per row."""
    transactions: dict[str, Transaction] = {}
    for row in _read_rows(path):
        transaction_id = _text(row, "transaction_id")
        league_id = _text(row, "league_id")
        tx_type = _text(row, "type")
        created_at = _datetime(row, "created_at")
        player_id = _text(row, "player_id")
        if None in (transaction_id, league_id, tx_type, created_at, player_id):
            logger.debug(f"Skipping incomplete transaction row: {row}")
            continue
        if tx_type.upper() not in _TRANSACTION_TYPES:
            logger.debug(f"Skipping transaction row with unknown type {tx_type}: {row}")
            continue

        transaction = transactions.get(transaction_id)
        if transaction is None:
            transaction = Transaction(
                transaction_id=transaction_id,
                league_id=league_id,
                type=TransactionType(tx_type.upper()),
                created_at=created_at,
            )
            transactions[transaction_id] = transaction
        transaction.players.append(
            TransactionPlayer(
                player_id=player_id,
                from_roster_id=_text(row, "from_roster_id"),
                to_roster_id=_text(row, "to_roster_id"),
            )
        )

    for transaction in transactions.values():
        store.add_transaction(transaction)


def _load_traded_picks(path: Path, store: LeagueStore) -> None:
    for row in _read_rows(path):
        values = [
            _int(row, key) for key in ("season", "round", "original_slot", "current_slot")
        ]
        league_id = _text(row, "league_id")
        if league_id is None or None in values:
            logger.debug(f"Skipping incomplete traded pick row: {row}")
            continue
        season, round_num, original_slot, current_slot = values
        store.add_traded_pick(
            TradedPick(
                league_id=league_id,
                season=season,
                round=round_num,
                original_slot=original_slot,
                current_slot=current_slot,
            )
        )


def load_keepers_csv(path: str | Path, store: LeagueStore) -> int:
    """Load persisted keeper rows into a store.

    Args:
        path: Path to a keepers CSV file
        store: Store to add the rows to

    Returns:
        Number of keeper rows loaded
    """
    count = 0
    for row in _read_rows(Path(path)):
        keeper_id = _text(row, "keeper_id")
        player_id = _text(row, "player_id")
        roster_id = _text(row, "roster_id")
        season = _int(row, "season")
        base_cost = _int(row, "base_cost")
        if None in (keeper_id, player_id, roster_id, season, base_cost):
            logger.debug(f"Skipping incomplete keeper row: {row}")
            continue

        final_cost = _int(row, "final_cost")
        store.add_keeper(
            Keeper(
                keeper_id=keeper_id,
                player_id=player_id,
                roster_id=roster_id,
                season=season,
                type=KeeperType((_text(row, "type") or "REGULAR").upper()),
                base_cost=base_cost,
                final_cost=final_cost if final_cost is not None else base_cost,
                years_kept=_int(row, "years_kept") or 1,
                acquisition_type=AcquisitionType(
                    (_text(row, "acquisition_type") or "DRAFTED").upper()
                ),
                original_draft_round=_int(row, "original_draft_round"),
            )
        )
        count += 1
    return count


def load_league_data(directory: str | Path) -> LeagueStore:
    """Load a league dataset from a directory of CSV files.

    Expects leagues.csv, rosters.csv, players.csv, draft_picks.csv,
    transactions.csv and traded_picks.csv; keepers.csv is optional. Missing
    files other than leagues.csv are treated as empty.

    Args:
        directory: Directory holding the CSV files

    Returns:
        LeagueStore with every record loaded

    Raises:
        FileNotFoundError: If leagues.csv is missing
    """
    base = Path(directory)
    leagues_path = base / LEAGUES_FILE
    if not leagues_path.exists():
        raise FileNotFoundError(f"No {LEAGUES_FILE} in {base}")

    store = LeagueStore()
    _load_leagues(leagues_path, store)

    loaders = [
        (ROSTERS_FILE, _load_rosters),
        (PLAYERS_FILE, _load_players),
        (DRAFT_PICKS_FILE, _load_draft_picks),
        (TRANSACTIONS_FILE, _load_transactions),
        (TRADED_PICKS_FILE, _load_traded_picks),
    ]
    for filename, loader in loaders:
        path = base / filename
        if path.exists():
            loader(path, store)
        else:
            logger.debug(f"{filename} not found in {base}, skipping")

    keepers_path = base / KEEPERS_FILE
    if keepers_path.exists():
        load_keepers_csv(keepers_path, store)

    logger.info(
        f"Loaded {len(store.leagues)} leagues, {len(store.rosters)} rosters, "
        f"{len(store.draft_picks)} picks, {len(store.transactions)} transactions, "
        f"{len(store.keepers)} keepers from {base}"
    )
    return store


def save_keepers_csv(path: str | Path, keepers: list[Keeper]) -> None:
    """Save keeper rows to a CSV file.

    Args:
        path: Where to write the CSV file
        keepers: Keeper rows to write, in order
    """
    rows = []
    for keeper in keepers:
        rows.append(
            {
                "keeper_id": keeper.keeper_id,
                "player_id": keeper.player_id,
                "roster_id": keeper.roster_id,
                "season": keeper.season,
                "type": keeper.type.value,
                "base_cost": keeper.base_cost,
                "final_cost": keeper.final_cost,
                "years_kept": keeper.years_kept,
                "acquisition_type": keeper.acquisition_type.value,
                "original_draft_round": (
                    keeper.original_draft_round
                    if keeper.original_draft_round is not None
                    else ""
                ),
            }
        )

    # Ensure output directory exists
    Path(path).parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=KEEPER_FIELDS)
        writer.writeheader()
        writer.writerows(rows)
