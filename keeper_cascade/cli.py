"""Command-line interface for keeper eligibility, cost and cascade allocation."""

import functools
import logging
import sys
from pathlib import Path
from typing import Any, Callable

import click

from keeper_cascade.calculator import (
    calculate_keeper_eligibility,
    get_keeper_cost_details,
    populate_keepers_from_draft_picks,
    recalculate_keeper_years,
    validate_keeper_selections,
)
from keeper_cascade.cascade import (
    KeeperInput,
    calculate_cascade,
    get_draft_board_with_keepers,
    recalculate_and_apply_cascade,
)
from keeper_cascade.data_io import KEEPERS_FILE, load_league_data, save_keepers_csv
from keeper_cascade.errors import KeeperEngineError
from keeper_cascade.projections import calculate_keeper_projections
from keeper_cascade.store import LeagueStore

logger = logging.getLogger(__name__)


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""

    RED = "\033[91m"
    YELLOW = "\033[93m"
    GREEN = "\033[92m"
    BLUE = "\033[94m"
    RESET = "\033[0m"


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors and emojis for different log levels."""

    LEVEL_COLORS = {
        "DEBUG": Colors.BLUE,
        "INFO": "",  # No color - plain white/default
        "WARNING": Colors.YELLOW,
        "ERROR": Colors.RED,
        "CRITICAL": Colors.RED,
    }

    LEVEL_EMOJIS = {
        "DEBUG": "🔍 ",
        "INFO": "",
        "WARNING": "⚠️  ",
        "ERROR": "❌ ",
        "CRITICAL": "💥 ",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors and emojis."""
        level_color = self.LEVEL_COLORS.get(record.levelname, "")
        level_emoji = self.LEVEL_EMOJIS.get(record.levelname, "")

        message = record.getMessage()
        if level_color:
            return f"{level_emoji}{level_color}{message}{Colors.RESET}"
        return f"{level_emoji}{message}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application with colors and emojis.

    Args:
        verbose: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColoredFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)


def engine_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn engine errors raised by a command into an error line and exit status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except KeeperEngineError as exc:
            logger.error(str(exc))
            sys.exit(1)

    return wrapper


def _season_or_default(store: LeagueStore, league_id: str, season: int | None) -> int:
    return season if season is not None else store.get_league(league_id).season


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(exists=True, file_okay=False),
    required=True,
    help="Directory holding the league CSV files",
)
@click.option("--verbose", is_flag=True, help="Enable verbose (DEBUG level) logging")
@click.pass_context
def cli(ctx: click.Context, data_dir: str, verbose: bool) -> None:
    """Keeper eligibility, cost and draft-round cascade for keeper leagues."""
    setup_logging(verbose)
    try:
        ctx.obj = {"store": load_league_data(data_dir), "data_dir": Path(data_dir)}
    except FileNotFoundError as exc:
        logger.error(str(exc))
        sys.exit(1)


@cli.command()
@click.argument("player_id")
@click.argument("roster_id")
@click.option("--season", type=int, help="Keeper season (default: the roster's league season)")
@click.pass_obj
@engine_errors
def eligibility(obj: dict, player_id: str, roster_id: str, season: int | None) -> None:
    """Show whether a roster can keep a player and what it costs."""
    store: LeagueStore = obj["store"]
    league_id = store.get_roster(roster_id).league_id
    season = _season_or_default(store, league_id, season)
    settings = store.settings_for(league_id)

    result = calculate_keeper_eligibility(
        store, player_id, roster_id, league_id, season, settings
    )
    details = get_keeper_cost_details(store, player_id, roster_id, season, settings)

    click.echo(f"{store.player_name(player_id)} ({season})")
    click.echo(f"  Eligible:     {'yes' if result.is_eligible else 'no'}")
    click.echo(f"  Acquired:     {result.acquisition_type.value}")
    click.echo(f"  Years kept:   {result.years_kept}")
    click.echo(f"  At max years: {'yes' if result.at_max_years else 'no'}")
    click.echo(f"  Base cost:    Round {result.base_cost}")
    click.echo(f"  Breakdown:    {details.reason}")
    if result.reason:
        click.echo(f"  Note:         {result.reason}")


@cli.command()
@click.argument("league_id")
@click.option("--season", type=int, help="Keeper season (default: the league season)")
@click.pass_obj
@engine_errors
def cascade(obj: dict, league_id: str, season: int | None) -> None:
    """Preview the cascade over a league's persisted keepers."""
    store: LeagueStore = obj["store"]
    season = _season_or_default(store, league_id, season)
    keepers = [
        KeeperInput(k.player_id, k.roster_id, store.player_name(k.player_id), k.type)
        for k in store.keepers_for_league(league_id, season)
    ]
    result = calculate_cascade(store, league_id, keepers, season)

    for placement in sorted(result.keepers, key=lambda k: (k.roster_id, k.final_cost)):
        line = (
            f"{placement.roster_id}  Round {placement.final_cost:>2}  "
            f"{placement.player_name} (base {placement.base_cost})"
        )
        if placement.is_cascaded:
            line += f"  <- {', '.join(placement.conflicts_with)}"
        click.echo(line)

    for warning in result.warnings:
        logger.warning(warning)
    if result.has_errors:
        sys.exit(1)


@cli.command()
@click.argument("league_id")
@click.option("--season", type=int, help="Keeper season (default: the league season)")
@click.option(
    "--output",
    type=click.Path(dir_okay=False),
    help="Keeper CSV to write (default: keepers.csv in the data directory)",
)
@click.pass_obj
@engine_errors
def apply(obj: dict, league_id: str, season: int | None, output: str | None) -> None:
    """Recalculate the cascade and save changed final costs."""
    store: LeagueStore = obj["store"]
    season = _season_or_default(store, league_id, season)

    result = recalculate_and_apply_cascade(store, league_id, season)
    if not result.success:
        for error in result.errors:
            logger.error(error)
        sys.exit(1)

    output_path = Path(output) if output else obj["data_dir"] / KEEPERS_FILE
    save_keepers_csv(output_path, list(store.keepers.values()))
    click.echo(f"Updated {result.updated_count} keepers, saved to {output_path}")


@cli.command()
@click.argument("roster_id")
@click.option("--season", type=int, help="Keeper season (default: the roster's league season)")
@click.pass_obj
@engine_errors
def validate(obj: dict, roster_id: str, season: int | None) -> None:
    """Check a roster's keeper selections against the league limits."""
    store: LeagueStore = obj["store"]
    league_id = store.get_roster(roster_id).league_id
    season = _season_or_default(store, league_id, season)

    result = validate_keeper_selections(store, roster_id, league_id, season)
    for warning in result.warnings:
        click.echo(f"warning: {warning}")
    for error in result.errors:
        click.echo(f"error: {error}")
    if not result.is_valid:
        sys.exit(1)
    click.echo("Keeper selections are valid")


@cli.command()
@click.argument("player_id")
@click.argument("roster_id")
@click.option("--season", type=int, help="First projected season")
@click.option("--years", type=int, default=3, help="Seasons to project (default: 3)")
@click.pass_obj
@engine_errors
def project(
    obj: dict, player_id: str, roster_id: str, season: int | None, years: int
) -> None:
    """Project a player's keeper cost over the coming seasons."""
    store: LeagueStore = obj["store"]
    league_id = store.get_roster(roster_id).league_id
    season = _season_or_default(store, league_id, season)

    projection = calculate_keeper_projections(
        store, player_id, roster_id, league_id, season, years
    )
    click.echo(f"{projection.player_name}: {projection.value_trajectory.value}")
    for year in projection.projections:
        click.echo(
            f"  {year.season}  Round {year.cost:>2}  {year.type.value:<14} {year.reason}"
        )


@cli.command()
@click.argument("league_id")
@click.option("--season", type=int, help="Draft season (default: the league season)")
@click.pass_obj
@engine_errors
def board(obj: dict, league_id: str, season: int | None) -> None:
    """Show the draft board with keepers in their final rounds."""
    store: LeagueStore = obj["store"]
    season = _season_or_default(store, league_id, season)

    draft_board = get_draft_board_with_keepers(store, league_id, season)
    for row in draft_board.rosters:
        click.echo(row.team_name)
        for slot in row.slots:
            if slot.keeper is not None:
                cell = slot.keeper.player_name
            elif not slot.is_owned:
                cell = f"(traded to {slot.traded_to})" if slot.traded_to else "(traded)"
            else:
                cell = "-"
            click.echo(f"  Round {slot.round:>2}  {cell}")


@cli.command()
@click.argument("league_id")
@click.option(
    "--output",
    type=click.Path(dir_okay=False),
    help="Keeper CSV to write (default: keepers.csv in the data directory)",
)
@click.pass_obj
@engine_errors
def populate(obj: dict, league_id: str, output: str | None) -> None:
    """Create keeper rows from a league's keeper-flagged draft picks."""
    store: LeagueStore = obj["store"]
    result = populate_keepers_from_draft_picks(store, league_id)
    years_updated = recalculate_keeper_years(store, league_id)

    output_path = Path(output) if output else obj["data_dir"] / KEEPERS_FILE
    save_keepers_csv(output_path, list(store.keepers.values()))
    click.echo(
        f"Created {result.created} keepers ({result.skipped} already present), "
        f"repaired {years_updated} year counts, saved to {output_path}"
    )


if __name__ == "__main__":
    cli()
