"""CLI entrypoint for civicwatch."""

import logging
import sys
import time
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import default_home, resolve_config
from .errors import ConfigError
from .notifications import NOTIFICATION_TYPES


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _now(now: int | None) -> int:
    # The wall clock is read only here; the ledger itself never reads it.
    return int(time.time()) if now is None else now


@click.group()
@click.version_option(__version__, prog_name="civicwatch")
@click.option(
    "--home",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Ledger directory (defaults to $CIVICWATCH_HOME or ./.civicwatch)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
    default=None,
    help="TOML file with a [ledger] table (defaults to <home>/civicwatch.toml)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default="WARNING",
    show_default=True,
    help="Logging verbosity (stderr)",
)
@click.pass_context
def cli(ctx: click.Context, home: Path | None, config_path: Path | None, log_level: str) -> None:
    """civicwatch - Community incident-reporting ledger.

    Submit reports, vote on them, and track report status and reputation.
    """
    _configure_logging(log_level)
    ctx.ensure_object(dict)
    home = (home or default_home()).resolve()
    try:
        config = resolve_config(home, config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    ctx.obj["home"] = home
    ctx.obj["config"] = config


@cli.command()
@click.argument("details")
@click.option("--location", required=True, help="Where the incident is")
@click.option("--media", "media_ref", default="", help="Media reference (URL, CID, ...)")
@click.option("--category", required=True, help="Incident category")
@click.option("--priority", type=int, default=3, show_default=True, help="Priority 1 (low) to 5 (high)")
@click.option("--as", "identity", required=True, metavar="IDENTITY", help="Submitting identity")
@click.option("--now", type=int, default=None, help="Timestamp in seconds (defaults to wall clock)")
@click.pass_context
def submit(
    ctx: click.Context,
    details: str,
    location: str,
    media_ref: str,
    category: str,
    priority: int,
    identity: str,
    now: int | None,
) -> None:
    """Submit a new incident report."""
    from .commands.report_cmd import run_submit

    exit_code = run_submit(
        ctx.obj["home"],
        ctx.obj["config"],
        details=details,
        location=location,
        media_ref=media_ref,
        category=category,
        priority=priority,
        reporter=identity,
        now=_now(now),
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("report_id", type=int)
@click.argument("direction", type=click.Choice(["up", "down"]))
@click.option("--as", "identity", required=True, metavar="IDENTITY", help="Voting identity")
@click.option("--now", type=int, default=None, help="Timestamp in seconds (defaults to wall clock)")
@click.pass_context
def vote(ctx: click.Context, report_id: int, direction: str, identity: str, now: int | None) -> None:
    """Vote on a report. Each identity votes once per report."""
    from .commands.report_cmd import run_vote

    sys.exit(
        run_vote(
            ctx.obj["home"],
            ctx.obj["config"],
            report_id,
            is_upvote=(direction == "up"),
            voter=identity,
            now=_now(now),
        )
    )


@cli.command()
@click.argument("report_id", type=int)
@click.option("--as", "identity", required=True, metavar="IDENTITY", help="Reporter identity")
@click.pass_context
def solve(ctx: click.Context, report_id: int, identity: str) -> None:
    """Mark your own report as solved."""
    from .commands.report_cmd import run_solve

    sys.exit(run_solve(ctx.obj["home"], ctx.obj["config"], report_id, caller=identity))


@cli.command()
@click.argument("report_id", type=int)
@click.option("--as", "identity", required=True, metavar="IDENTITY", help="Reporter identity")
@click.pass_context
def flag(ctx: click.Context, report_id: int, identity: str) -> None:
    """Mark your own report as flagged.

    The reporter pays the same penalty as a received downvote.
    """
    from .commands.report_cmd import run_flag

    sys.exit(run_flag(ctx.obj["home"], ctx.obj["config"], report_id, caller=identity))


@cli.command()
@click.argument("report_id", type=int)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def show(ctx: click.Context, report_id: int, output_json: bool) -> None:
    """Show a single report."""
    from .commands.report_cmd import run_show

    sys.exit(run_show(ctx.obj["home"], ctx.obj["config"], report_id, output_json=output_json))


@cli.command("list")
@click.option("--offset", type=int, default=0, show_default=True, help="Number of reports to skip")
@click.option("--limit", type=click.IntRange(min=0), default=20, show_default=True, help="Page size")
@click.option("--reporter", default=None, metavar="IDENTITY", help="Only reports by this identity")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_reports(
    ctx: click.Context,
    offset: int,
    limit: int,
    reporter: str | None,
    output_json: bool,
) -> None:
    """List reports in creation order.

    Examples:

        civicwatch list --offset 20 --limit 20

        civicwatch list --reporter human:alice --json
    """
    from .commands.report_cmd import run_list

    sys.exit(
        run_list(
            ctx.obj["home"],
            ctx.obj["config"],
            offset=offset,
            limit=limit,
            reporter=reporter,
            output_json=output_json,
        )
    )


@cli.command()
@click.argument("identity")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def profile(ctx: click.Context, identity: str, output_json: bool) -> None:
    """Show an identity's reputation profile."""
    from .commands.report_cmd import run_profile

    sys.exit(run_profile(ctx.obj["home"], ctx.obj["config"], identity, output_json=output_json))


@cli.command()
@click.argument("report_id", type=int)
@click.argument("identity")
@click.pass_context
def voted(ctx: click.Context, report_id: int, identity: str) -> None:
    """Check whether IDENTITY has voted on REPORT_ID (exit 0 = yes)."""
    from .commands.report_cmd import run_voted

    sys.exit(run_voted(ctx.obj["home"], ctx.obj["config"], report_id, identity))


@cli.command()
@click.option(
    "--type",
    "event_type",
    type=click.Choice(sorted(NOTIFICATION_TYPES)),
    default=None,
    help="Only this notification type",
)
@click.option("--report", "report_id", type=int, default=None, help="Only notifications for this report")
@click.option("--limit", type=click.IntRange(min=0), default=None, help="Show the most recent N")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def events(
    ctx: click.Context,
    event_type: str | None,
    report_id: int | None,
    limit: int | None,
    output_json: bool,
) -> None:
    """List emitted notifications."""
    from .commands.report_cmd import run_events

    sys.exit(
        run_events(
            ctx.obj["home"],
            ctx.obj["config"],
            event_type=event_type,
            report_id=report_id,
            limit=limit,
            output_json=output_json,
        )
    )


@cli.command()
@click.pass_context
def summary(ctx: click.Context) -> None:
    """Count reports by status."""
    from .commands.report_cmd import run_summary

    sys.exit(run_summary(ctx.obj["home"], ctx.obj["config"]))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
