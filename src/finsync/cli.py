"""Command line entry points for FinSync."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import click

from .config import BaseConfig
from .context import AppContext, create_app_context
from .logging_config import setup_logging


def _build_context() -> AppContext:
    config = BaseConfig()
    setup_logging(config)
    return create_app_context(config)


def _parse_day(value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise click.BadParameter(f"{value!r} is not a YYYY-MM-DD date") from exc


@click.group()
def main() -> None:
    """FinSync recurring transactions and reconciliation."""


@main.command("init-db")
def init_db() -> None:
    """Create the database schema."""

    ctx = _build_context()
    try:
        click.echo(f"Database ready: {ctx.config.DATABASE_URL}")
    finally:
        ctx.dispose()


@main.command("process")
def process() -> None:
    """Create transactions for every recurring schedule due today."""

    ctx = _build_context()
    try:
        result = ctx.processor.process_scheduled_transactions()
        click.echo(
            f"processed={result.processed} failed={result.failed} skipped={result.skipped}"
        )
    finally:
        ctx.dispose()


@main.command("upcoming")
@click.option("--days", default=7, show_default=True, type=click.IntRange(min=0))
def upcoming(days: int) -> None:
    """List recurring occurrences due within the next DAYS days."""

    ctx = _build_context()
    try:
        pairs = ctx.recurring.get_upcoming(days)
        if not pairs:
            click.echo("No upcoming recurring transactions.")
            return
        for schedule, occurrence in pairs:
            label = schedule.description or schedule.category or f"schedule {schedule.id}"
            click.echo(
                f"{occurrence.isoformat()}  {schedule.type:<8} "
                f"{schedule.amount:>12.2f} {schedule.currency}  {label}"
            )
    finally:
        ctx.dispose()


@main.command("evaluate-habits")
@click.option("--date", "day", default=None, help="Day to evaluate (YYYY-MM-DD); defaults to yesterday.")
@click.option("--end", default=None, help="Evaluate every day from --date through this day.")
def evaluate_habits(day: str | None, end: str | None) -> None:
    """Re-evaluate finance-linked habits for one day or a range."""

    start = _parse_day(day) or date.today() - timedelta(days=1)
    stop = _parse_day(end) or start
    if stop < start:
        raise click.BadParameter("--end cannot precede --date")

    ctx = _build_context()
    try:
        results = ctx.habit_rules.evaluate_range(start, stop)
        click.echo(f"Evaluated {len(results)} habit-days from {start.isoformat()} to {stop.isoformat()}")
        for result in results:
            click.echo(f"  habit {result.habit_id} {result.date.isoformat()}: {result.result}")
    finally:
        ctx.dispose()


if __name__ == "__main__":  # pragma: no cover
    main()
