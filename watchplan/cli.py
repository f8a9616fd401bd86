"""Command line entry point for Watchplan."""

from __future__ import annotations

import json
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from watchplan.app.config import load_settings
from watchplan.app.dependencies import build_search_service
from watchplan.app.logging_config import configure_cli_logging
from watchplan.app.services.content_analysis import analyze_word_frequency, collect_video_texts
from watchplan.app.services.watch_schedule import (
    DAYS,
    DayBudget,
    build_watch_schedule,
    summarize_schedule,
)
from watchplan.app.services.youtube_search_service import YouTubeSearchResult, YouTubeServiceError

console = Console()

_budget_defaults = DayBudget()


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Watchplan - plan a week of YouTube watching from a search."""
    settings = load_settings()
    configure_cli_logging(settings, verbose=verbose)
    ctx.obj = settings


def _api_key_option(func: Any) -> Any:
    return click.option(
        "--api-key",
        envvar="WATCHPLAN_YOUTUBE_API_KEY",
        help="YouTube Data API key (defaults to WATCHPLAN_YOUTUBE_API_KEY).",
    )(func)


def _json_option(func: Any) -> Any:
    return click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table.")(
        func
    )


def _run_search(ctx: click.Context, query: str, api_key: str | None) -> YouTubeSearchResult:
    service = build_search_service(ctx.obj)
    try:
        return service.search(query, api_key)
    except YouTubeServiceError as exc:
        raise click.ClickException(str(exc)) from exc


@main.command()
@click.argument("query")
@_api_key_option
@_json_option
@click.pass_context
def search(ctx: click.Context, query: str, api_key: str | None, as_json: bool) -> None:
    """Search YouTube and list videos with their durations."""
    result = _run_search(ctx, query, api_key)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "cache_hit": result.cache_hit,
                    "estimated_api_units": result.estimated_api_units,
                    "videos": [video.to_payload() for video in result.videos],
                },
                indent=2,
            )
        )
        return

    table = Table(title=f"{len(result.videos)} videos for '{query}'")
    table.add_column("Id", style="dim")
    table.add_column("Title")
    table.add_column("Duration", justify="right")
    for video in result.videos:
        table.add_row(video.video_id, video.title, video.duration or "-")
    console.print(table)
    if result.cache_hit:
        console.print("[dim]served from cache[/dim]")


@main.command()
@click.argument("query")
@_api_key_option
@_json_option
@click.option("--monday", type=click.IntRange(min=0), default=_budget_defaults.monday)
@click.option("--tuesday", type=click.IntRange(min=0), default=_budget_defaults.tuesday)
@click.option("--wednesday", type=click.IntRange(min=0), default=_budget_defaults.wednesday)
@click.option("--thursday", type=click.IntRange(min=0), default=_budget_defaults.thursday)
@click.option("--friday", type=click.IntRange(min=0), default=_budget_defaults.friday)
@click.option("--saturday", type=click.IntRange(min=0), default=_budget_defaults.saturday)
@click.option("--sunday", type=click.IntRange(min=0), default=_budget_defaults.sunday)
@click.pass_context
def schedule(
    ctx: click.Context,
    query: str,
    api_key: str | None,
    as_json: bool,
    **day_minutes: int,
) -> None:
    """Spread search results over the week using per-day minute budgets."""
    result = _run_search(ctx, query, api_key)
    budgets = DayBudget(**{day: day_minutes[day] for day in DAYS})
    buckets = build_watch_schedule(result.videos, budgets)
    summary = summarize_schedule(buckets)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "days": [
                        {
                            "day": bucket.day,
                            "remaining_minutes": bucket.remaining_minutes,
                            "videos": [
                                {**scheduled.video.to_payload(), "minutes": scheduled.minutes}
                                for scheduled in bucket.videos
                            ],
                        }
                        for bucket in buckets
                    ],
                    "total_videos": summary.total_videos,
                    "total_minutes": summary.total_minutes,
                },
                indent=2,
            )
        )
        return

    for bucket in buckets:
        table = Table(title=f"{bucket.day.capitalize()} ({bucket.total_minutes} min)")
        table.add_column("Title")
        table.add_column("Minutes", justify="right")
        for scheduled in bucket.videos:
            table.add_row(scheduled.video.title, str(scheduled.minutes))
        console.print(table)
    console.print(
        f"[green]{summary.total_videos}[/green] of {len(result.videos)} videos scheduled, "
        f"{summary.total_minutes} minutes total"
    )


@main.command()
@click.argument("query")
@_api_key_option
@_json_option
@click.pass_context
def words(ctx: click.Context, query: str, api_key: str | None, as_json: bool) -> None:
    """Show the most common words in result titles and descriptions."""
    result = _run_search(ctx, query, api_key)
    top_words = analyze_word_frequency(collect_video_texts(result.videos))

    if as_json:
        click.echo(json.dumps([{"word": w.word, "count": w.count} for w in top_words], indent=2))
        return

    table = Table(title="Top words")
    table.add_column("Word")
    table.add_column("Count", justify="right")
    for entry in top_words:
        table.add_row(entry.word, str(entry.count))
    console.print(table)


if __name__ == "__main__":
    main()
