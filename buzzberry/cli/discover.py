"""
Discover CLI Commands

Browse, filter, sort and page through creators from the terminal. Mode,
page, filters and sort persist between invocations in
DISCOVER_STATE_PATH, the same way the Discover page remembers them.
"""

import logging
from typing import List, Optional, Tuple

import click

from ..core.config import Config
from ..core.database import creators_table, get_supabase_client
from ..services.creator_data_service import CreatorDataPipeline
from ..services.creator_metrics import fetch_creator_metrics
from ..services.models import BuzzScoreBucket, CreatorListMode, CreatorMetrics, FilterCriteria, PipelineSnapshot, PipelineState, SortField
from ..services.state_repository import JsonFileStateRepository
from ..utils.formatters import (
    buzz_score_color,
    format_engagement,
    format_number,
    format_number_full,
    format_percentage,
    match_score_color,
    trend_color,
    trend_symbol,
    truncate_text,
)

logger = logging.getLogger(__name__)


def _repository() -> JsonFileStateRepository:
    return JsonFileStateRepository(Config.DISCOVER_STATE_PATH)


def _pipeline() -> CreatorDataPipeline:
    return CreatorDataPipeline(
        client=get_supabase_client(),
        state_repository=_repository(),
    )


def _echo_metrics(metrics: Optional[CreatorMetrics]):
    if metrics is None:
        return
    click.echo(
        f"👥 {format_number_full(metrics.total_creators)} creators  |  "
        f"avg followers {format_number(metrics.avg_followers)}  |  "
        f"avg views {format_number(metrics.avg_views)}  |  "
        f"avg engagement {format_engagement(metrics.avg_engagement)}"
    )


def _echo_snapshot(snapshot: PipelineSnapshot):
    """Print the current page as a table, or the error and abort."""
    if snapshot.error:
        click.echo(f"❌ {snapshot.error}", err=True)
        click.echo("\n💡 Run the same command again to retry")
        raise click.Abort()

    mode_label = "AI recommendations" if snapshot.current_mode == CreatorListMode.AI else "All creators"
    sort = snapshot.sort_state
    sort_label = f"{sort.field} {sort.direction}" if sort.field else "default"

    click.echo(f"\n🔍 {mode_label} (sort: {sort_label})")
    _echo_metrics(snapshot.metrics)
    click.echo()

    if not snapshot.creators:
        click.echo("No creators match the current filters")
        return

    show_match = snapshot.current_mode == CreatorListMode.AI
    header = f"{'Creator':<28} {'Followers':>10} {'Avg Views':>10} {'Eng.':>7} {'Buzz':>5}"
    if show_match:
        header += f" {'Match':>5}"
    click.echo(header + "  Location")
    click.echo("-" * (len(header) + 10))

    for creator in snapshot.creators:
        name = truncate_text(f"{creator.username} {creator.username_tag}", 25)
        row = (
            f"{name:<28} "
            f"{format_number(creator.followers):>10} "
            f"{format_number(creator.avg_views):>10} "
            f"{format_engagement(creator.engagement):>7} "
            + click.style(f"{int(creator.buzz_score):>5}", fg=buzz_score_color(creator.buzz_score))
        )
        if show_match:
            score = "" if creator.match_score is None else str(creator.match_score)
            row += " " + click.style(f"{score:>5}", fg=match_score_color(creator.match_score))
        click.echo(f"{row}  {creator.location}")

    click.echo(
        f"\n📄 Page {snapshot.current_page} of {snapshot.total_pages} "
        f"({format_number_full(snapshot.total_creators)} creators)"
    )


def _filter_criteria(
    niche: Tuple[str, ...],
    platform: Tuple[str, ...],
    location: Tuple[str, ...],
    buzz: Tuple[str, ...],
    followers_min: Optional[float],
    followers_max: Optional[float],
    engagement_min: Optional[float],
    engagement_max: Optional[float],
    views_min: Optional[float],
    views_max: Optional[float],
) -> FilterCriteria:
    def as_list(values: Tuple[str, ...]) -> Optional[List[str]]:
        return list(values) if values else None

    return FilterCriteria(
        niches=as_list(niche),
        platforms=as_list(platform),
        locations=as_list(location),
        buzz_scores=as_list(buzz),
        followers_min=followers_min,
        followers_max=followers_max,
        engagement_min=engagement_min,
        engagement_max=engagement_max,
        avg_views_min=views_min,
        avg_views_max=views_max,
    )


@click.group(name="discover")
def discover_group():
    """Browse and filter creators (Discover page)."""
    pass


@discover_group.command(name="list")
@click.option('--niches', 'show_niches', is_flag=True, help='Also list available niches')
def list_creators(show_niches: bool):
    """
    Show the current page for the saved mode, filters and sort.

    Example:
        buzzberry discover list
    """
    pipeline = _pipeline()
    pipeline.initialize()
    snapshot = pipeline.snapshot
    _echo_snapshot(snapshot)

    if show_niches:
        click.echo("\n🏷️  Niches: " + ", ".join(n.name for n in snapshot.niches))


@discover_group.command(name="filter")
@click.option('--niche', '-n', multiple=True, help='Primary niche (repeatable)')
@click.option('--platform', '-p', multiple=True, help='Platform, e.g. tiktok, instagram, x (repeatable)')
@click.option('--location', '-l', multiple=True, help='Location (repeatable)')
@click.option('--buzz', '-b', multiple=True, type=click.Choice([b.value for b in BuzzScoreBucket]), help='Buzz score bucket (repeatable)')
@click.option('--followers-min', type=float, help='Minimum followers')
@click.option('--followers-max', type=float, help='Maximum followers')
@click.option('--engagement-min', type=float, help='Minimum engagement rate (%)')
@click.option('--engagement-max', type=float, help='Maximum engagement rate (%)')
@click.option('--views-min', type=float, help='Minimum average views')
@click.option('--views-max', type=float, help='Maximum average views')
@click.option('--mode', type=click.Choice([m.value for m in CreatorListMode]), help='Switch listing mode at the same time')
def filter_creators(niche, platform, location, buzz, followers_min, followers_max,
                    engagement_min, engagement_max, views_min, views_max, mode):
    """
    Apply filters and show page 1. No options clears all filters.

    Example:
        buzzberry discover filter -n Fitness -p tiktok -b "90%+"
    """
    criteria = _filter_criteria(
        niche, platform, location, buzz,
        followers_min, followers_max,
        engagement_min, engagement_max,
        views_min, views_max,
    )

    pipeline = _pipeline()
    pipeline.apply_filters(criteria, mode)
    _echo_snapshot(pipeline.snapshot)


@discover_group.command(name="mode")
@click.argument('mode', type=click.Choice([m.value for m in CreatorListMode]))
def switch_mode(mode: str):
    """Switch between AI recommendations (ai) and all creators (all)."""
    pipeline = _pipeline()
    pipeline.switch_mode(mode)
    _echo_snapshot(pipeline.snapshot)


@discover_group.command(name="sort")
@click.argument('field', type=click.Choice([f.value for f in SortField]))
def sort_creators(field: str):
    """
    Sort by FIELD. Sorting by the same field again flips the direction.

    Example:
        buzzberry discover sort followers
    """
    pipeline = _pipeline()
    pipeline.handle_sort(field)
    _echo_snapshot(pipeline.snapshot)


@discover_group.command(name="page")
@click.argument('number', type=int)
def go_to_page(number: int):
    """Jump to page NUMBER (clamped to the available pages)."""
    pipeline = _pipeline()
    pipeline.initialize()
    pipeline.handle_page_change(number)
    _echo_snapshot(pipeline.snapshot)


@discover_group.command(name="next")
def next_page():
    """Show the next page."""
    pipeline = _pipeline()
    pipeline.initialize()
    pipeline.next_page()
    _echo_snapshot(pipeline.snapshot)


@discover_group.command(name="prev")
def previous_page():
    """Show the previous page."""
    pipeline = _pipeline()
    pipeline.initialize()
    pipeline.previous_page()
    _echo_snapshot(pipeline.snapshot)


@discover_group.command(name="metrics")
def show_metrics():
    """Aggregate metrics for creators matching the saved filters."""
    state = _repository().load()
    db = get_supabase_client()

    try:
        metrics = fetch_creator_metrics(
            lambda: creators_table(db),
            state.filters,
            Config.CHUNK_SIZE_FOR_DB_OPS,
        )
    except Exception as e:
        click.echo(f"❌ Failed to load metrics: {e}", err=True)
        logger.exception(e)
        raise click.Abort()

    click.echo(f"\n📊 Total creators:  {format_number_full(metrics.total_creators)}")
    click.echo(f"   Avg followers:   {format_number_full(metrics.avg_followers)}")
    click.echo(f"   Avg views:       {format_number_full(metrics.avg_views)}")
    click.echo(f"   Avg engagement:  {metrics.avg_engagement:.2f}%")
    change = click.style(
        f"{trend_symbol(metrics.change_type)} {format_percentage(metrics.change_percentage)}",
        fg=trend_color(metrics.change_type),
    )
    click.echo(f"   Change:          {change}")


@discover_group.command(name="niches")
def list_niches():
    """List distinct primary niches."""
    pipeline = _pipeline()
    niches = pipeline.load_niches()

    if not niches:
        click.echo("No niches found")
        return

    click.echo(f"\n🏷️  {len(niches)} niche(s):")
    for niche in niches:
        click.echo(f"   {niche.id:<30} {niche.name}")


@discover_group.command(name="reset")
def reset_state():
    """Forget saved mode, page, filters and sort."""
    _repository().save(PipelineState())
    click.echo(f"✅ Discover state reset ({Config.DISCOVER_STATE_PATH})")
