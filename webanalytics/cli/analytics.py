# ==============================================================================
# Report Commands
# ==============================================================================
"""
Report commands for the web analytics CLI.

Each command renders one AggregationEngine view as a box-drawn table, or as
JSON with --json.
"""

from typing import Annotated, Any, Callable, Optional

import typer

from webanalytics.cli.shared import (
    BOX_WIDTH,
    C,
    _box_bottom,
    _box_header,
    _box_line,
    _empty_line,
    _format_change,
    _section_header,
    _truncate,
    command_context,
    open_event_store,
    print_json,
)
from webanalytics.core.reports import DistributionEntry

RangeOption = Annotated[
    str, typer.Option("--range", "-r", help="Time range: today, 7d, 30d or all")
]
TimeoutOption = Annotated[
    Optional[float], typer.Option("--timeout", help="Query timeout in seconds")
]
JsonOption = Annotated[bool, typer.Option("--json", "-j", help="Output as JSON for scripting")]


def _run_report(view: Callable[[Any], Any]) -> Any:
    """Build the engine, run one view and close the store."""
    from webanalytics.services.factory import get_aggregation_engine

    with command_context(), open_event_store() as store:
        return view(get_aggregation_engine(store))


def _dump(result: Any) -> Any:
    if isinstance(result, list):
        return [item.model_dump() for item in result]
    return result.model_dump()


# ==============================================================================
# Commands
# ==============================================================================


def report_summary(
    range_: RangeOption = "7d",
    timeout: TimeoutOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show headline KPIs with change against the previous period.

    Examples:
        webanalytics report summary
        webanalytics report summary -r today --json
    """
    stats = _run_report(lambda engine: engine.summary(range_, timeout=timeout))

    if json_output:
        print_json(_dump(stats))
        return

    W = BOX_WIDTH
    print()
    print(_box_header(f"SUMMARY ({stats.range})", W))
    print(_empty_line(W))
    print(_box_line(f"  {'':28}{'Value':>14}  {'Change':>12}", W))
    print(_box_line("  " + "─" * (W - 6), W))

    rows = [
        ("Visitors", f"{stats.visitors:,}", stats.visitors_change),
        ("Sessions", f"{stats.sessions:,}", stats.sessions_change),
        ("Page Views", f"{stats.page_views:,}", stats.page_views_change),
        ("Avg Duration", f"{stats.avg_duration}s", stats.avg_duration_change),
        ("Bounce Rate", f"{stats.bounce_rate:.1f}%", stats.bounce_rate_change),
        ("Pages / Session", f"{stats.pages_per_session:.1f}", stats.pages_per_session_change),
    ]
    for label, value, change in rows:
        print(_box_line(f"  {label:<28}{value:>14}     {_format_change(change)}", W))

    print(_empty_line(W))
    print(_box_bottom(W))
    print()


def report_timeseries(
    range_: RangeOption = "7d",
    timeout: TimeoutOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show page views and sessions per hour (today) or per day."""
    series = _run_report(lambda engine: engine.time_series(range_, timeout=timeout))

    if json_output:
        print_json(_dump(series))
        return

    W = BOX_WIDTH
    print()
    print(_box_header(f"TRAFFIC BY {series.granularity.upper()}", W))
    print(_empty_line(W))
    if not series.points:
        print(_box_line(f"  {C.DIM}No page views in range{C.RESET}", W))
    else:
        print(_box_line(f"  {'Time':<24}{'Views':>12}{'Sessions':>12}", W))
        print(_box_line("  " + "─" * (W - 6), W))
        for point in series.points:
            print(_box_line(f"  {point.time:<24}{point.views:>12,}{point.sessions:>12,}", W))
    print(_empty_line(W))
    print(_box_bottom(W))
    print()


def report_pages(
    range_: RangeOption = "7d",
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum pages to show")] = 20,
    timeout: TimeoutOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show the most viewed pages with engagement metrics."""
    pages = _run_report(lambda engine: engine.top_pages(range_, limit=limit, timeout=timeout))

    if json_output:
        print_json(_dump(pages))
        return

    W = BOX_WIDTH
    print()
    print(_box_header("TOP PAGES", W))
    print(_empty_line(W))
    if not pages:
        print(_box_line(f"  {C.DIM}No page views in range{C.RESET}", W))
    else:
        print(_box_line(f"  {'Path':<26}{'Views':>8}{'Sess':>7}{'Time':>7}{'Scroll':>8}{'Bounce':>8}", W))
        print(_box_line("  " + "─" * (W - 6), W))
        for page in pages:
            row = (
                f"  {_truncate(page.path, 25):<26}{page.views:>8,}{page.unique_sessions:>7,}"
                f"{page.avg_time_on_page:>6}s{page.avg_scroll_depth:>7}%{page.bounce_rate:>7}%"
            )
            print(_box_line(row, W))
    print(_empty_line(W))
    print(_box_bottom(W))
    print()


def report_geo(
    range_: RangeOption = "7d",
    timeout: TimeoutOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show sessions by country with their top cities."""
    countries = _run_report(lambda engine: engine.geography(range_, timeout=timeout))

    if json_output:
        print_json(_dump(countries))
        return

    W = BOX_WIDTH
    print()
    print(_box_header("GEOGRAPHY", W))
    print(_empty_line(W))
    if not countries:
        print(_box_line(f"  {C.DIM}No sessions in range{C.RESET}", W))
    else:
        print(_box_line(f"  {'Country':<28}{'Sessions':>10}{'Visitors':>10}{'Share':>9}", W))
        print(_box_line("  " + "─" * (W - 6), W))
        for country in countries:
            name = _truncate(f"{country.country} ({country.country_code})", 27)
            row = f"  {name:<28}{country.sessions:>10,}{country.visitors:>10,}{country.percentage:>8.1f}%"
            print(_box_line(row, W))
            for city in country.top_cities:
                print(_box_line(f"  {C.DIM}    {_truncate(city.name, 23):<24}{city.sessions:>10,}{C.RESET}", W))
    print(_empty_line(W))
    print(_box_bottom(W))
    print()


def _print_distribution(title: str, entries: list[DistributionEntry], width: int) -> None:
    print(_section_header(title, width))
    if not entries:
        print(_box_line(f"  {C.DIM}No data{C.RESET}", width))
    for entry in entries:
        row = f"  {_truncate(entry.name, 35):<36}{entry.count:>10,}{entry.percentage:>9.1f}%"
        print(_box_line(row, width))


def report_devices(
    range_: RangeOption = "7d",
    timeout: TimeoutOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show device type, browser and OS distributions."""
    breakdown = _run_report(lambda engine: engine.devices(range_, timeout=timeout))

    if json_output:
        print_json(_dump(breakdown))
        return

    W = BOX_WIDTH
    print()
    print(_box_header(f"DEVICES ({breakdown.total:,} sessions)", W))
    _print_distribution("Device Type", breakdown.devices, W)
    _print_distribution("Browser", breakdown.browsers, W)
    _print_distribution("Operating System", breakdown.os, W)
    print(_box_bottom(W))
    print()


def report_referrers(
    range_: RangeOption = "7d",
    timeout: TimeoutOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show traffic sources and top referring domains."""
    breakdown = _run_report(lambda engine: engine.referrers(range_, timeout=timeout))

    if json_output:
        print_json(_dump(breakdown))
        return

    W = BOX_WIDTH
    print()
    print(_box_header("TRAFFIC SOURCES", W))
    print(_section_header("Sources", W))
    if not breakdown.sources:
        print(_box_line(f"  {C.DIM}No sessions in range{C.RESET}", W))
    for source in breakdown.sources:
        row = f"  {source.name:<30}{source.sessions:>10,}{source.visitors:>10,}{source.percentage:>8.1f}%"
        print(_box_line(row, W))
    print(_section_header("Referrers", W))
    if not breakdown.referrers:
        print(_box_line(f"  {C.DIM}No referrers in range{C.RESET}", W))
    for ref in breakdown.referrers:
        row = f"  {_truncate(ref.domain, 29):<30}{ref.sessions:>10,}{ref.visitors:>10,}{ref.percentage:>8.1f}%"
        print(_box_line(row, W))
    print(_box_bottom(W))
    print()


def report_realtime(
    timeout: TimeoutOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show activity over the last five minutes."""
    stats = _run_report(lambda engine: engine.realtime(timeout=timeout))

    if json_output:
        print_json(_dump(stats))
        return

    W = BOX_WIDTH
    print()
    print(_box_header("REALTIME (last 5 minutes)", W))
    print(_empty_line(W))
    print(_box_line(f"  {'Active visitors':<28}{C.WHITE}{stats.active_visitors:>10,}{C.RESET}", W))
    print(_box_line(f"  {'Active sessions':<28}{C.WHITE}{stats.active_sessions:>10,}{C.RESET}", W))
    if stats.active_pages:
        print(_section_header("Active Pages", W))
        for page in stats.active_pages:
            print(_box_line(f"  {_truncate(page.page, 37):<38}{page.sessions:>10,}", W))
    print(_empty_line(W))
    print(_box_bottom(W))
    print()
