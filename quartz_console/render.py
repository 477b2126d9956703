"""
Text rendering for the console views.

Every function returns a string; printing is left to the CLI.
"""

from typing import List, Optional, Sequence

from quartz_console.controller import AppState
from quartz_console.forms import CRON_PRESETS, JobForm
from quartz_console.jobdata import HEADER_PREFIX, decode, header_properties
from quartz_console.models import COMPLETED, NEVER, ExecutionLog, TriggerInfo, TriggerStats

GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BOLD = "\033[1m"
RESET = "\033[0m"

STATE_COLORS = {
    'NORMAL': GREEN,
    'PAUSED': YELLOW,
    'ERROR': RED,
    'BLOCKED': RED,
}

STATUS_COLORS = {
    'SUCCESS': GREEN,
    'FAILURE': RED,
}


def format_timestamp(value: Optional[str]) -> str:
    """Show service timestamps as 'YYYY-MM-DD HH:MM:SS'; literals pass through."""
    if not value or value in (NEVER, COMPLETED):
        return value or "-"
    text = value.replace('T', ' ')
    return text.split('.')[0][:19]


def format_duration(duration_ms: Optional[int]) -> str:
    if duration_ms is None:
        return "-"
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    seconds = duration_ms / 1000
    if seconds >= 3600:
        return f"{seconds/3600:.1f}h"
    elif seconds >= 60:
        return f"{seconds/60:.1f}m"
    return f"{seconds:.1f}s"


def _paint(text: str, color: Optional[str], enabled: bool) -> str:
    if not enabled or not color:
        return text
    return f"{color}{text}{RESET}"


def render_table(headers: Sequence[str], rows: List[Sequence[str]], colors: Optional[List[Sequence[Optional[str]]]] = None) -> str:
    """
    Render a box-drawn table.

    Args:
        headers: Column titles
        rows: Cell text per row
        colors: Optional ANSI color per cell (same shape as rows)
    """
    widths = [
        max([len(h)] + [len(row[i]) for row in rows])
        for i, h in enumerate(headers)
    ]

    def make_row(cells, cell_colors=None):
        padded = []
        for i, (cell, w) in enumerate(zip(cells, widths)):
            color = cell_colors[i] if cell_colors else None
            padded.append(_paint(cell, color, color is not None) + ' ' * (w - len(cell)))
        return "│ " + " │ ".join(padded) + " │"

    def make_separator(left, mid, right, fill='─'):
        return left + mid.join(fill * (w + 2) for w in widths) + right

    lines = [
        make_separator('┌', '┬', '┐'),
        make_row(headers),
        make_separator('├', '┼', '┤'),
    ]
    for i, row in enumerate(rows):
        lines.append(make_row(row, colors[i] if colors else None))
    lines.append(make_separator('└', '┴', '┘'))

    return "\n".join(lines)


def render_stats(stats: TriggerStats) -> str:
    return f"  Total Jobs: {stats.total}   Active: {stats.active}   Paused: {stats.paused}"


def render_dashboard(state: AppState, triggers: List[TriggerInfo], stats: TriggerStats, color: bool = False) -> str:
    """
    Render the dashboard: banner, counters and the (filtered) job table.

    Args:
        state: Current controller state
        triggers: Jobs to list (already search-filtered)
        stats: Counters over the unfiltered list
        color: Colorize trigger states
    """
    lines = ["", f"{BOLD if color else ''}Scheduler Dashboard{RESET if color else ''}", ""]

    if state.error:
        lines.append(_paint(f"  Error: {state.error}", RED, color))
        lines.append("")

    lines.append(render_stats(stats))
    lines.append("")

    if state.loading:
        lines.append("  Loading jobs...")
        return "\n".join(lines)

    count = f"{len(triggers)} {'job' if len(triggers) == 1 else 'jobs'}"
    if state.search_term:
        lines.append(f"  Scheduled Jobs matching '{state.search_term}' ({count})")
    else:
        lines.append(f"  Scheduled Jobs ({count})")

    if not triggers:
        if state.search_term:
            lines.append(f'  No jobs match "{state.search_term}". Try a different search term.')
        else:
            lines.append("  No jobs found. Create one with: quartz-console create <name> --url <url>")
        return "\n".join(lines)

    headers = ['Group', 'Name', 'State', 'Cron', 'Last Run', 'Next Run']
    rows = []
    colors = []
    for t in triggers:
        rows.append([
            t.job_group,
            t.job_name,
            t.state,
            t.cron_expression,
            format_timestamp(t.last_execution_time),
            format_timestamp(t.next_execution_time),
        ])
        colors.append([None, None, STATE_COLORS.get(t.state) if color else None, None, None, None])

    lines.append(render_table(headers, rows, colors))
    return "\n".join(lines)


def _executions_table(logs: List[ExecutionLog], color: bool, verbose: bool = False) -> str:
    headers = ['Status', 'Fire Time', 'End Time', 'Duration', 'Message']
    rows = []
    colors = []
    for log in logs:
        message = log.message or '-'
        if not verbose and len(message) > 60:
            message = message[:57] + "..."
        rows.append([
            log.status,
            format_timestamp(log.fire_time),
            format_timestamp(log.end_time),
            format_duration(log.duration),
            message,
        ])
        colors.append([STATUS_COLORS.get(log.status, YELLOW) if color else None, None, None, None, None])

    return render_table(headers, rows, colors)


def render_details(job: TriggerInfo, logs: Optional[List[ExecutionLog]] = None, color: bool = False) -> str:
    """
    Render a job's schedule, decoded HTTP configuration and, when given,
    its recent executions.
    """
    dispatch = decode(job.job_data_map)
    headers = header_properties(dispatch.additional_properties)
    others = [(k, v) for k, v in dispatch.additional_properties if not k.startswith(HEADER_PREFIX)]

    lines = [
        "",
        f"Job: {job.job_group}/{job.job_name}",
        f"  Description: {job.description or '-'}",
        f"  Trigger:     {job.trigger_group}/{job.trigger_name}",
        f"  State:       {job.state}",
        f"  Cron:        {job.cron_expression}",
        f"  Last Run:    {format_timestamp(job.last_execution_time)}",
        f"  Next Run:    {format_timestamp(job.next_execution_time)}",
        "",
        "HTTP Configuration",
        f"  Method: {dispatch.method}",
        f"  URL:    {dispatch.url or '-'}",
    ]

    if dispatch.body:
        lines.append("  Body:")
        lines.extend(f"    {line}" for line in dispatch.body.splitlines())

    if headers:
        lines.append("")
        lines.append("Headers")
        lines.extend(f"  {name}: {value}" for name, value in headers)

    if others:
        lines.append("")
        lines.append("Additional Properties")
        lines.extend(f"  {key}: {value}" for key, value in others)

    if logs is not None:
        lines.append("")
        lines.append("Execution History")
        lines.append(_executions_table(logs, color) if logs else "  No execution history found")

    return "\n".join(lines)


def render_history(job: TriggerInfo, logs: List[ExecutionLog], color: bool = False, verbose: bool = False) -> str:
    """Render a job's recent executions, newest first."""
    lines = [
        "",
        f"History: {job.job_group}/{job.job_name}",
        f"  Last Run: {format_timestamp(job.last_execution_time)}   "
        f"Next Run: {format_timestamp(job.next_execution_time)}   "
        f"Total Executions: {len(logs)}",
        "",
    ]

    if not logs:
        lines.append("  No executions recorded yet.")
        return "\n".join(lines)

    lines.append(_executions_table(logs, color, verbose))
    return "\n".join(lines)


def render_form_summary(form: JobForm) -> str:
    """Render the fields about to be submitted."""
    lines = [
        f"  Name:   {form.job_group}/{form.job_name}",
        f"  Cron:   {form.cron_expression}",
        f"  Method: {form.method}",
        f"  URL:    {form.url}",
    ]
    if form.body_enabled and form.body:
        lines.append(f"  Body:   {form.body}")
    for key, value in form.additional_properties:
        lines.append(f"  {key} = {value}")
    return "\n".join(lines)


def render_presets() -> str:
    rows = [[label, expr] for label, expr in CRON_PRESETS]
    return render_table(['Preset', 'Cron Expression'], rows) + \
        "\nFormat: second minute hour day month weekday [year]"
