"""Output formatting for scan results."""

import json
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..core.types import RepositoryStatus, SyncState

STATE_STYLES = {
    SyncState.UP_TO_DATE: "green",
    SyncState.AHEAD: "yellow",
    SyncState.BEHIND: "red",
    SyncState.DIVERGED: "magenta",
    SyncState.NO_UPSTREAM: "cyan",
    SyncState.DETACHED: "cyan",
}

PATH_WIDTH = 55
BRANCH_WIDTH = 40


def truncate(text: str, width: int) -> str:
    """Shorten text to at most width characters, marking the cut with '…'."""
    if len(text) <= width:
        return text
    if width <= 1:
        return text[:width]
    return text[:width - 1] + "…"


def format_stream_line(status: RepositoryStatus) -> str:
    """Render a result as one tab-separated line: path, branch, state."""
    return f"{status.path}\t{status.branch}\t{status.state.value}"


def format_json(statuses: List[RepositoryStatus]) -> str:
    """Render results as an indented JSON array."""
    return json.dumps([s.to_dict() for s in statuses], indent=2)


def build_table(statuses: List[RepositoryStatus]) -> Table:
    """Build the status table.

    Args:
        statuses: Results, already sorted

    Returns:
        rich Table; colors only show when the console is a terminal
    """
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold")
    table.add_column("Repository")
    table.add_column("Branch")
    table.add_column("State")
    table.add_column("Dirty")
    table.add_column("Stashed")
    table.add_column("Ahead", justify="right")
    table.add_column("Behind", justify="right")

    for status in statuses:
        dirty = Text("dirty", style="red") if status.dirty else Text("clean", style="green")
        table.add_row(
            Text(truncate(status.path, PATH_WIDTH)),
            Text(truncate(status.branch, BRANCH_WIDTH)),
            Text(status.state.value, style=STATE_STYLES[status.state]),
            dirty,
            "yes" if status.stashed else "no",
            str(status.ahead),
            str(status.behind),
        )
    return table


def print_table(statuses: List[RepositoryStatus], console: Optional[Console] = None) -> None:
    """Print the status table to the console (stdout by default)."""
    console = console or Console()
    console.print(build_table(statuses))
