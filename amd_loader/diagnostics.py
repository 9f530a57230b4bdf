"""Rich rendering of registry state for stall investigations."""

from rich.console import Console
from rich.table import Table

from .registry import RecordState
from .registry import Registry

_STATE_STYLES = {
    RecordState.PENDING: "yellow",
    RecordState.SETTLED: "green",
    RecordState.FAILED: "red",
}


def render_registry(registry: Registry, pending_only: bool = False) -> Table:
    """Build a table of records, their state and what pending records wait on."""
    table = Table(title="Loaded dependencies", show_lines=False)
    table.add_column("Name", style="cyan")
    table.add_column("State")
    table.add_column("Kind")
    table.add_column("Waiting on")

    for record in registry.records():
        if pending_only and not record.pending:
            continue
        name = record.name
        if record.aliases:
            name += f" ({', '.join(record.aliases)})"
        style = _STATE_STYLES[record.state]
        waiting = ", ".join(dep.name for dep in registry.waiting_on(record))
        if record.error is not None:
            waiting = str(record.error)
        table.add_row(
            name,
            f"[{style}]{record.state.value}[/{style}]",
            record.kind.value if record.kind else "-",
            waiting or "-",
        )
    return table


def print_registry(registry: Registry, console: Console | None = None, pending_only: bool = False) -> None:
    """Print the registry table to ``console`` (default: a new stderr console)."""
    console = console or Console(stderr=True)
    console.print(render_registry(registry, pending_only=pending_only))
