import logging
from typing import Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table

from pin_tickler.control import Mode
from pin_tickler.logs import LOG_BUFFER
from pin_tickler.status_channel import StatusChannel
from pin_tickler.status_snapshot import StatusSnapshot

LEVEL_STYLE = {
    logging.DEBUG: "dim",
    logging.INFO: "",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "bold red",
}

MODE_STYLE = {
    Mode.PAUSED: "bold yellow",
    Mode.RUNNING: "bold green",
    Mode.STOPPED: "bold red",
}

OUTCOME_STYLE = {
    "yes": "spring_green2",
    "no": "red",
    "disabled": "dim",
}

LOG_LINES = 8


def render_log_panel(title: str, max_lines: int) -> Panel:
    """Render exactly max_lines log entries (cropped to width, no wrap)."""
    items = list(LOG_BUFFER)[-max_lines:]
    if len(items) < max_lines:
        items = [("", "")] * (max_lines - len(items)) + items

    grid = Table.grid(padding=(0, 0))
    grid.add_column(no_wrap=True, overflow="crop")
    for lvl, msg in items:
        style = LEVEL_STYLE.get(lvl, "")
        grid.add_row(f"[{style}]{msg}[/{style}]" if style else msg)
    return Panel(grid, title=title, padding=(0, 1))


def render_status(state: Optional[StatusSnapshot]):
    """Render the status table for the latest snapshot."""
    if state is None:
        return Panel("Waiting for first update…", title="pin-tickler", border_style="dim")

    mode_style = MODE_STYLE[state.mode]
    ui_table = Table(title=f"Attempt {state.attempts}  |  {state.cursor} / {state.total}  |  v{state.version}", show_header=False)
    ui_table.add_column("Field", justify="right", style="cyan")
    ui_table.add_column("Value")

    ui_table.add_row("Mode", f"[{mode_style}]{state.mode.value}[/{mode_style}]")
    ui_table.add_row("Auto-submit", "[green]enabled[/green]" if state.auto_submit else "[dim]disabled[/dim]")
    if state.last is not None:
        outcome_style = OUTCOME_STYLE[state.last.outcome]
        ui_table.add_row("Last value", state.last.value)
        ui_table.add_row("Submitted", f"[{outcome_style}]{state.last.outcome}[/{outcome_style}]")
    ui_table.add_row("Remaining", str(state.remaining))
    if state.termination is not None:
        ui_table.add_row("Finished", f"[bold]{state.termination.value}[/bold]")

    progress = ProgressBar(total=max(state.total, 1), completed=state.cursor, width=40)
    return Group(ui_table, progress)


def render(state: Optional[StatusSnapshot]):
    return Group(render_status(state), render_log_panel("Log", LOG_LINES))


async def ui_loop(channel: StatusChannel[StatusSnapshot], console: Optional[Console] = None) -> None:
    """Redraw the live view for every snapshot until the channel is closed."""
    with Live(render(None), console=console, refresh_per_second=30, screen=False) as live:
        while True:
            state = await channel.get()
            if state is None:
                break
            live.update(render(state))
