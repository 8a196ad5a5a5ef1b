"""
Rich-based terminal output for proxy test results.

All formatting helpers live in ``speedtester.stats`` -- this module only does
presentation via the ``rich`` library.
"""
from __future__ import annotations

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from speedtester.constants import MB
from speedtester.grading import Thresholds
from speedtester.result import Result

console = Console()


# ---------------------------------------------------------------------------
# Colour rules
# ---------------------------------------------------------------------------

def _paint(text: str, color: str) -> str:
    return f"[{color}]{text}[/{color}]"


def latency_color(ms: float) -> str:
    if ms <= 0:
        return "red"
    if ms < 800:
        return "green"
    if ms < 1500:
        return "yellow"
    return "red"


def packet_loss_color(pct: float) -> str:
    if pct < 10:
        return "green"
    if pct < 20:
        return "yellow"
    return "red"


def download_color(bytes_per_second: float, t: Thresholds) -> str:
    if bytes_per_second >= t.good_download_speed:
        return "green"
    if bytes_per_second >= t.min_speed + 0.1 * MB:
        return "yellow"
    return "red"


def upload_color(bytes_per_second: float) -> str:
    if bytes_per_second >= 0.5 * MB:
        return "green"
    if bytes_per_second >= 0.2 * MB:
        return "yellow"
    return "red"


def open_speed_color(bytes_per_second: float, t: Thresholds) -> str:
    if bytes_per_second >= t.open_speed * 3:
        return "green"
    if bytes_per_second >= t.open_speed * 2:
        return "yellow"
    return "red"


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

def print_header() -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Proxy Speedtest[/bold cyan]\n"
            "[dim]Latency, jitter, packet loss and throughput through each proxy[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def build_results_table(results: List[Result], t: Thresholds, fast_mode: bool = False) -> Table:
    table = Table(title="Results", box=box.SIMPLE)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Latency", justify="right")
    if not fast_mode:
        table.add_column("Jitter", justify="right")
        table.add_column("Loss", justify="right")
        table.add_column("Download", justify="right")
        table.add_column("Upload", justify="right")
        table.add_column("Connectivity", justify="center")
        table.add_column("Open Speed", justify="right")
        table.add_column("Extra Download", justify="right")

    for i, r in enumerate(results, start=1):
        row = [
            f"{i}.",
            r.display_name,
            r.proxy_type,
            _paint(r.format_latency(), latency_color(r.latency_ms)),
        ]
        if not fast_mode:
            row += [
                _paint(r.format_jitter(), latency_color(r.jitter_ms)),
                _paint(r.format_packet_loss(), packet_loss_color(r.packet_loss)),
                _paint(r.format_download_speed(), download_color(r.download_speed, t)),
                _paint(r.format_upload_speed(), upload_color(r.upload_speed)),
                _paint(
                    r.format_extra_url_connectivity(),
                    "green" if r.extra_url_connectivity else "red",
                ),
                _paint(r.format_extra_url_open_speed(), open_speed_color(r.extra_url_open_speed, t)),
                _paint(r.format_extra_download_speed(), download_color(r.extra_download_speed, t)),
            ]
        table.add_row(*row)
    return table


def print_results(results: List[Result], t: Thresholds, fast_mode: bool = False) -> None:
    console.print()
    console.print(build_results_table(results, t, fast_mode))
    console.print()


# ---------------------------------------------------------------------------
# Progress display
# ---------------------------------------------------------------------------

class ProgressDisplay:
    """Manages a ``rich`` progress bar while a document's proxies are tested."""

    def __init__(self) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TextColumn("[dim]{task.fields[current]}[/dim]"),
            TimeElapsedColumn(),
            console=console,
        )
        self._task_id: Optional[int] = None

    def start(self, description: str, total: int) -> None:
        self.progress.start()
        self._task_id = self.progress.add_task(description, total=total, current="")

    def on_start(self, name: str) -> None:
        if self._task_id is not None:
            self.progress.update(self._task_id, current=name)

    def advance(self) -> None:
        if self._task_id is not None:
            self.progress.advance(self._task_id)

    def stop(self) -> None:
        self.progress.stop()
        self._task_id = None
