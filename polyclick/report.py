from __future__ import annotations

import sys
import traceback
from collections.abc import Sequence
from fractions import Fraction
from typing import IO

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.traceback import Traceback

from .config import Signature
from .logging_utils import debug_enabled, get_log_path
from .timeline import Timeline


def _bar_fraction(tick: int, resolution: int) -> str:
    return str(Fraction(tick, resolution))


def timeline_table(timeline: Timeline, signatures: Sequence[Signature]) -> Table:
    table = Table(
        title=(
            f"{' + '.join(str(signature) for signature in signatures)} "
            f"at {timeline.tempo} bpm, bar {timeline.bar_duration:.3f}s"
        )
    )
    table.add_column("#", justify="right")
    table.add_column("bar", justify="right")
    table.add_column("offset (s)", justify="right")
    table.add_column("meters")
    table.add_column("accent")
    for index, event in enumerate(timeline.events):
        meters = ", ".join(str(signatures[source]) for source in sorted(event.sources))
        table.add_row(
            str(index + 1),
            _bar_fraction(event.tick, timeline.resolution),
            f"{event.offset:.4f}",
            meters,
            "●" if event.is_downbeat else "",
        )
    return table


def render_timeline(
    timeline: Timeline,
    signatures: Sequence[Signature],
    *,
    console: Console | None = None,
) -> None:
    (console or Console()).print(timeline_table(timeline, signatures))


def render_error(
    context: str,
    exc: BaseException,
    *,
    stream: IO[str] | None = None,
) -> None:
    target = stream or sys.stderr
    debug = debug_enabled()
    log_path = get_log_path()
    if target.isatty():
        console = Console(file=target)
        body = Text.assemble(
            ("polyclick error while ", "bold"),
            (context, "bold"),
            (":\n\n", "bold"),
            Text(type(exc).__name__, style="bold red"),
            (": ", "bold"),
            Text(str(exc)),
            (f"\nLogs: {log_path}", "dim"),
            ("\n\nSet POLYCLICK_DEBUG=1 for console trace.", "dim"),
        )
        console.print(Panel(body, title="Error", border_style="red"))
        if debug:
            console.print(Traceback.from_exception(type(exc), exc, exc.__traceback__))
    else:
        target.write(f"{context} failed: {type(exc).__name__}: {exc} (logs: {log_path})\n")
        if debug:
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=target)
