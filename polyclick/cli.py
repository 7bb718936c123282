from __future__ import annotations

import argparse
import logging
import signal
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from functools import partial
from pathlib import Path
from types import FrameType

from rich.console import Console

from .config import ClickSettings, SessionConfig, parse_session
from .errors import InvalidArgumentError, PolyclickError
from .logging_utils import configure_logging, debug_enabled, log_exception
from .report import render_error, render_timeline
from .scheduler import PlaybackScheduler, SinkFactory
from .segments import render
from .sinks import SoundDeviceSink, WavFileSink
from .timeline import build_session

_LOGGER = logging.getLogger("polyclick.cli")
_CONSOLE = Console()

EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="polyclick",
        description="Metronome for one or more time signatures overlaid at one tempo.",
        epilog="Example: polyclick 90 3 4 4 4  (3/4 against 4/4 at 90 quarter notes per minute)",
    )
    parser.add_argument(
        "values",
        nargs="*",
        metavar="TEMPO BEATS UNIT",
        help="tempo in quarter notes per minute, then one BEATS UNIT pair per meter",
    )
    parser.add_argument("--accent-hz", type=float, default=None, help="downbeat pitch")
    parser.add_argument("--beat-hz", type=float, default=None, help="pitch of the other beats")
    parser.add_argument("--amplitude", type=float, default=None, help="click volume in (0, 1]")
    parser.add_argument("--sample-rate", type=int, default=None)
    parser.add_argument("--device", type=str, default=None, help="output device name or index")
    parser.add_argument("--bars", type=int, default=None, help="stop after this many bars")
    parser.add_argument("--output", type=Path, default=None, help="write a WAV file instead")
    parser.add_argument("--show", action="store_true", help="print the merged bar before playing")
    parser.add_argument("--dry-run", action="store_true", help="print the merged bar and exit")
    return parser


def _parse_int(raw: str, what: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidArgumentError(f"{what} must be an integer, got {raw!r}") from exc


def parse_values(values: Sequence[str]) -> SessionConfig:
    """Turn ``TEMPO BEATS UNIT [BEATS UNIT ...]`` into a session."""

    if len(values) < 3 or (len(values) - 1) % 2 != 0:
        raise InvalidArgumentError(
            "expected a tempo followed by one or more BEATS UNIT pairs, "
            f"got {len(values)} value(s)"
        )
    tempo = _parse_int(values[0], "tempo")
    numbers = [_parse_int(raw, "beat count or unit") for raw in values[1:]]
    pairs = list(zip(numbers[0::2], numbers[1::2]))
    return parse_session(tempo, pairs)


def _sink_factory(args: argparse.Namespace, settings: ClickSettings) -> SinkFactory:
    if args.output is not None:
        return partial(WavFileSink, args.output, settings)
    return partial(SoundDeviceSink, settings)


@contextmanager
def _stop_on_signals(scheduler: PlaybackScheduler) -> Iterator[None]:
    def _handle(signum: int, frame: FrameType | None) -> None:
        _ = frame
        _LOGGER.info("Received %s, stopping after the current bar", signal.Signals(signum).name)
        scheduler.stop()

    previous = {
        signum: signal.signal(signum, _handle) for signum in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        yield
    finally:
        for signum, handler in previous.items():
            # None means the old handler was not installed from Python.
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)


def _run(args: argparse.Namespace) -> int:
    session = parse_values(args.values)
    settings = ClickSettings.from_env(
        accent_frequency=args.accent_hz,
        beat_frequency=args.beat_hz,
        amplitude=args.amplitude,
        sample_rate=args.sample_rate,
        device=args.device,
    )
    if args.bars is not None and args.bars < 0:
        raise InvalidArgumentError(f"--bars must not be negative, got {args.bars}")
    if args.output is not None and args.bars is None:
        raise InvalidArgumentError("--output needs --bars so the file has an end")

    if args.dry_run:
        timeline = build_session(session)
        render(timeline, settings)
        render_timeline(timeline, session.signatures, console=_CONSOLE)
        return 0

    scheduler = PlaybackScheduler(_sink_factory(args, settings), settings=settings)
    timeline = scheduler.configure(session)
    if args.show:
        render_timeline(timeline, session.signatures, console=_CONSOLE)
    with _stop_on_signals(scheduler):
        bars = scheduler.run(max_bars=args.bars)
    if args.output is not None:
        _CONSOLE.print(f"Wrote {bars} bars to {args.output} (sr={settings.sample_rate})")
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return _run(args)
    except InvalidArgumentError as exc:
        _LOGGER.warning("polyclick usage error: %s", exc, exc_info=debug_enabled())
        log_exception("polyclick arguments", exc)
        parser.print_usage()
        render_error("parsing arguments", exc)
        return EXIT_USAGE
    except PolyclickError as exc:
        _LOGGER.warning("polyclick failed: %s", exc, exc_info=debug_enabled())
        log_exception("polyclick", exc)
        render_error("running the metronome", exc)
        return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
