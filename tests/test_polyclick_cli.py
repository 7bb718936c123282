from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import soundfile as sf  # type: ignore[import]

import polyclick.cli as cli
import polyclick.sinks as sinks
from polyclick.cli import EXIT_FAILURE, EXIT_USAGE, main, parse_values
from polyclick.errors import InvalidArgumentError
from polyclick.logging_utils import LOG_DIR_ENV


@pytest.fixture(autouse=True)
def _log_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path / "logs"))


def test_parse_values_reads_several_meters() -> None:
    session = parse_values(["90", "3", "4", "4", "4"])

    assert session.tempo == 90
    assert [str(signature) for signature in session.signatures] == ["3/4", "4/4"]


@pytest.mark.parametrize("values", [[], ["60"], ["60", "4"], ["60", "4", "4", "3"]])
def test_parse_values_rejects_odd_counts(values: list[str]) -> None:
    with pytest.raises(InvalidArgumentError):
        parse_values(values)


def test_parse_values_rejects_non_integers() -> None:
    with pytest.raises(InvalidArgumentError, match="tempo"):
        parse_values(["fast", "4", "4"])


def test_main_reports_usage_errors(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["60", "4"]) == EXIT_USAGE

    captured = capsys.readouterr()
    assert "InvalidArgumentError" in captured.err


def test_main_rejects_zero_beats() -> None:
    assert main(["60", "0", "4", "--dry-run"]) == EXIT_USAGE


def test_main_dry_run_prints_the_bar(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["60", "3", "4", "4", "4", "--dry-run"]) == 0

    out = capsys.readouterr().out
    assert "1/3" in out
    assert "3/4" in out


def test_main_reports_overflow() -> None:
    assert main(["60", "1", "70000", "1", "70001", "--dry-run"]) == EXIT_FAILURE


def test_main_reports_degenerate_bar() -> None:
    assert main(["60", "1", "4", "--dry-run"]) == EXIT_FAILURE


def test_main_writes_wav(tmp_path: Path) -> None:
    target = tmp_path / "click.wav"

    assert main(["240", "4", "4", "--bars", "2", "--output", str(target)]) == 0

    info = sf.info(str(target))
    assert info.frames == 2 * info.samplerate


def test_main_output_needs_bars(tmp_path: Path) -> None:
    assert main(["60", "4", "4", "--output", str(tmp_path / "click.wav")]) == EXIT_USAGE


def test_main_without_audio_device(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sinks, "_load_sounddevice", lambda: None)

    assert main(["60", "3", "4", "--bars", "1"]) == EXIT_FAILURE


def test_main_logs_failures(tmp_path: Path) -> None:
    main(["60", "1", "4", "--dry-run"])

    log_file = tmp_path / "logs" / "polyclick.log"
    assert "DegenerateTimelineError" in log_file.read_text(encoding="utf-8")


def test_main_reports_wav_write_failures(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def _closed_sink(path: Path, settings: Any) -> sinks.WavFileSink:
        sink = sinks.WavFileSink(path, settings)
        sink._file.close()
        return sink

    monkeypatch.setattr(cli, "WavFileSink", _closed_sink)

    assert main(["60", "4", "4", "--bars", "1", "--output", str(tmp_path / "click.wav")]) == (
        EXIT_FAILURE
    )
    assert "AudioDeviceError" in capsys.readouterr().err
