"""Tests for the snapshot pipeline: one fetch → render → write cycle.

The provider is an in-memory fake, so no network calls are made.  Each
failing step must be contained: ``run_cycle`` returns ``None`` and
reports the error instead of raising.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

from wallchart.config import Settings
from wallchart.orchestration.pipeline import SnapshotPipeline, fetch_window, write_atomic
from wallchart.providers.base import ProviderError
from wallchart.providers.tinkoff import CANDLE_INTERVAL_DEFAULT, CANDLE_LIMIT_DEFAULT

from conftest import PNG_SIGNATURE, FakeProvider, make_series

NOW = datetime(2026, 1, 5, 11, 0, 0, tzinfo=timezone.utc)


def _settings(tmp_path: Path, **overrides) -> Settings:
    values = dict(token="test-token", output_path=tmp_path / "background.png", timezone="UTC")
    values.update(overrides)
    return Settings(**values)


def test_cycle_writes_png(tmp_path, capsys) -> None:
    provider = FakeProvider(make_series([100, 102, 101, 104]))
    settings = _settings(tmp_path)
    pipeline = SnapshotPipeline(provider, settings, clock=lambda: NOW)
    path = asyncio.run(pipeline.run_cycle())
    assert path == settings.output_path
    assert path.read_bytes().startswith(PNG_SIGNATURE)
    out = capsys.readouterr().out
    assert "[11:00:00] Chart saved to" in out
    # No temporary files are left behind
    assert sorted(p.name for p in tmp_path.iterdir()) == ["background.png"]


def test_cycle_requests_configured_window(tmp_path) -> None:
    provider = FakeProvider(make_series([1, 2]))
    pipeline = SnapshotPipeline(provider, _settings(tmp_path, history_time="-2h"), clock=lambda: NOW)
    asyncio.run(pipeline.run_cycle())
    uid, start, end, interval, limit = provider.candle_requests[0]
    assert uid == "uid-123"
    assert (start, end) == (NOW - timedelta(hours=2), NOW)
    assert interval == CANDLE_INTERVAL_DEFAULT
    assert limit == CANDLE_LIMIT_DEFAULT


def test_fetch_window_orders_forward_windows(tmp_path) -> None:
    settings = _settings(tmp_path, history_time="30m")
    assert fetch_window(settings, NOW) == (NOW, NOW + timedelta(minutes=30))


def test_empty_series_is_contained(tmp_path, capsys) -> None:
    pipeline = SnapshotPipeline(FakeProvider([]), _settings(tmp_path), clock=lambda: NOW)
    assert asyncio.run(pipeline.run_cycle()) is None
    err = capsys.readouterr().err
    assert "Chart update failed" in err
    assert "EmptySeriesError" in err
    assert not (tmp_path / "background.png").exists()


def test_provider_failure_is_contained(tmp_path, capsys) -> None:
    provider = FakeProvider(error=ProviderError("Instrument VKCO/TQBR not found"))
    pipeline = SnapshotPipeline(provider, _settings(tmp_path), clock=lambda: NOW)
    assert asyncio.run(pipeline.run_cycle()) is None
    assert "Instrument VKCO/TQBR not found" in capsys.readouterr().err


def test_drawing_failure_is_contained(tmp_path, capsys) -> None:
    def broken_surface(width: int, height: int):
        raise RuntimeError("no canvas")

    pipeline = SnapshotPipeline(
        FakeProvider(make_series([1, 2])), _settings(tmp_path), clock=lambda: NOW, surface_factory=broken_surface
    )
    assert asyncio.run(pipeline.run_cycle()) is None
    assert "no canvas" in capsys.readouterr().err


def test_write_failure_is_contained(tmp_path, capsys) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    settings = _settings(tmp_path, output_path=blocker / "background.png")
    pipeline = SnapshotPipeline(FakeProvider(make_series([1, 2])), settings, clock=lambda: NOW)
    assert asyncio.run(pipeline.run_cycle()) is None
    assert "Chart update failed" in capsys.readouterr().err


def test_end_to_end_decrease_header(tmp_path, recording_factory) -> None:
    provider = FakeProvider(make_series([100, 105, 95]), ticker="VKCO")
    pipeline = SnapshotPipeline(
        provider, _settings(tmp_path), clock=lambda: NOW, surface_factory=recording_factory
    )
    path = asyncio.run(pipeline.run_cycle())
    assert path is not None
    surface = recording_factory.created[0]
    header = surface.texts()[5]
    assert header[1] == "VKCO: 95 ₽, ▼ 5.00 ₽ (-5.00%)"
    assert header[4] == "#ff4444"
    assert [t[1] for t in surface.texts()[:3]] == ["95.00", "100.00", "105.00"]
    assert surface.texts()[6][1] == "11:00"


def test_successive_cycles_overwrite_output(tmp_path, recording_factory) -> None:
    settings = _settings(tmp_path)
    settings.output_path.write_bytes(b"old frame")
    pipeline = SnapshotPipeline(
        FakeProvider(make_series([3, 4])), settings, clock=lambda: NOW, surface_factory=recording_factory
    )
    asyncio.run(pipeline.run_cycle())
    asyncio.run(pipeline.run_cycle())
    assert settings.output_path.read_bytes() == PNG_SIGNATURE + b"recorded"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["background.png"]


def test_write_atomic_creates_parent_dirs(tmp_path) -> None:
    target = tmp_path / "nested" / "dir" / "frame.png"
    assert write_atomic(target, b"data") == target
    assert target.read_bytes() == b"data"
