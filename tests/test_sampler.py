"""Tests for cpumon.sampler."""

from __future__ import annotations

from pathlib import Path

import pytest

from cpumon.sampler import (
    CounterSample,
    SystemSnapshot,
    read_core_count,
    read_counter_sample,
    read_system_snapshot,
)

STAT = (
    "cpu  100 5 50 800 20 3 2 1 0 0\n"
    "cpu0 50 2 25 400 10 1 1 0 0 0\n"
    "intr 12345\n"
)


def _write(tmp_path: Path, name: str, content: str) -> str:
    path = tmp_path / name
    path.write_text(content)
    return str(path)


# ── read_counter_sample ───────────────────────────────────────────────────


class TestReadCounterSample:
    def test_parses_aggregate_line(self, tmp_path: Path) -> None:
        sample, ok = read_counter_sample(_write(tmp_path, "stat", STAT))
        assert ok is True
        assert sample == CounterSample(idle_ticks=820, total_ticks=981)

    def test_ignores_guest_columns(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "stat", "cpu 1 1 1 1 1 1 1 1 999 999\n")
        sample, ok = read_counter_sample(path)
        assert ok
        assert sample.total_ticks == 8

    def test_four_fields_is_degraded_but_valid(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "stat", "cpu 10 0 10 80\n")
        sample, ok = read_counter_sample(path)
        assert ok
        assert sample == CounterSample(idle_ticks=80, total_ticks=100)

    def test_too_few_fields(self, tmp_path: Path) -> None:
        warnings: list[str] = []
        path = _write(tmp_path, "stat", "cpu 10 0 10\n")
        sample, ok = read_counter_sample(path, warn=warnings.append)
        assert ok is False
        assert sample == CounterSample()
        assert "malformed" in warnings[0]

    def test_garbage_field_stops_parse(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "stat", "cpu 10 x 10 80 1\n")
        _, ok = read_counter_sample(path)
        assert ok is False

    def test_non_ascii_digits_reported_malformed(self, tmp_path: Path) -> None:
        warnings: list[str] = []
        path = tmp_path / "stat"
        path.write_text("cpu 10 \u00b2 10 80 1\n", encoding="utf-8")
        sample, ok = read_counter_sample(str(path), warn=warnings.append)
        assert ok is False
        assert sample == CounterSample()
        assert "malformed" in warnings[0]

    def test_no_aggregate_line(self, tmp_path: Path) -> None:
        warnings: list[str] = []
        path = _write(tmp_path, "stat", "cpu0 1 2 3 4 5 6 7 8\n")
        _, ok = read_counter_sample(path, warn=warnings.append)
        assert ok is False
        assert "no aggregate cpu line" in warnings[0]

    def test_missing_source(self, tmp_path: Path) -> None:
        warnings: list[str] = []
        sample, ok = read_counter_sample(str(tmp_path / "missing"), warn=warnings.append)
        assert ok is False
        assert sample == CounterSample()
        assert "unavailable" in warnings[0]


# ── read_system_snapshot ──────────────────────────────────────────────────


class TestReadSystemSnapshot:
    def test_reads_both_sources(self, tmp_path: Path) -> None:
        load = _write(tmp_path, "loadavg", "0.52 0.58 0.59 1/467 12345\n")
        up = _write(tmp_path, "uptime", "35.02 120.44\n")
        snap, ok = read_system_snapshot(None, load, up)
        assert ok
        assert (snap.load1, snap.load5, snap.load15) == (0.52, 0.58, 0.59)
        assert snap.uptime_seconds == pytest.approx(35.02)

    def test_core_count_carried_over(self, tmp_path: Path) -> None:
        load = _write(tmp_path, "loadavg", "1 2 3\n")
        up = _write(tmp_path, "uptime", "10\n")
        snap, _ = read_system_snapshot(SystemSnapshot(core_count=8), load, up)
        assert snap.core_count == 8

    def test_loadavg_failure_keeps_previous_and_ok(self, tmp_path: Path) -> None:
        warnings: list[str] = []
        up = _write(tmp_path, "uptime", "99.5 1.0\n")
        prev = SystemSnapshot(load1=1.0, load5=2.0, load15=3.0, uptime_seconds=50.0)
        snap, ok = read_system_snapshot(
            prev, str(tmp_path / "missing"), up, warn=warnings.append
        )
        assert ok is True
        assert (snap.load1, snap.load5, snap.load15) == (1.0, 2.0, 3.0)
        assert snap.uptime_seconds == 99.5
        assert len(warnings) == 1

    def test_uptime_failure_sets_not_ok(self, tmp_path: Path) -> None:
        load = _write(tmp_path, "loadavg", "0.1 0.2 0.3\n")
        prev = SystemSnapshot(uptime_seconds=42.0)
        snap, ok = read_system_snapshot(prev, load, str(tmp_path / "missing"))
        assert ok is False
        assert snap.load1 == 0.1
        assert snap.uptime_seconds == 42.0

    def test_malformed_loadavg(self, tmp_path: Path) -> None:
        warnings: list[str] = []
        load = _write(tmp_path, "loadavg", "0.1 abc\n")
        up = _write(tmp_path, "uptime", "1.0\n")
        snap, ok = read_system_snapshot(None, load, up, warn=warnings.append)
        assert ok
        assert snap.load1 == 0.0
        assert "malformed" in warnings[0]

    def test_empty_uptime(self, tmp_path: Path) -> None:
        load = _write(tmp_path, "loadavg", "0.1 0.2 0.3\n")
        up = _write(tmp_path, "uptime", "")
        _, ok = read_system_snapshot(None, load, up)
        assert ok is False


# ── read_core_count ───────────────────────────────────────────────────────


class TestReadCoreCount:
    def test_counts_processor_lines(self, tmp_path: Path) -> None:
        content = "".join(
            f"processor\t: {i}\nmodel name\t: Test CPU\n\n" for i in range(4)
        )
        assert read_core_count(_write(tmp_path, "cpuinfo", content)) == 4

    def test_missing_source_returns_one(self, tmp_path: Path) -> None:
        assert read_core_count(str(tmp_path / "missing")) == 1

    def test_zero_processors_returns_one(self, tmp_path: Path) -> None:
        warnings: list[str] = []
        path = _write(tmp_path, "cpuinfo", "Hardware\t: BCM2835\n")
        assert read_core_count(path, warn=warnings.append) == 1
        assert warnings
