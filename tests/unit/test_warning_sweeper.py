from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from rsl.application.dto.responses import WarningSweepResponse
from rsl.infrastructure.scheduling import warning_sweeper


@pytest.mark.parametrize(
    "raw_value,expected",
    [
        (None, 30.0),
        ("45", 45.0),
        ("2", 10.0),
        ("600", 60.0),
        ("soon", 30.0),
    ],
)
def test_sweep_interval_is_clamped(monkeypatch, raw_value, expected) -> None:
    if raw_value is None:
        monkeypatch.delenv("WARNING_SWEEP_INTERVAL_SECONDS", raising=False)
    else:
        monkeypatch.setenv("WARNING_SWEEP_INTERVAL_SECONDS", raw_value)

    assert warning_sweeper.sweep_interval_seconds() == expected


def test_sweeper_disabled_by_default(monkeypatch) -> None:
    monkeypatch.delenv("WARNING_SWEEP_ENABLED", raising=False)
    assert warning_sweeper.sweeper_enabled() is False

    monkeypatch.setenv("WARNING_SWEEP_ENABLED", "true")
    assert warning_sweeper.sweeper_enabled() is True


class _CountingSweep:
    def __init__(self, failures: int = 0) -> None:
        self.calls = 0
        self.failures = failures

    def execute(self, trace_ctx) -> WarningSweepResponse:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("store unavailable")
        return WarningSweepResponse(
            evaluated=0,
            fifteenMinuteWarnings=0,
            fiveMinuteWarnings=0,
            expired=0,
            conflicts=0,
        )


def test_sweeper_loop_survives_failures_until_cancelled(monkeypatch) -> None:
    sweep = _CountingSweep(failures=1)
    sleeps: list[float] = []

    async def _fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        if len(sleeps) >= 3:
            raise asyncio.CancelledError

    monkeypatch.setattr(warning_sweeper.asyncio, "sleep", _fake_sleep)

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(warning_sweeper.start_warning_sweeper(10.0, use_case_factory=lambda: sweep))

    assert sweep.calls == 3
    assert sleeps == [1.0, 10.0, 10.0]
