from __future__ import annotations

import argparse
import asyncio
from contextlib import suppress

from rsl.infrastructure.observability.logging_config import configure_logging
from rsl.infrastructure.observability.otel import configure_tracing
from rsl.infrastructure.scheduling.warning_sweeper import (
    MAX_INTERVAL_SECONDS,
    MIN_INTERVAL_SECONDS,
    build_sweep_use_case,
    run_sweep_once,
    start_warning_sweeper,
    sweep_interval_seconds,
)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Evaluate group session time warnings and expire overdue sessions.",
    )
    parser.add_argument("--loop", action="store_true", help="keep sweeping on an interval")
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help=f"seconds between sweeps ({MIN_INTERVAL_SECONDS:g}-{MAX_INTERVAL_SECONDS:g})",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    configure_logging()
    configure_tracing()

    if not args.loop:
        result = run_sweep_once(build_sweep_use_case())
        print(result.model_dump_json())
        return

    interval = sweep_interval_seconds()
    if args.interval is not None:
        interval = min(max(args.interval, MIN_INTERVAL_SECONDS), MAX_INTERVAL_SECONDS)
    with suppress(KeyboardInterrupt):
        asyncio.run(start_warning_sweeper(interval))


if __name__ == "__main__":
    main()
