#!/usr/bin/env python3
"""
Resolve video durations from the command line.

Usage:
  duration-scout movie.mp4 clips/*.mov
  duration-scout --mode AVERAGE --workers 4 https://example.com/a.mp4 b.mp4
  duration-scout --no-probe --remote -v big.mp4
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from app.application.models import CalculationMode, ItemStatus, QueueItem
from app.application.queue.controller import BatchQueueController
from app.application.use_cases.resolve_duration import ResolveDurationUseCase
from app.core.exceptions import DurationScoutError
from app.core.log_setup import setup_logging
from app.infrastructure.adapters.bundles.duration import get_duration_adapter_bundle
from utils.format_utils import format_duration, format_file_size

logger = logging.getLogger(__name__)


class _StepLogger:
    """Queue observer that logs step transitions."""

    def on_item_changed(self, item: QueueItem) -> None:
        if item.status is ItemStatus.PROCESSING and item.step:
            logger.info("%s: %s", item.name, item.step)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="duration-scout",
        description="Resolve video durations without decoding the media.",
    )
    ap.add_argument("locators", nargs="+", help="Local paths or http(s) URLs")
    ap.add_argument(
        "--mode",
        type=str.upper,
        choices=[m.value for m in CalculationMode],
        default=CalculationMode.SUM.value,
        help="Aggregate to print (default: SUM)",
    )
    ap.add_argument("--workers", type=int, default=None, help="Parallel resolutions (1 = sequential)")
    ap.add_argument("--probe-timeout", type=float, default=None, help="Seconds before the ffprobe tier gives up")
    ap.add_argument("--no-probe", action="store_true", help="Disable the ffprobe tier")
    ap.add_argument("--remote", action="store_true", help="Enable the remote AI fallback tier")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log tier progress")
    return ap


def _print_item(item: QueueItem) -> None:
    if item.status is ItemStatus.COMPLETED:
        result = f"{format_duration(item.duration)}  ({item.duration:.3f}s via {item.source.value})"
    else:
        result = f"ERROR  {item.error or 'unresolved'}"
    print(f"{item.name}\t{format_file_size(item.size)}\t{result}")


async def run(args: argparse.Namespace) -> int:
    adapters = get_duration_adapter_bundle(
        probe_enabled=False if args.no_probe else None,
        remote_enabled=True if args.remote else None,
        probe_timeout=args.probe_timeout,
    )
    controller = BatchQueueController(
        ResolveDurationUseCase(adapters),
        adapters.source_provider,
        max_workers=args.workers,
        observers=[_StepLogger()],
    )

    enqueue_failed = 0
    for locator in args.locators:
        try:
            await controller.enqueue(locator)
        except DurationScoutError as e:
            enqueue_failed += 1
            print(f"{locator}\t-\tERROR  {e}")

    await controller.process_pending()

    for item in controller.snapshot():
        _print_item(item)

    stats = controller.stats()
    mode = CalculationMode(args.mode)
    print("-" * 60)
    print(
        f"{mode.value}: {format_duration(stats.value_for(mode))} "
        f"({stats.completed} resolved, {stats.errors + enqueue_failed} failed)"
    )
    return 1 if stats.errors or enqueue_failed else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level="INFO" if args.verbose else "WARNING", log_file="")
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
