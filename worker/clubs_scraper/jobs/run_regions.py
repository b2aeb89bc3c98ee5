"""CLI job that collects listings for one region, a name match, or all regions."""

import argparse
import dataclasses
import logging
import signal
import threading
import time
from collections import Counter
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence

from clubs_scraper.core.automation import PlaywrightAutomation
from clubs_scraper.core.collector import ScrollCollector
from clubs_scraper.core.config import ConfigError, Settings, get_settings
from clubs_scraper.core.regions import (
    GLOBAL_SELECTOR,
    RegionCatalogError,
    RegionNotFoundError,
    load_regions,
    resolve_targets,
)
from clubs_scraper.etl.export import RawPayloadDumper, save_results
from clubs_scraper.models import ListingRecord, RegionResult, RegionTarget, RunResult

logger = logging.getLogger(__name__)

AutomationFactory = Callable[[Settings], PlaywrightAutomation]


def collect_region(
    region: RegionTarget,
    *,
    settings: Settings,
    max_iterations: int,
    automation_factory: AutomationFactory = PlaywrightAutomation,
    cancel_event: Optional[threading.Event] = None,
) -> RegionResult:
    """Collect one region in its own browser session; failures are recorded, not raised."""
    result = RegionResult(region=region)
    raw_sink = None
    if settings.save_raw_responses:
        raw_sink = RawPayloadDumper(settings.output_dir, prefix=f"network-{region.id}")
    collector = ScrollCollector.from_settings(settings, raw_sink=raw_sink, cancel_event=cancel_event)

    try:
        with automation_factory(settings) as automation:
            records = collector.collect(region, automation, max_iterations)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Collection failed for region %s (id=%s)", region.name, region.id)
        result.error = str(exc) or exc.__class__.__name__
        result.request_count = collector.request_count
        result.reported_total = collector.reported_total
        return result

    for record in records:
        record.attach_region(region)

    result.status = "success"
    result.records = records
    result.request_count = collector.request_count
    result.reported_total = collector.reported_total
    logger.info("Region %s: %d clubs", region.name, len(records))
    return result


def run_regions_job(
    regions: Sequence[RegionTarget],
    *,
    settings: Settings,
    max_iterations: int,
    output_suffix: str,
    automation_factory: AutomationFactory = PlaywrightAutomation,
    cancel_event: Optional[threading.Event] = None,
) -> RunResult:
    """Process regions strictly one after another and save the combined result."""
    results: List[RegionResult] = []
    records: List[ListingRecord] = []

    for index, region in enumerate(regions):
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Run cancelled; %d of %d regions processed", index, len(regions))
            break

        if index > 0 and settings.region_pause_ms > 0:
            logger.info("Pausing %d ms before the next region", settings.region_pause_ms)
            time.sleep(settings.region_pause_ms / 1000)

        logger.info("Region %d/%d: %s (id=%s)", index + 1, len(regions), region.name, region.id)
        result = collect_region(
            region,
            settings=settings,
            max_iterations=max_iterations,
            automation_factory=automation_factory,
            cancel_event=cancel_event,
        )
        results.append(result)
        records.extend(result.records)

    run = RunResult(
        records=records,
        regions=results,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    save_results(run, settings.output_dir, output_suffix)
    log_summary(run)
    return run


def output_suffix_for(selector: Optional[str], targets: Sequence[RegionTarget]) -> str:
    value = (selector or "").strip().lower()
    if not value or value == GLOBAL_SELECTOR or len(targets) != 1:
        return "all-regions"
    return f"region-{targets[0].id}"


def log_summary(run: RunResult) -> None:
    logger.info(
        "Run finished: clubs=%d regions=%d successful=%d network_requests=%d",
        run.total_found,
        len(run.regions),
        run.successful_regions,
        run.network_requests,
    )
    for result in run.regions:
        if not result.succeeded:
            logger.warning("Region %s failed: %s", result.region.name, result.error)

    per_region = Counter(record.region_name or "unknown" for record in run.records)
    for region_name, count in per_region.most_common(10):
        logger.info("  %s: %d clubs", region_name, count)


@contextmanager
def stop_on_signals(cancel_event: threading.Event) -> Iterator[threading.Event]:
    """First SIGINT/SIGTERM requests a graceful stop (results are still saved); a second one aborts."""

    def _handler(signum, frame) -> None:
        if cancel_event.is_set():
            raise KeyboardInterrupt
        logger.warning("Received %s, stopping after the current scroll pass", signal.Signals(signum).name)
        cancel_event.set()

    previous = {signum: signal.signal(signum, _handler) for signum in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield cancel_event
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Collect computer clubs from Yandex Maps by region")
    parser.add_argument(
        "region",
        nargs="?",
        default=GLOBAL_SELECTOR,
        help="Region id, region name fragment, or 'global' for every region (default)",
    )
    parser.add_argument(
        "--max-iterations",
        dest="max_iterations",
        type=int,
        default=settings.max_iterations,
        help="Maximum number of scroll passes per region",
    )
    parser.add_argument("--output-dir", dest="output_dir", type=Path, help="Directory for JSON/CSV results")
    parser.add_argument("--regions-file", dest="regions_file", type=Path, help="Region catalog JSON file")
    parser.add_argument("--list", dest="list_regions", action="store_true", help="Print the region catalog and exit")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")

    try:
        settings = get_settings()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    args = build_parser(settings).parse_args(argv)
    overrides = {}
    if args.output_dir is not None:
        overrides["output_dir"] = args.output_dir
    if args.regions_file is not None:
        overrides["regions_file"] = args.regions_file
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    if args.max_iterations < 1:
        logger.error("--max-iterations must be positive")
        raise SystemExit(1)

    try:
        regions = load_regions(settings.regions_file)
        targets = resolve_targets(regions, args.region)
    except (RegionCatalogError, RegionNotFoundError) as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc

    if args.list_regions:
        for region in regions:
            print(f"{region.id:>4}: {region.name}")
        return

    with stop_on_signals(threading.Event()) as cancel_event:
        run_regions_job(
            targets,
            settings=settings,
            max_iterations=args.max_iterations,
            output_suffix=output_suffix_for(args.region, targets),
            cancel_event=cancel_event,
        )


if __name__ == "__main__":
    main()
