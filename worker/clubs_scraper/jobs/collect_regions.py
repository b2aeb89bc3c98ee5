"""CLI job that discovers region ids and writes the region catalog."""

import argparse
import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from clubs_scraper.core.automation import PlaywrightAutomation
from clubs_scraper.core.config import ConfigError, Settings, get_settings
from clubs_scraper.core.regions import MAPS_BASE_URL, category_url, extract_region_name, save_regions
from clubs_scraper.etl.export import write_json
from clubs_scraper.models import RegionTarget

logger = logging.getLogger(__name__)

PROBE_SLUG = "tver"
PROBE_QUERY = "?ll=35.917421%2C56.858745&z=12"
PROBE_PAUSE_MS = 500
FALLBACK_MARKER = "/moscow/"
COLLECTION_FILENAME = "regions-collection.json"


@dataclass(slots=True)
class RegionProbe:
    id: int
    original_url: str
    final_url: str = ""
    name: str = ""
    status: str = "error"
    error: Optional[str] = None


def probe_url(region_id: int) -> str:
    return f"{MAPS_BASE_URL}/{region_id}/{PROBE_SLUG}/{PROBE_QUERY}"


def probe_region(automation: PlaywrightAutomation, region_id: int) -> RegionProbe:
    """Open the probe URL for an id and read the region slug from where the site redirects."""
    probe = RegionProbe(id=region_id, original_url=probe_url(region_id))
    try:
        automation.navigate(probe.original_url)
        probe.final_url = automation.current_url()
    except Exception as exc:  # noqa: BLE001
        probe.error = str(exc) or exc.__class__.__name__
        logger.warning("Region id %d: %s", region_id, probe.error)
        return probe

    name = extract_region_name(probe.final_url)
    if name and name != PROBE_SLUG and FALLBACK_MARKER not in probe.final_url:
        probe.name = name
        probe.status = "success"
        logger.info("Region id %d: %s", region_id, name)
    else:
        probe.status = "not_found"
        probe.error = "Region name not extracted"
        logger.info("Region id %d: not found", region_id)
    return probe


def collect_regions_job(
    start_id: int,
    end_id: int,
    *,
    settings: Settings,
    automation_factory: Callable[[Settings], PlaywrightAutomation] = PlaywrightAutomation,
) -> List[RegionTarget]:
    if start_id < 1 or end_id < start_id:
        raise ValueError("Region id range must satisfy 1 <= start <= end")

    probes: List[RegionProbe] = []
    with automation_factory(settings) as automation:
        for region_id in range(start_id, end_id + 1):
            probes.append(probe_region(automation, region_id))
            automation.wait(PROBE_PAUSE_MS)
            if region_id % 10 == 0:
                found = sum(1 for probe in probes if probe.status == "success")
                logger.info("Progress: %d/%d, regions found: %d", region_id, end_id, found)

    regions = [
        RegionTarget(id=probe.id, name=probe.name, url=category_url(probe.id, probe.name))
        for probe in probes
        if probe.status == "success"
    ]
    kept = [dataclasses.asdict(probe) for probe in probes if probe.status != "not_found"]
    write_json(
        {
            "totalProcessed": len(probes),
            "successCount": len(regions),
            "errorCount": sum(1 for probe in probes if probe.status == "error"),
            "notFoundCount": sum(1 for probe in probes if probe.status == "not_found"),
            "regions": kept,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        Path(settings.regions_file).parent / COLLECTION_FILENAME,
    )
    save_regions(regions, settings.regions_file)
    logger.info("Discovered %d regions out of %d ids", len(regions), len(probes))
    return regions


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Discover Yandex Maps region ids and build the region catalog")
    parser.add_argument("start_id", type=int, nargs="?", default=1, help="First region id to probe")
    parser.add_argument("end_id", type=int, nargs="?", default=150, help="Last region id to probe")
    parser.add_argument("--regions-file", dest="regions_file", type=Path, help="Where to write the catalog")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    if args.regions_file is not None:
        settings = dataclasses.replace(settings, regions_file=args.regions_file)

    try:
        collect_regions_job(args.start_id, args.end_id, settings=settings)
    except ValueError as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
