"""Writers for collected results (JSON, CSV) and raw debug payloads."""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Tuple

from clubs_scraper.etl.transform import CSV_COLUMNS, to_csv_row, to_run_payload
from clubs_scraper.models import ListingRecord, RunResult

logger = logging.getLogger(__name__)

RESULT_BASENAME = "network-clubs-data"
DEBUG_DIRNAME = "debug"


def write_json(payload: Any, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False, indent=2)
    return path


def write_csv(records: Iterable[ListingRecord], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as fh:
        writer = csv.writer(fh, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_COLUMNS)
        for record in records:
            writer.writerow(to_csv_row(record))
    return path


def save_results(run: RunResult, output_dir: Path, suffix: str) -> Tuple[Path, Path]:
    """Write `<basename>-<suffix>.json` and `.csv` into `output_dir`."""
    output_dir = Path(output_dir)
    json_path = write_json(to_run_payload(run), output_dir / f"{RESULT_BASENAME}-{suffix}.json")
    logger.info("Saved JSON results to %s", json_path)
    csv_path = write_csv(run.records, output_dir / f"{RESULT_BASENAME}-{suffix}.csv")
    logger.info("Saved CSV results to %s", csv_path)
    return json_path, csv_path


class RawPayloadDumper:
    """Persists intercepted payloads as `<output>/debug/network-<n>.json`."""

    def __init__(self, output_dir: Path, prefix: str = "network") -> None:
        self.debug_dir = Path(output_dir) / DEBUG_DIRNAME
        self.prefix = prefix

    def __call__(self, payload: Any, sequence: int) -> None:
        path = self.debug_dir / f"{self.prefix}-{sequence}.json"
        try:
            write_json(payload, path)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Failed to save raw payload to %s: %s", path, exc)
