"""Region catalog loading and lookup."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable, List, Optional

from clubs_scraper.models import RegionTarget

logger = logging.getLogger(__name__)

GLOBAL_SELECTOR = "global"
MAPS_BASE_URL = "https://yandex.ru/maps"
CATEGORY_PATH = "category/computer_club/"

_REGION_SLUG_PATTERNS = (
    re.compile(r"/maps/\d+/([^/?#]+)"),
    re.compile(r"/maps/([^/?#\d][^/?#]*)"),
)


class RegionCatalogError(RuntimeError):
    """Raised when the region catalog cannot be read."""


class RegionNotFoundError(LookupError):
    """Raised when a region selector matches nothing (or too much)."""


def load_regions(path: Path) -> List[RegionTarget]:
    path = Path(path)
    if not path.exists():
        raise RegionCatalogError(f"Region catalog not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise RegionCatalogError(f"Unable to read region catalog {path}: {exc}") from exc

    if not isinstance(payload, list):
        raise RegionCatalogError(f"Region catalog {path} must contain a JSON array")

    regions = [_to_region(entry, index) for index, entry in enumerate(payload)]
    logger.info("Loaded %d regions from %s", len(regions), path)
    return regions


def _to_region(entry: Any, index: int) -> RegionTarget:
    if not isinstance(entry, dict):
        raise RegionCatalogError(f"Region entry #{index} is not an object")
    try:
        return RegionTarget(id=int(entry["id"]), name=str(entry["name"]), url=str(entry["url"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise RegionCatalogError(f"Region entry #{index} is invalid: {entry!r}") from exc


def save_regions(regions: Iterable[RegionTarget], path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [{"id": region.id, "name": region.name, "url": region.url} for region in regions]
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False, indent=2)
    logger.info("Saved %d regions to %s", len(payload), path)
    return path


def find_region_by_id(regions: Iterable[RegionTarget], region_id: int) -> Optional[RegionTarget]:
    for region in regions:
        if region.id == region_id:
            return region
    return None


def find_regions_by_name(regions: Iterable[RegionTarget], term: str) -> List[RegionTarget]:
    needle = term.strip().lower()
    if not needle:
        return []
    return [region for region in regions if needle in region.name.lower()]


def resolve_targets(regions: List[RegionTarget], selector: Optional[str]) -> List[RegionTarget]:
    """Turn a CLI/HTTP selector (id, name fragment or 'global') into target regions."""
    value = (selector or "").strip()
    if not value or value.lower() == GLOBAL_SELECTOR:
        return list(regions)

    if value.isdigit():
        region = find_region_by_id(regions, int(value))
        if region is None:
            raise RegionNotFoundError(f"Region with id {value} not found")
        return [region]

    matches = find_regions_by_name(regions, value)
    if not matches:
        raise RegionNotFoundError(f"No region matches {value!r}")
    if len(matches) > 1:
        exact = [region for region in matches if region.name.lower() == value.lower()]
        if len(exact) == 1:
            return exact
        names = ", ".join(f"{region.id}:{region.name}" for region in matches[:10])
        raise RegionNotFoundError(f"{value!r} is ambiguous ({len(matches)} matches: {names})")
    return matches


def extract_region_name(url: str) -> Optional[str]:
    """Region slug from a maps URL such as https://yandex.ru/maps/14/tver/."""
    for pattern in _REGION_SLUG_PATTERNS:
        match = pattern.search(url or "")
        if match:
            return match.group(1)
    return None


def category_url(region_id: int, slug: str) -> str:
    return f"{MAPS_BASE_URL}/{region_id}/{slug}/{CATEGORY_PATH}"
