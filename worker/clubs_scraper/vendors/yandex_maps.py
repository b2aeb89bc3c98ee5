"""Parser for the Yandex Maps internal search API payloads."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from clubs_scraper.core.config import DEFAULT_SEARCH_API_PREFIX
from clubs_scraper.models import Coordinates, ListingRecord, SearchInfo, SocialLink

logger = logging.getLogger(__name__)

DAY_LABELS = ("Пн", "Вт", "Ср", "Чт", "Пт", "Сб", "Вс")
ROUND_THE_CLOCK = "24 hours"
ORG_URL_TEMPLATE = "https://yandex.ru/maps/org/{seoname}/{id}"
PHOTO_SIZE = "L_height"
DEFAULT_SEARCH_QUERY = "computer clubs"


class YandexMapsParser:
    """Maps intercepted search responses to ListingRecord objects."""

    def __init__(self, search_api_prefix: str = DEFAULT_SEARCH_API_PREFIX) -> None:
        self.search_api_prefix = search_api_prefix

    def is_relevant(self, url: str, method: str) -> bool:
        if (method or "").upper() != "GET":
            return False
        return self.search_api_prefix in (url or "")

    def parse(self, payload: Any) -> List[ListingRecord]:
        records: List[ListingRecord] = []
        for item in _extract_items(payload):
            if not _is_valid_item(item):
                logger.debug("Skipping item without title/address: %s", str(item)[:200])
                continue
            try:
                records.append(parse_item(item))
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to parse item %r: %s", item.get("title"), exc)
        return records

    def parse_search_info(self, payload: Any) -> SearchInfo:
        return parse_search_info(payload)


def _extract_items(payload: Any) -> Iterable[Any]:
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if not isinstance(data, dict):
        return []
    items = data.get("items")
    if isinstance(items, list):
        return items
    return []


def _is_valid_item(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    if not item.get("title"):
        return False
    return bool(item.get("address") or item.get("description") or item.get("fullAddress"))


def parse_item(item: Dict[str, Any]) -> ListingRecord:
    """Build a record from one search item; every optional field is best-effort."""
    address = item.get("address") or item.get("description") or item.get("fullAddress")
    record = ListingRecord(
        name=str(item["title"]).strip(),
        address=str(address).strip(),
        full_address=_strip_or_none(item.get("fullAddress")),
        country=_strip_or_none(item.get("country")),
        postal_code=_strip_or_none(item.get("postalCode")),
        coordinates=extract_coordinates(item.get("coordinates")),
        raw_snapshot=item,
    )

    rating_data = item.get("ratingData")
    if isinstance(rating_data, dict):
        record.rating = _safe_float(rating_data.get("ratingValue"))
        record.reviews = _safe_int(rating_data.get("reviewCount"))
        record.rating_count = _safe_int(rating_data.get("ratingCount"))

    record.categories = _extract_categories(item.get("categories"))

    record.phones = _extract_phones(item.get("phones"))
    if record.phones:
        record.phone = record.phones[0]

    if item.get("workingTimeText"):
        record.working_hours = str(item["workingTimeText"])
    elif item.get("workingTime") is not None:
        record.working_hours = format_working_time(item["workingTime"]) or None

    record.social_links = _extract_social_links(item.get("socialLinks"))

    urls = item.get("urls")
    if isinstance(urls, list):
        record.websites = [str(url) for url in urls if url]
        if record.websites:
            record.website = record.websites[0]

    record.photo = extract_photo(item)

    seoname = item.get("seoname")
    org_id = item.get("id")
    if seoname and org_id:
        record.org_url = ORG_URL_TEMPLATE.format(seoname=seoname, id=org_id)

    return record


def extract_coordinates(value: Any) -> Optional[Coordinates]:
    """The API sends [lon, lat]; the record stores the named, swapped pair."""
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        return None
    lon = _safe_float(value[0])
    lat = _safe_float(value[1])
    if lat is None or lon is None:
        return None
    return Coordinates(lat=lat, lon=lon)


def extract_photo(item: Dict[str, Any]) -> Optional[str]:
    if item.get("photo"):
        return str(item["photo"])
    photos = item.get("photos")
    if isinstance(photos, dict) and photos.get("urlTemplate"):
        return str(photos["urlTemplate"]).replace("%s", PHOTO_SIZE)
    advert = item.get("advert")
    if isinstance(advert, dict) and advert.get("photo"):
        return str(advert["photo"])
    return None


def format_working_time(working_time: Any) -> str:
    """Render a weekly schedule as 'Пн: 9:00-21:00, Вт: 24 hours, ...'."""
    if not isinstance(working_time, list):
        return ""

    formatted: List[str] = []
    for label, day in zip(DAY_LABELS, working_time):
        if not isinstance(day, list) or not day or not isinstance(day[0], dict):
            continue
        start = _format_clock(day[0].get("from"))
        end = _format_clock(day[0].get("to"))
        if start is None or end is None:
            continue
        if start == "0:00" and end == "0:00":
            formatted.append(f"{label}: {ROUND_THE_CLOCK}")
        else:
            formatted.append(f"{label}: {start}-{end}")
    return ", ".join(formatted)


def _format_clock(value: Any) -> Optional[str]:
    if not isinstance(value, dict):
        return None
    hours = _safe_int(value.get("hours"))
    if hours is None:
        return None
    minutes = _safe_int(value.get("minutes")) or 0
    return f"{hours}:{minutes:02d}"


def parse_search_info(payload: Any) -> SearchInfo:
    sources: List[Dict[str, Any]] = []
    if isinstance(payload, dict):
        sources.append(payload)
        if isinstance(payload.get("data"), dict):
            sources.append(payload["data"])

    def first(*keys: str) -> Any:
        for source in sources:
            for key in keys:
                if source.get(key):
                    return source[key]
        return None

    return SearchInfo(
        total_found=_safe_int(first("total", "totalCount")) or 0,
        search_query=str(first("query", "searchQuery") or DEFAULT_SEARCH_QUERY),
        region=_strip_or_none(first("region", "location")),
    )


def _extract_categories(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    categories: List[str] = []
    for entry in value:
        name = entry.get("name") if isinstance(entry, dict) else entry
        if isinstance(name, str) and name.strip():
            categories.append(name.strip())
    return categories


def _extract_phones(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    phones: List[str] = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        number = _strip_or_none(entry.get("number") or entry.get("value"))
        if number:
            phones.append(number)
    return phones


def _extract_social_links(value: Any) -> List[SocialLink]:
    if not isinstance(value, list):
        return []
    links: List[SocialLink] = []
    for entry in value:
        if isinstance(entry, dict) and entry.get("type") and entry.get("href"):
            links.append(SocialLink(type=str(entry["type"]), url=str(entry["href"])))
    return links


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _safe_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # json.loads accepts bare NaN/Infinity tokens.
    if not math.isfinite(number):
        return None
    return number


def _safe_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        digits = "".join(ch for ch in value if ch.isdigit())
        if digits:
            return int(digits)
    return None
