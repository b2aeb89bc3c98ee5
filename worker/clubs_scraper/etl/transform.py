"""Utilities for turning listing records into export rows."""

from dataclasses import asdict
from typing import Any, Dict, List

from clubs_scraper.models import ListingRecord, RegionResult, RunResult

LIST_SEPARATOR = "; "

CSV_COLUMNS = (
    "Region ID",
    "Region name",
    "Name",
    "Address",
    "Full address",
    "Country",
    "Postal code",
    "Phone",
    "All phones",
    "Website",
    "All websites",
    "Rating",
    "Reviews",
    "Rating count",
    "Categories",
    "Working hours",
    "Social links",
    "Latitude",
    "Longitude",
    "Photo",
    "Map URL",
)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def to_csv_row(record: ListingRecord) -> List[str]:
    coordinates = record.coordinates
    phones = LIST_SEPARATOR.join(record.phones) or _text(record.phone)
    websites = LIST_SEPARATOR.join(record.websites) or _text(record.website)
    social_links = LIST_SEPARATOR.join(f"{link.type}: {link.url}" for link in record.social_links)

    return [
        _text(record.region_id),
        _text(record.region_name),
        record.name,
        record.address,
        _text(record.full_address),
        _text(record.country),
        _text(record.postal_code),
        _text(record.phone),
        phones,
        _text(record.website),
        websites,
        _text(record.rating),
        _text(record.reviews),
        _text(record.rating_count),
        LIST_SEPARATOR.join(record.categories),
        _text(record.working_hours),
        social_links,
        _text(coordinates.lat if coordinates else None),
        _text(coordinates.lon if coordinates else None),
        _text(record.photo),
        _text(record.org_url),
    ]


def to_record_dict(record: ListingRecord) -> Dict[str, Any]:
    entry = asdict(record)
    entry.pop("raw_snapshot", None)
    return entry


def to_region_summary(result: RegionResult) -> Dict[str, Any]:
    return {
        "region": result.region.name,
        "regionId": result.region.id,
        "status": result.status,
        "clubsSum": len(result.records),
        "networkRequests": result.request_count,
        "reportedTotal": result.reported_total,
        "error": result.error,
    }


def to_run_payload(run: RunResult) -> Dict[str, Any]:
    return {
        "totalFound": run.total_found,
        "regionsProcessed": len(run.regions),
        "successfulRegions": run.successful_regions,
        "networkRequests": run.network_requests,
        "timestamp": run.timestamp,
        "regions": [to_region_summary(result) for result in run.regions],
        "clubs": [to_record_dict(record) for record in run.records],
    }
