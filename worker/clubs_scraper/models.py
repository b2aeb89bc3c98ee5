"""Core data models shared by the collection pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set


@dataclass(frozen=True, slots=True)
class Coordinates:
    lat: float
    lon: float


@dataclass(frozen=True, slots=True)
class SocialLink:
    type: str
    url: str


@dataclass(frozen=True, slots=True)
class RegionTarget:
    """One entry of the region catalog."""

    id: int
    name: str
    url: str


@dataclass(slots=True)
class ListingRecord:
    """Normalized snapshot of a business returned by the map search API."""

    name: str
    address: str
    coordinates: Optional[Coordinates] = None
    full_address: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    phones: List[str] = field(default_factory=list)
    website: Optional[str] = None
    websites: List[str] = field(default_factory=list)
    rating: Optional[float] = None
    reviews: Optional[int] = None
    rating_count: Optional[int] = None
    categories: List[str] = field(default_factory=list)
    working_hours: Optional[str] = None
    social_links: List[SocialLink] = field(default_factory=list)
    photo: Optional[str] = None
    org_url: Optional[str] = None
    region_id: Optional[int] = None
    region_name: Optional[str] = None
    source_region_url: Optional[str] = None
    raw_snapshot: Optional[Dict[str, Any]] = field(default=None, repr=False)

    def attach_region(self, region: RegionTarget) -> None:
        self.region_id = region.id
        self.region_name = region.name
        self.source_region_url = region.url


@dataclass(slots=True)
class SearchInfo:
    total_found: int
    search_query: str
    region: Optional[str] = None


@dataclass(slots=True)
class CollectionState:
    """Per-region accumulator. Owned by the collector, reset between regions."""

    accumulated: List[ListingRecord] = field(default_factory=list)
    seen_coordinate_keys: Set[str] = field(default_factory=set)
    request_count: int = 0
    search_info: Optional[SearchInfo] = None

    def clear(self) -> None:
        self.accumulated = []
        self.seen_coordinate_keys = set()
        self.request_count = 0
        self.search_info = None


@dataclass(slots=True)
class RegionResult:
    region: RegionTarget
    status: str = "error"
    records: List[ListingRecord] = field(default_factory=list)
    request_count: int = 0
    reported_total: Optional[int] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


@dataclass(slots=True)
class RunResult:
    records: List[ListingRecord]
    regions: List[RegionResult]
    timestamp: str

    @property
    def total_found(self) -> int:
        return len(self.records)

    @property
    def network_requests(self) -> int:
        return sum(result.request_count for result in self.regions)

    @property
    def successful_regions(self) -> int:
        return sum(1 for result in self.regions if result.succeeded)
