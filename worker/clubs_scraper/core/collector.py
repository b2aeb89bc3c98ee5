"""Scroll-collect loop: drives the results panel and gathers intercepted listings."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Optional, Protocol, Set

from clubs_scraper.core.automation import (
    END_OF_LIST_SELECTOR,
    MAP_CONTAINER_SELECTOR,
    RESULTS_CONTAINER_SELECTOR,
)
from clubs_scraper.core.config import Settings
from clubs_scraper.models import CollectionState, ListingRecord, RegionTarget
from clubs_scraper.vendors.yandex_maps import YandexMapsParser

logger = logging.getLogger(__name__)

MAP_NUDGE_DELTA_Y = 500
LIST_REARM_DELTA_Y = -100
LIST_REARM_PAUSE_MS = 500
END_OF_LIST_RECHECK_MS = 1000

RawPayloadSink = Callable[[Any, int], None]


class PageAutomation(Protocol):
    def on_response(self, callback, predicate=None) -> None: ...

    def navigate(self, url: str) -> None: ...

    def scroll_container_to_end(self, selector: str) -> bool: ...

    def scroll_container_by(self, selector: str, delta_y: int) -> bool: ...

    def is_in_viewport(self, selector: str) -> bool: ...

    def wheel_over_element(self, selector: str, delta_y: int) -> bool: ...

    def hover_element(self, selector: str) -> bool: ...

    def wait(self, ms: int) -> None: ...


def coordinate_key(record: ListingRecord) -> Optional[str]:
    if record.coordinates is None:
        return None
    return f"{record.coordinates.lat:.6f},{record.coordinates.lon:.6f}"


def accept_record(record: ListingRecord, seen_keys: Set[str]) -> bool:
    """Coordinate identity check; marks the key as seen when the record is new."""
    key = coordinate_key(record)
    if key is None:
        logger.debug("Dropping %s: no coordinates", record.name)
        return False
    if key in seen_keys:
        logger.debug("Dropping duplicate %s at %s", record.name, key)
        return False
    seen_keys.add(key)
    return True


class ScrollCollector:
    """Collects listings for one region at a time.

    The site loads results lazily as the list is scrolled, through requests we never
    issue ourselves. Progress is therefore measured as growth of the accumulated
    records between fixed settle delays, and convergence is inferred from the lack
    of growth over `stall_threshold` passes (with one map nudge as recovery).
    """

    def __init__(
        self,
        parser: YandexMapsParser,
        *,
        settle_delay_ms: int = 1500,
        initial_settle_ms: int = 3000,
        final_drain_ms: int = 2000,
        stall_threshold: int = 2,
        raw_sink: Optional[RawPayloadSink] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        if stall_threshold < 1:
            raise ValueError("stall_threshold must be at least 1")
        self.parser = parser
        self.settle_delay_ms = settle_delay_ms
        self.initial_settle_ms = initial_settle_ms
        self.final_drain_ms = final_drain_ms
        self.stall_threshold = stall_threshold
        self.raw_sink = raw_sink
        self.cancel_event = cancel_event
        self.state = CollectionState()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        raw_sink: Optional[RawPayloadSink] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> "ScrollCollector":
        return cls(
            YandexMapsParser(settings.search_api_prefix),
            settle_delay_ms=settings.settle_delay_ms,
            initial_settle_ms=settings.initial_settle_ms,
            final_drain_ms=settings.final_drain_ms,
            stall_threshold=settings.stall_threshold,
            raw_sink=raw_sink,
            cancel_event=cancel_event,
        )

    @property
    def request_count(self) -> int:
        return self.state.request_count

    @property
    def reported_total(self) -> Optional[int]:
        """Result count the site announced for the current region, if any response carried one."""
        if self.state.search_info is None:
            return None
        return self.state.search_info.total_found

    def handle_response(self, url: str, method: str, body: Any) -> int:
        """Parse one intercepted response and append the records that pass dedup."""
        if not self.parser.is_relevant(url, method):
            return 0

        self.state.request_count += 1
        logger.info("Intercepted search response #%d: %s %s", self.state.request_count, method, url)

        if self.raw_sink is not None:
            self.raw_sink(body, self.state.request_count)

        if self.state.search_info is None:
            info = self.parser.parse_search_info(body)
            if info.total_found:
                self.state.search_info = info
                logger.info("Site reports %d results for %r", info.total_found, info.search_query)

        records = self.parser.parse(body)
        accepted = [record for record in records if accept_record(record, self.state.seen_coordinate_keys)]
        self.state.accumulated.extend(accepted)

        if records:
            logger.info(
                "Response #%d: %d new of %d listings (total %d)",
                self.state.request_count,
                len(accepted),
                len(records),
                len(self.state.accumulated),
            )
        return len(accepted)

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def collect(self, target: RegionTarget, automation: PageAutomation, max_iterations: int) -> List[ListingRecord]:
        self.state.clear()
        automation.on_response(self.handle_response, self.parser.is_relevant)

        logger.info("Collecting region %s (id=%s) from %s", target.name, target.id, target.url)
        automation.navigate(target.url)
        automation.wait(self.initial_settle_ms)

        # A small upward scroll re-arms the list's lazy loading.
        automation.scroll_container_by(RESULTS_CONTAINER_SELECTOR, LIST_REARM_DELTA_Y)
        automation.wait(LIST_REARM_PAUSE_MS)

        self._scroll_until_converged(automation, max_iterations)

        automation.wait(self.final_drain_ms)
        logger.info(
            "Region %s done: %d listings from %d search responses",
            target.name,
            len(self.state.accumulated),
            self.state.request_count,
        )
        return list(self.state.accumulated)

    def _scroll_until_converged(self, automation: PageAutomation, max_iterations: int) -> None:
        previous_count = 0
        stalls = 0
        recovery_attempted = False

        for iteration in range(1, max_iterations + 1):
            if self._cancelled():
                logger.info("Collection cancelled before pass %d", iteration)
                return

            current_count = len(self.state.accumulated)
            if current_count == previous_count:
                stalls += 1
                logger.info("No new listings (%d/%d), total %d", stalls, self.stall_threshold, current_count)
                if stalls >= self.stall_threshold:
                    if recovery_attempted:
                        logger.info("Still no progress after map nudge; stopping")
                        return
                    logger.info("Nudging the map to resume loading")
                    self._nudge_map(automation)
                    recovery_attempted = True
                    stalls = 0
            else:
                logger.info("Progress: +%d listings (total %d)", current_count - previous_count, current_count)
                stalls = 0
                recovery_attempted = False
            previous_count = current_count

            if self._end_of_list_reached(automation):
                logger.info("End of list visible; nudging the map")
                self._nudge_map(automation)
                continue

            automation.scroll_container_to_end(RESULTS_CONTAINER_SELECTOR)
            logger.info("Scroll %d/%d, listings so far: %d", iteration, max_iterations, len(self.state.accumulated))
            automation.wait(self.settle_delay_ms)

        logger.info("Iteration budget of %d exhausted", max_iterations)

    def _end_of_list_reached(self, automation: PageAutomation) -> bool:
        if not automation.is_in_viewport(END_OF_LIST_SELECTOR):
            return False
        automation.wait(END_OF_LIST_RECHECK_MS)
        return automation.is_in_viewport(END_OF_LIST_SELECTOR)

    def _nudge_map(self, automation: PageAutomation) -> bool:
        if not automation.wheel_over_element(MAP_CONTAINER_SELECTOR, MAP_NUDGE_DELTA_Y):
            return False
        automation.hover_element(RESULTS_CONTAINER_SELECTOR)
        automation.wait(self.settle_delay_ms)
        return True
