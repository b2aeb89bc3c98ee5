"""Playwright-backed page automation used by the scroll-collect loop."""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Tuple

from playwright.sync_api import Error as PlaywrightError, Response, sync_playwright

from clubs_scraper.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

RESULTS_CONTAINER_SELECTOR = ".scroll__container"
MAP_CONTAINER_SELECTOR = ".map-container"
END_OF_LIST_SELECTOR = ".add-business-view"

VIEWPORT = {"width": 1920, "height": 1080}
LAUNCH_TIMEOUT_MS = 60000
HOVER_PAUSE_MS = 300
WHEEL_PAUSE_MS = 500

ResponseCallback = Callable[[str, str, Any], None]
ResponsePredicate = Callable[[str, str], bool]

_SCROLL_TO_END_JS = """
(selector) => {
    const el = document.querySelector(selector);
    if (!el) return false;
    el.scrollTo(0, el.scrollHeight);
    return true;
}
"""

_SCROLL_BY_JS = """
([selector, deltaY]) => {
    const el = document.querySelector(selector);
    if (!el) return false;
    el.scrollTo(0, Math.max(0, el.scrollTop + deltaY));
    return true;
}
"""

_IN_VIEWPORT_JS = """
(selector) => {
    const el = document.querySelector(selector);
    if (!el) return false;
    const rect = el.getBoundingClientRect();
    return rect.top >= 0 && rect.bottom <= window.innerHeight;
}
"""


class PlaywrightAutomation:
    """Thin wrapper around one Playwright browser + page."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self._playwright = None
        self._browser = None
        self._page = None
        self._callbacks: List[Tuple[Optional[ResponsePredicate], ResponseCallback]] = []

    def _ensure_page(self):
        if self._page is None:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(
                headless=self.settings.headless,
                timeout=LAUNCH_TIMEOUT_MS,
            )
            self._page = self._browser.new_page(viewport=VIEWPORT)
            self._page.set_extra_http_headers({"Accept-Language": self.settings.accept_language})
            self._page.on("response", self._dispatch_response)
        return self._page

    def on_response(self, callback: ResponseCallback, predicate: Optional[ResponsePredicate] = None) -> None:
        """Subscribe to responses; the body is only read when `predicate(url, method)` holds."""
        self._callbacks.append((predicate, callback))

    def _dispatch_response(self, response: Response) -> None:
        url = response.url
        method = response.request.method
        subscribers = [
            callback for predicate, callback in self._callbacks if predicate is None or predicate(url, method)
        ]
        if not subscribers:
            return
        try:
            body = response.json()
        except (PlaywrightError, ValueError) as exc:
            logger.debug("Ignoring non-JSON response %s %s: %s", method, url, exc)
            return
        for callback in subscribers:
            try:
                callback(url, method, body)
            except Exception:  # noqa: BLE001
                logger.exception("Response handler failed for %s %s", method, url)

    def navigate(self, url: str) -> None:
        page = self._ensure_page()
        page.goto(url, wait_until="networkidle", timeout=self.settings.navigation_timeout_ms)

    def current_url(self) -> str:
        return self._ensure_page().url

    def evaluate(self, script: str, arg: Any = None) -> Any:
        return self._ensure_page().evaluate(script, arg)

    def scroll_container_to_end(self, selector: str = RESULTS_CONTAINER_SELECTOR) -> bool:
        return bool(self.evaluate(_SCROLL_TO_END_JS, selector))

    def scroll_container_by(self, selector: str, delta_y: int) -> bool:
        return bool(self.evaluate(_SCROLL_BY_JS, [selector, delta_y]))

    def is_in_viewport(self, selector: str) -> bool:
        return bool(self.evaluate(_IN_VIEWPORT_JS, selector))

    def _element_center(self, selector: str):
        element = self._ensure_page().query_selector(selector)
        if element is None:
            logger.warning("Element %s not found", selector)
            return None
        box = element.bounding_box()
        if not box:
            logger.warning("Element %s has no bounding box", selector)
            return None
        return box["x"] + box["width"] / 2, box["y"] + box["height"] / 2

    def hover_element(self, selector: str) -> bool:
        center = self._element_center(selector)
        if center is None:
            return False
        page = self._ensure_page()
        page.mouse.move(*center)
        page.wait_for_timeout(HOVER_PAUSE_MS)
        return True

    def wheel_over_element(self, selector: str, delta_y: int, *, times: int = 2) -> bool:
        """Move the mouse over the element and wheel-scroll it `times` times."""
        if not self.hover_element(selector):
            return False
        page = self._ensure_page()
        for _ in range(times):
            page.mouse.wheel(0, delta_y)
            page.wait_for_timeout(WHEEL_PAUSE_MS)
        return True

    def wait(self, ms: int) -> None:
        if ms > 0:
            self._ensure_page().wait_for_timeout(ms)

    def close(self) -> None:
        if self._browser is not None:
            self._browser.close()
            self._browser = None
            self._page = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    def __enter__(self) -> "PlaywrightAutomation":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self.close()
