import sys
from pathlib import Path

import pytest

# Ensure `clubs_scraper` package is importable when running pytest from the worker directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from clubs_scraper.core.config import Settings  # noqa: E402

SEARCH_URL = "https://yandex.ru/maps/api/search?text=computer%20club&page=1"


def make_item(title, address="Main st, 1", coordinates=None, **extra):
    item = {"title": title, "address": address}
    if coordinates is not None:
        item["coordinates"] = coordinates
    item.update(extra)
    return item


def make_payload(*items):
    return {"data": {"items": list(items)}}


class FakeAutomation:
    """Scripted stand-in for PlaywrightAutomation.

    `initial` responses fire on navigate(); each scroll to the end pops the next
    batch from `scroll_batches`. Responses are (url, method, body) tuples.
    """

    def __init__(self, settings=None, *, initial=None, scroll_batches=None, final_url="", fail_on_navigate=None):
        self.settings = settings
        self.initial = list(initial or [])
        self.scroll_batches = list(scroll_batches or [])
        self.final_url = final_url
        self.fail_on_navigate = fail_on_navigate
        self.callbacks = []
        self.calls = []
        self.waits = []
        self.end_of_list_visible = False
        self.map_present = True
        self.closed = False

    def on_response(self, callback, predicate=None):
        self.callbacks.append((predicate, callback))

    def emit(self, url, method, body):
        for predicate, callback in self.callbacks:
            if predicate is None or predicate(url, method):
                callback(url, method, body)

    def navigate(self, url):
        self.calls.append(("navigate", url))
        if self.fail_on_navigate is not None:
            raise self.fail_on_navigate
        for response in self.initial:
            self.emit(*response)

    def current_url(self):
        return self.final_url

    def scroll_container_to_end(self, selector):
        self.calls.append(("scroll_to_end", selector))
        if self.scroll_batches:
            for response in self.scroll_batches.pop(0):
                self.emit(*response)
        return True

    def scroll_container_by(self, selector, delta_y):
        self.calls.append(("scroll_by", selector, delta_y))
        return True

    def is_in_viewport(self, selector):
        return self.end_of_list_visible

    def wheel_over_element(self, selector, delta_y):
        self.calls.append(("wheel", selector, delta_y))
        return self.map_present

    def hover_element(self, selector):
        self.calls.append(("hover", selector))
        return True

    def wait(self, ms):
        self.waits.append(ms)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        regions_file=tmp_path / "regions-simple.json",
        output_dir=tmp_path / "results",
        max_iterations=10,
        settle_delay_ms=0,
        initial_settle_ms=0,
        final_drain_ms=0,
        stall_threshold=2,
        region_pause_ms=0,
    )
