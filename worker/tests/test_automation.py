from clubs_scraper.core.automation import PlaywrightAutomation
from conftest import SEARCH_URL


class DummyRequest:
    def __init__(self, method):
        self.method = method


class DummyResponse:
    def __init__(self, url, method="GET", body=None, error=None):
        self.url = url
        self.request = DummyRequest(method)
        self._body = body
        self._error = error
        self.json_calls = 0

    def json(self):
        self.json_calls += 1
        if self._error is not None:
            raise self._error
        return self._body


def only_search(url, method):
    return "/maps/api/search" in url


def test_dispatch_reads_body_only_for_matching_subscribers(settings):
    automation = PlaywrightAutomation(settings)
    received = []
    automation.on_response(lambda url, method, body: received.append((url, method, body)), only_search)

    image = DummyResponse("https://yandex.ru/tiles/1.png")
    automation._dispatch_response(image)
    search = DummyResponse(SEARCH_URL, body={"data": {"items": []}})
    automation._dispatch_response(search)

    assert image.json_calls == 0
    assert received == [(SEARCH_URL, "GET", {"data": {"items": []}})]


def test_dispatch_skips_non_json_bodies(settings):
    automation = PlaywrightAutomation(settings)
    received = []
    automation.on_response(lambda *args: received.append(args))

    automation._dispatch_response(DummyResponse(SEARCH_URL, error=ValueError("not json")))

    assert received == []


def test_dispatch_contains_handler_errors(settings, caplog):
    automation = PlaywrightAutomation(settings)
    received = []

    def broken(url, method, body):
        raise RuntimeError("handler bug")

    automation.on_response(broken)
    automation.on_response(lambda *args: received.append(args))

    with caplog.at_level("ERROR"):
        automation._dispatch_response(DummyResponse(SEARCH_URL, body={}))

    assert len(received) == 1
    assert "Response handler failed" in " ".join(caplog.messages)


def test_close_without_browser_is_noop(settings):
    with PlaywrightAutomation(settings) as automation:
        pass
    assert automation._browser is None
    assert automation._playwright is None
