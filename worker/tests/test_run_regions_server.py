import json
import threading

import pytest

from clubs_scraper.jobs import run_regions_server

CATALOG = [
    {"id": 14, "name": "tver", "url": "https://yandex.ru/maps/14/tver/category/computer_club/"},
    {"id": 10, "name": "orel", "url": "https://yandex.ru/maps/10/orel/category/computer_club/"},
]


@pytest.fixture(autouse=True)
def patched(monkeypatch, settings):
    submitted = {}

    class DummyExecutor:
        def submit(self, fn, args):
            submitted["called"] = True
            submitted["args"] = args

    monkeypatch.setattr(run_regions_server, "_executor", DummyExecutor())
    monkeypatch.setattr(run_regions_server, "get_settings", lambda: settings)
    yield submitted


@pytest.fixture
def client():
    return run_regions_server.app.test_client()


@pytest.fixture
def catalog(settings):
    settings.regions_file.write_text(json.dumps(CATALOG), encoding="utf-8")
    return settings.regions_file


def test_health_endpoint(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert body["regions_file_present"] is False


def test_regions_endpoint(client, catalog):
    response = client.get("/regions")
    assert response.status_code == 200
    assert [entry["id"] for entry in response.get_json()["data"]] == [14, 10]


def test_regions_endpoint_without_catalog(client):
    assert client.get("/regions").status_code == 503


def test_collect_queues_single_region(client, catalog, patched):
    response = client.post("/collect", json={"region": "14", "max_iterations": 5})

    assert response.status_code == 202
    assert response.get_json()["data"] == {"status": "queued", "regions": [14]}
    args = patched["args"]
    assert [region.id for region in args["regions"]] == [14]
    assert args["max_iterations"] == 5
    assert args["output_suffix"] == "region-14"


def test_collect_defaults_to_global(client, catalog, patched, settings):
    response = client.post("/collect", json={})

    assert response.status_code == 202
    args = patched["args"]
    assert [region.id for region in args["regions"]] == [14, 10]
    assert args["max_iterations"] == settings.max_iterations
    assert args["output_suffix"] == "all-regions"


def test_collect_validates_payload(client, catalog, patched):
    assert client.post("/collect", json={"max_iterations": "bad"}).status_code == 400
    assert client.post("/collect", json={"max_iterations": 0}).status_code == 400
    assert client.post("/collect", json={"region": "999"}).status_code == 404
    assert "called" not in patched


def test_collect_without_catalog(client, patched):
    assert client.post("/collect", json={"region": "14"}).status_code == 503


def test_run_job_safe_logs_failures(monkeypatch, caplog):
    def boom(*args, **kwargs):
        raise RuntimeError("browser crashed")

    monkeypatch.setattr(run_regions_server, "run_regions_job", boom)
    with caplog.at_level("ERROR"):
        run_regions_server._run_job_safe({"regions": [], "max_iterations": 1, "output_suffix": "x"})
    assert "Collection job failed" in " ".join(caplog.messages)


def test_cancel_sets_the_shared_event(client, monkeypatch):
    event = threading.Event()
    monkeypatch.setattr(run_regions_server, "_cancel_event", event)

    response = client.post("/cancel")

    assert response.status_code == 202
    assert response.get_json()["data"] == {"status": "cancelling"}
    assert event.is_set()


def test_run_job_safe_passes_a_fresh_cancel_event(monkeypatch, settings):
    event = threading.Event()
    event.set()
    monkeypatch.setattr(run_regions_server, "_cancel_event", event)
    seen = {}

    def fake_job(regions, **kwargs):
        seen["cancel_event"] = kwargs["cancel_event"]
        seen["was_set"] = kwargs["cancel_event"].is_set()

    monkeypatch.setattr(run_regions_server, "run_regions_job", fake_job)
    run_regions_server._run_job_safe({"regions": [], "max_iterations": 1, "output_suffix": "x"})

    assert seen["cancel_event"] is event
    assert seen["was_set"] is False
