from pathlib import Path

import pytest

from clubs_scraper.core import config

ENV_VARS = (
    "REGIONS_FILE",
    "OUTPUT_DIR",
    "HEADLESS",
    "MAX_ITERATIONS",
    "SETTLE_DELAY_MS",
    "STALL_THRESHOLD",
    "SAVE_RAW_RESPONSES",
    "SEARCH_API_PREFIX",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


def test_get_settings_reads_env(monkeypatch, tmp_path):
    regions_file = tmp_path / "regions.json"
    regions_file.write_text("[]", encoding="utf-8")
    monkeypatch.setenv("REGIONS_FILE", str(regions_file))
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "out"))
    monkeypatch.setenv("HEADLESS", "false")
    monkeypatch.setenv("MAX_ITERATIONS", "40")
    monkeypatch.setenv("SETTLE_DELAY_MS", "1000")
    monkeypatch.setenv("STALL_THRESHOLD", "3")
    monkeypatch.setenv("SAVE_RAW_RESPONSES", "yes")

    settings = config.get_settings()

    assert settings.regions_file == regions_file
    assert settings.output_dir == tmp_path / "out"
    assert settings.headless is False
    assert settings.max_iterations == 40
    assert settings.settle_delay_ms == 1000
    assert settings.stall_threshold == 3
    assert settings.save_raw_responses is True


def test_get_settings_defaults_and_warns(caplog):
    with caplog.at_level("WARNING"):
        settings = config.get_settings()

    assert settings.output_dir == Path("results")
    assert settings.max_iterations == 15
    assert settings.settle_delay_ms == 1500
    assert settings.stall_threshold == 2
    assert settings.search_api_prefix == config.DEFAULT_SEARCH_API_PREFIX
    assert settings.headless is True
    if not settings.regions_file.exists():
        assert "REGIONS_FILE" in " ".join(caplog.messages)


def test_get_settings_is_cached():
    assert config.get_settings() is config.get_settings()


@pytest.mark.parametrize("name, value", [("MAX_ITERATIONS", "many"), ("MAX_ITERATIONS", "0"), ("STALL_THRESHOLD", "0")])
def test_get_settings_rejects_bad_numbers(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(config.ConfigError):
        config.get_settings()
