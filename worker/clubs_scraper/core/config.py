"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_API_PREFIX = "https://yandex.ru/maps/api/search"


class ConfigError(RuntimeError):
    """Raised when a configuration value cannot be used."""


@dataclass(frozen=True)
class Settings:
    regions_file: Path = Path("results/regions-simple.json")
    output_dir: Path = Path("results")
    headless: bool = True
    max_iterations: int = 15
    settle_delay_ms: int = 1500
    initial_settle_ms: int = 3000
    final_drain_ms: int = 2000
    stall_threshold: int = 2
    region_pause_ms: int = 2000
    navigation_timeout_ms: int = 30000
    search_api_prefix: str = DEFAULT_SEARCH_API_PREFIX
    accept_language: str = "ru-RU,ru;q=0.9"
    save_raw_responses: bool = False
    worker_port: int = 8080


def _get_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    regions_file = Path(os.getenv("REGIONS_FILE") or "results/regions-simple.json")
    output_dir = Path(os.getenv("OUTPUT_DIR") or "results")

    if not regions_file.exists():
        logger.warning("REGIONS_FILE %s does not exist; region lookups will fail.", regions_file)

    return Settings(
        regions_file=regions_file,
        output_dir=output_dir,
        headless=_get_bool("HEADLESS", True),
        max_iterations=_get_int("MAX_ITERATIONS", 15, minimum=1),
        settle_delay_ms=_get_int("SETTLE_DELAY_MS", 1500),
        initial_settle_ms=_get_int("INITIAL_SETTLE_MS", 3000),
        final_drain_ms=_get_int("FINAL_DRAIN_MS", 2000),
        stall_threshold=_get_int("STALL_THRESHOLD", 2, minimum=1),
        region_pause_ms=_get_int("REGION_PAUSE_MS", 2000),
        navigation_timeout_ms=_get_int("NAVIGATION_TIMEOUT_MS", 30000, minimum=1),
        search_api_prefix=os.getenv("SEARCH_API_PREFIX") or DEFAULT_SEARCH_API_PREFIX,
        accept_language=os.getenv("ACCEPT_LANGUAGE") or "ru-RU,ru;q=0.9",
        save_raw_responses=_get_bool("SAVE_RAW_RESPONSES", False),
        worker_port=_get_int("WORKER_PORT", 8080, minimum=1),
    )
