"""HTTP entrypoint that queues region collection runs."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict

from flask import Flask, jsonify, request

from clubs_scraper.core.config import get_settings
from clubs_scraper.core.regions import (
    GLOBAL_SELECTOR,
    RegionCatalogError,
    RegionNotFoundError,
    load_regions,
    resolve_targets,
)
from clubs_scraper.jobs.run_regions import output_suffix_for, run_regions_job

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & executor ----------
app = Flask(__name__)
# One worker: regions must never be collected concurrently.
_executor = ThreadPoolExecutor(max_workers=1)
# Set by POST /cancel; cleared when the next queued run starts.
_cancel_event = threading.Event()

# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    """Simple root to avoid 404 on GET /"""
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "regions_file": str(settings.regions_file),
                "regions_file_present": settings.regions_file.exists(),
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.get("/regions")
def list_regions() -> Any:
    settings = get_settings()
    try:
        regions = load_regions(settings.regions_file)
    except RegionCatalogError as exc:
        return jsonify({"error": str(exc)}), 503
    return jsonify({"data": [{"id": r.id, "name": r.name, "url": r.url} for r in regions]}), 200


@app.post("/collect")
def enqueue_collect() -> Any:
    """
    Queue a collection run.
    Optional JSON fields: region (id, name fragment or 'global'), max_iterations (int)
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    settings = get_settings()

    selector = str(payload.get("region") or GLOBAL_SELECTOR).strip()

    max_iterations = settings.max_iterations
    max_iterations_raw = payload.get("max_iterations")
    if max_iterations_raw is not None:
        try:
            max_iterations = int(max_iterations_raw)
        except (TypeError, ValueError):
            return jsonify({"error": "max_iterations must be numeric"}), 400
        if max_iterations <= 0:
            return jsonify({"error": "max_iterations must be positive"}), 400

    try:
        regions = load_regions(settings.regions_file)
        targets = resolve_targets(regions, selector)
    except RegionCatalogError as exc:
        return jsonify({"error": str(exc)}), 503
    except RegionNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404

    job_args = dict(
        regions=targets,
        max_iterations=max_iterations,
        output_suffix=output_suffix_for(selector, targets),
    )

    logger.info("Queueing collection for %d region(s), selector=%s", len(targets), selector)
    _executor.submit(_run_job_safe, job_args)

    return jsonify({"data": {"status": "queued", "regions": [t.id for t in targets]}}), 202


@app.post("/cancel")
def cancel_collect() -> Any:
    """Ask the running collection to stop; finished regions are still saved."""
    _cancel_event.set()
    logger.info("Cancellation requested")
    return jsonify({"data": {"status": "cancelling"}}), 202


# ---------- Internals ----------


def _run_job_safe(job_args: Dict[str, Any]) -> None:
    _cancel_event.clear()
    try:
        run_regions_job(
            job_args["regions"],
            settings=get_settings(),
            max_iterations=job_args["max_iterations"],
            output_suffix=job_args["output_suffix"],
            cancel_event=_cancel_event,
        )
    except Exception as exc:  # noqa: BLE001
        logger.exception("Collection job failed: %s", exc)


def main() -> None:
    port = int(os.getenv("PORT") or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
