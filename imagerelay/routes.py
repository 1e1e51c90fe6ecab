"""
Flask application and image relay endpoints.

Maps HTTP requests onto the sync pipeline and the prune operation.
"""

import logging
import time

from flask import Flask, Response, g, jsonify, request

from .config import config
from .engine import DockerEngine
from .errors import RelayError
from .sync import ImageSyncer, SyncRequest, prune_images

logger = logging.getLogger(__name__)

# Create Flask app
app = Flask(__name__)


def open_engine() -> DockerEngine:
    """
    Open a daemon connection for the current request.

    Raises:
        EngineError: no usable daemon address
    """
    return DockerEngine(config.DOCKER_HOST)


# -------------------------------
# Request logging
# -------------------------------


@app.before_request
def start_timer():
    """Record when the request started."""
    g.started = time.monotonic()


@app.after_request
def log_request(response):
    """Log method, path, status and duration of every request."""
    elapsed_ms = (time.monotonic() - g.get("started", time.monotonic())) * 1000
    logger.info(f"{request.method} {request.full_path.rstrip('?')} -> {response.status_code} ({elapsed_ms:.1f} ms)")
    return response


# -------------------------------
# Error handlers
# -------------------------------


@app.errorhandler(RelayError)
def handle_relay_error(error):
    """Map a RelayError to its status with a JSON {"error", "message"} body."""
    logger.warning(f"Request failed: {error.kind.value}: {error.message}")
    return jsonify(error.to_dict()), error.status


@app.errorhandler(404)
def handle_not_found(error):
    """Plain-text 404 for unmatched routes."""
    return Response("Route not found", status=404, mimetype="text/plain")


@app.errorhandler(405)
def handle_method_not_allowed(error):
    """Plain-text 405 for unsupported methods."""
    return Response("Method not allowed", status=405, mimetype="text/plain")


# -------------------------------
# Relay Endpoints
# -------------------------------


@app.route("/health")
def health():
    """Liveness check. Returns 200 with body "OK"."""
    return Response("OK", status=200, mimetype="text/plain")


@app.route("/imagesync")
async def image_sync():
    """
    Relay one image to the destination repository.

    Query Parameters:
        image: Source image reference, e.g. "alpine:3.18", "nginx" or
            "library/alpine@sha256:..."

    Returns:
        JSON {"source_image": "<canonical source>", "dest_image": "<destination tag>"}

    Response Format:
        {"source_image": "alpine:3.18", "dest_image": "alpine_3.18"}

    Raises:
        400: Missing or malformed image reference (no daemon call is made)
        409: A sync for the same destination tag is already running
        500: Removing a local copy failed after the push
        502: Docker daemon unreachable, or pull or push failed
    """
    sync_request = SyncRequest(
        image=request.args.get("image"),
        username=config.USERNAME,
        password=config.PASSWORD,
    )
    logger.info(f"Image sync requested: image='{sync_request.image}'")

    result = await ImageSyncer(open_engine, config.DEST_REPOSITORY).sync(sync_request)

    return jsonify(result.to_dict())


@app.route("/prune_images")
async def prune():
    """
    Remove unused images older than PRUNE_UNTIL (default 1m).

    Returns:
        The daemon's prune summary as JSON, e.g.
        {"ImagesDeleted": [{"Deleted": "sha256:..."}], "SpaceReclaimed": 1234}

    Raises:
        502: Docker daemon unreachable or the prune call failed
    """
    logger.info(f"Image prune requested: until={config.PRUNE_UNTIL}")

    summary = await prune_images(open_engine, config.PRUNE_UNTIL)

    return jsonify(summary)
