"""
HTTP-triggered container image relay.

Pulls an image from its origin registry, re-tags it under a fixed destination
repository, pushes it there and removes the local copies. A second endpoint
prunes unused images from the Docker daemon.

Endpoints:
    - GET /health - Liveness check
    - GET /imagesync?image=<ref> - Relay one image
    - GET /prune_images - Remove unused images older than PRUNE_UNTIL

Environment Variables:
    USERNAME, PASSWORD (required), DEST_REPOSITORY, PRUNE_UNTIL, DOCKER_HOST,
    LOG_LEVEL, FLASK_HOST, FLASK_PORT

Example:
    $ USERNAME=me PASSWORD=secret LOG_LEVEL=DEBUG python app.py
    $ curl 'http://127.0.0.1:3030/imagesync?image=alpine:3.18'
"""

import logging
import sys

from imagerelay.config import ConfigError, config
from imagerelay.routes import app

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the relay application."""
    try:
        config.validate()
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    debug_mode = logger.getEffectiveLevel() == logging.DEBUG
    logger.info(f"Starting image relay service on {config.FLASK_HOST}:{config.FLASK_PORT}")
    logger.info(f"Configuration: {config}")
    logger.info(f"Log level: {logging.getLevelName(logger.getEffectiveLevel())}")
    if debug_mode:
        logger.info("Flask debug mode enabled")
    app.run(host=config.FLASK_HOST, port=config.FLASK_PORT, debug=debug_mode)


if __name__ == "__main__":
    main()
