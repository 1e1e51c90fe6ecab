"""
Image sync pipeline for the image relay.

Pulls a source image, re-tags it under the destination repository, pushes it
and removes both local copies. Also holds the image prune operation.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from .engine import DockerEngine, EngineError
from .errors import ErrorKind, RelayError
from .reference import parse_image_reference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncRequest:
    """One image to relay, with the destination registry credentials."""

    image: Optional[str]
    username: str
    password: str


@dataclass(frozen=True)
class SyncResult:
    """Identifiers echoed back to the caller after a successful sync."""

    source_image: str
    dest_image: str

    def to_dict(self) -> dict:
        """JSON body for the response."""
        return asdict(self)


class InFlightTags:
    """
    Destination tags with a sync currently running.

    Shared by every request. Requests may run on different threads and event
    loops, so membership is guarded by a threading lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._tags = set()

    def __contains__(self, tag: str) -> bool:
        with self._lock:
            return tag in self._tags

    @contextmanager
    def claim(self, tag: str):
        """
        Hold a destination tag for the duration of the block.

        Raises:
            RelayError: SYNC_IN_PROGRESS if the tag is already held
        """
        with self._lock:
            if tag in self._tags:
                logger.warning(f"Sync already in progress for destination tag: {tag}")
                raise RelayError(
                    ErrorKind.SYNC_IN_PROGRESS,
                    f"A sync for destination tag '{tag}' is already in progress",
                )
            self._tags.add(tag)
        try:
            yield
        finally:
            with self._lock:
                self._tags.discard(tag)


in_flight = InFlightTags()

EngineFactory = Callable[[], DockerEngine]


def _connect(open_engine: EngineFactory) -> DockerEngine:
    """Open an engine, mapping an unreachable daemon to ENGINE_OPERATION_FAILED."""
    try:
        return open_engine()
    except EngineError as e:
        logger.error(str(e))
        raise RelayError(ErrorKind.ENGINE_OPERATION_FAILED, str(e)) from e


class ImageSyncer:
    """
    Relays images from their origin registry to the destination repository.

    Steps run strictly in order: pull, tag, push, remove source, remove
    destination. Nothing is retried and nothing is rolled back: a failure
    after the push leaves the pushed image in the registry.

    The engine is opened only once the reference is parsed and the destination
    tag is claimed, so rejected requests never reach the daemon.
    """

    def __init__(self, open_engine: EngineFactory, dest_repository: str, guard: InFlightTags = in_flight):
        self.open_engine = open_engine
        self.dest_repository = dest_repository
        self.guard = guard

    async def sync(self, request: SyncRequest) -> SyncResult:
        """
        Run the full pipeline for one request.

        Returns:
            SyncResult with the canonical source identifier and the destination tag

        Raises:
            RelayError:
                MALFORMED_REFERENCE before any daemon call if the image is invalid
                SYNC_IN_PROGRESS if another request is syncing the same destination tag
                ENGINE_OPERATION_FAILED if the daemon is unreachable or the pull or push fails
                CLEANUP_FAILED if removing either local copy fails
        """
        reference = parse_image_reference(request.image)
        dest_tag = reference.destination_tag
        dest_name = f"{self.dest_repository}:{dest_tag}"
        auth = {"username": request.username, "password": request.password}

        with self.guard.claim(dest_tag):
            logger.info(f"Sync started: {reference.pull_ref} -> {dest_name}")

            async with _connect(self.open_engine) as engine:
                try:
                    await engine.pull(reference.pull_ref)
                except EngineError as e:
                    logger.error(str(e))
                    raise RelayError(ErrorKind.ENGINE_OPERATION_FAILED, str(e)) from e

                # Tagging is best effort; a missing tag surfaces as a push failure.
                try:
                    await engine.tag(reference.pull_ref, self.dest_repository, dest_tag)
                except EngineError as e:
                    logger.warning(f"Continuing without tag: {e}")

                try:
                    await engine.push(self.dest_repository, dest_tag, auth)
                except EngineError as e:
                    logger.error(str(e))
                    raise RelayError(ErrorKind.ENGINE_OPERATION_FAILED, str(e)) from e

                for ref in (reference.pull_ref, dest_name):
                    try:
                        await engine.remove(ref)
                    except EngineError as e:
                        logger.error(f"Cleanup failed: {e}")
                        raise RelayError(ErrorKind.CLEANUP_FAILED, str(e)) from e

        logger.info(f"Sync complete: {reference.joined} -> {dest_name}")
        return SyncResult(source_image=reference.joined, dest_image=dest_tag)


async def prune_images(open_engine: EngineFactory, until: str = "1m") -> dict:
    """
    Remove unused images older than ``until``.

    Returns:
        The daemon's prune summary, unchanged. A summary with nothing deleted is
        a normal result.

    Raises:
        RelayError: ENGINE_OPERATION_FAILED if the daemon is unreachable or the call fails
    """
    async with _connect(open_engine) as engine:
        try:
            return await engine.prune({"until": [until]})
        except EngineError as e:
            logger.error(str(e))
            raise RelayError(ErrorKind.ENGINE_OPERATION_FAILED, str(e)) from e
