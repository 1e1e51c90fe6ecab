"""
Docker engine module for the image relay.

Wraps aiodocker with the handful of image operations the relay needs and
drains the daemon's progress streams.
"""

import logging
from typing import AsyncIterator, Optional

import aiodocker

logger = logging.getLogger(__name__)


class EngineError(Exception):
    """A Docker daemon call failed or reported an error in its progress stream."""


def _chunk_error(chunk: dict) -> Optional[str]:
    """Return the error message carried by a progress chunk, if any."""
    if "error" in chunk:
        return str(chunk["error"])
    detail = chunk.get("errorDetail")
    if detail:
        return str(detail.get("message", detail))
    return None


class DockerEngine:
    """
    Image operations against a Docker daemon.

    Usage:
        async with DockerEngine(url) as engine:
            await engine.pull("alpine:3.18")
    """

    def __init__(self, url: Optional[str] = None, docker: Optional[aiodocker.Docker] = None):
        """
        Args:
            url: Daemon URL. None lets aiodocker use DOCKER_HOST or the local socket
            docker: Existing client to use instead of opening a new one

        Raises:
            EngineError: no usable daemon address
        """
        if docker is None:
            try:
                docker = aiodocker.Docker(url=url)
            # aiodocker asserts or raises ValueError when no socket or DOCKER_HOST is usable
            except (aiodocker.DockerError, ValueError, AssertionError) as e:
                raise EngineError(f"cannot connect to Docker daemon: {e}") from e
        self._docker = docker

    async def __aenter__(self) -> "DockerEngine":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._docker.close()

    async def _drain(self, stream: AsyncIterator[dict], description: str) -> int:
        """
        Consume a progress stream to its end.

        Returns:
            Number of chunks received

        Raises:
            EngineError: the daemon failed the call or sent an error chunk
        """
        chunks = 0
        try:
            async for chunk in stream:
                chunks += 1
                logger.debug(f"[{description}] {chunk}")
                message = _chunk_error(chunk)
                if message:
                    raise EngineError(f"{description} failed: {message}")
        except aiodocker.DockerError as e:
            raise EngineError(f"{description} failed: {e.message}") from e
        return chunks

    async def pull(self, ref: str) -> None:
        """Pull an image by tag or digest reference."""
        logger.info(f"Pulling image: {ref}")
        chunks = await self._drain(self._docker.images.pull(ref, stream=True), f"pull {ref}")
        logger.info(f"Image pulled: {ref} ({chunks} progress messages)")

    async def tag(self, ref: str, repo: str, tag: str) -> None:
        """Tag a local image as repo:tag."""
        try:
            await self._docker.images.tag(ref, repo, tag=tag)
        except aiodocker.DockerError as e:
            raise EngineError(f"tag {ref} as {repo}:{tag} failed: {e.message}") from e
        logger.info(f"Image tagged: {ref} -> {repo}:{tag}")

    async def push(self, repo: str, tag: str, auth: dict) -> None:
        """
        Push repo:tag using the given registry credentials.

        Raises:
            EngineError: the push failed, or repo has no registry/namespace part
                (aiodocker refuses auth for a bare repository name)
        """
        name = f"{repo}:{tag}"
        logger.info(f"Pushing image: {name}")
        try:
            stream = self._docker.images.push(repo, auth=auth, tag=tag, stream=True)
        except ValueError as e:
            raise EngineError(f"push {name} failed: {e}") from e
        chunks = await self._drain(stream, f"push {name}")
        logger.info(f"Image pushed: {name} ({chunks} progress messages)")

    async def remove(self, ref: str) -> list:
        """Force-remove a local image."""
        try:
            removed = await self._docker.images.delete(ref, force=True)
        except aiodocker.DockerError as e:
            raise EngineError(f"remove {ref} failed: {e.message}") from e
        logger.info(f"Image removed: {ref}")
        return removed

    async def prune(self, filters: dict) -> dict:
        """
        Remove unused images matching the filters.

        Args:
            filters: Docker prune filters, e.g. {"until": ["1m"]}

        Returns:
            The daemon's summary: {"ImagesDeleted": [...] | None, "SpaceReclaimed": int}
        """
        try:
            summary = await self._docker.images.prune(filters=filters)
        except aiodocker.DockerError as e:
            raise EngineError(f"prune failed: {e.message}") from e
        logger.info(f"Images pruned: {summary}")
        return summary
