"""Unit tests for DockerEngine over a mocked aiodocker client."""

from unittest.mock import AsyncMock, MagicMock, patch

import aiodocker
import pytest

from imagerelay.engine import DockerEngine, EngineError


def _stream(*chunks, error=None):
    async def gen():
        for chunk in chunks:
            yield chunk
        if error is not None:
            raise error

    return gen()


def _make_docker() -> MagicMock:
    docker = MagicMock()
    docker.close = AsyncMock()
    docker.images.tag = AsyncMock(return_value=True)
    docker.images.delete = AsyncMock(return_value=[{"Untagged": "alpine:3.18"}])
    docker.images.prune = AsyncMock(return_value={"ImagesDeleted": None, "SpaceReclaimed": 0})
    return docker


class TestPull:
    @pytest.mark.asyncio
    async def test_stream_drained(self):
        docker = _make_docker()
        docker.images.pull.return_value = _stream({"status": "Pulling fs layer"}, {"status": "Downloaded"})

        await DockerEngine(docker=docker).pull("alpine:3.18")

        docker.images.pull.assert_called_once_with("alpine:3.18", stream=True)

    @pytest.mark.asyncio
    async def test_error_chunk_raises(self):
        docker = _make_docker()
        docker.images.pull.return_value = _stream(
            {"status": "Pulling"},
            {"errorDetail": {"message": "manifest unknown"}, "error": "manifest unknown"},
        )

        with pytest.raises(EngineError, match="manifest unknown"):
            await DockerEngine(docker=docker).pull("alpine:nope")

    @pytest.mark.asyncio
    async def test_docker_error_raises(self):
        docker = _make_docker()
        docker.images.pull.return_value = _stream(error=aiodocker.DockerError(404, {"message": "not found"}))

        with pytest.raises(EngineError, match="not found"):
            await DockerEngine(docker=docker).pull("alpine:nope")


class TestPush:
    @pytest.mark.asyncio
    async def test_push_with_auth(self):
        docker = _make_docker()
        docker.images.push.return_value = _stream({"status": "Pushed"})
        auth = {"username": "u", "password": "p"}

        await DockerEngine(docker=docker).push("relay/mirror", "alpine_3.18", auth)

        docker.images.push.assert_called_once_with("relay/mirror", auth=auth, tag="alpine_3.18", stream=True)

    @pytest.mark.asyncio
    async def test_push_error_chunk_raises(self):
        docker = _make_docker()
        docker.images.push.return_value = _stream({"error": "denied: requested access to the resource is denied"})

        with pytest.raises(EngineError, match="denied"):
            await DockerEngine(docker=docker).push("relay/mirror", "alpine_3.18", {})

    @pytest.mark.asyncio
    async def test_bare_repository_rejected_by_client(self):
        docker = _make_docker()
        docker.images.push.side_effect = ValueError(
            "Image should have registry host when auth information is provided"
        )

        with pytest.raises(EngineError, match="registry host"):
            await DockerEngine(docker=docker).push("mirror", "alpine_3.18", {"username": "u", "password": "p"})


class TestConnect:
    @pytest.mark.parametrize("error", [AssertionError(), ValueError("bad docker host")])
    def test_unusable_daemon_address(self, error):
        with patch("imagerelay.engine.aiodocker.Docker", side_effect=error):
            with pytest.raises(EngineError, match="cannot connect"):
                DockerEngine("unix:///nonexistent/docker.sock")

    def test_url_passed_to_client(self):
        with patch("imagerelay.engine.aiodocker.Docker") as docker_cls:
            DockerEngine("tcp://127.0.0.1:2375")

        docker_cls.assert_called_once_with(url="tcp://127.0.0.1:2375")


class TestTagRemovePrune:
    @pytest.mark.asyncio
    async def test_tag(self):
        docker = _make_docker()

        await DockerEngine(docker=docker).tag("alpine:3.18", "relay/mirror", "alpine_3.18")

        docker.images.tag.assert_awaited_once_with("alpine:3.18", "relay/mirror", tag="alpine_3.18")

    @pytest.mark.asyncio
    async def test_tag_failure(self):
        docker = _make_docker()
        docker.images.tag.side_effect = aiodocker.DockerError(404, {"message": "No such image"})

        with pytest.raises(EngineError, match="No such image"):
            await DockerEngine(docker=docker).tag("alpine:3.18", "relay/mirror", "alpine_3.18")

    @pytest.mark.asyncio
    async def test_remove_forces(self):
        docker = _make_docker()

        await DockerEngine(docker=docker).remove("alpine:3.18")

        docker.images.delete.assert_awaited_once_with("alpine:3.18", force=True)

    @pytest.mark.asyncio
    async def test_remove_failure(self):
        docker = _make_docker()
        docker.images.delete.side_effect = aiodocker.DockerError(409, {"message": "conflict"})

        with pytest.raises(EngineError, match="conflict"):
            await DockerEngine(docker=docker).remove("alpine:3.18")

    @pytest.mark.asyncio
    async def test_prune_failure(self):
        docker = _make_docker()
        docker.images.prune.side_effect = aiodocker.DockerError(500, {"message": "prune already running"})

        with pytest.raises(EngineError, match="prune already running"):
            await DockerEngine(docker=docker).prune({"until": ["1m"]})

    @pytest.mark.asyncio
    async def test_prune_sends_filters(self):
        docker = _make_docker()

        summary = await DockerEngine(docker=docker).prune({"until": ["1m"]})

        assert summary == {"ImagesDeleted": None, "SpaceReclaimed": 0}
        docker.images.prune.assert_awaited_once_with(filters={"until": ["1m"]})

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self):
        docker = _make_docker()

        async with DockerEngine(docker=docker):
            pass

        docker.close.assert_awaited_once()
