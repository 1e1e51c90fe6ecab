"""Global test fixtures."""

import os

# Credentials must exist before imagerelay.config is imported
os.environ.setdefault("USERNAME", "relay-user")
os.environ.setdefault("PASSWORD", "relay-secret")

import pytest

from imagerelay.engine import EngineError


class FakeEngine:
    """Records image operations in call order. Operations named in ``fail`` raise EngineError."""

    def __init__(self, fail=(), prune_summary=None):
        self.calls = []
        self.fail = list(fail)
        self.prune_summary = prune_summary or {"ImagesDeleted": None, "SpaceReclaimed": 0}
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        self.closed = True

    def _record(self, op, *args):
        self.calls.append((op, *args))
        if any(f == op or f == (op, *args) for f in self.fail):
            raise EngineError(f"{op} failed")

    async def pull(self, ref):
        self._record("pull", ref)

    async def tag(self, ref, repo, tag):
        self._record("tag", ref, repo, tag)

    async def push(self, repo, tag, auth):
        self._record("push", repo, tag, auth)

    async def remove(self, ref):
        self._record("remove", ref)
        return [{"Untagged": ref}]

    async def prune(self, filters):
        self._record("prune", filters)
        return self.prune_summary


@pytest.fixture
def engine():
    return FakeEngine()
