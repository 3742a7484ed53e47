import asyncio
import itertools

import pytest

from issue_ledger.backends.memory import InMemoryBackend
from issue_ledger.codec import SimulatedFheCodec
from issue_ledger.errors import WriteRejected
from issue_ledger.service import IssueService


# ============================================================================
# BACKENDS
# ============================================================================


class BarrierBackend(InMemoryBackend):
    """Holds the first ``parties`` reads of one key until all have arrived.

    Every held reader keeps the value it saw before waiting, so racing
    read-modify-write sequences all start from the same snapshot.
    """

    def __init__(self, barrier_key: str, parties: int = 2):
        super().__init__()
        self.barrier_key = barrier_key
        self.parties = parties
        self._arrived = 0
        self._released = None

    async def get_data(self, key: str) -> bytes:
        value = await super().get_data(key)
        if key != self.barrier_key or self._arrived >= self.parties:
            return value

        if self._released is None:
            self._released = asyncio.Event()
        self._arrived += 1
        if self._arrived == self.parties:
            self._released.set()
        else:
            await self._released.wait()
        return value


class RejectingBackend(InMemoryBackend):
    """Rejects writes to the listed keys."""

    def __init__(self, rejected_keys):
        super().__init__()
        self.rejected_keys = set(rejected_keys)

    async def set_data(self, key: str, value: bytes) -> None:
        if key in self.rejected_keys:
            raise WriteRejected(f"Write to {key} rejected")
        await super().set_data(key, value)


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run


@pytest.fixture
def clock():
    """Strictly increasing fake epoch seconds."""
    ticks = itertools.count(1_700_000_000)
    return lambda: float(next(ticks))


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def service(backend, clock):
    return IssueService(
        reader=backend.read_only_view(),
        writer=backend,
        codec=SimulatedFheCodec(),
        clock=clock,
    )
