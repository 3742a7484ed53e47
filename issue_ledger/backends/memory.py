"""Process-local backend for development and tests."""

import logging
from typing import Optional

from issue_ledger.backends.base import KeyValueBackend
from issue_ledger.errors import BackendUnavailable, WriteRejected

logger = logging.getLogger(__name__)


class _LedgerState:
    """Storage and liveness shared by every client of one in-memory ledger."""

    def __init__(self, data: Optional[dict[str, bytes]] = None):
        self.data: dict[str, bytes] = data if data is not None else {}
        self.available = True


class InMemoryBackend(KeyValueBackend):
    def __init__(
        self,
        data: Optional[dict[str, bytes]] = None,
        read_only: bool = False,
        state: Optional[_LedgerState] = None,
    ):
        self._state = state or _LedgerState(data)
        self.read_only = read_only
        # Keys this client wrote, in order
        self.writes: list[str] = []

    @property
    def data(self) -> dict[str, bytes]:
        return self._state.data

    @property
    def available(self) -> bool:
        return self._state.available

    @available.setter
    def available(self, value: bool) -> None:
        self._state.available = value

    def read_only_view(self) -> "InMemoryBackend":
        """Query client over the same ledger, as handed to readers."""
        return InMemoryBackend(read_only=True, state=self._state)

    async def get_data(self, key: str) -> bytes:
        if not self.available:
            raise BackendUnavailable("In-memory backend is switched off")
        return self.data.get(key, b"")

    async def set_data(self, key: str, value: bytes) -> None:
        if self.read_only:
            raise WriteRejected("Read-only client cannot write")
        if not self.available:
            raise WriteRejected("In-memory backend is switched off")

        self.data[key] = bytes(value)
        self.writes.append(key)
        logger.debug(f"Stored {len(value)} bytes under {key}")

    async def is_available(self) -> bool:
        return self.available
