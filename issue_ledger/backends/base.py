from abc import ABC, abstractmethod


class KeyValueBackend(ABC):
    """Key/value surface exposed by the ledger contract.

    Every call is individually atomic. There is no listing primitive,
    no multi-key transaction and no compare-and-swap, so callers must
    treat every read-modify-write as racing with other writers.
    """

    @abstractmethod
    async def get_data(self, key: str) -> bytes:
        """Return the bytes stored under key, or b"" when the key is absent.

        Raises:
            BackendUnavailable: If the backend cannot be reached
        """
        pass

    @abstractmethod
    async def set_data(self, key: str, value: bytes) -> None:
        """Overwrite the bytes stored under key.

        Raises:
            WriteRejected: If the client may not write or the write failed
        """
        pass

    @abstractmethod
    async def is_available(self) -> bool:
        """Liveness probe. Never raises."""
        pass
