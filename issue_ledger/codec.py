import base64
import binascii
import json
import logging
import os
from typing import Any

from issue_ledger.errors import DecodeError

logger = logging.getLogger(__name__)


class Codec:
    """Abstract base for the transform applied to private issue fields."""

    def encode(self, payload: dict[str, Any]) -> str:
        """
        Turn a plaintext payload into an opaque ciphertext string.

        Args:
            payload: Private fields supplied by the reporter

        Returns:
            Non-empty ciphertext string
        """
        raise NotImplementedError

    def decode(self, ciphertext: str) -> dict[str, Any]:
        """
        Recover the payload produced by ``encode``.

        Raises:
            DecodeError: If the ciphertext was not produced by this codec
        """
        raise NotImplementedError


class SimulatedFheCodec(Codec):
    """
    Reversible labelling transform standing in for homomorphic encryption.

    Output is ``FHE-`` followed by base64 of the JSON payload. It offers no
    confidentiality; plug a real scheme in through ``get_codec`` when that
    guarantee is required.
    """

    prefix = "FHE-"

    def encode(self, payload: dict[str, Any]) -> str:
        raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        return self.prefix + base64.b64encode(raw.encode("utf-8")).decode("ascii")

    def decode(self, ciphertext: str) -> dict[str, Any]:
        if not isinstance(ciphertext, str) or not ciphertext.startswith(self.prefix):
            raise DecodeError("Ciphertext is missing the FHE- label")

        try:
            raw = base64.b64decode(ciphertext[len(self.prefix):], validate=True)
            payload = json.loads(raw.decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError(f"Malformed ciphertext: {str(e)}") from e

        if not isinstance(payload, dict):
            raise DecodeError("Ciphertext does not hold an object payload")
        return payload


def get_codec() -> Codec:
    """
    Factory function to get the configured codec.

    Reads LEDGER_CODEC from the environment ("fhe-sim" is the only codec
    shipped). Unknown names fall back to the simulated codec.
    """
    name = os.getenv("LEDGER_CODEC", "fhe-sim").lower().strip()

    if name != "fhe-sim":
        logger.warning(f"Unknown LEDGER_CODEC: {name}, using fhe-sim")
    return SimulatedFheCodec()
