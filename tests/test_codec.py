"""Tests for the payload codec."""

import base64

import pytest

from issue_ledger.codec import SimulatedFheCodec, get_codec
from issue_ledger.errors import DecodeError


@pytest.fixture
def codec():
    return SimulatedFheCodec()


@pytest.mark.parametrize(
    "payload",
    [
        {"description": "broken bench", "location": ""},
        {"description": "Schaukel kaputt, Spielplatz Süd 🛝", "location": "north gate"},
        {"description": "x", "nested": {"tags": ["a", "b"], "count": 2, "flag": None}},
    ],
)
def test_decode_reverses_encode(codec, payload):
    assert codec.decode(codec.encode(payload)) == payload


def test_ciphertext_is_labelled_and_nonempty(codec):
    ciphertext = codec.encode({"description": "leaking fountain"})

    assert ciphertext.startswith("FHE-")
    assert len(ciphertext) > len("FHE-")
    assert "leaking fountain" not in ciphertext


@pytest.mark.parametrize(
    "ciphertext",
    [
        "",
        "plain text",
        "FHE-!!!not base64!!!",
        "FHE-" + base64.b64encode(b"\xff\xfe").decode("ascii"),
        "FHE-" + base64.b64encode(b"{not json").decode("ascii"),
        "FHE-" + base64.b64encode(b"[1, 2, 3]").decode("ascii"),
    ],
)
def test_decode_rejects_malformed_ciphertext(codec, ciphertext):
    with pytest.raises(DecodeError):
        codec.decode(ciphertext)


def test_get_codec_falls_back_for_unknown_name(monkeypatch):
    monkeypatch.setenv("LEDGER_CODEC", "paillier")

    assert isinstance(get_codec(), SimulatedFheCodec)
