"""Answer tokens: round trip and tamper rejection."""
import base64

import pytest

from quizbot.domain.common.errors import MalformedToken
from quizbot.domain.session.token import AnswerToken, AnswerTokenCodec

SECRET = "test-secret"


@pytest.fixture
def codec():
    return AnswerTokenCodec(SECRET)


def test_round_trip(codec):
    data = codec.encode(-1234567890123456789, 3, True, 1_700_000_000_123)
    assert codec.decode(data) == AnswerToken(
        question_id=-1234567890123456789,
        option_index=3,
        is_correct=True,
        presented_at_ms=1_700_000_000_123,
    )


def test_token_fits_callback_limit(codec):
    data = codec.encode(2**63 - 1, 2**32 - 1, False, 2**63 - 1)
    assert len(data) == 44
    assert len(data.encode("utf-8")) <= 64
    assert set(data) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_=")


def test_encode_token_matches_encode(codec):
    token = AnswerToken(42, 1, False, 1000)
    assert codec.encode_token(token) == codec.encode(42, 1, False, 1000)


@pytest.mark.parametrize("kwargs", [
    {"question_id": 2**63},
    {"question_id": -(2**63) - 1},
    {"option_index": -1},
    {"option_index": 2**32},
    {"presented_at_ms": 2**63},
])
def test_encode_rejects_out_of_range(codec, kwargs):
    args = {"question_id": 1, "option_index": 0, "is_correct": True, "presented_at_ms": 0}
    args.update(kwargs)
    with pytest.raises(ValueError):
        codec.encode(**args)


def test_every_bit_flip_is_rejected(codec):
    raw = bytearray(base64.urlsafe_b64decode(codec.encode(7, 1, False, 123456)))
    for byte in range(len(raw)):
        for bit in range(8):
            tampered = bytearray(raw)
            tampered[byte] ^= 1 << bit
            with pytest.raises(MalformedToken):
                codec.decode(base64.urlsafe_b64encode(bytes(tampered)).decode("ascii"))


def test_every_character_substitution_is_rejected(codec):
    data = codec.encode(7, 1, False, 123456)
    for i, c in enumerate(data):
        tampered = data[:i] + ("B" if c == "A" else "A") + data[i + 1:]
        with pytest.raises(MalformedToken):
            codec.decode(tampered)


def test_correctness_flag_cannot_be_forged(codec):
    raw = bytearray(base64.urlsafe_b64decode(codec.encode(7, 1, False, 123456)))
    raw[14] = 1  # is_correct byte
    with pytest.raises(MalformedToken):
        codec.decode(base64.urlsafe_b64encode(bytes(raw)).decode("ascii"))


@pytest.mark.parametrize("data", ["", "not base64!", "0:true", "AAAA", "ж" * 44])
def test_garbage_is_rejected(codec, data):
    with pytest.raises(MalformedToken):
        codec.decode(data)


def test_truncated_and_extended_tokens_are_rejected(codec):
    data = codec.encode(7, 1, True, 123456)
    raw = base64.urlsafe_b64decode(data)
    for candidate in (data[:-4], base64.urlsafe_b64encode(raw[:-1]).decode(), base64.urlsafe_b64encode(raw + b"\0").decode()):
        with pytest.raises(MalformedToken):
            codec.decode(candidate)


def test_standard_alphabet_is_rejected(codec):
    # find a token whose encoding uses the url-safe characters
    for qid in range(1000):
        data = codec.encode(qid, 0, True, 0)
        if "-" in data or "_" in data:
            break
    else:
        pytest.fail("no token with url-safe characters found")
    with pytest.raises(MalformedToken):
        codec.decode(data.replace("-", "+").replace("_", "/"))


def test_foreign_secret_is_rejected(codec):
    foreign = AnswerTokenCodec("another-secret").encode(7, 1, True, 123456)
    with pytest.raises(MalformedToken):
        codec.decode(foreign)
