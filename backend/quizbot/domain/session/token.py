"""Answer tokens: the opaque payload behind every answer button.

A token binds one rendered option to its question, its index in the option
list, whether it is the correct one, and when the question was presented.
It is the only source of truth the engine has when a button is pressed, so
decoding is strict: anything that is not byte-for-byte a token produced with
the same secret raises :class:`MalformedToken`.

Wire layout (big-endian)::

    version:u8  kind:u8  question_id:i64  option_index:u32
    is_correct:u8  presented_at_ms:i64  mac:8 bytes

``mac`` is the first 8 bytes of HMAC-SHA256 over the preceding 23 bytes.
The 31 bytes travel as URL-safe base64 (44 characters).
"""
from __future__ import annotations
import base64
import binascii
import hashlib
import hmac
import struct
from dataclasses import dataclass

from quizbot.domain.common.errors import MalformedToken

TOKEN_VERSION = 1
KIND_QUESTION_ANSWER = 1

_BODY = struct.Struct(">BBqIBq")
_MAC_SIZE = 8
_TOKEN_SIZE = _BODY.size + _MAC_SIZE

_U32_MAX = 2**32 - 1
_I64_MIN, _I64_MAX = -(2**63), 2**63 - 1


@dataclass(frozen=True)
class AnswerToken:
    question_id: int
    option_index: int
    is_correct: bool
    presented_at_ms: int


class AnswerTokenCodec:
    def __init__(self, secret: str | bytes):
        self._key = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)

    def _mac(self, body: bytes) -> bytes:
        return hmac.new(self._key, body, hashlib.sha256).digest()[:_MAC_SIZE]

    def encode(self, question_id: int, option_index: int, is_correct: bool, presented_at_ms: int) -> str:
        if not _I64_MIN <= question_id <= _I64_MAX:
            raise ValueError(f"question_id out of 64-bit range: {question_id}")
        if not 0 <= option_index <= _U32_MAX:
            raise ValueError(f"option_index out of range: {option_index}")
        if not _I64_MIN <= presented_at_ms <= _I64_MAX:
            raise ValueError(f"presented_at_ms out of 64-bit range: {presented_at_ms}")

        body = _BODY.pack(
            TOKEN_VERSION,
            KIND_QUESTION_ANSWER,
            question_id,
            option_index,
            1 if is_correct else 0,
            presented_at_ms,
        )
        return base64.urlsafe_b64encode(body + self._mac(body)).decode("ascii")

    def encode_token(self, token: AnswerToken) -> str:
        return self.encode(token.question_id, token.option_index, token.is_correct, token.presented_at_ms)

    def decode(self, data: str) -> AnswerToken:
        try:
            raw = base64.b64decode(data.encode("ascii"), altchars=b"-_", validate=True)
        except (binascii.Error, UnicodeEncodeError, AttributeError) as e:
            raise MalformedToken(f"Malformed answer token: {e}") from e

        if len(raw) != _TOKEN_SIZE:
            raise MalformedToken(f"Malformed answer token: expected {_TOKEN_SIZE} bytes, got {len(raw)}")
        # only the exact encoding we emit is accepted (no '+/' alphabet, no stray padding bits)
        if base64.urlsafe_b64encode(raw).decode("ascii") != data:
            raise MalformedToken("Malformed answer token: non-canonical encoding")

        body, mac = raw[: _BODY.size], raw[_BODY.size:]
        if not hmac.compare_digest(mac, self._mac(body)):
            raise MalformedToken("Malformed answer token: signature mismatch")

        version, kind, question_id, option_index, correct_byte, presented_at_ms = _BODY.unpack(body)
        if version != TOKEN_VERSION:
            raise MalformedToken(f"Malformed answer token: unsupported version {version}")
        if kind != KIND_QUESTION_ANSWER:
            raise MalformedToken(f"Malformed answer token: unknown kind {kind}")
        if correct_byte not in (0, 1):
            raise MalformedToken("Malformed answer token: bad correctness flag")

        return AnswerToken(
            question_id=question_id,
            option_index=option_index,
            is_correct=correct_byte == 1,
            presented_at_ms=presented_at_ms,
        )
