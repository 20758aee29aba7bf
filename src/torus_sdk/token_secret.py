"""Machine token secret generation.

Secrets are 18 random bytes encoded as unpadded URL-safe base64, which yields
exactly 24 characters on the wire.
"""

from __future__ import annotations

import base64
import re
import secrets
from dataclasses import dataclass, field
from typing import Callable

from torus_sdk.errors import EntropyUnavailableError, ValidationError

TOKEN_SECRET_SIZE = 18

EntropySource = Callable[[int], bytes]

ENCODED_PATTERN = re.compile(r"^[A-Za-z0-9_-]{24}\Z")


def _encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


@dataclass(frozen=True)
class TokenSecret:
    raw: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if len(self.raw) != TOKEN_SECRET_SIZE:
            raise ValidationError(f"token secret must be {TOKEN_SECRET_SIZE} bytes")

    @property
    def encoded(self) -> str:
        return _encode(self.raw)

    @classmethod
    def decode(cls, value: str) -> TokenSecret:
        if not isinstance(value, str) or not ENCODED_PATTERN.match(value):
            raise ValidationError("token secret must be 24 characters of unpadded URL-safe base64")
        return cls(base64.urlsafe_b64decode(value.encode("ascii")))

    def __str__(self) -> str:
        return self.encoded


def generate_token_secret(entropy: EntropySource | None = None) -> TokenSecret:
    read = entropy or secrets.token_bytes
    try:
        raw = read(TOKEN_SECRET_SIZE)
    except (OSError, NotImplementedError) as exc:
        raise EntropyUnavailableError(f"secure random source failed: {exc}") from exc
    if not isinstance(raw, (bytes, bytearray)) or len(raw) != TOKEN_SECRET_SIZE:
        raise EntropyUnavailableError(
            f"secure random source returned a short read; expected {TOKEN_SECRET_SIZE} bytes"
        )
    return TokenSecret(bytes(raw))


__all__ = ["TOKEN_SECRET_SIZE", "TokenSecret", "generate_token_secret"]
