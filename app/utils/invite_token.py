"""Invite token generation and hashing."""
import hashlib
import secrets
from typing import NamedTuple

from app.core.errors import ConfigError

MIN_TOKEN_BYTES = 16


class InviteTokenPair(NamedTuple):
    token: str
    token_hash: str


def hash_invite_token(raw_token: str) -> str:
    """
    Hash a raw invite token for storage and lookup.

    Surrounding whitespace is stripped; the result is the SHA-256 hex digest
    of the remaining UTF-8 bytes.
    """
    normalized = raw_token.strip()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def generate_invite_token(byte_length: int = 32) -> InviteTokenPair:
    """
    Generate a URL-safe invite token and its hash.

    Args:
        byte_length: Number of random bytes (at least 16)

    Returns:
        InviteTokenPair with the raw token (disclosed once) and its hash

    Raises:
        ConfigError: If byte_length is below 16
    """
    if not isinstance(byte_length, int) or byte_length < MIN_TOKEN_BYTES:
        raise ConfigError(f"Invite token must be at least {MIN_TOKEN_BYTES} random bytes")

    token = secrets.token_urlsafe(byte_length)
    return InviteTokenPair(token=token, token_hash=hash_invite_token(token))
