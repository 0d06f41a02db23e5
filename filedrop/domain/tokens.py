from __future__ import annotations

import os
import secrets
import string

__all__ = [
    "TOKEN_ALPHABET",
    "MIN_TOKEN_LENGTH",
    "DEFAULT_TOKEN_LENGTH",
    "get_token_length_from_env",
    "generate_access_token",
    "tokens_match",
]

# Lowercase base-36 keeps links easy to read aloud and retype.
TOKEN_ALPHABET = string.ascii_lowercase + string.digits
MIN_TOKEN_LENGTH = 5
DEFAULT_TOKEN_LENGTH = 8


def get_token_length_from_env() -> int:
    """Read FILEDROP_TOKEN_LENGTH from environment, defaulting to 8.

    The token only makes the link hard to guess while it is being shared;
    it is not an access-control mechanism. 8 characters give about 41 bits.
    """
    raw = os.getenv("FILEDROP_TOKEN_LENGTH")
    if raw is None:
        return DEFAULT_TOKEN_LENGTH
    try:
        val = int(raw, 10)
    except ValueError as e:
        raise ValueError("FILEDROP_TOKEN_LENGTH must be an integer") from e
    if val < MIN_TOKEN_LENGTH:
        raise ValueError(f"FILEDROP_TOKEN_LENGTH must be at least {MIN_TOKEN_LENGTH}")
    return val


def generate_access_token(length: int | None = None) -> str:
    """Return a random alphanumeric path segment drawn from `secrets`."""
    n = get_token_length_from_env() if length is None else length
    if n < MIN_TOKEN_LENGTH:
        raise ValueError(f"token length must be at least {MIN_TOKEN_LENGTH}")
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(n))


def tokens_match(candidate: str, token: str) -> bool:
    """Constant-time comparison of a request path segment with the token."""
    return secrets.compare_digest(candidate.encode("utf-8"), token.encode("utf-8"))
