"""
Password hashing and session token helpers.

Passwords are hashed with bcrypt; verification always goes through
``bcrypt.checkpw`` so the comparison is constant time. bcrypt only reads the
first 72 bytes of its input, so longer passwords are refused at signup and
never match at login.
"""
from __future__ import annotations

import secrets
import string

import bcrypt

DEFAULT_ROUNDS = 10
PASSWORD_MAX_BYTES = 72
SESSION_TOKEN_BYTES = 32
SESSION_TOKEN_LENGTH = SESSION_TOKEN_BYTES * 2  # hex encoded


def password_fits(plaintext: str) -> bool:
    """True when ``plaintext`` is within bcrypt's input limit."""
    return len(plaintext.encode("utf-8")) <= PASSWORD_MAX_BYTES


# PUBLIC_INTERFACE
def hash_password(plaintext: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """
    Return a salted bcrypt hash of ``plaintext`` as a str.

    Raises:
        ValueError: if the password is longer than PASSWORD_MAX_BYTES.
    """
    if not password_fits(plaintext):
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    hashed = bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


# PUBLIC_INTERFACE
def verify_password(plaintext: str, hashed: str) -> bool:
    """
    Check ``plaintext`` against a stored bcrypt hash.

    Returns False for a malformed hash or an over-long password instead of
    raising.
    """
    if not plaintext or not hashed or not password_fits(plaintext):
        return False
    try:
        return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# PUBLIC_INTERFACE
def generate_session_token() -> str:
    """Return an opaque 256-bit session token, hex encoded."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def looks_like_session_token(value: object) -> bool:
    """Cheap shape check so malformed cookies never reach storage."""
    if not isinstance(value, str) or len(value) != SESSION_TOKEN_LENGTH:
        return False
    return all(c in string.hexdigits for c in value)
