# app/core/security.py
import re
import secrets

import bcrypt

# Public handle: letters/digits, single separators (-._) between them
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9]+([-._]?[a-zA-Z0-9]+)*$")
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+(?:\.[a-zA-Z0-9._%+-]+)*@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)

PASSWORD_MIN_LENGTH = 9
# bcrypt only looks at the first 72 bytes
PASSWORD_MAX_BYTES = 72

OAUTH_STATE_BYTES = 16


# ----- Input validation -----


def is_valid_username(name: str) -> bool:
    if not USERNAME_MIN_LENGTH <= len(name) <= USERNAME_MAX_LENGTH:
        return False
    return USERNAME_PATTERN.match(name) is not None


def is_valid_email(email: str) -> bool:
    if ".." in email:
        return False
    return EMAIL_PATTERN.match(email) is not None


def is_valid_password(password: str) -> bool:
    return (
        len(password) >= PASSWORD_MIN_LENGTH
        and len(password.encode("utf-8")) <= PASSWORD_MAX_BYTES
    )


# ----- Passwords -----


def hash_password(password: str) -> str:
    """
    Hash a plaintext password with bcrypt.

    Raises:
        ValueError: if the password is too short or too long to hash.
    """
    if not is_valid_password(password):
        raise ValueError("password must be longer than 8 characters and at most 72 bytes")
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password_hash(password: str, hashed: str | None) -> bool:
    """False for missing or malformed hashes instead of raising."""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# ----- OAuth state -----


def generate_state() -> str:
    """Random, URL-safe value binding an OAuth redirect to its callback."""
    return secrets.token_urlsafe(OAUTH_STATE_BYTES)
