"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
Passwords are truncated to 72 bytes (bcrypt's limit).
"""

import secrets
import string

import bcrypt

BCRYPT_ROUNDS = 10

_TEMP_ALPHABET = string.ascii_lowercase + string.digits


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (salted, cost-factored, one-way)."""
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


def generate_temporary_password() -> str:
    """Random 'temp' + 6 lowercase alphanumerics, for admin resets."""
    return "temp" + "".join(secrets.choice(_TEMP_ALPHABET) for _ in range(6))
