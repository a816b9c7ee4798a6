"""Password hashing and session token generation/derivation for authentication."""

import hashlib
import hmac
import secrets

import bcrypt

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for username, email and password validation.
USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 255
EMAIL_MAX_LEN = 320
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# Bytes of randomness in a client-held session token.
SESSION_TOKEN_BYTES = 32

# Verified against when the login identifier is unknown, so both failure paths cost one bcrypt check.
_DUMMY_HASH = bcrypt.hashpw(b"langualegacy-dummy-password", bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def burn_password_check(plain_password: str) -> None:
    """Spend one bcrypt verification without a real account behind it."""
    verify_password(plain_password, _DUMMY_HASH)


def new_session_token() -> str:
    """Return a fresh opaque session token for the client cookie."""
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def session_id_for(token: str, secret: str) -> str:
    """
    Derive the stored session id from a client token.

    Only the HMAC is persisted, so rows in the session table cannot be replayed as cookies.
    """
    return hmac.new(secret.encode("utf-8"), token.encode("utf-8"), hashlib.sha256).hexdigest()
