"""Password hashing (scrypt) and password strength policy."""

import hashlib
import hmac
import re
import secrets

# scrypt cost parameters; hashes are "<hex key>.<hex salt>" with the hex salt text as KDF salt.
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_KEY_LEN = 64
SALT_BYTES = 16

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 12
PASSWORD_MAX_LEN = 128

# Patterns that make a password predictable regardless of character classes.
_PREDICTABLE_PATTERNS = (
    re.compile(r"(.)\1{2,}"),
    re.compile(r"123456"),
    re.compile(r"abcdef"),
    re.compile(r"qwerty", re.IGNORECASE),
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"admin", re.IGNORECASE),
)

_STRENGTH_LABELS = ((8, "Strong"), (6, "Good"), (4, "Fair"), (2, "Weak"))


def _derive_key(password: str, salt_hex: str) -> bytes:
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt_hex.encode("ascii"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=SCRYPT_KEY_LEN,
    )


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    salt_hex = secrets.token_hex(SALT_BYTES)
    return f"{_derive_key(plain_password, salt_hex).hex()}.{salt_hex}"


def verify_password(plain_password: str, hashed: str | None) -> bool:
    """
    Verify a plain password against a stored "<key>.<salt>" hash.

    Fails closed: a missing or malformed stored hash never verifies.
    """
    if not hashed:
        return False
    parts = hashed.split(".")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return False
    stored_key, salt_hex = parts
    try:
        candidate = _derive_key(plain_password, salt_hex).hex()
    except (ValueError, UnicodeEncodeError):
        return False
    return hmac.compare_digest(
        candidate.encode("ascii"), stored_key.encode("utf-8")
    )


def validate_password_strength(password: str) -> list[str]:
    """Return the list of policy violations for a new password (empty when acceptable)."""
    errors: list[str] = []
    if len(password) < PASSWORD_MIN_LEN:
        errors.append(f"Password must be at least {PASSWORD_MIN_LEN} characters long")
    if len(password) > PASSWORD_MAX_LEN:
        errors.append(f"Password must not exceed {PASSWORD_MAX_LEN} characters")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    if not re.search(r"[^a-zA-Z0-9]", password):
        errors.append("Password must contain at least one special character")
    if any(p.search(password) for p in _PREDICTABLE_PATTERNS):
        errors.append("Password contains common patterns and is too predictable")
    return errors


def password_strength(password: str) -> tuple[int, str]:
    """Score a password 0-8 and return (score, label) for display."""
    score = 0
    if len(password) >= 12:
        score += 1
    if len(password) >= 16:
        score += 1
    for pattern in (r"[a-z]", r"[A-Z]", r"[0-9]", r"[^a-zA-Z0-9]"):
        if re.search(pattern, password):
            score += 1
    if len(re.findall(r"[^a-zA-Z0-9]", password)) > 1:
        score += 1
    if re.search(r"[a-z]", password) and re.search(r"[A-Z]", password) and re.search(r"[0-9]", password):
        score += 1
    for threshold, label in _STRENGTH_LABELS:
        if score >= threshold:
            return score, label
    return score, "Very Weak"
