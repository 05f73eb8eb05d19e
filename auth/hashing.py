"""
auth/hashing.py -- Password fingerprints.

A fingerprint is HMAC-SHA256(SECRET_KEY, password + username) rendered as
64 hex characters. The username is the only per-record salt, so the secret
is the sole source of unpredictability: anyone holding SECRET_KEY and the
credential store can brute-force fingerprints offline, and rotating the
secret invalidates every stored fingerprint.

Deterministic on purpose -- the credential store compares fingerprints by
equality, so the same (secret, username, password) must always produce the
same string.

Layer rule: stdlib only.
"""

from __future__ import annotations

import hashlib
import hmac


def hash_password(secret: str, username: str, password: str) -> str:
    """Return the hex fingerprint of password for username under secret."""
    return hmac.new(
        secret.encode("utf-8"),
        (password + username).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def fingerprints_match(stored: str, candidate: str) -> bool:
    """Compare two fingerprints without short-circuiting on the first mismatch."""
    return hmac.compare_digest(stored.encode("utf-8"), candidate.encode("utf-8"))
