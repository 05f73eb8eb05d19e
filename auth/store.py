"""
auth/store.py -- Credential store: username -> password fingerprint.

Pattern: Repository over kv.store.KVStore. The key is the username, the
value is the hex fingerprint from auth.hashing. Plaintext passwords are
never written.

verify() collapses every negative outcome -- unknown user, empty field,
wrong password -- into False so callers cannot tell them apart. A storage
fault is NOT collapsed here: StorageError propagates and the route layer
decides what it means (POST /auth turns it into the same generic failure).

Usage:
    store = CredentialStore(KVStore.open(Path("db/user.db")), secret=settings.secret_key)
    store.set_password("alice", "s3cret")
    store.verify("alice", "s3cret")     # True
    store.delete_user("alice")
    store.close()

Layer rule: no imports from api/, web/, or audit/.
"""

from __future__ import annotations

import logging

from auth.hashing import fingerprints_match, hash_password
from kv.store import KeyNotFoundError, KVStore

logger = logging.getLogger("authlog.auth")


class CredentialStore:
    def __init__(self, kv: KVStore, secret: str) -> None:
        self._kv = kv
        self._secret = secret

    def fingerprint(self, username: str, password: str) -> str:
        return hash_password(self._secret, username, password)

    def verify(self, username: str | None, password: str | None) -> bool:
        """Return True iff username exists and password produces its stored fingerprint.

        Raises StorageError if the store itself fails.
        """
        if not username or not password:
            return False
        candidate = self.fingerprint(username, password)
        try:
            stored = self._kv.get(username)
        except KeyNotFoundError:
            return False
        if not isinstance(stored, str):
            logger.warning("Credential record for %r is not a fingerprint string", username)
            return False
        return fingerprints_match(stored, candidate)

    def set_password(self, username: str, password: str) -> None:
        """Create or overwrite the credential for username."""
        self._kv.put(username, self.fingerprint(username, password))

    def delete_user(self, username: str) -> None:
        """Remove the credential for username. Missing users are not an error."""
        self._kv.delete(username)

    def list_usernames(self) -> list[str]:
        return self._kv.keys()

    def ping(self) -> bool:
        return self._kv.ping()

    def close(self) -> None:
        self._kv.close()
