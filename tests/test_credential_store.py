"""Unit tests for auth/store.py -- CredentialStore.

Covers:
- verify() true only for the exact stored username/password
- verify() false for unknown user, wrong password, empty/None fields
- set_password() creates and overwrites; delete_user() removes and is idempotent
- Stored value is the fingerprint, never the plaintext
- StorageError from the store propagates out of verify()
"""

from unittest.mock import MagicMock

import pytest

from auth.hashing import hash_password
from auth.store import CredentialStore
from kv.store import KeyNotFoundError, StorageError
from tests.conftest import TEST_SECRET, make_kv


def test_set_password_then_verify(credentials):
    credentials.set_password("a", "b")
    assert credentials.verify("a", "b") is True


def test_verify_wrong_password(credentials):
    credentials.set_password("a", "b")
    assert credentials.verify("a", "c") is False


def test_verify_unknown_user(credentials):
    assert credentials.verify("ghost", "b") is False


@pytest.mark.parametrize("user,password", [("", "b"), ("a", ""), (None, "b"), ("a", None)])
def test_verify_empty_fields(credentials, user, password):
    credentials.set_password("a", "b")
    assert credentials.verify(user, password) is False


def test_set_password_overwrites(credentials):
    credentials.set_password("a", "old")
    credentials.set_password("a", "new")
    assert credentials.verify("a", "new") is True
    assert credentials.verify("a", "old") is False


def test_delete_then_verify_fails(credentials):
    credentials.set_password("a", "b")
    credentials.delete_user("a")
    assert credentials.verify("a", "b") is False


def test_delete_missing_user_is_not_an_error(credentials):
    credentials.delete_user("never-existed")


def test_list_usernames(credentials):
    credentials.set_password("bob", "x")
    credentials.set_password("alice", "y")
    assert sorted(credentials.list_usernames()) == ["alice", "bob"]


def test_plaintext_never_stored():
    kv = make_kv("test_user_plain")
    store = CredentialStore(kv, secret=TEST_SECRET)
    try:
        store.set_password("a", "hunter2")
        stored = kv.get("a")
        assert stored != "hunter2"
        assert stored == hash_password(TEST_SECRET, "a", "hunter2")
    finally:
        store.close()


def test_fingerprint_depends_on_secret():
    kv = make_kv("test_user_secret")
    CredentialStore(kv, secret=TEST_SECRET).set_password("a", "b")
    other = CredentialStore(kv, secret="x" * 40)
    try:
        assert other.verify("a", "b") is False
    finally:
        other.close()


def test_storage_error_propagates_from_verify():
    kv = MagicMock()
    kv.get.side_effect = StorageError("disk gone")
    store = CredentialStore(kv, secret=TEST_SECRET)
    with pytest.raises(StorageError):
        store.verify("a", "b")


def test_lookup_miss_is_plain_false():
    kv = MagicMock()
    kv.get.side_effect = KeyNotFoundError("a")
    assert CredentialStore(kv, secret=TEST_SECRET).verify("a", "b") is False
