"""
tests/test_cli.py -- Tests for the management CLI in main.py.

The CLI reads Settings from the environment, so each test points DATA_DIR
at a temporary directory and clears the get_settings() cache around it.
"""

from __future__ import annotations

import pytest

from audit.store import AuditLogStore
from auth.store import CredentialStore
from core.config import get_settings
from kv.store import KVStore
from main import main

SECRET = "cli-secret-0123456789abcdef0123456789"


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    monkeypatch.setenv("SECRET_KEY", SECRET)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "db"))
    get_settings.cache_clear()
    yield tmp_path / "db"
    get_settings.cache_clear()


def test_no_command_prints_help(cli_env, capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()


def test_passwd_then_users(cli_env, capsys):
    assert main(["passwd", "alice", "--password", "pw"]) == 0
    assert main(["users"]) == 0
    assert "alice" in capsys.readouterr().out

    store = CredentialStore(KVStore.open(cli_env / "user.db"), secret=SECRET)
    try:
        assert store.verify("alice", "pw") is True
    finally:
        store.close()


def test_passwd_rejects_empty_password(cli_env):
    assert main(["passwd", "alice", "--password", ""]) == 1


def test_passwd_prompts(cli_env, monkeypatch):
    answers = iter(["pw", "pw"])
    monkeypatch.setattr("getpass.getpass", lambda prompt="": next(answers))
    assert main(["passwd", "bob"]) == 0


def test_passwd_prompt_mismatch(cli_env, monkeypatch):
    answers = iter(["pw", "other"])
    monkeypatch.setattr("getpass.getpass", lambda prompt="": next(answers))
    assert main(["passwd", "bob"]) == 1


def test_deluser(cli_env, capsys):
    main(["passwd", "alice", "--password", "pw"])
    assert main(["deluser", "alice"]) == 0
    assert main(["deluser", "alice"]) == 0
    capsys.readouterr()
    main(["users"])
    assert "alice" not in capsys.readouterr().out


def test_log_prints_page(cli_env, capsys):
    log = AuditLogStore(KVStore.open(cli_env / "log.db"))
    try:
        for _ in range(3):
            log.record_attempt("alice", {"success": False, "error": "invalid_credentials"})
    finally:
        log.close()

    assert main(["log", "--user", "alice", "--limit", "2"]) == 0
    out = capsys.readouterr().out
    assert out.count("alice") == 2
    assert "More entries available" in out


def test_log_empty(cli_env, capsys):
    assert main(["log"]) == 0
    assert "No entries" in capsys.readouterr().out


def test_log_bad_bound(cli_env):
    assert main(["log", "--since", "yesterday"]) == 1


def test_log_rejects_zero_limit(cli_env, capsys):
    assert main(["log", "--limit", "0"]) == 1
    assert "--limit" in capsys.readouterr().err
