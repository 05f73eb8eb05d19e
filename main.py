#!/usr/bin/env python3
"""
authlog -- Credential verification service with an audited admin console.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py users
  python main.py passwd alice
  python main.py passwd alice --password s3cret
  python main.py deluser alice
  python main.py log
  python main.py log --user alice --since 2026-10-01T00:00:00Z --limit 20

The management commands open the same store files the server uses
(DATA_DIR, default ./db), so they work with or without a running server.

Environment variables:
  SECRET_KEY      Required unless DEBUG=true. Keys both session cookies and
                  password fingerprints -- the CLI must use the server's value
                  or passwords it sets will never verify.
  ADMIN_USER      Admin console username (default: admin).
  ADMIN_PASSWORD  Admin console password. Empty disables console login.
  DATA_DIR        Directory holding user.db and log.db (default: db).
  LOG_PAGE_SIZE   Entries per audit-log page (default: 50).
"""

from __future__ import annotations

import argparse
import getpass
import sys
from typing import Optional

from audit.store import GLOBAL_CHANNEL, AuditLogStore, annotate_for_display
from auth.store import CredentialStore
from core.config import Settings, get_settings
from core.time_utils import BEGIN, NOW, InvalidTimeBound
from kv.store import KVStore, StorageError


def _open_credentials(settings: Settings) -> CredentialStore:
    return CredentialStore(KVStore.open(settings.user_db_path), secret=settings.secret_key)


def _open_audit_log(settings: Settings) -> AuditLogStore:
    return AuditLogStore(KVStore.open(settings.log_db_path))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def _cmd_users(args: argparse.Namespace, settings: Settings) -> int:
    store = _open_credentials(settings)
    try:
        for name in store.list_usernames():
            print(name)
    finally:
        store.close()
    return 0


def _cmd_passwd(args: argparse.Namespace, settings: Settings) -> int:
    password: Optional[str] = args.password
    if password is None:
        password = getpass.getpass(f"New password for {args.user}: ")
        if password != getpass.getpass("Repeat password: "):
            print("  [!] Passwords do not match.", file=sys.stderr)
            return 1
    if not password:
        print("  [!] Password must not be empty.", file=sys.stderr)
        return 1
    store = _open_credentials(settings)
    try:
        store.set_password(args.user, password)
    finally:
        store.close()
    print(f"  Password set for {args.user}.")
    return 0


def _cmd_deluser(args: argparse.Namespace, settings: Settings) -> int:
    store = _open_credentials(settings)
    try:
        store.delete_user(args.user)
    finally:
        store.close()
    print(f"  {args.user} removed.")
    return 0


def _cmd_log(args: argparse.Namespace, settings: Settings) -> int:
    limit = args.limit if args.limit is not None else settings.log_page_size
    if limit < 1:
        print("  [!] --limit must be at least 1.", file=sys.stderr)
        return 1
    store = _open_audit_log(settings)
    try:
        page = store.query_range(args.user, args.since, args.till, limit)
    except InvalidTimeBound as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        return 1
    finally:
        store.close()

    for entry in annotate_for_display(page.entries):
        outcome = "success" if entry.result.get("success") else f"failed ({entry.result.get('error', '-')})"
        print(f"{entry.formatted_time}  {entry.user or '(none)'}  {outcome}")
    if not page.entries:
        print("  No entries in this range.")
    if page.has_more:
        print(f"\n  More entries available. Continue with: --till {page.next_till}")
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="authlog",
        description="Credential verification service with an audited admin console.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, default=None, help="Listen port (default: PORT setting)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    serve.set_defaults(func=_cmd_serve)

    users = sub.add_parser("users", help="List usernames")
    users.set_defaults(func=_cmd_users)

    passwd = sub.add_parser("passwd", help="Create a user or replace its password")
    passwd.add_argument("user", help="Username")
    passwd.add_argument(
        "--password",
        default=None,
        help="Password (prompted when omitted; passing it here leaves it in shell history)",
    )
    passwd.set_defaults(func=_cmd_passwd)

    deluser = sub.add_parser("deluser", help="Remove a user (no error if absent)")
    deluser.add_argument("user", help="Username")
    deluser.set_defaults(func=_cmd_deluser)

    log = sub.add_parser("log", help="Print a page of the audit log, newest first")
    log.add_argument(
        "--user",
        default=GLOBAL_CHANNEL,
        help=f"Username, or {GLOBAL_CHANNEL!r} for every attempt (default)",
    )
    log.add_argument("--since", default=BEGIN, help="Lower bound: ISO8601 timestamp or 'begin' (default)")
    log.add_argument("--till", default=NOW, help="Upper bound: ISO8601 timestamp or 'now' (default)")
    log.add_argument("--limit", type=int, default=None, help="Entries per page (default: LOG_PAGE_SIZE)")
    log.set_defaults(func=_cmd_log)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "command", None):
        parser.print_help()
        return 0

    settings = get_settings()
    try:
        return args.func(args, settings)
    except StorageError as exc:
        print(f"  [!] Storage error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
