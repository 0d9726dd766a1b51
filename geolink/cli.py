"""
GeoLink CLI — entry point for server and maintenance operations.

Usage:
    geolink serve                 # Start the API server
    geolink migrate               # Apply the access schema
    geolink migrate --check       # Check that required tables exist
    geolink reconcile             # Collapse duplicate API keys
    geolink repair-approvals      # Reactivate keys of approved users
    geolink issue-token 1 admin   # Sign a bearer token
    geolink version               # Show version
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

REQUIRED_TABLES = [
    "users",
    "api_key_requests",
    "api_keys",
    "wallet_providers",
    "data_consumers",
    "audit_log",
]

MIGRATION_SQL = Path(__file__).parent / "migrations" / "001_access_tables.sql"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="geolink",
        description="GeoLink Access — onboarding requests and API credential issuance.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Port")

    migrate_parser = subparsers.add_parser("migrate", help="Apply the access schema")
    migrate_parser.add_argument(
        "--dry-run", action="store_true", help="Print SQL without executing"
    )
    migrate_parser.add_argument(
        "--check", action="store_true", help="Check if required tables exist"
    )

    subparsers.add_parser("reconcile", help="Remove duplicate API keys (keeps newest)")
    subparsers.add_parser(
        "repair-approvals", help="Reactivate keys of users with approved requests"
    )

    token_parser = subparsers.add_parser("issue-token", help="Sign a bearer token")
    token_parser.add_argument("user_id", type=int, help="User id to embed")
    token_parser.add_argument("role", help="Role to embed (e.g. admin)")
    token_parser.add_argument("--ttl-hours", type=int, default=None, help="Lifetime in hours")

    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.version or args.command == "version":
        from geolink import __version__

        print(f"geolink {__version__}")
        return 0

    if args.command == "serve":
        return _cmd_serve(args)
    elif args.command == "migrate":
        return _cmd_migrate(args)
    elif args.command == "reconcile":
        return _cmd_reconcile()
    elif args.command == "repair-approvals":
        return _cmd_repair()
    elif args.command == "issue-token":
        return _cmd_issue_token(args)

    parser.print_help()
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn is required. Install with: pip install geolink-access")
        return 1

    from geolink.config import get_config

    cfg = get_config()
    host = args.host or cfg.api_host
    port = args.port or cfg.api_port
    print(f"Starting GeoLink Access API on {host}:{port}...")
    uvicorn.run("geolink.api.app:create_app", factory=True, host=host, port=port)
    return 0


def _cmd_migrate(args: argparse.Namespace) -> int:
    if not MIGRATION_SQL.exists():
        print(f"Error: Migration SQL not found at {MIGRATION_SQL}")
        return 1

    if args.check:
        return _cmd_migrate_check()

    sql = MIGRATION_SQL.read_text()
    if args.dry_run:
        print("-- Dry run: the following SQL would be executed --")
        print(sql)
        return 0

    from geolink.db.connection import Database

    db = Database.from_config()
    try:
        print(f"Connecting to {db.cfg.host}:{db.cfg.port}/{db.cfg.name}...")
        with db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql)
        print("Migration completed successfully.")
    except Exception as e:
        print(f"Error: Migration failed: {e}")
        print("Check GEOLINK_DB_* environment variables and ensure PostgreSQL is running.")
        return 1
    finally:
        db.close()

    return _cmd_migrate_check()


def _cmd_migrate_check() -> int:
    """Check if required tables exist in the database."""
    from geolink.db.connection import Database

    db = Database.from_config()
    try:
        with db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT table_name FROM information_schema.tables WHERE table_schema = 'public'"
                )
                existing = {row[0] for row in cur.fetchall()}
    except Exception as e:
        print(f"Error: Cannot check tables: {e}")
        return 1
    finally:
        db.close()

    missing = [t for t in REQUIRED_TABLES if t not in existing]
    if missing:
        print(f"Missing tables ({len(missing)}/{len(REQUIRED_TABLES)}):")
        for t in missing:
            print(f"  - {t}")
        print("\nRun 'geolink migrate' to create them.")
        return 1
    print(f"All {len(REQUIRED_TABLES)} required tables present.")
    return 0


def _run_pass(name: str, fn) -> int:
    from geolink.audit.logger import AuditLog
    from geolink.db.connection import Database

    db = Database.from_config()
    try:
        outcome = fn(db, audit=AuditLog(db))
    finally:
        db.close()

    if not outcome.ok:
        print(f"Error: {name} failed: {outcome.message} ({outcome.detail})")
        return 1
    print(outcome.message)
    for key, value in outcome.data.items():
        print(f"  - {key}: {value}")
    return 0


def _cmd_reconcile() -> int:
    from geolink.access.reconcile import reconcile

    return _run_pass("reconcile", reconcile)


def _cmd_repair() -> int:
    from geolink.access.reconcile import repair_approvals

    return _run_pass("repair-approvals", repair_approvals)


def _cmd_issue_token(args: argparse.Namespace) -> int:
    from geolink.auth.tokens import issue_token
    from geolink.config import get_config

    auth = get_config().auth
    if not auth.jwt_secret:
        print("Error: GEOLINK_JWT_SECRET is not set.")
        return 1
    token = issue_token(
        args.user_id,
        args.role,
        auth.jwt_secret,
        algorithm=auth.jwt_algorithm,
        ttl_hours=args.ttl_hours or auth.token_ttl_hours,
    )
    print(token)
    return 0
