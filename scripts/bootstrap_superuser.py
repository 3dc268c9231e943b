#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from app.core.database import SessionLocal, engine  # noqa: E402
from app.services.admin_bootstrap import ensure_core_tables, upsert_superuser  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or re-activate the platform superuser.")
    parser.add_argument("--username", required=True, help="Superuser login")
    parser.add_argument("--password", help="Superuser password (required on creation)")
    parser.add_argument("--email", help="Superuser email")
    parser.add_argument("--name", default="Superuser", help="Display name")
    parser.add_argument("--reset-password", action="store_true", help="Overwrite the existing password")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        ensure_core_tables(engine)
    except RuntimeError as exc:
        print(str(exc))
        return 1

    db = SessionLocal()
    try:
        user, created = upsert_superuser(
            db,
            username=args.username,
            password=args.password,
            email=args.email,
            name=args.name,
            reset_password=args.reset_password,
        )
    except ValueError as exc:
        print(str(exc))
        return 1
    finally:
        db.close()

    action = "created" if created else "updated"
    print(f"Superuser {action}: id={user.id} username={user.username}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
