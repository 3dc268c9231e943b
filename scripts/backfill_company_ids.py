#!/usr/bin/env python3
"""Assign a company to business records that have none.

Usage:
    python -m scripts.backfill_company_ids --company-id 1
    python -m scripts.backfill_company_ids --company-id 1 --collections leads,orders --dry-run
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from app.core.database import SessionLocal  # noqa: E402
from app.core.errors import MigrationPartialFailure, NotFound  # noqa: E402
from app.core.logging_setup import configure_logging  # noqa: E402
from app.services.backfill import backfill_company_ids  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Backfill company_id on legacy business records.")
    parser.add_argument("--company-id", type=int, required=True, help="Company that receives the records")
    parser.add_argument(
        "--collections",
        default="",
        help="Comma separated collections (default: every business collection)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Only count the records that would change")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    collections = [name.strip() for name in args.collections.split(",") if name.strip()] or None

    configure_logging()
    db = SessionLocal()
    try:
        report = backfill_company_ids(db, args.company_id, collections, dry_run=args.dry_run)
    except NotFound as exc:
        print(exc.detail, file=sys.stderr)
        return 1
    except MigrationPartialFailure as exc:
        print(json.dumps(exc.report.as_dict(), indent=2))
        print(str(exc), file=sys.stderr)
        return 2
    finally:
        db.close()

    print(json.dumps(report.as_dict(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
