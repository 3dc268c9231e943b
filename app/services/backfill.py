"""Assign a tenant to business records created before multi-tenancy.

Records qualify when ``company_id`` is null or points at a company that does
not exist. Rows that already belong to a known company are never touched, so
running the backfill again with the same target modifies nothing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import inspect, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import MigrationPartialFailure, NotFound
from app.models import BUSINESS_MODELS
from app.models.company import Company
from app.services.admin_audit import log_admin_action

logger = logging.getLogger(__name__)
BACKFILL_PREFIX = "[BACKFILL]"


@dataclass
class BackfillReport:
    target_company_id: int
    dry_run: bool = False
    modified: dict[str, int] = field(default_factory=dict)
    skipped: dict[str, str] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def total_modified(self) -> int:
        return sum(self.modified.values())

    def as_dict(self) -> dict:
        return {
            "target_company_id": self.target_company_id,
            "dry_run": self.dry_run,
            "modified": dict(self.modified),
            "total_modified": self.total_modified,
            "skipped": dict(self.skipped),
            "failures": dict(self.failures),
        }


def orphaned_criterion(model):
    known_company_ids = select(Company.id)
    return or_(model.company_id.is_(None), model.company_id.not_in(known_company_ids))


def _table_exists(db: Session, model) -> bool:
    return inspect(db.get_bind()).has_table(model.__tablename__)


def _backfill_collection(db: Session, model, target_company_id: int, dry_run: bool) -> int:
    query = db.query(model).filter(orphaned_criterion(model))
    if dry_run:
        return query.count()
    return query.update({model.company_id: target_company_id}, synchronize_session=False)


def backfill_company_ids(
    db: Session,
    target_company_id: int,
    collections: Optional[Iterable[str]] = None,
    *,
    dry_run: bool = False,
    actor_id: Optional[int] = None,
) -> BackfillReport:
    """Backfill every named collection, one commit per collection.

    Unknown or missing collections are skipped with a warning. A database error
    rolls back only the collection being processed; once every collection has
    been attempted, ``MigrationPartialFailure`` is raised if anything failed.
    """
    company = db.query(Company).filter(Company.id == int(target_company_id)).first()
    if company is None:
        raise NotFound(f"Company {target_company_id} not found", reason="company_missing")

    names = list(collections) if collections is not None else list(BUSINESS_MODELS)
    report = BackfillReport(target_company_id=int(target_company_id), dry_run=dry_run)

    logger.info(
        "%s start target_company_id=%s collections=%s dry_run=%s",
        BACKFILL_PREFIX,
        target_company_id,
        ",".join(names),
        dry_run,
    )

    for name in names:
        model = BUSINESS_MODELS.get(name)
        if model is None:
            logger.warning("%s unknown collection %s, skipping", BACKFILL_PREFIX, name)
            report.skipped[name] = "unknown collection"
            continue

        try:
            if not _table_exists(db, model):
                logger.warning("%s collection %s does not exist, skipping", BACKFILL_PREFIX, name)
                report.skipped[name] = "table missing"
                continue

            count = _backfill_collection(db, model, report.target_company_id, dry_run)
            if dry_run:
                db.rollback()
            else:
                db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("%s collection %s failed", BACKFILL_PREFIX, name)
            report.failures[name] = str(exc.__class__.__name__)
            continue

        report.modified[name] = int(count or 0)
        logger.info(
            "%s collection=%s %s=%s",
            BACKFILL_PREFIX,
            name,
            "would_modify" if dry_run else "modified",
            report.modified[name],
        )

    if not dry_run:
        log_admin_action(
            db,
            company_id=report.target_company_id,
            user_id=actor_id,
            action="backfill_company_ids",
            entity_type="company",
            entity_id=report.target_company_id,
            meta=report.as_dict(),
        )
        db.commit()

    logger.info(
        "%s done target_company_id=%s total_modified=%s failures=%s",
        BACKFILL_PREFIX,
        target_company_id,
        report.total_modified,
        len(report.failures),
    )

    if report.failures:
        raise MigrationPartialFailure(report)
    return report
