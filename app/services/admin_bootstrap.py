from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from app.core.permissions import SUPERUSER_ROLE
from app.models.user import User
from app.services.auth import hash_password

logger = logging.getLogger(__name__)
BOOTSTRAP_PREFIX = "[SUPERUSER_BOOTSTRAP]"

REQUIRED_TABLES = ("companies", "users", "admin_audit_log")


def ensure_core_tables(engine: Engine) -> None:
    inspector = inspect(engine)
    missing = [table for table in REQUIRED_TABLES if not inspector.has_table(table)]
    if missing:
        logger.error("%s tables missing: %s", BOOTSTRAP_PREFIX, ",".join(missing))
        raise RuntimeError(f"Tables missing, run migrations first: {', '.join(missing)}")


def _password_looks_hashed(password: str) -> bool:
    return password.startswith(("$2a$", "$2b$", "$2y$"))


def upsert_superuser(
    db: Session,
    *,
    username: str,
    password: str | None,
    email: str | None = None,
    name: str = "Superuser",
    reset_password: bool = False,
) -> tuple[User, bool]:
    """Create the platform superuser, or re-activate the existing one.

    Superusers never belong to a company. An existing user keeps its password
    unless ``reset_password`` is set.
    """
    existing = db.query(User).filter(User.username == username).first()
    if existing:
        existing.role = SUPERUSER_ROLE
        existing.company_id = None
        existing.is_active = True
        if reset_password and password:
            existing.password_hash = _hash(password)
        db.commit()
        db.refresh(existing)
        return existing, False

    if not password:
        raise ValueError("A password is required to create the superuser")

    user = User(
        username=username,
        name=name,
        email=email or None,
        password_hash=_hash(password),
        role=SUPERUSER_ROLE,
        company_id=None,
        permissions=[],
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user, True


def _hash(password: str) -> str:
    if _password_looks_hashed(password):
        logger.info("%s password already hashed; storing as-is", BOOTSTRAP_PREFIX)
        return password
    return hash_password(password)
