from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import NotFound
from app.deps import require_superuser
from app.models.company import Company
from app.models.user import User
from app.services.admin_audit import log_admin_action
from app.services.tenant_context import TenantContext

router = APIRouter(prefix="/api/admin", tags=["admin-companies"])

logger = logging.getLogger(__name__)


class CompanyRead(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    status: str
    max_users: int
    active_users: int


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    max_users: Optional[int] = Field(None, ge=1)


def _active_user_count(db: Session, company_id: int) -> int:
    return (
        db.query(func.count(User.id))
        .filter(User.company_id == company_id, User.is_active.is_(True))
        .scalar()
        or 0
    )


def _serialize(db: Session, company: Company) -> dict:
    return {
        "id": company.id,
        "name": company.name,
        "email": company.email,
        "phone": company.phone,
        "status": company.status,
        "max_users": company.max_users,
        "active_users": _active_user_count(db, company.id),
    }


def _get_company(db: Session, company_id: int) -> Company:
    company = db.query(Company).filter(Company.id == company_id).first()
    if company is None:
        raise NotFound("Company not found", reason="company_missing")
    return company


@router.get("/companies", response_model=List[CompanyRead])
def list_companies(
    _context: TenantContext = Depends(require_superuser),
    db: Session = Depends(get_db),
):
    companies = db.query(Company).order_by(Company.id.asc()).all()
    return [_serialize(db, company) for company in companies]


@router.get("/pending-approvals")
def pending_approvals(
    _context: TenantContext = Depends(require_superuser),
    db: Session = Depends(get_db),
):
    companies = db.query(Company).filter(Company.status == "pending").order_by(Company.id.asc()).all()
    users = (
        db.query(User)
        .filter(User.is_active.is_(False), User.company_id.isnot(None))
        .order_by(User.id.asc())
        .all()
    )
    return {
        "companies": [_serialize(db, company) for company in companies],
        "users": [
            {
                "id": user.id,
                "username": user.username,
                "name": user.name,
                "email": user.email,
                "role": user.role,
                "company_id": user.company_id,
            }
            for user in users
        ],
    }


@router.post("/companies/{company_id}/approve", response_model=CompanyRead)
def approve_company(
    company_id: int,
    context: TenantContext = Depends(require_superuser),
    db: Session = Depends(get_db),
):
    """Activate the company.

    A first approval also activates the users registered with it, up to the
    seat limit. Re-approving a suspended company leaves user flags alone.
    """
    company = _get_company(db, company_id)
    first_approval = company.status == "pending"
    company.status = "active"

    seats = company.max_users - _active_user_count(db, company.id)
    activated = []
    if first_approval and seats > 0:
        pending = (
            db.query(User)
            .filter(User.company_id == company.id, User.is_active.is_(False))
            .order_by(User.id.asc())
            .limit(seats)
            .all()
        )
        for user in pending:
            user.is_active = True
            activated.append(user.id)

    log_admin_action(
        db,
        company_id=company.id,
        user_id=context.user_id,
        action="approve_company",
        entity_type="company",
        entity_id=company.id,
        meta={"activated_user_ids": activated},
    )
    db.commit()
    logger.info("Company approved: company_id=%s activated_users=%s", company.id, len(activated))
    return _serialize(db, company)


@router.post("/companies/{company_id}/suspend", response_model=CompanyRead)
def suspend_company(
    company_id: int,
    context: TenantContext = Depends(require_superuser),
    db: Session = Depends(get_db),
):
    company = _get_company(db, company_id)
    company.status = "suspended"
    log_admin_action(
        db,
        company_id=company.id,
        user_id=context.user_id,
        action="suspend_company",
        entity_type="company",
        entity_id=company.id,
    )
    db.commit()
    logger.info("Company suspended: company_id=%s", company.id)
    return _serialize(db, company)


@router.put("/companies/{company_id}", response_model=CompanyRead)
def update_company(
    company_id: int,
    payload: CompanyUpdate,
    context: TenantContext = Depends(require_superuser),
    db: Session = Depends(get_db),
):
    company = _get_company(db, company_id)

    if payload.max_users is not None:
        active = _active_user_count(db, company.id)
        if payload.max_users < active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"max_users cannot be lower than the {active} active users",
            )
        company.max_users = payload.max_users
    if payload.name is not None:
        company.name = payload.name.strip()

    log_admin_action(
        db,
        company_id=company.id,
        user_id=context.user_id,
        action="update_company",
        entity_type="company",
        entity_id=company.id,
        meta=payload.model_dump(exclude_none=True),
    )
    db.commit()
    return _serialize(db, company)
