from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import DEFAULT_MAX_USERS
from app.core.database import get_db
from app.core.errors import Unauthenticated
from app.core.permissions import SUPERUSER_ROLE, default_permissions_for_role
from app.deps import get_tenant_context
from app.models.company import Company
from app.models.user import User
from app.services.admin_audit import log_admin_action
from app.services.auth import create_access_token, hash_password, verify_password
from app.services.tenant_context import TenantContext, normalize_role

router = APIRouter(prefix="/api", tags=["auth"])

logger = logging.getLogger(__name__)


class RegisterPayload(BaseModel):
    username: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    email: EmailStr
    company_name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    department: Optional[str] = None


class LoginPayload(BaseModel):
    username: str
    password: str


def _email_taken(db: Session, email: str) -> bool:
    lowered = email.strip().lower()
    if db.query(User).filter(func.lower(User.email) == lowered).first():
        return True
    return db.query(Company).filter(func.lower(Company.email) == lowered).first() is not None


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterPayload, db: Session = Depends(get_db)):
    """Sign up a new company; both company and admin stay inactive until a superuser approves."""
    username = payload.username.strip()
    if db.query(User).filter(User.username == username).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")
    if _email_taken(db, payload.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    company = Company(
        name=payload.company_name.strip(),
        email=payload.email.strip().lower(),
        phone=payload.phone or "",
        status="pending",
        max_users=DEFAULT_MAX_USERS,
    )
    db.add(company)
    db.flush()

    user = User(
        username=username,
        name=payload.name.strip(),
        email=payload.email.strip().lower(),
        phone=payload.phone or "",
        department=payload.department or "",
        password_hash=hash_password(payload.password),
        role="admin",
        company_id=company.id,
        permissions=default_permissions_for_role("admin"),
        is_active=False,
    )
    db.add(user)
    db.flush()

    log_admin_action(
        db,
        company_id=company.id,
        user_id=user.id,
        action="register_company",
        entity_type="company",
        entity_id=company.id,
        meta={"username": user.username, "company_name": company.name},
    )
    db.commit()
    logger.info("Registration pending approval: user_id=%s company_id=%s", user.id, company.id)

    return {
        "message": "Registration successful. Await superuser approval.",
        "user_id": user.id,
        "company_id": company.id,
    }


def _authenticate(db: Session, username: str, password: str) -> User:
    user = db.query(User).filter(User.username == username.strip()).first()
    if not user or not verify_password(password, user.password_hash):
        raise Unauthenticated("Invalid credentials", reason="invalid_credentials")

    if not user.is_active:
        raise Unauthenticated("Account is not active", reason="user_inactive")

    if normalize_role(user.role) == SUPERUSER_ROLE:
        return user

    company = db.query(Company).filter(Company.id == user.company_id).first() if user.company_id else None
    if company is None or company.status != "active":
        raise Unauthenticated("Company is not active", reason="company_inactive")
    return user


def _issue_token(user: User) -> dict:
    token = create_access_token(
        user.id,
        extra={"company_id": user.company_id, "role": normalize_role(user.role)},
    )
    return {"access_token": token, "token_type": "bearer"}


@router.post("/auth/login")
def login(payload: LoginPayload, db: Session = Depends(get_db)):
    return _issue_token(_authenticate(db, payload.username, payload.password))


@router.post("/auth/token")
def token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """Used by the Swagger UI Authorize button (form-data username/password)."""
    return _issue_token(_authenticate(db, form_data.username, form_data.password))


@router.get("/auth/me")
def me(context: TenantContext = Depends(get_tenant_context), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == context.user_id).first()
    return {
        "id": context.user_id,
        "username": context.username,
        "name": user.name if user else None,
        "email": user.email if user else None,
        "role": context.role,
        "company_id": context.company_id,
        "permissions": sorted(context.permissions),
    }
