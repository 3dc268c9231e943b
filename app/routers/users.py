from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import Forbidden, NotFound
from app.core.permissions import ROLES, SUPERUSER_ROLE, default_permissions_for_role, validate_permissions
from app.deps import require_permission
from app.models.company import Company
from app.models.user import User
from app.services.admin_audit import log_admin_action
from app.services.auth import hash_password
from app.services.authorization_service import AccessPolicy
from app.services.tenant_context import TenantContext, normalize_role

router = APIRouter(prefix="/api/users", tags=["users"])

# user listings never include unowned rows: those are superusers
user_policy = AccessPolicy(include_legacy=False)

DELEGABLE_ROLES = {"user", "sales", "accounts"}


class UserRead(BaseModel):
    id: int
    username: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    role: str
    company_id: Optional[int] = None
    permissions: List[str]
    is_active: bool


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    role: str = "user"
    permissions: Optional[List[str]] = None
    company_id: Optional[int] = None
    is_active: bool = True


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    role: Optional[str] = None
    permissions: Optional[List[str]] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6)
    company_id: Optional[int] = None


def _serialize(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "department": user.department,
        "role": normalize_role(user.role),
        "company_id": user.company_id,
        "permissions": list(user.permissions or []),
        "is_active": bool(user.is_active),
    }


def _check_role(context: TenantContext, role: str) -> str:
    role = normalize_role(role)
    if role not in ROLES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")
    if not context.is_superuser and role not in DELEGABLE_ROLES:
        raise Forbidden(f"Role '{role}' can only be assigned by a superuser", reason="role_not_delegable")
    return role


def _check_grants(context: TenantContext, permissions: List[str]) -> List[str]:
    granted = validate_permissions(permissions)
    if context.is_superuser:
        return granted
    missing = sorted(set(granted) - context.permissions)
    if missing:
        raise Forbidden(
            f"Cannot grant permissions you do not hold: {', '.join(missing)}",
            reason="grant_exceeds_own",
        )
    return granted


def _ensure_seat_available(db: Session, company_id: Optional[int]) -> None:
    if company_id is None:
        return
    company = db.query(Company).filter(Company.id == company_id).first()
    if company is None:
        raise NotFound("Company not found", reason="company_missing")
    active = (
        db.query(func.count(User.id))
        .filter(User.company_id == company_id, User.is_active.is_(True))
        .scalar()
    )
    if active >= company.max_users:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Company has reached its limit of {company.max_users} active users",
        )


def _check_role_company(db: Session, user: User) -> None:
    """Superusers belong to no company; every other role belongs to exactly one."""
    is_superuser = normalize_role(user.role) == SUPERUSER_ROLE
    if is_superuser and user.company_id is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Superusers cannot belong to a company")
    if not is_superuser and user.company_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="company_id is required")
    if user.company_id is not None and db.query(Company).filter(Company.id == user.company_id).first() is None:
        raise NotFound("Company not found", reason="company_missing")


def _load_user(db: Session, context: TenantContext, user_id: int) -> User:
    target = db.query(User).filter(User.id == user_id).first()
    return user_policy.assert_ownership(context, target, resource="users")


def _check_manageable(context: TenantContext, target: User) -> None:
    # tenant managers only edit accounts in roles they could have created
    if context.is_superuser or target.id == context.user_id:
        return
    role = normalize_role(target.role)
    if role not in DELEGABLE_ROLES:
        raise Forbidden(f"Users with role '{role}' can only be managed by a superuser", reason="role_not_delegable")


@router.get("", response_model=List[UserRead])
def list_users(
    context: TenantContext = Depends(require_permission("users", "view")),
    db: Session = Depends(get_db),
):
    users = user_policy.scope_query(context, db.query(User), User).order_by(User.id.asc()).all()
    return [_serialize(entry) for entry in users]


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    context: TenantContext = Depends(require_permission("users", "create")),
    db: Session = Depends(get_db),
):
    role = _check_role(context, payload.role)
    if payload.permissions is None:
        permissions = default_permissions_for_role(role)
        if not context.is_superuser:
            permissions = [perm for perm in permissions if perm in context.permissions]
    else:
        permissions = _check_grants(context, payload.permissions)

    values = user_policy.stamp_ownership(context, {"company_id": payload.company_id})
    company_id = None if role == SUPERUSER_ROLE else values.get("company_id")
    if company_id is None and role != SUPERUSER_ROLE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="company_id is required")
    if company_id is not None and db.query(Company).filter(Company.id == company_id).first() is None:
        raise NotFound("Company not found", reason="company_missing")

    username = payload.username.strip()
    if db.query(User).filter(User.username == username).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")
    email = payload.email.strip().lower() if payload.email else None
    if email and db.query(User).filter(func.lower(User.email) == email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    if payload.is_active:
        _ensure_seat_available(db, company_id)

    user = User(
        username=username,
        name=payload.name.strip(),
        email=email,
        phone=payload.phone,
        department=payload.department,
        password_hash=hash_password(payload.password),
        role=role,
        company_id=company_id,
        permissions=permissions,
        is_active=payload.is_active,
    )
    db.add(user)
    db.flush()

    log_admin_action(
        db,
        company_id=user.company_id,
        user_id=context.user_id,
        action="create_user",
        entity_type="user",
        entity_id=user.id,
        meta={"username": user.username, "role": user.role},
    )
    db.commit()
    return _serialize(user)


@router.put("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    payload: UserUpdate,
    context: TenantContext = Depends(require_permission("users", "update")),
    db: Session = Depends(get_db),
):
    target = _load_user(db, context, user_id)
    _check_manageable(context, target)

    if payload.role is not None:
        target.role = _check_role(context, payload.role)
    if "company_id" in payload.model_fields_set and payload.company_id != target.company_id:
        if not context.is_superuser:
            raise Forbidden("Only a superuser can move users between companies", reason="company_reassign")
        if target.is_active:
            _ensure_seat_available(db, payload.company_id)
        target.company_id = payload.company_id
    _check_role_company(db, target)
    if payload.permissions is not None:
        target.permissions = _check_grants(context, payload.permissions)
    if payload.name is not None:
        target.name = payload.name.strip()
    if payload.email is not None:
        email = payload.email.strip().lower()
        clash = db.query(User).filter(func.lower(User.email) == email, User.id != target.id).first()
        if clash:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
        target.email = email
    if payload.phone is not None:
        target.phone = payload.phone
    if payload.department is not None:
        target.department = payload.department
    if payload.password is not None:
        target.password_hash = hash_password(payload.password)

    active_changed = False
    if payload.is_active is not None and bool(target.is_active) != payload.is_active:
        if not payload.is_active and target.id == context.user_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate yourself")
        if payload.is_active:
            _ensure_seat_available(db, target.company_id)
        target.is_active = payload.is_active
        active_changed = True

    log_admin_action(
        db,
        company_id=target.company_id,
        user_id=context.user_id,
        action="update_user",
        entity_type="user",
        entity_id=target.id,
        meta={"role": target.role, "is_active": target.is_active},
    )
    if active_changed:
        log_admin_action(
            db,
            company_id=target.company_id,
            user_id=context.user_id,
            action="activate_user" if target.is_active else "deactivate_user",
            entity_type="user",
            entity_id=target.id,
        )
    db.commit()
    return _serialize(target)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_user(
    user_id: int,
    context: TenantContext = Depends(require_permission("users", "delete")),
    db: Session = Depends(get_db),
):
    target = _load_user(db, context, user_id)
    _check_manageable(context, target)
    if target.id == context.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate yourself")

    target.is_active = False
    log_admin_action(
        db,
        company_id=target.company_id,
        user_id=context.user_id,
        action="deactivate_user",
        entity_type="user",
        entity_id=target.id,
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
