from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from app.core.database import Base

COMPANY_STATUSES = ("pending", "active", "suspended")


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    # pending until a superuser approves the signup
    status = Column(String, nullable=False, default="pending")
    max_users = Column(Integer, nullable=False, default=20)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
