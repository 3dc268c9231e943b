from datetime import datetime

from sqlalchemy import Column, DateTime, Integer


class CompanyOwnedMixin:
    """Columns shared by every business collection.

    ``company_id`` has no foreign key: rows imported before multi-tenancy may
    carry a null or dangling id until the backfill assigns them a tenant.
    """

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
