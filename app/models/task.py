from sqlalchemy import Column, DateTime, String, Text

from app.core.database import Base
from app.models.mixins import CompanyOwnedMixin


class Task(CompanyOwnedMixin, Base):
    __tablename__ = "tasks"

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    assigned_to = Column(String(120), nullable=False)
    priority = Column(String(20), nullable=False, default="medium")
    status = Column(String(20), nullable=False, default="pending")
    due_date = Column(DateTime, nullable=True)
