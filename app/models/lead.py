from sqlalchemy import Column, String, Text

from app.core.database import Base
from app.models.mixins import CompanyOwnedMixin


class Lead(CompanyOwnedMixin, Base):
    __tablename__ = "leads"

    name = Column(String(120), nullable=False)
    organization = Column(String(160), nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String(30), nullable=True)
    status = Column(String(30), nullable=False, default="new")
    category = Column(String(60), nullable=False, default="industry")
    source = Column(String(60), nullable=True)
    assigned_to = Column(String(120), nullable=True)
    notes = Column(Text, nullable=True)
