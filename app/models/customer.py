from sqlalchemy import Column, String, Text

from app.core.database import Base
from app.models.mixins import CompanyOwnedMixin


class Customer(CompanyOwnedMixin, Base):
    __tablename__ = "customers"

    name = Column(String(120), nullable=False)
    organization = Column(String(160), nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String(30), nullable=True, index=True)
    address = Column(Text, nullable=True)
    gst_number = Column(String(30), nullable=True)
