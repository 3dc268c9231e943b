from sqlalchemy import Column, String, Text

from app.core.database import Base
from app.models.mixins import CompanyOwnedMixin


class Supplier(CompanyOwnedMixin, Base):
    __tablename__ = "suppliers"

    name = Column(String(120), nullable=False)
    contact_person = Column(String(120), nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String(30), nullable=True)
    address = Column(Text, nullable=True)
