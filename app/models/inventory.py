from sqlalchemy import Column, Integer, String, Text

from app.core.database import Base
from app.models.mixins import CompanyOwnedMixin


class InventoryItem(CompanyOwnedMixin, Base):
    __tablename__ = "inventory"

    name = Column(String(160), nullable=False)
    sku = Column(String(60), nullable=False, index=True)
    description = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    threshold = Column(Integer, nullable=False, default=5)
    price_cents = Column(Integer, nullable=False, default=0)
