from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecordPayload(BaseModel):
    """Writable fields of a business record.

    ``company_id`` is accepted so superusers can file records under any
    company; the access policy overwrites it for everyone else.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    company_id: Optional[int] = None


class CustomerPayload(RecordPayload):
    name: str = Field(..., min_length=1)
    organization: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    gst_number: Optional[str] = None


class SupplierPayload(RecordPayload):
    name: str = Field(..., min_length=1)
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class LeadPayload(RecordPayload):
    name: str = Field(..., min_length=1)
    organization: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: str = "new"
    category: str = "industry"
    source: Optional[str] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None


class QuotationPayload(RecordPayload):
    quotation_number: str = Field(..., min_length=1)
    customer_id: Optional[int] = None
    customer_name: str = Field(..., min_length=1)
    items: list[dict[str, Any]] = Field(default_factory=list)
    total_cents: int = Field(0, ge=0)
    status: str = "draft"
    valid_until: Optional[datetime] = None
    terms: Optional[str] = None


class OrderPayload(RecordPayload):
    order_number: str = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1)
    customer_company: Optional[str] = None
    quotation_id: Optional[int] = None
    items: list[dict[str, Any]] = Field(default_factory=list)
    amount_cents: int = Field(0, ge=0)
    status: str = "processing"


class InvoicePayload(RecordPayload):
    invoice_number: str = Field(..., min_length=1)
    order_id: Optional[int] = None
    customer_name: str = Field(..., min_length=1)
    total_cents: int = Field(0, ge=0)
    status: str = "unpaid"
    due_date: Optional[datetime] = None


class PaymentPayload(RecordPayload):
    invoice_id: Optional[int] = None
    amount_cents: int = Field(..., ge=0)
    method: str = "bank_transfer"
    reference: Optional[str] = None
    status: str = "received"
    paid_at: Optional[datetime] = None


class InventoryItemPayload(RecordPayload):
    name: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    description: Optional[str] = None
    quantity: int = Field(0, ge=0)
    threshold: int = Field(5, ge=0)
    price_cents: int = Field(0, ge=0)


class TaskPayload(RecordPayload):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    assigned_to: str = Field(..., min_length=1)
    priority: str = Field("medium", pattern="^(low|medium|high)$")
    status: str = "pending"
    due_date: Optional[datetime] = None


class PurchaseOrderPayload(RecordPayload):
    po_number: str = Field(..., min_length=1)
    supplier_id: Optional[int] = None
    supplier_name: str = Field(..., min_length=1)
    items: list[dict[str, Any]] = Field(default_factory=list)
    total_cents: int = Field(0, ge=0)
    status: str = "draft"
    expected_at: Optional[datetime] = None


RECORD_PAYLOADS: dict[str, type[RecordPayload]] = {
    "customers": CustomerPayload,
    "suppliers": SupplierPayload,
    "leads": LeadPayload,
    "quotations": QuotationPayload,
    "orders": OrderPayload,
    "invoices": InvoicePayload,
    "payments": PaymentPayload,
    "inventory": InventoryItemPayload,
    "tasks": TaskPayload,
    "purchase-orders": PurchaseOrderPayload,
}


def serialize_record(record: Any) -> dict[str, Any]:
    return {column.name: getattr(record, column.name) for column in record.__table__.columns}
