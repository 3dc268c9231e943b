from app.models.company import Company
from app.models.user import User
from app.models.admin_audit_log import AdminAuditLog
from app.models.customer import Customer
from app.models.supplier import Supplier
from app.models.lead import Lead
from app.models.quotation import Quotation
from app.models.order import Order
from app.models.invoice import Invoice
from app.models.payment import Payment
from app.models.inventory import InventoryItem
from app.models.task import Task
from app.models.purchase_order import PurchaseOrder

# Business collections keyed by the resource name used in permission strings.
BUSINESS_MODELS = {
    "customers": Customer,
    "suppliers": Supplier,
    "leads": Lead,
    "quotations": Quotation,
    "orders": Order,
    "invoices": Invoice,
    "payments": Payment,
    "inventory": InventoryItem,
    "tasks": Task,
    "purchase-orders": PurchaseOrder,
}
