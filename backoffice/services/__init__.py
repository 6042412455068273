from .audit_service import AuditService
from .auth_service import AuthService
from .category_service import CategoryService
from .customer_service import CustomerService
from .order_service import OrderService


__all__ = [
    "AuditService",
    "AuthService",
    "CategoryService",
    "CustomerService",
    "OrderService",
]
