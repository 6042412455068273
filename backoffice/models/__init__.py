from .audit_log import AuditLog
from .category import Category
from .order import Order
from .order_item import OrderItem
from .product import Product
from .user import User


__all__ = [
    "AuditLog",
    "Category",
    "Order",
    "OrderItem",
    "Product",
    "User",
]
