from .audit import AuditLogFilters, AuditLogResponse
from .category import (
    CategoryCreate,
    CategoryDetail,
    CategoryFilters,
    CategoryMove,
    CategoryReorder,
    CategoryResponse,
    CategorySummary,
    CategoryTreeNode,
    CategoryUpdate,
)
from .common import MessageResponse, PaginatedResponse, Pagination, PaginationParams
from .customer import CustomerDetail, CustomerFilters, CustomerResponse, CustomerUpdate
from .order import (
    OrderDetail,
    OrderFilters,
    OrderItemResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderTransitions,
    OrderUpdate,
)


__all__ = [
    # audit schemas
    "AuditLogFilters",
    "AuditLogResponse",

    # category schemas
    "CategoryCreate",
    "CategoryDetail",
    "CategoryFilters",
    "CategoryMove",
    "CategoryReorder",
    "CategoryResponse",
    "CategorySummary",
    "CategoryTreeNode",
    "CategoryUpdate",

    # common schemas
    "MessageResponse",
    "PaginatedResponse",
    "Pagination",
    "PaginationParams",

    # customer schemas
    "CustomerDetail",
    "CustomerFilters",
    "CustomerResponse",
    "CustomerUpdate",

    # order schemas
    "OrderDetail",
    "OrderFilters",
    "OrderItemResponse",
    "OrderResponse",
    "OrderStatusUpdate",
    "OrderTransitions",
    "OrderUpdate",
]
