import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Config
from ..core.dependencies import get_current_admin, get_db
from ..enums import ExportFormat
from ..models import User
from ..schemas.category import CategoryFilters
from ..schemas.customer import CustomerFilters
from ..schemas.order import OrderFilters
from ..services import CategoryService, CustomerService, OrderService
from ..services import export_service
from .categories import get_category_filters
from .customers import get_customer_filters
from .orders import get_order_filters


logger = logging.getLogger(__name__)

router = APIRouter()

category_service = CategoryService()
customer_service = CustomerService()
order_service = OrderService()


def _export_response(rows, export_type: str, export_format: ExportFormat) -> Response:
    filename = export_service.export_filename(export_type, export_format)

    logger.info("Exporting %d %s as %s", len(rows), export_type, export_format.value)

    return Response(
        content=export_service.render(rows, export_format),
        media_type=export_service.CONTENT_TYPES[export_format],
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache",
        },
    )


@router.get("/orders")
async def export_orders(
    format: str = Query("csv", description="Export format (csv/json)"),
    filters: OrderFilters = Depends(get_order_filters),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **Export Orders**

    Download the orders matching the list filters as CSV or JSON.
    """
    export_format = export_service.parse_export_format(format)

    orders, _total = await order_service.list_orders(filters, db, limit=Config.EXPORT_MAX_ROWS)
    return _export_response(export_service.format_orders(orders), "orders", export_format)


@router.get("/customers")
async def export_customers(
    format: str = Query("csv", description="Export format (csv/json)"),
    filters: CustomerFilters = Depends(get_customer_filters),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **Export Customers**
    """
    export_format = export_service.parse_export_format(format)

    customers, _total = await customer_service.list_customers(db, filters=filters, limit=Config.EXPORT_MAX_ROWS)
    return _export_response(export_service.format_customers(customers), "customers", export_format)


@router.get("/categories")
async def export_categories(
    format: str = Query("csv", description="Export format (csv/json)"),
    filters: CategoryFilters = Depends(get_category_filters),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **Export Categories**

    Accepts the filters of the category list.
    """
    export_format = export_service.parse_export_format(format)

    categories, _total = await category_service.list_categories(filters, db, limit=Config.EXPORT_MAX_ROWS)
    return _export_response(export_service.format_categories(categories), "categories", export_format)
