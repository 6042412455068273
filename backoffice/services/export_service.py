import csv
import io
import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from fastapi.encoders import jsonable_encoder

from ..enums import ExportFormat
from ..exceptions import InvalidExportFormatException


CONTENT_TYPES = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.JSON: "application/json",
}


def parse_export_format(value: str) -> ExportFormat:
    try:
        return ExportFormat(value.lower())
    except ValueError:
        raise InvalidExportFormatException(f"Invalid export format: {value}")


def _yes_no(value: Optional[bool]) -> str:
    return "Yes" if value else "No"


def _timestamp(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else ""


def _enum_value(value) -> Any:
    return getattr(value, "value", value)


def format_orders(orders: Iterable) -> List[Dict[str, Any]]:
    return [
        {
            "ID": order.id,
            "Order Number": order.order_number,
            "Customer ID": order.customer_id,
            "Status": _enum_value(order.status),
            "Payment Status": _enum_value(order.payment_status),
            "Subtotal": order.subtotal,
            "Tax": order.tax,
            "Shipping Cost": order.shipping_cost,
            "Discount": order.discount or 0,
            "Total": order.total,
            "Created At": _timestamp(order.created_at),
            "Updated At": _timestamp(order.updated_at),
        }
        for order in orders
    ]


def format_customers(customers: Iterable) -> List[Dict[str, Any]]:
    return [
        {
            "ID": customer.id,
            "First Name": customer.first_name,
            "Last Name": customer.last_name,
            "Email": customer.email,
            "Phone": customer.phone_number or "N/A",
            "Active": _yes_no(customer.is_active),
            "Last Login": _timestamp(customer.last_login_at) or "Never",
            "Created At": _timestamp(customer.created_at),
        }
        for customer in customers
    ]


def format_categories(categories: Iterable[dict]) -> List[Dict[str, Any]]:
    return [
        {
            "ID": category["id"],
            "Name": category["name"],
            "Slug": category["slug"],
            "Parent ID": category["parent_id"] if category["parent_id"] is not None else "N/A",
            "Active": _yes_no(category["is_active"]),
            "Sort Order": category["sort_order"],
            "Products": category["product_count"],
            "Created At": _timestamp(category["created_at"]),
            "Updated At": _timestamp(category["updated_at"]),
        }
        for category in categories
    ]


def to_csv(rows: List[Dict[str, Any]], headers: Optional[List[str]] = None) -> str:
    """
    Render rows as CSV with a header row. Every value is quoted and nested
    values are JSON encoded. No rows and no headers gives an empty string.
    """
    if not rows and not headers:
        return ""

    headers = headers or list(rows[0].keys())
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)

    for row in rows:
        values = []
        for header in headers:
            value = row.get(header)
            if value is None:
                value = ""
            elif isinstance(value, (dict, list)):
                value = json.dumps(jsonable_encoder(value))
            values.append(value)
        writer.writerow(values)

    return buffer.getvalue().rstrip("\n")


def to_json(rows: List[Dict[str, Any]]) -> str:
    return json.dumps(jsonable_encoder(rows), indent=2)


def render(rows: List[Dict[str, Any]], export_format: ExportFormat) -> str:
    if export_format == ExportFormat.CSV:
        return to_csv(rows)
    return to_json(rows)


def export_filename(export_type: str, export_format: ExportFormat, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{export_type}-export-{now.strftime('%Y-%m-%dT%H-%M-%S')}.{export_format.value}"
