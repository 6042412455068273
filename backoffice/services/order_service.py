import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from ..enums import OrderStatus
from ..exceptions import InvalidStatusTransitionException, NotFoundException
from ..models import Order, OrderItem
from ..schemas.order import OrderFilters, OrderUpdate
from ..utils.dates import date_to_upper_bound
from .order_status import allowed_transitions, is_terminal, validate_status_transition


logger = logging.getLogger(__name__)


class OrderService:
    async def get_order_by_id(self, order_id: int, db: AsyncSession, with_items: bool = False) -> Order:
        """
        Get order by ID, optionally with its line items, products and customer loaded
        """
        query = select(Order).where(Order.id == order_id)
        if with_items:
            query = query.options(
                selectinload(Order.items).selectinload(OrderItem.product),
                selectinload(Order.customer),
            ).execution_options(populate_existing=True)

        result = await db.execute(query)
        order = result.scalars().first()

        if not order:
            raise NotFoundException(f"Order with ID {order_id} not found")

        return order

    def _filter_conditions(self, filters: OrderFilters) -> list:
        conditions = []

        if filters.status:
            conditions.append(Order.status == filters.status)
        if filters.payment_status:
            conditions.append(Order.payment_status == filters.payment_status)
        if filters.customer_id:
            conditions.append(Order.customer_id == filters.customer_id)
        if filters.date_from:
            conditions.append(Order.created_at >= filters.date_from)
        if filters.date_to:
            conditions.append(Order.created_at < date_to_upper_bound(filters.date_to))
        if filters.total_min is not None:
            conditions.append(Order.total >= filters.total_min)
        if filters.total_max is not None:
            conditions.append(Order.total <= filters.total_max)

        return conditions

    async def list_orders(
        self,
        filters: OrderFilters,
        db: AsyncSession,
        skip: int = 0,
        limit: int = 20,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[Order], int]:
        """Get all orders in the system with filtering, sorting and pagination"""
        conditions = self._filter_conditions(filters)

        count_query = select(func.count()).select_from(Order).where(*conditions)
        total = (await db.execute(count_query)).scalar() or 0

        query = select(Order).where(*conditions)

        order_field = Order.__table__.columns.get(sort_by, Order.__table__.c.created_at)
        if sort_order.lower() == "desc":
            query = query.order_by(order_field.desc(), Order.id.desc())
        else:
            query = query.order_by(order_field.asc(), Order.id.asc())

        result = await db.execute(query.offset(skip).limit(limit))
        return result.scalars().all(), total

    def _item_to_dict(self, item: OrderItem) -> Dict[str, Any]:
        return {
            "id": item.id,
            "product_id": item.product_id,
            "product_name": item.product.name if item.product else None,
            "sku": item.product.sku if item.product else None,
            "quantity": item.quantity,
            "price": item.price,
            "discount": item.discount or 0,
            "total": item.total,
        }

    async def get_order_items(self, order_id: int, db: AsyncSession) -> List[Dict[str, Any]]:
        order = await self.get_order_by_id(order_id, db, with_items=True)
        return [self._item_to_dict(item) for item in order.items]

    async def get_order_detail(self, order_id: int, db: AsyncSession) -> Dict[str, Any]:
        """Get detailed order information including items, customer and the next possible statuses"""
        order = await self.get_order_by_id(order_id, db, with_items=True)

        return {
            "id": order.id,
            "order_number": order.order_number,
            "customer_id": order.customer_id,
            "customer": order.customer,
            "status": order.status,
            "payment_status": order.payment_status,
            "subtotal": order.subtotal,
            "tax": order.tax,
            "shipping_cost": order.shipping_cost,
            "discount": order.discount or 0,
            "total": order.total,
            "shipping_address": order.shipping_address,
            "billing_address": order.billing_address,
            "items": [self._item_to_dict(item) for item in order.items],
            "notes": order.notes,
            "admin_comment": order.admin_comment,
            "allowed_transitions": sorted(allowed_transitions(order.status), key=list(OrderStatus).index),
            "created_at": order.created_at,
            "updated_at": order.updated_at,
        }

    async def get_allowed_transitions(self, order_id: int, db: AsyncSession) -> Dict[str, Any]:
        order = await self.get_order_by_id(order_id, db)

        return {
            "order_id": order.id,
            "current_status": order.status,
            "allowed_transitions": sorted(allowed_transitions(order.status), key=list(OrderStatus).index),
            "is_terminal": is_terminal(order.status),
        }

    async def update_order_status(
        self,
        order_id: int,
        status: OrderStatus,
        db: AsyncSession,
        notes: Optional[str] = None,
        admin_comment: Optional[str] = None,
    ) -> Order:
        """
        Move an order to ``status`` if the lifecycle allows it.

        Notes and admin comment replace the stored values when given. Recording the
        before/after pair is left to the caller.
        """
        status = OrderStatus(status)
        try:
            order = await self.get_order_by_id(order_id, db)
            previous_status = order.status

            validate_status_transition(previous_status, status)

            order.status = status
            if notes is not None:
                order.notes = notes
            if admin_comment is not None:
                order.admin_comment = admin_comment

            await db.commit()
            await db.refresh(order)

            logger.info("Order %s status updated: %s -> %s", order.order_number, previous_status.value, status.value)
            return order
        except InvalidStatusTransitionException as e:
            await db.rollback()
            logger.warning("Rejected status change for order %s: %s", order_id, e)
            raise
        except Exception:
            await db.rollback()
            raise

    async def update_order(self, order_id: int, order_data: OrderUpdate, db: AsyncSession) -> Order:
        """
        Edit payment status, addresses, notes or comment of an order.

        Only the fields present in the payload are touched. Status changes go
        through ``update_order_status``.
        """
        try:
            order = await self.get_order_by_id(order_id, db)
            update_data = order_data.model_dump(exclude_unset=True)

            if "payment_status" in update_data and update_data["payment_status"] is None:
                update_data.pop("payment_status")

            for field, value in update_data.items():
                setattr(order, field, value)

            await db.commit()
            await db.refresh(order)

            logger.info("Order %s updated: %s", order.order_number, ", ".join(sorted(update_data)) or "no changes")
            return order
        except Exception:
            await db.rollback()
            raise
