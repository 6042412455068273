import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, desc, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..enums import OrderStatus, UserRole
from ..exceptions import ConflictException, NotFoundException
from ..models import Order, User
from ..schemas.customer import CustomerDetail, CustomerFilters, CustomerResponse, CustomerUpdate
from ..utils.dates import date_to_upper_bound


logger = logging.getLogger(__name__)


class CustomerService:

    def _filter_conditions(self, filters: Optional[CustomerFilters]) -> list:
        conditions = [User.role == UserRole.CUSTOMER]
        if not filters:
            return conditions

        if filters.search:
            conditions.append(or_(
                User.first_name.ilike(f"%{filters.search}%"),
                User.last_name.ilike(f"%{filters.search}%"),
                User.email.ilike(f"%{filters.search}%"),
                User.phone_number.ilike(f"%{filters.search}%")
            ))
        if filters.is_active is not None:
            conditions.append(User.is_active == filters.is_active)
        if filters.date_from:
            conditions.append(User.created_at >= filters.date_from)
        if filters.date_to:
            conditions.append(User.created_at < date_to_upper_bound(filters.date_to))

        return conditions

    async def list_customers(
        self,
        db: AsyncSession,
        filters: Optional[CustomerFilters] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[User], int]:
        """Get paginated list of customers, newest first"""
        conditions = self._filter_conditions(filters)

        count_query = select(func.count()).select_from(User).where(*conditions)
        total = (await db.execute(count_query)).scalar() or 0

        query = (
            select(User)
            .where(*conditions)
            .order_by(desc(User.created_at), desc(User.id))
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(query)

        return result.scalars().all(), total

    async def get_customer_by_id(self, customer_id: int, db: AsyncSession) -> User:
        query = select(User).where(User.id == customer_id, User.role == UserRole.CUSTOMER)
        result = await db.execute(query)
        customer = result.scalar_one_or_none()

        if not customer:
            raise NotFoundException(f"Customer with ID {customer_id} not found")

        return customer

    async def get_customer_detail(self, customer_id: int, db: AsyncSession) -> CustomerDetail:
        """Get a customer together with their order statistics"""
        customer = await self.get_customer_by_id(customer_id, db)

        # cancelled and refunded orders are left out of the statistics
        stats_query = select(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total), 0.0),
            func.max(Order.created_at),
        ).where(
            Order.customer_id == customer_id,
            Order.status.notin_([OrderStatus.CANCELLED, OrderStatus.REFUNDED]),
        )
        total_orders, total_spent, last_order_date = (await db.execute(stats_query)).one()

        return CustomerDetail(
            **CustomerResponse.model_validate(customer).model_dump(),
            total_orders=total_orders,
            total_spent=float(total_spent),
            last_order_date=last_order_date,
        )

    async def toggle_status(self, customer_id: int, db: AsyncSession) -> User:
        """Flip a customer's active flag"""
        try:
            customer = await self.get_customer_by_id(customer_id, db)
            customer.is_active = not customer.is_active

            await db.commit()
            await db.refresh(customer)

            logger.info("Customer %s is now %s", customer_id, "active" if customer.is_active else "inactive")
            return customer
        except Exception:
            await db.rollback()
            raise

    async def update_customer(self, customer_id: int, customer_data: CustomerUpdate, db: AsyncSession) -> User:
        """
        Update a customer's profile, only the fields present in the payload are touched
        """
        try:
            customer = await self.get_customer_by_id(customer_id, db)
            update_data = customer_data.model_dump(exclude_unset=True)

            if update_data.get("email"):
                update_data["email"] = update_data["email"].lower()
                if update_data["email"] != customer.email:
                    query = select(User.id).where(User.email == update_data["email"], User.id != customer_id)
                    if (await db.execute(query)).first():
                        raise ConflictException("Customer with this email already exists")

            for field in ("email", "first_name", "last_name", "is_active"):
                # NOT NULL columns, an explicit null leaves them as they are
                if field in update_data and update_data[field] is None:
                    update_data.pop(field)

            for field, value in update_data.items():
                setattr(customer, field, value)

            await db.commit()
            await db.refresh(customer)
            return customer
        except Exception:
            await db.rollback()
            raise

    async def delete_customer(self, customer_id: int, db: AsyncSession) -> User:
        """
        Delete a customer without orders
        Returns the deleted customer
        """
        try:
            customer = await self.get_customer_by_id(customer_id, db)

            orders_query = select(func.count()).select_from(Order).where(Order.customer_id == customer_id)
            orders_count = (await db.execute(orders_query)).scalar()

            if orders_count > 0:
                raise ConflictException("Cannot delete customer that has orders")

            stmt = (
                delete(User)
                .where(User.id == customer_id)
                .execution_options(synchronize_session="fetch")
            )
            await db.execute(stmt)
            await db.commit()

            logger.info("Deleted customer %s", customer_id)
            return customer
        except Exception:
            await db.rollback()
            raise
