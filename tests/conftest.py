import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from backoffice import app
from backoffice.core.dependencies import get_db
from backoffice.db.database import init_db
from backoffice.enums import OrderStatus, UserRole
from backoffice.models import Category, Order, OrderItem, Product, User
from backoffice.utils.auth import create_access_token


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(db):
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _create_user(db, email, role, **kwargs):
    user = User(email=email, first_name="Test", last_name=role.value.title(), role=role, **kwargs)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def _auth_headers(user):
    token = create_access_token({"id": user.id, "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin(db):
    return await _create_user(db, "admin@example.com", UserRole.ADMIN)


@pytest.fixture
async def customer(db):
    return await _create_user(db, "jane@example.com", UserRole.CUSTOMER, phone_number="0712345678")


@pytest.fixture
def admin_headers(admin):
    return _auth_headers(admin)


@pytest.fixture
def customer_headers(customer):
    return _auth_headers(customer)


@pytest.fixture
def make_category(db):
    async def _make(name, parent=None, sort_order=0, is_active=True):
        category = Category(
            name=name,
            slug=name.lower().replace(" ", "-"),
            parent_id=parent.id if parent is not None else None,
            sort_order=sort_order,
            is_active=is_active,
        )
        db.add(category)
        await db.commit()
        await db.refresh(category)
        return category

    return _make


@pytest.fixture
def make_product(db):
    async def _make(name, category=None, price=100.0):
        slug = name.lower().replace(" ", "-")
        product = Product(
            name=name,
            slug=slug,
            sku=slug.upper(),
            price=price,
            stock=10,
            category_id=category.id if category is not None else None,
        )
        db.add(product)
        await db.commit()
        await db.refresh(product)
        return product

    return _make


@pytest.fixture
def make_order(db):
    counter = {"n": 0}

    async def _make(customer, status=OrderStatus.PENDING, total=100.0, items=()):
        counter["n"] += 1
        order = Order(
            order_number=f"ORD-{counter['n']:05d}",
            customer_id=customer.id,
            status=status,
            subtotal=total,
            total=total,
            shipping_address={"city": "Nairobi", "street": "Moi Avenue 1"},
        )
        db.add(order)
        await db.commit()
        await db.refresh(order)

        for product, quantity in items:
            db.add(OrderItem(order_id=order.id, product_id=product.id, quantity=quantity, price=product.price))
        if items:
            await db.commit()

        return order

    return _make
