import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from fastapi import HTTPException
from sqlalchemy import delete, desc, exists, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from ..exceptions import (
    APIException,
    BadRequestException,
    ConflictException,
    InvalidParentException,
    NotFoundException,
)
from ..models import Category, Product
from ..schemas.category import CategoryCreate, CategoryFilters, CategoryUpdate
from .category_hierarchy import ancestor_ids, build_tree, validate_new_parent


logger = logging.getLogger(__name__)


class CategoryService:
    async def get_category_by_id(self, category_id: int, db: AsyncSession, label: str = "Category") -> Category:
        """
        Get a category by its ID
        """
        query = select(Category).where(Category.id == category_id)
        result = await db.execute(query)
        category = result.scalars().first()

        if not category:
            raise NotFoundException(f"{label} with ID {category_id} not found")

        return category

    async def get_parent_map(self, db: AsyncSession) -> Dict[int, Optional[int]]:
        """
        Load the whole hierarchy as ``{category_id: parent_id}`` in one query
        """
        result = await db.execute(select(Category.id, Category.parent_id))
        return {row.id: row.parent_id for row in result.all()}

    async def get_product_counts(self, category_ids: Iterable[int], db: AsyncSession) -> Dict[int, int]:
        ids = list(category_ids)
        if not ids:
            return {}

        query = (
            select(Product.category_id, func.count(Product.id))
            .where(Product.category_id.in_(ids))
            .group_by(Product.category_id)
        )
        result = await db.execute(query)
        return {category_id: count for category_id, count in result.all()}

    def to_dict(self, category: Category, product_count: int = 0) -> dict:
        return {
            "id": category.id,
            "name": category.name,
            "slug": category.slug,
            "description": category.description,
            "image": category.image,
            "parent_id": category.parent_id,
            "is_active": category.is_active,
            "sort_order": category.sort_order,
            "product_count": product_count,
            "created_at": category.created_at,
            "updated_at": category.updated_at,
        }

    async def serialize(self, category: Category, db: AsyncSession) -> dict:
        counts = await self.get_product_counts([category.id], db)
        return self.to_dict(category, counts.get(category.id, 0))

    async def check_category_slug_exists(self, slug: str, category_id: Optional[int], db: AsyncSession) -> bool:
        """
        Check if a category slug already exists
        """
        query = select(Category).where(Category.slug == slug)

        # If updating existing category, exclude current category from check
        if category_id is not None:
            query = query.where(Category.id != category_id)

        result = await db.execute(query)
        existing = result.scalars().first()

        return existing is not None

    async def generate_category_slug(self, name: str, category_id: Optional[int], db: AsyncSession) -> str:
        """
        Generate a unique slug from a category name
        """
        slug = name.lower().replace(" ", "-").replace("_", "-")

        # Remove special characters and multiple dashes
        slug = re.sub(r'[^a-z0-9\-]', '', slug)
        slug = re.sub(r'-+', '-', slug).strip('-') or "category"

        if await self.check_category_slug_exists(slug, category_id, db):
            # Add random suffix to make slug unique
            slug = f"{slug}-{uuid4().hex[:6]}"

        return slug

    async def create_category(self, category_data: CategoryCreate, db: AsyncSession) -> Category:
        """
        Create a new category
        """
        try:
            if category_data.slug:
                if await self.check_category_slug_exists(category_data.slug, None, db):
                    raise ConflictException("Category with this slug already exists")
                slug = category_data.slug
            else:
                slug = await self.generate_category_slug(category_data.name, None, db)

            if category_data.parent_id is not None:
                await self.get_category_by_id(category_data.parent_id, db, label="Parent category")

            new_category = Category(
                name=category_data.name,
                slug=slug,
                description=category_data.description,
                image=category_data.image,
                parent_id=category_data.parent_id,
                is_active=category_data.is_active,
                sort_order=category_data.sort_order,
            )

            db.add(new_category)
            await db.commit()
            await db.refresh(new_category)

            logger.info("Created category %s (%s)", new_category.id, new_category.slug)
            return new_category
        except (HTTPException, APIException):
            await db.rollback()
            raise
        except Exception as e:
            await db.rollback()
            logger.exception("Error creating category")
            raise BadRequestException(f"Failed to create category: {str(e)}")

    async def get_category_detail(self, category_id: int, db: AsyncSession) -> dict:
        """
        Category with its parent, its children (by sort order) and product count
        """
        query = (
            select(Category)
            .where(Category.id == category_id)
            .options(selectinload(Category.parent), selectinload(Category.subcategories))
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        category = result.scalars().first()

        if not category:
            raise NotFoundException(f"Category with ID {category_id} not found")

        detail = await self.serialize(category, db)
        detail["parent"] = category.parent
        detail["children"] = sorted(category.subcategories, key=lambda c: (c.sort_order, c.id))
        return detail

    async def list_categories(
        self,
        filters: CategoryFilters,
        db: AsyncSession,
        skip: int = 0,
        limit: int = 20,
        sort_by: str = "sort_order",
        sort_order: str = "asc",
    ) -> Tuple[List[dict], int]:
        """
        List categories with filters, sorting and pagination
        Returns categories and total count
        """
        conditions = []
        if filters.root_only:
            conditions.append(Category.parent_id.is_(None))
        elif filters.parent_id is not None:
            conditions.append(Category.parent_id == filters.parent_id)
        if filters.is_active is not None:
            conditions.append(Category.is_active == filters.is_active)
        if filters.has_products is not None:
            has_products = exists().where(Product.category_id == Category.id)
            conditions.append(has_products if filters.has_products else ~has_products)

        count_query = select(func.count()).select_from(Category).where(*conditions)
        total = (await db.execute(count_query)).scalar() or 0

        query = select(Category).where(*conditions)

        sort_column = Category.__table__.columns.get(sort_by, Category.__table__.c.sort_order)
        query = query.order_by(desc(sort_column) if sort_order.lower() == "desc" else sort_column, Category.id)

        result = await db.execute(query.offset(skip).limit(limit))
        categories = result.scalars().all()

        counts = await self.get_product_counts((c.id for c in categories), db)
        return [self.to_dict(c, counts.get(c.id, 0)) for c in categories], total

    async def get_category_tree(self, db: AsyncSession) -> List[dict]:
        """
        Active categories as nested nodes, siblings ordered by sort order
        """
        result = await db.execute(select(Category).where(Category.is_active.is_(True)))
        categories = result.scalars().all()
        counts = await self.get_product_counts((c.id for c in categories), db)

        nodes = [
            {
                "id": c.id,
                "parent_id": c.parent_id,
                "name": c.name,
                "slug": c.slug,
                "description": c.description,
                "image": c.image,
                "is_active": c.is_active,
                "sort_order": c.sort_order,
                "product_count": counts.get(c.id, 0),
            }
            for c in categories
        ]
        return build_tree(nodes)

    async def get_category_path(self, category_id: int, db: AsyncSession) -> List[Category]:
        """
        Categories from the root down to ``category_id``
        """
        await self.get_category_by_id(category_id, db)

        path_ids = ancestor_ids(category_id, await self.get_parent_map(db))
        result = await db.execute(select(Category).where(Category.id.in_(path_ids)))
        by_id = {c.id: c for c in result.scalars().all()}

        return [by_id[i] for i in path_ids if i in by_id]

    async def move_category(
        self,
        category_id: int,
        new_parent_id: Optional[int],
        new_sort_order: Optional[int],
        db: AsyncSession,
    ) -> Category:
        """
        Reparent and/or reorder a category.

        ``new_parent_id`` of None moves the category to the root. The new parent must
        exist, differ from the category and must not be one of its descendants.
        Siblings keep their sort order.
        """
        try:
            category = await self.get_category_by_id(category_id, db)

            if new_parent_id is not None:
                if new_parent_id == category_id:
                    raise InvalidParentException()

                await self.get_category_by_id(new_parent_id, db, label="Parent category")
                validate_new_parent(category_id, new_parent_id, await self.get_parent_map(db))

            category.parent_id = new_parent_id
            if new_sort_order is not None:
                category.sort_order = new_sort_order

            await db.commit()
            await db.refresh(category)

            logger.info(
                "Moved category %s under parent %s (sort order %s)",
                category_id, new_parent_id, category.sort_order
            )
            return category
        except Exception as e:
            await db.rollback()
            logger.warning("Rejected move of category %s to parent %s: %s", category_id, new_parent_id, e)
            raise

    async def update_category(self, category_id: int, category_data: CategoryUpdate, db: AsyncSession) -> Category:
        """
        Update a category, only the fields present in the payload are touched
        """
        try:
            category = await self.get_category_by_id(category_id, db)
            update_data = category_data.model_dump(exclude_unset=True)

            if "parent_id" in update_data and update_data["parent_id"] != category.parent_id:
                new_parent_id = update_data["parent_id"]
                if new_parent_id is not None:
                    if new_parent_id == category_id:
                        raise InvalidParentException(field="parent_id")

                    await self.get_category_by_id(new_parent_id, db, label="Parent category")
                    validate_new_parent(category_id, new_parent_id, await self.get_parent_map(db), field="parent_id")

            if update_data.get("slug") and update_data["slug"] != category.slug:
                if await self.check_category_slug_exists(update_data["slug"], category_id, db):
                    raise ConflictException("Category with this slug already exists")
            elif update_data.get("name") and "slug" not in update_data and update_data["name"] != category.name:
                update_data["slug"] = await self.generate_category_slug(update_data["name"], category_id, db)

            for field in ("name", "slug", "is_active", "sort_order"):
                # these columns are NOT NULL, an explicit null means "leave as is"
                if field in update_data and update_data[field] is None:
                    update_data.pop(field)

            for field, value in update_data.items():
                setattr(category, field, value)

            await db.commit()
            await db.refresh(category)
            return category
        except (HTTPException, APIException):
            await db.rollback()
            raise
        except Exception as e:
            await db.rollback()
            logger.exception("Error updating category %s", category_id)
            raise BadRequestException(f"Failed to update category: {str(e)}")

    async def reorder_categories(
        self, category_ids: List[int], db: AsyncSession
    ) -> Tuple[List[Category], Dict[int, int]]:
        """
        Give the listed categories sort orders 0..n-1 in list order
        Returns the categories and their previous sort orders
        """
        try:
            if len(set(category_ids)) != len(category_ids):
                raise BadRequestException("Category IDs must be unique")

            result = await db.execute(select(Category).where(Category.id.in_(category_ids)))
            by_id = {c.id: c for c in result.scalars().all()}

            missing = [i for i in category_ids if i not in by_id]
            if missing:
                raise NotFoundException(f"Categories not found: {', '.join(str(i) for i in missing)}")

            previous = {i: by_id[i].sort_order for i in category_ids}
            for index, category_id in enumerate(category_ids):
                by_id[category_id].sort_order = index

            await db.commit()
            return [by_id[i] for i in category_ids], previous
        except Exception:
            await db.rollback()
            raise

    async def delete_category(self, category_id: int, db: AsyncSession) -> Category:
        """
        Delete a category
        Returns the deleted category
        """
        try:
            category = await self.get_category_by_id(category_id, db)

            products_query = select(func.count()).select_from(Product).where(Product.category_id == category_id)
            products_count = (await db.execute(products_query)).scalar()

            if products_count > 0:
                raise ConflictException(f"Cannot delete category. It has {products_count} associated products. Please reassign or delete the products first.")

            children_query = select(func.count()).select_from(Category).where(Category.parent_id == category_id)
            children_count = (await db.execute(children_query)).scalar()

            if children_count > 0:
                raise ConflictException(f"Cannot delete category. It has {children_count} child categories. Please reassign or delete the child categories first.")

            stmt = (
                delete(Category)
                .where(Category.id == category_id)
                .execution_options(synchronize_session="fetch")
            )

            await db.execute(stmt)
            await db.commit()

            logger.info("Deleted category %s (%s)", category_id, category.slug)
            return category
        except Exception:
            await db.rollback()
            raise
