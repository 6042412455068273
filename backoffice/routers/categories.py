from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import get_current_admin, get_db, get_pagination
from ..models import User
from ..schemas.category import (
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
from ..schemas.common import MessageResponse, PaginatedResponse, Pagination, PaginationParams
from ..services import AuditService, CategoryService
from ..services.audit_service import get_changed_fields


router = APIRouter()

category_service = CategoryService()
audit_service = AuditService()


def _audit_fields(category) -> dict:
    return {
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "image": category.image,
        "parent_id": category.parent_id,
        "is_active": category.is_active,
        "sort_order": category.sort_order,
    }


def get_category_filters(
    parent_id: Optional[int] = Query(None, description="Only children of this category"),
    root_only: bool = Query(False, description="Only root categories"),
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
    has_products: Optional[bool] = Query(None, description="Filter by whether products are assigned"),
) -> CategoryFilters:
    return CategoryFilters(
        parent_id=parent_id,
        root_only=root_only,
        is_active=is_active,
        has_products=has_products,
    )


@router.get("", response_model=PaginatedResponse[CategoryResponse])
async def list_categories(
    filters: CategoryFilters = Depends(get_category_filters),
    pagination: PaginationParams = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **List Categories**

    Paginated list of categories, by default ordered by sort order.

    **Query Parameters:**

    - **parent_id**: Only direct children of this category
    - **root_only**: Only categories without a parent
    - **is_active**: Filter by status
    - **has_products**: Filter by whether any product is assigned
    """
    sort_by = pagination.sort_by if pagination.sort_by != "id" else "sort_order"

    categories, total = await category_service.list_categories(
        filters,
        db,
        skip=pagination.skip,
        limit=pagination.limit,
        sort_by=sort_by,
        sort_order=pagination.sort_order,
    )

    return {
        "data": categories,
        "pagination": Pagination.build(pagination.page, pagination.limit, total),
    }


@router.get("/tree", response_model=List[CategoryTreeNode])
async def get_category_tree(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **Category Tree**

    Active categories nested under their parents, siblings ordered by sort order.
    """
    return await category_service.get_category_tree(db)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_data: CategoryCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    **Create Category**

    Creates a new category. The slug is generated from the name when it is not given.

    **Request Body:**
    - **name**: Category name (required)
    - **slug**: URL slug, must be unique (optional)
    - **parent_id**: Parent category ID for hierarchical structure (optional)
    - **sort_order**: Position among its siblings (default 0)
    """
    category = await category_service.create_category(category_data, db)
    response = await category_service.serialize(category, db)

    await audit_service.log_create(
        "Category", category.id, _audit_fields(category), current_admin.id, db, request=request
    )
    return response


@router.put("/reorder", response_model=List[CategorySummary])
async def reorder_categories(
    reorder: CategoryReorder,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    **Reorder Categories**

    Assigns sort orders 0..n-1 following the order of `category_ids`.
    """
    categories, previous = await category_service.reorder_categories(reorder.category_ids, db)
    response = [CategorySummary.model_validate(c) for c in categories]

    for category in response:
        if previous[category.id] == category.sort_order:
            continue
        await audit_service.log_update(
            "Category",
            category.id,
            {"sort_order": previous[category.id]},
            {"sort_order": category.sort_order},
            current_admin.id,
            db,
            request=request,
        )
    return response


@router.get("/{category_id}", response_model=CategoryDetail)
async def get_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **Get Category**

    Category details with its parent, its children and its product count.
    """
    return await category_service.get_category_detail(category_id, db)


@router.get("/{category_id}/path", response_model=List[CategorySummary])
async def get_category_path(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **Category Path**

    The categories from the root down to this one, e.g. for breadcrumbs.
    """
    return await category_service.get_category_path(category_id, db)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    category_data: CategoryUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    **Update Category**

    Partial update. A new parent goes through the same checks as a move.
    """
    existing = await category_service.get_category_by_id(category_id, db)
    old_values = _audit_fields(existing)

    category = await category_service.update_category(category_id, category_data, db)
    changed_old, changed_new = get_changed_fields(old_values, _audit_fields(category))
    response = await category_service.serialize(category, db)

    if changed_new:
        await audit_service.log_update(
            "Category", category_id, changed_old, changed_new, current_admin.id, db, request=request
        )
    return response


@router.put("/{category_id}/move", response_model=CategoryResponse)
async def move_category(
    category_id: int,
    move: CategoryMove,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    **Move Category**

    Reparents and/or reorders a category.

    **Request Body:**
    - **new_parent_id**: New parent category, omit or null to move to the root
    - **new_sort_order**: New position among its siblings (optional)

    **Errors:**
    - **404**: Category or parent not found
    - **422**: The category would become its own parent or ancestor
    """
    existing = await category_service.get_category_by_id(category_id, db)
    old_values = {"parent_id": existing.parent_id, "sort_order": existing.sort_order}

    category = await category_service.move_category(
        category_id, move.new_parent_id, move.new_sort_order, db
    )
    new_values = {"parent_id": category.parent_id, "sort_order": category.sort_order}
    response = await category_service.serialize(category, db)

    await audit_service.log_update(
        "Category", category_id, old_values, new_values, current_admin.id, db, request=request
    )
    return response


@router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    **Delete Category**

    Deletes a category if it has no associated products or child categories.
    """
    category = await category_service.delete_category(category_id, db)

    await audit_service.log_delete(
        "Category", category_id, _audit_fields(category), current_admin.id, db, request=request
    )
    return {"message": f"Category {category_id} deleted successfully"}
