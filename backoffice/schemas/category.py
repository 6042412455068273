from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..utils.text import strip_html


class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    parent_id: Optional[int] = None
    image: Optional[str] = None
    is_active: bool = True
    sort_order: int = Field(0, ge=0)

    @field_validator('description', mode='before')
    @classmethod
    def sanitize_description(cls, v):
        return strip_html(v)


class CategoryCreate(CategoryBase):
    slug: Optional[str] = Field(None, pattern=r'^[a-z0-9]+(?:-[a-z0-9]+)*$')


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, pattern=r'^[a-z0-9]+(?:-[a-z0-9]+)*$')
    description: Optional[str] = None
    parent_id: Optional[int] = None
    image: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = Field(None, ge=0)

    @field_validator('description', mode='before')
    @classmethod
    def sanitize_description(cls, v):
        return strip_html(v)


class CategoryMove(BaseModel):
    """Reparent and/or reorder a category. A missing ``new_parent_id`` moves it to the root."""
    new_parent_id: Optional[int] = None
    new_sort_order: Optional[int] = Field(None, ge=0)


class CategoryReorder(BaseModel):
    category_ids: List[int] = Field(..., min_length=1)


class CategoryFilters(BaseModel):
    parent_id: Optional[int] = None
    root_only: bool = False
    is_active: Optional[bool] = None
    has_products: Optional[bool] = None


class CategorySummary(BaseModel):
    id: int
    name: str
    slug: str
    parent_id: Optional[int] = None
    is_active: bool
    sort_order: int

    class Config:
        from_attributes = True


class CategoryResponse(CategorySummary):
    description: Optional[str] = None
    image: Optional[str] = None
    product_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CategoryDetail(CategoryResponse):
    parent: Optional[CategorySummary] = None
    children: List[CategorySummary] = []


class CategoryTreeNode(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image: Optional[str] = None
    is_active: bool
    sort_order: int
    product_count: int = 0
    level: int = 0
    children: List["CategoryTreeNode"] = []


CategoryTreeNode.model_rebuild()
