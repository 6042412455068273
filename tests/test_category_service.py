import pytest

from backoffice.exceptions import (
    BadRequestException,
    CircularReferenceException,
    ConflictException,
    InvalidParentException,
    NotFoundException,
)
from backoffice.schemas.category import CategoryCreate, CategoryFilters, CategoryUpdate
from backoffice.services import CategoryService


service = CategoryService()


@pytest.fixture
async def tree(make_category):
    """Electronics > Phones > Android, plus Books as a second root."""
    electronics = await make_category("Electronics", sort_order=0)
    phones = await make_category("Phones", parent=electronics)
    android = await make_category("Android", parent=phones)
    books = await make_category("Books", sort_order=1)
    return electronics, phones, android, books


class TestMoveCategory:
    async def test_reparent(self, db, tree):
        electronics, phones, android, books = tree

        moved = await service.move_category(phones.id, books.id, None, db)

        assert moved.parent_id == books.id
        assert (await service.get_parent_map(db))[android.id] == phones.id

    async def test_move_to_root_with_sort_order(self, db, tree):
        _, phones, _, _ = tree

        moved = await service.move_category(phones.id, None, 5, db)

        assert moved.parent_id is None
        assert moved.sort_order == 5

    async def test_sort_order_only_keeps_parent(self, db, tree):
        electronics, phones, _, _ = tree

        moved = await service.move_category(phones.id, electronics.id, 3, db)

        assert moved.parent_id == electronics.id
        assert moved.sort_order == 3

    async def test_self_parent_rejected(self, db, tree):
        _, phones, _, _ = tree

        with pytest.raises(InvalidParentException):
            await service.move_category(phones.id, phones.id, None, db)

    async def test_descendant_parent_rejected_and_nothing_changes(self, db, tree):
        electronics, _, android, _ = tree

        with pytest.raises(CircularReferenceException):
            await service.move_category(electronics.id, android.id, None, db)

        await db.refresh(electronics)
        assert electronics.parent_id is None

    async def test_missing_parent(self, db, tree):
        _, phones, _, _ = tree

        with pytest.raises(NotFoundException) as exc_info:
            await service.move_category(phones.id, 999, None, db)

        assert exc_info.value.detail == "Parent category with ID 999 not found"

    async def test_missing_category(self, db, tree):
        with pytest.raises(NotFoundException) as exc_info:
            await service.move_category(999, None, None, db)

        assert exc_info.value.detail == "Category with ID 999 not found"


class TestCreateCategory:
    async def test_generates_slug(self, db):
        category = await service.create_category(CategoryCreate(name="Home & Garden"), db)

        assert category.slug == "home-garden"
        assert category.parent_id is None

    async def test_duplicate_generated_slug_gets_suffix(self, db, make_category):
        await make_category("Toys")

        category = await service.create_category(CategoryCreate(name="Toys"), db)

        assert category.slug.startswith("toys-")

    async def test_duplicate_explicit_slug(self, db, make_category):
        await make_category("Toys")

        with pytest.raises(ConflictException):
            await service.create_category(CategoryCreate(name="Games", slug="toys"), db)

    async def test_unknown_parent(self, db):
        with pytest.raises(NotFoundException):
            await service.create_category(CategoryCreate(name="Orphan", parent_id=42), db)

    async def test_description_is_sanitized(self, db):
        category = await service.create_category(
            CategoryCreate(name="Shoes", description="<b>Nice</b> shoes<script>x</script>"), db
        )

        assert "<" not in category.description
        assert category.description.startswith("Nice shoes")


class TestUpdateCategory:
    async def test_parent_change_goes_through_cycle_check(self, db, tree):
        electronics, _, android, _ = tree

        with pytest.raises(CircularReferenceException) as exc_info:
            await service.update_category(electronics.id, CategoryUpdate(parent_id=android.id), db)

        assert exc_info.value.field == "parent_id"

    async def test_self_parent(self, db, tree):
        electronics, _, _, _ = tree

        with pytest.raises(InvalidParentException):
            await service.update_category(electronics.id, CategoryUpdate(parent_id=electronics.id), db)

    async def test_rename_regenerates_slug(self, db, tree):
        _, _, _, books = tree

        updated = await service.update_category(books.id, CategoryUpdate(name="Used Books"), db)

        assert updated.name == "Used Books"
        assert updated.slug == "used-books"

    async def test_slug_conflict(self, db, tree):
        _, _, _, books = tree

        with pytest.raises(ConflictException):
            await service.update_category(books.id, CategoryUpdate(slug="phones"), db)

    async def test_only_given_fields_change(self, db, tree):
        _, phones, _, _ = tree

        updated = await service.update_category(phones.id, CategoryUpdate(is_active=False), db)

        assert updated.is_active is False
        assert updated.name == "Phones"
        assert updated.parent_id is not None


class TestDeleteCategory:
    async def test_with_children(self, db, tree):
        electronics, _, _, _ = tree

        with pytest.raises(ConflictException) as exc_info:
            await service.delete_category(electronics.id, db)

        assert "1 child categories" in exc_info.value.detail

    async def test_with_products(self, db, tree, make_product):
        _, _, _, books = tree
        await make_product("Novel", category=books)

        with pytest.raises(ConflictException) as exc_info:
            await service.delete_category(books.id, db)

        assert "1 associated products" in exc_info.value.detail

    async def test_leaf(self, db, tree):
        _, _, android, _ = tree

        deleted = await service.delete_category(android.id, db)

        assert deleted.id == android.id
        assert android.id not in await service.get_parent_map(db)


class TestReorder:
    async def test_assigns_positions_in_list_order(self, db, make_category):
        a = await make_category("A", sort_order=0)
        b = await make_category("B", sort_order=1)
        c = await make_category("C", sort_order=2)

        categories, previous = await service.reorder_categories([c.id, a.id, b.id], db)

        assert [(x.id, x.sort_order) for x in categories] == [(c.id, 0), (a.id, 1), (b.id, 2)]
        assert previous == {a.id: 0, b.id: 1, c.id: 2}

    async def test_duplicates(self, db, make_category):
        a = await make_category("A")

        with pytest.raises(BadRequestException):
            await service.reorder_categories([a.id, a.id], db)

    async def test_missing(self, db, make_category):
        a = await make_category("A")

        with pytest.raises(NotFoundException) as exc_info:
            await service.reorder_categories([a.id, 77], db)

        assert "77" in exc_info.value.detail


class TestQueries:
    async def test_path(self, db, tree):
        electronics, phones, android, _ = tree

        path = await service.get_category_path(android.id, db)

        assert [c.id for c in path] == [electronics.id, phones.id, android.id]

    async def test_tree_skips_inactive(self, db, tree, make_category):
        electronics, _, _, _ = tree
        await make_category("Hidden", parent=electronics, is_active=False)

        roots = await service.get_category_tree(db)

        assert [r["name"] for r in roots] == ["Electronics", "Books"]
        assert [c["name"] for c in roots[0]["children"]] == ["Phones"]
        assert roots[0]["children"][0]["children"][0]["level"] == 2

    async def test_list_filters(self, db, tree, make_product):
        electronics, phones, _, books = tree
        await make_product("Novel", category=books)

        roots, total = await service.list_categories(CategoryFilters(root_only=True), db)
        assert total == 2
        assert [r["id"] for r in roots] == [electronics.id, books.id]

        children, _ = await service.list_categories(CategoryFilters(parent_id=electronics.id), db)
        assert [c["id"] for c in children] == [phones.id]

        with_products, total = await service.list_categories(CategoryFilters(has_products=True), db)
        assert total == 1
        assert with_products[0]["product_count"] == 1

    async def test_detail_reflects_moves(self, db, tree):
        electronics, phones, _, books = tree
        detail = await service.get_category_detail(electronics.id, db)
        assert [c.id for c in detail["children"]] == [phones.id]

        await service.move_category(phones.id, books.id, None, db)

        detail = await service.get_category_detail(electronics.id, db)
        assert detail["children"] == []
        assert detail["parent"] is None
