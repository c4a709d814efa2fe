"""Unit tests for the category hierarchy (ancestors/level maintenance)."""

import asyncio
import random
import uuid

import pytest
from libs.common.errors import InvalidInput, NotFound, StateConflict
from services.commerce_service.models import Category, StoreAuditLog
from services.commerce_service.schemas import CategoryCreate, CategoryUpdate
from services.commerce_service.services.hierarchy import (
    SubtreeLocks,
    apply_parent,
    build_tree,
    create_category,
    find_by_level,
    find_path,
    find_roots,
    reparent,
    subtree_ids,
    update_category,
)
from sqlalchemy import select
from tests.factories import CategoryFactory


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _add(db, *categories):
    for category in categories:
        db.add(category)
    await db.commit()


async def _all_by_id(db) -> dict:
    result = await db.execute(
        select(Category).execution_options(populate_existing=True)
    )
    return {c.id: c for c in result.scalars().all()}


def _assert_hierarchy_consistent(categories: dict):
    for category in categories.values():
        if category.parent_id is None:
            assert category.level == 0
            assert category.ancestors == []
        else:
            parent = categories[category.parent_id]
            assert category.ancestors == parent.ancestors + [str(parent.id)]
        assert category.level == len(category.ancestors)


# ---------------------------------------------------------------------------
# apply_parent
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_apply_parent_none_makes_root():
    category = Category(name="Loose", slug="loose", level=4, ancestors=["x"])
    apply_parent(category, None)
    assert category.level == 0
    assert category.ancestors == []


@pytest.mark.unit
def test_apply_parent_extends_parent_chain():
    root = CategoryFactory.create()
    child = CategoryFactory.create(parent=root)
    grandchild = CategoryFactory.create(parent=child)

    assert grandchild.level == 2
    assert grandchild.ancestors == [str(root.id), str(child.id)]


# ---------------------------------------------------------------------------
# reparent
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reparent_root_under_new_root_cascades(db_session):
    """A -> B -> C, then A moves under D: the whole chain shifts one level."""
    d = CategoryFactory.create(slug="d")
    a = CategoryFactory.create(slug="a")
    b = CategoryFactory.create(parent=a, slug="b")
    c = CategoryFactory.create(parent=b, slug="c")
    await _add(db_session, d, a, b, c)

    rewritten = await reparent(db_session, a, d)

    assert rewritten == 2
    categories = await _all_by_id(db_session)
    assert categories[a.id].level == 1
    assert categories[a.id].ancestors == [str(d.id)]
    assert categories[b.id].level == 2
    assert categories[b.id].ancestors == [str(d.id), str(a.id)]
    assert categories[c.id].level == 3
    assert categories[c.id].ancestors == [str(d.id), str(a.id), str(b.id)]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reparent_to_root(db_session):
    a = CategoryFactory.create()
    b = CategoryFactory.create(parent=a)
    c = CategoryFactory.create(parent=b)
    await _add(db_session, a, b, c)

    await reparent(db_session, b, None)

    categories = await _all_by_id(db_session)
    assert categories[b.id].parent_id is None
    assert categories[b.id].level == 0
    assert categories[c.id].ancestors == [str(b.id)]
    assert categories[c.id].level == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reparent_under_own_descendant_rejected(db_session):
    a = CategoryFactory.create()
    b = CategoryFactory.create(parent=a)
    c = CategoryFactory.create(parent=b)
    await _add(db_session, a, b, c)

    with pytest.raises(InvalidInput):
        await reparent(db_session, a, c)
    with pytest.raises(InvalidInput):
        await reparent(db_session, a, a)

    categories = await _all_by_id(db_session)
    _assert_hierarchy_consistent(categories)
    assert categories[a.id].parent_id is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reparent_writes_audit_entry(db_session):
    a = CategoryFactory.create()
    d = CategoryFactory.create()
    await _add(db_session, a, d)

    await reparent(db_session, a, d, performed_by="admin-1")

    logs = (await db_session.execute(select(StoreAuditLog))).scalars().all()
    assert len(logs) == 1
    assert logs[0].action == "reparented"
    assert logs[0].performed_by == "admin-1"
    assert logs[0].new_value["parent_id"] == str(d.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_random_reparent_sequences_keep_invariant(db_session):
    """After any sequence of valid moves every node matches its parent chain."""
    rng = random.Random(1234)
    nodes = [CategoryFactory.create(slug=f"node-{i}") for i in range(12)]
    await _add(db_session, *nodes)
    ids = [n.id for n in nodes]

    for _ in range(40):
        categories = await _all_by_id(db_session)
        target = categories[rng.choice(ids)]
        candidates = [
            c
            for c in categories.values()
            if c.id != target.id and str(target.id) not in c.ancestors
        ]
        new_parent = rng.choice(candidates + [None])
        await reparent(db_session, target, new_parent)

    _assert_hierarchy_consistent(await _all_by_id(db_session))


# ---------------------------------------------------------------------------
# create / update
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_category_derives_slug_and_level(db_session):
    root = await create_category(
        db_session, CategoryCreate(name="Home & Garden"), performed_by="admin-1"
    )
    child = await create_category(
        db_session,
        CategoryCreate(name="Outdoor Furniture", parent_id=root.id),
        performed_by="admin-1",
    )

    assert root.slug == "home-garden"
    assert root.level == 0
    assert child.level == 1
    assert child.ancestors == [str(root.id)]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_category_missing_parent(db_session):
    import uuid

    with pytest.raises(NotFound):
        await create_category(
            db_session,
            CategoryCreate(name="Orphan", parent_id=uuid.uuid4()),
            performed_by="admin-1",
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_category_parent_change_moves_subtree(db_session):
    a = CategoryFactory.create()
    b = CategoryFactory.create(parent=a)
    d = CategoryFactory.create()
    await _add(db_session, a, b, d)

    updated = await update_category(
        db_session,
        a.id,
        CategoryUpdate(parent_id=d.id, name="Renamed"),
        performed_by="admin-1",
    )

    assert updated.name == "Renamed"
    assert updated.level == 1
    categories = await _all_by_id(db_session)
    assert categories[b.id].ancestors == [str(d.id), str(a.id)]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_category_duplicate_slug_leaves_tree_untouched(db_session):
    """A move combined with a taken slug is rejected as a whole."""
    a = CategoryFactory.create(slug="garden")
    b = CategoryFactory.create(slug="kitchen")
    child = CategoryFactory.create(slug="pots")
    await _add(db_session, a, b, child)
    child_id = child.id

    with pytest.raises(StateConflict):
        await update_category(
            db_session,
            child_id,
            CategoryUpdate(parent_id=a.id, slug="kitchen"),
            performed_by="admin-1",
        )
    await db_session.rollback()

    row = (await _all_by_id(db_session))[child_id]
    assert row.parent_id is None
    assert row.level == 0
    assert row.ancestors == []
    assert row.slug == "pots"
    audit = await db_session.scalar(
        select(StoreAuditLog).where(StoreAuditLog.entity_id == child_id)
    )
    assert audit is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_category_missing_parent_changes_nothing(db_session):
    category = CategoryFactory.create(slug="tools")
    await _add(db_session, category)
    category_id = category.id

    with pytest.raises(NotFound):
        await update_category(
            db_session,
            category_id,
            CategoryUpdate(parent_id=uuid.uuid4(), name="Renamed"),
            performed_by="admin-1",
        )
    await db_session.rollback()

    row = (await _all_by_id(db_session))[category_id]
    assert row.name == "Tools"
    assert row.level == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_subtree_locks_are_released_after_moves(db_session):
    locks = SubtreeLocks()
    a = CategoryFactory.create()
    b = CategoryFactory.create()
    c = CategoryFactory.create(parent=b)
    await _add(db_session, a, b, c)

    await reparent(db_session, a, b, locks=locks)
    await reparent(db_session, c, None, locks=locks)

    assert len(locks) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_subtree_locks_serialise_holders_of_the_same_key():
    locks = SubtreeLocks()
    order = []

    async def hold(name):
        async with locks.hold(["root"]):
            order.append(f"{name}-in")
            await asyncio.sleep(0)
            order.append(f"{name}-out")

    await asyncio.gather(hold("first"), hold("second"))

    assert order == ["first-in", "first-out", "second-in", "second-out"]
    assert len(locks) == 0


# ---------------------------------------------------------------------------
# queries
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_query_helpers(db_session):
    electronics = CategoryFactory.create(slug="electronics", sort_order=1)
    books = CategoryFactory.create(slug="books", sort_order=2)
    phones = CategoryFactory.create(parent=electronics, slug="phones")
    cases = CategoryFactory.create(parent=phones, slug="cases")
    hidden = CategoryFactory.create(slug="hidden", is_active=False)
    await _add(db_session, electronics, books, phones, cases, hidden)

    roots = await find_roots(db_session)
    assert [c.slug for c in roots] == ["electronics", "books"]

    level_two = await find_by_level(db_session, 2)
    assert [c.slug for c in level_two] == ["cases"]

    path = await find_path(db_session, cases.id)
    assert [c.slug for c in path] == ["electronics", "phones", "cases"]

    tree = {node.slug: node.has_children for node in await build_tree(db_session)}
    assert tree == {"electronics": True, "books": False, "phones": True, "cases": False}

    assert set(await subtree_ids(db_session, electronics)) == {
        electronics.id,
        phones.id,
        cases.id,
    }
