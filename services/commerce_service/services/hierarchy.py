"""Category hierarchy maintenance.

Every category stores the ids of its ancestors (root first) and its depth,
so breadcrumbs and subtree reads are single queries. Moving a category
rewrites those fields for the category and its whole subtree inside one
transaction; moves touching the same tree are serialised by ``SubtreeLocks``.
"""

import asyncio
import uuid
from collections import deque
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Iterable, Optional

from libs.common.errors import InvalidInput, NotFound, StateConflict
from libs.common.logging import get_logger
from libs.common.slug import slugify
from services.commerce_service.models import AuditEntityType, Category
from services.commerce_service.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryTreeNode,
    CategoryUpdate,
)
from services.commerce_service.services.audit import log_audit
from sqlalchemy import String, cast, select, type_coerce
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def apply_parent(category: Category, parent: Optional[Category]) -> None:
    """Derive ``level`` and ``ancestors`` from ``parent`` (None = root)."""
    if parent is None:
        category.level = 0
        category.ancestors = []
    else:
        category.level = parent.level + 1
        category.ancestors = [*(parent.ancestors or []), str(parent.id)]


def root_key(category: Category) -> str:
    return category.ancestors[0] if category.ancestors else str(category.id)


class SubtreeLocks:
    """In-process locks keyed by root category id.

    A key's lock lives only while some move holds or waits for it.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def _acquire(self, key: str):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    @asynccontextmanager
    async def hold(self, keys: Iterable[str]):
        # Fixed acquisition order so two moves across the same trees can't deadlock
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys)):
                await stack.enter_async_context(self._acquire(key))
            yield


subtree_locks = SubtreeLocks()


async def _load_fresh(db: AsyncSession, category_id: uuid.UUID) -> Category:
    result = await db.execute(
        select(Category)
        .where(Category.id == category_id)
        .execution_options(populate_existing=True)
    )
    category = result.scalar_one_or_none()
    if not category:
        raise NotFound("Category not found")
    return category


async def cascade_descendants(db: AsyncSession, category: Category) -> int:
    """Rewrite hierarchy fields of every descendant of ``category``.

    Walks the subtree breadth-first using the already-updated parent for
    each level. Returns the number of descendants rewritten.
    """
    rewritten = 0
    frontier = deque([category])
    while frontier:
        parent = frontier.popleft()
        result = await db.execute(select(Category).where(Category.parent_id == parent.id))
        for child in result.scalars().all():
            apply_parent(child, parent)
            rewritten += 1
            frontier.append(child)
    return rewritten


async def reparent(
    db: AsyncSession,
    category: Category,
    new_parent: Optional[Category],
    *,
    performed_by: str = "system",
    locks: SubtreeLocks = subtree_locks,
) -> int:
    """Move ``category`` under ``new_parent`` (None = make root) and commit.

    Raises InvalidInput when the move would create a cycle. Returns the
    number of descendants whose hierarchy fields were rewritten.
    """
    new_parent_id = new_parent.id if new_parent else None

    while True:
        keys = {root_key(category)}
        if new_parent is not None:
            keys.add(root_key(new_parent))

        async with locks.hold(keys):
            # Re-read under the lock; another move may have changed either tree
            category = await _load_fresh(db, category.id)
            new_parent = await _load_fresh(db, new_parent_id) if new_parent_id else None
            current = {root_key(category)}
            if new_parent is not None:
                current.add(root_key(new_parent))
            if not current <= keys:
                continue

            if new_parent is not None and (
                new_parent.id == category.id
                or str(category.id) in (new_parent.ancestors or [])
            ):
                raise InvalidInput("A category cannot be moved under itself or its descendants")

            old_value = {
                "parent_id": str(category.parent_id) if category.parent_id else None,
                "level": category.level,
            }
            category.parent_id = new_parent_id
            apply_parent(category, new_parent)
            rewritten = await cascade_descendants(db, category)

            log_audit(
                db,
                entity_type=AuditEntityType.CATEGORY,
                entity_id=category.id,
                action="reparented",
                performed_by=performed_by,
                old_value=old_value,
                new_value={
                    "parent_id": str(new_parent_id) if new_parent_id else None,
                    "level": category.level,
                    "descendants_updated": rewritten,
                },
            )
            await db.commit()

        logger.info(
            "Category %s reparented under %s (%d descendants updated)",
            category.slug,
            new_parent.slug if new_parent else "root",
            rewritten,
        )
        return rewritten


# ============================================================================
# WRITES
# ============================================================================


async def _ensure_slug_free(
    db: AsyncSession, slug: str, exclude_id: Optional[uuid.UUID] = None
) -> None:
    query = select(Category.id).where(Category.slug == slug)
    if exclude_id:
        query = query.where(Category.id != exclude_id)
    if await db.scalar(query):
        raise StateConflict(f"Category slug '{slug}' already exists")


async def create_category(
    db: AsyncSession, data: CategoryCreate, performed_by: str
) -> Category:
    slug = data.slug or slugify(data.name)
    if not slug:
        raise InvalidInput("Category name must contain letters or digits")
    await _ensure_slug_free(db, slug)

    parent = None
    if data.parent_id:
        parent = await db.get(Category, data.parent_id)
        if not parent:
            raise NotFound("Parent category not found")

    category = Category(
        **data.model_dump(exclude={"slug"}),
        slug=slug,
        created_by=performed_by,
        updated_by=performed_by,
    )
    apply_parent(category, parent)
    db.add(category)
    await db.flush()

    log_audit(
        db,
        entity_type=AuditEntityType.CATEGORY,
        entity_id=category.id,
        action="created",
        performed_by=performed_by,
        new_value={"name": category.name, "slug": slug, "level": category.level},
    )
    await db.commit()
    return category


async def update_category(
    db: AsyncSession,
    category_id: uuid.UUID,
    data: CategoryUpdate,
    performed_by: str,
) -> Category:
    category = await db.get(Category, category_id)
    if not category:
        raise NotFound("Category not found")

    updates = data.model_dump(exclude_unset=True)

    # Validate everything before the move; reparent commits on its own
    if updates.get("slug"):
        await _ensure_slug_free(db, updates["slug"], exclude_id=category.id)
    elif "slug" in updates:
        updates.pop("slug")

    move = False
    new_parent = None
    if "parent_id" in updates:
        parent_id = updates.pop("parent_id")
        move = parent_id != category.parent_id
        if move and parent_id:
            new_parent = await db.get(Category, parent_id)
            if not new_parent:
                raise NotFound("Parent category not found")

    if move:
        # Re-reads the row under the tree lock
        await reparent(db, category, new_parent, performed_by=performed_by)

    for field, value in updates.items():
        setattr(category, field, value)
    category.updated_by = performed_by

    await db.commit()
    return category


# ============================================================================
# QUERIES
# ============================================================================


def _ordered(query):
    return query.order_by(Category.sort_order, Category.name)


async def list_categories(db: AsyncSession, active_only: bool = True) -> list[Category]:
    query = select(Category)
    if active_only:
        query = query.where(Category.is_active.is_(True))
    result = await db.execute(_ordered(query))
    return list(result.scalars().all())


async def find_roots(db: AsyncSession) -> list[Category]:
    query = select(Category).where(
        Category.parent_id.is_(None), Category.is_active.is_(True)
    )
    result = await db.execute(_ordered(query))
    return list(result.scalars().all())


async def find_by_level(db: AsyncSession, level: int) -> list[Category]:
    query = select(Category).where(
        Category.level == level, Category.is_active.is_(True)
    )
    result = await db.execute(_ordered(query))
    return list(result.scalars().all())


async def find_featured(db: AsyncSession) -> list[Category]:
    query = select(Category).where(
        Category.is_featured.is_(True), Category.is_active.is_(True)
    )
    result = await db.execute(_ordered(query))
    return list(result.scalars().all())


async def build_tree(db: AsyncSession) -> list[CategoryTreeNode]:
    """Flat list of active categories, each flagged with ``has_children``."""
    categories = await list_categories(db)
    parent_ids = set(
        (await db.execute(select(Category.parent_id).where(Category.parent_id.isnot(None))))
        .scalars()
        .all()
    )
    return [
        CategoryTreeNode(
            **CategoryResponse.model_validate(category).model_dump(),
            has_children=category.id in parent_ids,
        )
        for category in categories
    ]


async def get_by_slug(
    db: AsyncSession, slug: str, active_only: bool = True
) -> Category:
    query = select(Category).where(Category.slug == slug)
    if active_only:
        query = query.where(Category.is_active.is_(True))
    category = (await db.execute(query)).scalar_one_or_none()
    if not category:
        raise NotFound("Category not found")
    return category


async def find_path(db: AsyncSession, category_id: uuid.UUID) -> list[Category]:
    """Ancestors in root-first order, followed by the category itself."""
    category = await db.get(Category, category_id)
    if not category:
        raise NotFound("Category not found")

    ancestor_ids = category.ancestor_ids
    if not ancestor_ids:
        return [category]
    result = await db.execute(select(Category).where(Category.id.in_(ancestor_ids)))
    by_id = {c.id: c for c in result.scalars().all()}
    return [by_id[a] for a in ancestor_ids if a in by_id] + [category]


async def list_subcategories(db: AsyncSession, slug: str) -> list[Category]:
    parent = await get_by_slug(db, slug)
    query = select(Category).where(
        Category.parent_id == parent.id, Category.is_active.is_(True)
    )
    result = await db.execute(_ordered(query))
    return list(result.scalars().all())


def has_ancestor(dialect_name: str, key: str):
    """Filter for categories whose ``ancestors`` list contains ``key``."""
    if dialect_name == "postgresql":
        return type_coerce(Category.ancestors, JSONB).contains([key])
    # Ids are stored as quoted JSON strings
    return cast(Category.ancestors, String).like(f'%"{key}"%')


async def subtree_ids(db: AsyncSession, category: Category) -> list[uuid.UUID]:
    """Ids of ``category`` and every category below it."""
    dialect_name = db.get_bind().dialect.name
    result = await db.execute(
        select(Category.id).where(has_ancestor(dialect_name, str(category.id)))
    )
    return [category.id, *result.scalars().all()]
