import asyncio
import logging
from contextlib import nullcontext
from typing import Dict, Iterable, List, Optional, Set

from pydantic import TypeAdapter
from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from autoparts.core.config import settings
from autoparts.core.exceptions import (
    AlreadyExistsError,
    BaseAppException,
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
)
from autoparts.core.redis import CacheBackend, CacheKeys, CacheTTL
from autoparts.db.base import utcnow
from autoparts.models.catalog.category import Category
from autoparts.models.catalog.product import Product
from autoparts.models.catalog.product_category import ProductCategory
from autoparts.schemas.catalog.category import (
    CategoryBreadcrumb,
    CategoryCreate,
    CategoryInDB,
    CategoryRead,
    CategoryRef,
    CategoryTreeNode,
    CategoryUpdate,
)
from autoparts.utils.seo import SeoUtil

logger = logging.getLogger(__name__)

TREE_CACHE_KEY = f"{CacheKeys.CATEGORIES}tree"
TREE_ALL_CACHE_KEY = f"{CacheKeys.CATEGORIES}tree:all"
CATEGORIES_SITEMAP_CACHE_KEY = f"{CacheKeys.SEO}sitemap:categories"

# Fields that keep their stored value when the patch carries an explicit null
_KEEP_ON_NULL = {"name", "sort_order", "is_active", "meta_title", "meta_description", "meta_keywords"}

# Structural writes (attach, move, delete) in this process are serialized so a check and its write cannot interleave
_tree_lock = asyncio.Lock()

_tree_adapter = TypeAdapter(List[CategoryTreeNode])


def category_cache_key(category_id: str) -> str:
    return f"{CacheKeys.CATEGORY}{category_id}"


class CategoryService:
    """Category tree management: uniqueness, parent linkage, cycle prevention,
    breadcrumbs, product aggregation and guarded soft deletion."""

    def __init__(self, session: AsyncSession, cache: CacheBackend):
        self.session = session
        self.cache = cache

    # ---------- Internal queries ----------
    async def _get_live_category(self, category_id: str, for_update: bool = False) -> Optional[Category]:
        query = select(Category).where(
            Category.id == category_id,
            Category.deleted_at.is_(None)
        )
        if for_update:
            # Row lock on backends that support it (ignored by SQLite)
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def _get_children(self, parent_ids: Iterable[str], include_inactive: bool = False) -> List[Category]:
        parent_ids = list(parent_ids)
        if not parent_ids:
            return []

        query = select(Category).where(
            Category.parent_id.in_(parent_ids),
            Category.deleted_at.is_(None)
        )
        if not include_inactive:
            query = query.where(Category.is_active == True)

        result = await self.session.execute(query.order_by(Category.sort_order, Category.name))
        return list(result.scalars().all())

    async def _count_products_by_category(self, category_ids: Iterable[str]) -> Dict[str, int]:
        """Live product associations per category id (missing ids have none)."""
        category_ids = list(category_ids)
        if not category_ids:
            return {}

        result = await self.session.execute(
            select(ProductCategory.category_id, func.count())
            .join(Product, Product.id == ProductCategory.product_id)
            .where(
                ProductCategory.category_id.in_(category_ids),
                and_(Product.deleted_at.is_(None), Product.is_active == True)
            )
            .group_by(ProductCategory.category_id)
        )
        return {category_id: count for category_id, count in result.all()}

    async def _count_children(self, category_id: str) -> int:
        result = await self.session.execute(
            select(func.count(Category.id)).where(
                Category.parent_id == category_id,
                Category.deleted_at.is_(None)
            )
        )
        return result.scalar() or 0

    async def _build_read(self, category: Category) -> CategoryRead:
        parent = None
        if category.parent_id:
            parent = await self._get_live_category(category.parent_id)
        children = await self._get_children([category.id], include_inactive=True)
        counts = await self._count_products_by_category([category.id])

        return CategoryRead(
            **CategoryInDB.model_validate(category).model_dump(),
            parent=CategoryRef.model_validate(parent) if parent else None,
            children=[CategoryRef.model_validate(child) for child in children],
            product_count=counts.get(category.id, 0),
            canonical_url=SeoUtil.category_canonical_url(category.slug),
        )

    # ---------- Cache ----------
    async def _invalidate_tree_cache(self):
        await self.cache.delete(TREE_CACHE_KEY, TREE_ALL_CACHE_KEY, CATEGORIES_SITEMAP_CACHE_KEY)

    async def _invalidate_category_cache(self, category_id: str):
        await self.cache.delete(category_cache_key(category_id))
        await self._invalidate_tree_cache()

    # ---------- Getters ----------
    async def find_by_id(self, category_id: str) -> Optional[CategoryRead]:
        """Category with parent, live children and direct product count.

        Soft-deleted categories are never returned; inactive ones are.
        """
        cache_key = category_cache_key(category_id)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return CategoryRead.model_validate_json(cached)

        category = await self._get_live_category(category_id)
        if not category:
            return None

        read = await self._build_read(category)
        await self.cache.set(cache_key, read.model_dump_json(), CacheTTL.CATEGORY)
        return read

    async def find_by_slug(self, slug: str) -> Optional[CategoryRead]:
        result = await self.session.execute(
            select(Category).where(
                Category.slug == slug,
                Category.deleted_at.is_(None)
            )
        )
        category = result.scalar_one_or_none()
        if not category:
            return None
        return await self._build_read(category)

    async def get_categories(self, include_inactive: bool = False) -> List[CategoryInDB]:
        """Flat list of live categories, roots first, then by sort order and name."""
        query = select(Category).where(Category.deleted_at.is_(None))
        if not include_inactive:
            query = query.where(Category.is_active == True)

        result = await self.session.execute(
            query.order_by(Category.parent_id.asc().nulls_first(), Category.sort_order, Category.name)
        )
        return [CategoryInDB.model_validate(category) for category in result.scalars().all()]

    async def get_category_tree(self, include_inactive: bool = False) -> List[CategoryTreeNode]:
        cache_key = TREE_ALL_CACHE_KEY if include_inactive else TREE_CACHE_KEY
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return _tree_adapter.validate_json(cached)

        tree = await self._build_tree(include_inactive)
        await self.cache.set(cache_key, _tree_adapter.dump_json(tree).decode(), CacheTTL.CATEGORIES)
        return tree

    async def _build_tree(self, include_inactive: bool) -> List[CategoryTreeNode]:
        query = select(Category).where(
            Category.parent_id.is_(None),
            Category.deleted_at.is_(None)
        )
        if not include_inactive:
            query = query.where(Category.is_active == True)
        result = await self.session.execute(query.order_by(Category.sort_order, Category.name))

        # Level-by-level walk; `ordered` ends up parents-before-children
        ordered: List[Category] = []
        depth: Dict[str, int] = {}
        level = list(result.scalars().all())
        current_depth = 1
        while level:
            for category in level:
                depth[category.id] = current_depth
                ordered.append(category)
            children = await self._get_children([c.id for c in level], include_inactive)
            level = [child for child in children if child.id not in depth]
            current_depth += 1

        direct_counts = await self._count_products_by_category(depth.keys())
        totals = {category_id: direct_counts.get(category_id, 0) for category_id in depth}
        for category in reversed(ordered):
            if category.parent_id in totals:
                totals[category.parent_id] += totals[category.id]

        forest: List[CategoryTreeNode] = []
        nodes: Dict[str, CategoryTreeNode] = {}
        for category in ordered:
            if depth[category.id] > settings.CATEGORY_TREE_DEPTH:
                continue
            node = CategoryTreeNode(
                **CategoryInDB.model_validate(category).model_dump(),
                product_count=direct_counts.get(category.id, 0),
                total_product_count=totals[category.id],
                canonical_url=SeoUtil.category_canonical_url(category.slug),
            )
            nodes[category.id] = node
            if depth[category.id] == 1:
                forest.append(node)
            else:
                nodes[category.parent_id].children.append(node)

        return forest

    async def get_subcategories(self, parent_id: str, include_inactive: bool = False) -> List[CategoryRead]:
        parent = await self._get_live_category(parent_id)
        if not parent:
            raise NotFoundError("Parent category not found", parent_id=parent_id)

        children = await self._get_children([parent_id], include_inactive)
        grandchildren = await self._get_children([c.id for c in children], include_inactive)
        counts = await self._count_products_by_category(c.id for c in children)
        parent_ref = CategoryRef.model_validate(parent)

        by_parent: Dict[str, List[CategoryRef]] = {}
        for grandchild in grandchildren:
            by_parent.setdefault(grandchild.parent_id, []).append(CategoryRef.model_validate(grandchild))

        return [
            CategoryRead(
                **CategoryInDB.model_validate(child).model_dump(),
                parent=parent_ref,
                children=by_parent.get(child.id, []),
                product_count=counts.get(child.id, 0),
                canonical_url=SeoUtil.category_canonical_url(child.slug),
            )
            for child in children
        ]

    async def get_all_descendant_ids(self, category_id: str) -> Set[str]:
        """Ids of the category and every live descendant, regardless of active flag."""
        collected = {category_id}
        frontier = [category_id]
        while frontier:
            result = await self.session.execute(
                select(Category.id).where(
                    Category.parent_id.in_(frontier),
                    Category.deleted_at.is_(None)
                )
            )
            frontier = [child_id for child_id in result.scalars().all() if child_id not in collected]
            collected.update(frontier)
        return collected

    async def get_category_path(self, category_id: str) -> List[CategoryBreadcrumb]:
        """Breadcrumbs from the root down to the category."""
        current = await self._get_live_category(category_id)
        if not current:
            raise NotFoundError("Category not found", category_id=category_id)

        path: List[CategoryBreadcrumb] = []
        seen: Set[str] = set()
        while current is not None:
            if current.id in seen or len(path) >= settings.CATEGORY_MAX_PATH_DEPTH:
                logger.error(f"Category hierarchy is corrupted above {category_id}, stopped at {current.id}")
                raise InvalidArgumentError("Category hierarchy is corrupted", category_id=category_id)
            seen.add(current.id)
            path.insert(0, CategoryBreadcrumb.model_validate(current))

            if not current.parent_id:
                break
            parent_id = current.parent_id
            current = await self._get_live_category(parent_id)
            if current is None:
                logger.error(f"Category hierarchy is corrupted above {category_id}, missing parent {parent_id}")
                raise InvalidArgumentError(
                    "Category hierarchy is corrupted",
                    category_id=category_id,
                    parent_id=parent_id,
                )

        return path

    async def get_product_count(self, category_id: str, include_subcategories: bool = False) -> int:
        if include_subcategories:
            category_ids = await self.get_all_descendant_ids(category_id)
        else:
            category_ids = {category_id}

        counts = await self._count_products_by_category(category_ids)
        return sum(counts.values())

    # ---------- Create / Update / Delete ----------
    async def create_category(self, data: CategoryCreate) -> CategoryRead:
        try:
            # Children are only attached under the tree lock so a concurrent delete cannot orphan them
            async with _tree_lock if data.parent_id else nullcontext():
                exists = await self.session.execute(
                    select(Category.id).where(
                        Category.slug == data.slug,
                        Category.deleted_at.is_(None)
                    ).limit(1)
                )
                if exists.scalar_one_or_none() is not None:
                    raise AlreadyExistsError("Category with this slug already exists", slug=data.slug)

                parent = None
                if data.parent_id:
                    parent = await self._get_live_category(data.parent_id, for_update=True)
                    if not parent:
                        raise NotFoundError("Parent category not found", parent_id=data.parent_id)

                category = Category(
                    name=data.name,
                    slug=data.slug,
                    description=data.description,
                    parent_id=data.parent_id or None,
                    sort_order=data.sort_order,
                    is_active=data.is_active,
                    meta_title=data.meta_title or SeoUtil.category_meta_title(data.name),
                    meta_description=data.meta_description
                    or SeoUtil.category_meta_description(data.name, data.description),
                    meta_keywords=data.meta_keywords
                    or SeoUtil.category_meta_keywords(data.name, parent.name if parent else None),
                )
                self.session.add(category)
                await self.session.commit()
                await self.session.refresh(category)

        except BaseAppException:
            await self.session.rollback()
            raise
        except IntegrityError:
            # Concurrent create won the race for the slug index
            await self.session.rollback()
            raise AlreadyExistsError("Category with this slug already exists", slug=data.slug)
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating category '{data.slug}': {e}")
            raise

        await self._invalidate_tree_cache()
        logger.info(f"Category created: {category.slug} ({category.id})")
        return await self._build_read(category)

    async def update_category(self, category_id: str, data: CategoryUpdate) -> CategoryRead:
        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if not (value is None and field in _KEEP_ON_NULL)
        }
        moves = "parent_id" in changes

        try:
            async with _tree_lock if moves else nullcontext():
                category = await self._get_live_category(category_id)
                if not category:
                    raise NotFoundError("Category not found", category_id=category_id)

                new_parent_id = changes.get("parent_id")
                if moves and new_parent_id is not None:
                    await self._validate_new_parent(category_id, new_parent_id)

                for field, value in changes.items():
                    setattr(category, field, value)

                if moves and new_parent_id is not None:
                    await self.session.flush()
                    await self._verify_acyclic(category_id)

                await self.session.commit()
                await self.session.refresh(category)

        except BaseAppException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating category {category_id}: {e}")
            raise

        await self._invalidate_category_cache(category_id)
        logger.info(f"Category updated: {category.slug} ({category.id}), fields: {sorted(changes)}")
        return await self._build_read(category)

    async def _validate_new_parent(self, category_id: str, new_parent_id: str):
        if new_parent_id == category_id:
            raise InvalidArgumentError("Category cannot be its own parent", category_id=category_id)

        descendant_ids = await self.get_all_descendant_ids(category_id)
        if new_parent_id in descendant_ids:
            raise InvalidArgumentError(
                "Cannot create a circular category dependency",
                category_id=category_id,
                parent_id=new_parent_id,
            )

        parent = await self._get_live_category(new_parent_id, for_update=True)
        if not parent:
            raise NotFoundError("Parent category not found", parent_id=new_parent_id)

    async def _verify_acyclic(self, category_id: str):
        """Walk up from the (flushed) category; reaching it again means a concurrent move closed a loop."""
        result = await self.session.execute(select(Category.parent_id).where(Category.id == category_id))
        ancestor_id = result.scalar_one_or_none()
        steps = 0
        while ancestor_id is not None:
            if ancestor_id == category_id or steps >= settings.CATEGORY_MAX_PATH_DEPTH:
                raise InvalidArgumentError(
                    "Cannot create a circular category dependency",
                    category_id=category_id,
                )
            result = await self.session.execute(select(Category.parent_id).where(Category.id == ancestor_id))
            ancestor_id = result.scalar_one_or_none()
            steps += 1

    def _ensure_deletable(self, category_id: str, children_count: int, product_count: int):
        if not children_count and not product_count:
            return
        problems = []
        if children_count:
            problems.append(f"it has {children_count} subcategories")
        if product_count:
            problems.append(f"it has {product_count} products")
        raise ConflictError(
            f"Cannot delete category: {' and '.join(problems)}",
            category_id=category_id,
            children_count=children_count,
            product_count=product_count,
        )

    async def _count_dependents(self, category_id: str):
        children_count = await self._count_children(category_id)
        product_count = (await self._count_products_by_category([category_id])).get(category_id, 0)
        return children_count, product_count

    async def soft_delete_category(self, category_id: str) -> None:
        try:
            async with _tree_lock:
                category = await self._get_live_category(category_id, for_update=True)
                if not category:
                    raise NotFoundError("Category not found", category_id=category_id)

                self._ensure_deletable(category_id, *await self._count_dependents(category_id))

                category.deleted_at = utcnow()
                await self.session.flush()
                # Dependents committed by another process since the first count still block the delete
                self._ensure_deletable(category_id, *await self._count_dependents(category_id))

                await self.session.commit()

        except BaseAppException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting category {category_id}: {e}")
            raise

        await self._invalidate_category_cache(category_id)
        logger.info(f"Category soft-deleted: {category_id}")
