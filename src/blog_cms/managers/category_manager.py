"""
# Category Manager

Query service for categories.

- **List active**: `is_active` categories ordered by `sort_order`, then `name`.
- **List with counts**: one aggregation that joins each category to the number of
  its **published** posts. Drafts and archived posts are not counted.
- **Delete**: refused while any non-archived post still references the category.

Category slugs are derived from the name alone (no timestamp suffix), so names and
slugs are both unique.
"""

from typing import Any, Dict, List, Mapping, Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from blog_cms.database import db_manager
from blog_cms.managers import blog_queries
from blog_cms.managers.logging_manager import get_logger
from blog_cms.models.blog_models import CategoryResponse, CreateCategoryRequest, PostStatus, UpdateCategoryRequest
from blog_cms.utils.blog_helpers import CATEGORY_PIPELINE, run_pipeline
from blog_cms.utils.errors import DomainConstraintError, NotFoundError, ValidationError

logger = get_logger(prefix="[Category Manager]")

CATEGORY_NOT_FOUND = "Category not found"
CATEGORY_EXISTS = "A category with this name already exists"
CATEGORY_HAS_POSTS = "Cannot delete category that has active posts. Please move or delete the posts first."


def post_count_pipeline() -> List[Dict[str, Any]]:
    """Active categories with `post_count` = number of published posts, in display order."""
    return [
        {"$match": {"is_active": True}},
        {
            "$lookup": {
                "from": "posts",
                "let": {"category_id": "$_id"},
                "pipeline": [
                    {
                        "$match": {
                            "$expr": {
                                "$and": [
                                    {"$eq": ["$category", "$$category_id"]},
                                    {"$eq": ["$status", PostStatus.PUBLISHED.value]},
                                ]
                            }
                        }
                    },
                    {"$count": "count"},
                ],
                "as": "_posts",
            }
        },
        {"$addFields": {"post_count": {"$ifNull": [{"$arrayElemAt": ["$_posts.count", 0]}, 0]}}},
        {"$project": {"_posts": 0}},
        {"$sort": {"sort_order": 1, "name": 1}},
    ]


class CategoryManager:
    def _categories(self):
        return db_manager.get_collection("categories")

    async def list_categories(self, with_counts: bool = False) -> List[CategoryResponse]:
        if with_counts:
            documents = await self._categories().aggregate(post_count_pipeline()).to_list(None)
        else:
            documents = (
                await self._categories().find({"is_active": True}).sort([("sort_order", 1), ("name", 1)]).to_list(None)
            )
        return [CategoryResponse.model_validate(doc) for doc in documents]

    async def count_published_posts(self, category_id: ObjectId) -> int:
        return await db_manager.get_collection("posts").count_documents(
            {"category": category_id, "status": PostStatus.PUBLISHED.value}
        )

    async def get_category(self, identifier: str) -> CategoryResponse:
        """
        Fetch a category by id or slug, with its published post count.

        Raises:
            NotFoundError: If nothing matches.
        """
        query = {"_id": ObjectId(identifier)} if blog_queries.is_object_id(identifier) else {"slug": identifier.lower()}
        document = await self._categories().find_one(query)
        if document is None:
            raise NotFoundError(CATEGORY_NOT_FOUND)

        document["post_count"] = await self.count_published_posts(document["_id"])
        return CategoryResponse.model_validate(document)

    async def _ensure_unique(self, name: str, slug: str, exclude_id: Optional[ObjectId] = None) -> None:
        query: Dict[str, Any] = {"$or": [{"name": name}, {"slug": slug}]}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if await self._categories().count_documents(query, limit=1):
            raise ValidationError(CATEGORY_EXISTS)

    async def create_category(self, payload: CreateCategoryRequest) -> CategoryResponse:
        """
        Raises:
            ValidationError: If the name is taken or yields an empty slug.
        """
        now = blog_queries.utc_now()
        document = payload.model_dump(mode="json")
        document.update(run_pipeline(CATEGORY_PIPELINE, None, document, now))
        if not document.get("slug"):
            raise ValidationError("Category name must contain letters or numbers")
        await self._ensure_unique(document["name"], document["slug"])

        document.update({"created_at": now, "updated_at": now})
        try:
            result = await self._categories().insert_one(document)
        except DuplicateKeyError as e:
            raise ValidationError(CATEGORY_EXISTS) from e

        document["_id"] = result.inserted_id
        document["post_count"] = 0
        logger.info("Created category %s (%s)", result.inserted_id, document["slug"])
        return CategoryResponse.model_validate(document)

    async def update_category(self, category_id: str, payload: UpdateCategoryRequest) -> CategoryResponse:
        oid = blog_queries.object_id_or_not_found(category_id, CATEGORY_NOT_FOUND)
        existing = await self._categories().find_one({"_id": oid})
        if existing is None:
            raise NotFoundError(CATEGORY_NOT_FOUND)

        changes = {
            field: value
            for field, value in payload.model_dump(exclude_unset=True, mode="json").items()
            if value is not None or field == "description"
        }
        now = blog_queries.utc_now()
        derived = run_pipeline(CATEGORY_PIPELINE, existing, {**existing, **changes}, now)
        if "slug" in derived:
            if not derived["slug"]:
                raise ValidationError("Category name must contain letters or numbers")
            await self._ensure_unique(changes["name"], derived["slug"], exclude_id=oid)

        update = {**changes, **derived, "updated_at": now}
        try:
            await self._categories().update_one({"_id": oid}, {"$set": update})
        except DuplicateKeyError as e:
            raise ValidationError(CATEGORY_EXISTS) from e
        logger.info("Updated category %s fields %s", oid, sorted(update))

        document = {**existing, **update}
        document["post_count"] = await self.count_published_posts(oid)
        return CategoryResponse.model_validate(document)

    async def delete_category(self, category_id: str, current_user: Optional[Mapping[str, Any]] = None) -> None:
        """
        Raises:
            NotFoundError: If the category does not exist.
            DomainConstraintError: If a draft or published post still uses it.
        """
        oid = blog_queries.object_id_or_not_found(category_id, CATEGORY_NOT_FOUND)
        if await self._categories().find_one({"_id": oid}, projection={"_id": 1}) is None:
            raise NotFoundError(CATEGORY_NOT_FOUND)

        active_posts = await db_manager.get_collection("posts").count_documents(
            {"category": oid, "status": {"$ne": PostStatus.ARCHIVED.value}}
        )
        if active_posts:
            logger.info("Refused to delete category %s with %d active posts", oid, active_posts)
            raise DomainConstraintError(CATEGORY_HAS_POSTS)

        await self._categories().delete_one({"_id": oid})
        logger.info("Deleted category %s by user %s", oid, current_user.get("_id") if current_user else None)


category_manager = CategoryManager()
