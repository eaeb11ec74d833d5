"""
# Post Manager

Query service for blog posts. Routes call the module-level `post_manager`; nothing
here knows about HTTP beyond the error taxonomy in `blog_cms.utils.errors`.

## Reads

Every read is a single aggregation: `$match`, like count, sort and paging on the
`posts` collection first, then `$lookup` joins for the author summary, the category
summary and the comment count. Joins run after `$skip`/`$limit` so they only touch
the rows of the requested page.

## Writes

Before every insert or update, the derived fields (`slug`, `excerpt`, `published_at`,
`read_time`) are computed by `POST_PIPELINE` from the stored document and the
incoming one. Deleting a post removes its comments in the same call.

## View Counting

`get_post` schedules the view increment as a background task and returns without
waiting for it. A failed increment is logged at WARNING and dropped.
"""

import asyncio
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from blog_cms.config import settings
from blog_cms.database import db_manager
from blog_cms.managers import blog_queries
from blog_cms.managers.logging_manager import get_logger
from blog_cms.models.blog_models import (
    CreatePostRequest,
    PaginationMeta,
    PostListQuery,
    PostResponse,
    PostStatus,
    ToggleLikeResponse,
    UpdatePostRequest,
)
from blog_cms.utils.blog_helpers import POST_PIPELINE, run_pipeline
from blog_cms.utils.errors import AuthorizationError, NotFoundError, ValidationError

logger = get_logger(prefix="[Post Manager]")

POST_NOT_FOUND = "Post not found"
INVALID_CATEGORY = "Invalid category selected"

# Update fields where an explicit null clears the stored value.
CLEARABLE_POST_FIELDS = {"excerpt", "featured_image"}
EDITORIAL_FIELDS = ("is_featured", "is_editors_pick")


def is_admin(user: Mapping[str, Any]) -> bool:
    return user.get("role") == "admin"


def can_modify(document: Mapping[str, Any], user: Mapping[str, Any]) -> bool:
    """Owners and admins may change a document."""
    return str(document.get("author")) == str(user.get("_id")) or is_admin(user)


class PostManager:
    """Post list/get/create/update/delete, likes, featured and full-text search."""

    def __init__(self):
        self._background_tasks: Set[asyncio.Task] = set()

    def _posts(self):
        return db_manager.get_collection("posts")

    def _read_pipeline(
        self,
        match: Dict[str, Any],
        sort: Optional[Dict[str, Any]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
        detailed: bool = False,
        with_score: bool = False,
    ) -> List[Dict[str, Any]]:
        pipeline: List[Dict[str, Any]] = [{"$match": match}]
        if with_score:
            pipeline.append({"$addFields": {"score": {"$meta": "textScore"}}})
        pipeline.append(blog_queries.like_count_stage())
        if sort:
            pipeline.append({"$sort": sort})
        if skip:
            pipeline.append({"$skip": skip})
        if limit:
            pipeline.append({"$limit": limit})
        pipeline.extend(blog_queries.lookup_author(blog_queries.AUTHOR_DETAIL_FIELDS if detailed else None))
        pipeline.extend(blog_queries.lookup_category(blog_queries.CATEGORY_DETAIL_FIELDS if detailed else None))
        pipeline.extend(blog_queries.lookup_comment_count())
        return pipeline

    async def _fetch_one(self, match: Dict[str, Any], detailed: bool = True) -> Optional[PostResponse]:
        documents = await self._posts().aggregate(self._read_pipeline(match, limit=1, detailed=detailed)).to_list(1)
        if not documents:
            return None
        return PostResponse.model_validate(documents[0])

    async def list_posts(self, query: PostListQuery) -> Tuple[List[PostResponse], PaginationMeta]:
        """
        Return one page of posts matching `query` plus its pagination block.

        Raises:
            ValidationError: If the category or author filter is malformed.
        """
        match = blog_queries.build_post_match(query)
        sort = {query.sort_field: query.sort_direction, "_id": query.sort_direction}
        pipeline = self._read_pipeline(match, sort=sort, skip=query.skip, limit=query.limit)

        posts = self._posts()
        documents = await posts.aggregate(pipeline).to_list(query.limit)
        total = await posts.count_documents(match)

        pages, has_next, has_prev = blog_queries.page_flags(query.page, query.limit, total)
        pagination = PaginationMeta(
            current_page=query.page,
            total_pages=pages,
            total_posts=total,
            has_next_page=has_next,
            has_prev_page=has_prev,
        )
        logger.debug("Listed %d of %d posts (page %d)", len(documents), total, query.page)
        return [PostResponse.model_validate(doc) for doc in documents], pagination

    async def get_post(self, identifier: str) -> PostResponse:
        """
        Fetch a post by id or slug and count the view.

        Raises:
            NotFoundError: If no post has that id or slug.
        """
        match = {"_id": ObjectId(identifier)} if blog_queries.is_object_id(identifier) else {"slug": identifier.lower()}
        post = await self._fetch_one(match, detailed=True)
        if post is None:
            raise NotFoundError(POST_NOT_FOUND)

        self._schedule_view_increment(ObjectId(post.id))
        return post

    def _schedule_view_increment(self, post_id: ObjectId) -> None:
        task = asyncio.create_task(self._increment_views(post_id))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def drain_background_tasks(self) -> int:
        """Wait for pending view increments. Returns how many were pending."""
        pending = list(self._background_tasks)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        return len(pending)

    async def _increment_views(self, post_id: ObjectId) -> None:
        try:
            await self._posts().update_one({"_id": post_id}, {"$inc": {"views": 1}})
        except Exception as e:
            logger.warning("Dropped view increment for post %s: %s", post_id, e)

    async def _ensure_category(self, category: Any) -> ObjectId:
        if not blog_queries.is_object_id(category):
            raise ValidationError(INVALID_CATEGORY)
        category_id = ObjectId(category)
        if not await db_manager.get_collection("categories").count_documents({"_id": category_id}, limit=1):
            raise ValidationError(INVALID_CATEGORY)
        return category_id

    async def _unique_slug(self, slug: str, exclude_id: Optional[ObjectId] = None) -> str:
        """Bump the millisecond suffix of `slug` until no other post uses it."""
        base, sep, stamp = slug.rpartition("-")
        if not sep:
            base, stamp = "", slug
        counter = int(stamp)

        candidate = slug
        while True:
            query: Dict[str, Any] = {"slug": candidate}
            if exclude_id is not None:
                query["_id"] = {"$ne": exclude_id}
            if not await self._posts().count_documents(query, limit=1):
                return candidate
            counter += 1
            candidate = f"{base}-{counter}" if base else str(counter)

    async def create_post(self, payload: CreatePostRequest, current_user: Mapping[str, Any]) -> PostResponse:
        """
        Create a post authored by `current_user`.

        Raises:
            ValidationError: If the category does not exist.
            AuthorizationError: If a non-admin sets an editorial flag.
        """
        if not is_admin(current_user) and (payload.is_featured or payload.is_editors_pick):
            raise AuthorizationError("Only admins can feature posts")

        category_id = await self._ensure_category(payload.category)
        now = blog_queries.utc_now()

        document = payload.model_dump(mode="json")
        document.update(
            {
                "category": category_id,
                "author": current_user["_id"],
                "tags": payload.tags or [],
                "published_at": None,
                "read_time": 0,
                "views": 0,
                "likes": [],
                "created_at": now,
                "updated_at": now,
            }
        )
        document.update(run_pipeline(POST_PIPELINE, None, document, now))
        document["slug"] = await self._unique_slug(document["slug"])

        try:
            result = await self._posts().insert_one(document)
        except DuplicateKeyError:
            # A concurrent create took the slug between the check and the insert.
            document["slug"] = await self._unique_slug(document["slug"])
            result = await self._posts().insert_one(document)
        logger.info("Created post %s (%s) by user %s", result.inserted_id, document["slug"], current_user["_id"])

        post = await self._fetch_one({"_id": result.inserted_id})
        if post is None:
            raise NotFoundError(POST_NOT_FOUND)
        return post

    async def update_post(
        self, post_id: str, payload: UpdatePostRequest, current_user: Mapping[str, Any]
    ) -> PostResponse:
        """
        Apply a partial update.

        Raises:
            NotFoundError: If the post does not exist.
            AuthorizationError: If the caller is neither the author nor an admin.
            ValidationError: If a changed category does not exist.
        """
        oid = blog_queries.object_id_or_not_found(post_id, POST_NOT_FOUND)
        existing = await self._posts().find_one({"_id": oid})
        if existing is None:
            raise NotFoundError(POST_NOT_FOUND)
        if not can_modify(existing, current_user):
            raise AuthorizationError("Not authorized to update this post")

        changes = {
            field: value
            for field, value in payload.model_dump(exclude_unset=True, mode="json").items()
            if value is not None or field in CLEARABLE_POST_FIELDS
        }
        if not is_admin(current_user) and any(
            field in changes and changes[field] != existing.get(field, False) for field in EDITORIAL_FIELDS
        ):
            raise AuthorizationError("Only admins can feature posts")

        if "category" in changes:
            if str(changes["category"]) == str(existing.get("category")):
                changes["category"] = existing["category"]
            else:
                changes["category"] = await self._ensure_category(changes["category"])

        now = blog_queries.utc_now()
        current = {**existing, **changes}
        derived = run_pipeline(POST_PIPELINE, existing, current, now)
        if "slug" in derived:
            derived["slug"] = await self._unique_slug(derived["slug"], exclude_id=oid)

        update = {**changes, **derived, "updated_at": now}
        await self._posts().update_one({"_id": oid}, {"$set": update})
        logger.info("Updated post %s fields %s by user %s", oid, sorted(update), current_user["_id"])

        post = await self._fetch_one({"_id": oid})
        if post is None:
            raise NotFoundError(POST_NOT_FOUND)
        return post

    async def delete_post(self, post_id: str, current_user: Mapping[str, Any]) -> int:
        """
        Delete a post and every comment on it.

        Returns:
            int: Number of comments removed with the post.
        """
        oid = blog_queries.object_id_or_not_found(post_id, POST_NOT_FOUND)
        existing = await self._posts().find_one({"_id": oid}, projection={"author": 1})
        if existing is None:
            raise NotFoundError(POST_NOT_FOUND)
        if not can_modify(existing, current_user):
            raise AuthorizationError("Not authorized to delete this post")

        # Comments go first so a failure leaves the post in place for a retry.
        removed = await db_manager.get_collection("comments").delete_many({"post": oid})
        await self._posts().delete_one({"_id": oid})
        logger.info(
            "Deleted post %s and %d comments by user %s", oid, removed.deleted_count, current_user["_id"]
        )
        return removed.deleted_count

    async def toggle_like(self, post_id: str, current_user: Mapping[str, Any]) -> ToggleLikeResponse:
        oid = blog_queries.object_id_or_not_found(post_id, POST_NOT_FOUND)
        is_liked, like_count = await blog_queries.toggle_like(
            self._posts(), oid, current_user["_id"], POST_NOT_FOUND
        )
        logger.info("User %s %s post %s", current_user["_id"], "liked" if is_liked else "unliked", oid)
        return ToggleLikeResponse(is_liked=is_liked, like_count=like_count)

    async def get_featured_posts(self, limit: Optional[int] = None) -> List[PostResponse]:
        """Newest published posts flagged as featured."""
        limit = min(limit or settings.FEATURED_POSTS_LIMIT, settings.MAX_PAGE_SIZE)
        match = {"status": PostStatus.PUBLISHED.value, "is_featured": True}
        pipeline = self._read_pipeline(match, sort={"published_at": -1, "_id": -1}, limit=limit)
        documents = await self._posts().aggregate(pipeline).to_list(limit)
        return [PostResponse.model_validate(doc) for doc in documents]

    async def search_posts(self, q: Optional[str], page: int = 1, limit: Optional[int] = None) -> Tuple[List[PostResponse], PaginationMeta]:
        """
        Full-text search over published posts, best match first.

        Raises:
            ValidationError: If `q` is missing or blank.
        """
        if not q or not q.strip():
            raise ValidationError("Search query is required")
        limit = limit or settings.DEFAULT_PAGE_SIZE

        match = {"status": PostStatus.PUBLISHED.value, "$text": {"$search": q.strip()}}
        pipeline = self._read_pipeline(
            match, sort={"score": -1, "_id": -1}, skip=(page - 1) * limit, limit=limit, with_score=True
        )
        posts = self._posts()
        documents = await posts.aggregate(pipeline).to_list(limit)
        total = await posts.count_documents(match)

        pages, has_next, has_prev = blog_queries.page_flags(page, limit, total)
        pagination = PaginationMeta(
            current_page=page,
            total_pages=pages,
            total_posts=total,
            has_next_page=has_next,
            has_prev_page=has_prev,
        )
        return [PostResponse.model_validate(doc) for doc in documents], pagination


post_manager = PostManager()
