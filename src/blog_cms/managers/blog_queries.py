"""
# Blog Query Building Blocks

Aggregation stages and small helpers shared by the post, category and comment managers.

- **Identifiers**: `parse_object_id` / `is_object_id` validate 24-hex ids before they reach MongoDB.
- **Joins**: `$lookup` stages for the author summary, the category summary, the comment
  count of a post and the parent of a comment.
- **Filters**: `build_post_match` turns a `PostListQuery` into a `$match` document.
- **Paging**: `total_pages` and `page_flags` compute the pagination block.
- **Likes**: `toggle_like` flips membership of a user in a `likes` array atomically.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument

from blog_cms.models.blog_models import PostListQuery
from blog_cms.utils.errors import NotFoundError, ValidationError

AUTHOR_FIELDS = {"username": 1, "first_name": 1, "last_name": 1, "avatar": 1}
AUTHOR_DETAIL_FIELDS = {**AUTHOR_FIELDS, "bio": 1}
CATEGORY_FIELDS = {"name": 1, "slug": 1, "color": 1}
CATEGORY_DETAIL_FIELDS = {**CATEGORY_FIELDS, "description": 1}


def is_object_id(value: Any) -> bool:
    return isinstance(value, ObjectId) or (isinstance(value, str) and ObjectId.is_valid(value) and len(value) == 24)


def parse_object_id(value: Any, label: str = "id") -> ObjectId:
    """
    Convert `value` to an `ObjectId`.

    Raises:
        ValidationError: If `value` is not a 24-character hex string.
    """
    if isinstance(value, ObjectId):
        return value
    if not is_object_id(value):
        raise ValidationError(f"Invalid {label}")
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as e:
        raise ValidationError(f"Invalid {label}") from e


def object_id_or_not_found(value: Any, message: str) -> ObjectId:
    """Like `parse_object_id`, but a malformed id simply cannot exist."""
    if not is_object_id(value):
        raise NotFoundError(message)
    return ObjectId(value) if not isinstance(value, ObjectId) else value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# --- Lookup stages ---


def lookup_author(fields: Optional[Dict[str, int]] = None, local_field: str = "author") -> List[Dict[str, Any]]:
    """Replace `local_field` with the author summary, or `null` if the user no longer exists."""
    return [
        {
            "$lookup": {
                "from": "users",
                "let": {"author_id": f"${local_field}"},
                "pipeline": [
                    {"$match": {"$expr": {"$eq": ["$_id", "$$author_id"]}}},
                    {"$project": fields or AUTHOR_FIELDS},
                ],
                "as": "_author",
            }
        },
        {"$addFields": {local_field: {"$arrayElemAt": ["$_author", 0]}}},
        {"$project": {"_author": 0}},
    ]


def lookup_category(fields: Optional[Dict[str, int]] = None) -> List[Dict[str, Any]]:
    return [
        {
            "$lookup": {
                "from": "categories",
                "let": {"category_id": "$category"},
                "pipeline": [
                    {"$match": {"$expr": {"$eq": ["$_id", "$$category_id"]}}},
                    {"$project": fields or CATEGORY_FIELDS},
                ],
                "as": "_category",
            }
        },
        {"$addFields": {"category": {"$arrayElemAt": ["$_category", 0]}}},
        {"$project": {"_category": 0}},
    ]


def lookup_comment_count() -> List[Dict[str, Any]]:
    """Count every comment that references the post."""
    return [
        {
            "$lookup": {
                "from": "comments",
                "let": {"post_id": "$_id"},
                "pipeline": [
                    {"$match": {"$expr": {"$eq": ["$post", "$$post_id"]}}},
                    {"$count": "count"},
                ],
                "as": "_comment_count",
            }
        },
        {"$addFields": {"comment_count": {"$ifNull": [{"$arrayElemAt": ["$_comment_count.count", 0]}, 0]}}},
        {"$project": {"_comment_count": 0}},
    ]


def like_count_stage() -> Dict[str, Any]:
    return {"$addFields": {"like_count": {"$size": {"$ifNull": ["$likes", []]}}}}


# --- Filters and paging ---


def build_post_match(query: PostListQuery) -> Dict[str, Any]:
    """
    Build the `$match` document for a post listing.

    Raises:
        ValidationError: If the category or author filter is not a valid id.
    """
    match: Dict[str, Any] = {"status": query.status.value}
    if query.category:
        match["category"] = parse_object_id(query.category, "category id")
    if query.author:
        match["author"] = parse_object_id(query.author, "author id")
    if query.featured:
        match["is_featured"] = True
    if query.search:
        pattern = {"$regex": re.escape(query.search), "$options": "i"}
        match["$or"] = [{"title": pattern}, {"content": pattern}, {"excerpt": pattern}]
    return match


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def page_flags(page: int, limit: int, total: int) -> Tuple[int, bool, bool]:
    """Return `(total_pages, has_next_page, has_prev_page)`."""
    pages = total_pages(total, limit)
    return pages, page < pages, page > 1


# --- Likes ---


async def toggle_like(
    collection: AsyncIOMotorCollection, document_id: ObjectId, user_id: ObjectId, not_found_message: str
) -> Tuple[bool, int]:
    """
    Add `user_id` to the document's `likes` if absent, remove it if present.

    Both branches are single conditional updates, so concurrent toggles by the same user
    cannot leave a duplicate like behind.

    Returns:
        Tuple[bool, int]: `(is_liked, like_count)` after the toggle.

    Raises:
        NotFoundError: If the document does not exist.
    """
    projection = {"likes": 1}
    updated = await collection.find_one_and_update(
        {"_id": document_id, "likes.user": user_id},
        {"$pull": {"likes": {"user": user_id}}},
        projection=projection,
        return_document=ReturnDocument.AFTER,
    )
    if updated is not None:
        return False, len(updated.get("likes", []))

    updated = await collection.find_one_and_update(
        {"_id": document_id, "likes.user": {"$ne": user_id}},
        {"$push": {"likes": {"user": user_id, "created_at": utc_now()}}},
        projection=projection,
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFoundError(not_found_message)
    return True, len(updated.get("likes", []))
