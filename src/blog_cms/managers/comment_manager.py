"""
# Comment Manager

Query service for comments on posts.

## Threading

A comment either sits at the top level of a post (`parent_comment` is null) or replies
to a top-level comment of the same post. Reads resolve the parent partially (author,
content, timestamp) so a reply can render its context without a second request.

## Visibility

Public listings (`list_by_post`, `get_replies`, `get_post_stats`) only include
approved comments. Moderation flips `is_approved`; reports bump `report_count`.

## Cascade

Deleting a comment removes every comment beneath it. The subtree is collected
breadth-first, so replies stored before the one-level rule was enforced are
removed too.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument

from blog_cms.config import settings
from blog_cms.database import db_manager
from blog_cms.managers import blog_queries
from blog_cms.managers.logging_manager import get_logger
from blog_cms.managers.post_manager import POST_NOT_FOUND, can_modify
from blog_cms.models.blog_models import (
    CommentPaginationMeta,
    CommentResponse,
    CommentStatsResponse,
    CreateCommentRequest,
    ToggleLikeResponse,
    UpdateCommentRequest,
)
from blog_cms.utils.blog_helpers import COMMENT_PIPELINE, run_pipeline
from blog_cms.utils.errors import AuthorizationError, DomainConstraintError, NotFoundError, ValidationError

logger = get_logger(prefix="[Comment Manager]")

COMMENT_NOT_FOUND = "Comment not found"
PARENT_AUTHOR_FIELDS = {"username": 1, "first_name": 1, "last_name": 1}


def lookup_parent() -> List[Dict[str, Any]]:
    """Replace `parent_comment` with `{_id, author, content, created_at}` of the parent."""
    return [
        {
            "$lookup": {
                "from": "comments",
                "let": {"parent_id": "$parent_comment"},
                "pipeline": [
                    {"$match": {"$expr": {"$eq": ["$_id", "$$parent_id"]}}},
                    {"$project": {"author": 1, "content": 1, "created_at": 1}},
                    *blog_queries.lookup_author(PARENT_AUTHOR_FIELDS),
                ],
                "as": "_parent",
            }
        },
        {"$addFields": {"parent_comment": {"$arrayElemAt": ["$_parent", 0]}}},
        {"$project": {"_parent": 0}},
    ]


def lookup_reply_count() -> List[Dict[str, Any]]:
    """Count approved direct replies."""
    return [
        {
            "$lookup": {
                "from": "comments",
                "let": {"comment_id": "$_id"},
                "pipeline": [
                    {
                        "$match": {
                            "$expr": {
                                "$and": [
                                    {"$eq": ["$parent_comment", "$$comment_id"]},
                                    {"$eq": ["$is_approved", True]},
                                ]
                            }
                        }
                    },
                    {"$count": "count"},
                ],
                "as": "_replies",
            }
        },
        {"$addFields": {"reply_count": {"$ifNull": [{"$arrayElemAt": ["$_replies.count", 0]}, 0]}}},
        {"$project": {"_replies": 0}},
    ]


class CommentManager:
    def _comments(self):
        return db_manager.get_collection("comments")

    def _read_pipeline(
        self, match: Dict[str, Any], sort: Dict[str, int], skip: int = 0, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        pipeline: List[Dict[str, Any]] = [{"$match": match}, {"$sort": sort}]
        if skip:
            pipeline.append({"$skip": skip})
        if limit:
            pipeline.append({"$limit": limit})
        pipeline.append(blog_queries.like_count_stage())
        pipeline.extend(blog_queries.lookup_author())
        pipeline.extend(lookup_parent())
        pipeline.extend(lookup_reply_count())
        return pipeline

    async def _fetch_one(self, comment_id: ObjectId) -> CommentResponse:
        documents = await self._comments().aggregate(
            self._read_pipeline({"_id": comment_id}, {"_id": 1}, limit=1)
        ).to_list(1)
        if not documents:
            raise NotFoundError(COMMENT_NOT_FOUND)
        return CommentResponse.model_validate(documents[0])

    async def _find_post(self, post_id: str) -> Dict[str, Any]:
        oid = blog_queries.object_id_or_not_found(post_id, POST_NOT_FOUND)
        post = await db_manager.get_collection("posts").find_one({"_id": oid}, projection={"allow_comments": 1})
        if post is None:
            raise NotFoundError(POST_NOT_FOUND)
        return post

    async def _find_comment(self, comment_id: str) -> Dict[str, Any]:
        oid = blog_queries.object_id_or_not_found(comment_id, COMMENT_NOT_FOUND)
        comment = await self._comments().find_one({"_id": oid})
        if comment is None:
            raise NotFoundError(COMMENT_NOT_FOUND)
        return comment

    async def list_by_post(
        self, post_id: str, page: int = 1, limit: Optional[int] = None, include_replies: bool = False
    ) -> Tuple[List[CommentResponse], CommentPaginationMeta]:
        """
        Approved comments on a post, newest first.

        With `include_replies=False` only top-level comments are returned.
        """
        post = await self._find_post(post_id)
        limit = limit or settings.DEFAULT_PAGE_SIZE

        match: Dict[str, Any] = {"post": post["_id"], "is_approved": True}
        if not include_replies:
            match["parent_comment"] = None

        comments = self._comments()
        documents = await comments.aggregate(
            self._read_pipeline(match, {"created_at": -1, "_id": -1}, skip=(page - 1) * limit, limit=limit)
        ).to_list(limit)
        total = await comments.count_documents(match)

        pages, has_next, has_prev = blog_queries.page_flags(page, limit, total)
        pagination = CommentPaginationMeta(
            current_page=page,
            total_pages=pages,
            total_comments=total,
            has_next_page=has_next,
            has_prev_page=has_prev,
        )
        return [CommentResponse.model_validate(doc) for doc in documents], pagination

    async def get_replies(self, comment_id: str) -> List[CommentResponse]:
        """Approved direct replies, oldest first."""
        comment = await self._find_comment(comment_id)
        documents = await self._comments().aggregate(
            self._read_pipeline({"parent_comment": comment["_id"], "is_approved": True}, {"created_at": 1, "_id": 1})
        ).to_list(None)
        return [CommentResponse.model_validate(doc) for doc in documents]

    async def create_comment(
        self, post_id: str, payload: CreateCommentRequest, current_user: Mapping[str, Any]
    ) -> CommentResponse:
        """
        Raises:
            NotFoundError: If the post does not exist.
            DomainConstraintError: If the post has comments turned off.
            ValidationError: If the parent is unknown, on another post, or itself a reply.
        """
        post = await self._find_post(post_id)
        if post.get("allow_comments") is False:
            raise DomainConstraintError("Comments are disabled for this post")

        parent_id = None
        if payload.parent_comment:
            parent_id = blog_queries.parse_object_id(payload.parent_comment, "parent comment")
            parent = await self._comments().find_one(
                {"_id": parent_id, "post": post["_id"]}, projection={"parent_comment": 1}
            )
            if parent is None:
                raise ValidationError("Parent comment not found on this post")
            if parent.get("parent_comment") is not None:
                raise ValidationError("Replies can only be made to top-level comments")

        now = blog_queries.utc_now()
        document = {
            "content": payload.content,
            "author": current_user["_id"],
            "post": post["_id"],
            "parent_comment": parent_id,
            "is_approved": True,
            "is_reported": False,
            "report_count": 0,
            "is_edited": False,
            "edited_at": None,
            "likes": [],
            "created_at": now,
            "updated_at": now,
        }
        document.update(run_pipeline(COMMENT_PIPELINE, None, document, now))

        result = await self._comments().insert_one(document)
        logger.info("Created comment %s on post %s by user %s", result.inserted_id, post["_id"], current_user["_id"])
        return await self._fetch_one(result.inserted_id)

    async def update_comment(
        self, comment_id: str, payload: UpdateCommentRequest, current_user: Mapping[str, Any]
    ) -> CommentResponse:
        existing = await self._find_comment(comment_id)
        if not can_modify(existing, current_user):
            raise AuthorizationError("Not authorized to update this comment")

        now = blog_queries.utc_now()
        changes = {"content": payload.content}
        derived = run_pipeline(COMMENT_PIPELINE, existing, {**existing, **changes}, now)
        update = {**changes, **derived, "updated_at": now}

        await self._comments().update_one({"_id": existing["_id"]}, {"$set": update})
        logger.info("Updated comment %s by user %s", existing["_id"], current_user["_id"])
        return await self._fetch_one(existing["_id"])

    async def _collect_subtree(self, root_id: ObjectId) -> List[ObjectId]:
        collected = [root_id]
        frontier = [root_id]
        while frontier:
            children = await self._comments().find(
                {"parent_comment": {"$in": frontier}}, projection={"_id": 1}
            ).to_list(None)
            frontier = [child["_id"] for child in children if child["_id"] not in collected]
            collected.extend(frontier)
        return collected

    async def delete_comment(self, comment_id: str, current_user: Mapping[str, Any]) -> int:
        """
        Delete a comment and all replies beneath it.

        Returns:
            int: Total number of comments removed, including the target.
        """
        existing = await self._find_comment(comment_id)
        if not can_modify(existing, current_user):
            raise AuthorizationError("Not authorized to delete this comment")

        ids = await self._collect_subtree(existing["_id"])
        result = await self._comments().delete_many({"_id": {"$in": ids}})
        logger.info(
            "Deleted comment %s with %d replies by user %s",
            existing["_id"],
            result.deleted_count - 1,
            current_user["_id"],
        )
        return result.deleted_count

    async def toggle_like(self, comment_id: str, current_user: Mapping[str, Any]) -> ToggleLikeResponse:
        oid = blog_queries.object_id_or_not_found(comment_id, COMMENT_NOT_FOUND)
        is_liked, like_count = await blog_queries.toggle_like(
            self._comments(), oid, current_user["_id"], COMMENT_NOT_FOUND
        )
        logger.info("User %s %s comment %s", current_user["_id"], "liked" if is_liked else "unliked", oid)
        return ToggleLikeResponse(is_liked=is_liked, like_count=like_count)

    async def set_approval(self, comment_id: str, approved: bool) -> CommentResponse:
        oid = blog_queries.object_id_or_not_found(comment_id, COMMENT_NOT_FOUND)
        updated = await self._comments().find_one_and_update(
            {"_id": oid},
            {"$set": {"is_approved": approved, "updated_at": blog_queries.utc_now()}},
            projection={"_id": 1},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise NotFoundError(COMMENT_NOT_FOUND)
        logger.info("Comment %s %s", oid, "approved" if approved else "rejected")
        return await self._fetch_one(oid)

    async def approve_comment(self, comment_id: str) -> CommentResponse:
        return await self.set_approval(comment_id, True)

    async def reject_comment(self, comment_id: str) -> CommentResponse:
        return await self.set_approval(comment_id, False)

    async def report_comment(self, comment_id: str, current_user: Mapping[str, Any]) -> CommentResponse:
        oid = blog_queries.object_id_or_not_found(comment_id, COMMENT_NOT_FOUND)
        updated = await self._comments().find_one_and_update(
            {"_id": oid},
            {"$inc": {"report_count": 1}, "$set": {"is_reported": True}},
            projection={"report_count": 1},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise NotFoundError(COMMENT_NOT_FOUND)
        logger.info("Comment %s reported by user %s (reports: %d)", oid, current_user["_id"], updated["report_count"])
        return await self._fetch_one(oid)

    async def get_post_stats(self, post_id: str) -> CommentStatsResponse:
        """Approved comment count, total likes across them and the latest comment time."""
        post = await self._find_post(post_id)
        pipeline = [
            {"$match": {"post": post["_id"], "is_approved": True}},
            {
                "$group": {
                    "_id": None,
                    "total_comments": {"$sum": 1},
                    "total_likes": {"$sum": {"$size": {"$ifNull": ["$likes", []]}}},
                    "last_comment_date": {"$max": "$created_at"},
                }
            },
        ]
        results = await self._comments().aggregate(pipeline).to_list(1)
        if not results:
            return CommentStatsResponse()
        return CommentStatsResponse.model_validate(results[0])


comment_manager = CommentManager()
