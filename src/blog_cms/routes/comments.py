"""
# Comment Routes

Comment endpoints live beside the post routes: listing and creation hang off a post,
everything else addresses a comment directly.

| Method | Path                              | Access        |
|--------|-----------------------------------|---------------|
| GET    | `/posts/{post_id}/comments`       | public        |
| POST   | `/posts/{post_id}/comments`       | authenticated |
| GET    | `/posts/{post_id}/comments/stats` | public        |
| GET    | `/comments/{comment_id}/replies`  | public        |
| PUT    | `/comments/{comment_id}`          | author/admin  |
| DELETE | `/comments/{comment_id}`          | author/admin  |
| POST   | `/comments/{comment_id}/like`     | authenticated |
| POST   | `/comments/{comment_id}/report`   | authenticated |
| PUT    | `/comments/{comment_id}/approve`  | admin         |
| PUT    | `/comments/{comment_id}/reject`   | admin         |
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from blog_cms.config import settings
from blog_cms.managers.comment_manager import comment_manager
from blog_cms.managers.logging_manager import get_logger
from blog_cms.models.blog_models import (
    ApiResponse,
    CommentResponse,
    CommentStatsResponse,
    CreateCommentRequest,
    ToggleLikeResponse,
    UpdateCommentRequest,
)
from blog_cms.routes.dependencies import get_current_user, require_admin
from blog_cms.utils.errors import BlogError, UnexpectedError

logger = get_logger(prefix="[Comment Routes]")

router = APIRouter(tags=["comments"])


@router.get("/posts/{post_id}/comments", response_model=ApiResponse[List[CommentResponse]])
async def list_comments(
    post_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    include_replies: bool = Query(False, alias="includeReplies"),
):
    """Approved comments on a post, newest first. Top-level only unless `includeReplies=true`."""
    try:
        comments, pagination = await comment_manager.list_by_post(post_id, page, limit, include_replies)
        return ApiResponse(data=comments, pagination=pagination)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to list comments for post %s: %s", post_id, e, exc_info=True)
        raise UnexpectedError("Server error while fetching comments", detail=str(e)) from e


@router.post(
    "/posts/{post_id}/comments", response_model=ApiResponse[CommentResponse], status_code=status.HTTP_201_CREATED
)
async def create_comment(post_id: str, request: CreateCommentRequest, current_user: dict = Depends(get_current_user)):
    try:
        comment = await comment_manager.create_comment(post_id, request, current_user)
        return ApiResponse(message="Comment added successfully", data=comment)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to create comment on post %s: %s", post_id, e, exc_info=True)
        raise UnexpectedError("Server error while creating comment", detail=str(e)) from e


@router.get("/posts/{post_id}/comments/stats", response_model=ApiResponse[CommentStatsResponse])
async def get_comment_stats(post_id: str):
    try:
        stats = await comment_manager.get_post_stats(post_id)
        return ApiResponse(data=stats)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to get comment stats for post %s: %s", post_id, e, exc_info=True)
        raise UnexpectedError("Server error while fetching comment statistics", detail=str(e)) from e


@router.get("/comments/{comment_id}/replies", response_model=ApiResponse[List[CommentResponse]])
async def get_replies(comment_id: str):
    try:
        replies = await comment_manager.get_replies(comment_id)
        return ApiResponse(data=replies)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to get replies for comment %s: %s", comment_id, e, exc_info=True)
        raise UnexpectedError("Server error while fetching replies", detail=str(e)) from e


@router.put("/comments/{comment_id}", response_model=ApiResponse[CommentResponse])
async def update_comment(
    comment_id: str, request: UpdateCommentRequest, current_user: dict = Depends(get_current_user)
):
    try:
        comment = await comment_manager.update_comment(comment_id, request, current_user)
        return ApiResponse(message="Comment updated successfully", data=comment)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to update comment %s: %s", comment_id, e, exc_info=True)
        raise UnexpectedError("Server error while updating comment", detail=str(e)) from e


@router.delete("/comments/{comment_id}", response_model=ApiResponse[None])
async def delete_comment(comment_id: str, current_user: dict = Depends(get_current_user)):
    try:
        await comment_manager.delete_comment(comment_id, current_user)
        return ApiResponse(message="Comment deleted successfully")
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to delete comment %s: %s", comment_id, e, exc_info=True)
        raise UnexpectedError("Server error while deleting comment", detail=str(e)) from e


@router.post("/comments/{comment_id}/like", response_model=ApiResponse[ToggleLikeResponse])
async def toggle_comment_like(comment_id: str, current_user: dict = Depends(get_current_user)):
    try:
        result = await comment_manager.toggle_like(comment_id, current_user)
        return ApiResponse(message="Comment liked" if result.is_liked else "Comment unliked", data=result)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to toggle like on comment %s: %s", comment_id, e, exc_info=True)
        raise UnexpectedError("Server error while toggling like", detail=str(e)) from e


@router.post("/comments/{comment_id}/report", response_model=ApiResponse[CommentResponse])
async def report_comment(comment_id: str, current_user: dict = Depends(get_current_user)):
    try:
        comment = await comment_manager.report_comment(comment_id, current_user)
        return ApiResponse(message="Comment reported", data=comment)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to report comment %s: %s", comment_id, e, exc_info=True)
        raise UnexpectedError("Server error while reporting comment", detail=str(e)) from e


@router.put("/comments/{comment_id}/approve", response_model=ApiResponse[CommentResponse])
async def approve_comment(comment_id: str, current_user: dict = Depends(require_admin)):
    try:
        comment = await comment_manager.approve_comment(comment_id)
        return ApiResponse(message="Comment approved", data=comment)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to approve comment %s: %s", comment_id, e, exc_info=True)
        raise UnexpectedError("Server error while moderating comment", detail=str(e)) from e


@router.put("/comments/{comment_id}/reject", response_model=ApiResponse[CommentResponse])
async def reject_comment(comment_id: str, current_user: dict = Depends(require_admin)):
    try:
        comment = await comment_manager.reject_comment(comment_id)
        return ApiResponse(message="Comment rejected", data=comment)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to reject comment %s: %s", comment_id, e, exc_info=True)
        raise UnexpectedError("Server error while moderating comment", detail=str(e)) from e
