"""
# Post Routes

REST endpoints for posts, mounted under `/api`.

| Method | Path                   | Access        | Purpose                              |
|--------|------------------------|---------------|--------------------------------------|
| GET    | `/posts`               | public        | Filtered, sorted, paginated list     |
| GET    | `/posts/featured`      | public        | Newest featured posts                |
| GET    | `/posts/search?q=`     | public        | Full-text search, best match first   |
| GET    | `/posts/{identifier}`  | public        | One post by id or slug (counts view) |
| POST   | `/posts`               | authenticated | Create                               |
| PUT    | `/posts/{post_id}`     | author/admin  | Partial update                       |
| DELETE | `/posts/{post_id}`     | author/admin  | Delete with its comments             |
| POST   | `/posts/{post_id}/like`| authenticated | Toggle the caller's like             |

`/posts/featured` and `/posts/search` are declared before `/posts/{identifier}` so the
literal paths win.

Every handler lets `BlogError` subclasses through to the exception handlers in
`blog_cms.main` and converts anything else into `UnexpectedError` after logging it.
"""

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import ValidationError as PydanticValidationError

from blog_cms.config import settings
from blog_cms.managers.logging_manager import get_logger
from blog_cms.managers.post_manager import post_manager
from blog_cms.models.blog_models import (
    POST_SORT_FIELDS,
    ApiResponse,
    CreatePostRequest,
    PostListQuery,
    PostResponse,
    PostStatus,
    ToggleLikeResponse,
    UpdatePostRequest,
)
from blog_cms.routes.dependencies import get_current_user
from blog_cms.utils.errors import BlogError, UnexpectedError, ValidationError

logger = get_logger(prefix="[Post Routes]")

router = APIRouter(prefix="/posts", tags=["posts"])


def get_post_list_query(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    category: Optional[str] = Query(None, description="Category id"),
    author: Optional[str] = Query(None, description="Author id"),
    post_status: PostStatus = Query(PostStatus.PUBLISHED, alias="status"),
    search: Optional[str] = Query(None, description="Substring matched in title, content and excerpt"),
    sort_by: str = Query("publishedAt", alias="sortBy", description=f"One of: {', '.join(POST_SORT_FIELDS)}"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    featured: Optional[bool] = Query(None),
) -> PostListQuery:
    """Build the filter specification once from the query string."""
    try:
        return PostListQuery(
            page=page,
            limit=limit,
            category=category,
            author=author,
            status=post_status,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            featured=featured,
        )
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid query parameters",
            errors=[{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()],
        ) from e


@router.get("", response_model=ApiResponse[List[PostResponse]])
async def list_posts(query: PostListQuery = Depends(get_post_list_query)):
    """
    List posts.

    Defaults to published posts, newest `publishedAt` first, 10 per page.
    """
    try:
        posts, pagination = await post_manager.list_posts(query)
        return ApiResponse(data=posts, pagination=pagination)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to list posts: %s", e, exc_info=True)
        raise UnexpectedError("Server error while fetching posts", detail=str(e)) from e


@router.get("/featured", response_model=ApiResponse[List[PostResponse]])
async def get_featured_posts(limit: int = Query(settings.FEATURED_POSTS_LIMIT, ge=1, le=settings.MAX_PAGE_SIZE)):
    try:
        posts = await post_manager.get_featured_posts(limit)
        return ApiResponse(data=posts)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to get featured posts: %s", e, exc_info=True)
        raise UnexpectedError("Server error while fetching featured posts", detail=str(e)) from e


@router.get("/search", response_model=ApiResponse[List[PostResponse]])
async def search_posts(
    q: Optional[str] = Query(None, description="Search terms"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
):
    """
    Full-text search over published posts.

    Results carry a relevance `score` and are sorted by it, highest first.
    A missing `q` is a 400.
    """
    try:
        posts, pagination = await post_manager.search_posts(q, page, limit)
        return ApiResponse(data=posts, pagination=pagination)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to search posts: %s", e, exc_info=True)
        raise UnexpectedError("Server error while searching posts", detail=str(e)) from e


@router.get("/{identifier}", response_model=ApiResponse[PostResponse])
async def get_post(identifier: str):
    try:
        post = await post_manager.get_post(identifier)
        return ApiResponse(data=post)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to get post %s: %s", identifier, e, exc_info=True)
        raise UnexpectedError("Server error while fetching post", detail=str(e)) from e


@router.post("", response_model=ApiResponse[PostResponse], status_code=status.HTTP_201_CREATED)
async def create_post(request: CreatePostRequest, current_user: dict = Depends(get_current_user)):
    """
    Create a post owned by the caller.

    Raises:
        ValidationError(400): Unknown category or invalid fields.
        AuthorizationError(403): Non-admin setting `isFeatured`/`isEditorsPick`.
    """
    try:
        post = await post_manager.create_post(request, current_user)
        return ApiResponse(message="Post created successfully", data=post)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to create post: %s", e, exc_info=True)
        raise UnexpectedError("Server error while creating post", detail=str(e)) from e


@router.put("/{post_id}", response_model=ApiResponse[PostResponse])
async def update_post(post_id: str, request: UpdatePostRequest, current_user: dict = Depends(get_current_user)):
    try:
        post = await post_manager.update_post(post_id, request, current_user)
        return ApiResponse(message="Post updated successfully", data=post)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to update post %s: %s", post_id, e, exc_info=True)
        raise UnexpectedError("Server error while updating post", detail=str(e)) from e


@router.delete("/{post_id}", response_model=ApiResponse[None])
async def delete_post(post_id: str, current_user: dict = Depends(get_current_user)):
    try:
        await post_manager.delete_post(post_id, current_user)
        return ApiResponse(message="Post deleted successfully")
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to delete post %s: %s", post_id, e, exc_info=True)
        raise UnexpectedError("Server error while deleting post", detail=str(e)) from e


@router.post("/{post_id}/like", response_model=ApiResponse[ToggleLikeResponse])
async def toggle_like(post_id: str, current_user: dict = Depends(get_current_user)):
    try:
        result = await post_manager.toggle_like(post_id, current_user)
        return ApiResponse(message="Post liked" if result.is_liked else "Post unliked", data=result)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to toggle like on post %s: %s", post_id, e, exc_info=True)
        raise UnexpectedError("Server error while toggling like", detail=str(e)) from e
