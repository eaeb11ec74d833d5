"""
# Resource Services

Thin, typed wrappers over `BlogApiClient`, one per resource. Single-item calls return
the parsed model from the envelope's `data`; list calls return `(items, pagination)`.

```python
async with BlogApiClient(token_store=store) as client:
    posts = PostService(client)
    page, pagination = await posts.list_posts(page=2, category=category_id)
    post = await posts.get_post("hello-world-1700000000000")
```
"""

from typing import Any, Dict, List, Optional, Tuple

from blog_cms.client.api_client import BlogApiClient
from blog_cms.client.endpoints import CategoryEndpoints, CommentEndpoints, PostEndpoints
from blog_cms.models.blog_models import (
    CategoryResponse,
    CommentPaginationMeta,
    CommentResponse,
    CommentStatsResponse,
    PaginationMeta,
    PostResponse,
    ToggleLikeResponse,
)


def _without_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


class PostService:
    def __init__(self, client: BlogApiClient):
        self.client = client

    async def list_posts(
        self,
        page: int = 1,
        limit: int = 10,
        category: Optional[str] = None,
        author: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        featured: Optional[bool] = None,
    ) -> Tuple[List[PostResponse], Optional[PaginationMeta]]:
        params = {
            "page": page,
            "limit": limit,
            "category": category,
            "author": author,
            "status": status,
            "search": search,
            "sortBy": sort_by,
            "sortOrder": sort_order,
            "featured": featured,
        }
        envelope = await self.client.get(PostEndpoints.ALL, params=params)
        return _post_page(envelope)

    async def get_post(self, id_or_slug: str) -> PostResponse:
        envelope = await self.client.get(PostEndpoints.by_id(id_or_slug))
        return PostResponse.model_validate(envelope["data"])

    async def create_post(self, post_data: Dict[str, Any]) -> PostResponse:
        envelope = await self.client.post(PostEndpoints.CREATE, _without_none(post_data))
        return PostResponse.model_validate(envelope["data"])

    async def update_post(self, post_id: str, post_data: Dict[str, Any]) -> PostResponse:
        envelope = await self.client.put(PostEndpoints.update(post_id), post_data)
        return PostResponse.model_validate(envelope["data"])

    async def delete_post(self, post_id: str) -> Optional[str]:
        envelope = await self.client.delete(PostEndpoints.delete(post_id))
        return envelope.get("message")

    async def toggle_like(self, post_id: str) -> ToggleLikeResponse:
        envelope = await self.client.post(PostEndpoints.like(post_id))
        return ToggleLikeResponse.model_validate(envelope["data"])

    async def get_featured(self, limit: Optional[int] = None) -> List[PostResponse]:
        envelope = await self.client.get(PostEndpoints.FEATURED, params={"limit": limit})
        return [PostResponse.model_validate(item) for item in envelope.get("data") or []]

    async def search_posts(
        self, query: str, page: int = 1, limit: int = 10
    ) -> Tuple[List[PostResponse], Optional[PaginationMeta]]:
        envelope = await self.client.get(PostEndpoints.SEARCH, params={"q": query, "page": page, "limit": limit})
        return _post_page(envelope)


def _post_page(envelope: Dict[str, Any]) -> Tuple[List[PostResponse], Optional[PaginationMeta]]:
    posts = [PostResponse.model_validate(item) for item in envelope.get("data") or []]
    pagination = envelope.get("pagination")
    return posts, PaginationMeta.model_validate(pagination) if pagination else None


class CategoryService:
    def __init__(self, client: BlogApiClient):
        self.client = client

    async def list_categories(self, with_counts: bool = False) -> List[CategoryResponse]:
        params = {"withCounts": True} if with_counts else None
        envelope = await self.client.get(CategoryEndpoints.ALL, params=params)
        return [CategoryResponse.model_validate(item) for item in envelope.get("data") or []]

    async def get_category(self, id_or_slug: str) -> CategoryResponse:
        envelope = await self.client.get(CategoryEndpoints.by_id(id_or_slug))
        return CategoryResponse.model_validate(envelope["data"])

    async def create_category(self, category_data: Dict[str, Any]) -> CategoryResponse:
        envelope = await self.client.post(CategoryEndpoints.CREATE, _without_none(category_data))
        return CategoryResponse.model_validate(envelope["data"])

    async def update_category(self, category_id: str, category_data: Dict[str, Any]) -> CategoryResponse:
        envelope = await self.client.put(CategoryEndpoints.update(category_id), category_data)
        return CategoryResponse.model_validate(envelope["data"])

    async def delete_category(self, category_id: str) -> Optional[str]:
        envelope = await self.client.delete(CategoryEndpoints.delete(category_id))
        return envelope.get("message")


class CommentService:
    def __init__(self, client: BlogApiClient):
        self.client = client

    async def list_for_post(
        self, post_id: str, page: int = 1, limit: int = 10, include_replies: bool = False
    ) -> Tuple[List[CommentResponse], Optional[CommentPaginationMeta]]:
        envelope = await self.client.get(
            CommentEndpoints.for_post(post_id),
            params={"page": page, "limit": limit, "includeReplies": include_replies},
        )
        comments = [CommentResponse.model_validate(item) for item in envelope.get("data") or []]
        pagination = envelope.get("pagination")
        return comments, CommentPaginationMeta.model_validate(pagination) if pagination else None

    async def add_comment(self, post_id: str, content: str, parent_comment: Optional[str] = None) -> CommentResponse:
        body = _without_none({"content": content, "parentComment": parent_comment})
        envelope = await self.client.post(CommentEndpoints.create(post_id), body)
        return CommentResponse.model_validate(envelope["data"])

    async def update_comment(self, comment_id: str, content: str) -> CommentResponse:
        envelope = await self.client.put(CommentEndpoints.update(comment_id), {"content": content})
        return CommentResponse.model_validate(envelope["data"])

    async def delete_comment(self, comment_id: str) -> Optional[str]:
        envelope = await self.client.delete(CommentEndpoints.delete(comment_id))
        return envelope.get("message")

    async def toggle_like(self, comment_id: str) -> ToggleLikeResponse:
        envelope = await self.client.post(CommentEndpoints.like(comment_id))
        return ToggleLikeResponse.model_validate(envelope["data"])

    async def get_replies(self, comment_id: str) -> List[CommentResponse]:
        envelope = await self.client.get(CommentEndpoints.replies(comment_id))
        return [CommentResponse.model_validate(item) for item in envelope.get("data") or []]

    async def get_stats(self, post_id: str) -> CommentStatsResponse:
        envelope = await self.client.get(CommentEndpoints.stats(post_id))
        return CommentStatsResponse.model_validate(envelope["data"])

    async def approve(self, comment_id: str) -> CommentResponse:
        envelope = await self.client.put(CommentEndpoints.approve(comment_id))
        return CommentResponse.model_validate(envelope["data"])

    async def reject(self, comment_id: str) -> CommentResponse:
        envelope = await self.client.put(CommentEndpoints.reject(comment_id))
        return CommentResponse.model_validate(envelope["data"])

    async def report(self, comment_id: str) -> CommentResponse:
        envelope = await self.client.post(CommentEndpoints.report(comment_id))
        return CommentResponse.model_validate(envelope["data"])
