"""
# Blog API Client Package

- **`api_client`**: `BlogApiClient`, `TokenStore`, `ApiClientError`.
- **`endpoints`**: path builders per resource.
- **`services`**: `PostService`, `CategoryService`, `CommentService`.
"""

from blog_cms.client.api_client import ApiClientError, BlogApiClient, TokenStore
from blog_cms.client.services import CategoryService, CommentService, PostService

__all__ = [
    "ApiClientError",
    "BlogApiClient",
    "CategoryService",
    "CommentService",
    "PostService",
    "TokenStore",
]
