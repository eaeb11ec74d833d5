"""
# Blog Models

Request, response and filter models for the blog CMS API.

The API speaks **camelCase** JSON (`publishedAt`, `allowComments`, `commentCount`), while
MongoDB documents are stored with **snake_case** keys. Every model derives from
`CamelModel`, which generates camelCase aliases and still accepts snake_case names,
so the same model validates a raw document and serializes the wire payload.

## Domain Model Overview

- **Post**: the content unit. Owned by an author, filed under one category, tagged,
  liked, commented on. `slug`, `excerpt`, `readTime` and `publishedAt` are derived
  before each write (see `blog_cms.utils.blog_helpers`).
- **Category**: named bucket with a unique slug, display color and icon.
- **Comment**: one-level threaded reply on a post with moderation flags.

## Key Features

### 1. Content Safety
- **HTML Sanitization**: titles and category names lose all markup; post and comment
  bodies keep a small allowlist of formatting tags (`bleach`).

### 2. Filter Specification
`PostListQuery` is the typed record of optional predicates used by the post list
endpoint. It is built once from query parameters and handed to the query layer as is.

### 3. Response Envelope
`ApiResponse[T]` renders `{success, data?, message?, pagination?}`. Keys left as `None`
are omitted from the payload.

Attributes:
    POST_SORT_FIELDS (Dict[str, str]): Sortable wire names mapped to stored field names.
    POST_CONTENT_TAGS (List[str]): Tags kept in post bodies.
    COMMENT_CONTENT_TAGS (List[str]): Tags kept in comment bodies.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Generic, List, Literal, Optional, TypeVar, Union

import bleach
from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, computed_field, field_validator, model_serializer
from pydantic.alias_generators import to_camel

from blog_cms.config import settings
from blog_cms.utils.blog_helpers import compute_read_time, normalize_tags

POST_SORT_FIELDS = {
    "publishedAt": "published_at",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "title": "title",
    "views": "views",
    "readTime": "read_time",
    "likeCount": "like_count",
}

POST_CONTENT_TAGS = [
    "p", "br", "strong", "em", "code", "pre", "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "blockquote", "a", "img", "hr", "table", "thead", "tbody",
    "tr", "th", "td",
]
COMMENT_CONTENT_TAGS = ["p", "br", "strong", "em", "code", "a"]

HEX_COLOR_PATTERN = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"

# ObjectId values from Motor come back as bson.ObjectId; the API exposes them as strings.
PyObjectId = Annotated[str, BeforeValidator(str)]

DataT = TypeVar("DataT")


def _strip_all_tags(value: str) -> str:
    return bleach.clean(value, tags=[], strip=True).strip()


class PostStatus(str, Enum):
    """Post lifecycle states.

    Attributes:
        DRAFT: Being written, not listed publicly.
        PUBLISHED: Live. `publishedAt` is stamped on the first transition here.
        ARCHIVED: Retired. Archived posts do not block category deletion.
    """

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class CamelModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python and in MongoDB."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _id_field(**kwargs: Any) -> Any:
    return Field(..., validation_alias=AliasChoices("_id", "id"), serialization_alias="_id", **kwargs)


# --- Embedded values ---


class FeaturedImage(CamelModel):
    url: Optional[str] = None
    public_id: Optional[str] = None
    alt: str = ""


class SeoMetadata(CamelModel):
    title: Optional[str] = Field(None, max_length=60, description="SEO title")
    description: Optional[str] = Field(None, max_length=160, description="SEO description")
    keywords: List[str] = Field(default_factory=list, description="SEO keywords, stored lowercase")

    @field_validator("keywords")
    @classmethod
    def lowercase_keywords(cls, v):
        return [keyword.strip().lower() for keyword in v if keyword and keyword.strip()]


class CategorySeoMetadata(CamelModel):
    title: Optional[str] = Field(None, max_length=60, description="SEO title")
    description: Optional[str] = Field(None, max_length=160, description="SEO description")


class LikeEntry(CamelModel):
    user: PyObjectId
    created_at: Optional[datetime] = None


class AuthorSummary(CamelModel):
    """Subset of the user document joined into posts and comments."""

    id: PyObjectId = _id_field()
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None


class CategorySummary(CamelModel):
    """Subset of the category document joined into posts."""

    id: PyObjectId = _id_field()
    name: str
    slug: str
    color: Optional[str] = None
    description: Optional[str] = None


# --- Post ---


class CreatePostRequest(CamelModel):
    """
    Request model for creating a post.

    **Sanitization:**
    *   **title**: All HTML tags are stripped.
    *   **content**: Only the `POST_CONTENT_TAGS` allowlist survives.

    **Defaults:**
    *   **status**: `draft`.
    *   **allowComments**: `true` unless explicitly `false`.
    *   **tags**: accepts `"a, b"` or `["a", "b"]`; normalized to lowercase, de-duplicated.

    `isFeatured` and `isEditorsPick` are editorial flags; only admins may set them.
    """

    title: str = Field(..., min_length=5, max_length=200, description="Post title")
    content: str = Field(..., min_length=50, description="Post body (HTML)")
    excerpt: Optional[str] = Field(None, max_length=300, description="Short summary; derived from content when absent")
    category: str = Field(..., description="Category id")
    tags: Union[str, List[str], None] = Field(None, description="Comma-separated string or list of tags")
    status: PostStatus = Field(default=PostStatus.DRAFT, description="Post status")
    featured_image: Optional[FeaturedImage] = None
    seo_metadata: Optional[SeoMetadata] = None
    allow_comments: bool = Field(default=True, description="Whether readers can comment")
    is_featured: bool = Field(default=False, description="Admin only")
    is_editors_pick: bool = Field(default=False, description="Admin only")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        cleaned = _strip_all_tags(v)
        if len(cleaned) < 5:
            raise ValueError("Title must be at least 5 characters long")
        return cleaned

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        return bleach.clean(v, tags=POST_CONTENT_TAGS, strip=True)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return normalize_tags(v)


class UpdatePostRequest(CamelModel):
    """
    Partial update for a post.

    Only fields present in the request body are applied. `null` leaves a field
    unchanged, except `excerpt` and `featuredImage`, which may be cleared.
    """

    title: Optional[str] = Field(None, min_length=5, max_length=200)
    content: Optional[str] = Field(None, min_length=50)
    excerpt: Optional[str] = Field(None, max_length=300)
    category: Optional[str] = None
    tags: Union[str, List[str], None] = None
    status: Optional[PostStatus] = None
    featured_image: Optional[FeaturedImage] = None
    seo_metadata: Optional[SeoMetadata] = None
    allow_comments: Optional[bool] = None
    is_featured: Optional[bool] = None
    is_editors_pick: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is None:
            return v
        cleaned = _strip_all_tags(v)
        if len(cleaned) < 5:
            raise ValueError("Title must be at least 5 characters long")
        return cleaned

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        if v is None:
            return v
        return bleach.clean(v, tags=POST_CONTENT_TAGS, strip=True)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        if v is None:
            return v
        return normalize_tags(v)


class PostResponse(CamelModel):
    """
    A post as returned by the API.

    `author` and `category` are joined summaries (`null` when the referenced document
    is gone). `commentCount` and `likeCount` are computed by the read-side aggregation;
    `score` is only present on text-search results.
    """

    id: PyObjectId = _id_field()
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    featured_image: Optional[FeaturedImage] = None
    author: Optional[AuthorSummary] = None
    category: Optional[CategorySummary] = None
    tags: List[str] = Field(default_factory=list)
    status: PostStatus = PostStatus.DRAFT
    published_at: Optional[datetime] = None
    read_time: int = 0
    views: int = 0
    likes: List[LikeEntry] = Field(default_factory=list)
    like_count: int = 0
    comment_count: int = 0
    is_featured: bool = False
    is_editors_pick: bool = False
    allow_comments: bool = True
    seo_metadata: Optional[SeoMetadata] = None
    score: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field(alias="estimatedReadTime")
    @property
    def estimated_read_time(self) -> int:
        return compute_read_time(self.content)

    def is_liked_by(self, user_id: str) -> bool:
        return any(like.user == str(user_id) for like in self.likes)


class PostListQuery(BaseModel):
    """
    Filter specification for the post list.

    Attributes:
        page: 1-based page number.
        limit: Page size, capped at `MAX_PAGE_SIZE`.
        category: Category id.
        author: Author (user) id.
        status: Only posts in this status. Defaults to `published`.
        search: Case-insensitive literal substring matched against title, content and excerpt.
        sort_by: One of `POST_SORT_FIELDS`.
        sort_order: `asc` or `desc`.
        featured: When `True`, only featured posts.
    """

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
    category: Optional[str] = None
    author: Optional[str] = None
    status: PostStatus = PostStatus.PUBLISHED
    search: Optional[str] = None
    sort_by: str = "publishedAt"
    sort_order: Literal["asc", "desc"] = "desc"
    featured: Optional[bool] = None

    @field_validator("sort_by")
    @classmethod
    def validate_sort_by(cls, v):
        if v not in POST_SORT_FIELDS:
            raise ValueError(f"sortBy must be one of: {', '.join(POST_SORT_FIELDS)}")
        return v

    @field_validator("search", "category", "author")
    @classmethod
    def blank_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def sort_field(self) -> str:
        return POST_SORT_FIELDS[self.sort_by]

    @property
    def sort_direction(self) -> int:
        return -1 if self.sort_order == "desc" else 1


class ToggleLikeResponse(CamelModel):
    is_liked: bool
    like_count: int


# --- Category ---


class CreateCategoryRequest(CamelModel):
    """
    Request model for creating a category (admin only).

    **Validation:**
    *   **name**: 2-50 characters after tag stripping; unique.
    *   **color**: 3- or 6-digit hex, e.g. `#3b82f6`.
    """

    name: str = Field(..., min_length=2, max_length=50, description="Category name")
    description: Optional[str] = Field(None, max_length=200, description="Category description")
    color: str = Field(default="#007bff", pattern=HEX_COLOR_PATTERN, description="Hex display color")
    icon: str = Field(default="folder", description="Icon name")
    is_active: bool = True
    sort_order: int = 0
    seo_metadata: Optional[CategorySeoMetadata] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        cleaned = _strip_all_tags(v)
        if len(cleaned) < 2:
            raise ValueError("Category name must be at least 2 characters long")
        return cleaned


class UpdateCategoryRequest(CamelModel):
    """Partial update for a category. Renaming regenerates the slug."""

    name: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    icon: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    seo_metadata: Optional[CategorySeoMetadata] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        cleaned = _strip_all_tags(v)
        if len(cleaned) < 2:
            raise ValueError("Category name must be at least 2 characters long")
        return cleaned


class CategoryResponse(CamelModel):
    """A category. `postCount` (published posts only) is present on counted reads."""

    id: PyObjectId = _id_field()
    name: str
    slug: str
    description: Optional[str] = None
    color: str = "#007bff"
    icon: str = "folder"
    is_active: bool = True
    sort_order: int = 0
    seo_metadata: Optional[CategorySeoMetadata] = None
    post_count: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# --- Comment ---


class CreateCommentRequest(CamelModel):
    """
    Request model for commenting on a post.

    `parentComment` makes this a reply; the parent must belong to the same post.
    Content keeps only the `COMMENT_CONTENT_TAGS` allowlist.
    """

    content: str = Field(..., min_length=1, max_length=1000, description="Comment body")
    parent_comment: Optional[str] = Field(None, description="Parent comment id for replies")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        cleaned = bleach.clean(v, tags=COMMENT_CONTENT_TAGS, strip=True).strip()
        if not cleaned:
            raise ValueError("Comment must have content")
        return cleaned


class UpdateCommentRequest(CamelModel):
    content: str = Field(..., min_length=1, max_length=1000, description="Comment body")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        cleaned = bleach.clean(v, tags=COMMENT_CONTENT_TAGS, strip=True).strip()
        if not cleaned:
            raise ValueError("Comment must have content")
        return cleaned


class CommentParentSummary(CamelModel):
    """Partially resolved parent comment, enough to render "in reply to"."""

    id: PyObjectId = _id_field()
    author: Optional[AuthorSummary] = None
    content: str
    created_at: Optional[datetime] = None


class CommentResponse(CamelModel):
    id: PyObjectId = _id_field()
    content: str
    author: Optional[AuthorSummary] = None
    post: PyObjectId
    parent_comment: Optional[CommentParentSummary] = None
    is_approved: bool = True
    is_reported: bool = False
    report_count: int = 0
    is_edited: bool = False
    edited_at: Optional[datetime] = None
    likes: List[LikeEntry] = Field(default_factory=list)
    like_count: int = 0
    reply_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_liked_by(self, user_id: str) -> bool:
        return any(like.user == str(user_id) for like in self.likes)


class CommentStatsResponse(CamelModel):
    total_comments: int = 0
    total_likes: int = 0
    last_comment_date: Optional[datetime] = None


# --- Envelope ---


class PaginationMeta(CamelModel):
    """Pagination block for post lists."""

    current_page: int
    total_pages: int
    total_posts: int
    has_next_page: bool
    has_prev_page: bool


class CommentPaginationMeta(CamelModel):
    """Pagination block for comment lists."""

    current_page: int
    total_pages: int
    total_comments: int
    has_next_page: bool
    has_prev_page: bool


class ApiResponse(CamelModel, Generic[DataT]):
    """
    Standard success envelope.

    ```json
    {"success": true, "data": [...], "pagination": {"currentPage": 1, ...}}
    ```
    """

    success: bool = True
    message: Optional[str] = None
    data: Optional[DataT] = None
    pagination: Optional[Union[PaginationMeta, CommentPaginationMeta]] = None

    @model_serializer(mode="wrap")
    def _omit_empty_keys(self, handler):
        return {key: value for key, value in handler(self).items() if value is not None}


class ErrorResponse(BaseModel):
    """Failure envelope rendered by the exception handlers in `blog_cms.main`."""

    success: bool = False
    message: str
    error: Optional[str] = None
    errors: Optional[List[Any]] = None


class HealthResponse(BaseModel):
    status: Literal["healthy", "unhealthy"]
    database: bool
    timestamp: datetime
