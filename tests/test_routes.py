"""
HTTP-level tests: routing, envelopes, status codes and auth wiring.

The managers are replaced with AsyncMocks, so no database is involved. The client is
not used as a context manager, which keeps the startup lifespan (MongoDB connect)
from running.
"""
from unittest.mock import AsyncMock, patch

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from blog_cms.main import app
from blog_cms.models.blog_models import (
    CommentPaginationMeta,
    CommentResponse,
    PaginationMeta,
    PostResponse,
    ToggleLikeResponse,
)
from blog_cms.routes.dependencies import get_current_user
from blog_cms.utils.errors import DomainConstraintError, NotFoundError

from factories import LONG_CONTENT, make_comment_doc, make_post_doc


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Authenticate every request as the given user."""

    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user

    return _login


@pytest.fixture
def posts_mock():
    with patch("blog_cms.routes.posts.post_manager") as mock:
        yield mock


@pytest.fixture
def categories_mock():
    with patch("blog_cms.routes.categories.category_manager") as mock:
        yield mock


@pytest.fixture
def comments_mock():
    with patch("blog_cms.routes.comments.comment_manager") as mock:
        yield mock


def page(total_posts, current_page=1, total_pages=1):
    return PaginationMeta(
        current_page=current_page,
        total_pages=total_pages,
        total_posts=total_posts,
        has_next_page=current_page < total_pages,
        has_prev_page=current_page > 1,
    )


class TestPostRoutes:
    def test_list_envelope(self, client, posts_mock):
        doc = make_post_doc()
        posts_mock.list_posts = AsyncMock(return_value=([PostResponse.model_validate(doc)], page(21, 2, 3)))

        response = client.get("/api/posts", params={"page": 2, "sortBy": "views", "sortOrder": "asc"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "message" not in body
        assert body["data"][0]["_id"] == str(doc["_id"])
        assert body["data"][0]["category"]["slug"] == "technology"
        assert body["data"][0]["commentCount"] == 2
        assert body["pagination"] == {
            "currentPage": 2,
            "totalPages": 3,
            "totalPosts": 21,
            "hasNextPage": True,
            "hasPrevPage": True,
        }
        query = posts_mock.list_posts.await_args.args[0]
        assert query.page == 2
        assert query.sort_field == "views"
        assert query.sort_direction == 1

    def test_unknown_sort_field(self, client, posts_mock):
        posts_mock.list_posts = AsyncMock()

        response = client.get("/api/posts", params={"sortBy": "password"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid query parameters"
        posts_mock.list_posts.assert_not_called()

    def test_limit_out_of_range(self, client, posts_mock):
        response = client.get("/api/posts", params={"limit": 500})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        assert body["errors"][0]["field"] == "limit"

    def test_featured_is_not_an_identifier(self, client, posts_mock):
        posts_mock.get_featured_posts = AsyncMock(return_value=[])
        posts_mock.get_post = AsyncMock()

        response = client.get("/api/posts/featured")

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": []}
        posts_mock.get_post.assert_not_called()

    def test_not_found_envelope(self, client, posts_mock):
        posts_mock.get_post = AsyncMock(side_effect=NotFoundError("Post not found"))

        response = client.get("/api/posts/no-such-post")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Post not found"}

    def test_unexpected_error(self, client, posts_mock):
        posts_mock.list_posts = AsyncMock(side_effect=RuntimeError("cursor exploded"))

        response = client.get("/api/posts")

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Server error while fetching posts"
        assert body["error"] == "cursor exploded"

    def test_create_requires_token(self, client, posts_mock):
        posts_mock.create_post = AsyncMock()

        body = {"title": "Hello there", "content": LONG_CONTENT, "category": str(ObjectId())}
        response = client.post("/api/posts", json=body)

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Not authorized, no token"}
        posts_mock.create_post.assert_not_called()

    def test_create(self, client, posts_mock, login, author):
        login(author)
        doc = make_post_doc(author_id=author["_id"], status="draft", published_at=None)
        posts_mock.create_post = AsyncMock(return_value=PostResponse.model_validate(doc))

        response = client.post(
            "/api/posts",
            json={"title": "Hello there", "content": LONG_CONTENT, "category": str(ObjectId()), "allowComments": False},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Post created successfully"
        assert body["data"]["status"] == "draft"
        request, user = posts_mock.create_post.await_args.args
        assert request.allow_comments is False
        assert user is author

    def test_create_validation_errors(self, client, posts_mock, login, author):
        login(author)

        response = client.post("/api/posts", json={"title": "Hi", "content": "short", "category": str(ObjectId())})

        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["errors"]}
        assert {"title", "content"} <= fields

    def test_like_message(self, client, posts_mock, login, author):
        login(author)
        posts_mock.toggle_like = AsyncMock(return_value=ToggleLikeResponse(is_liked=True, like_count=3))

        response = client.post(f"/api/posts/{ObjectId()}/like")

        assert response.json() == {"success": True, "message": "Post liked", "data": {"isLiked": True, "likeCount": 3}}

    def test_delete(self, client, posts_mock, login, author):
        login(author)
        posts_mock.delete_post = AsyncMock(return_value=2)

        response = client.delete(f"/api/posts/{ObjectId()}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Post deleted successfully"}


class TestCategoryRoutes:
    def test_delete_requires_admin(self, client, categories_mock, login, author):
        login(author)
        categories_mock.delete_category = AsyncMock()

        response = client.delete(f"/api/categories/{ObjectId()}")

        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"
        categories_mock.delete_category.assert_not_called()

    def test_delete_blocked_by_posts(self, client, categories_mock, login, admin):
        login(admin)
        categories_mock.delete_category = AsyncMock(
            side_effect=DomainConstraintError(
                "Cannot delete category that has active posts. Please move or delete the posts first."
            )
        )

        response = client.delete(f"/api/categories/{ObjectId()}")

        assert response.status_code == 400
        assert response.json()["message"].startswith("Cannot delete category that has active posts")

    def test_list_with_counts(self, client, categories_mock):
        categories_mock.list_categories = AsyncMock(return_value=[])

        response = client.get("/api/categories", params={"withCounts": "true"})

        assert response.status_code == 200
        categories_mock.list_categories.assert_awaited_once_with(with_counts=True)


class TestCommentRoutes:
    def test_list_for_post(self, client, comments_mock):
        post_id = ObjectId()
        comment = CommentResponse.model_validate(make_comment_doc(post_id=post_id))
        pagination = CommentPaginationMeta(
            current_page=1, total_pages=1, total_comments=1, has_next_page=False, has_prev_page=False
        )
        comments_mock.list_by_post = AsyncMock(return_value=([comment], pagination))

        response = client.get(f"/api/posts/{post_id}/comments", params={"includeReplies": "true"})

        assert response.status_code == 200
        body = response.json()
        assert body["data"][0]["post"] == str(post_id)
        assert body["pagination"]["totalComments"] == 1
        assert "totalPosts" not in body["pagination"]
        comments_mock.list_by_post.assert_awaited_once_with(str(post_id), 1, 10, True)

    def test_create_comment(self, client, comments_mock, login, author):
        login(author)
        post_id = ObjectId()
        comments_mock.create_comment = AsyncMock(
            return_value=CommentResponse.model_validate(make_comment_doc(post_id=post_id))
        )

        response = client.post(f"/api/posts/{post_id}/comments", json={"content": "Great read"})

        assert response.status_code == 201
        assert response.json()["message"] == "Comment added successfully"

    def test_approve_requires_admin(self, client, comments_mock, login, author):
        login(author)

        response = client.put(f"/api/comments/{ObjectId()}/approve")

        assert response.status_code == 403


class TestAppRoutes:
    def test_health(self, client):
        with patch("blog_cms.main.db_manager") as db:
            db.health_check = AsyncMock(return_value=True)
            healthy = client.get("/health")
            db.health_check = AsyncMock(return_value=False)
            unhealthy = client.get("/health")

        assert healthy.status_code == 200
        assert healthy.json()["status"] == "healthy"
        assert unhealthy.status_code == 503
        assert unhealthy.json()["database"] is False

    def test_unknown_path(self, client):
        response = client.get("/api/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Not Found"}
