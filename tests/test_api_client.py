"""
Tests for the async API client and resource services, using httpx.MockTransport.
"""
import json

import httpx
import pytest
from bson import ObjectId

from blog_cms.client import ApiClientError, BlogApiClient, CommentService, PostService, TokenStore
from blog_cms.client.api_client import NETWORK_ERROR_MESSAGE, SESSION_EXPIRED_MESSAGE, notifications_for
from blog_cms.models.blog_models import CommentResponse, PostResponse

from factories import make_comment_doc, make_post_doc

BASE_URL = "http://testserver/api"


def wire(model_cls, doc):
    """Render a stored document the way the API sends it."""
    return model_cls.model_validate(doc).model_dump(by_alias=True, mode="json")


class Recorder:
    """Collects requests and notifications; answers with a canned response."""

    def __init__(self, status_code=200, body=None, exc=None):
        self.status_code = status_code
        self.body = body if body is not None else {"success": True}
        self.exc = exc
        self.requests = []
        self.notifications = []

    def handler(self, request):
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc(f"cannot reach {request.url.host}", request=request)
        if self.status_code == 204:
            return httpx.Response(204)
        return httpx.Response(self.status_code, json=self.body)

    def client(self, token=None):
        return BlogApiClient(
            base_url=BASE_URL,
            token_store=TokenStore(token),
            notify=self.notifications.append,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.mark.asyncio
async def test_bearer_token_injected():
    recorder = Recorder()

    async with recorder.client(token="abc.def.ghi") as client:
        await client.get("/posts")

    assert recorder.requests[0].headers["Authorization"] == "Bearer abc.def.ghi"
    assert str(recorder.requests[0].url) == "http://testserver/api/posts"


@pytest.mark.asyncio
async def test_no_token_no_header():
    recorder = Recorder()

    async with recorder.client() as client:
        await client.get("/posts")

    assert "Authorization" not in recorder.requests[0].headers


@pytest.mark.asyncio
async def test_params_drop_none_and_lowercase_bools():
    recorder = Recorder()

    async with recorder.client() as client:
        await client.get("/posts", params={"page": 2, "featured": True, "category": None})

    assert dict(recorder.requests[0].url.params) == {"page": "2", "featured": "true"}


@pytest.mark.asyncio
async def test_401_clears_token_and_notifies():
    recorder = Recorder(401, {"success": False, "message": "Token expired, please login again"})
    client = recorder.client(token="stale")

    with pytest.raises(ApiClientError) as excinfo:
        await client.get("/auth/me")
    await client.aclose()

    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Token expired, please login again"
    assert client.token_store.get() is None
    assert recorder.notifications == [SESSION_EXPIRED_MESSAGE]


@pytest.mark.asyncio
async def test_422_notifies_each_field():
    body = {"success": False, "errors": [{"msg": "Title is required"}, {"message": "Content is too short"}]}
    recorder = Recorder(422, body)

    async with recorder.client() as client:
        with pytest.raises(ApiClientError):
            await client.post("/posts", {"title": ""})

    assert recorder.notifications == ["Title is required", "Content is too short"]


@pytest.mark.asyncio
async def test_server_message_used_for_unmapped_status():
    recorder = Recorder(400, {"success": False, "message": "Comments are disabled for this post"})

    async with recorder.client() as client:
        with pytest.raises(ApiClientError) as excinfo:
            await client.post("/posts/x/comments", {"content": "hi"})

    assert excinfo.value.status_code == 400
    assert recorder.notifications == ["Comments are disabled for this post"]


@pytest.mark.asyncio
async def test_network_error():
    recorder = Recorder(exc=httpx.ConnectError)

    async with recorder.client() as client:
        with pytest.raises(ApiClientError) as excinfo:
            await client.get("/posts")

    assert excinfo.value.status_code is None
    assert recorder.notifications == [NETWORK_ERROR_MESSAGE]


@pytest.mark.asyncio
async def test_empty_body():
    recorder = Recorder(204)

    async with recorder.client() as client:
        assert await client.delete("/posts/abc") == {"success": True}


@pytest.mark.parametrize(
    "status_code, payload, expected",
    [
        (403, {"message": "Admin access required"}, ["You do not have permission to perform this action"]),
        (404, {}, ["The requested resource was not found"]),
        (429, {}, ["Too many requests. Please try again later."]),
        (500, {"message": "Server error"}, ["Server error. Please try again later."]),
        (418, {}, ["An unexpected error occurred"]),
        (422, {"message": "Validation failed"}, ["Validation failed"]),
    ],
)
def test_notifications_for(status_code, payload, expected):
    assert notifications_for(status_code, payload) == expected


class TestServices:
    @pytest.mark.asyncio
    async def test_list_posts(self):
        doc = make_post_doc()
        pagination = {"currentPage": 1, "totalPages": 4, "totalPosts": 31, "hasNextPage": True, "hasPrevPage": False}
        recorder = Recorder(body={"success": True, "data": [wire(PostResponse, doc)], "pagination": pagination})

        async with recorder.client() as client:
            posts, meta = await PostService(client).list_posts(sort_by="views", featured=True)

        assert posts[0].id == str(doc["_id"])
        assert posts[0].author.username == "janedoe"
        assert meta.total_posts == 31
        params = dict(recorder.requests[0].url.params)
        assert params["sortBy"] == "views"
        assert params["featured"] == "true"
        assert "category" not in params

    @pytest.mark.asyncio
    async def test_get_post_by_slug(self):
        doc = make_post_doc()
        recorder = Recorder(body={"success": True, "data": wire(PostResponse, doc)})

        async with recorder.client() as client:
            post = await PostService(client).get_post("hello world")

        assert post.slug == doc["slug"]
        assert recorder.requests[0].url.raw_path == b"/api/posts/hello%20world"

    @pytest.mark.asyncio
    async def test_add_reply(self):
        post_id, parent_id = str(ObjectId()), str(ObjectId())
        recorder = Recorder(201, {"success": True, "data": wire(CommentResponse, make_comment_doc())})

        async with recorder.client(token="t") as client:
            comment = await CommentService(client).add_comment(post_id, "Agreed!", parent_comment=parent_id)

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path == f"/api/posts/{post_id}/comments"
        assert json.loads(request.content) == {"content": "Agreed!", "parentComment": parent_id}
        assert comment.content == "Great write-up, thanks!"

    @pytest.mark.asyncio
    async def test_toggle_like(self):
        recorder = Recorder(body={"success": True, "message": "Post unliked", "data": {"isLiked": False, "likeCount": 0}})

        async with recorder.client(token="t") as client:
            result = await PostService(client).toggle_like(str(ObjectId()))

        assert result.is_liked is False
        assert result.like_count == 0
