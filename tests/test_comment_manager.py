"""
Tests for CommentManager: threading rules, visibility, moderation and cascade.
"""
from datetime import datetime, timezone

import pytest
from bson import ObjectId

from blog_cms.managers.comment_manager import CommentManager
from blog_cms.models.blog_models import CreateCommentRequest, UpdateCommentRequest
from blog_cms.utils.errors import AuthorizationError, DomainConstraintError, NotFoundError, ValidationError

from factories import make_comment_doc, make_cursor, set_aggregate_results


@pytest.fixture
def manager(mock_db):
    return CommentManager()


@pytest.fixture
def comments(collections):
    return collections["comments"]


@pytest.fixture
def post_id(collections):
    """An existing post that accepts comments."""
    oid = ObjectId()
    collections["posts"].find_one.return_value = {"_id": oid, "allow_comments": True}
    return oid


class TestListByPost:
    @pytest.mark.asyncio
    async def test_top_level_only_by_default(self, manager, comments, post_id):
        set_aggregate_results(comments, [make_comment_doc(post_id=post_id)])
        comments.count_documents.return_value = 11

        items, pagination = await manager.list_by_post(str(post_id), page=1, limit=10)

        pipeline = comments.aggregate.call_args.args[0]
        assert pipeline[0] == {"$match": {"post": post_id, "is_approved": True, "parent_comment": None}}
        assert pipeline[1] == {"$sort": {"created_at": -1, "_id": -1}}
        assert len(items) == 1
        assert pagination.model_dump(by_alias=True) == {
            "currentPage": 1,
            "totalPages": 2,
            "totalComments": 11,
            "hasNextPage": True,
            "hasPrevPage": False,
        }

    @pytest.mark.asyncio
    async def test_include_replies(self, manager, comments, post_id):
        await manager.list_by_post(str(post_id), include_replies=True)

        match = comments.aggregate.call_args.args[0][0]["$match"]
        assert "parent_comment" not in match

    @pytest.mark.asyncio
    async def test_unknown_post(self, manager, collections):
        collections["posts"].find_one.return_value = None

        with pytest.raises(NotFoundError, match="Post not found"):
            await manager.list_by_post(str(ObjectId()))

    @pytest.mark.asyncio
    async def test_reply_carries_parent_summary(self, manager, comments, post_id):
        parent = {"_id": ObjectId(), "author": {"_id": ObjectId(), "username": "op"}, "content": "Original"}
        set_aggregate_results(comments, [make_comment_doc(post_id=post_id, parent_comment=parent)])

        items, _ = await manager.list_by_post(str(post_id), include_replies=True)

        assert items[0].parent_comment.content == "Original"
        assert items[0].parent_comment.author.username == "op"


class TestReplies:
    @pytest.mark.asyncio
    async def test_oldest_first(self, manager, comments):
        parent = make_comment_doc()
        comments.find_one.return_value = parent

        await manager.get_replies(str(parent["_id"]))

        pipeline = comments.aggregate.call_args.args[0]
        assert pipeline[0] == {"$match": {"parent_comment": parent["_id"], "is_approved": True}}
        assert pipeline[1] == {"$sort": {"created_at": 1, "_id": 1}}


class TestCreateComment:
    @pytest.mark.asyncio
    async def test_top_level(self, manager, comments, post_id, author):
        set_aggregate_results(comments, [make_comment_doc(post_id=post_id, author_id=author["_id"])])

        comment = await manager.create_comment(str(post_id), CreateCommentRequest(content="Nice!"), author)

        document = comments.insert_one.call_args.args[0]
        assert document["post"] == post_id
        assert document["author"] == author["_id"]
        assert document["parent_comment"] is None
        assert document["is_approved"] is True
        assert document["is_edited"] is False
        assert comment.post == str(post_id)

    @pytest.mark.asyncio
    async def test_comments_disabled(self, manager, collections, comments, author):
        post_id = ObjectId()
        collections["posts"].find_one.return_value = {"_id": post_id, "allow_comments": False}

        with pytest.raises(DomainConstraintError, match="Comments are disabled for this post"):
            await manager.create_comment(str(post_id), CreateCommentRequest(content="Hello"), author)

        comments.insert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_reply_to_top_level(self, manager, comments, post_id, author):
        parent_id = ObjectId()
        comments.find_one.return_value = {"_id": parent_id, "parent_comment": None}
        set_aggregate_results(comments, [make_comment_doc(post_id=post_id)])

        request = CreateCommentRequest(content="Agreed", parentComment=str(parent_id))
        await manager.create_comment(str(post_id), request, author)

        comments.find_one.assert_awaited_once_with(
            {"_id": parent_id, "post": post_id}, projection={"parent_comment": 1}
        )
        assert comments.insert_one.call_args.args[0]["parent_comment"] == parent_id

    @pytest.mark.asyncio
    async def test_parent_on_another_post(self, manager, comments, post_id, author):
        comments.find_one.return_value = None

        request = CreateCommentRequest(content="Agreed", parent_comment=str(ObjectId()))
        with pytest.raises(ValidationError, match="Parent comment not found on this post"):
            await manager.create_comment(str(post_id), request, author)

    @pytest.mark.asyncio
    async def test_reply_to_reply(self, manager, comments, post_id, author):
        comments.find_one.return_value = {"_id": ObjectId(), "parent_comment": ObjectId()}

        request = CreateCommentRequest(content="Nested", parent_comment=str(ObjectId()))
        with pytest.raises(ValidationError, match="top-level"):
            await manager.create_comment(str(post_id), request, author)

        comments.insert_one.assert_not_called()


class TestUpdateComment:
    @pytest.mark.asyncio
    async def test_marks_edited(self, manager, comments, author):
        existing = make_comment_doc(author_id=author["_id"], content="Frist")
        existing["author"] = author["_id"]
        comments.find_one.return_value = existing
        set_aggregate_results(comments, [make_comment_doc(is_edited=True)])

        await manager.update_comment(str(existing["_id"]), UpdateCommentRequest(content="First"), author)

        changes = comments.update_one.call_args.args[1]["$set"]
        assert changes["content"] == "First"
        assert changes["is_edited"] is True
        assert isinstance(changes["edited_at"], datetime)

    @pytest.mark.asyncio
    async def test_other_user_is_rejected(self, manager, comments, author, stranger):
        existing = make_comment_doc()
        existing["author"] = author["_id"]
        comments.find_one.return_value = existing

        with pytest.raises(AuthorizationError):
            await manager.update_comment(str(existing["_id"]), UpdateCommentRequest(content="Mine now"), stranger)


class TestDeleteComment:
    @pytest.mark.asyncio
    async def test_removes_whole_subtree(self, manager, comments, author):
        root = make_comment_doc()
        root["author"] = author["_id"]
        child_a, child_b, grandchild = ObjectId(), ObjectId(), ObjectId()
        comments.find_one.return_value = root
        comments.find.side_effect = [
            make_cursor([{"_id": child_a}, {"_id": child_b}]),
            make_cursor([{"_id": grandchild}]),
            make_cursor([]),
        ]
        comments.delete_many.return_value.deleted_count = 4

        removed = await manager.delete_comment(str(root["_id"]), author)

        assert removed == 4
        comments.delete_many.assert_awaited_once_with({"_id": {"$in": [root["_id"], child_a, child_b, grandchild]}})
        assert comments.find.call_args_list[1].args[0] == {"parent_comment": {"$in": [child_a, child_b]}}

    @pytest.mark.asyncio
    async def test_admin_may_delete(self, manager, comments, admin):
        root = make_comment_doc()
        comments.find_one.return_value = root
        comments.delete_many.return_value.deleted_count = 1

        assert await manager.delete_comment(str(root["_id"]), admin) == 1

    @pytest.mark.asyncio
    async def test_other_user_is_rejected(self, manager, comments, stranger):
        comments.find_one.return_value = make_comment_doc()

        with pytest.raises(AuthorizationError):
            await manager.delete_comment(str(ObjectId()), stranger)

        comments.delete_many.assert_not_called()


class TestModeration:
    @pytest.mark.asyncio
    async def test_approve_and_reject(self, manager, comments):
        comment_id = ObjectId()
        comments.find_one_and_update.return_value = {"_id": comment_id}
        set_aggregate_results(comments, [make_comment_doc(is_approved=True)], [make_comment_doc(is_approved=False)])

        approved = await manager.approve_comment(str(comment_id))
        rejected = await manager.reject_comment(str(comment_id))

        assert approved.is_approved is True
        assert rejected.is_approved is False
        updates = [call.args[1]["$set"]["is_approved"] for call in comments.find_one_and_update.await_args_list]
        assert updates == [True, False]

    @pytest.mark.asyncio
    async def test_report_increments_count(self, manager, comments, author):
        comment_id = ObjectId()
        comments.find_one_and_update.return_value = {"_id": comment_id, "report_count": 2}
        set_aggregate_results(comments, [make_comment_doc(is_reported=True, report_count=2)])

        comment = await manager.report_comment(str(comment_id), author)

        update = comments.find_one_and_update.call_args.args[1]
        assert update == {"$inc": {"report_count": 1}, "$set": {"is_reported": True}}
        assert comment.report_count == 2

    @pytest.mark.asyncio
    async def test_moderating_missing_comment(self, manager):
        with pytest.raises(NotFoundError):
            await manager.approve_comment(str(ObjectId()))


class TestStats:
    @pytest.mark.asyncio
    async def test_empty_post(self, manager, post_id):
        stats = await manager.get_post_stats(str(post_id))

        assert stats.total_comments == 0
        assert stats.total_likes == 0
        assert stats.last_comment_date is None

    @pytest.mark.asyncio
    async def test_aggregated(self, manager, comments, post_id):
        latest = datetime(2024, 2, 1, tzinfo=timezone.utc)
        set_aggregate_results(
            comments, [{"_id": None, "total_comments": 3, "total_likes": 5, "last_comment_date": latest}]
        )

        stats = await manager.get_post_stats(str(post_id))

        pipeline = comments.aggregate.call_args.args[0]
        assert pipeline[0] == {"$match": {"post": post_id, "is_approved": True}}
        assert stats.model_dump(by_alias=True) == {
            "totalComments": 3,
            "totalLikes": 5,
            "lastCommentDate": latest,
        }
