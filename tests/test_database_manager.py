"""
Tests for DatabaseManager connection handling, indexes and seeding.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from blog_cms.database.manager import DEFAULT_CATEGORIES, DatabaseManager


@pytest.fixture
def connected(collections):
    manager = DatabaseManager()
    manager.database = MagicMock()
    manager.database.__getitem__.side_effect = lambda name: collections[name]
    return manager


def test_get_collection_requires_connection():
    with pytest.raises(ConnectionError):
        DatabaseManager().get_collection("posts")


@pytest.mark.asyncio
async def test_health_check_without_client():
    assert await DatabaseManager().health_check() is False


@pytest.mark.asyncio
async def test_health_check_ping_failure():
    manager = DatabaseManager()
    manager.client = MagicMock()
    manager.client.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("no primary"))

    assert await manager.health_check() is False


@pytest.mark.asyncio
async def test_connect_retries_with_backoff():
    client = MagicMock()
    client.admin.command = AsyncMock(side_effect=[ServerSelectionTimeoutError("down"), {"ok": 1}])

    with patch("blog_cms.database.manager.AsyncIOMotorClient", return_value=client), patch(
        "blog_cms.database.manager.asyncio.sleep", new=AsyncMock()
    ) as sleep:
        manager = DatabaseManager()
        await manager.connect()

    assert manager.client is client
    sleep.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_connect_gives_up():
    client = MagicMock()
    client.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("down"))

    with patch("blog_cms.database.manager.AsyncIOMotorClient", return_value=client), patch(
        "blog_cms.database.manager.asyncio.sleep", new=AsyncMock()
    ):
        with pytest.raises(ServerSelectionTimeoutError):
            await DatabaseManager().connect()

    assert client.admin.command.await_count == 3


@pytest.mark.asyncio
async def test_create_indexes_includes_text_search(connected, collections):
    for collection in collections.values():
        collection.create_index = AsyncMock()

    await connected.create_indexes()

    calls = collections["posts"].create_index.await_args_list
    text_index = next(call for call in calls if call.kwargs.get("name") == "post_text_search")
    assert [field for field, _ in text_index.args[0]] == ["title", "content", "excerpt"]
    collections["categories"].create_index.assert_any_await("slug", unique=True)


@pytest.mark.asyncio
async def test_seed_when_empty(connected, collections):
    categories = collections["categories"]
    categories.insert_many.return_value = MagicMock(inserted_ids=[1, 2, 3])

    inserted = await connected.seed_default_categories()

    documents = categories.insert_many.call_args.args[0]
    assert inserted == 3
    assert [doc["slug"] for doc in documents] == [category["slug"] for category in DEFAULT_CATEGORIES]
    assert all(doc["is_active"] for doc in documents)


@pytest.mark.asyncio
async def test_seed_skips_existing(connected, collections):
    collections["categories"].count_documents.return_value = 1

    assert await connected.seed_default_categories() == 0
    collections["categories"].insert_many.assert_not_called()


@pytest.mark.asyncio
async def test_disconnect_closes_client():
    manager = DatabaseManager()
    client = manager.client = MagicMock()
    manager.database = MagicMock()

    await manager.disconnect()
    await manager.disconnect()

    client.close.assert_called_once_with()
    assert manager.client is None
    assert manager.database is None
