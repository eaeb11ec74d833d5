"""
Shared fixtures: Motor collection doubles and users.
"""
from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId

from blog_cms.database.manager import DatabaseManager
from factories import make_collection

MANAGER_MODULES = (
    "blog_cms.managers.post_manager",
    "blog_cms.managers.category_manager",
    "blog_cms.managers.comment_manager",
    "blog_cms.routes.dependencies",
)


@pytest.fixture
def collections():
    return {name: make_collection() for name in ("users", "posts", "categories", "comments")}


@pytest.fixture
def mock_db(collections):
    """Patch `db_manager` everywhere the managers and dependencies look it up."""
    mock = MagicMock(spec=DatabaseManager)
    mock.get_collection.side_effect = lambda name: collections[name]
    patchers = [patch(f"{module}.db_manager", mock) for module in MANAGER_MODULES]
    for patcher in patchers:
        patcher.start()
    yield mock
    for patcher in patchers:
        patcher.stop()


@pytest.fixture
def author_id():
    return ObjectId()


@pytest.fixture
def author(author_id):
    return {"_id": author_id, "username": "janedoe", "email": "jane@example.com", "role": "user"}


@pytest.fixture
def admin():
    return {"_id": ObjectId(), "username": "admin", "email": "admin@example.com", "role": "admin"}


@pytest.fixture
def stranger():
    return {"_id": ObjectId(), "username": "someone", "email": "someone@example.com", "role": "user"}
