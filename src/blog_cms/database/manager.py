"""
# Database Management Module

MongoDB infrastructure for the blog CMS. The `DatabaseManager` owns the Motor client
for the lifetime of the process and is the only place that knows how to reach the
`users`, `posts`, `categories` and `comments` collections.

## Key Features

### 1. Connection Lifecycle
- **Async Initialization**: connection is opened in the FastAPI lifespan, not at import.
- **Exponential Backoff**: up to 3 attempts (waits of 1s, then 2s) on selection timeouts or refused connections.
- **Graceful Shutdown**: `disconnect()` closes the pool.

### 2. Index Bootstrap
`create_indexes()` ensures the indexes the query layer relies on, most importantly the
`posts` text index (title/content/excerpt) used for relevance search and the unique
`slug` indexes on posts and categories.

### 3. Default Data
`seed_default_categories()` inserts the starter categories when the collection is empty.

## Usage

```python
from blog_cms.database import db_manager

await db_manager.connect()
posts = db_manager.get_collection("posts")
post = await posts.find_one({"slug": "hello-world-1700000000000"})
await db_manager.disconnect()
```

Attributes:
    db_logger (Logger): Logger for database operations (`[DATABASE]`).
    perf_logger (Logger): Logger for timing metrics (`[DB_PERFORMANCE]`).
    health_logger (Logger): Logger for health checks (`[DB_HEALTH]`).
    db_manager (DatabaseManager): Global singleton instance.
"""

import asyncio
from datetime import datetime, timezone
import time
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, TEXT
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from blog_cms.config import settings
from blog_cms.managers.logging_manager import get_logger

db_logger = get_logger(prefix="[DATABASE]")
perf_logger = get_logger(prefix="[DB_PERFORMANCE]")
health_logger = get_logger(prefix="[DB_HEALTH]")

MAX_POOL_SIZE = 50
MIN_POOL_SIZE = 5

DEFAULT_CATEGORIES: List[Dict[str, Any]] = [
    {
        "name": "Technology",
        "slug": "technology",
        "description": "Latest in tech trends and innovations",
        "color": "#3b82f6",
        "icon": "monitor",
        "sort_order": 1,
    },
    {
        "name": "Lifestyle",
        "slug": "lifestyle",
        "description": "Tips and insights for better living",
        "color": "#10b981",
        "icon": "heart",
        "sort_order": 2,
    },
    {
        "name": "Business",
        "slug": "business",
        "description": "Business strategies and insights",
        "color": "#f59e0b",
        "icon": "briefcase",
        "sort_order": 3,
    },
]


class DatabaseManager:
    """
    Manages the MongoDB connection, collections and index bootstrap.

    **Lifecycle:**
    1. **Instantiation**: `client` and `database` are `None`.
    2. **Connection**: `connect()` builds the client and pings the server.
    3. **Operations**: `get_collection()` hands out Motor collections.
    4. **Shutdown**: `disconnect()` closes the pool.

    Attributes:
        client (Optional[AsyncIOMotorClient]): Motor client, `None` until connected.
        database (Optional[AsyncIOMotorDatabase]): Selected database, `None` until connected.
    """

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self._connection_retries = 3

    def _connection_string(self) -> str:
        if settings.MONGODB_USERNAME and settings.MONGODB_PASSWORD:
            password = settings.MONGODB_PASSWORD.get_secret_value()
            db_logger.debug("Using authenticated connection to MongoDB")
            return (
                f"mongodb://{settings.MONGODB_USERNAME}:{password}@"
                f"{settings.MONGODB_URL.replace('mongodb://', '')}"
            )
        db_logger.debug("Using unauthenticated connection to MongoDB")
        return settings.MONGODB_URL

    async def connect(self):
        """
        Open the Motor client and ping the server, backing off 1s, 2s between attempts.

        Raises:
            ServerSelectionTimeoutError: If MongoDB is unreachable after all attempts.
            ConnectionFailure: If the connection is refused on the last attempt.
        """
        start_time = time.time()
        for attempt in range(1, self._connection_retries + 1):
            try:
                self.client = AsyncIOMotorClient(
                    self._connection_string(),
                    serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT,
                    connectTimeoutMS=settings.MONGODB_CONNECTION_TIMEOUT,
                    maxPoolSize=MAX_POOL_SIZE,
                    minPoolSize=MIN_POOL_SIZE,
                )
                self.database = self.client[settings.MONGODB_DATABASE]
                await self.client.admin.command("ping")
            except (ServerSelectionTimeoutError, ConnectionFailure) as e:
                db_logger.warning("MongoDB attempt %d/%d failed: %s", attempt, self._connection_retries, e)
                if attempt == self._connection_retries:
                    raise
                await asyncio.sleep(2 ** (attempt - 1))
            else:
                perf_logger.info("Connected to '%s' in %.3fs", settings.MONGODB_DATABASE, time.time() - start_time)
                return

    async def disconnect(self):
        if self.client is None:
            return
        self.client.close()
        self.client = None
        self.database = None
        db_logger.info("MongoDB connection closed")

    async def health_check(self) -> bool:
        """Ping the server; `False` on any driver error, never raises."""
        if self.client is None:
            return False
        try:
            await self.client.admin.command("ping")
        except PyMongoError as e:
            health_logger.error("Database ping failed: %s", e)
            return False
        return True

    def get_collection(self, collection_name: str) -> AsyncIOMotorCollection:
        """
        Return a collection from the connected database.

        Raises:
            ConnectionError: If `connect()` has not been called.
        """
        if self.database is None:
            db_logger.error("Attempted to get collection '%s' without database connection", collection_name)
            raise ConnectionError("Database not connected")

        db_logger.debug("Retrieving collection: %s", collection_name)
        return self.database[collection_name]

    async def create_indexes(self):
        """Create the indexes used by the post, category and comment queries."""
        start_time = time.time()
        db_logger.info("Starting database index creation process")

        users = self.get_collection("users")
        await self._create_index_if_not_exists(users, "email", {"unique": True, "sparse": True})
        await self._create_index_if_not_exists(users, "username", {"unique": True, "sparse": True})

        posts = self.get_collection("posts")
        await self._create_index_if_not_exists(
            posts, [("title", TEXT), ("content", TEXT), ("excerpt", TEXT)], {"name": "post_text_search"}
        )
        await self._create_index_if_not_exists(posts, "slug", {"unique": True})
        await self._create_index_if_not_exists(posts, [("status", ASCENDING), ("published_at", DESCENDING)], {})
        await self._create_index_if_not_exists(posts, [("author", ASCENDING), ("created_at", DESCENDING)], {})
        await self._create_index_if_not_exists(posts, [("category", ASCENDING), ("published_at", DESCENDING)], {})
        await self._create_index_if_not_exists(posts, "tags", {})
        await self._create_index_if_not_exists(posts, [("views", DESCENDING)], {})
        await self._create_index_if_not_exists(posts, "likes.user", {})

        categories = self.get_collection("categories")
        await self._create_index_if_not_exists(categories, "slug", {"unique": True})
        await self._create_index_if_not_exists(categories, "name", {"unique": True})
        await self._create_index_if_not_exists(categories, [("sort_order", ASCENDING), ("name", ASCENDING)], {})

        comments = self.get_collection("comments")
        await self._create_index_if_not_exists(comments, [("post", ASCENDING), ("created_at", DESCENDING)], {})
        await self._create_index_if_not_exists(comments, [("author", ASCENDING), ("created_at", DESCENDING)], {})
        await self._create_index_if_not_exists(comments, [("parent_comment", ASCENDING), ("created_at", ASCENDING)], {})
        await self._create_index_if_not_exists(comments, "is_approved", {})

        perf_logger.info("Database index creation completed successfully in %.3fs", time.time() - start_time)
        db_logger.info("Database indexes created successfully")

    async def _create_index_if_not_exists(
        self, collection: AsyncIOMotorCollection, field_spec: Any, options: Dict[str, Any]
    ):
        """Create an index if it doesn't already exist"""
        start_time = time.time()

        try:
            await collection.create_index(field_spec, **options)
            perf_logger.debug("Created/ensured index '%s' in %.3fs", field_spec, time.time() - start_time)
        except PyMongoError as e:
            perf_logger.warning("Failed to create/ensure index '%s' after %.3fs", field_spec, time.time() - start_time)
            db_logger.warning("Could not create/ensure index '%s': %s", field_spec, e)

    async def seed_default_categories(self) -> int:
        """
        Insert the starter categories when the collection is empty.

        Returns:
            int: Number of categories inserted (0 when categories already exist).
        """
        categories = self.get_collection("categories")
        if await categories.count_documents({}, limit=1):
            db_logger.debug("Categories already present, skipping default seeding")
            return 0

        now = datetime.now(timezone.utc)
        documents = [
            {**category, "is_active": True, "created_at": now, "updated_at": now}
            for category in DEFAULT_CATEGORIES
        ]
        result = await categories.insert_many(documents)
        db_logger.info("Seeded %d default categories", len(result.inserted_ids))
        return len(result.inserted_ids)


db_manager = DatabaseManager()
