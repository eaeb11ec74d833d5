"""Blog CMS: posts, categories and threaded comments over MongoDB, with a FastAPI REST layer and an httpx client."""

__version__ = "1.0.0"
