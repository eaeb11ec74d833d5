"""
# API Routers

All resource routers, collected for `blog_cms.main` to mount under `settings.API_PREFIX`.
"""

from blog_cms.routes.categories import router as categories_router
from blog_cms.routes.comments import router as comments_router
from blog_cms.routes.posts import router as posts_router

api_routers = [comments_router, posts_router, categories_router]

__all__ = ["api_routers", "categories_router", "comments_router", "posts_router"]
