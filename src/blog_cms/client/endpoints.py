"""
# API Endpoints

Path builders for every resource the client talks to, relative to the API root
(`settings.API_BASE_URL`). Ids and slugs are URL-quoted.

```python
client.get(PostEndpoints.by_id(post_id))
client.get(CommentEndpoints.for_post(post_id), params={"includeReplies": True})
```
"""

from urllib.parse import quote


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class PostEndpoints:
    ALL = "/posts"
    CREATE = "/posts"
    SEARCH = "/posts/search"
    FEATURED = "/posts/featured"

    @staticmethod
    def by_id(post_id: str) -> str:
        return f"/posts/{_segment(post_id)}"

    @staticmethod
    def by_slug(slug: str) -> str:
        # The API resolves ids and slugs on the same path.
        return f"/posts/{_segment(slug)}"

    @staticmethod
    def update(post_id: str) -> str:
        return f"/posts/{_segment(post_id)}"

    @staticmethod
    def delete(post_id: str) -> str:
        return f"/posts/{_segment(post_id)}"

    @staticmethod
    def like(post_id: str) -> str:
        return f"/posts/{_segment(post_id)}/like"


class CategoryEndpoints:
    ALL = "/categories"
    CREATE = "/categories"

    @staticmethod
    def by_id(category_id: str) -> str:
        return f"/categories/{_segment(category_id)}"

    @staticmethod
    def by_slug(slug: str) -> str:
        return f"/categories/{_segment(slug)}"

    @staticmethod
    def update(category_id: str) -> str:
        return f"/categories/{_segment(category_id)}"

    @staticmethod
    def delete(category_id: str) -> str:
        return f"/categories/{_segment(category_id)}"


class CommentEndpoints:
    @staticmethod
    def for_post(post_id: str) -> str:
        return f"/posts/{_segment(post_id)}/comments"

    @staticmethod
    def create(post_id: str) -> str:
        return f"/posts/{_segment(post_id)}/comments"

    @staticmethod
    def stats(post_id: str) -> str:
        return f"/posts/{_segment(post_id)}/comments/stats"

    @staticmethod
    def update(comment_id: str) -> str:
        return f"/comments/{_segment(comment_id)}"

    @staticmethod
    def delete(comment_id: str) -> str:
        return f"/comments/{_segment(comment_id)}"

    @staticmethod
    def like(comment_id: str) -> str:
        return f"/comments/{_segment(comment_id)}/like"

    @staticmethod
    def replies(comment_id: str) -> str:
        return f"/comments/{_segment(comment_id)}/replies"

    @staticmethod
    def approve(comment_id: str) -> str:
        return f"/comments/{_segment(comment_id)}/approve"

    @staticmethod
    def reject(comment_id: str) -> str:
        return f"/comments/{_segment(comment_id)}/reject"

    @staticmethod
    def report(comment_id: str) -> str:
        return f"/comments/{_segment(comment_id)}/report"
