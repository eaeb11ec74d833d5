"""
# Blog Helpers

Pure functions for the values the store derives from user input before a write:

- **Slugs** for posts (title + millisecond stamp) and categories (name only).
- **Excerpts** from markup-stripped content.
- **Read time** from word count.
- **Tag normalization** from a comma-separated string or a list.

The derivations are grouped into ordered pipelines. Each step receives the stored
document as it was (`previous`, or `None` on create), the document as it will be
written (`current`), and the write time, and returns only the fields it changes.
Later steps see the output of earlier ones.

```python
changes = run_pipeline(POST_PIPELINE, previous=None, current={"title": "Hello", "content": body, "status": "draft"})
document.update(changes)
```
"""

import html
import math
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import bleach

from blog_cms.config import settings

_NON_SLUG_CHARS = re.compile(r"[^a-zA-Z0-9\s]")
_WHITESPACE_RUN = re.compile(r"\s+")

PipelineStep = Callable[[Optional[Mapping[str, Any]], Mapping[str, Any], datetime], Dict[str, Any]]


def slugify(text: str) -> str:
    """Lowercase, drop anything outside `[a-zA-Z0-9\\s]`, hyphenate whitespace runs, trim hyphens."""
    slug = _NON_SLUG_CHARS.sub("", (text or "").lower())
    slug = _WHITESPACE_RUN.sub("-", slug)
    return slug.strip("-")


def build_post_slug(title: str, stamp_ms: int) -> str:
    """Post slug with the millisecond stamp appended, e.g. `hello-world-1700000000000`."""
    base = slugify(title)
    return f"{base}-{stamp_ms}" if base else str(stamp_ms)


def timestamp_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def strip_html(text: str) -> str:
    """Remove every tag and decode entities."""
    return html.unescape(bleach.clean(text or "", tags=[], strip=True)).strip()


def derive_excerpt(content: str, length: Optional[int] = None) -> str:
    length = length or settings.EXCERPT_LENGTH
    return strip_html(content)[:length] + "..."


def compute_read_time(content: str, words_per_minute: Optional[int] = None) -> int:
    """Minutes needed to read `content`, rounded up. Empty content reads in 0 minutes."""
    words_per_minute = words_per_minute or settings.WORDS_PER_MINUTE
    words = (content or "").split()
    return math.ceil(len(words) / words_per_minute)


def normalize_tags(tags: Union[str, Iterable[str], None]) -> List[str]:
    """
    Turn `"Python, fastapi ,python"` or a list into `["python", "fastapi"]`.

    Blank entries are dropped and the first occurrence wins.
    """
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")

    normalized: List[str] = []
    for tag in tags:
        cleaned = str(tag).strip().lower()
        if cleaned and cleaned not in normalized:
            normalized.append(cleaned)
    return normalized


def _changed(previous: Optional[Mapping[str, Any]], current: Mapping[str, Any], field: str) -> bool:
    if previous is None:
        return True
    return previous.get(field) != current.get(field)


# --- Post steps ---


def post_slug_step(previous, current, now):
    if current.get("title") and _changed(previous, current, "title"):
        return {"slug": build_post_slug(current["title"], timestamp_ms(now))}
    return {}


def post_excerpt_step(previous, current, now):
    if current.get("content") and _changed(previous, current, "content") and not current.get("excerpt"):
        return {"excerpt": derive_excerpt(current["content"])}
    return {}


def post_published_at_step(previous, current, now):
    if current.get("status") == "published" and not current.get("published_at"):
        return {"published_at": now}
    return {}


def post_read_time_step(previous, current, now):
    if _changed(previous, current, "content"):
        return {"read_time": compute_read_time(current.get("content", ""))}
    return {}


# --- Category steps ---


def category_slug_step(previous, current, now):
    if current.get("name") and _changed(previous, current, "name"):
        return {"slug": slugify(current["name"])}
    return {}


# --- Comment steps ---


def comment_edit_step(previous, current, now):
    # Edits are only tracked on comments that already exist.
    if previous is not None and _changed(previous, current, "content"):
        return {"is_edited": True, "edited_at": now}
    return {}


POST_PIPELINE: Sequence[PipelineStep] = (
    post_slug_step,
    post_excerpt_step,
    post_published_at_step,
    post_read_time_step,
)
CATEGORY_PIPELINE: Sequence[PipelineStep] = (category_slug_step,)
COMMENT_PIPELINE: Sequence[PipelineStep] = (comment_edit_step,)


def run_pipeline(
    steps: Sequence[PipelineStep],
    previous: Optional[Mapping[str, Any]],
    current: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Apply `steps` in order and return the accumulated derived fields.

    `current` is not mutated; each step sees `current` merged with the changes so far.
    """
    now = now or datetime.now(timezone.utc)
    working = dict(current)
    changes: Dict[str, Any] = {}
    for step in steps:
        step_changes = step(previous, working, now)
        working.update(step_changes)
        changes.update(step_changes)
    return changes
