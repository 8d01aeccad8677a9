"""Fetch one Reddit thread (post + comments) by permalink."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from factory_utils import get_logger
from reddit_fetch import EndpointFallbackFetcher
from reddit_listing import (
    Comment,
    MalformedListingError,
    Post,
    PostNotFoundError,
    RetrievalError,
    listing_children,
    normalize_comment_children,
    normalize_post_children,
)

log = get_logger("reddit_thread")

UPSTREAM_COMMENT_LIMIT = 100
DEFAULT_COMMENT_CAP = 20
PROMPT_COMMENT_LIMIT = 10


@dataclass(frozen=True)
class Thread:
    post: Post
    comments: list[Comment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"post": self.post.to_dict(), "comments": [c.to_dict() for c in self.comments]}


def normalize_permalink(permalink: str) -> str:
    """``r/x/comments/abc/title/`` -> ``/r/x/comments/abc/title``."""
    path = permalink.strip()
    if path.endswith(".json"):
        path = path[: -len(".json")]
    path = path.rstrip("/")
    if not path.startswith("/"):
        path = f"/{path}"
    return path


def fetch_thread(
    fetcher: EndpointFallbackFetcher,
    permalink: str,
    comment_limit: int = DEFAULT_COMMENT_CAP,
) -> Thread:
    """Return the thread's post and its usable comments, in upstream order.

    Raises PostNotFoundError when a host answered with a thread listing that
    holds no post, and RetrievalError when no host answered usefully at all.
    """
    path = f"{normalize_permalink(permalink)}.json"
    params = {"limit": str(UPSTREAM_COMMENT_LIMIT)}
    saw_empty_thread = False

    for endpoint, _path, payload in fetcher.iter_responses([(path, params)]):
        if not isinstance(payload, list) or len(payload) < 2:
            log.warning("Unexpected thread payload from %s%s", endpoint.base, path)
            continue
        try:
            posts = normalize_post_children(listing_children(payload[0]))
            comments = normalize_comment_children(listing_children(payload[1]))
        except MalformedListingError as exc:
            log.warning("Malformed thread listing from %s%s: %s", endpoint.base, path, exc)
            continue

        if not posts:
            log.warning("No post in thread listing from %s%s", endpoint.base, path)
            saw_empty_thread = True
            continue

        log.info(
            "Fetched thread %s from %s (%d usable comments)",
            posts[0].id, endpoint.base, len(comments),
        )
        return Thread(post=posts[0], comments=comments[:comment_limit])

    if saw_empty_thread:
        raise PostNotFoundError(f"Post not found: {permalink}")
    raise RetrievalError(f"Failed to fetch post and comments from all Reddit endpoints: {permalink}")


def thread_to_text(thread: Thread, max_comments: int = PROMPT_COMMENT_LIMIT) -> str:
    """Render the thread as the plain-text brief handed to the generation stage."""
    lines = [f"- {c.author}: {c.body}" for c in thread.comments[:max_comments]]
    return (
        f"{thread.post.title}\n\n{thread.post.selftext}\n\nTop comments:\n"
        + "\n".join(lines)
    )
