"""Canonical Reddit records and the listing decoder.

Reddit wraps everything in ``{"kind": ..., "data": {...}}`` envelopes.  The
decoder reads ``kind`` first and dispatches to the matching record type;
unknown kinds (``more`` stubs, subreddit metadata, ...) are skipped.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable

POST_KIND = "t3"
COMMENT_KIND = "t1"

# Bodies Reddit substitutes for content that is gone
REMOVED_BODIES = frozenset({"[deleted]", "[removed]"})


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class RedditError(Exception):
    """Base class for retrieval-layer failures."""


class RetrievalError(RedditError):
    """Every candidate endpoint (and every fallback tier) came back empty."""


class PostNotFoundError(RedditError):
    """The permalink resolved, but the listing held no post."""


class MalformedListingError(RedditError):
    """A listing child is missing its ``data`` object."""


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Post:
    id: str
    title: str
    selftext: str
    url: str | None
    subreddit: str
    author: str
    permalink: str
    num_comments: int
    score: int
    created_utc: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Comment:
    id: str
    body: str
    author: str
    score: int
    created_utc: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def listing_children(payload: Any) -> list[dict[str, Any]]:
    """Return ``payload["data"]["children"]``, or ``[]`` for any other shape."""
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if not isinstance(data, dict):
        return []
    children = data.get("children")
    return children if isinstance(children, list) else []


def _child_data(child: Any) -> dict[str, Any]:
    data = child.get("data") if isinstance(child, dict) else None
    if not isinstance(data, dict):
        raise MalformedListingError(f"Listing child without data object: {child!r:.200}")
    return data


def _decode_post(d: dict[str, Any]) -> Post:
    return Post(
        id=d.get("id") or "",
        title=d.get("title") or "",
        selftext=d.get("selftext") or "",
        url=d.get("url"),
        subreddit=d.get("subreddit") or "",
        author=d.get("author") or "[deleted]",
        permalink=d.get("permalink") or "",
        num_comments=d.get("num_comments") or 0,
        # Some endpoints/auth tiers omit these two
        score=d.get("score") or 0,
        created_utc=d.get("created_utc") or 0,
    )


def _decode_comment(d: dict[str, Any]) -> Comment | None:
    body = d.get("body") or ""
    if body in REMOVED_BODIES:
        return None
    return Comment(
        id=d.get("id") or "",
        body=body,
        author=d.get("author") or "[deleted]",
        score=d.get("score") or 0,
        created_utc=d.get("created_utc") or 0,
    )


def _decode_children(
    children: list[Any],
    kind: str,
    decode: Callable[[dict[str, Any]], Any],
) -> list[Any]:
    records = []
    for child in children:
        if not isinstance(child, dict) or child.get("kind") != kind:
            continue
        data = _child_data(child)
        record = decode(data)
        if record is not None:
            records.append(record)
    return records


def normalize_post_children(children: list[Any]) -> list[Post]:
    """Map ``t3`` listing children to Posts, skipping every other kind.

    Raises MalformedListingError if a ``t3`` child has no ``data`` object.
    """
    return _decode_children(children, POST_KIND, _decode_post)


def normalize_comment_children(children: list[Any]) -> list[Comment]:
    """Map ``t1`` listing children to Comments.

    ``more`` stubs and deleted/removed bodies are dropped.
    """
    return _decode_children(children, COMMENT_KIND, _decode_comment)
