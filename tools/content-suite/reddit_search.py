"""Fallback-ladder search over Reddit.

Reddit search is sparse and flaky for niche queries, so one logical search is
an ordered ladder of ``(time window, sort)`` attempts:

    requested pair -> same window sorted by top -> wider windows
    (week, month, year, all) with relevance and top

Each attempt runs three structurally different search paths against every
candidate host.  If the whole ladder comes back empty, the hot listings of a
few general-interest communities are sampled instead.  Whatever list wins is
then narrowed by a token filter that never turns a non-empty list into an
empty one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from factory_utils import get_logger
from reddit_fetch import EndpointFallbackFetcher
from reddit_listing import Post, RetrievalError, listing_children, normalize_post_children

log = get_logger("reddit_search")

SORTS = ("hot", "new", "top", "relevance", "trending")
TIME_WINDOWS = ("hour", "day", "week", "month", "year", "all")
ORDERS = ("upvotes", "comments")

TRENDING_SORTS = ("hot", "new", "relevance", "top")
RELAXED_WINDOWS = ("week", "month", "year", "all")
RELAXED_SORTS = ("relevance", "top")

POPULAR_SUBREDDITS = ("programming", "technology", "science", "news", "worldnews")

MIN_TOKEN_LEN = 3
MAX_LIMIT = 100


@dataclass(frozen=True)
class SearchOptions:
    limit: int = 50
    sort: str = "relevance"
    time_window: str = "day"
    title_only: bool = True
    order: str | None = None

    def validate(self) -> None:
        if self.sort not in SORTS:
            raise ValueError(f"Unknown sort {self.sort!r}; expected one of {SORTS}")
        if self.time_window not in TIME_WINDOWS:
            raise ValueError(f"Unknown time window {self.time_window!r}; expected one of {TIME_WINDOWS}")
        if self.order is not None and self.order not in ORDERS:
            raise ValueError(f"Unknown order {self.order!r}; expected one of {ORDERS}")
        if not 1 <= self.limit <= MAX_LIMIT:
            raise ValueError(f"limit must be between 1 and {MAX_LIMIT}, got {self.limit}")


@dataclass(frozen=True)
class QueryAttempt:
    time_window: str
    sort: str


# ---------------------------------------------------------------------------
# Ladder construction
# ---------------------------------------------------------------------------

def build_attempt_ladder(sort: str, time_window: str) -> list[QueryAttempt]:
    """Return the ordered, de-duplicated attempts for one search."""
    if sort == "trending":
        first = [QueryAttempt(time_window, s) for s in TRENDING_SORTS]
    else:
        first = [QueryAttempt(time_window, sort), QueryAttempt(time_window, "top")]

    relaxed = [
        QueryAttempt(window, s)
        for window in RELAXED_WINDOWS
        if window != time_window
        for s in RELAXED_SORTS
    ]
    return list(dict.fromkeys(first + relaxed))


def effective_query(query: str, title_only: bool) -> str:
    query = query.strip()
    return f"title:{query}" if title_only else query


def search_paths(query: str, attempt: QueryAttempt, limit: int) -> list[tuple[str, dict[str, str]]]:
    """The three search endpoints tried for each attempt, in order."""
    params = {
        "q": query,
        "sort": attempt.sort,
        "limit": str(limit),
        "t": attempt.time_window,
    }
    return [
        ("/search.json", params),
        ("/r/all/search.json", params),
        ("/search.json", {**params, "raw_json": "1"}),
    ]


# ---------------------------------------------------------------------------
# Relevance filtering and ordering
# ---------------------------------------------------------------------------

def query_tokens(query: str) -> list[str]:
    return [t for t in query.lower().split() if len(t) >= MIN_TOKEN_LEN]


def _haystack(post: Post, title_only: bool) -> str:
    if title_only:
        return post.title.lower()
    return f"{post.title} {post.selftext}".lower()


def filter_relevant(posts: list[Post], query: str, title_only: bool) -> list[Post]:
    """Keep posts matching all query tokens, else any token, else everything."""
    tokens = query_tokens(query)
    if not tokens:
        return list(posts)

    strict = [p for p in posts if all(t in _haystack(p, title_only) for t in tokens)]
    if strict:
        return strict
    relaxed = [p for p in posts if any(t in _haystack(p, title_only) for t in tokens)]
    if relaxed:
        return relaxed
    return list(posts)


def order_posts(posts: list[Post], order: str | None) -> list[Post]:
    """Stable descending sort by upvotes or comment count; None keeps upstream order."""
    if order == "upvotes":
        return sorted(posts, key=lambda p: p.score, reverse=True)
    if order == "comments":
        return sorted(posts, key=lambda p: p.num_comments, reverse=True)
    return list(posts)


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------

def _decode_posts(payload: Any) -> list[Post]:
    return normalize_post_children(listing_children(payload))


def _run_attempt(
    fetcher: EndpointFallbackFetcher,
    query: str,
    attempt: QueryAttempt,
    limit: int,
) -> list[Post]:
    try:
        return fetcher.fetch_first(search_paths(query, attempt, limit), _decode_posts)
    except RetrievalError:
        log.info("No results for sort=%s t=%s", attempt.sort, attempt.time_window)
        return []


def sample_popular(fetcher: EndpointFallbackFetcher, limit: int) -> list[Post]:
    """Collect the hot listings of the popular communities, skipping dead ones."""
    sampled: list[Post] = []
    seen: set[str] = set()
    for subreddit in POPULAR_SUBREDDITS:
        path = f"/r/{quote(subreddit)}/hot.json"
        try:
            posts = fetcher.fetch(path, {"limit": str(limit)}, _decode_posts)
        except RetrievalError:
            log.warning("Could not sample r/%s", subreddit)
            continue
        for post in posts:
            if post.permalink not in seen:
                seen.add(post.permalink)
                sampled.append(post)
    return sampled


def search(fetcher: EndpointFallbackFetcher, query: str, options: SearchOptions | None = None) -> list[Post]:
    """Run the fallback ladder and return relevant posts.

    Ordering runs before the cut to ``limit``, so popular sampling (up to
    five communities of ``limit`` posts each) keeps the best-ranked posts.

    Raises ValueError for bad options and RetrievalError when every tier,
    popular-community sampling included, comes back empty.
    """
    options = options or SearchOptions()
    options.validate()
    if not query or not query.strip():
        raise ValueError("query must not be blank")

    q = effective_query(query, options.title_only)
    ladder = build_attempt_ladder(options.sort, options.time_window)
    log.info("Searching %r (%d attempts, limit=%d)", q, len(ladder), options.limit)

    candidates: list[Post] = []
    for idx, attempt in enumerate(ladder, start=1):
        candidates = _run_attempt(fetcher, q, attempt, options.limit)
        if candidates:
            log.info(
                "Attempt %d/%d (sort=%s t=%s) returned %d posts",
                idx, len(ladder), attempt.sort, attempt.time_window, len(candidates),
            )
            break

    if not candidates:
        log.warning("Search ladder exhausted for %r; sampling popular communities", q)
        candidates = sample_popular(fetcher, options.limit)
        if not candidates:
            raise RetrievalError("All Reddit endpoints failed. The service may be temporarily unavailable.")

    posts = filter_relevant(candidates, query, options.title_only)
    return order_posts(posts, options.order)[: options.limit]
