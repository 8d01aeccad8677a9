"""Shared fakes for the retrieval-layer tests.

Nothing here touches the network: the fetcher is driven through a fake
transport whose handler decides what each URL returns.
"""

from typing import Any, Callable, Optional

import pytest

from reddit_fetch import EndpointFallbackFetcher

USER_AGENT = "test-agent/1.0"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, bad_json: bool = False):
        self.status_code = status_code
        self._payload = payload
        self._bad_json = bad_json

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeTransport:
    """Records every GET and answers through *handler(url, params)*."""

    def __init__(self, handler: Optional[Callable[[str, dict], Any]] = None):
        self.handler = handler or (lambda url, params: FakeResponse(404))
        self.calls: list[tuple[str, dict, dict]] = []

    def get(self, url, params=None, headers=None):
        params = dict(params or {})
        self.calls.append((url, params, dict(headers or {})))
        result = self.handler(url, params)
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def urls(self) -> list[str]:
        return [url for url, _params, _headers in self.calls]


class StubTokenCache:
    def __init__(self, token: Optional[str]):
        self.token = token
        self.calls = 0

    def get_access_token(self):
        self.calls += 1
        return self.token


def post_data(**overrides) -> dict:
    data = {
        "id": "abc123",
        "title": "A post",
        "selftext": "",
        "url": "https://example.com/article",
        "subreddit": "technology",
        "author": "someone",
        "permalink": "/r/technology/comments/abc123/a_post/",
        "num_comments": 3,
        "score": 10,
        "created_utc": 1700000000.0,
    }
    data.update(overrides)
    return data


def post_child(**overrides) -> dict:
    return {"kind": "t3", "data": post_data(**overrides)}


def comment_child(kind: str = "t1", **overrides) -> dict:
    data = {
        "id": "c1",
        "body": "Great point",
        "author": "commenter",
        "score": 4,
        "created_utc": 1700000100.0,
    }
    data.update(overrides)
    return {"kind": kind, "data": data}


def listing(*children) -> dict:
    return {"kind": "Listing", "data": {"children": list(children), "after": None}}


@pytest.fixture
def make_fetcher():
    def _make(handler=None, token=None):
        transport = FakeTransport(handler)
        cache = StubTokenCache(token) if token is not None else None
        fetcher = EndpointFallbackFetcher(transport, USER_AGENT, token_cache=cache)
        return fetcher, transport

    return _make
