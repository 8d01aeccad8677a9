"""Tests for thread fetching and the thread brief."""

import pytest

from conftest import FakeResponse, comment_child, listing, post_child
from reddit_listing import Comment, PostNotFoundError, RetrievalError, normalize_post_children
from reddit_thread import Thread, fetch_thread, normalize_permalink, thread_to_text

PERMALINK = "/r/technology/comments/abc123/a_post/"


def thread_payload(post_children, comment_children):
    return [listing(*post_children), listing(*comment_children)]


@pytest.mark.parametrize(
    "raw",
    [
        "/r/technology/comments/abc123/a_post/",
        "r/technology/comments/abc123/a_post",
        "/r/technology/comments/abc123/a_post.json",
    ],
)
def test_normalize_permalink(raw):
    assert normalize_permalink(raw) == "/r/technology/comments/abc123/a_post"


def test_fetch_thread_returns_post_and_filtered_comments(make_fetcher):
    payload = thread_payload(
        [post_child(title="A post", selftext="Body")],
        [
            comment_child(id="c1", body="First"),
            comment_child(id="c2", body="[deleted]"),
            comment_child(kind="more", id="more1"),
            comment_child(id="c3", body="Third"),
        ],
    )
    fetcher, transport = make_fetcher(lambda url, params: FakeResponse(200, payload))

    thread = fetch_thread(fetcher, PERMALINK)

    assert thread.post.title == "A post"
    assert [c.id for c in thread.comments] == ["c1", "c3"]
    url, params, _headers = transport.calls[0]
    assert url == "https://www.reddit.com/r/technology/comments/abc123/a_post.json"
    assert params == {"limit": "100"}


def test_comments_are_capped_in_upstream_order(make_fetcher):
    comments = [comment_child(id=f"c{i}", body=f"comment {i}") for i in range(30)]
    payload = thread_payload([post_child()], comments)
    fetcher, _ = make_fetcher(lambda url, params: FakeResponse(200, payload))

    thread = fetch_thread(fetcher, PERMALINK)

    assert [c.id for c in thread.comments] == [f"c{i}" for i in range(20)]
    assert len(fetch_thread(fetcher, PERMALINK, comment_limit=5).comments) == 5


def test_falls_back_to_next_host(make_fetcher):
    payload = thread_payload([post_child(id="ok")], [])

    def handler(url, params):
        if url.startswith("https://www.reddit.com"):
            return FakeResponse(429, None)
        return FakeResponse(200, payload)

    fetcher, transport = make_fetcher(handler)

    thread = fetch_thread(fetcher, PERMALINK)

    assert thread.post.id == "ok"
    assert transport.urls[1].startswith("https://old.reddit.com")


def test_empty_post_listing_is_not_found(make_fetcher):
    payload = thread_payload([], [comment_child()])
    fetcher, _ = make_fetcher(lambda url, params: FakeResponse(200, payload))

    with pytest.raises(PostNotFoundError):
        fetch_thread(fetcher, PERMALINK)


def test_not_found_on_one_host_still_tries_the_rest(make_fetcher):
    def handler(url, params):
        if url.startswith("https://www.reddit.com"):
            return FakeResponse(200, thread_payload([], []))
        return FakeResponse(200, thread_payload([post_child(id="late")], []))

    fetcher, _ = make_fetcher(handler)

    assert fetch_thread(fetcher, PERMALINK).post.id == "late"


def test_all_hosts_failing_is_exhaustion_not_not_found(make_fetcher):
    fetcher, _ = make_fetcher(lambda url, params: FakeResponse(502, None))

    with pytest.raises(RetrievalError):
        fetch_thread(fetcher, PERMALINK)


def test_dataless_more_stub_keeps_the_thread(make_fetcher):
    payload = thread_payload([post_child(id="kept")], [comment_child(id="c1"), {"kind": "more"}])
    fetcher, transport = make_fetcher(lambda url, params: FakeResponse(200, payload))

    thread = fetch_thread(fetcher, PERMALINK)

    assert thread.post.id == "kept"
    assert [c.id for c in thread.comments] == ["c1"]
    assert len(transport.calls) == 1


def test_wrong_shape_is_treated_as_host_failure(make_fetcher):
    fetcher, _ = make_fetcher(lambda url, params: FakeResponse(200, listing(post_child())))

    with pytest.raises(RetrievalError):
        fetch_thread(fetcher, PERMALINK)


def test_thread_to_text(make_fetcher):
    payload = thread_payload(
        [post_child(title="Why Rust?", selftext="Convince me.")],
        [comment_child(id=f"c{i}", author=f"user{i}", body=f"reason {i}") for i in range(12)],
    )
    fetcher, _ = make_fetcher(lambda url, params: FakeResponse(200, payload))
    thread = fetch_thread(fetcher, PERMALINK)

    text = thread_to_text(thread)

    assert text.startswith("Why Rust?\n\nConvince me.\n\nTop comments:\n- user0: reason 0")
    assert "- user9: reason 9" in text
    assert "user10" not in text


def test_thread_to_dict():
    thread = Thread(
        post=normalize_post_children([post_child()])[0],
        comments=[Comment(id="c", body="b", author="a", score=1, created_utc=2)],
    )

    data = thread.to_dict()

    assert data["post"]["id"] == "abc123"
    assert data["comments"] == [{"id": "c", "body": "b", "author": "a", "score": 1, "created_utc": 2}]
