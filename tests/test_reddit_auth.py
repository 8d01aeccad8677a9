"""Tests for the client-credentials token cache."""

import requests

from conftest import FakeResponse
from reddit_auth import REFRESH_MARGIN_S, TOKEN_URL, TokenCache


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def token_response(token="tok-1", expires_in=3600):
    return FakeResponse(200, {"access_token": token, "token_type": "bearer", "expires_in": expires_in})


def make_cache(session, clock=None, client_id="id", client_secret="secret"):
    return TokenCache(client_id, client_secret, "ua/1.0", session=session, clock=clock or Clock())


def test_no_credentials_means_no_token_and_no_network():
    session = FakeSession()
    cache = make_cache(session, client_id=None, client_secret=None)

    assert cache.get_access_token() is None
    assert session.calls == []


def test_first_call_exchanges_client_credentials():
    session = FakeSession(token_response())
    cache = make_cache(session)

    assert cache.get_access_token() == "tok-1"

    url, kwargs = session.calls[0]
    assert url == TOKEN_URL
    assert kwargs["data"] == {"grant_type": "client_credentials"}
    assert kwargs["auth"].username == "id"
    assert kwargs["auth"].password == "secret"
    assert kwargs["headers"]["User-Agent"] == "ua/1.0"


def test_fresh_token_is_served_from_cache():
    clock = Clock()
    session = FakeSession(token_response(expires_in=3600))
    cache = make_cache(session, clock)

    cache.get_access_token()
    clock.now += 3600 - REFRESH_MARGIN_S - 1
    assert cache.get_access_token() == "tok-1"

    assert len(session.calls) == 1


def test_token_near_expiry_is_refreshed_once():
    clock = Clock()
    session = FakeSession(token_response("old", 3600), token_response("new", 3600))
    cache = make_cache(session, clock)

    cache.get_access_token()
    clock.now += 3600 - 30  # inside the refresh margin

    assert cache.get_access_token() == "new"
    assert cache.get_access_token() == "new"
    assert len(session.calls) == 2


def test_non_2xx_degrades_to_none():
    session = FakeSession(FakeResponse(401, {"error": "invalid_grant"}))
    cache = make_cache(session)

    assert cache.get_access_token() is None


def test_transport_error_degrades_to_none():
    session = FakeSession(requests.ConnectionError("boom"))
    cache = make_cache(session)

    assert cache.get_access_token() is None


def test_response_without_token_degrades_to_none():
    session = FakeSession(FakeResponse(200, {"error": "unsupported_grant_type"}))
    cache = make_cache(session)

    assert cache.get_access_token() is None


def test_failed_refresh_is_retried_on_next_call():
    session = FakeSession(FakeResponse(503, None), token_response("later"))
    cache = make_cache(session)

    assert cache.get_access_token() is None
    assert cache.get_access_token() == "later"
