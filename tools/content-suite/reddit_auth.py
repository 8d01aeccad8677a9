"""Application-only OAuth token cache for the Reddit API.

Client-credential tokens are an optional enhancement: when credentials are
missing or the exchange fails, callers get ``None`` and fall back to the
public JSON hosts.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

import requests
from requests.auth import HTTPBasicAuth

from factory_utils import get_logger

log = get_logger("reddit_auth")

TOKEN_URL = "https://www.reddit.com/api/v1/access_token"

# Refresh when less than this many seconds of validity remain
REFRESH_MARGIN_S = 60


class TokenCache:
    """Holds at most one bearer token and refreshes it lazily.

    One instance is created per process by whoever composes the fetcher
    (see ``reddit_scout.build_fetcher``) and shared by every caller.
    """

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        user_agent: str,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
        timeout: float = 10.0,
        token_url: str = TOKEN_URL,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.user_agent = user_agent
        self.timeout = timeout
        self.token_url = token_url
        self._session = session or requests.Session()
        self._clock = clock
        self._token: str | None = None
        self._expires_at = 0.0
        self._lock = threading.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _cached(self) -> str | None:
        if self._token and self._expires_at - self._clock() > REFRESH_MARGIN_S:
            return self._token
        return None

    def get_access_token(self) -> str | None:
        """Return a valid bearer token, or None to signal unauthenticated mode."""
        if not self.configured:
            return None

        token = self._cached()
        if token:
            return token

        with self._lock:
            # Another caller may have refreshed while we waited
            token = self._cached()
            if token:
                return token
            return self._refresh()

    def _refresh(self) -> str | None:
        log.debug("Requesting client-credentials token from %s", self.token_url)
        try:
            resp = self._session.post(
                self.token_url,
                auth=HTTPBasicAuth(self.client_id, self.client_secret),
                data={"grant_type": "client_credentials"},
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            log.warning("Token request failed: %s", exc)
            return None

        if not 200 <= resp.status_code < 300:
            log.warning("Token endpoint returned HTTP %s; continuing unauthenticated", resp.status_code)
            return None

        try:
            payload = resp.json()
        except ValueError as exc:
            log.warning("Token response is not JSON: %s", exc)
            return None

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            log.warning("Token response has no access_token; continuing unauthenticated")
            return None

        try:
            expires_in = float(payload.get("expires_in") or 0)
        except (TypeError, ValueError):
            expires_in = 0.0

        self._token = token
        self._expires_at = self._clock() + expires_in
        log.info("Obtained Reddit app token (expires in %ds)", int(expires_in))
        return token
