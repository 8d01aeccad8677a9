"""Endpoint fallback fetcher for Reddit's JSON API.

Every request is tried against an ordered list of base hosts.  A host that
errors, answers non-2xx, returns something that is not JSON, or returns a
listing the caller's decoder rejects is logged and skipped; the first host
that decodes to a non-empty value wins.  Each host gets exactly one attempt.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Protocol
from urllib.parse import quote, urlencode

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from factory_utils import get_logger
from reddit_auth import TokenCache
from reddit_listing import MalformedListingError, RetrievalError

log = get_logger("reddit_fetch")

PUBLIC_BASES = (
    "https://www.reddit.com",
    "https://old.reddit.com",
    "https://reddit.com",
)
OAUTH_BASE = "https://oauth.reddit.com"
DEFAULT_PROXY = "https://corsproxy.io/?"
DEFAULT_TIMEOUT_S = 10.0

Params = dict[str, str]
Decoder = Callable[[Any], Any]


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------

class Transport(Protocol):
    def get(self, url: str, params: Params | None = None, headers: dict[str, str] | None = None) -> Any:
        """Issue one GET and return a response with ``status_code`` and ``json()``."""


def build_session(user_agent: str) -> requests.Session:
    """Create a requests.Session that never retries on its own."""
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"User-Agent": user_agent})
    return session


class RequestsTransport:
    """Direct HTTP GETs through a shared session."""

    def __init__(self, session: requests.Session, timeout: float = DEFAULT_TIMEOUT_S) -> None:
        self.session = session
        self.timeout = timeout

    def get(self, url: str, params: Params | None = None, headers: dict[str, str] | None = None) -> requests.Response:
        return self.session.get(url, params=params, headers=headers, timeout=self.timeout)


class ProxyTransport(RequestsTransport):
    """Routes every GET through a CORS proxy that takes the target URL as its query."""

    def __init__(
        self,
        session: requests.Session,
        proxy_prefix: str = DEFAULT_PROXY,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        super().__init__(session, timeout)
        self.proxy_prefix = proxy_prefix

    def proxied_url(self, url: str, params: Params | None = None) -> str:
        target = f"{url}?{urlencode(params)}" if params else url
        return f"{self.proxy_prefix}{quote(target, safe='')}"

    def get(self, url: str, params: Params | None = None, headers: dict[str, str] | None = None) -> requests.Response:
        return self.session.get(self.proxied_url(url, params), headers=headers, timeout=self.timeout)


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Endpoint:
    """One candidate host, with the bearer token to send to it (if any)."""

    base: str
    token: str | None = None


class EndpointFallbackFetcher:
    """GETs a path against candidate hosts until one returns usable JSON."""

    def __init__(
        self,
        transport: Transport,
        user_agent: str,
        token_cache: TokenCache | None = None,
        public_bases: Iterable[str] = PUBLIC_BASES,
        oauth_base: str = OAUTH_BASE,
    ) -> None:
        self.transport = transport
        self.user_agent = user_agent
        self.token_cache = token_cache
        self.public_bases = tuple(public_bases)
        self.oauth_base = oauth_base

    def endpoints(self) -> list[Endpoint]:
        """Candidate hosts in precedence order.

        With a token the OAuth host goes first; the public hosts always follow.
        """
        candidates = [Endpoint(base) for base in self.public_bases]
        token = self.token_cache.get_access_token() if self.token_cache else None
        if token:
            candidates.insert(0, Endpoint(self.oauth_base, token))
        return candidates

    def _headers(self, endpoint: Endpoint) -> dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
            "Cache-Control": "no-store",
        }
        if endpoint.token:
            headers["Authorization"] = f"bearer {endpoint.token}"
        return headers

    def get_json(self, endpoint: Endpoint, path: str, params: Params | None = None) -> Any | None:
        """One GET against one host. Returns parsed JSON, or None on any failure."""
        url = f"{endpoint.base}{path}"
        try:
            resp = self.transport.get(url, params=params, headers=self._headers(endpoint))
        except requests.RequestException as exc:
            log.warning("Request failed for %s: %s", url, exc)
            return None

        if not 200 <= resp.status_code < 300:
            log.warning("HTTP %s from %s", resp.status_code, url)
            return None

        try:
            return resp.json()
        except ValueError as exc:
            log.warning("JSON decode failed for %s: %s", url, exc)
            return None

    def iter_responses(
        self,
        paths: list[tuple[str, Params | None]],
    ) -> Iterator[tuple[Endpoint, str, Any]]:
        """Yield ``(endpoint, path, payload)`` for every attempt that returned JSON.

        Hosts are the outer loop and paths the inner one; the caller stops
        iteration as soon as it has what it needs.
        """
        for endpoint in self.endpoints():
            for path, params in paths:
                payload = self.get_json(endpoint, path, params)
                if payload is not None:
                    yield endpoint, path, payload

    def fetch_first(self, paths: list[tuple[str, Params | None]], decode: Decoder) -> Any:
        """Return the first non-empty ``decode(payload)`` over hosts × paths.

        Raises RetrievalError when every combination fails.
        """
        for endpoint, path, payload in self.iter_responses(paths):
            try:
                value = decode(payload)
            except MalformedListingError as exc:
                log.warning("Malformed listing from %s%s: %s", endpoint.base, path, exc)
                continue
            if value:
                log.debug("Accepted %s%s", endpoint.base, path)
                return value
            log.warning("Empty result from %s%s, trying next candidate", endpoint.base, path)

        raise RetrievalError(
            f"All Reddit endpoints failed for {', '.join(p for p, _ in paths)}. "
            "The service may be temporarily unavailable."
        )

    def fetch(self, path: str, params: Params | None, decode: Decoder) -> Any:
        """Single-path variant of :meth:`fetch_first`."""
        return self.fetch_first([(path, params)], decode)
