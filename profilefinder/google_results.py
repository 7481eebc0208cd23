"""
Google Custom Search client.

Implements the search capability used by the resolver: ``search(query, num)``
returns SearchItem objects restricted to the profile-hosting site. Every
failure surfaces as ExternalCallError so the resolver can skip a strategy
without aborting the resolution.
"""

import os
import re
from typing import Any, Dict, List, Optional, Protocol

import requests
from bs4 import BeautifulSoup

from .errors import ConfigError, ExternalCallError, QuotaExceededError
from .logger import get_logger
from .models import SearchItem
from .normalize import canonical_url
from .retry import CircuitBreaker, RetryError, exponential_backoff, should_retry_http_status

logger = get_logger()

GOOGLE_CUSTOM_SEARCH_ENDPOINT = "https://www.googleapis.com/customsearch/v1"

# Google Custom Search API max results per request is 10
MAX_RESULTS_PER_REQUEST = 10

QUOTA_REASONS = ("rateLimitExceeded", "dailyLimitExceeded", "userRateLimitExceeded", "quotaExceeded")


class SearchClient(Protocol):
    def search(self, query: str, num: int = 10) -> List[SearchItem]:
        ...


class TransientSearchError(Exception):
    """Retryable HTTP status from the search API."""


def clean_html(fragment: Optional[str]) -> str:
    """Strip markup (Google wraps query terms in <b>) and collapse whitespace."""
    if not fragment:
        return ""
    text = BeautifulSoup(fragment, "html.parser").get_text(" ")
    text = re.sub(r"\s+([,.;:!?])", r"\1", text)
    return " ".join(text.split())


def parse_items(data: Dict[str, Any]) -> List[SearchItem]:
    """Turn a Custom Search JSON response into SearchItems."""
    items = []
    for item in data.get("items", []) or []:
        link = item.get("link")
        if not link:
            continue
        title = clean_html(item.get("htmlTitle")) or " ".join((item.get("title") or "").split())
        snippet = clean_html(item.get("htmlSnippet")) or " ".join((item.get("snippet") or "").split())
        items.append(SearchItem(title=title, snippet=snippet, link=link))
    return items


def filter_profile_links(items: List[SearchItem], domain: str = "linkedin.com/in/") -> List[SearchItem]:
    """Keep items on the profile-hosting domain, dropping duplicate URLs."""
    seen = set()
    filtered = []
    for item in items:
        if domain.lower() not in item.link.lower():
            continue
        key = canonical_url(item.link)
        if key in seen:
            continue
        seen.add(key)
        filtered.append(item)
    return filtered


def _is_quota_response(resp: requests.Response) -> bool:
    if resp.status_code == 429:
        return True
    if resp.status_code != 403:
        return False
    try:
        errors = resp.json().get("error", {}).get("errors", [])
    except ValueError:
        return False
    return any(e.get("reason") in QUOTA_REASONS for e in errors)


@exponential_backoff(
    max_retries=2,
    base_delay=1.0,
    exceptions=(requests.exceptions.Timeout, requests.exceptions.ConnectionError, TransientSearchError),
)
def _get_with_retry(params: Dict[str, Any], timeout: float) -> requests.Response:
    """GET the search endpoint, retrying timeouts and 5xx responses."""
    resp = requests.get(GOOGLE_CUSTOM_SEARCH_ENDPOINT, params=params, timeout=timeout)
    if resp.status_code != 429 and should_retry_http_status(resp.status_code):
        raise TransientSearchError(f"Search API returned HTTP {resp.status_code}")
    return resp


class GoogleSearchClient:
    """Search capability backed by the Google Custom Search JSON API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        cse_id: Optional[str] = None,
        site_search: Optional[str] = "linkedin.com/in",
        profile_domain: str = "linkedin.com/in/",
        timeout: float = 20,
        breaker: Optional[CircuitBreaker] = None,
    ):
        """
        Args:
            api_key: Google API key (or read from GOOGLE_API_KEY env var)
            cse_id: Custom Search Engine ID (or read from GOOGLE_CSE_ID env var)
            site_search: Site to restrict results to (None searches everywhere)
            profile_domain: URL fragment a result link must contain
            timeout: Request timeout in seconds
            breaker: Circuit breaker shared across calls
        """
        self.api_key = api_key or os.getenv("GOOGLE_API_KEY")
        self.cse_id = cse_id or os.getenv("GOOGLE_CSE_ID")
        if not self.api_key:
            raise ConfigError("Missing GOOGLE_API_KEY. Set env var or pass api_key.")
        if not self.cse_id:
            raise ConfigError("Missing GOOGLE_CSE_ID. Set env var or pass cse_id.")
        self.site_search = site_search
        self.profile_domain = profile_domain
        self.timeout = timeout
        self.breaker = breaker or CircuitBreaker(failure_threshold=5, recovery_timeout=60)

    def _params(self, query: str, num: int) -> Dict[str, Any]:
        params = {
            "key": self.api_key,
            "cx": self.cse_id,
            "q": query,
            "num": max(1, min(num, MAX_RESULTS_PER_REQUEST)),
        }
        if self.site_search:
            params["siteSearch"] = self.site_search
            params["siteSearchFilter"] = "i"  # "i" = include, "e" = exclude
        return params

    def _fetch(self, query: str, num: int) -> List[SearchItem]:
        try:
            resp = _get_with_retry(self._params(query, num), self.timeout)
        except RetryError as e:
            raise ExternalCallError(str(e), error_type="RetryExhausted", query=query) from e
        except requests.exceptions.RequestException as e:
            raise ExternalCallError(f"Search request failed: {e}", error_type=type(e).__name__, query=query) from e

        if _is_quota_response(resp):
            raise QuotaExceededError(f"Search API quota exceeded (HTTP {resp.status_code})", query=query)
        if resp.status_code >= 400:
            raise ExternalCallError(
                f"Search API returned HTTP {resp.status_code}", error_type=f"HTTPError_{resp.status_code}", query=query
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise ExternalCallError("Malformed search response", error_type="MalformedResponse", query=query) from e
        if not isinstance(data, dict):
            raise ExternalCallError("Malformed search response", error_type="MalformedResponse", query=query)
        return filter_profile_links(parse_items(data), self.profile_domain)

    def search(self, query: str, num: int = 10) -> List[SearchItem]:
        """
        Run one query and return profile-domain items.

        Raises:
            ExternalCallError: On quota, network, HTTP or parse failures
        """
        items = self.breaker.call(self._fetch, query, num)
        logger.debug("Search completed", query=query, results=len(items))
        return items
