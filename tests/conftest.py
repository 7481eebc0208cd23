"""
Pytest configuration and shared fixtures.
"""

import pytest
from datetime import datetime
from typing import Callable, Dict, List, Optional

from profilefinder.cache import ResolutionCache
from profilefinder.config import ResolverConfig
from profilefinder.errors import ExternalCallError
from profilefinder.logger import get_logger, reset_logger
from profilefinder.models import PersonQuery, SearchItem
from profilefinder.patterns import PatternLearner
from profilefinder.resolver import ProfileResolver
from profilefinder.retry import RateLimiter
from profilefinder.storage import MemoryStore


class FakeSearchClient:
    """Search capability stand-in that records every query it receives."""

    def __init__(
        self,
        items: Optional[List[SearchItem]] = None,
        responder: Optional[Callable[[str], List[SearchItem]]] = None,
        fail_with: Optional[Exception] = None,
    ):
        self.items = items or []
        self.responder = responder
        self.fail_with = fail_with
        self.queries: List[str] = []

    def search(self, query: str, num: int = 10) -> List[SearchItem]:
        self.queries.append(query)
        if self.fail_with is not None:
            raise self.fail_with
        if self.responder is not None:
            return self.responder(query)[:num]
        return list(self.items)[:num]


class FakeClock:
    """Settable clock for cache and pattern timestamps."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 3, 1, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(autouse=True)
def fresh_logger(tmp_path):
    """Give every test its own logger writing under tmp_path."""
    reset_logger()
    logger = get_logger(log_dir=tmp_path / "logs", enable_console=False)
    yield logger
    for handler in list(logger.logger.handlers):
        handler.close()
        logger.logger.removeHandler(handler)
    reset_logger()


@pytest.fixture
def kelly() -> PersonQuery:
    """Person with an apostrophe in the last name."""
    return PersonQuery(
        first_name="Kelly",
        last_name="O'Neill",
        job_title="Director of Nursing",
        organization="Mount Sinai",
        region="New York",
    )


@pytest.fixture
def kelly_item() -> SearchItem:
    """Search result for kelly's own profile."""
    return SearchItem(
        title="Kelly O'Neill - Director of Nursing - Mount Sinai Health System | LinkedIn",
        snippet="Director of Nursing at Mount Sinai Health System. Nurse leader in New York.",
        link="https://www.linkedin.com/in/kelly-oneill",
    )


@pytest.fixture
def john_smith() -> PersonQuery:
    """Known high duplicate-risk name."""
    return PersonQuery(first_name="John", last_name="Smith", organization="Cleveland Clinic")


@pytest.fixture
def john_smith_items() -> List[SearchItem]:
    """Two near-identical John Smith profiles at the same employer."""
    return [
        SearchItem(
            title="John Smith - Physician - Cleveland Clinic | LinkedIn",
            snippet="Physician at Cleveland Clinic.",
            link="https://www.linkedin.com/in/john-smith-1a2b",
        ),
        SearchItem(
            title="John Smith - Physician - Cleveland Clinic | LinkedIn",
            snippet="Physician at Cleveland Clinic.",
            link="https://www.linkedin.com/in/johnsmithmd",
        ),
    ]


@pytest.fixture
def no_wait_limiter() -> RateLimiter:
    """Rate limiter that never sleeps."""
    return RateLimiter(min_delay=0, sleep=lambda seconds: None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_resolver(no_wait_limiter, clock) -> Callable[..., ProfileResolver]:
    """Factory for resolvers wired to in-memory stores and a fake clock."""

    def _make(client: FakeSearchClient, config: Optional[ResolverConfig] = None, **kwargs) -> ProfileResolver:
        config = config or ResolverConfig()
        store = kwargs.pop("store", None)
        if store is None:
            store = MemoryStore()
        return ProfileResolver(
            client,
            config=config,
            cache=kwargs.pop("cache", None) or ResolutionCache(store, ttl=config.cache_ttl, clock=clock),
            patterns=kwargs.pop("patterns", None) or PatternLearner(store, clock=clock),
            rate_limiter=no_wait_limiter,
            **kwargs,
        )

    return _make


@pytest.fixture
def failing_client() -> FakeSearchClient:
    return FakeSearchClient(fail_with=ExternalCallError("boom", error_type="ConnectionError"))


@pytest.fixture
def person_row() -> Dict[str, str]:
    """Spreadsheet-style row with heading aliases."""
    return {
        "First Name": "Kelly",
        "Last Name": "O'Neill",
        "Title": "Director of Nursing",
        "Company": "Mount Sinai",
        "Location": "New York",
    }
