"""
Tests for the two-pass profile resolver.
"""

from datetime import timedelta

import pytest

from profilefinder.errors import ExternalCallError, InputError
from profilefinder.models import PersonQuery, SearchItem, Status
from profilefinder.resolver import ProfileResolver, ResolverState
from profilefinder.retry import RateLimiter

from conftest import FakeSearchClient


def _variant(item, suffix):
    return SearchItem(title=item.title, snippet=item.snippet, link=f"{item.link}-{suffix}")


def _relaxed_only(items):
    """Answer only pass-2 queries, which quote the name alone."""
    return lambda query: list(items) if query.count('"') == 2 else []


class TestStrictPass:
    """Pass 1 resolutions."""

    def test_kelly_oneill_verified(self, make_resolver, kelly, kelly_item):
        client = FakeSearchClient(items=[kelly_item])
        resolver = make_resolver(client)

        result = resolver.resolve(kelly)

        assert result.status == Status.VERIFIED
        assert result.verified
        assert result.url == "https://www.linkedin.com/in/kelly-oneill"
        assert result.total_score == pytest.approx(93.3)
        assert result.confidence == 93
        assert result.breakdown["name"] == 98
        assert result.pass_number == 1
        assert result.strategy == "name_title_org"
        assert len(client.queries) == 3
        assert resolver.search_calls == 3
        assert resolver.state == ResolverState.RESOLVED

    def test_candidate_limit_stops_searching(self, make_resolver, kelly, kelly_item):
        items = [kelly_item] + [_variant(kelly_item, s) for s in ("rn", "nyc", "msn")]
        client = FakeSearchClient(items=items)

        result = make_resolver(client).resolve(kelly)

        assert len(client.queries) == 1
        assert result.url == "https://www.linkedin.com/in/kelly-oneill"
        assert result.alternative_urls == (
            "https://www.linkedin.com/in/kelly-oneill-nyc",
            "https://www.linkedin.com/in/kelly-oneill-rn",
        )

    def test_without_accept_rule_is_found(self, make_resolver, kelly, kelly_item):
        result = make_resolver(FakeSearchClient(items=[kelly_item]), rules=[]).resolve(kelly)
        assert result.status == Status.FOUND
        assert not result.verified

    def test_non_profile_links_ignored(self, make_resolver, kelly, kelly_item):
        company = SearchItem("Mount Sinai | LinkedIn", "", "https://www.linkedin.com/company/mount-sinai")
        result = make_resolver(FakeSearchClient(items=[company, kelly_item])).resolve(kelly)
        assert result.url == "https://www.linkedin.com/in/kelly-oneill"
        assert result.alternative_urls == ()


class TestRelaxedPass:
    """Escalation to pass 2."""

    def test_pass_two_result_needs_review(self, make_resolver, kelly, kelly_item):
        client = FakeSearchClient(responder=_relaxed_only([kelly_item]))
        resolver = make_resolver(client)

        result = resolver.resolve(kelly)

        assert result.status == Status.NEEDS_REVIEW
        assert result.needs_review
        assert result.pass_number == 2
        assert result.strategy == "name_org_keyword"
        assert result.url == "https://www.linkedin.com/in/kelly-oneill"
        assert "relaxed" in result.review_reason
        assert len(client.queries) == 3 + 5
        assert resolver.state == ResolverState.RESOLVED

    def test_nothing_found(self, make_resolver, kelly):
        client = FakeSearchClient()
        resolver = make_resolver(client)

        result = resolver.resolve(kelly)

        assert result.status == Status.NOT_FOUND
        assert result.url is None
        assert "both search passes" in result.review_reason
        assert len(client.queries) == 8
        assert resolver.state == ResolverState.UNRESOLVED

    def test_not_found_is_not_cached(self, make_resolver, kelly):
        client = FakeSearchClient()
        resolver = make_resolver(client)

        resolver.resolve(kelly)
        resolver.resolve(kelly)

        assert len(client.queries) == 16
        assert resolver.cache.writes == 0

    def test_not_found_recorded_as_failure(self, make_resolver, kelly):
        resolver = make_resolver(FakeSearchClient())
        resolver.resolve(kelly)
        [failure] = resolver.patterns.failures()
        assert failure.outcome == "Not Found"
        assert failure.organization == "Mount Sinai"


class TestDuplicateRisk:
    """Common names."""

    def test_john_smith_needs_review(self, make_resolver, john_smith, john_smith_items):
        client = FakeSearchClient(items=john_smith_items)
        resolver = make_resolver(client)

        result = resolver.resolve(john_smith)

        assert result.status == Status.NEEDS_REVIEW
        assert result.url == "https://www.linkedin.com/in/johnsmithmd"
        assert result.total_score == pytest.approx(78.5)
        assert result.alternative_urls == ("https://www.linkedin.com/in/john-smith-1a2b",)
        assert "within 15 points" in result.review_reason
        # Pass 1 result kept because pass 2 found nothing new
        assert result.pass_number == 1
        assert len(client.queries) == 1 + 3

    def test_review_not_recorded_as_pattern(self, make_resolver, john_smith, john_smith_items):
        resolver = make_resolver(FakeSearchClient(items=john_smith_items))
        resolver.resolve(john_smith)
        assert resolver.patterns.successes() == []
        assert resolver.patterns.failures() == []


class TestRejection:
    """Reject rules."""

    def test_contaminated_name_rejected(self, make_resolver):
        person = PersonQuery("Jane", "Harlow", organization="Mount Sinai")
        firm = SearchItem(
            title="Jane Harlow Associates - Consulting | LinkedIn",
            snippet="Boutique consulting firm in Boston.",
            link="https://www.linkedin.com/in/jane-harlow-associates",
        )
        client = FakeSearchClient(items=[firm])
        resolver = make_resolver(client)

        result = resolver.resolve(person)

        assert result.status == Status.REJECTED
        assert result.url is None
        assert result.alternative_urls == ("https://www.linkedin.com/in/jane-harlow-associates",)
        assert "contaminated" in result.review_reason
        assert resolver.state == ResolverState.UNRESOLVED
        assert len(client.queries) == 1 + 3

        # Rejections are cached and learned from
        assert resolver.cache.writes == 1
        assert resolver.patterns.failures()[0].outcome == "Rejected"

    def test_title_after_comma_not_rejected(self, make_resolver, kelly):
        """A title starting with a firm word ("Group Vice President") is not a firm name."""
        item = SearchItem(
            title="Kelly O'Neill, Group Vice President - Mount Sinai Health System | LinkedIn",
            snippet="Director of Nursing at Mount Sinai Health System.",
            link="https://www.linkedin.com/in/kelly-oneill",
        )
        resolver = make_resolver(FakeSearchClient(items=[item]))

        result = resolver.resolve(kelly)

        assert result.status != Status.REJECTED
        assert result.url == "https://www.linkedin.com/in/kelly-oneill"
        assert result.breakdown["name"] == 98
        assert resolver.patterns.failures() == []


class TestFailures:
    """Search failures never abort a resolution."""

    def test_every_call_fails(self, make_resolver, kelly, failing_client, fresh_logger):
        result = make_resolver(failing_client).resolve(kelly)

        assert result.status == Status.NOT_FOUND
        metrics = fresh_logger.get_metrics()
        assert metrics["search_calls"] == 8
        assert metrics["search_failures"] == 8
        assert metrics["errors_by_type"] == {"ConnectionError": 8}

    def test_one_strategy_fails(self, make_resolver, kelly, kelly_item):
        def respond(query):
            if '"Director of Nursing" "Mount Sinai"' in query:
                raise ExternalCallError("timed out", error_type="Timeout", query=query)
            return [kelly_item]

        result = make_resolver(FakeSearchClient(responder=respond)).resolve(kelly)

        assert result.status == Status.VERIFIED
        assert result.strategy == "name_org"

    def test_quota_exhausted_mid_pass(self, kelly, kelly_item, fresh_logger):
        limiter = RateLimiter(min_delay=0, per_day=1, sleep=lambda s: None)
        client = FakeSearchClient(items=[kelly_item])
        resolver = ProfileResolver(client, rate_limiter=limiter)

        result = resolver.resolve(kelly)

        assert result.status == Status.VERIFIED
        assert len(client.queries) == 1
        assert fresh_logger.get_metrics()["errors_by_type"] == {"QuotaExceeded": 2}

    def test_invalid_input_raises_before_searching(self, make_resolver):
        client = FakeSearchClient()
        with pytest.raises(InputError):
            make_resolver(client).resolve(PersonQuery("", "O'Neill"))
        assert client.queries == []


class TestCaching:
    """Cache consultation and write-through."""

    def test_second_resolution_hits_cache(self, make_resolver, kelly, kelly_item, fresh_logger):
        client = FakeSearchClient(items=[kelly_item])
        resolver = make_resolver(client)

        first = resolver.resolve(kelly)
        second = resolver.resolve(kelly)

        assert not first.from_cache
        assert second.from_cache
        assert second.url == first.url
        assert second.status == Status.VERIFIED
        assert len(client.queries) == 3
        assert resolver.search_calls == 0
        assert resolver.cache.stats()["searches_saved"] == 3
        assert fresh_logger.get_metrics()["cache_hits"] == 1

    def test_equivalent_spelling_hits_cache(self, make_resolver, kelly, kelly_item):
        client = FakeSearchClient(items=[kelly_item])
        resolver = make_resolver(client)
        resolver.resolve(kelly)

        again = resolver.resolve(PersonQuery("KELLY", "ONeill", organization="Mt. Sinai"))

        assert again.from_cache
        assert len(client.queries) == 3

    def test_expired_entry_searches_again(self, make_resolver, kelly, kelly_item, clock):
        client = FakeSearchClient(items=[kelly_item])
        resolver = make_resolver(client)

        resolver.resolve(kelly)
        clock.now += timedelta(days=31)
        result = resolver.resolve(kelly)

        assert not result.from_cache
        assert len(client.queries) == 6
        assert resolver.cache.expired_reads == 1

    def test_success_recorded(self, make_resolver, kelly, kelly_item):
        resolver = make_resolver(FakeSearchClient(items=[kelly_item]))
        resolver.resolve(kelly)
        [success] = resolver.patterns.successes()
        assert success.strategy == "name_title_org"
        assert success.outcome == "Verified"
        assert success.name_format == "apostrophe"
