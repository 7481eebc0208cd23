"""
Tests for search strategy construction.
"""

from profilefinder.models import PersonQuery
from profilefinder.search import (
    RELAXED_PASS,
    STRICT_PASS,
    build_query_urls,
    build_relaxed_strategies,
    build_strict_strategies,
    with_site,
)


class TestStrictStrategies:
    """Pass-1 queries."""

    def test_all_fields(self, kelly):
        strategies = build_strict_strategies(kelly)
        assert [s.name for s in strategies] == ["name_title_org", "name_org", "name_title"]
        assert strategies[0].query == '"Kelly O\'Neill" "Director of Nursing" "Mount Sinai"'
        assert all(s.pass_number == STRICT_PASS for s in strategies)

    def test_every_term_quoted(self, kelly):
        for s in build_strict_strategies(kelly):
            assert s.query.count('"') % 2 == 0
            assert s.query.startswith('"Kelly O\'Neill"')

    def test_missing_title(self, john_smith):
        strategies = build_strict_strategies(john_smith)
        assert [s.name for s in strategies] == ["name_org"]

    def test_name_only_has_no_strict_query(self):
        assert build_strict_strategies(PersonQuery("Kelly", "O'Neill")) == []

    def test_limit(self, kelly):
        assert len(build_strict_strategies(kelly, limit=1)) == 1


class TestRelaxedStrategies:
    """Pass-2 queries."""

    def test_all_fields(self, kelly):
        strategies = build_relaxed_strategies(kelly)
        assert [s.name for s in strategies] == [
            "name_org_keyword",
            "name_title_loose",
            "name_region",
            "name_org_loose",
            "name_only",
        ]
        assert strategies[0].query == '"Kelly O\'Neill" sinai'
        assert strategies[-1].query == '"Kelly O\'Neill"'
        assert all(s.pass_number == RELAXED_PASS for s in strategies)

    def test_unknown_organization_has_no_keyword_query(self):
        person = PersonQuery("Kelly", "O'Neill", organization="Acme Widgets")
        names = [s.name for s in build_relaxed_strategies(person)]
        assert names == ["name_org_loose", "name_only"]

    def test_name_only(self):
        strategies = build_relaxed_strategies(PersonQuery("Kelly", "O'Neill"))
        assert [s.name for s in strategies] == ["name_only"]

    def test_queries_unique(self, kelly):
        queries = [s.query for s in build_relaxed_strategies(kelly)]
        assert len(queries) == len(set(queries))

    def test_limit(self, kelly):
        assert len(build_relaxed_strategies(kelly, limit=2)) == 2


class TestQueryHelpers:
    """Manual query output."""

    def test_with_site(self):
        assert with_site('"Kelly O\'Neill"') == 'site:linkedin.com/in "Kelly O\'Neill"'

    def test_build_query_urls(self):
        urls = build_query_urls(['"Kelly O\'Neill" sinai'])
        assert urls == ["https://www.google.com/search?q=%22Kelly+O%27Neill%22+sinai"]
