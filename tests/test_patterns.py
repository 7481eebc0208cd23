"""
Tests for the pattern learner.
"""

from datetime import timedelta

import pytest

from profilefinder.models import PersonQuery
from profilefinder.patterns import (
    FAILURE_KEY,
    SUCCESS_KEY,
    PatternLearner,
    name_format,
    organization_format,
)
from profilefinder.storage import MemoryStore


@pytest.fixture
def learner(clock):
    return PatternLearner(MemoryStore(), clock=clock)


class TestFormats:
    """Name and organization classification."""

    @pytest.mark.parametrize(
        "first, last, expected",
        [
            ("Mary-Jane", "Watson", "hyphenated"),
            ("Kelly", "O'Neill", "apostrophe"),
            ("Kelly", "O’Neill", "apostrophe"),
            ("José", "Núñez", "accented"),
            ("Mary Ann", "Lopez", "multi_part"),
            ("Priya", "Raman", "simple"),
        ],
    )
    def test_name_format(self, first, last, expected):
        assert name_format(PersonQuery(first, last)) == expected

    @pytest.mark.parametrize(
        "organization, expected",
        [
            (None, "none"),
            ("", "none"),
            ("NYU", "acronym"),
            ("St. Mary's Med. Ctr.", "abbreviated"),
            ("Icahn School of Medicine at Mount Sinai", "multi_word"),
            ("Mount Sinai", "standard"),
        ],
    )
    def test_organization_format(self, organization, expected):
        assert organization_format(organization) == expected


class TestLogs:
    """Append-only, capped logs."""

    def test_record_success(self, learner, kelly, clock):
        learner.record_success(kelly, "name_title_org")
        [record] = learner.successes()
        assert record.strategy == "name_title_org"
        assert record.name_format == "apostrophe"
        assert record.organization_format == "standard"
        assert record.organization == "Mount Sinai"
        assert record.outcome == "found"
        assert record.timestamp == clock().isoformat()

    def test_record_failure(self, learner, kelly):
        learner.record_failure(kelly, None)
        [record] = learner.failures()
        assert record.strategy == "unknown"
        assert record.outcome == "not_found"
        assert learner.successes() == []

    def test_logs_use_fixed_keys(self, learner, kelly):
        learner.record_success(kelly, "name_org")
        learner.record_failure(kelly, "name_org")
        assert sorted(learner.store.keys()) == sorted([SUCCESS_KEY, FAILURE_KEY])

    def test_cap_keeps_most_recent(self, learner, kelly, clock):
        for i in range(105):
            learner.record_success(kelly, f"strategy_{i}")
            clock.now += timedelta(minutes=1)
        successes = learner.successes()
        assert len(successes) == 100
        assert successes[0].strategy == "strategy_5"
        assert successes[-1].strategy == "strategy_104"

    def test_custom_cap(self, kelly, clock):
        learner = PatternLearner(MemoryStore(), max_entries=2, clock=clock)
        for strategy in ("a", "b", "c"):
            learner.record_failure(kelly, strategy)
        assert [r.strategy for r in learner.failures()] == ["b", "c"]


class TestRecommendations:
    """Summaries over the logs."""

    def test_empty(self, learner):
        recs = learner.recommendations()
        assert recs["best_strategy"] is None
        assert recs["strategy_successes"] == {}
        assert recs["problem_organizations"] == []
        assert recs["total_successes"] == 0
        assert recs["total_failures"] == 0

    def test_summary(self, learner, kelly):
        simple = PersonQuery("Priya", "Raman", organization="Acme Widgets")
        learner.record_success(kelly, "name_org")
        learner.record_success(simple, "name_org")
        learner.record_success(simple, "name_title_org")
        learner.record_failure(simple, "name_only")
        learner.record_failure(simple, "name_only")
        learner.record_failure(kelly, "name_only")

        recs = learner.recommendations()
        assert recs["best_strategy"] == "name_org"
        assert recs["strategy_successes"] == {"name_org": 2, "name_title_org": 1}
        assert recs["problem_organizations"] == ["Acme Widgets"]
        assert recs["name_format_success_rates"] == {"apostrophe": 0.5, "simple": 0.5}
        assert recs["total_successes"] == 3
        assert recs["total_failures"] == 3

    def test_tie_broken_by_name(self, learner, kelly):
        learner.record_success(kelly, "name_title")
        learner.record_success(kelly, "name_org")
        assert learner.recommendations()["best_strategy"] == "name_org"
