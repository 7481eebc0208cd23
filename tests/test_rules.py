"""
Tests for the accept / reject / review rules.
"""

import pytest

from profilefinder.config import PassThresholds
from profilefinder.models import Candidate, NameMatch, OrganizationMatch, PersonQuery
from profilefinder.rules import Rule, RuleKind, default_rules, evaluate_rules

RULES = default_rules(PassThresholds())
VALID_NAME = NameMatch(valid=True, score=100, pattern_type="exact_order")
STRONG_ORG = OrganizationMatch(score=85, method="primary_keyword", confidence="high", canonical="Mount Sinai Health System")


def _candidate(**overrides):
    values = dict(
        title="Kelly O'Neill - Director of Nursing - Mount Sinai",
        snippet="",
        url="https://www.linkedin.com/in/kelly-oneill",
        name_match=VALID_NAME,
        organization_match=STRONG_ORG,
        name_score=100,
        organization_score=85,
        total_score=92,
    )
    values.update(overrides)
    return Candidate(**values)


class TestReject:
    """Reject rules win over everything else."""

    def test_contaminated_name(self, kelly):
        name = NameMatch(valid=False, score=20, pattern_type=None, contaminated=True)
        outcome = evaluate_rules(_candidate(name_match=name, name_score=20), kelly, RULES)
        assert outcome.rejected
        assert "contaminated" in outcome.reason

    def test_false_positive(self, kelly):
        name = NameMatch(valid=False, score=50, pattern_type="exact_order", false_positive=True)
        outcome = evaluate_rules(_candidate(name_match=name, name_score=50), kelly, RULES)
        assert outcome.rejected
        assert any(r.name == "false_positive_name" for r in outcome.fired)

    def test_not_a_profile(self, kelly):
        outcome = evaluate_rules(_candidate(url="https://www.linkedin.com/company/mount-sinai"), kelly, RULES)
        assert outcome.rejected

    def test_below_reject_threshold(self, kelly):
        outcome = evaluate_rules(_candidate(total_score=35), kelly, RULES)
        assert outcome.rejected
        assert [r.name for r in outcome.fired] == ["below_reject_threshold"]

    def test_unscored_candidate(self, kelly):
        outcome = evaluate_rules(Candidate(title="", snippet="", url="https://www.linkedin.com/in/x"), kelly, RULES)
        assert outcome.rejected


class TestAccept:
    """Auto-accept needs a strong pass-1 match."""

    def test_strong_match(self, kelly):
        outcome = evaluate_rules(_candidate(), kelly, RULES)
        assert outcome.accepted

    def test_pass_two_never_accepted(self, kelly):
        outcome = evaluate_rules(_candidate(pass_number=2), kelly, RULES)
        assert outcome.review
        assert any(r.name == "relaxed_pass" for r in outcome.fired)

    def test_low_total(self, kelly):
        outcome = evaluate_rules(_candidate(total_score=80), kelly, RULES)
        assert not outcome.accepted

    def test_weak_name(self, kelly):
        name = NameMatch(valid=True, score=85, pattern_type="middle_name")
        outcome = evaluate_rules(_candidate(name_match=name, name_score=85), kelly, RULES)
        assert not outcome.accepted

    def test_industry_context_goes_to_review(self, kelly):
        org = OrganizationMatch(score=60, method="industry_context", confidence="low")
        outcome = evaluate_rules(_candidate(organization_match=org, organization_score=60, total_score=86), kelly, RULES)
        assert outcome.review
        assert [r.name for r in outcome.fired] == ["industry_context_only"]

    def test_shared_alias_goes_to_review(self, kelly):
        org = OrganizationMatch(score=100, method="alias_exact", confidence="medium", ambiguous=True)
        outcome = evaluate_rules(_candidate(organization_match=org, organization_score=100), kelly, RULES)
        assert outcome.review
        assert "shared" in outcome.reason


class TestReview:
    """Review rules and the no-opinion outcome."""

    def test_weak_organization(self, kelly):
        org = OrganizationMatch(score=0, method="none", confidence="none")
        outcome = evaluate_rules(_candidate(organization_match=org, organization_score=0, total_score=66), kelly, RULES)
        assert outcome.review
        assert [r.name for r in outcome.fired] == ["weak_organization"]

    def test_no_rule_fires(self, kelly):
        outcome = evaluate_rules(_candidate(total_score=75), kelly, RULES)
        assert outcome.kind is None
        assert outcome.fired == ()

    def test_no_target_organization(self):
        person = PersonQuery("Kelly", "O'Neill")
        org = OrganizationMatch(score=0, method="none", confidence="none")
        outcome = evaluate_rules(_candidate(organization_match=org, organization_score=0, total_score=72), person, RULES)
        assert outcome.kind is None


class TestCustomRules:
    """Rules are data and can be extended."""

    def test_extra_reject_rule(self, kelly):
        rules = RULES + [
            Rule("blocked_slug", RuleKind.REJECT, "blocked profile", lambda c, p: c.url.endswith("kelly-oneill"))
        ]
        outcome = evaluate_rules(_candidate(), kelly, rules)
        assert outcome.rejected
        assert outcome.reason == "blocked profile"

    @pytest.mark.parametrize("kind", list(RuleKind))
    def test_kinds_are_strings(self, kind):
        assert kind.value in ("reject", "accept", "review")
