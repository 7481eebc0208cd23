"""
Accept / reject / review rules for scored candidates.

Rules are plain data: a kind, a message and a predicate over
(candidate, person). ``evaluate_rules`` applies them in fixed priority
order, reject before accept before review, and has no side effects.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from .config import PassThresholds
from .models import Candidate, PersonQuery

ACCEPT_MIN_NAME_SCORE = 90
ACCEPT_MIN_ORGANIZATION_SCORE = 85
WEAK_ORGANIZATION_SCORE = 60
PROFILE_PATH_MARKER = "/in/"


class RuleKind(str, Enum):
    REJECT = "reject"
    ACCEPT = "accept"
    REVIEW = "review"


@dataclass(frozen=True)
class Rule:
    name: str
    kind: RuleKind
    message: str
    predicate: Callable[[Candidate, PersonQuery], bool]

    def applies(self, candidate: Candidate, person: PersonQuery) -> bool:
        return bool(self.predicate(candidate, person))


@dataclass(frozen=True)
class RuleOutcome:
    """Result of rule evaluation; ``kind`` is None when no rule fired."""

    kind: Optional[RuleKind]
    fired: Tuple[Rule, ...] = ()

    @property
    def rejected(self) -> bool:
        return self.kind == RuleKind.REJECT

    @property
    def accepted(self) -> bool:
        return self.kind == RuleKind.ACCEPT

    @property
    def review(self) -> bool:
        return self.kind == RuleKind.REVIEW

    @property
    def reason(self) -> str:
        return "; ".join(r.message for r in self.fired)


def _name(c: Candidate):
    return c.name_match


def _org(c: Candidate):
    return c.organization_match


def default_rules(thresholds: PassThresholds) -> List[Rule]:
    """The standard rule set for the given pass thresholds."""
    return [
        Rule(
            "contaminated_name",
            RuleKind.REJECT,
            "name appears only as part of other text (contaminated match)",
            lambda c, p: _name(c) is not None and _name(c).contaminated,
        ),
        Rule(
            "false_positive_name",
            RuleKind.REJECT,
            "name match looks like a false positive",
            lambda c, p: _name(c) is not None and _name(c).false_positive,
        ),
        Rule(
            "no_name_match",
            RuleKind.REJECT,
            "no valid name match in the result",
            lambda c, p: _name(c) is None or not _name(c).valid,
        ),
        Rule(
            "not_a_profile_url",
            RuleKind.REJECT,
            "URL is not a personal profile page",
            lambda c, p: PROFILE_PATH_MARKER not in c.url.lower(),
        ),
        Rule(
            "below_reject_threshold",
            RuleKind.REJECT,
            f"total score below {thresholds.reject}",
            lambda c, p: c.total_score < thresholds.reject,
        ),
        Rule(
            "strong_match",
            RuleKind.ACCEPT,
            f"strong name and organization match scoring at least {thresholds.auto_accept}",
            lambda c, p: (
                c.pass_number == 1
                and _name(c) is not None
                and _name(c).valid
                and c.name_score >= ACCEPT_MIN_NAME_SCORE
                and _org(c) is not None
                and c.organization_score >= ACCEPT_MIN_ORGANIZATION_SCORE
                and _org(c).confidence != "low"
                and not _org(c).ambiguous
                and c.total_score >= thresholds.auto_accept
            ),
        ),
        Rule(
            "industry_context_only",
            RuleKind.REVIEW,
            "organization matched on industry context only",
            lambda c, p: _org(c) is not None and _org(c).method == "industry_context",
        ),
        Rule(
            "shared_alias",
            RuleKind.REVIEW,
            "organization alias is shared by several organizations",
            lambda c, p: _org(c) is not None and _org(c).ambiguous,
        ),
        Rule(
            "weak_organization",
            RuleKind.REVIEW,
            f"organization score below {WEAK_ORGANIZATION_SCORE}",
            lambda c, p: bool(p.organization) and c.organization_score < WEAK_ORGANIZATION_SCORE,
        ),
        Rule(
            "relaxed_pass",
            RuleKind.REVIEW,
            "found by a relaxed (pass 2) search",
            lambda c, p: c.pass_number >= 2,
        ),
    ]


def evaluate_rules(candidate: Candidate, person: PersonQuery, rules: Sequence[Rule]) -> RuleOutcome:
    """Return the highest-priority kind with at least one firing rule."""
    for kind in (RuleKind.REJECT, RuleKind.ACCEPT, RuleKind.REVIEW):
        fired = tuple(r for r in rules if r.kind == kind and r.applies(candidate, person))
        if fired:
            return RuleOutcome(kind=kind, fired=fired)
    return RuleOutcome(kind=None)
