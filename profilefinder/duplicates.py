"""
Duplicate-risk assessment.

Runs once per person before any search. Names that many unrelated people
share need stricter matching and a higher minimum score, and near-ties
between their candidates go to manual review.
"""

from typing import Mapping, Optional

from .models import DuplicateRiskProfile, PersonQuery
from .normalize import normalize_name_token

HIGH_RISK_MIN_SCORE = 75
BOTH_COMMON_MIN_SCORE = 70
MODERATE_MIN_SCORE = 65

# Full names known to resolve to many unrelated profiles
KNOWN_DUPLICATES: Mapping[str, str] = {
    "john smith": "one of the most common full names in the US",
    "james smith": "one of the most common full names in the US",
    "michael smith": "one of the most common full names in the US",
    "robert smith": "one of the most common full names in the US",
    "david smith": "one of the most common full names in the US",
    "maria garcia": "one of the most common full names in the US",
    "maria rodriguez": "one of the most common full names in the US",
    "mary smith": "one of the most common full names in the US",
    "james johnson": "one of the most common full names in the US",
    "michael johnson": "one of the most common full names in the US",
    "john williams": "one of the most common full names in the US",
    "robert jones": "one of the most common full names in the US",
    "jennifer brown": "one of the most common full names in the US",
    "david lee": "one of the most common full names in the US",
    "john lee": "one of the most common full names in the US",
    "michael brown": "one of the most common full names in the US",
    "wei wang": "very common full name with many public profiles",
    "wei zhang": "very common full name with many public profiles",
    "li wang": "very common full name with many public profiles",
    "raj patel": "very common full name with many public profiles",
    "amit patel": "very common full name with many public profiles",
    "mohammed ali": "very common full name with many public profiles",
}

COMMON_FIRST_NAMES = frozenset(
    {
        "james",
        "john",
        "robert",
        "michael",
        "william",
        "david",
        "richard",
        "joseph",
        "thomas",
        "charles",
        "christopher",
        "daniel",
        "matthew",
        "anthony",
        "mark",
        "steven",
        "paul",
        "andrew",
        "joshua",
        "kevin",
        "brian",
        "mary",
        "patricia",
        "jennifer",
        "linda",
        "elizabeth",
        "barbara",
        "susan",
        "jessica",
        "sarah",
        "karen",
        "lisa",
        "nancy",
        "nicole",
        "ashley",
        "emily",
        "michelle",
        "amanda",
        "melissa",
        "maria",
        "wei",
        "li",
        "mohammed",
        "muhammad",
        "jose",
    }
)

COMMON_LAST_NAMES = frozenset(
    {
        "smith",
        "johnson",
        "williams",
        "brown",
        "jones",
        "garcia",
        "miller",
        "davis",
        "rodriguez",
        "martinez",
        "hernandez",
        "lopez",
        "gonzalez",
        "wilson",
        "anderson",
        "thomas",
        "taylor",
        "moore",
        "jackson",
        "martin",
        "lee",
        "perez",
        "thompson",
        "white",
        "harris",
        "sanchez",
        "clark",
        "ramirez",
        "lewis",
        "robinson",
        "walker",
        "young",
        "allen",
        "king",
        "wright",
        "scott",
        "nguyen",
        "hill",
        "green",
        "adams",
        "baker",
        "hall",
        "chen",
        "wang",
        "kim",
        "li",
        "zhang",
        "liu",
        "singh",
        "kumar",
        "patel",
        "khan",
        "ali",
    }
)


def assess_duplicate_risk(
    person: PersonQuery,
    known_duplicates: Optional[Mapping[str, str]] = None,
) -> DuplicateRiskProfile:
    """
    Classify how likely a name is shared by unrelated people.

    Args:
        person: Person being resolved
        known_duplicates: Full-name table overriding KNOWN_DUPLICATES

    Returns:
        DuplicateRiskProfile with a minimum-score override (None means the
        pass threshold applies) and the matching strategy to use.
    """
    table = KNOWN_DUPLICATES if known_duplicates is None else known_duplicates
    first = normalize_name_token(person.first_name)
    last = normalize_name_token(person.last_name)
    full = f"{first} {last}"

    if full in table:
        return DuplicateRiskProfile(
            tier="high",
            min_score=HIGH_RISK_MIN_SCORE,
            strategy="strict",
            reason=f"known duplicate name: {table[full]}",
        )

    first_common = first in COMMON_FIRST_NAMES
    last_common = last in COMMON_LAST_NAMES
    if first_common and last_common:
        return DuplicateRiskProfile(
            tier="high",
            min_score=BOTH_COMMON_MIN_SCORE,
            strategy="strict",
            reason="common first and last name",
        )
    if first_common or last_common:
        which = "first" if first_common else "last"
        return DuplicateRiskProfile(
            tier="moderate",
            min_score=MODERATE_MIN_SCORE,
            strategy="strict",
            reason=f"common {which} name",
        )
    return DuplicateRiskProfile(tier="standard", min_score=None, strategy="standard")
