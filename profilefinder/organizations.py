"""
Organization Matching.

Responsibilities:
- Score how well candidate text refers to the target organization.
- Prefer exact and alias-database evidence over fuzzy token overlap.

Non-Responsibilities:
- No name matching.
- No decision on whether a candidate is accepted.

Invariant:
Exact and alias matches always outrank token overlap; industry-context
credit is tagged low confidence and is never enough for auto-accept.
"""

import re
from typing import List, Optional, Sequence

from .aliases import IndustryProfile, OrganizationRecord, load_industry
from .models import OrganizationMatch
from .normalize import normalize_organization, significant_tokens

EXACT_SCORE = 100
ALIAS_EXACT_SCORE = 100
KEYWORD_SCORE = 85
PARTIAL_KEYWORD_BASE = 70
PARTIAL_KEYWORD_STEP = 5
OVERLAP_BASE = 50
OVERLAP_MAX = 70
OVERLAP_MIN_FRACTION = 0.6
INDUSTRY_CONTEXT_SCORE = 60

# Shortest token allowed to take part in contains-style comparison
MIN_CONTAINS_LENGTH = 3
# A contained fragment this long always counts
MIN_FRAGMENT_LENGTH = 4
# Shorter fragments count only when they cover this share of the longer token
MIN_FRAGMENT_RATIO = 0.6

# Dropped from candidate text before token comparison
FUNCTION_WORDS = frozenset({"to", "in", "on", "by", "as", "with", "from", "&"})


def _contains_phrase(text: str, phrase: str) -> bool:
    """Whole-word phrase test on normalized text."""
    if not phrase:
        return False
    return re.search(r"(?<!\w)" + re.escape(phrase) + r"(?!\w)", text) is not None


def _token_present(token: str, text_tokens: Sequence[str]) -> bool:
    if token in text_tokens:
        return True
    for word in text_tokens:
        short, long_ = sorted((token, word), key=len)
        if len(short) < MIN_CONTAINS_LENGTH or short not in long_:
            continue
        if len(short) >= MIN_FRAGMENT_LENGTH or len(short) >= MIN_FRAGMENT_RATIO * len(long_):
            return True
    return False


def match_record(norm_text: str, record: OrganizationRecord) -> Optional[OrganizationMatch]:
    """Test normalized text against one alias-database record."""
    if record.primary_keyword and _contains_phrase(norm_text, record.primary_keyword):
        return OrganizationMatch(
            score=KEYWORD_SCORE,
            method="primary_keyword",
            confidence="high",
            details=f"primary keyword '{record.primary_keyword}'",
            canonical=record.canonical,
        )

    matched = sorted(k for k in record.keywords if _contains_phrase(norm_text, k))
    if record.keywords and len(matched) == len(record.keywords):
        return OrganizationMatch(
            score=KEYWORD_SCORE,
            method="all_keywords",
            confidence="high",
            details=f"all keywords: {', '.join(matched)}",
            canonical=record.canonical,
        )
    if matched:
        score = min(PARTIAL_KEYWORD_BASE + PARTIAL_KEYWORD_STEP * len(matched), KEYWORD_SCORE)
        return OrganizationMatch(
            score=score,
            method="partial_keywords",
            confidence="medium",
            details=f"keywords: {', '.join(matched)}",
            canonical=record.canonical,
        )

    for alias in record.normalized_names():
        if _contains_phrase(norm_text, alias):
            return OrganizationMatch(
                score=ALIAS_EXACT_SCORE,
                method="alias_exact",
                confidence="high",
                details=f"alias '{alias}'",
                canonical=record.canonical,
            )
    return None


def _match_shared(norm_text: str, records: List[OrganizationRecord]) -> Optional[OrganizationMatch]:
    best = None
    for record in records:
        m = match_record(norm_text, record)
        if m and (best is None or m.score > best.score):
            best = m
    if best is None:
        return None
    owners = ", ".join(r.canonical for r in records)
    return OrganizationMatch(
        score=best.score,
        method=best.method,
        confidence="medium",
        details=f"{best.details}; alias shared by {owners}",
        canonical=None,
        ambiguous=True,
    )


def match_organization(
    candidate_text: str,
    target_org: Optional[str],
    context: Optional[IndustryProfile] = None,
) -> OrganizationMatch:
    """
    Score candidate text against a target organization name.

    Args:
        candidate_text: Search-result text or an extracted organization string
        target_org: Organization from the person record
        context: Industry profile supplying the alias database, stop words and
            vocabulary (default: the default industry profile)

    Returns:
        OrganizationMatch; the first applicable rule decides the score.
    """
    if not candidate_text or not target_org:
        return OrganizationMatch(score=0, method="none", confidence="none", details="missing text or target")

    context = context or load_industry()
    norm_text = normalize_organization(candidate_text)
    norm_target = normalize_organization(target_org)
    if not norm_target:
        return OrganizationMatch(score=0, method="none", confidence="none", details="empty target")

    if norm_text == norm_target:
        return OrganizationMatch(score=EXACT_SCORE, method="exact", confidence="high", details="normalized equality")

    records = context.database.lookup(target_org)
    if len(records) > 1:
        shared = _match_shared(norm_text, records)
        if shared:
            return shared
    elif records:
        m = match_record(norm_text, records[0])
        if m:
            return m

    target_tokens = significant_tokens(norm_target, context.stop_words)
    text_tokens = significant_tokens(norm_text, context.stop_words | FUNCTION_WORDS)
    if not target_tokens:
        target_tokens = norm_target.split()
        text_tokens = norm_text.split()
    matched = [t for t in target_tokens if _token_present(t, text_tokens)]
    fraction = len(matched) / len(target_tokens)
    if fraction >= OVERLAP_MIN_FRACTION:
        score = OVERLAP_BASE + round((OVERLAP_MAX - OVERLAP_BASE) * fraction)
        return OrganizationMatch(
            score=score,
            method="word_overlap",
            confidence="medium",
            details=f"{len(matched)}/{len(target_tokens)} significant words",
        )

    if matched:
        vocabulary = [v for v in context.vocabulary if _contains_phrase(norm_text, v)]
        if vocabulary:
            return OrganizationMatch(
                score=INDUSTRY_CONTEXT_SCORE,
                method="industry_context",
                confidence="low",
                details=f"industry terms: {', '.join(sorted(vocabulary))}; words: {', '.join(matched)}",
            )

    return OrganizationMatch(score=0, method="none", confidence="none", details="no database or word match")
