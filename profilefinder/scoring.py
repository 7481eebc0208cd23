"""
Candidate Scoring Logic.

Responsibilities:
- Combine name, organization, title and URL-structure signals into one
  weighted score per search-result candidate.
- Rank scored candidates and flag inconclusive rankings for review.

Non-Responsibilities:
- No search calls.
- No accept/reject decisions (see rules.py).

Invariant:
Given identical inputs, a candidate always receives the same score, and
ranking an already-ranked list returns it unchanged.
"""

import re
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence, Union
from urllib.parse import urlparse

from .aliases import IndustryProfile, load_industry
from .errors import NoCandidateError
from .models import Candidate, DuplicateRiskProfile, OrganizationMatch, PersonQuery, ReviewBundle
from .names import match_name, prepare_text
from .normalize import normalize_name_token, normalize_organization, significant_tokens
from .organizations import match_organization

WEIGHTS = {
    "name": 0.35,
    "organization": 0.30,
    "title": 0.20,
    "url": 0.15,
}

REVIEW_GAP = 15
REVIEW_BUNDLE_SIZE = 3

URL_BASE_SCORE = 20
URL_NAME_TOKEN_BONUS = 35
URL_ORG_HINT_BONUS = 10
URL_NUMERIC_PENALTY = 20
URL_HYPHEN_PENALTY = 10
URL_SEGMENT_PENALTY = 15
URL_MAX_HYPHEN_PARTS = 3
# Shorter name tokens must match a whole slug part ("li" is not in "oliver")
URL_SUBSTRING_MIN_LEN = 4

TITLE_ABBREVIATIONS = {
    "vp": "vice president",
    "svp": "senior vice president",
    "evp": "executive vice president",
    "avp": "assistant vice president",
    "ceo": "chief executive officer",
    "cfo": "chief financial officer",
    "coo": "chief operating officer",
    "cto": "chief technology officer",
    "cio": "chief information officer",
    "cmo": "chief medical officer",
    "cno": "chief nursing officer",
    "cmio": "chief medical information officer",
    "dir": "director",
    "mgr": "manager",
    "sr": "senior",
    "jr": "junior",
    "asst": "assistant",
    "assoc": "associate",
    "exec": "executive",
    "admin": "administrator",
    "ops": "operations",
    "eng": "engineering",
    "rn": "registered nurse",
    "np": "nurse practitioner",
}

TITLE_STOP_WORDS = frozenset({"of", "and", "the", "at", "for", "in", "to", "a", "an"})

_PROFILE_SUFFIX = re.compile(r"\s*[|\-–—]?\s*linkedin\s*$", re.IGNORECASE)
_AT_ORGANIZATION = re.compile(r"\bat\s+([A-Z][\w&'.\-]*(?:\s+[\w&'.\-]+)*?)\s*(?:[|·,;]|\.\s|$)")


def extract_organization(title: str, snippet: str = "") -> Optional[str]:
    """
    Pull the employer out of a profile search result.

    Profile titles usually read "Name - Title - Organization | LinkedIn" or
    "Name - Title at Organization". Falls back to "at Organization" in the
    snippet.
    """
    cleaned = _PROFILE_SUFFIX.sub("", (title or "").strip())
    parts = [p.strip() for p in re.split(r"\s+[\-–—|]\s+", cleaned) if p.strip()]
    if len(parts) >= 3:
        return parts[-1]
    if len(parts) == 2:
        m = _AT_ORGANIZATION.search(parts[1])
        if m:
            return m.group(1).strip()
    m = _AT_ORGANIZATION.search(snippet or "")
    if m:
        return m.group(1).strip()
    return None


def _title_tokens(text: str) -> List[str]:
    words = re.findall(r"[a-z]+", prepare_text(text))
    expanded: List[str] = []
    for w in words:
        expanded.extend(TITLE_ABBREVIATIONS.get(w, w).split())
    return expanded


def title_overlap_score(job_title: Optional[str], text: str) -> float:
    """Percentage of significant job-title words found in the candidate text."""
    if not job_title or not text:
        return 0.0
    wanted = [t for t in dict.fromkeys(_title_tokens(job_title)) if t not in TITLE_STOP_WORDS]
    if not wanted:
        return 0.0
    present = set(_title_tokens(text))
    hits = sum(1 for t in wanted if t in present)
    return round(100.0 * hits / len(wanted), 2)


def _organization_hints(organization: Optional[str], profile: IndustryProfile) -> List[str]:
    if not organization:
        return []
    norm = normalize_organization(organization)
    hints = [t for t in significant_tokens(norm, profile.stop_words) if len(t) >= 3]
    primary = profile.primary_keyword_for(organization)
    if primary:
        hints.append(primary.replace(" ", ""))
    return hints


def _name_in_slug(token: str, parts: List[str], compact: str) -> bool:
    if not token:
        return False
    if token in parts:
        return True
    return len(token) >= URL_SUBSTRING_MIN_LEN and token in compact


def url_structure_score(url: str, person: PersonQuery, profile: Optional[IndustryProfile] = None) -> float:
    """
    Score how much a profile URL looks like it belongs to the person.

    Vanity slugs such as "/in/kelly-oneill" score high; generated slugs with
    numeric suffixes or many parts score low.
    """
    profile = profile or load_industry()
    path = urlparse(url).path.strip("/").lower()
    segments = [s for s in path.split("/") if s]
    if segments and segments[0] == "in":
        segments = segments[1:]
    if not segments:
        return 0.0

    slug = segments[0]
    parts = [p for p in slug.split("-") if p]
    compact = slug.replace("-", "")
    score = URL_BASE_SCORE

    first = normalize_name_token(person.first_name)
    last = normalize_name_token(person.last_name)
    for token in (first, last):
        if _name_in_slug(token, parts, compact):
            score += URL_NAME_TOKEN_BONUS
    if any(h in compact for h in _organization_hints(person.organization, profile)):
        score += URL_ORG_HINT_BONUS

    if parts and re.search(r"\d", parts[-1]):
        score -= URL_NUMERIC_PENALTY
    if len(parts) > URL_MAX_HYPHEN_PARTS:
        score -= URL_HYPHEN_PENALTY * (len(parts) - URL_MAX_HYPHEN_PARTS)
    if len(segments) > 1:
        score -= URL_SEGMENT_PENALTY
    return float(max(0, min(100, score)))


def weighted_total(name: float, organization: float, title: float, url: float) -> float:
    return round(
        WEIGHTS["name"] * name
        + WEIGHTS["organization"] * organization
        + WEIGHTS["title"] * title
        + WEIGHTS["url"] * url,
        2,
    )


def _best_organization_match(
    candidate: Candidate, extracted: Optional[str], organization: Optional[str], profile: IndustryProfile
) -> OrganizationMatch:
    if not organization:
        return OrganizationMatch(score=0, method="none", confidence="none", details="no target organization")
    from_text = match_organization(candidate.text, organization, profile)
    if not extracted:
        return from_text
    from_extracted = match_organization(extracted, organization, profile)
    return from_extracted if from_extracted.score >= from_text.score else from_text


def score_candidate(
    candidate: Candidate,
    person: PersonQuery,
    profile: Optional[IndustryProfile] = None,
    strict: bool = False,
) -> Candidate:
    """
    Score one candidate against the person being resolved.

    Args:
        candidate: Raw candidate built from a search item
        person: Person being resolved
        profile: Industry profile for organization matching
        strict: Use strict name matching (duplicate-risk names)

    Returns:
        A new Candidate carrying sub-scores, match details and the total.
    """
    profile = profile or load_industry()
    extracted = extract_organization(candidate.title, candidate.snippet)
    name = match_name(candidate.text, person.first_name, person.last_name, strict=strict)
    organization = _best_organization_match(candidate, extracted, person.organization, profile)
    title = title_overlap_score(person.job_title, candidate.text)
    url = url_structure_score(candidate.url, person, profile)

    return replace(
        candidate,
        extracted_organization=extracted,
        name_match=name,
        organization_match=organization,
        name_score=float(name.score),
        organization_score=float(organization.score),
        title_score=title,
        url_score=url,
        total_score=weighted_total(name.score, organization.score, title, url),
    )


def sort_candidates(candidates: Iterable[Candidate]) -> List[Candidate]:
    """Descending by total score; URL breaks ties so the order is stable."""
    return sorted(candidates, key=lambda c: (-c.total_score, c.url))


def rank_candidates(
    candidates: Sequence[Candidate],
    person: PersonQuery,
    risk: DuplicateRiskProfile,
    min_score: float,
    review_gap: float = REVIEW_GAP,
) -> Union[Candidate, ReviewBundle]:
    """
    Pick the best scored candidate or flag the ranking for manual review.

    Args:
        candidates: Scored candidates
        person: Person being resolved
        risk: Duplicate-risk profile for the person
        min_score: Pass threshold used when the risk profile has no override
        review_gap: Score gap below which a high-risk near-tie is ambiguous

    Returns:
        The winning Candidate, or a ReviewBundle with the top three.

    Raises:
        NoCandidateError: If there is nothing to rank
    """
    if not candidates:
        raise NoCandidateError(f"No candidates to rank for {person.full_name}")

    ranked = sort_candidates(candidates)
    best = ranked[0]
    top = tuple(ranked[:REVIEW_BUNDLE_SIZE])

    if len(ranked) > 1 and risk.high_risk and best.total_score - ranked[1].total_score < review_gap:
        return ReviewBundle(
            candidates=top,
            reason=(
                f"top candidates within {review_gap:g} points "
                f"({best.total_score:g} vs {ranked[1].total_score:g}) for a high duplicate-risk name"
            ),
        )

    required = risk.min_score if risk.min_score is not None else min_score
    if best.total_score < required:
        return ReviewBundle(
            candidates=top,
            reason=f"best score {best.total_score:g} is below the required {required:g}",
        )
    return best
