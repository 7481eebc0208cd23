from dataclasses import dataclass
from typing import Iterable, List, Optional
from urllib.parse import quote_plus

from .aliases import IndustryProfile, load_industry
from .models import PersonQuery

DEFAULT_PROFILE_SITE = "linkedin.com/in"

STRICT_PASS = 1
RELAXED_PASS = 2


@dataclass(frozen=True)
class SearchStrategy:
    name: str
    query: str
    pass_number: int


def _quoted(term: Optional[str]) -> str:
    return f'"{term.strip()}"' if term and term.strip() else ""


def _join(*terms: str) -> str:
    return " ".join(t for t in terms if t)


def _dedupe(strategies: Iterable[SearchStrategy]) -> List[SearchStrategy]:
    seen = set()
    out = []
    for s in strategies:
        if s.query not in seen:
            seen.add(s.query)
            out.append(s)
    return out


def build_strict_strategies(person: PersonQuery, limit: int = 3) -> List[SearchStrategy]:
    """
    Pass-1 queries: every term quoted, most specific first.
    Strategies whose fields are missing are skipped; the bare-name query is
    reserved for the relaxed pass.
    """
    name = _quoted(person.full_name)
    title = _quoted(person.job_title)
    org = _quoted(person.organization)

    strategies = []
    if title and org:
        strategies.append(SearchStrategy("name_title_org", _join(name, title, org), STRICT_PASS))
    if org:
        strategies.append(SearchStrategy("name_org", _join(name, org), STRICT_PASS))
    if title:
        strategies.append(SearchStrategy("name_title", _join(name, title), STRICT_PASS))
    return _dedupe(strategies)[:limit]


def build_relaxed_strategies(
    person: PersonQuery,
    profile: Optional[IndustryProfile] = None,
    limit: int = 5,
) -> List[SearchStrategy]:
    """
    Pass-2 queries: only the name stays quoted; the organization is tried by
    its primary keyword first, then loosely; finally the bare name.
    """
    profile = profile or load_industry()
    name = _quoted(person.full_name)
    keyword = profile.primary_keyword_for(person.organization)

    strategies = []
    if keyword:
        strategies.append(SearchStrategy("name_org_keyword", _join(name, keyword), RELAXED_PASS))
    if person.job_title:
        strategies.append(SearchStrategy("name_title_loose", _join(name, person.job_title), RELAXED_PASS))
    if person.region:
        strategies.append(SearchStrategy("name_region", _join(name, person.region), RELAXED_PASS))
    if person.organization:
        strategies.append(SearchStrategy("name_org_loose", _join(name, person.organization), RELAXED_PASS))
    strategies.append(SearchStrategy("name_only", name, RELAXED_PASS))
    return _dedupe(strategies)[:limit]


def with_site(query: str, site: str = DEFAULT_PROFILE_SITE) -> str:
    """Prefix a query with a site: filter for pasting into a browser."""
    return _join(f"site:{site}", query)


def build_query_urls(queries: list[str]) -> list[str]:
    base = "https://www.google.com/search?q="
    return [base + quote_plus(q) for q in queries]
