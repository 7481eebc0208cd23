"""
Data model shared by the matchers, the scorer and the resolver.

Everything that crosses a component boundary is a frozen dataclass; scoring
produces new Candidate instances instead of mutating them.
"""

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


class Status(str, Enum):
    FOUND = "Found"
    VERIFIED = "Verified"
    NEEDS_REVIEW = "Needs Review"
    NOT_FOUND = "Not Found"
    REJECTED = "Rejected"
    ERROR = "Error"


# Outcomes that are written through to the cache
CACHEABLE_STATUSES = frozenset({Status.FOUND, Status.VERIFIED, Status.NEEDS_REVIEW, Status.REJECTED})


@dataclass(frozen=True)
class PersonQuery:
    first_name: str
    last_name: str
    job_title: Optional[str] = None
    organization: Optional[str] = None
    region: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class SearchItem:
    """One raw item returned by the search capability."""

    title: str
    snippet: str
    link: str


@dataclass(frozen=True)
class NameMatch:
    valid: bool
    score: float
    pattern_type: Optional[str]
    contaminated: bool = False
    false_positive: bool = False
    partial: bool = False
    reason: str = ""


@dataclass(frozen=True)
class OrganizationMatch:
    score: float
    method: str
    confidence: str
    details: str = ""
    canonical: Optional[str] = None
    ambiguous: bool = False


@dataclass(frozen=True)
class Candidate:
    title: str
    snippet: str
    url: str
    strategy: str = ""
    pass_number: int = 1
    extracted_organization: Optional[str] = None
    name_match: Optional[NameMatch] = None
    organization_match: Optional[OrganizationMatch] = None
    name_score: float = 0.0
    organization_score: float = 0.0
    title_score: float = 0.0
    url_score: float = 0.0
    total_score: float = 0.0

    @classmethod
    def from_item(cls, item: SearchItem, strategy: str = "", pass_number: int = 1) -> "Candidate":
        return cls(
            title=item.title,
            snippet=item.snippet,
            url=item.link,
            strategy=strategy,
            pass_number=pass_number,
        )

    @property
    def text(self) -> str:
        return f"{self.title} {self.snippet}".strip()

    def breakdown(self) -> Dict[str, float]:
        return {
            "name": self.name_score,
            "organization": self.organization_score,
            "title": self.title_score,
            "url": self.url_score,
        }


@dataclass(frozen=True)
class ReviewBundle:
    """Returned instead of a single winner when the ranking is not conclusive."""

    candidates: Tuple[Candidate, ...]
    reason: str
    needs_manual_review: bool = True

    @property
    def urls(self) -> Tuple[str, ...]:
        return tuple(c.url for c in self.candidates)


@dataclass(frozen=True)
class DuplicateRiskProfile:
    tier: str  # high | moderate | standard
    min_score: Optional[int]
    strategy: str  # strict | standard
    reason: str = ""

    @property
    def high_risk(self) -> bool:
        return self.tier == "high"


@dataclass(frozen=True)
class ResolutionResult:
    url: Optional[str]
    total_score: float
    status: Status
    breakdown: Mapping[str, float] = field(default_factory=dict)
    verified: bool = False
    needs_review: bool = False
    review_reason: Optional[str] = None
    alternative_urls: Tuple[str, ...] = ()
    strategy: Optional[str] = None
    pass_number: int = 0
    organization_score: float = 0.0
    from_cache: bool = False

    def __post_init__(self):
        object.__setattr__(self, "breakdown", MappingProxyType(dict(self.breakdown)))
        object.__setattr__(self, "alternative_urls", tuple(self.alternative_urls))
        object.__setattr__(self, "status", Status(self.status))

    @property
    def confidence(self) -> int:
        return int(round(self.total_score))

    @property
    def found(self) -> bool:
        return self.url is not None and self.status in (Status.FOUND, Status.VERIFIED, Status.NEEDS_REVIEW)

    @classmethod
    def not_found(cls, reason: str) -> "ResolutionResult":
        return cls(url=None, total_score=0.0, status=Status.NOT_FOUND, review_reason=reason)

    @classmethod
    def error(cls, reason: str) -> "ResolutionResult":
        return cls(url=None, total_score=0.0, status=Status.ERROR, review_reason=reason)

    def cached_copy(self) -> "ResolutionResult":
        return replace(self, from_cache=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "total_score": self.total_score,
            "status": self.status.value,
            "breakdown": dict(self.breakdown),
            "verified": self.verified,
            "needs_review": self.needs_review,
            "review_reason": self.review_reason,
            "alternative_urls": list(self.alternative_urls),
            "strategy": self.strategy,
            "pass_number": self.pass_number,
            "organization_score": self.organization_score,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResolutionResult":
        return cls(
            url=data.get("url"),
            total_score=float(data.get("total_score", 0.0)),
            status=Status(data["status"]),
            breakdown=data.get("breakdown") or {},
            verified=bool(data.get("verified", False)),
            needs_review=bool(data.get("needs_review", False)),
            review_reason=data.get("review_reason"),
            alternative_urls=tuple(data.get("alternative_urls") or ()),
            strategy=data.get("strategy"),
            pass_number=int(data.get("pass_number", 0)),
            organization_score=float(data.get("organization_score", 0.0)),
        )


@dataclass(frozen=True)
class PatternRecord:
    strategy: str
    name_format: str
    organization_format: str
    outcome: str
    organization: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PatternRecord":
        return cls(
            strategy=data.get("strategy", "unknown"),
            name_format=data.get("name_format", "simple"),
            organization_format=data.get("organization_format", "none"),
            outcome=data.get("outcome", ""),
            organization=data.get("organization"),
            timestamp=data.get("timestamp", ""),
        )
