"""
Organization alias database.

Loads versioned industry data files (profilefinder/data/industries/*.json)
into read-only OrganizationRecord tables and validates them at load time.

Invariant:
A normalized alias belongs to exactly one canonical record unless the data
file declares it under "shared_aliases"; lookups of a shared alias return
every owner so callers can flag the ambiguity instead of picking one.
"""

import functools
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from .errors import AliasCollisionError, ConfigError
from .logger import get_logger
from .normalize import STOP_WORDS, normalize_organization

logger = get_logger()

INDUSTRY_DATA_DIR = Path(__file__).parent / "data" / "industries"
DEFAULT_INDUSTRY = "healthcare"


@dataclass(frozen=True)
class OrganizationRecord:
    canonical: str
    aliases: FrozenSet[str] = frozenset()
    keywords: FrozenSet[str] = frozenset()
    primary_keyword: Optional[str] = None
    regions: FrozenSet[str] = frozenset()
    category: str = "organization"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OrganizationRecord":
        canonical = (data.get("canonical") or "").strip()
        if not canonical:
            raise ConfigError("Organization record is missing 'canonical'")
        keywords = frozenset(normalize_organization(k) for k in data.get("keywords", []) if k)
        primary = data.get("primary_keyword")
        primary = normalize_organization(primary) if primary else None
        if primary and primary not in keywords:
            raise ConfigError(f"Primary keyword '{primary}' of '{canonical}' is not one of its keywords")
        return cls(
            canonical=canonical,
            aliases=frozenset(a.strip() for a in data.get("aliases", []) if a and a.strip()),
            keywords=keywords,
            primary_keyword=primary,
            regions=frozenset(data.get("regions", [])),
            category=data.get("category", "organization"),
        )

    def names(self) -> List[str]:
        """Canonical name followed by aliases, in a stable order."""
        return [self.canonical] + sorted(self.aliases)

    def normalized_names(self) -> List[str]:
        seen = []
        for name in self.names():
            norm = normalize_organization(name)
            if norm and norm not in seen:
                seen.append(norm)
        return seen


class AliasDatabase:
    """Read-only map from normalized organization names to records."""

    def __init__(self, records: Iterable[OrganizationRecord], shared_aliases: Iterable[str] = ()):
        self._records: Dict[str, OrganizationRecord] = {}
        self._index: Dict[str, Tuple[str, ...]] = {}
        self.shared_aliases = frozenset(normalize_organization(a) for a in shared_aliases)

        for record in records:
            if record.canonical in self._records:
                raise ConfigError(f"Duplicate organization record: {record.canonical}")
            self._records[record.canonical] = record
            for norm in record.normalized_names():
                owners = self._index.get(norm, ())
                if owners and norm not in self.shared_aliases:
                    raise AliasCollisionError(norm, owners[0], record.canonical)
                self._index[norm] = owners + (record.canonical,)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_organization(name) in self._index

    @property
    def records(self) -> List[OrganizationRecord]:
        return list(self._records.values())

    def get(self, canonical: str) -> Optional[OrganizationRecord]:
        return self._records.get(canonical)

    def lookup(self, name: Optional[str]) -> List[OrganizationRecord]:
        """All records whose canonical name or alias normalizes to ``name``."""
        owners = self._index.get(normalize_organization(name), ())
        return [self._records[c] for c in owners]

    def find(self, name: Optional[str]) -> Optional[OrganizationRecord]:
        """The single owning record, or None when absent or shared."""
        records = self.lookup(name)
        return records[0] if len(records) == 1 else None


@dataclass(frozen=True)
class IndustryProfile:
    name: str
    version: str
    database: AliasDatabase
    vocabulary: FrozenSet[str] = frozenset()
    stop_words: FrozenSet[str] = STOP_WORDS
    thresholds: Mapping[str, int] = field(default_factory=dict)

    def primary_keyword_for(self, organization: Optional[str]) -> Optional[str]:
        record = self.database.find(organization)
        return record.primary_keyword if record else None


def load_industry_file(path: Path) -> IndustryProfile:
    """Load and validate one industry data file."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read industry data file {path}: {e}") from e

    name = data.get("industry") or path.stem
    records = [OrganizationRecord.from_dict(r) for r in data.get("organizations", [])]
    database = AliasDatabase(records, shared_aliases=data.get("shared_aliases", []))
    profile = IndustryProfile(
        name=name,
        version=str(data.get("version", "0")),
        database=database,
        vocabulary=frozenset(normalize_organization(v) for v in data.get("vocabulary", [])),
        stop_words=STOP_WORDS | frozenset(data.get("stop_words", [])),
        thresholds=dict(data.get("thresholds", {})),
    )
    logger.debug(
        "Loaded industry profile",
        industry=name,
        version=profile.version,
        organizations=len(database),
    )
    return profile


def available_industries() -> List[str]:
    return sorted(p.stem for p in INDUSTRY_DATA_DIR.glob("*.json"))


@functools.lru_cache(maxsize=None)
def load_industry(name: str = DEFAULT_INDUSTRY) -> IndustryProfile:
    path = INDUSTRY_DATA_DIR / f"{name}.json"
    if not path.exists():
        raise ConfigError(f"Unknown industry profile '{name}'. Choose from: {', '.join(available_industries())}")
    return load_industry_file(path)
