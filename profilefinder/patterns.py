"""
Pattern learner.

Keeps two append-only logs (successes and failures) of which search
strategy resolved which kind of name and organization, capped at the most
recent entries. ``recommendations`` summarizes them; nothing in the
resolver changes behaviour based on the output.
"""

import re
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .models import PatternRecord, PersonQuery
from .normalize import ORG_ABBREVIATIONS, normalize_quotes, strip_accents
from .storage import KeyValueStore, MemoryStore

SUCCESS_KEY = "patterns:successes"
FAILURE_KEY = "patterns:failures"
MAX_ENTRIES = 100
PROBLEM_ORGANIZATION_FAILURES = 2


def name_format(person: PersonQuery) -> str:
    full = normalize_quotes(f"{person.first_name} {person.last_name}")
    if "-" in full:
        return "hyphenated"
    if "'" in full:
        return "apostrophe"
    if strip_accents(full) != full:
        return "accented"
    if len(person.first_name.split()) > 1 or len(person.last_name.split()) > 1:
        return "multi_part"
    return "simple"


def organization_format(organization: Optional[str]) -> str:
    if not organization or not organization.strip():
        return "none"
    words = organization.split()
    if len(words) == 1 and organization.isupper() and len(organization) <= 6:
        return "acronym"
    tokens = re.findall(r"[a-z]+", organization.lower())
    if any(t in ORG_ABBREVIATIONS for t in tokens if len(t) > 2):
        return "abbreviated"
    if len(words) > 3:
        return "multi_word"
    return "standard"


class PatternLearner:
    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        max_entries: int = MAX_ENTRIES,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store if store is not None else MemoryStore()
        self.max_entries = max_entries
        self._clock = clock

    def _load(self, key: str) -> List[PatternRecord]:
        return [PatternRecord.from_dict(d) for d in self.store.get(key) or []]

    def _append(self, key: str, record: PatternRecord) -> None:
        entries = self.store.get(key) or []
        entries.append(record.to_dict())
        self.store.set(key, entries[-self.max_entries:])

    def _record(self, person: PersonQuery, strategy: Optional[str], outcome: str) -> PatternRecord:
        return PatternRecord(
            strategy=strategy or "unknown",
            name_format=name_format(person),
            organization_format=organization_format(person.organization),
            outcome=outcome,
            organization=person.organization,
            timestamp=self._clock().isoformat(),
        )

    def record_success(self, person: PersonQuery, strategy: Optional[str], outcome: str = "found") -> None:
        self._append(SUCCESS_KEY, self._record(person, strategy, outcome))

    def record_failure(self, person: PersonQuery, strategy: Optional[str], outcome: str = "not_found") -> None:
        self._append(FAILURE_KEY, self._record(person, strategy, outcome))

    def successes(self) -> List[PatternRecord]:
        return self._load(SUCCESS_KEY)

    def failures(self) -> List[PatternRecord]:
        return self._load(FAILURE_KEY)

    def recommendations(self) -> Dict[str, Any]:
        """
        Summarize the logs.

        Returns:
            Dict with the most successful strategy, per-strategy success
            counts, organizations that failed at least twice, and success
            rates per name format.
        """
        successes = self.successes()
        failures = self.failures()

        strategy_counts = Counter(r.strategy for r in successes)
        best = sorted(strategy_counts.items(), key=lambda kv: (-kv[1], kv[0]))
        failed_orgs = Counter(r.organization for r in failures if r.organization)

        by_format: Dict[str, Dict[str, int]] = {}
        for r in successes:
            by_format.setdefault(r.name_format, {"success": 0, "failure": 0})["success"] += 1
        for r in failures:
            by_format.setdefault(r.name_format, {"success": 0, "failure": 0})["failure"] += 1
        rates = {
            fmt: round(c["success"] / (c["success"] + c["failure"]), 3) for fmt, c in sorted(by_format.items())
        }

        return {
            "best_strategy": best[0][0] if best else None,
            "strategy_successes": dict(best),
            "problem_organizations": sorted(
                org for org, n in failed_orgs.items() if n >= PROBLEM_ORGANIZATION_FAILURES
            ),
            "name_format_success_rates": rates,
            "total_successes": len(successes),
            "total_failures": len(failures),
        }
