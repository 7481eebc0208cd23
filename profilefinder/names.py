"""
Name Matching.

Responsibilities:
- Generate structural name patterns in priority order.
- Detect contamination (both name tokens present, no structure between them).
- Detect false positives on a structural match.

Non-Responsibilities:
- No organization matching.
- No weighting against other signals.

Invariant:
Every pattern is anchored on word boundaries. A raw substring test never
counts as a name match.
"""

import re
from typing import List, Optional, Tuple

from .models import NameMatch
from .normalize import normalize_name_token, normalize_quotes, strip_accents

EXACT_ORDER = "exact_order"
SPECIAL_CHARS = "special_chars"
LAST_FIRST = "last_first"
MIDDLE_INITIAL = "middle_initial"
MIDDLE_NAME = "middle_name"
CREDENTIALED = "credentialed"
REVERSED = "reversed"

PATTERN_SCORES = {
    EXACT_ORDER: 100,
    SPECIAL_CHARS: 98,
    LAST_FIRST: 95,
    MIDDLE_INITIAL: 90,
    MIDDLE_NAME: 85,
    CREDENTIALED: 80,
    REVERSED: 70,
}

# Patterns below this score are not accepted in strict mode
STRICT_MIN_PATTERN_SCORE = 85

MAX_TOKEN_OCCURRENCES = 3

GENERATIONAL_SUFFIXES = ("jr", "sr", "ii", "iii", "iv")

NEGATIVE_CONTEXT = frozenset(
    {
        "not",
        "formerly",
        "former",
        "replaced",
        "replacing",
        "previously",
        "succeeded",
        "unlike",
        "instead",
    }
)
# "replaced by", "instead of"
NEGATIVE_CONTEXT_LINKS = frozenset({"by", "of"})

HONORIFICS = ("dr", "doctor", "prof", "professor")
CREDENTIALS = (
    "md",
    "do",
    "phd",
    "rn",
    "bsn",
    "msn",
    "dnp",
    "np",
    "pa-c",
    "mba",
    "mha",
    "mph",
    "facs",
    "facp",
    "faan",
    "fache",
    "jd",
    "cpa",
)

ORGANIZATION_WORDS = (
    "associates",
    "group",
    "partners",
    "llc",
    "llp",
    "pllc",
    "inc",
    "co",
    "company",
    "consulting",
    "foundation",
    "law firm",
)

# A firm word followed by one of these is a job title ("Group Vice President")
TITLE_TERMS = (
    "vice",
    "president",
    "director",
    "manager",
    "officer",
    "engineer",
    "lead",
    "head",
    "chair",
    "coordinator",
    "administrator",
    "executive",
    "counsel",
    "analyst",
    "consultant",
    "specialist",
)

_LEFT = r"(?<![^\W_])"
_RIGHT = r"(?![^\W_])"
_SEP = r"[\s'\-.]?"

_ORG_WORD_AFTER = re.compile(
    r"^\s*(?:&\s*|and\s+)?(?:"
    + "|".join(re.escape(w) for w in ORGANIZATION_WORDS)
    + r")(?![\w\-])(?!\s+(?:"
    + "|".join(TITLE_TERMS)
    + r")\b)"
)
_SUFFIX_AFTER = re.compile(r"^\s*,?\s*(?:" + "|".join(GENERATIONAL_SUFFIXES) + r")\.?" + _RIGHT)
_SUFFIX_BEFORE = re.compile(_LEFT + r"(?:" + "|".join(GENERATIONAL_SUFFIXES) + r")\.?,?\s*$")


def prepare_text(text: str) -> str:
    """Lower-case, accent-free text with apostrophes and hyphens preserved."""
    return " ".join(strip_accents(normalize_quotes(text)).lower().split())


def has_special_characters(name: str) -> bool:
    folded = strip_accents(normalize_quotes(name)).lower().strip()
    return bool(re.search(r"[^a-z]", folded))


def _flex_token(name: str) -> str:
    """Regex for a name token that tolerates apostrophe/hyphen/space variants."""
    folded = strip_accents(normalize_quotes(name)).lower()
    runs = re.findall(r"[a-z]+", folded)
    return _SEP.join(re.escape(r) for r in runs)


def _bounded(body: str) -> str:
    return _LEFT + body + _RIGHT


def build_patterns(first_name: str, last_name: str) -> List[Tuple[str, re.Pattern]]:
    """Ordered (pattern_type, regex) pairs, highest confidence first."""
    first = re.escape(normalize_name_token(first_name))
    last = re.escape(normalize_name_token(last_name))
    first_x = _flex_token(first_name)
    last_x = _flex_token(last_name)
    honorific = r"(?:" + "|".join(HONORIFICS) + r")\.?\s+"
    credential = r",?\s+(?:" + "|".join(re.escape(c) for c in CREDENTIALS) + r")" + _RIGHT
    between = r"(?:\s+[a-z][a-z'\-.]*){0,2}?"

    patterns = [(EXACT_ORDER, _bounded(rf"{first}\s+{last}"))]
    if has_special_characters(first_name) or has_special_characters(last_name):
        patterns.append((SPECIAL_CHARS, _bounded(rf"{first_x}\s+{last_x}")))
    patterns.extend(
        [
            (LAST_FIRST, _bounded(rf"{last_x}\s*,\s*{first_x}")),
            (MIDDLE_INITIAL, _bounded(rf"{first_x}\s+[a-z]\.?\s+{last_x}")),
            (MIDDLE_NAME, _bounded(rf"{first_x}\s+[a-z][a-z'\-]+\s+{last_x}")),
            (
                CREDENTIALED,
                _LEFT
                + rf"(?:{honorific}{first_x}{between}\s+{last_x}{_RIGHT}|{first_x}{between}\s+{last_x}{credential})",
            ),
            (REVERSED, _bounded(rf"{last_x}\s+{first_x}")),
        ]
    )
    return [(ptype, re.compile(p)) for ptype, p in patterns]


def _word_positions(text: str, token_regex: str) -> List[int]:
    return [m.start() for m in re.finditer(_bounded(token_regex), text)]


def _count_occurrences(text: str, token_regex: str) -> int:
    return len(_word_positions(text, token_regex))


def _followed_by_org_word(text: str, end: int) -> bool:
    return bool(_ORG_WORD_AFTER.match(text[end:]))


def _negative_context(text: str, start: int) -> Optional[str]:
    preceding = text[:start]
    if re.search(r"(?<![^\W_])ex-\s*$", preceding):
        return "ex-"
    words = re.findall(r"[a-z]+", preceding)
    if not words:
        return None
    if words[-1] in NEGATIVE_CONTEXT:
        return words[-1]
    if len(words) > 1 and words[-1] in NEGATIVE_CONTEXT_LINKS and words[-2] in NEGATIVE_CONTEXT:
        return f"{words[-2]} {words[-1]}"
    return None


def _false_positive_reason(
    text: str, match: re.Match, pattern_type: str, first_name: str, last_name: str, strict: bool
) -> Optional[str]:
    first_x = _flex_token(first_name)
    last_x = _flex_token(last_name)
    if _count_occurrences(text, first_x) > MAX_TOKEN_OCCURRENCES or _count_occurrences(text, last_x) > MAX_TOKEN_OCCURRENCES:
        return "name tokens repeat more than 3 times (directory or list page)"

    if pattern_type in (REVERSED, SPECIAL_CHARS):
        query_tokens = set(re.findall(r"[a-z]+", prepare_text(f"{first_name} {last_name}")))
        if not query_tokens & set(GENERATIONAL_SUFFIXES):
            if _SUFFIX_AFTER.match(text[match.end():]) or _SUFFIX_BEFORE.search(text[: match.start()]):
                return "generational suffix adjacent to match but not in queried name"

    negative = _negative_context(text, match.start())
    if negative:
        return f"negative context '{negative}' precedes the name"

    if strict and PATTERN_SCORES[pattern_type] < STRICT_MIN_PATTERN_SCORE:
        return f"{pattern_type} pattern is too weak for strict matching"
    return None


def _words_apart(text: str, a: int, b: int) -> int:
    lo, hi = sorted((a, b))
    return len(text[lo:hi].split())


def detect_contamination(text: str, first_name: str, last_name: str) -> NameMatch:
    """Classify text that has no structural match for the name."""
    first_x = _flex_token(first_name)
    last_x = _flex_token(last_name)
    first_pos = _word_positions(text, first_x) if first_x else []
    last_pos = _word_positions(text, last_x) if last_x else []

    if first_pos and last_pos:
        last_regex = re.compile(_bounded(last_x))
        for m in last_regex.finditer(text):
            if _followed_by_org_word(text, m.end()):
                return NameMatch(
                    valid=False,
                    score=20,
                    pattern_type=None,
                    contaminated=True,
                    reason=f"last name '{last_name}' is part of an organization name",
                )
        closest = min(_words_apart(text, f, l) for f in first_pos for l in last_pos)
        score = 30 if closest <= 3 else 25
        return NameMatch(
            valid=False,
            score=score,
            pattern_type=None,
            contaminated=True,
            reason="first and last name present but not in a recognized structure",
        )
    if first_pos or last_pos:
        which = "first" if first_pos else "last"
        return NameMatch(
            valid=False,
            score=10,
            pattern_type=None,
            partial=True,
            reason=f"only the {which} name was found",
        )
    return NameMatch(valid=False, score=0, pattern_type=None, reason="name not found")


def match_name(text: str, first_name: str, last_name: str, strict: bool = False) -> NameMatch:
    """
    Match a person's name against free text (a search result title + snippet).

    Args:
        text: Candidate text
        first_name: Given name from the person record
        last_name: Family name from the person record
        strict: Reject pattern types weaker than "First Middle Last"

    Returns:
        NameMatch; the first structural pattern that matches decides the score.
    """
    if not text or not normalize_name_token(first_name) or not normalize_name_token(last_name):
        return NameMatch(valid=False, score=0, pattern_type=None, reason="empty text or name")

    prepared = prepare_text(text)
    for pattern_type, regex in build_patterns(first_name, last_name):
        match = regex.search(prepared)
        if not match:
            continue
        score = PATTERN_SCORES[pattern_type]

        if _followed_by_org_word(prepared, match.end()):
            return NameMatch(
                valid=False,
                score=20,
                pattern_type=pattern_type,
                contaminated=True,
                reason="name is followed by an organization word",
            )

        reason = _false_positive_reason(prepared, match, pattern_type, first_name, last_name, strict)
        if reason:
            return NameMatch(
                valid=False,
                score=score / 2,
                pattern_type=pattern_type,
                false_positive=True,
                reason=reason,
            )
        return NameMatch(valid=True, score=score, pattern_type=pattern_type, reason=f"{pattern_type} match")

    return detect_contamination(prepared, first_name, last_name)
