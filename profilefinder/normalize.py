import re
import unicodedata
from typing import Iterable, List, Optional
from urllib.parse import urlparse


def strip_accents(s: str) -> str:
    decomposed = unicodedata.normalize("NFKD", s)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def normalize_quotes(s: str) -> str:
    """Fold typographic apostrophes and dashes into their ASCII forms."""
    return (
        s.replace("’", "'")
        .replace("‘", "'")
        .replace("`", "'")
        .replace("–", "-")
        .replace("—", "-")
    )


# Token-level abbreviations found in organization names
ORG_ABBREVIATIONS = {
    "med": "medical",
    "univ": "university",
    "u": "university",
    "ctr": "center",
    "cntr": "center",
    "hosp": "hospital",
    "inst": "institute",
    "intl": "international",
    "assoc": "association",
    "dept": "department",
    "natl": "national",
    "corp": "corporation",
    "hlth": "health",
    "sys": "system",
    "svcs": "services",
    "st": "saint",
    "mt": "mount",
    "ft": "fort",
    "co": "company",
    "&": "and",
}

# Stripped before token comparison, never before exact comparison
STOP_WORDS = frozenset(
    {
        "the",
        "of",
        "and",
        "at",
        "for",
        "a",
        "an",
        "inc",
        "llc",
        "ltd",
        "lp",
        "llp",
        "pc",
        "pllc",
        "plc",
        "corporation",
        "company",
        "group",
        "health",
        "center",
        "centre",
        "system",
        "systems",
        "services",
    }
)


def normalize_organization(name: Optional[str]) -> str:
    """Lower-case, drop punctuation, expand abbreviations, collapse whitespace."""
    if not name:
        return ""
    s = strip_accents(normalize_quotes(name)).lower()
    s = s.replace("&", " & ")
    s = re.sub(r"'", "", s)
    s = re.sub(r"[^\w&\s]", " ", s)
    tokens = [ORG_ABBREVIATIONS.get(t, t) for t in s.split()]
    return " ".join(tokens)


def significant_tokens(name: str, stop_words: Iterable[str] = STOP_WORDS) -> List[str]:
    """Tokens of an already-normalized organization name minus stop words."""
    stops = set(stop_words)
    return [t for t in name.split() if t not in stops]


def normalize_name_token(name: str) -> str:
    """Letters only, lower-cased and accent-free ("O'Neill" -> "oneill")."""
    folded = strip_accents(normalize_quotes(name)).lower()
    return re.sub(r"[^a-z]", "", folded)


def canonical_url(url: str) -> str:
    parsed = urlparse(url.strip())
    path = parsed.path.rstrip("/")
    # Drop query and fragment to avoid tracking parameters
    if parsed.scheme and parsed.netloc:
        return f"{parsed.scheme}://{parsed.netloc.lower()}{path}"
    return path


def cache_key(first_name: str, last_name: str, organization: Optional[str]) -> str:
    parts = [
        normalize_name_token(first_name),
        normalize_name_token(last_name),
        normalize_organization(organization),
    ]
    return "|".join(parts)
