from typing import Any, Dict, List

from .errors import InputError
from .models import PersonQuery

REQUIRED_STR_FIELDS = ["first_name", "last_name"]
OPTIONAL_STR_FIELDS = [
    "job_title",
    "organization",
    "region",
]

NAME_MIN_LENGTH = 1
NAME_MAX_LENGTH = 50

# Column headings used by spreadsheet exports
FIELD_ALIASES = {
    "first name": "first_name",
    "firstname": "first_name",
    "last name": "last_name",
    "lastname": "last_name",
    "title": "job_title",
    "job title": "job_title",
    "company": "organization",
    "employer": "organization",
    "location": "region",
    "state": "region",
}


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def canonical_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map spreadsheet-style headings onto PersonQuery field names."""
    out: Dict[str, Any] = {}
    for key, value in data.items():
        k = str(key).strip().lower()
        out[FIELD_ALIASES.get(k, k.replace(" ", "_"))] = value
    return out


def validate_person(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    """
    errors: List[str] = []

    for f in REQUIRED_STR_FIELDS:
        if f not in data or data[f] is None:
            errors.append(f"Missing required field: {f}")
        elif not _is_non_empty_str(data[f]):
            errors.append(f"Field '{f}' must be a non-empty string")
        elif not NAME_MIN_LENGTH <= len(data[f].strip()) <= NAME_MAX_LENGTH:
            errors.append(f"Field '{f}' length must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH}")

    for f in OPTIONAL_STR_FIELDS:
        if data.get(f) is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    return errors


def person_from_dict(data: Dict[str, Any]) -> PersonQuery:
    """Build a PersonQuery, raising InputError when required fields are missing."""
    fields = canonical_fields(data)
    errors = validate_person(fields)
    if errors:
        raise InputError(errors)

    def optional(name: str):
        value = fields.get(name)
        if isinstance(value, str):
            return value.strip() or None
        return None

    return PersonQuery(
        first_name=fields["first_name"].strip(),
        last_name=fields["last_name"].strip(),
        job_title=optional("job_title"),
        organization=optional("organization"),
        region=optional("region"),
    )


def ensure_valid(person: PersonQuery) -> PersonQuery:
    errors = validate_person(
        {
            "first_name": person.first_name,
            "last_name": person.last_name,
            "job_title": person.job_title,
            "organization": person.organization,
            "region": person.region,
        }
    )
    if errors:
        raise InputError(errors)
    return person
