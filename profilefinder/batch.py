"""
Batch resolution for spreadsheet-style inputs.

Rows go in as dicts of person fields; BatchRow tuples come out, one per
row, in input order. A failing row becomes an Error row and the batch
keeps going.
"""

import csv
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional

from .errors import InputError
from .logger import get_logger
from .models import ResolutionResult, Status
from .resolver import ProfileResolver
from .schema import person_from_dict

OUTPUT_FIELDS = ["profile_url", "confidence", "organization_match", "status", "alternatives", "review_reason"]


class BatchRow(NamedTuple):
    url: str
    confidence: int  # percent
    organization_match: int  # percent
    status: str
    alternatives: str
    review_reason: str = ""


def result_to_row(result: ResolutionResult) -> BatchRow:
    return BatchRow(
        url=result.url or "",
        confidence=result.confidence,
        organization_match=int(round(result.organization_score)),
        status=result.status.value,
        alternatives=", ".join(result.alternative_urls),
        review_reason=result.review_reason or "",
    )


def error_row(message: str) -> BatchRow:
    return BatchRow(url="", confidence=0, organization_match=0, status=Status.ERROR.value, alternatives="",
                    review_reason=message)


def process_batch(
    rows: Iterable[Dict[str, Any]],
    resolver: ProfileResolver,
    delay: float = 3.0,
    limit: Optional[int] = 100,
    sleep: Callable[[float], None] = time.sleep,
) -> List[BatchRow]:
    """
    Resolve rows one at a time.

    Args:
        rows: Person records (spreadsheet headings are accepted)
        resolver: Configured ProfileResolver
        delay: Seconds to wait between records that hit the search API
        limit: Maximum number of rows to process (None for all)
        sleep: Sleep function (patched in tests)

    Returns:
        One BatchRow per processed input row.
    """
    logger = get_logger()
    out: List[BatchRow] = []
    for index, data in enumerate(rows):
        if limit is not None and index >= limit:
            logger.warning("Batch size cap reached, remaining rows skipped", limit=limit)
            break
        if index > 0 and delay > 0 and resolver.search_calls:
            sleep(delay)
        resolver.search_calls = 0
        try:
            person = person_from_dict(data)
            result = resolver.resolve(person)
        except InputError as e:
            logger.warning("Invalid person record", row=index + 1, errors=e.errors)
            resolver.logger.record_resolution(Status.ERROR.value)
            out.append(error_row(str(e)))
            continue
        except Exception as e:
            logger.error("Row failed", row=index + 1, error_type=type(e).__name__, error=str(e))
            resolver.logger.record_resolution(Status.ERROR.value)
            out.append(error_row(f"{type(e).__name__}: {e}"))
            continue
        out.append(result_to_row(result))
    return out


def read_csv_rows(path: Path) -> List[Dict[str, Any]]:
    with Path(path).open("r", encoding="utf-8-sig", newline="") as f:
        return [dict(row) for row in csv.DictReader(f)]


def write_csv_rows(path: Path, inputs: List[Dict[str, Any]], rows: List[BatchRow]) -> None:
    """Write the input columns followed by the resolution columns."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    input_fields: List[str] = []
    for data in inputs:
        for k in data:
            if k not in input_fields:
                input_fields.append(k)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(input_fields + OUTPUT_FIELDS)
        for data, row in zip(inputs, rows):
            writer.writerow([data.get(k, "") for k in input_fields] + list(row))
