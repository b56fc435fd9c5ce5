from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .csv_analysis import analyze_csv
from .fields import REQUIRED_FIELDS, SKIP_FIELD
from .models import AnalysisResult, ColumnAnalysis
from .normalization import is_linkedin_url, safe_get

logger = logging.getLogger(__name__)

UnmappedColumn = Tuple[int, str]


@dataclass
class CsvBuildResult:
    analysis: AnalysisResult
    mapping: Dict[int, str]
    contacts: List[Dict[str, str]] = field(default_factory=list)
    # (row index, built contact) for rows that lack a first name
    missing_name: List[Tuple[int, Dict[str, str]]] = field(default_factory=list)


def _cell(row: Sequence[Optional[str]], index: int) -> str:
    if index < 0 or index >= len(row):
        return ""
    return (row[index] or "").strip()


def _append_note(contact: Dict[str, str], note: str, separator: str = "\n") -> None:
    existing = contact.get("notes")
    contact["notes"] = f"{existing}{separator}{note}" if existing else note


def _as_unmapped(columns: Iterable[Any]) -> List[UnmappedColumn]:
    pairs: List[UnmappedColumn] = []
    for column in columns:
        if isinstance(column, ColumnAnalysis):
            pairs.append((column.index, column.header))
        else:
            index, header = column
            pairs.append((int(index), str(header)))
    return pairs


def format_unmapped_for_notes(pairs: Iterable[Tuple[str, str]]) -> str:
    return " ".join(f"[{header}: {value}]" for header, value in pairs if value.strip())


def _place_url(contact: Dict[str, str], target: str, value: str, note_label: str) -> None:
    if not contact.get(target):
        contact[target] = value
    else:
        _append_note(contact, f"[{note_label}: {value}]")


def build_contact_from_row(
    row: Sequence[Optional[str]],
    mapping: Mapping[int, str],
    unmapped_columns: Iterable[Any] = (),
    include_unmapped: bool = True,
) -> Dict[str, str]:
    """
    Apply a column mapping to one CSV row.

    URLs are classified per value: a LinkedIn URL in a website column is
    stored as ``linkedin_url`` and a non-LinkedIn URL in a LinkedIn column as
    ``website_url``. When the redirected slot is already taken the value is
    kept as a note. With ``include_unmapped`` every non-empty unmapped cell is
    appended to notes as ``[Header: value]``.
    """
    contact: Dict[str, str] = {}
    for column_index, field_name in mapping.items():
        if not field_name or field_name == SKIP_FIELD:
            continue
        value = _cell(row, int(column_index))
        if not value:
            continue
        if field_name == "notes" and contact.get("notes"):
            _append_note(contact, value)
        elif field_name == "website_url" and is_linkedin_url(value):
            _place_url(contact, "linkedin_url", value, "Additional LinkedIn")
        elif field_name == "linkedin_url" and not is_linkedin_url(value):
            _place_url(contact, "website_url", value, "Additional website")
        else:
            contact[field_name] = value

    if include_unmapped:
        pairs = [(header, _cell(row, index)) for index, header in _as_unmapped(unmapped_columns)]
        formatted = format_unmapped_for_notes(pairs)
        if formatted:
            _append_note(contact, formatted, separator="\n\n")
    return contact


def has_required_fields(contact: Any) -> bool:
    return all(safe_get(contact, name) for name in REQUIRED_FIELDS)


def build_contacts(
    headers: Sequence[str],
    rows: Sequence[Sequence[Optional[str]]],
    analysis: Optional[AnalysisResult] = None,
    mapping: Optional[Mapping[int, str]] = None,
    include_unmapped: bool = True,
) -> CsvBuildResult:
    analysis = analysis or analyze_csv(headers, rows)
    resolved_mapping = dict(mapping) if mapping is not None else analysis.default_mapping()
    mapped_indices = set(resolved_mapping)
    unmapped = [
        column for column in analysis.unmapped_columns if column.index not in mapped_indices
    ]

    result = CsvBuildResult(analysis=analysis, mapping=resolved_mapping)
    for row_index, row in enumerate(rows):
        contact = build_contact_from_row(row, resolved_mapping, unmapped, include_unmapped)
        if has_required_fields(contact):
            result.contacts.append(contact)
        else:
            result.missing_name.append((row_index, contact))

    if result.missing_name:
        logger.info(
            "%d of %d CSV rows have no first name and will not be imported",
            len(result.missing_name),
            len(rows),
        )
    return result
