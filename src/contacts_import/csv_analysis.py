"""
Column analysis for CSV address-book exports.

Each column is classified by its header against an ordered rule table, given a
confidence label, and collisions between columns proposing the same field are
resolved by score. URL classification (LinkedIn vs. website) is per row and
lives in :mod:`contacts_import.csv_rows`.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from .fields import SKIP_FIELD
from .models import AnalysisResult, ColumnAnalysis, Confidence, FieldMatch

logger = logging.getLogger(__name__)

_DASH = r"[-\u2013]"


@dataclass(frozen=True)
class MappingRule:
    field: str
    patterns: Tuple[Pattern[str], ...]
    priority: int

    def matches(self, header: str) -> bool:
        return any(pattern.search(header) for pattern in self.patterns)


def _rule(field: str, priority: int, *patterns: str) -> MappingRule:
    return MappingRule(
        field=field,
        patterns=tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns),
        priority=priority,
    )


# Evaluated top to bottom; the first matching rule wins.
FIELD_MAPPING_RULES: Tuple[MappingRule, ...] = (
    _rule(
        "first_name",
        1,
        r"^first[\s_-]?name$",
        r"^given[\s_-]?name$",
        r"^first$",
    ),
    _rule(
        "last_name",
        1,
        r"^last[\s_-]?name$",
        r"^family[\s_-]?name$",
        r"^surname$",
        r"^last$",
    ),
    _rule(
        "primary_email",
        1,
        r"^e[\s_-]?mail$",
        rf"^e[\s_-]?mail\s*1\s*{_DASH}\s*value$",
        r"^e[\s_-]?mail\s*1$",
        r"^primary[\s_-]?email$",
    ),
    _rule(
        "secondary_email",
        2,
        rf"^e[\s_-]?mail\s*2\s*{_DASH}\s*value$",
        r"^e[\s_-]?mail\s*2$",
        rf"^e[\s_-]?mail\s*3\s*{_DASH}\s*value$",
        r"^secondary[\s_-]?email$",
        r"^other[\s_-]?email$",
    ),
    _rule(
        "primary_phone",
        1,
        r"^phone$",
        rf"^phone\s*1\s*{_DASH}\s*value$",
        r"^phone\s*1$",
        r"^mobile$",
        r"^cell$",
        r"^primary[\s_-]?phone$",
        r"^telephone$",
    ),
    _rule(
        "secondary_phone",
        2,
        rf"^phone\s*2\s*{_DASH}\s*value$",
        r"^phone\s*2$",
        rf"^phone\s*3\s*{_DASH}\s*value$",
        r"^work[\s_-]?phone$",
        r"^home[\s_-]?phone$",
        r"^secondary[\s_-]?phone$",
        r"^other[\s_-]?phone$",
    ),
    _rule(
        "company",
        1,
        r"^company$",
        r"^organization$",
        rf"^organization\s*1?\s*{_DASH}\s*name$",
        r"^employer$",
        r"^org$",
    ),
    _rule(
        "title",
        1,
        r"^title$",
        r"^job[\s_-]?title$",
        r"^position$",
        rf"^organization\s*1?\s*{_DASH}\s*title$",
        r"^role$",
    ),
    _rule(
        "street_address",
        1,
        r"^street[\s_-]?address$",
        rf"^address\s*1?\s*{_DASH}\s*street$",
        r"^street$",
        r"^address\s*line\s*1$",
    ),
    _rule(
        "city",
        1,
        r"^city$",
        rf"^address\s*1?\s*{_DASH}\s*city$",
    ),
    _rule(
        "state",
        1,
        r"^state$",
        r"^region$",
        r"^province$",
        rf"^address\s*1?\s*{_DASH}\s*region$",
    ),
    _rule(
        "zip_code",
        1,
        r"^zip[\s_-]?code$",
        r"^postal[\s_-]?code$",
        r"^zip$",
        r"^postcode$",
        rf"^address\s*1?\s*{_DASH}\s*postal[\s_-]?code$",
    ),
    _rule(
        "country",
        1,
        r"^country$",
        rf"^address\s*1?\s*{_DASH}\s*country$",
    ),
    _rule(
        "location",
        2,
        r"^location$",
        r"^address$",
        rf"^address\s*1?\s*{_DASH}\s*formatted$",
    ),
    _rule(
        "linkedin_url",
        1,
        r"linkedin",
        r"^profile[\s_-]?url$",
    ),
    _rule(
        "website_url",
        1,
        r"^website$",
        rf"^website\s*[1-9]\s*{_DASH}\s*value$",
        r"^portfolio$",
        r"^blog$",
        r"^personal[\s_-]?site$",
        r"^url$",
    ),
    _rule(
        "referred_by",
        1,
        rf"^relation\s*[1-9]?\s*{_DASH}\s*value$",
        r"^referred[\s_-]?by$",
        r"^referrer$",
        r"^introduced[\s_-]?by$",
        r"^connection$",
    ),
    _rule(
        "notes",
        1,
        r"^notes?$",
        r"^comments?$",
        r"^description$",
    ),
)

# Columns that are recognised but never imported (labels, photos, phonetics).
SKIP_COLUMN_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        rf"{_DASH}\s*label$",
        rf"{_DASH}\s*type$",
        r"^photo$",
        r"^group[\s_-]?membership$",
        r"yomi",
        r"phonetic",
    )
)

CONFIDENCE_BOOST = {Confidence.HIGH: 1000, Confidence.MEDIUM: 500, Confidence.LOW: 0}


def should_skip_column(header: str) -> bool:
    normalized = (header or "").strip()
    return any(pattern.search(normalized) for pattern in SKIP_COLUMN_PATTERNS)


def detect_field_mapping(header: str) -> Optional[FieldMatch]:
    normalized = (header or "").strip()
    if should_skip_column(normalized):
        return FieldMatch(field=SKIP_FIELD, priority=0)
    for rule in FIELD_MAPPING_RULES:
        if rule.matches(normalized):
            return FieldMatch(field=rule.field, priority=rule.priority)
    return None


def calculate_confidence(header: str, sample_value: Optional[str]) -> Confidence:
    match = detect_field_mapping(header)
    if match is None or match.field == SKIP_FIELD:
        return Confidence.LOW
    if match.priority == 1 and sample_value:
        return Confidence.HIGH
    if match.priority == 2 or not sample_value:
        return Confidence.MEDIUM
    return Confidence.LOW


def column_score(column: ColumnAnalysis) -> int:
    return column.data_count + CONFIDENCE_BOOST[column.confidence]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _cell(row: Sequence[Optional[str]], index: int) -> str:
    if index >= len(row):
        return ""
    return (row[index] or "").strip()


def analyze_column(
    index: int, header: str, rows: Sequence[Sequence[Optional[str]]]
) -> ColumnAnalysis:
    values = [_cell(row, index) for row in rows]
    non_empty = [value for value in values if value]
    sample_value = non_empty[0] if non_empty else ""
    match = detect_field_mapping(header)
    explicit_skip = match is not None and match.field == SKIP_FIELD
    return ColumnAnalysis(
        index=index,
        header=header,
        has_data=bool(non_empty),
        data_count=len(non_empty),
        population_percent=(
            _round_half_up(len(non_empty) / len(rows) * 100) if rows else 0
        ),
        sample_value=sample_value,
        suggested_field=None if match is None or explicit_skip else match.field,
        confidence=calculate_confidence(header, sample_value),
        explicit_skip=explicit_skip,
    )


def resolve_collisions(
    candidates: Sequence[ColumnAnalysis],
) -> Tuple[List[ColumnAnalysis], List[ColumnAnalysis]]:
    """
    Keep one column per suggested field.

    Columns are visited in order; a later column takes the field only with a
    strictly higher :func:`column_score`. Losers get ``lost_to`` set to the
    winning column's index and are returned as the second list.
    """
    holders: Dict[str, ColumnAnalysis] = {}
    mapped: List[ColumnAnalysis] = []
    demoted: List[ColumnAnalysis] = []
    for column in candidates:
        field = column.suggested_field
        if field is None:
            continue
        current = holders.get(field)
        if current is None:
            holders[field] = column
            mapped.append(column)
            continue
        if column_score(column) > column_score(current):
            mapped.remove(current)
            demoted.append(current)
            holders[field] = column
            mapped.append(column)
        else:
            demoted.append(column)

    for column in demoted:
        column.lost_to = holders[column.suggested_field].index  # type: ignore[index]
        logger.info(
            "Column %r lost %s to column %r",
            column.header,
            column.suggested_field,
            holders[column.suggested_field].header,  # type: ignore[index]
        )
    return mapped, demoted


def analyze_csv(
    headers: Sequence[str], rows: Sequence[Sequence[Optional[str]]]
) -> AnalysisResult:
    analysis = [analyze_column(index, header, rows) for index, header in enumerate(headers)]

    populated = [column for column in analysis if column.has_data]
    empty = [column.header for column in analysis if not column.has_data]
    never_mapped = [column for column in populated if column.suggested_field is None]
    mapped, demoted = resolve_collisions(
        [column for column in populated if column.suggested_field is not None]
    )

    logger.info(
        "Analyzed %d columns over %d rows: %d mapped, %d unmapped, %d empty",
        len(headers),
        len(rows),
        len(mapped),
        len(never_mapped) + len(demoted),
        len(empty),
    )
    return AnalysisResult(
        total_rows=len(rows),
        populated_columns=populated,
        empty_columns=empty,
        mapped_columns=mapped,
        unmapped_columns=never_mapped + demoted,
    )
