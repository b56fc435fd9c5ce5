from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

# Canonical attributes carried by a ParsedContact, in output column order.
CONTACT_FIELDS: Tuple[str, ...] = (
    "first_name",
    "last_name",
    "primary_email",
    "secondary_email",
    "primary_phone",
    "secondary_phone",
    "title",
    "company",
    "linkedin_url",
    "website_url",
    "street_address",
    "city",
    "state",
    "zip_code",
    "country",
    "notes",
)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class SkipReason(str, Enum):
    NO_NAME = "NO_NAME"
    PARSE_ERROR = "PARSE_ERROR"
    EMPTY_ENTRY = "EMPTY_ENTRY"
    DUPLICATE_IN_FILE = "DUPLICATE_IN_FILE"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SameNameDecision(str, Enum):
    MERGE = "merge"
    KEEP_SEPARATE = "keep_separate"
    SKIP_NEW = "skip_new"


class FieldDecision(str, Enum):
    KEEP = "keep"
    USE_NEW = "use_new"


@dataclass(frozen=True)
class ParsedContact:
    temp_id: str
    first_name: str
    last_name: Optional[str] = None
    primary_email: Optional[str] = None
    secondary_email: Optional[str] = None
    primary_phone: Optional[str] = None
    secondary_phone: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    linkedin_url: Optional[str] = None
    website_url: Optional[str] = None
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    notes: Optional[str] = None
    raw_vcard_index: int = 0

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ParsedContact":
        values = {name: _optional_str(payload.get(name)) for name in CONTACT_FIELDS}
        values["first_name"] = values["first_name"] or ""
        return cls(
            temp_id=str(payload.get("temp_id", "") or ""),
            raw_vcard_index=int(payload.get("raw_vcard_index", 0) or 0),
            **values,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"temp_id": self.temp_id}
        for name in CONTACT_FIELDS:
            payload[name] = getattr(self, name)
        payload["raw_vcard_index"] = self.raw_vcard_index
        return payload


@dataclass(frozen=True)
class SkippedEntry:
    index: int
    reason: SkipReason
    raw_preview: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "reason": self.reason.value, "raw_preview": self.raw_preview}


@dataclass
class VcfParseResult:
    contacts: List[ParsedContact] = field(default_factory=list)
    skipped: List[SkippedEntry] = field(default_factory=list)
    total_in_file: int = 0


@dataclass(frozen=True)
class FieldMatch:
    field: str
    priority: int


@dataclass
class ColumnAnalysis:
    index: int
    header: str
    has_data: bool
    data_count: int
    population_percent: int
    sample_value: str
    suggested_field: Optional[str]
    confidence: Confidence
    explicit_skip: bool = False
    lost_to: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {f.name: getattr(self, f.name) for f in fields(self)}
        payload["confidence"] = self.confidence.value
        return payload


@dataclass
class AnalysisResult:
    total_rows: int
    populated_columns: List[ColumnAnalysis]
    empty_columns: List[str]
    mapped_columns: List[ColumnAnalysis]
    unmapped_columns: List[ColumnAnalysis]

    def default_mapping(self) -> Dict[int, str]:
        return {
            column.index: column.suggested_field
            for column in self.mapped_columns
            if column.suggested_field
        }


@dataclass(frozen=True)
class FieldConflict:
    field: str
    existing_value: str
    incoming_value: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "field": self.field,
            "existing_value": self.existing_value,
            "incoming_value": self.incoming_value,
        }


@dataclass
class DuplicateAnalysis:
    # a ParsedContact or a canonical record mapping
    incoming: Any
    existing: Mapping[str, Any]
    conflicts: List[FieldConflict] = field(default_factory=list)
    auto_merge_fields: List[str] = field(default_factory=list)


@dataclass
class SameNameGroup:
    normalized_name: str
    existing_contacts: List[Mapping[str, Any]] = field(default_factory=list)
    new_contacts: List[Any] = field(default_factory=list)
