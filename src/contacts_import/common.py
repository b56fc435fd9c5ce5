from __future__ import annotations

import uuid
from typing import Any

from .config_loader import ImportConfig, load_import_config
from .conflicts import analyze_duplicates, auto_merge_fields, detect_conflicts
from .csv_analysis import analyze_csv, detect_field_mapping
from .csv_rows import build_contact_from_row, build_contacts, has_required_fields
from .merge import (
    apply_same_name_decisions,
    group_same_name,
    merge_contact_data,
    plan_duplicate_update,
)
from .models import ParsedContact, SkippedEntry, SkipReason, VcfParseResult
from .normalization import (
    normalize_name,
    normalize_phone,
    read_csv_with_optional_header,
    safe_get,
    warn_missing,
)
from .vcard_parser import parse_vcf_file

__all__ = [
    "ImportConfig",
    "ParsedContact",
    "SkippedEntry",
    "SkipReason",
    "VcfParseResult",
    "analyze_csv",
    "analyze_duplicates",
    "apply_same_name_decisions",
    "auto_merge_fields",
    "build_contact_from_row",
    "build_contacts",
    "detect_conflicts",
    "detect_field_mapping",
    "group_same_name",
    "has_required_fields",
    "load_import_config",
    "merge_contact_data",
    "new_temp_id",
    "normalize_name",
    "normalize_phone",
    "parse_vcf_file",
    "plan_duplicate_update",
    "read_csv_with_optional_header",
    "safe_get",
    "warn_missing",
]


def new_temp_id() -> str:
    return str(uuid.uuid4())


def load_config(args: Any) -> ImportConfig:
    return load_import_config(args)

