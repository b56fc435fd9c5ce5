import argparse
import csv
import logging
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .common import load_config, new_temp_id
from .config_loader import ImportConfig
from .conflicts import analyze_duplicates
from .csv_rows import build_contacts
from .fields import CANONICAL_FIELDS, get_field_label
from .logging_utils import configure_logging
from .merge import group_same_name
from .models import CONTACT_FIELDS, SkippedEntry, SkipReason
from .normalization import read_csv_with_optional_header, safe_get, warn_missing
from .vcard_parser import PREVIEW_LENGTH, parse_vcf_file

logger = logging.getLogger(__name__)

CONTACT_COLUMNS = ["temp_id", *CONTACT_FIELDS, "raw_vcard_index"]
CSV_CONTACT_COLUMNS = ["temp_id", *CANONICAL_FIELDS, "row_index"]
SKIPPED_COLUMNS = ["index", "reason", "raw_preview"]
MAPPING_COLUMNS = [
    "index",
    "header",
    "has_data",
    "data_count",
    "population_percent",
    "sample_value",
    "suggested_field",
    "confidence",
    "explicit_skip",
    "lost_to",
    "suggested_label",
    "mapped",
]
CONFLICT_COLUMNS = [
    "temp_id",
    "primary_email",
    "field",
    "existing_value",
    "incoming_value",
    "auto_merge_fields",
]
SAME_NAME_COLUMNS = ["normalized_name", "existing_count", "new_count", "new_temp_ids"]


class ImportInputError(ValueError):
    """Input files that cannot be imported: missing, too large, or an ambiguous source."""


def _read_source_text(path: Optional[str], label: str, max_bytes: int) -> str:
    if warn_missing(path, label):
        raise ImportInputError(f"{label} file not found: {path}")
    size = os.path.getsize(path)  # type: ignore[arg-type]
    if size > max_bytes:
        raise ImportInputError(
            f"{label} file is {size} bytes, larger than the {max_bytes} byte limit"
        )
    with open(path, "r", encoding="utf-8", errors="replace") as handle:  # type: ignore[arg-type]
        return handle.read()


def _frame(rows: Sequence[Dict[str, Any]], columns: List[str]) -> pd.DataFrame:
    return pd.DataFrame(list(rows), columns=columns)


def _row_preview(contact: Dict[str, str]) -> str:
    text = " ".join(value for value in contact.values() if value)
    return text[:PREVIEW_LENGTH]


def build_vcf(text: str, config: ImportConfig) -> Tuple[List[Dict[str, Any]], pd.DataFrame]:
    result = parse_vcf_file(text, config.normalization.default_phone_country)
    skipped_df = _frame([entry.to_dict() for entry in result.skipped], SKIPPED_COLUMNS)
    return [contact.to_dict() for contact in result.contacts], skipped_df


def build_csv(
    text: str, config: ImportConfig
) -> Tuple[List[Dict[str, Any]], pd.DataFrame, pd.DataFrame]:
    try:
        table = read_csv_with_optional_header(text)
    except pd.errors.ParserError as exc:
        raise ImportInputError(f"CSV could not be tokenized: {exc}") from exc
    headers = [str(column) for column in table.columns]
    rows = table.values.tolist()

    built = build_contacts(
        headers, rows, include_unmapped=config.csv.include_unmapped_in_notes
    )
    missing_rows = {row_index for row_index, _ in built.missing_name}
    row_indices = [index for index in range(len(rows)) if index not in missing_rows]
    contacts = [
        {
            "temp_id": new_temp_id(),
            **{name: payload.get(name) for name in CANONICAL_FIELDS},
            "row_index": row_index,
        }
        for row_index, payload in zip(row_indices, built.contacts)
    ]
    skipped = [
        SkippedEntry(row_index, SkipReason.NO_NAME, _row_preview(contact)).to_dict()
        for row_index, contact in built.missing_name
    ]

    mapped_indices = {column.index for column in built.analysis.mapped_columns}
    mapping_rows = []
    for column in built.analysis.populated_columns:
        payload = column.to_dict()
        payload["suggested_label"] = get_field_label(column.suggested_field or "")
        payload["mapped"] = column.index in mapped_indices
        mapping_rows.append(payload)
    return contacts, _frame(mapping_rows, MAPPING_COLUMNS), _frame(skipped, SKIPPED_COLUMNS)


def _load_existing(path: Optional[str], max_bytes: int) -> List[Dict[str, Any]]:
    if not path:
        return []
    text = _read_source_text(path, "Existing contacts", max_bytes)
    try:
        table = read_csv_with_optional_header(text)
    except pd.errors.ParserError as exc:
        raise ImportInputError(f"Existing contacts CSV could not be tokenized: {exc}") from exc
    return table.to_dict("records")


def build(
    args: argparse.Namespace, config: Optional[ImportConfig] = None
) -> Dict[str, pd.DataFrame]:
    """Parse one import file and return the report frames keyed by output file name."""
    config = config or load_config(args)
    vcf_path = config.inputs.get("vcf")
    csv_path = config.inputs.get("csv")
    if bool(vcf_path) == bool(csv_path):
        raise ImportInputError("Provide exactly one of --vcf or --csv")

    max_bytes = config.limits.max_file_size_bytes
    outputs: Dict[str, pd.DataFrame] = {}
    if vcf_path:
        contacts, skipped_df = build_vcf(_read_source_text(vcf_path, "vCard", max_bytes), config)
        contact_columns = CONTACT_COLUMNS
    else:
        contacts, mapping_df, skipped_df = build_csv(
            _read_source_text(csv_path, "CSV", max_bytes), config
        )
        contact_columns = CSV_CONTACT_COLUMNS
        outputs["column_mapping.csv"] = mapping_df
    outputs["parsed_contacts.csv"] = _frame(contacts, contact_columns)
    outputs["skipped_entries.csv"] = skipped_df

    existing = _load_existing(config.inputs.get("existing_csv"), max_bytes)
    if existing:
        new_contacts, duplicates = analyze_duplicates(
            contacts, existing, config.normalization.default_phone_country
        )
        conflict_rows = [
            {
                "temp_id": safe_get(duplicate.incoming, "temp_id"),
                "primary_email": safe_get(duplicate.incoming, "primary_email"),
                "auto_merge_fields": "|".join(duplicate.auto_merge_fields),
                **conflict.to_dict(),
            }
            for duplicate in duplicates
            for conflict in duplicate.conflicts
        ]
        outputs["duplicate_conflicts.csv"] = _frame(conflict_rows, CONFLICT_COLUMNS)
    else:
        new_contacts = list(contacts)

    groups = group_same_name(new_contacts, existing)
    outputs["same_name_groups.csv"] = _frame(
        [
            {
                "normalized_name": group.normalized_name,
                "existing_count": len(group.existing_contacts),
                "new_count": len(group.new_contacts),
                "new_temp_ids": "|".join(
                    safe_get(contact, "temp_id") for contact in group.new_contacts
                ),
            }
            for group in groups
        ],
        SAME_NAME_COLUMNS,
    )
    return outputs


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Parse a vCard or CSV contact export and report what would be imported."
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config.")
    parser.add_argument("--vcf", type=str, default=None)
    parser.add_argument("--csv", type=str, default=None)
    parser.add_argument(
        "--existing-csv",
        type=str,
        default=None,
        help="Stored contacts (snake_case headers) to check for duplicates.",
    )
    parser.add_argument("--out-dir", type=str, default=None)
    parser.add_argument("--default-phone-country", type=str, default=None)
    parser.add_argument(
        "--include-unmapped",
        dest="include_unmapped",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Fold unmapped CSV columns into notes (default: on).",
    )
    parser.add_argument("--max-file-size", type=int, default=None, help="Maximum input bytes.")
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    args = parser.parse_args(argv)

    config = load_config(args)
    configure_logging(config, level_override=args.log_level)
    try:
        outputs = build(args, config=config)
    except ImportInputError as exc:
        logger.error("%s", exc)
        return 2

    out_dir = config.outputs.dir
    out_dir.mkdir(parents=True, exist_ok=True)
    for file_name, frame in outputs.items():
        path = out_dir / file_name
        frame.to_csv(str(path), index=False, encoding="utf-8", quoting=csv.QUOTE_ALL)
        logger.info("Saved: %s", path)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
