from __future__ import annotations

from typing import Dict, Tuple

SKIP_FIELD = "__skip__"

SYSTEM_FIELDS: Tuple[Tuple[str, str], ...] = (
    (SKIP_FIELD, "Skip this column"),
    ("first_name", "First Name *"),
    ("last_name", "Last Name"),
    ("primary_email", "Primary Email"),
    ("secondary_email", "Secondary Email"),
    ("primary_phone", "Primary Phone"),
    ("secondary_phone", "Secondary Phone"),
    ("title", "Title"),
    ("company", "Company"),
    ("linkedin_url", "LinkedIn URL"),
    ("website_url", "Website / Portfolio"),
    ("street_address", "Street Address"),
    ("city", "City"),
    ("state", "State / Region"),
    ("zip_code", "ZIP / Postal Code"),
    ("country", "Country"),
    ("location", "Location (General)"),
    ("referred_by", "Referred By"),
    ("how_we_met", "How We Met"),
    ("why_now", "Why Now"),
    ("expertise", "Expertise"),
    ("interests", "Interests"),
    ("notes", "Notes"),
)

REQUIRED_FIELDS = ("first_name",)

CANONICAL_FIELDS: Tuple[str, ...] = tuple(
    value for value, _ in SYSTEM_FIELDS if value != SKIP_FIELD
)

# Fields compared field-by-field when an incoming record matches a stored one.
CONFLICT_FIELDS: Tuple[str, ...] = (
    "first_name",
    "last_name",
    "title",
    "company",
    "primary_phone",
    "secondary_phone",
    "linkedin_url",
    "website_url",
    "street_address",
    "city",
    "state",
    "zip_code",
    "country",
)

PHONE_FIELDS = frozenset({"primary_phone", "secondary_phone"})

# Free text is concatenated on merge, never reported as a conflict.
AUTO_MERGE_FIELDS: Tuple[str, ...] = ("notes", "expertise", "interests")

FILLABLE_FIELDS: Tuple[str, ...] = (
    "secondary_email",
    "secondary_phone",
    "linkedin_url",
    "website_url",
)

_LABELS: Dict[str, str] = dict(SYSTEM_FIELDS)


def get_field_label(field_name: str) -> str:
    return _LABELS.get(field_name, field_name)


def is_canonical_field(field_name: str) -> bool:
    return field_name in _LABELS and field_name != SKIP_FIELD
