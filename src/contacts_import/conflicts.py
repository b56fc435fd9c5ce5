from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .fields import AUTO_MERGE_FIELDS, CONFLICT_FIELDS, PHONE_FIELDS
from .models import DuplicateAnalysis, FieldConflict
from .normalization import normalize_phone, safe_get

logger = logging.getLogger(__name__)


def _phones_differ(incoming: str, existing: str, default_country: str) -> bool:
    normalized_incoming = normalize_phone(incoming, default_country)
    normalized_existing = normalize_phone(existing, default_country)
    # Unparseable numbers on either side are left to the additive merge.
    if not normalized_incoming or not normalized_existing:
        return False
    return normalized_incoming != normalized_existing


def detect_conflicts(
    incoming: Any, existing: Any, default_country: str = "US"
) -> List[FieldConflict]:
    conflicts: List[FieldConflict] = []
    for field_name in CONFLICT_FIELDS:
        incoming_value = safe_get(incoming, field_name)
        existing_value = safe_get(existing, field_name)
        if not incoming_value or not existing_value:
            continue
        if field_name in PHONE_FIELDS:
            differs = _phones_differ(incoming_value, existing_value, default_country)
        else:
            differs = incoming_value != existing_value
        if differs:
            conflicts.append(
                FieldConflict(
                    field=field_name,
                    existing_value=existing_value,
                    incoming_value=incoming_value,
                )
            )
    return conflicts


def auto_merge_fields(incoming: Any) -> List[str]:
    return [field_name for field_name in AUTO_MERGE_FIELDS if safe_get(incoming, field_name)]


def _email_key(record: Any) -> str:
    return safe_get(record, "primary_email").lower()


def analyze_duplicates(
    contacts: Sequence[Any],
    existing_contacts: Sequence[Mapping[str, Any]],
    default_country: str = "US",
) -> Tuple[List[Any], List[DuplicateAnalysis]]:
    """Split a parsed batch into new contacts and matches on an existing primary email."""
    existing_by_email: Dict[str, Mapping[str, Any]] = {}
    for record in existing_contacts:
        key = _email_key(record)
        if key:
            existing_by_email.setdefault(key, record)

    new_contacts: List[Any] = []
    duplicates: List[DuplicateAnalysis] = []
    for contact in contacts:
        key = _email_key(contact)
        existing = existing_by_email.get(key) if key else None
        if existing is None:
            new_contacts.append(contact)
            continue
        duplicates.append(
            DuplicateAnalysis(
                incoming=contact,
                existing=existing,
                conflicts=detect_conflicts(contact, existing, default_country),
                auto_merge_fields=auto_merge_fields(contact),
            )
        )

    logger.info(
        "%d incoming contact(s) are new, %d match an existing contact by email",
        len(new_contacts),
        len(duplicates),
    )
    return new_contacts, duplicates
