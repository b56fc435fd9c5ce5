from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .fields import CONFLICT_FIELDS, FILLABLE_FIELDS
from .models import (
    CONTACT_FIELDS,
    FieldDecision,
    ParsedContact,
    SameNameDecision,
    SameNameGroup,
)
from .normalization import normalize_name, safe_get

logger = logging.getLogger(__name__)

NOTES_MERGE_SEPARATOR = "\n\n---\n\n"
SINGLE_VALUE_FIELDS = (
    "title",
    "company",
    "linkedin_url",
    "website_url",
    "street_address",
    "city",
    "state",
    "zip_code",
    "country",
)
_COMPLETENESS_FIELDS = tuple(
    name for name in CONTACT_FIELDS if name not in ("first_name", "last_name")
)


@dataclass
class SameNamePlan:
    to_create: List[ParsedContact] = field(default_factory=list)
    merge_groups: "OrderedDict[str, List[ParsedContact]]" = field(default_factory=OrderedDict)
    skipped: int = 0


def _as_record(contact: Any) -> Dict[str, str]:
    return {name: safe_get(contact, name) for name in ("id",) + CONTACT_FIELDS}


def _completeness(record: Mapping[str, str]) -> int:
    return sum(1 for name in _COMPLETENESS_FIELDS if record.get(name))


def _collect(records: Iterable[Mapping[str, str]], names: Sequence[str], lower: bool) -> List[str]:
    values: List[str] = []
    for record in records:
        for name in names:
            value = record.get(name, "")
            if lower:
                value = value.lower()
            if value and value not in values:
                values.append(value)
    return values


def contact_name_key(contact: Any) -> str:
    return normalize_name(safe_get(contact, "first_name"), safe_get(contact, "last_name"))


def group_same_name(
    new_contacts: Sequence[Any], existing_contacts: Sequence[Any] = ()
) -> List[SameNameGroup]:
    """
    Group contacts sharing a normalized name.

    Only groups that contain at least one new contact and two or more members
    overall are returned, in order of first appearance.
    """
    groups: "OrderedDict[str, SameNameGroup]" = OrderedDict()
    for contact in existing_contacts:
        key = contact_name_key(contact)
        if key:
            groups.setdefault(key, SameNameGroup(normalized_name=key)).existing_contacts.append(
                contact
            )
    for contact in new_contacts:
        key = contact_name_key(contact)
        if key:
            groups.setdefault(key, SameNameGroup(normalized_name=key)).new_contacts.append(contact)

    return [
        group
        for group in groups.values()
        if group.new_contacts and len(group.new_contacts) + len(group.existing_contacts) > 1
    ]


def merge_contact_data(contacts: Sequence[Any]) -> Dict[str, Optional[str]]:
    """
    Merge records that share a name into one.

    Stored records (those with an ``id``) come first, then the most complete
    record; the first of that order supplies the name and ``id``. Emails and
    phones are pooled with the first two kept, single-value fields take the
    first non-empty value and notes are concatenated.
    """
    if not contacts:
        raise ValueError("Cannot merge an empty contact list")

    records = [_as_record(contact) for contact in contacts]
    ordered = sorted(records, key=lambda record: (0 if record["id"] else 1, -_completeness(record)))
    base = ordered[0]

    merged: Dict[str, Optional[str]] = {name: base[name] or None for name in CONTACT_FIELDS}
    merged["id"] = base["id"] or None

    emails = _collect(records, ("primary_email", "secondary_email"), lower=True)
    phones = _collect(records, ("primary_phone", "secondary_phone"), lower=False)
    merged["primary_email"] = emails[0] if emails else None
    merged["secondary_email"] = emails[1] if len(emails) > 1 else None
    merged["primary_phone"] = phones[0] if phones else None
    merged["secondary_phone"] = phones[1] if len(phones) > 1 else None

    for name in SINGLE_VALUE_FIELDS:
        merged[name] = next((record[name] for record in records if record[name]), None)

    notes = [record["notes"] for record in records if record["notes"]]
    merged["notes"] = NOTES_MERGE_SEPARATOR.join(notes) or None
    return merged


def plan_duplicate_update(
    existing: Any,
    incoming: Any,
    field_decisions: Optional[Mapping[str, Any]] = None,
    source_label: str = "vCard",
) -> Dict[str, Optional[str]]:
    """Return the field updates for a stored contact from a reviewed incoming match."""
    decisions = {
        name: FieldDecision(choice) for name, choice in (field_decisions or {}).items()
    }
    update: Dict[str, Optional[str]] = {}
    for name in CONFLICT_FIELDS:
        if decisions.get(name) is FieldDecision.USE_NEW:
            update[name] = safe_get(incoming, name) or None

    for name in FILLABLE_FIELDS:
        incoming_value = safe_get(incoming, name)
        if incoming_value and not safe_get(existing, name):
            update[name] = incoming_value

    incoming_notes = safe_get(incoming, "notes")
    if incoming_notes:
        existing_notes = safe_get(existing, "notes")
        separator = f"\n\n[Imported from {source_label}]\n" if existing_notes else ""
        update["notes"] = f"{existing_notes}{separator}{incoming_notes}"
    return update


def apply_same_name_decisions(
    new_contacts: Sequence[ParsedContact], decisions: Mapping[str, Any]
) -> SameNamePlan:
    resolved = {name: SameNameDecision(choice) for name, choice in decisions.items()}
    plan = SameNamePlan()
    for contact in new_contacts:
        decision = resolved.get(contact_name_key(contact))
        if decision is SameNameDecision.SKIP_NEW:
            plan.skipped += 1
        elif decision is SameNameDecision.MERGE:
            plan.merge_groups.setdefault(contact_name_key(contact), []).append(contact)
        else:
            plan.to_create.append(contact)

    logger.info(
        "Same-name decisions: %d to create, %d merge group(s), %d skipped",
        len(plan.to_create),
        len(plan.merge_groups),
        plan.skipped,
    )
    return plan
