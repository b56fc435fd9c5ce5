from __future__ import annotations

import logging
import re
import uuid
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Set, Tuple

import vobject
from vobject.base import Component, ContentLine, VObjectError

from .models import ParsedContact, SkippedEntry, SkipReason, VcfParseResult
from .normalization import is_linkedin_url, normalize_phone, strip_tel_uri

logger = logging.getLogger(__name__)

BOM = "\ufeff"
PREVIEW_LENGTH = 100
_CARD_BEGIN = re.compile(r"^[ \t]*BEGIN:VCARD", re.IGNORECASE | re.MULTILINE)
_CARD_END = re.compile(r"^[ \t]*END:VCARD[ \t]*\r?$", re.IGNORECASE | re.MULTILINE)

PHONE_TYPE_PRIORITY: Tuple[str, ...] = (
    "cell",
    "mobile",
    "iphone",
    "main",
    "work",
    "home",
    "voice",
    "other",
)

# Properties that every exporter writes; an entity with nothing else is empty.
_HEADER_PROPERTIES = {"version", "prodid"}

# Positions of the structured N and ADR components, keyed by vobject attribute.
_NAME_PARTS = {"family": 0, "given": 1}
_ADDRESS_PARTS = {
    "box": 0,
    "extended": 1,
    "street": 2,
    "city": 3,
    "region": 4,
    "code": 5,
    "country": 6,
}


class ChannelValues(NamedTuple):
    primary: Optional[str]
    secondary: Optional[str]
    overflow: List[str]


def _split_channels(values: Sequence[str]) -> ChannelValues:
    return ChannelValues(
        primary=values[0] if len(values) > 0 else None,
        secondary=values[1] if len(values) > 1 else None,
        overflow=list(values[2:]),
    )


def _lines(card: Component, name: str) -> List[ContentLine]:
    return list(card.contents.get(name, []))


def _text(line: ContentLine) -> str:
    value = line.value
    if isinstance(value, (list, tuple)):
        value = value[0] if value else ""
    if not isinstance(value, str):
        return ""
    return value.strip()


def _first_text(card: Component, name: str) -> str:
    for line in _lines(card, name):
        return _text(line)
    return ""


def _component(value: Any, attr: str, positions: Dict[str, int]) -> str:
    if isinstance(value, str):
        parts = value.split(";")
        position = positions[attr]
        part: Any = parts[position] if position < len(parts) else ""
    else:
        part = getattr(value, attr, "")
    if isinstance(part, (list, tuple)):
        part = part[0] if part else ""
    return str(part or "").strip()


def _param_tokens(line: ContentLine, name: str) -> List[str]:
    tokens: List[str] = []
    for raw in line.params.get(name, []):
        tokens.extend(token.strip().lower() for token in str(raw).split(",") if token.strip())
    return tokens


def _type_tokens(line: ContentLine) -> List[str]:
    tokens = _param_tokens(line, "TYPE")
    for param in getattr(line, "singletonparams", []) or []:
        token = str(param).strip().lower()
        if token:
            tokens.append(token)
    return tokens


def _preference(line: ContentLine) -> Optional[int]:
    for raw in line.params.get("PREF", []):
        try:
            return int(str(raw).strip())
        except ValueError:
            continue
    if "pref" in _type_tokens(line):
        return 1
    return None


def _phone_priority(line: ContentLine) -> int:
    priority = len(PHONE_TYPE_PRIORITY)
    for token in _type_tokens(line):
        if token in PHONE_TYPE_PRIORITY:
            priority = min(priority, PHONE_TYPE_PRIORITY.index(token))
    return priority


def extract_name(card: Component) -> Tuple[str, Optional[str]]:
    for line in _lines(card, "n"):
        family = _component(line.value, "family", _NAME_PARTS)
        given = _component(line.value, "given", _NAME_PARTS)
        if given or family:
            return given or family, (family or None) if given else None
        break

    formatted = _first_text(card, "fn")
    if formatted:
        first, _, rest = formatted.partition(" ")
        return first, rest.strip() or None
    return "", None


def extract_emails(card: Component) -> ChannelValues:
    def sort_key(line: ContentLine) -> Tuple[int, int]:
        pref = _preference(line)
        return (0, pref) if pref is not None else (1, 0)

    extracted: List[str] = []
    for line in sorted(_lines(card, "email"), key=sort_key):
        value = _text(line)
        if value and value not in extracted:
            extracted.append(value)
    return _split_channels(extracted)


def extract_phones(card: Component, default_country: str = "US") -> ChannelValues:
    candidates: List[Tuple[int, str]] = []
    for line in _lines(card, "tel"):
        value = strip_tel_uri(_text(line))
        if value:
            candidates.append((_phone_priority(line), value))
    candidates.sort(key=lambda candidate: candidate[0])

    unique: List[str] = []
    for _, value in candidates:
        normalized = normalize_phone(value, default_country) or value
        if normalized not in unique:
            unique.append(normalized)
    return _split_channels(unique)


def extract_address(card: Component) -> Dict[str, Optional[str]]:
    lines = _lines(card, "adr")
    if not lines:
        return {
            "street_address": None,
            "city": None,
            "state": None,
            "zip_code": None,
            "country": None,
        }
    value = lines[0].value
    street_parts = [
        _component(value, attr, _ADDRESS_PARTS) for attr in ("box", "extended", "street")
    ]
    street_parts = [part for part in street_parts if part]
    return {
        "street_address": ", ".join(street_parts) if street_parts else None,
        "city": _component(value, "city", _ADDRESS_PARTS) or None,
        "state": _component(value, "region", _ADDRESS_PARTS) or None,
        "zip_code": _component(value, "code", _ADDRESS_PARTS) or None,
        "country": _component(value, "country", _ADDRESS_PARTS) or None,
    }


def extract_urls(card: Component) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(linkedin_url, website_url)``; URLs past the first of each kind are not kept."""
    linkedin_url: Optional[str] = None
    website_url: Optional[str] = None
    for line in _lines(card, "url"):
        value = _text(line)
        if not value:
            continue
        if is_linkedin_url(value):
            linkedin_url = linkedin_url or value
        else:
            website_url = website_url or value
    return linkedin_url, website_url


def extract_company(card: Component) -> Optional[str]:
    return _first_text(card, "org") or None


def extract_title(card: Component) -> Optional[str]:
    return _first_text(card, "title") or None


def build_notes_with_overflow(
    card: Component, overflow_emails: Sequence[str], overflow_phones: Sequence[str]
) -> Optional[str]:
    parts: List[str] = []
    original_note = _first_text(card, "note")
    if original_note:
        parts.append(original_note)
    if overflow_emails:
        parts.append("\n".join(f"[Additional Email: {email}]" for email in overflow_emails))
    if overflow_phones:
        parts.append("\n".join(f"[Additional Phone: {phone}]" for phone in overflow_phones))
    return "\n\n".join(parts) if parts else None


def is_empty_entry(card: Component) -> bool:
    return not any(
        lines for name, lines in card.contents.items() if name.lower() not in _HEADER_PROPERTIES
    )


def vcard_preview(card: Component) -> str:
    formatted = _first_text(card, "fn")
    email = _first_text(card, "email")
    return f"{formatted} {email}".strip()[:PREVIEW_LENGTH]


def block_preview(block: str) -> str:
    """Preview taken from raw card text, for cards vobject could not read."""
    formatted = ""
    email = ""
    for raw_line in block.splitlines():
        name, sep, value = raw_line.partition(":")
        if not sep:
            continue
        key = name.split(";", 1)[0].split(".")[-1].strip().upper()
        if key == "FN" and not formatted:
            formatted = value.strip()
        elif key == "EMAIL" and not email:
            email = value.strip()
    return f"{formatted} {email}".strip()[:PREVIEW_LENGTH]


def split_card_blocks(text: str) -> List[str]:
    blocks: List[str] = []
    for chunk in _CARD_END.split(text):
        begin = _CARD_BEGIN.search(chunk)
        if begin:
            blocks.append(f"{chunk[begin.start():].strip()}\nEND:VCARD\n")
    return blocks


def _read_card(block: str) -> Component:
    card = vobject.readOne(block)
    if (card.name or "").upper() != "VCARD":
        raise VObjectError(f"Expected a VCARD component, found {card.name!r}")
    return card


def parse_vcf_file(content: str, default_country: str = "US") -> VcfParseResult:
    text = content[1:] if content.startswith(BOM) else content
    if not text.strip():
        return VcfParseResult()

    blocks = split_card_blocks(text)
    if not blocks:
        logger.warning("No BEGIN:VCARD entries found, returning no contacts")
        return VcfParseResult()

    contacts: List[ParsedContact] = []
    skipped: List[SkippedEntry] = []
    seen_emails: Set[str] = set()

    for index, block in enumerate(blocks):
        card: Optional[Component] = None
        try:
            card = _read_card(block)
            if is_empty_entry(card):
                skipped.append(SkippedEntry(index, SkipReason.EMPTY_ENTRY, vcard_preview(card)))
                continue

            first_name, last_name = extract_name(card)
            if not first_name and not last_name:
                skipped.append(SkippedEntry(index, SkipReason.NO_NAME, vcard_preview(card)))
                continue

            emails = extract_emails(card)
            email_key = emails.primary.lower() if emails.primary else None
            if email_key and email_key in seen_emails:
                skipped.append(
                    SkippedEntry(
                        index,
                        SkipReason.DUPLICATE_IN_FILE,
                        f"Duplicate email: {emails.primary}",
                    )
                )
                continue

            phones = extract_phones(card, default_country)
            address = extract_address(card)
            linkedin_url, website_url = extract_urls(card)
            contact = ParsedContact(
                temp_id=str(uuid.uuid4()),
                first_name=first_name,
                last_name=last_name,
                primary_email=emails.primary,
                secondary_email=emails.secondary,
                primary_phone=phones.primary,
                secondary_phone=phones.secondary,
                title=extract_title(card),
                company=extract_company(card),
                linkedin_url=linkedin_url,
                website_url=website_url,
                notes=build_notes_with_overflow(card, emails.overflow, phones.overflow),
                raw_vcard_index=index,
                **address,
            )
        except Exception as exc:  # recorded as PARSE_ERROR; the batch continues
            logger.info("vCard entry %d could not be processed: %s", index, exc)
            logger.debug("vCard entry %d traceback", index, exc_info=True)
            preview = vcard_preview(card) if card is not None else block_preview(block)
            skipped.append(SkippedEntry(index, SkipReason.PARSE_ERROR, preview))
            continue

        if email_key:
            seen_emails.add(email_key)
        contacts.append(contact)

    logger.info(
        "Parsed %d of %d vCard entries (%d skipped)", len(contacts), len(blocks), len(skipped)
    )
    return VcfParseResult(contacts=contacts, skipped=skipped, total_in_file=len(blocks))
