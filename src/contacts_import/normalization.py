from __future__ import annotations

import logging
import os
import re
from io import StringIO
from typing import Any, Optional

import pandas as pd
import phonenumbers
from phonenumbers import NumberParseException

logger = logging.getLogger(__name__)

HONORIFICS = frozenset(
    {"dr", "dr.", "mr", "mr.", "mrs", "mrs.", "ms", "ms.", "prof", "prof."}
)

TEL_URI_PREFIX = re.compile(r"^tel:", re.IGNORECASE)


def normalize_phone(raw: Optional[str], default_country: str = "US") -> Optional[str]:
    """
    Return the E.164 form of ``raw`` or ``None`` when it is not a valid number.

    Numbers without a leading ``+`` are read in ``default_country``.
    """
    s = (raw or "").strip()
    if len(s) < 3:
        return None
    try:
        parsed = phonenumbers.parse(s, default_country)
    except NumberParseException:
        logger.debug("phonenumbers.parse failed for %s", s)
        return None
    if not phonenumbers.is_valid_number(parsed):
        return None
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def format_phone_for_display(phone: Optional[str], default_country: str = "US") -> str:
    s = (phone or "").strip()
    if not s:
        return ""
    try:
        parsed = phonenumbers.parse(s, default_country)
    except NumberParseException:
        return s
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.NATIONAL)


def strip_tel_uri(value: str) -> str:
    return TEL_URI_PREFIX.sub("", (value or "").strip())


def is_linkedin_url(url: Optional[str]) -> bool:
    if not url:
        return False
    return "linkedin.com" in url.lower()


def normalize_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    joined = " ".join(part for part in (first_name, last_name) if part)
    tokens = joined.lower().strip().split()
    return " ".join(token for token in tokens if token not in HONORIFICS)


def clean_value(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def safe_get(record: Any, key: str) -> str:
    """Read ``key`` from a mapping, a pandas row or an attribute-style record."""
    if hasattr(record, "get"):
        try:
            return clean_value(record.get(key, ""))
        except (AttributeError, KeyError, TypeError):
            return ""
    return clean_value(getattr(record, key, ""))


def warn_missing(path: Optional[str], label: str) -> bool:
    if not path or not os.path.exists(path):
        logger.warning("%s path missing: %s", label, path)
        return True
    return False


def read_csv_with_optional_header(
    text: str, header_starts_with: Optional[str] = None
) -> pd.DataFrame:
    if not text.strip():
        return pd.DataFrame()
    if header_starts_with:
        lines = text.splitlines()
        for index, line in enumerate(lines[:100]):
            if line.strip().startswith(header_starts_with):
                text = "\n".join(lines[index:])
                break
    # Headers are read as data so repeated names keep their original text.
    raw = pd.read_csv(StringIO(text), header=None, dtype=str, keep_default_na=False).fillna("")
    if raw.empty:
        return pd.DataFrame()
    table = raw.iloc[1:].reset_index(drop=True)
    table.columns = [str(value) for value in raw.iloc[0]]
    return table
