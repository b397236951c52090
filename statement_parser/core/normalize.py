"""
Data normalization and cleaning functions.
"""
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, List
import logging

logger = logging.getLogger(__name__)

# Longest tokens first so "YYYY" is not read as two "YY".
DATE_FORMAT_TOKENS = [
    ("YYYY", "%Y"),
    ("Month", "%B"),
    ("Mon", "%b"),
    ("MMM", "%b"),
    ("YY", "%y"),
    ("MM", "%m"),
    ("DD", "%d"),
]

CURRENCY_SYMBOLS = "₹$€£¥₩₱฿"


def to_strptime_format(date_format: str) -> str:
    """
    Convert a template date format ("DD-MM-YYYY", "DD-Mon-YYYY") to strptime.

    Formats already written with ``%`` directives are returned unchanged.
    """
    if "%" in date_format:
        return date_format

    pattern = re.compile("|".join(re.escape(token) for token, _ in DATE_FORMAT_TOKENS))
    lookup = dict(DATE_FORMAT_TOKENS)
    return pattern.sub(lambda m: lookup[m.group(0)], date_format)


def normalize_date(value: str, date_format: str) -> Optional[str]:
    """
    Parse a date string with the template's format and return ISO form.

    Args:
        value: Raw date string
        date_format: Template date format (e.g., "DD-MM-YYYY")

    Returns:
        "YYYY-MM-DD" or None if the calendar date is invalid
    """
    if not value or not value.strip():
        return None

    try:
        parsed = datetime.strptime(value.strip(), to_strptime_format(date_format))
    except ValueError:
        logger.warning(f"Could not parse date: {value}")
        return None

    return parsed.date().isoformat()


def extract_date(text: str, date_pattern: str, date_format: str) -> Optional[str]:
    """
    Match the template's date pattern in text and normalize the match.

    A match that is not a real calendar date yields None.
    """
    if not text:
        return None

    match = re.search(date_pattern, text.strip())
    if not match:
        return None

    raw = match.group(1) if match.groups() else match.group(0)
    return normalize_date(raw, date_format)


def normalize_money(value: str, clean_pattern: Optional[str] = None) -> Decimal:
    """
    Normalize an amount to a non-negative magnitude.

    Args:
        value: Raw money string
        clean_pattern: Optional regex of characters to strip

    Returns:
        Decimal magnitude, 0 when nothing numeric is found
    """
    if not value or not value.strip():
        return Decimal('0')

    cleaned = re.sub(rf'[{CURRENCY_SYMBOLS},\s]', '', value.strip())
    if clean_pattern:
        cleaned = re.sub(clean_pattern, '', cleaned)

    match = re.search(r'\d+(?:\.\d+)?|\.\d+', cleaned)
    if not match:
        return Decimal('0')

    try:
        return abs(Decimal(match.group()))
    except InvalidOperation:
        logger.warning(f"Could not extract numeric value from: {value}")
        return Decimal('0')


def normalize_text(value: str) -> str:
    """
    Normalize text by trimming and cleaning.

    Args:
        value: Raw text string

    Returns:
        Cleaned text string
    """
    if not value:
        return ""

    return re.sub(r'\s+', ' ', value.strip())


def marker_type(text: str, credit: List[str], debit: List[str]) -> Optional[str]:
    """Read an explicit credit/debit marker from a type column."""
    if not text:
        return None

    tokens = {t.upper() for t in re.split(r'[\s/.]+', text.strip()) if t}
    if tokens & {m.upper() for m in credit}:
        return "income"
    if tokens & {m.upper() for m in debit}:
        return "expense"
    return None


def suffix_type(description: str, credit: List[str], debit: List[str]) -> Optional[str]:
    """Infer the type from a marker trailing the description text."""
    if not description:
        return None

    last = description.strip().split()[-1].upper()
    if last in {m.upper() for m in credit}:
        return "income"
    if last in {m.upper() for m in debit}:
        return "expense"
    return None


def strip_suffix_marker(description: str, credit: List[str], debit: List[str]) -> str:
    """Remove a trailing credit/debit marker from description text."""
    words = description.strip().split()
    markers = {m.upper() for m in credit + debit}
    if len(words) > 1 and words[-1].upper() in markers:
        words = words[:-1]
    return " ".join(words)


def signed_amount(amount: Decimal, txn_type: Optional[str]) -> Decimal:
    """Apply the sign implied by a transaction type."""
    if txn_type == "expense":
        return -abs(amount)
    if txn_type == "income":
        return abs(amount)
    return amount
