"""Phone number cleaning, candidate scanning and country-code inference."""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Set, Tuple

NOISE_KEYWORDS: Tuple[str, ...] = ("yrs", "age", "qualification", "score", "date", "interest", "course", "exp")

# Checked longest first so "+971" is not read as a generic three digit code.
_KNOWN_PREFIXES: Tuple[str, ...] = ("+971", "+91", "+44", "+1")
_GENERIC_PREFIX = re.compile(r"^\+(\d{1,3})")
_INDIAN_MOBILE = re.compile(r"[6-9]\d{9}")
# Timestamps such as 2024-05-01T10:30:00 or 01/05/2024 10:30 carry enough
# digits to pass for a phone number.
_DATE_LIKE = re.compile(r"^\d{1,4}[-/.]\d{1,2}[-/.]\d{1,4}(?:[T\s]|$)")
_TIME_LIKE = re.compile(r"\d{1,2}:\d{2}")
_CELL_SEPARATORS = re.compile(r"[,;/]+")

MIN_PHONE_DIGITS = 7
MIN_CANDIDATE_DIGITS = 10
MAX_CANDIDATE_DIGITS = 16


def digits_only(value: object) -> str:
    return "".join(char for char in str(value or "") if char.isdigit())


def clean_phone(value: object) -> str:
    """Keep the digits of ``value`` and a leading ``+`` when present."""

    text = str(value or "").strip()
    digits = digits_only(text)
    if not digits:
        return ""
    return f"+{digits}" if text.startswith("+") else digits


def looks_like_timestamp(value: object) -> bool:
    text = str(value or "").strip()
    return bool(_DATE_LIKE.match(text) or _TIME_LIKE.search(text))


def _all_phone_sized(parts: List[str], min_digits: int) -> bool:
    return len(parts) > 1 and all(len(digits_only(part)) >= min_digits for part in parts)


def split_phone_cell(value: object) -> List[str]:
    """Split a cell holding several numbers into cleaned phones.

    ``"9876543210 / 9123456789"`` yields both numbers while ``"98765 43210"``
    stays one number: a cell is only split when every part is phone sized.
    A number pasted twice is returned once.
    """

    text = str(value or "").strip()
    pieces = [piece for piece in _CELL_SEPARATORS.split(text) if digits_only(piece)]
    if not _all_phone_sized(pieces, MIN_PHONE_DIGITS):
        pieces = [text]

    phones: List[str] = []
    seen: Set[str] = set()
    for piece in pieces:
        words = piece.split()
        for part in words if _all_phone_sized(words, MIN_CANDIDATE_DIGITS) else [piece]:
            phone = clean_phone(part)
            digits = digits_only(phone)
            if not digits or digits in seen:
                continue
            seen.add(digits)
            phones.append(phone)
    return phones


def scan_phone_candidates(cells: Iterable[str]) -> List[str]:
    """Return phone-like cells of a row, deduplicated in row order.

    Date and time cells are ignored; cells holding several numbers
    contribute each of them.
    """

    candidates: List[str] = []
    seen: Set[str] = set()
    for cell in cells:
        text = str(cell or "").strip()
        if not text or looks_like_timestamp(text):
            continue
        lowered = text.lower()
        if any(keyword in lowered for keyword in NOISE_KEYWORDS):
            continue
        for phone in split_phone_cell(text):
            digits = digits_only(phone)
            if not MIN_CANDIDATE_DIGITS <= len(digits) <= MAX_CANDIDATE_DIGITS or digits in seen:
                continue
            seen.add(digits)
            candidates.append(phone)
    return candidates


def normalize_country_code(value: object) -> Optional[str]:
    digits = digits_only(value)
    if not 1 <= len(digits) <= 4:
        return None
    return f"+{digits}"


def country_code_for_country(country: Optional[str]) -> Optional[str]:
    name = (country or "").strip().lower()
    if not name:
        return None
    if name == "in" or "india" in name:
        return "+91"
    if "uae" in name or "emirates" in name:
        return "+971"
    return None


def infer_country_code(
    phone: object,
    *,
    explicit: Optional[str] = None,
    country: Optional[str] = None,
    default: Optional[str] = None,
) -> Tuple[Optional[str], str]:
    """Split ``phone`` into ``(country_code, local_digits)``.

    The calling code comes from, in order: a ``+`` prefix on the number
    itself, the ``explicit`` country code column, digit-pattern heuristics,
    the ``country`` name, and finally ``default``.
    """

    cleaned = clean_phone(phone)
    if cleaned.startswith("+"):
        for prefix in _KNOWN_PREFIXES:
            if cleaned.startswith(prefix):
                return prefix, cleaned[len(prefix):]
        match = _GENERIC_PREFIX.match(cleaned)
        if match:
            return f"+{match.group(1)}", cleaned[match.end():]
        return None, cleaned.lstrip("+")

    digits = cleaned
    explicit_code = normalize_country_code(explicit)
    if explicit_code:
        code_digits = explicit_code[1:]
        if len(digits) > 10 and digits.startswith(code_digits) and len(digits) - len(code_digits) >= MIN_PHONE_DIGITS:
            digits = digits[len(code_digits):]
        return explicit_code, digits

    if len(digits) == 12 and digits.startswith("91"):
        return "+91", digits[2:]
    if len(digits) == 11 and digits.startswith("0"):
        return "+91", digits[1:]
    if _INDIAN_MOBILE.fullmatch(digits):
        return "+91", digits

    from_country = country_code_for_country(country)
    if from_country:
        return from_country, digits
    if digits and default:
        return default, digits
    return None, digits


def phone_keys(value: object) -> Set[str]:
    """Digit strings under which a phone is recorded for duplicate checks.

    Both the full number and its local part are included, so
    ``+919876543210`` and ``9876543210`` share a key.
    """

    keys: Set[str] = set()
    digits = digits_only(value)
    if len(digits) >= MIN_PHONE_DIGITS:
        keys.add(digits)
    code, local = infer_country_code(value)
    if len(local) >= MIN_PHONE_DIGITS:
        keys.add(local)
        if code:
            keys.add(code[1:] + local)
    return keys


__all__ = [
    "NOISE_KEYWORDS",
    "clean_phone",
    "country_code_for_country",
    "digits_only",
    "infer_country_code",
    "looks_like_timestamp",
    "normalize_country_code",
    "phone_keys",
    "scan_phone_candidates",
    "split_phone_cell",
]
