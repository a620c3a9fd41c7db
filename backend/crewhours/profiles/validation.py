"""Input sanitizing and format rules for profile billing fields."""

import re

MAX_NAME_LENGTH = 200
MAX_IBAN_LENGTH = 50
MAX_CONTRACT_LENGTH = 50
MAX_NOTE_LENGTH = 1000
MAX_ADDRESS_LENGTH = 500

_SCRIPT_TAG = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"\bon\w+\s*=", re.IGNORECASE)
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)

IBAN_PATTERN = re.compile(r"^[A-Z]{2}[0-9A-Z\s]*$")
SWIFT_PATTERN = re.compile(r"^[A-Z0-9]*$")
VAT_NUMBER_PATTERN = re.compile(r"^[A-Z]{2}[0-9]+$")
DIGITS_PATTERN = re.compile(r"^[0-9]*$")


def sanitize_text(value: str) -> str:
    """Trim and strip script tags, inline event handlers and javascript: URLs."""
    value = value.strip()
    value = _SCRIPT_TAG.sub("", value)
    value = _EVENT_HANDLER.sub("", value)
    value = _JS_PROTOCOL.sub("", value)
    return value


def normalize_iban(value: str) -> str:
    value = value.strip()
    if value and not IBAN_PATTERN.match(value):
        raise ValueError("Invalid IBAN format")
    return re.sub(r"\s", "", value).upper()


def normalize_swift(value: str) -> str:
    value = value.strip().upper()
    if len(value) > 11:
        raise ValueError("SWIFT/BIC can have at most 11 characters")
    if not SWIFT_PATTERN.match(value):
        raise ValueError("Invalid SWIFT/BIC format")
    return value


def normalize_vat_number(value: str) -> str:
    value = value.strip().upper()
    if value and not VAT_NUMBER_PATTERN.match(value):
        raise ValueError("Invalid VAT number format")
    return value


def require_digits(value: str, label: str) -> str:
    value = value.strip()
    if not DIGITS_PATTERN.match(value):
        raise ValueError(f"{label} may only contain digits")
    return value


def reject_nulls(model, fields: tuple[str, ...]) -> None:
    """Partial updates may omit a required column but never set it to null."""
    nulls = [name for name in fields if name in model.model_fields_set and getattr(model, name) is None]
    if nulls:
        raise ValueError(f"{', '.join(nulls)} cannot be null")
