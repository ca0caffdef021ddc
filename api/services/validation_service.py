"""Validation of incoming certificate requests.

Checks run in a fixed order and stop at the first failure so the requester
gets a single, field-specific error:

1. all five fields present and non-empty
2. all five fields are strings
3. name, email, GST number, business name, business address (in that order)

Email and GST number are matched against the raw value (before trimming);
the remaining fields are length-checked after trimming.
"""

import re
from collections.abc import Mapping
from typing import Any

from schemas import CertificateRequest

REQUIRED_FIELDS: tuple[str, ...] = (
    "name",
    "email",
    "gstNumber",
    "businessName",
    "businessAddress",
)

EMAIL_MAX_LENGTH = 254

_EMAIL_RE = re.compile(
    r"[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*"
)

# GSTIN: state code, PAN (5 letters, 4 digits, 1 letter), entity number,
# literal "Z", check character.
_GST_RE = re.compile(r"[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]")


class CertificateValidationError(ValueError):
    """Raised when a certificate request fails validation.

    ``error`` is the short summary, ``message`` the human-readable hint and
    ``required`` the list of expected fields (missing-field errors only).
    """

    def __init__(
        self,
        error: str,
        message: str | None = None,
        required: list[str] | None = None,
    ):
        self.error = error
        self.message = message
        self.required = required
        super().__init__(message or error)


def _is_blank(value: Any) -> bool:
    """True for null, empty strings, false, zero and NaN.

    Containers are never blank so that ``[]`` or ``{}`` fall through to the
    string type check.
    """
    if value is None or isinstance(value, str):
        return not value
    if isinstance(value, (bool, int, float)):
        return not value or value != value
    return False


def _length_between(value: str, low: int, high: int) -> bool:
    return low <= len(value.strip()) <= high


def validate_name(name: str) -> bool:
    return _length_between(name, 2, 100)


def validate_email(email: str) -> bool:
    return bool(_EMAIL_RE.fullmatch(email)) and len(email) <= EMAIL_MAX_LENGTH


def validate_gst_number(gst_number: str) -> bool:
    return bool(_GST_RE.fullmatch(gst_number))


def validate_business_name(business_name: str) -> bool:
    return _length_between(business_name, 2, 200)


def validate_address(address: str) -> bool:
    return _length_between(address, 10, 500)


# (wire field, predicate, error, message) in evaluation order
_FIELD_RULES = (
    (
        "name",
        validate_name,
        "Invalid name",
        "Name must be between 2 and 100 characters",
    ),
    (
        "email",
        validate_email,
        "Invalid email format",
        "Please provide a valid email address",
    ),
    (
        "gstNumber",
        validate_gst_number,
        "Invalid GST number format",
        "GST number must be in format: 22AAAAA0000A1Z5 (e.g., 29ABCDE1234F1Z5)",
    ),
    (
        "businessName",
        validate_business_name,
        "Invalid business name",
        "Business name must be between 2 and 200 characters",
    ),
    (
        "businessAddress",
        validate_address,
        "Invalid business address",
        "Business address must be between 10 and 500 characters",
    ),
)


def validate_certificate_request(payload: Any) -> CertificateRequest:
    """Validate a raw JSON payload and return the normalised request.

    A payload that is not a JSON object is treated as having no fields.

    Raises:
        CertificateValidationError: On the first failing check.
    """
    fields: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}

    if any(_is_blank(fields.get(name)) for name in REQUIRED_FIELDS):
        raise CertificateValidationError(
            "Missing required fields", required=list(REQUIRED_FIELDS)
        )

    if not all(isinstance(fields[name], str) for name in REQUIRED_FIELDS):
        raise CertificateValidationError("All fields must be strings")

    for field, predicate, error, message in _FIELD_RULES:
        if not predicate(fields[field]):
            raise CertificateValidationError(error, message)

    return CertificateRequest(
        name=fields["name"].strip(),
        email=fields["email"].strip().lower(),
        gst_number=fields["gstNumber"].strip().upper(),
        business_name=fields["businessName"].strip(),
        business_address=fields["businessAddress"].strip(),
    )
