"""
RUT (Rol Único Tributario) validation and formatting.

A RUT is a numeric body followed by a check digit (0-9 or K), usually
displayed as ``12.345.678-5``. Identifiers are stored in that display
form, so duplicate detection depends on `format_rut` being exact.
"""

import re

from app.modules.scholarship_applications.exceptions import ValidationError

MAX_BODY_DIGITS = 9

_BODY_PATTERN = re.compile(r"^[0-9]+$")
_CHECK_DIGIT_PATTERN = re.compile(r"^[0-9K]$")


def clean_rut(raw: str) -> str:
    """Remove separators and uppercase the check digit."""
    return raw.strip().replace(".", "").replace("-", "").upper()


def compute_check_digit(body: str) -> str:
    """
    Compute the modulo-11 check digit for a RUT body.

    Weights 2..7 are applied cyclically starting from the least
    significant digit.
    """
    total = 0
    weight = 2
    for digit in reversed(body):
        total += int(digit) * weight
        weight = 2 if weight == 7 else weight + 1

    remainder = 11 - (total % 11)
    if remainder == 11:
        return "0"
    if remainder == 10:
        return "K"
    return str(remainder)


def validate_rut(raw: str) -> str:
    """
    Validate a RUT and return it cleaned (no separators).

    Raises:
        ValidationError: If the RUT is malformed or the check digit is wrong.
    """
    rut = clean_rut(raw or "")
    if len(rut) < 2:
        raise ValidationError(f"RUT inválido: {raw!r}")

    body, check_digit = rut[:-1], rut[-1]
    if not _BODY_PATTERN.match(body) or len(body) > MAX_BODY_DIGITS:
        raise ValidationError(f"Formato de RUT inválido: {raw}")
    if not _CHECK_DIGIT_PATTERN.match(check_digit):
        raise ValidationError(f"Formato de RUT inválido: {raw}")

    if compute_check_digit(body) != check_digit:
        raise ValidationError(f"RUT inválido: {raw}")

    return rut


def format_rut(raw: str) -> str:
    """
    Format a RUT for display: ``12345678-5`` -> ``12.345.678-5``.

    Does not validate; values shorter than two characters are returned
    cleaned but otherwise untouched.
    """
    if not raw:
        return ""

    rut = clean_rut(raw)
    if len(rut) < 2:
        return rut

    body, check_digit = rut[:-1], rut[-1]
    groups = []
    end = len(body)
    while end > 0:
        groups.insert(0, body[max(0, end - 3) : end])
        end -= 3

    return f"{'.'.join(groups)}-{check_digit}"


def normalize_rut(raw: str) -> str:
    """Validate a RUT and return its canonical display form."""
    return format_rut(validate_rut(raw))
