"""
Validation of form input typed by users: registration, password changes and free text.
"""

import re
from typing import Optional

from utils.constants import MIN_PASSWORD_LENGTH
from utils.exceptions import FormValidationError

_EMAIL = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_PHONE = re.compile(r"^\+?\d{7,15}$")
_DOCUMENT = re.compile(r"^[A-Za-z0-9]{5,20}$")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]")


def validate_email(email: str) -> bool:
    """True if the address looks like user@domain.tld."""
    if not isinstance(email, str):
        return False
    return bool(_EMAIL.match(email))


def validate_phone(phone: str) -> bool:
    """
    Check a contact phone number.

    Spaces, dashes, dots and parentheses are ignored; an optional leading +
    is allowed, then 7 to 15 digits (local landlines up to E.164).
    """
    if not isinstance(phone, str):
        return False
    return bool(_PHONE.match(re.sub(r"[\s\-().]", "", phone)))


def validate_document(document: str) -> bool:
    """Identity document number: 5 to 20 letters or digits, dots removed."""
    if not isinstance(document, str):
        return False
    return bool(_DOCUMENT.match(document.replace(".", "").strip()))


def validate_new_password(password: str, confirmation: str) -> None:
    """
    Check a new password against its confirmation.

    Raises:
        FormValidationError: If they differ or the password is too short
    """
    if password != confirmation:
        raise FormValidationError("Las contraseñas no coinciden")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise FormValidationError(
            f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres"
        )


def sanitize_text(text: str, max_length: Optional[int] = None) -> str:
    """Strip control characters (newlines and tabs survive) and surrounding blanks, then truncate."""
    if not text:
        return ""

    cleaned = _CONTROL_CHARS.sub("", str(text)).strip()
    return cleaned[:max_length] if max_length else cleaned
