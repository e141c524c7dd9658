"""
Mapping of API failures to user-facing strings.
"""

import json
from typing import Any

from utils.exceptions import ApiError


def describe_error(error: Exception) -> str:
    """
    Turn an exception into a message suitable for inline display.

    Structured validation fields win over generic messages:
    validationErrors, errors, message, error, then the raw body.
    """
    payload: Any = error.payload if isinstance(error, ApiError) else None

    if not payload:
        return str(error) or "Error desconocido"

    if isinstance(payload, dict):
        validation_errors = payload.get("validationErrors")
        if isinstance(validation_errors, dict) and validation_errors:
            details = ", ".join(
                f"{field}: {message}" for field, message in validation_errors.items()
            )
            return f"Error de validación: {details}"

        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            return f"Error de validación: {', '.join(str(e) for e in errors)}"

        if payload.get("message"):
            return str(payload["message"])

        if payload.get("error"):
            return str(payload["error"])

        return json.dumps(payload, ensure_ascii=False)

    return str(payload)
