"""Account forms available before login: owner registration and password reset."""

import logging

from api.services import AuthService
from models.user import OwnerRegistration, PasswordReset
from utils.exceptions import FormValidationError
from utils.validation import validate_email, validate_new_password

logger = logging.getLogger(__name__)


async def register_owner(
    auth_service: AuthService, form: dict, confirmation: str
) -> None:
    """
    Validate the registration form and create the owner account.

    Raises:
        FormValidationError: If passwords differ, are too short or email is invalid
        ApiError: If the server rejects the registration
    """
    validate_new_password(form.get("password", ""), confirmation)
    if not validate_email(form.get("email", "")):
        raise FormValidationError("El correo electrónico no es válido")

    registration = OwnerRegistration.model_validate(form)
    await auth_service.register_owner(registration)
    logger.info(f"Registered owner account {registration.username}")


async def reset_password(
    auth_service: AuthService, username: str, new_password: str, confirmation: str
) -> None:
    """
    Validate and submit a password reset by username.

    Raises:
        FormValidationError: If passwords differ or are too short
        ApiError: If the server rejects the reset
    """
    if not username:
        raise FormValidationError("El usuario es obligatorio")
    validate_new_password(new_password, confirmation)

    await auth_service.reset_password(
        PasswordReset(username=username, nueva_password=new_password)
    )
    logger.info(f"Password reset for {username}")
