"""Telegram bot handlers and states."""

from .handlers import register_handlers
from .states import BookingStates, LoginStates, RegisterStates, ResetPasswordStates

__all__ = [
    "register_handlers",
    "BookingStates",
    "LoginStates",
    "RegisterStates",
    "ResetPasswordStates",
]
