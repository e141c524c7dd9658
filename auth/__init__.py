"""Session state and account management."""

from .context import AuthContext, LoginResult
from .storage import SessionStorage

__all__ = ["AuthContext", "LoginResult", "SessionStorage"]
