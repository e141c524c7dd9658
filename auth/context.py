"""
Authentication context of one Telegram user.

Lifecycle: created per update, hydrate() loads token and user from storage,
login() persists them, logout() (or a 401 from the API) clears them.
"""

import json
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from api.services import AuthService
from models.user import LoginRequest, Role, SessionUser
from utils.constants import REPORT_RANGE_KEY, TOKEN_KEY, USER_KEY
from utils.error_messages import describe_error
from utils.exceptions import ApiError, SessionExpiredError

from .storage import SessionStorage

logger = logging.getLogger(__name__)

_EMPTY_MARKERS = {"", "undefined", "null"}


@dataclass
class LoginResult:
    success: bool
    error: Optional[str] = None


class AuthContext:
    """Session state (current user and token) for one user."""

    def __init__(self, user_id: int, storage: SessionStorage):
        self.user_id = user_id
        self.storage = storage
        self.user: Optional[SessionUser] = None
        self.token: Optional[str] = None
        self.loading = True

    def hydrate(self) -> "AuthContext":
        """Load the persisted session, discarding corrupt data."""
        token = self.storage.get_item(self.user_id, TOKEN_KEY)
        self.token = None if token is None or token in _EMPTY_MARKERS else token

        raw_user = self.storage.get_item(self.user_id, USER_KEY)
        self.user = None
        try:
            if raw_user and raw_user not in _EMPTY_MARKERS:
                parsed = json.loads(raw_user)
                if isinstance(parsed, dict):
                    self.user = SessionUser.model_validate(parsed)
        except ValueError as e:
            logger.error(f"Corrupt stored user for {self.user_id}, clearing session: {e}")
            self._clear_storage()
            self.token = None
            self.user = None
        finally:
            self.loading = False

        return self

    async def login(self, auth_service: AuthService, credentials: LoginRequest) -> LoginResult:
        """Authenticate against the API and persist the session."""
        try:
            response = await auth_service.login(credentials)
        except (ApiError, SessionExpiredError) as e:
            logger.info(f"Login failed for {credentials.username}: {e}")
            message = describe_error(e) if isinstance(e, ApiError) and e.payload else None
            return LoginResult(
                success=False,
                error=message or "Error al iniciar sesión. Verifica tus credenciales.",
            )

        user = response.to_session_user()
        self.token = response.token
        self.user = user
        self.storage.set_item(self.user_id, TOKEN_KEY, response.token)
        self.storage.set_item(self.user_id, USER_KEY, json.dumps(user.to_payload()))
        logger.info(f"User {self.user_id} logged in as {user.username} ({user.rol})")
        return LoginResult(success=True)

    def logout(self) -> None:
        self.token = None
        self.user = None
        self._clear_storage()

    async def handle_unauthorized(self) -> None:
        """Response hook target: any 401 tears the session down."""
        self.logout()

    def token_provider(self) -> Optional[str]:
        return self.token

    def is_authenticated(self) -> bool:
        return bool(self.token) and self.user is not None

    def has_role(self, role: Role | str) -> bool:
        if self.user is None:
            return False
        return self.user.rol == _role_value(role)

    def has_any_role(self, roles: Iterable[Role | str]) -> bool:
        if self.user is None:
            return False
        return self.user.rol in {_role_value(r) for r in roles}

    def _clear_storage(self) -> None:
        self.storage.remove_item(self.user_id, TOKEN_KEY)
        self.storage.remove_item(self.user_id, USER_KEY)
        self.storage.remove_item(self.user_id, REPORT_RANGE_KEY)


def _role_value(role: Role | str) -> str:
    return role.value if isinstance(role, Role) else role
