"""
Unit tests for session storage and the authentication context.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from auth import AuthContext
from models import LoginResponse, Role
from utils.constants import TOKEN_KEY, USER_KEY
from utils.exceptions import ApiError, NetworkError


class TestSessionStorage:
    def test_set_get_remove(self, session_storage):
        session_storage.set_item(1, TOKEN_KEY, "abc")
        assert session_storage.get_item(1, TOKEN_KEY) == "abc"
        assert session_storage.get_item(2, TOKEN_KEY) is None

        session_storage.remove_item(1, TOKEN_KEY)
        assert session_storage.get_item(1, TOKEN_KEY) is None
        assert session_storage.user_ids() == []

    def test_user_ids(self, session_storage):
        session_storage.set_item(20, TOKEN_KEY, "b")
        session_storage.set_item(10, TOKEN_KEY, "a")
        assert session_storage.user_ids() == [10, 20]

    def test_unreadable_file_is_empty(self, session_storage):
        (session_storage.directory / "5.json").write_text("{not json", encoding="utf-8")
        assert session_storage.get_item(5, TOKEN_KEY) is None


class TestHydrate:
    def test_valid_session(self, login_as):
        auth = login_as("VETERINARIO")

        assert auth.is_authenticated()
        assert auth.has_role(Role.VETERINARIO)
        assert auth.has_role("VETERINARIO")
        assert not auth.has_role(Role.ADMIN)
        assert auth.has_any_role([Role.ADMIN, Role.VETERINARIO])
        assert not auth.loading

    @pytest.mark.parametrize("marker", ["undefined", "null", ""])
    def test_placeholder_token_ignored(self, session_storage, marker):
        session_storage.set_item(1, TOKEN_KEY, marker)
        session_storage.set_item(1, USER_KEY, json.dumps({"username": "ana", "rol": "ADMIN"}))

        auth = AuthContext(1, session_storage).hydrate()

        assert auth.token is None
        assert not auth.is_authenticated()

    def test_corrupt_user_clears_session(self, session_storage):
        session_storage.set_item(1, TOKEN_KEY, "abc")
        session_storage.set_item(1, USER_KEY, "{broken")

        auth = AuthContext(1, session_storage).hydrate()

        assert auth.user is None
        assert auth.token is None
        assert session_storage.get_item(1, TOKEN_KEY) is None
        assert session_storage.get_item(1, USER_KEY) is None

    def test_no_session(self, session_storage):
        auth = AuthContext(1, session_storage).hydrate()
        assert not auth.is_authenticated()
        assert not auth.has_any_role(list(Role))


class TestLoginLogout:
    @pytest.mark.asyncio
    async def test_login_persists_session(self, session_storage):
        auth_service = MagicMock()
        auth_service.login = AsyncMock(
            return_value=LoginResponse(token="tok", username="ana", rol="PROPIETARIO")
        )
        auth = AuthContext(1, session_storage).hydrate()

        result = await auth.login(auth_service, MagicMock(username="ana"))

        assert result.success
        assert auth.is_authenticated()
        assert session_storage.get_item(1, TOKEN_KEY) == "tok"
        stored = json.loads(session_storage.get_item(1, USER_KEY))
        assert stored["username"] == "ana"
        assert stored["rol"] == "PROPIETARIO"

    @pytest.mark.asyncio
    async def test_login_failure_uses_server_message(self, session_storage):
        auth_service = MagicMock()
        auth_service.login = AsyncMock(
            side_effect=ApiError("Error 400", status_code=400, payload={"message": "Usuario inactivo"})
        )
        auth = AuthContext(1, session_storage).hydrate()

        result = await auth.login(auth_service, MagicMock(username="ana"))

        assert not result.success
        assert result.error == "Usuario inactivo"
        assert not auth.is_authenticated()

    @pytest.mark.asyncio
    async def test_login_failure_generic_message(self, session_storage):
        auth_service = MagicMock()
        auth_service.login = AsyncMock(side_effect=NetworkError("down"))
        auth = AuthContext(1, session_storage).hydrate()

        result = await auth.login(auth_service, MagicMock(username="ana"))

        assert result.error == "Error al iniciar sesión. Verifica tus credenciales."

    def test_logout_clears_storage(self, login_as, session_storage):
        auth = login_as("ADMIN")
        auth.logout()

        assert not auth.is_authenticated()
        assert session_storage.user_ids() == []
