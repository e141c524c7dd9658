"""
Pytest configuration and shared fixtures.
"""

import os

# Settings are instantiated at import time; required values must exist first.
os.environ.setdefault("BOT_TOKEN", "123456:test_token")
os.environ.setdefault("API_BASE_URL", "http://clinic.test/api")
os.environ.setdefault("REMINDERS_ENABLED", "false")

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import CallbackQuery, Message, User

from auth import AuthContext, SessionStorage
from models.user import SessionUser
from utils.constants import TOKEN_KEY, USER_KEY

TEST_USER_ID = 123456789


@pytest.fixture
def session_storage(tmp_path):
    """Session storage in a temporary directory."""
    return SessionStorage(tmp_path / "sessions")


@pytest.fixture
def login_as(session_storage):
    """Persist a session for a role and return its hydrated AuthContext."""

    def _login(rol: str, user_id: int = TEST_USER_ID, username: str = "ana") -> AuthContext:
        user = SessionUser(username=username, email=f"{username}@clinica.test", rol=rol)
        session_storage.set_item(user_id, TOKEN_KEY, f"token-{user_id}")
        session_storage.set_item(user_id, USER_KEY, json.dumps(user.to_payload()))
        return AuthContext(user_id, session_storage).hydrate()

    return _login


@pytest.fixture
def fsm_state():
    """Real FSMContext over in-memory storage."""
    key = StorageKey(bot_id=1, chat_id=TEST_USER_ID, user_id=TEST_USER_ID)
    return FSMContext(storage=MemoryStorage(), key=key)


@pytest.fixture
def telegram_user():
    return User(id=TEST_USER_ID, is_bot=False, first_name="Test")


@pytest.fixture
def mock_message(telegram_user):
    """Create mock message."""
    message = MagicMock(spec=Message)
    message.from_user = telegram_user
    message.text = ""
    message.answer = AsyncMock()
    message.delete = AsyncMock()
    return message


@pytest.fixture
def mock_callback(telegram_user):
    """Create mock callback query."""
    callback = MagicMock(spec=CallbackQuery)
    callback.from_user = telegram_user
    callback.data = "main_menu"
    callback.message = MagicMock()
    callback.message.edit_text = AsyncMock()
    callback.message.answer = AsyncMock()
    callback.answer = AsyncMock()
    return callback
