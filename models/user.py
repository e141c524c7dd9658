"""User, role and authentication models."""

from enum import Enum
from typing import Optional

from pydantic import Field

from models.base import ApiModel
from utils.constants import DEFAULT_DOCUMENT_TYPE


class Role(str, Enum):
    """Roles known to the clinic platform."""

    ADMIN = "ADMIN"
    VETERINARIO = "VETERINARIO"
    RECEPCIONISTA = "RECEPCIONISTA"
    AUXILIAR = "AUXILIAR"
    PROPIETARIO = "PROPIETARIO"


class SessionUser(ApiModel):
    """User stored in the session after a successful login."""

    id_usuario: Optional[int] = Field(default=None, alias="idUsuario")
    username: str
    email: Optional[str] = None
    rol: Optional[str] = None
    nombre: Optional[str] = None

    @property
    def role(self) -> Optional[Role]:
        try:
            return Role(self.rol) if self.rol else None
        except ValueError:
            return None

    @property
    def display_name(self) -> str:
        return self.nombre or self.username


class LoginRequest(ApiModel):
    username: str
    password: str


class LoginResponse(ApiModel):
    token: str
    username: str
    email: Optional[str] = None
    rol: Optional[str] = None
    id_usuario: Optional[int] = Field(default=None, alias="idUsuario")

    def to_session_user(self) -> SessionUser:
        # The login endpoint returns no display name; username stands in.
        return SessionUser(
            id_usuario=self.id_usuario,
            username=self.username,
            email=self.email,
            rol=self.rol,
            nombre=self.username,
        )


class OwnerRegistration(ApiModel):
    """Self-registration of a pet owner account."""

    username: str
    email: str
    password: str
    documento: str
    tipo_documento: str = Field(default=DEFAULT_DOCUMENT_TYPE, alias="tipoDocumento")
    nombres: str
    apellidos: str
    telefono: Optional[str] = None
    direccion: Optional[str] = None


class PasswordReset(ApiModel):
    username: str
    nueva_password: str = Field(..., alias="nuevaPassword")
