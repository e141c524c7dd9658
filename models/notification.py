"""Notification model."""

from typing import Optional

from pydantic import Field

from models.base import ApiModel


class Notification(ApiModel):
    id_notificacion: Optional[int] = Field(default=None, alias="idNotificacion")
    tipo: Optional[str] = None
    canal: Optional[str] = None
    asunto: Optional[str] = None
    mensaje: Optional[str] = None
    prioridad: Optional[str] = None
    enviada: Optional[bool] = None
    leida: Optional[bool] = None
    fecha_envio: Optional[str] = Field(default=None, alias="fechaEnvio")
