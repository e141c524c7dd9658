"""
Unit tests for the clinic API client.
HTTP traffic is served by httpx.MockTransport.
"""

import json
from datetime import date

import httpx
import pytest

from api import ClinicApi, ClinicApiClient
from auth import AuthContext
from models import LoginRequest
from utils.constants import TOKEN_KEY, USER_KEY
from utils.exceptions import ApiError, NetworkError, SessionExpiredError

BASE_URL = "http://clinic.test/api"


def make_api(handler, token_provider=None, on_unauthorized=None) -> ClinicApi:
    client = ClinicApiClient(
        BASE_URL,
        token_provider=token_provider,
        on_unauthorized=on_unauthorized,
        transport=httpx.MockTransport(handler),
    )
    return ClinicApi(client)


@pytest.mark.asyncio
async def test_bearer_token_attached():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["path"] = request.url.path
        return httpx.Response(200, json=[{"idPersonal": 1, "nombres": "Laura"}])

    api = make_api(handler, token_provider=lambda: "abc123")
    vets = await api.veterinarians.get_active()
    await api.close()

    assert seen["auth"] == "Bearer abc123"
    assert seen["path"] == "/api/veterinarios/activos"
    assert vets[0].nombres == "Laura"


@pytest.mark.asyncio
async def test_no_token_no_header():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"token": "t", "username": "ana", "rol": "ADMIN"})

    api = make_api(handler, token_provider=lambda: None)
    response = await api.auth.login(LoginRequest(username="ana", password="secret"))
    await api.close()

    assert seen["auth"] is None
    assert response.token == "t"


@pytest.mark.asyncio
async def test_401_clears_session_and_raises(login_as, session_storage):
    auth = login_as("PROPIETARIO")
    assert auth.is_authenticated()

    api = make_api(
        lambda request: httpx.Response(401, json={"message": "Token expirado"}),
        token_provider=auth.token_provider,
        on_unauthorized=auth.handle_unauthorized,
    )

    with pytest.raises(SessionExpiredError):
        await api.appointments.get_all()
    await api.close()

    assert not auth.is_authenticated()
    assert session_storage.get_item(auth.user_id, TOKEN_KEY) is None
    assert session_storage.get_item(auth.user_id, USER_KEY) is None
    assert not AuthContext(auth.user_id, session_storage).hydrate().is_authenticated()


@pytest.mark.asyncio
async def test_error_status_raises_api_error_with_payload():
    body = {"validationErrors": {"fechaCita": "debe ser futura"}}
    api = make_api(lambda request: httpx.Response(400, json=body))

    with pytest.raises(ApiError) as exc_info:
        await api.appointments.get_by_id(1)
    await api.close()

    assert exc_info.value.status_code == 400
    assert exc_info.value.payload == body


@pytest.mark.asyncio
async def test_connection_error_raises_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    api = make_api(handler)

    with pytest.raises(NetworkError):
        await api.services.get_active()
    await api.close()


@pytest.mark.asyncio
async def test_availability_query_and_parsing():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["fecha"] = request.url.params.get("fecha")
        return httpx.Response(
            200,
            json={
                "idVeterinario": 5,
                "fecha": "2026-03-02",
                "slotsDisponibles": [{"hora": "08:00:00", "disponible": True}],
                "citasOcupadas": [{"idCita": 9, "hora": "08:30:00"}],
            },
        )

    api = make_api(handler)
    availability = await api.schedules.get_availability(5, date(2026, 3, 2))
    await api.close()

    assert seen == {"path": "/api/horarios/disponibilidad/5", "fecha": "2026-03-02"}
    assert availability.free_slots[0].hora == "08:00:00"
    assert availability.citas_ocupadas[0].id_cita == 9


@pytest.mark.asyncio
async def test_cancel_sends_reason_and_user():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["body"] = json.loads(request.content) if request.content else None
        return httpx.Response(204)

    api = make_api(handler)
    result = await api.appointments.cancel(4, "Viaje", "recepcion1")
    await api.close()

    assert result is None
    assert seen["path"] == "/api/citas/4/cancelar"
    sent = {**seen["params"], **(seen["body"] or {})}
    assert sent["motivo"] == "Viaje"
    assert sent["usuario"] == "recepcion1"
