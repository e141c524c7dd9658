"""
Basic unit tests for API models.
"""

from datetime import date

from models import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    Availability,
    InventoryItem,
    LoginResponse,
    Role,
    Veterinarian,
)


def test_role_enum():
    """Test role values match the backend."""
    assert Role.PROPIETARIO.value == "PROPIETARIO"
    assert Role("RECEPCIONISTA") is Role.RECEPCIONISTA
    assert len(Role) == 5


def test_appointment_parses_camel_case():
    appointment = Appointment.model_validate(
        {
            "idCita": 7,
            "fechaCita": "2026-03-02",
            "horaCita": {"hour": 9, "minute": 30},
            "estado": "CONFIRMADA",
            "mascota": {"idMascota": 3, "nombre": "Luna"},
            "campoNuevo": "ignored",
        }
    )

    assert appointment.id_cita == 7
    assert appointment.day == date(2026, 3, 2)
    assert appointment.hora_cita == "09:30:00"
    assert appointment.pet_id == 3
    assert appointment.pet_name == "Luna"
    assert appointment.is_active


def test_appointment_status_enum():
    assert AppointmentStatus.PROGRAMADA.value == "PROGRAMADA"
    assert not Appointment(id_cita=1, estado=AppointmentStatus.CANCELADA.value).is_active


def test_appointment_create_payload():
    payload = AppointmentCreate(
        fecha_cita=date(2026, 3, 2),
        hora_cita="09:00:00",
        motivo="Control anual",
        id_mascota=3,
        id_servicio=2,
        id_veterinario=5,
    ).to_payload()

    assert payload == {
        "fechaCita": "2026-03-02",
        "horaCita": "09:00:00",
        "motivo": "Control anual",
        "idMascota": 3,
        "idServicio": 2,
        "idVeterinario": 5,
    }


def test_availability_find_slot_normalizes_hour():
    availability = Availability.model_validate(
        {
            "slotsDisponibles": [
                {"hora": "9:00", "disponible": True},
                {"hora": "09:30:00", "disponible": False, "motivoNoDisponible": "Ocupado"},
            ]
        }
    )

    assert availability.find_slot("09:00:00").disponible
    assert availability.find_slot("09:30").motivo_no_disponible == "Ocupado"
    assert availability.find_slot("10:00") is None
    assert [s.hora for s in availability.free_slots] == ["09:00:00"]


def test_login_response_to_session_user():
    user = LoginResponse(token="t", username="ana", rol="ADMIN", idUsuario=4).to_session_user()

    assert user.role is Role.ADMIN
    assert user.id_usuario == 4
    assert user.display_name == "ana"


def test_inventory_item_low_stock():
    item = InventoryItem.model_validate(
        {"cantidadActual": 2, "insumo": {"nombre": "Jeringas", "stockMinimo": 5}}
    )

    assert item.name == "Jeringas"
    assert item.minimum_stock == 5
    assert item.is_low
    assert not InventoryItem(cantidad_actual=10, nombre_insumo="Gasas").is_low


def test_veterinarian_display_name():
    assert Veterinarian(id_personal=1, nombres="Laura", apellidos="Gómez").display_name == (
        "Dr(a). Laura Gómez"
    )
    assert Veterinarian(id_personal=2).display_name == "Dr(a). #2"


def test_settings_validation_lists_problems():
    import pytest

    from config import Settings

    bad = Settings(bot_token="your_token", api_base_url="clinic.local", reminder_hour=25)
    with pytest.raises(ValueError) as exc_info:
        bad.validate_all_required()

    message = str(exc_info.value)
    assert "BOT_TOKEN" in message
    assert "API_BASE_URL" in message
    assert "REMINDER_HOUR" in message

    Settings(bot_token="123:abc", api_base_url="http://clinic.test/api").validate_all_required()
