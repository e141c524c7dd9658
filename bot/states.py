"""
FSM (Finite State Machine) states for bot conversation flow.
"""

from aiogram.fsm.state import State, StatesGroup


class LoginStates(StatesGroup):
    """States for login flow."""

    waiting_for_username = State()
    waiting_for_password = State()


class ResetPasswordStates(StatesGroup):
    """States for password reset flow."""

    waiting_for_username = State()
    waiting_for_password = State()
    waiting_for_confirmation = State()


class RegisterStates(StatesGroup):
    """States for owner self-registration flow."""

    waiting_for_username = State()
    waiting_for_email = State()
    waiting_for_password = State()
    waiting_for_confirmation = State()
    waiting_for_document = State()
    waiting_for_first_names = State()
    waiting_for_last_names = State()
    waiting_for_phone = State()
    waiting_for_address = State()


class BookingStates(StatesGroup):
    """States for the appointment booking wizard."""

    in_wizard = State()
    entering_date = State()
    entering_reason = State()


class CancelAppointmentStates(StatesGroup):
    """States for cancelling an appointment from reception."""

    waiting_for_reason = State()


class EvolutionStates(StatesGroup):
    """States for adding a clinical evolution."""

    waiting_for_description = State()
    waiting_for_vital_signs = State()
    waiting_for_diagnosis = State()
    waiting_for_treatment = State()
    waiting_for_observations = State()


class ReportStates(StatesGroup):
    """States for report date range input."""

    waiting_for_range = State()
