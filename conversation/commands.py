from __future__ import annotations

from typing import Callable

from clinic.repository_interface import ClinicRepositoryProtocol
from conversation.models import Transition
from core.enums import SessionState
from core.models import Patient, Reservation
from whatsapp import message_templates

CommandAction = Callable[[str], Transition]

WELCOME_COMMANDS = ("MENU", "START", "MULAI", "HI", "HALO")
REGISTER_COMMAND = "DAFTAR"
DEPARTMENT_SCHEDULE_COMMAND = "JADWAL"
DOCTOR_SCHEDULE_COMMAND = "JADWAL DOKTER"
RESERVATION_COMMAND = "RESERVASI"
QUEUE_STATUS_COMMANDS = ("CEK ANTRIAN", "CEK", "ANTRIAN")
CANCEL_RESERVATION_COMMAND = "BATAL"
HELP_COMMANDS = ("BANTUAN", "HELP")


class CommandTable:
    """Keyword actions available while the session is IDLE.

    Keys are matched exactly after uppercasing; there is no partial or fuzzy
    matching. Text that matches nothing gets a (personalized) welcome.
    """

    def __init__(self, repository: ClinicRepositoryProtocol, admin_phone: str | None = None) -> None:
        self.repository = repository
        self.admin_phone = admin_phone
        self.actions: dict[str, CommandAction] = {}
        for keyword in WELCOME_COMMANDS:
            self.actions[keyword] = self.show_welcome
        self.actions[REGISTER_COMMAND] = self.start_registration
        self.actions[DEPARTMENT_SCHEDULE_COMMAND] = self.show_departments
        self.actions[DOCTOR_SCHEDULE_COMMAND] = self.show_doctors
        self.actions[RESERVATION_COMMAND] = self.start_reservation
        for keyword in QUEUE_STATUS_COMMANDS:
            self.actions[keyword] = self.show_queue_status
        self.actions[CANCEL_RESERVATION_COMMAND] = self.start_cancellation
        for keyword in HELP_COMMANDS:
            self.actions[keyword] = self.show_help

    def lookup(self, text: str) -> tuple[str | None, CommandAction]:
        command = (text or "").strip().upper()
        action = self.actions.get(command)
        if action is None:
            return None, self.greet
        return command, action

    def show_welcome(self, sender_key: str) -> Transition:
        return Transition.stay(message_templates.build_welcome_message())

    def show_help(self, sender_key: str) -> Transition:
        return Transition.stay(message_templates.build_help_message(self.admin_phone))

    def greet(self, sender_key: str) -> Transition:
        patient = self.repository.find_patient_by_phone(sender_key)
        if patient is not None:
            return Transition.stay(message_templates.build_personal_welcome_message(patient.name))
        return Transition.stay(message_templates.build_welcome_message())

    def start_registration(self, sender_key: str) -> Transition:
        existing = self.repository.find_patient_by_phone(sender_key)
        if existing is not None:
            return Transition.stay(message_templates.build_already_registered_message(existing.name, existing.nik))
        return Transition.advance(
            SessionState.AWAITING_REGISTRATION,
            message_templates.build_registration_prompt_message(),
        )

    def show_departments(self, sender_key: str) -> Transition:
        departments = tuple(self.repository.list_active_departments())
        if not departments:
            return Transition.stay(message_templates.build_no_departments_message())
        return Transition.advance(
            SessionState.AWAITING_SCHEDULE_SELECTION,
            message_templates.build_department_list_message(departments),
            departments=departments,
        )

    def show_doctors(self, sender_key: str) -> Transition:
        doctors = tuple(self.repository.list_doctors())
        if not doctors:
            return Transition.stay(message_templates.build_no_doctors_message())
        return Transition.advance(
            SessionState.AWAITING_DOCTOR_SCHEDULE_SELECTION,
            message_templates.build_doctor_list_message(doctors),
            doctors=doctors,
        )

    def start_reservation(self, sender_key: str) -> Transition:
        patient = self.repository.find_patient_by_phone(sender_key)
        if patient is None:
            return Transition.stay(message_templates.build_not_registered_message(for_reservation=True))

        doctors = tuple(self.repository.list_doctors())
        if not doctors:
            return Transition.stay(message_templates.build_no_doctors_message(for_reservation=True))
        return Transition.advance(
            SessionState.AWAITING_DOCTOR_SELECTION,
            message_templates.build_doctor_list_message(doctors),
            patient_id=patient.id,
            doctors=doctors,
        )

    def show_queue_status(self, sender_key: str) -> Transition:
        patient = self.repository.find_patient_by_phone(sender_key)
        if patient is None:
            return Transition.stay(message_templates.build_not_registered_message())

        active = self._active_reservations(patient)
        if not active:
            return Transition.stay(message_templates.build_no_active_reservations_message())
        return Transition.stay(message_templates.build_active_reservations_message(active))

    def start_cancellation(self, sender_key: str) -> Transition:
        patient = self.repository.find_patient_by_phone(sender_key)
        if patient is None:
            return Transition.stay(message_templates.build_not_registered_message())

        active = self._active_reservations(patient)
        if not active:
            return Transition.stay(message_templates.build_no_cancellable_reservations_message())
        return Transition.advance(
            SessionState.AWAITING_CANCEL_CONFIRMATION,
            message_templates.build_cancel_options_message(active),
            reservations=active,
        )

    def _active_reservations(self, patient: Patient) -> tuple[Reservation, ...]:
        reservations = self.repository.list_reservations_for_patient(patient.id)
        return tuple(item for item in reservations if item.is_active)
