from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Sequence

from clinic.repository_interface import ClinicRepositoryProtocol, DomainConflictError
from conversation.calendar import (
    DEFAULT_BOOKING_WINDOW_DAYS,
    DEFAULT_TIME_SLOTS,
    booking_dates,
    first_bookable_date,
)
from conversation.models import (
    CancelSelectionContext,
    DateSelectionContext,
    DoctorScheduleSelectionContext,
    DoctorSelectionContext,
    ScheduleSelectionContext,
    Session,
    TimeSelectionContext,
    Transition,
)
from conversation.validation import parse_registration, parse_selection, pick
from core.enums import SessionState
from whatsapp import message_templates

logger = logging.getLogger(__name__)

StateHandler = Callable[[str, Session, str], Transition]

DEFAULT_DEPARTMENT_ID = 1


class StateMachine:
    """Input handlers for every non-idle conversation state.

    Each handler receives the sender key, the current session and the trimmed
    reply text, and returns exactly one ``Transition``: stay in the state with
    a corrective reply, advance to the next state, or finish back to IDLE.
    """

    def __init__(
        self,
        repository: ClinicRepositoryProtocol,
        today: Callable[[], date] | None = None,
        default_department_id: int = DEFAULT_DEPARTMENT_ID,
        booking_window_days: int = DEFAULT_BOOKING_WINDOW_DAYS,
        time_slots: Sequence[str] = DEFAULT_TIME_SLOTS,
    ) -> None:
        self.repository = repository
        self._today = today or date.today
        self.default_department_id = int(default_department_id)
        self.booking_window_days = max(1, int(booking_window_days))
        self.time_slots = tuple(time_slots) or DEFAULT_TIME_SLOTS
        self.handlers: dict[SessionState, StateHandler] = {
            SessionState.AWAITING_REGISTRATION: self.handle_registration,
            SessionState.AWAITING_SCHEDULE_SELECTION: self.handle_schedule_selection,
            SessionState.AWAITING_DOCTOR_SCHEDULE_SELECTION: self.handle_doctor_schedule_selection,
            SessionState.AWAITING_DOCTOR_SELECTION: self.handle_doctor_selection,
            SessionState.AWAITING_DATE_SELECTION: self.handle_date_selection,
            SessionState.AWAITING_TIME_SELECTION: self.handle_time_selection,
            SessionState.AWAITING_CANCEL_CONFIRMATION: self.handle_cancel_confirmation,
        }
        missing = [state for state in SessionState if state != SessionState.IDLE and state not in self.handlers]
        if missing:
            raise RuntimeError(f"states without handler: {[state.value for state in missing]}")

    def handler_for(self, state: SessionState) -> StateHandler | None:
        return self.handlers.get(state)

    def window_start(self) -> date:
        return first_bookable_date(self._today())

    def handle_registration(self, sender_key: str, session: Session, text: str) -> Transition:
        parsed = parse_registration(text)
        if parsed is None:
            return Transition.stay(message_templates.build_registration_format_error_message())

        try:
            patient = self.repository.create_patient(
                name=parsed.name,
                nik=parsed.nik,
                phone=sender_key,
                birth_date=parsed.birth_date,
            )
        except DomainConflictError:
            logger.info("registration-conflict sender=%s", sender_key)
            return Transition.finish(message_templates.build_duplicate_nik_message())
        except Exception:  # noqa: BLE001
            logger.exception("registration-failed sender=%s", sender_key)
            return Transition.finish(message_templates.build_generic_error_message())

        logger.info("patient-registered sender=%s patient_id=%s", sender_key, patient.id)
        return Transition.finish(message_templates.build_registration_success_message(patient.name, patient.nik))

    def handle_schedule_selection(self, sender_key: str, session: Session, text: str) -> Transition:
        context = _expect(session, ScheduleSelectionContext)
        selection = parse_selection(text, len(context.departments))
        if selection is None:
            return Transition.stay(message_templates.build_invalid_selection_message(len(context.departments)))
        department = pick(context.departments, selection)
        return Transition.finish(message_templates.build_department_schedule_message(department)).with_selection(
            selection
        )

    def handle_doctor_schedule_selection(self, sender_key: str, session: Session, text: str) -> Transition:
        context = _expect(session, DoctorScheduleSelectionContext)
        selection = parse_selection(text, len(context.doctors))
        if selection is None:
            return Transition.stay(message_templates.build_invalid_selection_message(len(context.doctors)))
        doctor = pick(context.doctors, selection)
        return Transition.finish(message_templates.build_doctor_schedule_message(doctor)).with_selection(selection)

    def handle_doctor_selection(self, sender_key: str, session: Session, text: str) -> Transition:
        context = _expect(session, DoctorSelectionContext)
        selection = parse_selection(text, len(context.doctors))
        if selection is None:
            return Transition.stay(message_templates.build_invalid_selection_message(len(context.doctors)))

        doctor = pick(context.doctors, selection)
        window_start = self.window_start()
        dates = booking_dates(window_start, self.booking_window_days)
        return Transition.advance(
            SessionState.AWAITING_DATE_SELECTION,
            message_templates.build_date_options_message(doctor.name, dates),
            doctor_id=doctor.id,
            doctor_name=doctor.name,
            window_start=window_start,
            dates=dates,
        ).with_selection(selection)

    def handle_date_selection(self, sender_key: str, session: Session, text: str) -> Transition:
        context = _expect(session, DateSelectionContext)
        # same window the user was shown, even if the day rolled over since
        dates = booking_dates(context.window_start, len(context.dates))
        selection = parse_selection(text, len(dates))
        if selection is None:
            return Transition.stay(message_templates.build_invalid_selection_message(len(dates)))

        reservation_date = pick(dates, selection)
        return Transition.advance(
            SessionState.AWAITING_TIME_SELECTION,
            message_templates.build_time_options_message(reservation_date, self.time_slots),
            reservation_date=reservation_date,
            time_slots=self.time_slots,
        ).with_selection(selection)

    def handle_time_selection(self, sender_key: str, session: Session, text: str) -> Transition:
        context = _expect(session, TimeSelectionContext)
        selection = parse_selection(text, len(context.time_slots))
        if selection is None:
            return Transition.stay(message_templates.build_invalid_selection_message(len(context.time_slots)))

        reservation_time = pick(context.time_slots, selection)
        try:
            reservation = self.repository.create_reservation(
                patient_id=context.patient_id,
                doctor_id=context.doctor_id,
                department_id=self.default_department_id,
                reservation_date=context.reservation_date.isoformat(),
                reservation_time=reservation_time,
            )
        except Exception:  # noqa: BLE001
            logger.exception("reservation-failed sender=%s doctor_id=%s", sender_key, context.doctor_id)
            return Transition.finish(message_templates.build_reservation_error_message()).with_selection(selection)

        logger.info(
            "reservation-created sender=%s reservation_id=%s queue=%s",
            sender_key,
            reservation.id,
            reservation.queue_number,
        )
        return Transition.finish(
            message_templates.build_reservation_success_message(
                doctor_name=context.doctor_name,
                reservation_date=context.reservation_date,
                reservation_time=reservation.reservation_time,
                queue_number=reservation.queue_number,
            )
        ).with_selection(selection)

    def handle_cancel_confirmation(self, sender_key: str, session: Session, text: str) -> Transition:
        context = _expect(session, CancelSelectionContext)
        selection = parse_selection(text, len(context.reservations))
        if selection is None:
            return Transition.stay(message_templates.build_invalid_selection_message(len(context.reservations)))

        target = pick(context.reservations, selection)
        try:
            self.repository.cancel_reservation(target.id)
        except Exception:  # noqa: BLE001
            logger.exception("cancel-failed sender=%s reservation_id=%s", sender_key, target.id)
            return Transition.finish(message_templates.build_cancel_error_message()).with_selection(selection)

        logger.info("reservation-cancelled sender=%s reservation_id=%s", sender_key, target.id)
        return Transition.finish(message_templates.build_cancel_success_message(target.queue_number)).with_selection(
            selection
        )


def _expect(session: Session, context_type: type):
    context = session.context
    if not isinstance(context, context_type):
        raise TypeError(
            f"session {session.key} in {session.state.value} carries {type(context).__name__}, "
            f"expected {context_type.__name__}"
        )
    return context
