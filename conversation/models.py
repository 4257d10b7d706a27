from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Optional, Union

from core.enums import SessionState
from core.models import Department, Doctor, Reservation


@dataclass(slots=True, frozen=True)
class RegistrationContext:
    pass


@dataclass(slots=True, frozen=True)
class ScheduleSelectionContext:
    departments: tuple[Department, ...]


@dataclass(slots=True, frozen=True)
class DoctorScheduleSelectionContext:
    doctors: tuple[Doctor, ...]


@dataclass(slots=True, frozen=True)
class DoctorSelectionContext:
    patient_id: int
    doctors: tuple[Doctor, ...]


@dataclass(slots=True, frozen=True)
class DateSelectionContext:
    patient_id: int
    doctor_id: int
    doctor_name: str
    window_start: date
    dates: tuple[date, ...]


@dataclass(slots=True, frozen=True)
class TimeSelectionContext:
    patient_id: int
    doctor_id: int
    doctor_name: str
    reservation_date: date
    time_slots: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class CancelSelectionContext:
    reservations: tuple[Reservation, ...]


SessionContext = Union[
    RegistrationContext,
    ScheduleSelectionContext,
    DoctorScheduleSelectionContext,
    DoctorSelectionContext,
    DateSelectionContext,
    TimeSelectionContext,
    CancelSelectionContext,
]

CONTEXT_TYPES: dict[SessionState, type] = {
    SessionState.AWAITING_REGISTRATION: RegistrationContext,
    SessionState.AWAITING_SCHEDULE_SELECTION: ScheduleSelectionContext,
    SessionState.AWAITING_DOCTOR_SCHEDULE_SELECTION: DoctorScheduleSelectionContext,
    SessionState.AWAITING_DOCTOR_SELECTION: DoctorSelectionContext,
    SessionState.AWAITING_DATE_SELECTION: DateSelectionContext,
    SessionState.AWAITING_TIME_SELECTION: TimeSelectionContext,
    SessionState.AWAITING_CANCEL_CONFIRMATION: CancelSelectionContext,
}


@dataclass(slots=True)
class Session:
    key: str
    state: SessionState
    context: Optional[SessionContext]
    updated_at: datetime

    @property
    def is_idle(self) -> bool:
        return self.state == SessionState.IDLE


@dataclass(slots=True, frozen=True)
class Transition:
    """Outcome of one handler: stay put, move to ``state``, or finish to IDLE."""

    reply: str
    state: Optional[SessionState] = None
    patch: dict = field(default_factory=dict)
    finished: bool = False
    selection: Optional[int] = None

    @classmethod
    def stay(cls, reply: str) -> "Transition":
        return cls(reply=reply)

    @classmethod
    def advance(cls, state: SessionState, reply: str, **patch: object) -> "Transition":
        if state == SessionState.IDLE:
            raise ValueError("use Transition.finish to return to IDLE")
        return cls(reply=reply, state=state, patch=dict(patch))

    @classmethod
    def finish(cls, reply: str) -> "Transition":
        return cls(reply=reply, state=SessionState.IDLE, finished=True)

    def with_selection(self, selection: int) -> "Transition":
        return replace(self, selection=selection)


@dataclass(slots=True, frozen=True)
class DialogueStep:
    sender_key: str
    text: str
    previous_state: SessionState
    state: SessionState
    reply: str
    command: Optional[str] = None
    selection: Optional[int] = None
