from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    IDLE = "IDLE"
    AWAITING_REGISTRATION = "AWAITING_REGISTRATION"
    AWAITING_DOCTOR_SELECTION = "AWAITING_DOCTOR_SELECTION"
    AWAITING_DATE_SELECTION = "AWAITING_DATE_SELECTION"
    AWAITING_TIME_SELECTION = "AWAITING_TIME_SELECTION"
    AWAITING_SCHEDULE_SELECTION = "AWAITING_SCHEDULE_SELECTION"
    AWAITING_DOCTOR_SCHEDULE_SELECTION = "AWAITING_DOCTOR_SCHEDULE_SELECTION"
    AWAITING_CANCEL_CONFIRMATION = "AWAITING_CANCEL_CONFIRMATION"


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_RESERVATION_STATUSES = (
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
)
