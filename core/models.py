from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from core.enums import ACTIVE_RESERVATION_STATUSES, ReservationStatus

# day key -> [start, end], e.g. {"senin": ["08:00", "12:00"]}
Schedule = dict[str, list[str]]


@dataclass(slots=True, frozen=True)
class Patient:
    id: int
    name: str
    nik: str
    phone: str
    birth_date: str


@dataclass(slots=True, frozen=True)
class Doctor:
    id: int
    name: str
    specialty: str
    schedule: Schedule = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class Department:
    id: int
    name: str
    description: Optional[str] = None
    schedule: Schedule = field(default_factory=dict)
    is_active: bool = True


@dataclass(slots=True, frozen=True)
class Reservation:
    id: int
    patient_id: int
    doctor_id: int
    department_id: int
    reservation_date: str
    reservation_time: str
    queue_number: str
    status: ReservationStatus = ReservationStatus.PENDING
    doctor_name: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_RESERVATION_STATUSES
