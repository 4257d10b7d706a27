from __future__ import annotations

import re
from typing import Protocol

from core.models import Department, Doctor, Patient, Reservation, Schedule

_NIK_RE = re.compile(r"[0-9]{16}")
_BIRTH_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


class DomainError(RuntimeError):
    pass


class DomainConflictError(DomainError):
    pass


class DuplicateNikError(DomainConflictError):
    def __init__(self, nik: str) -> None:
        super().__init__(f"nik already registered: {nik}")
        self.nik = nik


class PatientValidationError(DomainError):
    pass


class NotFoundError(DomainError):
    pass


class ClinicRepositoryProtocol(Protocol):
    def find_patient_by_phone(self, phone: str) -> Patient | None: ...

    def create_patient(self, name: str, nik: str, phone: str, birth_date: str) -> Patient: ...

    def list_active_departments(self) -> list[Department]: ...

    def list_doctors(self) -> list[Doctor]: ...

    def list_reservations_for_patient(self, patient_id: int) -> list[Reservation]: ...

    def create_reservation(
        self,
        patient_id: int,
        doctor_id: int,
        department_id: int,
        reservation_date: str,
        reservation_time: str,
    ) -> Reservation: ...

    def cancel_reservation(self, reservation_id: int) -> Reservation: ...

    def get_reservation(self, reservation_id: int) -> Reservation | None: ...

    def add_doctor(self, name: str, specialty: str, schedule: Schedule) -> Doctor: ...

    def add_department(
        self,
        name: str,
        description: str | None,
        schedule: Schedule,
        is_active: bool = True,
    ) -> Department: ...


def validate_patient_input(name: str, nik: str, phone: str, birth_date: str) -> None:
    if len((name or "").strip()) < 2:
        raise PatientValidationError("Nama minimal 2 karakter")
    if not _NIK_RE.fullmatch(nik or ""):
        raise PatientValidationError("NIK harus 16 digit")
    if len(phone or "") < 10:
        raise PatientValidationError("Nomor telepon tidak valid")
    if not _BIRTH_DATE_RE.fullmatch(birth_date or ""):
        raise PatientValidationError("Format tanggal harus YYYY-MM-DD")
