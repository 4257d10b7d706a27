from __future__ import annotations

import threading
from dataclasses import replace
from itertools import count
from typing import Iterator

from clinic.phone import format_phone_number
from clinic.repository_interface import (
    DomainError,
    DuplicateNikError,
    NotFoundError,
    validate_patient_input,
)
from conversation.queue_number import allocate_queue_number
from core.enums import ReservationStatus
from core.models import Department, Doctor, Patient, Reservation, Schedule


class MemoryClinicRepository:
    """Process-local gateway used by tests and the console ``chat`` command.

    Every read and write of the record maps happens under one lock, so the
    queue-number count and the insert that uses it form a single step.
    """

    def __init__(self) -> None:
        self._patients: dict[int, Patient] = {}
        self._doctors: dict[int, Doctor] = {}
        self._departments: dict[int, Department] = {}
        self._reservations: dict[int, Reservation] = {}
        self._ids: dict[str, Iterator[int]] = {
            "patient": count(1),
            "doctor": count(1),
            "department": count(1),
            "reservation": count(1),
        }
        self._lock = threading.Lock()

    def find_patient_by_phone(self, phone: str) -> Patient | None:
        formatted = format_phone_number(phone)
        with self._lock:
            for patient in self._patients.values():
                if patient.phone == formatted:
                    return patient
        return None

    def create_patient(self, name: str, nik: str, phone: str, birth_date: str) -> Patient:
        validate_patient_input(name, nik, phone, birth_date)
        formatted = format_phone_number(phone)
        with self._lock:
            if any(patient.nik == nik for patient in self._patients.values()):
                raise DuplicateNikError(nik)
            if any(patient.phone == formatted for patient in self._patients.values()):
                raise DomainError(f"phone already registered: {formatted}")
            patient = Patient(
                id=next(self._ids["patient"]),
                name=name,
                nik=nik,
                phone=formatted,
                birth_date=birth_date,
            )
            self._patients[patient.id] = patient
        return patient

    def list_active_departments(self) -> list[Department]:
        with self._lock:
            departments = [item for item in self._departments.values() if item.is_active]
        return sorted(departments, key=lambda item: item.name)

    def list_doctors(self) -> list[Doctor]:
        with self._lock:
            doctors = list(self._doctors.values())
        return sorted(doctors, key=lambda item: item.name)

    def list_reservations_for_patient(self, patient_id: int) -> list[Reservation]:
        with self._lock:
            rows = [item for item in self._reservations.values() if item.patient_id == patient_id]
        return sorted(rows, key=lambda item: (item.reservation_date, item.id), reverse=True)

    def create_reservation(
        self,
        patient_id: int,
        doctor_id: int,
        department_id: int,
        reservation_date: str,
        reservation_time: str,
    ) -> Reservation:
        with self._lock:
            doctor = self._doctors.get(doctor_id)
            if doctor is None:
                raise NotFoundError(f"doctor not found: {doctor_id}")
            if patient_id not in self._patients:
                raise NotFoundError(f"patient not found: {patient_id}")

            existing = sum(
                1
                for item in self._reservations.values()
                if item.doctor_id == doctor_id and item.reservation_date == reservation_date
            )
            reservation = Reservation(
                id=next(self._ids["reservation"]),
                patient_id=patient_id,
                doctor_id=doctor_id,
                department_id=department_id,
                reservation_date=reservation_date,
                reservation_time=reservation_time,
                queue_number=allocate_queue_number(doctor.specialty, existing),
                status=ReservationStatus.PENDING,
                doctor_name=doctor.name,
            )
            self._reservations[reservation.id] = reservation
        return reservation

    def cancel_reservation(self, reservation_id: int) -> Reservation:
        with self._lock:
            current = self._reservations.get(reservation_id)
            if current is None:
                raise NotFoundError(f"reservation not found: {reservation_id}")
            updated = replace(current, status=ReservationStatus.CANCELLED)
            self._reservations[reservation_id] = updated
        return updated

    def add_doctor(self, name: str, specialty: str, schedule: Schedule) -> Doctor:
        with self._lock:
            doctor = Doctor(id=next(self._ids["doctor"]), name=name, specialty=specialty, schedule=dict(schedule))
            self._doctors[doctor.id] = doctor
        return doctor

    def add_department(
        self,
        name: str,
        description: str | None,
        schedule: Schedule,
        is_active: bool = True,
    ) -> Department:
        with self._lock:
            department = Department(
                id=next(self._ids["department"]),
                name=name,
                description=description,
                schedule=dict(schedule),
                is_active=is_active,
            )
            self._departments[department.id] = department
        return department

    def get_reservation(self, reservation_id: int) -> Reservation | None:
        with self._lock:
            return self._reservations.get(reservation_id)
