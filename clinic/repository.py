from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

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


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ClinicRepository:
    def __init__(self, sqlite_path: str) -> None:
        self.sqlite_path = Path(sqlite_path)
        self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.sqlite_path, timeout=10.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        # BEGIN IMMEDIATE: reads inside the block already hold the write lock.
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            else:
                conn.execute("COMMIT")

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS patients (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    nik TEXT UNIQUE NOT NULL,
                    phone TEXT UNIQUE NOT NULL,
                    birth_date TEXT NOT NULL,
                    address TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS doctors (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    specialty TEXT NOT NULL,
                    schedule_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS departments (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT,
                    schedule_json TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS reservations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    patient_id INTEGER NOT NULL REFERENCES patients(id),
                    doctor_id INTEGER NOT NULL REFERENCES doctors(id),
                    department_id INTEGER NOT NULL,
                    reservation_date TEXT NOT NULL,
                    reservation_time TEXT NOT NULL,
                    queue_number TEXT NOT NULL,
                    status TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                CREATE UNIQUE INDEX IF NOT EXISTS idx_reservations_doctor_date_queue
                    ON reservations(doctor_id, reservation_date, queue_number);
                CREATE INDEX IF NOT EXISTS idx_reservations_patient
                    ON reservations(patient_id, reservation_date DESC);
                """
            )

    def find_patient_by_phone(self, phone: str) -> Patient | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM patients WHERE phone = ?",
                (format_phone_number(phone),),
            ).fetchone()
        return _patient_from_row(row) if row is not None else None

    def create_patient(self, name: str, nik: str, phone: str, birth_date: str) -> Patient:
        validate_patient_input(name, nik, phone, birth_date)
        formatted = format_phone_number(phone)
        now = _utc_now()
        try:
            with self._transaction() as conn:
                cur = conn.execute(
                    """
                    INSERT INTO patients(name, nik, phone, birth_date, created_at, updated_at)
                    VALUES(?, ?, ?, ?, ?, ?)
                    """,
                    (name, nik, formatted, birth_date, now, now),
                )
                patient_id = int(cur.lastrowid)
        except sqlite3.IntegrityError as exc:
            if "patients.nik" in str(exc):
                raise DuplicateNikError(nik) from exc
            raise DomainError(f"patient insert failed: {exc}") from exc
        return Patient(id=patient_id, name=name, nik=nik, phone=formatted, birth_date=birth_date)

    def list_active_departments(self) -> list[Department]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM departments WHERE is_active = 1 ORDER BY name ASC").fetchall()
        return [_department_from_row(row) for row in rows]

    def list_doctors(self) -> list[Doctor]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM doctors ORDER BY name ASC").fetchall()
        return [_doctor_from_row(row) for row in rows]

    def list_reservations_for_patient(self, patient_id: int) -> list[Reservation]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT r.*, d.name AS doctor_name
                FROM reservations r
                LEFT JOIN doctors d ON d.id = r.doctor_id
                WHERE r.patient_id = ?
                ORDER BY r.reservation_date DESC, r.id DESC
                """,
                (patient_id,),
            ).fetchall()
        return [_reservation_from_row(row) for row in rows]

    def get_reservation(self, reservation_id: int) -> Reservation | None:
        with self._connect() as conn:
            row = self._select_reservation(conn, reservation_id)
        return _reservation_from_row(row) if row is not None else None

    def create_reservation(
        self,
        patient_id: int,
        doctor_id: int,
        department_id: int,
        reservation_date: str,
        reservation_time: str,
    ) -> Reservation:
        now = _utc_now()
        try:
            with self._transaction() as conn:
                doctor = conn.execute("SELECT * FROM doctors WHERE id = ?", (doctor_id,)).fetchone()
                if doctor is None:
                    raise NotFoundError(f"doctor not found: {doctor_id}")
                existing = conn.execute(
                    "SELECT COUNT(*) AS n FROM reservations WHERE doctor_id = ? AND reservation_date = ?",
                    (doctor_id, reservation_date),
                ).fetchone()
                queue_number = allocate_queue_number(str(doctor["specialty"]), int(existing["n"]))
                cur = conn.execute(
                    """
                    INSERT INTO reservations(
                        patient_id, doctor_id, department_id, reservation_date, reservation_time,
                        queue_number, status, created_at, updated_at
                    ) VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        patient_id,
                        doctor_id,
                        department_id,
                        reservation_date,
                        reservation_time,
                        queue_number,
                        ReservationStatus.PENDING.value,
                        now,
                        now,
                    ),
                )
                row = self._select_reservation(conn, int(cur.lastrowid))
        except sqlite3.Error as exc:
            raise DomainError(f"reservation insert failed: {exc}") from exc
        return _reservation_from_row(row)

    def cancel_reservation(self, reservation_id: int) -> Reservation:
        return self._update_status(reservation_id, ReservationStatus.CANCELLED)

    def add_doctor(self, name: str, specialty: str, schedule: Schedule) -> Doctor:
        now = _utc_now()
        with self._transaction() as conn:
            cur = conn.execute(
                "INSERT INTO doctors(name, specialty, schedule_json, created_at, updated_at) VALUES(?, ?, ?, ?, ?)",
                (name, specialty, json.dumps(schedule, ensure_ascii=False), now, now),
            )
            doctor_id = int(cur.lastrowid)
        return Doctor(id=doctor_id, name=name, specialty=specialty, schedule=dict(schedule))

    def add_department(
        self,
        name: str,
        description: str | None,
        schedule: Schedule,
        is_active: bool = True,
    ) -> Department:
        now = _utc_now()
        with self._transaction() as conn:
            cur = conn.execute(
                """
                INSERT INTO departments(name, description, schedule_json, is_active, created_at, updated_at)
                VALUES(?, ?, ?, ?, ?, ?)
                """,
                (name, description, json.dumps(schedule, ensure_ascii=False), 1 if is_active else 0, now, now),
            )
            department_id = int(cur.lastrowid)
        return Department(
            id=department_id,
            name=name,
            description=description,
            schedule=dict(schedule),
            is_active=is_active,
        )

    def _update_status(self, reservation_id: int, status: ReservationStatus) -> Reservation:
        with self._transaction() as conn:
            cur = conn.execute(
                "UPDATE reservations SET status = ?, updated_at = ? WHERE id = ?",
                (status.value, _utc_now(), reservation_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"reservation not found: {reservation_id}")
            row = self._select_reservation(conn, reservation_id)
        return _reservation_from_row(row)

    @staticmethod
    def _select_reservation(conn: sqlite3.Connection, reservation_id: int) -> sqlite3.Row | None:
        return conn.execute(
            """
            SELECT r.*, d.name AS doctor_name
            FROM reservations r
            LEFT JOIN doctors d ON d.id = r.doctor_id
            WHERE r.id = ?
            """,
            (reservation_id,),
        ).fetchone()


def _load_schedule(raw: Any) -> Schedule:
    try:
        data = json.loads(str(raw or "{}"))
    except json.JSONDecodeError:
        return {}
    if not isinstance(data, dict):
        return {}
    return {str(day): [str(v) for v in hours] for day, hours in data.items() if isinstance(hours, list)}


def _patient_from_row(row: sqlite3.Row) -> Patient:
    return Patient(
        id=int(row["id"]),
        name=str(row["name"]),
        nik=str(row["nik"]),
        phone=str(row["phone"]),
        birth_date=str(row["birth_date"]),
    )


def _doctor_from_row(row: sqlite3.Row) -> Doctor:
    return Doctor(
        id=int(row["id"]),
        name=str(row["name"]),
        specialty=str(row["specialty"]),
        schedule=_load_schedule(row["schedule_json"]),
    )


def _department_from_row(row: sqlite3.Row) -> Department:
    return Department(
        id=int(row["id"]),
        name=str(row["name"]),
        description=row["description"],
        schedule=_load_schedule(row["schedule_json"]),
        is_active=bool(row["is_active"]),
    )


def _reservation_from_row(row: sqlite3.Row) -> Reservation:
    return Reservation(
        id=int(row["id"]),
        patient_id=int(row["patient_id"]),
        doctor_id=int(row["doctor_id"]),
        department_id=int(row["department_id"]),
        reservation_date=str(row["reservation_date"]),
        reservation_time=str(row["reservation_time"]),
        queue_number=str(row["queue_number"]),
        status=ReservationStatus(str(row["status"])),
        doctor_name=row["doctor_name"],
    )
