from __future__ import annotations

from typing import Any

from clinic.memory_repository import MemoryClinicRepository
from clinic.repository import ClinicRepository
from clinic.repository_interface import ClinicRepositoryProtocol


def create_clinic_repository(config: dict[str, Any]) -> ClinicRepositoryProtocol:
    clinic_conf = config.get("clinic", {})
    backend = str(clinic_conf.get("backend", "sqlite") or "sqlite").strip().lower()

    if backend == "memory":
        return MemoryClinicRepository()
    if backend != "sqlite":
        raise ValueError(f"unsupported clinic backend: {backend}")

    sqlite_path = str(clinic_conf.get("sqlite_path", "data/clinic/clinic.db"))
    return ClinicRepository(sqlite_path=sqlite_path)
