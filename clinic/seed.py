from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from clinic.repository_interface import ClinicRepositoryProtocol
from core.models import Schedule

logger = logging.getLogger(__name__)


def load_seed_file(path: str | Path) -> dict[str, Any]:
    text = Path(path).read_text(encoding="utf-8")
    loaded = yaml.safe_load(text) if text.strip() else {}
    if not isinstance(loaded, dict):
        raise ValueError(f"seed file must contain a mapping: {path}")
    return loaded


def seed_repository(repository: ClinicRepositoryProtocol, data: dict[str, Any]) -> dict[str, int]:
    """Insert the ``departments`` and ``doctors`` lists of a seed mapping.

    Departments go first so that the configured default department id (1)
    points at the first listed department on an empty database.
    """
    departments = 0
    for item in _as_list(data.get("departments")):
        name = str(item.get("name", "") or "").strip()
        if not name:
            raise ValueError("department name is required")
        repository.add_department(
            name=name,
            description=item.get("description"),
            schedule=_as_schedule(item.get("schedule")),
            is_active=bool(item.get("is_active", True)),
        )
        departments += 1

    doctors = 0
    for item in _as_list(data.get("doctors")):
        name = str(item.get("name", "") or "").strip()
        if not name:
            raise ValueError("doctor name is required")
        repository.add_doctor(
            name=name,
            specialty=str(item.get("specialty", "") or "").strip() or "Umum",
            schedule=_as_schedule(item.get("schedule")),
        )
        doctors += 1

    logger.info("seed-loaded departments=%d doctors=%d", departments, doctors)
    return {"departments": departments, "doctors": doctors}


def _as_list(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _as_schedule(value: Any) -> Schedule:
    if not isinstance(value, dict):
        return {}
    schedule: Schedule = {}
    for day, hours in value.items():
        if isinstance(hours, str):
            hours = [part.strip() for part in hours.split("-") if part.strip()]
        schedule[str(day).strip().lower()] = [str(hour) for hour in (hours or [])]
    return schedule
