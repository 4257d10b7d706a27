from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")

REGISTRATION_SEPARATOR = "#"
_NIK_RE = re.compile(r"[0-9]{16}")
_BIRTH_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_SELECTION_RE = re.compile(r"^[0-9]+$")


@dataclass(slots=True, frozen=True)
class RegistrationInput:
    name: str
    nik: str
    birth_date: str


def parse_registration(text: str) -> Optional[RegistrationInput]:
    """Parse ``Nama#NIK#YYYY-MM-DD``; returns None when any field is malformed."""
    parts = [part.strip() for part in (text or "").split(REGISTRATION_SEPARATOR)]
    if len(parts) != 3:
        return None
    name, nik, birth_date = parts
    if not name:
        return None
    if not _NIK_RE.fullmatch(nik):
        return None
    if not _BIRTH_DATE_RE.fullmatch(birth_date):
        return None
    return RegistrationInput(name=name, nik=nik, birth_date=birth_date)


def parse_selection(text: str, option_count: int) -> Optional[int]:
    """Return the 1-based choice when ``text`` is an integer within ``[1, option_count]``."""
    value = (text or "").strip()
    if not _SELECTION_RE.match(value):
        return None
    selection = int(value)
    if selection < 1 or selection > option_count:
        return None
    return selection


def pick(options: Sequence[T], selection: int) -> T:
    return options[selection - 1]
