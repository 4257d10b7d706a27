from __future__ import annotations

import re

COUNTRY_CODE = "62"


def format_phone_number(phone: str) -> str:
    cleaned = re.sub(r"\D", "", phone or "")
    if cleaned.startswith("0"):
        return COUNTRY_CODE + cleaned[1:]
    if not cleaned.startswith(COUNTRY_CODE):
        return COUNTRY_CODE + cleaned
    return cleaned
