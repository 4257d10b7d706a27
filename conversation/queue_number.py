from __future__ import annotations

DEFAULT_QUEUE_PREFIX = "A"


def queue_prefix(specialty: str | None) -> str:
    text = (specialty or "").strip()
    if not text:
        return DEFAULT_QUEUE_PREFIX
    return text[0].upper()


def allocate_queue_number(specialty: str | None, existing_count: int) -> str:
    """Build the ticket code shown to the patient, e.g. ``("Umum", 14) -> "U-015"``.

    ``existing_count`` is the number of reservations already booked for the
    doctor on the target date, cancelled ones included, so codes are never
    handed out twice for the same day. Callers must read the count and insert
    the reservation inside one serialized operation.
    """
    sequence = max(0, int(existing_count)) + 1
    return f"{queue_prefix(specialty)}-{sequence:03d}"
