from __future__ import annotations

import unittest
from datetime import date

from core.enums import ReservationStatus
from core.models import Reservation
from whatsapp import message_templates


class MessageTemplatesTest(unittest.TestCase):
    def test_date_formats(self) -> None:
        self.assertEqual(message_templates.format_long_date(date(2026, 10, 20)), "Selasa, 20 Oktober 2026")
        self.assertEqual(message_templates.format_long_date(date(2027, 1, 3)), "Minggu, 3 Januari 2027")
        self.assertEqual(message_templates.format_short_date("2026-10-05"), "5/10/2026")
        self.assertEqual(message_templates.format_short_date("besok"), "besok")

    def test_schedule_lines_are_ordered_from_monday(self) -> None:
        lines = message_templates.format_schedule_lines(
            {"friday": ["08:00", "11:00"], "Senin": ["08:00", "12:00"], "sabtu": [], "rabu": ["13:00"]}
        )
        self.assertEqual(
            lines,
            ["• Senin: 08:00 - 12:00", "• Rabu: 13:00", "• Jumat: 08:00 - 11:00", "• Sabtu: Libur"],
        )

    def test_invalid_selection_names_range(self) -> None:
        text = message_templates.build_invalid_selection_message(7)
        self.assertIn("Balas dengan angka 1-7.", text)
        self.assertIn("BANTUAN", text)

    def test_help_falls_back_to_default_admin(self) -> None:
        self.assertIn("wa.me/628123456789", message_templates.build_help_message(None))
        self.assertIn("wa.me/6281111", message_templates.build_help_message("6281111"))

    def test_active_reservations_message(self) -> None:
        reservation = Reservation(
            id=1,
            patient_id=1,
            doctor_id=1,
            department_id=1,
            reservation_date="2026-10-22",
            reservation_time="13:00",
            queue_number="U-003",
            status=ReservationStatus.CONFIRMED,
            doctor_name="dr. Andi",
        )
        text = message_templates.build_active_reservations_message([reservation])
        self.assertIn("1. 🎫 *U-003*", text)
        self.assertIn("📅 22/10/2026", text)
        self.assertIn("Status: confirmed", text)

    def test_cancel_options_without_doctor_name(self) -> None:
        reservation = Reservation(
            id=1,
            patient_id=1,
            doctor_id=1,
            department_id=1,
            reservation_date="2026-10-22",
            reservation_time="13:00",
            queue_number="U-003",
        )
        text = message_templates.build_cancel_options_message([reservation])
        self.assertIn("1. 🎫 U-003 - Dokter Jaga (22/10/2026)", text)


if __name__ == "__main__":
    unittest.main()
