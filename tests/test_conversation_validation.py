from __future__ import annotations

import unittest
from datetime import date

from clinic.phone import format_phone_number
from conversation.calendar import booking_dates, first_bookable_date
from conversation.queue_number import allocate_queue_number, queue_prefix
from conversation.validation import parse_registration, parse_selection, pick


class RegistrationParserTest(unittest.TestCase):
    def test_parse_valid_input_trims_fields(self) -> None:
        parsed = parse_registration("  Budi Santoso # 1234567890123456 # 1990-05-15 ")
        self.assertIsNotNone(parsed)
        assert parsed is not None
        self.assertEqual(parsed.name, "Budi Santoso")
        self.assertEqual(parsed.nik, "1234567890123456")
        self.assertEqual(parsed.birth_date, "1990-05-15")

    def test_parse_rejects_malformed_input(self) -> None:
        cases = [
            "Budi Santoso",
            "Budi#1234567890123456",
            "Budi#1234567890123456#1990-05-15#extra",
            "#1234567890123456#1990-05-15",
            "Budi#123456789012345#1990-05-15",
            "Budi#12345678901234567#1990-05-15",
            "Budi#12345678901234ab#1990-05-15",
            "Budi#1234567890123456#15-05-1990",
            "Budi#1234567890123456#1990/05/15",
            "Budi#" + "\u0661" * 16 + "#1990-05-15",
            "Budi#1234567890123456#\u0661\u0669\u0669\u0660-05-15",
            "",
        ]
        for text in cases:
            with self.subTest(text=text):
                self.assertIsNone(parse_registration(text))


class SelectionParserTest(unittest.TestCase):
    def test_accepts_in_range_numbers(self) -> None:
        self.assertEqual(parse_selection("1", 3), 1)
        self.assertEqual(parse_selection(" 3 ", 3), 3)
        self.assertEqual(parse_selection("03", 3), 3)

    def test_rejects_out_of_range_and_non_numeric(self) -> None:
        for text in ("0", "4", "-1", "1.5", "satu", "", "1 2"):
            with self.subTest(text=text):
                self.assertIsNone(parse_selection(text, 3))

    def test_pick_is_one_based(self) -> None:
        self.assertEqual(pick(("a", "b", "c"), 2), "b")


class QueueNumberTest(unittest.TestCase):
    def test_prefix_is_first_letter_of_specialty(self) -> None:
        self.assertEqual(allocate_queue_number("Umum", 0), "U-001")
        self.assertEqual(allocate_queue_number("anak", 14), "A-015")
        self.assertEqual(allocate_queue_number("Gigi", 99), "G-100")
        self.assertEqual(allocate_queue_number("Penyakit Dalam", 998), "P-999")

    def test_blank_specialty_uses_default_prefix(self) -> None:
        self.assertEqual(queue_prefix(""), "A")
        self.assertEqual(queue_prefix(None), "A")

    def test_sequence_grows_past_three_digits(self) -> None:
        self.assertEqual(allocate_queue_number("Umum", 999), "U-1000")


class BookingCalendarTest(unittest.TestCase):
    def test_window_starts_tomorrow(self) -> None:
        start = first_bookable_date(date(2026, 12, 31))
        self.assertEqual(start, date(2027, 1, 1))
        dates = booking_dates(start, 7)
        self.assertEqual(len(dates), 7)
        self.assertEqual(dates[-1], date(2027, 1, 7))


class PhoneFormatTest(unittest.TestCase):
    def test_format_phone_number(self) -> None:
        self.assertEqual(format_phone_number("0812-3456-7890"), "6281234567890")
        self.assertEqual(format_phone_number("+62 812 3456 7890"), "6281234567890")
        self.assertEqual(format_phone_number("81234567890"), "6281234567890")


if __name__ == "__main__":
    unittest.main()
