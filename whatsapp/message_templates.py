from __future__ import annotations

from datetime import date
from typing import Sequence

from core.models import Department, Doctor, Reservation, Schedule

DEFAULT_ADMIN_PHONE = "628123456789"

DAY_LABELS = {
    "senin": "Senin",
    "selasa": "Selasa",
    "rabu": "Rabu",
    "kamis": "Kamis",
    "jumat": "Jumat",
    "sabtu": "Sabtu",
    "minggu": "Minggu",
}
_DAY_ALIASES = {
    "monday": "senin",
    "tuesday": "selasa",
    "wednesday": "rabu",
    "thursday": "kamis",
    "friday": "jumat",
    "jum'at": "jumat",
    "saturday": "sabtu",
    "sunday": "minggu",
    "ahad": "minggu",
}
# index = date.weekday()
WEEKDAY_NAMES = ("Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu")
MONTH_NAMES = (
    "Januari",
    "Februari",
    "Maret",
    "April",
    "Mei",
    "Juni",
    "Juli",
    "Agustus",
    "September",
    "Oktober",
    "November",
    "Desember",
)

RETURN_HINT = "Ketik *BATAL* atau *MENU* untuk kembali."


def format_long_date(value: date) -> str:
    return f"{WEEKDAY_NAMES[value.weekday()]}, {value.day} {MONTH_NAMES[value.month - 1]} {value.year}"


def format_short_date(value: date | str) -> str:
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value)
        except ValueError:
            return value
    return f"{value.day}/{value.month}/{value.year}"


def format_schedule_lines(schedule: Schedule) -> list[str]:
    """Render ``{"senin": ["08:00", "12:00"]}`` as ``• Senin: 08:00 - 12:00``, Monday first."""
    order = list(DAY_LABELS)
    entries: list[tuple[int, str, list[str]]] = []
    for position, (raw_day, hours) in enumerate(schedule.items()):
        key = str(raw_day).strip().lower()
        key = _DAY_ALIASES.get(key, key)
        rank = order.index(key) if key in DAY_LABELS else len(order) + position
        label = DAY_LABELS.get(key, str(raw_day).strip().capitalize())
        entries.append((rank, label, list(hours or [])))

    lines: list[str] = []
    for _, label, hours in sorted(entries, key=lambda entry: entry[0]):
        if len(hours) >= 2:
            lines.append(f"• {label}: {hours[0]} - {hours[1]}")
        elif hours:
            lines.append(f"• {label}: {hours[0]}")
        else:
            lines.append(f"• {label}: Libur")
    return lines


def build_welcome_message() -> str:
    return (
        "🏥 *Selamat Datang di Bot Reservasi Klinik*\n"
        "\n"
        "Silakan pilih menu:\n"
        "1️⃣ Ketik *DAFTAR* - Pendaftaran pasien baru\n"
        "2️⃣ Ketik *JADWAL* - Lihat jadwal poli\n"
        "3️⃣ Ketik *JADWAL DOKTER* - Lihat jadwal dokter\n"
        "4️⃣ Ketik *RESERVASI* - Buat reservasi\n"
        "5️⃣ Ketik *CEK ANTRIAN* - Cek status antrian\n"
        "6️⃣ Ketik *BATAL* - Batalkan reservasi\n"
        "7️⃣ Ketik *BANTUAN* - Bantuan\n"
        "\n"
        "Ketik menu yang diinginkan."
    )


def build_personal_welcome_message(name: str) -> str:
    return f"Halo *{name}*! 👋\n\n{build_welcome_message()}"


def build_help_message(admin_phone: str | None = None) -> str:
    phone = (admin_phone or "").strip() or DEFAULT_ADMIN_PHONE
    return (
        "📖 *Panduan Penggunaan Bot*\n"
        "\n"
        "*Menu Utama:*\n"
        "• DAFTAR - Daftar sebagai pasien baru\n"
        "• JADWAL - Lihat jadwal praktik poli\n"
        "• JADWAL DOKTER - Lihat jadwal praktik dokter\n"
        "• RESERVASI - Buat reservasi/janji\n"
        "• CEK ANTRIAN - Cek status antrian Anda\n"
        "• BATAL - Batalkan reservasi\n"
        "\n"
        "*Format Pendaftaran:*\n"
        "Nama#NIK#TanggalLahir\n"
        "\n"
        "*Contoh:*\n"
        "Budi Santoso#1234567890123456#1990-05-15\n"
        "\n"
        "*Bantuan:*\n"
        f"Hubungi admin: wa.me/{phone}"
    )


def build_error_message(message: str) -> str:
    return f"❌ *Error*\n\n{message}\n\nKetik *BANTUAN* untuk panduan."


def build_generic_error_message() -> str:
    return build_error_message("Terjadi kesalahan. Silakan coba lagi.")


def build_process_cancelled_message() -> str:
    return "❌ Proses dibatalkan.\n\nKetik *MENU* untuk kembali ke menu utama."


def build_invalid_selection_message(option_count: int) -> str:
    return build_error_message(f"Pilihan tidak valid. Balas dengan angka 1-{option_count}.")


def build_not_registered_message(for_reservation: bool = False) -> str:
    if for_reservation:
        return build_error_message("Anda belum terdaftar.\n\nKetik *DAFTAR* untuk mendaftar terlebih dahulu.")
    return build_error_message("Anda belum terdaftar.\n\nKetik *DAFTAR* untuk mendaftar.")


def build_registration_prompt_message() -> str:
    return (
        "📝 *Pendaftaran Pasien Baru*\n"
        "\n"
        "Silakan kirim data Anda dengan format:\n"
        "*Nama#NIK#Tanggal Lahir (YYYY-MM-DD)*\n"
        "\n"
        "Contoh:\n"
        "_Budi Santoso#1234567890123456#1990-05-15_"
    )


def build_registration_format_error_message() -> str:
    return build_error_message(
        "Format tidak valid!\n"
        "\n"
        "Gunakan format:\n"
        "*Nama#NIK#Tanggal Lahir*\n"
        "\n"
        "Contoh: Budi Santoso#1234567890123456#1990-05-15"
    )


def build_registration_success_message(name: str, nik: str) -> str:
    return (
        "✅ *Pendaftaran Berhasil!*\n"
        "\n"
        f"👤 Nama: *{name}*\n"
        f"🆔 NIK: {nik}\n"
        "\n"
        "Anda sekarang dapat membuat reservasi.\n"
        "Ketik *RESERVASI* untuk membuat janji."
    )


def build_already_registered_message(name: str, nik: str) -> str:
    return (
        "✅ Anda sudah terdaftar!\n"
        "\n"
        f"👤 Nama: *{name}*\n"
        f"🆔 NIK: {nik}\n"
        "\n"
        "Ketik *RESERVASI* untuk membuat janji."
    )


def build_duplicate_nik_message() -> str:
    return build_error_message("NIK sudah terdaftar. Hubungi admin jika Anda merasa ini adalah kesalahan.")


def build_no_departments_message() -> str:
    return "📋 Belum ada data poli. Silakan hubungi admin."


def build_no_doctors_message(for_reservation: bool = False) -> str:
    if for_reservation:
        return "📋 Belum ada data dokter tersedia. Silakan hubungi admin."
    return "📋 Belum ada data dokter. Silakan hubungi admin."


def build_department_list_message(departments: Sequence[Department]) -> str:
    lines = [f"{idx}. *{item.name}*" for idx, item in enumerate(departments, start=1)]
    return (
        "🏥 *Daftar Poli*\n"
        "\n"
        + "\n".join(lines)
        + "\n\nBalas dengan *angka* untuk melihat jadwal poli.\n"
        + RETURN_HINT
    )


def build_doctor_list_message(doctors: Sequence[Doctor]) -> str:
    lines = [f"{idx}. *{item.name}* ({item.specialty})" for idx, item in enumerate(doctors, start=1)]
    return "📋 *Daftar Dokter*\n\n" + "\n".join(lines) + "\n\nBalas dengan *angka* untuk memilih dokter."


def build_department_schedule_message(department: Department) -> str:
    lines = [f"🏥 *{department.name}*"]
    if department.description:
        lines.append(department.description)
    lines.append("")
    lines.append("📅 *Jadwal Praktik:*")
    lines.extend(format_schedule_lines(department.schedule) or ["Jadwal belum tersedia."])
    lines.append("")
    lines.append("Ketik *RESERVASI* untuk membuat janji.")
    return "\n".join(lines)


def build_doctor_schedule_message(doctor: Doctor) -> str:
    lines = [f"👨‍⚕️ *{doctor.name}*", f"🩺 {doctor.specialty}", "", "📅 *Jadwal Praktik:*"]
    lines.extend(format_schedule_lines(doctor.schedule) or ["Jadwal belum tersedia."])
    lines.append("")
    lines.append("Ketik *RESERVASI* untuk membuat janji.")
    return "\n".join(lines)


def build_date_options_message(doctor_name: str, dates: Sequence[date]) -> str:
    options = "\n".join(f"{idx}. {format_long_date(value)}" for idx, value in enumerate(dates, start=1))
    return (
        f"👨‍⚕️ Dokter: *{doctor_name}*\n"
        "\n"
        f"📅 Pilih tanggal:\n{options}\n"
        "\n"
        "Balas dengan *angka* untuk memilih tanggal.\n"
        + RETURN_HINT
    )


def build_time_options_message(reservation_date: date, time_slots: Sequence[str]) -> str:
    options = "\n".join(f"{idx}. {slot}" for idx, slot in enumerate(time_slots, start=1))
    return (
        f"📅 Tanggal: *{format_long_date(reservation_date)}*\n"
        "\n"
        f"🕐 Pilih waktu:\n{options}\n"
        "\n"
        "Balas dengan *angka* untuk memilih waktu.\n"
        + RETURN_HINT
    )


def build_reservation_success_message(
    doctor_name: str,
    reservation_date: date,
    reservation_time: str,
    queue_number: str,
) -> str:
    return (
        "✅ *Reservasi Berhasil!*\n"
        "\n"
        f"👨‍⚕️ Dokter: *{doctor_name}*\n"
        f"📅 Tanggal: {format_long_date(reservation_date)}\n"
        f"🕐 Waktu: {reservation_time}\n"
        f"🎫 Nomor Antrian: *{queue_number}*\n"
        "\n"
        "Harap datang 15 menit sebelum jadwal.\n"
        "Bawa KTP asli saat kunjungan.\n"
        "\n"
        "Ketik *CEK ANTRIAN* untuk melihat status."
    )


def build_reservation_error_message() -> str:
    return build_error_message("Terjadi kesalahan saat membuat reservasi. Silakan coba lagi.")


def build_no_active_reservations_message() -> str:
    return "📭 Tidak ada reservasi aktif.\n\nKetik *RESERVASI* untuk membuat janji."


def build_active_reservations_message(reservations: Sequence[Reservation]) -> str:
    blocks: list[str] = []
    for idx, item in enumerate(reservations, start=1):
        lines = [f"{idx}. 🎫 *{item.queue_number}*"]
        if item.doctor_name:
            lines.append(f"   👨‍⚕️ {item.doctor_name}")
        lines.append(f"   📅 {format_short_date(item.reservation_date)}")
        lines.append(f"   🕐 {item.reservation_time}")
        lines.append(f"   📌 Status: {item.status.value}")
        blocks.append("\n".join(lines))
    return "📋 *Reservasi Aktif Anda:*\n\n" + "\n\n".join(blocks)


def build_no_cancellable_reservations_message() -> str:
    return "📭 Tidak ada reservasi aktif untuk dibatalkan."


def build_cancel_options_message(reservations: Sequence[Reservation]) -> str:
    lines = []
    for idx, item in enumerate(reservations, start=1):
        doctor_name = item.doctor_name or "Dokter Jaga"
        lines.append(f"{idx}. 🎫 {item.queue_number} - {doctor_name} ({format_short_date(item.reservation_date)})")
    return (
        "🗑️ *Pilih reservasi yang ingin dibatalkan:*\n"
        "\n"
        + "\n".join(lines)
        + "\n\nBalas dengan *angka* untuk memilih.\n"
        "Ketik *BATAL* untuk membatalkan proses."
    )


def build_cancel_success_message(queue_number: str) -> str:
    return f"✅ Reservasi *{queue_number}* berhasil dibatalkan.\n\nKetik *MENU* untuk kembali ke menu utama."


def build_cancel_error_message() -> str:
    return build_error_message("Terjadi kesalahan saat membatalkan reservasi.")
