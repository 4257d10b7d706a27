from __future__ import annotations

import json
import tempfile
import unittest
from datetime import date
from pathlib import Path
from typing import Any
from unittest import mock

from clinic.repository import ClinicRepository
from whatsapp.signature import build_webhook_signature
from whatsapp.webhook_handler import WhatsAppWebhookHandler


class _RecordingSender:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def send(self, recipient: str, text: str) -> None:
        self.calls.append((recipient, text))


class WhatsAppWebhookHandlerTest(unittest.TestCase):
    def test_disabled_webhook(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = _build_config(tmp)
            config["whatsapp"]["enabled"] = False
            handler = _build_handler(config)
            status, payload = handler.handle(body=b"{}", signature=None)
            self.assertEqual(status, 503)
            self.assertFalse(payload["ok"])

    def test_handle_invalid_signature(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            handler = _build_handler(_build_config(tmp))
            status, payload = handler.handle(body=b'{"event":"messages.upsert"}', signature="invalid")
            self.assertEqual(status, 401)
            self.assertFalse(payload["ok"])

    def test_handle_invalid_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = _build_config(tmp)
            handler = _build_handler(config)
            body = b"not-json"
            status, _ = handler.handle(body=body, signature=build_webhook_signature("secret", body))
            self.assertEqual(status, 400)

    def test_signature_not_required_without_secret(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = _build_config(tmp)
            config["whatsapp"]["webhook_secret"] = None
            sender = _RecordingSender()
            handler = _build_handler(config, sender)
            status, payload = handler.handle(body=_body("MENU"), signature=None)
            self.assertEqual(status, 200)
            self.assertEqual(payload["handled"], 1)

    def test_handle_help_command_event(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = _build_config(tmp)
            sender = _RecordingSender()
            handler = _build_handler(config, sender)
            body = _body("bantuan")
            status, payload = handler.handle(body=body, signature=build_webhook_signature("secret", body))
            self.assertEqual(status, 200)
            self.assertTrue(payload["ok"])
            self.assertEqual(payload["handled"], 1)
            self.assertEqual(len(sender.calls), 1)
            recipient, text = sender.calls[0]
            self.assertEqual(recipient, "6281234567890")
            self.assertIn("Panduan Penggunaan Bot", text)

    def test_own_and_status_messages_are_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = _build_config(tmp)
            sender = _RecordingSender()
            handler = _build_handler(config, sender)
            payload = {
                "type": "notify",
                "messages": [
                    _envelope("MENU", from_me=True),
                    _envelope("MENU", remote_jid="status@broadcast"),
                    {"key": {"remoteJid": "6281234567890@s.whatsapp.net"}, "message": {"imageMessage": {}}},
                ],
            }
            body = json.dumps(payload).encode("utf-8")
            status, result = handler.handle(body=body, signature=build_webhook_signature("secret", body))
            self.assertEqual(status, 200)
            self.assertEqual(result["handled"], 0)
            self.assertEqual(result["skipped"], 3)
            self.assertEqual(sender.calls, [])

    def test_allowed_numbers_filter(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = _build_config(tmp)
            config["whatsapp"]["allowed_numbers"] = ["6289999999999"]
            sender = _RecordingSender()
            handler = _build_handler(config, sender)
            body = _body("MENU")
            _, result = handler.handle(body=body, signature=build_webhook_signature("secret", body))
            self.assertEqual(result["skipped"], 1)
            self.assertEqual(sender.calls, [])

    def test_envelope_errors_are_collected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = _build_config(tmp)
            handler = _build_handler(config)
            body = json.dumps({"event": "messages.upsert", "data": [_envelope("MENU"), _envelope("HELP")]}).encode()
            with mock.patch.object(handler.dispatcher, "on_message", side_effect=[RuntimeError("boom"), None]):
                with self.assertLogs("whatsapp.webhook_handler", level="ERROR"):
                    status, result = handler.handle(body=body, signature=build_webhook_signature("secret", body))
            self.assertEqual(status, 200)
            self.assertFalse(result["ok"])
            self.assertEqual(result["errors"], ["boom"])
            self.assertEqual(result["skipped"], 1)

    def test_registration_over_webhook_persists_patient(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = _build_config(tmp)
            sender = _RecordingSender()
            handler = _build_handler(config, sender)
            for text in ("DAFTAR", "Budi Santoso#1234567890123456#1990-05-15"):
                body = _body(text)
                handler.handle(body=body, signature=build_webhook_signature("secret", body))
            self.assertIn("Pendaftaran Berhasil", sender.calls[-1][1])
            repository = ClinicRepository(config["clinic"]["sqlite_path"])
            patient = repository.find_patient_by_phone("6281234567890")
            assert patient is not None
            self.assertEqual(patient.name, "Budi Santoso")

    def test_sweep_purges_sessions_when_enabled(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = _build_config(tmp)
            config["conversation"]["sweep_interval_seconds"] = 1
            handler = _build_handler(config)
            handler._last_sweep = 0.0
            with mock.patch.object(handler.dispatcher.sessions, "purge_expired", return_value=0) as purge:
                body = _body("MENU")
                handler.handle(body=body, signature=build_webhook_signature("secret", body))
            purge.assert_called_once()


def _build_handler(config: dict[str, Any], sender: _RecordingSender | None = None) -> WhatsAppWebhookHandler:
    return WhatsAppWebhookHandler(
        config=config,
        sender=sender or _RecordingSender(),
        today=lambda: date(2026, 10, 19),
    )


def _envelope(text: str, remote_jid: str = "6281234567890@s.whatsapp.net", from_me: bool = False) -> dict[str, Any]:
    return {
        "key": {"remoteJid": remote_jid, "fromMe": from_me, "id": "MSG1"},
        "pushName": "Budi",
        "message": {"conversation": text},
    }


def _body(text: str) -> bytes:
    return json.dumps({"event": "messages.upsert", "data": _envelope(text)}).encode("utf-8")


def _build_config(tmp_dir: str) -> dict[str, Any]:
    return {
        "whatsapp": {
            "enabled": True,
            "webhook_secret": "secret",
            "api_base_url": "http://localhost:8080",
            "instance_name": "klinik",
            "timeout_sec": 1,
            "allowed_numbers": [],
        },
        "clinic": {
            "backend": "sqlite",
            "sqlite_path": str(Path(tmp_dir) / "clinic.db"),
            "default_department_id": 1,
        },
        "conversation": {
            "session_ttl_minutes": 5,
            "sweep_interval_seconds": 0,
        },
    }


if __name__ == "__main__":
    unittest.main()
