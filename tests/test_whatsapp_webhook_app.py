from __future__ import annotations

import json
import os
import tempfile
import unittest
from pathlib import Path
from typing import Any
from unittest import mock

from fastapi.testclient import TestClient

from app.config import CONFIG_PATH_ENV, DEFAULT_CONFIG, deep_merge
from app.whatsapp_webhook import create_app, create_app_from_env
from whatsapp.signature import build_webhook_signature
from whatsapp.webhook_handler import WhatsAppWebhookHandler


class _RecordingSender:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def send(self, recipient: str, text: str) -> None:
        self.calls.append((recipient, text))


class WhatsAppWebhookAppTest(unittest.TestCase):
    def setUp(self) -> None:
        self.config: dict[str, Any] = deep_merge(
            DEFAULT_CONFIG,
            {
                "whatsapp": {"enabled": True, "webhook_secret": "secret", "webhook_path": "/hooks/wa"},
                "clinic": {"backend": "memory"},
            },
        )
        self.sender = _RecordingSender()
        handler = WhatsAppWebhookHandler(self.config, sender=self.sender)
        self.client = TestClient(create_app(self.config, handler=handler))

    def test_healthz(self) -> None:
        response = self.client.get("/healthz")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True})

    def test_webhook_routes_to_handler(self) -> None:
        body = json.dumps(
            {
                "event": "messages.upsert",
                "data": {
                    "key": {"remoteJid": "6281234567890@s.whatsapp.net", "fromMe": False},
                    "message": {"conversation": "MENU"},
                },
            }
        ).encode("utf-8")
        response = self.client.post(
            "/hooks/wa",
            content=body,
            headers={"X-Webhook-Signature": build_webhook_signature("secret", body)},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["handled"], 1)
        self.assertIn("Selamat Datang", self.sender.calls[0][1])

    def test_webhook_rejects_bad_signature(self) -> None:
        response = self.client.post("/hooks/wa", content=b"{}", headers={"X-Webhook-Signature": "nope"})
        self.assertEqual(response.status_code, 401)


class CreateAppFromEnvTest(unittest.TestCase):
    def test_reads_config_path_from_env(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text(
                "whatsapp:\n  enabled: false\n  webhook_path: /wa\nclinic:\n  backend: memory\n",
                encoding="utf-8",
            )
            with mock.patch.dict(os.environ, {CONFIG_PATH_ENV: str(path)}):
                client = TestClient(create_app_from_env())
            response = client.post("/wa", content=b"{}")
        self.assertEqual(response.status_code, 503)


if __name__ == "__main__":
    unittest.main()
