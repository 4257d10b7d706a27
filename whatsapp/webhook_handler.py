from __future__ import annotations

import json
import logging
import time
from datetime import date, datetime
from typing import Any, Callable

from clinic.repository_factory import create_clinic_repository
from clinic.repository_interface import ClinicRepositoryProtocol
from conversation.dispatcher import Dispatcher, MessageSender, create_dispatcher
from whatsapp.envelope import extract_inbound_message, normalize_sender_key
from whatsapp.send_client import WhatsAppSendClient
from whatsapp.signature import verify_webhook_signature

logger = logging.getLogger(__name__)

MESSAGES_UPSERT_EVENTS = {"messages.upsert", "messages_upsert"}


class WhatsAppWebhookHandler:
    def __init__(
        self,
        config: dict[str, Any],
        sender: MessageSender | None = None,
        repository: ClinicRepositoryProtocol | None = None,
        dispatcher: Dispatcher | None = None,
        today: Callable[[], date] | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.whatsapp_conf = config.get("whatsapp", {})
        self.conversation_conf = config.get("conversation", {})
        self.enabled = bool(self.whatsapp_conf.get("enabled", False))
        self.webhook_secret = str(self.whatsapp_conf.get("webhook_secret", "") or "").strip()
        allowed = self.whatsapp_conf.get("allowed_numbers", [])
        self.allowed_numbers = {
            normalize_sender_key(str(number))
            for number in (allowed if isinstance(allowed, list) else [])
            if str(number).strip()
        }

        self.sender = sender or WhatsAppSendClient(
            api_base_url=str(self.whatsapp_conf.get("api_base_url", "") or ""),
            api_key=str(self.whatsapp_conf.get("api_key", "") or ""),
            instance_name=str(self.whatsapp_conf.get("instance_name", "") or ""),
            timeout_sec=float(self.whatsapp_conf.get("timeout_sec", 10)),
        )
        if dispatcher is None:
            self.repository = repository or create_clinic_repository(config)
            dispatcher = create_dispatcher(config, self.repository, self.sender, today=today, now=now)
        else:
            self.repository = repository
        self.dispatcher = dispatcher

        self.sweep_interval_seconds = float(self.conversation_conf.get("sweep_interval_seconds", 0) or 0)
        self._last_sweep = time.monotonic()

    def handle(self, body: bytes, signature: str | None) -> tuple[int, dict[str, Any]]:
        if not self.enabled:
            return 503, {"ok": False, "error": "whatsapp.enabled is false"}
        if self.webhook_secret and not verify_webhook_signature(self.webhook_secret, body, signature):
            return 401, {"ok": False, "error": "invalid signature"}

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return 400, {"ok": False, "error": "invalid json payload"}
        if not isinstance(payload, dict):
            return 400, {"ok": False, "error": "payload must be object"}

        self._maybe_sweep()

        handled = 0
        skipped = 0
        errors: list[str] = []
        for envelope in extract_envelopes(payload):
            try:
                if self._handle_envelope(envelope):
                    handled += 1
                else:
                    skipped += 1
            except Exception as exc:  # noqa: BLE001
                logger.exception("envelope-failed")
                errors.append(str(exc))
        return 200, {"ok": len(errors) == 0, "handled": handled, "skipped": skipped, "errors": errors}

    def _handle_envelope(self, envelope: Any) -> bool:
        inbound = extract_inbound_message(envelope)
        if inbound is None:
            return False
        sender_key = normalize_sender_key(inbound.remote_jid)
        if self.allowed_numbers and sender_key not in self.allowed_numbers:
            logger.info("sender-not-allowed sender=%s", sender_key)
            return False
        step = self.dispatcher.on_message(sender_key, inbound.text)
        return step is not None

    def _maybe_sweep(self) -> None:
        if self.sweep_interval_seconds <= 0:
            return
        current = time.monotonic()
        if current - self._last_sweep < self.sweep_interval_seconds:
            return
        self._last_sweep = current
        self.dispatcher.sessions.purge_expired()


def extract_envelopes(payload: dict[str, Any]) -> list[Any]:
    """Message envelopes of an Evolution API ``messages.upsert`` event or a Baileys ``notify`` batch."""
    event = str(payload.get("event", "") or "").strip().lower()
    if event:
        if event not in MESSAGES_UPSERT_EVENTS:
            return []
        data = payload.get("data")
        if isinstance(data, list):
            return list(data)
        return [data] if isinstance(data, dict) else []

    if str(payload.get("type", "") or "").strip().lower() == "notify":
        messages = payload.get("messages")
        return list(messages) if isinstance(messages, list) else []
    return []
