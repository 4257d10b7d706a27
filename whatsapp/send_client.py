from __future__ import annotations

import json
import logging
from typing import Any
from urllib import error, parse, request

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 4096


class WhatsAppApiError(RuntimeError):
    pass


class WhatsAppSendClient:
    """Sends plain text through an Evolution-API style WhatsApp bridge."""

    def __init__(
        self,
        api_base_url: str,
        api_key: str,
        instance_name: str,
        timeout_sec: float = 10.0,
    ) -> None:
        self.api_base_url = (api_base_url or "").rstrip("/")
        self.api_key = (api_key or "").strip()
        self.instance_name = (instance_name or "").strip()
        self.timeout_sec = float(timeout_sec)

    def send(self, recipient: str, text: str) -> None:
        if not self.api_base_url:
            raise WhatsAppApiError("whatsapp.api_base_url is required")
        if not self.instance_name:
            raise WhatsAppApiError("whatsapp.instance_name is required")
        number = (recipient or "").strip()
        if not number:
            raise WhatsAppApiError("recipient is empty")
        if not text:
            return

        payload = {"number": number, "text": text[:MAX_TEXT_LENGTH]}
        self._post_json(f"/message/sendText/{parse.quote(self.instance_name, safe='')}", payload)
        logger.debug("message-sent recipient=%s chars=%d", number, len(text))

    def _post_json(self, path: str, payload: dict[str, Any]) -> None:
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        url = f"{self.api_base_url}{path}"
        req = request.Request(url=url, data=data, method="POST")
        req.add_header("Content-Type", "application/json; charset=utf-8")
        if self.api_key:
            req.add_header("apikey", self.api_key)
        try:
            with request.urlopen(req, timeout=self.timeout_sec) as resp:
                status = int(getattr(resp, "status", 200))
                if status >= 400:
                    raise WhatsAppApiError(f"whatsapp api error: status={status}")
        except error.HTTPError as exc:
            body = ""
            try:
                body = exc.read().decode("utf-8", errors="ignore")
            except Exception:  # noqa: BLE001
                pass
            raise WhatsAppApiError(f"whatsapp api error: status={exc.code} body={body}") from exc
        except error.URLError as exc:
            raise WhatsAppApiError(f"whatsapp api connection error: {exc}") from exc


class ConsoleSender:
    """Prints replies instead of sending them; used by the ``chat`` command."""

    def __init__(self, stream: Any = None) -> None:
        self.stream = stream

    def send(self, recipient: str, text: str) -> None:
        print(f"[bot -> {recipient}]\n{text}\n", file=self.stream)
