from __future__ import annotations

from dataclasses import dataclass
from typing import Any

STATUS_BROADCAST_JID = "status@broadcast"


@dataclass(slots=True, frozen=True)
class InboundMessage:
    remote_jid: str
    text: str
    message_id: str = ""
    push_name: str = ""


def normalize_sender_key(remote_jid: str) -> str:
    """``6281234@s.whatsapp.net`` / ``6281234:12@s.whatsapp.net`` -> ``6281234``."""
    value = str(remote_jid or "").strip()
    if "@" in value:
        value = value.split("@", 1)[0]
    if ":" in value:
        value = value.split(":", 1)[0]
    return value


def extract_text(message: dict[str, Any] | None) -> str:
    if not isinstance(message, dict):
        return ""
    extended = _as_dict(message.get("extendedTextMessage"))
    buttons = _as_dict(message.get("buttonsResponseMessage"))
    list_reply = _as_dict(_as_dict(message.get("listResponseMessage")).get("singleSelectReply"))
    for value in (
        message.get("conversation"),
        extended.get("text"),
        buttons.get("selectedButtonId"),
        list_reply.get("selectedRowId"),
    ):
        text = str(value or "").strip()
        if text:
            return text
    return ""


def extract_inbound_message(envelope: dict[str, Any]) -> InboundMessage | None:
    """Return the sender and text of a user message, or None for events the bot ignores."""
    if not isinstance(envelope, dict):
        return None
    key = _as_dict(envelope.get("key"))
    remote_jid = str(key.get("remoteJid", "") or "").strip()
    if not remote_jid or remote_jid == STATUS_BROADCAST_JID:
        return None
    if bool(key.get("fromMe", False)):
        return None

    text = extract_text(_as_dict(envelope.get("message")))
    if not text:
        return None
    return InboundMessage(
        remote_jid=remote_jid,
        text=text,
        message_id=str(key.get("id", "") or ""),
        push_name=str(envelope.get("pushName", "") or ""),
    )


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}
