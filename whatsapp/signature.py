from __future__ import annotations

import base64
import hashlib
import hmac


def build_webhook_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_webhook_signature(secret: str, body: bytes, signature: str | None) -> bool:
    key = (secret or "").strip()
    received = (signature or "").strip()
    if not key or not received:
        return False
    return hmac.compare_digest(build_webhook_signature(key, body), received)
