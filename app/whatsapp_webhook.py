from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.config import load_config, resolve_config_path
from app.logging_setup import configure_logging
from whatsapp.webhook_handler import WhatsAppWebhookHandler


def create_app(config: dict[str, Any], handler: WhatsAppWebhookHandler | None = None) -> FastAPI:
    webhook_handler = handler or WhatsAppWebhookHandler(config)
    webhook_path = str(config.get("whatsapp", {}).get("webhook_path", "/webhook/whatsapp"))
    app = FastAPI(title="Klinik WhatsApp Bot", version="0.1.0")

    @app.get("/healthz")
    async def healthz() -> dict[str, Any]:
        return {"ok": True}

    @app.post(webhook_path)
    async def whatsapp_webhook(
        request: Request,
        x_webhook_signature: str | None = Header(default=None),
    ) -> JSONResponse:
        body = await request.body()
        status_code, payload = await run_in_threadpool(webhook_handler.handle, body, x_webhook_signature)
        return JSONResponse(status_code=status_code, content=payload)

    return app


def create_app_from_env() -> FastAPI:
    """Factory for `uvicorn --factory app.whatsapp_webhook:create_app_from_env`.

    Reads the config path from $CLINICBOT_CONFIG_PATH (default config.yaml).
    """
    config = load_config(resolve_config_path())
    configure_logging(config)
    return create_app(config)
