from __future__ import annotations

import json
import os
from copy import deepcopy
from pathlib import Path
from typing import Any

import yaml

CONFIG_PATH_ENV = "CLINICBOT_CONFIG_PATH"
DEFAULT_CONFIG_PATH = "config.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "whatsapp": {
        "enabled": False,
        "webhook_path": "/webhook/whatsapp",
        "api_base_url": "http://localhost:8080",
        "api_key": None,
        "instance_name": "klinik",
        "webhook_secret": None,
        "timeout_sec": 10,
        "allowed_numbers": [],
    },
    "clinic": {
        "backend": "sqlite",
        "sqlite_path": "data/clinic/clinic.db",
        "default_department_id": 1,
        "admin_phone": "628123456789",
    },
    "conversation": {
        "session_ttl_minutes": 5,
        "booking_window_days": 7,
        "time_slots": ["08:00", "09:00", "10:00", "11:00", "13:00", "14:00", "15:00", "16:00"],
        "sweep_interval_seconds": 0,
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
    },
}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def resolve_config_path(config_path: str | None = None) -> str:
    return config_path or os.getenv(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)


def load_config(config_path: str | None = None) -> dict[str, Any]:
    if not config_path:
        return deepcopy(DEFAULT_CONFIG)

    path = Path(config_path)
    if not path.exists():
        return deepcopy(DEFAULT_CONFIG)

    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return deepcopy(DEFAULT_CONFIG)

    if path.suffix.lower() == ".json":
        loaded = json.loads(text)
    else:
        loaded = yaml.safe_load(text)
    data = loaded if isinstance(loaded, dict) else {}
    return deep_merge(deepcopy(DEFAULT_CONFIG), data)
