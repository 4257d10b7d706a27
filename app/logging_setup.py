from __future__ import annotations

import logging
import os
from typing import Any

LOG_LEVEL_ENV = "LOG_LEVEL"


def configure_logging(config: dict[str, Any]) -> None:
    logging_conf = config.get("logging", {})
    level_name = str(os.getenv(LOG_LEVEL_ENV) or logging_conf.get("level", "INFO")).strip().upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format=str(logging_conf.get("format") or "%(asctime)s %(levelname)s %(name)s %(message)s"),
        force=True,
    )
