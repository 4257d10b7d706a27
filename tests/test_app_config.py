from __future__ import annotations

import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from app.config import CONFIG_PATH_ENV, DEFAULT_CONFIG, deep_merge, load_config, resolve_config_path
from app.logging_setup import configure_logging


class ConfigTest(unittest.TestCase):
    def test_missing_file_returns_defaults(self) -> None:
        config = load_config("does-not-exist.yaml")
        self.assertEqual(config, DEFAULT_CONFIG)
        config["clinic"]["backend"] = "memory"
        self.assertEqual(DEFAULT_CONFIG["clinic"]["backend"], "sqlite")

    def test_yaml_overrides_are_deep_merged(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text(
                "clinic:\n  backend: memory\nconversation:\n  session_ttl_minutes: 10\n",
                encoding="utf-8",
            )
            config = load_config(str(path))
        self.assertEqual(config["clinic"]["backend"], "memory")
        self.assertEqual(config["clinic"]["default_department_id"], 1)
        self.assertEqual(config["conversation"]["session_ttl_minutes"], 10)
        self.assertEqual(config["conversation"]["booking_window_days"], 7)

    def test_json_config(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text('{"whatsapp": {"enabled": true}}', encoding="utf-8")
            config = load_config(str(path))
        self.assertTrue(config["whatsapp"]["enabled"])
        self.assertEqual(config["whatsapp"]["webhook_path"], "/webhook/whatsapp")

    def test_deep_merge_replaces_lists(self) -> None:
        merged = deep_merge({"a": {"b": [1, 2], "c": 1}}, {"a": {"b": [3]}})
        self.assertEqual(merged, {"a": {"b": [3], "c": 1}})

    def test_resolve_config_path_uses_env(self) -> None:
        with mock.patch.dict(os.environ, {CONFIG_PATH_ENV: "/etc/klinik.yaml"}):
            self.assertEqual(resolve_config_path(None), "/etc/klinik.yaml")
            self.assertEqual(resolve_config_path("local.yaml"), "local.yaml")


class LoggingSetupTest(unittest.TestCase):
    def tearDown(self) -> None:
        logging.getLogger().setLevel(logging.WARNING)

    def test_log_level_env_overrides_config(self) -> None:
        with mock.patch.dict(os.environ, {"LOG_LEVEL": "debug"}):
            configure_logging({"logging": {"level": "WARNING"}})
        self.assertEqual(logging.getLogger().level, logging.DEBUG)

    def test_unknown_level_falls_back_to_info(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=False):
            os.environ.pop("LOG_LEVEL", None)
            configure_logging({"logging": {"level": "LOUD"}})
        self.assertEqual(logging.getLogger().level, logging.INFO)


if __name__ == "__main__":
    unittest.main()
