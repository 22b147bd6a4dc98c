"""
docflow/core/tests/test_config_service.py

Layer precedence and typed sections of ConfigService.
"""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from docflow.core.config.config_service import ConfigService


class TestConfigService(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.machine = self.tmp / "machine.ini"
        self.user = self.tmp / "user.ini"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _service(self, environ=None) -> ConfigService:
        return ConfigService(machine_ini=self.machine, user_ini=self.user, environ=environ or {})

    def test_defaults_are_typed(self) -> None:
        svc = self._service()
        self.assertEqual(svc.render.connect_timeout, 30.0)
        self.assertEqual(svc.render.read_timeout, 60.0)
        self.assertEqual(svc.render.render_timeout, 20.0)
        self.assertTrue(svc.render.enable_local)
        self.assertEqual(svc.render.gotenberg_url, "")
        self.assertEqual(svc.signature.date_format, "%d/%m/%Y")
        self.assertEqual(svc.signature.label_font_size, 7)
        self.assertIsInstance(svc.storage.blob_dir, Path)

    def test_env_overrides_defaults(self) -> None:
        svc = self._service({"DOCFLOW_RENDER__GOTENBERG_URL": "http://gotenberg:3000"})
        self.assertEqual(svc.render.gotenberg_url, "http://gotenberg:3000")
        self.assertEqual(svc.meta_source("Render", "gotenberg_url")["layer"], "env")

    def test_machine_and_user_layers_win_over_env(self) -> None:
        self.machine.write_text("[Render]\nrender_timeout = 5\n", encoding="utf-8")
        self.user.write_text("[Render]\nenable_remote = no\n", encoding="utf-8")
        svc = self._service({"DOCFLOW_RENDER__RENDER_TIMEOUT": "99"})
        self.assertEqual(svc.render.render_timeout, 5.0)
        self.assertFalse(svc.render.enable_remote)
        self.assertEqual(svc.meta_source("Render", "render_timeout")["layer"], "machine")
        self.assertEqual(svc.meta_source("Render", "enable_remote")["layer"], "user")

    def test_get_with_cast(self) -> None:
        svc = self._service()
        self.assertEqual(svc.get("Signature", "signer_font_size", cast=int), 6)
        self.assertIsNone(svc.get("Nope", "missing"))

    def test_reload_picks_up_changes(self) -> None:
        svc = self._service()
        self.machine.write_text("[Signature]\nfinal_suffix = -signed\n", encoding="utf-8")
        svc.reload()
        self.assertEqual(svc.signature.final_suffix, "-signed")


if __name__ == "__main__":
    unittest.main()
