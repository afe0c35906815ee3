#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试运行配置（环境变量 → Settings）。
"""
from __future__ import annotations

import os
import sys
import unittest
from decimal import Decimal
from pathlib import Path
from unittest import mock

_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from ordering.config import DEFAULT_MENU_PATH, MODE_OFFLINE, MODE_ONLINE, load_settings


class TestLoadSettings(unittest.TestCase):
    def load(self, **env):
        with mock.patch.dict(os.environ, env, clear=True):
            return load_settings()

    def test_defaults(self) -> None:
        s = self.load()
        self.assertEqual(s.mode, MODE_ONLINE)
        self.assertFalse(s.offline)
        self.assertEqual(s.tax_rate, Decimal("0.08875"))
        self.assertEqual(s.gemini_model, "gemini-2.0-flash")
        self.assertEqual(s.llm_timeout_seconds, 15.0)
        self.assertEqual(s.bridge_latency_budget_ms, 200.0)
        self.assertIsNone(s.session_idle_ttl_seconds)
        self.assertEqual(s.menu_path, DEFAULT_MENU_PATH)
        self.assertEqual(s.log_level, "INFO")

    def test_offline_mode(self) -> None:
        self.assertTrue(self.load(ORDERING_MODE="Offline").offline)
        self.assertTrue(self.load(DEMO_MODE="true").offline)
        self.assertFalse(self.load(DEMO_MODE="no").offline)

    def test_invalid_mode(self) -> None:
        with self.assertRaises(ValueError):
            self.load(ORDERING_MODE="sometimes")

    def test_tax_rate(self) -> None:
        self.assertEqual(self.load(TAX_RATE="0.1").tax_rate, Decimal("0.1"))
        for bad in ("abc", "-0.1", "1.5"):
            with self.assertRaises(ValueError):
                self.load(TAX_RATE=bad)

    def test_session_ttl(self) -> None:
        self.assertEqual(self.load(SESSION_IDLE_TTL_SECONDS="600").session_idle_ttl_seconds, 600.0)
        self.assertIsNone(self.load(SESSION_IDLE_TTL_SECONDS="0").session_idle_ttl_seconds)

    def test_with_mode(self) -> None:
        s = self.load().with_mode(MODE_OFFLINE)
        self.assertTrue(s.offline)
        with self.assertRaises(ValueError):
            s.with_mode("bogus")

    def test_menu_path_override(self) -> None:
        self.assertEqual(self.load(MENU_PATH="/tmp/menu.json").menu_path, Path("/tmp/menu.json"))


if __name__ == "__main__":
    unittest.main()
