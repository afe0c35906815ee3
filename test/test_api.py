#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试 FastAPI 接口：/api/chat、/api/cart/{session_id}、/api/health（离线模式，无网络）。
"""
from __future__ import annotations

import os
import sys
import unittest
from decimal import Decimal
from pathlib import Path

_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

os.environ.setdefault("ORDERING_MODE", "offline")

from fastapi.testclient import TestClient

from api import create_app
from ordering.cart_store import SessionCartStore
from ordering.config import DEFAULT_MENU_PATH, MODE_OFFLINE, Settings
from ordering.menu_loader import load_menu
from ordering.orchestrator import ConversationOrchestrator


def offline_orchestrator(cls=ConversationOrchestrator) -> ConversationOrchestrator:
    settings = Settings(
        mode=MODE_OFFLINE,
        tax_rate=Decimal("0.08875"),
        google_api_key="",
        gemini_model="gemini-2.0-flash",
        llm_timeout_seconds=1.0,
        bridge_latency_budget_ms=200.0,
        session_idle_ttl_seconds=None,
        menu_path=DEFAULT_MENU_PATH,
        log_level="INFO",
    )
    return cls(load_menu(), SessionCartStore(), settings)


class BrokenOrchestrator(ConversationOrchestrator):
    async def handle_turn(self, request):
        raise RuntimeError("kitchen on fire")


class TestChatApi(unittest.TestCase):
    def setUp(self) -> None:
        self.orchestrator = offline_orchestrator()
        self.client = TestClient(create_app(self.orchestrator))

    def test_order_turn(self) -> None:
        r = self.client.post("/api/chat", json={"message": "I'll have the kung pao chicken", "sessionId": "t1"})
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertIn("Added Kung Pao Chicken", body["reply"])
        self.assertEqual(body["cards"][0]["type"], "product_card")
        self.assertEqual(body["cards"][0]["data"]["nameZh"], "宫保鸡丁")
        self.assertEqual(body["cartState"], {"itemCount": 1, "total": 17.41})

    def test_history_accepts_content_key(self) -> None:
        r = self.client.post("/api/chat", json={
            "message": "checkout",
            "history": [{"role": "user", "content": "hi"}, {"role": "assistant", "text": "Welcome!"}],
        })
        self.assertEqual(r.status_code, 200)
        self.assertIn("Your cart is empty", r.json()["reply"])

    def test_default_session_is_demo(self) -> None:
        self.client.post("/api/chat", json={"message": "I want fried rice"})
        self.assertIn("demo", self.orchestrator.store)

    def test_missing_or_blank_message_is_400(self) -> None:
        for payload in ({}, {"message": ""}, {"message": "   "}, {"message": 42}, {"message": None}):
            r = self.client.post("/api/chat", json={**payload, "sessionId": "t2"})
            self.assertEqual(r.status_code, 400, payload)
            self.assertEqual(r.json(), {"error": "Message is required"})
        self.assertNotIn("t2", self.orchestrator.store)

    def test_malformed_body_is_400(self) -> None:
        r = self.client.post("/api/chat", content=b"not json", headers={"Content-Type": "application/json"})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json(), {"error": "Message is required"})

    def test_invalid_history_names_the_field(self) -> None:
        """message 正常但 history 不合法时，400 指明出错字段而不是说缺 message。"""
        r = self.client.post("/api/chat", json={
            "message": "I want fried rice",
            "history": [{"role": "system", "text": "x"}],
            "sessionId": "t5",
        })
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json(), {"error": "Invalid request field(s): history"})
        self.assertNotIn("t5", self.orchestrator.store)

    def test_invalid_session_id_names_the_field(self) -> None:
        r = self.client.post("/api/chat", json={"message": "hello", "sessionId": 123})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json(), {"error": "Invalid request field(s): sessionId"})

    def test_cart_endpoint(self) -> None:
        self.client.post("/api/chat", json={"message": "add 2 spring rolls", "sessionId": "t3"})
        r = self.client.get("/api/cart/t3")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"sessionId": "t3", "cartState": {"itemCount": 2, "total": 17.4}})

    def test_health(self) -> None:
        r = self.client.get("/api/health")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"status": "ok", "mode": "offline", "menuItems": 16})


class TestChatApiErrors(unittest.TestCase):
    def test_unexpected_error_returns_envelope(self) -> None:
        client = TestClient(create_app(offline_orchestrator(BrokenOrchestrator)))
        r = client.post("/api/chat", json={"message": "hello", "sessionId": "t4"})
        self.assertEqual(r.status_code, 500)
        body = r.json()
        self.assertEqual(body["cards"], [])
        self.assertEqual(body["cartState"], {"itemCount": 0, "total": 0.0})
        self.assertEqual(body["error"], "kitchen on fire")
        self.assertTrue(body["reply"])


if __name__ == "__main__":
    unittest.main()
