#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试推理服务适配：消息转换、回复解析与失败（异常/超时/空输出）统一为 ReasoningError。
"""
from __future__ import annotations

import asyncio
import os
import sys
import unittest
from dataclasses import replace
from decimal import Decimal
from pathlib import Path
from unittest import mock

_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from ordering.config import DEFAULT_MENU_PATH, MODE_ONLINE, Settings
from ordering.errors import ReasoningError
from ordering.reasoning import GeminiReasoner, extract_text, history_to_messages
from ordering.schemas import ChatTurn
from ordering.tools import llm_tool_specs

SETTINGS = Settings(
    mode=MODE_ONLINE,
    tax_rate=Decimal("0.08875"),
    google_api_key="",
    gemini_model="gemini-2.0-flash",
    llm_timeout_seconds=1.0,
    bridge_latency_budget_ms=200.0,
    session_idle_ttl_seconds=None,
    menu_path=DEFAULT_MENU_PATH,
    log_level="INFO",
)


class FakeChatModel:
    """模拟 ChatGoogleGenerativeAI：bind_tools 记录工具，ainvoke 返回预设消息或抛异常。"""

    def __init__(self, response=None, error: Exception | None = None, delay: float = 0.0) -> None:
        self.response = response
        self.error = error
        self.delay = delay
        self.bound_tools = None
        self.received = None

    def bind_tools(self, tools):
        self.bound_tools = tools
        return self

    async def ainvoke(self, messages):
        self.received = messages
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


def reasoner_with(model: FakeChatModel, settings: Settings = SETTINGS) -> GeminiReasoner:
    r = GeminiReasoner(settings)
    r._llm = model
    return r


class TestHelpers(unittest.TestCase):
    def test_history_to_messages(self) -> None:
        msgs = history_to_messages(
            [ChatTurn(role="user", text="hi"), ChatTurn(role="assistant", text="你好")], "menu"
        )
        self.assertEqual([type(m) for m in msgs], [HumanMessage, AIMessage, HumanMessage])
        self.assertEqual(msgs[-1].content, "menu")

    def test_extract_text(self) -> None:
        self.assertEqual(extract_text("plain"), "plain")
        self.assertEqual(extract_text([{"type": "text", "text": "a"}, "b", {"type": "image"}]), "ab")
        self.assertEqual(extract_text(None), "")


class TestGeminiReasoner(unittest.IsolatedAsyncioTestCase):
    async def test_text_reply_with_system_prompt(self) -> None:
        model = FakeChatModel(AIMessage(content="Welcome! 欢迎光临"))
        reply = await reasoner_with(model).converse([HumanMessage(content="hi")])
        self.assertEqual(reply.kind, "text")
        self.assertEqual(reply.text, "Welcome! 欢迎光临")
        self.assertIsInstance(model.received[0], SystemMessage)
        self.assertIsNone(model.bound_tools)

    async def test_tool_call(self) -> None:
        model = FakeChatModel(AIMessage(
            content="",
            tool_calls=[{"name": "add_to_cart", "args": {"product_id": "fried-rice"}, "id": "call-1"}],
        ))
        reply = await reasoner_with(model).converse([HumanMessage(content="fried rice")], llm_tool_specs())
        self.assertEqual(reply.kind, "tool_use")
        self.assertEqual(reply.tool_name, "add_to_cart")
        self.assertEqual(reply.tool_input, {"product_id": "fried-rice"})
        self.assertEqual(len(model.bound_tools), 5)

    async def test_empty_output_is_error(self) -> None:
        model = FakeChatModel(AIMessage(content=""))
        with self.assertRaises(ReasoningError):
            await reasoner_with(model).converse([HumanMessage(content="hi")])

    async def test_transport_failure_is_error(self) -> None:
        model = FakeChatModel(error=ConnectionError("network down"))
        with self.assertRaises(ReasoningError):
            await reasoner_with(model).converse([HumanMessage(content="hi")])

    async def test_timeout_is_error(self) -> None:
        model = FakeChatModel(AIMessage(content="late"), delay=0.5)
        fast = replace(SETTINGS, llm_timeout_seconds=0.01)
        with self.assertRaises(ReasoningError):
            await reasoner_with(model, fast).converse([HumanMessage(content="hi")])

    async def test_missing_api_key_is_error(self) -> None:
        with mock.patch.dict(os.environ, {"GOOGLE_API_KEY": ""}):
            with self.assertRaises(ReasoningError):
                await GeminiReasoner(SETTINGS).converse([HumanMessage(content="hi")])


if __name__ == "__main__":
    unittest.main()
