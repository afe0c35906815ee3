# -*- coding: utf-8 -*-
"""
推理服务适配：对话历史 + 工具目录 → 「直接回复文本」或「请求调用某个工具」。
默认实现基于 Gemini（llm.get_llm），任何传输失败、超时、缺少密钥或空输出都统一抛 ReasoningError，
由编排图走 fallback 边交给本地意图匹配。
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Protocol, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from .config import Settings
from .errors import ReasoningError
from .schemas import ChatTurn

# llm.py 位于项目根目录，由入口脚本保证 sys.path 包含项目根
from llm import get_llm

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a friendly, helpful voice ordering assistant for a Chinese restaurant. "
    "You speak English and Mandarin Chinese (中文); answer in whichever language the customer uses. "
    "Help customers browse the menu, add or remove dishes, and check out. "
    "When asked for recommendations, suggest popular dishes. "
    "Use the provided tools to look up dishes, change the cart, or calculate totals; never invent prices. "
    "Always mention both the English and Chinese name of a dish. "
    "Keep replies short and conversational, like talking to a real person."
)


@dataclass
class ReasoningReply:
    kind: Literal["text", "tool_use"]
    text: str = ""
    tool_name: Optional[str] = None
    tool_input: dict[str, Any] = field(default_factory=dict)


class Reasoner(Protocol):
    async def converse(
        self,
        messages: Sequence[BaseMessage],
        tools: Optional[list[dict[str, Any]]] = None,
    ) -> ReasoningReply: ...


def history_to_messages(history: Sequence[ChatTurn], message: str) -> list[BaseMessage]:
    """把前端传来的历史与本轮用户消息转换为 LangChain 消息列表。"""
    out: list[BaseMessage] = []
    for turn in history:
        if turn.role == "user":
            out.append(HumanMessage(content=turn.text))
        else:
            out.append(AIMessage(content=turn.text))
    out.append(HumanMessage(content=message))
    return out


def extract_text(content: Any) -> str:
    """AIMessage.content 可能是字符串，也可能是多段内容（dict 或 str）。"""
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and isinstance(block.get("text"), str):
            parts.append(block["text"])
    return "".join(parts)


class GeminiReasoner:
    """Reasoner backed by ChatGoogleGenerativeAI with tool binding and a hard timeout."""

    def __init__(self, settings: Settings, system_prompt: str = SYSTEM_PROMPT) -> None:
        self.settings = settings
        self.system_prompt = system_prompt
        self._llm = None

    def _get_llm(self):
        if self._llm is None:
            try:
                self._llm = get_llm(
                    model=self.settings.gemini_model,
                    api_key=self.settings.google_api_key,
                    temperature=0.3,
                    max_output_tokens=512,
                    timeout=self.settings.llm_timeout_seconds,
                )
            except RuntimeError as e:
                raise ReasoningError(str(e)) from e
        return self._llm

    async def converse(
        self,
        messages: Sequence[BaseMessage],
        tools: Optional[list[dict[str, Any]]] = None,
    ) -> ReasoningReply:
        llm = self._get_llm()
        runnable = llm.bind_tools(tools) if tools else llm
        payload = [SystemMessage(content=self.system_prompt), *messages]
        try:
            resp = await asyncio.wait_for(
                runnable.ainvoke(payload),
                timeout=self.settings.llm_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ReasoningError(
                f"reasoning call timed out after {self.settings.llm_timeout_seconds}s"
            ) from e
        except Exception as e:
            raise ReasoningError(f"reasoning call failed: {e}") from e

        text = extract_text(getattr(resp, "content", ""))
        tool_calls = getattr(resp, "tool_calls", None) or []
        if tool_calls:
            call = tool_calls[0]
            logger.debug("reasoning chose tool %s", call.get("name"))
            return ReasoningReply(
                kind="tool_use",
                text=text,
                tool_name=call.get("name") or "",
                tool_input=dict(call.get("args") or {}),
            )
        if not text.strip():
            raise ReasoningError("reasoning service returned no text and no tool call")
        return ReasoningReply(kind="text", text=text)
