# -*- coding: utf-8 -*-
"""
点餐引擎 - 单轮对话状态定义（LangGraph State）。
"""
from __future__ import annotations

import operator
from typing import Annotated, Any, Optional

from typing_extensions import TypedDict

from langgraph.graph.message import add_messages

from .cart import Cart
from .schemas import Card, CartState, ToolResult


# 与 LangGraph 兼容：messages 使用 add_messages 归并，cards 按节点追加
class TurnState(TypedDict, total=False):
    """一轮对话的状态；购物车是会话的实时对象，由编排器在持锁期间传入。"""
    messages: Annotated[list[Any], add_messages]
    message: str                      # 本轮用户原话
    session_id: str
    mode: str                         # online | offline
    cart: Cart
    first_reply: Optional[Any]        # 第一次推理调用的 ReasoningReply
    fallback_reason: Optional[str]    # 推理失败原因；非空时走本地意图匹配
    tool_name: Optional[str]
    tool_result: Optional[ToolResult]
    reply: str
    cards: Annotated[list[Card], operator.add]
    cart_state: Optional[CartState]
    strategy: str                     # text | tool_use | local
