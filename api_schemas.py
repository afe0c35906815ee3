# -*- coding: utf-8 -*-
"""FastAPI 请求/响应模型（点餐引擎 Web API）。"""
from typing import Any, Optional

from pydantic import Field

from ordering.schemas import CamelModel, CartState, ChatTurn, TurnRequest, TurnResponse


class ChatRequest(CamelModel):
    """message 先按任意值接收，由路由统一给出「Message is required」的 400。"""
    message: Optional[Any] = None
    history: list[ChatTurn] = Field(default_factory=list)
    session_id: str = "demo"

    def to_turn_request(self) -> TurnRequest:
        return TurnRequest(message=self.message, history=self.history, session_id=self.session_id)


class ChatErrorResponse(TurnResponse):
    """500 时仍返回结构完整的回合响应，附带错误说明。"""
    error: str


class CartResponse(CamelModel):
    session_id: str
    cart_state: CartState


class HealthResponse(CamelModel):
    status: str = "ok"
    mode: str
    menu_items: int
