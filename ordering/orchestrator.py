# -*- coding: utf-8 -*-
"""
对话编排器：校验请求 → 持有会话锁 → 运行单轮状态图 → 组装 {reply, cards, cartState}。
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .cart import summarize_cart
from .cart_store import SessionCartStore
from .config import Settings
from .errors import InvalidTurnRequest
from .graph import build_turn_graph
from .menu_loader import MenuCatalog, load_menu
from .reasoning import GeminiReasoner, Reasoner, history_to_messages
from .schemas import CartState, TurnRequest, TurnResponse
from .state import TurnState

logger = logging.getLogger(__name__)


class ConversationOrchestrator:
    """Runs one conversational turn per request against the session's cart."""

    def __init__(
        self,
        catalog: MenuCatalog,
        store: SessionCartStore,
        settings: Settings,
        reasoner: Optional[Reasoner] = None,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.settings = settings
        self.reasoner = reasoner
        self._graph = build_turn_graph(catalog, reasoner, settings)

    @property
    def mode(self) -> str:
        return self.settings.mode

    async def handle_turn(self, request: TurnRequest) -> TurnResponse:
        """处理一轮对话。消息为空时抛 InvalidTurnRequest，此时不创建会话、不执行任何工具。"""
        message = request.message.strip() if isinstance(request.message, str) else ""
        if not message:
            raise InvalidTurnRequest("Message is required")

        async with self.store.session(request.session_id) as cart:
            initial: TurnState = {
                "messages": history_to_messages(request.history, message),
                "message": message,
                "session_id": request.session_id,
                "mode": self.settings.mode,
                "cart": cart,
                "cards": [],
            }
            final = await self._graph.ainvoke(initial)

        logger.info(
            "session %s turn done via %s (%d card(s), %d item(s))",
            request.session_id,
            final.get("strategy"),
            len(final.get("cards") or []),
            final["cart_state"].item_count,
        )
        return TurnResponse(
            reply=final.get("reply") or "",
            cards=list(final.get("cards") or []),
            cart_state=final["cart_state"],
        )

    def run_turn(self, request: TurnRequest) -> TurnResponse:
        """同步入口（CLI 用）。"""
        return asyncio.run(self.handle_turn(request))

    def cart_state(self, session_id: str) -> CartState:
        return summarize_cart(self.store.get_or_create(session_id), self.settings.tax_rate)


def build_orchestrator(
    settings: Settings,
    reasoner: Optional[Reasoner] = None,
    store: Optional[SessionCartStore] = None,
    catalog: Optional[MenuCatalog] = None,
) -> ConversationOrchestrator:
    """按配置组装编排器；在线模式且未注入推理实现时使用 Gemini。"""
    if catalog is None:
        catalog = load_menu(settings.menu_path)
    if store is None:
        store = SessionCartStore(idle_ttl_seconds=settings.session_idle_ttl_seconds)
    if reasoner is None and not settings.offline:
        reasoner = GeminiReasoner(settings)
    logger.info("ordering engine ready: mode=%s, %d menu item(s)", settings.mode, len(catalog))
    return ConversationOrchestrator(catalog, store, settings, reasoner)
