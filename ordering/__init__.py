# -*- coding: utf-8 -*-
"""
双语对话点餐引擎：
工具执行层（购物车与计价） + 展示卡片桥接 + LangGraph 单轮编排（Gemini 推理，本地意图匹配兜底）。
"""
from .bridge import BRIDGE_RULES, bridge
from .cart import Cart, CartItem, price_cart, summarize_cart
from .cart_store import SessionCartStore
from .config import Settings, load_settings
from .errors import InvalidTurnRequest, OrderingError, ReasoningError
from .intent_matcher import LocalIntentMatcher, classify
from .menu_loader import MenuCatalog, load_menu
from .orchestrator import ConversationOrchestrator, build_orchestrator
from .reasoning import GeminiReasoner, ReasoningReply
from .schemas import Card, CartState, InvocationSource, MenuItem, ToolName, TurnRequest, TurnResponse
from .state import TurnState
from .tools import TOOL_DEFINITIONS, execute_tool

__all__ = [
    "BRIDGE_RULES",
    "bridge",
    "Cart",
    "CartItem",
    "price_cart",
    "summarize_cart",
    "SessionCartStore",
    "Settings",
    "load_settings",
    "OrderingError",
    "ReasoningError",
    "InvalidTurnRequest",
    "LocalIntentMatcher",
    "classify",
    "MenuCatalog",
    "load_menu",
    "ConversationOrchestrator",
    "build_orchestrator",
    "GeminiReasoner",
    "ReasoningReply",
    "Card",
    "CartState",
    "InvocationSource",
    "MenuItem",
    "ToolName",
    "TurnRequest",
    "TurnResponse",
    "TurnState",
    "TOOL_DEFINITIONS",
    "execute_tool",
]
