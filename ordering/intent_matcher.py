# -*- coding: utf-8 -*-
"""
本地意图匹配（离线模式 / 推理服务失败时的兜底）。
纯关键词 + 正则，无模型：浏览菜单 → 菜品直配 → 下单/移除意图 → 组合决策 → 结账/购物车 → 帮助。
每个分支最后都从实时购物车重新计算件数与含税总价。
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable

from .bridge import DEFAULT_LATENCY_BUDGET_MS, bridge
from .cart import Cart, summarize_cart
from .menu_loader import MenuCatalog
from .schemas import (
    AddToCartResult,
    Card,
    CartState,
    GetCartResult,
    InvocationSource,
    OrderTotalResult,
    ProductView,
    RemoveFromCartResult,
    SearchProductResult,
    ToolName,
    ToolResult,
)
from .tools import execute_tool

logger = logging.getLogger(__name__)

# ---------- 关键词表（顺序即优先级） ----------
BROWSE_KEYWORDS = ("menu", "what do you have", "browse", "菜单")

# 中英文关键词 -> 菜品ID；按表顺序扫描，第一个包含命中的胜出
DISH_KEYWORDS: list[tuple[str, str]] = [
    ("general tso", "general-tsos"),
    ("kung pao", "kung-pao-chicken"),
    ("宫保鸡丁", "kung-pao-chicken"),
    ("左宗棠", "general-tsos"),
    ("orange chicken", "orange-chicken"),
    ("陈皮鸡", "orange-chicken"),
    ("fried rice", "fried-rice"),
    ("炒饭", "fried-rice"),
    ("lo mein", "shrimp-lo-mein"),
    ("捞面", "shrimp-lo-mein"),
    ("pad thai", "pad-thai"),
    ("炒河粉", "pad-thai"),
    ("spring roll", "spring-rolls"),
    ("春卷", "spring-rolls"),
    ("wonton", "wonton-soup"),
    ("馄饨", "wonton-soup"),
    ("hot and sour", "hot-sour-soup"),
    ("酸辣汤", "hot-sour-soup"),
    ("miso", "miso-soup"),
    ("味噌", "miso-soup"),
    ("beef", "beef-broccoli"),
    ("牛肉", "beef-broccoli"),
    ("ma po", "mapo-tofu"),
    ("mapo", "mapo-tofu"),
    ("tofu", "mapo-tofu"),
    ("麻婆豆腐", "mapo-tofu"),
    ("duck", "peking-duck"),
    ("烤鸭", "peking-duck"),
    ("mango", "mango-sticky-rice"),
    ("芒果", "mango-sticky-rice"),
    ("crab rangoon", "crab-rangoon"),
    ("蟹角", "crab-rangoon"),
    ("sweet and sour", "sweet-sour-pork"),
    ("咕噜肉", "sweet-sour-pork"),
]

RECOMMEND_KEYWORDS = ("recommend", "suggest", "推荐")
RECOMMEND_QUERY = "chicken"

# 对原始消息（未转小写）匹配
ORDER_PATTERNS = [
    re.compile(r"i'?ll have", re.I),
    re.compile(r"i want", re.I),
    re.compile(r"i'?d like", re.I),
    re.compile(r"add", re.I),
    re.compile(r"order", re.I),
    re.compile(r"give me", re.I),
    re.compile(r"我要"),
    re.compile(r"给我"),
    re.compile(r"来一个"),
    re.compile(r"来一份"),
]

# 明确的移除动词：出现即视为移除
REMOVE_PATTERNS = [
    re.compile(r"\bremove\b", re.I),
    re.compile(r"\btake\s+(?:off|out)\b", re.I),
    re.compile(r"\bcancel\b", re.I),
    re.compile(r"\bdelete\b", re.I),
    re.compile(r"去掉"),
    re.compile(r"删掉"),
    re.compile(r"取消"),
]

# 否定说法（「不要辣」「don't want it spicy」）只在没有下单意图时才算移除
SOFT_REMOVE_PATTERNS = [
    re.compile(r"\bdon'?t want\b", re.I),
    re.compile(r"不要"),
]

CHECKOUT_KEYWORDS = ("total", "checkout", "check out", "结账", "买单", "多少钱")
CART_KEYWORDS = ("cart", "my order", "购物车", "我的订单")

# ---------- 数量 ----------
# 英文数字不能紧跟在字母/数字/小数点/$ 之后（排除 someone、$15.99）
_NUM = (
    r"(?:(?<![a-z0-9.$])(\d{1,2}|one|two|three|four|five|six|seven|eight|nine|ten)(?![a-z0-9.])"
    r"|([一二两三四五六七八九十]))"
)
_MEASURE = r"(?:份|个|碗|盘|碟|只)"
# 紧挨在菜名关键词之前：「add 2 spring rolls」「two orders of」「我要两份宫保鸡丁」
_QTY_BEFORE_DISH_RE = re.compile(
    _NUM + r"\s*(?:x\s*)?(?:" + _MEASURE + r"|orders?\s+of\s+)?\s*(?:the\s+)?$"
)
# 数字 + 量词，位置不限：「宫保鸡丁2份」「来三碗酸辣汤」
_QTY_MEASURE_RE = re.compile(_NUM + r"\s*" + _MEASURE)
_QTY_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}
_ZH_NUMERALS = {
    "一": 1, "二": 2, "两": 2, "三": 3, "四": 4, "五": 5,
    "六": 6, "七": 7, "八": 8, "九": 9, "十": 10,
}


def _qty_value(m: re.Match) -> int:
    token = m.group(1) or m.group(2)
    if token.isdigit():
        return int(token)
    return _QTY_WORDS.get(token) or _ZH_NUMERALS[token]


def parse_quantity(message: str, dish_keyword: str | None = None) -> int:
    """只认紧挨菜名前的数量或带量词的数量；「table 12」之类的零散数字不算，解析不到返回 1。"""
    text = (message or "").lower()
    candidates = []
    if dish_keyword:
        idx = text.find(dish_keyword)
        if idx > 0:
            candidates.append(_QTY_BEFORE_DISH_RE.search(text[:idx]))
    candidates.append(_QTY_MEASURE_RE.search(text))
    for m in candidates:
        if m is not None and _qty_value(m) > 0:
            return _qty_value(m)
    return 1


# ---------- 意图 ----------
class IntentKind(str, Enum):
    BROWSE = "browse"
    RECOMMEND = "recommend"
    ORDER = "order"
    REMOVE = "remove"
    LOOKUP = "lookup"
    CHECKOUT = "checkout"
    CART = "cart"
    HELP = "help"


@dataclass(frozen=True)
class Intent:
    kind: IntentKind
    product_id: str | None = None
    quantity: int = 1


def match_dish_keyword(text: str) -> tuple[str, str] | None:
    """返回 (命中的关键词, 菜品ID)。"""
    t = (text or "").lower()
    for kw, product_id in DISH_KEYWORDS:
        if kw in t:
            return kw, product_id
    return None


def match_dish(text: str) -> str | None:
    hit = match_dish_keyword(text)
    return hit[1] if hit else None


def is_ordering(message: str) -> bool:
    return any(p.search(message) for p in ORDER_PATTERNS)


def is_removal(message: str) -> bool:
    """明确移除动词直接算；「不要」「don't want」只在没有下单意图时才算。"""
    if any(p.search(message) for p in REMOVE_PATTERNS):
        return True
    return not is_ordering(message) and any(p.search(message) for p in SOFT_REMOVE_PATTERNS)


def classify(message: str) -> Intent:
    """确定性地把一句话归到一个意图。"""
    msg = (message or "").lower()

    if any(k in msg for k in BROWSE_KEYWORDS):
        return Intent(IntentKind.BROWSE)

    hit = match_dish_keyword(msg)
    if hit is None and any(k in msg for k in RECOMMEND_KEYWORDS):
        return Intent(IntentKind.RECOMMEND)

    if hit is not None:
        keyword, product_id = hit
        if is_removal(message):
            return Intent(IntentKind.REMOVE, product_id)
        if is_ordering(message):
            return Intent(IntentKind.ORDER, product_id, parse_quantity(message, keyword))
        return Intent(IntentKind.LOOKUP, product_id)

    if any(k in msg for k in CHECKOUT_KEYWORDS):
        return Intent(IntentKind.CHECKOUT)
    if any(k in msg for k in CART_KEYWORDS):
        return Intent(IntentKind.CART)
    return Intent(IntentKind.HELP)


@dataclass
class MatcherOutcome:
    reply: str
    cards: list[Card]
    cart_state: CartState
    intent: Intent
    tools_called: list[str] = field(default_factory=list)


def _join_names(parts: list[str]) -> str:
    if len(parts) <= 1:
        return "".join(parts)
    return ", ".join(parts[:-1]) + ", and " + parts[-1]


def _dish_label(p: ProductView) -> str:
    return f"{p.name} ({p.name_zh} ${p.price})"


class LocalIntentMatcher:
    """Keyword-driven resolver that runs tools directly against the session cart."""

    def __init__(
        self,
        catalog: MenuCatalog,
        tax_rate: Decimal,
        latency_budget_ms: float = DEFAULT_LATENCY_BUDGET_MS,
    ) -> None:
        self.catalog = catalog
        self.tax_rate = tax_rate
        self.latency_budget_ms = latency_budget_ms
        self._handlers: dict[IntentKind, Callable[[Intent, Cart, "_Turn"], str]] = {
            IntentKind.BROWSE: self._browse,
            IntentKind.RECOMMEND: self._recommend,
            IntentKind.ORDER: self._order,
            IntentKind.REMOVE: self._remove,
            IntentKind.LOOKUP: self._lookup,
            IntentKind.CHECKOUT: self._checkout,
            IntentKind.CART: self._show_cart,
            IntentKind.HELP: self._help,
        }

    def respond(self, message: str, cart: Cart) -> MatcherOutcome:
        intent = classify(message)
        turn = _Turn(self, cart)
        reply = self._handlers[intent.kind](intent, cart, turn)
        logger.info("local intent %s (product=%s, tools=%s)", intent.kind.value, intent.product_id, turn.tools_called)
        return MatcherOutcome(
            reply=reply,
            cards=turn.cards,
            cart_state=summarize_cart(cart, self.tax_rate),
            intent=intent,
            tools_called=turn.tools_called,
        )

    # ---------- 各意图 ----------
    def _browse(self, intent: Intent, cart: Cart, turn: "_Turn") -> str:
        turn.run(ToolName.SEARCH_PRODUCT, {"query": ""})
        cats = [c.lower() for c in self.catalog.categories()]
        return (
            "Welcome to our restaurant! 欢迎光临！Here are some of our popular dishes. "
            f"We have {_join_names(cats)}. What catches your eye?"
        )

    def _recommend(self, intent: Intent, cart: Cart, turn: "_Turn") -> str:
        result = turn.run(ToolName.SEARCH_PRODUCT, {"query": RECOMMEND_QUERY}, InvocationSource.AI_RECOMMENDATION)
        products = result.products if isinstance(result, SearchProductResult) else []
        top = [p for p in products if p.is_popular][:3] or products[:3]
        if not top:
            return "Just say \"menu\" and I'll show you what we have! 说「菜单」即可浏览全部菜品。"
        return (
            f"Great question! Our most popular dishes are {_join_names([_dish_label(p) for p in top])}. "
            f"The {top[0].name} is a house favorite. Would you like to try it? 🌶️"
        )

    def _order(self, intent: Intent, cart: Cart, turn: "_Turn") -> str:
        result = turn.run(
            ToolName.ADD_TO_CART,
            {"product_id": intent.product_id, "quantity": intent.quantity},
            with_card=False,
        )
        if not isinstance(result, AddToCartResult):
            return f"Sorry, I couldn't add that: {result.message}. 抱歉，暂时无法下单。"

        turn.run(ToolName.SEARCH_PRODUCT, {"query": intent.product_id})

        item = result.item
        qty = f"{item.quantity}x " if item.quantity > 1 else ""
        rec_text = ""
        if result.recommendations:
            rec = result.recommendations[0]
            rec_text = (
                f" Would you also like {rec.name} ({rec.name_zh}) for ${rec.price}? "
                "It pairs great with your order!"
            )
        return f"Added {qty}{item.name} ({item.name_zh}) to your order! 👍{rec_text}"

    def _remove(self, intent: Intent, cart: Cart, turn: "_Turn") -> str:
        result = turn.run(ToolName.REMOVE_FROM_CART, {"product_id": intent.product_id})
        if isinstance(result, RemoveFromCartResult):
            return f"Removed {result.item.name} ({result.item.name_zh}) from your order. 已为您移除。"
        item = self.catalog.get(intent.product_id or "")
        label = f"{item.name} ({item.name_zh})" if item else "That dish"
        return f"{label} isn't in your cart. 购物车里还没有这道菜。"

    def _lookup(self, intent: Intent, cart: Cart, turn: "_Turn") -> str:
        turn.run(ToolName.SEARCH_PRODUCT, {"query": intent.product_id})
        return "Here's what I found! Would you like to add it to your order?"

    def _checkout(self, intent: Intent, cart: Cart, turn: "_Turn") -> str:
        result = turn.run(ToolName.CALCULATE_ORDER_TOTAL, {})
        if not isinstance(result, OrderTotalResult) or result.item_count == 0:
            return "Your cart is empty! Would you like to see our menu? 您的购物车是空的，要看看菜单吗？"
        return (
            f"Here's your order summary! Your total is ${result.total}. "
            "Would you like to place the order? 🧾"
        )

    def _show_cart(self, intent: Intent, cart: Cart, turn: "_Turn") -> str:
        result = turn.run(ToolName.GET_CART, {})
        if not isinstance(result, GetCartResult) or result.item_count == 0:
            return "Your cart is empty! Would you like to see our menu? 您的购物车是空的，要看看菜单吗？"
        return (
            f"You have {result.item_count} item(s) in your cart, subtotal ${result.subtotal}. "
            "Say \"checkout\" when you're ready! 准备好了就说「结账」。"
        )

    def _help(self, intent: Intent, cart: Cart, turn: "_Turn") -> str:
        return (
            "I'd be happy to help! You can ask about our menu, order dishes by name, or ask for "
            "recommendations. Try saying something like \"I'll have the General Tso's Chicken\" or "
            "\"What do you recommend?\" 有什么可以帮您的吗？"
        )


class _Turn:
    """一次本地回合内的工具调用记录与卡片收集。"""

    def __init__(self, matcher: LocalIntentMatcher, cart: Cart) -> None:
        self._matcher = matcher
        self._cart = cart
        self.cards: list[Card] = []
        self.tools_called: list[str] = []

    def run(
        self,
        tool: ToolName,
        tool_input: dict[str, Any],
        source: InvocationSource = InvocationSource.USER_QUERY,
        with_card: bool = True,
    ) -> ToolResult:
        m = self._matcher
        result = execute_tool(tool.value, tool_input, self._cart, m.catalog, m.tax_rate)
        self.tools_called.append(tool.value)
        if with_card:
            card = bridge(tool.value, result, source, latency_budget_ms=m.latency_budget_ms)
            if card is not None:
                self.cards.append(card)
        return result
