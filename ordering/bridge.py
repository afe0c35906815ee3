# -*- coding: utf-8 -*-
"""
工具结果 → 展示卡片（Bridge）。
纯函数：同样的 (工具名, 结果, 调用来源) 总是得到结构相同的卡片（时间戳与耗时除外）。

  R1: search_product + 有匹配（用户发起）      → product_card（仅第一条）
  R5: search_product + 有匹配（AI 推荐发起）   → recommendation_card + 徽标
  R2: calculate_order_total / get_cart + 非空   → receipt_card
  R3: add_to_cart / remove_from_cart 成功       → cart_update
  R4: 其它（无匹配、空车、失败、未知工具）      → None
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .schemas import (
    AddToCartResult,
    Card,
    CardType,
    GetCartResult,
    InvocationSource,
    OrderTotalResult,
    RemoveFromCartResult,
    SearchProductResult,
    ToolName,
    ToolResult,
)

logger = logging.getLogger(__name__)

RECOMMENDATION_BADGE = "Chef's Suggestion"
DEFAULT_LATENCY_BUDGET_MS = 200.0

ANIMATION_DELAY_MS = {
    CardType.PRODUCT_CARD: 0,
    CardType.RECOMMENDATION_CARD: 150,
    CardType.RECEIPT_CARD: 100,
    CardType.CART_UPDATE: 50,
}

TOOL_ALIASES = {
    "search_menu": ToolName.SEARCH_PRODUCT,
    "get_order_summary": ToolName.CALCULATE_ORDER_TOTAL,
}


def _now_ms() -> int:
    return int(time.time() * 1000)


def _card(card_type: CardType, data: dict, badge: Optional[str] = None) -> Card:
    return Card(
        type=card_type,
        data=data,
        timestamp=_now_ms(),
        animation_delay=ANIMATION_DELAY_MS[card_type],
        recommendation_badge=badge,
    )


def _search_rule(result: ToolResult, source: InvocationSource) -> Card | None:
    if not isinstance(result, SearchProductResult) or not result.products:
        return None
    first = result.products[0].model_dump(mode="json", by_alias=True)
    if source == InvocationSource.AI_RECOMMENDATION:
        return _card(CardType.RECOMMENDATION_CARD, first, badge=RECOMMENDATION_BADGE)
    return _card(CardType.PRODUCT_CARD, first)


def _receipt_rule(result: ToolResult, source: InvocationSource) -> Card | None:
    if not isinstance(result, (GetCartResult, OrderTotalResult)) or not result.items:
        return None
    dumped = result.model_dump(mode="json", by_alias=True)
    return _card(
        CardType.RECEIPT_CARD,
        {
            "items": dumped["items"],
            "subtotal": dumped["subtotal"],
            "tax": dumped.get("tax"),
            "total": dumped.get("total"),
            "itemCount": dumped["itemCount"],
        },
    )


def _cart_update_rule(result: ToolResult, source: InvocationSource) -> Card | None:
    if not isinstance(result, (AddToCartResult, RemoveFromCartResult)):
        return None
    action = "added" if isinstance(result, AddToCartResult) else "removed"
    return _card(
        CardType.CART_UPDATE,
        {
            "action": action,
            "item": result.item.model_dump(mode="json", by_alias=True),
            "cartSize": result.cart_size,
            "message": result.message,
        },
    )


_Rule = Callable[[ToolResult, InvocationSource], Optional[Card]]

BRIDGE_RULES: dict[ToolName, _Rule] = {
    ToolName.SEARCH_PRODUCT: _search_rule,
    ToolName.CALCULATE_ORDER_TOTAL: _receipt_rule,
    ToolName.GET_CART: _receipt_rule,
    ToolName.ADD_TO_CART: _cart_update_rule,
    ToolName.REMOVE_FROM_CART: _cart_update_rule,
}


def canonical_tool_name(tool_name: str) -> ToolName | None:
    if tool_name in TOOL_ALIASES:
        return TOOL_ALIASES[tool_name]
    try:
        return ToolName(tool_name)
    except ValueError:
        return None


def bridge(
    tool_name: str,
    tool_result: ToolResult,
    invocation_source: InvocationSource = InvocationSource.USER_QUERY,
    *,
    latency_budget_ms: float = DEFAULT_LATENCY_BUDGET_MS,
) -> Card | None:
    """把一次工具结果映射为卡片；记录自身耗时，超预算只标记不丢弃。"""
    start = time.perf_counter()

    name = canonical_tool_name(tool_name)
    card = BRIDGE_RULES[name](tool_result, invocation_source) if name is not None else None

    if card is not None:
        card.bridge_latency_ms = round((time.perf_counter() - start) * 1000, 2)
        if card.bridge_latency_ms > latency_budget_ms:
            card.over_budget = True
            logger.warning(
                "bridge latency %.2fms over budget %.0fms for %s",
                card.bridge_latency_ms,
                latency_budget_ms,
                tool_name,
            )
    return card
