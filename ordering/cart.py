# -*- coding: utf-8 -*-
"""
购物车与计价：每个会话独占一个 Cart，只由工具执行层修改。
金额统一按分位四舍五入（ROUND_HALF_UP）。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from .schemas import CartState, MenuItem

CENT = Decimal("0.01")


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class CartItem:
    menu_item: MenuItem
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.menu_item.price * self.quantity


@dataclass
class Cart:
    """按菜品 id 去重的有序行；同一菜品再次加入时累加数量，数量不会是 0。"""
    items: list[CartItem] = field(default_factory=list)

    def find(self, product_id: str) -> CartItem | None:
        return next((ci for ci in self.items if ci.menu_item.id == product_id), None)

    def unit_count(self) -> int:
        return sum(ci.quantity for ci in self.items)

    def is_empty(self) -> bool:
        return not self.items


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def price_cart(cart: Cart, tax_rate: Decimal) -> OrderTotals:
    """total = round2(subtotal + round2(subtotal × tax_rate))。"""
    subtotal = round2(sum((ci.line_total for ci in cart.items), Decimal("0")))
    tax = round2(subtotal * tax_rate)
    return OrderTotals(subtotal=subtotal, tax=tax, total=round2(subtotal + tax))


def summarize_cart(cart: Cart, tax_rate: Decimal) -> CartState:
    """始终从实时购物车重新计算，不信任任何中间结果。"""
    return CartState(item_count=cart.unit_count(), total=price_cart(cart, tax_rate).total)
