# -*- coding: utf-8 -*-
"""
工具执行层：五个确定性操作（检索菜品、加入/移出购物车、查看购物车、计算总价），
以及提供给推理服务绑定的工具目录（名称与输入 schema 必须保持一致）。
预期内的领域失败以 ToolFailure 返回，不抛异常。
"""
import logging
from decimal import Decimal
from typing import Any, Callable

from pydantic import BaseModel, Field, ValidationError, field_validator

from .cart import Cart, CartItem, price_cart, round2
from .menu_loader import MenuCatalog
from .schemas import (
    AddToCartResult,
    CartItemView,
    GetCartResult,
    LineItemView,
    MenuItem,
    OrderTotalResult,
    PairingView,
    ProductView,
    RemoveFromCartResult,
    SearchProductResult,
    ToolFailure,
    ToolName,
    ToolResult,
)

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 2

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": ToolName.SEARCH_PRODUCT.value,
        "description": (
            "Search the restaurant menu for dishes matching a query. Supports English and Chinese names. "
            "Returns matching menu items with prices, descriptions, and details."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search query — dish name in English or Chinese, or category name",
                },
                "language": {
                    "type": "string",
                    "enum": ["en", "zh", "auto"],
                    "description": "Language hint for the query. Default: auto",
                },
            },
            "required": ["query"],
        },
    },
    {
        "name": ToolName.ADD_TO_CART.value,
        "description": "Add a menu item to the customer's cart by product ID and quantity.",
        "input_schema": {
            "type": "object",
            "properties": {
                "product_id": {"type": "string", "description": "The menu item ID to add"},
                "quantity": {"type": "number", "description": "How many to add. Default: 1"},
            },
            "required": ["product_id"],
        },
    },
    {
        "name": ToolName.REMOVE_FROM_CART.value,
        "description": "Remove a menu item from the customer's cart by product ID.",
        "input_schema": {
            "type": "object",
            "properties": {
                "product_id": {"type": "string", "description": "The menu item ID to remove"},
            },
            "required": ["product_id"],
        },
    },
    {
        "name": ToolName.GET_CART.value,
        "description": "Retrieve the current contents of the customer's shopping cart.",
        "input_schema": {"type": "object", "properties": {}},
    },
    {
        "name": ToolName.CALCULATE_ORDER_TOTAL.value,
        "description": "Calculate the order total including subtotal, tax (8.875%), and grand total.",
        "input_schema": {"type": "object", "properties": {}},
    },
]


def llm_tool_specs() -> list[dict[str, Any]]:
    """转换为 LangChain bind_tools 接受的函数声明格式。"""
    return [
        {"name": t["name"], "description": t["description"], "parameters": t["input_schema"]}
        for t in TOOL_DEFINITIONS
    ]


# ---------- 输入校验 ----------
class SearchProductInput(BaseModel):
    query: str = ""
    language: str = "auto"


class AddToCartInput(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: int = 1

    @field_validator("quantity", mode="before")
    @classmethod
    def _default_quantity(cls, v: Any) -> Any:
        # 缺省或 0 视为 1
        return v or 1

    @field_validator("quantity")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("quantity must be a positive integer")
        return v


class RemoveFromCartInput(BaseModel):
    product_id: str = Field(min_length=1)


# ---------- 操作 ----------
def _pairing_views(catalog: MenuCatalog, item: MenuItem) -> list[PairingView]:
    recs = [r for r in catalog.pairings_for(item.id) if r.id != item.id]
    return [
        PairingView(id=r.id, name=r.name, name_zh=r.name_zh, price=r.price)
        for r in recs[:MAX_RECOMMENDATIONS]
    ]


def _line_items(cart: Cart) -> list[LineItemView]:
    return [
        LineItemView(
            id=ci.menu_item.id,
            name=ci.menu_item.name,
            name_zh=ci.menu_item.name_zh,
            price=ci.menu_item.price,
            quantity=ci.quantity,
            line_total=round2(ci.line_total),
        )
        for ci in cart.items
    ]


def search_product(args: SearchProductInput, cart: Cart, catalog: MenuCatalog) -> SearchProductResult:
    products = [ProductView.from_menu_item(it) for it in catalog.search(args.query)]
    return SearchProductResult(query=args.query, products=products, result_count=len(products))


def add_to_cart(args: AddToCartInput, cart: Cart, catalog: MenuCatalog) -> ToolResult:
    item = catalog.get(args.product_id)
    if item is None:
        return ToolFailure(
            tool=ToolName.ADD_TO_CART.value,
            error="not_found",
            message=f'Item "{args.product_id}" not found on menu',
        )
    existing = cart.find(item.id)
    if existing is not None:
        existing.quantity += args.quantity
    else:
        cart.items.append(CartItem(menu_item=item, quantity=args.quantity))
    return AddToCartResult(
        message=f"Added {args.quantity}x {item.name} ({item.name_zh}) to cart",
        item=CartItemView(
            id=item.id, name=item.name, name_zh=item.name_zh, price=item.price, quantity=args.quantity
        ),
        cart_size=cart.unit_count(),
        recommendations=_pairing_views(catalog, item),
    )


def remove_from_cart(args: RemoveFromCartInput, cart: Cart, catalog: MenuCatalog) -> ToolResult:
    row = cart.find(args.product_id)
    if row is None:
        return ToolFailure(
            tool=ToolName.REMOVE_FROM_CART.value,
            error="not_in_cart",
            message=f'Item "{args.product_id}" is not in the cart',
        )
    cart.items.remove(row)
    item = row.menu_item
    return RemoveFromCartResult(
        message=f"Removed {item.name} ({item.name_zh}) from cart",
        item=CartItemView(
            id=item.id, name=item.name, name_zh=item.name_zh, price=item.price, quantity=row.quantity
        ),
        cart_size=cart.unit_count(),
    )


def get_cart(cart: Cart) -> GetCartResult:
    return GetCartResult(
        items=_line_items(cart),
        item_count=cart.unit_count(),
        subtotal=price_cart(cart, Decimal("0")).subtotal,
    )


def calculate_order_total(cart: Cart, tax_rate: Decimal, currency: str = "USD") -> OrderTotalResult:
    totals = price_cart(cart, tax_rate)
    return OrderTotalResult(
        items=_line_items(cart),
        item_count=cart.unit_count(),
        subtotal=totals.subtotal,
        tax=totals.tax,
        tax_rate=f"{tax_rate * 100:.3f}%",
        total=totals.total,
        currency=currency,
    )


# ---------- 分发 ----------
_Handler = Callable[[dict[str, Any], Cart, MenuCatalog, Decimal], ToolResult]

TOOL_HANDLERS: dict[ToolName, _Handler] = {
    ToolName.SEARCH_PRODUCT: lambda raw, cart, catalog, rate: search_product(
        SearchProductInput.model_validate(raw), cart, catalog
    ),
    ToolName.ADD_TO_CART: lambda raw, cart, catalog, rate: add_to_cart(
        AddToCartInput.model_validate(raw), cart, catalog
    ),
    ToolName.REMOVE_FROM_CART: lambda raw, cart, catalog, rate: remove_from_cart(
        RemoveFromCartInput.model_validate(raw), cart, catalog
    ),
    ToolName.GET_CART: lambda raw, cart, catalog, rate: get_cart(cart),
    ToolName.CALCULATE_ORDER_TOTAL: lambda raw, cart, catalog, rate: calculate_order_total(
        cart, rate, catalog.currency
    ),
}


def execute_tool(
    tool_name: str,
    tool_input: dict[str, Any] | None,
    cart: Cart,
    catalog: MenuCatalog,
    tax_rate: Decimal,
) -> ToolResult:
    """执行一个命名工具。未知工具名与非法参数均返回 ToolFailure；其它异常向上抛出。"""
    try:
        name = ToolName(tool_name)
    except ValueError:
        logger.warning("unknown tool requested: %s", tool_name)
        return ToolFailure(tool=str(tool_name), error="unknown_tool", message=f"Unknown tool: {tool_name}")
    try:
        result = TOOL_HANDLERS[name](dict(tool_input or {}), cart, catalog, tax_rate)
    except ValidationError as e:
        logger.info("invalid input for %s: %s", name.value, e.errors())
        return ToolFailure(tool=name.value, error="invalid_input", message=f"Invalid input for {name.value}")
    logger.debug("tool %s -> success=%s", name.value, result.success)
    return result
