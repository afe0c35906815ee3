# -*- coding: utf-8 -*-
"""
点餐引擎 - 结构化 Schema（Pydantic）。
菜单条目、工具结果（按工具名封闭的联合类型）、展示卡片与一轮对话的请求/响应。
对外 JSON 字段一律 camelCase（nameZh / itemCount / cartState ...），金额内部用 Decimal，序列化为数字。
"""
from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- 菜单（外部只读数据） ----------
class MenuItem(BaseModel):
    """单个菜品；进程生命周期内 id 唯一且稳定。"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="菜品ID，如 kung-pao-chicken")
    name: str = Field(description="英文名")
    name_zh: str = Field(description="中文名")
    description: str = Field(default="", description="英文描述")
    description_zh: str = Field(default="", description="中文描述")
    price: Decimal = Field(ge=0, description="单价（货币单位）")
    category: str = Field(description="品类，如 Poultry")
    image: str = Field(default="", description="图片路径，仅供渲染层使用")
    spice_level: int = Field(default=0, ge=0, le=3, description="辣度 0-3")
    allergens: tuple[str, ...] = Field(default=(), description="过敏原标签")
    is_popular: bool = False
    pairings: tuple[str, ...] = Field(default=(), description="推荐搭配的菜品ID，按顺序")


# ---------- 工具 ----------
class ToolName(str, Enum):
    SEARCH_PRODUCT = "search_product"
    ADD_TO_CART = "add_to_cart"
    REMOVE_FROM_CART = "remove_from_cart"
    GET_CART = "get_cart"
    CALCULATE_ORDER_TOTAL = "calculate_order_total"


class ProductView(CamelModel):
    id: str
    name: str
    name_zh: str
    description: str
    description_zh: str
    price: Money
    category: str
    spice_level: int
    allergens: list[str]
    is_popular: bool

    @classmethod
    def from_menu_item(cls, item: MenuItem) -> "ProductView":
        return cls(
            id=item.id,
            name=item.name,
            name_zh=item.name_zh,
            description=item.description,
            description_zh=item.description_zh,
            price=item.price,
            category=item.category,
            spice_level=item.spice_level,
            allergens=list(item.allergens),
            is_popular=item.is_popular,
        )


class PairingView(CamelModel):
    id: str
    name: str
    name_zh: str
    price: Money


class CartItemView(CamelModel):
    id: str
    name: str
    name_zh: str
    price: Money
    quantity: int


class LineItemView(CartItemView):
    line_total: Money


class SearchProductResult(CamelModel):
    tool: Literal[ToolName.SEARCH_PRODUCT] = ToolName.SEARCH_PRODUCT
    success: Literal[True] = True
    query: str
    products: list[ProductView]
    result_count: int


class AddToCartResult(CamelModel):
    tool: Literal[ToolName.ADD_TO_CART] = ToolName.ADD_TO_CART
    success: Literal[True] = True
    message: str
    item: CartItemView = Field(description="本次加入的菜品与数量")
    cart_size: int = Field(ge=0, description="加入后购物车总份数")
    recommendations: list[PairingView] = Field(default_factory=list, description="最多 2 个搭配推荐")


class RemoveFromCartResult(CamelModel):
    tool: Literal[ToolName.REMOVE_FROM_CART] = ToolName.REMOVE_FROM_CART
    success: Literal[True] = True
    message: str
    item: CartItemView = Field(description="被整行移除的菜品，quantity 为移除的份数")
    cart_size: int = Field(ge=0)


class GetCartResult(CamelModel):
    tool: Literal[ToolName.GET_CART] = ToolName.GET_CART
    success: Literal[True] = True
    items: list[LineItemView]
    item_count: int = Field(ge=0)
    subtotal: Money


class OrderTotalResult(CamelModel):
    tool: Literal[ToolName.CALCULATE_ORDER_TOTAL] = ToolName.CALCULATE_ORDER_TOTAL
    success: Literal[True] = True
    items: list[LineItemView]
    item_count: int = Field(ge=0)
    subtotal: Money
    tax: Money
    tax_rate: str = Field(description="展示用税率，如 8.875%")
    total: Money
    currency: str = "USD"


class ToolFailure(CamelModel):
    """预期内的领域失败（未知菜品、不在购物车、未知工具、参数非法），不抛异常。"""
    tool: str
    success: Literal[False] = False
    error: Literal["unknown_tool", "not_found", "not_in_cart", "invalid_input"]
    message: str


ToolResult = Union[
    SearchProductResult,
    AddToCartResult,
    RemoveFromCartResult,
    GetCartResult,
    OrderTotalResult,
    ToolFailure,
]


# ---------- 展示卡片 ----------
class CardType(str, Enum):
    PRODUCT_CARD = "product_card"
    RECOMMENDATION_CARD = "recommendation_card"
    RECEIPT_CARD = "receipt_card"
    CART_UPDATE = "cart_update"


class InvocationSource(str, Enum):
    USER_QUERY = "user_query"
    AI_RECOMMENDATION = "ai_recommendation"


class Card(CamelModel):
    """一次工具结果对应的展示单元；每轮生成，不持久化。"""
    type: CardType
    data: dict[str, Any]
    timestamp: int = Field(description="生成时间，epoch 毫秒")
    animation_delay: int = Field(default=0, description="渲染层动画延迟提示（毫秒）")
    bridge_latency_ms: float = 0.0
    recommendation_badge: Optional[str] = None
    over_budget: bool = Field(default=False, description="桥接耗时超出预算时为 True，卡片照常返回")


# ---------- 一轮对话 ----------
class ChatTurn(CamelModel):
    role: Literal["user", "assistant"]
    text: str = Field(validation_alias=AliasChoices("text", "content"))


class CartState(CamelModel):
    item_count: int = Field(ge=0)
    total: Money = Field(ge=0, description="含税总价，保留两位小数")


class TurnRequest(CamelModel):
    message: str
    history: list[ChatTurn] = Field(default_factory=list)
    session_id: str = "demo"


class TurnResponse(CamelModel):
    reply: str
    cards: list[Card] = Field(default_factory=list)
    cart_state: CartState
