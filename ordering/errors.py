# -*- coding: utf-8 -*-
"""点餐引擎异常。领域错误（未知菜品、空购物车）不在此列，它们以 ToolFailure 结果返回。"""


class OrderingError(Exception):
    """Base class for ordering engine errors."""


class ReasoningError(OrderingError):
    """Raised when the remote reasoning service fails, times out or returns nothing usable."""


class InvalidTurnRequest(OrderingError):
    """Raised when a turn request is rejected before any tool runs."""
