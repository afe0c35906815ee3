# -*- coding: utf-8 -*-
"""
加载双语菜单（data/menu.json），为工具执行层提供只读的菜品目录、检索与搭配推荐。
"""
import json
from pathlib import Path

from pydantic import ValidationError

from .config import DEFAULT_MENU_PATH
from .schemas import MenuItem


class MenuCatalog:
    """只读菜单目录：保持菜单文件中的顺序，按 id 索引。"""

    def __init__(
        self,
        items: list[MenuItem],
        shop_name: str = "",
        shop_name_zh: str = "",
        currency: str = "USD",
    ):
        by_id: dict[str, MenuItem] = {}
        for it in items:
            if it.id in by_id:
                raise ValueError(f"菜单中存在重复的菜品ID: {it.id}")
            by_id[it.id] = it
        self._items = tuple(items)
        self._by_id = by_id
        self.shop_name = shop_name
        self.shop_name_zh = shop_name_zh
        self.currency = currency

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._by_id

    @property
    def items(self) -> tuple[MenuItem, ...]:
        return self._items

    def get(self, item_id: str) -> MenuItem | None:
        return self._by_id.get(item_id)

    def search(self, query: str) -> list[MenuItem]:
        """大小写不敏感的子串匹配：id、中英文名、中英文描述、品类。空查询返回全部菜单。"""
        q = (query or "").strip().lower()
        if not q:
            return list(self._items)
        result = []
        for it in self._items:
            fields = (it.id, it.name, it.name_zh, it.description, it.description_zh, it.category)
            if any(q in f.lower() for f in fields):
                result.append(it)
        return result

    def pairings_for(self, item_id: str) -> list[MenuItem]:
        """按静态搭配列表顺序返回推荐菜品；列表中不在菜单里的 id 忽略。"""
        item = self.get(item_id)
        if item is None:
            return []
        return [self._by_id[pid] for pid in item.pairings if pid in self._by_id]

    def popular(self) -> list[MenuItem]:
        return [it for it in self._items if it.is_popular]

    def categories(self) -> list[str]:
        seen: list[str] = []
        for it in self._items:
            if it.category not in seen:
                seen.append(it.category)
        return seen

    def by_category(self, category: str) -> list[MenuItem]:
        c = (category or "").strip().lower()
        return [it for it in self._items if it.category.lower() == c]


def load_menu(path: Path | str | None = None) -> MenuCatalog:
    path = Path(path or DEFAULT_MENU_PATH)
    if not path.exists():
        raise FileNotFoundError(f"菜单文件不存在: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    try:
        items = [MenuItem(**it) for it in data.get("items", [])]
    except ValidationError as e:
        raise ValueError(f"菜单文件格式错误: {path}: {e}") from e
    return MenuCatalog(
        items,
        shop_name=data.get("shop_name", ""),
        shop_name_zh=data.get("shop_name_zh", ""),
        currency=data.get("currency", "USD"),
    )
