#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试菜单加载、检索与搭配推荐。
"""
from __future__ import annotations

import json
import sys
import tempfile
import unittest
from decimal import Decimal
from pathlib import Path

_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from ordering.config import DEFAULT_MENU_PATH
from ordering.menu_loader import MenuCatalog, load_menu
from ordering.schemas import MenuItem


class TestMenuLoader(unittest.TestCase):
    def setUp(self) -> None:
        if not DEFAULT_MENU_PATH.exists():
            self.skipTest("菜单文件不存在，跳过: data/menu.json")
        self.catalog = load_menu()

    def test_load_menu_16_items(self) -> None:
        self.assertEqual(len(self.catalog), 16, "菜单应包含 16 道菜")
        self.assertEqual(self.catalog.shop_name, "Golden Wok Kitchen")
        self.assertEqual(self.catalog.currency, "USD")

    def test_items_keep_file_order(self) -> None:
        ids = [it.id for it in self.catalog]
        self.assertEqual(ids[0], "spring-rolls")
        self.assertEqual(ids[-1], "mango-sticky-rice")

    def test_price_is_decimal(self) -> None:
        item = self.catalog.get("kung-pao-chicken")
        self.assertIsNotNone(item)
        self.assertEqual(item.price, Decimal("15.99"))
        self.assertEqual(item.name_zh, "宫保鸡丁")

    def test_get_unknown_returns_none(self) -> None:
        self.assertIsNone(self.catalog.get("pizza"))
        self.assertNotIn("pizza", self.catalog)
        self.assertIn("fried-rice", self.catalog)

    def test_search_is_case_insensitive(self) -> None:
        ids = [it.id for it in self.catalog.search("KUNG PAO")]
        self.assertEqual(ids, ["kung-pao-chicken"])

    def test_search_chinese_name(self) -> None:
        ids = [it.id for it in self.catalog.search("宫保")]
        self.assertEqual(ids, ["kung-pao-chicken"])

    def test_search_matches_category(self) -> None:
        ids = {it.id for it in self.catalog.search("soups")}
        self.assertEqual(ids, {"wonton-soup", "hot-sour-soup", "miso-soup"})

    def test_search_empty_query_returns_full_menu(self) -> None:
        self.assertEqual(len(self.catalog.search("")), 16)
        self.assertEqual(len(self.catalog.search("   ")), 16)

    def test_search_no_match(self) -> None:
        self.assertEqual(self.catalog.search("pizza"), [])

    def test_pairings_in_listed_order(self) -> None:
        ids = [it.id for it in self.catalog.pairings_for("kung-pao-chicken")]
        self.assertEqual(ids, ["fried-rice", "hot-sour-soup", "spring-rolls"])

    def test_pairings_empty_and_unknown(self) -> None:
        self.assertEqual(self.catalog.pairings_for("mango-sticky-rice"), [])
        self.assertEqual(self.catalog.pairings_for("pizza"), [])

    def test_categories_and_popular(self) -> None:
        cats = self.catalog.categories()
        self.assertEqual(cats[0], "Appetizers")
        self.assertIn("Desserts", cats)
        self.assertEqual(len(cats), len(set(cats)))
        self.assertTrue(all(it.is_popular for it in self.catalog.popular()))
        self.assertEqual([it.id for it in self.catalog.by_category("poultry")][:1], ["general-tsos"])


class TestMenuLoaderErrors(unittest.TestCase):
    def _write(self, payload: dict) -> Path:
        tmp = tempfile.NamedTemporaryFile("w", suffix=".json", delete=False, encoding="utf-8")
        json.dump(payload, tmp, ensure_ascii=False)
        tmp.close()
        self.addCleanup(Path(tmp.name).unlink)
        return Path(tmp.name)

    def test_missing_file_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_menu("/nonexistent/menu.json")

    def test_negative_price_rejected(self) -> None:
        path = self._write({"items": [
            {"id": "x", "name": "X", "name_zh": "叉", "price": "-1", "category": "Test"},
        ]})
        with self.assertRaises(ValueError):
            load_menu(path)

    def test_duplicate_id_rejected(self) -> None:
        item = MenuItem(id="x", name="X", name_zh="叉", price=Decimal("1"), category="Test")
        with self.assertRaises(ValueError):
            MenuCatalog([item, item])

    def test_spice_level_out_of_range_rejected(self) -> None:
        path = self._write({"items": [
            {"id": "x", "name": "X", "name_zh": "叉", "price": "1.00", "category": "Test", "spice_level": 5},
        ]})
        with self.assertRaises(ValueError):
            load_menu(path)


if __name__ == "__main__":
    unittest.main()
