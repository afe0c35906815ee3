#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试会话购物车存储：惰性创建、会话锁串行化、空闲淘汰。
"""
from __future__ import annotations

import asyncio
import sys
import time
import unittest
from pathlib import Path

_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from ordering.cart_store import SessionCartStore


class TestSessionCartStore(unittest.TestCase):
    def test_get_or_create_is_idempotent(self) -> None:
        store = SessionCartStore()
        first = store.get_or_create("a")
        self.assertIs(store.get_or_create("a"), first)
        self.assertIsNot(store.get_or_create("b"), first)
        self.assertEqual(len(store), 2)
        self.assertIn("a", store)

    def test_prune_disabled_without_ttl(self) -> None:
        store = SessionCartStore()
        store.get_or_create("a")
        self.assertEqual(store.prune(now=time.monotonic() + 10_000), 0)
        self.assertIn("a", store)

    def test_prune_evicts_idle_sessions(self) -> None:
        store = SessionCartStore(idle_ttl_seconds=60)
        store.get_or_create("old")
        store.get_or_create("new")
        later = time.monotonic() + 120
        self.assertEqual(store.prune(now=later), 2)
        self.assertEqual(len(store), 0)

    def test_clear(self) -> None:
        store = SessionCartStore()
        store.get_or_create("a")
        store.clear()
        self.assertNotIn("a", store)


class TestSessionLock(unittest.IsolatedAsyncioTestCase):
    async def test_same_session_turns_are_serialized(self) -> None:
        store = SessionCartStore()
        events: list[str] = []

        async def turn(tag: str) -> None:
            async with store.session("s1") as cart:
                events.append(f"{tag}:start")
                await asyncio.sleep(0.01)
                events.append(f"{tag}:end")

        await asyncio.gather(turn("a"), turn("b"))
        self.assertEqual(events, ["a:start", "a:end", "b:start", "b:end"])

    async def test_session_yields_the_stored_cart(self) -> None:
        store = SessionCartStore()
        async with store.session("s1") as cart:
            pass
        self.assertIs(cart, store.get_or_create("s1"))

    async def test_locked_session_is_not_pruned(self) -> None:
        store = SessionCartStore(idle_ttl_seconds=60)
        async with store.session("busy"):
            self.assertEqual(store.prune(now=time.monotonic() + 120), 0)
            self.assertIn("busy", store)

    async def test_concurrent_first_access_creates_one_cart(self) -> None:
        store = SessionCartStore()
        carts = []

        async def grab() -> None:
            async with store.session("fresh") as cart:
                carts.append(cart)

        await asyncio.gather(*(grab() for _ in range(5)))
        self.assertEqual(len(store), 1)
        self.assertTrue(all(c is carts[0] for c in carts))


if __name__ == "__main__":
    unittest.main()
