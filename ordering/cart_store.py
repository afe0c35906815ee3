# -*- coding: utf-8 -*-
"""
会话购物车存储：session_id -> Cart，首次访问时惰性创建。
每个会话带一把 asyncio.Lock，编排器在整轮对话期间持有，避免同一会话并发修改时丢失更新。
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

from .cart import Cart

logger = logging.getLogger(__name__)


@dataclass
class _SessionEntry:
    cart: Cart = field(default_factory=Cart)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    touched_at: float = field(default_factory=time.monotonic)


class SessionCartStore:
    """In-memory session → cart map with idempotent lazy creation and optional idle eviction."""

    def __init__(self, idle_ttl_seconds: float | None = None) -> None:
        self._entries: dict[str, _SessionEntry] = {}
        self._guard = threading.Lock()
        self._idle_ttl = idle_ttl_seconds

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._entries

    def _entry(self, session_id: str) -> _SessionEntry:
        with self._guard:
            entry = self._entries.get(session_id)
            if entry is None:
                entry = _SessionEntry()
                self._entries[session_id] = entry
                logger.debug("created cart for session %s", session_id)
            entry.touched_at = time.monotonic()
            return entry

    def get_or_create(self, session_id: str) -> Cart:
        return self._entry(session_id).cart

    @asynccontextmanager
    async def session(self, session_id: str) -> AsyncIterator[Cart]:
        """持有会话锁并产出该会话的购物车；同一会话的多个回合按到达顺序串行执行。"""
        self.prune()
        entry = self._entry(session_id)
        async with entry.lock:
            entry.touched_at = time.monotonic()
            yield entry.cart

    def prune(self, now: float | None = None) -> int:
        """淘汰超过空闲时长的会话；未配置 TTL 时不做任何事。正在使用（锁被持有）的会话不淘汰。"""
        if not self._idle_ttl:
            return 0
        now = time.monotonic() if now is None else now
        with self._guard:
            expired = [
                sid
                for sid, entry in self._entries.items()
                if now - entry.touched_at > self._idle_ttl and not entry.lock.locked()
            ]
            for sid in expired:
                del self._entries[sid]
        if expired:
            logger.info("evicted %d idle session(s)", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._guard:
            self._entries.clear()
