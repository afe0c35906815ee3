# -*- coding: utf-8 -*-
"""
运行配置：从环境变量读取一次（进程启动时），之后不再重新评估。
入口脚本（api.py / main.py）负责先调用 load_dotenv()。
"""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_MENU_PATH = BASE_DIR / "data" / "menu.json"

MODE_ONLINE = "online"
MODE_OFFLINE = "offline"

DEFAULT_TAX_RATE = "0.08875"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"


@dataclass(frozen=True)
class Settings:
    """Configuration container for mode, pricing, model and runtime limits."""
    mode: str
    tax_rate: Decimal
    google_api_key: str
    gemini_model: str
    llm_timeout_seconds: float
    bridge_latency_budget_ms: float
    session_idle_ttl_seconds: float | None
    menu_path: Path
    log_level: str

    @property
    def offline(self) -> bool:
        return self.mode == MODE_OFFLINE

    def with_mode(self, mode: str) -> "Settings":
        return replace(self, mode=_parse_mode(mode))


def _parse_mode(raw: str) -> str:
    mode = (raw or MODE_ONLINE).strip().lower()
    if mode not in (MODE_ONLINE, MODE_OFFLINE):
        raise ValueError(f"ORDERING_MODE must be 'online' or 'offline', got {raw!r}")
    return mode


def _parse_tax_rate(raw: str) -> Decimal:
    try:
        rate = Decimal(raw.strip())
    except InvalidOperation as e:
        raise ValueError(f"TAX_RATE is not a decimal: {raw!r}") from e
    if rate < 0 or rate >= 1:
        raise ValueError(f"TAX_RATE must be in [0, 1), got {raw!r}")
    return rate


def _truthy(raw: str | None) -> bool:
    return (raw or "").strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> Settings:
    """读取环境变量构建 Settings；数值非法时抛 ValueError（启动即失败）。"""
    mode = _parse_mode(os.getenv("ORDERING_MODE", MODE_ONLINE))
    if _truthy(os.getenv("DEMO_MODE")):
        mode = MODE_OFFLINE

    ttl_raw = os.getenv("SESSION_IDLE_TTL_SECONDS", "").strip()
    ttl = float(ttl_raw) if ttl_raw else None
    if ttl is not None and ttl <= 0:
        ttl = None

    menu_path = os.getenv("MENU_PATH")

    return Settings(
        mode=mode,
        tax_rate=_parse_tax_rate(os.getenv("TAX_RATE", DEFAULT_TAX_RATE)),
        google_api_key=os.getenv("GOOGLE_API_KEY", "").strip(),
        gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL).strip() or DEFAULT_GEMINI_MODEL,
        llm_timeout_seconds=float(os.getenv("LLM_TIMEOUT_SECONDS", "15")),
        bridge_latency_budget_ms=float(os.getenv("BRIDGE_LATENCY_BUDGET_MS", "200")),
        session_idle_ttl_seconds=ttl,
        menu_path=Path(menu_path) if menu_path else DEFAULT_MENU_PATH,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
