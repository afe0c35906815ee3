# -*- coding: utf-8 -*-
"""
点餐引擎命令行入口。
用法：
  python main.py chat [--offline] [--session ID]
  python main.py ask "I'll have the kung pao chicken" [--offline] [--session ID]
  python main.py menu
"""
import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from ordering import InvalidTurnRequest, TurnRequest, build_orchestrator, load_settings
from ordering.config import MODE_OFFLINE
from ordering.schemas import ChatTurn

logger = logging.getLogger("ordering.cli")


def _print_cards(resp) -> None:
    for card in resp.cards:
        print(json.dumps(card.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2))


def _print_state(resp) -> None:
    print(f"[购物车] {resp.cart_state.item_count} 件，含税合计 ${resp.cart_state.total}")


async def _chat_loop(orchestrator, session_id: str, show_cards: bool) -> None:
    history: list[ChatTurn] = []
    print("进入点餐对话。输入后回车；输入 q 或空行退出。\n")
    while True:
        try:
            text = input("你: ").strip()
        except (EOFError, KeyboardInterrupt):
            break
        if not text or text.lower() == "q":
            break
        resp = await orchestrator.handle_turn(
            TurnRequest(message=text, history=history, session_id=session_id)
        )
        print(f"\n助手: {resp.reply}")
        if show_cards:
            _print_cards(resp)
        _print_state(resp)
        print()
        history += [ChatTurn(role="user", text=text), ChatTurn(role="assistant", text=resp.reply)]


def main():
    parser = argparse.ArgumentParser(description="双语对话点餐引擎（Gemini + 本地意图兜底）")
    parser.add_argument("--offline", action="store_true", help="不调用推理服务，只用本地意图匹配")
    parser.add_argument("--session", type=str, default="cli", help="会话ID")
    sub = parser.add_subparsers(dest="command", required=True)

    chat_parser = sub.add_parser("chat", help="连续对话模式")
    chat_parser.add_argument("--cards", action="store_true", help="打印每轮产生的卡片")

    ask_parser = sub.add_parser("ask", help="发送一句话并打印回复与卡片")
    ask_parser.add_argument("message", type=str)

    sub.add_parser("menu", help="打印菜单")

    args = parser.parse_args()

    settings = load_settings()
    if args.offline:
        settings = settings.with_mode(MODE_OFFLINE)
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        orchestrator = build_orchestrator(settings)
    except (FileNotFoundError, ValueError) as e:
        print(e, file=sys.stderr)
        return 1

    if args.command == "menu":
        catalog = orchestrator.catalog
        print(f"{catalog.shop_name} {catalog.shop_name_zh}\n")
        for category in catalog.categories():
            print(f"== {category} ==")
            for it in catalog.by_category(category):
                flag = " ★" if it.is_popular else ""
                print(f"  {it.id:<20} {it.name} / {it.name_zh}  ${it.price}{flag}")
        return 0

    if args.command == "ask":
        try:
            resp = orchestrator.run_turn(TurnRequest(message=args.message, session_id=args.session))
        except InvalidTurnRequest as e:
            print(e, file=sys.stderr)
            return 2
        print(resp.reply)
        _print_cards(resp)
        _print_state(resp)
        return 0

    asyncio.run(_chat_loop(orchestrator, args.session, args.cards))
    return 0


if __name__ == "__main__":
    sys.exit(main() or 0)
