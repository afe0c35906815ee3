# -*- coding: utf-8 -*-
"""
点餐引擎 - LangGraph 单轮状态图。
流程：reasoning（选择工具或直接回复） -> execute_tool -> narrate（二次调用组织回复） -> finalize。
推理失败走命名的 fallback 边到 local_intent（本地意图匹配）；离线模式从 START 直接进入 local_intent。
"""
import logging
from typing import Literal, Optional

from langchain_core.messages import AIMessage, HumanMessage
from langgraph.graph import END, START, StateGraph

from .bridge import bridge, canonical_tool_name
from .cart import summarize_cart
from .config import MODE_OFFLINE, Settings
from .errors import ReasoningError
from .intent_matcher import LocalIntentMatcher
from .menu_loader import MenuCatalog
from .reasoning import Reasoner
from .schemas import InvocationSource, ToolFailure
from .state import TurnState
from .tools import execute_tool, llm_tool_specs

logger = logging.getLogger(__name__)

NARRATE_INSTRUCTION = (
    "Based on the tool result above, give a natural conversational response to the customer. "
    "Keep it short and friendly."
)
DEFAULT_DONE_REPLY = "Done!"
UNKNOWN_TOOL_REPLY = (
    "Sorry, I couldn't do that one. Could you say it another way? 抱歉，我没能完成这个操作，换个说法试试？"
)


def build_turn_graph(
    catalog: MenuCatalog,
    reasoner: Optional[Reasoner],
    settings: Settings,
    matcher: Optional[LocalIntentMatcher] = None,
):
    matcher = matcher or LocalIntentMatcher(catalog, settings.tax_rate, settings.bridge_latency_budget_ms)

    def _route_from_start(state: TurnState) -> Literal["online", "offline"]:
        return "offline" if state.get("mode") == MODE_OFFLINE else "online"

    async def reasoning_node(state: TurnState) -> dict:
        if reasoner is None:
            return {"fallback_reason": "no reasoner configured", "strategy": "local"}
        try:
            reply = await reasoner.converse(state.get("messages") or [], llm_tool_specs())
        except ReasoningError as e:
            logger.warning("reasoning unavailable for session %s, falling back: %s", state.get("session_id"), e)
            return {"fallback_reason": str(e), "strategy": "local"}
        return {"first_reply": reply}

    def _route_after_reasoning(state: TurnState) -> Literal["fallback", "tool_use", "text"]:
        if state.get("fallback_reason"):
            return "fallback"
        first = state.get("first_reply")
        return "tool_use" if first is not None and first.kind == "tool_use" else "text"

    def text_reply_node(state: TurnState) -> dict:
        return {"reply": state["first_reply"].text, "strategy": "text"}

    def execute_tool_node(state: TurnState) -> dict:
        first = state["first_reply"]
        canonical = canonical_tool_name(first.tool_name or "")
        name = canonical.value if canonical is not None else (first.tool_name or "")
        result = execute_tool(name, first.tool_input, state["cart"], catalog, settings.tax_rate)
        card = bridge(
            name,
            result,
            InvocationSource.USER_QUERY,
            latency_budget_ms=settings.bridge_latency_budget_ms,
        )
        logger.info("session %s ran tool %s (success=%s)", state.get("session_id"), name, result.success)
        return {
            "tool_name": name,
            "tool_result": result,
            "cards": [card] if card is not None else [],
            "strategy": "tool_use",
        }

    async def narrate_node(state: TurnState) -> dict:
        first = state["first_reply"]
        result = state["tool_result"]
        if isinstance(result, ToolFailure) and result.error == "unknown_tool":
            return {"reply": UNKNOWN_TOOL_REPLY}

        followup = [
            *(state.get("messages") or []),
            AIMessage(content=f"[Tool called: {state['tool_name']}] {result.model_dump_json(by_alias=True)}"),
            HumanMessage(content=NARRATE_INSTRUCTION),
        ]
        text = ""
        try:
            second = await reasoner.converse(followup)
            if second.kind == "text":
                text = second.text.strip()
        except ReasoningError as e:
            logger.warning("narration call failed, using first reply: %s", e)
        return {"reply": text or first.text.strip() or DEFAULT_DONE_REPLY}

    def local_intent_node(state: TurnState) -> dict:
        outcome = matcher.respond(state.get("message", ""), state["cart"])
        return {"reply": outcome.reply, "cards": outcome.cards, "strategy": "local"}

    def finalize_node(state: TurnState) -> dict:
        return {"cart_state": summarize_cart(state["cart"], settings.tax_rate)}

    workflow = StateGraph(TurnState)
    workflow.add_node("reasoning", reasoning_node)
    workflow.add_node("text_reply", text_reply_node)
    workflow.add_node("execute_tool", execute_tool_node)
    workflow.add_node("narrate", narrate_node)
    workflow.add_node("local_intent", local_intent_node)
    workflow.add_node("finalize", finalize_node)

    workflow.add_conditional_edges(
        START,
        _route_from_start,
        {"online": "reasoning", "offline": "local_intent"},
    )
    workflow.add_conditional_edges(
        "reasoning",
        _route_after_reasoning,
        {"fallback": "local_intent", "tool_use": "execute_tool", "text": "text_reply"},
    )
    workflow.add_edge("execute_tool", "narrate")
    workflow.add_edge("text_reply", "finalize")
    workflow.add_edge("narrate", "finalize")
    workflow.add_edge("local_intent", "finalize")
    workflow.add_edge("finalize", END)
    return workflow.compile()
