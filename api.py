# -*- coding: utf-8 -*-
"""
FastAPI 后端：双语对话点餐引擎。
POST /api/chat 运行一轮对话；GET /api/cart/{session_id} 查看购物车状态；GET /api/health 健康检查。
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from api_schemas import CartResponse, ChatErrorResponse, ChatRequest, HealthResponse
from ordering import ConversationOrchestrator, InvalidTurnRequest, build_orchestrator, load_settings
from ordering.schemas import CartState

logger = logging.getLogger("ordering.api")

MESSAGE_REQUIRED = {"error": "Message is required"}
ERROR_REPLY = "Sorry, something went wrong on our side. Please try again. 抱歉，系统出了点问题，请再试一次。"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _json(model) -> JSONResponse:
    return JSONResponse(content=model.model_dump(mode="json", by_alias=True))


def validation_error_body(errors) -> dict:
    """
    请求体校验失败时的 400 内容：
    - 请求体缺失、不是合法 JSON 或 message 出错 → 固定的「Message is required」
    - 其余字段（history、sessionId）出错 → 指明是哪些字段
    """
    fields = []
    for err in errors:
        loc = err.get("loc") or ()
        if len(loc) < 2 or not isinstance(loc[1], str) or loc[1] == "message":
            return MESSAGE_REQUIRED
        if loc[1] not in fields:
            fields.append(loc[1])
    if not fields:
        return MESSAGE_REQUIRED
    return {"error": f"Invalid request field(s): {', '.join(fields)}"}


def create_app(orchestrator: Optional[ConversationOrchestrator] = None) -> FastAPI:
    if orchestrator is None:
        settings = load_settings()
        configure_logging(settings.log_level)
        orchestrator = build_orchestrator(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("ordering API started in %s mode", orchestrator.mode)
        yield
        orchestrator.store.clear()

    app = FastAPI(
        title="Bilingual Ordering Engine API",
        description="双语对话点餐引擎 Web 服务",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError):
        logger.info("rejected malformed request to %s: %s", request.url.path, exc.errors())
        return JSONResponse(status_code=400, content=validation_error_body(exc.errors()))

    @app.post("/api/chat")
    async def chat(req: ChatRequest):
        """
        运行一轮对话：
        - 在线模式：Gemini 选择工具 → 执行 → 生成回复；失败时自动走本地意图匹配
        - 离线模式：直接本地意图匹配
        """
        if not isinstance(req.message, str) or not req.message.strip():
            return JSONResponse(status_code=400, content=MESSAGE_REQUIRED)
        try:
            resp = await orchestrator.handle_turn(req.to_turn_request())
        except InvalidTurnRequest:
            return JSONResponse(status_code=400, content=MESSAGE_REQUIRED)
        except Exception as e:
            logger.exception("turn failed for session %s", req.session_id)
            envelope = ChatErrorResponse(
                reply=ERROR_REPLY,
                cards=[],
                cart_state=_safe_cart_state(orchestrator, req.session_id),
                error=str(e) or type(e).__name__,
            )
            return JSONResponse(status_code=500, content=envelope.model_dump(mode="json", by_alias=True))
        return _json(resp)

    @app.get("/api/cart/{session_id}")
    async def cart(session_id: str):
        return _json(CartResponse(session_id=session_id, cart_state=orchestrator.cart_state(session_id)))

    @app.get("/api/health")
    async def health():
        return _json(HealthResponse(mode=orchestrator.mode, menu_items=len(orchestrator.catalog)))

    return app


def _safe_cart_state(orchestrator: ConversationOrchestrator, session_id: str) -> CartState:
    try:
        return orchestrator.cart_state(session_id)
    except Exception:
        logger.exception("could not read cart state for session %s", session_id)
        return CartState(item_count=0, total=0)


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8080))
    uvicorn.run("api:app", host="0.0.0.0", port=port, reload=True)
