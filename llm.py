# -*- coding: utf-8 -*-
"""
统一的 LLM 工厂：全局使用 Google Gemini（通过 LangChain ChatGoogleGenerativeAI）。
需要 GOOGLE_API_KEY（由 Settings 传入，或回落到环境变量）。
"""
import os

from langchain_google_genai import ChatGoogleGenerativeAI

DEFAULT_MODEL = "gemini-2.0-flash"


def get_llm(
    model: str | None = None,
    api_key: str | None = None,
    temperature: float = 0.3,
    max_output_tokens: int = 512,
    timeout: float | None = None,
):
    """获取 Gemini LLM 实例；未配置密钥时抛 RuntimeError。"""
    model = model or os.environ.get("GEMINI_MODEL", DEFAULT_MODEL)
    api_key = api_key or os.environ.get("GOOGLE_API_KEY", "")
    if not api_key:
        raise RuntimeError(
            "请设置环境变量 GOOGLE_API_KEY。\n"
            "获取方式：https://aistudio.google.com/app/apikey"
        )
    return ChatGoogleGenerativeAI(
        model=model,
        google_api_key=api_key,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
        timeout=timeout,
        max_retries=1,
    )
