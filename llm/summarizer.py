"""Answer generation using Gemini via google-genai.

Takes the original question, the executed plan and the aggregate result and
returns a short prose explanation, without adding facts that are not in the data.
"""

from __future__ import annotations

import json
from typing import Any, Dict

import httpx
from google.genai import errors, types

from config import GEMINI_MODEL_SUMMARY
from llm.client import get_client


class SummaryGenerationError(Exception):
    """Raised when no usable answer could be generated."""


class SummarizerUnavailable(SummaryGenerationError):
    """Raised when the Gemini call itself fails."""


_SUMMARY_SYSTEM_PROMPT = "你是负责销售数据解释的分析师，请根据结构化数据输出简洁中文回答，避免虚构。"


def summarize(question: str, intent: str, filters: Dict[str, Any], result: Any) -> str:
    """Explain an aggregate result in natural language."""
    client = get_client()

    prompt = (
        f"用户的问题：{question}\n"
        f"AI 解析意图：{intent}\n"
        f"筛选条件：{json.dumps(filters, ensure_ascii=False)}\n"
        f"查询结果：{json.dumps(result, ensure_ascii=False)}\n"
        "请用 2-3 句话总结，并根据需要给出简单建议。"
    )

    try:
        resp = client.models.generate_content(
            model=GEMINI_MODEL_SUMMARY,
            contents=prompt,
            config=types.GenerateContentConfig(system_instruction=_SUMMARY_SYSTEM_PROMPT),
        )
    except (errors.APIError, httpx.HTTPError) as exc:
        raise SummarizerUnavailable(f"Gemini request failed while summarizing: {exc}") from exc

    answer = getattr(resp, "text", None)
    if not answer:
        raise SummaryGenerationError("LLM returned empty response for answer generation.")

    return answer.strip()
