"""Insight planning using Gemini via google-genai.

This module is responsible for turning a raw sales question into a structured
InsightPlan, constrained by Gemini's structured output and validated by Pydantic.
"""

from __future__ import annotations

import logging

import httpx
from google.genai import errors, types
from pydantic import ValidationError

from config import GEMINI_MODEL_INSIGHT
from llm.client import get_client
from schemas.insight import InsightPlan

logger = logging.getLogger(__name__)


class IntentPlanningError(Exception):
    """Base class for failures while planning an insight query."""


class PlannerUnavailable(IntentPlanningError):
    """Raised when the Gemini call itself fails (network, auth, quota)."""


class PlannerSchemaViolation(IntentPlanningError):
    """Raised when the LLM output cannot be parsed into an InsightPlan."""


_PLAN_PROMPT = """
你是 CRM 销售分析助手。请读取用户问题并给出最合适的数据分析意图。仅在以下意图中选择一个：
- count_opportunities：统计商机数量
- sum_expected_amount：计算预期成交金额总和
- status_breakdown：按状态统计商机数量

请根据问题同时判断需要的筛选条件：
- status：商机状态列表，可选值 new, qualified, proposition, negotiation, closed_won, closed_lost。
  例如“已关闭的商机”对应 ["closed_won", "closed_lost"]，“赢单”对应 ["closed_won"]。
- timeframe：时间范围。
  - 没有时间限制时使用 scope="all_time"。
  - “最近 N 天 / 本月 / 本季度”等滚动时间使用 scope="last_days" 并给出 lastDays（本季度按 90 天）。
  - 明确的起止日期使用 scope="between"，startDate 和 endDate 使用 YYYY-MM-DD 格式。
无法确定的筛选条件请省略，不要猜测。

问题：{question}
"""


def _build_prompt(question: str) -> str:
    return _PLAN_PROMPT.strip().format(question=question)


def plan_question(question: str) -> InsightPlan:
    """Call Gemini to plan the question and return a validated InsightPlan."""
    client = get_client()

    try:
        resp = client.models.generate_content(
            model=GEMINI_MODEL_INSIGHT,
            contents=_build_prompt(question),
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=InsightPlan,
            ),
        )
    except (errors.APIError, httpx.HTTPError) as exc:
        raise PlannerUnavailable(f"Gemini request failed while planning: {exc}") from exc

    raw_text = getattr(resp, "text", None)
    if not raw_text:
        raise PlannerSchemaViolation("LLM returned empty response while planning.")

    try:
        plan = InsightPlan.model_validate_json(raw_text)
    except ValidationError as exc:
        raise PlannerSchemaViolation(f"LLM output failed schema validation: {raw_text}") from exc

    logger.info("Planned question as %s with filters %s", plan.intent, plan.filters_dict())
    return plan
