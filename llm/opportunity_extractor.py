"""Structured extraction of opportunity fields from free-text sales notes."""

from __future__ import annotations

import httpx
from google.genai import errors, types
from pydantic import ValidationError

from config import GEMINI_MODEL_INSIGHT
from llm.client import get_client
from schemas.extraction import OpportunityExtraction


class ExtractionError(Exception):
    """Raised when the notes could not be turned into an OpportunityExtraction."""


_EXTRACTION_PROMPT = """
你是一名 CRM 助手，请从以下输入中提取潜在客户信息，并尽量补全销售商机字段。
- 如果无法确定字段，则留空。
- expectedAmount 使用纯数字。
- status 可选: new, qualified, proposition, negotiation, closed_won, closed_lost。
- priority 可选: high, medium, low。
- followUp 如果文本中包含下一步行动，则填写。
输入：{text}
"""


def extract_opportunity(text: str) -> OpportunityExtraction:
    client = get_client()

    try:
        resp = client.models.generate_content(
            model=GEMINI_MODEL_INSIGHT,
            contents=_EXTRACTION_PROMPT.strip().format(text=text),
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=OpportunityExtraction,
            ),
        )
    except (errors.APIError, httpx.HTTPError) as exc:
        raise ExtractionError(f"Gemini request failed while extracting: {exc}") from exc

    raw_text = getattr(resp, "text", None)
    if not raw_text:
        raise ExtractionError("LLM returned empty response while extracting.")

    try:
        return OpportunityExtraction.model_validate_json(raw_text)
    except ValidationError as exc:
        raise ExtractionError(f"LLM output failed schema validation: {raw_text}") from exc
