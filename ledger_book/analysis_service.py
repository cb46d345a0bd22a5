"""Natural-language performance summaries from the Gemini REST API."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional

import requests

from .config import AppConfig
from .schemas import AnalysisRequest

logger = logging.getLogger(__name__)

NO_OUTPUT_MESSAGE = (
    "لم يتمكن الذكاء الاصطناعي من إنشاء تحليل. قد تكون هناك مشكلة مؤقتة. "
    "يرجى المحاولة مرة أخرى لاحقًا."
)
SERVICE_ERROR_MESSAGE = (
    "حدث خطأ أثناء تحليل البيانات. يرجى التأكد من صحة إعدادات الذكاء الاصطناعي "
    "والمحاولة مرة أخرى."
)

PROMPT_TEMPLATE = """You are an expert financial analyst. Analyse the financial \
transactions below and write a concise, insightful report in Arabic.

Format the report as clear Markdown bullet points covering:

1. **Performance overview**: a general summary of financial performance that \
mentions total profit and total expenses.
2. **Top suppliers**: the three suppliers with the highest profit, with the \
profit of each.
3. **Best-selling regions**: the three governorates or cities with the highest \
sales, with their total sales.
4. **Insights and suggestions**: actionable insights, such as weak suppliers \
or growth opportunities in specific regions, with at least two \
recommendations to improve performance.

Total net profit (after expenses): {total_profit}
Total expenses: {total_expenses}

Transactions:
```json
{transactions}
```

Write the whole report in Arabic."""


@dataclass(slots=True)
class AnalysisResult:
    analysis: str
    # False when the service could not be reached at all.
    ok: bool = True


class PerformanceAnalyzer:
    """Ask a text-generation model for a canned financial-summary report.

    The analyzer never raises for service problems: a missing API key, a
    transport error or an empty answer all degrade to a user-facing message.
    """

    def __init__(self, config: AppConfig, session: Optional[requests.Session] = None) -> None:
        self._config = config
        self._session = session or requests.Session()

    def build_prompt(self, request: AnalysisRequest) -> str:
        transactions = [item.model_dump() for item in request.transactions]
        return PROMPT_TEMPLATE.format(
            total_profit=request.total_profit,
            total_expenses=request.total_expenses,
            transactions=json.dumps(transactions, ensure_ascii=False, indent=2),
        )

    def analyse(self, request: AnalysisRequest) -> AnalysisResult:
        if not self._config.google_api_key:
            logger.warning("GOOGLE_API_KEY is not configured; skipping performance analysis")
            return AnalysisResult(SERVICE_ERROR_MESSAGE, ok=False)

        url = f"{self._config.gemini_endpoint}/models/{self._config.gemini_model}:generateContent"
        body = {"contents": [{"role": "user", "parts": [{"text": self.build_prompt(request)}]}]}
        try:
            response = self._session.post(
                url,
                params={"key": self._config.google_api_key},
                json=body,
                timeout=60,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Performance analysis request failed: %s", exc)
            return AnalysisResult(SERVICE_ERROR_MESSAGE, ok=False)

        text = _extract_text(payload)
        if not text:
            logger.warning("Performance analysis returned no text")
            return AnalysisResult(NO_OUTPUT_MESSAGE)
        return AnalysisResult(text)


def _extract_text(payload: object) -> str:
    # Any unexpected shape counts as an empty answer.
    if not isinstance(payload, dict):
        return ""
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    texts = [part.get("text") for part in parts if isinstance(part, dict)]
    return "".join(text for text in texts if isinstance(text, str)).strip()
