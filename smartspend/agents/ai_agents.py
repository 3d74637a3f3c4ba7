"""
AI Agents for SmartSpend

CRITICAL BOUNDARIES:

1. EXPENSE EXTRACTION AGENT:
   - CAN: Suggest category, amount and a clean title from free text
   - CANNOT: Record an expense; the user submits the draft
   - CANNOT: Invent a category outside the fixed set

2. INSIGHTS AGENT:
   - CAN: Write short advice FROM the expenses it is given
   - CANNOT: See anything but those expenses and the budget

Both agents degrade to fixed fallbacks on any failure or timeout. Neither
holds a reference to the store, so a failed call cannot touch the ledger.
"""

import asyncio
import json
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

import google.generativeai as genai
from pydantic import BaseModel, Field

from smartspend.config import get_settings
from smartspend.config.settings import GeminiSettings
from smartspend.models.ledger import Category, Expense, ExpenseDraft

NO_EXPENSES_ADVICE = "Add some expenses to get AI-powered insights!"
UNAVAILABLE_ADVICE = "Unable to generate insights at this moment."
EMPTY_REPLY_ADVICE = "Keep tracking your spending to stay within budget."


class ExtractedExpense(BaseModel):
    """What the extraction agent read out of free text."""

    category: Category = Category.OTHER
    amount: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Monetary amount mentioned, if any"
    )
    description: str
    used_fallback: bool = False
    error_message: Optional[str] = None


def _build_model(settings: GeminiSettings) -> Any:
    """Configure Google Generative AI and build a model."""
    genai.configure(api_key=settings.api_key)
    return genai.GenerativeModel(
        model_name=settings.model_name,
        generation_config={
            "temperature": settings.temperature,
            "max_output_tokens": settings.max_tokens,
        }
    )


def _extract_json(text: str) -> Optional[dict]:
    start = text.find("{")
    end = text.rfind("}") + 1
    if start >= 0 and end > start:
        data = json.loads(text[start:end])
        if isinstance(data, dict):
            return data
    return None


def _coerce_category(value: Any) -> Category:
    if isinstance(value, str):
        for category in Category:
            if category.value.lower() == value.strip().lower():
                return category
    return Category.OTHER


def _coerce_amount(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


class ExpenseExtractionAgent:
    """
    Turns a free-text note ("uber to airport 32.50") into draft fields.

    BOUNDARIES:
    - NEVER persists data
    - Unknown categories become Other
    - On failure returns {Other, no amount, the original text}
    """

    def __init__(
        self,
        model: Any = None,
        settings: Optional[GeminiSettings] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._model = model or _build_model(self._settings)

    async def extract_expense(self, free_text: str) -> ExtractedExpense:
        categories = ", ".join(c.value for c in Category)
        prompt = f"""Extract expense details from the following text: "{free_text}".

Categorize it into one of these: {categories}.

Respond with ONLY a JSON object in this exact format:
{{"category": "category_name", "amount": 12.5, "description": "brief clean title"}}

Omit "amount" if no amount is mentioned."""

        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(prompt),
                timeout=self._settings.request_timeout_seconds,
            )
            data = _extract_json((response.text or "").strip())
            if data is None:
                raise ValueError("No JSON object in model reply")
        except Exception as e:
            return ExtractedExpense(
                category=Category.OTHER,
                description=free_text,
                used_fallback=True,
                error_message=str(e) or type(e).__name__,
            )

        description = data.get("description")
        if not isinstance(description, str) or not description.strip():
            description = free_text

        return ExtractedExpense(
            category=_coerce_category(data.get("category")),
            amount=_coerce_amount(data.get("amount")),
            description=description.strip(),
        )


class InsightsAgent:
    """Two-sentence advice about a workspace's recent spending."""

    def __init__(
        self,
        model: Any = None,
        settings: Optional[GeminiSettings] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._model = model or _build_model(self._settings)
        self.last_error: Optional[str] = None

    async def financial_advice(
        self,
        expenses: Sequence[Expense],
        budget_limit: Decimal,
    ) -> str:
        self.last_error = None
        if not expenses:
            return NO_EXPENSES_ADVICE

        summary = [
            {
                "description": e.description,
                "amount": str(e.amount),
                "category": e.category.value,
                "date": e.date.isoformat(),
            }
            for e in expenses
        ]
        prompt = (
            f"I have a monthly budget of {budget_limit}. "
            f"Here are my recent expenses: {json.dumps(summary)}.\n"
            "Provide a 2-sentence sharp, actionable financial advice or "
            "observation. Keep it encouraging but realistic."
        )

        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(prompt),
                timeout=self._settings.request_timeout_seconds,
            )
            text = (response.text or "").strip()
        except Exception as e:
            self.last_error = str(e) or type(e).__name__
            return UNAVAILABLE_ADVICE

        return text or EMPTY_REPLY_ADVICE


def merge_extraction(draft: ExpenseDraft, extraction: ExtractedExpense) -> ExpenseDraft:
    """
    Fold an extraction into a draft.

    Category and description are replaced; the amount only when the
    extraction found one, otherwise whatever the user typed stays.
    """
    changes = {
        "category": extraction.category,
        "description": extraction.description,
    }
    if extraction.amount is not None:
        changes["amount"] = extraction.amount
    return draft.model_copy(update=changes)
