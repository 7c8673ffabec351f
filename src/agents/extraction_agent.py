"""
Extraction Agent for the Installment Tracker

Turns a pasted bank message, a contract PDF or a screenshot into a
ParsedLoan / ParsedBill candidate using Gemini.

CRITICAL BOUNDARIES:
- CAN: Propose values for any subset of the candidate fields
- CANNOT: Create or change loans or bills (it never sees storage)
- CANNOT: Fill gaps with guesses; missing values stay None

The LLM is a TRANSLATOR, not an ORACLE. Every value it returns is
re-parsed here (numbers, dates, enums) and anything that does not parse is
dropped, so the validator only ever sees well-typed candidates.

Failures of any kind (no API key, network, unparseable output) come back
as None; the caller falls back to manual entry.
"""

import json
from datetime import date
from typing import Any, Optional

import google.generativeai as genai
import structlog

from src.config import get_settings
from src.models.bill import BillCategory
from src.models.extraction import ParsedBill, ParsedLoan
from src.schedule.rounding import safe_decimal


logger = structlog.get_logger(__name__)


class ExtractionError(Exception):
    """The model's answer could not be turned into a candidate."""
    pass


LOAN_FIELDS = """\
- principal: the amount borrowed
- total_amount: principal plus all profit and fees
- interest_rate: annual rate in percent
- duration_months: number of monthly installments
- start_date: first installment date, YYYY-MM-DD (convert Hijri dates to Gregorian)
- monthly_payment: the regular installment amount
- paid_installments: how many installments are already paid
- last_payment_amount: the final installment, only if it differs
- lender_name: bank or provider name"""

BILL_FIELDS = """\
- provider: company issuing the bill
- category: one of [electricity, water, internet, device_installment, subscription, other]
- amount: monthly amount (or the bill total for a one-off bill)
- has_end_date: true for installment plans and fixed-term contracts
- end_date: contract end, YYYY-MM-DD
- start_date: contract start, YYYY-MM-DD
- duration_months: number of monthly installments
- last_payment_amount: the final installment, only if it differs
- down_payment: upfront payment made at the start
- device_details: device name for device installments (e.g. iPhone 15)"""


# =============================================================================
# VALUE COERCION
# =============================================================================

def _to_int(value: Any) -> Optional[int]:
    number = safe_decimal(value)
    if number is None:
        return None
    return int(number)


def _to_date(value: Any) -> Optional[date]:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def _to_category(value: Any) -> Optional[BillCategory]:
    if not isinstance(value, str):
        return None
    try:
        return BillCategory(value.strip().lower())
    except ValueError:
        return BillCategory.OTHER


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text[:200] or None


def extract_json_object(text: str) -> dict:
    """
    Pull the first JSON object out of a model response.

    Raises:
        ExtractionError: No object, or the object is not valid JSON
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ExtractionError("No JSON object in model response")
    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Malformed JSON in model response: {e}")
    if not isinstance(data, dict):
        raise ExtractionError("Model response is not a JSON object")
    return data


def loan_from_payload(data: dict) -> ParsedLoan:
    """Coerce a raw JSON payload into a ParsedLoan, dropping unparseable values."""
    return ParsedLoan(
        principal=safe_decimal(data.get("principal")),
        total_amount=safe_decimal(data.get("total_amount")),
        interest_rate=safe_decimal(data.get("interest_rate")),
        duration_months=_to_int(data.get("duration_months")),
        start_date=_to_date(data.get("start_date")),
        monthly_payment=safe_decimal(data.get("monthly_payment")),
        paid_installments=_to_int(data.get("paid_installments")),
        last_payment_amount=safe_decimal(data.get("last_payment_amount")),
        lender_name=_to_text(data.get("lender_name")),
    )


def bill_from_payload(data: dict) -> ParsedBill:
    """Coerce a raw JSON payload into a ParsedBill, dropping unparseable values."""
    return ParsedBill(
        provider=_to_text(data.get("provider")),
        category=_to_category(data.get("category")),
        amount=safe_decimal(data.get("amount")),
        has_end_date=_to_bool(data.get("has_end_date")),
        end_date=_to_date(data.get("end_date")),
        start_date=_to_date(data.get("start_date")),
        duration_months=_to_int(data.get("duration_months")),
        last_payment_amount=safe_decimal(data.get("last_payment_amount")),
        down_payment=safe_decimal(data.get("down_payment")),
        device_details=_to_text(data.get("device_details")),
    )


# =============================================================================
# AGENT
# =============================================================================

class ExtractionAgent:
    """
    Gemini-backed parser for loan and bill documents.

    RESPONSIBILITIES:
    - Prompt the model for a fixed set of fields
    - Coerce the answer into a typed candidate

    BOUNDARIES:
    - NEVER persists data
    - NEVER raises to the caller; None means "enter it manually"
    """

    def __init__(self, model: Optional[Any] = None):
        """
        Args:
            model: A configured genai.GenerativeModel. Built from
                   GeminiSettings when omitted.
        """
        self._model = model or self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        settings = get_settings().gemini
        genai.configure(api_key=settings.api_key)
        return genai.GenerativeModel(
            model_name=settings.model_name,
            generation_config={
                "temperature": settings.temperature,
                "max_output_tokens": settings.max_tokens,
                "response_mime_type": "application/json",
            },
        )

    def _loan_prompt(self, source: str) -> str:
        return f"""Extract loan details from {source} into a JSON object.

Fields (use null when a value is not present):
{LOAN_FIELDS}

Notes:
- If a total profit is stated but no rate, leave interest_rate null.
- Buy-now-pay-later plans usually have no interest; check for service fees.
- A down payment counts as one paid installment.

Respond with ONLY the JSON object."""

    def _bill_prompt(self) -> str:
        return f"""Analyze this bill or contract and extract its details into a JSON object.

Fields (use null when a value is not present):
{BILL_FIELDS}

Logic:
- Installment plans for a device (phone, laptop) are device_installment.
- Utility bills usually have no end date unless they are fixed-term contracts.

Respond with ONLY the JSON object."""

    async def _generate(self, contents: Any, kind: str) -> Optional[dict]:
        try:
            response = await self._model.generate_content_async(contents)
            return extract_json_object(response.text or "")
        except ExtractionError as e:
            logger.warning("extraction_unparseable", kind=kind, error=str(e))
        except Exception as e:
            logger.error("extraction_service_failed", kind=kind, error=str(e))
        return None

    async def parse_loan_text(self, text: str) -> Optional[ParsedLoan]:
        """
        Parse loan details from free text (bank SMS, copied app screen).

        Returns:
            A candidate, or None when nothing usable came back
        """
        if not text or not text.strip():
            return None
        prompt = self._loan_prompt("the following text") + f'\n\nText: "{text.strip()}"'
        data = await self._generate(prompt, "loan_text")
        return loan_from_payload(data) if data is not None else None

    async def parse_loan_document(
        self,
        data: bytes,
        mime_type: str = "application/pdf",
    ) -> Optional[ParsedLoan]:
        """Parse a loan contract or payment schedule (PDF or image)."""
        if not data:
            return None
        contents = [
            {"mime_type": mime_type, "data": data},
            self._loan_prompt("this loan contract or payment schedule"),
        ]
        payload = await self._generate(contents, "loan_document")
        return loan_from_payload(payload) if payload is not None else None

    async def parse_bill_document(
        self,
        data: bytes,
        mime_type: str = "application/pdf",
    ) -> Optional[ParsedBill]:
        """Parse a bill, subscription or device-installment contract."""
        if not data:
            return None
        contents = [
            {"mime_type": mime_type, "data": data},
            self._bill_prompt(),
        ]
        payload = await self._generate(contents, "bill_document")
        return bill_from_payload(payload) if payload is not None else None
