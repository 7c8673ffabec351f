"""AI Agents package."""

from src.agents.extraction_agent import (
    ExtractionAgent,
    ExtractionError,
    bill_from_payload,
    extract_json_object,
    loan_from_payload,
)

__all__ = [
    "ExtractionAgent",
    "ExtractionError",
    "bill_from_payload",
    "extract_json_object",
    "loan_from_payload",
]
