"""
AI Components for SmartKas Backend.

Contains one single-shot LLM pipeline with two entry points:

1. Assistant turn (interpret_turn)
   - Chat message in, reply out
   - MAY perform one ledger action (save a transaction or change stock)
     when the model emits a fenced JSON action block

2. Read-only extraction (run_extraction)
   - OCR of stock notes and receipts, anomaly scan over recent transactions
   - Returns validated structured data; never writes to the ledger

Both use Gemini through the Google Gen AI SDK directly, without an agent
framework or tool calling.
"""

from smartkas.agents.assistant import (
    ExtractionOutput,
    TurnOutput,
    interpret_turn,
    run_extraction,
)

__all__ = [
    "interpret_turn",
    "run_extraction",
    "TurnOutput",
    "ExtractionOutput",
]
