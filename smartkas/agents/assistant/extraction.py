"""
Extraction Runner

Read-only structured extraction for the OCR scans and the anomaly scan.
Same pipeline as a chat turn (compile -> send -> extract -> validate) but
nothing is dispatched: the validated payload is handed back to the caller,
which decides what to show or persist.

Unlike chat, a reply without a payload is a failure here (EMPTY), because
these tasks always require structured output.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from smartkas.agents.assistant.errors import (
    AmbiguousEntity,
    EntityNotFound,
    MalformedModelOutput,
    SchemaViolation,
    UpstreamUnavailable,
)
from smartkas.agents.assistant.extractor import extract_payload
from smartkas.agents.assistant.gateway import ModelGateway, get_model_gateway
from smartkas.agents.assistant.prompts import compile_request
from smartkas.agents.assistant.resolver import lookup_product
from smartkas.agents.assistant.types import ExtractionOutput, ExtractionTask, TransactionSnapshot
from smartkas.agents.assistant.validator import validate_payload

logger = logging.getLogger(__name__)


def _failure(status: str, reason: str, invalid_fields: Optional[List[str]] = None) -> ExtractionOutput:
    return {
        "status": status,  # type: ignore[typeddict-item]
        "payload": None,
        "reason": reason,
        "invalid_fields": invalid_fields,
    }


async def run_extraction(
    task: ExtractionTask,
    image_data: Optional[str] = None,
    transactions: Sequence[TransactionSnapshot] = (),
    gateway: Optional[ModelGateway] = None,
) -> ExtractionOutput:
    """
    Run one read-only extraction.

    Args:
        task: product_list, transaction_receipt or anomaly_scan
        image_data: Base64 image or data URL (OCR tasks)
        transactions: Transactions to analyze (anomaly_scan)
        gateway: Model gateway; defaults to the shared Gemini gateway

    Returns:
        ExtractionOutput:
            OK          - payload holds the validated data as plain JSON types
            EMPTY       - the model replied without a parseable payload
            INVALID     - a payload was found but violates the task schema
            UNAVAILABLE - the model could not be reached

    Raises:
        ValueError: task is chat_action (use interpret_turn)
    """
    if task == "chat_action":
        raise ValueError("chat_action is interactive; use interpret_turn()")

    request = compile_request(task, image_ref=image_data, transactions=transactions)

    gateway = gateway or get_model_gateway()
    try:
        if gateway is None:
            raise UpstreamUnavailable("unavailable", "GOOGLE_API_KEY not configured")
        raw_reply = await gateway.send(request)
    except UpstreamUnavailable as e:
        logger.warning(f"{task}: {e}")
        return _failure("UNAVAILABLE", e.reason)

    try:
        payload = extract_payload(raw_reply)
        if payload is None:
            raise MalformedModelOutput(f"{task}: reply contained no JSON payload")
        validated = validate_payload(task, payload)
    except MalformedModelOutput as e:
        logger.warning(str(e))
        return _failure("EMPTY", "no_payload")
    except SchemaViolation as e:
        logger.warning(f"{task}: payload rejected, fields={e.fields}")
        return _failure("INVALID", "schema_violation", e.fields)

    result: Dict[str, Any] = validated.model_dump(mode="json", by_alias=True)
    logger.info(f"{task}: extraction succeeded")
    return {"status": "OK", "payload": result, "reason": None, "invalid_fields": None}


async def scan_products(image_data: str, gateway: Optional[ModelGateway] = None) -> ExtractionOutput:
    """Read a stock-note photo into a product list."""
    return await run_extraction("product_list", image_data=image_data, gateway=gateway)


async def scan_receipt(image_data: str, gateway: Optional[ModelGateway] = None) -> ExtractionOutput:
    """Read a receipt photo into merchant, date, items and total."""
    return await run_extraction("transaction_receipt", image_data=image_data, gateway=gateway)


async def detect_anomalies(
    transactions: Sequence[TransactionSnapshot],
    gateway: Optional[ModelGateway] = None,
) -> ExtractionOutput:
    """Ask the model to flag suspicious transactions."""
    return await run_extraction("anomaly_scan", transactions=transactions, gateway=gateway)


async def match_scanned_products(ledger, products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Mark each scanned product row against the live catalog.

    Adds `match_type` (EXISTING, NEW or AMBIGUOUS) and, for EXISTING rows,
    `product_id` / `current_stock`. Nothing is written to the ledger.
    """
    matched = []
    for row in products:
        entry = dict(row)
        try:
            product = await lookup_product(ledger, entry["name"])
        except EntityNotFound:
            entry["match_type"] = "NEW"
        except AmbiguousEntity as e:
            entry["match_type"] = "AMBIGUOUS"
            entry["candidates"] = e.candidates
        else:
            entry["match_type"] = "EXISTING"
            entry["product_id"] = product.id
            entry["current_stock"] = product.stock
        matched.append(entry)
    return matched
