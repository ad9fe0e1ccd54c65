"""
Assistant Package

Structured extraction and action core of the SmartKas assistant.

Pipeline for one chat turn:
- controller: assembles context and drives the turn state machine
- prompts: compiles the outbound request (system prompt, context, history)
- gateway: one Gemini call, raw text back
- extractor: finds the JSON payload (if any) in the free-text reply
- validator: checks the payload against the task schema in schemas
- resolver: maps a product name in the payload to one catalog entry
- dispatcher: performs the single ledger mutation and confirms it

The extraction runner reuses the same pieces for OCR and anomaly scans but
stops after validation.

Usage:
    from smartkas.agents.assistant import interpret_turn

    output = await interpret_turn(
        ledger=LedgerStore(supabase_client, business_id),
        history=[{"role": "user", "content": "halo"}, {"role": "assistant", "content": "Halo!"}],
        message="jual 2 kopi susu",
    )
    output["reply"]  # "📦 Stok diperbarui: Kopi Susu -2. Total: 8 cup."
"""

from smartkas.agents.assistant.controller import assemble_context, interpret_turn
from smartkas.agents.assistant.dispatcher import DispatchResult, dispatch_action
from smartkas.agents.assistant.errors import (
    AmbiguousEntity,
    AssistantError,
    EntityNotFound,
    MalformedModelOutput,
    PersistenceFailure,
    SchemaViolation,
    UpstreamUnavailable,
)
from smartkas.agents.assistant.extraction import (
    detect_anomalies,
    match_scanned_products,
    run_extraction,
    scan_products,
    scan_receipt,
)
from smartkas.agents.assistant.extractor import extract_payload
from smartkas.agents.assistant.gateway import ModelGateway, get_model_gateway
from smartkas.agents.assistant.prompts import CompiledRequest, compile_request
from smartkas.agents.assistant.resolver import lookup_product, resolve_product
from smartkas.agents.assistant.schemas import SCHEMA_REGISTRY, describe_schema, get_schema
from smartkas.agents.assistant.types import (
    ChatMessage,
    ContextSnapshot,
    ExtractionOutput,
    ExtractionTask,
    ProductSnapshot,
    TransactionSnapshot,
    TurnOutput,
    UnrecognizedAction,
)
from smartkas.agents.assistant.validator import validate_payload

__all__ = [
    # Entry points
    "interpret_turn",
    "run_extraction",
    "scan_products",
    "scan_receipt",
    "detect_anomalies",
    "match_scanned_products",
    # Pipeline stages
    "assemble_context",
    "compile_request",
    "extract_payload",
    "validate_payload",
    "resolve_product",
    "lookup_product",
    "dispatch_action",
    "ModelGateway",
    "get_model_gateway",
    # Schemas
    "SCHEMA_REGISTRY",
    "get_schema",
    "describe_schema",
    # Types
    "ChatMessage",
    "CompiledRequest",
    "ContextSnapshot",
    "DispatchResult",
    "ExtractionOutput",
    "ExtractionTask",
    "ProductSnapshot",
    "TransactionSnapshot",
    "TurnOutput",
    "UnrecognizedAction",
    # Errors
    "AssistantError",
    "UpstreamUnavailable",
    "MalformedModelOutput",
    "SchemaViolation",
    "EntityNotFound",
    "AmbiguousEntity",
    "PersistenceFailure",
]
