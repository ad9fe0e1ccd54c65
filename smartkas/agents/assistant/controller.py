"""
Assistant Turn Controller

Runs one chat turn through the assistant state machine:

    IDLE -> CONTEXT_ASSEMBLED -> REQUESTED -> REPLIED
    REPLIED -> PLAIN_REPLY                      (no payload in the reply)
    REPLIED -> PAYLOAD_FOUND -> VALIDATING
    VALIDATING -> INVALID -> FALLBACK_REPLY
    VALIDATING -> VALIDATED -> PLAIN_REPLY      (payload without an action)
    VALIDATED -> RESOLVING -> UNRESOLVED -> FALLBACK_REPLY
    VALIDATED | RESOLVED -> DISPATCHING -> DONE

The model call (REQUESTED -> REPLIED) is the only suspension point. At most
one ledger mutation happens per turn, on DISPATCHING -> DONE.
interpret_turn() never raises: every failure becomes a reply string.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from smartkas.agents.assistant.dispatcher import dispatch_action
from smartkas.agents.assistant.errors import (
    AmbiguousEntity,
    EntityNotFound,
    PersistenceFailure,
    SchemaViolation,
    UpstreamUnavailable,
)
from smartkas.agents.assistant.extractor import extract_payload
from smartkas.agents.assistant.gateway import ModelGateway, get_model_gateway
from smartkas.agents.assistant.prompts import compile_request
from smartkas.agents.assistant.resolver import resolve_product
from smartkas.agents.assistant.schemas import UpdateStockAction
from smartkas.agents.assistant.types import (
    ChatMessage,
    ContextSnapshot,
    ProductSnapshot,
    TransactionSnapshot,
    TurnOutput,
    TurnState,
    UnrecognizedAction,
)
from smartkas.agents.assistant.validator import validate_payload
from smartkas.config import settings
from smartkas.utils.constants import DEFAULT_BUSINESS_NAME

logger = logging.getLogger(__name__)

UPSTREAM_FAILURE_REPLY = "Maaf, asisten sedang tidak dapat dihubungi. Silakan coba lagi sebentar lagi."
ACTION_FAILURE_REPLY = "Maaf, saya mencoba melakukan tindakan tetapi gagal memproses perintah."
PERSISTENCE_FAILURE_REPLY = "Maaf, perubahan gagal disimpan. Silakan coba lagi."
GENERIC_FAILURE_REPLY = "Maaf, terjadi kesalahan. Silakan coba lagi."


def entity_not_found_reply(name: str) -> str:
    return f'⚠️ Produk "{name}" tidak ditemukan.'


def ambiguous_entity_reply(name: str, candidates: Sequence[str]) -> str:
    return (
        f'⚠️ Produk "{name}" cocok dengan beberapa produk: {", ".join(candidates)}. '
        "Sebutkan nama produk yang lebih lengkap."
    )


class _TurnTrace:
    """Records state transitions for one turn (debug logging only)."""

    def __init__(self):
        self.turn_id = uuid.uuid4().hex[:8]
        self.states: List[TurnState] = ["IDLE"]

    def enter(self, state: TurnState) -> None:
        logger.debug(f"turn {self.turn_id}: {self.states[-1]} -> {state}")
        self.states.append(state)

    def finish(self, state: TurnState, reply: str) -> TurnOutput:
        self.enter(state)
        logger.info(f"turn {self.turn_id} finished in {state}")
        return {"status": state, "reply": reply}


async def assemble_context(ledger, now: Optional[datetime] = None) -> ContextSnapshot:
    """
    Build the read-only context snapshot for one turn.

    Raises:
        PersistenceFailure: the ledger could not be read
    """
    products = await ledger.list_products()
    transactions = await ledger.list_recent_transactions(settings.RECENT_TRANSACTIONS_LIMIT)

    return ContextSnapshot(
        business_id=str(ledger.business_id),
        business_name=str(getattr(ledger, "business_name", None) or DEFAULT_BUSINESS_NAME),
        current_time=now or datetime.now(timezone.utc),
        products=tuple(ProductSnapshot.from_row(row) for row in products),
        recent_transactions=tuple(
            TransactionSnapshot.from_row(row)
            for row in transactions[: settings.RECENT_TRANSACTIONS_LIMIT]
        ),
    )


async def _run_turn(
    trace: _TurnTrace,
    ledger,
    history: Sequence[ChatMessage],
    message: str,
    image_ref: Optional[str],
    gateway: Optional[ModelGateway],
) -> TurnOutput:
    try:
        snapshot = await assemble_context(ledger)
    except PersistenceFailure as e:
        logger.error(f"turn {trace.turn_id}: context assembly failed: {e}")
        return trace.finish("FALLBACK_REPLY", GENERIC_FAILURE_REPLY)
    trace.enter("CONTEXT_ASSEMBLED")

    request = compile_request(
        "chat_action",
        snapshot=snapshot,
        history=history,
        message=message,
        image_ref=image_ref,
    )

    trace.enter("REQUESTED")
    gateway = gateway or get_model_gateway()
    try:
        if gateway is None:
            raise UpstreamUnavailable("unavailable", "GOOGLE_API_KEY not configured")
        raw_reply = await gateway.send(request)
    except UpstreamUnavailable as e:
        logger.warning(f"turn {trace.turn_id}: {e}")
        return trace.finish("FALLBACK_REPLY", UPSTREAM_FAILURE_REPLY)
    trace.enter("REPLIED")

    payload = extract_payload(raw_reply)
    if payload is None:
        return trace.finish("PLAIN_REPLY", raw_reply)
    trace.enter("PAYLOAD_FOUND")

    trace.enter("VALIDATING")
    try:
        action = validate_payload("chat_action", payload)
    except SchemaViolation as e:
        trace.enter("INVALID")
        logger.warning(f"turn {trace.turn_id}: action rejected, fields={e.fields}")
        return trace.finish("FALLBACK_REPLY", ACTION_FAILURE_REPLY)
    trace.enter("VALIDATED")

    if isinstance(action, UnrecognizedAction):
        logger.warning(
            f"turn {trace.turn_id}: payload without action (keys={list(action.payload_keys)}); "
            "returning reply unchanged"
        )
        return trace.finish("PLAIN_REPLY", raw_reply)

    product = None
    if isinstance(action, UpdateStockAction):
        trace.enter("RESOLVING")
        try:
            product = resolve_product(action.product_name, snapshot.products)
        except EntityNotFound as e:
            trace.enter("UNRESOLVED")
            return trace.finish("FALLBACK_REPLY", entity_not_found_reply(e.name))
        except AmbiguousEntity as e:
            trace.enter("UNRESOLVED")
            return trace.finish("FALLBACK_REPLY", ambiguous_entity_reply(e.name, e.candidates))
        trace.enter("RESOLVED")

    trace.enter("DISPATCHING")
    try:
        result = await dispatch_action(ledger, action, product=product)
    except PersistenceFailure as e:
        logger.error(f"turn {trace.turn_id}: ledger mutation failed: {e}")
        return trace.finish("FALLBACK_REPLY", PERSISTENCE_FAILURE_REPLY)

    if result is None:
        return trace.finish("PLAIN_REPLY", raw_reply)

    return trace.finish("DONE", result.confirmation)


async def interpret_turn(
    ledger,
    history: Sequence[ChatMessage],
    message: str,
    image_ref: Optional[str] = None,
    gateway: Optional[ModelGateway] = None,
) -> TurnOutput:
    """
    Run one assistant turn for a business.

    Args:
        ledger: Business-scoped LedgerStore
        history: Prior turns, oldest first (role user/assistant)
        message: The user's new message
        image_ref: Optional attached image (base64, data URL or http URL)
        gateway: Model gateway; defaults to the shared Gemini gateway

    Returns:
        TurnOutput with status PLAIN_REPLY, DONE or FALLBACK_REPLY. Never raises.
    """
    trace = _TurnTrace()
    logger.info(f"turn {trace.turn_id} started for business {getattr(ledger, 'business_id', '?')}")

    try:
        return await _run_turn(trace, ledger, history, message, image_ref, gateway)
    except Exception as e:
        logger.error(f"turn {trace.turn_id} failed unexpectedly: {e}", exc_info=True)
        return trace.finish("FALLBACK_REPLY", GENERIC_FAILURE_REPLY)
