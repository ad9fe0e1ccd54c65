"""
Assistant Prompt Templates

Contains the system prompts and the request compiler for every extraction
task.

Architecture:
- Pattern: Single-turn request/response (no tools, no multi-step planning)
- Model: Gemini (vision-capable for OCR and chat attachments)
- Output: Free text that MAY embed one fenced JSON block

Prompt Engineering Pattern:
- XML tags for structured content
- Schema descriptions are rendered from the schema registry, never hand-copied
- Business context is rendered as plain text, not as a JSON object
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from smartkas.agents.assistant.schemas import describe_schema
from smartkas.agents.assistant.types import (
    ChatMessage,
    ContextSnapshot,
    ExtractionTask,
    GatewayMessage,
    TransactionSnapshot,
)
from smartkas.utils.constants import DEFAULT_UNIT, TRANSACTION_CATEGORIES
from smartkas.utils.formatting import format_quantity, format_rupiah


@dataclass(frozen=True)
class CompiledRequest:
    """Everything the model gateway needs for one call."""
    task: ExtractionTask
    messages: List[GatewayMessage]  # messages[0] is the system message
    image_ref: Optional[str] = None  # attached to the last user message
    temperature: float = 0.0
    max_output_tokens: int = 1024

    @property
    def system_instruction(self) -> str:
        return "\n\n".join(m["content"] for m in self.messages if m["role"] == "system")


# =============================================================================
# SYSTEM PROMPTS
# =============================================================================

ASSISTANT_SYSTEM_PROMPT = """You are SmartKas, a helpful bookkeeping assistant for a small business owner.

<role>
You answer questions about the business data in the context below and you can record
ledger actions (transactions and stock changes) when the owner asks for them.
</role>

<limitations>
- You can only use the data in the context; you cannot look anything else up
- You perform at most ONE action per message
- You never invent products that are not in the product list
</limitations>"""

PRODUCT_SCAN_SYSTEM_PROMPT = """You are a stock-note reader for a small shop.

<role>
You read photos of handwritten or printed stock notes and turn every product line into
structured data: product name, stock count, unit price and unit.
</role>"""

RECEIPT_SCAN_SYSTEM_PROMPT = """You are a receipt reader for a small business bookkeeping app.

<role>
You read photos of receipts and purchase notes and extract the merchant, date, line items
and grand total as structured data.
</role>"""

ANOMALY_SCAN_SYSTEM_PROMPT = "You are a financial fraud detection expert for small businesses."


# =============================================================================
# CONTEXT RENDERING
# =============================================================================

def _render_transaction(txn: TransactionSnapshot) -> str:
    line = f"- {txn.date}: {txn.type.upper()} {format_rupiah(txn.amount)} ({txn.description or 'No Desc'})"
    if txn.category:
        line = f"{line} [{txn.category}]"
    return line


def render_context(snapshot: ContextSnapshot) -> str:
    """
    Render the context snapshot as plain text.

    Every catalog product and every transaction in the (already capped)
    recent window is listed; nothing is truncated here.
    """
    products_text = "\n".join(
        f"- {p.name}: {format_quantity(p.stock)} {p.unit} ({format_rupiah(p.price)})"
        for p in snapshot.products
    ) or "(No products yet)"

    transactions_text = "\n".join(
        _render_transaction(t) for t in snapshot.recent_transactions
    ) or "(No transactions yet)"

    return f"""<context>
Business: {snapshot.business_name}
Current time: {snapshot.current_time.strftime("%d/%m/%Y %H:%M")}

Products & stock:
{products_text}

Recent transactions (latest {len(snapshot.recent_transactions)}, newest first):
{transactions_text}
</context>"""


def build_assistant_system_message(snapshot: ContextSnapshot) -> str:
    """System message for a chat turn: role, context, action grammar and rules."""
    categories = " | ".join(TRANSACTION_CATEGORIES)
    return f"""{ASSISTANT_SYSTEM_PROMPT}

{render_context(snapshot)}

<actions>
You can PERFORM ACTIONS by emitting one JSON object with an "action" field.

{describe_schema("chat_action")}

Transaction categories: {categories}
</actions>

<examples>
<example>
User: "catat pemasukan 50 ribu dari jual kopi"
Reply:
```json
{{"action": "save_transaction", "type": "in", "amount": 50000, "description": "Jual kopi", "category": "Penjualan"}}
```
</example>

<example>
User: "jual 2 kopi susu"
Reply:
```json
{{"action": "update_stock", "product_name": "Kopi Susu", "quantity_change": -2}}
```
</example>
</examples>

<rules>
- Emit a fenced ```json block matching one of the shapes above if and only if the user's intent
  is an executable command. In that case output ONLY the JSON block, no chat text.
- Otherwise reply in prose and do NOT output any JSON, braces or brackets.
- Use the exact product name from the product list for update_stock.
- Speak Indonesian.
- Be concise.
</rules>"""


def _history_messages(history: Sequence[ChatMessage]) -> List[GatewayMessage]:
    messages: List[GatewayMessage] = []
    for turn in history:
        role = turn.get("role")
        content = turn.get("content")
        # Client-supplied system messages are never forwarded
        if role not in ("user", "assistant") or not content:
            continue
        messages.append({"role": role, "content": content})
    return messages


# =============================================================================
# EXTRACTION PROMPTS
# =============================================================================

def build_product_scan_prompt() -> str:
    return f"""Extract every product line from the attached stock note.

<instructions>
1. One row per product line. Keep product names as written.
2. stock is the quantity/count; price is the unit price as a plain number (18000, not "Rp18.000").
3. If the unit is not written, use "{DEFAULT_UNIT}".
4. Skip totals, dates and signatures.
</instructions>

<output_schema>
{describe_schema("product_list")}
</output_schema>

Return ONLY one fenced ```json block. No prose."""


def build_receipt_scan_prompt() -> str:
    return f"""Extract the transaction from the attached receipt.

<instructions>
1. date in YYYY-MM-DD. If no date is printed, omit the field.
2. merchant is the store name at the top of the receipt.
3. One item per line with its unit price and quantity; amounts as plain numbers.
4. total_amount is the grand total actually paid.
</instructions>

<output_schema>
{describe_schema("transaction_receipt")}
</output_schema>

Return ONLY one fenced ```json block. No prose."""


def build_anomaly_scan_prompt(transactions: Sequence[TransactionSnapshot]) -> str:
    transactions_text = "\n".join(_render_transaction(t) for t in transactions) or "(none)"
    return f"""Analyze the following transactions for anomalies (fraud, unusual spending, spikes, duplicates).

<transactions>
{transactions_text}
</transactions>

<output_schema>
{describe_schema("anomaly_scan")}
</output_schema>

If no anomalies are found, return {{"anomalies": []}}.
Return ONLY one fenced ```json block. No prose."""


# =============================================================================
# REQUEST COMPILER
# =============================================================================

def compile_request(
    task: ExtractionTask,
    snapshot: Optional[ContextSnapshot] = None,
    history: Sequence[ChatMessage] = (),
    message: Optional[str] = None,
    image_ref: Optional[str] = None,
    transactions: Sequence[TransactionSnapshot] = (),
) -> CompiledRequest:
    """
    Build the outbound request for a task. Pure function of its inputs.

    Args:
        task: Extraction task
        snapshot: Business context (chat_action only)
        history: Prior conversation turns, oldest first (chat_action only)
        message: The user's new message (chat_action only)
        image_ref: Optional image (base64, data URL or http URL)
        transactions: Transactions to analyze (anomaly_scan only)

    Returns:
        CompiledRequest ready for ModelGateway.send()
    """
    if task == "chat_action":
        if snapshot is None:
            raise ValueError("chat_action requests need a context snapshot")
        messages: List[GatewayMessage] = [
            {"role": "system", "content": build_assistant_system_message(snapshot)},
            *_history_messages(history),
            {"role": "user", "content": message or "Analyze this image."},
        ]
        return CompiledRequest(
            task=task,
            messages=messages,
            image_ref=image_ref,
            temperature=0.2,
            max_output_tokens=1024,
        )

    if task == "product_list":
        system, user = PRODUCT_SCAN_SYSTEM_PROMPT, build_product_scan_prompt()
        temperature, max_tokens = 0.0, 2048
    elif task == "transaction_receipt":
        system, user = RECEIPT_SCAN_SYSTEM_PROMPT, build_receipt_scan_prompt()
        temperature, max_tokens = 0.0, 2048
    elif task == "anomaly_scan":
        system, user = ANOMALY_SCAN_SYSTEM_PROMPT, build_anomaly_scan_prompt(transactions)
        temperature, max_tokens = 0.1, 2048
    else:
        raise ValueError(f"Unknown extraction task: {task}")

    return CompiledRequest(
        task=task,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        image_ref=image_ref,
        temperature=temperature,
        max_output_tokens=max_tokens,
    )
