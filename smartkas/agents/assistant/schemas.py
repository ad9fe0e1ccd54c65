"""
Assistant Extraction Schemas

The schema registry: one entry per extraction task, declaring the payload
shape the model must produce. Shapes are Pydantic models so the same
declaration drives validation (with the coercions documented on each model)
and the schema description embedded in prompts.

Tasks:
- product_list: handwritten stock note -> product rows
- transaction_receipt: receipt photo -> one transaction record
- chat_action: chat message -> save_transaction | update_stock command
- anomaly_scan: recent transactions -> list of anomalies (may be empty)
"""

import datetime as dt
import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Tuple, Type, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from smartkas.agents.assistant.types import ExtractionTask
from smartkas.utils.constants import DEFAULT_CATEGORY, DEFAULT_UNIT

_CURRENCY_PREFIX = re.compile(r"^(rp\.?|idr)\s*", re.IGNORECASE)
_THOUSANDS_GROUPED = re.compile(r"^[+-]?\d{1,3}([.,]\d{3})+$")
_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def coerce_number(value: Any) -> Any:
    """
    Turn numeric-looking strings into something Pydantic parses as a number.

    Handles "Rp 18.000", "18,000", " -2 ". Anything else is passed through
    unchanged and left for Pydantic to reject. Booleans are never numbers.
    """
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")
    if not isinstance(value, str):
        return value
    text = _CURRENCY_PREFIX.sub("", value.strip()).replace(" ", "")
    if _THOUSANDS_GROUPED.match(text):
        text = text.replace(".", "").replace(",", "")
    return text


class _Payload(BaseModel):
    # Subclass configs merge with this one, so every numeric field stays finite
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, allow_inf_nan=False)


# =============================================================================
# product_list
# =============================================================================

class ScannedProduct(_Payload):
    """One product row read from a stock note."""
    name: str = Field(..., min_length=1, description="Product name as written")
    stock: int = Field(0, description="Quantity or stock count")
    price: float = Field(0, ge=0, description="Unit price")
    unit: str = Field(DEFAULT_UNIT, description="e.g. pcs, kg, box, cup")

    @field_validator("stock", "price", mode="before")
    @classmethod
    def _numeric_or_zero(cls, value: Any) -> Any:
        if _is_blank(value):
            return 0
        return coerce_number(value)

    @field_validator("unit", mode="before")
    @classmethod
    def _unit_or_default(cls, value: Any) -> Any:
        if _is_blank(value):
            return DEFAULT_UNIT
        return value


class ProductListPayload(_Payload):
    products: List[ScannedProduct] = Field(..., min_length=1, description="At least one product row")


# =============================================================================
# transaction_receipt
# =============================================================================

class ReceiptItem(_Payload):
    """One receipt line."""
    name: str = Field(..., min_length=1)
    price: float = Field(..., description="Unit price")
    quantity: float = Field(1, description="Units bought")
    total: Optional[float] = Field(None, description="Line total; price x quantity when omitted")

    @field_validator("price", mode="before")
    @classmethod
    def _price_number(cls, value: Any) -> Any:
        return coerce_number(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_or_one(cls, value: Any) -> Any:
        if _is_blank(value):
            return 1
        return coerce_number(value)

    @field_validator("total", mode="before")
    @classmethod
    def _total_number(cls, value: Any) -> Any:
        if _is_blank(value):
            return None
        return coerce_number(value)

    @model_validator(mode="after")
    def _fill_total(self) -> "ReceiptItem":
        if self.total is None:
            self.total = round(self.price * self.quantity, 2)
        return self


class TransactionReceiptPayload(_Payload):
    date: dt.date = Field(default_factory=dt.date.today, description="YYYY-MM-DD; today if not printed")
    merchant: str = Field(..., min_length=1, description="Store or merchant name")
    items: List[ReceiptItem] = Field(..., description="Line items; may be an empty array")
    total_amount: float = Field(..., ge=0, description="Grand total")

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Any:
        if _is_blank(value):
            return dt.date.today()
        if isinstance(value, str):
            text = value.strip().split("T")[0]
            for fmt in _DATE_FORMATS:
                try:
                    return dt.datetime.strptime(text, fmt).date()
                except ValueError:
                    continue
        return value

    @field_validator("total_amount", mode="before")
    @classmethod
    def _total_number(cls, value: Any) -> Any:
        return coerce_number(value)


# =============================================================================
# chat_action
# =============================================================================

class SaveTransactionAction(_Payload):
    """Record one income/expense in the ledger."""
    action: Literal["save_transaction"]
    type: Literal["in", "out"] = Field(..., description='"in" for income/sales, "out" for expenses')
    amount: float = Field(..., gt=0, description="Positive amount in Rupiah")
    description: str = Field(..., description="Short description of the transaction")
    category: str = Field(DEFAULT_CATEGORY, description="Penjualan | Operasional | Lainnya")

    @field_validator("action", "type", mode="before")
    @classmethod
    def _fold_case(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_number(cls, value: Any) -> Any:
        return coerce_number(value)

    @field_validator("category", mode="before")
    @classmethod
    def _category_or_default(cls, value: Any) -> Any:
        if _is_blank(value):
            return DEFAULT_CATEGORY
        return value


class UpdateStockAction(_Payload):
    """Add to or reduce the stock of one catalog product."""
    action: Literal["update_stock"]
    product_name: str = Field(..., min_length=1, description="Product name from the catalog")
    quantity_change: int = Field(..., description="Positive to add stock, negative to reduce")

    @field_validator("action", mode="before")
    @classmethod
    def _fold_case(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("quantity_change", mode="before")
    @classmethod
    def _change_number(cls, value: Any) -> Any:
        return coerce_number(value)

    @field_validator("quantity_change")
    @classmethod
    def _non_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("quantity_change must not be zero")
        return value


# =============================================================================
# anomaly_scan
# =============================================================================

class Anomaly(_Payload):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, populate_by_name=True)

    title: str = Field(..., min_length=1, description="Short title of the anomaly")
    description: str = Field(..., description="Detailed description")
    severity: Literal["high", "medium", "low"]
    recommendation: str = Field("", description="Actionable advice")
    impact: str = Field("", description="Potential financial impact")
    suggested_actions: List[str] = Field(default_factory=list, alias="suggestedActions")
    amount: Optional[float] = Field(None, description="Amount involved, if any")

    @field_validator("severity", mode="before")
    @classmethod
    def _fold_case(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("recommendation", "impact", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("suggested_actions", mode="before")
    @classmethod
    def _actions_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_number(cls, value: Any) -> Any:
        if _is_blank(value):
            return None
        return coerce_number(value)


class AnomalyScanPayload(_Payload):
    anomalies: List[Anomaly] = Field(..., description="Empty array when nothing unusual was found")


# =============================================================================
# REGISTRY
# =============================================================================

@dataclass(frozen=True)
class ExtractionSchema:
    """Declared payload shape for one extraction task."""
    task: ExtractionTask
    models: Tuple[Type[BaseModel], ...]
    # Field whose value selects one of `models` (discriminated payloads only)
    discriminator: Optional[str] = None
    # A bare JSON array is accepted as the value of this field
    array_root: Optional[str] = None

    def variant_for(self, value: Any) -> Optional[Type[BaseModel]]:
        """Return the model whose discriminator literal equals `value`."""
        if self.discriminator is None:
            return self.models[0]
        for model in self.models:
            if value in get_args(model.model_fields[self.discriminator].annotation):
                return model
        return None

    @property
    def discriminator_values(self) -> List[str]:
        if self.discriminator is None:
            return []
        values: List[str] = []
        for model in self.models:
            values.extend(get_args(model.model_fields[self.discriminator].annotation))
        return values


SCHEMA_REGISTRY: Dict[str, ExtractionSchema] = {
    "product_list": ExtractionSchema(task="product_list", models=(ProductListPayload,)),
    "transaction_receipt": ExtractionSchema(task="transaction_receipt", models=(TransactionReceiptPayload,)),
    "chat_action": ExtractionSchema(
        task="chat_action",
        models=(SaveTransactionAction, UpdateStockAction),
        discriminator="action",
    ),
    "anomaly_scan": ExtractionSchema(
        task="anomaly_scan",
        models=(AnomalyScanPayload,),
        array_root="anomalies",
    ),
}


def get_schema(task: ExtractionTask) -> ExtractionSchema:
    """Look up the registry entry for a task."""
    try:
        return SCHEMA_REGISTRY[task]
    except KeyError:
        raise ValueError(f"Unknown extraction task: {task}") from None


# =============================================================================
# PLAIN-TEXT SCHEMA DESCRIPTION (embedded in prompts)
# =============================================================================

def _ref_name(prop: Dict[str, Any]) -> Optional[str]:
    ref = prop.get("$ref") or prop.get("items", {}).get("$ref")
    if ref:
        return ref.rsplit("/", 1)[-1]
    return None


def _render_type(prop: Dict[str, Any]) -> str:
    if "const" in prop:
        return json.dumps(prop["const"])
    if "enum" in prop:
        return " | ".join(json.dumps(value) for value in prop["enum"])
    if "anyOf" in prop:
        return " | ".join(_render_type(option) for option in prop["anyOf"])
    if "$ref" in prop:
        return "object"
    if prop.get("type") == "array":
        return f"array of {_render_type(prop.get('items', {}))}"
    return prop.get("type", "any")


def _render_fields(schema: Dict[str, Any], defs: Dict[str, Any], depth: int) -> List[str]:
    required = set(schema.get("required", []))
    pad = "  " * depth
    lines = []
    for name, prop in schema.get("properties", {}).items():
        flag = "required" if name in required else "optional"
        if name not in required and "default" in prop:
            flag = f"{flag}, default {json.dumps(prop['default'])}"
        note = f" - {prop['description']}" if prop.get("description") else ""
        lines.append(f"{pad}- {name}: {_render_type(prop)} ({flag}){note}")
        nested = _ref_name(prop)
        if nested and nested in defs:
            lines.extend(_render_fields(defs[nested], defs, depth + 1))
    return lines


def describe_schema(task: ExtractionTask) -> str:
    """Render a task schema as plain text for the prompt."""
    schema = get_schema(task)
    blocks = []
    for model in schema.models:
        json_schema = model.model_json_schema()
        defs = json_schema.get("$defs", {})
        if schema.discriminator:
            value = get_args(model.model_fields[schema.discriminator].annotation)[0]
            header = f'When {schema.discriminator} = "{value}":'
        else:
            header = "JSON object with fields:"
        blocks.append("\n".join([header] + _render_fields(json_schema, defs, 1)))
    if schema.array_root:
        blocks.append(f'A bare JSON array is accepted as the value of "{schema.array_root}".')
    return "\n\n".join(blocks)
