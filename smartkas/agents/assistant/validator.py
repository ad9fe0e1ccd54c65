"""
Payload Validator

The single choke point between model output and anything that can touch the
ledger. Every extracted payload goes through validate_payload() before code
is allowed to branch on it.
"""

import logging
from typing import Any, Iterable, List, Tuple, Union

from pydantic import BaseModel, ValidationError

from smartkas.agents.assistant.errors import SchemaViolation
from smartkas.agents.assistant.schemas import get_schema
from smartkas.agents.assistant.types import ExtractionTask, UnrecognizedAction

logger = logging.getLogger(__name__)


def _format_loc(loc: Tuple[Union[str, int], ...]) -> str:
    """("products", 0, "name") -> "products[0].name" """
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path or "<root>"


def _violated_fields(errors: Iterable[dict]) -> List[str]:
    fields: List[str] = []
    for error in errors:
        field = _format_loc(tuple(error.get("loc", ())))
        if field not in fields:
            fields.append(field)
    return fields


def validate_payload(task: ExtractionTask, payload: Any) -> Union[BaseModel, UnrecognizedAction]:
    """
    Validate and coerce an extracted payload against the task schema.

    Args:
        task: Extraction task whose registry entry describes the payload
        payload: Untyped JSON tree from the response extractor

    Returns:
        The validated Pydantic model for the task. For discriminated tasks
        (chat_action) a payload that carries no discriminator at all yields
        UnrecognizedAction, which callers must treat as a no-op.

    Raises:
        SchemaViolation: required field missing, uncoercible value, empty array
            where the schema needs items, or unknown discriminator value.
    """
    schema = get_schema(task)

    if schema.array_root and isinstance(payload, list):
        payload = {schema.array_root: payload}

    if schema.discriminator:
        if not isinstance(payload, dict) or schema.discriminator not in payload:
            keys = tuple(payload.keys()) if isinstance(payload, dict) else ()
            logger.info(f"{task} payload has no '{schema.discriminator}' field; treating as unrecognized")
            return UnrecognizedAction(payload_keys=keys)

        raw_value = payload[schema.discriminator]
        value = raw_value.strip().lower() if isinstance(raw_value, str) else raw_value
        model = schema.variant_for(value)
        if model is None:
            logger.warning(
                f"{task} payload has unknown {schema.discriminator}={raw_value!r}; "
                f"expected one of {schema.discriminator_values}"
            )
            raise SchemaViolation([schema.discriminator], detail=f"unknown value {raw_value!r}")
    else:
        if not isinstance(payload, dict):
            logger.warning(f"{task} payload is a {type(payload).__name__}, expected an object")
            raise SchemaViolation(["<root>"], detail="expected a JSON object")
        model = schema.models[0]

    try:
        validated = model.model_validate(payload)
    except ValidationError as e:
        fields = _violated_fields(e.errors())
        logger.warning(f"{task} payload rejected; offending fields: {fields}")
        raise SchemaViolation(fields, detail=str(e)) from e

    logger.debug(f"{task} payload validated as {model.__name__}")
    return validated
