"""
Response Extractor

Finds the structured payload embedded in a model's free-text reply.

Strategies run in order and the first one that finds a candidate wins:
1. a fenced block labeled as JSON (```json ... ``` or ~~~json ... ~~~)
2. the first top-level {...} or [...] span that parses as JSON

If neither finds anything the reply is conversational prose and the result is
None. A candidate that fails to parse is also None: nothing half-parsed ever
reaches the validator.

A candidate is parsed as-is first. Only when that fails are the usual model
glitches (smart quotes, trailing commas) repaired for a second attempt, so a
well-formed payload is never rewritten.
"""

import json
import logging
import re
from typing import Any, Callable, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)

_LABELED_FENCE = re.compile(
    r"(?P<fence>```|~~~)[ \t]*json[c5]?[ \t]*\r?\n?(?P<body>[\s\S]*?)(?P=fence)",
    re.IGNORECASE,
)
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

_OPENERS = "{["
_CLOSERS = "}]"


def _repair(candidate: str) -> str:
    """Undo the usual model glitches that break JSON parsing."""
    # Curly/smart quotes -> plain quotes
    text = candidate.replace("“", '"').replace("”", '"')
    text = text.replace("‘", "'").replace("’", "'")
    # Trailing commas before } or ]
    return _TRAILING_COMMA.sub(r"\1", text)


def _loads(candidate: str) -> Any:
    """Parse a candidate, retrying once on its repaired form. Raises JSONDecodeError."""
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        repaired = _repair(candidate)
        if repaired == candidate:
            raise
        return json.loads(repaired)


def _span_end(text: str, start: int) -> Optional[int]:
    """Index just past the closer matching the opener at `start`, or None if it never closes."""
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def _top_level_spans(text: str) -> Iterator[str]:
    index = 0
    while index < len(text):
        if text[index] not in _OPENERS:
            index += 1
            continue
        end = _span_end(text, index)
        if end is None:
            return
        yield text[index:end]
        index = end


def _from_labeled_fence(text: str) -> Optional[str]:
    match = _LABELED_FENCE.search(text)
    if match:
        return match.group("body").strip()
    return None


def _from_bare_span(text: str) -> Optional[str]:
    # Nested spans are never tried on their own: a broken outer object
    # must not leak an inner fragment
    for span in _top_level_spans(text):
        try:
            _loads(span)
        except json.JSONDecodeError:
            continue
        return span
    return None


EXTRACTION_STRATEGIES: Tuple[Callable[[str], Optional[str]], ...] = (
    _from_labeled_fence,
    _from_bare_span,
)


def extract_payload(raw_reply: str) -> Optional[Any]:
    """
    Extract the structured payload from a raw model reply.

    Args:
        raw_reply: Text returned by the model gateway

    Returns:
        The parsed JSON tree (dict or list), or None when the reply carries no
        parseable structured block.
    """
    if not raw_reply or not raw_reply.strip():
        return None

    text = _CONTROL_CHARS.sub("", raw_reply)

    candidate = None
    for strategy in EXTRACTION_STRATEGIES:
        candidate = strategy(text)
        if candidate is not None:
            logger.debug(f"Payload candidate found by {strategy.__name__}")
            break

    if candidate is None:
        return None

    try:
        return _loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning(f"Payload candidate is not valid JSON: {e}")
        return None
