"""
Assistant error taxonomy.

Every failure below the turn controller is one of these. The controller
recovers all of them into a reply string; the extraction runner maps them to
an ExtractionOutput status. None of them is allowed to reach the HTTP layer
from a chat turn.
"""

from typing import List, Literal, Sequence

UpstreamReason = Literal["timeout", "unavailable", "rate_limited"]


class AssistantError(Exception):
    """Base class for assistant core failures."""


class UpstreamUnavailable(AssistantError):
    """The model gateway timed out, errored, or is not configured."""

    def __init__(self, reason: UpstreamReason, detail: str = ""):
        self.reason = reason
        self.detail = detail
        message = f"Model gateway {reason}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MalformedModelOutput(AssistantError):
    """No parseable payload where one was structurally required (extraction mode)."""


class SchemaViolation(AssistantError):
    """The extracted payload does not conform to the task schema."""

    def __init__(self, fields: Sequence[str], detail: str = ""):
        self.fields: List[str] = list(fields)
        self.detail = detail
        super().__init__(f"Schema violation on: {', '.join(self.fields) or '<root>'}")


class EntityNotFound(AssistantError):
    """No catalog entry contains the requested product name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No product matches '{name}'")


class AmbiguousEntity(AssistantError):
    """More than one catalog entry contains the requested product name."""

    def __init__(self, name: str, candidates: Sequence[str]):
        self.name = name
        self.candidates: List[str] = list(candidates)
        super().__init__(
            f"'{name}' matches {len(self.candidates)} products: {', '.join(self.candidates)}"
        )


class PersistenceFailure(AssistantError):
    """A ledger store call failed; the mutation did not commit."""
