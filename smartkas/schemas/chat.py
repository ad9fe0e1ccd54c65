"""
Pydantic schemas for the assistant chat endpoints.

The chat endpoint is stateless: the client sends the whole conversation on
every request and the last message is the user's new message.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ChatMessageRequest(BaseModel):
    """One conversation message as sent by the client."""
    role: Literal["user", "assistant", "system"] = Field(..., description="Message author")
    content: str = Field(..., description="Message text")


class ChatSendRequest(BaseModel):
    """Request body for POST /chat/send."""
    messages: List[ChatMessageRequest] = Field(
        ...,
        min_length=1,
        description="Conversation so far, oldest first. The last message must come from the user.",
    )
    image_url: Optional[str] = Field(
        None,
        description="Optional attached image: http(s) URL, data URL or raw base64",
    )


class ChatSendResponse(BaseModel):
    """Response body for POST /chat/send."""
    reply: str = Field(
        ...,
        description="Assistant reply (prose, action confirmation or fallback message)",
        examples=["📦 Stok diperbarui: Kopi Susu -2. Total: 8 cup."],
    )
    status: Literal["PLAIN_REPLY", "DONE", "FALLBACK_REPLY"] = Field(
        ...,
        description="PLAIN_REPLY: prose only; DONE: one ledger action was performed; FALLBACK_REPLY: the turn failed",
    )


class SpeechToTextResponse(BaseModel):
    """Response body for POST /chat/stt."""
    text: str = Field(..., description="Transcribed text", examples=["jual dua kopi susu"])
