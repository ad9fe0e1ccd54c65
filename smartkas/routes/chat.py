"""
Assistant chat API endpoints.

Flow:
1. POST /chat/send - One assistant turn. May perform ONE ledger action
   (save a transaction or change stock) and confirm it in the reply.
2. POST /chat/stt - Transcribe a voice note into text for the chat input.
"""

import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from smartkas.agents.assistant import UpstreamUnavailable, get_model_gateway, interpret_turn
from smartkas.agents.assistant.types import ChatMessage
from smartkas.auth.dependencies import AuthenticatedUser, get_authenticated_user
from smartkas.db.client import get_supabase_client
from smartkas.schemas.chat import ChatSendRequest, ChatSendResponse, SpeechToTextResponse
from smartkas.services import LedgerStore, get_or_create_business
from smartkas.utils.constants import DEFAULT_BUSINESS_NAME
from smartkas.utils.uploads import read_validated_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post(
    "/send",
    response_model=ChatSendResponse,
    status_code=status.HTTP_200_OK,
    summary="Send a message to the assistant",
    description="""
    Run one assistant turn over the conversation.

    The assistant sees the product catalog and the latest transactions. When
    the message is a command ("catat pengeluaran 20 ribu", "jual 2 kopi susu")
    it performs exactly one ledger action and replies with a confirmation;
    otherwise it answers in prose.

    The endpoint always returns 200 with a reply once the request is valid:
    model or ledger failures come back as a fallback message
    (status FALLBACK_REPLY).
    """
)
async def send_chat_message(
    request: ChatSendRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ChatSendResponse:
    user_id = auth_user.user_id

    latest = request.messages[-1]
    if latest.role != "user" or not latest.content.strip():
        logger.warning(f"Chat request from user {user_id} does not end with a user message")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "invalid_messages",
                "details": "The last message must be a non-empty user message"
            }
        )

    history: List[ChatMessage] = [
        {"role": m.role, "content": m.content}
        for m in request.messages[:-1]
        if m.role in ("user", "assistant")
    ]

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        business = await get_or_create_business(supabase_client, user_id)
    except Exception as e:
        logger.error(f"Failed to load business for user {user_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "business_error",
                "details": "Could not load your business"
            }
        )

    ledger = LedgerStore(
        supabase_client,
        business_id=business["id"],
        business_name=business.get("business_name") or DEFAULT_BUSINESS_NAME,
    )

    logger.info(
        f"Chat turn for user {user_id}, business {business['id']}: "
        f"{len(history)} prior message(s), image={'yes' if request.image_url else 'no'}"
    )

    output = await interpret_turn(
        ledger=ledger,
        history=history,
        message=latest.content,
        image_ref=request.image_url,
    )

    return ChatSendResponse(reply=output["reply"], status=output["status"])


@router.post(
    "/stt",
    response_model=SpeechToTextResponse,
    status_code=status.HTTP_200_OK,
    summary="Transcribe a voice message",
    description="Upload an audio recording and get its transcription for the chat input.",
)
async def speech_to_text(
    audio: Annotated[UploadFile, File(description="Audio recording (webm, ogg, mp3, wav)")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> SpeechToTextResponse:
    audio_bytes = await read_validated_upload(audio, "audio/", "an audio file")

    gateway = get_model_gateway()
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "model_unavailable", "details": "Speech-to-text is not configured"}
        )

    logger.info(f"Transcribing {len(audio_bytes)} bytes of {audio.content_type} for user {auth_user.user_id}")

    try:
        text = await gateway.transcribe_audio(audio_bytes, mime_type=audio.content_type or "audio/webm")
    except UpstreamUnavailable as e:
        logger.error(f"Speech-to-text failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "model_unavailable", "details": "Transcription failed, please try again"}
        )

    return SpeechToTextResponse(text=text)
