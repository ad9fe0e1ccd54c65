"""
OCR scan API endpoints.

Flow:
1. POST /ocr/scan-products - Stock-note photo -> product rows, each marked as
   EXISTING / NEW / AMBIGUOUS against the catalog
2. POST /ocr/scan-transaction - Receipt photo -> merchant, date, items, total

Both are PREVIEW ONLY: nothing is persisted here.
"""

import base64
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from smartkas.agents.assistant import match_scanned_products, scan_products, scan_receipt
from smartkas.agents.assistant.types import ExtractionOutput
from smartkas.auth.dependencies import AuthenticatedUser, get_authenticated_user
from smartkas.db.client import get_supabase_client
from smartkas.schemas.ocr import (
    OCRResponseInvalid,
    ProductScanResponse,
    ProductScanResponseDraft,
    ReceiptItemResponse,
    ReceiptScanResponse,
    ReceiptScanResponseDraft,
    ScannedProductResponse,
)
from smartkas.services import LedgerStore, get_or_create_business
from smartkas.utils.uploads import read_validated_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ocr", tags=["ocr"])

INVALID_IMAGE_REASON = "Tidak dapat membaca data dari gambar. Coba foto ulang dengan lebih jelas."


async def _encode_image(image: UploadFile) -> str:
    image_bytes = await read_validated_upload(image, "image/", "an image")
    logger.info(f"Processing OCR upload filename={image.filename}, size={len(image_bytes)} bytes")
    return base64.b64encode(image_bytes).decode("utf-8")


def _unusable_result(output: ExtractionOutput) -> OCRResponseInvalid:
    """Map a non-OK extraction to the INVALID_IMAGE response, or raise 503."""
    if output["status"] == "UNAVAILABLE":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "model_unavailable",
                "details": "The OCR model could not be reached, please try again"
            }
        )

    return OCRResponseInvalid(
        reason=INVALID_IMAGE_REASON,
        invalid_fields=output.get("invalid_fields") or [],
    )


@router.post(
    "/scan-products",
    response_model=ProductScanResponse,
    status_code=status.HTTP_200_OK,
    summary="Scan a stock note into products",
)
async def scan_products_image(
    image: Annotated[UploadFile, File(description="Photo of a stock note or product list")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ProductScanResponse:
    image_base64 = await _encode_image(image)

    output = await scan_products(image_base64)
    if output["status"] != "OK" or not output["payload"]:
        logger.info(f"Product scan for user {auth_user.user_id} unusable: {output['status']}")
        return _unusable_result(output)

    supabase_client = get_supabase_client(auth_user.access_token)
    try:
        business = await get_or_create_business(supabase_client, auth_user.user_id)
        ledger = LedgerStore(supabase_client, business_id=business["id"])
        rows = await match_scanned_products(ledger, output["payload"]["products"])
    except Exception as e:
        logger.error(f"Catalog matching failed for user {auth_user.user_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "catalog_error", "details": "Could not match scanned products"}
        )

    logger.info(f"Product scan for user {auth_user.user_id}: {len(rows)} row(s)")
    return ProductScanResponseDraft(products=[ScannedProductResponse(**row) for row in rows])


@router.post(
    "/scan-transaction",
    response_model=ReceiptScanResponse,
    status_code=status.HTTP_200_OK,
    summary="Scan a receipt into a transaction draft",
)
async def scan_transaction_image(
    image: Annotated[UploadFile, File(description="Photo of a receipt")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ReceiptScanResponse:
    image_base64 = await _encode_image(image)

    output = await scan_receipt(image_base64)
    if output["status"] != "OK" or not output["payload"]:
        logger.info(f"Receipt scan for user {auth_user.user_id} unusable: {output['status']}")
        return _unusable_result(output)

    receipt = output["payload"]
    logger.info(
        f"Receipt scan for user {auth_user.user_id}: merchant={receipt['merchant']}, "
        f"total={receipt['total_amount']}, items={len(receipt['items'])}"
    )

    return ReceiptScanResponseDraft(
        date=receipt["date"],
        merchant=receipt["merchant"],
        items=[ReceiptItemResponse(**item) for item in receipt["items"]],
        total_amount=receipt["total_amount"],
    )
