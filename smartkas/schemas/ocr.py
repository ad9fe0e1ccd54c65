"""
Pydantic schemas for the OCR scan endpoints.

Both scans are PREVIEW ONLY: nothing is persisted. The frontend shows the
result for editing and saves it through the regular product/transaction
endpoints.
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field


class OCRResponseInvalid(BaseModel):
    """
    Returned when the image could not be turned into structured data.

    This happens when:
    - The image is not a stock note / receipt, or is unreadable
    - The model reply did not contain the required fields
    """
    status: Literal["INVALID_IMAGE"] = Field("INVALID_IMAGE")
    reason: str = Field(
        ...,
        description="Human-readable explanation",
        examples=["Tidak dapat membaca data dari gambar. Coba foto ulang dengan lebih jelas."],
    )
    invalid_fields: List[str] = Field(
        default_factory=list,
        description="Payload fields that failed validation, e.g. products[0].name",
    )


# --- Product scan ---

class ScannedProductResponse(BaseModel):
    """One product line read from a stock note, matched against the catalog."""
    name: str
    stock: int
    price: float
    unit: str
    match_type: Literal["EXISTING", "NEW", "AMBIGUOUS"] = Field(
        ...,
        description="EXISTING: one catalog product matches; NEW: none; AMBIGUOUS: several",
    )
    product_id: Optional[str] = Field(None, description="Matched product (EXISTING only)")
    current_stock: Optional[int] = Field(None, description="Catalog stock (EXISTING only)")
    candidates: List[str] = Field(default_factory=list, description="Matching names (AMBIGUOUS only)")


class ProductScanResponseDraft(BaseModel):
    status: Literal["DRAFT"] = Field("DRAFT")
    products: List[ScannedProductResponse]


ProductScanResponse = Union[ProductScanResponseDraft, OCRResponseInvalid]


# --- Receipt scan ---

class ReceiptItemResponse(BaseModel):
    name: str
    price: float
    quantity: float
    total: float


class ReceiptScanResponseDraft(BaseModel):
    status: Literal["DRAFT"] = Field("DRAFT")
    date: str = Field(..., description="Receipt date (YYYY-MM-DD)", examples=["2025-01-31"])
    merchant: str = Field(..., examples=["Toko Makmur"])
    items: List[ReceiptItemResponse]
    total_amount: float = Field(..., examples=[54000])


ReceiptScanResponse = Union[ReceiptScanResponseDraft, OCRResponseInvalid]
