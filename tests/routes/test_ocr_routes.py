"""
Tests for /ocr/scan-products and /ocr/scan-transaction.

Tests cover:
- Happy path: valid image -> DRAFT response
- Unreadable image -> INVALID_IMAGE
- Invalid file type / oversized upload -> 400
- Model unavailable -> 503
"""

from unittest.mock import AsyncMock, patch

import pytest

from smartkas.config import settings


def _ok(payload):
    return {"status": "OK", "payload": payload, "reason": None, "invalid_fields": None}


@pytest.fixture
def mock_catalog_backend(business):
    with patch("smartkas.routes.ocr.get_supabase_client"), \
         patch("smartkas.routes.ocr.get_or_create_business", new_callable=AsyncMock) as mock_business, \
         patch("smartkas.routes.ocr.match_scanned_products", new_callable=AsyncMock) as mock_match:
        mock_business.return_value = business
        yield mock_match


class TestScanProducts:
    """Tests for POST /ocr/scan-products."""

    def test_happy_path_returns_matched_rows(self, client, mock_auth, valid_image_bytes, mock_catalog_backend):
        products = [
            {"name": "Kopi Susu", "stock": 10, "price": 18000.0, "unit": "cup"},
            {"name": "Gula", "stock": 4, "price": 15000.0, "unit": "pcs"},
        ]
        mock_catalog_backend.return_value = [
            {**products[0], "match_type": "EXISTING", "product_id": "prod-kopi-susu", "current_stock": 6},
            {**products[1], "match_type": "NEW"},
        ]

        with patch("smartkas.routes.ocr.scan_products", new_callable=AsyncMock) as mock_scan:
            mock_scan.return_value = _ok({"products": products})
            response = client.post(
                "/ocr/scan-products",
                files={"image": ("note.png", valid_image_bytes, "image/png")},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "DRAFT"
        assert data["products"][0]["unit"] == "cup"
        assert data["products"][0]["match_type"] == "EXISTING"
        assert data["products"][0]["current_stock"] == 6
        assert data["products"][1]["match_type"] == "NEW"
        assert data["products"][1]["product_id"] is None

        image_arg = mock_scan.call_args.args[0]
        assert image_arg.startswith("iVBORw0KGgo")

    def test_invalid_payload_returns_invalid_image(self, client, mock_auth, valid_image_bytes):
        with patch("smartkas.routes.ocr.scan_products", new_callable=AsyncMock) as mock_scan:
            mock_scan.return_value = {
                "status": "INVALID",
                "payload": None,
                "reason": "schema_violation",
                "invalid_fields": ["products[0].name"],
            }
            response = client.post(
                "/ocr/scan-products",
                files={"image": ("note.png", valid_image_bytes, "image/png")},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "INVALID_IMAGE"
        assert data["invalid_fields"] == ["products[0].name"]

    def test_model_unavailable_is_503(self, client, mock_auth, valid_image_bytes):
        with patch("smartkas.routes.ocr.scan_products", new_callable=AsyncMock) as mock_scan:
            mock_scan.return_value = {
                "status": "UNAVAILABLE", "payload": None, "reason": "timeout", "invalid_fields": None,
            }
            response = client.post(
                "/ocr/scan-products",
                files={"image": ("note.png", valid_image_bytes, "image/png")},
            )

        assert response.status_code == 503
        assert response.json()["detail"]["error"] == "model_unavailable"

    def test_rejects_non_image(self, client, mock_auth):
        response = client.post(
            "/ocr/scan-products",
            files={"image": ("note.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_file_type"

    def test_rejects_oversized_image(self, client, mock_auth):
        with patch.object(settings, "MAX_UPLOAD_MB", 0):
            response = client.post(
                "/ocr/scan-products",
                files={"image": ("big.png", b"\x89PNG" + b"\x00" * 64, "image/png")},
            )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "file_too_large"

    def test_missing_token_is_401(self, client, valid_image_bytes):
        response = client.post(
            "/ocr/scan-products",
            files={"image": ("note.png", valid_image_bytes, "image/png")},
        )

        assert response.status_code == 401


class TestScanTransaction:
    """Tests for POST /ocr/scan-transaction."""

    def test_happy_path_returns_receipt_draft(self, client, mock_auth, valid_image_bytes):
        receipt = {
            "date": "2025-01-31",
            "merchant": "Toko Makmur",
            "items": [{"name": "Gula", "price": 15000.0, "quantity": 2.0, "total": 30000.0}],
            "total_amount": 30000.0,
        }

        with patch("smartkas.routes.ocr.scan_receipt", new_callable=AsyncMock) as mock_scan:
            mock_scan.return_value = _ok(receipt)
            response = client.post(
                "/ocr/scan-transaction",
                files={"image": ("receipt.png", valid_image_bytes, "image/png")},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "DRAFT"
        assert data["merchant"] == "Toko Makmur"
        assert data["date"] == "2025-01-31"
        assert data["items"][0]["total"] == 30000.0

    def test_prose_reply_returns_invalid_image(self, client, mock_auth, valid_image_bytes):
        with patch("smartkas.routes.ocr.scan_receipt", new_callable=AsyncMock) as mock_scan:
            mock_scan.return_value = {
                "status": "EMPTY", "payload": None, "reason": "no_payload", "invalid_fields": None,
            }
            response = client.post(
                "/ocr/scan-transaction",
                files={"image": ("receipt.png", valid_image_bytes, "image/png")},
            )

        assert response.status_code == 200
        assert response.json()["status"] == "INVALID_IMAGE"
        assert response.json()["invalid_fields"] == []
