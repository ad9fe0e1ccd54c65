"""
Shared fixtures for route tests: test client, auth override, test images.
"""

import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from smartkas.auth.dependencies import AuthenticatedUser, get_authenticated_user
from smartkas.main import app


@pytest.fixture
def client():
    """Create test client for FastAPI app."""
    return TestClient(app)


async def mock_authenticated_user_dependency():
    """Mock dependency that returns a test user."""
    return AuthenticatedUser(user_id="test-user-uuid-123", access_token="test-token")


@pytest.fixture
def mock_auth():
    """Override get_authenticated_user for the duration of a test."""
    app.dependency_overrides[get_authenticated_user] = mock_authenticated_user_dependency

    yield

    app.dependency_overrides.clear()


@pytest.fixture
def valid_image_bytes():
    """Create a valid test image file in memory."""
    img = Image.new("RGB", (100, 100), color="white")
    img_bytes = io.BytesIO()
    img.save(img_bytes, format="PNG")
    img_bytes.seek(0)
    return img_bytes.getvalue()


@pytest.fixture
def business():
    return {"id": "biz-1", "business_name": "Warung Kopi Test", "business_type": "F&B"}
