"""
Tests for Supabase JWT verification.

The JWKS client is mocked; jwt.decode is patched so no real keys are needed.
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from smartkas.auth.dependencies import AuthenticatedUser, get_authenticated_user


@pytest.fixture
def mock_jwks():
    with patch("smartkas.auth.dependencies.get_jwks_client") as mock_get:
        jwks_client = MagicMock()
        jwks_client.get_signing_key_from_jwt.return_value = MagicMock(key="public-key")
        mock_get.return_value = jwks_client
        yield jwks_client


class TestGetAuthenticatedUser:
    @pytest.mark.asyncio
    async def test_valid_token(self, mock_jwks):
        with patch("smartkas.auth.dependencies.decode", return_value={"sub": "user-123"}) as mock_decode:
            user = await get_authenticated_user("Bearer good-token")

        assert user == AuthenticatedUser(user_id="user-123", access_token="good-token")
        kwargs = mock_decode.call_args.kwargs
        assert kwargs["algorithms"] == ["ES256"]
        assert kwargs["audience"] == "authenticated"
        assert kwargs["issuer"].endswith("/auth/v1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer"])
    async def test_missing_or_malformed_header(self, header):
        with pytest.raises(HTTPException) as exc_info:
            await get_authenticated_user(header)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_expired_token(self, mock_jwks):
        with patch("smartkas.auth.dependencies.decode", side_effect=ExpiredSignatureError("expired")):
            with pytest.raises(HTTPException) as exc_info:
                await get_authenticated_user("Bearer old-token")

        assert exc_info.value.detail["error"] == "token_expired"

    @pytest.mark.asyncio
    async def test_invalid_token(self, mock_jwks):
        with patch("smartkas.auth.dependencies.decode", side_effect=InvalidTokenError("bad")):
            with pytest.raises(HTTPException) as exc_info:
                await get_authenticated_user("Bearer bad-token")

        assert exc_info.value.detail["error"] == "invalid_token"

    @pytest.mark.asyncio
    async def test_missing_sub_claim(self, mock_jwks):
        with patch("smartkas.auth.dependencies.decode", return_value={"aud": "authenticated"}):
            with pytest.raises(HTTPException) as exc_info:
                await get_authenticated_user("Bearer no-sub")

        assert exc_info.value.detail["details"] == "Invalid token: missing user ID"
