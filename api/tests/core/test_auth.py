"""Tests for core.auth - bearer token verification."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from core.auth import get_user_id_from_request, require_auth
from core.wide_event import get_wide_event
from tests.factories import make_token

pytestmark = pytest.mark.unit


def _request(authorization: str | None = None) -> MagicMock:
    request = MagicMock()
    request.headers = {"authorization": authorization} if authorization else {}
    request.state = MagicMock(spec=[])
    return request


class TestGetUserIdFromRequest:
    def test_valid_token(self):
        request = _request(f"Bearer {make_token(42)}")
        assert get_user_id_from_request(request) == 42

    def test_missing_header(self):
        assert get_user_id_from_request(_request()) is None

    def test_non_bearer_scheme(self):
        assert get_user_id_from_request(_request("Basic dXNlcjpwYXNz")) is None

    def test_wrong_secret(self):
        token = make_token(42, secret="some-other-secret-entirely-0000000")
        assert get_user_id_from_request(_request(f"Bearer {token}")) is None
        assert get_wide_event()["auth_error"] == "token_invalid"

    def test_expired(self):
        token = make_token(42, expires_in=timedelta(seconds=-30))
        assert get_user_id_from_request(_request(f"Bearer {token}")) is None
        assert get_wide_event()["auth_error"] == "token_expired"

    @pytest.mark.parametrize("sub", ["abc", "0", "-4"])
    def test_non_numeric_or_non_positive_sub(self, sub):
        token = make_token(sub)
        assert get_user_id_from_request(_request(f"Bearer {token}")) is None

    def test_garbage_token(self):
        assert get_user_id_from_request(_request("Bearer not.a.jwt")) is None


class TestRequireAuth:
    def test_sets_request_state(self):
        request = _request(f"Bearer {make_token(9)}")
        request.state = MagicMock()

        assert require_auth(request) == 9
        assert request.state.user_id == 9
        assert get_wide_event()["user_id"] == 9

    def test_raises_401(self):
        with pytest.raises(HTTPException) as exc_info:
            require_auth(_request())
        assert exc_info.value.status_code == 401
