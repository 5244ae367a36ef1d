"""
Tests for the exception handlers in main.py.
"""
import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import Request
from fastapi.responses import JSONResponse

from main import global_exception_handler, service_error_handler
from services.errors import (
    InvalidInputError,
    LimitExceededError,
    NotFoundError,
    UpstreamFailureError,
)


def make_request(method="GET", url="http://test.com/test"):
    request = MagicMock(spec=Request)
    request.method = method
    request.url = MagicMock()
    request.url.__str__ = lambda self: url
    request.url.path = "/test"
    return request


@pytest.mark.asyncio
async def test_global_exception_handler_returns_safe_message():
    exc = ValueError("This is a sensitive internal error message")

    response = await global_exception_handler(make_request(), exc)

    assert isinstance(response, JSONResponse)
    assert response.status_code == 500
    body = json.loads(response.body.decode())
    assert body["detail"] == "Internal Server Error"
    assert "ValueError" not in str(body)
    assert "sensitive internal error" not in str(body).lower()


@pytest.mark.asyncio
async def test_global_exception_handler_logs_full_traceback():
    request = make_request("POST", "http://test.com/reports/weekly/generate")

    with patch("main.logger") as mock_logger:
        await global_exception_handler(request, RuntimeError("Internal server issue"))

        mock_logger.exception.assert_called_once()
        call_args = mock_logger.exception.call_args
        assert call_args[1].get("exc_info") is True
        assert "POST" in str(call_args[0])


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc,status",
    [
        (NotFoundError("User not found"), 404),
        (InvalidInputError("Invalid date"), 400),
        (LimitExceededError("A day can hold at most 3 moods"), 400),
        (UpstreamFailureError("Failed to read mood records"), 502),
    ],
)
async def test_service_errors_map_to_status_codes(exc, status):
    response = await service_error_handler(make_request(), exc)

    assert response.status_code == status
    assert json.loads(response.body.decode()) == {"detail": exc.message}


def test_upstream_failure_surfaces_as_502(client, fake_db):
    fake_db.failing_tables.add("mood_months")

    response = client.get(
        "/users/patient-0001/moods/month/2024-01",
        headers={"Authorization": "Bearer patient-token"},
    )

    assert response.status_code == 502
    assert response.json() == {"detail": "Failed to read mood records"}
