"""Tests for the shiftdesk backend API client.

Tests the shiftdesk.core.api module with mocked HTTP responses: request
shaping, envelope decoding, payload validation and error mapping.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from shiftdesk.core.api import ApiError, Service, Shift, ShiftDeskClient, Ticket

SERVICE_ID = "3f2b8c1e-6a4d-4e7f-9b1a-2c3d4e5f6a7b"


def make_response(status: int = 200, json=None, text: str | None = None) -> httpx.Response:
    request = httpx.Request("GET", "http://localhost:3000/api")
    if text is not None:
        return httpx.Response(status, text=text, request=request)
    return httpx.Response(status, json=json, request=request)


class TestModels:
    """Tests for the response models."""

    def test_ticket_defaults(self):
        """Ticket status defaults to OPEN."""
        ticket = Ticket(id="t1")
        assert ticket.status == "OPEN"
        assert ticket.description is None

    def test_shift_only_requires_id(self):
        assert Shift(id="s1").start_at is None

    def test_api_error_status(self):
        err = ApiError("Unauthorized", status=401)
        assert str(err) == "Unauthorized"
        assert err.status == 401


class TestClientInit:
    """Tests for ShiftDeskClient initialization."""

    def test_default_endpoint(self):
        assert ShiftDeskClient().endpoint == "http://localhost:3000"

    def test_trailing_slash_stripped(self):
        assert ShiftDeskClient("https://app.example.com/").endpoint == "https://app.example.com"

    def test_headers_without_token(self):
        assert "Authorization" not in ShiftDeskClient()._headers()

    def test_headers_with_token(self):
        headers = ShiftDeskClient(access_token="abc")._headers()
        assert headers["Authorization"] == "Bearer abc"


@pytest.mark.asyncio
class TestShifts:
    """Tests for shift start/end requests."""

    async def test_start_shift(self):
        """start_shift posts the position and returns the shift."""
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = make_response(
                json={"data": {"id": "s1", "start_at": "2026-03-02T08:15:00Z"}}
            )

            async with ShiftDeskClient(access_token="tok") as api:
                shift = await api.start_shift(14.5995, 120.9842)

            assert shift.id == "s1"
            args, kwargs = mock_request.call_args
            assert args == ("POST", "http://localhost:3000/api/shifts/start")
            assert kwargs["json"] == {"lat": 14.5995, "lng": 120.9842}
            assert kwargs["headers"]["Authorization"] == "Bearer tok"

    @pytest.mark.parametrize("lat", [float("nan"), float("inf"), "14.5", True, None])
    async def test_invalid_coordinates_rejected_locally(self, lat):
        """Invalid positions never reach the backend."""
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            api = ShiftDeskClient()
            with pytest.raises(ApiError) as exc_info:
                await api.start_shift(lat, 120.0)

            assert exc_info.value.status == 422
            assert str(exc_info.value) == "Invalid geolocation"
            mock_request.assert_not_called()

    async def test_already_active_error(self):
        """Backend error envelope is surfaced as ApiError."""
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = make_response(
                400, json={"error": "Already have an active shift"}
            )

            api = ShiftDeskClient()
            with pytest.raises(ApiError) as exc_info:
                await api.start_shift(1.0, 2.0)

            assert str(exc_info.value) == "Already have an active shift"
            assert exc_info.value.status == 400
            await api.close()

    async def test_end_shift_with_id(self):
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = make_response(json={"data": {"id": "s1"}})

            async with ShiftDeskClient() as api:
                shift = await api.end_shift(1.0, 2.0, shift_id="s1")

            assert shift == Shift(id="s1")
            assert mock_request.call_args.kwargs["json"] == {"lat": 1.0, "lng": 2.0, "shift_id": "s1"}

    async def test_end_shift_without_data(self):
        """An empty success envelope is accepted for end_shift."""
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = make_response(json={"data": None})

            async with ShiftDeskClient() as api:
                assert await api.end_shift(1.0, 2.0) is None

            assert "shift_id" not in mock_request.call_args.kwargs["json"]


@pytest.mark.asyncio
class TestTickets:
    """Tests for ticket requests."""

    async def test_create_ticket(self):
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = make_response(
                json={"data": {"id": "t1", "description": "Printer jammed", "status": "OPEN"}}
            )

            async with ShiftDeskClient() as api:
                ticket = await api.create_ticket(SERVICE_ID, "  Printer jammed  ")

            assert ticket.id == "t1"
            assert mock_request.call_args.kwargs["json"] == {
                "service_id": SERVICE_ID,
                "description": "Printer jammed",
            }

    @pytest.mark.parametrize(
        "service_id,description",
        [("not-a-uuid", "Printer jammed"), (SERVICE_ID, ""), (SERVICE_ID, "   ")],
    )
    async def test_invalid_payload(self, service_id, description):
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            api = ShiftDeskClient()
            with pytest.raises(ApiError) as exc_info:
                await api.create_ticket(service_id, description)

            assert exc_info.value.status == 422
            mock_request.assert_not_called()

    async def test_list_tickets(self):
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = make_response(
                json={
                    "data": [
                        {"id": "t2", "description": "Door stuck", "status": "IN_PROGRESS"},
                        {"id": "t1", "description": "Printer jammed"},
                    ]
                }
            )

            async with ShiftDeskClient() as api:
                tickets = await api.list_tickets()

            assert [t.id for t in tickets] == ["t2", "t1"]
            assert tickets[0].status == "IN_PROGRESS"
            assert mock_request.call_args.args == ("GET", "http://localhost:3000/api/tickets")

    async def test_list_services(self):
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = make_response(
                json={"data": [{"id": SERVICE_ID, "name": "Facilities"}]}
            )

            async with ShiftDeskClient() as api:
                services = await api.list_services()

            assert services == [Service(id=SERVICE_ID, name="Facilities")]


@pytest.mark.asyncio
class TestErrorMapping:
    """Tests for transport and envelope failures."""

    async def test_transport_error(self):
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = httpx.ConnectError("Connection refused")

            api = ShiftDeskClient()
            with pytest.raises(ApiError) as exc_info:
                await api.list_tickets()

            assert "Request to /api/tickets failed" in str(exc_info.value)
            assert exc_info.value.status is None
            await api.close()

    async def test_non_json_body(self):
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = make_response(502, text="<html>Bad Gateway</html>")

            api = ShiftDeskClient()
            with pytest.raises(ApiError) as exc_info:
                await api.list_tickets()

            assert str(exc_info.value) == "Invalid JSON (502)"
            assert exc_info.value.status == 502
            await api.close()

    async def test_non_object_body(self):
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = make_response(json=["unexpected"])

            api = ShiftDeskClient()
            with pytest.raises(ApiError, match="Invalid JSON"):
                await api.list_services()
            await api.close()

    async def test_missing_data(self):
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = make_response(json={})

            api = ShiftDeskClient()
            with pytest.raises(ApiError, match="HTTP 200"):
                await api.start_shift(1.0, 2.0)
            await api.close()

    async def test_status_without_error_message(self):
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = make_response(401, json={"data": None})

            api = ShiftDeskClient()
            with pytest.raises(ApiError) as exc_info:
                await api.list_tickets()

            assert str(exc_info.value) == "HTTP 401"
            await api.close()


@pytest.mark.asyncio
class TestExport:
    """Tests for CSV export downloads."""

    async def test_export_returns_text(self):
        csv_text = "id,start_at\ns1,2026-03-02T08:15:00Z\n"
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = make_response(text=csv_text)

            async with ShiftDeskClient() as api:
                assert await api.export_csv("shifts") == csv_text

            assert mock_request.call_args.args[1] == "http://localhost:3000/api/export/shifts"

    async def test_export_forbidden(self):
        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = make_response(403, text="Forbidden\n")

            api = ShiftDeskClient()
            with pytest.raises(ApiError) as exc_info:
                await api.export_csv("tickets")

            assert str(exc_info.value) == "Forbidden"
            assert exc_info.value.status == 403
            await api.close()

    async def test_unknown_kind(self):
        api = ShiftDeskClient()
        with pytest.raises(ValueError, match="Unknown export kind"):
            await api.export_csv("users")  # type: ignore[arg-type]


@pytest.mark.asyncio
class TestContextManager:
    """Tests for the async context manager protocol."""

    async def test_closes_client(self):
        api = ShiftDeskClient()
        api._client = httpx.AsyncClient()

        async with api:
            pass

        assert api._client is None
