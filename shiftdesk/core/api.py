"""HTTP client for the shiftdesk backend API.

The backend owns persistence, auth and row-level security. This client
only shapes requests and decodes the response envelope:

    {"data": ...}   on success
    {"error": "..."} on failure

Example:
    >>> async with ShiftDeskClient("https://app.example.com", token) as api:
    ...     shift = await api.start_shift(14.5995, 120.9842)
    ...     ticket = await api.create_ticket(service_id, "Printer jammed")
"""

from __future__ import annotations

import logging
import math
import uuid
from typing import Any, Literal

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)

ExportKind = Literal["shifts", "tickets"]


class Service(BaseModel):
    """A service tickets can be filed against."""

    id: str
    name: str


class Ticket(BaseModel):
    """A ticket as returned to its author."""

    id: str
    description: str | None = None
    status: str = "OPEN"
    created_at: str | None = None


class Shift(BaseModel):
    """A shift row; only the id is guaranteed by start/end responses."""

    id: str
    start_at: str | None = None
    end_at: str | None = None


class ApiError(Exception):
    """Backend request failed.

    Raised for transport failures, non-2xx responses, error envelopes,
    and payloads rejected before sending.

    Attributes:
        status: HTTP status code when one is known
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


def _check_coordinates(lat: float, lng: float) -> None:
    for value in (lat, lng):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ApiError("Invalid geolocation", status=422)


class ShiftDeskClient:
    """Async client for the shift and ticket endpoints.

    The httpx.AsyncClient is created lazily and reused; close it with
    close() or use the client as an async context manager.
    """

    def __init__(
        self,
        endpoint: str = "http://localhost:3000",
        access_token: str | None = None,
        timeout: float = 15.0,
    ):
        """Initialize the API client.

        Args:
            endpoint: Base URL of the web app
            access_token: Bearer token for the signed-in employee
            timeout: Request timeout in seconds
        """
        self.endpoint = endpoint.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        require_data: bool = True,
    ) -> Any:
        """Send a request and unwrap the {data}/{error} envelope.

        Returns:
            The "data" member of the response

        Raises:
            ApiError: On transport failure, non-2xx status, error envelope,
                invalid JSON, or missing data when require_data is set
        """
        try:
            client = await self._get_client()
            resp = await client.request(
                method,
                f"{self.endpoint}{path}",
                json=payload,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise ApiError(f"Request to {path} failed: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {"error": f"Invalid JSON ({resp.status_code})"}
        if not isinstance(body, dict):
            body = {"error": f"Invalid JSON ({resp.status_code})"}

        error = body.get("error")
        if not resp.is_success or error or (require_data and body.get("data") is None):
            message = error or f"HTTP {resp.status_code}"
            logger.warning(f"{method} {path} failed: {message}")
            raise ApiError(str(message), status=resp.status_code)

        return body.get("data")

    async def start_shift(self, lat: float, lng: float) -> Shift:
        """Clock in at the given position.

        Raises:
            ApiError: If coordinates are invalid or the backend refuses
        """
        _check_coordinates(lat, lng)
        data = await self._request("POST", "/api/shifts/start", {"lat": lat, "lng": lng})
        return Shift.model_validate(data)

    async def end_shift(self, lat: float, lng: float, shift_id: str | None = None) -> Shift | None:
        """Clock out of the given shift, or the newest open one.

        Returns:
            The closed shift, if the backend echoes it
        """
        _check_coordinates(lat, lng)
        payload: dict[str, Any] = {"lat": lat, "lng": lng}
        if shift_id:
            payload["shift_id"] = shift_id
        data = await self._request("POST", "/api/shifts/end", payload, require_data=False)
        return Shift.model_validate(data) if isinstance(data, dict) else None

    async def create_ticket(self, service_id: str, description: str) -> Ticket:
        """File a ticket against a service in the employee's organization.

        Args:
            service_id: Service UUID
            description: Free-text description (must not be blank)

        Raises:
            ApiError: 422 if the payload is invalid, or the backend error
        """
        description = (description or "").strip()
        try:
            uuid.UUID(str(service_id))
        except ValueError:
            raise ApiError("Invalid payload", status=422) from None
        if not description:
            raise ApiError("Invalid payload", status=422)

        data = await self._request(
            "POST",
            "/api/tickets",
            {"service_id": str(service_id), "description": description},
        )
        return Ticket.model_validate(data)

    async def list_tickets(self) -> list[Ticket]:
        """List the signed-in employee's tickets, newest first."""
        data = await self._request("GET", "/api/tickets")
        return [Ticket.model_validate(item) for item in data or []]

    async def list_services(self) -> list[Service]:
        """List services of the employee's organization, by name."""
        data = await self._request("GET", "/api/services")
        return [Service.model_validate(item) for item in data or []]

    async def export_csv(self, kind: ExportKind) -> str:
        """Download the CSV export of shifts or tickets.

        Raises:
            ValueError: If kind is not "shifts" or "tickets"
            ApiError: If the download fails
        """
        if kind not in ("shifts", "tickets"):
            raise ValueError(f"Unknown export kind: {kind}")

        try:
            client = await self._get_client()
            resp = await client.request(
                "GET",
                f"{self.endpoint}/api/export/{kind}",
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise ApiError(f"Export of {kind} failed: {e}") from e

        if not resp.is_success:
            raise ApiError(resp.text.strip() or f"HTTP {resp.status_code}", status=resp.status_code)
        return resp.text

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ShiftDeskClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
