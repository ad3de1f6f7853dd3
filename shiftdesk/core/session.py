"""Employee chat session for shiftdesk.

Holds the conversation state of one employee: message log, the open
shift, the selected service, and the tickets seen so far. Every user
message goes through the intent matcher, and the resolved action is
executed against the backend API. Unrecognized input is answered with a
help text and the action menu.

Features:
- Message dataclass with role, content, timestamp and metadata
- Shift start/end with geolocation and optional reverse geocoding
- Inline ticket descriptions ("ticket printer is jammed") or a follow-up
  prompt when the description is missing
- Backend and location failures reported as chat replies, never raised
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal, Protocol

from .api import ApiError, Service, Shift, Ticket
from .geocode import GeocodeError
from .intent import Action, IntentMatcher

if TYPE_CHECKING:
    from .geocode import ReverseGeocoder

logger = logging.getLogger(__name__)

# Action menu shown under the chat, in display order
MENU: tuple[tuple[Action, str], ...] = (
    (Action.START, "Start Work"),
    (Action.END, "End Work"),
    (Action.CREATE_TICKET, "New Ticket"),
    (Action.LIST_TICKETS, "My Tickets"),
)

CANCEL_WORDS = frozenset({"cancel", "annulla", "stop"})


class LocationError(Exception):
    """The device position could not be determined."""

    pass


Locator = Callable[[], Awaitable[tuple[float, float]]]


class WorkflowBackend(Protocol):
    """Operations the session needs from the backend (see ShiftDeskClient)."""

    async def start_shift(self, lat: float, lng: float) -> Shift: ...

    async def end_shift(
        self, lat: float, lng: float, shift_id: str | None = None
    ) -> Shift | None: ...

    async def create_ticket(self, service_id: str, description: str) -> Ticket: ...

    async def list_tickets(self) -> list[Ticket]: ...


@dataclass
class Message:
    """A single chat message.

    Attributes:
        role: "user" for employee input, "system" for replies
        content: Text content
        timestamp: When the message was created
        metadata: Extra details (e.g. the resolved action)
    """

    role: Literal["user", "system"]
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)


def format_time(value: str | datetime | None) -> str:
    """Render an ISO timestamp or datetime as HH:MM ('' if unparseable)."""
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return ""
    return value.strftime("%H:%M")


class ChatSession:
    """Conversation state holder for one employee.

    Calls are expected one at a time per session; the matcher itself is
    shared and stateless.

    Attributes:
        messages: Chat log in chronological order
        services: Services available to the employee
        service_id: Selected service for new tickets
        shift_id: Open shift id, or None when clocked out
        active_start: Start time of the open shift
        tickets: Employee's tickets, newest first
        awaiting_note: True when the next message is a ticket description
    """

    def __init__(
        self,
        matcher: IntentMatcher,
        backend: WorkflowBackend,
        locator: Locator,
        services: list[Service] | None = None,
        service_id: str | None = None,
        geocoder: "ReverseGeocoder | None" = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the session.

        Args:
            matcher: Intent matcher used for every user message
            backend: Workflow executor (normally a ShiftDeskClient)
            locator: Async callable returning (lat, lng)
            services: Services of the employee's organization
            service_id: Initially selected service (defaults to the first)
            geocoder: Optional reverse geocoder for shift start replies
            clock: Time source for locally stamped events
        """
        self.matcher = matcher
        self.backend = backend
        self.locator = locator
        self.geocoder = geocoder
        self._clock = clock

        self.messages: list[Message] = []
        self.services: list[Service] = list(services or [])
        self.service_id: str | None = service_id or (
            self.services[0].id if self.services else None
        )
        self.shift_id: str | None = None
        self.active_start: str | None = None
        self.tickets: list[Ticket] = []
        self.awaiting_note = False

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def menu(self) -> list[tuple[Action, str]]:
        """Return the action menu as (action, label) pairs."""
        return list(MENU)

    def select_service(self, service_id: str) -> None:
        """Select the service new tickets are filed against.

        Raises:
            ValueError: If the service is not one of the known services
        """
        if self.services and service_id not in {s.id for s in self.services}:
            raise ValueError(f"Unknown service: {service_id}")
        self.service_id = service_id

    def restore_shift(self, shift_id: str, start_at: str | None) -> None:
        """Mark an already open shift as active (e.g. after reconnecting)."""
        self.shift_id = shift_id
        self.active_start = start_at

    @property
    def shift_active(self) -> bool:
        return self.shift_id is not None

    def _reply(self, text: str, **metadata: Any) -> Message:
        msg = Message(role="system", content=text, timestamp=self._clock(), metadata=metadata)
        self.messages.append(msg)
        return msg

    # -------------------------------------------------------------------------
    # Input handling
    # -------------------------------------------------------------------------

    async def handle(self, text: str) -> list[Message]:
        """Process one user message.

        Args:
            text: Raw chat input

        Returns:
            System replies produced for this message
        """
        start = len(self.messages)
        self.messages.append(Message(role="user", content=text, timestamp=self._clock()))

        if self.awaiting_note:
            await self._handle_note(text)
            return self.messages[start + 1 :]

        result = self.matcher.classify(text)
        if not result.matched:
            self._reply(self._help_text(), menu=[label for _, label in MENU])
        else:
            logger.info(f"Chat action {result.action.value} (via {result.source})")
            await self.run(result.action, result.note)

        return self.messages[start + 1 :]

    async def run(self, action: Action, note: str | None = None) -> list[Message]:
        """Execute an action directly (menu buttons use this path).

        Returns:
            System replies produced by the action
        """
        start = len(self.messages)
        if action == Action.START:
            await self.start_shift()
        elif action == Action.END:
            await self.end_shift()
        elif action == Action.CREATE_TICKET:
            if note:
                await self.submit_ticket(note)
            else:
                self._ask_for_note()
        elif action == Action.LIST_TICKETS:
            await self.list_tickets()
        return self.messages[start:]

    def _help_text(self) -> str:
        labels = ", ".join(label for _, label in MENU)
        return f"Sorry, I didn't understand. Try one of: {labels}."

    def _ask_for_note(self) -> None:
        if not self.service_id:
            self._reply("❌ Please select a service.")
            return
        self.awaiting_note = True
        self._reply("📝 Describe the issue (or type 'cancel').")

    async def _handle_note(self, text: str) -> None:
        note = text.strip()
        if not note:
            self._reply("❌ Notes are required.")
            return

        self.awaiting_note = False
        if note.lower() in CANCEL_WORDS:
            self._reply("Ticket cancelled.")
            return
        await self.submit_ticket(note)

    # -------------------------------------------------------------------------
    # Workflows
    # -------------------------------------------------------------------------

    async def _locate(self) -> tuple[float, float]:
        try:
            return await self.locator()
        except LocationError:
            raise
        except Exception as e:
            raise LocationError(str(e) or "Geolocation not supported") from e

    async def start_shift(self) -> None:
        """Clock in, unless a shift is already open."""
        if self.shift_active:
            self._reply(f"🟢 Already active • In since {format_time(self.active_start)}")
            return

        try:
            lat, lng = await self._locate()
            shift = await self.backend.start_shift(lat, lng)
        except (LocationError, ApiError) as e:
            self._reply(f"❌ {e}")
            return

        started_at = shift.start_at or self._clock().isoformat()
        self.restore_shift(shift.id, started_at)

        where = await self._describe_location(lat, lng)
        suffix = f" near {where}" if where else ""
        self._reply(
            f"🟢 Shift started at {format_time(started_at)}{suffix}",
            action=Action.START.value,
            shift_id=shift.id,
        )

    async def end_shift(self) -> None:
        """Clock out of the open shift."""
        if not self.shift_active:
            self._reply("No active shift.")
            return

        try:
            lat, lng = await self._locate()
            await self.backend.end_shift(lat, lng, shift_id=self.shift_id)
        except (LocationError, ApiError) as e:
            self._reply(f"❌ {e}")
            return

        ended_shift = self.shift_id
        self.shift_id = None
        self.active_start = None
        self._reply(
            f"🔴 Shift ended at {format_time(self._clock())}",
            action=Action.END.value,
            shift_id=ended_shift,
        )

    async def submit_ticket(self, description: str) -> None:
        """File a ticket for the selected service."""
        if not self.service_id:
            self._reply("❌ Please select a service.")
            return
        if not description.strip():
            self._reply("❌ Notes are required.")
            return

        try:
            ticket = await self.backend.create_ticket(self.service_id, description)
        except ApiError as e:
            self._reply(f"❌ {e}")
            return

        self.tickets.insert(0, ticket)
        self._reply("✅ Ticket submitted", action=Action.CREATE_TICKET.value, ticket_id=ticket.id)

    async def list_tickets(self) -> None:
        """Refresh and show the employee's tickets."""
        try:
            self.tickets = await self.backend.list_tickets()
        except ApiError as e:
            self._reply(f"❌ {e}")
            return

        if not self.tickets:
            self._reply("You have no tickets yet.", action=Action.LIST_TICKETS.value)
            return

        lines = [f"• {t.description or '(no description)'} [{t.status}]" for t in self.tickets]
        self._reply(
            "Your tickets:\n" + "\n".join(lines),
            action=Action.LIST_TICKETS.value,
            count=len(self.tickets),
        )

    async def _describe_location(self, lat: float, lng: float) -> str | None:
        if self.geocoder is None:
            return None
        try:
            address = await self.geocoder.reverse(lat, lng)
        except GeocodeError as e:
            logger.warning(f"Reverse geocoding failed: {e}")
            return None
        return address.label or None
