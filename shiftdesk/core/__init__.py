"""Core components for shiftdesk."""

from __future__ import annotations

from .api import (
    ApiError,
    Service,
    Shift,
    ShiftDeskClient,
    Ticket,
)
from .geocode import (
    Address,
    GeocodeCache,
    GeocodeError,
    ReverseGeocoder,
)
from .intent import (
    Action,
    IntentMatcher,
    MatchResult,
    NO_MATCH,
    classify,
    create_matcher,
)
from .session import (
    MENU,
    ChatSession,
    LocationError,
    Message,
)

__all__ = [
    # Intent matching
    "Action",
    "IntentMatcher",
    "MatchResult",
    "NO_MATCH",
    "classify",
    "create_matcher",
    # Backend API
    "ShiftDeskClient",
    "ApiError",
    "Service",
    "Shift",
    "Ticket",
    # Geocoding
    "ReverseGeocoder",
    "GeocodeCache",
    "GeocodeError",
    "Address",
    # Chat session
    "ChatSession",
    "Message",
    "LocationError",
    "MENU",
]
