from __future__ import annotations

from typing import NewType

VenueId = NewType("VenueId", str)
ReservationId = NewType("ReservationId", str)
SessionId = NewType("SessionId", str)
UserId = NewType("UserId", str)
