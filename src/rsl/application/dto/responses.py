from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class VehicleResponse(BaseModel):
    licensePlate: str
    make: str
    model: str
    color: str


class ReservationSourceResponse(BaseModel):
    kind: str
    system: str
    externalId: str | None = None


class StatusChangeResponse(BaseModel):
    status: str
    previousStatus: str | None = None
    changedAt: datetime
    actor: str
    reason: str | None = None


class ReservationResponse(BaseModel):
    reservationId: str
    venueId: str
    holderId: str
    resourceType: str
    startAt: datetime
    effectiveEnd: datetime
    durationOrPartySize: int
    status: str
    valetStatus: str | None = None
    source: ReservationSourceResponse
    metadata: dict[str, Any] = Field(default_factory=dict)
    history: list[StatusChangeResponse] = Field(default_factory=list)
    vehicle: VehicleResponse | None = None
    holderName: str | None = None
    holderEmail: str | None = None
    holderPhone: str | None = None
    canCancel: bool
    version: int
    createdAt: datetime
    updatedAt: datetime


class SessionMemberResponse(BaseModel):
    name: str
    userId: str | None = None
    email: str | None = None
    phone: str | None = None
    isParent: bool


class GroupSessionResponse(BaseModel):
    sessionId: str
    venueId: str
    parentUserId: str
    parentName: str
    members: list[SessionMemberResponse] = Field(default_factory=list)
    startTime: datetime
    timeLimitMinutes: int
    endTime: datetime
    extendedUntil: datetime | None = None
    effectiveEnd: datetime
    remainingSeconds: int
    status: str
    extensionRequestedMinutes: int | None = None
    extensionRequestedAt: datetime | None = None
    warning15Sent: bool
    warning5Sent: bool
    cardOnFile: bool
    cardLast4: str | None = None
    notes: str | None = None
    endedAt: datetime | None = None
    version: int
    createdAt: datetime
    updatedAt: datetime


class LedgerEntryResponse(BaseModel):
    kind: str
    id: str
    venueId: str
    venueName: str | None = None
    status: str
    effectiveTime: datetime
    role: str
    canCancel: bool
    reservation: ReservationResponse | None = None
    session: GroupSessionResponse | None = None


class LedgerResponse(BaseModel):
    current: list[LedgerEntryResponse] = Field(default_factory=list)
    past: list[LedgerEntryResponse] = Field(default_factory=list)
    skippedVenues: list[str] = Field(default_factory=list)
    generatedAt: datetime


class VenueReservationsResponse(BaseModel):
    venueId: str
    reservations: list[ReservationResponse] = Field(default_factory=list)
    windowStart: datetime | None = None
    windowEnd: datetime | None = None
    usedFallback: bool = False


class WarningSweepResponse(BaseModel):
    evaluated: int
    fifteenMinuteWarnings: int
    fiveMinuteWarnings: int
    expired: int
    conflicts: int
