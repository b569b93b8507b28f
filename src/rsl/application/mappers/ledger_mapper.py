from __future__ import annotations

from datetime import datetime

from rsl.application.dto.responses import LedgerEntryResponse, LedgerResponse
from rsl.application.mappers.reservation_mapper import to_reservation_response
from rsl.application.mappers.session_mapper import to_group_session_response
from rsl.domain.ledger.entries import LedgerEntry
from rsl.domain.reservation.policy import holder_can_change


def to_ledger_entry_response(entry: LedgerEntry, now: datetime) -> LedgerEntryResponse:
    can_cancel = False
    if entry.reservation is not None:
        can_cancel = holder_can_change(entry.reservation, now)
    return LedgerEntryResponse(
        kind=entry.kind.value,
        id=entry.entry_id,
        venueId=entry.venue_id,
        venueName=entry.venue_name,
        status=entry.status,
        effectiveTime=entry.effective_time,
        role=entry.role.value,
        canCancel=can_cancel,
        reservation=(
            to_reservation_response(entry.reservation, now)
            if entry.reservation is not None
            else None
        ),
        session=(
            to_group_session_response(entry.session, now) if entry.session is not None else None
        ),
    )


def to_ledger_response(
    current: list[LedgerEntry],
    past: list[LedgerEntry],
    skipped_venues: list[str],
    now: datetime,
) -> LedgerResponse:
    return LedgerResponse(
        current=[to_ledger_entry_response(entry, now) for entry in current],
        past=[to_ledger_entry_response(entry, now) for entry in past],
        skippedVenues=skipped_venues,
        generatedAt=now,
    )
