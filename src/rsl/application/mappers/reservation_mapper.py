from __future__ import annotations

from datetime import datetime

from rsl.application.dto.responses import (
    ReservationResponse,
    ReservationSourceResponse,
    StatusChangeResponse,
    VehicleResponse,
)
from rsl.domain.reservation.entities import Reservation
from rsl.domain.reservation.policy import holder_can_change


def to_reservation_response(reservation: Reservation, now: datetime) -> ReservationResponse:
    vehicle = reservation.vehicle
    valet_status = reservation.valet_status
    return ReservationResponse(
        reservationId=str(reservation.reservation_id),
        venueId=str(reservation.venue_id),
        holderId=str(reservation.holder_id),
        resourceType=reservation.resource_type.value,
        startAt=reservation.start_at,
        effectiveEnd=reservation.effective_end,
        durationOrPartySize=reservation.duration_or_party_size,
        status=reservation.status.value,
        valetStatus=valet_status.value if valet_status else None,
        source=ReservationSourceResponse(
            kind=reservation.source.kind.value,
            system=reservation.source.system,
            externalId=reservation.source.external_id,
        ),
        metadata=dict(reservation.metadata),
        history=[
            StatusChangeResponse(
                status=change.status.value,
                previousStatus=change.previous_status.value if change.previous_status else None,
                changedAt=change.changed_at,
                actor=change.actor.value,
                reason=change.reason,
            )
            for change in reservation.history
        ],
        vehicle=(
            VehicleResponse(
                licensePlate=vehicle.license_plate,
                make=vehicle.make,
                model=vehicle.model,
                color=vehicle.color,
            )
            if vehicle
            else None
        ),
        holderName=reservation.holder_name,
        holderEmail=reservation.holder_email,
        holderPhone=reservation.holder_phone,
        canCancel=holder_can_change(reservation, now),
        version=reservation.version,
        createdAt=reservation.created_at,
        updatedAt=reservation.updated_at,
    )
