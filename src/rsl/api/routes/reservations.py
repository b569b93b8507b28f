from __future__ import annotations

from datetime import date, datetime, time

from fastapi import APIRouter, Query, status

from rsl.api import dependencies
from rsl.application.dto.requests import (
    CancelReservationRequest,
    CreateReservationRequest,
    ExternalStatusRequest,
    IngestExternalReservationRequest,
    ModifyReservationRequest,
    TransitionReservationRequest,
    UpdateReservationMetadataRequest,
)
from rsl.application.dto.responses import ReservationResponse, VenueReservationsResponse
from rsl.application.use_cases.cancel_reservation import CancelReservation
from rsl.application.use_cases.create_reservation import CreateReservation
from rsl.application.use_cases.ingest_external_reservation import IngestExternalReservation
from rsl.application.use_cases.modify_reservation import ModifyReservation
from rsl.application.use_cases.reservation_details import (
    GetReservation,
    UpdateReservationMetadata,
)
from rsl.application.use_cases.reservation_lifecycle import (
    ApplyExternalStatus,
    ReservationAction,
    TransitionReservation,
)
from rsl.application.use_cases.venue_ledger import ListVenueReservations
from rsl.domain.common.ids import ReservationId, VenueId
from rsl.domain.reservation.entities import ReservationStatus

router = APIRouter()

_RESERVATIONS_PATH = "/v1/venues/{venue_id}/reservations"
_RESERVATION_PATH = _RESERVATIONS_PATH + "/{reservation_id}"


def _create_reservation_use_case() -> CreateReservation:
    return CreateReservation(
        reservation_repository=dependencies.reservation_repository(),
        venue_repository=dependencies.venue_repository(),
        publisher=dependencies.notification_publisher(),
    )


def _ingest_use_case() -> IngestExternalReservation:
    return IngestExternalReservation(
        reservation_repository=dependencies.reservation_repository(),
        venue_repository=dependencies.venue_repository(),
        publisher=dependencies.notification_publisher(),
    )


def _transition_use_case() -> TransitionReservation:
    return TransitionReservation(
        reservation_repository=dependencies.reservation_repository(),
        publisher=dependencies.notification_publisher(),
    )


@router.post(
    _RESERVATIONS_PATH,
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_reservation(
    venue_id: str,
    request_dto: CreateReservationRequest,
) -> ReservationResponse:
    return _create_reservation_use_case().execute(
        venue_id=VenueId(venue_id),
        request_dto=request_dto,
        trace_ctx=dependencies.trace_context(),
    )


@router.get(_RESERVATIONS_PATH, response_model=VenueReservationsResponse)
def list_venue_reservations(
    venue_id: str,
    start_from: datetime | None = Query(default=None, alias="from"),
    start_to: datetime | None = Query(default=None, alias="to"),
    service_date: date | None = Query(default=None, alias="date"),
    shift_start: time | None = Query(default=None, alias="shiftStart"),
    shift_end: time | None = Query(default=None, alias="shiftEnd"),
    reservation_status: ReservationStatus | None = Query(default=None, alias="status"),
) -> VenueReservationsResponse:
    use_case = ListVenueReservations(
        venue_repository=dependencies.venue_repository(),
        reservation_repository=dependencies.reservation_repository(),
    )
    return use_case.execute(
        venue_id=VenueId(venue_id),
        start_from=start_from,
        start_to=start_to,
        service_date=service_date,
        shift_start=shift_start,
        shift_end=shift_end,
        status=reservation_status,
    )


@router.get(_RESERVATION_PATH, response_model=ReservationResponse)
def get_reservation(venue_id: str, reservation_id: str) -> ReservationResponse:
    use_case = GetReservation(reservation_repository=dependencies.reservation_repository())
    return use_case.execute(
        venue_id=VenueId(venue_id),
        reservation_id=ReservationId(reservation_id),
    )


@router.patch(_RESERVATION_PATH, response_model=ReservationResponse)
def modify_reservation(
    venue_id: str,
    reservation_id: str,
    request_dto: ModifyReservationRequest,
) -> ReservationResponse:
    use_case = ModifyReservation(
        reservation_repository=dependencies.reservation_repository(),
        publisher=dependencies.notification_publisher(),
    )
    return use_case.execute(
        venue_id=VenueId(venue_id),
        reservation_id=ReservationId(reservation_id),
        request_dto=request_dto,
        trace_ctx=dependencies.trace_context(),
    )


@router.patch(_RESERVATION_PATH + "/metadata", response_model=ReservationResponse)
def update_reservation_metadata(
    venue_id: str,
    reservation_id: str,
    request_dto: UpdateReservationMetadataRequest,
) -> ReservationResponse:
    use_case = UpdateReservationMetadata(
        reservation_repository=dependencies.reservation_repository(),
        publisher=dependencies.notification_publisher(),
    )
    return use_case.execute(
        venue_id=VenueId(venue_id),
        reservation_id=ReservationId(reservation_id),
        request_dto=request_dto,
        trace_ctx=dependencies.trace_context(),
    )


@router.post(_RESERVATION_PATH + "/cancel", response_model=ReservationResponse)
def cancel_reservation(
    venue_id: str,
    reservation_id: str,
    request_dto: CancelReservationRequest,
) -> ReservationResponse:
    use_case = CancelReservation(
        reservation_repository=dependencies.reservation_repository(),
        publisher=dependencies.notification_publisher(),
    )
    return use_case.execute(
        venue_id=VenueId(venue_id),
        reservation_id=ReservationId(reservation_id),
        request_dto=request_dto,
        trace_ctx=dependencies.trace_context(),
    )


@router.post(_RESERVATION_PATH + "/external-status", response_model=ReservationResponse)
def apply_external_status(
    venue_id: str,
    reservation_id: str,
    request_dto: ExternalStatusRequest,
) -> ReservationResponse:
    use_case = ApplyExternalStatus(
        reservation_repository=dependencies.reservation_repository(),
        publisher=dependencies.notification_publisher(),
    )
    return use_case.execute(
        venue_id=VenueId(venue_id),
        reservation_id=ReservationId(reservation_id),
        request_dto=request_dto,
        trace_ctx=dependencies.trace_context(),
    )


@router.post(_RESERVATION_PATH + "/{action}", response_model=ReservationResponse)
def transition_reservation(
    venue_id: str,
    reservation_id: str,
    action: ReservationAction,
    request_dto: TransitionReservationRequest | None = None,
) -> ReservationResponse:
    return _transition_use_case().execute(
        venue_id=VenueId(venue_id),
        reservation_id=ReservationId(reservation_id),
        action=action,
        trace_ctx=dependencies.trace_context(),
        request_dto=request_dto,
    )


@router.post(
    "/v1/venues/{venue_id}/external-reservations",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
)
def ingest_external_reservation(
    venue_id: str,
    request_dto: IngestExternalReservationRequest,
) -> ReservationResponse:
    return _ingest_use_case().execute(
        venue_id=VenueId(venue_id),
        request_dto=request_dto,
        trace_ctx=dependencies.trace_context(),
    )
