from __future__ import annotations

from fastapi import APIRouter, Query

from rsl.api import dependencies
from rsl.application.dto.responses import LedgerResponse
from rsl.application.use_cases.diner_ledger import DinerLedger
from rsl.application.use_cases.venue_ledger import VenueLedger
from rsl.domain.common.ids import UserId, VenueId

router = APIRouter()


@router.get("/v1/diners/{diner_id}/ledger", response_model=LedgerResponse)
def get_diner_ledger(
    diner_id: str,
    email: str | None = Query(default=None),
) -> LedgerResponse:
    use_case = DinerLedger(
        venue_repository=dependencies.venue_repository(),
        reservation_repository=dependencies.reservation_repository(),
        session_repository=dependencies.session_repository(),
    )
    return use_case.execute(diner_id=UserId(diner_id), email=email)


@router.get("/v1/venues/{venue_id}/ledger", response_model=LedgerResponse)
def get_venue_ledger(venue_id: str) -> LedgerResponse:
    use_case = VenueLedger(
        venue_repository=dependencies.venue_repository(),
        reservation_repository=dependencies.reservation_repository(),
        session_repository=dependencies.session_repository(),
    )
    return use_case.execute(venue_id=VenueId(venue_id))
