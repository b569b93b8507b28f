from __future__ import annotations

from fastapi import APIRouter, status

from rsl.api import dependencies
from rsl.application.dto.requests import (
    CreateGroupSessionRequest,
    DeclineSessionExtensionRequest,
    GrantSessionExtensionRequest,
    SessionExtensionRequest,
    SessionMemberRequest,
)
from rsl.application.dto.responses import GroupSessionResponse, WarningSweepResponse
from rsl.application.use_cases.create_group_session import CreateGroupSession
from rsl.application.use_cases.session_extensions import (
    DeclineSessionExtension,
    GrantSessionExtension,
    RequestSessionExtension,
)
from rsl.application.use_cases.session_lifecycle import (
    ChangeSessionStatus,
    GetGroupSession,
    SessionAction,
)
from rsl.application.use_cases.session_membership import AddSessionMember
from rsl.application.use_cases.session_warnings import SweepSessionWarnings
from rsl.domain.common.ids import SessionId, VenueId

router = APIRouter()

_SESSION_PATH = "/v1/venues/{venue_id}/sessions/{session_id}"


@router.post(
    "/v1/venues/{venue_id}/sessions",
    response_model=GroupSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_group_session(
    venue_id: str,
    request_dto: CreateGroupSessionRequest,
) -> GroupSessionResponse:
    use_case = CreateGroupSession(
        session_repository=dependencies.session_repository(),
        venue_repository=dependencies.venue_repository(),
        publisher=dependencies.notification_publisher(),
    )
    return use_case.execute(
        venue_id=VenueId(venue_id),
        request_dto=request_dto,
        trace_ctx=dependencies.trace_context(),
    )


@router.get(_SESSION_PATH, response_model=GroupSessionResponse)
def get_group_session(venue_id: str, session_id: str) -> GroupSessionResponse:
    use_case = GetGroupSession(session_repository=dependencies.session_repository())
    return use_case.execute(venue_id=VenueId(venue_id), session_id=SessionId(session_id))


@router.post(_SESSION_PATH + "/members", response_model=GroupSessionResponse)
def add_session_member(
    venue_id: str,
    session_id: str,
    request_dto: SessionMemberRequest,
) -> GroupSessionResponse:
    use_case = AddSessionMember(
        session_repository=dependencies.session_repository(),
        publisher=dependencies.notification_publisher(),
    )
    return use_case.execute(
        venue_id=VenueId(venue_id),
        session_id=SessionId(session_id),
        request_dto=request_dto,
        trace_ctx=dependencies.trace_context(),
    )


@router.post(_SESSION_PATH + "/extension-requests", response_model=GroupSessionResponse)
def request_session_extension(
    venue_id: str,
    session_id: str,
    request_dto: SessionExtensionRequest,
) -> GroupSessionResponse:
    use_case = RequestSessionExtension(
        session_repository=dependencies.session_repository(),
        publisher=dependencies.notification_publisher(),
    )
    return use_case.execute(
        venue_id=VenueId(venue_id),
        session_id=SessionId(session_id),
        request_dto=request_dto,
        trace_ctx=dependencies.trace_context(),
    )


@router.post(
    _SESSION_PATH + "/extension-requests/decline",
    response_model=GroupSessionResponse,
)
def decline_session_extension(
    venue_id: str,
    session_id: str,
    request_dto: DeclineSessionExtensionRequest | None = None,
) -> GroupSessionResponse:
    use_case = DeclineSessionExtension(
        session_repository=dependencies.session_repository(),
        publisher=dependencies.notification_publisher(),
    )
    return use_case.execute(
        venue_id=VenueId(venue_id),
        session_id=SessionId(session_id),
        request_dto=request_dto or DeclineSessionExtensionRequest(),
        trace_ctx=dependencies.trace_context(),
    )


@router.post(_SESSION_PATH + "/extension", response_model=GroupSessionResponse)
def grant_session_extension(
    venue_id: str,
    session_id: str,
    request_dto: GrantSessionExtensionRequest,
) -> GroupSessionResponse:
    use_case = GrantSessionExtension(
        session_repository=dependencies.session_repository(),
        publisher=dependencies.notification_publisher(),
    )
    return use_case.execute(
        venue_id=VenueId(venue_id),
        session_id=SessionId(session_id),
        request_dto=request_dto,
        trace_ctx=dependencies.trace_context(),
    )


@router.post(_SESSION_PATH + "/{action}", response_model=GroupSessionResponse)
def change_session_status(
    venue_id: str,
    session_id: str,
    action: SessionAction,
) -> GroupSessionResponse:
    use_case = ChangeSessionStatus(
        session_repository=dependencies.session_repository(),
        publisher=dependencies.notification_publisher(),
    )
    return use_case.execute(
        venue_id=VenueId(venue_id),
        session_id=SessionId(session_id),
        action=action,
        trace_ctx=dependencies.trace_context(),
    )


@router.post("/v1/sessions/warning-sweep", response_model=WarningSweepResponse)
def sweep_session_warnings() -> WarningSweepResponse:
    use_case = SweepSessionWarnings(
        session_repository=dependencies.session_repository(),
        publisher=dependencies.notification_publisher(),
    )
    return use_case.execute(trace_ctx=dependencies.trace_context())
