from __future__ import annotations

from datetime import datetime

from rsl.application.dto.responses import GroupSessionResponse, SessionMemberResponse
from rsl.domain.session.entities import GroupSession


def to_group_session_response(session: GroupSession, now: datetime) -> GroupSessionResponse:
    remaining = max(int(session.remaining(now).total_seconds()), 0)
    if session.is_terminal:
        remaining = 0
    return GroupSessionResponse(
        sessionId=str(session.session_id),
        venueId=str(session.venue_id),
        parentUserId=str(session.parent_user_id),
        parentName=session.parent_name,
        members=[
            SessionMemberResponse(
                name=member.name,
                userId=member.user_id,
                email=member.email,
                phone=member.phone,
                isParent=member.is_parent,
            )
            for member in session.members
        ],
        startTime=session.start_time,
        timeLimitMinutes=session.time_limit_minutes,
        endTime=session.end_time,
        extendedUntil=session.extended_until,
        effectiveEnd=session.effective_end,
        remainingSeconds=remaining,
        status=session.status.value,
        extensionRequestedMinutes=session.extension_requested_minutes,
        extensionRequestedAt=session.extension_requested_at,
        warning15Sent=session.warning_15_sent,
        warning5Sent=session.warning_5_sent,
        cardOnFile=session.card_on_file,
        cardLast4=session.card_last4,
        notes=session.notes,
        endedAt=session.ended_at,
        version=session.version,
        createdAt=session.created_at,
        updatedAt=session.updated_at,
    )
