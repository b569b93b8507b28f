from __future__ import annotations

from datetime import datetime

from rsl.domain.notification.entities import (
    Notification,
    NotificationPriority,
    NotificationType,
)
from rsl.domain.reservation.entities import Reservation, ReservationStatus, ResourceType
from rsl.domain.session.entities import (
    GroupSession,
    SessionMember,
    SessionStatus,
    WarningLevel,
)

_RESOURCE_LABELS = {
    ResourceType.TABLE: "Table Reservation",
    ResourceType.VALET: "Valet Pre-Booking",
    ResourceType.BOWLING_LANE: "Bowling Reservation",
}

_RESOURCE_TABS = {
    ResourceType.TABLE: "reservations",
    ResourceType.VALET: "valet",
    ResourceType.BOWLING_LANE: "bowling",
}

_HIGH_PRIORITY_STATUSES = frozenset({ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW})


def _reservation_action_path(reservation: Reservation) -> str:
    return f"/venue/{reservation.venue_id}?tab={_RESOURCE_TABS[reservation.resource_type]}"


def _session_action_path(session: GroupSession) -> str:
    return f"/venue/{session.venue_id}?tab=gaming-venue"


def _holder_label(reservation: Reservation) -> str:
    return reservation.holder_name or str(reservation.holder_id)


def _reservation_metadata(reservation: Reservation) -> dict[str, object]:
    metadata: dict[str, object] = {
        "reservationId": str(reservation.reservation_id),
        "resourceType": reservation.resource_type.value,
        "holderId": str(reservation.holder_id),
        "startAt": reservation.start_at.isoformat(),
        "status": reservation.status.value,
        "sourceSystem": reservation.source.system,
    }
    if reservation.vehicle is not None:
        metadata["licensePlate"] = reservation.vehicle.license_plate
    return metadata


def _session_metadata(session: GroupSession) -> dict[str, object]:
    return {
        "sessionId": str(session.session_id),
        "parentUserId": str(session.parent_user_id),
        "parentName": session.parent_name,
        "memberCount": len(session.members),
        "effectiveEnd": session.effective_end.isoformat(),
        "status": session.status.value,
    }


def reservation_created_notification(reservation: Reservation, now: datetime) -> Notification:
    label = _RESOURCE_LABELS[reservation.resource_type]
    return Notification(
        venue_id=str(reservation.venue_id),
        type=NotificationType.RESERVATION_CREATED,
        priority=NotificationPriority.MEDIUM,
        title=f"New {label}",
        message=(
            f"{_holder_label(reservation)} - {reservation.duration_or_party_size} "
            f"at {reservation.start_at.isoformat()}"
        ),
        action_path=_reservation_action_path(reservation),
        created_at=now,
        metadata=_reservation_metadata(reservation),
    )


def reservation_transition_notifications(
    reservation: Reservation,
    previous_status: ReservationStatus,
    now: datetime,
) -> list[Notification]:
    label = _RESOURCE_LABELS[reservation.resource_type]
    metadata = _reservation_metadata(reservation)
    metadata["previousStatus"] = previous_status.value
    notifications = [
        Notification(
            venue_id=str(reservation.venue_id),
            type=NotificationType.RESERVATION_STATUS_CHANGED,
            priority=(
                NotificationPriority.HIGH
                if reservation.status in _HIGH_PRIORITY_STATUSES
                else NotificationPriority.MEDIUM
            ),
            title=f"{label} {reservation.status.value.replace('_', ' ').title()}",
            message=(
                f"{_holder_label(reservation)}: {previous_status.value} -> "
                f"{reservation.status.value}"
            ),
            action_path=_reservation_action_path(reservation),
            created_at=now,
            metadata=metadata,
        )
    ]

    staff_id = reservation.assigned_staff_id
    if reservation.status == ReservationStatus.CONFIRMED and staff_id:
        notifications.append(
            Notification(
                venue_id=str(reservation.venue_id),
                target_user_id=staff_id,
                type=NotificationType.STAFF_ASSIGNMENT,
                priority=NotificationPriority.MEDIUM,
                title=f"{label} Assigned",
                message=(
                    f"You are assigned to {_holder_label(reservation)} "
                    f"at {reservation.start_at.isoformat()}"
                ),
                action_path=_reservation_action_path(reservation),
                created_at=now,
                metadata=metadata,
            )
        )
    return notifications


def session_created_notification(session: GroupSession, now: datetime) -> Notification:
    people = "person" if len(session.members) == 1 else "people"
    return Notification(
        venue_id=str(session.venue_id),
        type=NotificationType.GAMING_VENUE_GROUP,
        priority=NotificationPriority.MEDIUM,
        title="New Gaming Venue Group",
        message=(
            f"{session.parent_name} - {len(session.members)} {people} - "
            f"{session.time_limit_minutes} minutes"
        ),
        action_path=_session_action_path(session),
        created_at=now,
        metadata=_session_metadata(session),
    )


def extension_requested_notification(
    session: GroupSession,
    minutes: int,
    now: datetime,
) -> Notification:
    metadata = _session_metadata(session)
    metadata["requestedMinutes"] = minutes
    return Notification(
        venue_id=str(session.venue_id),
        type=NotificationType.GAMING_VENUE_EXTENSION_REQUEST,
        priority=NotificationPriority.HIGH,
        title="Time Extension Request",
        message=f"Group {session.session_id} requests {minutes} minute extension",
        action_path=_session_action_path(session),
        created_at=now,
        metadata=metadata,
    )


def extension_granted_notification(session: GroupSession, now: datetime) -> Notification:
    return Notification(
        venue_id=str(session.venue_id),
        target_user_id=str(session.parent_user_id),
        type=NotificationType.GAMING_VENUE_EXTENSION_GRANTED,
        priority=NotificationPriority.MEDIUM,
        title="Time Extended",
        message=f"Your session now ends at {session.effective_end.isoformat()}",
        action_path=_session_action_path(session),
        created_at=now,
        metadata=_session_metadata(session),
    )


def time_alert_notifications(
    session: GroupSession,
    level: WarningLevel,
    now: datetime,
) -> list[Notification]:
    """One alert for the parent, then one for every member with an account."""
    metadata = _session_metadata(session)
    metadata["minutesRemaining"] = level.value
    targets = [str(session.parent_user_id)]
    for member in session.members:
        if member.is_parent or not member.user_id or member.user_id in targets:
            continue
        targets.append(member.user_id)
    return [_time_alert(session, level, target, dict(metadata), now) for target in targets]


def _time_alert(
    session: GroupSession,
    level: WarningLevel,
    target_user_id: str,
    metadata: dict[str, object],
    now: datetime,
) -> Notification:
    return Notification(
        venue_id=str(session.venue_id),
        target_user_id=target_user_id,
        type=NotificationType.GAMING_VENUE_TIME_ALERT,
        priority=(
            NotificationPriority.HIGH
            if level == WarningLevel.FIVE_MINUTES
            else NotificationPriority.MEDIUM
        ),
        title=f"{level.value} Minutes Remaining",
        message=f"Group {session.session_id} has {level.value} minutes left",
        action_path=_session_action_path(session),
        created_at=now,
        metadata=metadata,
    )


def session_closed_notification(session: GroupSession, now: datetime) -> Notification:
    return Notification(
        venue_id=str(session.venue_id),
        type=NotificationType.GAMING_VENUE_SESSION_CLOSED,
        priority=NotificationPriority.LOW,
        title=f"Gaming Venue Group {session.status.value.title()}",
        message=f"{session.parent_name} - group {session.session_id} {session.status.value.lower()}",
        action_path=_session_action_path(session),
        created_at=now,
        metadata=_session_metadata(session),
    )


def reservation_modified_notification(reservation: Reservation, now: datetime) -> Notification:
    label = _RESOURCE_LABELS[reservation.resource_type]
    return Notification(
        venue_id=str(reservation.venue_id),
        type=NotificationType.RESERVATION_MODIFIED,
        priority=NotificationPriority.MEDIUM,
        title=f"{label} Updated",
        message=(
            f"{_holder_label(reservation)} - {reservation.duration_or_party_size} "
            f"at {reservation.start_at.isoformat()}"
        ),
        action_path=_reservation_action_path(reservation),
        created_at=now,
        metadata=_reservation_metadata(reservation),
    )


def reservation_metadata_updated_notification(
    reservation: Reservation,
    updated_keys: list[str],
    now: datetime,
) -> Notification:
    label = _RESOURCE_LABELS[reservation.resource_type]
    metadata = _reservation_metadata(reservation)
    metadata["updatedKeys"] = updated_keys
    return Notification(
        venue_id=str(reservation.venue_id),
        type=NotificationType.RESERVATION_MODIFIED,
        priority=NotificationPriority.LOW,
        title=f"{label} Details Updated",
        message=f"{_holder_label(reservation)} - updated {', '.join(updated_keys)}",
        action_path=_reservation_action_path(reservation),
        created_at=now,
        metadata=metadata,
    )


def session_member_added_notification(
    session: GroupSession,
    member: SessionMember,
    now: datetime,
) -> Notification:
    metadata = _session_metadata(session)
    metadata["memberName"] = member.name
    return Notification(
        venue_id=str(session.venue_id),
        type=NotificationType.GAMING_VENUE_MEMBER_ADDED,
        priority=NotificationPriority.LOW,
        title="Gaming Venue Group Updated",
        message=f"{member.name} joined {session.parent_name}'s group",
        action_path=_session_action_path(session),
        created_at=now,
        metadata=metadata,
    )


def session_status_changed_notification(
    session: GroupSession,
    previous_status: SessionStatus,
    now: datetime,
) -> Notification:
    metadata = _session_metadata(session)
    metadata["previousStatus"] = previous_status.value
    return Notification(
        venue_id=str(session.venue_id),
        type=NotificationType.GAMING_VENUE_SESSION_STATUS_CHANGED,
        priority=NotificationPriority.MEDIUM,
        title=f"Gaming Venue Group {session.status.value.title()}",
        message=(
            f"{session.parent_name} - group {session.session_id}: "
            f"{previous_status.value} -> {session.status.value}"
        ),
        action_path=_session_action_path(session),
        created_at=now,
        metadata=metadata,
    )


def extension_request_acknowledged_notification(
    session: GroupSession,
    minutes: int,
    now: datetime,
) -> Notification:
    metadata = _session_metadata(session)
    metadata["requestedMinutes"] = minutes
    return Notification(
        venue_id=str(session.venue_id),
        target_user_id=str(session.parent_user_id),
        type=NotificationType.GAMING_VENUE_EXTENSION_REQUESTED,
        priority=NotificationPriority.LOW,
        title="Extension Request Sent",
        message=f"Your request for {minutes} more minutes was sent to the venue",
        action_path=_session_action_path(session),
        created_at=now,
        metadata=metadata,
    )


def extension_declined_notification(
    session: GroupSession,
    minutes: int | None,
    reason: str | None,
    now: datetime,
) -> Notification:
    metadata = _session_metadata(session)
    metadata["requestedMinutes"] = minutes
    message = "The venue could not extend your session"
    if reason:
        message = f"{message}: {reason}"
    return Notification(
        venue_id=str(session.venue_id),
        target_user_id=str(session.parent_user_id),
        type=NotificationType.GAMING_VENUE_EXTENSION_DECLINED,
        priority=NotificationPriority.MEDIUM,
        title="Extension Declined",
        message=message,
        action_path=_session_action_path(session),
        created_at=now,
        metadata=metadata,
    )
