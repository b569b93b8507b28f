from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable

from rsl.domain.common.clock import add_minutes
from rsl.domain.common.errors import DuplicateMemberError, InvalidTransitionError
from rsl.domain.common.identity import Identity, resolve_member
from rsl.domain.common.ids import SessionId, UserId, VenueId


class SessionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


TERMINAL_SESSION_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.EXPIRED})
OPEN_SESSION_STATUSES = frozenset({SessionStatus.ACTIVE, SessionStatus.PAUSED})


class WarningLevel(Enum):
    FIFTEEN_MINUTES = 15
    FIVE_MINUTES = 5

    @property
    def threshold(self) -> timedelta:
        return timedelta(minutes=self.value)

    @classmethod
    def tightest(cls, levels: Iterable[WarningLevel]) -> WarningLevel | None:
        return min(levels, key=lambda level: level.value, default=None)


@dataclass(frozen=True)
class SessionMember:
    name: str
    user_id: str | None = None
    email: str | None = None
    phone: str | None = None
    is_parent: bool = False

    @property
    def identity(self) -> Identity:
        return Identity.of(user_id=self.user_id, email=self.email, phone=self.phone)


@dataclass(frozen=True)
class GroupSession:
    session_id: SessionId
    venue_id: VenueId
    parent_user_id: UserId
    parent_name: str
    members: tuple[SessionMember, ...]
    start_time: datetime
    time_limit_minutes: int
    status: SessionStatus
    created_at: datetime
    updated_at: datetime
    extended_until: datetime | None = None
    extension_requested_minutes: int | None = None
    extension_requested_at: datetime | None = None
    warning_15_sent: bool = False
    warning_5_sent: bool = False
    card_on_file: bool = False
    card_last4: str | None = None
    notes: str | None = None
    ended_at: datetime | None = None
    version: int = 1

    def __post_init__(self) -> None:
        if self.time_limit_minutes <= 0:
            raise ValueError("time_limit_minutes must be > 0")
        parents = [member for member in self.members if member.is_parent]
        if len(parents) != 1:
            raise ValueError("group session must have exactly one parent member")
        if parents[0].user_id != str(self.parent_user_id):
            raise ValueError("parent member must match parent_user_id")

    @property
    def end_time(self) -> datetime:
        return add_minutes(self.start_time, self.time_limit_minutes)

    @property
    def effective_end(self) -> datetime:
        return self.extended_until or self.end_time

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_SESSION_STATUSES

    @property
    def parent(self) -> SessionMember:
        return next(member for member in self.members if member.is_parent)

    def remaining(self, now: datetime) -> timedelta:
        return self.effective_end - now

    def is_relevant(self, now: datetime) -> bool:
        return self.status in OPEN_SESSION_STATUSES and self.effective_end >= now

    def find_member(self, identity: Identity) -> SessionMember | None:
        return resolve_member(self.members, identity)

    def has_member(self, identity: Identity) -> bool:
        return self.find_member(identity) is not None

    def _ensure_open(self, action: str) -> None:
        if self.is_terminal:
            raise InvalidTransitionError(
                f"session {self.session_id} is {self.status.value}; cannot {action}",
                details={"status": self.status.value},
            )

    def with_member(self, member: SessionMember, now: datetime) -> GroupSession:
        self._ensure_open("add members")
        if self.has_member(member.identity):
            raise DuplicateMemberError(
                "member already in group",
                details={"sessionId": str(self.session_id)},
            )
        added = replace(member, is_parent=False)
        return replace(self, members=self.members + (added,), updated_at=now)

    def with_extension_request(self, minutes: int, now: datetime) -> GroupSession:
        self._ensure_open("request an extension")
        if minutes <= 0:
            raise ValueError("extension minutes must be > 0")
        return replace(
            self,
            extension_requested_minutes=minutes,
            extension_requested_at=now,
            updated_at=now,
        )

    def with_extension_declined(self, now: datetime) -> GroupSession:
        self._ensure_open("decline an extension")
        if self.extension_requested_minutes is None:
            raise ValueError("no extension request is pending")
        return replace(
            self,
            extension_requested_minutes=None,
            extension_requested_at=None,
            updated_at=now,
        )

    def with_extension_granted(self, until: datetime, now: datetime) -> GroupSession:
        self._ensure_open("extend")
        if until <= now:
            raise ValueError("extension must end in the future")
        remaining = until - now
        # a grant re-arms any warning whose threshold is no longer crossed
        return replace(
            self,
            extended_until=until,
            extension_requested_minutes=None,
            extension_requested_at=None,
            warning_15_sent=self.warning_15_sent
            and remaining <= WarningLevel.FIFTEEN_MINUTES.threshold,
            warning_5_sent=self.warning_5_sent and remaining <= WarningLevel.FIVE_MINUTES.threshold,
            updated_at=now,
        )

    def pause(self, now: datetime) -> GroupSession:
        if self.status != SessionStatus.ACTIVE:
            raise InvalidTransitionError(
                f"cannot pause session from status={self.status.value}",
                details={"status": self.status.value},
            )
        return replace(self, status=SessionStatus.PAUSED, updated_at=now)

    def resume(self, now: datetime) -> GroupSession:
        if self.status != SessionStatus.PAUSED:
            raise InvalidTransitionError(
                f"cannot resume session from status={self.status.value}",
                details={"status": self.status.value},
            )
        return replace(self, status=SessionStatus.ACTIVE, updated_at=now)

    def complete(self, now: datetime) -> GroupSession:
        self._ensure_open("complete")
        return replace(self, status=SessionStatus.COMPLETED, ended_at=now, updated_at=now)

    def expire(self, now: datetime) -> GroupSession:
        if self.status != SessionStatus.ACTIVE:
            raise InvalidTransitionError(
                f"cannot expire session from status={self.status.value}",
                details={"status": self.status.value},
            )
        return replace(self, status=SessionStatus.EXPIRED, ended_at=now, updated_at=now)

    def is_warning_sent(self, level: WarningLevel) -> bool:
        if level == WarningLevel.FIFTEEN_MINUTES:
            return self.warning_15_sent
        return self.warning_5_sent

    def due_warnings(self, now: datetime) -> list[WarningLevel]:
        """Crossed thresholds whose flag is still unset.

        All of them get marked as sent; only the tightest one is announced.
        """
        if self.status != SessionStatus.ACTIVE:
            return []
        remaining = self.remaining(now)
        if remaining <= timedelta(0):
            return []
        return [
            level
            for level in WarningLevel
            if remaining <= level.threshold and not self.is_warning_sent(level)
        ]

    def with_warnings_sent(self, levels: Iterable[WarningLevel], now: datetime) -> GroupSession:
        sent = set(levels)
        return replace(
            self,
            warning_15_sent=self.warning_15_sent or WarningLevel.FIFTEEN_MINUTES in sent,
            warning_5_sent=self.warning_5_sent or WarningLevel.FIVE_MINUTES in sent,
            updated_at=now,
        )


def create_group_session(
    session_id: SessionId,
    venue_id: VenueId,
    parent_user_id: UserId,
    parent_name: str,
    start_time: datetime,
    time_limit_minutes: int,
    now: datetime,
    parent_email: str | None = None,
    parent_phone: str | None = None,
    members: Iterable[SessionMember] = (),
    card_on_file: bool = False,
    card_last4: str | None = None,
    notes: str | None = None,
) -> GroupSession:
    parent = SessionMember(
        name=parent_name,
        user_id=str(parent_user_id),
        email=parent_email,
        phone=parent_phone,
        is_parent=True,
    )
    seeded: list[SessionMember] = [parent]
    for member in members:
        if member.is_parent:
            continue
        if resolve_member(seeded, member.identity) is not None:
            continue
        seeded.append(member)

    return GroupSession(
        session_id=session_id,
        venue_id=venue_id,
        parent_user_id=parent_user_id,
        parent_name=parent_name,
        members=tuple(seeded),
        start_time=start_time,
        time_limit_minutes=time_limit_minutes,
        status=SessionStatus.ACTIVE,
        created_at=now,
        updated_at=now,
        card_on_file=card_on_file,
        card_last4=card_last4,
        notes=notes,
    )
