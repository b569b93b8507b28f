from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Engine, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rsl.application.ports.repositories import (
    DuplicateRecordError,
    GroupSessionRepository,
    OptimisticConcurrencyError,
)
from rsl.domain.common.clock import ensure_utc
from rsl.domain.common.ids import SessionId, UserId, VenueId
from rsl.domain.session.entities import GroupSession, SessionMember, SessionStatus
from rsl.infrastructure.db.models.group_session import GroupSessionModel
from rsl.infrastructure.db.session import get_engine, store_errors


class SqlAlchemyGroupSessionRepository(GroupSessionRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def add(self, session_entity: GroupSession) -> None:
        with store_errors("group_session.add"), Session(self._engine) as session:
            session.add(self._to_model(session_entity))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateRecordError(
                    f"session {session_entity.session_id} already exists"
                ) from exc

    def get(self, venue_id: VenueId, session_id: SessionId) -> GroupSession | None:
        statement = (
            select(GroupSessionModel)
            .where(
                GroupSessionModel.id == str(session_id),
                GroupSessionModel.venue_id == str(venue_id),
            )
            .limit(1)
        )
        with store_errors("group_session.get"), Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        if model is None:
            return None
        return self._to_domain(model)

    def update_with_version(
        self,
        session_entity: GroupSession,
        expected_version: int,
    ) -> GroupSession:
        statement = (
            update(GroupSessionModel)
            .where(
                GroupSessionModel.id == str(session_entity.session_id),
                GroupSessionModel.venue_id == str(session_entity.venue_id),
                GroupSessionModel.version == expected_version,
            )
            .values(
                {
                    GroupSessionModel.parent_name: session_entity.parent_name,
                    GroupSessionModel.members: _members_to_json(session_entity.members),
                    GroupSessionModel.start_time: session_entity.start_time,
                    GroupSessionModel.time_limit_minutes: session_entity.time_limit_minutes,
                    GroupSessionModel.extended_until: session_entity.extended_until,
                    GroupSessionModel.extension_requested_minutes: (
                        session_entity.extension_requested_minutes
                    ),
                    GroupSessionModel.extension_requested_at: session_entity.extension_requested_at,
                    GroupSessionModel.status: session_entity.status.value,
                    GroupSessionModel.warning_15_sent: session_entity.warning_15_sent,
                    GroupSessionModel.warning_5_sent: session_entity.warning_5_sent,
                    GroupSessionModel.card_on_file: session_entity.card_on_file,
                    GroupSessionModel.card_last4: session_entity.card_last4,
                    GroupSessionModel.notes: session_entity.notes,
                    GroupSessionModel.ended_at: session_entity.ended_at,
                    GroupSessionModel.updated_at: session_entity.updated_at,
                    GroupSessionModel.version: GroupSessionModel.version + 1,
                }
            )
        )
        with store_errors("group_session.update"), Session(self._engine) as session:
            result = session.execute(statement)
            if result.rowcount != 1:
                session.rollback()
                raise OptimisticConcurrencyError(
                    f"session {session_entity.session_id} version conflict"
                )
            session.commit()

        updated = self.get(session_entity.venue_id, session_entity.session_id)
        if updated is None:
            raise RuntimeError(f"session {session_entity.session_id} not found after update")
        return updated

    def list_for_parent(self, venue_id: VenueId, parent_user_id: UserId) -> list[GroupSession]:
        statement = (
            select(GroupSessionModel)
            .where(
                GroupSessionModel.venue_id == str(venue_id),
                GroupSessionModel.parent_user_id == str(parent_user_id),
            )
            .order_by(GroupSessionModel.start_time.desc(), GroupSessionModel.id)
        )
        return self._list(statement, "group_session.list_for_parent")

    def list_for_venue(self, venue_id: VenueId) -> list[GroupSession]:
        statement = (
            select(GroupSessionModel)
            .where(GroupSessionModel.venue_id == str(venue_id))
            .order_by(GroupSessionModel.start_time.desc(), GroupSessionModel.id)
        )
        return self._list(statement, "group_session.list_for_venue")

    def list_by_status(self, status: SessionStatus) -> list[GroupSession]:
        statement = (
            select(GroupSessionModel)
            .where(GroupSessionModel.status == status.value)
            .order_by(GroupSessionModel.start_time, GroupSessionModel.id)
        )
        return self._list(statement, "group_session.list_by_status")

    def _list(self, statement: Any, operation: str) -> list[GroupSession]:
        with store_errors(operation), Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [self._to_domain(model) for model in models]

    def _to_model(self, session_entity: GroupSession) -> GroupSessionModel:
        return GroupSessionModel(
            id=str(session_entity.session_id),
            venue_id=str(session_entity.venue_id),
            parent_user_id=str(session_entity.parent_user_id),
            parent_name=session_entity.parent_name,
            members=_members_to_json(session_entity.members),
            start_time=session_entity.start_time,
            time_limit_minutes=session_entity.time_limit_minutes,
            extended_until=session_entity.extended_until,
            extension_requested_minutes=session_entity.extension_requested_minutes,
            extension_requested_at=session_entity.extension_requested_at,
            status=session_entity.status.value,
            warning_15_sent=session_entity.warning_15_sent,
            warning_5_sent=session_entity.warning_5_sent,
            card_on_file=session_entity.card_on_file,
            card_last4=session_entity.card_last4,
            notes=session_entity.notes,
            ended_at=session_entity.ended_at,
            version=session_entity.version,
            created_at=session_entity.created_at,
            updated_at=session_entity.updated_at,
        )

    def _to_domain(self, model: GroupSessionModel) -> GroupSession:
        return GroupSession(
            session_id=SessionId(model.id),
            venue_id=VenueId(model.venue_id),
            parent_user_id=UserId(model.parent_user_id),
            parent_name=model.parent_name,
            members=tuple(_members_from_json(model.members or [])),
            start_time=ensure_utc(model.start_time),
            time_limit_minutes=model.time_limit_minutes,
            status=SessionStatus(model.status),
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
            extended_until=_optional_utc(model.extended_until),
            extension_requested_minutes=model.extension_requested_minutes,
            extension_requested_at=_optional_utc(model.extension_requested_at),
            warning_15_sent=model.warning_15_sent,
            warning_5_sent=model.warning_5_sent,
            card_on_file=model.card_on_file,
            card_last4=model.card_last4,
            notes=model.notes,
            ended_at=_optional_utc(model.ended_at),
            version=model.version,
        )


def _optional_utc(value: datetime | None) -> datetime | None:
    return ensure_utc(value) if value is not None else None


def _members_to_json(members: tuple[SessionMember, ...]) -> list[dict[str, Any]]:
    return [
        {
            "name": member.name,
            "userId": member.user_id,
            "email": member.email,
            "phone": member.phone,
            "isParent": member.is_parent,
        }
        for member in members
    ]


def _members_from_json(items: list[dict[str, Any]]) -> list[SessionMember]:
    return [
        SessionMember(
            name=item.get("name", ""),
            user_id=item.get("userId"),
            email=item.get("email"),
            phone=item.get("phone"),
            is_parent=bool(item.get("isParent", False)),
        )
        for item in items
    ]
