from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Engine, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rsl.application.ports.repositories import (
    DuplicateRecordError,
    OptimisticConcurrencyError,
    ReservationRepository,
)
from rsl.domain.common.clock import ensure_utc, to_instant
from rsl.domain.common.ids import ReservationId, UserId, VenueId
from rsl.domain.reservation.entities import (
    ChangeActor,
    Reservation,
    ReservationSource,
    ReservationStatus,
    ResourceType,
    SourceKind,
    StatusChange,
    VehicleInfo,
)
from rsl.infrastructure.db.models.reservation import ReservationModel
from rsl.infrastructure.db.session import get_engine, store_errors


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def add(self, reservation: Reservation) -> None:
        with store_errors("reservation.add"), Session(self._engine) as session:
            session.add(self._to_model(reservation))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateRecordError(
                    f"reservation {reservation.reservation_id} already exists"
                ) from exc

    def get(self, venue_id: VenueId, reservation_id: ReservationId) -> Reservation | None:
        statement = (
            select(ReservationModel)
            .where(
                ReservationModel.id == str(reservation_id),
                ReservationModel.venue_id == str(venue_id),
            )
            .limit(1)
        )
        with store_errors("reservation.get"), Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        if model is None:
            return None
        return self._to_domain(model)

    def update_with_version(
        self,
        reservation: Reservation,
        expected_version: int,
    ) -> Reservation:
        statement = (
            update(ReservationModel)
            .where(
                ReservationModel.id == str(reservation.reservation_id),
                ReservationModel.venue_id == str(reservation.venue_id),
                ReservationModel.version == expected_version,
            )
            .values(
                {
                    ReservationModel.start_at: reservation.start_at,
                    ReservationModel.duration_or_party_size: reservation.duration_or_party_size,
                    ReservationModel.status: reservation.status.value,
                    ReservationModel.source_kind: reservation.source.kind.value,
                    ReservationModel.source_system: reservation.source.system,
                    ReservationModel.source_external_id: reservation.source.external_id,
                    ReservationModel.metadata_json: dict(reservation.metadata),
                    ReservationModel.history: _history_to_json(reservation),
                    ReservationModel.vehicle: _vehicle_to_json(reservation.vehicle),
                    ReservationModel.holder_name: reservation.holder_name,
                    ReservationModel.holder_email: reservation.holder_email,
                    ReservationModel.holder_phone: reservation.holder_phone,
                    ReservationModel.updated_at: reservation.updated_at,
                    ReservationModel.version: ReservationModel.version + 1,
                }
            )
        )
        with store_errors("reservation.update"), Session(self._engine) as session:
            result = session.execute(statement)
            if result.rowcount != 1:
                session.rollback()
                raise OptimisticConcurrencyError(
                    f"reservation {reservation.reservation_id} version conflict"
                )
            session.commit()

        updated = self.get(reservation.venue_id, reservation.reservation_id)
        if updated is None:
            raise RuntimeError(f"reservation {reservation.reservation_id} not found after update")
        return updated

    def find_by_external_id(
        self,
        venue_id: VenueId,
        system: str,
        external_id: str,
    ) -> Reservation | None:
        statement = (
            select(ReservationModel)
            .where(
                ReservationModel.venue_id == str(venue_id),
                ReservationModel.source_system == system,
                ReservationModel.source_external_id == external_id,
            )
            .limit(1)
        )
        with store_errors("reservation.find_by_external_id"), Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        if model is None:
            return None
        return self._to_domain(model)

    def list_for_holder(
        self,
        venue_id: VenueId,
        holder_id: UserId,
        resource_types: frozenset[ResourceType] | None = None,
    ) -> list[Reservation]:
        statement = select(ReservationModel).where(
            ReservationModel.venue_id == str(venue_id),
            ReservationModel.holder_id == str(holder_id),
        )
        if resource_types is not None:
            statement = statement.where(
                ReservationModel.resource_type.in_([item.value for item in resource_types])
            )
        statement = statement.order_by(ReservationModel.start_at, ReservationModel.id)
        with store_errors("reservation.list_for_holder"), Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [self._to_domain(model) for model in models]

    def list_for_venue(
        self,
        venue_id: VenueId,
        start_from: datetime | None = None,
        start_to: datetime | None = None,
        status: ReservationStatus | None = None,
    ) -> list[Reservation]:
        statement = select(ReservationModel).where(ReservationModel.venue_id == str(venue_id))
        if start_from is not None:
            statement = statement.where(ReservationModel.start_at >= start_from)
        if start_to is not None:
            statement = statement.where(ReservationModel.start_at < start_to)
        if status is not None:
            statement = statement.where(ReservationModel.status == status.value)
        statement = statement.order_by(ReservationModel.start_at, ReservationModel.id)
        with store_errors("reservation.list_for_venue"), Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [self._to_domain(model) for model in models]

    def list_all_for_venue(self, venue_id: VenueId) -> list[Reservation]:
        return self.list_for_venue(venue_id)

    def _to_model(self, reservation: Reservation) -> ReservationModel:
        return ReservationModel(
            id=str(reservation.reservation_id),
            venue_id=str(reservation.venue_id),
            holder_id=str(reservation.holder_id),
            resource_type=reservation.resource_type.value,
            start_at=reservation.start_at,
            duration_or_party_size=reservation.duration_or_party_size,
            status=reservation.status.value,
            source_kind=reservation.source.kind.value,
            source_system=reservation.source.system,
            source_external_id=reservation.source.external_id,
            metadata_json=dict(reservation.metadata),
            history=_history_to_json(reservation),
            vehicle=_vehicle_to_json(reservation.vehicle),
            holder_name=reservation.holder_name,
            holder_email=reservation.holder_email,
            holder_phone=reservation.holder_phone,
            version=reservation.version,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
        )

    def _to_domain(self, model: ReservationModel) -> Reservation:
        created_at = ensure_utc(model.created_at)
        return Reservation(
            reservation_id=ReservationId(model.id),
            venue_id=VenueId(model.venue_id),
            holder_id=UserId(model.holder_id),
            resource_type=ResourceType(model.resource_type),
            start_at=ensure_utc(model.start_at),
            duration_or_party_size=model.duration_or_party_size,
            status=ReservationStatus(model.status),
            source=ReservationSource(
                kind=SourceKind(model.source_kind),
                system=model.source_system,
                external_id=model.source_external_id,
            ),
            created_at=created_at,
            updated_at=ensure_utc(model.updated_at),
            metadata=dict(model.metadata_json or {}),
            history=tuple(_history_from_json(model.history or [], created_at)),
            vehicle=_vehicle_from_json(model.vehicle),
            holder_name=model.holder_name,
            holder_email=model.holder_email,
            holder_phone=model.holder_phone,
            version=model.version,
        )


def _history_to_json(reservation: Reservation) -> list[dict[str, Any]]:
    return [
        {
            "status": change.status.value,
            "previousStatus": change.previous_status.value if change.previous_status else None,
            "changedAt": change.changed_at.isoformat(),
            "actor": change.actor.value,
            "reason": change.reason,
        }
        for change in reservation.history
    ]


def _history_from_json(items: list[dict[str, Any]], fallback: datetime) -> list[StatusChange]:
    history = []
    for item in items:
        previous = item.get("previousStatus")
        history.append(
            StatusChange(
                status=ReservationStatus(item["status"]),
                previous_status=ReservationStatus(previous) if previous else None,
                changed_at=to_instant(item.get("changedAt"), default=fallback),
                actor=ChangeActor(item.get("actor", ChangeActor.SYSTEM.value)),
                reason=item.get("reason"),
            )
        )
    return history


def _vehicle_to_json(vehicle: VehicleInfo | None) -> dict[str, Any] | None:
    if vehicle is None:
        return None
    return {
        "licensePlate": vehicle.license_plate,
        "make": vehicle.make,
        "model": vehicle.model,
        "color": vehicle.color,
    }


def _vehicle_from_json(payload: dict[str, Any] | None) -> VehicleInfo | None:
    if not payload:
        return None
    return VehicleInfo(
        license_plate=payload["licensePlate"],
        make=payload.get("make", ""),
        model=payload.get("model", ""),
        color=payload.get("color", ""),
    )
