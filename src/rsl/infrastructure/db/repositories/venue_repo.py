from __future__ import annotations

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from rsl.application.ports.repositories import VenueRepository
from rsl.domain.common.ids import VenueId
from rsl.domain.venue.entities import Venue, VenueFeature
from rsl.infrastructure.db.models.venue import VenueModel
from rsl.infrastructure.db.session import get_engine, store_errors


class SqlAlchemyVenueRepository(VenueRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get(self, venue_id: VenueId) -> Venue | None:
        statement = select(VenueModel).where(VenueModel.id == str(venue_id)).limit(1)
        with store_errors("venue.get"), Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        if model is None:
            return None
        return self._to_domain(model)

    def list_venues(self) -> list[Venue]:
        statement = select(VenueModel).order_by(VenueModel.id)
        with store_errors("venue.list"), Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [self._to_domain(model) for model in models]

    def upsert(self, venue: Venue) -> None:
        with store_errors("venue.upsert"), Session(self._engine) as session:
            session.merge(
                VenueModel(
                    id=str(venue.venue_id),
                    name=venue.name,
                    features=sorted(feature.value for feature in venue.features),
                )
            )
            session.commit()

    def _to_domain(self, model: VenueModel) -> Venue:
        features = frozenset(
            VenueFeature(value)
            for value in model.features or []
            if value in VenueFeature._value2member_map_
        )
        return Venue(venue_id=VenueId(model.id), name=model.name, features=features)
