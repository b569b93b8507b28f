from __future__ import annotations

from sqlalchemy import Engine, inspect

from rsl.domain.common.ids import VenueId
from rsl.domain.venue.entities import Venue, VenueFeature
from rsl.infrastructure.db.repositories.venue_repo import SqlAlchemyVenueRepository
from rsl.infrastructure.db.session import get_engine

REQUIRED_TABLES = {"venues", "reservations", "group_sessions"}

DEMO_VENUES = (
    Venue(
        venue_id=VenueId("ven_001"),
        name="Harbor Street Bistro",
        features=frozenset({VenueFeature.TABLES, VenueFeature.VALET}),
    ),
    Venue(
        venue_id=VenueId("ven_002"),
        name="Strike Zone Lanes",
        features=frozenset({VenueFeature.TABLES, VenueFeature.BOWLING}),
    ),
    Venue(
        venue_id=VenueId("ven_003"),
        name="Pixel Arcade Lounge",
        features=frozenset({VenueFeature.TABLES, VenueFeature.GAMING}),
    ),
)


def seed(engine: Engine) -> int:
    repository = SqlAlchemyVenueRepository(engine=engine)
    for venue in DEMO_VENUES:
        repository.upsert(venue)
    return len(DEMO_VENUES)


def main() -> None:
    engine = get_engine(timeout_seconds=2.0)
    if not REQUIRED_TABLES.issubset(set(inspect(engine).get_table_names())):
        print("no schema yet")
        return

    count = seed(engine)
    print(f"seed complete: {count} venues")


if __name__ == "__main__":
    main()
