from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from rsl.domain.common.ids import VenueId


class VenueFeature(str, Enum):
    TABLES = "TABLES"
    VALET = "VALET"
    BOWLING = "BOWLING"
    GAMING = "GAMING"


@dataclass(frozen=True)
class Venue:
    venue_id: VenueId
    name: str
    features: frozenset[VenueFeature] = field(default_factory=frozenset)

    def supports(self, feature: VenueFeature) -> bool:
        # every venue takes table bookings
        if feature == VenueFeature.TABLES:
            return True
        return feature in self.features
