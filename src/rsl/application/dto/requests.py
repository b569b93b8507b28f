from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from rsl.domain.reservation.entities import ReservationStatus, ResourceType


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


class CamelBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )


class VehicleRequest(CamelBaseModel):
    license_plate: str = Field(min_length=1)
    make: str | None = None
    model: str | None = None
    color: str | None = None


class CreateReservationRequest(CamelBaseModel):
    holder_id: str
    resource_type: ResourceType
    start_at: datetime
    duration_or_party_size: int = Field(ge=1)
    holder_name: str | None = None
    holder_email: str | None = None
    holder_phone: str | None = None
    vehicle: VehicleRequest | None = None
    special_requests: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class IngestExternalReservationRequest(CamelBaseModel):
    system: str = Field(min_length=1)
    external_id: str = Field(min_length=1)
    holder_id: str
    resource_type: ResourceType = ResourceType.TABLE
    # sync sources send ISO strings, epoch numbers or native timestamps
    start_at: datetime | float | str
    duration_or_party_size: int = Field(ge=1)
    holder_name: str | None = None
    holder_email: str | None = None
    holder_phone: str | None = None
    vehicle: VehicleRequest | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ExternalStatusRequest(CamelBaseModel):
    system: str = Field(min_length=1)
    status: ReservationStatus
    reason: str | None = None


class TransitionReservationRequest(CamelBaseModel):
    staff_id: str | None = None
    staff_name: str | None = None
    reason: str | None = None


class CancelReservationRequest(CamelBaseModel):
    holder_id: str
    reason: str | None = None


class ModifyReservationRequest(CamelBaseModel):
    holder_id: str
    start_at: datetime | None = None
    duration_or_party_size: int | None = Field(default=None, ge=1)
    special_requests: str | None = None


class UpdateReservationMetadataRequest(CamelBaseModel):
    metadata: dict[str, Any] = Field(min_length=1)


class SessionMemberRequest(CamelBaseModel):
    name: str = Field(min_length=1)
    user_id: str | None = None
    email: str | None = None
    phone: str | None = None
    is_parent: bool = False


class CreateGroupSessionRequest(CamelBaseModel):
    parent_user_id: str
    parent_name: str
    start_time: datetime
    time_limit_minutes: int = Field(gt=0)
    parent_email: str | None = None
    parent_phone: str | None = None
    members: list[SessionMemberRequest] = Field(default_factory=list)
    card_on_file: bool = False
    card_last4: str | None = Field(default=None, max_length=4)
    notes: str | None = None


class SessionExtensionRequest(CamelBaseModel):
    minutes: int = Field(gt=0)


class GrantSessionExtensionRequest(CamelBaseModel):
    minutes: int | None = Field(default=None, gt=0)
    until: datetime | None = None


class DeclineSessionExtensionRequest(CamelBaseModel):
    reason: str | None = None
