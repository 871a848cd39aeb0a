"""
Real-time event schemas.

Every WebSocket frame is `{"event": <name>, "data": {...}}`. Client frames
are validated as a discriminated union on `event` before anything reaches
the services; server frames are built from the models below and serialized
with camelCase keys.
"""
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter
from pydantic.alias_generators import to_camel
from permit_tracker.models.enums import PackageStatus, PresenceAction

# Client -> hub
JOIN_PACKAGE = "join-package"
LEAVE_PACKAGE = "leave-package"
TOGGLE_CHECKLIST_ITEM = "toggle-checklist-item"
UPDATE_STATUS = "update-status"

# Hub -> client
JOINED_PACKAGE = "joined-package"
LEFT_PACKAGE = "left-package"
PRESENCE = "presence"
CHECKLIST_UPDATED = "checklist-updated"
STATUS_UPDATED = "status-updated"
ERROR = "error"


class EventData(BaseModel):
    """Base for event payloads; camelCase on the wire"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class PackageRef(EventData):
    package_id: str = Field(..., min_length=1)


class ToggleChecklistItemData(PackageRef):
    item_id: int
    completed: bool
    notes: Optional[str] = None
    expected_version: Optional[int] = Field(None, ge=1)


class UpdateStatusData(PackageRef):
    status: PackageStatus
    note: Optional[str] = None
    expected_version: Optional[int] = Field(None, ge=1)


class JoinPackageEvent(BaseModel):
    event: Literal["join-package"]
    data: PackageRef


class LeavePackageEvent(BaseModel):
    event: Literal["leave-package"]
    data: PackageRef


class ToggleChecklistItemEvent(BaseModel):
    event: Literal["toggle-checklist-item"]
    data: ToggleChecklistItemData


class UpdateStatusEvent(BaseModel):
    event: Literal["update-status"]
    data: UpdateStatusData


ClientEvent = Annotated[
    Union[JoinPackageEvent, LeavePackageEvent, ToggleChecklistItemEvent, UpdateStatusEvent],
    Field(discriminator="event"),
]

client_event_adapter = TypeAdapter(ClientEvent)


# Server payloads

class PresencePayload(EventData):
    user_id: str
    action: PresenceAction
    timestamp: str


class ChecklistUpdatedPayload(EventData):
    item_id: int
    completed: bool
    updated_by: str
    timestamp: str


class StatusUpdatedPayload(EventData):
    package_id: str
    status: PackageStatus
    note: Optional[str]
    updated_by: str
    timestamp: str


class ErrorPayload(EventData):
    message: str


def dump_payload(payload: BaseModel) -> dict:
    """Serialize a payload model the way it goes on the wire"""
    return payload.model_dump(by_alias=True, mode="json")
