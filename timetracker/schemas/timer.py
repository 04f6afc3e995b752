from pydantic import BaseModel, UUID4, field_serializer
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime

from timetracker.utils.time_utils import isoformat_utc


class CamelModel(BaseModel):
    """Base for response bodies whose field names are camelCase on the wire."""

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class StartTimerRequest(BaseModel):
    notes: Optional[str] = None


class UpdateNotesRequest(BaseModel):
    notes: Optional[str] = None


class SessionResponse(CamelModel):
    id: UUID4
    user_id: UUID4
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    @field_serializer('start_time', 'end_time', 'created_at')
    def serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        return isoformat_utc(value)


class DeleteResponse(BaseModel):
    success: bool = True
