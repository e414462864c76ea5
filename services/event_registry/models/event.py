"""Pydantic models for the current event"""
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator


class Event(BaseModel):
    """Configuration of the event currently admitted at the gates"""
    id: str
    name: str
    max_capacity: int = Field(..., gt=0)
    max_entries: int = Field(1, gt=0)
    validity: Optional[str] = None

    def to_hash(self) -> Dict[str, str]:
        data = {
            "id": self.id,
            "name": self.name,
            "max_capacity": str(self.max_capacity),
            "max_entries": str(self.max_entries),
        }
        if self.validity is not None:
            data["validity"] = self.validity
        return data


class EventCreate(BaseModel):
    """Body of the set-event request; fields are checked by the route"""
    event_id: Optional[str] = None
    event_name: Optional[str] = None
    capacity: Optional[int] = None
    event_validity: Optional[str] = None
    max_entries: int = Field(1, gt=0)

    @field_validator("event_id", mode="before")
    @classmethod
    def coerce_event_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def missing_fields(self) -> list:
        """Required fields that are absent or empty; a capacity below 1 counts as unset"""
        required = {
            "event_id": self.event_id,
            "event_name": self.event_name,
            "capacity": self.capacity is not None and self.capacity > 0,
            "event_validity": self.event_validity,
        }
        return [name for name, value in required.items() if not value]

    def to_event(self) -> Event:
        return Event(
            id=str(self.event_id),
            name=self.event_name,
            max_capacity=self.capacity,
            max_entries=self.max_entries,
            validity=self.event_validity,
        )
