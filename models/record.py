from __future__ import annotations

import time
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


ObjectType = Literal["opportunity", "lead", "contact", "account", "task"]

FieldValue = str | int | float | None

OBJECT_TYPE_PARTITIONS: dict[str, str] = {
    "opportunity": "opportunities",
    "lead": "leads",
    "contact": "contacts",
    "account": "accounts",
    "task": "tasks",
}


def now_ms() -> int:
    return int(time.time() * 1000)


def partition_for(object_type: str) -> str:
    try:
        return OBJECT_TYPE_PARTITIONS[object_type]
    except KeyError:
        raise KeyError(f"Unknown object type: {object_type}") from None


class Record(BaseModel):
    """One extracted CRM record; wire and storage shape use camelCase keys."""

    id: str = Field(min_length=1)
    object_type: ObjectType = Field(alias="objectType")
    data: dict[str, FieldValue]
    source_url: str = Field(default="", alias="sourceUrl")
    last_updated: int = Field(default_factory=now_ms, alias="lastUpdated")
    parent_id: str | None = Field(default=None, alias="parentId")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("id")
    @classmethod
    def _strip_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("id must not be blank")
        return value

    @property
    def partition(self) -> str:
        return partition_for(self.object_type)

    def to_wire(self) -> dict[str, Any]:
        payload = self.model_dump(by_alias=True)
        if self.parent_id is None:
            payload.pop("parentId", None)
        return payload
