"""
Wire envelope — the typed, correlated message unit of the session.
"""

import json
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class Role(str, Enum):
    ADMIN = "admin"
    DATA_AGENT = "data_agent"
    RUNTIME = "runtime"


class Endpoint(BaseModel):
    type: Optional[Role] = None
    id: Optional[str] = None


class Envelope(BaseModel):
    id: str
    type: str
    from_: Endpoint = Field(default_factory=Endpoint, alias="from")
    to: Endpoint = Field(default_factory=Endpoint)
    payload: Optional[Any] = None

    model_config = {"populate_by_name": True}

    @field_validator("from_", "to", mode="before")
    @classmethod
    def _coerce_endpoint(cls, value: Any) -> Any:
        # Older hosts send a bare role string ("from": "runtime")
        if value is None:
            return {}
        if isinstance(value, str):
            return {"type": value}
        return value

    def reply(self, type: str, payload: Any) -> "Envelope":
        """Response envelope: same id, from/to swapped."""
        return Envelope(
            id=self.id,
            type=type,
            from_=Endpoint(type=self.to.type or Role.DATA_AGENT, id=self.to.id),
            to=self.from_.model_copy(),
            payload=payload,
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def dumps(self) -> str:
        return json.dumps(self.to_wire(), ensure_ascii=False, separators=(",", ":"), default=str)
