"""Location-path steps used by the XPath line resolver."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LocationSegment(BaseModel):
    """A single step of a location path: local element name + occurrence."""

    element_name: str
    occurrence_index: int = Field(default=1, ge=1)

    model_config = {"frozen": True}
