"""Trace entries linking clean output lines to stylesheet positions."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TraceEntry(BaseModel):
    """One marker recovered from instrumented output.

    ``output_line`` counts lines of the *clean* output, after markers have
    been stripped.
    """

    output_line: int = Field(ge=1)
    source_file: str
    source_line: int = Field(ge=1)
    element_name: str

    model_config = {"frozen": True}

    @property
    def local_name(self) -> str:
        """Element name without its namespace prefix."""
        return self.element_name.rpartition(":")[2]
