# Canonical model for a parsed HL7 v2.x message.
# The tree is immutable once built: segments -> fields -> components.
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class Hl7Component(BaseModel):
    """A single '^'-delimited unit within a field."""
    model_config = ConfigDict(frozen=True)

    value: str
    position: str  # e.g. "PID.3.1"


class Hl7Field(BaseModel):
    """A single '|'-delimited unit within a segment."""
    model_config = ConfigDict(frozen=True)

    position: str  # e.g. "PID.3"
    value: str
    components: List[Hl7Component]
    repetitions: List[str]
    raw: str

    def get_component(self, index: int) -> Optional[str]:
        """Retrieves the value of a component by its 1-based index."""
        if 1 <= index <= len(self.components):
            return self.components[index - 1].value
        return None


class Hl7Segment(BaseModel):
    """
    Represents a single HL7 segment line.
    fields[0] is always the literal segment name.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    fields: List[Hl7Field]
    raw: str

    def get_field(self, index: int) -> Optional[Hl7Field]:
        """Retrieves a field by its index in the parsed field array."""
        if 0 <= index < len(self.fields):
            return self.fields[index]
        return None


class Hl7Message(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    segments: List[Hl7Segment] = Field(default_factory=list)
    message_type: str = Field("", alias="messageType")
    timestamp: str = ""
    raw: str = ""
    file_name: Optional[str] = Field(None, alias="fileName")

    def get_segment(self, name: str) -> Optional[Hl7Segment]:
        return next((segment for segment in self.segments if segment.name == name), None)

    def get_segments(self, name: str) -> List[Hl7Segment]:
        return [segment for segment in self.segments if segment.name == name]
