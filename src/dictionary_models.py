# Seed data and persistence payload models for the field dictionary.
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

MAX_IMAGES = 3

# --- Models for Field Dictionary Seed Data ---
class ComponentDefinition(BaseModel):
    position: int = Field(ge=1)
    name: str
    dataType: str
    description: Optional[str] = None

class FieldDefinition(BaseModel):
    field: int = Field(ge=0)
    name: str
    dataType: str
    description: str
    maxLength: Optional[int] = None
    required: Optional[bool] = None
    components: Optional[List[ComponentDefinition]] = None

class SegmentDefinition(BaseModel):
    segment: str = Field(min_length=1)
    name: str
    description: str
    fields: List[FieldDefinition] = Field(default_factory=list)

# --- EMR Configurability ---
class ConfigurabilityEntry(BaseModel):
    fieldPosition: str
    fieldName: str
    emrLocation: str
    imagePaths: List[str] = Field(default_factory=list, max_length=MAX_IMAGES)
    notes: Optional[str] = None

class ConfigurabilityData(BaseModel):
    entries: List[ConfigurabilityEntry] = Field(default_factory=list)

# --- Persistence Requests and Responses ---
class FieldEditRequest(BaseModel):
    segment: str = Field(min_length=1)
    fieldIndex: int = Field(ge=0)
    name: str
    description: str

class ConfigUpsertRequest(BaseModel):
    position: str
    fieldName: Optional[str] = None
    emrLocation: Optional[str] = None
    notes: Optional[str] = None
    imagePaths: Optional[List[str]] = None

    @field_validator('imagePaths')
    @classmethod
    def limit_images(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        # Entries may carry data:image/...;base64 URIs here; the collaborator stores them.
        if value is not None and len(value) > MAX_IMAGES:
            raise ValueError(f"At most {MAX_IMAGES} images may be attached to a configurable field.")
        return value

class ConfigDeleteRequest(BaseModel):
    position: str

class MutationResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    data: Optional[ConfigurabilityEntry] = None

class SeedDataError(ValueError):
    """Raised when bundled or supplied seed data does not match the expected shape."""
