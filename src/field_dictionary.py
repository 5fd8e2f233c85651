import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from dictionary_models import SegmentDefinition, FieldDefinition, ComponentDefinition, SeedDataError

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(__file__).parent / "data"
FIELD_DEFINITIONS_DIR = "field-definitions"


class FieldDictionary:
    """
    In-memory table of static per-segment metadata.

    Coverage is partial: segments without a definition parse fine but have no
    metadata, and every lookup for them returns None.
    Reads are lock-free. Edits are serialized and swap in a new FieldDefinition,
    so a reader sees either the old or the new name/description pair.
    """

    def __init__(self, segments: Iterable[SegmentDefinition] = ()):
        self._segments: Dict[str, SegmentDefinition] = {}
        self._write_lock = threading.Lock()
        for segment in segments:
            self._segments[segment.segment] = segment

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> 'FieldDictionary':
        """Builds a dictionary from raw seed records, rejecting malformed ones."""
        segments: List[SegmentDefinition] = []
        for record in records:
            try:
                segments.append(SegmentDefinition.model_validate(record))
            except ValidationError as e:
                code = record.get('segment', '?') if isinstance(record, dict) else '?'
                raise SeedDataError(f"Invalid segment definition '{code}': {e}") from e
        return cls(segments)

    @classmethod
    def from_directory(cls, data_dir: Optional[Path] = None) -> 'FieldDictionary':
        """Loads every <SEG>.json under <data_dir>/field-definitions."""
        definitions_path = Path(data_dir or DEFAULT_DATA_DIR) / FIELD_DEFINITIONS_DIR
        dictionary = cls()
        if not definitions_path.exists():
            logger.warning(f"Field definition path does not exist: {definitions_path}")
            return dictionary

        logger.info(f"Loading field definitions from: {definitions_path}")
        for definition_file in sorted(definitions_path.glob("*.json")):
            try:
                with open(definition_file, 'r', encoding='utf-8') as f:
                    segment = SegmentDefinition.model_validate(json.load(f))
                dictionary._segments[segment.segment] = segment
                logger.debug(f"Loaded segment definition: {segment.segment} ({len(segment.fields)} fields)")
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                logger.error(f"Failed to load field definitions {definition_file.name}: {e}")

        logger.info(f"Loaded {len(dictionary._segments)} segment definitions: {dictionary.known_segment_codes()}")
        return dictionary

    def segment_definition(self, code: str) -> Optional[SegmentDefinition]:
        return self._segments.get(code)

    def field_definition(self, code: str, field_number: int) -> Optional[FieldDefinition]:
        segment = self._segments.get(code)
        if not segment:
            return None
        # Field numbers are declared in the data, not implied by list order.
        return next((f for f in segment.fields if f.field == field_number), None)

    def component_definition(self, code: str, field_number: int, component_number: int) -> Optional[ComponentDefinition]:
        field = self.field_definition(code, field_number)
        if not field or not field.components:
            return None
        return next((c for c in field.components if c.position == component_number), None)

    def known_segment_codes(self) -> List[str]:
        return list(self._segments.keys())

    def apply_field_edit(self, code: str, field_number: int, name: str, description: str) -> bool:
        """
        Overwrites the name and description of a known field.
        Returns False if the segment or field is unknown.
        """
        with self._write_lock:
            segment = self._segments.get(code)
            if not segment:
                logger.warning(f"Cannot apply field edit: no definition for segment {code}")
                return False
            for i, field in enumerate(segment.fields):
                if field.field == field_number:
                    segment.fields[i] = field.model_copy(update={"name": name, "description": description})
                    logger.info(f"Applied field edit to {code}.{field_number}: '{name}'")
                    return True
            logger.warning(f"Cannot apply field edit: {code}.{field_number} not found")
            return False
