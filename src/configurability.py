import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from dictionary_models import ConfigurabilityEntry, ConfigurabilityData, SeedDataError
from field_dictionary import FieldDictionary, DEFAULT_DATA_DIR
from field_position import parse_position

logger = logging.getLogger(__name__)

CONFIG_FILE = Path("emr-config") / "configurable-fields.json"
LABEL_SEPARATOR = " › "


class ConfigurabilityResolver:
    """
    Maps position strings to operator-authored configurability entries.

    A component position falls back to its parent field's entry, one level only.
    A field position never picks up entries configured on its components.
    """

    def __init__(self, dictionary: FieldDictionary, entries: Iterable[ConfigurabilityEntry] = ()):
        self.dictionary = dictionary
        self._entries: Dict[str, ConfigurabilityEntry] = {}
        self._write_lock = threading.Lock()
        for entry in entries:
            self._entries[entry.fieldPosition] = entry

    @classmethod
    def from_data(cls, dictionary: FieldDictionary, data: Dict[str, Any]) -> 'ConfigurabilityResolver':
        try:
            config = ConfigurabilityData.model_validate(data)
        except ValidationError as e:
            raise SeedDataError(f"Invalid configurability data: {e}") from e
        return cls(dictionary, config.entries)

    @classmethod
    def from_file(cls, dictionary: FieldDictionary, data_dir: Optional[Path] = None) -> 'ConfigurabilityResolver':
        config_path = Path(data_dir or DEFAULT_DATA_DIR) / CONFIG_FILE
        if not config_path.exists():
            logger.warning(f"Configurability file does not exist: {config_path}")
            return cls(dictionary)

        logger.info(f"Loading configurability entries from: {config_path}")
        with open(config_path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise SeedDataError(f"Configurability file {config_path} is not valid JSON: {e}") from e
        resolver = cls.from_data(dictionary, data)
        logger.info(f"Loaded {len(resolver._entries)} configurability entries.")
        return resolver

    def config_for(self, position: str) -> Optional[ConfigurabilityEntry]:
        if not isinstance(position, str):
            return None
        exact = self._entries.get(position)
        if exact is not None:
            return exact
        parsed = parse_position(position)
        if parsed and parsed.is_component:
            return self._entries.get(str(parsed.parent()))
        return None

    def is_configurable(self, position: str) -> bool:
        return self.config_for(position) is not None

    def label_for(self, position: str) -> str:
        """Human-readable label for a position; the position itself when nothing is known."""
        parsed = parse_position(position)
        if not parsed:
            return position
        field = self.dictionary.field_definition(parsed.segment, parsed.field)
        if not field:
            return position

        if parsed.is_component:
            component = self.dictionary.component_definition(parsed.segment, parsed.field, parsed.component)
            if component:
                return f"{field.name}{LABEL_SEPARATOR}{component.name}"
        return field.name

    def entries(self) -> List[ConfigurabilityEntry]:
        return list(self._entries.values())

    # Mutations below are only called with results the persistence collaborator confirmed.
    def upsert(self, position: str, entry: ConfigurabilityEntry) -> None:
        with self._write_lock:
            self._entries[position] = entry
        logger.info(f"Stored configurability entry for {position}")

    def remove(self, position: str) -> bool:
        with self._write_lock:
            removed = self._entries.pop(position, None)
        if removed is None:
            logger.warning(f"No configurability entry to remove for {position}")
            return False
        logger.info(f"Removed configurability entry for {position}")
        return True
