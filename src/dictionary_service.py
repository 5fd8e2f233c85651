import logging
import threading
from typing import List, Optional

from pydantic import ValidationError

from configurability import ConfigurabilityResolver
from dictionary_models import ConfigDeleteRequest, ConfigUpsertRequest, FieldEditRequest, MutationResponse
from field_dictionary import FieldDictionary
from explorer_settings import Settings
from persistence_client import HttpPersistenceClient, PersistenceCollaborator

logger = logging.getLogger(__name__)


class DictionaryEditService:
    """
    Saves dictionary and configurability edits through the persistence
    collaborator and applies them locally once it confirms.

    Round trips are serialized, so local state changes in confirmation order.
    A failed or unreachable save leaves local state untouched and the
    collaborator's response is returned as-is.
    """

    def __init__(self, dictionary: FieldDictionary, resolver: ConfigurabilityResolver, collaborator: PersistenceCollaborator):
        self.dictionary = dictionary
        self.resolver = resolver
        self.collaborator = collaborator
        self._mutation_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "DictionaryEditService":
        """Seeds the tables from the configured data directory and talks to the configured service."""
        settings = settings or Settings()
        dictionary = FieldDictionary.from_directory(settings.data_dir)
        resolver = ConfigurabilityResolver.from_file(dictionary, settings.data_dir)
        client = HttpPersistenceClient(base_url=settings.api_base_url, timeout=settings.api_timeout)
        return cls(dictionary, resolver, client)

    def close(self) -> None:
        """Closes the collaborator's connection when it holds one."""
        close = getattr(self.collaborator, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "DictionaryEditService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def save_field(self, segment: str, field_index: int, name: str, description: str) -> MutationResponse:
        try:
            request = FieldEditRequest(segment=segment, fieldIndex=field_index, name=name, description=description)
        except ValidationError as e:
            logger.warning(f"Rejected field edit for {segment}.{field_index}: {e}")
            return MutationResponse(success=False, message=f"Invalid field edit: {e.errors()[0]['msg']}")

        logger.info(f"Saving field edit for {segment}.{field_index}")
        with self._mutation_lock:
            result = self.collaborator.update_field(request)
            if result.success:
                self.dictionary.apply_field_edit(segment, field_index, name, description)
        if not result.success:
            logger.warning(f"Field edit for {segment}.{field_index} not saved: {result.message}")
        return result

    def save_config(
        self,
        position: str,
        field_name: Optional[str] = None,
        emr_location: Optional[str] = None,
        notes: Optional[str] = None,
        image_paths: Optional[List[str]] = None,
    ) -> MutationResponse:
        try:
            request = ConfigUpsertRequest(
                position=position,
                fieldName=field_name,
                emrLocation=emr_location,
                notes=notes,
                imagePaths=image_paths,
            )
        except ValidationError as e:
            logger.warning(f"Rejected configurability edit for {position}: {e}")
            return MutationResponse(success=False, message=f"Invalid configurability edit: {e.errors()[0]['msg']}")

        logger.info(f"Saving configurability entry for {position}")
        with self._mutation_lock:
            result = self.collaborator.update_config(request)
            # The collaborator's normalized entry is stored, never the request.
            if result.success and result.data is not None:
                self.resolver.upsert(position, result.data)
        if not result.success:
            logger.warning(f"Configurability entry for {position} not saved: {result.message}")
        elif result.data is None:
            logger.warning(f"Save for {position} confirmed without an entry; nothing applied locally.")
        return result

    def delete_config(self, position: str) -> MutationResponse:
        logger.info(f"Removing configurability entry for {position}")
        with self._mutation_lock:
            result = self.collaborator.delete_config(ConfigDeleteRequest(position=position))
            if result.success:
                self.resolver.remove(position)
        if not result.success:
            logger.warning(f"Configurability entry for {position} not removed: {result.message}")
        return result
