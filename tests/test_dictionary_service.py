"""
Unit tests for the dictionary edit service.
"""

import pytest
import threading
from unittest.mock import MagicMock

from configurability import ConfigurabilityResolver
from dictionary_models import ConfigurabilityEntry, MutationResponse, FieldEditRequest, ConfigUpsertRequest, ConfigDeleteRequest
from dictionary_service import DictionaryEditService
from explorer_settings import Settings
from persistence_client import HttpPersistenceClient

pytestmark = pytest.mark.unit

class TestDictionaryEditService:
    """Test cases for applying confirmed edits."""

    @pytest.fixture(autouse=True)
    def setup_service(self, sample_resolver: ConfigurabilityResolver):
        self.resolver = sample_resolver
        self.dictionary = sample_resolver.dictionary
        self.collaborator = MagicMock()
        self.service = DictionaryEditService(self.dictionary, self.resolver, self.collaborator)

    def test_save_field_applies_on_success(self):
        self.collaborator.update_field.return_value = MutationResponse(success=True, message="Field PID.5 updated")

        result = self.service.save_field("PID", 5, "Name", "Full legal name")

        assert result.success
        self.collaborator.update_field.assert_called_once_with(
            FieldEditRequest(segment="PID", fieldIndex=5, name="Name", description="Full legal name")
        )
        assert self.dictionary.field_definition("PID", 5).name == "Name"
        assert self.dictionary.field_definition("PID", 5).description == "Full legal name"

    def test_save_field_failure_leaves_state(self):
        self.collaborator.update_field.return_value = MutationResponse(success=False, message="Field not found")

        result = self.service.save_field("PID", 5, "Name", "Full legal name")

        assert not result.success
        assert result.message == "Field not found"
        assert self.dictionary.field_definition("PID", 5).name == "Patient Name"

    @pytest.mark.parametrize("segment,field_index", [("PID", -1), ("", 5), ("PID", "five")])
    def test_save_field_rejects_invalid_edit_without_calling_collaborator(self, segment, field_index):
        result = self.service.save_field(segment, field_index, "Name", "Full legal name")

        assert not result.success
        assert result.message.startswith("Invalid field edit")
        self.collaborator.update_field.assert_not_called()
        assert self.dictionary.field_definition("PID", 5).name == "Patient Name"

    def test_close_closes_collaborator(self):
        with self.service as service:
            assert service is self.service
        self.collaborator.close.assert_called_once_with()

    def test_close_without_collaborator_close(self):
        service = DictionaryEditService(self.dictionary, self.resolver, object())
        service.close()

    def test_save_config_stores_confirmed_entry_not_request(self):
        normalized = ConfigurabilityEntry(
            fieldPosition="OBX.5",
            fieldName="Observation Value",
            emrLocation="Results > Values",
            imagePaths=["/emr-images/OBX_5_1700000000000_0.png"],
            notes="",
        )
        self.collaborator.update_config.return_value = MutationResponse(success=True, data=normalized)

        result = self.service.save_config(
            "OBX.5",
            field_name="Observation Value",
            emr_location="Results > Values",
            image_paths=["data:image/png;base64,iVBORw0KGgo="],
        )

        assert result.success
        sent = self.collaborator.update_config.call_args.args[0]
        assert isinstance(sent, ConfigUpsertRequest)
        assert sent.imagePaths == ["data:image/png;base64,iVBORw0KGgo="]
        stored = self.resolver.config_for("OBX.5")
        assert stored == normalized
        assert stored.imagePaths == ["/emr-images/OBX_5_1700000000000_0.png"]

    def test_save_config_failure_leaves_state(self):
        self.collaborator.update_config.return_value = MutationResponse(success=False, message="Internal Server Error")

        result = self.service.save_config("OBX.5", emr_location="Somewhere")

        assert not result.success
        assert result.message == "Internal Server Error"
        assert self.resolver.is_configurable("OBX.5") is False

    def test_save_config_success_without_data_applies_nothing(self):
        self.collaborator.update_config.return_value = MutationResponse(success=True)

        result = self.service.save_config("OBX.5", emr_location="Somewhere")

        assert result.success
        assert self.resolver.is_configurable("OBX.5") is False

    def test_save_config_rejects_too_many_images_without_calling_collaborator(self):
        result = self.service.save_config("OBX.5", image_paths=["a", "b", "c", "d"])

        assert not result.success
        self.collaborator.update_config.assert_not_called()

    def test_delete_config(self):
        self.collaborator.delete_config.return_value = MutationResponse(success=True)

        result = self.service.delete_config("PID.3")

        assert result.success
        self.collaborator.delete_config.assert_called_once_with(ConfigDeleteRequest(position="PID.3"))
        assert self.resolver.is_configurable("PID.3.1") is False

    def test_delete_config_failure_leaves_state(self):
        self.collaborator.delete_config.return_value = MutationResponse(success=False, message="Not Found")

        result = self.service.delete_config("PID.3")

        assert not result.success
        assert self.resolver.is_configurable("PID.3") is True

    def test_collaborator_exception_leaves_state(self):
        self.collaborator.update_field.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            self.service.save_field("PID", 5, "Name", "Full legal name")
        assert self.dictionary.field_definition("PID", 5).name == "Patient Name"

    def test_round_trips_are_serialized(self):
        """A second save waits until the first round trip has been applied."""
        first_started = threading.Event()
        release_first = threading.Event()
        calls = []

        def update_field(request: FieldEditRequest) -> MutationResponse:
            calls.append(request.name)
            if request.name == "First":
                first_started.set()
                release_first.wait(timeout=5)
            return MutationResponse(success=True)

        self.collaborator.update_field.side_effect = update_field

        first = threading.Thread(target=self.service.save_field, args=("PID", 5, "First", "1"))
        first.start()
        assert first_started.wait(timeout=5)
        second = threading.Thread(target=self.service.save_field, args=("PID", 5, "Second", "2"))
        second.start()
        second.join(timeout=0.2)
        # The second call is blocked behind the first round trip.
        assert calls == ["First"]

        release_first.set()
        first.join(timeout=5)
        second.join(timeout=5)
        assert calls == ["First", "Second"]
        assert self.dictionary.field_definition("PID", 5).name == "Second"


def test_from_settings(bundled_data_dir):
    settings = Settings(data_dir=bundled_data_dir, api_base_url="http://persistence.test:3001", api_timeout=2.5)
    with DictionaryEditService.from_settings(settings) as service:
        assert "MSH" in service.dictionary.known_segment_codes()
        assert service.resolver.is_configurable("OBX.5.2")
        assert isinstance(service.collaborator, HttpPersistenceClient)
        assert service.collaborator.base_url == "http://persistence.test:3001"
    assert service.collaborator.client.is_closed
