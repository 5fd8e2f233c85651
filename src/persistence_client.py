"""Client side of the persistence service that stores dictionary edits and EMR configuration."""

from __future__ import annotations

import base64
import logging
from typing import Protocol

import httpx
from pydantic import BaseModel, ValidationError

from dictionary_models import ConfigDeleteRequest, ConfigUpsertRequest, FieldEditRequest, MutationResponse

logger = logging.getLogger(__name__)

UPDATE_FIELD_PATH = "/api/update-field"
UPDATE_CONFIG_PATH = "/api/update-emr"
DELETE_CONFIG_PATH = "/api/delete-emr"


class PersistenceCollaborator(Protocol):
    def update_field(self, request: FieldEditRequest) -> MutationResponse: ...

    def update_config(self, request: ConfigUpsertRequest) -> MutationResponse: ...

    def delete_config(self, request: ConfigDeleteRequest) -> MutationResponse: ...


def image_data_uri(content: bytes, mime_type: str = "image/png") -> str:
    """Embeds a screenshot in an edit request; the service replaces it with a stored path."""
    return f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"


class HttpPersistenceClient:
    """
    Talks to the persistence service over HTTP.

    Every call returns a MutationResponse. Transport failures and unreadable
    responses are reported as success=False rather than raised.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url
        self.client = httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> HttpPersistenceClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _post(self, path: str, payload: BaseModel) -> MutationResponse:
        try:
            response = self.client.post(path, json=payload.model_dump(exclude_none=True))
        except httpx.HTTPError as e:
            logger.error(f"Request to {path} failed: {e}")
            return MutationResponse(success=False, message=f"Request failed: {e}")

        # Error statuses still carry a {success, message} body.
        try:
            result = MutationResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Unreadable response from {path} (HTTP {response.status_code}): {e}")
            return MutationResponse(success=False, message=f"Unexpected response (HTTP {response.status_code})")

        if not result.success:
            logger.warning(f"{path} rejected the request (HTTP {response.status_code}): {result.message}")
        return result

    def update_field(self, request: FieldEditRequest) -> MutationResponse:
        return self._post(UPDATE_FIELD_PATH, request)

    def update_config(self, request: ConfigUpsertRequest) -> MutationResponse:
        return self._post(UPDATE_CONFIG_PATH, request)

    def delete_config(self, request: ConfigDeleteRequest) -> MutationResponse:
        return self._post(DELETE_CONFIG_PATH, request)
