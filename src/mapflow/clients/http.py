# src/mapflow/clients/http.py
"""HTTP adapters for the schema-provider and persistence collaborators.

Only field names are fixed here; endpoints and payload shapes beyond them
belong to the service. Transport failures, non-2xx responses, and
unparseable payloads become SchemaFetchError or PersistenceError carrying
the service's own message. Nothing is retried.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Self

import httpx
import structlog
from pydantic import ValidationError

from mapflow.contracts.collaborators import CredentialProvider
from mapflow.contracts.errors import CollaboratorError, PersistenceError, SchemaFetchError
from mapflow.contracts.records import MappingRecord, SaveReceipt
from mapflow.contracts.schema import FieldInfo

logger = structlog.get_logger(__name__)


def _error_detail(response: httpx.Response) -> str:
    """Best human-readable message from an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if isinstance(body.get(key), str):
                return str(body[key])
    return response.text.strip() or response.reason_phrase


class _ServiceClient:
    """Shared httpx.Client plumbing for one service."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _send(
        self,
        method: str,
        path: str,
        *,
        token: str | None,
        error_type: type[CollaboratorError],
        json: Any = None,
    ) -> Any:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = self._client.request(method, path, headers=headers, json=json)
        except httpx.HTTPError as exc:
            logger.warning("service_request_failed", method=method, path=path, error=str(exc))
            raise error_type(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            detail = _error_detail(response)
            logger.warning("service_error_response", method=method, path=path, status_code=response.status_code)
            raise error_type(f"{method} {path} returned HTTP {response.status_code}: {detail}")
        try:
            return response.json()
        except ValueError as exc:
            raise error_type(f"{method} {path} returned a non-JSON response") from exc


class HttpSchemaProvider(_ServiceClient):
    """Fetches record-store object fields from ``GET /objects/{name}/fields``.

    The response is either a list of fields or ``{"fields": [...]}``.

    Example:
        provider = HttpSchemaProvider("https://api.example.com", credentials=StaticCredentialProvider(token))
        editor = WorkflowEditor(schemas=provider)
    """

    def __init__(
        self,
        base_url: str,
        *,
        credentials: CredentialProvider | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, transport=transport)
        self._credentials = credentials

    def get_fields(self, object_name: str) -> list[FieldInfo]:
        token = self._credentials.bearer_token() if self._credentials is not None else None
        payload = self._send(
            "GET",
            f"/objects/{object_name}/fields",
            token=token,
            error_type=SchemaFetchError,
        )
        raw_fields = payload.get("fields") if isinstance(payload, dict) else payload
        if not isinstance(raw_fields, list):
            raise SchemaFetchError(f"Field list for {object_name} is missing from the response")
        try:
            fields = [FieldInfo.model_validate(item) for item in raw_fields]
        except ValidationError as exc:
            raise SchemaFetchError(f"Invalid field metadata for {object_name}: {exc.error_count()} error(s)") from exc
        logger.debug("schema_fetched", object_name=object_name, field_count=len(fields))
        return fields


class HttpPersistenceBackend(_ServiceClient):
    """Saves compiled records with ``POST /mappings``.

    Request body: ``{"form_version_id": ..., "records": [...]}``. The
    response may carry ``record_ids`` and ``message``.
    """

    def save(
        self,
        records: Sequence[MappingRecord],
        *,
        form_version_id: str,
        credential: str,
    ) -> SaveReceipt:
        payload = self._send(
            "POST",
            "/mappings",
            token=credential,
            error_type=PersistenceError,
            json={
                "form_version_id": form_version_id,
                "records": [record.to_dict() for record in records],
            },
        )
        if not isinstance(payload, dict):
            payload = {}
        record_ids = payload.get("record_ids") or ()
        logger.info("mappings_saved", form_version_id=form_version_id, record_count=len(records))
        return SaveReceipt(
            form_version_id=form_version_id,
            record_ids=tuple(str(record_id) for record_id in record_ids),
            message=str(payload.get("message", "")),
        )
