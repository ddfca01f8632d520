"""Clients for the hosted catalog service.

``CatalogClient`` is the interface the stores depend on. ``RestCatalogClient``
speaks to a PostgREST-style HTTP API with aiohttp. Transport failures and
error responses become ``CatalogError``; nothing is retried here.
"""
import abc
import asyncio
import json
import logging
from typing import Any, Dict, List, Mapping, Optional

import aiohttp

from .config import Config
from .errors import CatalogError

logger = logging.getLogger(__name__)

SOURCES_TABLE = "sources"
DOCUMENT_SOURCES_TABLE = "notebook_sources"
HIGHLIGHTS_TABLE = "highlights"
DOCUMENTS_TABLE = "notebooks"


class CatalogClient(abc.ABC):
    """Async operations the engine needs from the catalog service."""

    @abc.abstractmethod
    async def fetch_document_sources(self, document_id: str) -> List[Dict[str, Any]]:
        """Association rows for a document, each carrying its source under ``source``."""

    @abc.abstractmethod
    async def create_source(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        ...

    @abc.abstractmethod
    async def update_source(self, source_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        ...

    @abc.abstractmethod
    async def delete_source(self, source_id: str) -> None:
        ...

    @abc.abstractmethod
    async def add_source_to_document(self, document_id: str, source_id: str) -> Dict[str, Any]:
        ...

    @abc.abstractmethod
    async def remove_source_from_document(self, document_id: str, source_id: str) -> None:
        ...

    @abc.abstractmethod
    async def fetch_highlights(self, paper_id: str) -> List[Dict[str, Any]]:
        ...

    @abc.abstractmethod
    async def create_highlight(self, paper_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        ...

    @abc.abstractmethod
    async def update_highlight(self, highlight_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        ...

    @abc.abstractmethod
    async def delete_highlight(self, highlight_id: str) -> None:
        ...

    @abc.abstractmethod
    async def fetch_document(self, document_id: str) -> Dict[str, Any]:
        ...

    @abc.abstractmethod
    async def update_document_content(self, document_id: str, content: Any) -> Dict[str, Any]:
        ...

    async def close(self) -> None:
        """Release transport resources."""


class RestCatalogClient(CatalogClient):
    """PostgREST catalog client."""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 access_token: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.base_url = (base_url or Config.CATALOG_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else Config.CATALOG_API_KEY
        self.access_token = access_token
        self.timeout = aiohttp.ClientTimeout(total=timeout or Config.CATALOG_TIMEOUT)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "RestCatalogClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        if self.api_key:
            headers["apikey"] = self.api_key
        token = self.access_token or self.api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(self, method: str, table: str, operation: str,
                       params: Optional[Dict[str, str]] = None,
                       payload: Any = None, entity_id: Optional[str] = None) -> Any:
        """Make an HTTP request, mapping every failure to CatalogError."""
        url = f"{self.base_url}/rest/v1/{table}"
        logger.debug(f"Catalog call - {method} {table} {params or {}}")
        try:
            async with self._get_session().request(
                method, url, params=params, json=payload, headers=self._headers()
            ) as response:
                body = await response.text()
                if response.status >= 400:
                    raise CatalogError(operation, body or str(response.reason), entity_id, response.status)
        except aiohttp.ClientError as e:
            raise CatalogError(operation, str(e), entity_id) from e
        except asyncio.TimeoutError as e:
            raise CatalogError(operation, "request timed out", entity_id) from e

        if not body:
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            raise CatalogError(operation, f"invalid JSON response: {e}", entity_id) from e

    @staticmethod
    def _rows(result: Any) -> List[Dict[str, Any]]:
        if isinstance(result, list):
            return result
        if isinstance(result, dict):
            return [result]
        return []

    def _single(self, result: Any, operation: str, entity_id: Optional[str] = None) -> Dict[str, Any]:
        rows = self._rows(result)
        if not rows:
            raise CatalogError(operation, "no row returned", entity_id)
        return rows[0]

    async def fetch_document_sources(self, document_id: str) -> List[Dict[str, Any]]:
        result = await self._request(
            "GET", DOCUMENT_SOURCES_TABLE, "fetch sources",
            params={"select": "*,source:sources(*)", "notebook_id": f"eq.{document_id}"},
            entity_id=document_id,
        )
        return self._rows(result)

    async def create_source(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        result = await self._request("POST", SOURCES_TABLE, "create source", payload=dict(data))
        return self._single(result, "create source")

    async def update_source(self, source_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        result = await self._request(
            "PATCH", SOURCES_TABLE, "update source",
            params={"id": f"eq.{source_id}"}, payload=dict(data), entity_id=source_id,
        )
        return self._single(result, "update source", source_id)

    async def delete_source(self, source_id: str) -> None:
        await self._request(
            "DELETE", SOURCES_TABLE, "delete source",
            params={"id": f"eq.{source_id}"}, entity_id=source_id,
        )

    async def add_source_to_document(self, document_id: str, source_id: str) -> Dict[str, Any]:
        result = await self._request(
            "POST", DOCUMENT_SOURCES_TABLE, "add source to document",
            payload={"notebook_id": document_id, "source_id": source_id}, entity_id=source_id,
        )
        return self._single(result, "add source to document", source_id)

    async def remove_source_from_document(self, document_id: str, source_id: str) -> None:
        await self._request(
            "DELETE", DOCUMENT_SOURCES_TABLE, "remove source from document",
            params={"notebook_id": f"eq.{document_id}", "source_id": f"eq.{source_id}"},
            entity_id=source_id,
        )

    async def fetch_highlights(self, paper_id: str) -> List[Dict[str, Any]]:
        result = await self._request(
            "GET", HIGHLIGHTS_TABLE, "fetch highlights",
            params={"select": "*", "paper_id": f"eq.{paper_id}"}, entity_id=paper_id,
        )
        return self._rows(result)

    async def create_highlight(self, paper_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        payload = dict(data)
        payload["paper_id"] = paper_id
        result = await self._request("POST", HIGHLIGHTS_TABLE, "create highlight", payload=payload)
        return self._single(result, "create highlight")

    async def update_highlight(self, highlight_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        result = await self._request(
            "PATCH", HIGHLIGHTS_TABLE, "update highlight",
            params={"id": f"eq.{highlight_id}"}, payload=dict(data), entity_id=highlight_id,
        )
        return self._single(result, "update highlight", highlight_id)

    async def delete_highlight(self, highlight_id: str) -> None:
        await self._request(
            "DELETE", HIGHLIGHTS_TABLE, "delete highlight",
            params={"id": f"eq.{highlight_id}"}, entity_id=highlight_id,
        )

    async def fetch_document(self, document_id: str) -> Dict[str, Any]:
        result = await self._request(
            "GET", DOCUMENTS_TABLE, "fetch document",
            params={"select": "*", "id": f"eq.{document_id}"}, entity_id=document_id,
        )
        return self._single(result, "fetch document", document_id)

    async def update_document_content(self, document_id: str, content: Any) -> Dict[str, Any]:
        result = await self._request(
            "PATCH", DOCUMENTS_TABLE, "save document",
            params={"id": f"eq.{document_id}"}, payload={"content": content}, entity_id=document_id,
        )
        return self._single(result, "save document", document_id)
