"""
Firestore REST API document store.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import aiohttp

from .base import DocumentStore, DocumentStoreError
from .value_codec import decode_fields, encode_fields

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[Optional[str]]]


class FirestoreRestDocumentStore(DocumentStore):
    """Talks to ``{base_url}/projects/{project}/databases/(default)/documents``.

    Requests carry the signed-in principal's ID token when a token provider is
    given. No request timeout is set here; callers retry on their own schedule.
    """

    def __init__(
        self,
        project_id: str,
        base_url: str = "https://firestore.googleapis.com/v1",
        api_key: Optional[str] = None,
        token_provider: Optional[TokenProvider] = None,
        page_size: int = 300,
        session: Optional[aiohttp.ClientSession] = None
    ):
        if not project_id:
            raise ValueError("project_id is required for the Firestore document store")
        self.project_id = project_id
        self.documents_url = f"{base_url.rstrip('/')}/projects/{project_id}/databases/(default)/documents"
        self.api_key = api_key
        self.token_provider = token_provider
        self.page_size = page_size
        self._http_session = session
        self._owns_session = session is None

    async def __aenter__(self):
        await self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession(
                headers={
                    'User-Agent': 'TeachEase-Sync/1.0',
                    'Accept': 'application/json',
                    'Content-Type': 'application/json'
                }
            )
            self._owns_session = True
        return self._http_session

    async def close(self) -> None:
        if self._http_session and self._owns_session and not self._http_session.closed:
            await self._http_session.close()
        self._http_session = None

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """Send one request; returns the decoded JSON body, or None on 404."""
        session = await self._get_session()
        url = f"{self.documents_url}/{path.strip('/')}"

        params = dict(params or {})
        if self.api_key:
            params['key'] = self.api_key

        headers = {}
        if self.token_provider:
            token = await self.token_provider()
            if token:
                headers['Authorization'] = f"Bearer {token}"

        try:
            async with session.request(method, url, params=params, json=json, headers=headers) as response:
                if response.status == 404:
                    return None
                if response.status >= 400:
                    body = await response.text()
                    raise DocumentStoreError(
                        f"Firestore {method} {path} failed with {response.status}: {body[:200]}",
                        status=response.status
                    )
                data = await response.json(content_type=None)
                return data or {}
        except aiohttp.ClientError as e:
            logger.error(f"Firestore request {method} {path} failed: {e}")
            raise DocumentStoreError(f"Firestore request failed: {e}") from e

    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        data = await self._request('GET', path)
        if data is None:
            return None
        return decode_fields(data.get('fields', {}))

    async def set_document(self, path: str, data: Dict[str, Any]) -> None:
        # PATCH without an update mask replaces the whole document
        await self._request('PATCH', path, json={'fields': encode_fields(data)})

    async def delete_document(self, path: str) -> None:
        await self._request('DELETE', path)

    async def list_documents(self, collection_path: str) -> List[Tuple[str, Dict[str, Any]]]:
        results: List[Tuple[str, Dict[str, Any]]] = []
        page_token = None

        while True:
            params = {'pageSize': self.page_size}
            if page_token:
                params['pageToken'] = page_token

            data = await self._request('GET', collection_path, params=params)
            if not data:
                break

            for document in data.get('documents', []):
                doc_id = document['name'].rsplit('/', 1)[-1]
                results.append((doc_id, decode_fields(document.get('fields', {}))))

            page_token = data.get('nextPageToken')
            if not page_token:
                break

        logger.debug(f"Listed {len(results)} documents under {collection_path}")
        return results
