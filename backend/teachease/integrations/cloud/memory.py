"""
In-process document store, used for offline development and tests.
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

from .base import DocumentStore

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Keeps documents in a dict keyed by full path.

    Deleting a document leaves documents of its subcollections untouched, as
    the hosted store does.
    """

    def __init__(self):
        self.documents: Dict[str, Dict[str, Any]] = {}

    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        data = self.documents.get(path.strip("/"))
        return copy.deepcopy(data) if data is not None else None

    async def set_document(self, path: str, data: Dict[str, Any]) -> None:
        self.documents[path.strip("/")] = copy.deepcopy(data)

    async def delete_document(self, path: str) -> None:
        self.documents.pop(path.strip("/"), None)

    async def list_documents(self, collection_path: str) -> List[Tuple[str, Dict[str, Any]]]:
        prefix = collection_path.strip("/") + "/"
        results = []
        for path, data in self.documents.items():
            if not path.startswith(prefix):
                continue
            doc_id = path[len(prefix):]
            if "/" in doc_id:
                continue
            results.append((doc_id, copy.deepcopy(data)))
        return results
