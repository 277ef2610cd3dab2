from .base import DocumentStore, DocumentStoreError, RemoteTimestamp, join_path
from .memory import InMemoryDocumentStore
from .firestore_rest import FirestoreRestDocumentStore

__all__ = [
    "DocumentStore",
    "DocumentStoreError",
    "RemoteTimestamp",
    "join_path",
    "InMemoryDocumentStore",
    "FirestoreRestDocumentStore",
]
