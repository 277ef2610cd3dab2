"""
Builds the service graph (store, remote client, orchestrator, ...) from settings.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from teachease.core.config import Settings, settings as default_settings
from teachease.core.database import create_engine, create_session_factory, init_db
from teachease.integrations.cloud import DocumentStore, FirestoreRestDocumentStore, InMemoryDocumentStore
from teachease.services.auth import AuthProvider, FirebaseAuthProvider, StaticAuthProvider
from teachease.services.persistence import KeyValueBackend, SQLAlchemyKeyValueBackend
from teachease.services.records_service import ClassRecordService
from teachease.services.session_service import SessionService
from teachease.services.storage_service import StorageService
from teachease.services.sync.orchestrator import SyncOrchestrator
from teachease.services.sync.remote_client import RemoteSyncClient
from teachease.tasks.sync_tasks import AutoSyncTask

logger = logging.getLogger(__name__)


@dataclass
class Services:
    storage: StorageService
    remote: RemoteSyncClient
    orchestrator: SyncOrchestrator
    records: ClassRecordService
    auth: AuthProvider
    document_store: DocumentStore
    auto_sync: AutoSyncTask
    session: Optional[SessionService] = None
    engine: Optional[AsyncEngine] = None

    async def close(self):
        await self.auto_sync.stop()
        await self.document_store.close()
        if self.engine is not None:
            await self.engine.dispose()


def assemble_services(
    backend: KeyValueBackend,
    document_store: DocumentStore,
    auth: AuthProvider,
    config: Settings = default_settings
) -> Services:
    """Wire services around already-constructed backends."""
    storage = StorageService(backend)
    remote = RemoteSyncClient(document_store, auth, root_collection=config.REMOTE_ROOT_COLLECTION)
    orchestrator = SyncOrchestrator(storage, remote)
    session = None
    if isinstance(auth, FirebaseAuthProvider):
        session = SessionService(auth, remote, orchestrator, storage)

    return Services(
        storage=storage,
        remote=remote,
        orchestrator=orchestrator,
        records=ClassRecordService(storage),
        auth=auth,
        document_store=document_store,
        auto_sync=AutoSyncTask(orchestrator, interval_seconds=config.AUTO_SYNC_INTERVAL_SECONDS),
        session=session
    )


async def build_services(config: Settings = default_settings) -> Services:
    """Create the database tables and the full service graph from configuration."""
    engine = create_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO)
    await init_db(engine)
    backend = SQLAlchemyKeyValueBackend(create_session_factory(engine))

    if config.REMOTE_BACKEND == "firestore":
        auth = FirebaseAuthProvider(
            api_key=config.FIREBASE_API_KEY,
            base_url=config.IDENTITY_TOOLKIT_URL,
            token_url=config.SECURE_TOKEN_URL
        )
        document_store = FirestoreRestDocumentStore(
            project_id=config.FIREBASE_PROJECT_ID,
            base_url=config.FIRESTORE_BASE_URL,
            api_key=config.FIREBASE_API_KEY or None,
            token_provider=auth.get_id_token,
            page_size=config.FIRESTORE_PAGE_SIZE
        )
    else:
        auth = StaticAuthProvider(config.DEFAULT_PRINCIPAL_ID)
        document_store = InMemoryDocumentStore()

    logger.info(f"Services built with {config.REMOTE_BACKEND} remote backend")
    services = assemble_services(backend, document_store, auth, config)
    services.engine = engine
    return services
