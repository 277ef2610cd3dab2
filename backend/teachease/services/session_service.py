"""
Sign-up, sign-in and sign-out flows.

Signing in makes sure the principal's profile document exists and hydrates
the local store from the cloud. Neither step blocks the sign-in when the
network is down; the data arrives on the next pull.
"""

import logging

from teachease.services.auth import FirebaseAuthProvider, AuthSession
from teachease.services.storage_service import StorageService
from teachease.services.sync.orchestrator import SyncOrchestrator
from teachease.services.sync.remote_client import RemoteSyncClient

logger = logging.getLogger(__name__)


class SessionService:

    def __init__(
        self,
        auth: FirebaseAuthProvider,
        remote: RemoteSyncClient,
        orchestrator: SyncOrchestrator,
        storage: StorageService
    ):
        self.auth = auth
        self.remote = remote
        self.orchestrator = orchestrator
        self.storage = storage

    async def sign_up(self, email: str, password: str, name: str) -> AuthSession:
        session = await self.auth.sign_up(email, password, display_name=name)
        await self.remote.ensure_profile(email=email, name=name)
        await self._hydrate()
        return session

    async def sign_in(self, email: str, password: str) -> AuthSession:
        session = await self.auth.sign_in(email, password)
        try:
            await self.remote.ensure_profile(email=session.email, name=session.display_name)
        except Exception as e:
            logger.error(f"Ensure teacher profile error: {e}")
        await self._hydrate()
        return session

    async def sign_out(self, clear_local: bool = True):
        self.auth.sign_out()
        if clear_local:
            await self.storage.clear_all()

    async def _hydrate(self):
        try:
            await self.orchestrator.fetch_all()
        except Exception as e:
            logger.error(f"Initial fetch error: {e}")
