"""
Authentication providers.

The sync layer only needs to know who the current principal is (and, for the
hosted store, a bearer token). Interactive sign-in goes through the Identity
Toolkit REST API.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)


class NotAuthenticatedError(Exception):
    """Raised when a remote operation runs without a signed-in principal."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class AuthenticationFailedError(Exception):
    """Sign-in or sign-up was rejected by the identity service."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


AUTH_ERROR_MESSAGES = {
    'CONFIGURATION_NOT_FOUND': 'Authentication is not fully configured. Enable Email/Password sign-in for the project.',
    'INVALID_EMAIL': 'Invalid email address.',
    'EMAIL_EXISTS': 'This email is already in use.',
    'OPERATION_NOT_ALLOWED': 'Email/Password sign-in is disabled.',
    'WEAK_PASSWORD': 'Password should be at least 6 characters.',
    'EMAIL_NOT_FOUND': 'No account found with this email.',
    'INVALID_PASSWORD': 'Wrong password.',
    'INVALID_LOGIN_CREDENTIALS': 'Wrong password.',
    'TOO_MANY_ATTEMPTS_TRY_LATER': 'Too many attempts. Please try again later.',
    'NETWORK_REQUEST_FAILED': 'Network error. Please check your internet connection.',
}


def auth_error_message(code: str) -> str:
    # Identity Toolkit appends detail after the code, e.g. "WEAK_PASSWORD : ..."
    key = code.split(':', 1)[0].strip()
    return AUTH_ERROR_MESSAGES.get(key, f"Authentication error: {key}")


class AuthProvider(ABC):
    """Source of the authenticated principal."""

    @abstractmethod
    def current_principal_id(self) -> Optional[str]:
        """Return the signed-in principal's ID, or None."""

    async def get_id_token(self) -> Optional[str]:
        return None

    def require_principal(self) -> str:
        principal_id = self.current_principal_id()
        if not principal_id:
            raise NotAuthenticatedError()
        return principal_id


class StaticAuthProvider(AuthProvider):
    """Principal set directly by the host application."""

    def __init__(self, principal_id: Optional[str] = None, id_token: Optional[str] = None):
        self.principal_id = principal_id
        self.id_token = id_token

    def current_principal_id(self) -> Optional[str]:
        return self.principal_id

    async def get_id_token(self) -> Optional[str]:
        return self.id_token

    def sign_in_as(self, principal_id: str, id_token: Optional[str] = None):
        self.principal_id = principal_id
        self.id_token = id_token

    def sign_out(self):
        self.principal_id = None
        self.id_token = None


@dataclass
class AuthSession:
    uid: str
    email: str
    id_token: str
    refresh_token: str
    expires_at: datetime
    display_name: str = ""

    @property
    def is_expired(self) -> bool:
        # Refresh a minute early so a token never expires mid-request
        return datetime.now(timezone.utc) >= self.expires_at - timedelta(seconds=60)


class FirebaseAuthProvider(AuthProvider):
    """Email/password accounts backed by the Identity Toolkit REST API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://identitytoolkit.googleapis.com/v1",
        token_url: str = "https://securetoken.googleapis.com/v1/token",
        session: Optional[aiohttp.ClientSession] = None
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.token_url = token_url
        self._http_session = session
        self.session: Optional[AuthSession] = None

    def current_principal_id(self) -> Optional[str]:
        return self.session.uid if self.session else None

    async def get_id_token(self) -> Optional[str]:
        if not self.session:
            return None
        if self.session.is_expired:
            await self.refresh()
        return self.session.id_token

    async def sign_up(self, email: str, password: str, display_name: str = "") -> AuthSession:
        data = await self._post(
            f"{self.base_url}/accounts:signUp",
            {'email': email, 'password': password, 'displayName': display_name, 'returnSecureToken': True}
        )
        self.session = self._session_from(data, display_name=display_name)
        logger.info(f"Registered account {self.session.uid}")
        return self.session

    async def sign_in(self, email: str, password: str) -> AuthSession:
        data = await self._post(
            f"{self.base_url}/accounts:signInWithPassword",
            {'email': email, 'password': password, 'returnSecureToken': True}
        )
        self.session = self._session_from(data)
        logger.info(f"Signed in as {self.session.uid}")
        return self.session

    async def refresh(self):
        if not self.session:
            raise NotAuthenticatedError()
        data = await self._post(
            self.token_url,
            {'grant_type': 'refresh_token', 'refresh_token': self.session.refresh_token}
        )
        self.session.id_token = data['id_token']
        self.session.refresh_token = data.get('refresh_token', self.session.refresh_token)
        self.session.expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(data.get('expires_in', 3600)))

    def sign_out(self):
        if self.session:
            logger.info(f"Signed out {self.session.uid}")
        self.session = None

    def _session_from(self, data: Dict[str, Any], display_name: str = "") -> AuthSession:
        return AuthSession(
            uid=data['localId'],
            email=data.get('email', ''),
            id_token=data['idToken'],
            refresh_token=data.get('refreshToken', ''),
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=int(data.get('expiresIn', 3600))),
            display_name=data.get('displayName') or display_name
        )

    async def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        session = self._http_session
        owns_session = session is None
        if owns_session:
            session = aiohttp.ClientSession()
        try:
            async with session.post(url, params={'key': self.api_key}, json=payload) as response:
                data = await response.json(content_type=None) or {}
                if response.status >= 400:
                    code = data.get('error', {}).get('message', 'UNKNOWN')
                    logger.error(f"Identity request failed with {response.status}: {code}")
                    raise AuthenticationFailedError(auth_error_message(code), code=code)
                return data
        except aiohttp.ClientError as e:
            logger.error(f"Identity request failed: {e}")
            raise AuthenticationFailedError(
                AUTH_ERROR_MESSAGES['NETWORK_REQUEST_FAILED'], code='NETWORK_REQUEST_FAILED'
            ) from e
        finally:
            if owns_session:
                await session.close()
