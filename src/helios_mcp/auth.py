"""Authentication gate for tool calls.

The gate resolves one caller identity per server process from the configured
API key and hands out the scope (user and tenant) that every backend request
is filtered by. First-time resolution is single-flight: concurrent callers
share one in-flight validation and all see the same result or error.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .api_client import ApiSession
from .config import Settings
from .errors import UnauthorizedError
from .models import Profile

logger = logging.getLogger("helios-mcp.auth")

SERVICE_RATE_LIMIT = 1000
DEFAULT_RATE_LIMIT = 100
RATE_LIMIT_WINDOW_SECONDS = 3600


@dataclass(frozen=True)
class AuthContext:
    """Resolved caller identity. Replaced as a whole, never mutated.

    ``provisional`` contexts come from service keys accepted without a network
    call; their ``subject_id`` is unknown until the first scoped data call
    verifies the key.
    """

    subject_id: Optional[str]
    tenant_id: Optional[str] = None
    display_profile: Optional[Profile] = None
    authenticated: bool = True
    provisional: bool = False
    service_account: bool = False


class AuthGate:
    """Holds the caller's AuthContext and guards access to it."""

    def __init__(self, session: ApiSession, settings: Settings, credential: Optional[str] = None):
        self._session = session
        self._settings = settings
        self._credential = credential if credential is not None else settings.api_key
        self._context: Optional[AuthContext] = None
        self._pending: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def context(self) -> Optional[AuthContext]:
        return self._context

    @property
    def has_credential(self) -> bool:
        return bool(self._credential)

    def is_authenticated(self) -> bool:
        return self._context is not None and self._context.authenticated

    async def authenticate(self, credential: Optional[str] = None) -> AuthContext:
        """Resolve identity for ``credential`` (or the configured one).

        Passing a different credential discards the current context first.
        """
        if credential is not None and credential != self._credential:
            self.clear_auth(credential)
        if not self._credential:
            raise UnauthorizedError("No API key configured. Set HELIOS_API_KEY or pass --api-key.")
        return await self._single_flight(self._resolve)

    async def ensure_authenticated(self) -> AuthContext:
        """Return the current context, authenticating on first use.

        Raises:
            UnauthorizedError: No credential is configured or it was rejected
            RemoteFailure: The backend could not be reached to check the key
        """
        if self._context is not None:
            return self._context
        return await self.authenticate()

    async def current_scope(self) -> dict:
        """Scope values to attach to a backend request.

        A provisional context is verified here, so the first scoped call made
        with a lazily accepted service key is the one that checks it.
        """
        context = await self.ensure_authenticated()
        while context.provisional:
            context = await self._single_flight(self._verify)
        scope = {"user_id": context.subject_id, "tenant_id": context.tenant_id}
        return {key: value for key, value in scope.items() if value is not None}

    def clear_auth(self, credential: Optional[str] = None) -> None:
        """Forget the current identity, optionally switching credentials."""
        self._generation += 1
        self._context = None
        self._pending = None
        if credential is not None:
            self._credential = credential
        self._session.set_credential(None)
        logger.info("Authentication cleared")

    def get_rate_limit_info(self) -> dict:
        """Informational limits for the current caller. Not enforced here."""
        if self._context is None:
            raise UnauthorizedError("No authenticated session")
        limit = SERVICE_RATE_LIMIT if self._context.service_account else DEFAULT_RATE_LIMIT
        return {"limit": limit, "window_seconds": RATE_LIMIT_WINDOW_SECONDS, "current": 0}

    async def _single_flight(self, factory: Callable[[], Awaitable[AuthContext]]) -> AuthContext:
        if self._pending is None:
            task = asyncio.create_task(factory())
            task.add_done_callback(self._release)
            self._pending = task
        return await asyncio.shield(self._pending)

    def _release(self, task: asyncio.Task) -> None:
        if self._pending is task:
            self._pending = None

    async def _resolve(self) -> AuthContext:
        if self._context is not None:
            return self._context

        generation = self._generation
        credential = self._credential
        self._session.set_credential(credential)
        service_account = self._settings.is_service_key(credential)

        if service_account and self._settings.lazy_service_keys:
            context = AuthContext(subject_id=None, provisional=True, service_account=True)
            logger.info("Service key accepted, identity will be verified on first data call")
        else:
            context = await self._fetch_identity(service_account)

        if generation == self._generation:
            self._context = context
        return context

    async def _verify(self) -> AuthContext:
        if self._context is not None and not self._context.provisional:
            return self._context

        generation = self._generation
        try:
            context = await self._fetch_identity(service_account=True)
        except UnauthorizedError:
            if generation == self._generation:
                self._context = None
            raise

        if generation == self._generation:
            self._context = context
        return context

    async def _fetch_identity(self, service_account: bool) -> AuthContext:
        profile = await self._session.validate_credential()
        logger.info(f"Authenticated as {profile.email or profile.id} (tenant: {profile.tenant_id or 'none'})")
        return AuthContext(
            subject_id=profile.id,
            tenant_id=profile.tenant_id,
            display_profile=profile,
            authenticated=True,
            service_account=service_account,
        )
