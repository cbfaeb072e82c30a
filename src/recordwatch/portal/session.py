from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta

import httpx

from recordwatch.core import metrics
from recordwatch.portal.errors import AuthenticationError, PortalTransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://portal.biotechware.com"
LOGIN_PATH = "/login_handler"
LOGIN_PARAMS = {"__logins": "0", "came_from": "/"}
SESSION_TTL = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PortalSession:
    """Own the portal credentials, the cookie-carrying client and the login timestamp.

    The portal tracks the authenticated session through cookies set by the login
    form, so every request must go through the shared client. Fetchers borrow it
    with ``authenticated()``; a login waits until no borrowed block is in flight
    and new borrowers wait until the login is done, so the session cookie never
    changes under a running fan-out.
    """

    def __init__(
        self,
        username: str,
        password: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._username = username
        self._password = password
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._clock = clock
        self._last_login_at: datetime | None = None
        self._state = asyncio.Condition()
        self._logging_in = False
        self._active_blocks = 0

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def last_login_at(self) -> datetime | None:
        return self._last_login_at

    @property
    def active_blocks(self) -> int:
        return self._active_blocks

    def is_authenticated(self) -> bool:
        if self._last_login_at is None:
            return False
        return self._clock() - self._last_login_at <= SESSION_TTL

    async def ensure_authenticated(self) -> None:
        async with self.authenticated():
            pass

    @asynccontextmanager
    async def authenticated(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the client with a fresh login, holding off re-logins until exit."""
        async with self._state:
            while True:
                await self._state.wait_for(lambda: not self._logging_in)
                if self.is_authenticated():
                    break
                await self._login_exclusive()
            self._active_blocks += 1
        try:
            yield self._client
        finally:
            async with self._state:
                self._active_blocks -= 1
                self._state.notify_all()

    async def login(self) -> None:
        async with self._state:
            await self._state.wait_for(lambda: not self._logging_in)
            await self._login_exclusive()

    async def _login_exclusive(self) -> None:
        # caller holds self._state
        self._logging_in = True
        try:
            if self._active_blocks:
                logger.debug("Waiting for %s in-flight blocks before login", self._active_blocks)
            await self._state.wait_for(lambda: self._active_blocks == 0)
            await self._submit_login()
        finally:
            self._logging_in = False
            self._state.notify_all()

    async def _submit_login(self) -> None:
        url = f"{self._base_url}{LOGIN_PATH}"
        form = {"login": self._username, "password": self._password}
        try:
            response = await self._client.post(url, params=LOGIN_PARAMS, data=form)
        except httpx.HTTPError as exc:
            raise PortalTransportError(f"portal login request failed: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            logger.warning("Portal login rejected with status %s", response.status_code)
            raise AuthenticationError(
                f"login failed with status {response.status_code}",
                status_code=response.status_code,
            )

        self._last_login_at = self._clock()
        metrics.increment("portal.login")
        logger.info("Logged in to portal %s", self._base_url)

    async def close(self) -> None:
        await self._client.aclose()


__all__ = ["PortalSession", "SESSION_TTL"]
