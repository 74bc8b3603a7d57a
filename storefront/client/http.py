"""
HTTP client for the storefront API with automatic access-token refresh.

A request that comes back 401 triggers one refresh through
``RefreshCoordinator`` and is then replayed once. Every request that fails
while a refresh is outstanding waits on that same refresh instead of starting
its own, so a burst of N expired requests costs exactly one
``POST /auth/refresh-token``.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

import httpx

logger = logging.getLogger(__name__)

REFRESH_PATH = "/auth/refresh-token"
# 401 from these means bad credentials, not an expired session
NO_REFRESH_PATHS = (REFRESH_PATH, "/auth/login", "/auth/signup", "/auth/logout")


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, response: Optional[httpx.Response] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.response = response

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        message = response.reason_phrase or "Request failed"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("detail") is not None:
                message = str(error["detail"])
            elif body.get("message"):
                message = str(body["message"])
        return cls(response.status_code, message, response)


def raise_for_api_error(response: httpx.Response) -> None:
    if response.is_error:
        raise ApiError.from_response(response)


class RefreshCoordinator:
    """Single-slot cache of the in-flight refresh.

    The slot holds one task at a time. Callers arriving while it is set share
    it; ``waiters`` counts how many are currently awaiting. The slot is cleared
    by the task's own done-callback, which runs before any waiter resumes, so
    the next failure after completion (success or error) starts a fresh refresh.
    """

    def __init__(self, refresh: Callable[[], Awaitable[None]]):
        self._refresh = refresh
        self._inflight: Optional[asyncio.Task] = None
        self.waiters = 0

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None

    def _clear(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            # mark the exception retrieved; waiters re-raise it themselves
            task.exception()

    async def refresh(self) -> None:
        if self._inflight is None:
            task = asyncio.ensure_future(self._refresh())
            task.add_done_callback(self._clear)
            self._inflight = task
        task = self._inflight
        self.waiters += 1
        try:
            # shield so one cancelled waiter does not cancel the shared refresh
            await asyncio.shield(task)
        finally:
            self.waiters -= 1


class StorefrontClient:
    def __init__(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None, **kwargs: Any):
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, **kwargs)
        self._refresher = RefreshCoordinator(self._refresh_session)
        self._session_expired_hooks: List[Callable[[], None]] = []

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def cookies(self) -> httpx.Cookies:
        return self._http.cookies

    def on_session_expired(self, hook: Callable[[], None]) -> None:
        self._session_expired_hooks.append(hook)

    async def _refresh_session(self) -> None:
        logger.info("Access token rejected, refreshing session")
        response = await self._http.post(REFRESH_PATH)
        raise_for_api_error(response)

    def _expire_session(self) -> None:
        self._http.cookies.clear()
        for hook in self._session_expired_hooks:
            hook()

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        response = await self._http.request(method, url, **kwargs)

        if response.status_code == 401 and not url.startswith(NO_REFRESH_PATHS):
            try:
                await self._refresher.refresh()
            except (ApiError, httpx.HTTPError) as refresh_error:
                logger.info(f"Session refresh failed: {refresh_error}")
                self._expire_session()
                raise ApiError.from_response(response) from refresh_error
            # replayed exactly once; a second 401 is returned as-is
            response = await self._http.request(method, url, **kwargs)

        raise_for_api_error(response)
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)
