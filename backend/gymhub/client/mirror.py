from __future__ import annotations

import asyncio
import enum
import time
from typing import Awaitable, Callable, List, Optional

import httpx
import structlog

from gymhub.auth.permissions import Permission
from gymhub.client.membership import PermissionArg, RoleArg, fetch_membership, has_permission, has_role
from gymhub.core.config import settings
from gymhub.core.errors import TransportFailure
from gymhub.core.roles import Role
from gymhub.schemas.membership import MembershipSummary

log = structlog.get_logger()

Fetcher = Callable[[], Awaitable[MembershipSummary]]
Listener = Callable[["MembershipMirror"], None]


class MirrorStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class MembershipMirror:
    """
    Shared, always-current cache of the caller's MembershipSummary.

    Many readers (guards) share one instance. Concurrent ``load()`` calls join
    one in-flight fetch, and a settled value is reused for ``dedupe_interval``
    seconds unless the caller forces revalidation. A reader that stops
    waiting does not cancel the shared fetch; it still lands in the cache.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        dedupe_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self._dedupe_interval = settings.MEMBERSHIP_DEDUPE_SECONDS if dedupe_interval is None else dedupe_interval
        self._clock = clock

        self._data: Optional[MembershipSummary] = None
        self._error: Optional[TransportFailure] = None
        self._task: Optional[asyncio.Task] = None
        self._settled_at: Optional[float] = None
        self._listeners: List[Listener] = []

    @classmethod
    def for_client(cls, http: httpx.AsyncClient, **kwargs) -> "MembershipMirror":
        async def _fetch() -> MembershipSummary:
            return await fetch_membership(http)

        return cls(_fetch, **kwargs)

    # -----------------------------
    # State
    # -----------------------------
    @property
    def status(self) -> MirrorStatus:
        # data and error never coexist; a fetch in flight without data reads as loading
        if self._data is not None:
            return MirrorStatus.READY
        if self.is_validating:
            return MirrorStatus.LOADING
        if self._error is not None:
            return MirrorStatus.ERROR
        return MirrorStatus.IDLE

    @property
    def is_loading(self) -> bool:
        return self.status in {MirrorStatus.IDLE, MirrorStatus.LOADING}

    @property
    def is_validating(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def data(self) -> Optional[MembershipSummary]:
        return self._data

    @property
    def error(self) -> Optional[TransportFailure]:
        return self._error

    @property
    def role(self) -> Optional[Role]:
        return self._data.role if self._data is not None else None

    @property
    def permissions(self) -> List[Permission]:
        return list(self._data.permissions) if self._data is not None else []

    def can(self, permissions: PermissionArg, *, require_all: bool = False) -> bool:
        return has_permission(permissions, self._data, require_all=require_all)

    def has_role(self, roles: RoleArg) -> bool:
        return has_role(roles, self._data)

    # -----------------------------
    # Fetching
    # -----------------------------
    async def load(self) -> Optional[MembershipSummary]:
        return await self.revalidate(force=False)

    async def revalidate(self, force: bool = False) -> Optional[MembershipSummary]:
        """
        Returns the cached summary after (re)validation; None if the fetch
        failed, in which case ``error`` holds the TransportFailure.
        """
        task = self._task
        if task is None or task.done():
            if not force and self._is_fresh():
                return self._data
            task = asyncio.get_running_loop().create_task(self._run())
            self._task = task
            self._notify()

        # shield: a cancelled waiter must not cancel the fetch other readers share
        await asyncio.shield(task)
        return self._data

    def _is_fresh(self) -> bool:
        if self._settled_at is None:
            return False
        return (self._clock() - self._settled_at) < self._dedupe_interval

    async def _run(self) -> None:
        try:
            data = await self._fetcher()
        except Exception as exc:
            # anything the fetcher raises settles as ERROR
            failure = exc if isinstance(exc, TransportFailure) else TransportFailure(str(exc) or type(exc).__name__)
            log.warning("membership.fetch_failed", message=failure.message, status_code=failure.status_code)
            self._error = failure
            self._data = None
        else:
            self._data = data
            self._error = None
        finally:
            self._settled_at = self._clock()
        self._notify()

    # -----------------------------
    # Subscriptions
    # -----------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
