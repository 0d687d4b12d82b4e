"""
In-memory cache connector.

Entries carry their own ACL, metadata and optional expiry. A background task
started by ``start()`` sweeps expired entries periodically.
"""

from __future__ import annotations

import asyncio
import contextlib
import math
import time
from dataclasses import dataclass, field
from typing import Any

from ..access.acl import ACL, DEFAULT_HASH_ALGORITHM
from ..access.candidate import AccessCandidate
from ..access.request import AccessRequest
from ..accounts.provider import AccountProvider
from ..connectors.cache import CacheConnector
from ..connectors.secure import ACLValue

DEFAULT_SWEEP_INTERVAL = 60.0


@dataclass
class CacheEntry:
    """A cached value with its access control and expiry."""

    value: Any
    acl: ACL
    metadata: dict[str, Any] = field(default_factory=dict)
    expires_at: float | None = None  # time.monotonic() deadline

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (time.monotonic() if now is None else now)


def _deadline(ttl: float | None) -> float | None:
    return time.monotonic() + ttl if ttl else None


class RAMCache(CacheConnector):
    """Process-local cache with per-key ACLs and TTLs."""

    name = "RAMCache"

    def __init__(
        self,
        accounts: AccountProvider | None = None,
        strict_acl: bool = False,
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
    ):
        super().__init__(accounts=accounts, strict_acl=strict_acl, hash_algorithm=hash_algorithm)
        self.sweep_interval = sweep_interval
        self._entries: dict[str, CacheEntry] = {}
        self._sweeper: asyncio.Task[None] | None = None

    async def start(self) -> None:
        await super().start()
        if self.sweep_interval > 0 and self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        await super().stop()
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        self._entries.clear()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            removed = self.purge_expired()
            if removed:
                self.log.debug(f"Swept {removed} expired cache entries")

    def purge_expired(self) -> int:
        """Remove expired entries, returning how many were removed."""
        now = time.monotonic()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired():
            del self._entries[key]
            return None
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # ACL lookup
    # ------------------------------------------------------------------

    async def get_resource_acl(self, resource_id: str, candidate: AccessCandidate) -> ACL:
        entry = self._live_entry(resource_id)
        if entry is None:
            return self.with_owner(None, candidate)
        return entry.acl.copy()

    # ------------------------------------------------------------------
    # Backend operations
    # ------------------------------------------------------------------

    async def _get(self, request: AccessRequest, key: str) -> Any:
        entry = self._live_entry(key)
        return entry.value if entry else None

    async def _set(
        self,
        request: AccessRequest,
        key: str,
        data: Any,
        acl: ACLValue,
        metadata: dict[str, Any],
        ttl: float | None,
    ) -> bool:
        entry = self._live_entry(key)
        if entry is None:
            self._entries[key] = CacheEntry(
                value=data,
                acl=self.with_owner(acl, request.candidate),
                metadata=metadata,
                expires_at=_deadline(ttl),
            )
            return True

        entry.value = data
        entry.metadata.update(metadata)
        entry.expires_at = _deadline(ttl)
        return True

    async def _delete(self, request: AccessRequest, key: str) -> None:
        self._entries.pop(key, None)

    async def _exists(self, request: AccessRequest, key: str) -> bool:
        return self._live_entry(key) is not None

    async def _get_metadata(self, request: AccessRequest, key: str) -> dict[str, Any] | None:
        entry = self._live_entry(key)
        return dict(entry.metadata) if entry else None

    async def _set_metadata(self, request: AccessRequest, key: str, metadata: dict[str, Any]) -> None:
        entry = self._live_entry(key)
        if entry is None:
            self.log.debug(f"Ignoring metadata update for missing cache key {key}")
            return
        entry.metadata.update(metadata)

    async def _update_ttl(self, request: AccessRequest, key: str, ttl: float | None) -> None:
        entry = self._live_entry(key)
        if entry is not None:
            entry.expires_at = _deadline(ttl)

    async def _get_ttl(self, request: AccessRequest, key: str) -> int:
        entry = self._live_entry(key)
        if entry is None or entry.expires_at is None:
            return -1
        remaining = math.ceil(entry.expires_at - time.monotonic())
        return remaining if remaining > 0 else -1

    async def _get_acl(self, request: AccessRequest, key: str) -> ACL | None:
        entry = self._live_entry(key)
        return entry.acl.copy() if entry else None

    async def _set_acl(self, request: AccessRequest, key: str, acl: ACL) -> None:
        entry = self._live_entry(key)
        if entry is None:
            self.log.debug(f"Ignoring ACL update for missing cache key {key}")
            return
        entry.acl = acl
