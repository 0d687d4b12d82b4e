"""Abstract cache connector."""

from __future__ import annotations

from abc import abstractmethod
from typing import Any

from ..access.acl import ACL
from ..access.candidate import AccessCandidate
from ..access.request import AccessRequest
from ..access.types import AccessLevel
from ..exceptions import InvalidAccessInputError
from .secure import ACLValue, SecureConnector, access_control
from .storage import StorageConnector


class CacheConnector(SecureConnector):
    """Abstract interface for key/value caches with per-key ACLs.

    TTLs are in seconds. A TTL of None or 0 means the entry never expires.
    Expired entries behave exactly like absent ones.
    """

    name = "CacheConnector"

    def for_candidate(self, candidate: AccessCandidate) -> CacheRequest:
        """Bind the cache surface to a candidate."""
        return CacheRequest(self, candidate)

    @staticmethod
    def validate_ttl(ttl: float | None) -> float | None:
        if ttl is not None and ttl < 0:
            raise InvalidAccessInputError("ttl", "must be >= 0", ttl)
        return ttl or None

    @access_control(AccessLevel.READ)
    async def get(self, request: AccessRequest, key: str) -> Any:
        return await self._get(request, key)

    @access_control(AccessLevel.WRITE, exclusive=True)
    async def set(
        self,
        request: AccessRequest,
        key: str,
        data: Any,
        acl: ACLValue = None,
        metadata: dict[str, Any] | None = None,
        ttl: float | None = None,
    ) -> bool:
        return await self._set(
            request,
            key,
            data,
            acl,
            StorageConnector.user_metadata(metadata),
            self.validate_ttl(ttl),
        )

    @access_control(AccessLevel.WRITE, exclusive=True)
    async def delete(self, request: AccessRequest, key: str) -> None:
        await self._delete(request, key)

    @access_control(AccessLevel.READ)
    async def exists(self, request: AccessRequest, key: str) -> bool:
        return await self._exists(request, key)

    @access_control(AccessLevel.READ)
    async def get_metadata(self, request: AccessRequest, key: str) -> dict[str, Any] | None:
        return await self._get_metadata(request, key)

    @access_control(AccessLevel.WRITE, exclusive=True)
    async def set_metadata(self, request: AccessRequest, key: str, metadata: dict[str, Any]) -> None:
        await self._set_metadata(request, key, StorageConnector.user_metadata(metadata))

    @access_control(AccessLevel.WRITE, exclusive=True)
    async def update_ttl(self, request: AccessRequest, key: str, ttl: float | None = None) -> None:
        await self._update_ttl(request, key, self.validate_ttl(ttl))

    @access_control(AccessLevel.READ)
    async def get_ttl(self, request: AccessRequest, key: str) -> int:
        return await self._get_ttl(request, key)

    @access_control(AccessLevel.READ)
    async def get_acl(self, request: AccessRequest, key: str) -> ACL | None:
        return await self._get_acl(request, key)

    @access_control(AccessLevel.OWNER, exclusive=True)
    async def set_acl(self, request: AccessRequest, key: str, acl: ACLValue) -> None:
        await self._set_acl(request, key, self.with_owner(acl, request.candidate))

    @abstractmethod
    async def _get(self, request: AccessRequest, key: str) -> Any: ...

    @abstractmethod
    async def _set(
        self,
        request: AccessRequest,
        key: str,
        data: Any,
        acl: ACLValue,
        metadata: dict[str, Any],
        ttl: float | None,
    ) -> bool: ...

    @abstractmethod
    async def _delete(self, request: AccessRequest, key: str) -> None: ...

    @abstractmethod
    async def _exists(self, request: AccessRequest, key: str) -> bool: ...

    @abstractmethod
    async def _get_metadata(self, request: AccessRequest, key: str) -> dict[str, Any] | None: ...

    @abstractmethod
    async def _set_metadata(self, request: AccessRequest, key: str, metadata: dict[str, Any]) -> None: ...

    @abstractmethod
    async def _update_ttl(self, request: AccessRequest, key: str, ttl: float | None) -> None: ...

    @abstractmethod
    async def _get_ttl(self, request: AccessRequest, key: str) -> int: ...

    @abstractmethod
    async def _get_acl(self, request: AccessRequest, key: str) -> ACL | None: ...

    @abstractmethod
    async def _set_acl(self, request: AccessRequest, key: str, acl: ACL) -> None: ...


class CacheRequest:
    """Cache operations bound to one candidate."""

    def __init__(self, connector: CacheConnector, candidate: AccessCandidate):
        self.connector = connector
        self.candidate = candidate

    async def get(self, key: str) -> Any:
        return await self.connector.get(self.candidate.read_request(), key)

    async def set(
        self,
        key: str,
        data: Any,
        acl: ACLValue = None,
        metadata: dict[str, Any] | None = None,
        ttl: float | None = None,
    ) -> bool:
        return await self.connector.set(self.candidate.write_request(), key, data, acl, metadata, ttl)

    async def delete(self, key: str) -> None:
        await self.connector.delete(self.candidate.write_request(), key)

    async def exists(self, key: str) -> bool:
        return await self.connector.exists(self.candidate.read_request(), key)

    async def get_metadata(self, key: str) -> dict[str, Any] | None:
        return await self.connector.get_metadata(self.candidate.read_request(), key)

    async def set_metadata(self, key: str, metadata: dict[str, Any]) -> None:
        await self.connector.set_metadata(self.candidate.write_request(), key, metadata)

    async def update_ttl(self, key: str, ttl: float | None = None) -> None:
        await self.connector.update_ttl(self.candidate.write_request(), key, ttl)

    async def get_ttl(self, key: str) -> int:
        return await self.connector.get_ttl(self.candidate.read_request(), key)

    async def get_acl(self, key: str) -> ACL | None:
        return await self.connector.get_acl(self.candidate.read_request(), key)

    async def set_acl(self, key: str, acl: ACLValue) -> None:
        await self.connector.set_acl(self.candidate.owner_request(), key, acl)
