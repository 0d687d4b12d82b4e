"""
Abstract storage connector.

Defines the gated storage surface. Public methods run the access check, then
delegate to the ``_``-prefixed methods that concrete backends implement.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any

from ..access.acl import ACL
from ..access.candidate import AccessCandidate
from ..access.request import AccessRequest
from ..access.types import AccessLevel
from .secure import ACLValue, SecureConnector, access_control

StorageData = bytes | str

RESERVED_METADATA_KEYS = frozenset({"acl"})


class StorageConnector(SecureConnector):
    """Abstract interface for resource storage.

    All storage implementations (local files, object stores) must implement
    the ``_``-prefixed methods. Semantics shared by implementations:

    - write on a new resource stores the supplied ACL plus the writer as
      owner, persisting the ACL before the data
    - write on an existing resource keeps its ACL; use set_acl to change it
    - set_acl always keeps the caller as owner
    - metadata never carries the ACL
    """

    name = "StorageConnector"

    def for_candidate(self, candidate: AccessCandidate) -> StorageRequest:
        """Bind the storage surface to a candidate."""
        return StorageRequest(self, candidate)

    @staticmethod
    def user_metadata(metadata: dict[str, Any] | None) -> dict[str, Any]:
        """Drop reserved keys from caller-supplied metadata."""
        return {k: v for k, v in (metadata or {}).items() if k not in RESERVED_METADATA_KEYS}

    @staticmethod
    def to_bytes(value: StorageData) -> bytes:
        if isinstance(value, str):
            return value.encode("utf-8")
        return bytes(value)

    # ------------------------------------------------------------------
    # Gated operations
    # ------------------------------------------------------------------

    @access_control(AccessLevel.READ)
    async def read(self, request: AccessRequest, resource_id: str) -> bytes | None:
        return await self._read(request, resource_id)

    @access_control(AccessLevel.WRITE, exclusive=True)
    async def write(
        self,
        request: AccessRequest,
        resource_id: str,
        value: StorageData,
        acl: ACLValue = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        await self._write(request, resource_id, self.to_bytes(value), acl, self.user_metadata(metadata))

    @access_control(AccessLevel.WRITE, exclusive=True)
    async def delete(self, request: AccessRequest, resource_id: str) -> None:
        await self._delete(request, resource_id)

    @access_control(AccessLevel.READ)
    async def exists(self, request: AccessRequest, resource_id: str) -> bool:
        return await self._exists(request, resource_id)

    @access_control(AccessLevel.READ)
    async def get_metadata(self, request: AccessRequest, resource_id: str) -> dict[str, Any] | None:
        return await self._get_metadata(request, resource_id)

    @access_control(AccessLevel.WRITE, exclusive=True)
    async def set_metadata(self, request: AccessRequest, resource_id: str, metadata: dict[str, Any]) -> None:
        await self._set_metadata(request, resource_id, self.user_metadata(metadata))

    @access_control(AccessLevel.READ)
    async def get_acl(self, request: AccessRequest, resource_id: str) -> ACL | None:
        return await self._get_acl(request, resource_id)

    @access_control(AccessLevel.OWNER, exclusive=True)
    async def set_acl(self, request: AccessRequest, resource_id: str, acl: ACLValue) -> None:
        await self._set_acl(request, resource_id, self.with_owner(acl, request.candidate))

    # ------------------------------------------------------------------
    # Backend operations
    # ------------------------------------------------------------------

    @abstractmethod
    async def _read(self, request: AccessRequest, resource_id: str) -> bytes | None: ...

    @abstractmethod
    async def _write(
        self,
        request: AccessRequest,
        resource_id: str,
        value: bytes,
        acl: ACLValue,
        metadata: dict[str, Any],
    ) -> None: ...

    @abstractmethod
    async def _delete(self, request: AccessRequest, resource_id: str) -> None: ...

    @abstractmethod
    async def _exists(self, request: AccessRequest, resource_id: str) -> bool: ...

    @abstractmethod
    async def _get_metadata(self, request: AccessRequest, resource_id: str) -> dict[str, Any] | None: ...

    @abstractmethod
    async def _set_metadata(self, request: AccessRequest, resource_id: str, metadata: dict[str, Any]) -> None: ...

    @abstractmethod
    async def _get_acl(self, request: AccessRequest, resource_id: str) -> ACL | None: ...

    @abstractmethod
    async def _set_acl(self, request: AccessRequest, resource_id: str, acl: ACL) -> None:
        """Persist acl, which already names the caller as owner."""
        ...


class StorageRequest:
    """Storage operations bound to one candidate.

    Each call builds a fresh request at the level the operation needs.
    """

    def __init__(self, connector: StorageConnector, candidate: AccessCandidate):
        self.connector = connector
        self.candidate = candidate

    async def read(self, resource_id: str) -> bytes | None:
        return await self.connector.read(self.candidate.read_request(), resource_id)

    async def write(
        self,
        resource_id: str,
        value: StorageData,
        acl: ACLValue = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        await self.connector.write(self.candidate.write_request(), resource_id, value, acl, metadata)

    async def delete(self, resource_id: str) -> None:
        await self.connector.delete(self.candidate.write_request(), resource_id)

    async def exists(self, resource_id: str) -> bool:
        return await self.connector.exists(self.candidate.read_request(), resource_id)

    async def get_metadata(self, resource_id: str) -> dict[str, Any] | None:
        return await self.connector.get_metadata(self.candidate.read_request(), resource_id)

    async def set_metadata(self, resource_id: str, metadata: dict[str, Any]) -> None:
        await self.connector.set_metadata(self.candidate.write_request(), resource_id, metadata)

    async def get_acl(self, resource_id: str) -> ACL | None:
        return await self.connector.get_acl(self.candidate.read_request(), resource_id)

    async def set_acl(self, resource_id: str, acl: ACLValue) -> None:
        await self.connector.set_acl(self.candidate.owner_request(), resource_id, acl)
