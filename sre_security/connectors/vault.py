"""Abstract vault connector."""

from __future__ import annotations

from abc import abstractmethod

from ..access.candidate import AccessCandidate
from ..access.request import AccessRequest
from ..access.types import AccessLevel
from .secure import SecureConnector, access_control


class VaultConnector(SecureConnector):
    """Abstract interface for read-only secret vaults.

    Secrets are scoped to teams. Listing is not tied to a single key, so it
    is not gated by an ACL; it only ever returns keys of the candidate's team.
    """

    name = "VaultConnector"

    def for_candidate(self, candidate: AccessCandidate) -> VaultRequest:
        """Bind the vault surface to a candidate."""
        return VaultRequest(self, candidate)

    @access_control(AccessLevel.READ)
    async def get(self, request: AccessRequest, key_id: str) -> str | None:
        return await self._get(request, key_id)

    @access_control(AccessLevel.READ)
    async def exists(self, request: AccessRequest, key_id: str) -> bool:
        """Check that a secret exists and the candidate may read it.

        A missing key has no ACL entries, so the gate denies it: this raises
        AccessDeniedError rather than returning False.
        """
        return await self._exists(request, key_id)

    async def list_keys(self, request: AccessRequest) -> list[str]:
        return await self._list_keys(request)

    @abstractmethod
    async def _get(self, request: AccessRequest, key_id: str) -> str | None: ...

    @abstractmethod
    async def _exists(self, request: AccessRequest, key_id: str) -> bool: ...

    @abstractmethod
    async def _list_keys(self, request: AccessRequest) -> list[str]: ...


class VaultRequest:
    """Vault operations bound to one candidate."""

    def __init__(self, connector: VaultConnector, candidate: AccessCandidate):
        self.connector = connector
        self.candidate = candidate

    async def get(self, key_id: str) -> str | None:
        return await self.connector.get(self.candidate.read_request(), key_id)

    async def exists(self, key_id: str) -> bool:
        return await self.connector.exists(self.candidate.read_request(), key_id)

    async def list_keys(self) -> list[str]:
        return await self.connector.list_keys(self.candidate.read_request())
