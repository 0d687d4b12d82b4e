"""
Secure connector base.

Every resource-backing connector (storage, cache, vault) extends
SecureConnector. Gated operations take an AccessRequest and a resource id as
their first two arguments and are wrapped with ``access_control``, which
evaluates the connector policy against the resource's stored ACL before any
I/O happens.
"""

from __future__ import annotations

import asyncio
import functools
import weakref
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from ..access.acl import ACL, DEFAULT_HASH_ALGORITHM
from ..access.candidate import AccessCandidate
from ..access.request import AccessRequest, AccessTicket
from ..access.types import AccessLevel, AccessResult, AccessRole
from ..accounts.provider import AccountProvider
from ..accounts.static import StaticAccountProvider
from ..exceptions import AccessDeniedError, MalformedACLError
from ..logging_utils import SecurityLoggerAdapter, audit_extra, get_security_logger

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])

ACLValue = ACL | Mapping[str, Any] | str | None


class SecureConnector(ABC):
    """Base class for connectors that gate access to resources.

    Policy evaluated by ``has_access`` against a freshly fetched ACL, in order:

    1. the candidate holds exactly the requested levels
    2. the candidate holds OWNER (owners may do anything at this layer)
    3. the public entry holds the requested levels
    4. the candidate's team holds the requested levels
    5. the candidate's team holds OWNER

    Anything else is denied. Errors raised while fetching the ACL propagate
    unchanged; they are never turned into a denial or a grant.
    """

    name: str = "SecureConnector"

    def __init__(
        self,
        accounts: AccountProvider | None = None,
        strict_acl: bool = False,
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
    ):
        """Initialize the connector.

        Args:
            accounts: Team membership provider (default: static provider
                with the default team only)
            strict_acl: Raise MalformedACLError on unparseable stored ACLs
                instead of treating them as deny-all
            hash_algorithm: Owner key hash algorithm for ACLs this
                connector creates
        """
        self.accounts = accounts if accounts is not None else StaticAccountProvider()
        self.strict_acl = strict_acl
        self.hash_algorithm = ACL(hash_algorithm=hash_algorithm).hash_algorithm
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self.log = SecurityLoggerAdapter(get_security_logger(self.name), {"connector": self.name})

    async def start(self) -> None:
        self.log.info(f"Starting {self.name} connector ...")

    async def stop(self) -> None:
        self.log.info(f"Stopping {self.name} connector ...")

    @abstractmethod
    async def get_resource_acl(self, resource_id: str, candidate: AccessCandidate) -> ACL:
        """Fetch the ACL currently protecting a resource.

        Connectors that create resources on write return an ACL naming the
        candidate as owner when the resource does not exist yet.

        Args:
            resource_id: Resource to look up
            candidate: Candidate asking for access

        Returns:
            The resource's ACL
        """
        ...

    # ------------------------------------------------------------------
    # ACL helpers
    # ------------------------------------------------------------------

    def new_acl(self) -> ACL:
        return ACL(hash_algorithm=self.hash_algorithm)

    def with_owner(self, acl: ACLValue, candidate: AccessCandidate) -> ACL:
        """Copy acl and make candidate an owner of it."""
        result = ACL.load(acl, hash_algorithm=self.hash_algorithm)
        if candidate.role is AccessRole.PUBLIC:
            return result.add_public_access(AccessLevel.OWNER)
        return result.add_access(candidate.role, candidate.id, AccessLevel.OWNER)

    def load_acl(self, value: ACLValue, resource_id: str) -> ACL:
        """Parse a stored ACL.

        A malformed ACL denies everything unless the connector is strict.
        """
        try:
            return ACL.load(value, hash_algorithm=self.hash_algorithm)
        except MalformedACLError as e:
            if self.strict_acl:
                raise
            self.log.warning(
                f"Malformed ACL for {resource_id}, denying all access: {e.reason}",
                extra={"resource_id": resource_id},
            )
            return self.new_acl()

    def lock_key(self, resource_id: str) -> str:
        """Map a resource id to the key its lock is stored under.

        Backends where several ids name the same resource override this to
        return the normalized id.
        """
        return resource_id

    def resource_lock(self, resource_id: str) -> asyncio.Lock:
        """Get the single-writer lock for a resource id."""
        lock = self._locks.get(resource_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[resource_id] = lock
        return lock

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    async def has_access(self, request: AccessRequest) -> bool:
        if not request.levels:
            return False

        acl = await self.get_resource_acl(request.resource_id, request.candidate)
        if acl is None:
            return False

        if acl.check_exact_access(request):
            return True

        if acl.check_exact_access(request.with_levels(AccessLevel.OWNER)):
            return True

        if acl.check_exact_access(request.with_candidate(AccessCandidate.public())):
            return True

        team_id = await self.accounts.get_candidate_team(request.candidate)
        if not team_id:
            return False

        team_request = request.with_candidate(AccessCandidate.team(team_id))
        if acl.check_exact_access(team_request):
            return True

        return acl.check_exact_access(team_request.with_levels(AccessLevel.OWNER))

    async def get_access_ticket(self, resource_id: str, request: AccessRequest) -> AccessTicket:
        """Evaluate request against resource_id and return the outcome."""
        bound = request.for_resource(resource_id)
        granted = await self.has_access(bound)
        return AccessTicket(bound, AccessResult.GRANTED if granted else AccessResult.DENIED)

    async def enforce(self, request: AccessRequest, resource_id: str) -> AccessTicket:
        """Raise AccessDeniedError unless request is granted on resource_id."""
        ticket = await self.get_access_ticket(resource_id, request)
        audit = audit_extra(ticket)
        if not ticket.granted:
            self.log.warning(f"Access denied for {ticket.request.candidate} on {resource_id}", extra=audit)
            raise AccessDeniedError(ticket.request)

        self.log.debug(f"Access granted for {ticket.request.candidate} on {resource_id}", extra=audit)
        return ticket


def access_control(level: AccessLevel | str, *, exclusive: bool = False) -> Callable[[F], F]:
    """Gate a connector method behind an access check.

    The wrapped method must take ``(self, request, resource_id, ...)``. The
    check runs before the method body; a denial raises AccessDeniedError and
    the body never runs. ``level`` is the level the operation needs. It is
    always part of the check, whatever levels the caller put in the request,
    so a read request cannot be used to write. With ``exclusive=True`` the
    check and the operation both run under the resource's lock, so
    read-modify-write of its ACL is not interleaved with other exclusive
    operations on the same resource.

    Usage:
        @access_control(AccessLevel.READ)
        async def read(self, request, resource_id): ...

        @access_control(AccessLevel.WRITE, exclusive=True)
        async def write(self, request, resource_id, value): ...
    """
    required = AccessLevel(level)

    def decorator(method: F) -> F:
        @functools.wraps(method)
        async def wrapper(
            self: SecureConnector,
            request: AccessRequest,
            resource_id: str,
            *args: Any,
            **kwargs: Any,
        ) -> Any:
            checked = request if required in request.levels else request.add_levels(required)

            if exclusive:
                async with self.resource_lock(self.lock_key(resource_id)):
                    await self.enforce(checked, resource_id)
                    return await method(self, request, resource_id, *args, **kwargs)

            await self.enforce(checked, resource_id)
            return await method(self, request, resource_id, *args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
