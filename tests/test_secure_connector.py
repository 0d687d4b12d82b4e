"""Tests for the secure connector policy and enforcement."""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from unittest.mock import AsyncMock

import pytest

from sre_security.access import ACL, AccessCandidate, AccessLevel, AccessRole
from sre_security.access.request import AccessRequest
from sre_security.accounts import AccountProvider, StaticAccountProvider
from sre_security.connectors import SecureConnector, access_control
from sre_security.exceptions import AccessDeniedError, MalformedACLError, StorageIOError


class DictConnector(SecureConnector):
    """Connector whose ACLs live in a dict, for policy tests."""

    name = "DictConnector"

    def __init__(self, acls: dict[str, Any] | None = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.acls = acls or {}
        self.calls: list[str] = []

    async def get_resource_acl(self, resource_id: str, candidate: AccessCandidate) -> ACL:
        return self.load_acl(self.acls.get(resource_id), resource_id)

    @access_control(AccessLevel.READ)
    async def fetch(self, request: AccessRequest, resource_id: str) -> str:
        self.calls.append(f"fetch:{resource_id}")
        return f"value of {resource_id}"

    @access_control(AccessLevel.WRITE, exclusive=True)
    async def update(self, request: AccessRequest, resource_id: str, tag: str) -> None:
        self.calls.append(f"enter:{tag}")
        await asyncio.sleep(0.01)
        self.calls.append(f"exit:{tag}")


@pytest.fixture
def connector(accounts: StaticAccountProvider) -> DictConnector:
    return DictConnector(accounts=accounts)


class TestPolicy:
    """Tests for has_access evaluation order."""

    @pytest.mark.asyncio
    async def test_exact_match(self, connector: DictConnector, alice: AccessCandidate) -> None:
        """Exact grants are honored."""
        connector.acls["r1"] = ACL().add_access(AccessRole.USER, "alice", AccessLevel.READ)

        assert await connector.has_access(alice.read_request("r1")) is True
        assert await connector.has_access(alice.write_request("r1")) is False

    @pytest.mark.asyncio
    async def test_owner_may_read_and_write(self, connector: DictConnector, alice: AccessCandidate) -> None:
        """Owners pass read and write checks at the connector layer."""
        connector.acls["r1"] = ACL().add_access(AccessRole.USER, "alice", AccessLevel.OWNER)

        assert connector.acls["r1"].check_exact_access(alice.read_request("r1")) is False
        assert await connector.has_access(alice.read_request("r1")) is True
        assert await connector.has_access(alice.write_request("r1")) is True

    @pytest.mark.asyncio
    async def test_public_access(self, connector: DictConnector, carol: AccessCandidate) -> None:
        """Public grants apply to every candidate."""
        connector.acls["r1"] = ACL().add_public_access(AccessLevel.READ)

        assert await connector.has_access(carol.read_request("r1")) is True
        assert await connector.has_access(carol.write_request("r1")) is False

    @pytest.mark.asyncio
    async def test_team_access(
        self,
        connector: DictConnector,
        bob: AccessCandidate,
        carol: AccessCandidate,
    ) -> None:
        """Team grants apply to team members only."""
        connector.acls["r1"] = ACL().add_access(AccessRole.TEAM, "team-1", AccessLevel.READ)

        assert await connector.has_access(bob.read_request("r1")) is True
        assert await connector.has_access(carol.read_request("r1")) is False

    @pytest.mark.asyncio
    async def test_team_owner(self, connector: DictConnector, bob: AccessCandidate) -> None:
        """Members of an owning team may read and write."""
        connector.acls["r1"] = ACL().add_access(AccessRole.TEAM, "team-1", AccessLevel.OWNER)

        assert await connector.has_access(bob.write_request("r1")) is True

    @pytest.mark.asyncio
    async def test_unlisted_candidates_use_default_team(self, connector: DictConnector) -> None:
        """Candidates with no configured team fall back to the default team."""
        connector.acls["r1"] = ACL().add_access(AccessRole.TEAM, "default", AccessLevel.READ)

        assert await connector.has_access(AccessCandidate.agent("stranger").read_request("r1")) is True

    @pytest.mark.asyncio
    async def test_no_levels_denied(self, connector: DictConnector, alice: AccessCandidate) -> None:
        """Requests without levels are denied even for owners."""
        connector.acls["r1"] = ACL().add_access(AccessRole.USER, "alice", AccessLevel.OWNER)

        assert await connector.has_access(alice.request("r1")) is False

    @pytest.mark.asyncio
    async def test_ticket(self, connector: DictConnector, alice: AccessCandidate) -> None:
        """Tickets bind the resource id and record the outcome."""
        connector.acls["r1"] = ACL().add_access(AccessRole.USER, "alice", AccessLevel.READ)

        ticket = await connector.get_access_ticket("r1", alice.read_request())

        assert ticket.granted is True
        assert ticket.request.resource_id == "r1"


class TestEnforcement:
    """Tests for gated operations."""

    @pytest.mark.asyncio
    async def test_granted_operation_runs(self, connector: DictConnector, alice: AccessCandidate) -> None:
        """Granted calls return the operation result unchanged."""
        connector.acls["r1"] = ACL().add_access(AccessRole.USER, "alice", AccessLevel.READ)

        result = await connector.fetch(alice.read_request(), "r1")

        assert result == "value of r1"
        assert connector.calls == ["fetch:r1"]

    @pytest.mark.asyncio
    async def test_denied_operation_never_runs(self, connector: DictConnector, carol: AccessCandidate) -> None:
        """Denied calls raise and perform no work."""
        connector.acls["r1"] = ACL().add_access(AccessRole.USER, "alice", AccessLevel.READ)

        with pytest.raises(AccessDeniedError) as exc_info:
            await connector.fetch(carol.read_request(), "r1")

        error = exc_info.value
        assert connector.calls == []
        assert error.candidate == carol
        assert error.resource_id == "r1"
        assert error.levels == ["read"]
        assert error.request_id.startswith("aclR:")
        assert "exist" not in str(error)

    @pytest.mark.asyncio
    async def test_operation_level_is_always_checked(
        self,
        connector: DictConnector,
        alice: AccessCandidate,
    ) -> None:
        """A read request cannot run a write operation."""
        connector.acls["r1"] = ACL().add_access(AccessRole.USER, "alice", AccessLevel.READ)

        with pytest.raises(AccessDeniedError) as exc_info:
            await connector.update(alice.read_request(), "r1", "sneaky")

        assert connector.calls == []
        assert exc_info.value.levels == ["read", "write"]

    @pytest.mark.asyncio
    async def test_request_without_levels_gets_operation_level(
        self,
        connector: DictConnector,
        alice: AccessCandidate,
    ) -> None:
        """The operation supplies its level when the request names none."""
        connector.acls["r1"] = ACL().add_access(AccessRole.USER, "alice", AccessLevel.READ)

        assert await connector.fetch(alice.request(), "r1") == "value of r1"
        with pytest.raises(AccessDeniedError):
            await connector.update(alice.request(), "r1", "sneaky")

    @pytest.mark.asyncio
    async def test_denial_is_logged(
        self,
        connector: DictConnector,
        carol: AccessCandidate,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Denials are logged as warnings with audit fields."""
        caplog.set_level(logging.WARNING, logger="sre_security")

        with pytest.raises(AccessDeniedError):
            await connector.fetch(carol.read_request(), "r1")

        records = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert records
        assert records[-1].resource_id == "r1"  # type: ignore[attr-defined]
        assert records[-1].candidate == "user:carol"  # type: ignore[attr-defined]
        assert records[-1].connector == "DictConnector"  # type: ignore[attr-defined]

    @pytest.mark.asyncio
    async def test_acl_fetch_errors_propagate(self, alice: AccessCandidate) -> None:
        """Persistence errors are neither a grant nor a denial."""
        connector = DictConnector()
        connector.get_resource_acl = AsyncMock(side_effect=StorageIOError("read_json", "/x"))  # type: ignore[method-assign]

        with pytest.raises(StorageIOError):
            await connector.fetch(alice.read_request(), "r1")

    @pytest.mark.asyncio
    async def test_account_errors_propagate(self, alice: AccessCandidate) -> None:
        """Account provider failures surface to the caller."""
        accounts = AsyncMock(spec=AccountProvider)
        accounts.get_candidate_team.side_effect = RuntimeError("directory unavailable")
        connector = DictConnector(accounts=accounts)

        with pytest.raises(RuntimeError, match="directory unavailable"):
            await connector.fetch(alice.read_request(), "r1")

    @pytest.mark.asyncio
    async def test_exclusive_operations_do_not_interleave(
        self,
        connector: DictConnector,
        alice: AccessCandidate,
    ) -> None:
        """Exclusive operations on one resource run one at a time."""
        connector.acls["r1"] = ACL().add_access(AccessRole.USER, "alice", AccessLevel.WRITE)

        await asyncio.gather(
            connector.update(alice.write_request(), "r1", "first"),
            connector.update(alice.write_request(), "r1", "second"),
        )

        assert connector.calls == ["enter:first", "exit:first", "enter:second", "exit:second"]

    @pytest.mark.asyncio
    async def test_exclusive_operations_on_different_resources_overlap(
        self,
        connector: DictConnector,
        alice: AccessCandidate,
    ) -> None:
        """Locks are per resource."""
        acl = ACL().add_access(AccessRole.USER, "alice", AccessLevel.WRITE)
        connector.acls["r1"] = acl
        connector.acls["r2"] = acl

        await asyncio.gather(
            connector.update(alice.write_request(), "r1", "first"),
            connector.update(alice.write_request(), "r2", "second"),
        )

        assert connector.calls[:2] == ["enter:first", "enter:second"]


class TestACLHelpers:
    """Tests for connector ACL helpers."""

    def test_malformed_acl_denies_by_default(self, caplog: pytest.LogCaptureFixture) -> None:
        """Unparseable stored ACLs become deny-all with a warning."""
        connector = DictConnector()
        caplog.set_level(logging.WARNING, logger="sre_security")

        acl = connector.load_acl("v:9|junk", "r1")

        assert acl.is_empty
        assert any("Malformed ACL" in r.getMessage() for r in caplog.records)

    def test_malformed_acl_raises_when_strict(self) -> None:
        """Strict connectors propagate MalformedACLError."""
        connector = DictConnector(strict_acl=True)

        with pytest.raises(MalformedACLError):
            connector.load_acl("v:9|junk", "r1")

    @pytest.mark.asyncio
    async def test_strict_gated_call_raises(self, alice: AccessCandidate) -> None:
        """Strict mode surfaces malformed ACLs from gated calls."""
        connector = DictConnector({"r1": "not-an-acl"}, strict_acl=True)

        with pytest.raises(MalformedACLError):
            await connector.fetch(alice.read_request(), "r1")

    def test_with_owner(self, alice: AccessCandidate) -> None:
        """with_owner copies the ACL and adds the candidate as owner."""
        connector = DictConnector(hash_algorithm="none")
        base = ACL(hash_algorithm="none").add_access(AccessRole.TEAM, "t1", AccessLevel.READ)

        owned = connector.with_owner(base, alice)

        assert owned.check_exact_access(alice.owner_request("r1")) is True
        assert base.check_exact_access(alice.owner_request("r1")) is False

    def test_with_owner_public(self) -> None:
        """The public candidate owns through the public entry."""
        connector = DictConnector()

        owned = connector.with_owner(None, AccessCandidate.public())

        assert owned.check_exact_access(AccessCandidate.public().owner_request("r1")) is True

    def test_resource_lock_is_shared_per_id(self) -> None:
        """The same id maps to the same lock while it is in use."""
        connector = DictConnector()

        lock = connector.resource_lock("r1")

        assert connector.resource_lock("r1") is lock
        assert connector.resource_lock("r2") is not lock

    def test_lock_key_defaults_to_resource_id(self) -> None:
        assert DictConnector().lock_key("a//b") == "a//b"
