"""Tests for the in-memory cache connector."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest

from sre_security.access import ACL, AccessCandidate, AccessLevel, AccessRole
from sre_security.accounts import StaticAccountProvider
from sre_security.cache import CacheEntry, RAMCache
from sre_security.exceptions import AccessDeniedError, InvalidAccessInputError


class TestRAMCache:
    """Tests for RAMCache."""

    @pytest.fixture
    async def cache(self, accounts: StaticAccountProvider) -> AsyncIterator[RAMCache]:
        """Create a cache without background sweeping."""
        cache = RAMCache(accounts=accounts, sweep_interval=0)
        await cache.start()
        yield cache
        await cache.stop()

    @pytest.mark.asyncio
    async def test_set_and_get(self, cache: RAMCache, alice: AccessCandidate) -> None:
        """Values come back unchanged."""
        handle = cache.for_candidate(alice)

        assert await handle.set("session", {"step": 3}) is True

        assert await handle.get("session") == {"step": 3}
        assert await handle.exists("session") is True

    @pytest.mark.asyncio
    async def test_other_candidates_denied(
        self,
        cache: RAMCache,
        alice: AccessCandidate,
        carol: AccessCandidate,
    ) -> None:
        """Entries are private to their owner by default."""
        await cache.for_candidate(alice).set("session", "data")

        with pytest.raises(AccessDeniedError):
            await cache.for_candidate(carol).get("session")
        with pytest.raises(AccessDeniedError):
            await cache.for_candidate(carol).set("session", "hijack")

    @pytest.mark.asyncio
    async def test_overwrite_keeps_acl(
        self,
        cache: RAMCache,
        alice: AccessCandidate,
        bob: AccessCandidate,
    ) -> None:
        """Team writers update the value but never take ownership."""
        team_rw = ACL().add_access(AccessRole.TEAM, "team-1", [AccessLevel.READ, AccessLevel.WRITE])
        await cache.for_candidate(alice).set("shared", "v1", acl=team_rw)

        await cache.for_candidate(bob).set("shared", "v2", acl=ACL().add_public_access(AccessLevel.READ))

        acl = await cache.for_candidate(bob).get_acl("shared")
        assert await cache.for_candidate(alice).get("shared") == "v2"
        assert acl is not None
        assert acl.check_exact_access(alice.owner_request("shared")) is True
        assert acl.check_exact_access(bob.owner_request("shared")) is False
        assert acl.check_exact_access(AccessCandidate.public().read_request("shared")) is False

    @pytest.mark.asyncio
    async def test_expired_entries_behave_as_absent(self, cache: RAMCache, alice: AccessCandidate) -> None:
        """Entries past their TTL are gone."""
        handle = cache.for_candidate(alice)
        await handle.set("short", "value", ttl=0.05)

        await asyncio.sleep(0.1)

        assert await handle.get("short") is None
        assert await handle.exists("short") is False

    @pytest.mark.asyncio
    async def test_expired_entry_can_be_recreated_by_anyone(
        self,
        cache: RAMCache,
        alice: AccessCandidate,
        carol: AccessCandidate,
    ) -> None:
        """Expiry releases ownership of the key."""
        await cache.for_candidate(alice).set("short", "value", ttl=0.05)
        await asyncio.sleep(0.1)

        await cache.for_candidate(carol).set("short", "carol's")

        assert await cache.for_candidate(carol).get("short") == "carol's"

    @pytest.mark.asyncio
    async def test_ttl(self, cache: RAMCache, alice: AccessCandidate) -> None:
        """get_ttl reports remaining seconds, or -1 without expiry."""
        handle = cache.for_candidate(alice)
        await handle.set("forever", 1)
        await handle.set("timed", 2, ttl=100)

        assert await handle.get_ttl("forever") == -1
        assert 0 < await handle.get_ttl("timed") <= 100
        assert await handle.get_ttl("missing") == -1

    @pytest.mark.asyncio
    async def test_update_ttl(self, cache: RAMCache, alice: AccessCandidate) -> None:
        """TTLs can be set and cleared."""
        handle = cache.for_candidate(alice)
        await handle.set("key", "value")

        await handle.update_ttl("key", 50)
        assert 0 < await handle.get_ttl("key") <= 50

        await handle.update_ttl("key", 0)
        assert await handle.get_ttl("key") == -1

    @pytest.mark.asyncio
    async def test_negative_ttl_rejected(self, cache: RAMCache, alice: AccessCandidate) -> None:
        """Negative TTLs are invalid input and store nothing."""
        with pytest.raises(InvalidAccessInputError) as exc_info:
            await cache.for_candidate(alice).set("key", "value", ttl=-1)

        assert exc_info.value.field == "ttl"
        assert len(cache) == 0

        await cache.for_candidate(alice).set("key", "value")
        with pytest.raises(InvalidAccessInputError):
            await cache.for_candidate(alice).update_ttl("key", -5)

    @pytest.mark.asyncio
    async def test_metadata(self, cache: RAMCache, alice: AccessCandidate) -> None:
        """Metadata merges and the acl key is reserved."""
        handle = cache.for_candidate(alice)
        await handle.set("key", "value", metadata={"source": "llm", "acl": "p:public/r"})

        await handle.set_metadata("key", {"hits": 1})

        assert await handle.get_metadata("key") == {"source": "llm", "hits": 1}

    @pytest.mark.asyncio
    async def test_set_acl(self, cache: RAMCache, alice: AccessCandidate, carol: AccessCandidate) -> None:
        """Owners can share entries."""
        handle = cache.for_candidate(alice)
        await handle.set("key", "value")

        await handle.set_acl("key", ACL().add_access(AccessRole.USER, "carol", AccessLevel.READ))

        assert await cache.for_candidate(carol).get("key") == "value"
        with pytest.raises(AccessDeniedError):
            await cache.for_candidate(carol).set_acl("key", ACL())

    @pytest.mark.asyncio
    async def test_connector_methods_check_operation_level(
        self,
        cache: RAMCache,
        alice: AccessCandidate,
        carol: AccessCandidate,
    ) -> None:
        """A reader calling mutating methods directly is refused."""
        await cache.for_candidate(alice).set(
            "key",
            "value",
            acl=ACL().add_access(AccessRole.USER, "carol", AccessLevel.READ),
        )
        as_reader = carol.read_request()

        with pytest.raises(AccessDeniedError):
            await cache.set(as_reader, "key", "pwned")
        with pytest.raises(AccessDeniedError):
            await cache.set_acl(as_reader, "key", ACL())
        with pytest.raises(AccessDeniedError):
            await cache.update_ttl(as_reader, "key", 0.01)
        with pytest.raises(AccessDeniedError):
            await cache.set_metadata(as_reader, "key", {"tag": "x"})
        with pytest.raises(AccessDeniedError):
            await cache.delete(as_reader, "key")

        assert await cache.get(as_reader, "key") == "value"
        assert await cache.get_ttl(as_reader, "key") == -1
        acl = await cache.get_acl(alice.read_request(), "key")
        assert acl is not None
        assert acl.check_exact_access(alice.owner_request("key")) is True
        assert acl.check_exact_access(carol.owner_request("key")) is False

    @pytest.mark.asyncio
    async def test_delete(self, cache: RAMCache, alice: AccessCandidate) -> None:
        """Deleted keys are absent."""
        handle = cache.for_candidate(alice)
        await handle.set("key", "value")

        await handle.delete("key")

        assert len(cache) == 0
        assert await handle.get("key") is None

    @pytest.mark.asyncio
    async def test_purge_expired(self, cache: RAMCache, alice: AccessCandidate) -> None:
        """purge_expired removes only expired entries."""
        handle = cache.for_candidate(alice)
        await handle.set("short", 1, ttl=0.01)
        await handle.set("long", 2, ttl=100)
        await asyncio.sleep(0.05)

        assert cache.purge_expired() == 1
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_background_sweep(self, alice: AccessCandidate) -> None:
        """The sweep task removes expired entries without any access."""
        cache = RAMCache(sweep_interval=0.02)
        await cache.start()
        try:
            await cache.for_candidate(alice).set("short", 1, ttl=0.01)

            await asyncio.sleep(0.1)

            assert len(cache) == 0
        finally:
            await cache.stop()

    @pytest.mark.asyncio
    async def test_stop_clears_entries(self, alice: AccessCandidate) -> None:
        """Stopping the cache drops everything."""
        cache = RAMCache(sweep_interval=10)
        await cache.start()
        await cache.for_candidate(alice).set("key", "value")

        await cache.stop()

        assert len(cache) == 0
        assert cache._sweeper is None


class TestCacheEntry:
    """Tests for CacheEntry."""

    def test_no_expiry(self) -> None:
        entry = CacheEntry(value=1, acl=ACL())

        assert entry.is_expired() is False

    def test_expiry(self) -> None:
        entry = CacheEntry(value=1, acl=ACL(), expires_at=10.0)

        assert entry.is_expired(now=9.0) is False
        assert entry.is_expired(now=10.0) is True
