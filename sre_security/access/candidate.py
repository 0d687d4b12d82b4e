"""Access candidates: who is asking."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..exceptions import InvalidAccessInputError
from .types import PUBLIC_OWNER_ID, AccessLevel, AccessRole, coerce_role

if TYPE_CHECKING:
    from .request import AccessRequest


@dataclass(frozen=True)
class AccessCandidate:
    """A (role, id) pair identifying the principal making a request.

    Constructed fresh at each call site and never persisted. Role and id
    together form the key looked up in an ACL: an agent and a team sharing
    the same id are different candidates.
    """

    role: AccessRole
    id: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", coerce_role(self.role))
        if not isinstance(self.id, str) or not self.id:
            raise InvalidAccessInputError("candidate id", "must be a non-empty string", self.id)

    @classmethod
    def agent(cls, agent_id: str) -> AccessCandidate:
        return cls(AccessRole.AGENT, agent_id)

    @classmethod
    def user(cls, user_id: str) -> AccessCandidate:
        return cls(AccessRole.USER, user_id)

    @classmethod
    def team(cls, team_id: str) -> AccessCandidate:
        return cls(AccessRole.TEAM, team_id)

    @classmethod
    def public(cls) -> AccessCandidate:
        return cls(AccessRole.PUBLIC, PUBLIC_OWNER_ID)

    def request(
        self,
        resource_id: str = "",
        levels: AccessLevel | str | list[AccessLevel | str] | tuple[AccessLevel | str, ...] = (),
    ) -> AccessRequest:
        """Build an access request for this candidate."""
        from .request import AccessRequest

        return AccessRequest(candidate=self, resource_id=resource_id, levels=levels)

    def read_request(self, resource_id: str = "") -> AccessRequest:
        return self.request(resource_id, AccessLevel.READ)

    def write_request(self, resource_id: str = "") -> AccessRequest:
        return self.request(resource_id, AccessLevel.WRITE)

    def owner_request(self, resource_id: str = "") -> AccessRequest:
        return self.request(resource_id, AccessLevel.OWNER)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"role": self.role.value, "id": self.id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AccessCandidate:
        """Deserialize from dictionary."""
        try:
            return cls(role=data["role"], id=data["id"])
        except KeyError as e:
            raise InvalidAccessInputError("candidate", f"missing field {e.args[0]}") from None

    def __str__(self) -> str:
        return f"{self.role.value}:{self.id}"
