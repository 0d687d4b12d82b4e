"""Access requests and tickets."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Any

from ..exceptions import InvalidAccessInputError
from .candidate import AccessCandidate
from .types import AccessLevel, AccessResult, coerce_levels

REQUEST_ID_PREFIX = "aclR:"

LevelsArg = AccessLevel | str | list[AccessLevel | str] | tuple[AccessLevel | str, ...]


def new_request_id() -> str:
    """Generate a request correlation id."""
    return f"{REQUEST_ID_PREFIX}{uuid.uuid4().hex}"


@dataclass(frozen=True)
class AccessRequest:
    """A candidate asking for level(s) on one resource.

    Multiple levels are a conjunction: every level must be held. Requests are
    immutable; the builder methods return new instances.
    """

    candidate: AccessCandidate
    resource_id: str = ""
    levels: tuple[AccessLevel, ...] = ()
    id: str = field(default_factory=new_request_id)

    def __post_init__(self) -> None:
        if not isinstance(self.candidate, AccessCandidate):
            raise InvalidAccessInputError("candidate", "must be an AccessCandidate", self.candidate)
        if not isinstance(self.resource_id, str):
            raise InvalidAccessInputError("resource id", "must be a string", self.resource_id)
        object.__setattr__(self, "levels", coerce_levels(self.levels))

    def for_resource(self, resource_id: str) -> AccessRequest:
        """Bind the request to a resource."""
        if not resource_id:
            raise InvalidAccessInputError("resource id", "must be a non-empty string", resource_id)
        return replace(self, resource_id=resource_id)

    def with_levels(self, levels: LevelsArg) -> AccessRequest:
        return replace(self, levels=coerce_levels(levels))

    def add_levels(self, levels: LevelsArg) -> AccessRequest:
        return replace(self, levels=self.levels + coerce_levels(levels))

    def with_candidate(self, candidate: AccessCandidate) -> AccessRequest:
        return replace(self, candidate=candidate)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "resource_id": self.resource_id,
            "candidate": self.candidate.to_dict(),
            "levels": [level.value for level in self.levels],
        }


@dataclass(frozen=True)
class AccessTicket:
    """Outcome of an access check, kept for auditing only.

    Tickets must not be cached and replayed; every operation re-evaluates.
    """

    request: AccessRequest
    access: AccessResult

    @property
    def granted(self) -> bool:
        return self.access is AccessResult.GRANTED

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"request": self.request.to_dict(), "access": self.access.value}
