"""
Account provider abstract interface.

Defines the team-membership contract the access policy relies on to resolve
team-level grants.
"""

from abc import ABC, abstractmethod

from ..access.candidate import AccessCandidate


class AccountProvider(ABC):
    """Abstract account provider.

    Implementations answer two questions about a candidate:
    - which team does it belong to
    - is it a member of a given team
    """

    @abstractmethod
    async def is_team_member(self, team_id: str, candidate: AccessCandidate) -> bool:
        """Check whether candidate belongs to team_id.

        Args:
            team_id: Team to check
            candidate: Candidate asking for access

        Returns:
            True if the candidate is a member of the team
        """
        ...

    @abstractmethod
    async def get_candidate_team(self, candidate: AccessCandidate) -> str | None:
        """Resolve the team a candidate belongs to.

        Team candidates resolve to themselves.

        Args:
            candidate: Candidate to resolve

        Returns:
            Team id, or None if the candidate has no team
        """
        ...
