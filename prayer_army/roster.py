"""
Fellowships and the team members they own.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from prayer_army.auth import AdminSession, SessionManager
from prayer_army.errors import BackendError, NotFoundError, PartialCascadeError, ValidationError
from prayer_army.store import EntityStore, Fellowship, TeamMember

logger = logging.getLogger(__name__)


def _required(value: Optional[str], field: str, label: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"Please enter a {label}.", field=field)
    return cleaned


class FellowshipRoster:
    def __init__(self, store: EntityStore, sessions: SessionManager):
        self.store = store
        self.sessions = sessions

    def create_fellowship(self, session: Optional[AdminSession], name: str) -> Fellowship:
        self.sessions.require(session)
        fellowship = self.store.create_fellowship(_required(name, "name", "fellowship name"))
        logger.info("Fellowship created: %s (%s)", fellowship.name, fellowship.id)
        return fellowship

    def list_fellowships(
        self, session: Optional[AdminSession]
    ) -> List[tuple[Fellowship, List[TeamMember]]]:
        """Fellowships oldest first, each with its members in insertion order."""
        self.sessions.require(session)
        members = self.store.list_members()
        return [
            (f, [m for m in members if m.fellowship_id == f.id])
            for f in self.store.list_fellowships()
        ]

    def delete_fellowship(self, session: Optional[AdminSession], fellowship_id: str) -> int:
        """
        Remove a fellowship together with its members and their completions.

        Members go first and the fellowship record last, so a failure part way
        never leaves members pointing at a missing fellowship. Such a failure
        raises PartialCascadeError; calling again completes the removal.
        Returns the number of members removed.
        """
        self.sessions.require(session)
        if self.store.get_fellowship(fellowship_id) is None:
            raise NotFoundError("That fellowship no longer exists.")

        removed = 0
        try:
            for member in self.store.list_members(fellowship_id):
                self.store.delete_member_completions(member.id)
            removed = self.store.delete_members_of(fellowship_id)
            self.store.delete_fellowship(fellowship_id)
        except BackendError as exc:
            logger.exception("Cascade delete of fellowship %s stopped part way", fellowship_id)
            raise PartialCascadeError(
                "The fellowship could not be fully removed. Please try again."
            ) from exc
        logger.info("Fellowship %s deleted with %d member(s)", fellowship_id, removed)
        return removed

    def add_member(
        self,
        session: Optional[AdminSession],
        fellowship_id: str,
        name: str,
        email: Optional[str] = None,
    ) -> TeamMember:
        self.sessions.require(session)
        cleaned_name = _required(name, "name", "name")
        if self.store.get_fellowship(fellowship_id) is None:
            raise NotFoundError("That fellowship no longer exists.")
        member = self.store.create_member(
            fellowship_id, cleaned_name, (email or "").strip() or None
        )
        logger.info("Member %s added to fellowship %s", member.id, fellowship_id)
        return member

    def remove_member(self, session: Optional[AdminSession], member_id: str) -> None:
        self.sessions.require(session)
        if self.store.get_member(member_id) is None:
            raise NotFoundError("That team member no longer exists.")
        self.store.delete_member_completions(member_id)
        self.store.delete_member(member_id)
        logger.info("Member %s removed", member_id)

    def members_of(
        self, session: Optional[AdminSession], fellowship_id: str
    ) -> List[TeamMember]:
        self.sessions.require(session)
        return self.store.list_members(fellowship_id)
