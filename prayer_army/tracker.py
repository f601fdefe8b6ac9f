"""
Prayer completion tracking: which team member has prayed over which request.

The external store is the source of truth. ``CompletionMirror`` is the copy a
caller (e.g. an open admin screen) keeps for rendering; the tracker updates
it only after the corresponding write succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from prayer_army.auth import AdminSession, SessionManager
from prayer_army.errors import DuplicateRowError, NotFoundError
from prayer_army.store import EntityStore, PrayerCompletion, TeamMember

logger = logging.getLogger(__name__)

UNKNOWN_MEMBER = "Unknown member"


@dataclass
class CompletionMirror:
    """In-memory view of completions keyed by (request id, member id)."""

    completions: Dict[tuple[str, str], PrayerCompletion] = field(default_factory=dict)

    @classmethod
    def from_completions(cls, completions: Iterable[PrayerCompletion]) -> "CompletionMirror":
        mirror = cls()
        mirror.replace(completions)
        return mirror

    def replace(self, completions: Iterable[PrayerCompletion]) -> None:
        self.completions = {c.pair: c for c in completions}

    def added(self, completion: PrayerCompletion) -> None:
        self.completions[completion.pair] = completion

    def removed(self, request_id: str, member_id: str) -> None:
        self.completions.pop((request_id, member_id), None)

    def is_completed(self, request_id: str, member_id: str) -> bool:
        return (request_id, member_id) in self.completions

    def for_request(self, request_id: str) -> List[PrayerCompletion]:
        return [c for (rid, _), c in self.completions.items() if rid == request_id]

    def member_names(self, request_id: str, roster: Iterable[TeamMember]) -> List[str]:
        """Names of members who prayed; completions of removed members render as unknown."""
        names = {m.id: m.name for m in roster}
        return [
            names.get(c.team_member_id, UNKNOWN_MEMBER)
            for c in self.for_request(request_id)
        ]


class CompletionTracker:
    def __init__(self, store: EntityStore, sessions: SessionManager):
        self.store = store
        self.sessions = sessions

    def list_completions(
        self, session: Optional[AdminSession], request_id: Optional[str] = None
    ) -> Set[PrayerCompletion]:
        self.sessions.require(session)
        return set(self.store.list_completions(request_id=request_id))

    def toggle(
        self,
        session: Optional[AdminSession],
        request_id: str,
        member_id: str,
        mirror: Optional[CompletionMirror] = None,
    ) -> bool:
        """
        Flip the completion for (request, member) and return the new state.

        The unique (request, member) constraint decides the outcome: an insert
        that is rejected as a duplicate means the pair exists, so it is
        deleted instead. Failed writes propagate and leave ``mirror`` untouched.
        """
        self.sessions.require(session)
        if self.store.get_request(request_id) is None:
            raise NotFoundError("That prayer request no longer exists.")
        if self.store.get_member(member_id) is None:
            raise NotFoundError("That team member no longer exists.")

        try:
            completion = self.store.insert_completion(request_id, member_id)
        except DuplicateRowError:
            self.store.delete_completion(request_id, member_id)
            if mirror is not None:
                mirror.removed(request_id, member_id)
            logger.info("Completion cleared: request=%s member=%s", request_id, member_id)
            return False

        if mirror is not None:
            mirror.added(completion)
        logger.info("Completion recorded: request=%s member=%s", request_id, member_id)
        return True

    def is_completed(
        self, session: Optional[AdminSession], request_id: str, member_id: str
    ) -> bool:
        self.sessions.require(session)
        return bool(self.store.list_completions(request_id=request_id, member_id=member_id))

    def completion_count(self, session: Optional[AdminSession], request_id: str) -> int:
        """Members on the current roster who prayed over the request."""
        completed, _ = self.completion_ratio(session, request_id)
        return completed

    def completion_ratio(
        self, session: Optional[AdminSession], request_id: str
    ) -> tuple[int, int]:
        """(members who prayed, current roster size); dangling completions are ignored."""
        self.sessions.require(session)
        roster = {m.id for m in self.store.list_members()}
        prayed = {
            c.team_member_id
            for c in self.store.list_completions(request_id=request_id)
            if c.team_member_id in roster
        }
        return len(prayed), len(roster)
