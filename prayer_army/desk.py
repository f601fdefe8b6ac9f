"""
Admin triage of prayer requests: listing, marking complete and deleting.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from prayer_army.auth import AdminSession, SessionManager
from prayer_army.errors import NotFoundError
from prayer_army.store import EntityStore, PrayerRequest
from prayer_army.types import RequestStatus

logger = logging.getLogger(__name__)


class RequestDesk:
    def __init__(self, store: EntityStore, sessions: SessionManager):
        self.store = store
        self.sessions = sessions

    def list_requests(
        self, session: Optional[AdminSession], status: Optional[RequestStatus] = None
    ) -> List[PrayerRequest]:
        self.sessions.require(session)
        return self.store.list_requests(status)

    def get(self, session: Optional[AdminSession], request_id: str) -> PrayerRequest:
        self.sessions.require(session)
        request = self.store.get_request(request_id)
        if request is None:
            raise NotFoundError("That prayer request no longer exists.")
        return request

    def complete(self, session: Optional[AdminSession], request_id: str) -> PrayerRequest:
        admin = self.sessions.require(session)
        request = self.store.complete_request(request_id)
        logger.info("Prayer request %s marked complete by %s", request.request_number, admin.email)
        return request

    def delete(self, session: Optional[AdminSession], request_id: str) -> None:
        """Remove the request and its completions."""
        admin = self.sessions.require(session)
        if not self.store.delete_request(request_id):
            raise NotFoundError("That prayer request no longer exists.")
        logger.info("Prayer request %s deleted by %s", request_id, admin.email)
