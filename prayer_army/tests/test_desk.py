import unittest
from datetime import timedelta

from prayer_army.desk import RequestDesk
from prayer_army.errors import InvalidTransitionError, NotFoundError, PermissionDeniedError
from prayer_army.roster import FellowshipRoster
from prayer_army.tests.helpers import (
    ADMIN_EMAIL,
    ADMIN_PASSWORD,
    TickingClock,
    make_sessions,
    make_store,
)
from prayer_army.tracker import CompletionTracker
from prayer_army.types import RequestStatus


class RequestDeskTests(unittest.TestCase):
    def setUp(self):
        self.store = make_store()
        self.clock = TickingClock()
        self.sessions = make_sessions(clock=self.clock)
        self.session = self.sessions.sign_in(ADMIN_EMAIL, ADMIN_PASSWORD)
        self.desk = RequestDesk(self.store, self.sessions)
        self.request = self._request("Sam", "555-0100")

    def _request(self, name, mobile_number):
        return self.store.create_request(
            request_number=self.store.generate_request_number(),
            name=name,
            mobile_number=mobile_number,
        )

    def test_complete_moves_request_to_completed_list(self):
        completed = self.desk.complete(self.session, self.request.id)

        self.assertEqual(completed.status, RequestStatus.COMPLETED)
        self.assertIsNotNone(completed.completed_at)
        self.assertEqual(self.desk.list_requests(self.session, RequestStatus.PENDING), [])
        self.assertEqual(
            self.desk.list_requests(self.session, RequestStatus.COMPLETED), [completed]
        )

    def test_complete_is_not_repeated(self):
        first = self.desk.complete(self.session, self.request.id)
        with self.assertRaises(InvalidTransitionError):
            self.desk.complete(self.session, self.request.id)
        self.assertEqual(self.desk.get(self.session, self.request.id).completed_at, first.completed_at)

    def test_list_newest_first(self):
        later = self._request("Ruth", "555-0199")
        listed = self.desk.list_requests(self.session)
        self.assertEqual([r.id for r in listed], [later.id, self.request.id])

    def test_delete_removes_request_and_completions(self):
        roster = FellowshipRoster(self.store, self.sessions)
        tracker = CompletionTracker(self.store, self.sessions)
        youth = roster.create_fellowship(self.session, "Youth")
        asha = roster.add_member(self.session, youth.id, "Asha")
        tracker.toggle(self.session, self.request.id, asha.id)

        self.desk.delete(self.session, self.request.id)

        self.assertIsNone(self.store.get_request(self.request.id))
        self.assertEqual(self.store.list_completions(), [])
        with self.assertRaises(NotFoundError):
            self.desk.delete(self.session, self.request.id)

    def test_get_missing_request(self):
        with self.assertRaises(NotFoundError):
            self.desk.get(self.session, "missing")

    def test_requires_session(self):
        with self.assertRaises(PermissionDeniedError):
            self.desk.list_requests(None)
        with self.assertRaises(PermissionDeniedError):
            self.desk.complete(None, self.request.id)
        with self.assertRaises(PermissionDeniedError):
            self.desk.delete(None, self.request.id)

        stored = self.store.get_request(self.request.id)
        self.assertEqual(stored.status, RequestStatus.PENDING)

    def test_expired_session_is_rejected(self):
        self.clock.now += timedelta(hours=2)
        with self.assertRaises(PermissionDeniedError):
            self.desk.complete(self.session, self.request.id)
        self.assertEqual(self.store.get_request(self.request.id).status, RequestStatus.PENDING)


if __name__ == "__main__":
    unittest.main()
