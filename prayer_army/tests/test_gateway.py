import re
import unittest
from datetime import datetime, timezone

from prayer_army.errors import DuplicateRowError
from prayer_army.gateway import (
    FELLOWSHIPS,
    PRAYER_COMPLETIONS,
    PRAYER_REQUESTS,
    TEAM_MEMBERS,
    InMemoryGateway,
    SqlGateway,
)
from prayer_army.store import EntityStore

REQUEST_NUMBER = re.compile(r"^PR-\d{8}-\d{5}$")


def _now():
    return datetime.now(timezone.utc)


def _request_row(row_id, number, created_at=None):
    return {
        "id": row_id,
        "request_number": number,
        "name": "Sam",
        "mobile_number": "555-0100",
        "prayer_text": None,
        "voice_recording_url": None,
        "image_url": None,
        "document_url": None,
        "status": "pending",
        "created_at": created_at or _now(),
        "completed_at": None,
    }


class InMemoryGatewayTests(unittest.TestCase):
    def setUp(self):
        self.gateway = InMemoryGateway()

    def test_select_filters_and_orders(self):
        first = datetime(2024, 1, 1, tzinfo=timezone.utc)
        second = datetime(2024, 1, 2, tzinfo=timezone.utc)
        self.gateway.insert(PRAYER_REQUESTS, _request_row("a", "PR-1", first))
        self.gateway.insert(PRAYER_REQUESTS, _request_row("b", "PR-2", second))
        self.gateway.update(PRAYER_REQUESTS, {"id": "a"}, {"status": "completed"})

        newest_first = self.gateway.select(
            PRAYER_REQUESTS, order_by="created_at", descending=True
        )
        self.assertEqual([r["id"] for r in newest_first], ["b", "a"])
        pending = self.gateway.select(PRAYER_REQUESTS, {"status": "pending"})
        self.assertEqual([r["id"] for r in pending], ["b"])

    def test_returned_rows_are_copies(self):
        row = self.gateway.insert(FELLOWSHIPS, {"id": "f", "name": "Youth", "created_at": _now()})
        row["name"] = "changed"
        self.assertEqual(self.gateway.select(FELLOWSHIPS)[0]["name"], "Youth")

    def test_completion_pair_is_unique(self):
        values = {
            "id": "c1",
            "prayer_request_id": "r",
            "team_member_id": "m",
            "completed_at": _now(),
        }
        self.gateway.insert(PRAYER_COMPLETIONS, values)
        with self.assertRaises(DuplicateRowError):
            self.gateway.insert(PRAYER_COMPLETIONS, dict(values, id="c2"))

    def test_request_numbers_are_unique(self):
        numbers = {self.gateway.generate_request_number() for _ in range(50)}
        self.assertEqual(len(numbers), 50)
        for number in numbers:
            self.assertRegex(number, REQUEST_NUMBER)

    def test_delete_reports_count(self):
        now = _now()
        for i in range(3):
            self.gateway.insert(
                TEAM_MEMBERS,
                {"id": f"m{i}", "name": "x", "fellowship_id": "f", "created_at": now},
            )
        self.assertEqual(self.gateway.delete(TEAM_MEMBERS, {"fellowship_id": "f"}), 3)
        self.assertEqual(self.gateway.delete(TEAM_MEMBERS, {"fellowship_id": "f"}), 0)

    def test_unknown_table_rejected(self):
        with self.assertRaises(ValueError):
            self.gateway.select("users")


class SqlGatewayTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL gateway.
    """

    def setUp(self):
        self.gateway = SqlGateway("sqlite+pysqlite:///:memory:")

    def _add_member(self, member_id, fellowship_id):
        return self.gateway.insert(
            TEAM_MEMBERS,
            {
                "id": member_id,
                "name": member_id,
                "email": None,
                "fellowship_id": fellowship_id,
                "created_at": _now(),
            },
        )

    def test_insert_and_select_keep_utc(self):
        self.gateway.insert(PRAYER_REQUESTS, _request_row("r1", "PR-1"))
        rows = self.gateway.select(PRAYER_REQUESTS, {"id": "r1"})
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["name"], "Sam")
        self.assertIsNotNone(rows[0]["created_at"].tzinfo)
        self.assertIsNone(rows[0]["completed_at"])

    def test_duplicate_completion_pair_rejected(self):
        self.gateway.insert(PRAYER_REQUESTS, _request_row("r1", "PR-1"))
        self.gateway.insert(FELLOWSHIPS, {"id": "f1", "name": "Youth", "created_at": _now()})
        self._add_member("m1", "f1")
        values = {
            "id": "c1",
            "prayer_request_id": "r1",
            "team_member_id": "m1",
            "completed_at": _now(),
        }
        self.gateway.insert(PRAYER_COMPLETIONS, values)
        with self.assertRaises(DuplicateRowError):
            self.gateway.insert(PRAYER_COMPLETIONS, dict(values, id="c2"))

    def test_fellowship_delete_cascades_in_database(self):
        self.gateway.insert(FELLOWSHIPS, {"id": "f1", "name": "Youth", "created_at": _now()})
        self._add_member("m1", "f1")
        self._add_member("m2", "f1")

        self.assertEqual(self.gateway.delete(FELLOWSHIPS, {"id": "f1"}), 1)
        self.assertEqual(self.gateway.select(TEAM_MEMBERS, {"fellowship_id": "f1"}), [])

    def test_conditional_update_counts_rows(self):
        self.gateway.insert(PRAYER_REQUESTS, _request_row("r1", "PR-1"))
        values = {"status": "completed", "completed_at": _now()}
        self.assertEqual(
            self.gateway.update(PRAYER_REQUESTS, {"id": "r1", "status": "pending"}, values), 1
        )
        self.assertEqual(
            self.gateway.update(PRAYER_REQUESTS, {"id": "r1", "status": "pending"}, values), 0
        )

    def test_tied_timestamps_keep_insertion_order(self):
        created_at = _now()
        self.gateway.insert(FELLOWSHIPS, {"id": "f1", "name": "Youth", "created_at": created_at})
        member_ids = [f"m{i}" for i in range(12)]
        for member_id in member_ids:
            self.gateway.insert(
                TEAM_MEMBERS,
                {
                    "id": member_id,
                    "name": member_id,
                    "fellowship_id": "f1",
                    "created_at": created_at,
                },
            )

        rows = self.gateway.select(TEAM_MEMBERS, {"fellowship_id": "f1"}, order_by="created_at")
        self.assertEqual([r["id"] for r in rows], member_ids)

    def test_members_of_keeps_insertion_order_on_sql(self):
        frozen = _now()
        store = EntityStore(self.gateway, clock=lambda: frozen)
        fellowship = store.create_fellowship("Youth")
        names = ["Zoe", "Asha", "Mo", "Ben", "Kai", "Lia"]
        for name in names:
            store.create_member(fellowship.id, name)

        self.assertEqual([m.name for m in store.list_members(fellowship.id)], names)

    def test_request_numbers_follow_sequence(self):
        first = self.gateway.generate_request_number()
        second = self.gateway.generate_request_number()
        self.assertRegex(first, REQUEST_NUMBER)
        self.assertNotEqual(first, second)
        self.assertEqual(int(second[-5:]), int(first[-5:]) + 1)


if __name__ == "__main__":
    unittest.main()
