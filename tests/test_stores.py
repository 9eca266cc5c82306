import re
import unittest

from mailbridge.services.conversation_store import ConversationStore
from mailbridge.services.draft_store import Draft, DraftStore


class ConversationStoreTests(unittest.TestCase):
    def test_unknown_user_has_empty_history(self):
        store = ConversationStore()
        self.assertEqual(store.get("U1"), [])
        self.assertFalse(store.has_history("U1"))

    def test_set_append_and_clear(self):
        store = ConversationStore()
        store.set("U1", ["system"])
        store.append("U1", "\n---\nnext\n---")
        self.assertEqual(store.get("U1"), ["system", "\n---\nnext\n---"])

        store.clear("U1")
        store.clear("U1")
        self.assertEqual(store.get("U1"), [])

    def test_get_returns_a_copy_and_users_are_isolated(self):
        store = ConversationStore()
        store.set("U1", ["a"])
        store.get("U1").append("mutated")
        store.append("U2", "b")

        self.assertEqual(store.get("U1"), ["a"])
        self.assertEqual(store.get("U2"), ["b"])


class DraftStoreTests(unittest.TestCase):
    def test_create_mints_prefixed_ids(self):
        first = DraftStore.create()
        second = DraftStore.create()
        self.assertRegex(first, re.compile(r"^draft-[0-9a-f]{9}$"))
        self.assertNotEqual(first, second)

    def test_save_get_delete_round_trip(self):
        store = DraftStore()
        draft = Draft(id="d1", body="本文です", to="a@example.com", subject="件名", created_at=100)
        store.save("U1", "d1", draft)

        self.assertEqual(store.get("U1", "d1"), draft)
        self.assertIsNone(store.get("U2", "d1"))
        self.assertTrue(store.delete("U1", "d1"))
        self.assertIsNone(store.get("U1", "d1"))
        self.assertFalse(store.delete("U1", "d1"))
        self.assertFalse(store.delete("U1", "missing"))

    def test_latest_picks_max_created_at(self):
        store = DraftStore()
        for draft_id, created_at in (("a", 100), ("b", 300), ("c", 200)):
            store.save("U1", draft_id, Draft(id=draft_id, created_at=created_at))

        self.assertEqual(store.latest("U1"), "b")
        self.assertIsNone(store.latest("U2"))

    def test_latest_tie_goes_to_last_saved(self):
        store = DraftStore()
        store.save("U1", "a", Draft(id="a", created_at=100))
        store.save("U1", "b", Draft(id="b", created_at=100))
        self.assertEqual(store.latest("U1"), "b")

        store.save("U1", "a", Draft(id="a", created_at=100))
        self.assertEqual(store.latest("U1"), "a")

    def test_list_returns_snapshot(self):
        store = DraftStore()
        store.save("U1", "d1", Draft(id="d1", created_at=1))
        snapshot = store.list("U1")
        snapshot.pop("d1")

        self.assertEqual(list(store.list("U1").keys()), ["d1"])
        self.assertEqual(store.list("nobody"), {})

    def test_action_payload_uses_gateway_field_names(self):
        draft = Draft(id="d1", body="hi", to="a@example.com", subject="s", thread_id="t-1")
        self.assertEqual(
            draft.to_action_payload(),
            {"to": "a@example.com", "subject": "s", "body": "hi", "threadId": "t-1"},
        )


if __name__ == "__main__":
    unittest.main()
