import unittest
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError

from schemas.document import InventoryDocument
from schemas.items import BulkMoveRequest, ItemCreate, ItemUpdate
from schemas.rooms import RoomCreate, RoomUpdate
from schemas.shares import Share


class TimestampTest(unittest.TestCase):
    def test_legacy_date_wrapper_is_unwrapped(self):
        doc = InventoryDocument.model_validate(
            {
                "rooms": [
                    {
                        "id": "r1",
                        "name": "Garage",
                        "createdAt": {"__type": "Date", "value": "2024-03-01T10:00:00.000Z"},
                        "updatedAt": "2024-03-02T10:00:00Z",
                    }
                ]
            }
        )
        room = doc.rooms[0]
        self.assertEqual(room.created_at, datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc))

        # written back in the plain ISO form only
        dumped = doc.to_json()["rooms"][0]
        self.assertIsInstance(dumped["createdAt"], str)
        self.assertTrue(dumped["createdAt"].startswith("2024-03-01T10:00:00"))

    def test_naive_timestamps_are_treated_as_utc(self):
        share = Share(id="s", type="room", resource_id="r", created_at=datetime(2024, 1, 1))
        self.assertEqual(share.created_at.tzinfo, timezone.utc)


class PayloadValidationTest(unittest.TestCase):
    def test_names_are_stripped_and_required(self):
        self.assertEqual(RoomCreate(name="  Attic ").name, "Attic")
        with self.assertRaises(ValidationError):
            RoomCreate(name="   ")

    def test_tags_behave_as_a_set(self):
        item = ItemCreate(name="Drill", tags=["Tools", "tools", " power ", ""])
        self.assertEqual(item.tags, ["Tools", "power"])

    def test_quantity_must_be_positive(self):
        with self.assertRaises(ValidationError):
            ItemCreate(name="Drill", quantity=0)

    def test_partial_update_keeps_only_set_fields(self):
        update = RoomUpdate(description="Shelves")
        self.assertEqual(update.changes(), {"description": "Shelves"})

    def test_partial_update_never_clears_required_fields(self):
        update = ItemUpdate.model_validate({"name": None, "notes": None})
        self.assertEqual(update.changes(), {"notes": None})

    def test_camel_case_payloads(self):
        update = ItemUpdate.model_validate({"boxId": "b2"})
        self.assertEqual(update.changes(), {"box_id": "b2"})

    def test_bulk_move_needs_items(self):
        with self.assertRaises(ValidationError):
            BulkMoveRequest(item_ids=[], target_box_id="b1")


class ShareExpiryTest(unittest.TestCase):
    def test_is_expired(self):
        now = datetime.now(timezone.utc)
        share = Share(id="s", type="box", resource_id="b", created_at=now)
        self.assertFalse(share.is_expired())

        share.expires_at = now - timedelta(seconds=1)
        self.assertTrue(share.is_expired(now))

        share.expires_at = now + timedelta(days=1)
        self.assertFalse(share.is_expired(now))
