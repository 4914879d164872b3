import json
import tempfile
import unittest
from datetime import timedelta

from schemas.base import utcnow
from schemas.boxes import Box
from schemas.document import EntityKind
from schemas.items import Item
from schemas.rooms import Room
from services.activity import ACTIVITY_LIMIT, new_activity
from storage.kv import DemoSessionRegistry, FileKeyValueStore, MemoryKeyValueStore
from storage.local_store import LocalStore, StorageConfig
from storage.settings import FREQUENCY_KEY, NOTIFICATIONS_KEY, SettingsStore, UserSettingsUpdate


def _room(room_id, name="Garage"):
    now = utcnow()
    return Room(id=room_id, name=name, created_at=now, updated_at=now)


def _box(box_id, room_id, name="Tools"):
    now = utcnow()
    return Box(id=box_id, room_id=room_id, name=name, created_at=now, updated_at=now)


def _item(item_id, box_id, name="Drill"):
    now = utcnow()
    return Item(id=item_id, box_id=box_id, name=name, created_at=now, updated_at=now)


class LocalStoreTest(unittest.TestCase):
    def setUp(self):
        self.kv = MemoryKeyValueStore()
        self.store = LocalStore(self.kv)

    def test_empty_store_reads_empty_document(self):
        doc = self.store.read()
        self.assertEqual(doc.rooms, [])
        self.assertEqual(doc.activities, [])

    def test_unreadable_document_reads_empty(self):
        self.kv.set_item("traxlio_inventory", "{not json")
        self.assertEqual(self.store.read().rooms, [])

        self.kv.set_item("traxlio_inventory", json.dumps([1, 2, 3]))
        self.assertEqual(self.store.read().rooms, [])

    def test_missing_collections_read_as_empty(self):
        self.kv.set_item("traxlio_inventory", json.dumps({"rooms": None}))
        doc = self.store.read()
        self.assertEqual(doc.rooms, [])
        self.assertEqual(doc.items, [])

    def test_one_bad_record_does_not_discard_the_rest(self):
        now = utcnow().isoformat()
        rooms = [
            {"id": f"r{n}", "name": f"Room {n}", "createdAt": now, "updatedAt": now} for n in range(3)
        ]
        broken = {
            "id": "a1",
            "action": "create",
            "type": "room",
            "resourceId": "r0",
            "resourceName": None,
            "timestamp": now,
        }
        self.kv.set_item("traxlio_inventory", json.dumps({"rooms": rooms, "activities": [broken]}))

        doc = self.store.read()
        self.assertEqual([r.id for r in doc.rooms], ["r0", "r1", "r2"])
        self.assertEqual(doc.activities, [])

        self.store.add_activity(new_activity("update", "room", "r1", "Room 1"))

        saved = json.loads(self.kv.get_item("traxlio_inventory"))
        self.assertEqual([r["id"] for r in saved["rooms"]], ["r0", "r1", "r2"])
        self.assertEqual([a["resourceName"] for a in saved["activities"]], ["Room 1"])

    def test_legacy_dates_are_rewritten_on_save(self):
        legacy = {
            "rooms": [
                {
                    "id": "r1",
                    "name": "Garage",
                    "createdAt": {"__type": "Date", "value": "2024-01-01T00:00:00.000Z"},
                    "updatedAt": {"__type": "Date", "value": "2024-01-01T00:00:00.000Z"},
                }
            ]
        }
        self.kv.set_item("traxlio_inventory", json.dumps(legacy))

        self.store.write(self.store.read())

        raw = json.loads(self.kv.get_item("traxlio_inventory"))
        self.assertIsInstance(raw["rooms"][0]["createdAt"], str)
        self.assertNotIn("__type", self.kv.get_item("traxlio_inventory"))

    def test_update_merges_and_bumps_updated_at(self):
        room = _room("r1")
        room.updated_at = utcnow() - timedelta(minutes=5)
        self.store.add(EntityKind.ROOMS, room)

        updated = self.store.update(EntityKind.ROOMS, "r1", {"description": "Cold", "id": "other"})

        self.assertEqual(updated.id, "r1")
        self.assertEqual(updated.name, "Garage")
        self.assertEqual(updated.description, "Cold")
        self.assertEqual(updated.created_at, room.created_at)
        self.assertGreater(updated.updated_at, room.updated_at)

    def test_updated_at_never_moves_backwards(self):
        room = _room("r1")
        room.updated_at = utcnow() + timedelta(days=1)
        self.store.add(EntityKind.ROOMS, room)

        updated = self.store.update(EntityKind.ROOMS, "r1", {"name": "Shed"})
        self.assertEqual(updated.updated_at, room.updated_at)

    def test_update_unknown_id_is_a_no_op(self):
        self.assertIsNone(self.store.update(EntityKind.ROOMS, "missing", {"name": "x"}))

    def test_removing_a_room_removes_its_boxes_and_items(self):
        self.store.add(EntityKind.ROOMS, _room("r1"))
        self.store.add(EntityKind.ROOMS, _room("r2", "Attic"))
        self.store.add(EntityKind.BOXES, _box("b1", "r1"))
        self.store.add(EntityKind.BOXES, _box("b2", "r2"))
        self.store.add(EntityKind.ITEMS, _item("i1", "b1"))
        self.store.add(EntityKind.ITEMS, _item("i2", "b2"))

        self.store.remove(EntityKind.ROOMS, "r1")

        doc = self.store.read()
        self.assertEqual([r.id for r in doc.rooms], ["r2"])
        self.assertEqual([b.id for b in doc.boxes], ["b2"])
        self.assertEqual([i.id for i in doc.items], ["i2"])

    def test_removing_a_box_removes_its_items(self):
        self.store.add(EntityKind.BOXES, _box("b1", "r1"))
        self.store.add(EntityKind.ITEMS, _item("i1", "b1"))

        self.store.remove(EntityKind.BOXES, "b1")

        self.assertEqual(self.store.read().items, [])

    def test_activity_log_is_newest_first_and_capped(self):
        for n in range(ACTIVITY_LIMIT + 5):
            self.store.add_activity(new_activity("create", "room", f"r{n}", f"Room {n}"))

        activities = self.store.read().activities
        self.assertEqual(len(activities), ACTIVITY_LIMIT)
        self.assertEqual(activities[0].resource_id, f"r{ACTIVITY_LIMIT + 4}")
        self.assertEqual(self.store.recent_activities(3)[2].resource_id, f"r{ACTIVITY_LIMIT + 2}")

    def test_clear_all_keeps_settings(self):
        settings = SettingsStore(self.kv)
        settings.save(UserSettingsUpdate(reminder_frequency="weekly"))
        self.store.add(EntityKind.ROOMS, _room("r1"))

        self.store.clear_all()

        self.assertIsNone(self.kv.get_item("traxlio_inventory"))
        self.assertEqual(self.kv.get_item(FREQUENCY_KEY), "weekly")


class KeyValueStoreTest(unittest.TestCase):
    def test_file_store_persists_between_instances(self):
        with tempfile.TemporaryDirectory() as tmp:
            LocalStore(FileKeyValueStore(tmp)).add(EntityKind.ROOMS, _room("r1"))

            doc = LocalStore(FileKeyValueStore(tmp)).read()
            self.assertEqual([r.name for r in doc.rooms], ["Garage"])

            FileKeyValueStore(tmp).remove_item("traxlio_inventory")
            FileKeyValueStore(tmp).remove_item("traxlio_inventory")
            self.assertEqual(LocalStore(FileKeyValueStore(tmp)).read().rooms, [])

    def test_demo_sessions_are_isolated(self):
        registry = DemoSessionRegistry()
        (first, first_kv), (second, second_kv) = registry.start(), registry.start()
        config = StorageConfig(demo_mode=True)

        LocalStore(first_kv, config).add(EntityKind.ROOMS, _room("r1"))

        self.assertNotEqual(first, second)
        self.assertEqual(len(LocalStore(registry.get(first), config).read().rooms), 1)
        self.assertEqual(LocalStore(registry.get(second), config).read().rooms, [])

        registry.end(first)
        self.assertIsNone(registry.get(first))


class DemoSessionRegistryTest(unittest.TestCase):
    def setUp(self):
        self.now = 0.0
        self.registry = DemoSessionRegistry(max_sessions=3, idle_seconds=60, clock=lambda: self.now)

    def test_unknown_ids_are_not_adopted(self):
        self.assertIsNone(self.registry.get("chosen-by-the-client"))
        self.assertEqual(len(self.registry), 0)

    def test_registry_stays_bounded(self):
        ids = [self.registry.start()[0] for _ in range(10)]

        self.assertEqual(len(self.registry), 3)
        self.assertIsNone(self.registry.get(ids[0]))
        self.assertIsNotNone(self.registry.get(ids[-1]))

    def test_least_recently_used_is_evicted_first(self):
        oldest, _ = self.registry.start()
        middle, _ = self.registry.start()
        self.registry.start()

        self.registry.get(oldest)
        self.registry.start()

        self.assertIsNotNone(self.registry.get(oldest))
        self.assertIsNone(self.registry.get(middle))

    def test_idle_sessions_expire(self):
        stale, _ = self.registry.start()
        self.now = 30.0
        fresh, _ = self.registry.start()

        self.now = 75.0
        self.assertIsNone(self.registry.get(stale))
        self.assertIsNotNone(self.registry.get(fresh))
        self.assertEqual(len(self.registry), 1)


class SettingsStoreTest(unittest.TestCase):
    def test_defaults_and_partial_save(self):
        kv = MemoryKeyValueStore()
        store = SettingsStore(kv)
        self.assertTrue(store.load().notifications_enabled)
        self.assertEqual(store.load().reminder_frequency, "daily")

        saved = store.save(UserSettingsUpdate(notifications_enabled=False))

        self.assertFalse(saved.notifications_enabled)
        self.assertEqual(saved.reminder_frequency, "daily")
        self.assertEqual(kv.get_item(NOTIFICATIONS_KEY), "false")
