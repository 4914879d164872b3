import asyncio
import threading
import unittest

from sqlalchemy.exc import SQLAlchemyError

from schemas.document import EntityKind
from services.inventory import SHARE_ID_ATTEMPTS, InventoryService, LoadState, build_shared_view
from storage.backends import LocalBackend
from storage.kv import MemoryKeyValueStore
from storage.local_store import LocalStore


class GatedBackend(LocalBackend):
    """Local backend whose loads can be held open to simulate a slow reload."""

    def __init__(self, store):
        super().__init__(store)
        self.gate = None

    async def load(self):
        doc = self.store.read()
        gate = self.gate
        if gate is not None:
            await gate.wait()
        return doc


class UnreachableBackend(LocalBackend):
    name = "remote"

    async def load(self):
        raise SQLAlchemyError("connection refused")


class NoActivityBackend(LocalBackend):
    async def add_activity(self, activity):
        raise SQLAlchemyError("activities table missing")


class CrowdedShareBackend(LocalBackend):
    """Reports the first ``taken`` share ids as already in use."""

    def __init__(self, store, taken):
        super().__init__(store)
        self.taken = taken
        self.checked = 0

    async def share_exists(self, share_id):
        self.checked += 1
        return self.checked <= self.taken


class ThreadRecordingStore(LocalStore):
    """Local store that remembers which threads touched it."""

    def __init__(self, kv):
        super().__init__(kv)
        self.threads = set()

    def read(self):
        self.threads.add(threading.get_ident())
        return super().read()


class InventoryServiceTest(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.local = LocalStore(MemoryKeyValueStore())
        self.service = InventoryService(LocalBackend(self.local))
        await self.service.load()

    async def test_starts_uninitialized_then_ready(self):
        service = InventoryService(LocalBackend(self.local))
        self.assertIs(service.state, LoadState.UNINITIALIZED)
        self.assertTrue(service.is_loading)
        await service.load()
        self.assertFalse(service.is_loading)
        self.assertFalse(service.is_using_remote)

    async def test_deleting_a_room_cascades(self):
        garage = await self.service.create_room("Garage")
        tools = await self.service.create_box(garage.id, "Tools")
        await self.service.create_item(tools.id, {"name": "Drill", "quantity": 1})

        await self.service.delete_room(garage.id)

        self.assertEqual(self.service.get_items_by_box(tools.id), [])
        self.assertIsNone(self.service.get_box(tools.id))
        self.assertEqual(self.local.read().items, [])

    async def test_mutations_log_activities_newest_first(self):
        garage = await self.service.create_room("Garage")
        tools = await self.service.create_box(garage.id, "Tools")
        await self.service.update_room(garage.id, {"description": "Detached"})

        actions = [(a.action, a.type, a.parent_name) for a in self.service.get_recent_activities()]
        self.assertEqual(
            actions,
            [("update", "room", None), ("create", "box", "Garage"), ("create", "room", None)],
        )
        self.assertEqual(self.service.get_recent_activities(1)[0].resource_name, "Garage")
        self.assertEqual(self.service.get_box(tools.id).room_id, garage.id)

    async def test_update_keeps_identity_and_bumps_updated_at(self):
        garage = await self.service.create_room("Garage")
        updated = await self.service.update_room(garage.id, {"name": "Workshop"})

        self.assertEqual(updated.id, garage.id)
        self.assertEqual(updated.created_at, garage.created_at)
        self.assertGreaterEqual(updated.updated_at, garage.updated_at)
        self.assertEqual(self.service.get_room(garage.id).name, "Workshop")

    async def test_moving_an_item_is_logged_as_a_move(self):
        garage = await self.service.create_room("Garage")
        tools = await self.service.create_box(garage.id, "Tools")
        spares = await self.service.create_box(garage.id, "Spares")
        drill = await self.service.create_item(tools.id, {"name": "Drill"})

        await self.service.update_item(drill.id, {"boxId": tools.id, "quantity": 2})
        self.assertEqual(self.service.get_recent_activities(1)[0].action, "update")

        moved = await self.service.move_item(drill.id, spares.id)

        self.assertEqual(moved.box_id, spares.id)
        latest = self.service.get_recent_activities(1)[0]
        self.assertEqual(latest.action, "move")
        self.assertEqual(latest.parent_name, "Spares")

    async def test_move_item_rejects_unknown_targets(self):
        garage = await self.service.create_room("Garage")
        tools = await self.service.create_box(garage.id, "Tools")
        drill = await self.service.create_item(tools.id, {"name": "Drill"})

        with self.assertRaises(LookupError):
            await self.service.move_item(drill.id, "no-such-box")
        with self.assertRaises(LookupError):
            await self.service.move_item("no-such-item", tools.id)

    async def test_bulk_move_reports_failures_per_item(self):
        garage = await self.service.create_room("Garage")
        tools = await self.service.create_box(garage.id, "Tools")
        spares = await self.service.create_box(garage.id, "Spares")
        drill = await self.service.create_item(tools.id, {"name": "Drill"})
        saw = await self.service.create_item(tools.id, {"name": "Saw"})

        result = await self.service.move_items([drill.id, "ghost", saw.id], spares.id)

        self.assertEqual(result.moved, [drill.id, saw.id])
        self.assertEqual(result.failed, ["ghost"])
        self.assertEqual({i.box_id for i in self.local.read().items}, {spares.id})

    async def test_search_uses_the_cached_document(self):
        garage = await self.service.create_room("Garage")
        tools = await self.service.create_box(garage.id, "Tools")
        await self.service.create_item(tools.id, {"name": "Drill", "tags": ["power"]})

        results = self.service.search("po")
        self.assertEqual([(r.type, r.name, r.parent_name) for r in results], [("item", "Drill", "Tools")])

    async def test_share_ids_are_unique_tokens(self):
        garage = await self.service.create_room("Garage")
        first = await self.service.create_share("room", garage.id)
        second = await self.service.create_share("room", garage.id)

        self.assertNotEqual(first.id, second.id)
        self.assertGreaterEqual(len(first.id), 20)
        self.assertEqual(await self.service.get_share(first.id), first)

        await self.service.delete_share(first.id)
        self.assertIsNone(await self.service.get_share(first.id))

    async def test_share_id_collisions_are_retried(self):
        backend = CrowdedShareBackend(self.local, taken=2)
        service = InventoryService(backend)
        await service.load()
        room = await service.create_room("Garage")

        share = await service.create_share("room", room.id)

        self.assertEqual(backend.checked, 3)
        self.assertIsNotNone(share.id)

    async def test_share_id_allocation_gives_up(self):
        service = InventoryService(CrowdedShareBackend(self.local, taken=SHARE_ID_ATTEMPTS))
        await service.load()
        with self.assertRaises(RuntimeError):
            await service.create_share("room", "r1")

    async def test_failed_activity_write_does_not_fail_the_mutation(self):
        service = InventoryService(NoActivityBackend(self.local))
        await service.load()

        room = await service.create_room("Garage")

        self.assertEqual(service.get_room(room.id).name, "Garage")
        self.assertEqual(service.activities, [])

    async def test_read_failure_falls_back(self):
        await self.service.create_room("Attic")
        service = InventoryService(UnreachableBackend(LocalStore(MemoryKeyValueStore())), fallback=LocalBackend(self.local))

        await service.load()

        self.assertTrue(service.is_using_remote)
        self.assertEqual([r.name for r in service.rooms], ["Attic"])

    async def test_read_failure_without_fallback_keeps_cache(self):
        service = InventoryService(UnreachableBackend(self.local))
        doc = await service.load()
        self.assertEqual(doc.rooms, [])
        self.assertIs(service.state, LoadState.READY)

    async def test_stale_reload_does_not_overwrite_newer_state(self):
        backend = GatedBackend(self.local)
        service = InventoryService(backend)
        await service.load()

        gate = asyncio.Event()
        backend.gate = gate
        stale = asyncio.create_task(service.refresh())
        await asyncio.sleep(0)
        backend.gate = None

        await service.create_room("Attic")
        gate.set()
        await stale

        self.assertEqual([r.name for r in service.rooms], ["Attic"])

    async def test_background_reconcile(self):
        service = InventoryService(LocalBackend(self.local), reconcile_in_background=True)
        await service.load()

        room = await service.create_room("Attic")
        self.assertIsNotNone(service.get_room(room.id))

        await service.wait_reconciled()
        self.assertEqual([r.id for r in service.rooms], [room.id])
        self.assertEqual(len(service.activities), 1)


class SharedViewTest(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.service = InventoryService(LocalBackend(LocalStore(MemoryKeyValueStore())))
        await self.service.load()
        self.garage = await self.service.create_room("Garage")
        self.tools = await self.service.create_box(self.garage.id, "Tools")
        self.drill = await self.service.create_item(self.tools.id, {"name": "Drill"})

    async def test_room_share_includes_boxes_and_items(self):
        share = await self.service.create_share("room", self.garage.id)
        view = build_shared_view(self.service.document, share)

        self.assertEqual(view.room["name"], "Garage")
        self.assertEqual([b["name"] for b in view.boxes], ["Tools"])
        self.assertEqual([i["name"] for i in view.items], ["Drill"])

    async def test_item_share_includes_its_box(self):
        share = await self.service.create_share("item", self.drill.id)
        view = build_shared_view(self.service.document, share)

        self.assertEqual(view.item["name"], "Drill")
        self.assertEqual(view.box["name"], "Tools")
        self.assertEqual(view.items, [])

    async def test_share_of_deleted_resource(self):
        share = await self.service.create_share("box", self.tools.id)
        await self.service.delete_box(self.tools.id)

        self.assertIsNone(build_shared_view(self.service.document, share))


class CachedAccessTest(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.service = InventoryService(LocalBackend(LocalStore(MemoryKeyValueStore())))
        await self.service.load()
        self.garage = await self.service.create_room("Garage")
        self.tools = await self.service.create_box(self.garage.id, "Tools")

    async def test_get_resource_reads_the_cache_without_copying(self):
        self.assertIs(self.service.get_resource("room", self.garage.id), self.service.get_room(self.garage.id))
        self.assertIs(self.service.get_resource("box", self.tools.id), self.service.get_box(self.tools.id))
        self.assertIsNone(self.service.get_resource("item", self.tools.id))

    async def test_sort_and_shared_view_use_the_cache(self):
        await self.service.create_room("attic")
        share = await self.service.create_share("room", self.garage.id)

        self.assertEqual([r.name for r in self.service.sort_rooms(sort_by="boxes", direction="desc")], ["Garage", "attic"])
        self.assertEqual([b["name"] for b in self.service.shared_view(share).boxes], ["Tools"])


class LocalBackendTest(unittest.IsolatedAsyncioTestCase):
    async def test_store_calls_run_off_the_event_loop_thread(self):
        store = ThreadRecordingStore(MemoryKeyValueStore())
        backend = LocalBackend(store)

        room = await backend.create(EntityKind.ROOMS, {"name": "Garage"})
        doc = await backend.load()

        self.assertEqual([r.id for r in doc.rooms], [room.id])
        self.assertTrue(store.threads)
        self.assertNotIn(threading.get_ident(), store.threads)
