"""
Change feed and subscription lifecycle tests.

Verifies:
- Subscribers get the current snapshot at once, then one per relevant commit
- Branch scoping, rollback and closed handles suppress deliveries
- A failed read reports an error but keeps the last good data
- Unmounted views never change again
"""

import pytest
from sqlalchemy.exc import OperationalError

from branchpos.extensions import db, feed
from branchpos.models import InventoryItem, Order
from branchpos.records import InventoryItemRecord
from branchpos.services import inventory_service
from branchpos.services.readers import read_inventory, register_readers
from branchpos.services.realtime import CollectionRef, DocRef, FeedError
from branchpos.services.subscriptions import SubscriptionManager
from branchpos.views import InventoryView, ViewContext


@pytest.fixture
def restore_readers(db_session):
    yield
    register_readers(feed)


class TestSubscribe:
    def test_initial_snapshot_then_updates(self, branch, make_item):
        item = make_item(branch, "Fries", stock=3)
        received = []
        with feed.subscribe(CollectionRef("inventory", branch.id), received.append):
            assert [[r.stock for r in snap] for snap in received] == [[3]]
            inventory_service.adjust_stock({item.id: 2})
            assert received[-1][0].stock == 5
            assert isinstance(received[-1][0], InventoryItemRecord)
        assert len(received) == 2

    def test_other_branch_commits_are_not_delivered(self, branch, other_branch, make_item):
        make_item(branch, "Fries")
        received = []
        sub = feed.subscribe(CollectionRef("inventory", branch.id), received.append)
        make_item(other_branch, "Harbor Fries")
        assert len(received) == 1
        make_item(branch, "Cola")
        assert len(received) == 2
        assert [r.name for r in received[-1]] == ["Cola", "Fries"]
        sub.close()

    def test_rolled_back_writes_are_not_published(self, branch, make_item):
        item = make_item(branch, "Fries", stock=1)
        received = []
        sub = feed.subscribe(CollectionRef("inventory", branch.id), received.append)
        with pytest.raises(ValueError):
            inventory_service.adjust_stock({item.id: -5})
        db.session.get(InventoryItem, item.id).stock = 99
        db.session.flush()
        db.session.rollback()
        feed.publish_pending()
        assert len(received) == 1
        sub.close()

    def test_close_is_idempotent_and_stops_delivery(self, branch, make_item):
        item = make_item(branch, "Fries")
        received = []
        sub = feed.subscribe(CollectionRef("inventory", branch.id), received.append)
        sub.close()
        sub.close()
        assert not sub.active
        inventory_service.adjust_stock({item.id: 1})
        assert len(received) == 1
        assert sub not in feed.active_subscriptions("inventory")

    def test_handle_closed_mid_delivery_is_skipped(self, branch, make_item):
        item = make_item(branch, "Fries")
        ref = CollectionRef("inventory", branch.id)
        second_calls = []
        second = None

        def first_callback(records):
            if second is not None:
                second.close()

        first = feed.subscribe(ref, first_callback)
        second = feed.subscribe(ref, second_calls.append)
        inventory_service.adjust_stock({item.id: 1})
        assert len(second_calls) == 1  # only the initial snapshot
        first.close()

    def test_faulty_subscriber_does_not_starve_others(self, branch, make_item):
        item = make_item(branch, "Fries")
        ref = CollectionRef("inventory", branch.id)
        received = []

        def broken(records):
            raise RuntimeError("boom")

        with feed.subscribe(ref, broken), feed.subscribe(ref, received.append):
            inventory_service.adjust_stock({item.id: 1})
        assert len(received) == 2

    def test_unknown_collection(self, db_session):
        with pytest.raises(FeedError):
            feed.subscribe(CollectionRef("nope"), lambda records: None)


class TestDocuments:
    def test_get_and_write(self, branch, make_item):
        item = make_item(branch, "Fries", stock=2)
        received = []
        with feed.subscribe(CollectionRef("inventory", branch.id), received.append):
            feed.write(DocRef("inventory", item.id), {"stock": 8})
            assert feed.get(DocRef("inventory", item.id)).stock == 8
            assert received[-1][0].stock == 8

    def test_orders_are_read_only(self, branch):
        with pytest.raises(FeedError):
            feed.write(DocRef("orders", 1), {"total_cents": 0})
        assert feed.get(DocRef("orders", 12345)) is None
        assert db.session.query(Order).count() == 0

    def test_unknown_field_is_rejected(self, branch, make_item):
        item = make_item(branch, "Fries")
        with pytest.raises(FeedError):
            feed.write(DocRef("inventory", item.id), {"colour": "red"})


class TestSubscriptionManager:
    def test_read_error_keeps_prior_data(self, branch, make_item, restore_readers):
        item = make_item(branch, "Fries", stock=4)
        changes = []
        manager = SubscriptionManager(feed, on_change=changes.append)
        with manager:
            manager.activate({"inventory": CollectionRef("inventory", branch.id)})
            assert manager.data["inventory"][0].stock == 4

            def failing(ref):
                raise OperationalError("SELECT", {}, Exception("database is locked"))

            feed.register("inventory", failing, model=InventoryItem, to_record=InventoryItemRecord.from_model)
            inventory_service.adjust_stock({item.id: 1})

            assert "inventory" in manager.errors
            assert manager.data["inventory"][0].stock == 4

            feed.register("inventory", read_inventory, model=InventoryItem, to_record=InventoryItemRecord.from_model)
            inventory_service.adjust_stock({item.id: 1})
            assert manager.errors == {}
            assert manager.data["inventory"][0].stock == 6
        assert not manager.active

    def test_activate_replaces_previous_handles(self, branch, other_branch):
        manager = SubscriptionManager(feed)
        manager.activate({"branches": CollectionRef("branches")})
        manager.activate({"inventory": CollectionRef("inventory", other_branch.id)})
        assert manager.sources == ["inventory"]
        assert feed.active_subscriptions("branches") == []
        manager.teardown()
        assert feed.active_subscriptions() == []


class TestViewTeardown:
    def test_unmounted_view_receives_no_updates(self, app, branch, make_item):
        item = make_item(branch, "Fries", stock=5)
        view = InventoryView(ViewContext.from_config(app.config, feed, branch_id=branch.id))
        view.mount()
        assert view.stats["total_items"] == 1
        version = view.version

        inventory_service.adjust_stock({item.id: 1})
        assert view.version == version + 1

        view.unmount()
        frozen_version = view.version
        frozen_items = list(view.items)
        frozen_data = dict(view.data)

        inventory_service.adjust_stock({item.id: 1})
        make_item(branch, "Cola")

        assert view.version == frozen_version
        assert view.items == frozen_items
        assert view.data == frozen_data
        assert feed.active_subscriptions() == []
