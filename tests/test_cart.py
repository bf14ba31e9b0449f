from decimal import Decimal

from storefront.catalog import get_dish
from storefront.models import CartChangeKind
from storefront.services.cart import CartStore, badge_label

STEAK_CHOICES = {"c1": "c1o2", "c2": "c2o3"}


def test_add_plain_dish(cart):
    result = cart.add_item(get_dish("d1"), 2)

    assert result.success
    assert not result.merged
    assert result.line_item.quantity == 2
    assert cart.item_count == 2
    assert len(cart) == 1


def test_identical_customization_merges(cart, steak):
    first = cart.add_item(steak, 1, STEAK_CHOICES)
    second = cart.add_item(steak, 2, {"c2": "c2o3", "c1": "c1o2"})

    assert second.merged
    assert second.line_item.line_item_id == first.line_item.line_item_id
    assert second.line_item.quantity == 3
    assert len(cart) == 1


def test_different_customization_is_separate_line(cart, steak):
    cart.add_item(steak, 1, STEAK_CHOICES)
    result = cart.add_item(steak, 1, {"c1": "c1o4", "c2": "c2o1"})

    assert not result.merged
    assert len(cart) == 2
    assert cart.item_count == 2


def test_customization_failure_leaves_cart_unchanged(cart, steak):
    events = []
    cart.subscribe(events.append)

    result = cart.add_item(steak, 1, {"c1": "c1o2"})

    assert not result.success
    assert result.error.group_id == "c2"
    assert cart.is_empty
    assert events == []


def test_line_item_carries_customization_delta(cart, steak):
    result = cart.add_item(steak, 1, {"c1": "c1o2", "c2": "c2o3", "c3": ["c3o1"]})
    item = result.line_item

    assert item.customization_delta == Decimal("3.50")
    assert item.unit_total == Decimal("31.50")
    assert [s.label for s in item.customization_selections] == [
        "Medium Rare",
        "Bearnaise",
        "Grilled Onions",
    ]


def test_set_quantity_clamps_to_one(cart):
    line_id = cart.add_item(get_dish("d2"), 2).line_item.line_item_id

    assert cart.set_quantity(line_id, -3).quantity == 1
    assert cart.set_quantity(line_id, 0).quantity == 1
    assert cart.get(line_id) is not None


def test_set_quantity_unknown_id(cart):
    assert cart.set_quantity("missing", 3) is None


def test_remove_and_clear(cart):
    line_id = cart.add_item(get_dish("d6")).line_item.line_item_id
    cart.add_item(get_dish("d7"))

    assert cart.remove_item(line_id)
    assert not cart.remove_item(line_id)
    assert len(cart) == 1

    cart.clear()
    assert cart.is_empty
    assert cart.item_count == 0


def test_snapshot_is_immutable_copy(cart):
    cart.add_item(get_dish("d1"))
    snapshot = cart.snapshot()
    cart.add_item(get_dish("d2"))

    assert len(snapshot) == 1
    assert len(cart.snapshot()) == 2


def test_subscribers_notified_once_per_change(cart):
    events = []
    unsubscribe = cart.subscribe(events.append)

    line_id = cart.add_item(get_dish("d1")).line_item.line_item_id
    cart.set_quantity(line_id, 4)
    cart.set_quantity(line_id, 4)  # no change, no event
    cart.remove_item(line_id)
    cart.clear()  # already empty, no event

    assert [e.kind for e in events] == [
        CartChangeKind.ADDED,
        CartChangeKind.UPDATED,
        CartChangeKind.REMOVED,
    ]
    assert events[1].item_count == 4

    unsubscribe()
    cart.add_item(get_dish("d1"))
    assert len(events) == 3


def test_animate_trigger_moves_only_on_add(cart):
    line_id = cart.add_item(get_dish("d1")).line_item.line_item_id
    cart.add_item(get_dish("d1"))
    assert cart.animate_trigger == 2

    cart.set_quantity(line_id, 5)
    cart.remove_item(line_id)
    assert cart.animate_trigger == 2


def test_failing_listener_does_not_block_others(cart):
    seen = []

    def broken(change):
        raise RuntimeError("boom")

    cart.subscribe(broken)
    cart.subscribe(seen.append)
    cart.add_item(get_dish("d1"))

    assert len(seen) == 1


def test_badge_label():
    assert badge_label(0) == ""
    assert badge_label(7) == "7"
    assert badge_label(99) == "99"
    assert badge_label(150) == "99+"


def test_stores_are_independent():
    a, b = CartStore(), CartStore()
    a.add_item(get_dish("d1"))
    assert b.is_empty
