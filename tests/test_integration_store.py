from datetime import date, timedelta
from decimal import Decimal

import pytest

from customer_orders import flows
from customer_orders.errors import ConstraintViolation, NotFound

def snapshot(cache):
    return (
        {k: v.model_dump() for k, v in cache.customer_by_id.items()},
        {k: v.model_dump() for k, v in cache.customer_by_email.items()},
        {k: [o.model_dump() for o in v] for k, v in cache.orders_by_customer_id.items()},
        {k: [i.model_dump() for i in v] for k, v in cache.items_by_order_id.items()},
    )


def test_ann_scenario(store, cache):
    cache.load_all(store)

    added = flows.add_customer(store, cache, "Ann", "ann@x.com")
    assert added.customer_id == 1
    assert added.exists_in_db and added.exists_in_cache

    created = flows.add_order(store, cache, 1)
    assert created.order_id == 1
    assert created.order_date == date.today()
    assert created.exists_in_db and created.exists_in_cache

    item = flows.add_item(store, cache, 1, "Widget", 3, Decimal("9.99"))
    assert item.item.id == 1

    found = flows.find_items_with_quantity_over(cache, 2)
    assert [i.id for i in found.items] == [1]
    assert found.items[0].price == Decimal("9.99")

    deleted = flows.delete_customer(store, cache, 1)
    assert deleted.deleted_in_db is True
    assert deleted.still_exists_in_db is False
    assert deleted.removed_fully_from_cache is True
    assert cache.find_by_customer_id(1) is None
    assert cache.items_of(1) == []

@pytest.mark.parametrize("email", ["ann@x.com", "ANN@X.COM", "Ann@x.com"])
def test_reused_email_is_rejected(store, cache, email):
    cache.load_all(store)
    flows.add_customer(store, cache, "Ann", "ann@x.com")

    result = flows.add_customer(store, cache, "Bob", email)

    assert result.success is False
    assert result.error == "constraint_violation"
    assert cache.counts() == (1, 0, 0)
    assert len(store.get_all_customers()) == 1

def test_store_rejects_duplicate_email_directly(store):
    store.add_customer("Ann", "ann@x.com")
    with pytest.raises(ConstraintViolation):
        store.add_customer("Bob", "ANN@x.com")

def test_round_trip_survives_reload(store, cache):
    cache.load_all(store)
    ids = [flows.add_customer(store, cache, name, f"{name.lower()}@shop.org").customer_id for name in ("Ann", "Bob", "Cy")]

    for _ in range(2):
        for customer_id, name in zip(ids, ("Ann", "Bob", "Cy")):
            by_email = cache.find_by_email(f"{name.lower()}@shop.org")
            assert by_email is not None
            assert cache.find_by_customer_id(customer_id) == by_email
        cache.load_all(store)

def test_reload_is_idempotent(store, cache):
    cache.load_all(store)
    flows.add_customer(store, cache, "Ann", "ann@x.com")
    flows.add_customer(store, cache, "Bob", "bob@x.com")
    flows.add_order(store, cache, 1, date(2024, 1, 1))
    flows.add_order(store, cache, 2, date(2024, 2, 1))
    flows.add_item(store, cache, 1, "Widget", 3, Decimal("9.99"))
    flows.add_item(store, cache, 2, "Gadget", 1, Decimal("0.50"))

    cache.load_all(store)
    first = snapshot(cache)
    cache.load_all(store)

    assert snapshot(cache) == first
    assert cache.counts() == (2, 2, 2)

def test_mirrored_cache_matches_fresh_load(store, cache):
    cache.load_all(store)
    flows.add_customer(store, cache, "Ann", "Ann@X.com")
    flows.add_order(store, cache, 1, date(2024, 1, 1))
    flows.add_item(store, cache, 1, "Widget", 3, Decimal("9.99"))
    mirrored = snapshot(cache)

    cache.load_all(store)

    assert snapshot(cache) == mirrored

def test_delete_cascades_in_store_and_cache(store, cache):
    cache.load_all(store)
    flows.add_customer(store, cache, "Ann", "ann@x.com")
    flows.add_customer(store, cache, "Bob", "bob@x.com")
    ann_orders = [flows.add_order(store, cache, 1, date(2024, 1, d)).order_id for d in (1, 2)]
    bob_order = flows.add_order(store, cache, 2, date(2024, 1, 3)).order_id
    for order_id in ann_orders + [bob_order]:
        flows.add_item(store, cache, order_id, "Widget", 3, Decimal("1"))

    flows.delete_customer(store, cache, 1)

    assert cache.find_by_customer_id(1) is None
    assert cache.orders_of(1) == []
    for order_id in ann_orders:
        assert cache.items_of(order_id) == []
        assert store.order_exists(order_id) is False
    assert [o.id for o in store.get_all_orders()] == [bob_order]
    assert [i.order_id for i in store.get_all_order_items()] == [bob_order]
    cache.load_all(store)
    assert cache.counts() == (1, 1, 1)

def test_orders_sorted_by_date_for_any_insertion_order(store, cache):
    cache.load_all(store)
    flows.add_customer(store, cache, "Ann", "ann@x.com")
    days = [date(2024, 5, 1), date(2023, 1, 1), date(2024, 5, 1), date(2024, 2, 29)]
    for day in days:
        flows.add_order(store, cache, 1, day)

    assert [o.order_date for o in cache.orders_of(1)] == sorted(days)
    cache.load_all(store)
    assert [o.order_date for o in cache.orders_of(1)] == sorted(days)

def test_filter_orders_by_date_bounds(store, cache):
    cache.load_all(store)
    flows.add_customer(store, cache, "Ann", "ann@x.com")
    days = [date(2024, 1, 1), date(2024, 6, 1), date(2024, 12, 31)]
    for day in days:
        flows.add_order(store, cache, 1, day)

    assert len(flows.find_orders_after(cache, min(days) - timedelta(days=1)).orders) == 3
    assert flows.find_orders_after(cache, max(days)).orders == []
    middle = flows.find_orders_after(cache, date(2024, 6, 1)).orders
    assert [o.order_date for o in middle] == [date(2024, 12, 31)]

def test_add_order_ignores_customer_missing_from_cache(store, cache):
    cache.load_all(store)
    store.add_customer("Ann", "ann@x.com")

    stale = flows.add_order(store, cache, 1)
    assert stale.success is False
    assert store.get_all_orders() == []

    flows.refresh_cache(store, cache)
    assert flows.add_order(store, cache, 1).success is True

def test_add_item_to_missing_order(store, cache):
    result = flows.add_item(store, cache, 42, "Widget", 1, Decimal("1"))

    assert result.success is False
    assert result.error == "not_found"
    assert store.get_all_order_items() == []

def test_store_enforces_order_foreign_key(store):
    with pytest.raises(NotFound):
        store.add_order(99, date(2024, 1, 1))

def test_delete_unknown_customer(store, cache):
    cache.load_all(store)
    result = flows.delete_customer(store, cache, 5)

    assert result.deleted_in_db is False
    assert result.removed_from_cache is False
    assert result.removed_fully_from_cache is True

@pytest.mark.parametrize("price", [Decimal("9.9"), Decimal("0.5"), Decimal("12345678.99"), Decimal("3")])
def test_mirrored_price_matches_reloaded_price(store, cache, price):
    cache.load_all(store)
    flows.add_customer(store, cache, "Ann", "ann@x.com")
    flows.add_order(store, cache, 1, date(2024, 1, 1))

    added = flows.add_item(store, cache, 1, "Widget", 1, price)
    mirrored = cache.items_of(1)[0].price
    cache.load_all(store)

    assert added.success is True
    assert cache.items_of(1)[0].price == mirrored

def test_price_beyond_store_precision_is_rejected(store, cache):
    cache.load_all(store)
    flows.add_customer(store, cache, "Ann", "ann@x.com")
    flows.add_order(store, cache, 1, date(2024, 1, 1))

    result = flows.add_item(store, cache, 1, "Widget", 1, Decimal("1.005"))

    assert result.success is False
    assert result.error == "validation"
    assert store.get_all_order_items() == []
    assert cache.items_of(1) == []

def test_non_ascii_email_case_is_rejected(store, cache):
    cache.load_all(store)
    flows.add_customer(store, cache, "Anna", "ÄNN@x.com")

    result = flows.add_customer(store, cache, "Bob", "änn@x.com")

    assert result.success is False
    assert result.error == "constraint_violation"
    assert cache.counts() == (1, 0, 0)
    assert len(cache.customer_by_email) == 1
    assert len(store.get_all_customers()) == 1

def test_store_compares_emails_with_python_lowercase(store):
    store.add_customer("Anna", "ÄNN@x.com")

    assert store.customer_exists_by_email("änn@x.com") is True
    with pytest.raises(ConstraintViolation):
        store.add_customer("Bob", "änn@x.com")
