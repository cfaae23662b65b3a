import logging
from typing import Callable, Optional

from .schemas import CustomerOut, OrderItemOut, OrderOut

logger= logging.getLogger(__name__)

class IndexCache:
    """In-memory secondary indexes mirroring the store.

    - customer_by_id: id -> customer
    - customer_by_email: lowercased email -> the same customer object
    - orders_by_customer_id: customer id -> orders owned by that customer
    - items_by_order_id: order id -> items owned by that order

    The cache starts empty, is filled by load_all and is then kept in step
    by the flows, each of which writes the store first and mirrors the write
    here afterwards. A later load_all replaces every index, it never merges.
    Not thread safe: one flow runs to completion before the next starts.
    """

    def __init__(self):
        self.customer_by_id: dict[int, CustomerOut] = {}
        self.customer_by_email: dict[str, CustomerOut] = {}
        self.orders_by_customer_id: dict[int, list[OrderOut]] = {}
        self.items_by_order_id: dict[int, list[OrderItemOut]] = {}

    def clear(self):
        self.customer_by_id.clear()
        self.customer_by_email.clear()
        self.orders_by_customer_id.clear()
        self.items_by_order_id.clear()

    def load_all(self, store):
        """Rebuild every index from the store.

        If a store read fails the cache is left empty and the error propagates.
        """
        self.clear()
        try:
            customers= store.get_all_customers()
            orders= store.get_all_orders()
            items= store.get_all_order_items()
        except Exception:
            logger.exception("Loading the cache from the store failed, cache left empty")
            raise
        for customer in customers:
            self.insert_customer(customer)
        for order in orders:
            self.insert_order(order)
        for item in items:
            self.insert_item(item)
        logger.info(f"Cache loaded: customers={len(customers)}, orders={len(orders)}, items={len(items)}")

    def counts(self) -> tuple[int, int, int]:
        orders= sum(len(group) for group in self.orders_by_customer_id.values())
        items= sum(len(group) for group in self.items_by_order_id.values())
        return len(self.customer_by_id), orders, items

    def insert_customer(self, customer: CustomerOut):
        # uniqueness is the caller's job
        self.customer_by_id[customer.id]= customer
        self.customer_by_email[customer.email_key]= customer

    def insert_order(self, order: OrderOut):
        self.orders_by_customer_id.setdefault(order.customer_id, []).append(order)

    def insert_item(self, item: OrderItemOut):
        self.items_by_order_id.setdefault(item.order_id, []).append(item)

    def remove_customer(self, customer_id: int) -> bool:
        """Drop a customer with its orders and their items.

        :return: whether the customer was present in customer_by_id
        """
        removed= self.customer_by_id.pop(customer_id, None) is not None
        # scan by id, the email key may not be recoverable from a missing entry
        email_key= next(
            (key for key, customer in self.customer_by_email.items() if customer.id == customer_id),
            None,
        )
        if email_key is not None:
            del self.customer_by_email[email_key]
        for order in self.orders_by_customer_id.pop(customer_id, []):
            self.items_by_order_id.pop(order.id, None)
        return removed

    def find_by_customer_id(self, customer_id: int) -> Optional[CustomerOut]:
        return self.customer_by_id.get(customer_id)

    def find_by_email(self, email: str) -> Optional[CustomerOut]:
        return self.customer_by_email.get(email.strip().lower())

    def orders_of(self, customer_id: int) -> list[OrderOut]:
        return sorted(self.orders_by_customer_id.get(customer_id, []), key=lambda o: o.order_date)

    def items_of(self, order_id: int) -> list[OrderItemOut]:
        return list(self.items_by_order_id.get(order_id, []))

    def filter_orders(self, predicate: Callable[[OrderOut], bool]) -> list[OrderOut]:
        return [o for group in self.orders_by_customer_id.values() for o in group if predicate(o)]

    def filter_items(self, predicate: Callable[[OrderItemOut], bool]) -> list[OrderItemOut]:
        return [i for group in self.items_by_order_id.values() for i in group if predicate(i)]

    def contains_order(self, order_id: int) -> bool:
        return any(o.id == order_id for group in self.orders_by_customer_id.values() for o in group)

    def contains_item(self, item_id: int) -> bool:
        return any(i.id == item_id for group in self.items_by_order_id.values() for i in group)
