from datetime import datetime
from decimal import Decimal, InvalidOperation
import logging
import os

from . import flows
from .cache import IndexCache
from .db import SessionLocal, init_db
from .store import Store

LOG_PATH= os.getenv('LOG_PATH', 'logs')
LOG_LEVEL= os.getenv('LOG_LEVEL', 'INFO').upper()
logger= logging.getLogger(__name__)

MENU = """
=== Customer Orders Lookup ===
1) Refresh cache (reload indexes from DB)
2) Add customer
3) Create order for customer
4) Add item to order
5) View customer orders
6) Find all orders after a date
7) Find all items with Quantity > 2
8) Delete customer (verify removed from DB + cache)
9) Find customer by email (case-insensitive)
0) Exit"""


def configure_logging():
    os.makedirs(LOG_PATH, exist_ok=True)
    logging.basicConfig(
        filename=f'{LOG_PATH}/customer_orders.log',
        level=LOG_LEVEL,
        filemode='a',
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def _parse_int(text):
    try:
        return int(text.strip())
    except (AttributeError, ValueError):
        return None

def _print_counts(cache, write):
    customers, orders, items= cache.counts()
    write(f"Cache counts -> Customers: {customers}, Orders: {orders}, Items: {items}")


def refresh(store, cache, read, write):
    result= flows.refresh_cache(store, cache)
    write(result.message)
    if result.success:
        _print_counts(cache, write)

def add_customer(store, cache, read, write):
    name= read("Name: ")
    email= read("Email: ")
    result= flows.add_customer(store, cache, name, email)
    write(result.message)
    if result.success:
        write(f"Check -> existsInDb={result.exists_in_db}, existsInCache={result.exists_in_cache}")

def add_order(store, cache, read, write):
    customer_id= _parse_int(read("CustomerId: "))
    if customer_id is None:
        write("Invalid CustomerId.")
        return
    result= flows.add_order(store, cache, customer_id)
    write(result.message)
    if result.success:
        write(f"Check -> orderExistsInDb={result.exists_in_db}, orderExistsInCache={result.exists_in_cache}")

def add_item(store, cache, read, write):
    order_id= _parse_int(read("OrderId: "))
    if order_id is None:
        write("Invalid OrderId.")
        return
    product= read("Product name: ")
    quantity= _parse_int(read("Quantity: "))
    if quantity is None or quantity <= 0:
        write("Invalid quantity.")
        return
    try:
        price= Decimal(read("Price: ").strip())
    except InvalidOperation:
        write("Invalid price.")
        return
    if not price.is_finite() or price < 0:
        write("Invalid price.")
        return
    result= flows.add_item(store, cache, order_id, product, quantity, price)
    write(result.message)
    if result.success:
        write(f"Check -> existsInCache={result.exists_in_cache}")

def view_customer_orders(store, cache, read, write):
    customer_id= _parse_int(read("CustomerId: "))
    if customer_id is None:
        write("Invalid CustomerId.")
        return
    view= flows.view_customer_orders(cache, customer_id)
    if not view.found:
        write("Customer not found in cache.")
        return
    write(f"Customer: {view.customer.name} ({view.customer.email})")
    if not view.orders:
        write("No orders found.")
        return
    for entry in view.orders:
        write(f"  OrderId={entry.order.id} Date={entry.order.order_date:%Y-%m-%d}")
        if not entry.has_items:
            write("    (no items yet)")
        for item in entry.items:
            write(f"    - {item.product_name} Qty={item.quantity} Price={item.price}")

def find_orders_after(store, cache, read, write):
    text= read("Enter date (yyyy-MM-dd): ").strip()
    try:
        after= datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        write("Invalid date format.")
        return
    found= flows.find_orders_after(cache, after)
    write(f"Orders after {after:%Y-%m-%d}: {len(found.orders)} (foundAny={found.found_any})")
    for order in found.orders:
        write(f"  OrderId={order.id} CustomerId={order.customer_id} Date={order.order_date:%Y-%m-%d}")

def find_items_over_two(store, cache, read, write):
    found= flows.find_items_with_quantity_over(cache, 2)
    write(f"Items with Quantity > {found.threshold}: {len(found.items)} (foundAny={found.found_any})")
    for item in found.items:
        write(f"  OrderId={item.order_id} ItemId={item.id} {item.product_name} Qty={item.quantity} Price={item.price}")

def delete_customer(store, cache, read, write):
    customer_id= _parse_int(read("CustomerId to delete: "))
    if customer_id is None:
        write("Invalid CustomerId.")
        return
    result= flows.delete_customer(store, cache, customer_id)
    if not result.store_succeeded:
        write(result.message)
        return
    write(f"Delete attempted -> deletedInDb={result.deleted_in_db}")
    write(f"Check -> stillExistsInDb={result.still_exists_in_db} (should be false)")
    write(f"Cache -> removedFromCache={result.removed_from_cache}, removedFullyFromCache={result.removed_fully_from_cache}")

def find_customer_by_email(store, cache, read, write):
    lookup= flows.find_customer_by_email(cache, read("Email: "))
    write(f"found={lookup.found}")
    if lookup.found:
        c= lookup.customer
        write(f"CustomerId={c.id}, Name={c.name}, Email={c.email}")


ACTIONS = {
    "1": refresh,
    "2": add_customer,
    "3": add_order,
    "4": add_item,
    "5": view_customer_orders,
    "6": find_orders_after,
    "7": find_items_over_two,
    "8": delete_customer,
    "9": find_customer_by_email,
}

def run(store, cache, read=input, write=print):
    """Menu loop; returns when the user picks 0 or input ends."""
    while True:
        write(MENU)
        try:
            choice= read("Choose: ").strip()
        except EOFError:
            return
        write("")
        if choice == "0":
            return
        action= ACTIONS.get(choice)
        if action is None:
            write("Unknown option.")
            continue
        try:
            action(store, cache, read, write)
        except EOFError:
            return

def main():
    configure_logging()
    init_db()
    store= Store(SessionLocal)
    cache= IndexCache()
    cache.load_all(store)
    logger.info("Customer orders lookup started")
    run(store, cache)
    logger.info("Customer orders lookup stopped")

if __name__ == "__main__":
    main()
