"""User-triggered operations over the store and the index cache.

Mutation flows run validate -> store precondition -> store write -> cache
mirror -> post-checks, in that order. The mirror never runs unless the store
write returned a usable id, so the cache can lag behind the store but never
hold a row the store lacks. Query flows read the cache only.

Every flow returns a result model instead of printing; presentation is left
to the caller.
"""
from datetime import date
from decimal import Decimal
import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from .errors import ConstraintViolation, CustomerOrdersError, NotFound, StoreUnavailable, ValidationError
from .schemas import (
    CacheRefreshed, CustomerAdded, CustomerCreate, CustomerDeleted, CustomerLookup, CustomerOrdersView,
    CustomerOut, ItemAdded, ItemsFound, OrderCreated, OrderItemCreate, OrderItemOut, OrderOut,
    OrdersFound, OrderWithItems,
)

logger= logging.getLogger(__name__)


def _failed(result_cls, error: CustomerOrdersError, **fields):
    return result_cls(success=False, message=error.message, error=error.kind, **fields)

def _validation_error(e: PydanticValidationError) -> ValidationError:
    err= e.errors()[0]
    field= ".".join(str(part) for part in err["loc"])
    msg= err["msg"].removeprefix("Value error, ")
    return ValidationError(f"Invalid {field}: {msg}")

def _check_store(check, entity_id: int) -> bool:
    """Post-write existence check; a store failure here reads as 'not found'."""
    try:
        return check(entity_id)
    except StoreUnavailable:
        logger.exception(f"Post-write store check for id {entity_id} failed")
        return False

def _mirror(action, entity) -> bool:
    try:
        action(entity)
        return True
    except Exception:
        logger.exception(f"Cache mirror of {entity!r} failed, cache is behind the store until the next refresh")
        return False


def refresh_cache(store, cache) -> CacheRefreshed:
    try:
        cache.load_all(store)
    except StoreUnavailable as e:
        return _failed(CacheRefreshed, e)
    customers, orders, items= cache.counts()
    return CacheRefreshed(
        success=True, message="Cache refreshed.", store_succeeded=True, cache_succeeded=True,
        customers=customers, orders=orders, items=items,
    )

def add_customer(store, cache, name: str, email: str) -> CustomerAdded:
    """Register a customer in the store, then mirror it into the cache.

    :param store: the Store collaborator
    :param cache: the IndexCache to keep in step
    :param name: customer name, required
    :param email: customer email, required and unique ignoring case
    :return: result with the new id and the existsInDb/existsInCache checks
    :rtype: CustomerAdded
    """
    try:
        payload= CustomerCreate(name=name, email=email)
    except PydanticValidationError as e:
        error= _validation_error(e)
        logger.warning(f"Rejected customer input: {error.message}")
        return _failed(CustomerAdded, error)

    try:
        if store.customer_exists_by_email(payload.email):
            raise ConstraintViolation("A customer with that email already exists.")
        new_id= store.add_customer(payload.name, payload.email)
    except CustomerOrdersError as e:
        logger.warning(f"Customer not added: {e.message}")
        return _failed(CustomerAdded, e)

    exists_in_db= _check_store(store.customer_exists_by_id, new_id)
    customer= CustomerOut(id=new_id, name=payload.name, email=payload.email)
    cache_ok= _mirror(cache.insert_customer, customer)
    exists_in_cache= cache.find_by_customer_id(new_id) is not None
    logger.info(f"Added customer {customer.model_dump()} existsInDb={exists_in_db} existsInCache={exists_in_cache}")
    return CustomerAdded(
        success=True, message=f"Customer added. Id={new_id}",
        store_succeeded=True, cache_succeeded=cache_ok,
        customer_id=new_id, exists_in_db=exists_in_db, exists_in_cache=exists_in_cache,
    )

def add_order(store, cache, customer_id: int, order_date: Optional[date] = None) -> OrderCreated:
    """Create an order dated today for a customer known to the cache.

    The customer check deliberately consults the cache rather than the
    store; a customer the cache has not loaded yet is reported as not found.
    """
    order_date= order_date or date.today()
    if cache.find_by_customer_id(customer_id) is None:
        logger.warning(f"Order rejected, customer {customer_id} not in cache")
        return _failed(
            OrderCreated, NotFound("Customer not found in cache. Try refreshing cache."),
            customer_id=customer_id,
        )

    try:
        order_id= store.add_order(customer_id, order_date)
    except CustomerOrdersError as e:
        logger.warning(f"Order not created for customer {customer_id}: {e.message}")
        return _failed(OrderCreated, e, customer_id=customer_id)

    exists_in_db= _check_store(store.order_exists, order_id)
    order= OrderOut(id=order_id, customer_id=customer_id, order_date=order_date)
    cache_ok= _mirror(cache.insert_order, order)
    exists_in_cache= cache.contains_order(order_id)
    logger.info(f"Created order {order.model_dump()} existsInDb={exists_in_db} existsInCache={exists_in_cache}")
    return OrderCreated(
        success=True,
        message=f"Order created. OrderId={order_id} for CustomerId={customer_id} on {order_date:%Y-%m-%d}",
        store_succeeded=True, cache_succeeded=cache_ok,
        order_id=order_id, customer_id=customer_id, order_date=order_date,
        exists_in_db=exists_in_db, exists_in_cache=exists_in_cache,
    )

def add_item(store, cache, order_id: int, product_name: str, quantity: int, price: Decimal) -> ItemAdded:
    try:
        payload= OrderItemCreate(order_id=order_id, product_name=product_name, quantity=quantity, price=price)
    except PydanticValidationError as e:
        error= _validation_error(e)
        logger.warning(f"Rejected item input: {error.message}")
        return _failed(ItemAdded, error)

    try:
        if not store.order_exists(payload.order_id):
            raise NotFound("Order not found in DB.")
        item_id= store.add_order_item(payload.order_id, payload.product_name, payload.quantity, payload.price)
    except CustomerOrdersError as e:
        logger.warning(f"Item not added to order {order_id}: {e.message}")
        return _failed(ItemAdded, e)

    item= OrderItemOut(id=item_id, **payload.model_dump())
    cache_ok= _mirror(cache.insert_item, item)
    exists_in_cache= cache.contains_item(item_id)
    logger.info(f"Added item {item.model_dump()} existsInCache={exists_in_cache}")
    return ItemAdded(
        success=True,
        message=f"Item added. OrderItemId={item_id} -> {item.product_name} x{item.quantity} @ {item.price}",
        store_succeeded=True, cache_succeeded=cache_ok,
        item=item, exists_in_cache=exists_in_cache,
    )

def delete_customer(store, cache, customer_id: int) -> CustomerDeleted:
    """Delete a customer from the store (cascading), then drop it, its orders
    and their items from the cache.

    The cache removal runs even when the store had no such row, which clears
    a stale cache entry for a customer deleted elsewhere.
    """
    try:
        deleted_in_db= store.delete_customer(customer_id)
    except CustomerOrdersError as e:
        logger.warning(f"Customer {customer_id} not deleted: {e.message}")
        return _failed(CustomerDeleted, e, customer_id=customer_id)

    still_exists_in_db= _check_store(store.customer_exists_by_id, customer_id)
    try:
        removed_from_cache= cache.remove_customer(customer_id)
        cache_ok= True
    except Exception:
        logger.exception(f"Cache removal of customer {customer_id} failed, next refresh heals it")
        removed_from_cache, cache_ok= False, False
    removed_fully= cache.find_by_customer_id(customer_id) is None and not cache.orders_of(customer_id)
    logger.info(
        f"Delete customer {customer_id}: deletedInDb={deleted_in_db} stillExistsInDb={still_exists_in_db} "
        f"removedFromCache={removed_from_cache} removedFullyFromCache={removed_fully}"
    )
    if deleted_in_db:
        message= f"Customer {customer_id} deleted."
        error= None
    else:
        message= f"Customer {customer_id} not found in DB."
        error= NotFound.kind
    return CustomerDeleted(
        success=deleted_in_db, message=message, error=error,
        store_succeeded=True, cache_succeeded=cache_ok,
        customer_id=customer_id, deleted_in_db=deleted_in_db, still_exists_in_db=still_exists_in_db,
        removed_from_cache=removed_from_cache, removed_fully_from_cache=removed_fully,
    )


def view_customer_orders(cache, customer_id: int) -> CustomerOrdersView:
    customer= cache.find_by_customer_id(customer_id)
    if customer is None:
        return CustomerOrdersView(found=False)
    orders= [OrderWithItems(order=o, items=cache.items_of(o.id)) for o in cache.orders_of(customer_id)]
    return CustomerOrdersView(found=True, customer=customer, orders=orders)

def find_orders_after(cache, after: date) -> OrdersFound:
    return OrdersFound(after=after, orders=cache.filter_orders(lambda o: o.order_date > after))

def find_items_with_quantity_over(cache, threshold: int = 2) -> ItemsFound:
    return ItemsFound(threshold=threshold, items=cache.filter_items(lambda i: i.quantity > threshold))

def find_customer_by_email(cache, email: str) -> CustomerLookup:
    customer= cache.find_by_email(email)
    return CustomerLookup(found=customer is not None, customer=customer)
