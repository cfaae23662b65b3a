from contextlib import contextmanager
from datetime import date
from decimal import Decimal
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

from .errors import ConstraintViolation, NotFound, StoreUnavailable
from .models import Customer, Order, OrderItem
from .schemas import CustomerOut, OrderItemOut, OrderOut

logger= logging.getLogger(__name__)

class Store:
    """Durable storage for customers, orders and order items.

    Every call opens its own short-lived session and releases it before
    returning, whether the call succeeds or raises.

    :param session_factory: a configured ``sessionmaker``
    """

    def __init__(self, session_factory):
        self.session_factory= session_factory

    @contextmanager
    def _session(self, on_integrity_error=ConstraintViolation):
        """Yield a session inside a transaction: commit on success,
        rollback otherwise. SQLAlchemy errors are mapped to the store taxonomy.
        """
        try:
            with self.session_factory() as session:
                with session.begin():
                    yield session
        except IntegrityError as e:
            logger.error(f"Store integrity error: {e}")
            raise on_integrity_error(f"Store rejected the row: {e.orig}") from e
        except DBAPIError as e:
            logger.error(f"Store driver error: {e}")
            raise StoreUnavailable(f"Store unavailable: {e.orig}") from e
        except SQLAlchemyError as e:
            logger.error(f"Store error: {e}")
            raise StoreUnavailable(f"Store operation failed: {e}") from e

    def add_customer(self, name: str, email: str) -> int:
        """Insert a customer row.

        :raises ConstraintViolation: if the email is already registered, ignoring case
        :return: the store-assigned customer id
        """
        with self._session() as session:
            if self._email_taken(session, email):
                raise ConstraintViolation("A customer with that email already exists.")
            new_customer= Customer(name=name, email=email, email_key=email.lower())
            session.add(new_customer)
            session.flush()
            logger.info(f"Stored new customer: {new_customer.to_dict()}")
            return new_customer.id

    def customer_exists_by_id(self, customer_id: int) -> bool:
        with self._session() as session:
            return session.execute(
                select(Customer.id).where(Customer.id == customer_id).limit(1)
            ).first() is not None

    def customer_exists_by_email(self, email: str) -> bool:
        with self._session() as session:
            return self._email_taken(session, email)

    @staticmethod
    def _email_taken(session, email: str) -> bool:
        return session.execute(
            select(Customer.id).where(Customer.email_key == email.lower()).limit(1)
        ).first() is not None

    def delete_customer(self, customer_id: int) -> bool:
        """Delete a customer; the foreign keys cascade to its orders and their items.

        :return: True iff a row was removed
        """
        with self._session() as session:
            result= session.execute(delete(Customer).where(Customer.id == customer_id))
            deleted= result.rowcount > 0
        logger.info(f"Deleted customer {customer_id} from store: {deleted}")
        return deleted

    def add_order(self, customer_id: int, order_date: date) -> int:
        with self._session(on_integrity_error=NotFound) as session:
            new_order= Order(customer_id=customer_id, order_date=order_date)
            session.add(new_order)
            session.flush()
            logger.info(f"Stored new order: {new_order.to_dict()}")
            return new_order.id

    def order_exists(self, order_id: int) -> bool:
        with self._session() as session:
            return session.execute(
                select(Order.id).where(Order.id == order_id).limit(1)
            ).first() is not None

    def add_order_item(self, order_id: int, product_name: str, quantity: int, price: Decimal) -> int:
        with self._session(on_integrity_error=NotFound) as session:
            new_item= OrderItem(order_id=order_id, product_name=product_name, quantity=quantity, price=price)
            session.add(new_item)
            session.flush()
            logger.info(f"Stored new order item: {new_item.to_dict()}")
            return new_item.id

    def get_all_customers(self) -> list[CustomerOut]:
        with self._session() as session:
            rows= session.scalars(select(Customer).order_by(Customer.id)).all()
            return [CustomerOut.model_validate(row) for row in rows]

    def get_all_orders(self) -> list[OrderOut]:
        with self._session() as session:
            rows= session.scalars(select(Order).order_by(Order.id)).all()
            return [OrderOut.model_validate(row) for row in rows]

    def get_all_order_items(self) -> list[OrderItemOut]:
        with self._session() as session:
            rows= session.scalars(select(OrderItem).order_by(OrderItem.id)).all()
            return [OrderItemOut.model_validate(row) for row in rows]
