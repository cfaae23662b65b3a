from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, String

from .db import Base, ToDictMixIn

class Customer(Base, ToDictMixIn):
    __tablename__ = "Customers"
    id = Column("CustomerId", Integer, primary_key=True, autoincrement=True)
    name = Column("Name", String, nullable=False)
    email = Column("Email", String, unique=True, index=True, nullable=False)
    # python-lowercased Email, matching the cache key; sqlite lower() only folds ASCII
    email_key = Column("EmailKey", String, unique=True, index=True, nullable=False)


class Order(Base, ToDictMixIn):
    __tablename__ = "Orders"
    id = Column("OrderId", Integer, primary_key=True, autoincrement=True)
    customer_id = Column("CustomerId", Integer, ForeignKey("Customers.CustomerId", ondelete="CASCADE"), nullable=False, index=True)
    # sqlite keeps Date as yyyy-MM-dd text
    order_date = Column("OrderDate", Date, nullable=False)


class OrderItem(Base, ToDictMixIn):
    __tablename__ = "OrderItems"
    id = Column("OrderItemId", Integer, primary_key=True, autoincrement=True)
    order_id = Column("OrderId", Integer, ForeignKey("Orders.OrderId", ondelete="CASCADE"), nullable=False, index=True)
    product_name = Column("ProductName", String, nullable=False)
    quantity = Column("Quantity", Integer, nullable=False)
    price = Column("Price", Numeric(10,2), nullable=False)
