from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

class CustomerOut(BaseModel):
    """A cached customer. Indexed by id and by lowercased email.
    """
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True

    @property
    def email_key(self) -> str:
        return self.email.lower()

class OrderOut(BaseModel):
    id: int
    customer_id: int
    order_date: date

    class Config:
        from_attributes = True

class OrderItemOut(BaseModel):
    id: int
    order_id: int
    product_name: str
    quantity: int
    price: Decimal

    class Config:
        from_attributes = True

class CustomerCreate(BaseModel):
    """Schema for the add-customer flow input.
    """
    name: str
    email: EmailStr

    @field_validator("name", mode="before")
    @classmethod
    def name_not_blank(cls, value):
        if value is None or not str(value).strip():
            raise ValueError("Name is required.")
        return str(value).strip()

    @field_validator("email", mode="before")
    @classmethod
    def email_not_blank(cls, value):
        if value is None or not str(value).strip():
            raise ValueError("Email is required.")
        return str(value).strip()

class OrderItemCreate(BaseModel):
    """Schema for the add-item flow input.
    """
    order_id: int
    product_name: str
    quantity: int = Field(gt=0)
    # same precision as Numeric(10,2) in the store
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)

    @field_validator("product_name", mode="before")
    @classmethod
    def product_not_blank(cls, value):
        if value is None or not str(value).strip():
            raise ValueError("Product name is required.")
        return str(value).strip()


class FlowResult(BaseModel):
    """Outcome of one flow. store_succeeded/cache_succeeded expose divergence
    between the store write and its cache mirror.
    """
    success: bool
    message: str
    error: Optional[str] = None
    store_succeeded: bool = False
    cache_succeeded: bool = False

class CacheRefreshed(FlowResult):
    customers: int = 0
    orders: int = 0
    items: int = 0

class CustomerAdded(FlowResult):
    customer_id: Optional[int] = None
    exists_in_db: bool = False
    exists_in_cache: bool = False

class OrderCreated(FlowResult):
    order_id: Optional[int] = None
    customer_id: Optional[int] = None
    order_date: Optional[date] = None
    exists_in_db: bool = False
    exists_in_cache: bool = False

class ItemAdded(FlowResult):
    item: Optional[OrderItemOut] = None
    exists_in_cache: bool = False

class CustomerDeleted(FlowResult):
    customer_id: int
    deleted_in_db: bool = False
    still_exists_in_db: bool = False
    removed_from_cache: bool = False
    removed_fully_from_cache: bool = False


class OrderWithItems(BaseModel):
    order: OrderOut
    items: list[OrderItemOut] = []

    @property
    def has_items(self) -> bool:
        return len(self.items) > 0

class CustomerOrdersView(BaseModel):
    found: bool
    customer: Optional[CustomerOut] = None
    orders: list[OrderWithItems] = []

class OrdersFound(BaseModel):
    after: date
    orders: list[OrderOut] = []

    @property
    def found_any(self) -> bool:
        return len(self.orders) > 0

class ItemsFound(BaseModel):
    threshold: int
    items: list[OrderItemOut] = []

    @property
    def found_any(self) -> bool:
        return len(self.items) > 0

class CustomerLookup(BaseModel):
    found: bool
    customer: Optional[CustomerOut] = None
