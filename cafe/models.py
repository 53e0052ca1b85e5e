# domain models

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class Role(Enum):
    """stored in USERS.type"""
    CUSTOMER = "Customer"
    EMPLOYEE = "Employee"
    MANAGER = "Manager"

    @property
    def is_staff(self) -> bool:
        return self is not Role.CUSTOMER


class MenuField(Enum):
    """menu column a single update touches"""
    NAME = "itemName"
    TYPE = "type"
    PRICE = "price"
    DESCRIPTION = "description"
    IMAGE_URL = "imageURL"


class ProfileField(Enum):
    """user column a profile update touches (role goes through promote_user_role)"""
    LOGIN = "login"
    PHONE = "phoneNum"
    PASSWORD = "password"
    FAVORITE_ITEMS = "favItems"


class OrderField(Enum):
    """order column an order update touches"""
    ORDER_ID = "orderid"
    LOGIN = "login"
    PAID = "paid"
    TIMESTAMP_RECEIVED = "timeStampRecieved"
    TOTAL = "total"


@dataclass
class User:
    login: str
    phone: str
    favorite_items: str
    role: Role

    @classmethod
    def from_record(cls, record: dict) -> "User":
        return cls(
            login=record["login"],
            phone=record["phoneNum"] or "",
            favorite_items=record["favItems"] or "",
            role=Role(record["type"]),
        )


@dataclass
class MenuItem:
    name: str
    type: str
    price: Decimal
    description: str = ""
    image_url: str = ""

    @classmethod
    def from_record(cls, record: dict) -> "MenuItem":
        return cls(
            name=record["itemName"],
            type=record["type"],
            price=Decimal(record["price"]),
            description=record["description"] or "",
            image_url=record["imageURL"] or "",
        )


@dataclass
class Order:
    """a placed order; order_id is server-generated and never edited in place"""
    order_id: int
    login: str
    paid: bool
    timestamp_received: datetime
    total: Decimal

    @classmethod
    def from_record(cls, record: dict) -> "Order":
        return cls(
            order_id=int(record["orderid"]),
            login=record["login"],
            paid=record["paid"] in ("1", "true", "True"),
            timestamp_received=datetime.fromisoformat(record["timeStampRecieved"]),
            total=Decimal(record["total"]),
        )


@dataclass
class OrderLine:
    """one menu item inside an order, with its kitchen status"""
    order_id: int
    item_name: str
    quantity: int
    status: str
    last_updated: datetime
    comments: str = ""

    @classmethod
    def from_record(cls, record: dict) -> "OrderLine":
        return cls(
            order_id=int(record["orderid"]),
            item_name=record["itemName"],
            quantity=int(record["quantity"]),
            status=record["status"],
            last_updated=datetime.fromisoformat(record["lastUpdated"]),
            comments=record["comments"] or "",
        )
