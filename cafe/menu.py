# menu browsing + manager-only menu editing

import logging
from decimal import Decimal, InvalidOperation

from cafe.accounts import require_role
from cafe.config import MAX_AMOUNT
from cafe.db import Database
from cafe.errors import ConflictError, NotFoundError, StorageError, ValidationError
from cafe.models import MenuField, MenuItem, Role, User

logger = logging.getLogger(__name__)

MENU_COLUMNS = "itemName, type, price, description, imageURL"


def parse_price(value: str | Decimal) -> Decimal:
    """turn user input into a non-negative decimal price"""
    try:
        price = Decimal(str(value).strip().lstrip("$"))
    except InvalidOperation:
        raise ValidationError(f"invalid price '{value}'") from None
    if not price.is_finite() or price < 0:
        raise ValidationError("price must be a non-negative number")
    if price > Decimal(MAX_AMOUNT):
        raise ValidationError(f"price must be at most ${MAX_AMOUNT}")
    return price


def list_menu(db: Database) -> list[MenuItem]:
    rows = db.execute_query(f"SELECT {MENU_COLUMNS} FROM MENU ORDER BY type, itemName;")
    return [MenuItem.from_record(r) for r in rows]


def list_menu_by_name(db: Database, name: str) -> list[MenuItem]:
    rows = db.execute_query(f"SELECT {MENU_COLUMNS} FROM MENU WHERE itemName = ?;", (name,))
    return [MenuItem.from_record(r) for r in rows]


def list_menu_by_type(db: Database, item_type: str) -> list[MenuItem]:
    rows = db.execute_query(
        f"SELECT {MENU_COLUMNS} FROM MENU WHERE type = ? ORDER BY itemName;",
        (item_type,)
    )
    return [MenuItem.from_record(r) for r in rows]


def get_menu_item(db: Database, name: str) -> MenuItem | None:
    items = list_menu_by_name(db, name)
    return items[0] if items else None


def menu_item_exists(db: Database, name: str) -> bool:
    return db.execute_scalar_count("SELECT 1 FROM MENU WHERE itemName = ?", (name,)) > 0


def add_menu_item(db: Database, actor: User, item: MenuItem) -> MenuItem:
    """insert a new item (managers only)"""
    require_role(db, actor, Role.MANAGER)
    if not item.name.strip():
        raise ValidationError("item name must not be blank")
    price = parse_price(item.price)
    if menu_item_exists(db, item.name):
        raise ConflictError(f"menu item '{item.name}' already exists")
    try:
        db.execute_mutation(
            f"INSERT INTO MENU ({MENU_COLUMNS}) VALUES (?, ?, ?, ?, ?);",
            (item.name, item.type, price, item.description, item.image_url)
        )
    except StorageError as e:
        if e.constraint:
            raise ConflictError(f"could not add '{item.name}': {e.message}") from e
        raise
    logger.info("%s added menu item %s", actor.login, item.name)
    return item


def delete_menu_item(db: Database, actor: User, name: str):
    """remove an item by name (managers only)"""
    require_role(db, actor, Role.MANAGER)
    if not menu_item_exists(db, name):
        raise NotFoundError("menu item", name)
    db.execute_mutation("DELETE FROM MENU WHERE itemName = ?;", (name,))
    logger.info("%s deleted menu item %s", actor.login, name)


def update_menu_item(db: Database, actor: User, name: str, field: MenuField, new_value: str) -> MenuItem:
    """change one column of one item; renaming moves the lookup key, use the returned item after"""
    require_role(db, actor, Role.MANAGER)
    if not menu_item_exists(db, name):
        raise NotFoundError("menu item", name)
    value: object = new_value
    if field is MenuField.PRICE:
        value = parse_price(new_value)
    elif field is MenuField.NAME:
        if not new_value.strip():
            raise ValidationError("item name must not be blank")
        if new_value != name and menu_item_exists(db, new_value):
            raise ConflictError(f"menu item '{new_value}' already exists")
    try:
        db.execute_mutation(
            f"UPDATE MENU SET {field.value} = ? WHERE itemName = ?;",
            (value, name)
        )
    except StorageError as e:
        if e.constraint:
            raise ConflictError(f"could not update '{name}': {e.message}") from e
        raise
    key = new_value if field is MenuField.NAME else name
    logger.info("%s updated %s of menu item %s", actor.login, field.name.lower(), key)
    return get_menu_item(db, key)
