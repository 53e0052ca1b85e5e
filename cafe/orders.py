"""
order placement and editing

rules an order edit has to get through, in this order:
  1. the order exists (NotFoundError)
  2. it isn't paid yet; a paid order is frozen for everybody (ConflictError)
  3. the actor may touch it: staff can edit any order, customers only their own,
     and only staff may flip paid, and only to true (UnauthorizedError)
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Sequence

from cafe.accounts import current_role, require_role, user_exists
from cafe.config import CENTS, DEFAULT_HISTORY_LIMIT, MAX_AMOUNT, NEW_ITEM_STATUS
from cafe.db import Database
from cafe.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from cafe.menu import get_menu_item
from cafe.models import Order, OrderField, OrderLine, Role, User

logger = logging.getLogger(__name__)

ORDER_COLUMNS = "orderid, login, paid, timeStampRecieved, total"
LINE_COLUMNS = "orderid, itemName, quantity, lastUpdated, status, comments"

OrderRequest = Sequence[str | tuple[str, int]]


def _now() -> datetime:
    return datetime.now().replace(microsecond=0)


def _parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("y", "yes", "true", "t", "1"):
        return True
    if text in ("n", "no", "false", "f", "0"):
        return False
    raise ValidationError(f"expected yes/no, got '{value}'")


def _parse_total(value: object) -> Decimal:
    try:
        total = Decimal(str(value).strip().lstrip("$"))
    except InvalidOperation:
        raise ValidationError(f"invalid total '{value}'") from None
    if not total.is_finite() or total < 0:
        raise ValidationError("total must be a non-negative number")
    return _to_cents(total)


def _to_cents(amount: Decimal) -> Decimal:
    """round to cents, refusing anything past MAX_AMOUNT"""
    if amount > Decimal(MAX_AMOUNT):
        raise ValidationError(f"total must be at most ${MAX_AMOUNT}")
    try:
        return amount.quantize(Decimal(CENTS))
    except InvalidOperation:
        raise ValidationError(f"total '{amount}' cannot be rounded to cents") from None


def _parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"invalid timestamp '{value}' (use YYYY-MM-DD HH:MM:SS)") from None


def _tally(items: OrderRequest) -> dict[str, int]:
    """collapse ['Latte', 'Latte', ('Croissant', 2)] into {'Latte': 2, 'Croissant': 2}"""
    counts: dict[str, int] = {}
    for entry in items:
        name, qty = (entry, 1) if isinstance(entry, str) else entry
        if qty < 1:
            raise ValidationError(f"quantity for '{name}' must be at least 1")
        counts[name] = counts.get(name, 0) + qty
    return counts


# lookups
def get_order(db: Database, order_id: int) -> Order | None:
    rows = db.execute_query(f"SELECT {ORDER_COLUMNS} FROM ORDERS WHERE orderid = ?;", (order_id,))
    return Order.from_record(rows[0]) if rows else None


def get_order_lines(db: Database, order_id: int) -> list[OrderLine]:
    rows = db.execute_query(
        f"SELECT {LINE_COLUMNS} FROM ITEMSTATUS WHERE orderid = ? ORDER BY itemName;",
        (order_id,)
    )
    return [OrderLine.from_record(r) for r in rows]


def list_recent_orders(db: Database, actor: User, limit: int = DEFAULT_HISTORY_LIMIT) -> list[Order]:
    """order history, newest first; customers only ever see their own"""
    role = current_role(db, actor.login)
    if role is None:
        raise UnauthorizedError("unknown user")
    if role.is_staff:
        rows = db.execute_query(
            f"SELECT {ORDER_COLUMNS} FROM ORDERS ORDER BY timeStampRecieved DESC, orderid DESC LIMIT ?;",
            (limit,)
        )
    else:
        rows = db.execute_query(
            f"""--sql
            SELECT {ORDER_COLUMNS} FROM ORDERS WHERE login = ?
            ORDER BY timeStampRecieved DESC, orderid DESC LIMIT ?;
            """,
            (actor.login, limit)
        )
    return [Order.from_record(r) for r in rows]


# placement
def place_order(db: Database, login: str, items: OrderRequest) -> Order:
    """price the items at today's menu prices and store a fresh unpaid order"""
    counts = _tally(items)
    if not counts:
        raise ValidationError("an order needs at least one item")
    if not user_exists(db, login):
        raise NotFoundError("user", login)
    total = Decimal("0")
    for name, qty in counts.items():
        item = get_menu_item(db, name)
        if item is None:
            raise NotFoundError("menu item", name)
        total += item.price * qty
    total = _to_cents(total)
    received = _now()
    with db.transaction():
        order_id = db.execute_insert(
            "INSERT INTO ORDERS (login, paid, timeStampRecieved, total) VALUES (?, 0, ?, ?);",
            (login, received.isoformat(sep=" "), total)
        )
        for name, qty in counts.items():
            db.execute_mutation(
                f"INSERT INTO ITEMSTATUS ({LINE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?);",
                (order_id, name, qty, received.isoformat(sep=" "), NEW_ITEM_STATUS, "")
            )
    logger.info("order #%s placed by %s for %s", order_id, login, total)
    return Order(order_id=order_id, login=login, paid=False, timestamp_received=received, total=total)


# editing
def editable_order(db: Database, order_id: int, actor: User) -> tuple[Order, Role]:
    """existence, then paid, then ownership; returns the order and the actor's live role"""
    order = get_order(db, order_id)
    if order is None:
        raise NotFoundError("order", order_id)
    if order.paid:
        raise ConflictError(f"order #{order_id} is already paid")
    role = current_role(db, actor.login)
    if role is None:
        raise UnauthorizedError("unknown user")
    if not role.is_staff and order.login != actor.login:
        raise UnauthorizedError("customers can only edit their own orders")
    return order, role


def update_order_field(db: Database, order_id: int, field: OrderField, new_value: object, actor: User) -> Order:
    """change one column of an unpaid order, scoped by its id"""
    _, role = editable_order(db, order_id, actor)
    value: object
    if field is OrderField.ORDER_ID:
        raise ConflictError("order ids are server-generated; reissue the order for a fresh id")
    elif field is OrderField.PAID:
        if not role.is_staff:
            raise UnauthorizedError("only employees or managers can mark an order paid")
        if not _parse_bool(new_value):
            raise UnauthorizedError("paid can only be set to true")
        value = 1
    elif field is OrderField.LOGIN:
        value = str(new_value)
        if not user_exists(db, value):
            raise NotFoundError("user", value)
    elif field is OrderField.TOTAL:
        value = _parse_total(new_value)
    else:
        value = _parse_timestamp(new_value).isoformat(sep=" ")
    db.execute_mutation(
        f"UPDATE ORDERS SET {field.value} = ? WHERE orderid = ?;",
        (value, order_id)
    )
    logger.info("%s set %s of order #%s", actor.login, field.name.lower(), order_id)
    return get_order(db, order_id)


def reissue_order_id(db: Database, order_id: int, actor: User) -> Order:
    """move an unpaid order (and its lines) under a fresh server-generated id"""
    editable_order(db, order_id, actor)
    with db.transaction():
        new_id = db.execute_insert(
            """--sql
            INSERT INTO ORDERS (login, paid, timeStampRecieved, total)
            SELECT login, paid, timeStampRecieved, total FROM ORDERS WHERE orderid = ?;
            """,
            (order_id,)
        )
        db.execute_mutation("UPDATE ITEMSTATUS SET orderid = ? WHERE orderid = ?;", (new_id, order_id))
        db.execute_mutation("DELETE FROM ORDERS WHERE orderid = ?;", (order_id,))
    logger.info("%s reissued order #%s as #%s", actor.login, order_id, new_id)
    return get_order(db, new_id)


def update_item_status(db: Database, actor: User, order_id: int, item_name: str, status: str, comments: str = "") -> OrderLine:
    """kitchen progress on one line of an order (staff only)"""
    require_role(db, actor, Role.EMPLOYEE, Role.MANAGER)
    changed = db.execute_mutation(
        """--sql
        UPDATE ITEMSTATUS SET status = ?, comments = ?, lastUpdated = ?
        WHERE orderid = ? AND itemName = ?;
        """,
        (status, comments, _now().isoformat(sep=" "), order_id, item_name)
    )
    if not changed:
        raise NotFoundError("order item", f"#{order_id} {item_name}")
    return next(line for line in get_order_lines(db, order_id) if line.item_name == item_name)
