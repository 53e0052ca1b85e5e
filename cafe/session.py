"""
session state machine

each State has a Screen: a title and a table of numbered Options. an option's
action returns a transition (Push a child state, POP back to the parent) or
None to stay put. choice 9 always pops; popping LOGGED_IN logs out and popping
LOGGED_OUT ends the program.

all session data lives on an explicit Session value, and every action runs
inside a boundary that reports CafeErrors without unwinding the loop.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable

from cafe import accounts, menu, orders
from cafe.config import DEFAULT_HISTORY_LIMIT, EXIT_CHOICE
from cafe.db import Database
from cafe.errors import CafeError, ConflictError, NotFoundError, StorageError, UnauthorizedError
from cafe.models import MenuField, MenuItem, Order, OrderField, OrderLine, ProfileField, Role, User
from cafe.terminal import Terminal, color_money, safe_int

logger = logging.getLogger(__name__)


class State(Enum):
    LOGGED_OUT = auto()
    LOGGED_IN = auto()
    MENU = auto()
    MENU_SEARCH = auto()
    MENU_EDIT = auto()
    MENU_ITEM_EDIT = auto()
    PROFILE = auto()
    ORDER_EDIT = auto()


@dataclass(frozen=True)
class Push:
    state: State


POP = "pop"

Transition = Push | str | None


@dataclass
class Option:
    label: str
    action: Callable[[], Transition]


@dataclass
class Screen:
    title: str
    options: dict[int, Option]
    on_exit: Callable[[], None] | None = None


@dataclass
class Session:
    """who is logged in plus whatever the current sub-menu is working on"""
    login: str | None = None
    editor_login: str | None = None
    profile_login: str | None = None
    profile_password: str | None = field(default=None, repr=False)
    item_name: str | None = None
    order_id: int | None = None

    @property
    def logged_in(self) -> bool:
        return self.login is not None


def menu_records(items: list[MenuItem]) -> list[dict]:
    return [
        {"itemName": i.name, "type": i.type, "price": f"{i.price:.2f}",
         "description": i.description, "imageURL": i.image_url}
        for i in items
    ]


def order_records(order_list: list[Order]) -> list[dict]:
    return [
        {"orderid": o.order_id, "login": o.login, "paid": "yes" if o.paid else "no",
         "timeStampRecieved": o.timestamp_received.isoformat(sep=" "), "total": f"{o.total:.2f}"}
        for o in order_list
    ]


def line_records(lines: list[OrderLine]) -> list[dict]:
    return [
        {"itemName": l.item_name, "quantity": l.quantity, "status": l.status,
         "lastUpdated": l.last_updated.isoformat(sep=" "), "comments": l.comments}
        for l in lines
    ]


def user_records(users: list[User]) -> list[dict]:
    return [
        {"login": u.login, "phoneNum": u.phone, "favItems": u.favorite_items, "type": u.role.value}
        for u in users
    ]


class MenuStateMachine:
    """drives the nested menus for one terminal session"""

    def __init__(self, db: Database, terminal: Terminal, session: Session | None = None,
                 history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.db = db
        self.terminal = terminal
        self.session = session or Session()
        self.history_limit = history_limit
        self.stack: list[State] = [State.LOGGED_OUT]
        self.screens: dict[State, Screen] = {
            State.LOGGED_OUT: Screen("MAIN MENU", {
                1: Option("Create user", self.create_user),
                2: Option("Log in", self.log_in),
                9: Option("< EXIT", lambda: POP),
            }),
            State.LOGGED_IN: Screen("MAIN MENU", {
                1: Option("Goto Menu", lambda: Push(State.MENU)),
                2: Option("Update Profile", self.enter_profile),
                3: Option("Place a Order", self.place_order),
                4: Option("Update a Order", self.enter_order_edit),
                5: Option("Order history", self.order_history),
                6: Option("Update order item status (employees/managers only)", self.update_item_status),
                7: Option("List accounts (managers only)", self.list_accounts),
                9: Option("Log out", lambda: POP),
            }, on_exit=self.log_out),
            State.MENU: Screen("MENU", {
                1: Option("View Menu Items", lambda: Push(State.MENU_SEARCH)),
                2: Option("Modify Menu Items", self.enter_menu_edit),
                9: Option("< EXIT", lambda: POP),
            }),
            State.MENU_SEARCH: Screen("VIEW MENU", {
                1: Option("Search by Item Name", self.search_by_name),
                2: Option("Search by Item Type", self.search_by_type),
                3: Option("Show full menu", self.show_full_menu),
                9: Option("< EXIT", lambda: POP),
            }),
            State.MENU_EDIT: Screen("MODIFY MENU (managers only)", {
                1: Option("Add Items", self.add_item),
                2: Option("Delete Items", self.delete_item),
                3: Option("Update Items", self.enter_item_edit),
                9: Option("< EXIT", lambda: POP),
            }, on_exit=self._clear_editor),
            State.MENU_ITEM_EDIT: Screen("Which attribute would you like to change?", {
                1: Option("Item Name", lambda: self.update_item(MenuField.NAME)),
                2: Option("Type", lambda: self.update_item(MenuField.TYPE)),
                3: Option("Price", lambda: self.update_item(MenuField.PRICE)),
                4: Option("Description", lambda: self.update_item(MenuField.DESCRIPTION)),
                5: Option("Image URL", lambda: self.update_item(MenuField.IMAGE_URL)),
                9: Option("< Exit", lambda: POP),
            }, on_exit=self._clear_item),
            State.PROFILE: Screen("UPDATE PROFILE", {
                1: Option("Update login", lambda: self.update_profile(ProfileField.LOGIN)),
                2: Option("Update phone number", lambda: self.update_profile(ProfileField.PHONE)),
                3: Option("Update password", lambda: self.update_profile(ProfileField.PASSWORD)),
                4: Option("Update fav. items", lambda: self.update_profile(ProfileField.FAVORITE_ITEMS)),
                5: Option("Update type (manager only)", self.update_role),
                9: Option("Go back to MAIN MENU", lambda: POP),
            }, on_exit=self._clear_profile),
            State.ORDER_EDIT: Screen("What would you like to update?", {
                1: Option("OrderID (issue a fresh id)", self.reissue_order),
                2: Option("Login", lambda: self.update_order(OrderField.LOGIN)),
                3: Option("Paid (FOR MANAGERS/EMPLOYEES ONLY)", self.mark_paid),
                4: Option("Timestamp Received", lambda: self.update_order(OrderField.TIMESTAMP_RECEIVED)),
                5: Option("Total", lambda: self.update_order(OrderField.TOTAL)),
                6: Option("Show order", self.show_order),
                9: Option("< Exit", lambda: POP),
            }, on_exit=self._clear_order),
        }

    # loop
    @property
    def state(self) -> State | None:
        return self.stack[-1] if self.stack else None

    def run(self):
        """main loop; returns when the top-level menu is exited or input runs dry"""
        while self.stack:
            screen = self.screens[self.state]
            self.terminal.print_menu(screen.title, ((n, o.label) for n, o in screen.options.items()))
            try:
                self.handle(self.terminal.read_choice())
            except EOFError:
                print()
                logger.info("input closed, leaving session loop")
                break

    def handle(self, choice: int):
        """dispatch one choice in the current state and apply the transition"""
        transition = self.dispatch(choice)
        if transition == POP:
            self.pop()
        elif isinstance(transition, Push):
            logger.debug("enter %s", transition.state.name)
            self.stack.append(transition.state)

    def dispatch(self, choice: int) -> Transition:
        if choice == EXIT_CHOICE:
            return POP
        option = self.screens[self.state].options.get(choice)
        if option is None:
            self.terminal.warn("Unrecognized choice!")
            return None
        return self._guarded(option.action)

    def pop(self):
        state = self.stack.pop()
        logger.debug("leave %s", state.name)
        on_exit = self.screens[state].on_exit
        if on_exit is not None:
            on_exit()

    def _guarded(self, action: Callable[[], Transition]) -> Transition:
        """action boundary: report domain errors and keep the session alive"""
        try:
            return action()
        except UnauthorizedError as e:
            self.terminal.error(f"not authorized: {e.message}")
        except NotFoundError as e:
            self.terminal.error(e.message)
        except ConflictError as e:
            self.terminal.error(f"conflict: {e.message}")
        except StorageError as e:
            self.terminal.error(f"database error: {e.message}")
        except CafeError as e:
            self.terminal.error(e.message)
        return None

    def _actor(self) -> User:
        user = accounts.get_user(self.db, self.session.login or "")
        if user is None:
            raise UnauthorizedError("your account no longer exists, please log in again")
        return user

    def _prompt_credentials(self) -> tuple[str, str]:
        login = self.terminal.prompt("Enter user login")
        password = self.terminal.prompt_secret("Enter user password")
        return login, password

    # logged out
    def create_user(self) -> Transition:
        login = self.terminal.prompt("Enter user login")
        password = self.terminal.prompt_secret("Enter user password")
        phone = self.terminal.prompt("Enter user phone")
        accounts.register_user(self.db, login, password, phone)
        self.terminal.success("User successfully created!")
        return None

    def log_in(self) -> Transition:
        login, password = self._prompt_credentials()
        user = accounts.authenticate(self.db, login, password)
        if user is None:
            self.terminal.error("invalid login or password")
            return None
        self.session.login = user.login
        level = f"{user.role.value.lower()}: " if user.role is not Role.CUSTOMER else ""
        self.terminal.success(f"logged in as {level}{user.login}")
        return Push(State.LOGGED_IN)

    def log_out(self):
        if self.session.login is not None:
            self.terminal.success(f"logged out {self.session.login}")
        self.session = Session()

    # menu browsing
    def search_by_name(self) -> Transition:
        name = self.terminal.prompt("Enter Item Name")
        self.terminal.print_table(menu_records(menu.list_menu_by_name(self.db, name)))
        return None

    def search_by_type(self) -> Transition:
        item_type = self.terminal.prompt("Enter Item Type")
        self.terminal.print_table(menu_records(menu.list_menu_by_type(self.db, item_type)))
        return None

    def show_full_menu(self) -> Transition:
        self.terminal.print_table(menu_records(menu.list_menu(self.db)))
        return None

    # menu editing
    def enter_menu_edit(self) -> Transition:
        self.terminal.warn("FOR MANAGERS ONLY")
        login, password = self._prompt_credentials()
        manager = accounts.authenticate_manager(self.db, login, password)
        if manager is None:
            # tell a wrong password apart from a non-manager at the ui only
            if accounts.authenticate(self.db, login, password) is None:
                self.terminal.error("invalid login or password")
            else:
                self.terminal.error("You are not a manager.")
            return None
        self.session.editor_login = manager.login
        return Push(State.MENU_EDIT)

    def _editor(self) -> User:
        user = accounts.get_user(self.db, self.session.editor_login or "")
        if user is None:
            raise UnauthorizedError("manager account no longer exists")
        return user

    def add_item(self) -> Transition:
        name = self.terminal.prompt("Enter new Item's Name")
        item_type = self.terminal.prompt("Enter new Item's Type")
        price = menu.parse_price(self.terminal.prompt("Enter new Item's Price"))
        description = self.terminal.prompt("Enter new Item's Description")
        image_url = self.terminal.prompt("Enter new Item's ImageURL")
        menu.add_menu_item(self.db, self._editor(), MenuItem(name, item_type, price, description, image_url))
        self.terminal.success("Item successfully added!")
        return None

    def delete_item(self) -> Transition:
        name = self.terminal.prompt("Enter name of the Item you would like to delete")
        menu.delete_menu_item(self.db, self._editor(), name)
        self.terminal.success("Item successfully deleted!")
        return None

    def enter_item_edit(self) -> Transition:
        accounts.require_role(self.db, self._editor(), Role.MANAGER)
        name = self.terminal.prompt("Enter the name of the Item you would like to update")
        if menu.get_menu_item(self.db, name) is None:
            raise NotFoundError("menu item", name)
        self.session.item_name = name
        self.terminal.info(f"editing '{name}'")
        return Push(State.MENU_ITEM_EDIT)

    def update_item(self, menu_field: MenuField) -> Transition:
        label = menu_field.name.lower().replace("_", " ")
        new_value = self.terminal.prompt(f"Enter new Item {label}")
        old_name = self.session.item_name or ""
        item = menu.update_menu_item(self.db, self._editor(), old_name, menu_field, new_value)
        self.session.item_name = item.name
        if menu_field is MenuField.NAME:
            self.terminal.success(f"{old_name} successfully updated to: {item.name}")
        else:
            self.terminal.success(f"{item.name}'s {label} successfully updated to: {new_value}")
        return None

    # profile
    def enter_profile(self) -> Transition:
        self.terminal.info("For your safety please...")
        login, password = self._prompt_credentials()
        if accounts.authenticate(self.db, login, password) is None:
            raise UnauthorizedError("invalid login or password")
        self.session.profile_login = login
        self.session.profile_password = password
        return Push(State.PROFILE)

    def update_profile(self, profile_field: ProfileField) -> Transition:
        label = profile_field.name.lower().replace("_", " ")
        if profile_field is ProfileField.PASSWORD:
            new_value = self.terminal.prompt_secret(f"Enter new {label}")
        else:
            new_value = self.terminal.prompt(f"Enter new {label}")
        old_login = self.session.profile_login or ""
        user = accounts.update_user_field(
            self.db, old_login, self.session.profile_password or "", profile_field, new_value
        )
        if profile_field is ProfileField.LOGIN:
            self.session.profile_login = user.login
            if self.session.login == old_login:
                self.session.login = user.login
            if self.session.editor_login == old_login:
                self.session.editor_login = user.login
        elif profile_field is ProfileField.PASSWORD:
            self.session.profile_password = new_value
        self.terminal.success(f"{label.capitalize()} successfully updated!")
        return None

    def update_role(self) -> Transition:
        target = self.terminal.prompt("Enter user login")
        self.terminal.print_menu("UPDATE TO", [(1, "Manager"), (2, "Employee"), (3, "Customer")])
        role = {1: Role.MANAGER, 2: Role.EMPLOYEE, 3: Role.CUSTOMER}.get(self.terminal.read_choice())
        if role is None:
            self.terminal.warn("Unrecognized choice!")
            return None
        user = accounts.promote_user_role(
            self.db, self.session.profile_login or "", self.session.profile_password or "", target, role
        )
        self.terminal.success("User type successfully updated!")
        rows = self.terminal.print_table(user_records([user]))
        self.terminal.info(f"total row(s): {rows}")
        return None

    # orders
    def place_order(self) -> Transition:
        actor = self._actor()
        self.terminal.print_table(menu_records(menu.list_menu(self.db)))
        items: list[tuple[str, int]] = []
        while True:
            name = self.terminal.prompt("Item to add (blank to finish)")
            if not name:
                break
            if menu.get_menu_item(self.db, name) is None:
                self.terminal.error("invalid menu item")
                continue
            qty = safe_int(self.terminal.prompt("Quantity [1]") or "1", minimum=1)
            if qty is None:
                self.terminal.error("invalid quantity")
                continue
            items.append((name, qty))
        if not items or not self.terminal.confirm(f"place order for {sum(q for _, q in items)} item(s)?"):
            self.terminal.warn("order cancelled")
            return None
        order = orders.place_order(self.db, actor.login, items)
        self.terminal.success(f"order #{order.order_id} placed, total {color_money(order.total)}")
        self.terminal.print_table(line_records(orders.get_order_lines(self.db, order.order_id)))
        return None

    def list_accounts(self) -> Transition:
        self.terminal.print_table(user_records(accounts.list_users(self.db, self._actor())))
        return None

    def order_history(self) -> Transition:
        recent = orders.list_recent_orders(self.db, self._actor(), self.history_limit)
        self.terminal.print_table(order_records(recent))
        return None

    def update_item_status(self) -> Transition:
        order_id = safe_int(self.terminal.prompt("Enter the order ID"), minimum=1)
        if order_id is None:
            self.terminal.error("invalid order id")
            return None
        item_name = self.terminal.prompt("Enter the item name")
        status = self.terminal.prompt("Enter new status")
        comments = self.terminal.prompt("Comments")
        line = orders.update_item_status(self.db, self._actor(), order_id, item_name, status, comments)
        self.terminal.success(f"{line.item_name} on order #{order_id} is now '{line.status}'")
        return None

    def enter_order_edit(self) -> Transition:
        order_id = safe_int(self.terminal.prompt("Enter the ID of the order you would like to update"), minimum=1)
        if order_id is None:
            self.terminal.error("invalid order id")
            return None
        orders.editable_order(self.db, order_id, self._actor())
        self.session.order_id = order_id
        return Push(State.ORDER_EDIT)

    def update_order(self, order_field: OrderField) -> Transition:
        label = order_field.name.lower().replace("_", " ")
        new_value = self.terminal.prompt(f"Enter new {label}")
        order = orders.update_order_field(self.db, self.session.order_id, order_field, new_value, self._actor())
        self.terminal.success(f"{label.capitalize()} successfully updated!")
        self.terminal.print_table(order_records([order]))
        return None

    def mark_paid(self) -> Transition:
        self.terminal.info("Please verify that you are a manager or an employee.")
        login, password = self._prompt_credentials()
        staff = accounts.authenticate(self.db, login, password)
        if staff is None:
            raise UnauthorizedError("invalid login or password")
        orders.update_order_field(self.db, self.session.order_id, OrderField.PAID, True, staff)
        self.terminal.success("Updated order to paid!")
        return POP

    def reissue_order(self) -> Transition:
        order = orders.reissue_order_id(self.db, self.session.order_id, self._actor())
        self.terminal.success(f"order is now #{order.order_id}")
        self.session.order_id = order.order_id
        return None

    def show_order(self) -> Transition:
        order = orders.get_order(self.db, self.session.order_id)
        if order is None:
            raise NotFoundError("order", self.session.order_id)
        self.terminal.print_table(order_records([order]))
        self.terminal.print_table(line_records(orders.get_order_lines(self.db, order.order_id)))
        return None

    # sub-state cleanup
    def _clear_editor(self):
        self.session.editor_login = None

    def _clear_item(self):
        self.session.item_name = None

    def _clear_profile(self):
        self.session.profile_login = None
        self.session.profile_password = None

    def _clear_order(self):
        self.session.order_id = None
