"""
Pytest configuration and fixtures for the café client tests.
"""

from decimal import Decimal

import pytest

from cafe import accounts, menu
from cafe.db import Database
from cafe.models import MenuItem, Role
from cafe.session import MenuStateMachine
from cafe.terminal import Terminal


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    """Keep termcolor from wrapping output in escape codes."""
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.delenv("FORCE_COLOR", raising=False)


@pytest.fixture(autouse=True, scope="session")
def fast_hashing():
    """Cheapest bcrypt cost so the suite stays quick."""
    accounts.set_bcrypt_rounds(4)


@pytest.fixture
def db():
    """
    Fresh in-memory store for each test.
    """
    database = Database.connect(":memory:")
    try:
        yield database
    finally:
        database.close()


def make_user(db, login, password, role=Role.CUSTOMER, phone="555-0000"):
    user = accounts.register_user(db, login, password, phone)
    if role is not Role.CUSTOMER:
        db.execute_mutation("UPDATE USERS SET type = ? WHERE login = ?;", (role.value, login))
        user = accounts.get_user(db, login)
    return user


@pytest.fixture
def alice(db):
    """A customer."""
    return make_user(db, "alice", "pw1", phone="555-0100")


@pytest.fixture
def bob(db):
    """A manager."""
    return make_user(db, "bob", "pw2", Role.MANAGER)


@pytest.fixture
def erin(db):
    """An employee."""
    return make_user(db, "erin", "pw3", Role.EMPLOYEE)


@pytest.fixture
def latte(db, bob):
    item = MenuItem("Latte", "Drink", Decimal("3.50"), "espresso with steamed milk", "latte.png")
    return menu.add_menu_item(db, bob, item)


@pytest.fixture
def croissant(db, bob):
    item = MenuItem("Croissant", "Pastry", Decimal("2.95"), "butter croissant", "")
    return menu.add_menu_item(db, bob, item)


class ScriptedInput:
    """Feeds canned lines to the terminal; EOF once the script runs out."""

    def __init__(self, lines):
        self.lines = list(lines)
        self.prompts = []

    def __call__(self, prompt=""):
        self.prompts.append(prompt)
        if not self.lines:
            raise EOFError
        return self.lines.pop(0)


@pytest.fixture
def scripted():
    def _make(*lines):
        return Terminal(read_line=ScriptedInput(lines))
    return _make


@pytest.fixture
def machine(db, scripted):
    """Build a state machine driven by the given input lines."""
    def _make(*lines):
        return MenuStateMachine(db, scripted(*lines))
    return _make
