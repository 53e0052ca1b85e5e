"""
Tests for registration, authentication, profile updates and role changes.
"""

import pytest

from cafe import accounts, orders
from cafe.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from cafe.models import ProfileField, Role
from tests.conftest import make_user


class TestRegisterUser:
    """Tests for accounts.register_user()"""

    def test_new_users_are_customers_without_favourites(self, db):
        user = accounts.register_user(db, "alice", "pw1", "555-0100")
        assert user.role is Role.CUSTOMER
        assert user.favorite_items == ""
        assert accounts.get_user(db, "alice") == user

    def test_password_is_stored_hashed(self, db):
        """The raw password never lands in USERS."""
        accounts.register_user(db, "alice", "pw1", "555-0100")
        stored = db.execute_query("SELECT password FROM USERS WHERE login = ?;", ("alice",))[0]["password"]
        assert stored != "pw1"
        assert stored.startswith("$2b$")

    def test_duplicate_login_conflicts(self, db, alice):
        with pytest.raises(ConflictError):
            accounts.register_user(db, "alice", "other", "555-0199")

    @pytest.mark.parametrize("login,password", [("", "pw"), ("   ", "pw"), ("carol", "")])
    def test_blank_fields_rejected(self, db, login, password):
        with pytest.raises(ValidationError):
            accounts.register_user(db, login, password, "555")


class TestAuthenticate:
    """Tests for accounts.authenticate() and authenticate_manager()"""

    def test_register_then_authenticate(self, db):
        """alice/pw1 logs in, alice/wrong doesn't."""
        accounts.register_user(db, "alice", "pw1", "555-0100")
        user = accounts.authenticate(db, "alice", "pw1")
        assert user is not None and user.login == "alice"
        assert accounts.authenticate(db, "alice", "wrong") is None

    @pytest.mark.parametrize("attempt", ["", "pw", "pw1 ", "PW1", "pw12", "' OR '1'='1"])
    def test_only_the_exact_password_matches(self, db, alice, attempt):
        assert accounts.authenticate(db, "alice", attempt) is None

    def test_unknown_login(self, db):
        assert accounts.authenticate(db, "nobody", "pw") is None

    def test_login_is_exact(self, db, alice):
        assert accounts.authenticate(db, "ALICE", "pw1") is None

    def test_plaintext_rows_never_authenticate(self, db):
        """A legacy plaintext password in the table must not be compared directly."""
        db.execute_mutation(
            "INSERT INTO USERS (login, password, phoneNum, favItems, type) VALUES (?, ?, ?, ?, ?);",
            ("legacy", "secret", "", "", "Customer")
        )
        assert accounts.authenticate(db, "legacy", "secret") is None

    def test_manager_authentication(self, db, alice, bob):
        assert accounts.authenticate_manager(db, "bob", "pw2").login == "bob"
        assert accounts.authenticate_manager(db, "alice", "pw1") is None
        assert accounts.authenticate_manager(db, "bob", "wrong") is None


class TestRequireRole:
    """Role checks read the stored role every time."""

    def test_role_change_takes_effect_immediately(self, db, bob):
        assert accounts.require_role(db, bob, Role.MANAGER) is Role.MANAGER
        db.execute_mutation("UPDATE USERS SET type = 'Customer' WHERE login = 'bob';")
        # bob still carries role=MANAGER in memory
        assert bob.role is Role.MANAGER
        with pytest.raises(UnauthorizedError):
            accounts.require_role(db, bob, Role.MANAGER)

    def test_list_users_is_manager_only(self, db, alice, bob):
        assert [u.login for u in accounts.list_users(db, bob)] == ["alice", "bob"]
        with pytest.raises(UnauthorizedError):
            accounts.list_users(db, alice)


class TestUpdateUserField:
    """Tests for accounts.update_user_field()"""

    def test_requires_current_password(self, db, alice):
        with pytest.raises(UnauthorizedError):
            accounts.update_user_field(db, "alice", "wrong", ProfileField.PHONE, "555-9999")
        assert accounts.get_user(db, "alice").phone == "555-0100"

    def test_update_phone_and_favourites(self, db, alice):
        accounts.update_user_field(db, "alice", "pw1", ProfileField.PHONE, "555-9999")
        user = accounts.update_user_field(db, "alice", "pw1", ProfileField.FAVORITE_ITEMS, "Latte, Croissant")
        assert user.phone == "555-9999"
        assert user.favorite_items == "Latte, Croissant"

    def test_update_password(self, db, alice):
        accounts.update_user_field(db, "alice", "pw1", ProfileField.PASSWORD, "new-pw")
        assert accounts.authenticate(db, "alice", "pw1") is None
        assert accounts.authenticate(db, "alice", "new-pw") is not None

    def test_rename_moves_orders_along(self, db, alice, latte):
        order = orders.place_order(db, "alice", ["Latte"])
        user = accounts.update_user_field(db, "alice", "pw1", ProfileField.LOGIN, "alicia")
        assert user.login == "alicia"
        assert accounts.get_user(db, "alice") is None
        assert orders.get_order(db, order.order_id).login == "alicia"

    def test_rename_onto_taken_login_conflicts(self, db, alice, bob):
        with pytest.raises(ConflictError):
            accounts.update_user_field(db, "alice", "pw1", ProfileField.LOGIN, "bob")


class TestPromoteUserRole:
    """Tests for accounts.promote_user_role()"""

    def test_manager_can_change_roles(self, db, alice, bob):
        user = accounts.promote_user_role(db, "bob", "pw2", "alice", Role.EMPLOYEE)
        assert user.role is Role.EMPLOYEE

    @pytest.mark.parametrize("target", ["alice", "bob", "erin", "nobody"])
    def test_non_manager_is_rejected_for_any_target(self, db, alice, bob, erin, target):
        with pytest.raises(UnauthorizedError):
            accounts.promote_user_role(db, "erin", "pw3", target, Role.MANAGER)
        with pytest.raises(UnauthorizedError):
            accounts.promote_user_role(db, "alice", "pw1", target, Role.MANAGER)

    def test_wrong_manager_password_rejected(self, db, alice, bob):
        with pytest.raises(UnauthorizedError):
            accounts.promote_user_role(db, "bob", "nope", "alice", Role.MANAGER)
        assert accounts.get_user(db, "alice").role is Role.CUSTOMER

    def test_missing_target(self, db, bob):
        with pytest.raises(NotFoundError):
            accounts.promote_user_role(db, "bob", "pw2", "ghost", Role.EMPLOYEE)

    def test_demoted_manager_loses_the_right(self, db, bob):
        make_user(db, "carol", "pw4", Role.MANAGER)
        accounts.promote_user_role(db, "carol", "pw4", "bob", Role.CUSTOMER)
        with pytest.raises(UnauthorizedError):
            accounts.promote_user_role(db, "bob", "pw2", "carol", Role.CUSTOMER)


class TestEnsureDefaultManager:
    def test_seeds_when_no_manager(self, db):
        assert accounts.ensure_default_manager(db, "admin", "admin") is True
        assert accounts.authenticate_manager(db, "admin", "admin") is not None

    def test_skips_when_a_manager_exists(self, db, bob):
        assert accounts.ensure_default_manager(db, "admin", "admin") is False
        assert accounts.get_user(db, "admin") is None
