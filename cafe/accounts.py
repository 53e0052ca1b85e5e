"""
accounts / auth

passwords are stored as salted bcrypt hashes and only ever compared through
bcrypt.checkpw. role checks always re-read USERS.type, so a role changed mid
session takes effect on the very next privileged action.
"""

import logging

import bcrypt

from cafe.config import DEFAULT_BCRYPT_ROUNDS
from cafe.db import Database
from cafe.errors import ConflictError, NotFoundError, StorageError, UnauthorizedError, ValidationError
from cafe.models import ProfileField, Role, User

logger = logging.getLogger(__name__)

USER_COLUMNS = "login, phoneNum, favItems, type"

_bcrypt_rounds = DEFAULT_BCRYPT_ROUNDS


def set_bcrypt_rounds(rounds: int):
    """cost factor for newly hashed passwords"""
    global _bcrypt_rounds
    _bcrypt_rounds = rounds


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=_bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """check a plain password against a stored hash; anything that isn't bcrypt fails"""
    if not hashed.startswith(("$2a$", "$2b$", "$2y$")):
        logger.warning("non-bcrypt password hash in USERS, refusing to compare")
        return False
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def _require_text(value: str, what: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{what} must not be blank")
    return value


# lookups
def get_user(db: Database, login: str) -> User | None:
    rows = db.execute_query(f"SELECT {USER_COLUMNS} FROM USERS WHERE login = ?;", (login,))
    return User.from_record(rows[0]) if rows else None


def user_exists(db: Database, login: str) -> bool:
    return db.execute_scalar_count("SELECT 1 FROM USERS WHERE login = ?", (login,)) > 0


def current_role(db: Database, login: str) -> Role | None:
    """role as stored right now (None if the user vanished)"""
    rows = db.execute_query("SELECT type FROM USERS WHERE login = ?;", (login,))
    return Role(rows[0]["type"]) if rows else None


def require_role(db: Database, actor: User, *roles: Role) -> Role:
    """guard for privileged actions; checks the stored role, not the one cached on actor"""
    role = current_role(db, actor.login)
    if role is None or role not in roles:
        allowed = "/".join(r.value.lower() for r in roles)
        raise UnauthorizedError(f"{allowed} privileges required")
    return role


def list_users(db: Database, actor: User) -> list[User]:
    """every account, managers only"""
    require_role(db, actor, Role.MANAGER)
    rows = db.execute_query(f"SELECT {USER_COLUMNS} FROM USERS ORDER BY login;")
    return [User.from_record(r) for r in rows]


# registration / authentication
def register_user(db: Database, login: str, password: str, phone: str) -> User:
    """create a customer account with no favourites"""
    _require_text(login, "login")
    _require_text(password, "password")
    if user_exists(db, login):
        raise ConflictError(f"login '{login}' is already taken")
    try:
        db.execute_mutation(
            """--sql
            INSERT INTO USERS (phoneNum, login, password, favItems, type)
            VALUES (?, ?, ?, ?, ?);
            """,
            (phone, login, hash_password(password), "", Role.CUSTOMER.value)
        )
    except StorageError as e:
        if e.constraint:
            raise ConflictError(f"login '{login}' is already taken") from e
        raise
    logger.info("registered user %s", login)
    return User(login=login, phone=phone, favorite_items="", role=Role.CUSTOMER)


def authenticate(db: Database, login: str, password: str) -> User | None:
    """exact login match plus password check; None on any mismatch"""
    rows = db.execute_query(
        f"SELECT {USER_COLUMNS}, password FROM USERS WHERE login = ?;",
        (login,)
    )
    if not rows or not verify_password(password, rows[0]["password"] or ""):
        logger.info("failed login for %s", login)
        return None
    return User.from_record(rows[0])


def authenticate_manager(db: Database, login: str, password: str) -> User | None:
    """like authenticate, but only managers come back"""
    user = authenticate(db, login, password)
    if user is None or user.role is not Role.MANAGER:
        return None
    return user


# profile
def update_user_field(db: Database, login: str, password: str, field: ProfileField, new_value: str) -> User:
    """change one profile column after re-checking the current credentials"""
    if authenticate(db, login, password) is None:
        raise UnauthorizedError("invalid login or password")
    value = new_value
    if field is ProfileField.LOGIN:
        _require_text(new_value, "login")
        if new_value != login and user_exists(db, new_value):
            raise ConflictError(f"login '{new_value}' is already taken")
    elif field is ProfileField.PASSWORD:
        value = hash_password(_require_text(new_value, "password"))
    try:
        db.execute_mutation(
            f"UPDATE USERS SET {field.value} = ? WHERE login = ?;",
            (value, login)
        )
    except StorageError as e:
        if e.constraint:
            raise ConflictError(f"could not update {field.name.lower()}: {e.message}") from e
        raise
    new_login = new_value if field is ProfileField.LOGIN else login
    logger.info("user %s updated %s", new_login, field.name.lower())
    return get_user(db, new_login)


def promote_user_role(db: Database, actor_login: str, actor_password: str, target_login: str, new_role: Role) -> User:
    """change someone's role; the actor must prove they are a manager right now"""
    actor = authenticate(db, actor_login, actor_password)
    if actor is None:
        raise UnauthorizedError("invalid login or password")
    require_role(db, actor, Role.MANAGER)
    if db.execute_mutation(
        "UPDATE USERS SET type = ? WHERE login = ?;",
        (new_role.value, target_login)
    ) == 0:
        raise NotFoundError("user", target_login)
    logger.info("%s set role of %s to %s", actor_login, target_login, new_role.value)
    return get_user(db, target_login)


def ensure_default_manager(db: Database, login: str, password: str) -> bool:
    """make sure a fresh store has somebody who can edit the menu"""
    if db.execute_scalar_count("SELECT 1 FROM USERS WHERE type = ?", (Role.MANAGER.value,)):
        return False
    if user_exists(db, login):
        logger.warning("no manager account and login %s is taken; not seeding one", login)
        return False
    db.execute_mutation(
        """--sql
        INSERT INTO USERS (phoneNum, login, password, favItems, type)
        VALUES (?, ?, ?, ?, ?);
        """,
        ("", login, hash_password(password), "", Role.MANAGER.value)
    )
    logger.info("seeded default manager %s", login)
    return True
