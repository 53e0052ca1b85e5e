"""
error taxonomy for the café client

every failure a menu action can hit is a CafeError; the session loop catches
them at the action boundary, prints them and carries on. only a failed initial
connection is fatal.
"""

import logging

logger = logging.getLogger(__name__)


class CafeError(Exception):
    """base error; logs itself on creation"""
    log_level = logging.WARNING

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        logger.log(self.log_level, "%s: %s", type(self).__name__, message)


class StorageError(CafeError):
    """connectivity or constraint failure from the store"""
    log_level = logging.ERROR

    def __init__(self, message: str, constraint: bool = False):
        self.constraint = constraint
        super().__init__(message)


class NotFoundError(CafeError):
    """lookup-before-mutate found nothing"""

    def __init__(self, entity: str, key: object = None):
        self.entity = entity
        self.key = key
        if key is None:
            super().__init__(f"{entity} not found")
        else:
            super().__init__(f"{entity} '{key}' not found")


class ConflictError(CafeError):
    """duplicate key, or mutating something that may no longer change"""


class UnauthorizedError(CafeError):
    """actor lacks the role (or credentials) for this action"""


class ValidationError(CafeError):
    """a field value that can never be stored (negative price, blank login...)"""


class InputFormatError(CafeError):
    """raw terminal input that doesn't parse; always re-prompted, never surfaced"""
    log_level = logging.DEBUG
