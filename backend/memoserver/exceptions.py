"""
Exceptions raised by the memo service and its stores.
"""

__all__ = [
    "MemoError",
    "InvalidKeyError",
    "MemoNotFoundError",
    "MemoExpiredError",
    "KeyTakenError",
    "StoreError",
    "DuplicateKeyError",
]


class MemoError(Exception):
    """Base exception for the memo service"""


class InvalidKeyError(MemoError):
    """The key is missing or too short"""


class MemoNotFoundError(MemoError):
    """No live memo is stored under the key"""


class MemoExpiredError(MemoNotFoundError):
    """The memo was found, but its expiration time has passed"""


class KeyTakenError(MemoError):
    """A live memo already holds the key"""


class StoreError(MemoError):
    """The store collaborator failed"""


class DuplicateKeyError(MemoError):
    """The store rejected an insert because the key already exists"""
