"""
Error Types and Result Codes

Recoverable outcomes (key collisions, saving an empty record, lookups that
miss) are reported as result values. Exceptions are reserved for storage
failures and invalid arguments.
"""

from enum import Enum


class SaveResult(Enum):
    """Outcome of saving a record"""
    SUCCEEDED = "succeeded"
    EMPTY_OBJECT = "empty_object"  # Record is detached (never found, or deleted)
    KEY_EXISTS = "key_exists"      # New record collides with a stored key


class BankingError(Exception):
    """Base class for back office errors"""


class StorageUnavailableError(BankingError):
    """A data file exists but could not be read, or could not be written"""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Storage unavailable at {path}: {reason}")


class CorruptRecordError(BankingError):
    """A stored line could not be turned back into a record"""

    def __init__(self, path: str, line_number: int, reason: str):
        self.path = path
        self.line_number = line_number
        super().__init__(f"{path}:{line_number}: {reason}")
