"""
Admin Management Module

Admins are back office users with a username, an encrypted password and a
permission bitmask. Records live in the admins file:

    FirstName || LastName || Email || Phone || Username || EncryptedPassword || Permissions
"""

from dataclasses import dataclass
from enum import IntFlag
from typing import List, Optional, Union

from .encryption import EncryptionProvider
from .errors import SaveResult
from .logging_config import get_logger, log_action
from .person import Person
from .sessions import SessionAction, SessionLog, SessionRecord
from .storage import RecordMode, RecordStore, StorageRecord


class Permission(IntFlag):
    """Admin capabilities, one bit each"""
    LIST_CLIENTS = 1
    ADD_NEW_CLIENT = 2
    FIND_CLIENT = 4
    UPDATE_CLIENTS = 8
    TOTAL_BALANCES = 16
    TRANSACTIONS = 32
    DELETE_CLIENT = 64
    MANAGE_ADMINS = 128


# Stored bitmask that grants every capability, present and future
FULL_ACCESS = -1


def check_access(granted: int, required: Union[Permission, int]) -> bool:
    """True if a stored bitmask grants every bit of required"""
    if granted == FULL_ACCESS:
        return True
    required = int(required)
    return (granted & required) == required


@dataclass
class Admin(Person, StorageRecord):
    """Back office user"""
    username: str = ""
    password: str = ""
    permissions: int = 0

    @property
    def key(self) -> str:
        return self.username

    def check_access(self, permission: Union[Permission, int]) -> bool:
        """Pure predicate; callers must consult it before privileged operations"""
        return check_access(self.permissions, permission)

    def to_fields(self, provider: EncryptionProvider) -> List[str]:
        return self.person_fields() + [
            self.username,
            provider.encrypt(self.password),
            str(int(self.permissions)),
        ]

    @classmethod
    def from_fields(cls, values: List[str], provider: EncryptionProvider) -> 'Admin':
        if len(values) != 7:
            raise ValueError(f"Expected 7 admin fields, got {len(values)}")
        return cls(
            first_name=values[0],
            last_name=values[1],
            email=values[2],
            phone=values[3],
            username=values[4],
            password=provider.decrypt(values[5]),
            permissions=int(values[6]),
        )


class AdminManager:
    """Find, add, update and delete admins and record their sessions"""

    def __init__(self, store: RecordStore[Admin], session_log: SessionLog):
        self.store = store
        self.session_log = session_log
        self.logger = get_logger("smartbank.admins")

    def new(self, username: str) -> Admin:
        """Blank admin ready to be filled in and saved"""
        return Admin(username=username, mode=RecordMode.NEW)

    def find(self, username: str, password: Optional[str] = None) -> Optional[Admin]:
        """
        Find an admin by username, or by username and password for login.

        Returns None when no stored admin matches.
        """
        if password is None:
            return self.store.find_by_key(username)
        return self.store.find(lambda a: a.username == username and a.password == password)

    def exists(self, username: str) -> bool:
        return self.store.exists(username)

    def list(self) -> List[Admin]:
        return self.store.load_all()

    def save(self, admin: Admin) -> SaveResult:
        was_new = admin.mode is RecordMode.NEW
        result = self.store.save(admin)

        if result is SaveResult.SUCCEEDED:
            log_action(
                self.logger, "info",
                f"Admin {'created' if was_new else 'updated'}: {admin.username}",
                action="admin_created" if was_new else "admin_updated",
                resource=f"admin:{admin.username}",
                extra={"permissions": admin.permissions}
            )
        else:
            self.logger.warning(f"Admin save failed for '{admin.username}': {result.value}")
        return result

    def delete(self, admin: Admin) -> bool:
        """Remove the admin from storage and blank the given instance"""
        username = admin.username
        deleted = self.store.delete(admin)
        log_action(
            self.logger, "info" if deleted else "warning",
            f"Admin delete {'completed' if deleted else 'found no record'}: {username}",
            action="admin_deleted", resource=f"admin:{username}"
        )
        return deleted

    def register_session(self, admin: Admin, action: Union[SessionAction, str]) -> SessionRecord:
        return self.session_log.register(
            admin.username, admin.full_name, action, permissions=admin.permissions
        )

    def get_session_log(self, username: Optional[str] = None) -> List[SessionRecord]:
        return self.session_log.get_log(username)
