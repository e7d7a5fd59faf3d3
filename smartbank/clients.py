"""
Client Account Module

Bank clients hold one account each, identified by account number and
protected by an encrypted PIN. Records live in the clients file:

    FirstName || LastName || Email || Phone || AccountNumber || EncryptedPin || Balance

Every balance change is saved first and recorded in the ledger second.
The two writes are not atomic as a pair.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple, Union

from .admins import Admin
from .encryption import EncryptionProvider
from .errors import SaveResult
from .logging_config import get_logger, log_action
from .person import Person
from .serialization import format_amount, format_fixed, parse_decimal, to_fixed
from .sessions import SessionAction, SessionLog, SessionRecord
from .storage import RecordMode, RecordStore, StorageRecord
from .transactions import TransactionLedger, TransferLog


@dataclass
class Client(Person, StorageRecord):
    """Bank account holder"""
    account_number: str = ""
    pin_code: str = ""
    balance: Decimal = Decimal("0")

    @property
    def key(self) -> str:
        return self.account_number

    def to_fields(self, provider: EncryptionProvider) -> List[str]:
        return self.person_fields() + [
            self.account_number,
            provider.encrypt(self.pin_code),
            format_fixed(self.balance),
        ]

    @classmethod
    def from_fields(cls, values: List[str], provider: EncryptionProvider) -> 'Client':
        if len(values) != 7:
            raise ValueError(f"Expected 7 client fields, got {len(values)}")
        return cls(
            first_name=values[0],
            last_name=values[1],
            email=values[2],
            phone=values[3],
            account_number=values[4],
            pin_code=provider.decrypt(values[5]),
            balance=parse_decimal(values[6]),
        )


def _to_decimal(amount) -> Decimal:
    amount = to_fixed(amount)
    if amount < 0:
        raise ValueError(f"Amount must not be negative, got {amount}")
    return amount


class ClientManager:
    """Client accounts: lookups, lifecycle, money movements and sessions"""

    def __init__(self, store: RecordStore[Client], ledger: TransactionLedger,
                 session_log: SessionLog, transfer_log: Optional[TransferLog] = None):
        self.store = store
        self.ledger = ledger
        self.session_log = session_log
        self.transfer_log = transfer_log
        self.logger = get_logger("smartbank.clients")

    # Lookups and lifecycle

    def new(self, account_number: str) -> Client:
        """Blank client ready to be filled in and saved"""
        return Client(account_number=account_number, mode=RecordMode.NEW)

    def find(self, account_number: str, pin_code: Optional[str] = None) -> Optional[Client]:
        """
        Find a client by account number, or by account number and PIN for login.

        Returns None when no stored client matches.
        """
        if pin_code is None:
            return self.store.find_by_key(account_number)
        return self.store.find(
            lambda c: c.account_number == account_number and c.pin_code == pin_code
        )

    def exists(self, account_number: str) -> bool:
        return self.store.exists(account_number)

    def list(self) -> List[Client]:
        return self.store.load_all()

    def total_balances(self) -> Decimal:
        return sum((c.balance for c in self.list()), Decimal("0"))

    def save(self, client: Client) -> SaveResult:
        was_new = client.mode is RecordMode.NEW
        result = self.store.save(client)
        if result is SaveResult.SUCCEEDED:
            log_action(
                self.logger, "info",
                f"Client {'created' if was_new else 'updated'}: {client.account_number}",
                action="client_created" if was_new else "client_updated",
                resource=f"account:{client.account_number}"
            )
        else:
            self.logger.warning(
                f"Client save failed for '{client.account_number}': {result.value}"
            )
        return result

    def delete(self, client: Client) -> bool:
        """Remove the client from storage and blank the given instance"""
        account_number = client.account_number
        deleted = self.store.delete(client)
        log_action(
            self.logger, "info" if deleted else "warning",
            f"Client delete {'completed' if deleted else 'found no record'}: {account_number}",
            action="client_deleted", resource=f"account:{account_number}"
        )
        return deleted

    def change_pin(self, client: Client, current_pin: str, new_pin: str) -> bool:
        """Replace the PIN if current_pin matches and new_pin differs from it"""
        if client.is_empty:
            raise ValueError("Cannot change the PIN of an empty client")
        if current_pin != client.pin_code or new_pin == client.pin_code or not new_pin:
            return False

        client.pin_code = new_pin
        self.save(client)
        log_action(
            self.logger, "info", f"PIN changed: {client.account_number}",
            user_id=client.account_number, action="pin_changed",
            resource=f"account:{client.account_number}"
        )
        return True

    # Balance primitives, saved but not recorded in the ledger

    def _credit(self, client: Client, amount: Decimal) -> None:
        if client.is_empty:
            raise ValueError("Cannot deposit to an empty client")
        client.balance += amount
        self.save(client)

    def _debit(self, client: Client, amount: Decimal) -> bool:
        if client.is_empty:
            raise ValueError("Cannot withdraw from an empty client")
        if amount > client.balance:
            return False
        client.balance -= amount
        self.save(client)
        return True

    def _resolve_pair(self, from_account: str, to_account: str) -> Tuple[Client, Client]:
        if from_account == to_account:
            raise ValueError("Cannot transfer to the same account")
        from_client = self.find(from_account)
        if from_client is None:
            raise ValueError(f"Account {from_account} not found")
        to_client = self.find(to_account)
        if to_client is None:
            raise ValueError(f"Account {to_account} not found")
        return from_client, to_client

    # Client self-service

    def deposit(self, client: Client, amount: Decimal) -> None:
        amount = _to_decimal(amount)
        self._credit(client, amount)
        self.ledger.log_deposit(client, amount)
        log_action(
            self.logger, "info", f"Deposit: {client.account_number}",
            user_id=client.account_number, action="deposit",
            resource=f"account:{client.account_number}",
            extra={"amount": format_amount(amount), "balance": format_amount(client.balance)}
        )

    def withdraw(self, client: Client, amount: Decimal) -> bool:
        """Withdraw amount; False and no change if it exceeds the balance"""
        amount = _to_decimal(amount)
        if not self._debit(client, amount):
            self.logger.info(f"Withdraw rejected for {client.account_number}: insufficient funds")
            return False
        self.ledger.log_withdraw(client, amount)
        log_action(
            self.logger, "info", f"Withdraw: {client.account_number}",
            user_id=client.account_number, action="withdraw",
            resource=f"account:{client.account_number}",
            extra={"amount": format_amount(amount), "balance": format_amount(client.balance)}
        )
        return True

    def transfer(self, from_client: Client, to_account: str, amount: Decimal) -> bool:
        """
        Move money from a client's own account to another account.

        The source client instance is updated in place; the destination is
        looked up fresh by account number.

        Returns:
            False if the amount exceeds the source balance, else True

        Raises:
            ValueError: On a negative amount, a self-transfer or an unknown account
        """
        amount = _to_decimal(amount)
        if from_client.is_empty:
            raise ValueError("Cannot transfer from an empty client")
        if from_client.account_number == to_account:
            raise ValueError("Cannot transfer to the same account")
        to_client = self.find(to_account)
        if to_client is None:
            raise ValueError(f"Account {to_account} not found")

        if not self._debit(from_client, amount):
            self.logger.info(f"Transfer rejected for {from_client.account_number}: insufficient funds")
            return False
        self._credit(to_client, amount)
        self.ledger.log_transfer(from_client, to_client, amount)

        log_action(
            self.logger, "info", f"Transfer: {from_client.account_number} -> {to_account}",
            user_id=from_client.account_number, action="transfer",
            resource=f"account:{from_client.account_number}",
            extra={"amount": format_amount(amount), "to_account": to_account}
        )
        return True

    # Operations performed by an admin on a client's behalf

    def admin_deposit(self, admin: Admin, client: Client, amount: Decimal) -> None:
        amount = _to_decimal(amount)
        self._credit(client, amount)
        self.ledger.log_admin_deposit(admin, client, amount)
        log_action(
            self.logger, "info", f"Admin deposit: {client.account_number}",
            user_id=admin.username, action="admin_deposit",
            resource=f"account:{client.account_number}",
            extra={"amount": format_amount(amount), "balance": format_amount(client.balance)}
        )

    def admin_withdraw(self, admin: Admin, client: Client, amount: Decimal) -> bool:
        amount = _to_decimal(amount)
        if not self._debit(client, amount):
            self.logger.info(f"Admin withdraw rejected for {client.account_number}: insufficient funds")
            return False
        self.ledger.log_admin_withdraw(admin, client, amount)
        log_action(
            self.logger, "info", f"Admin withdraw: {client.account_number}",
            user_id=admin.username, action="admin_withdraw",
            resource=f"account:{client.account_number}",
            extra={"amount": format_amount(amount), "balance": format_amount(client.balance)}
        )
        return True

    def admin_transfer(self, admin: Admin, from_account: str, to_account: str,
                       amount: Decimal) -> bool:
        """
        Transfer between two client accounts on an admin's authority.

        Both accounts are looked up fresh. Writes two ledger records and one
        legacy transfer log line.

        Returns:
            False if the amount exceeds the source balance, else True

        Raises:
            ValueError: On a negative amount, a self-transfer or an unknown account
        """
        amount = _to_decimal(amount)
        from_client, to_client = self._resolve_pair(from_account, to_account)

        if not self._debit(from_client, amount):
            self.logger.info(f"Admin transfer rejected for {from_account}: insufficient funds")
            return False
        self._credit(to_client, amount)
        self.ledger.log_admin_transfer(admin, from_client, to_client, amount)
        if self.transfer_log is not None:
            self.transfer_log.append(
                admin.username, amount,
                from_client.account_number, from_client.balance,
                to_client.account_number, to_client.balance,
            )

        log_action(
            self.logger, "info", f"Admin transfer: {from_account} -> {to_account}",
            user_id=admin.username, action="admin_transfer",
            resource=f"account:{from_account}",
            extra={"amount": format_amount(amount), "to_account": to_account}
        )
        return True

    # Sessions

    def register_session(self, client: Client, action: Union[SessionAction, str]) -> SessionRecord:
        return self.session_log.register(client.account_number, client.full_name, action)

    def get_session_log(self, account_number: Optional[str] = None) -> List[SessionRecord]:
        return self.session_log.get_log(account_number)
