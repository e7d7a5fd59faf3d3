"""
Transaction Ledger Module

Unified, append-only log of every money movement in the bank. Records are
never edited or removed; all views are computed by scanning the whole file.

Line format:
    Date#//#Time#//#PrincipalId#//#OperationType#//#Amount#//#FromAccount#//#ToAccount#//#BalanceAfter

A transfer writes two lines, one per side, sharing amount and counterparties
but each carrying its own account's balance after the transfer.

The legacy admin transfer log (TransferLog) is kept alongside for the
transfer history screens that still read it.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from .logging_config import get_logger, log_action
from .serialization import (
    FIELD_DELIMITER, LOG_DELIMITER, PLACEHOLDER,
    format_amount, format_date, format_time, parse_decimal,
)
from .storage import AppendOnlyFile


class OperationType(Enum):
    """Ledger operation tags"""
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    TRANSFER_OUT = "TRANSFER_OUT"
    TRANSFER_IN = "TRANSFER_IN"
    ADMIN_DEPOSIT = "ADMIN_DEPOSIT"
    ADMIN_WITHDRAW = "ADMIN_WITHDRAW"
    ADM_TRANS_OUT = "ADM_TRANS_OUT"
    ADM_TRANS_IN = "ADM_TRANS_IN"

    @property
    def is_admin_action(self) -> bool:
        return self in ADMIN_OPERATIONS


ADMIN_OPERATIONS = frozenset({
    OperationType.ADMIN_DEPOSIT,
    OperationType.ADMIN_WITHDRAW,
    OperationType.ADM_TRANS_OUT,
    OperationType.ADM_TRANS_IN,
})

# Operations that touch an account as the source, and as the destination
_DEBIT_SIDE = frozenset({
    OperationType.TRANSFER_OUT, OperationType.ADMIN_WITHDRAW, OperationType.ADM_TRANS_OUT,
})
_CREDIT_SIDE = frozenset({
    OperationType.TRANSFER_IN, OperationType.ADMIN_DEPOSIT, OperationType.ADM_TRANS_IN,
})


@dataclass(frozen=True)
class TransactionRecord:
    """One immutable ledger line"""
    date: str
    time: str
    principal_id: str
    operation_type: OperationType
    amount: Decimal
    from_account: str
    to_account: str
    balance_after: Decimal

    def to_fields(self) -> List[str]:
        return [
            self.date,
            self.time,
            self.principal_id,
            self.operation_type.value,
            format_amount(self.amount),
            self.from_account,
            self.to_account,
            format_amount(self.balance_after),
        ]

    @classmethod
    def from_fields(cls, values: List[str]) -> 'TransactionRecord':
        if len(values) < 8:
            raise ValueError(f"Expected 8 ledger fields, got {len(values)}")
        return cls(
            date=values[0],
            time=values[1],
            principal_id=values[2],
            operation_type=OperationType(values[3]),
            amount=parse_decimal(values[4]),
            from_account=values[5],
            to_account=values[6],
            balance_after=parse_decimal(values[7]),
        )

    def involves(self, account_number: str) -> bool:
        """True if this line belongs to the account's history"""
        if self.principal_id == account_number:
            return True
        if self.operation_type in _DEBIT_SIDE:
            return self.from_account == account_number
        if self.operation_type in _CREDIT_SIDE:
            return self.to_account == account_number
        return False


class TransactionLedger:
    """Append-only ledger stored in a single file"""

    def __init__(self, path: Union[str, Path], clock: Optional[Callable[[], datetime]] = None):
        self.file = AppendOnlyFile(path, LOG_DELIMITER)
        self.clock = clock or datetime.now
        self.logger = get_logger("smartbank.ledger")

    def _write(self, principal_id: str, operation_type: OperationType, amount: Decimal,
               from_account: str, to_account: str, balance_after: Decimal) -> TransactionRecord:
        now = self.clock()
        record = TransactionRecord(
            date=format_date(now),
            time=format_time(now),
            principal_id=principal_id,
            operation_type=operation_type,
            amount=Decimal(amount),
            from_account=from_account,
            to_account=to_account,
            balance_after=Decimal(balance_after),
        )
        self.file.append(record.to_fields())

        log_action(
            self.logger, "info", f"Ledger entry: {operation_type.value}",
            user_id=principal_id, action="ledger_append",
            resource=f"account:{to_account if operation_type in _CREDIT_SIDE else from_account}",
            extra={
                "operation_type": operation_type.value,
                "amount": format_amount(record.amount),
                "from_account": from_account,
                "to_account": to_account,
                "balance_after": format_amount(record.balance_after),
            }
        )
        return record

    # Client self-service operations

    def log_deposit(self, client, amount: Decimal) -> TransactionRecord:
        account = client.account_number
        return self._write(account, OperationType.DEPOSIT, amount,
                           PLACEHOLDER, account, client.balance)

    def log_withdraw(self, client, amount: Decimal) -> TransactionRecord:
        account = client.account_number
        return self._write(account, OperationType.WITHDRAW, amount,
                           account, PLACEHOLDER, client.balance)

    def log_transfer(self, from_client, to_client,
                     amount: Decimal) -> Tuple[TransactionRecord, TransactionRecord]:
        sent = self._write(from_client.account_number, OperationType.TRANSFER_OUT, amount,
                           from_client.account_number, to_client.account_number,
                           from_client.balance)
        received = self._write(to_client.account_number, OperationType.TRANSFER_IN, amount,
                               from_client.account_number, to_client.account_number,
                               to_client.balance)
        return sent, received

    # Operations performed by an admin on a client's behalf

    def log_admin_deposit(self, admin, client, amount: Decimal) -> TransactionRecord:
        return self._write(admin.username, OperationType.ADMIN_DEPOSIT, amount,
                           PLACEHOLDER, client.account_number, client.balance)

    def log_admin_withdraw(self, admin, client, amount: Decimal) -> TransactionRecord:
        return self._write(admin.username, OperationType.ADMIN_WITHDRAW, amount,
                           client.account_number, PLACEHOLDER, client.balance)

    def log_admin_transfer(self, admin, from_client, to_client,
                           amount: Decimal) -> Tuple[TransactionRecord, TransactionRecord]:
        sent = self._write(admin.username, OperationType.ADM_TRANS_OUT, amount,
                           from_client.account_number, to_client.account_number,
                           from_client.balance)
        received = self._write(admin.username, OperationType.ADM_TRANS_IN, amount,
                               from_client.account_number, to_client.account_number,
                               to_client.balance)
        return sent, received

    # Views

    def all(self) -> List[TransactionRecord]:
        """Every ledger record in file order. Unreadable lines are skipped."""
        records = []
        for values in self.file.read_rows():
            try:
                records.append(TransactionRecord.from_fields(values))
            except ValueError as e:
                self.logger.warning(f"Skipping ledger line: {e}")
        return records

    def for_account(self, account_number: str) -> List[TransactionRecord]:
        return [r for r in self.all() if r.involves(account_number)]

    def by_type(self, operation_type: Union[OperationType, str]) -> List[TransactionRecord]:
        """Records with the given tag; an unknown tag matches nothing"""
        try:
            operation_type = OperationType(operation_type)
        except ValueError:
            return []
        return [r for r in self.all() if r.operation_type is operation_type]

    def admin_actions(self) -> List[TransactionRecord]:
        return [r for r in self.all() if r.operation_type.is_admin_action]


@dataclass(frozen=True)
class TransferRecord:
    """One line of the legacy admin transfer log"""
    date: str
    time: str
    admin_username: str
    amount: Decimal
    from_account: str
    from_balance: Decimal
    to_account: str
    to_balance: Decimal


class TransferLog:
    """
    Legacy admin transfer log.

    Line format:
        Date || Time || AdminUsername || Amount || FromAccount || FromBalance || ToAccount || ToBalance
    """

    def __init__(self, path: Union[str, Path], clock: Optional[Callable[[], datetime]] = None):
        self.file = AppendOnlyFile(path, FIELD_DELIMITER)
        self.clock = clock or datetime.now
        self.logger = get_logger("smartbank.ledger")

    def append(self, admin_username: str, amount: Decimal, from_account: str,
               from_balance: Decimal, to_account: str, to_balance: Decimal) -> TransferRecord:
        now = self.clock()
        record = TransferRecord(
            date=format_date(now),
            time=format_time(now),
            admin_username=admin_username,
            amount=Decimal(amount),
            from_account=from_account,
            from_balance=Decimal(from_balance),
            to_account=to_account,
            to_balance=Decimal(to_balance),
        )
        self.file.append([
            record.date,
            record.time,
            record.admin_username,
            format_amount(record.amount),
            record.from_account,
            format_amount(record.from_balance),
            record.to_account,
            format_amount(record.to_balance),
        ])
        return record

    def all(self) -> List[TransferRecord]:
        records = []
        for values in self.file.read_rows():
            if len(values) < 8:
                self.logger.warning(f"Skipping transfer log line with {len(values)} fields")
                continue
            try:
                records.append(TransferRecord(
                    date=values[0],
                    time=values[1],
                    admin_username=values[2],
                    amount=parse_decimal(values[3]),
                    from_account=values[4],
                    from_balance=parse_decimal(values[5]),
                    to_account=values[6],
                    to_balance=parse_decimal(values[7]),
                ))
            except ValueError as e:
                self.logger.warning(f"Skipping transfer log line: {e}")
        return records
