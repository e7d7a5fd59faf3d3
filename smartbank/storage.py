"""
Flat File Storage Module

Maps each record type to a single text file, one record per line. Entity
files are loaded whole, rewritten whole on update or delete, and appended
to when a brand-new record is added. Logs are append-only.

Every file path owns one re-entrant lock; all reads and writes of that path
go through it, so a read-modify-write cycle in this process never
interleaves with another writer of the same file.
"""

import logging
import threading
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Generic, Iterator, List, Optional, Sequence, Type, TypeVar, Union

from .encryption import EncryptionProvider
from .errors import CorruptRecordError, SaveResult, StorageUnavailableError
from .serialization import FIELD_DELIMITER, join_fields, split_line

logger = logging.getLogger("smartbank.storage")

_file_locks: Dict[str, threading.RLock] = {}
_registry_lock = threading.Lock()


def file_lock(path: Union[str, Path]) -> threading.RLock:
    """Get the lock guarding a data file"""
    key = str(Path(path).resolve())
    with _registry_lock:
        lock = _file_locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _file_locks[key] = lock
        return lock


class RecordMode(Enum):
    """Lifecycle of an attached record"""
    NEW = "new"            # Built for insertion, not yet on disk
    EXISTING = "existing"  # Loaded from disk or successfully added


@dataclass
class StorageRecord:
    """
    Base class for all records kept in an entity file.

    A record whose mode is None is detached: it was never found, or it has
    been deleted. Saving a detached record fails with EMPTY_OBJECT.
    """
    mode: Optional[RecordMode] = field(default=None, kw_only=True, compare=False, repr=False)
    marked_for_delete: bool = field(default=False, kw_only=True, compare=False, repr=False)

    @property
    def key(self) -> str:
        """Primary key of the record"""
        raise NotImplementedError

    @property
    def is_empty(self) -> bool:
        return self.mode is None

    def conflicts_with(self, other: 'StorageRecord') -> bool:
        """True if adding this record next to other would break uniqueness"""
        return self.key == other.key

    def to_fields(self, provider: EncryptionProvider) -> List[str]:
        raise NotImplementedError

    @classmethod
    def from_fields(cls, values: List[str], provider: EncryptionProvider) -> 'StorageRecord':
        raise NotImplementedError

    def to_line(self, provider: EncryptionProvider, delimiter: str = FIELD_DELIMITER) -> str:
        """Serialize to one stored line"""
        return join_fields(self.to_fields(provider), delimiter)

    @classmethod
    def from_line(cls, line: str, provider: EncryptionProvider,
                  delimiter: str = FIELD_DELIMITER) -> 'StorageRecord':
        """Deserialize one stored line into an EXISTING record"""
        record = cls.from_fields(split_line(line, delimiter), provider)
        record.mode = RecordMode.EXISTING
        return record

    def reset(self) -> None:
        """Blank every field and detach the record"""
        blank = type(self)()
        for f in fields(self):
            setattr(self, f.name, getattr(blank, f.name))
        self.mode = None


R = TypeVar('R', bound=StorageRecord)


def _read_lines(path: Path) -> List[str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return [line.rstrip("\r\n") for line in f]
    except FileNotFoundError:
        return []
    except OSError as e:
        logger.error(f"Cannot read {path}: {e}")
        raise StorageUnavailableError(str(path), str(e)) from e


def _write_lines(path: Path, lines: Sequence[str], append: bool) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a" if append else "w", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")
    except OSError as e:
        logger.error(f"Cannot write {path}: {e}")
        raise StorageUnavailableError(str(path), str(e)) from e


class RecordStore(Generic[R]):
    """Single-file store for one record type"""

    def __init__(self, path: Union[str, Path], record_type: Type[R],
                 provider: EncryptionProvider, delimiter: str = FIELD_DELIMITER):
        self.path = Path(path)
        self.record_type = record_type
        self.provider = provider
        self.delimiter = delimiter
        self._lock = file_lock(self.path)

    def _parse(self, line: str, line_number: int) -> R:
        try:
            return self.record_type.from_line(line, self.provider, self.delimiter)
        except (ValueError, IndexError) as e:
            logger.error(f"Corrupt record at {self.path}:{line_number}: {e}")
            raise CorruptRecordError(str(self.path), line_number, str(e)) from e

    def _iter_records(self) -> Iterator[R]:
        for number, line in enumerate(_read_lines(self.path), start=1):
            if line.strip():
                yield self._parse(line, number)

    def load_all(self) -> List[R]:
        """Load every record in file order. A missing file holds no records."""
        with self._lock:
            return list(self._iter_records())

    def save_all(self, records: Sequence[R]) -> None:
        """Rewrite the whole file, dropping records marked for delete"""
        lines = [r.to_line(self.provider, self.delimiter)
                 for r in records if not r.marked_for_delete]
        with self._lock:
            _write_lines(self.path, lines, append=False)

    def append_one(self, record: R) -> None:
        """Append a single record without rewriting the file"""
        line = record.to_line(self.provider, self.delimiter)
        with self._lock:
            _write_lines(self.path, [line], append=True)

    def find(self, predicate: Callable[[R], bool]) -> Optional[R]:
        """First record matching predicate, or None"""
        with self._lock:
            for record in self._iter_records():
                if predicate(record):
                    return record
        return None

    def find_by_key(self, key: str) -> Optional[R]:
        return self.find(lambda r: r.key == key)

    def exists(self, key: str) -> bool:
        return self.find_by_key(key) is not None

    def update(self, record: R) -> bool:
        """Replace the stored record that has the same key"""
        with self._lock:
            records = self.load_all()
            for index, stored in enumerate(records):
                if stored.key == record.key:
                    records[index] = record
                    self.save_all(records)
                    return True
        logger.warning(f"Update of '{record.key}' found no stored record in {self.path.name}")
        return False

    def delete(self, record: R) -> bool:
        """Tombstone the stored record with the same key and detach the caller's copy"""
        found = False
        with self._lock:
            records = self.load_all()
            for stored in records:
                if stored.key == record.key:
                    stored.marked_for_delete = True
                    found = True
                    break
            if found:
                self.save_all(records)
        record.reset()
        return found

    def save(self, record: R) -> SaveResult:
        """Insert or update depending on the record's mode"""
        if record.mode is RecordMode.NEW:
            with self._lock:
                if self.find(record.conflicts_with) is not None:
                    return SaveResult.KEY_EXISTS
                self.append_one(record)
            record.mode = RecordMode.EXISTING
            return SaveResult.SUCCEEDED

        if record.mode is RecordMode.EXISTING:
            self.update(record)
            return SaveResult.SUCCEEDED

        return SaveResult.EMPTY_OBJECT


class AppendOnlyFile:
    """Append-only log file with one delimited row per line"""

    def __init__(self, path: Union[str, Path], delimiter: str):
        self.path = Path(path)
        self.delimiter = delimiter
        self._lock = file_lock(self.path)

    def append(self, values: Sequence[str]) -> str:
        """Append one row and return the written line"""
        line = join_fields(values, self.delimiter)
        with self._lock:
            _write_lines(self.path, [line], append=True)
        return line

    def read_lines(self) -> List[str]:
        """Raw lines in file order, blank lines skipped"""
        with self._lock:
            return [line for line in _read_lines(self.path) if line.strip()]

    def read_rows(self) -> List[List[str]]:
        """Rows split into field values, in file order"""
        return [split_line(line, self.delimiter) for line in self.read_lines()]
