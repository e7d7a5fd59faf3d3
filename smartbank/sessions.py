"""
Session Log Module

Append-only login/logout history for one kind of principal. Admin logs
also carry a snapshot of the admin's permissions at the time of the event.

Line formats:
    admins:  Date#//#Time#//#Action#//#Username#//#FullName#//#Permissions#//#Duration
    clients: Date#//#Time#//#Action#//#AccountNumber#//#FullName#//#Duration

A LOGOUT line carries the time elapsed since the same principal's most
recent LOGIN; every other line carries the placeholder.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union

from .logging_config import get_logger, log_action
from .serialization import LOG_DELIMITER, PLACEHOLDER, format_date, format_time, split_line
from .storage import AppendOnlyFile

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR


class SessionAction(Enum):
    """Session event types"""
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"


@dataclass(frozen=True)
class SessionRecord:
    """One login or logout event"""
    date: str
    time: str
    action: SessionAction
    principal_id: str
    full_name: str
    duration: str = PLACEHOLDER
    permissions: Optional[int] = None  # Admin logs only

    @property
    def timestamp(self) -> str:
        return f"{self.date} {self.time}"


def format_duration(total_minutes: int) -> str:
    """Render minutes as 'N mins', 'H hrs M mins' or 'D days H hrs M mins'"""
    if total_minutes < 0:
        return "Invalid"

    if total_minutes < MINUTES_PER_HOUR:
        return f"{total_minutes} mins"

    hours, minutes = divmod(total_minutes, MINUTES_PER_HOUR)
    if hours < 24:
        if minutes == 0:
            return f"{hours} hrs"
        return f"{hours} hrs {minutes} mins"

    days, hours = divmod(hours, 24)
    parts = [f"{days} days"]
    if hours:
        parts.append(f"{hours} hrs")
    if minutes:
        parts.append(f"{minutes} mins")
    return " ".join(parts)


def _parse_date(text: str) -> date:
    day, month, year = (int(part) for part in text.split("/"))
    return date(year, month, day)


def _minutes_of_day(clock: str, meridiem: Optional[str]) -> int:
    hour, minute, _second = clock.split(":")
    hour, minute = int(hour), int(minute)
    if meridiem == "PM" and hour != 12:
        hour += 12
    elif meridiem == "AM" and hour == 12:
        hour = 0
    return hour * MINUTES_PER_HOUR + minute


def calculate_duration(login_at: str, logout_at: str) -> str:
    """
    Elapsed time between two "D/M/YYYY hh:mm:ss AM" timestamps.

    Seconds are ignored. Returns "Unknown" when either timestamp cannot be
    parsed and "Invalid" when logout precedes login.
    """
    login_parts = login_at.split()
    logout_parts = logout_at.split()
    if len(login_parts) < 2 or len(logout_parts) < 2:
        return "Unknown"

    try:
        days = (_parse_date(logout_parts[0]) - _parse_date(login_parts[0])).days
        start = _minutes_of_day(login_parts[1], login_parts[2] if len(login_parts) > 2 else None)
        end = _minutes_of_day(logout_parts[1], logout_parts[2] if len(logout_parts) > 2 else None)
    except ValueError:
        return "Unknown"

    return format_duration(days * MINUTES_PER_DAY + end - start)


class SessionLog:
    """Append-only session history stored in a single file"""

    def __init__(self, path: Union[str, Path], with_permissions: bool = False,
                 clock: Optional[Callable[[], datetime]] = None):
        self.file = AppendOnlyFile(path, LOG_DELIMITER)
        self.with_permissions = with_permissions
        self.clock = clock or datetime.now
        self.logger = get_logger("smartbank.sessions")

    @property
    def _field_count(self) -> int:
        return 7 if self.with_permissions else 6

    def _to_record(self, values: List[str]) -> Optional[SessionRecord]:
        if len(values) < self._field_count:
            return None
        try:
            action = SessionAction(values[2])
            permissions = int(values[5]) if self.with_permissions else None
        except ValueError:
            return None
        return SessionRecord(
            date=values[0],
            time=values[1],
            action=action,
            principal_id=values[3],
            full_name=values[4],
            duration=values[-1],
            permissions=permissions,
        )

    def last_login(self, principal_id: str) -> Optional[str]:
        """Timestamp of the principal's most recent LOGIN, or None"""
        last = None
        for values in self.file.read_rows():
            if len(values) >= 4 and values[3] == principal_id and values[2] == SessionAction.LOGIN.value:
                last = f"{values[0]} {values[1]}"
        return last

    def register(self, principal_id: str, full_name: str,
                 action: Union[SessionAction, str],
                 permissions: Optional[int] = None) -> SessionRecord:
        """Append a LOGIN or LOGOUT event for the principal"""
        action = SessionAction(action)
        now = self.clock()
        record_date, record_time = format_date(now), format_time(now)

        duration = PLACEHOLDER
        if action is SessionAction.LOGOUT:
            login_at = self.last_login(principal_id)
            if login_at:
                duration = calculate_duration(login_at, f"{record_date} {record_time}")

        values = [record_date, record_time, action.value, principal_id, full_name]
        if self.with_permissions:
            values.append(str(permissions if permissions is not None else 0))
        values.append(duration)
        self.file.append(values)

        log_action(
            self.logger, "info", f"Session {action.value.lower()}: {principal_id}",
            user_id=principal_id, action=action.value.lower(),
            extra={"duration": duration} if action is SessionAction.LOGOUT else None
        )

        return SessionRecord(
            date=record_date,
            time=record_time,
            action=action,
            principal_id=principal_id,
            full_name=full_name,
            duration=duration,
            permissions=permissions if self.with_permissions else None,
        )

    def get_log(self, principal_id: Optional[str] = None) -> List[SessionRecord]:
        """All session events in file order, optionally for one principal"""
        records = []
        for values in self.file.read_rows():
            if principal_id is not None and (len(values) < 4 or values[3] != principal_id):
                continue
            record = self._to_record(values)
            if record is None:
                self.logger.warning(f"Skipping malformed session line in {self.file.path.name}")
                continue
            records.append(record)
        return records

    def get_raw_log(self, principal_id: Optional[str] = None) -> List[str]:
        """Raw session lines for display, optionally for one principal"""
        lines = self.file.read_lines()
        if principal_id is None:
            return lines
        selected = []
        for line in lines:
            values = split_line(line, LOG_DELIMITER)
            if len(values) >= 4 and values[3] == principal_id:
                selected.append(line)
        return selected
