"""
Tests for session logs and session duration
"""

import pytest
from datetime import datetime

from smartbank.sessions import (
    SessionAction, SessionLog, calculate_duration, format_duration
)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 6, 1, 10, 0, 0))


@pytest.fixture
def session_log(tmp_path, clock):
    return SessionLog(tmp_path / "ClientsSessionLog.txt", clock=clock)


class TestFormatDuration:
    """Test rendering elapsed minutes"""

    def test_minutes_only(self):
        assert format_duration(0) == "0 mins"
        assert format_duration(59) == "59 mins"

    def test_hours(self):
        assert format_duration(60) == "1 hrs"
        assert format_duration(90) == "1 hrs 30 mins"

    def test_days(self):
        assert format_duration(1440) == "1 days"
        assert format_duration(1440 + 60) == "1 days 1 hrs"
        assert format_duration(2 * 1440 + 5) == "2 days 5 mins"
        assert format_duration(1440 + 61) == "1 days 1 hrs 1 mins"

    def test_negative(self):
        assert format_duration(-1) == "Invalid"


class TestCalculateDuration:
    """Test elapsed time between two log timestamps"""

    def test_same_day(self):
        assert calculate_duration("1/6/2025 10:00:00 AM", "1/6/2025 11:30:00 AM") == "1 hrs 30 mins"

    def test_across_midnight(self):
        assert calculate_duration("1/6/2025 11:50:00 PM", "2/6/2025 12:10:00 AM") == "20 mins"

    def test_noon(self):
        assert calculate_duration("1/6/2025 11:45:00 AM", "1/6/2025 12:15:00 PM") == "30 mins"

    def test_across_month_end(self):
        assert calculate_duration("31/1/2025 10:00:00 AM", "1/2/2025 10:00:00 AM") == "1 days"

    def test_seconds_are_ignored(self):
        assert calculate_duration("1/6/2025 10:00:59 AM", "1/6/2025 10:01:00 AM") == "1 mins"

    def test_logout_before_login(self):
        assert calculate_duration("2/6/2025 10:00:00 AM", "1/6/2025 10:00:00 AM") == "Invalid"

    def test_unparseable(self):
        assert calculate_duration("garbage", "1/6/2025 10:00:00 AM") == "Unknown"
        assert calculate_duration("1/x/2025 10:00:00 AM", "1/6/2025 10:00:00 AM") == "Unknown"


class TestSessionLog:
    """Test registering and reading session events"""

    def test_login_line(self, session_log):
        record = session_log.register("A100", "Ada Lovelace", SessionAction.LOGIN)

        assert record.duration == "-"
        assert record.timestamp == "1/6/2025 10:00:00 AM"
        assert session_log.file.read_lines() == [
            "1/6/2025#//#10:00:00 AM#//#LOGIN#//#A100#//#Ada Lovelace#//#-"
        ]

    def test_logout_uses_latest_login(self, session_log, clock):
        session_log.register("A100", "Ada Lovelace", SessionAction.LOGIN)
        clock.now = datetime(2025, 6, 1, 12, 0, 0)
        session_log.register("A100", "Ada Lovelace", SessionAction.LOGIN)
        clock.now = datetime(2025, 6, 1, 12, 25, 0)

        record = session_log.register("A100", "Ada Lovelace", SessionAction.LOGOUT)
        assert record.duration == "25 mins"

    def test_logout_ignores_other_principals(self, session_log, clock):
        session_log.register("A100", "Ada Lovelace", SessionAction.LOGIN)
        clock.now = datetime(2025, 6, 1, 11, 0, 0)
        session_log.register("B200", "Bob Stone", SessionAction.LOGIN)
        clock.now = datetime(2025, 6, 1, 11, 5, 0)

        assert session_log.register("A100", "Ada Lovelace", "LOGOUT").duration == "1 hrs 5 mins"

    def test_logout_without_login(self, session_log):
        record = session_log.register("A100", "Ada Lovelace", SessionAction.LOGOUT)
        assert record.duration == "-"

    def test_unknown_action_rejected(self, session_log):
        with pytest.raises(ValueError):
            session_log.register("A100", "Ada Lovelace", "TIMEOUT")

    def test_last_login(self, session_log, clock):
        assert session_log.last_login("A100") is None
        session_log.register("A100", "Ada Lovelace", SessionAction.LOGIN)
        assert session_log.last_login("A100") == "1/6/2025 10:00:00 AM"

    def test_get_log_filters_by_principal(self, session_log):
        session_log.register("A100", "Ada Lovelace", SessionAction.LOGIN)
        session_log.register("B200", "Bob Stone", SessionAction.LOGIN)
        session_log.register("A100", "Ada Lovelace", SessionAction.LOGOUT)

        records = session_log.get_log("A100")
        assert [r.action for r in records] == [SessionAction.LOGIN, SessionAction.LOGOUT]
        assert len(session_log.get_log()) == 3
        assert len(session_log.get_raw_log("B200")) == 1
        assert len(session_log.get_raw_log()) == 3

    def test_malformed_lines_skipped(self, session_log):
        session_log.register("A100", "Ada Lovelace", SessionAction.LOGIN)
        with open(session_log.file.path, "a", encoding="utf-8") as f:
            f.write("broken line\n")
            f.write("1/6/2025#//#10:00:00 AM#//#NAP#//#A100#//#Ada Lovelace#//#-\n")

        assert len(session_log.get_log()) == 1

    def test_admin_log_carries_permissions(self, tmp_path, clock):
        log = SessionLog(tmp_path / "AdminsSessionLog.txt", with_permissions=True, clock=clock)
        log.register("root", "Sam Rivera", SessionAction.LOGIN, permissions=-1)
        clock.now = datetime(2025, 6, 2, 10, 0, 0)
        log.register("root", "Sam Rivera", SessionAction.LOGOUT, permissions=-1)

        login, logout = log.get_log("root")
        assert login.permissions == -1
        assert logout.duration == "1 days"
        assert log.file.read_lines()[1] == (
            "2/6/2025#//#10:00:00 AM#//#LOGOUT#//#root#//#Sam Rivera#//#-1#//#1 days"
        )
