"""
Unit tests for pi_dashboard/config.py -- configuration constants and environment loading.
"""
import os
import sys
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))
os.environ.setdefault("DATABASE_URL", "")

from pi_dashboard.config import (
    BOARDS,
    BOARD_ACCOMPLISHMENT,
    BOARD_TARGET,
    DATABASE_PATH,
    DEFAULT_YEAR,
    MONTHS,
    MONTHS_PER_YEAR,
    REPORTING_YEARS,
    UNIT_HEADER,
    USE_POSTGRES,
)

pytestmark = pytest.mark.unit


class TestBoards:
    def test_two_boards(self):
        assert BOARDS == [BOARD_ACCOMPLISHMENT, BOARD_TARGET]


class TestCalendar:
    def test_twelve_months(self):
        assert MONTHS_PER_YEAR == 12
        assert MONTHS[0] == "Jan"
        assert MONTHS[-1] == "Dec"

    def test_reporting_years(self):
        assert REPORTING_YEARS == ["2023", "2024", "2025", "2026"]

    def test_default_year_is_reported(self):
        assert DEFAULT_YEAR in REPORTING_YEARS


class TestDatabase:
    def test_sqlite_in_tests(self):
        assert USE_POSTGRES is False

    def test_database_path_is_sqlite_file(self):
        assert str(DATABASE_PATH).endswith(".db")


class TestHeaders:
    def test_unit_header(self):
        assert UNIT_HEADER == "X-Unit-Id"
