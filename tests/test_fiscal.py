"""
Tests for fiscal quarter resolution
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from loan_accounting.fiscal import FiscalQuarter, resolve_fiscal_quarter, fiscal_year_label


class TestResolveFiscalQuarter:
    """Test mapping calendar dates to April-start fiscal quarters"""

    @pytest.mark.parametrize("day,label,start,end", [
        (date(2025, 4, 1), "Q1", date(2025, 4, 1), date(2025, 6, 30)),
        (date(2025, 6, 30), "Q1", date(2025, 4, 1), date(2025, 6, 30)),
        (date(2025, 7, 1), "Q2", date(2025, 7, 1), date(2025, 9, 30)),
        (date(2025, 9, 30), "Q2", date(2025, 7, 1), date(2025, 9, 30)),
        (date(2025, 10, 5), "Q3", date(2025, 10, 1), date(2025, 12, 31)),
        (date(2025, 12, 31), "Q3", date(2025, 10, 1), date(2025, 12, 31)),
        (date(2026, 1, 15), "Q4", date(2026, 1, 1), date(2026, 3, 31)),
        (date(2026, 3, 31), "Q4", date(2026, 1, 1), date(2026, 3, 31)),
    ])
    def test_quarter_boundaries(self, day, label, start, end):
        quarter = resolve_fiscal_quarter(day)
        assert quarter == FiscalQuarter(label, start, end)

    def test_accepts_datetime(self):
        quarter = resolve_fiscal_quarter(datetime(2025, 10, 5, 18, 30, tzinfo=timezone.utc))
        assert quarter.label == "Q3"
        assert quarter.start == date(2025, 10, 1)

    def test_every_day_falls_inside_its_quarter(self):
        day = date(2024, 1, 1)
        while day.year == 2024:
            quarter = resolve_fiscal_quarter(day)
            assert quarter.start <= day <= quarter.end
            assert quarter.start.year == day.year
            day += timedelta(days=1)

    def test_to_dict(self):
        assert resolve_fiscal_quarter(date(2025, 10, 5)).to_dict() == {
            "label": "Q3", "start": "2025-10-01", "end": "2025-12-31"
        }


class TestFiscalYearLabel:
    """Test fiscal year labels"""

    def test_q3_label(self):
        quarter = resolve_fiscal_quarter(date(2025, 10, 5))
        assert fiscal_year_label(quarter, 2025) == "2025-26"

    def test_q4_belongs_to_previous_april(self):
        quarter = resolve_fiscal_quarter(date(2026, 1, 15))
        assert fiscal_year_label(quarter, 2026) == "2025-26"

    def test_q1_starts_new_year(self):
        quarter = resolve_fiscal_quarter(date(2026, 4, 2))
        assert fiscal_year_label(quarter) == "2026-27"

    def test_century_rollover(self):
        quarter = resolve_fiscal_quarter(date(2000, 2, 1))
        assert fiscal_year_label(quarter) == "1999-00"
