"""
Fiscal Quarter Module

The business year starts in April: Q1 Apr-Jun, Q2 Jul-Sep, Q3 Oct-Dec and
Q4 Jan-Mar. Q4 belongs to the fiscal year that began the previous April.
"""

from datetime import date, datetime
from dataclasses import dataclass
from typing import Dict, Optional, Union


@dataclass(frozen=True)
class FiscalQuarter:
    """Quarter label with inclusive calendar boundaries"""
    label: str
    start: date
    end: date

    def to_dict(self) -> Dict[str, str]:
        return {
            "label": self.label,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


# month -> (label, start month, end month, end day)
_QUARTER_TABLE = {
    1: ("Q4", 1, 3, 31), 2: ("Q4", 1, 3, 31), 3: ("Q4", 1, 3, 31),
    4: ("Q1", 4, 6, 30), 5: ("Q1", 4, 6, 30), 6: ("Q1", 4, 6, 30),
    7: ("Q2", 7, 9, 30), 8: ("Q2", 7, 9, 30), 9: ("Q2", 7, 9, 30),
    10: ("Q3", 10, 12, 31), 11: ("Q3", 10, 12, 31), 12: ("Q3", 10, 12, 31),
}


def resolve_fiscal_quarter(day: Union[date, datetime]) -> FiscalQuarter:
    """
    Map a calendar date to its fiscal quarter.

    Boundaries use the calendar year of the given date, including Q4
    (Jan 1 to Mar 31 of that same year).
    """
    if isinstance(day, datetime):
        day = day.date()
    label, start_month, end_month, end_day = _QUARTER_TABLE[day.month]
    return FiscalQuarter(
        label=label,
        start=date(day.year, start_month, 1),
        end=date(day.year, end_month, end_day),
    )


def fiscal_year_label(quarter: FiscalQuarter, calendar_year: Optional[int] = None) -> str:
    """
    Label such as "2025-26" for the fiscal year a quarter belongs to.

    Args:
        quarter: Resolved quarter
        calendar_year: Calendar year of the evaluation date; defaults to the
            quarter's own start year
    """
    year = calendar_year if calendar_year is not None else quarter.start.year
    first = year - 1 if quarter.label == "Q4" else year
    return f"{first}-{str(first + 1)[-2:]}"
