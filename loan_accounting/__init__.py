"""
Loan Accounting Engine

Loan status evaluation and quarterly subscription interest for a loan and
subscription bookkeeping back end. All money math uses Decimal.
"""

__version__ = "1.0.0"
