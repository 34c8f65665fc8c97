"""
Finance Periods - fiscal period control

Fiscal years of twelve monthly periods with an Open -> Closed -> Locked
lifecycle, a posting guard for journal entry dates, and one validated
opening balance batch per year.
"""

__version__ = "0.1.0"
