"""Net worth schemas."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class MonthlyNetWorthPoint(BaseModel):
    """Net worth at the end of one month, in the reporting currency."""

    month: date  # First day of the month
    assets: Decimal
    liabilities: Decimal
    net_worth: Decimal


class MonthlyNetWorthResponse(BaseModel):
    """Schema for the monthly net worth series."""

    reporting_currency: str
    points: list[MonthlyNetWorthPoint]


class MonthlyInvestmentPoint(BaseModel):
    """Value of the selected investment accounts at the end of one month."""

    month: date  # First day of the month
    value: Decimal


class MonthlyInvestmentResponse(BaseModel):
    """Schema for the monthly investment value series."""

    reporting_currency: str
    points: list[MonthlyInvestmentPoint]
