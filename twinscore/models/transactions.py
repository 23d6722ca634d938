"""
Transaction and monthly aggregate models.

EnrichedTransaction is the read-only input handed over by the categorizer.
MonthlyAggregate is the per-month rollup every engine consumes; the
aggregator builds the sequence once per analysis and nothing mutates it
afterward.
"""

import re
from datetime import date as Date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MONTH_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class EnrichedTransaction(BaseModel):
    """
    A categorized bank transaction.

    Amounts are signed as the bank reports them; every engine works with
    absolute values, so the sign carries no meaning beyond the income flag.

    Attributes:
        amount: Signed transaction amount
        date: Posting date (ISO strings are accepted)
        name: Raw transaction description from the bank feed
        merchant_name: Cleaned merchant name, when the categorizer found one
        category: Category label from the categorizer taxonomy
        is_recurring: True if the categorizer saw this charge recur
        is_income_deposit: True for deposits counted as income
    """

    model_config = ConfigDict(frozen=True)

    amount: float = Field(description="Signed transaction amount")
    date: Date = Field(description="Posting date")
    name: str = Field(default="", description="Raw transaction description")
    merchant_name: Optional[str] = Field(
        default=None, description="Cleaned merchant name"
    )
    category: str = Field(default="other", description="Category label")
    is_recurring: bool = Field(default=False, description="Recurring charge flag")
    is_income_deposit: bool = Field(default=False, description="Income deposit flag")

    @property
    def month_key(self) -> str:
        return self.date.strftime("%Y-%m")

    @property
    def source_name(self) -> str:
        """Merchant name, falling back to the raw description."""
        return self.merchant_name or self.name

    @property
    def magnitude(self) -> float:
        return abs(self.amount)


class MonthlyAggregate(BaseModel):
    """
    One calendar month of rolled-up activity.

    end_balance is cumulative from the first analysed month, seeded at zero
    since the true opening balance is unknown. overdraft_count is a
    point-in-time flag (0 or 1) set when that cumulative balance is
    negative, not a count of overdraft events.

    Attributes:
        month: Month key in YYYY-MM form
        total_deposits: Sum of income deposits
        total_spending: Sum of all non-income outflows
        essential_spending: Outflows in essential categories
        discretionary_spending: All other outflows
        debt_payments: Outflows in the debt category
        savings_transfers: Outflows in the savings-transfer category
        end_balance: Running balance after this month
        income_source_count: Distinct income sources this month
        overdraft_count: 1 if end_balance is negative, else 0
        subscription_count: Distinct subscription merchants this month
        has_payroll_deposit: True if any deposit looked like payroll
    """

    model_config = ConfigDict(frozen=True)

    month: str = Field(description="Month key (YYYY-MM)")
    total_deposits: float = Field(default=0.0, ge=0)
    total_spending: float = Field(default=0.0, ge=0)
    essential_spending: float = Field(default=0.0, ge=0)
    discretionary_spending: float = Field(default=0.0, ge=0)
    debt_payments: float = Field(default=0.0, ge=0)
    savings_transfers: float = Field(default=0.0, ge=0)
    end_balance: float = Field(default=0.0)
    income_source_count: int = Field(default=0, ge=0)
    overdraft_count: int = Field(default=0, description="Negative-balance flag (0 or 1)")
    subscription_count: int = Field(default=0, ge=0)
    has_payroll_deposit: bool = Field(default=False)

    @field_validator("month")
    @classmethod
    def validate_month_key(cls, v: str) -> str:
        """Ensure the month key is a valid YYYY-MM string."""
        if not MONTH_KEY_PATTERN.match(v):
            raise ValueError(f"Month key must be YYYY-MM, got {v!r}")
        return v

    @field_validator("overdraft_count")
    @classmethod
    def validate_overdraft_flag(cls, v: int) -> int:
        """The overdraft field is a flag, never an event count."""
        if v not in (0, 1):
            raise ValueError("overdraft_count must be 0 or 1")
        return v

    @property
    def net_savings(self) -> float:
        return self.total_deposits - self.total_spending


class TransactionPatterns(BaseModel):
    """
    Descriptive patterns pulled from the raw transaction list.

    Attributes:
        top_merchants: Up to 10 merchants ordered by transaction count
        recurring_charges: Up to 15 distinct recurring charge names
        unusual_spikes: Human-readable lines for months far above average spend
        primary_income_source: Income source with the largest total deposits
        months_analysed: Number of months in the aggregate sequence
    """

    model_config = ConfigDict(frozen=True)

    top_merchants: list[str] = Field(default_factory=list)
    recurring_charges: list[str] = Field(default_factory=list)
    unusual_spikes: list[str] = Field(default_factory=list)
    primary_income_source: str = Field(default="Unknown")
    months_analysed: int = Field(default=0, ge=0)
