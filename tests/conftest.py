"""
Pytest configuration and shared fixtures for the twinscore test suite.

Data factories for transactions and monthly aggregates, environment
isolation for settings, and reusable histories across all test types
(unit, golden, property-based).
"""

import os
from datetime import date
from typing import Optional

import pytest

os.environ.setdefault("TWINSCORE_DEV_MODE", "true")

from twinscore.config import get_settings
from twinscore.engine.simulation.projection import shift_month
from twinscore.models.transactions import EnrichedTransaction, MonthlyAggregate


# ---------------------------------------------------------------------------
# Pydantic model factories: reusable across all test suites
# ---------------------------------------------------------------------------


def make_transaction(
    amount: float = -50.0,
    on: date = date(2024, 1, 10),
    name: str = "",
    merchant_name: Optional[str] = None,
    category: str = "other",
    is_recurring: bool = False,
    is_income_deposit: bool = False,
    **overrides,
) -> EnrichedTransaction:
    """Factory function for creating test EnrichedTransaction objects."""
    defaults = dict(
        amount=amount,
        date=on,
        name=name or (merchant_name or "").upper(),
        merchant_name=merchant_name,
        category=category,
        is_recurring=is_recurring,
        is_income_deposit=is_income_deposit,
    )
    defaults.update(overrides)
    return EnrichedTransaction(**defaults)


def make_deposit(
    amount: float,
    on: date,
    merchant_name: str = "Acme Corp",
    name: str = "ACME CORP PAYROLL",
    is_recurring: bool = True,
) -> EnrichedTransaction:
    """Factory for an income deposit; payroll by default."""
    return make_transaction(
        amount=amount,
        on=on,
        name=name,
        merchant_name=merchant_name,
        category="income",
        is_recurring=is_recurring,
        is_income_deposit=True,
    )


def make_month(
    month: str = "2024-01",
    total_deposits: float = 5000.0,
    total_spending: float = 3500.0,
    essential_spending: Optional[float] = None,
    discretionary_spending: Optional[float] = None,
    debt_payments: float = 400.0,
    savings_transfers: float = 300.0,
    end_balance: float = 12000.0,
    income_source_count: int = 2,
    subscription_count: int = 3,
    has_payroll_deposit: bool = True,
    **overrides,
) -> MonthlyAggregate:
    """
    Factory function for creating test MonthlyAggregate objects.

    Essential spending defaults to 60% of total spending and discretionary
    to the remainder. The overdraft flag follows the sign of end_balance
    unless overridden.
    """
    if essential_spending is None:
        essential_spending = total_spending * 0.6
    if discretionary_spending is None:
        discretionary_spending = total_spending - essential_spending
    defaults = dict(
        month=month,
        total_deposits=total_deposits,
        total_spending=total_spending,
        essential_spending=essential_spending,
        discretionary_spending=discretionary_spending,
        debt_payments=debt_payments,
        savings_transfers=savings_transfers,
        end_balance=end_balance,
        income_source_count=income_source_count,
        overdraft_count=1 if end_balance < 0 else 0,
        subscription_count=subscription_count,
        has_payroll_deposit=has_payroll_deposit,
    )
    defaults.update(overrides)
    return MonthlyAggregate(**defaults)


def make_history(
    count: int = 6,
    start: str = "2024-01",
    opening_balance: float = 12000.0,
    **overrides,
) -> list[MonthlyAggregate]:
    """
    Consecutive months with identical activity and a consistent running balance.

    Per-month lists may be passed for any numeric field, e.g.
    ``make_history(4, total_spending=[1000, 1100, 1200, 1300])``.
    """
    months = []
    balance = opening_balance
    for i in range(count):
        fields = {
            key: (value[i] if isinstance(value, (list, tuple)) else value)
            for key, value in overrides.items()
        }
        deposits = fields.pop("total_deposits", 5000.0)
        spending = fields.pop("total_spending", 3500.0)
        if "end_balance" in fields:
            balance = fields.pop("end_balance")
        else:
            balance += deposits - spending
        months.append(
            make_month(
                month=shift_month(start, i),
                total_deposits=deposits,
                total_spending=spending,
                end_balance=balance,
                **fields,
            )
        )
    return months


def make_transaction_history(
    count: int = 6,
    start: date = date(2024, 1, 1),
    paycheck: float = 2500.0,
    rent: float = 1400.0,
    debt_payment: float = 350.0,
    savings: float = 300.0,
    side_income: float = 0.0,
) -> list[EnrichedTransaction]:
    """
    A fixed, fully deterministic transaction history.

    Each month: two payroll deposits, optional freelance income, rent,
    utilities, a student-loan payment, a savings transfer, two
    subscriptions, groceries and a handful of discretionary purchases.
    """
    transactions = []
    for i in range(count):
        index = start.year * 12 + start.month - 1 + i
        year, month = index // 12, index % 12 + 1

        def on(day: int) -> date:
            return date(year, month, day)

        transactions.extend(
            [
                make_deposit(paycheck, on(1)),
                make_deposit(paycheck, on(15)),
                make_transaction(-rent, on(1), merchant_name="Oakwood Apartments",
                                 category="rent", is_recurring=True),
                make_transaction(-120.0, on(8), merchant_name="City Power",
                                 category="utilities", is_recurring=True),
                make_transaction(-debt_payment, on(20), merchant_name="Navient",
                                 category="debt_payment", is_recurring=True),
                make_transaction(-savings, on(2), merchant_name="Ally Savings",
                                 category="savings_transfer", is_recurring=True),
                make_transaction(-15.49, on(3), merchant_name="Netflix",
                                 category="subscriptions", is_recurring=True),
                make_transaction(-10.99, on(3), merchant_name="Spotify",
                                 category="subscriptions", is_recurring=True),
                make_transaction(-320.0, on(10), merchant_name="Trader Joe's",
                                 category="groceries"),
                make_transaction(-180.0, on(12), merchant_name="Chipotle",
                                 category="dining"),
                make_transaction(-240.0, on(22), merchant_name="Amazon",
                                 category="shopping"),
            ]
        )
        if side_income:
            transactions.append(
                make_deposit(side_income, on(18), merchant_name="Upwork",
                             name="UPWORK ESCROW", is_recurring=False)
            )
    return transactions


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_settings():
    """Clear the cached settings so env changes in one test never leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Reusable histories
# ---------------------------------------------------------------------------


@pytest.fixture
def steady_months() -> list[MonthlyAggregate]:
    """Six identical, healthy months with a growing balance."""
    return make_history(6)


@pytest.fixture
def steady_transactions() -> list[EnrichedTransaction]:
    """Six months of deterministic salaried activity."""
    return make_transaction_history(6)
