"""
Shared building blocks for what-if simulations.

HistoricalProfile condenses the historical aggregates into the averages a
projection starts from; synthesize_month turns one projected month back into
a MonthlyAggregate so the scoring engine can re-score it.
"""

from dataclasses import dataclass
from typing import Sequence

from twinscore.engine.stats import linear_regression_slope, mean, round_half_up
from twinscore.models.transactions import MonthlyAggregate

DEFAULT_ESSENTIAL_RATIO = 0.5


def shift_month(month: str, offset: int) -> str:
    """Month key offset by a number of calendar months."""
    year, month_number = (int(part) for part in month.split("-"))
    index = year * 12 + (month_number - 1) + offset
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


@dataclass(frozen=True)
class HistoricalProfile:
    """
    Average monthly behavior extracted from historical aggregates.

    Attributes:
        last_month: Key of the most recent historical month
        avg_income: Mean total deposits
        avg_spending: Mean total spending
        avg_essential: Mean essential spending
        avg_discretionary: Mean discretionary spending
        avg_debt: Mean debt payments
        avg_savings: Mean savings transfers
        avg_subscriptions: Mean subscription count
        avg_sources: Mean income-source count
        latest_balance: End balance of the most recent month
        income_slope: Regression slope of deposits per month
        has_payroll: Any month carried a payroll deposit
    """

    last_month: str
    avg_income: float
    avg_spending: float
    avg_essential: float
    avg_discretionary: float
    avg_debt: float
    avg_savings: float
    avg_subscriptions: float
    avg_sources: float
    latest_balance: float
    income_slope: float
    has_payroll: bool

    @classmethod
    def from_months(cls, months: Sequence[MonthlyAggregate]) -> "HistoricalProfile":
        """Build a profile from a non-empty ascending month sequence."""
        deposits = [m.total_deposits for m in months]
        return cls(
            last_month=months[-1].month,
            avg_income=mean(deposits),
            avg_spending=mean([m.total_spending for m in months]),
            avg_essential=mean([m.essential_spending for m in months]),
            avg_discretionary=mean([m.discretionary_spending for m in months]),
            avg_debt=mean([m.debt_payments for m in months]),
            avg_savings=mean([m.savings_transfers for m in months]),
            avg_subscriptions=mean([m.subscription_count for m in months]),
            avg_sources=mean([m.income_source_count for m in months]),
            latest_balance=months[-1].end_balance,
            income_slope=linear_regression_slope(deposits),
            has_payroll=any(m.has_payroll_deposit for m in months),
        )

    @property
    def essential_ratio(self) -> float:
        """Historical essential share of spending; 0.5 when nothing was spent."""
        if self.avg_spending > 0:
            return self.avg_essential / self.avg_spending
        return DEFAULT_ESSENTIAL_RATIO

    @property
    def savings_cushion(self) -> float:
        return max(self.latest_balance, 0)


def synthesize_month(
    month: str,
    total_deposits: float,
    total_spending: float,
    debt_payments: float,
    savings_transfers: float,
    end_balance: float,
    essential_ratio: float,
    income_source_count: int,
    subscription_count: int,
    has_payroll_deposit: bool,
) -> MonthlyAggregate:
    """
    Build a synthetic MonthlyAggregate for re-scoring.

    Spending is split into essential and discretionary with the given
    ratio; the overdraft flag follows the sign of end_balance.
    """
    return MonthlyAggregate(
        month=month,
        total_deposits=total_deposits,
        total_spending=total_spending,
        essential_spending=round_half_up(total_spending * essential_ratio),
        discretionary_spending=round_half_up(total_spending * (1 - essential_ratio)),
        debt_payments=debt_payments,
        savings_transfers=savings_transfers,
        end_balance=end_balance,
        income_source_count=income_source_count,
        overdraft_count=1 if end_balance < 0 else 0,
        subscription_count=subscription_count,
        has_payroll_deposit=has_payroll_deposit,
    )
