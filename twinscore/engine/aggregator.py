"""
Monthly aggregation of enriched transactions.

Builds the ordered MonthlyAggregate sequence every other engine consumes,
and enforces the ordering invariant at this boundary so trend detectors
downstream never regress against a corrupted sequence.
"""

from collections import Counter, defaultdict
from typing import Optional, Sequence

import structlog

from twinscore.engine.stats import mean
from twinscore.errors import MonthSequenceError
from twinscore.models.taxonomy import DEFAULT_TAXONOMY, Taxonomy
from twinscore.models.transactions import (
    EnrichedTransaction,
    MonthlyAggregate,
    TransactionPatterns,
)

logger = structlog.get_logger()

TOP_MERCHANT_LIMIT = 10
RECURRING_CHARGE_LIMIT = 15
SPIKE_MULTIPLIER = 1.5


def aggregate_monthly(
    transactions: Sequence[EnrichedTransaction],
    taxonomy: Optional[Taxonomy] = None,
) -> list[MonthlyAggregate]:
    """
    Group transactions by calendar month into ordered aggregates.

    A single running balance accumulates (deposits - spending) across the
    whole sequence starting from zero. A month whose running balance is
    negative carries overdraft_count == 1, however many transactions
    pushed it there.

    Args:
        transactions: Enriched transactions in any order
        taxonomy: Category sets and keywords (defaults to DEFAULT_TAXONOMY)

    Returns:
        MonthlyAggregate list in ascending month order
    """
    taxonomy = taxonomy or DEFAULT_TAXONOMY

    by_month: dict[str, list[EnrichedTransaction]] = defaultdict(list)
    for tx in transactions:
        by_month[tx.month_key].append(tx)

    months: list[MonthlyAggregate] = []
    running_balance = 0.0

    for month in sorted(by_month):
        total_deposits = 0.0
        total_spending = 0.0
        essential = 0.0
        discretionary = 0.0
        debt = 0.0
        savings = 0.0
        has_payroll = False
        income_sources: set[str] = set()
        subscription_merchants: set[str] = set()

        for tx in by_month[month]:
            amount = tx.magnitude
            if tx.is_income_deposit:
                total_deposits += amount
                income_sources.add(tx.source_name.lower())
                if taxonomy.is_payroll(tx.name):
                    has_payroll = True
                continue

            total_spending += amount
            if tx.category == taxonomy.debt_category:
                debt += amount
            elif tx.category == taxonomy.savings_category:
                savings += amount
            elif tx.category == taxonomy.subscription_category and tx.is_recurring:
                subscription_merchants.add(tx.source_name.lower())

            if taxonomy.is_essential(tx.category):
                essential += amount
            else:
                discretionary += amount

        running_balance += total_deposits - total_spending

        months.append(
            MonthlyAggregate(
                month=month,
                total_deposits=total_deposits,
                total_spending=total_spending,
                essential_spending=essential,
                discretionary_spending=discretionary,
                debt_payments=debt,
                savings_transfers=savings,
                end_balance=running_balance,
                income_source_count=len(income_sources),
                overdraft_count=1 if running_balance < 0 else 0,
                subscription_count=len(subscription_merchants),
                has_payroll_deposit=has_payroll,
            )
        )

    logger.debug(
        "monthly_aggregation_completed",
        transactions=len(transactions),
        months=len(months),
    )
    return months


def validate_month_sequence(months: Sequence[MonthlyAggregate]) -> None:
    """
    Require strictly ascending month keys.

    Raises:
        MonthSequenceError: If any key is duplicated or out of order
    """
    keys = [m.month for m in months]
    for previous, current in zip(keys, keys[1:]):
        if current == previous:
            raise MonthSequenceError(f"Duplicate month key {current}", keys)
        if current < previous:
            raise MonthSequenceError(
                f"Month {current} follows {previous}; sequence must be ascending",
                keys,
            )


def ensure_month_sequence(
    months: Sequence[MonthlyAggregate],
) -> list[MonthlyAggregate]:
    """
    Return the sequence in ascending month order.

    An unordered but duplicate-free sequence is sorted and a warning is
    logged. Duplicate keys cannot be reconciled and are rejected.

    Raises:
        MonthSequenceError: If any month key appears more than once
    """
    keys = [m.month for m in months]
    duplicates = sorted(k for k, count in Counter(keys).items() if count > 1)
    if duplicates:
        logger.error("month_sequence_duplicates", duplicates=duplicates)
        raise MonthSequenceError(
            f"Duplicate month keys: {', '.join(duplicates)}", keys
        )

    if keys == sorted(keys):
        return list(months)

    logger.warning("month_sequence_reordered", months=keys)
    return sorted(months, key=lambda m: m.month)


def build_transaction_patterns(
    transactions: Sequence[EnrichedTransaction],
    months: Sequence[MonthlyAggregate],
) -> TransactionPatterns:
    """
    Summarize descriptive patterns from the raw transactions.

    Args:
        transactions: Enriched transactions
        months: Aggregates built from the same transactions

    Returns:
        TransactionPatterns with top merchants, recurring charges,
        unusual spending months and the primary income source
    """
    merchant_counts: Counter[str] = Counter()
    for tx in transactions:
        if tx.merchant_name and not tx.is_income_deposit:
            merchant_counts[tx.merchant_name] += 1
    # Counter.most_common keeps first-seen order among ties
    top_merchants = [name for name, _ in merchant_counts.most_common(TOP_MERCHANT_LIMIT)]

    recurring: list[str] = []
    for tx in transactions:
        if tx.is_recurring and not tx.is_income_deposit and tx.source_name not in recurring:
            recurring.append(tx.source_name)
    recurring_charges = recurring[:RECURRING_CHARGE_LIMIT]

    avg_spending = mean([m.total_spending for m in months])
    unusual_spikes = [
        f"{m.month}: ${m.total_spending:.0f} "
        f"({(m.total_spending / avg_spending - 1) * 100:.0f}% above average)"
        for m in months
        if avg_spending > 0 and m.total_spending > avg_spending * SPIKE_MULTIPLIER
    ]

    income_totals: dict[str, float] = {}
    for tx in transactions:
        if tx.is_income_deposit:
            income_totals[tx.source_name] = income_totals.get(tx.source_name, 0.0) + tx.magnitude
    primary_income_source = (
        max(income_totals, key=income_totals.get) if income_totals else "Unknown"
    )

    return TransactionPatterns(
        top_merchants=top_merchants,
        recurring_charges=recurring_charges,
        unusual_spikes=unusual_spikes,
        primary_income_source=primary_income_source,
        months_analysed=len(months),
    )
