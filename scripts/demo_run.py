#!/usr/bin/env python3
"""
twinscore demo: full analysis without a categorizer or bank connection.

Runs the complete workflow:
1. Loads enriched transactions from a JSON file, or generates a seeded
   demo history
2. Runs the TwinAnalyzer (scores, anomalies, red flags, loan shield,
   explanations)
3. Optionally runs a stress scenario and a forward preset
4. Prints the report as JSON

Usage:
    python scripts/demo_run.py                           # Seeded 6-month history
    python scripts/demo_run.py --months 12 --seed 7      # Longer history
    python scripts/demo_run.py --input transactions.json # Your own data
    python scripts/demo_run.py --stress job_loss_6_months --preset 1
"""

import argparse
import json
import random
import sys
from datetime import date
from pathlib import Path

from pydantic import TypeAdapter

sys.path.insert(0, str(Path(__file__).parent.parent))

from twinscore.engine.pipeline import TwinAnalyzer  # noqa: E402
from twinscore.engine.simulation import BUILT_IN_SCENARIOS, PRESET_SCENARIOS  # noqa: E402
from twinscore.models import EnrichedTransaction, StressTestInput  # noqa: E402
from twinscore.utils.logging import (  # noqa: E402
    bind_analysis_context,
    configure_logging,
    get_logger,
)

logger = get_logger(__name__)

TRANSACTION_LIST = TypeAdapter(list[EnrichedTransaction])

DISCRETIONARY_MERCHANTS = [
    ("Blue Bottle Coffee", "dining", 6, 14),
    ("Chipotle", "dining", 11, 24),
    ("Amazon", "shopping", 18, 140),
    ("Target", "shopping", 25, 110),
    ("AMC Theatres", "entertainment", 15, 40),
    ("Uber", "transportation", 12, 35),
]

SUBSCRIPTIONS = [
    ("Netflix", 15.49),
    ("Spotify", 10.99),
    ("iCloud", 2.99),
]


class DemoHistoryGenerator:
    """
    Generates a reproducible enriched-transaction history.

    Attributes:
        seed: Random seed for reproducibility
        months: Number of calendar months to generate
        start: First day of the first month
    """

    def __init__(self, seed: int = 42, months: int = 6, start: date = date(2024, 1, 1)):
        self.seed = seed
        self.months = months
        self.start = start
        self.rng = random.Random(seed)

    def _month_start(self, offset: int) -> date:
        index = self.start.year * 12 + self.start.month - 1 + offset
        return date(index // 12, index % 12 + 1, 1)

    def _day(self, month_start: date, day: int) -> date:
        return month_start.replace(day=min(day, 28))

    def generate(self) -> list[EnrichedTransaction]:
        transactions: list[EnrichedTransaction] = []
        for offset in range(self.months):
            month_start = self._month_start(offset)

            for day in (1, 15):
                transactions.append(
                    EnrichedTransaction(
                        amount=round(self.rng.uniform(2050, 2150), 2),
                        date=self._day(month_start, day),
                        name="ACME CORP PAYROLL DIRECT DEP",
                        merchant_name="Acme Corp",
                        category="income",
                        is_recurring=True,
                        is_income_deposit=True,
                    )
                )
            if self.rng.random() < 0.5:
                transactions.append(
                    EnrichedTransaction(
                        amount=round(self.rng.uniform(150, 600), 2),
                        date=self._day(month_start, self.rng.randint(5, 25)),
                        name="UPWORK ESCROW",
                        merchant_name="Upwork",
                        category="income",
                        is_income_deposit=True,
                    )
                )

            fixed = [
                ("Oakwood Apartments", "rent", 1450.0, 1),
                ("City Power & Light", "utilities", round(self.rng.uniform(90, 140), 2), 8),
                ("Geico", "insurance", 128.0, 12),
                ("Navient", "debt_payment", 310.0, 20),
                ("Ally Savings", "savings_transfer", 250.0, 2),
            ]
            for merchant, category, amount, day in fixed:
                transactions.append(
                    EnrichedTransaction(
                        amount=-amount,
                        date=self._day(month_start, day),
                        name=merchant.upper(),
                        merchant_name=merchant,
                        category=category,
                        is_recurring=True,
                    )
                )

            for merchant, amount in SUBSCRIPTIONS:
                transactions.append(
                    EnrichedTransaction(
                        amount=-amount,
                        date=self._day(month_start, 3),
                        name=merchant.upper(),
                        merchant_name=merchant,
                        category="subscriptions",
                        is_recurring=True,
                    )
                )

            for _ in range(self.rng.randint(3, 6)):
                transactions.append(
                    EnrichedTransaction(
                        amount=-round(self.rng.uniform(45, 120), 2),
                        date=self._day(month_start, self.rng.randint(1, 28)),
                        name="TRADER JOE'S",
                        merchant_name="Trader Joe's",
                        category="groceries",
                    )
                )

            for _ in range(self.rng.randint(6, 12)):
                merchant, category, low, high = self.rng.choice(DISCRETIONARY_MERCHANTS)
                transactions.append(
                    EnrichedTransaction(
                        amount=-round(self.rng.uniform(low, high), 2),
                        date=self._day(month_start, self.rng.randint(1, 28)),
                        name=merchant.upper(),
                        merchant_name=merchant,
                        category=category,
                    )
                )

        logger.info(
            "demo_history_generated",
            seed=self.seed,
            months=self.months,
            transactions=len(transactions),
        )
        return transactions


def load_transactions(path: Path) -> list[EnrichedTransaction]:
    return TRANSACTION_LIST.validate_json(path.read_bytes())


def main():
    parser = argparse.ArgumentParser(description="Run a twinscore analysis and print the report")
    parser.add_argument("--input", type=Path, help="JSON file with a list of enriched transactions")
    parser.add_argument("--months", type=int, default=6, help="Months of demo history to generate")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for the demo history")
    parser.add_argument(
        "--stress",
        choices=[s.id for s in BUILT_IN_SCENARIOS],
        help="Also run this stress scenario",
    )
    parser.add_argument(
        "--preset",
        type=int,
        choices=range(len(PRESET_SCENARIOS)),
        help="Also run this forward preset (index into PRESET_SCENARIOS)",
    )
    parser.add_argument("--indent", type=int, default=2, help="JSON indent")
    args = parser.parse_args()

    configure_logging()
    bind_analysis_context(source=str(args.input) if args.input else "demo", seed=args.seed)

    if args.input:
        transactions = load_transactions(args.input)
    else:
        transactions = DemoHistoryGenerator(seed=args.seed, months=args.months).generate()

    analyzer = TwinAnalyzer()
    report = analyzer.analyze(transactions)
    output = {"report": report.model_dump(mode="json")}

    if args.stress:
        result = analyzer.stress_test(
            report, transactions, StressTestInput(scenario_id=args.stress)
        )
        output["stress_test"] = result.model_dump(mode="json")

    if args.preset is not None:
        result = analyzer.simulate(report, transactions, [PRESET_SCENARIOS[args.preset]])
        output["forward_simulation"] = result.model_dump(mode="json")

    print(json.dumps(output, indent=args.indent))


if __name__ == "__main__":
    main()
