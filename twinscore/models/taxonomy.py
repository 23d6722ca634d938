"""
Category taxonomy injected into the scoring and detection engines.

The categorizer upstream labels every transaction with a category drawn from
a fixed vocabulary. Which of those labels count as essential, and which
substrings mark payroll deposits or investment activity, is configuration
rather than engine logic, so it lives here and is passed in explicitly.
"""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ESSENTIAL_CATEGORIES = (
    "rent",
    "groceries",
    "utilities",
    "insurance",
    "medical",
    "transportation",
    "debt_payment",
)

DEFAULT_PAYROLL_KEYWORDS = ("payroll", "direct dep", "salary")

DEFAULT_INVESTMENT_KEYWORDS = ("investment", "brokerage", "etf")

DEFAULT_STUDENT_LOAN_PATTERN = (
    r"student loan|sallie mae|navient|sofi|mohela|nelnet|fedloan"
    r"|great lakes|aidvantage|dept.* ?ed"
)


class Taxonomy(BaseModel):
    """
    Category membership sets and keyword lists used by every engine.

    Attributes:
        essential_categories: Categories counted as essential spending
        payroll_keywords: Lowercase substrings of a deposit name marking payroll
        investment_keywords: Lowercase substrings of a category marking investing
        debt_category: Category label for debt payments
        savings_category: Category label for transfers into savings
        subscription_category: Category label for subscription charges
        auto_pay_categories: Essential categories whose recurring charges are auto-pay
        student_loan_pattern: Case-insensitive regex matching student-loan servicers
    """

    model_config = ConfigDict(frozen=True)

    essential_categories: frozenset[str] = Field(
        default=frozenset(DEFAULT_ESSENTIAL_CATEGORIES),
        description="Categories counted as essential spending",
    )
    payroll_keywords: tuple[str, ...] = Field(
        default=DEFAULT_PAYROLL_KEYWORDS,
        description="Substrings of a deposit name that mark it as payroll",
    )
    investment_keywords: tuple[str, ...] = Field(
        default=DEFAULT_INVESTMENT_KEYWORDS,
        description="Substrings of a category that mark investment activity",
    )
    debt_category: str = Field(default="debt_payment")
    savings_category: str = Field(default="savings_transfer")
    subscription_category: str = Field(default="subscriptions")
    auto_pay_categories: frozenset[str] = Field(
        default=frozenset({"rent", "utilities", "insurance"}),
    )
    student_loan_pattern: str = Field(default=DEFAULT_STUDENT_LOAN_PATTERN)

    def is_essential(self, category: str) -> bool:
        return category in self.essential_categories

    def is_payroll(self, name: str) -> bool:
        lowered = name.lower()
        return any(keyword in lowered for keyword in self.payroll_keywords)

    def is_investment(self, category: str) -> bool:
        lowered = category.lower()
        return any(keyword in lowered for keyword in self.investment_keywords)


DEFAULT_TAXONOMY = Taxonomy()
