from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

WINDOW_DAYS = 30
ANNUAL_RETURN_RATE = 0.12
REDUCTION_PERCENTAGES: Tuple[int, ...] = (5, 10, 15)
SIP_HORIZON_YEARS: Tuple[int, ...] = (5, 10)
ASSUMED_SAVINGS_RATE = 0.10
ACHIEVABLE_WITHIN_MONTHS = 60
EMERGENCY_FUND_DAYS = 90
DEFAULT_CATEGORY = "Other"
CURRENCY_SYMBOL = "₹"

# Fixed-amount goals; the emergency fund target is derived from spending.
FIXED_SAVINGS_GOALS: Tuple[Tuple[str, float, str], ...] = (
    ("Vacation Fund", 50000.0, "Save for a dream vacation"),
    ("New Gadget Fund", 25000.0, "Save for the latest smartphone or laptop"),
    ("Home Down Payment", 500000.0, "Save for a home down payment"),
)

_TIMESTAMP_KEYS = ("created_at", "createdAt", "date")


class InvalidExpenseError(ValueError):
    """Raised when an expense record cannot be used for financial figures."""


def _money(value: float) -> float:
    return round(value, 2)


@dataclass
class CategoryShare:
    category: str
    amount: float
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "amount": _money(self.amount),
            "percentage": _money(self.percentage),
        }


@dataclass
class SpendingAggregate:
    total_spending: float
    average_daily_spending: float
    category_breakdown: List[CategoryShare] = field(default_factory=list)

    @property
    def estimated_monthly_spending(self) -> float:
        # The trailing window stands in for one month.
        return self.total_spending


@dataclass
class SavingsScenario:
    reduction_percent: int
    monthly_savings: float

    @property
    def description(self) -> str:
        return f"{self.reduction_percent}% reduction in monthly spending"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reductionPercent": self.reduction_percent,
            "monthlySavings": _money(self.monthly_savings),
            "description": self.description,
        }


@dataclass
class SIPProjection:
    monthly_investment: float
    years: int
    expected_value: float
    currency_symbol: str = CURRENCY_SYMBOL

    @property
    def months(self) -> int:
        return self.years * 12

    @property
    def total_invested(self) -> float:
        return self.monthly_investment * self.months

    @property
    def profit(self) -> float:
        return self.expected_value - self.total_invested

    @property
    def return_percentage(self) -> float:
        if self.total_invested == 0:
            return 0.0
        return self.profit / self.total_invested * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "years": self.years,
            "totalInvested": _money(self.total_invested),
            "expectedValue": _money(self.expected_value),
            "profit": _money(self.profit),
            "returnPercentage": _money(self.return_percentage),
            "description": (
                f"{self.years}-year SIP with {self.currency_symbol}"
                f"{self.monthly_investment:.0f}/month"
            ),
        }


@dataclass
class SavingsGoal:
    name: str
    target_amount: float
    description: str
    monthly_savings: float
    achievable_within_months: int = ACHIEVABLE_WITHIN_MONTHS

    @property
    def months_to_achieve(self) -> Optional[int]:
        if self.monthly_savings <= 0:
            return None
        return math.ceil(self.target_amount / self.monthly_savings)

    @property
    def is_achievable(self) -> bool:
        months = self.months_to_achieve
        return months is not None and months <= self.achievable_within_months

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "targetAmount": _money(self.target_amount),
            "description": self.description,
            "monthlySavings": _money(self.monthly_savings),
            "monthsToAchieve": self.months_to_achieve,
            "isAchievable": self.is_achievable,
        }


def expense_amount(expense: Mapping[str, Any]) -> float:
    """
    Read the amount of a single expense record. Anything that is not a finite,
    non-negative number is rejected instead of being counted as zero.
    """
    raw = expense.get("amount")
    if raw is None or isinstance(raw, bool):
        raise InvalidExpenseError(f"Expense amount is missing or invalid: {raw!r}")
    try:
        amount = float(raw)
    except (TypeError, ValueError):
        raise InvalidExpenseError(f"Expense amount is not numeric: {raw!r}")
    if not math.isfinite(amount) or amount < 0:
        raise InvalidExpenseError(f"Expense amount must be a non-negative number: {raw!r}")
    return amount


def expense_category(expense: Mapping[str, Any]) -> str:
    category = expense.get("category")
    if category is None or not str(category).strip():
        return DEFAULT_CATEGORY
    return str(category)


def check_timestamp(expense: Mapping[str, Any]) -> None:
    for key in _TIMESTAMP_KEYS:
        value = expense.get(key)
        if value is None or isinstance(value, datetime):
            continue
        try:
            datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise InvalidExpenseError(f"Malformed expense timestamp in '{key}': {value!r}")


def monthly_return_rate(annual_rate: float) -> float:
    """Effective monthly rate equivalent to ``annual_rate`` compounded yearly."""
    return (1 + annual_rate) ** (1 / 12) - 1


def future_value(monthly_investment: float, monthly_rate: float, months: int) -> float:
    """
    Future value of an annuity-due: each contribution is invested at the start
    of its month and earns a full period of return.
    """
    if monthly_rate == 0:
        return monthly_investment * months
    return monthly_investment * (((1 + monthly_rate) ** months - 1) / monthly_rate) * (1 + monthly_rate)


class SavingsPlanner:
    """
    Turns the expenses of a trailing window into spending statistics, savings
    scenarios, SIP projections and savings goals. Stateless: every call is a
    pure function of the records passed in.
    """

    def __init__(
        self,
        window_days: int = WINDOW_DAYS,
        annual_return_rate: float = ANNUAL_RETURN_RATE,
        reduction_percentages: Sequence[int] = REDUCTION_PERCENTAGES,
        horizon_years: Sequence[int] = SIP_HORIZON_YEARS,
        assumed_savings_rate: float = ASSUMED_SAVINGS_RATE,
        achievable_within_months: int = ACHIEVABLE_WITHIN_MONTHS,
        emergency_fund_days: int = EMERGENCY_FUND_DAYS,
        currency_symbol: str = CURRENCY_SYMBOL,
    ) -> None:
        if window_days <= 0:
            raise ValueError("window_days must be positive")
        self.window_days = window_days
        self.annual_return_rate = annual_return_rate
        self.reduction_percentages = tuple(reduction_percentages)
        self.horizon_years = tuple(horizon_years)
        self.assumed_savings_rate = assumed_savings_rate
        self.achievable_within_months = achievable_within_months
        self.emergency_fund_days = emergency_fund_days
        self.currency_symbol = currency_symbol

    @classmethod
    def from_settings(cls, settings: Any) -> "SavingsPlanner":
        return cls(
            window_days=settings.WINDOW_DAYS,
            annual_return_rate=settings.ANNUAL_RETURN_RATE,
            reduction_percentages=settings.REDUCTION_PERCENTAGES,
            horizon_years=settings.SIP_HORIZON_YEARS,
            assumed_savings_rate=settings.ASSUMED_SAVINGS_RATE,
            achievable_within_months=settings.ACHIEVABLE_WITHIN_MONTHS,
            emergency_fund_days=settings.EMERGENCY_FUND_DAYS,
            currency_symbol=settings.CURRENCY_SYMBOL,
        )

    def aggregate(self, expenses: Iterable[Mapping[str, Any]]) -> SpendingAggregate:
        totals: Dict[str, float] = {}
        total = 0.0
        for exp in expenses:
            amount = expense_amount(exp)
            check_timestamp(exp)
            category = expense_category(exp)
            # dicts keep insertion order, which makes ties stable below
            totals[category] = totals.get(category, 0.0) + amount
            total += amount

        breakdown = [
            CategoryShare(
                category=category,
                amount=amount,
                percentage=(amount / total * 100) if total else 0.0,
            )
            for category, amount in totals.items()
        ]
        breakdown.sort(key=lambda share: share.amount, reverse=True)

        return SpendingAggregate(
            total_spending=total,
            average_daily_spending=total / self.window_days,
            category_breakdown=breakdown,
        )

    def savings_scenarios(self, estimated_monthly_spending: float) -> List[SavingsScenario]:
        return [
            SavingsScenario(
                reduction_percent=pct,
                monthly_savings=estimated_monthly_spending * pct / 100,
            )
            for pct in self.reduction_percentages
        ]

    def project(self, monthly_investment: float) -> List[SIPProjection]:
        rate = monthly_return_rate(self.annual_return_rate)
        return [
            SIPProjection(
                monthly_investment=monthly_investment,
                years=years,
                expected_value=future_value(monthly_investment, rate, years * 12),
                currency_symbol=self.currency_symbol,
            )
            for years in self.horizon_years
        ]

    def spending_analysis(self, expenses: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
        aggregate = self.aggregate(expenses)
        monthly = aggregate.estimated_monthly_spending
        scenarios = self.savings_scenarios(monthly)

        return {
            "totalSpending": _money(aggregate.total_spending),
            "estimatedMonthlySpending": _money(monthly),
            "averageDailySpending": _money(aggregate.average_daily_spending),
            "categoryBreakdown": [share.to_dict() for share in aggregate.category_breakdown],
            "savingsScenarios": [scenario.to_dict() for scenario in scenarios],
            "sipProjections": [
                {
                    "reductionPercent": scenario.reduction_percent,
                    "monthlyInvestment": _money(scenario.monthly_savings),
                    "projections": [p.to_dict() for p in self.project(scenario.monthly_savings)],
                }
                for scenario in scenarios
            ],
        }

    def savings_goals(self, expenses: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
        aggregate = self.aggregate(expenses)
        monthly = aggregate.estimated_monthly_spending
        monthly_savings = monthly * self.assumed_savings_rate
        months = round(self.emergency_fund_days / self.window_days)

        goals = [
            SavingsGoal(
                name=f"Emergency Fund ({months} months)",
                target_amount=aggregate.average_daily_spending * self.emergency_fund_days,
                description=f"Build an emergency fund to cover {months} months of expenses",
                monthly_savings=monthly_savings,
                achievable_within_months=self.achievable_within_months,
            )
        ]
        goals.extend(
            SavingsGoal(
                name=name,
                target_amount=target,
                description=description,
                monthly_savings=monthly_savings,
                achievable_within_months=self.achievable_within_months,
            )
            for name, target, description in FIXED_SAVINGS_GOALS
        )

        return {
            "currentMonthlySpending": _money(monthly),
            "achievableGoals": [goal.to_dict() for goal in goals],
        }

    def category_analysis(self, category: str, expenses: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
        amounts = [expense_amount(exp) for exp in expenses]
        total = sum(amounts)
        average = total / len(amounts) if amounts else 0.0

        return {
            "category": category,
            "totalSpending": _money(total),
            "transactionCount": len(amounts),
            "averageTransactionAmount": _money(average),
            "expenses": [
                {
                    "id": exp.get("expense_id"),
                    "amount": amount,
                    "description": exp.get("description"),
                    "createdAt": exp.get("created_at"),
                }
                for exp, amount in zip(expenses, amounts)
            ],
        }
