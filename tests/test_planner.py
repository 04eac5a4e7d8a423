import math

import pytest

from app.core.config import Settings
from app.utils.planner import (
    ANNUAL_RETURN_RATE,
    InvalidExpenseError,
    SavingsPlanner,
    future_value,
    monthly_return_rate,
)

sample_expenses = [
    {"category": "Food", "amount": 250.0, "created_at": "2026-10-01T12:00:00+00:00"},
    {"category": "Rent", "amount": 1000.0, "created_at": "2026-10-02T12:00:00+00:00"},
    {"category": "Food", "amount": 150.0, "created_at": "2026-10-03T12:00:00+00:00"},
    {"category": "Shopping", "amount": 1200.0, "created_at": "2026-10-04T12:00:00+00:00"},
    {"category": None, "amount": 75.5, "createdAt": "2026-10-05T09:30:00Z"},
]


def _annuity_due(payment, rate, months):
    # closed form written out independently of the planner
    growth = (1 + rate) ** months
    return payment * (growth - 1) / rate * (1 + rate)


def test_single_expense_analysis():
    analysis = SavingsPlanner().spending_analysis([{"amount": 1000, "category": "food"}])

    assert analysis["totalSpending"] == 1000
    assert analysis["estimatedMonthlySpending"] == 1000
    assert analysis["averageDailySpending"] == 33.33
    assert analysis["categoryBreakdown"] == [{"category": "food", "amount": 1000, "percentage": 100}]
    assert analysis["savingsScenarios"][0] == {
        "reductionPercent": 5,
        "monthlySavings": 50,
        "description": "5% reduction in monthly spending",
    }


def test_breakdown_sums_to_total():
    aggregate = SavingsPlanner().aggregate(sample_expenses)

    assert aggregate.total_spending == pytest.approx(2675.5)
    assert sum(share.amount for share in aggregate.category_breakdown) == pytest.approx(aggregate.total_spending)
    assert sum(share.percentage for share in aggregate.category_breakdown) == pytest.approx(100)


def test_rounded_percentages_stay_close_to_hundred():
    expenses = [{"category": c, "amount": 1} for c in ("a", "b", "c")]
    breakdown = SavingsPlanner().spending_analysis(expenses)["categoryBreakdown"]

    assert sum(item["percentage"] for item in breakdown) == pytest.approx(100, abs=0.05)


def test_breakdown_sorted_descending_and_stable():
    expenses = [
        {"category": "Travel", "amount": 40},
        {"category": "Books", "amount": 90},
        {"category": "Coffee", "amount": 40},
        {"category": "Games", "amount": 40},
    ]
    categories = [share.category for share in SavingsPlanner().aggregate(expenses).category_breakdown]

    assert categories == ["Books", "Travel", "Coffee", "Games"]


def test_missing_or_blank_category_counts_as_other():
    expenses = [{"amount": 10}, {"amount": 5, "category": "  "}, {"amount": 1, "category": None}]
    breakdown = SavingsPlanner().aggregate(expenses).category_breakdown

    assert [(s.category, s.amount) for s in breakdown] == [("Other", 16.0)]


def test_average_daily_uses_fixed_window():
    aggregate = SavingsPlanner().aggregate([{"amount": 300, "category": "Food"}])
    assert aggregate.average_daily_spending == 10

    short_window = SavingsPlanner(window_days=10).aggregate([{"amount": 300, "category": "Food"}])
    assert short_window.average_daily_spending == 30


def test_empty_input_gives_zero_outputs():
    analysis = SavingsPlanner().spending_analysis([])

    assert analysis["totalSpending"] == 0
    assert analysis["averageDailySpending"] == 0
    assert analysis["categoryBreakdown"] == []
    assert [s["monthlySavings"] for s in analysis["savingsScenarios"]] == [0, 0, 0]
    for sip in analysis["sipProjections"]:
        assert sip["monthlyInvestment"] == 0
        for projection in sip["projections"]:
            assert projection["totalInvested"] == 0
            assert projection["expectedValue"] == 0
            assert projection["profit"] == 0
            assert projection["returnPercentage"] == 0


def test_zero_total_guards_percentages():
    analysis = SavingsPlanner().spending_analysis(
        [{"amount": 0, "category": "Food"}, {"amount": 0.0, "category": "Rent"}]
    )

    assert [item["percentage"] for item in analysis["categoryBreakdown"]] == [0, 0]
    returns = [p["returnPercentage"] for sip in analysis["sipProjections"] for p in sip["projections"]]
    assert returns == [0] * 6
    assert not any(math.isnan(r) for r in returns)


@pytest.mark.parametrize("amount", [None, "abc", True, -5, float("nan"), float("inf"), [10]])
def test_invalid_amount_fails_whole_computation(amount):
    expenses = [{"amount": 100, "category": "Food"}, {"amount": amount, "category": "Food"}]
    with pytest.raises(InvalidExpenseError):
        SavingsPlanner().spending_analysis(expenses)


def test_missing_amount_is_invalid():
    with pytest.raises(InvalidExpenseError):
        SavingsPlanner().aggregate([{"category": "Food"}])


def test_numeric_strings_and_decimals_are_accepted():
    from decimal import Decimal

    aggregate = SavingsPlanner().aggregate([{"amount": "12.5"}, {"amount": Decimal("7.5")}])
    assert aggregate.total_spending == 20


def test_malformed_timestamp_is_invalid():
    with pytest.raises(InvalidExpenseError):
        SavingsPlanner().aggregate([{"amount": 10, "category": "Food", "created_at": "last tuesday"}])


def test_pipeline_is_idempotent():
    planner = SavingsPlanner()
    assert planner.spending_analysis(sample_expenses) == planner.spending_analysis(sample_expenses)
    assert planner.savings_goals(sample_expenses) == planner.savings_goals(sample_expenses)


def test_scenarios_use_fixed_reductions():
    scenarios = SavingsPlanner().savings_scenarios(2000)

    assert [(s.reduction_percent, s.monthly_savings) for s in scenarios] == [(5, 100), (10, 200), (15, 300)]
    assert scenarios[1].description == "10% reduction in monthly spending"


def test_future_value_zero_rate_is_plain_sum():
    assert future_value(250, 0, 60) == 250 * 60
    assert future_value(0, 0, 120) == 0


def test_monthly_rate_compounds_to_annual_rate():
    rate = monthly_return_rate(ANNUAL_RETURN_RATE)

    assert rate == pytest.approx(0.009489, abs=1e-6)
    assert (1 + rate) ** 12 == pytest.approx(1.12)


def test_sip_five_year_projection_matches_annuity_due():
    rate = monthly_return_rate(0.12)
    value = future_value(100, rate, 60)

    assert value == pytest.approx(_annuity_due(100, rate, 60))
    assert value == pytest.approx(8110.36, abs=0.01)
    # the contribution earns a full month before the next one arrives
    ordinary = 100 * ((1 + rate) ** 60 - 1) / rate
    assert value == pytest.approx(ordinary * (1 + rate))


def test_sip_projection_fields():
    projections = SavingsPlanner().project(100)
    five, ten = [p.to_dict() for p in projections]

    assert five["years"] == 5
    assert five["totalInvested"] == 6000
    assert five["expectedValue"] == pytest.approx(8110.36, abs=0.01)
    assert five["profit"] == pytest.approx(2110.36, abs=0.01)
    assert five["returnPercentage"] == pytest.approx(35.17, abs=0.01)
    assert five["description"] == "5-year SIP with ₹100/month"
    assert ten["years"] == 10
    assert ten["totalInvested"] == 12000
    assert ten["expectedValue"] == pytest.approx(_annuity_due(100, monthly_return_rate(0.12), 120), abs=0.01)


def test_spending_analysis_links_scenarios_to_projections():
    analysis = SavingsPlanner().spending_analysis(sample_expenses)
    rate = monthly_return_rate(0.12)

    assert [sip["reductionPercent"] for sip in analysis["sipProjections"]] == [5, 10, 15]
    ten_percent = analysis["sipProjections"][1]
    assert ten_percent["monthlyInvestment"] == pytest.approx(267.55)
    assert ten_percent["projections"][0]["expectedValue"] == pytest.approx(
        round(_annuity_due(267.55, rate, 60), 2), abs=0.01
    )


def test_savings_goals():
    result = SavingsPlanner().savings_goals([{"amount": 3000, "category": "Rent"}])
    goals = {goal["name"]: goal for goal in result["achievableGoals"]}

    assert result["currentMonthlySpending"] == 3000
    emergency = goals["Emergency Fund (3 months)"]
    assert emergency["targetAmount"] == 9000
    assert emergency["monthlySavings"] == 300
    assert emergency["monthsToAchieve"] == 30
    assert emergency["isAchievable"] is True
    assert goals["Vacation Fund"]["monthsToAchieve"] == 167
    assert goals["Vacation Fund"]["isAchievable"] is False
    assert goals["New Gadget Fund"]["monthsToAchieve"] == 84
    assert goals["Home Down Payment"]["monthsToAchieve"] == 1667


def test_savings_goal_boundary_is_inclusive():
    def home_goal(monthly_spending):
        goals = SavingsPlanner().savings_goals([{"amount": monthly_spending}])["achievableGoals"]
        return next(goal for goal in goals if goal["name"] == "Home Down Payment")

    # 500000 / 8334 rounds up to 60 months, 500000 / 8333 to 61
    assert home_goal(83340)["monthsToAchieve"] == 60
    assert home_goal(83340)["isAchievable"] is True
    assert home_goal(83330)["monthsToAchieve"] == 61
    assert home_goal(83330)["isAchievable"] is False


def test_savings_goals_without_spending_are_unreachable():
    result = SavingsPlanner().savings_goals([])

    assert result["currentMonthlySpending"] == 0
    for goal in result["achievableGoals"]:
        assert goal["monthlySavings"] == 0
        assert goal["monthsToAchieve"] is None
        assert goal["isAchievable"] is False


def test_category_analysis():
    expenses = [
        {"expense_id": "e2", "amount": 150.0, "description": "Dinner", "created_at": "2026-10-03T12:00:00+00:00"},
        {"expense_id": "e1", "amount": 250.0, "description": "Groceries", "created_at": "2026-10-01T12:00:00+00:00"},
    ]
    result = SavingsPlanner().category_analysis("Food", expenses)

    assert result["category"] == "Food"
    assert result["totalSpending"] == 400
    assert result["transactionCount"] == 2
    assert result["averageTransactionAmount"] == 200
    assert [e["id"] for e in result["expenses"]] == ["e2", "e1"]
    assert result["expenses"][0]["createdAt"] == "2026-10-03T12:00:00+00:00"


def test_category_analysis_empty():
    result = SavingsPlanner().category_analysis("Travel", [])

    assert result["totalSpending"] == 0
    assert result["transactionCount"] == 0
    assert result["averageTransactionAmount"] == 0
    assert result["expenses"] == []


def test_planner_from_settings_keeps_defaults():
    planner = SavingsPlanner.from_settings(Settings())
    default = SavingsPlanner()

    assert planner.spending_analysis(sample_expenses) == default.spending_analysis(sample_expenses)
    assert planner.savings_goals(sample_expenses) == default.savings_goals(sample_expenses)
