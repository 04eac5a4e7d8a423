"""
Recommendations Router
Spending analysis, SIP projections and savings goals over the trailing window
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.security import get_current_user_id
from app.db.dynamo import ExpenseStore, get_store
from app.utils.planner import InvalidExpenseError, SavingsPlanner

router = APIRouter()
logger = logging.getLogger(__name__)


def get_planner() -> SavingsPlanner:
    return SavingsPlanner.from_settings(settings)


def window_start(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


def _failure(status_code: int, message: str, error: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "error": str(error)},
    )


def _recent_expenses(store: ExpenseStore, user_id: str, planner: SavingsPlanner, category=None) -> List[dict]:
    return store.get_expenses_since(user_id, window_start(planner.window_days), category=category)


@router.get("/spending-analysis")
def spending_analysis(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
    planner: SavingsPlanner = Depends(get_planner),
):
    try:
        expenses = _recent_expenses(store, user_id, planner)
        logger.info(f"Analyzing {len(expenses)} expenses for user {user_id}")
        return {"success": True, "data": planner.spending_analysis(expenses)}
    except InvalidExpenseError as e:
        logger.error(f"Invalid expense data for user {user_id}: {str(e)}")
        return _failure(422, "Expense data is invalid", e)
    except Exception as e:
        logger.error(f"Error in spending analysis: {str(e)}", exc_info=True)
        return _failure(500, "Failed to analyze spending data", e)


@router.get("/category-analysis")
def category_analysis(
    category: str = Query(""),
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
    planner: SavingsPlanner = Depends(get_planner),
):
    if not category:
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Category parameter is required"},
        )

    try:
        expenses = _recent_expenses(store, user_id, planner, category=category)
        return {"success": True, "data": planner.category_analysis(category, expenses)}
    except InvalidExpenseError as e:
        logger.error(f"Invalid expense data for user {user_id}: {str(e)}")
        return _failure(422, "Expense data is invalid", e)
    except Exception as e:
        logger.error(f"Error in category analysis: {str(e)}", exc_info=True)
        return _failure(500, "Failed to analyze category data", e)


@router.get("/savings-goals")
def savings_goals(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
    planner: SavingsPlanner = Depends(get_planner),
):
    try:
        expenses = _recent_expenses(store, user_id, planner)
        return {"success": True, "data": planner.savings_goals(expenses)}
    except InvalidExpenseError as e:
        logger.error(f"Invalid expense data for user {user_id}: {str(e)}")
        return _failure(422, "Expense data is invalid", e)
    except Exception as e:
        logger.error(f"Error in savings goals: {str(e)}", exc_info=True)
        return _failure(500, "Failed to calculate savings goals", e)
