"""Per-user completion statistics."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from auth import get_current_user_id
from database import get_db
from services.stats_aggregator import DEFAULT_RANGE, StatsAggregator
from services.todo_store import TodoStore

router = APIRouter(prefix="/stats", tags=["stats"])


# --- Pydantic Schemas ---

class CompletedTasks(BaseModel):
    today: int
    this_week: int
    this_month: int
    this_year: int
    all_time: int


class StatsResponse(BaseModel):
    labels: list[str]
    data: list[int]
    range: str
    completedTasks: CompletedTasks


# --- Routes ---

@router.get("", response_model=StatsResponse)
def get_stats(
    range_name: Optional[str] = Query(default=DEFAULT_RANGE.value, alias="range"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Completions grouped by bucket for ``range``, plus totals for every range."""
    aggregator = StatsAggregator(TodoStore(db))
    return aggregator.compute(user_id, range_name).to_response()
