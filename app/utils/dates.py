from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Sequence

from app.models.training_plan import PLAN_LENGTH_DAYS

DAYS_PER_WEEK = 7
WEEKS_PER_PLAN = PLAN_LENGTH_DAYS // DAYS_PER_WEEK


def utc_today() -> date:
    return datetime.utcnow().date()


def plan_end_date(start_date: date) -> date:
    """Последний день плана: start + 69 дней."""
    return start_date + timedelta(days=PLAN_LENGTH_DAYS - 1)


def workout_date(start_date: date, day_number: int) -> date:
    return start_date + timedelta(days=day_number - 1)


def is_today(value: date, today: date = None) -> bool:
    return value == (today or utc_today())


def format_time(seconds: int) -> str:
    """1230 -> "20:30", 6135 -> "1:42:15"."""
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def _get(day: Any, field: str):
    if isinstance(day, dict):
        return day[field]
    return getattr(day, field)


def week_stats(days: Sequence[Any]) -> Dict[str, int]:
    workouts = [day for day in days if not _get(day, "is_rest_day")]
    return {
        "completed": sum(1 for day in workouts if _get(day, "is_completed")),
        "total": len(workouts),
    }


def group_into_weeks(days: Sequence[Any]) -> List[Dict[str, Any]]:
    """Разбить 70 дней (отсортированных по day_number) на 10 недель со статистикой."""
    if len(days) != PLAN_LENGTH_DAYS:
        raise ValueError(f"Expected {PLAN_LENGTH_DAYS} days, got {len(days)}")

    weeks = []
    for index in range(WEEKS_PER_PLAN):
        week_days = list(days[index * DAYS_PER_WEEK:(index + 1) * DAYS_PER_WEEK])
        stats = week_stats(week_days)
        weeks.append({
            "week_number": index + 1,
            "workout_days": week_days,
            "completed_count": stats["completed"],
            "total_workouts": stats["total"],
        })
    return weeks
