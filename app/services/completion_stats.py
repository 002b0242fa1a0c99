from datetime import date
from typing import Any, Iterable

from app.schemas.training_plan import CompletionStats, CompletionReason
from app.utils.dates import utc_today


def _flag(day: Any, field: str) -> bool:
    if isinstance(day, dict):
        return bool(day[field])
    return bool(getattr(day, field))


def calculate_completion_stats(
    workout_days: Iterable[Any],
    end_date: date,
    today: date = None,
) -> CompletionStats:
    """
    Посчитать прогресс по дням плана. Чистая функция, ничего не сохраняет.

    День - dict или объект с полями is_rest_day / is_completed.
    План считается завершённым, если отмечены все тренировки ИЛИ дата окончания
    уже прошла; причина возвращается в completion_reason.
    """
    today = today or utc_today()

    total_workouts = 0
    completed_workouts = 0
    total_rest_days = 0
    for day in workout_days:
        if _flag(day, "is_rest_day"):
            total_rest_days += 1
            continue
        total_workouts += 1
        if _flag(day, "is_completed"):
            completed_workouts += 1

    completion_percentage = 0
    if total_workouts > 0:
        # round() в Python банковский, а нужно половину округлять вверх
        completion_percentage = (200 * completed_workouts + total_workouts) // (2 * total_workouts)

    completion_reason = None
    if completed_workouts == total_workouts:
        completion_reason = CompletionReason.all_workouts_completed
    elif today > end_date:
        completion_reason = CompletionReason.end_date_passed

    return CompletionStats(
        total_workouts=total_workouts,
        completed_workouts=completed_workouts,
        total_rest_days=total_rest_days,
        completion_percentage=completion_percentage,
        is_plan_completed=completion_reason is not None,
        completion_reason=completion_reason,
    )
