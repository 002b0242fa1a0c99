"""
Оптимистичное переключение "выполнено" для дней плана на дашборде.

Состояние дней живёт в WorkoutStateStore, который создаётся на время жизни
дашборда и явно передаётся контроллеру.

Порядок toggle для одного дня:
  1. день отдыха - отказ без запроса
  2. по дню уже идёт запрос - отказ без запроса
  3. снимок -> локальная инверсия (completed_at = сейчас / None) -> pending
  4. PATCH на сервер
  5. успех: берём значения сервера, если он их вернул
  6. любая ошибка (и отмена): восстанавливаем снимок; 401 -> on_session_expired вместо повтора
Разные дни могут обновляться параллельно.
"""

import inspect
import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from app.client.api_client import ApiClientError, SessionExpired, TrainingPlanApiClient
from app.schemas.training_plan import CompletionStats, TrainingPlanResponse, WorkoutDayResponse
from app.services.completion_stats import calculate_completion_stats
from app.utils.dates import group_into_weeks, is_today

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], Any]


@dataclass(frozen=True)
class WorkoutDayState:
    id: int
    day_number: int
    date: date
    workout_description: str
    is_rest_day: bool
    is_completed: bool
    completed_at: Optional[datetime] = None

    @classmethod
    def from_response(cls, day: WorkoutDayResponse) -> "WorkoutDayState":
        return cls(
            id=day.id,
            day_number=day.day_number,
            date=day.date,
            workout_description=day.workout_description,
            is_rest_day=day.is_rest_day,
            is_completed=day.is_completed,
            completed_at=day.completed_at,
        )


class WorkoutStateStore:
    """Локальное состояние дней плана: значения + флаги pending."""

    def __init__(self, days: List[WorkoutDayState], end_date: date):
        self.end_date = end_date
        self._days: Dict[int, WorkoutDayState] = {day.id: day for day in days}
        self._pending: Set[int] = set()

    @classmethod
    def from_plan(cls, plan: TrainingPlanResponse) -> "WorkoutStateStore":
        return cls([WorkoutDayState.from_response(day) for day in plan.workout_days], plan.end_date)

    def get(self, day_id: int) -> Optional[WorkoutDayState]:
        return self._days.get(day_id)

    def put(self, day: WorkoutDayState) -> None:
        self._days[day.id] = day

    def days(self) -> List[WorkoutDayState]:
        return sorted(self._days.values(), key=lambda day: day.day_number)

    def is_pending(self, day_id: int) -> bool:
        return day_id in self._pending

    def mark_pending(self, day_id: int) -> None:
        self._pending.add(day_id)

    def clear_pending(self, day_id: int) -> None:
        self._pending.discard(day_id)

    def stats(self, today: date = None) -> CompletionStats:
        return calculate_completion_stats(self._days.values(), self.end_date, today)

    def weeks(self) -> List[Dict[str, Any]]:
        return group_into_weeks(self.days())

    def today(self, today: date = None) -> Optional[WorkoutDayState]:
        """День плана на сегодня (для подсветки на дашборде) или None вне плана."""
        return next((day for day in self._days.values() if is_today(day.date, today)), None)


class ToggleOutcome(str, Enum):
    confirmed = "confirmed"
    unchanged = "unchanged"
    rolled_back = "rolled_back"
    session_expired = "session_expired"
    rejected_rest_day = "rejected_rest_day"
    rejected_pending = "rejected_pending"
    not_found = "not_found"


async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result


class WorkoutToggleController:
    def __init__(
        self,
        store: WorkoutStateStore,
        api: TrainingPlanApiClient,
        notify: Optional[Notifier] = None,
        on_session_expired: Optional[Callable[[], Any]] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.store = store
        self.api = api
        self.notify = notify
        self.on_session_expired = on_session_expired
        self.clock = clock

    async def _notify(self, level: str, message: str) -> None:
        if self.notify is not None:
            await _maybe_await(self.notify(level, message))

    def is_updating(self, day_id: int) -> bool:
        return self.store.is_pending(day_id)

    async def toggle(self, day_id: int) -> ToggleOutcome:
        day = self.store.get(day_id)
        if day is None:
            return ToggleOutcome.not_found
        return await self.set_completed(day_id, not day.is_completed)

    async def set_completed(self, day_id: int, is_completed: bool) -> ToggleOutcome:
        day = self.store.get(day_id)
        if day is None:
            return ToggleOutcome.not_found

        if day.is_rest_day:
            await self._notify("error", "День отдыха нельзя отметить как выполненный")
            return ToggleOutcome.rejected_rest_day

        if self.is_updating(day_id):
            return ToggleOutcome.rejected_pending

        if day.is_completed == is_completed:
            return ToggleOutcome.unchanged

        # Между проверкой pending и mark_pending нет await - второй toggle сюда не попадёт
        snapshot = day
        self.store.put(replace(
            day,
            is_completed=is_completed,
            completed_at=self.clock() if is_completed else None,
        ))
        self.store.mark_pending(day_id)

        try:
            confirmed = await self.api.update_workout_day(day_id, is_completed)
        except SessionExpired:
            self.store.put(snapshot)
            logger.warning(f"Workout day {day_id} toggle failed: session expired")
            await self._notify("error", SessionExpired.default_message)
            if self.on_session_expired is not None:
                await _maybe_await(self.on_session_expired())
            return ToggleOutcome.session_expired
        except ApiClientError as e:
            self.store.put(snapshot)
            logger.warning(f"Workout day {day_id} toggle rolled back: {e.kind} ({e.status_code})")
            await self._notify("error", e.message)
            return ToggleOutcome.rolled_back
        except BaseException as e:
            # Отмена задачи или непредвиденная ошибка: значение на сервере неизвестно
            self.store.put(snapshot)
            logger.warning(f"Workout day {day_id} toggle interrupted ({type(e).__name__}), local state restored")
            raise
        finally:
            self.store.clear_pending(day_id)

        if confirmed is not None:
            self.store.put(WorkoutDayState.from_response(confirmed))

        await self._notify(
            "success",
            "Тренировка отмечена как выполненная" if is_completed else "Отметка снята",
        )
        return ToggleOutcome.confirmed
